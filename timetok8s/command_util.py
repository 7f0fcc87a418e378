# Copyright 2024 PerfKitBenchmarker Authors. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Set of utility functions for running local commands.

IssueCommand runs a process exactly once. IssueRetryableCommand re-issues the
same argument vector until it succeeds, and reports the time it took to
eventually succeed rather than the time of the final attempt.
"""

import logging
import subprocess
import tempfile
import threading
import time
from typing import NamedTuple, Optional, Sequence, Tuple

from timetok8s import errors
from timetok8s import flags

# Exit codes reported for processes that could not be spawned, as a shell
# would report them.
EXIT_CODE_NOT_FOUND = 127
EXIT_CODE_PERMISSION_DENIED = 126
# Exit code reported when no process ran to completion, including processes
# killed at the deadline.
EXIT_CODE_UNKNOWN = -1


class CommandOutcome(NamedTuple):
  """The result of running a command.

  Attributes:
    cmd: tuple of strings. The argument vector that was run.
    stdout: string. Captured standard output.
    stderr: string. Captured standard error.
    exit_code: int. Exit code of the (last) process.
    duration: float. Wall-clock seconds. For retried commands this is the sum
        over all attempts.
    attempts: int. Number of processes spawned to produce this outcome.
  """
  cmd: Tuple[str, ...]
  stdout: str
  stderr: str
  exit_code: int
  duration: float
  attempts: int = 1


class Deadline(object):
  """A cancellable monotonic deadline shared by every command of one run.

  Attributes:
    timeout: float or None. Seconds from creation until expiry. None never
        expires unless cancelled.
  """

  def __init__(self, timeout=None, clock=time.monotonic):
    self.timeout = timeout
    self._clock = clock
    self._expiry = None if timeout is None else clock() + timeout
    self._cancelled = threading.Event()

  def __repr__(self):
    return '<{0} timeout={1}>'.format(type(self).__name__, self.timeout)

  def Remaining(self) -> Optional[float]:
    """Returns the seconds left before expiry, or None for no deadline."""
    if self._cancelled.is_set():
      return 0.0
    if self._expiry is None:
      return None
    return max(0.0, self._expiry - self._clock())

  def Expired(self) -> bool:
    remaining = self.Remaining()
    return remaining is not None and remaining <= 0

  def Cancel(self):
    """Expires the deadline immediately."""
    self._cancelled.set()


def SplitCommandLine(command_line: str):
  """Splits a configured command line into an argument vector.

  The line is split on runs of whitespace. No shell quoting is supported, so
  an argument can never contain a space, and shell metacharacters are passed
  through literally.

  Args:
    command_line: string such as 'kind create cluster'.

  Returns:
    A list of strings whose first element is the binary.

  Raises:
    errors.Config.InvalidValue: if the line contains no argument.
  """
  args = (command_line or '').split()
  if not args:
    raise errors.Config.InvalidValue(
        'Command line %r does not name a binary.' % command_line)
  return args


def FormatCommand(cmd: Sequence[str]) -> str:
  return ' '.join(cmd)


def DebugText(outcome: CommandOutcome) -> str:
  """Returns a human readable description of a command outcome."""
  return ('Ran: {%s}\nReturnCode:%s\nDuration:%.3fs Attempts:%d\n'
          'STDOUT: %s\nSTDERR: %s' %
          (FormatCommand(outcome.cmd), outcome.exit_code, outcome.duration,
           outcome.attempts, outcome.stdout, outcome.stderr))


def IssueCommand(cmd: Sequence[str],
                 deadline: Optional[Deadline] = None,
                 env=None,
                 cwd=None,
                 force_info_log=False,
                 suppress_warning=False) -> CommandOutcome:
  """Runs the provided command once.

  Args:
    cmd: A list of strings such as is given to the subprocess.Popen()
        constructor. No shell is involved.
    deadline: Optional Deadline. If the command has not finished when the
        deadline expires it is killed. An already expired deadline fails
        without spawning a process.
    env: A dict of key/value strings, such as is given to the subprocess.Popen()
        constructor, that contains environment variables to be injected.
    cwd: Directory in which to execute the command.
    force_info_log: A boolean indicating whether the command result should
        always be logged at the info level. Command results will always be
        logged at the debug level if they aren't logged at another level.
    suppress_warning: A boolean indicating whether the results should
        not be logged at the info level in the event of a non-zero
        return code.

  Returns:
    A CommandOutcome with attempts=1.

  Raises:
    errors.Command.NonZeroExitError: when the exit code is non-zero.
    errors.Command.DeadlineExceededError: when the deadline expired before or
        while the command ran.
    errors.Command.SpawnError: when the process could not be started.
  """
  cmd = tuple(cmd)
  full_cmd = FormatCommand(cmd)
  if env:
    logging.debug('Environment variables: %s', env)

  if deadline is not None and deadline.Expired():
    outcome = CommandOutcome(cmd, '', '', EXIT_CODE_UNKNOWN, 0.0)
    raise errors.Command.DeadlineExceededError(
        'Deadline exceeded before running: %s' % full_cmd, outcome)

  logging.info('Running: %s', full_cmd)
  with tempfile.TemporaryFile() as tf_out, tempfile.TemporaryFile() as tf_err:
    start = time.monotonic()
    try:
      process = subprocess.Popen(cmd, env=env, cwd=cwd,
                                 stdin=subprocess.DEVNULL, stdout=tf_out,
                                 stderr=tf_err)
    except OSError as e:
      duration = time.monotonic() - start
      if isinstance(e, PermissionError):
        exit_code = EXIT_CODE_PERMISSION_DENIED
      elif isinstance(e, FileNotFoundError):
        exit_code = EXIT_CODE_NOT_FOUND
      else:
        exit_code = EXIT_CODE_UNKNOWN
      outcome = CommandOutcome(cmd, '', str(e), exit_code, duration)
      logging.info('Unable to run %s: %s', full_cmd, e)
      raise errors.Command.SpawnError(
          'Unable to run {%s}: %s' % (full_cmd, e), outcome) from e

    did_timeout = threading.Event()

    def _KillProcess():
      did_timeout.set()
      process.kill()

    timer = None
    remaining = None if deadline is None else deadline.Remaining()
    if remaining is not None:
      timer = threading.Timer(remaining, _KillProcess)
      timer.daemon = True
      timer.start()

    try:
      process.wait()
    finally:
      if timer:
        timer.cancel()
      if process.returncode is None:
        process.kill()
        process.wait()
    duration = time.monotonic() - start

    tf_out.seek(0)
    stdout = tf_out.read().decode('utf-8', 'ignore')
    tf_err.seek(0)
    stderr = tf_err.read().decode('utf-8', 'ignore')

  outcome = CommandOutcome(cmd, stdout, stderr, process.returncode, duration)
  debug_text = DebugText(outcome)
  if force_info_log or (process.returncode and not suppress_warning):
    logging.info(debug_text)
  else:
    logging.debug(debug_text)

  if did_timeout.is_set():
    # The kill signal is not the command's own exit status.
    raise errors.Command.DeadlineExceededError(
        '{0}\nDeadline exceeded after {1:.3f} seconds, process was killed.'
        .format(debug_text, duration),
        outcome._replace(exit_code=EXIT_CODE_UNKNOWN))
  if process.returncode:
    raise errors.Command.NonZeroExitError(debug_text, outcome)
  return outcome


def _SleepUntilNextAttempt(poll_interval, deadline):
  remaining = None if deadline is None else deadline.Remaining()
  if remaining is not None:
    poll_interval = min(poll_interval, remaining)
  if poll_interval > 0:
    time.sleep(poll_interval)


def IssueRetryableCommand(cmd: Sequence[str],
                          deadline: Optional[Deadline] = None,
                          poll_interval=flags.DEFAULT_POLL_INTERVAL,
                          max_attempts=flags.DEFAULT_MAX_ATTEMPTS,
                          env=None) -> CommandOutcome:
  """Runs the provided command until it succeeds or gives up.

  Each attempt spawns a fresh process. Only non-zero exits are retried; a
  binary that cannot be spawned or an expired deadline ends the loop at once.

  Args:
    cmd: A list of strings such as is given to the subprocess.Popen()
        constructor.
    deadline: Optional Deadline checked before every attempt and enforced
        during each one.
    poll_interval: Seconds to sleep between attempts.
    max_attempts: The maximum number of processes to spawn.
    env: An alternate environment to pass to the Popen command.

  Returns:
    The CommandOutcome of the successful attempt, with duration set to the sum
    of all attempt durations and attempts set to the number of attempts.

  Raises:
    errors.Command.RetriesExhaustedError: after max_attempts failed attempts.
    errors.Command.DeadlineExceededError: when the deadline expired.
    errors.Command.SpawnError: when the process could not be started.
  """
  cmd = tuple(cmd)
  full_cmd = FormatCommand(cmd)
  logging.info('Running %s until it succeeds ...', full_cmd)

  duration = 0.0
  attempts = 0
  last_error = None
  while attempts < max_attempts:
    if deadline is not None and deadline.Expired():
      message = 'Deadline exceeded after %d attempts of %s' % (attempts,
                                                              full_cmd)
      if last_error:
        last_outcome = last_error.outcome
        message += '\nLast attempt:\n' + DebugText(last_outcome)
      else:
        last_outcome = CommandOutcome(cmd, '', '', EXIT_CODE_UNKNOWN, 0.0)
      raise errors.Command.DeadlineExceededError(
          message,
          last_outcome._replace(exit_code=EXIT_CODE_UNKNOWN, duration=duration,
                                attempts=attempts)) from last_error

    attempts += 1
    try:
      outcome = IssueCommand(cmd, deadline=deadline, env=env,
                             suppress_warning=True)
    except errors.Command.NonZeroExitError as e:
      duration += e.outcome.duration
      last_error = e
      logging.debug('%s failed with exit code %d (%d attempts)', full_cmd,
                    e.outcome.exit_code, attempts)
      if attempts < max_attempts:
        _SleepUntilNextAttempt(poll_interval, deadline)
      continue
    except errors.Command.CommandError as e:
      duration += e.outcome.duration
      raise type(e)(
          str(e), e.outcome._replace(duration=duration, attempts=attempts)
      ) from e

    duration += outcome.duration
    logging.info('%s succeeded after %d attempts (duration: %.3fs)', full_cmd,
                 attempts, duration)
    return outcome._replace(duration=duration, attempts=attempts)

  logging.info(DebugText(last_error.outcome))
  raise errors.Command.RetriesExhaustedError(
      'Giving up on %s after %d attempts (%.3fs):\n%s' %
      (full_cmd, attempts, duration, last_error),
      last_error.outcome._replace(duration=duration, attempts=attempts)
  ) from last_error

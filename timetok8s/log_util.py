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
"""Logging configuration and per-thread run context.

Every log record is tagged with the test case, iteration and phase that the
emitting thread is timing. stderr output reads as:

  12:00:03,120 kind#1 api_ready INFO     Running: kubectl --context ...
  12:00:41,002 kind#1 teardown INFO     Running: kind delete cluster
"""

import contextlib
import logging
import sys
import threading

from absl import flags

try:
  import colorlog
except ImportError:
  colorlog = None

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}
LOG_FILE_NAME = 'timetok8s.log'

_STDERR_FORMAT = '%(asctime)s %(run_label)s%(levelname)-8s %(message)s'
_COLOR_FORMAT = ('%(log_color)s%(asctime)s %(run_label)s%(levelname)-8s'
                 '%(reset)s %(message)s')
_FILE_FORMAT = ('%(asctime)s %(threadName)s %(run_label)s'
                '%(filename)s:%(lineno)d %(levelname)-8s %(message)s')
_LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
}

# Path of the verbose log file once ConfigureLogging has run.
log_local_path = None

flags.DEFINE_enum('log_level', 'info', list(LOG_LEVELS),
                  'The log level written to stderr.')
flags.DEFINE_enum('file_log_level', 'debug', list(LOG_LEVELS),
                  'The log level written to the log file.')


class RunContext(object):
  """The test case, iteration and phase a thread is working on.

  Attributes:
    test_case: string name of the test case, or None outside a sequence.
    iteration: int index of the iteration, or None outside a sequence.
    phase: string name of the phase being timed, or None between phases.
  """

  def __init__(self, parent=None):
    """Creates a context, copying the fields of parent when given.

    Threads started on behalf of a sequence copy the context of the thread
    that owns the sequence.
    """
    self.test_case = parent.test_case if parent else None
    self.iteration = parent.iteration if parent else None
    self.phase = parent.phase if parent else None

  def __repr__(self):
    return '<{0} {1!r}>'.format(type(self).__name__, self.label)

  @property
  def label(self):
    """The record prefix, e.g. 'kind#1 startup ', or '' outside a run."""
    parts = []
    if self.test_case is not None:
      if self.iteration is None:
        parts.append(self.test_case)
      else:
        parts.append('%s#%d' % (self.test_case, self.iteration))
    if self.phase:
      parts.append(self.phase)
    return ''.join(part + ' ' for part in parts)

  @contextlib.contextmanager
  def Bind(self, test_case, iteration):
    """Tags records with a test case run until the block exits.

    The phase is cleared on entry. All fields are restored on exit.
    """
    saved = self.test_case, self.iteration, self.phase
    self.test_case, self.iteration, self.phase = test_case, iteration, None
    try:
      yield self
    finally:
      self.test_case, self.iteration, self.phase = saved


class _ThreadData(threading.local):

  def __init__(self):
    self.run_context = RunContext()


_thread_data = _ThreadData()


def GetRunContext():
  return _thread_data.run_context


def SetRunContext(run_context):
  _thread_data.run_context = run_context


class RunContextFilter(logging.Filter):
  """Copies the emitting thread's RunContext onto each LogRecord.

  Sets run_label for the formatters, plus test_case, iteration and phase for
  handlers that want the structured fields.
  """

  def filter(self, record):
    context = GetRunContext()
    record.run_label = context.label
    record.test_case = context.test_case
    record.iteration = context.iteration
    record.phase = context.phase
    return True


def _StderrFormatter():
  if colorlog is not None and sys.stderr.isatty():
    return colorlog.ColoredFormatter(_COLOR_FORMAT, log_colors=_LOG_COLORS,
                                     reset=True)
  return logging.Formatter(_STDERR_FORMAT)


def _AddHandler(logger, handler, level, formatter):
  handler.addFilter(RunContextFilter())
  handler.setLevel(level)
  handler.setFormatter(formatter)
  logger.addHandler(handler)
  return handler


def ConfigureLogging(stderr_log_level, log_path, file_log_level=logging.DEBUG):
  """Sends records to stderr and to a verbose log file.

  Replaces any handlers already installed on the root logger and resets the
  calling thread's RunContext.

  Args:
    stderr_log_level: Minimum level of records written to stderr.
    log_path: Path of the log file.
    file_log_level: Minimum level of records written to the log file.
  """
  global log_local_path
  log_local_path = log_path

  logger = logging.getLogger()
  logger.handlers = []
  logger.setLevel(logging.DEBUG)
  SetRunContext(RunContext())

  _AddHandler(logger, logging.StreamHandler(), stderr_log_level,
              _StderrFormatter())
  logging.info('Verbose logging to: %s', log_path)
  _AddHandler(logger, logging.FileHandler(log_path), file_log_level,
              logging.Formatter(_FILE_FORMAT))

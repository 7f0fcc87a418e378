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

"""A common location for all timetok8s-defined exceptions."""


class Error(Exception):
  pass


class Setup(object):
  """Errors raised while setting up a run."""

  class MissingConfigError(Error):
    """Error raised when no test case configuration was supplied."""
    pass

  class OutputError(Error):
    """Error raised when the output destination cannot be written."""
    pass


class Config(object):
  """Errors related to configs."""

  class InvalidValue(Error):
    """User provided an invalid value for a config option."""
    pass

  class MissingOption(Error):
    """User did not provide a value for a required config option."""
    pass

  class ParseError(Error):
    """Error raised when a config can't be loaded properly."""
    pass

  class UnrecognizedOption(Error):
    """User provided a value for an unrecognized config option."""
    pass


class Command(object):
  """Errors raised by command_util.py."""

  class CommandError(Error):
    """Base class for failures of a single command.

    Attributes:
      outcome: command_util.CommandOutcome describing the failed command. The
          duration is always populated, even when the process never ran.
    """

    def __init__(self, message, outcome):
      super(Command.CommandError, self).__init__(message)
      self.outcome = outcome

  class NonZeroExitError(CommandError):
    """The command ran to completion with a non-zero exit code."""
    pass

  class DeadlineExceededError(CommandError):
    """The run deadline expired before the command completed."""
    pass

  class SpawnError(CommandError):
    """The command could not be started (not found, permission denied)."""
    pass

  class RetriesExhaustedError(CommandError):
    """The retry ceiling was reached without a successful attempt."""
    pass


class Benchmarks(object):
  """Errors raised while benchmarking a test case."""

  class PhaseError(Error):
    """A phase failed and the sequence for a test case was aborted.

    Attributes:
      phase: string. Name of the phase that failed.
      result: experiment.ExperimentResult holding the phases measured before
          the failure, with its error field populated.
    """

    def __init__(self, message, phase, result):
      super(Benchmarks.PhaseError, self).__init__(message)
      self.phase = phase
      self.result = result

  class DryRunError(Error):
    """A test case failed during the unrecorded validation iteration."""
    pass

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
"""Runs every test case across the configured number of iterations.

Iteration 0 is a dry run that validates the harness: its results are never
published and any failure stops the whole run. Iterations 1..N are recorded;
a failing test case is still published, with its error, and the run moves on.
"""

import logging

from timetok8s import cluster_boot
from timetok8s import command_util
from timetok8s import errors

DRY_RUN_ITERATION = 0


class IterationRunner(object):
  """Drives the phase sequencer over test cases and iterations.

  Attributes:
    config: run_config.RunConfig of the run.
    test_cases: sequence of experiment.TestCase, run in the given order.
    publishers: sequence of publisher.ResultPublisher receiving every
        recorded result.
    sequencer: cluster_boot.PhaseSequencer used to run a test case.
  """

  def __init__(self, config, test_cases, publishers=(), sequencer=None):
    self.config = config
    self.test_cases = tuple(test_cases)
    self.publishers = tuple(publishers)
    self.sequencer = sequencer or cluster_boot.PhaseSequencer(config)

  def _Teardown(self, test_case):
    """Runs the teardown of a test case once, logging any failure."""
    cleanup = command_util.SplitCommandLine(test_case.teardown)
    logging.info('cleaning up %r with arguments: %s', test_case.name, cleanup)
    deadline = command_util.Deadline(self.config.timeout or None)
    try:
      command_util.IssueCommand(cleanup, deadline=deadline,
                                suppress_warning=True)
    except errors.Command.CommandError as e:
      logging.warning('Cleanup of %s failed (ignored): %s', test_case.name, e)

  def TeardownAll(self):
    """Clears cluster state left behind by a previous run, best effort."""
    for test_case in self.test_cases:
      self._Teardown(test_case)

  def _Publish(self, result):
    for publisher in self.publishers:
      publisher.PublishResult(result)

  def RunIteration(self, iteration):
    """Runs every test case once.

    Outside the dry run each result is published as soon as it exists.

    Args:
      iteration: int. Index of the iteration. Iteration 0 is the dry run.

    Returns:
      The list of results of this iteration.

    Raises:
      errors.Benchmarks.DryRunError: if a test case fails in the dry run.
    """
    results = []
    for test_case in self.test_cases:
      try:
        result = self.sequencer.Run(test_case, iteration)
      except errors.Benchmarks.PhaseError as e:
        if iteration == DRY_RUN_ITERATION:
          raise errors.Benchmarks.DryRunError(
              '%s dry-run failed: %s' % (test_case.name, e)) from e
        logging.error('%s experiment failed: %s', test_case.name, e)
        result = e.result
        if e.phase != cluster_boot.TEARDOWN:
          self._Teardown(test_case)
      if iteration != DRY_RUN_ITERATION:
        self._Publish(result)
      results.append(result)
    return results

  def Run(self):
    """Runs the teardown sweep, the dry run and all recorded iterations.

    Returns:
      The list of recorded results, in the order they were published.

    Raises:
      errors.Benchmarks.DryRunError: if the dry run failed. Nothing has been
          published in that case.
    """
    self.TeardownAll()

    recorded = []
    for iteration in range(DRY_RUN_ITERATION, self.config.iterations + 1):
      if iteration == DRY_RUN_ITERATION:
        logging.info('Starting dry-run iteration - will not record results')
        self.RunIteration(iteration)
        continue

      logging.info('STARTING ITERATION COUNT %d of %d', iteration,
                   self.config.iterations)
      recorded.extend(self.RunIteration(iteration))
    return recorded

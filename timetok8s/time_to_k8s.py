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
"""Runs time-to-k8s.

time-to-k8s measures how long local Kubernetes provisioning tools take to
bring up a usable cluster, broken into phases, and writes one CSV row per test
case and iteration.

Example:
  time-to-k8s --config=timetok8s/data/local-kubernetes.yaml --iterations=10 \
      --output=/tmp/time-to-k8s.csv
"""

import logging
import os
import tempfile

from absl import app

from timetok8s import configs
from timetok8s import errors
from timetok8s import flags
from timetok8s import iteration_runner
from timetok8s import log_util
from timetok8s import publisher
from timetok8s import run_config

FLAGS = flags.FLAGS


def _GetPublishers(config):
  """Opens the result sinks of a run."""
  csv_publisher = publisher.CSVPublisher(
      publisher.OpenCsvOutput(config.output_path, config.config_path))
  logging.info('Writing output to %s', csv_publisher.path)
  publishers = [csv_publisher]
  if config.json_path:
    publishers.append(publisher.NewlineDelimitedJSONPublisher(config.json_path))
  publishers.append(publisher.SummaryPublisher())
  return publishers


def RunBenchmarks(config, test_cases):
  """Runs all test cases and publishes their results.

  Args:
    config: run_config.RunConfig.
    test_cases: sequence of experiment.TestCase.

  Returns:
    The list of recorded experiment.ExperimentResult.
  """
  publishers = _GetPublishers(config)
  try:
    runner = iteration_runner.IterationRunner(config, test_cases, publishers)
    return runner.Run()
  finally:
    for p in publishers:
      p.Close()


def Main(argv=None):
  """Entry point run by absl.app after flags are parsed."""
  if argv and len(argv) > 1:
    raise app.UsageError('Unexpected arguments: %s' % ' '.join(argv[1:]))

  log_path = FLAGS.log_path or os.path.join(tempfile.gettempdir(),
                                            log_util.LOG_FILE_NAME)
  log_util.ConfigureLogging(
      stderr_log_level=log_util.LOG_LEVELS[FLAGS.log_level],
      log_path=log_path,
      file_log_level=log_util.LOG_LEVELS[FLAGS.file_log_level])

  try:
    config = run_config.RunConfig.FromFlags(FLAGS)
    test_cases = configs.GetTestCases(config.config_path,
                                      overrides=FLAGS.config_override,
                                      selected_names=FLAGS.test_cases)
    logging.info('Loaded test cases: %s',
                 ', '.join(tc.name for tc in test_cases))
    RunBenchmarks(config, test_cases)
  except errors.Error as e:
    logging.error('%s: %s', type(e).__name__, e)
    return 1
  return 0


def main():
  app.run(Main)


if __name__ == '__main__':
  main()

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
"""Tests for the time_to_k8s entry point."""

import logging
import os
import unittest

from absl import app
from absl.testing import flagsaver
import mock
from tests import common_test_case
from timetok8s import errors
from timetok8s import flags
from timetok8s import iteration_runner
from timetok8s import publisher
from timetok8s import time_to_k8s

FLAGS = flags.FLAGS

CONFIG = """
testcases:
  kind:
    setup: kind create cluster
    teardown: kind delete cluster
  k3d:
    setup: k3d cluster create
    teardown: k3d cluster delete
"""


class MainTestCase(common_test_case.TimeToK8sCommonTestCase):

  def setUp(self):
    super(MainTestCase, self).setUp()
    root = logging.getLogger()
    self.addCleanup(setattr, root, 'handlers', root.handlers[:])
    self.addCleanup(root.setLevel, root.level)
    self.tempdir = self.create_tempdir().full_path
    self.output = os.path.join(self.tempdir, 'out.csv')
    FLAGS.log_path = os.path.join(self.tempdir, 'timetok8s.log')
    FLAGS.output = self.output
    FLAGS.config = self.CreateConfigFile(CONFIG)

  def _ReadOutput(self):
    with open(self.output) as fp:
      return fp.read().splitlines()

  def testMissingConfig(self):
    with flagsaver.flagsaver(config=None):
      self.assertEqual(time_to_k8s.Main(['time-to-k8s']), 1)
    self.assertFalse(os.path.exists(self.output))

  def testUnexpectedArguments(self):
    with self.assertRaises(app.UsageError):
      time_to_k8s.Main(['time-to-k8s', 'extra'])

  @mock.patch.object(iteration_runner.IterationRunner, 'Run', return_value=[])
  def testRunWritesHeader(self, run):
    self.assertEqual(time_to_k8s.Main(['time-to-k8s']), 0)
    run.assert_called_once_with()
    self.assertEqual(self._ReadOutput(), [','.join(publisher.CSV_HEADER)])
    self.assertTrue(os.path.exists(FLAGS.log_path))

  def testTestCasesLoadedInNameOrder(self):
    with mock.patch.object(iteration_runner, 'IterationRunner') as runner:
      runner.return_value.Run.return_value = []
      self.assertEqual(time_to_k8s.Main(['time-to-k8s']), 0)
    config, test_cases, publishers = runner.call_args[0]
    self.assertEqual([tc.name for tc in test_cases], ['k3d', 'kind'])
    self.assertEqual(config.output_path, self.output)
    self.assertIsInstance(publishers[0], publisher.CSVPublisher)

  @flagsaver.flagsaver(
      test_cases=['kind'],
      config_override=['kind.teardown=kind delete cluster -q'])
  def testSelectionAndOverrides(self):
    with mock.patch.object(iteration_runner, 'IterationRunner') as runner:
      runner.return_value.Run.return_value = []
      time_to_k8s.Main(['time-to-k8s'])
    test_cases = runner.call_args[0][1]
    self.assertLen(test_cases, 1)
    self.assertEqual(test_cases[0].teardown, 'kind delete cluster -q')

  @mock.patch.object(iteration_runner.IterationRunner, 'Run',
                     side_effect=errors.Benchmarks.DryRunError('kind failed'))
  def testDryRunFailure(self, _):
    self.assertEqual(time_to_k8s.Main(['time-to-k8s']), 1)
    self.assertEqual(self._ReadOutput(), [','.join(publisher.CSV_HEADER)])

  def testJsonPublisherEnabled(self):
    json_path = os.path.join(self.tempdir, 'out.json')
    with flagsaver.flagsaver(json_path=json_path):
      with mock.patch.object(iteration_runner, 'IterationRunner') as runner:
        runner.return_value.Run.return_value = []
        time_to_k8s.Main(['time-to-k8s'])
    publishers = runner.call_args[0][2]
    self.assertEqual(
        [type(p) for p in publishers],
        [publisher.CSVPublisher, publisher.NewlineDelimitedJSONPublisher,
         publisher.SummaryPublisher])
    self.assertTrue(os.path.exists(json_path))


if __name__ == '__main__':
  unittest.main()

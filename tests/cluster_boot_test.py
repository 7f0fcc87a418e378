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
"""Tests for timetok8s.cluster_boot."""

import unittest

import mock

from timetok8s import cluster_boot
from timetok8s import command_util
from timetok8s import cpu_sampler
from timetok8s import errors
from timetok8s import log_util
from timetok8s import run_config
from tests import common_test_case

KIND_VERSION = 'kind v0.20.0 go1.20.4 linux/amd64'
CONTEXT = ['kubectl', '--context', 'kind-kind']


class PhaseSequencerTestCase(common_test_case.TimeToK8sCommonTestCase):

  def setUp(self):
    super(PhaseSequencerTestCase, self).setUp()
    self.config = run_config.RunConfig(
        sample_cpu=False, timeout=60, poll_interval=0.5, max_attempts=9)
    self.sequencer = cluster_boot.PhaseSequencer(self.config)
    self.test_case = common_test_case.MakeTestCase()
    self.manifests = []

    self.mock_issue = self.enter_context(
        mock.patch.object(command_util, 'IssueCommand'))
    self.mock_issue.side_effect = self._FakeIssueCommand
    self.mock_retry = self.enter_context(
        mock.patch.object(command_util, 'IssueRetryableCommand'))
    self.mock_retry.side_effect = self._FakeIssueRetryableCommand

  def _FakeIssueCommand(self, cmd, deadline=None):
    if cmd[1:] == ['version']:
      return common_test_case.MakeOutcome(
          cmd, duration=0.25, stdout=KIND_VERSION + '\nextra line\n')
    return common_test_case.MakeOutcome(cmd, duration=2.0)

  def _FakeIssueRetryableCommand(self, cmd, deadline=None, poll_interval=None,
                                 max_attempts=None):
    if 'apply' in cmd:
      with open(cmd[-1]) as fp:
        self.manifests.append(fp.read())
    return common_test_case.MakeOutcome(cmd, duration=1.0, attempts=3)

  def _RetriedCommands(self):
    return [list(c[0][0]) for c in self.mock_retry.call_args_list]

  def testRunsPhasesInOrder(self):
    self.sequencer.Run(self.test_case)

    self.assertEqual(
        [list(c[0][0]) for c in self.mock_issue.call_args_list],
        [['kind', 'version'], ['kind', 'create', 'cluster']])
    commands = self._RetriedCommands()
    self.assertEqual(commands[0], CONTEXT + ['get', 'po', '-A'])
    self.assertEqual(commands[1], CONTEXT + ['get', 'svc', 'kubernetes'])
    self.assertEqual(
        commands[2],
        CONTEXT + ['get', 'svc', 'kube-dns', '-n', 'kube-system'])
    self.assertEqual(commands[3][:-1], CONTEXT + ['apply', '-f'])
    self.assertEqual(
        commands[4],
        CONTEXT + ['exec', 'deployment/netcat', '--', 'nc', '-v', 'localhost',
                   '8080'])
    self.assertEqual(
        commands[5],
        CONTEXT + ['exec', 'deployment/netcat', '--', 'nslookup',
                   'netcat.default'])
    self.assertEqual(commands[6], ['kind', 'delete', 'cluster'])
    self.assertLen(commands, 7)

  def testRetriedCommandsUseConfiguredPolicy(self):
    self.sequencer.Run(self.test_case)
    for call in self.mock_retry.call_args_list:
      self.assertEqual(call[1]['poll_interval'], 0.5)
      self.assertEqual(call[1]['max_attempts'], 9)

  def testAllCommandsShareOneDeadline(self):
    self.sequencer.Run(self.test_case)
    calls = self.mock_issue.call_args_list + self.mock_retry.call_args_list
    deadlines = {id(c[1]['deadline']) for c in calls}
    self.assertLen(deadlines, 1)
    deadline = self.mock_issue.call_args_list[0][1]['deadline']
    self.assertEqual(deadline.timeout, 60)
    self.assertTrue(deadline.Expired())  # cancelled once the run returned

  def testZeroTimeoutMeansNoDeadline(self):
    sequencer = cluster_boot.PhaseSequencer(
        run_config.RunConfig(sample_cpu=False, timeout=0))
    sequencer.Run(self.test_case)
    self.assertIsNone(self.mock_issue.call_args_list[0][1]['deadline'].timeout)

  def testAppliesRenderedWorkloadManifest(self):
    self.sequencer.Run(self.test_case)
    self.assertLen(self.manifests, 1)
    self.assertIn('name: netcat', self.manifests[0])
    self.assertIn('containerPort: 8080', self.manifests[0])

  def testResult(self):
    result = self.sequencer.Run(self.test_case, iteration=3)

    self.assertEqual(result.name, 'kind')
    self.assertEqual(result.args, ('kind', 'create', 'cluster'))
    self.assertEqual(result.version, KIND_VERSION)
    self.assertEqual(result.iteration, 3)
    self.assertEqual(result.platform, cluster_boot.HostPlatform())
    self.assertEqual(result.exit_code, 0)
    self.assertEqual(result.error, '')
    self.assertEqual(result.startup, 2.0)
    self.assertEqual(result.api_ready, 1.0)
    self.assertEqual(result.kubernetes_svc, 1.0)
    self.assertEqual(result.dns_svc, 1.0)
    self.assertEqual(result.app_running, 2.0)
    self.assertEqual(result.dns_answering, 1.0)
    self.assertEqual(result.total, 8.0)
    self.assertEqual(result.cpu_time, 0.0)

  def testLogRecordsTaggedWithPhase(self):
    labels = []

    def _RecordLabel(cmd, **kwargs):
      labels.append(log_util.GetRunContext().label)
      return self._FakeIssueRetryableCommand(cmd, **kwargs)

    self.mock_retry.side_effect = _RecordLabel
    self.sequencer.Run(self.test_case, iteration=2)

    self.assertEqual(labels[0], 'kind#2 api_ready ')
    self.assertEqual(labels[3], 'kind#2 app_running ')
    self.assertEqual(labels[-1], 'kind#2 teardown ')
    self.assertEqual(log_util.GetRunContext().label, '')

  def testUnknownToolUsesCurrentContext(self):
    self.sequencer.Run(common_test_case.MakeTestCase(
        name='microk8s', setup='microk8s start', teardown='microk8s stop'))
    self.assertEqual(self._RetriedCommands()[0],
                     ['kubectl', 'get', 'po', '-A'])

  def testVersionFailureAborts(self):
    outcome = common_test_case.MakeOutcome(
        ['kind', 'version'], duration=0.01,
        exit_code=command_util.EXIT_CODE_NOT_FOUND)
    spawn_error = errors.Command.SpawnError('Unable to run {kind version}',
                                            outcome)
    self.mock_issue.side_effect = spawn_error

    with self.assertRaises(errors.Benchmarks.PhaseError) as cm:
      self.sequencer.Run(self.test_case)

    self.assertEqual(cm.exception.phase, cluster_boot.VERSION)
    self.assertIs(cm.exception.__cause__, spawn_error)
    result = cm.exception.result
    self.assertEqual(result.exit_code, command_util.EXIT_CODE_NOT_FOUND)
    self.assertIn('kind version', result.error)
    self.assertEqual(result.total, 0)
    self.mock_retry.assert_not_called()

  def testRetriedPhaseFailureKeepsEarlierPhases(self):
    failed_outcome = common_test_case.MakeOutcome(
        CONTEXT + ['get', 'svc', 'kubernetes'], duration=30.0, exit_code=1,
        attempts=9)
    exhausted = errors.Command.RetriesExhaustedError(
        command_util.DebugText(failed_outcome), failed_outcome)

    def _FailOnKubernetesService(cmd, **kwargs):
      if 'kubernetes' in cmd:
        raise exhausted
      return self._FakeIssueRetryableCommand(cmd, **kwargs)

    self.mock_retry.side_effect = _FailOnKubernetesService

    with self.assertRaises(errors.Benchmarks.PhaseError) as cm:
      self.sequencer.Run(self.test_case, iteration=1)

    self.assertEqual(cm.exception.phase, 'kubernetes_svc')
    self.assertIs(cm.exception.__cause__, exhausted)
    result = cm.exception.result
    self.assertEqual(result.version, KIND_VERSION)
    self.assertEqual(result.startup, 2.0)
    self.assertEqual(result.api_ready, 1.0)
    self.assertEqual(result.kubernetes_svc, 0.0)
    self.assertEqual(result.dns_svc, 0.0)
    self.assertEqual(result.app_running, 0.0)
    self.assertEqual(result.dns_answering, 0.0)
    self.assertEqual(result.exit_code, 1)
    self.assertIn('kubernetes_svc phase failed', result.error)
    self.assertIn('get svc kubernetes', result.error)
    self.assertLen(self._RetriedCommands(), 2)

  def testTeardownFailureKeepsAllPhases(self):
    def _FailOnTeardown(cmd, **kwargs):
      if cmd[0] == 'kind':
        raise common_test_case.MakeNonZeroExit(cmd)
      return self._FakeIssueRetryableCommand(cmd, **kwargs)

    self.mock_retry.side_effect = _FailOnTeardown

    with self.assertRaises(errors.Benchmarks.PhaseError) as cm:
      self.sequencer.Run(self.test_case)

    self.assertEqual(cm.exception.phase, cluster_boot.TEARDOWN)
    result = cm.exception.result
    self.assertEqual(result.total, 8.0)
    self.assertNotEqual(result.error, '')

  def testCpuTimeFromSampler(self):
    sequencer = cluster_boot.PhaseSequencer(
        run_config.RunConfig(sample_cpu=True, cpu_sample_interval=0.5))
    with mock.patch.object(cpu_sampler, 'CpuSampler') as mock_sampler_class:
      sampler = mock_sampler_class.return_value
      sampler.BusyFraction.return_value = 0.25
      result = sequencer.Run(self.test_case)

    mock_sampler_class.assert_called_once_with(0.5)
    sampler.start.assert_called_once_with()
    sampler.Stop.assert_called_once_with()
    self.assertEqual(result.cpu_time, 2.0)

  def testSamplerStoppedOnFailure(self):
    self.mock_issue.side_effect = common_test_case.MakeNonZeroExit()
    sequencer = cluster_boot.PhaseSequencer(
        run_config.RunConfig(sample_cpu=True))
    with mock.patch.object(cpu_sampler, 'CpuSampler') as mock_sampler_class:
      mock_sampler_class.return_value.BusyFraction.return_value = 0.5
      with self.assertRaises(errors.Benchmarks.PhaseError):
        sequencer.Run(self.test_case)
    mock_sampler_class.return_value.Stop.assert_called_once_with()


class PhaseSequencerDeadlineTestCase(common_test_case.TimeToK8sCommonTestCase):

  def testDeadlineFailureRecordsUnknownExitCode(self):
    # kubectl never succeeds, so api_ready polls until the deadline expires.
    sequencer = cluster_boot.PhaseSequencer(run_config.RunConfig(
        timeout=0.5, kubectl='false', sample_cpu=False))
    test_case = common_test_case.MakeTestCase(
        name='kind', setup='true', teardown='true')

    with self.assertRaises(errors.Benchmarks.PhaseError) as cm:
      sequencer.Run(test_case, iteration=1)

    self.assertEqual(cm.exception.phase, 'api_ready')
    self.assertIsInstance(cm.exception.__cause__,
                          errors.Command.DeadlineExceededError)
    result = cm.exception.result
    self.assertEqual(result.exit_code, command_util.EXIT_CODE_UNKNOWN)
    self.assertIn('api_ready phase failed', result.error)
    self.assertIn('Ran: {false get po -A}', result.error)
    self.assertEqual(result.api_ready, 0.0)


if __name__ == '__main__':
  unittest.main()

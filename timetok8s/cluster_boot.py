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
"""Runs the timed phases of bringing up one local Kubernetes cluster.

A sequence runs these phases in order, all under one deadline:

  version         <binary> version, fails fast
  startup         the setup command line, fails fast
  api_ready       kubectl get po -A, retried
  kubernetes_svc  kubectl get svc kubernetes, retried
  dns_svc         kubectl get svc kube-dns -n kube-system, retried
  app_running     kubectl apply of the netcat workload and a TCP probe through
                  kubectl exec, both retried
  dns_answering   nslookup of the workload through kubectl exec, retried
  teardown        the teardown command line, retried

Core services count as ready as soon as their service objects exist. The first
failing phase aborts the sequence.
"""

import dataclasses
import datetime
import logging
import platform

from timetok8s import command_util
from timetok8s import cpu_sampler
from timetok8s import errors
from timetok8s import experiment
from timetok8s import kubernetes_helper
from timetok8s import log_util
from timetok8s import provisioners

VERSION = 'version'
TEARDOWN = 'teardown'


def HostPlatform():
  """Returns the operating system name of the host, e.g. 'linux'."""
  return platform.system().lower()


class _PhaseTimer(object):
  """Accumulates the durations of the phases of one sequence.

  Attributes:
    durations: dict mapping phase name to accumulated seconds.
    phase: string. Name of the phase currently running.
    version: string. Tool version reported by the version probe.
  """

  def __init__(self):
    self.durations = dict.fromkeys(experiment.PHASES, 0.0)
    self.phase = VERSION
    self.version = ''

  def Enter(self, phase):
    """Starts timing phase and tags subsequent log records with it."""
    self.phase = phase
    log_util.GetRunContext().phase = phase

  def Record(self, outcome):
    if self.phase in self.durations:
      self.durations[self.phase] += outcome.duration


class PhaseSequencer(object):
  """Runs the phase sequence for a test case and times each phase.

  Attributes:
    config: run_config.RunConfig of the run.
  """

  def __init__(self, config):
    self.config = config

  def _Issue(self, timer, cmd, deadline):
    outcome = command_util.IssueCommand(cmd, deadline=deadline)
    timer.Record(outcome)
    return outcome

  def _IssueRetryable(self, timer, cmd, deadline):
    outcome = command_util.IssueRetryableCommand(
        cmd, deadline=deadline, poll_interval=self.config.poll_interval,
        max_attempts=self.config.max_attempts)
    timer.Record(outcome)
    return outcome

  def _RunPhases(self, timer, setup, teardown, kubectl, deadline):
    binary = setup[0]
    timer.Enter(VERSION)
    outcome = self._Issue(timer, [binary, 'version'], deadline)
    timer.version = outcome.stdout.split('\n')[0].strip()

    timer.Enter(experiment.STARTUP)
    self._Issue(timer, setup, deadline)

    timer.Enter(experiment.API_READY)
    self._IssueRetryable(timer, kubectl.GetPodsCommand(), deadline)

    timer.Enter(experiment.KUBERNETES_SVC)
    self._IssueRetryable(timer, kubectl.GetServiceCommand('kubernetes'),
                         deadline)

    timer.Enter(experiment.DNS_SVC)
    self._IssueRetryable(
        timer, kubectl.GetServiceCommand('kube-dns', namespace='kube-system'),
        deadline)

    timer.Enter(experiment.APP_RUNNING)
    workload = kubernetes_helper.NETCAT_CONFIG
    with kubernetes_helper.CreateRenderedManifestFile(
        kubernetes_helper.NETCAT_MANIFEST, workload) as manifest:
      self._IssueRetryable(timer, kubectl.ApplyCommand(manifest.name),
                           deadline)
    target = 'deployment/%s' % workload['name']
    self._IssueRetryable(
        timer,
        kubectl.ExecCommand(target, 'nc', '-v', 'localhost',
                            str(workload['port'])),
        deadline)

    timer.Enter(experiment.DNS_ANSWERING)
    self._IssueRetryable(
        timer,
        kubectl.ExecCommand(target, 'nslookup',
                            '%s.default' % workload['name']),
        deadline)

    timer.Enter(TEARDOWN)
    self._IssueRetryable(timer, teardown, deadline)

  def Run(self, test_case, iteration=0):
    """Runs every phase for one test case.

    Args:
      test_case: experiment.TestCase to benchmark.
      iteration: int. Index of the iteration, recorded in the result.

    Returns:
      The experiment.ExperimentResult of the completed sequence.

    Raises:
      errors.Benchmarks.PhaseError: if a phase failed. Its result holds the
          durations of the phases that completed.
    """
    setup = command_util.SplitCommandLine(test_case.setup)
    teardown = command_util.SplitCommandLine(test_case.teardown)
    kubectl = kubernetes_helper.Kubectl(
        self.config.kubectl,
        provisioners.ContextArgs(provisioners.Resolve(test_case)))

    label = '%s#%d' % (test_case.name, iteration)
    with log_util.GetRunContext().Bind(test_case.name, iteration):
      logging.info('starting %r iteration. setup args: %s, teardown args: %s, '
                   'kubectl: %s', test_case.name, setup, teardown, kubectl)
      result = experiment.ExperimentResult(
          name=test_case.name, args=tuple(setup), iteration=iteration,
          timestamp=datetime.datetime.now(), platform=HostPlatform())

      timer = _PhaseTimer()
      deadline = command_util.Deadline(self.config.timeout or None)
      sampler = None
      if self.config.sample_cpu:
        sampler = cpu_sampler.CpuSampler(self.config.cpu_sample_interval)
        sampler.start()
      failure = None
      try:
        self._RunPhases(timer, setup, teardown, kubectl, deadline)
      except errors.Command.CommandError as e:
        failure = e
      finally:
        deadline.Cancel()
        if sampler:
          sampler.Stop()

      result = dataclasses.replace(result, version=timer.version,
                                   **timer.durations)
      if sampler:
        result = dataclasses.replace(
            result, cpu_time=sampler.BusyFraction() * result.total)

      if failure is not None:
        message = '%s phase failed: %s' % (timer.phase, failure)
        result = dataclasses.replace(
            result, exit_code=failure.outcome.exit_code, error=message)
        raise errors.Benchmarks.PhaseError(
            '%s failed during %s: %s' % (label, timer.phase, failure),
            timer.phase, result) from failure

      logging.info('%s took %.3fs: %s', label, result.total,
                   ', '.join('%s=%.3fs' % item
                             for item in result.PhaseDurations().items()))
      return result

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
"""Test cases and the timing records produced for them."""

import dataclasses
import datetime
from typing import Optional, Tuple

from timetok8s import sample

# Phase names, in the order they run. Each has its own duration column.
STARTUP = 'startup'
API_READY = 'api_ready'
KUBERNETES_SVC = 'kubernetes_svc'
DNS_SVC = 'dns_svc'
APP_RUNNING = 'app_running'
DNS_ANSWERING = 'dns_answering'
PHASES = (STARTUP, API_READY, KUBERNETES_SVC, DNS_SVC, APP_RUNNING,
          DNS_ANSWERING)


@dataclasses.dataclass(frozen=True)
class TestCase:
  """One provisioning tool configuration.

  Attributes:
    name: Unique name of the test case.
    setup: Command line that creates the cluster.
    teardown: Command line that deletes the cluster.
    tool: Optional explicit tool identifier, see provisioners.Provisioner.
  """
  __test__ = False  # not a pytest test class

  name: str
  setup: str
  teardown: str
  tool: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class ExperimentResult:
  """Timing record of one test case in one iteration.

  Phase durations are in seconds and are 0.0 for phases that did not run.
  """
  name: str
  args: Tuple[str, ...] = ()
  version: str = ''
  startup: float = 0.0
  api_ready: float = 0.0
  kubernetes_svc: float = 0.0
  dns_svc: float = 0.0
  app_running: float = 0.0
  dns_answering: float = 0.0
  cpu_time: float = 0.0
  exit_code: int = 0
  error: str = ''
  timestamp: datetime.datetime = dataclasses.field(
      default_factory=datetime.datetime.now)
  iteration: int = 0
  platform: str = ''

  @property
  def total(self) -> float:
    return sum(self.PhaseDurations().values())

  @property
  def succeeded(self) -> bool:
    return not self.error

  def PhaseDurations(self):
    """Returns a dict of phase name to duration, in phase order."""
    return {phase: getattr(self, phase) for phase in PHASES}

  def GetSamples(self):
    """Converts the result into one Sample per phase plus totals."""
    metadata = {
        'name': self.name,
        'args': ' '.join(self.args),
        'iteration': self.iteration,
        'version': self.version,
        'platform': self.platform,
        'exit_code': self.exit_code,
        'error': self.error,
    }
    timestamp = self.timestamp.timestamp()
    durations = [(phase + ' Runtime', duration)
                 for phase, duration in self.PhaseDurations().items()]
    durations.append(('CPU Time', self.cpu_time))
    durations.append(('End to End Runtime', self.total))
    return [sample.DurationSample(metric, seconds, metadata, timestamp)
            for metric, seconds in durations]

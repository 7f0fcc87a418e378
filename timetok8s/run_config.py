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
"""The configuration of one benchmark run, built once from flags."""

import dataclasses
from typing import Optional

from timetok8s import flags as timetok8s_flags


@dataclasses.dataclass(frozen=True)
class RunConfig:
  """Settings shared by every test case and iteration of a run.

  Attributes:
    iterations: Number of recorded iterations. Iteration 0, the dry run, is
      always run in addition.
    config_path: Path of the YAML test case configuration.
    timeout: Seconds a single test case run may take over all of its phases.
    output_path: Path of the CSV output, or None for a temporary file.
    json_path: Path of the newline-delimited JSON output, or None.
    kubectl: Path to the kubectl binary.
    poll_interval: Seconds between attempts of retried commands.
    max_attempts: Retry ceiling of retried commands.
    sample_cpu: Whether to sample host CPU utilisation.
    cpu_sample_interval: Seconds between CPU utilisation samples.
  """
  iterations: int = 5
  config_path: Optional[str] = None
  timeout: Optional[float] = timetok8s_flags.DEFAULT_TIMEOUT
  output_path: Optional[str] = None
  json_path: Optional[str] = None
  kubectl: str = 'kubectl'
  poll_interval: float = timetok8s_flags.DEFAULT_POLL_INTERVAL
  max_attempts: int = timetok8s_flags.DEFAULT_MAX_ATTEMPTS
  sample_cpu: bool = True
  cpu_sample_interval: float = 1.0

  @classmethod
  def FromFlags(cls, flag_values):
    """Builds a RunConfig from parsed absl flag values."""
    return cls(
        iterations=flag_values.iterations,
        config_path=flag_values.config,
        timeout=flag_values.timeout,
        output_path=flag_values.output,
        json_path=flag_values.json_path,
        kubectl=flag_values.kubectl,
        poll_interval=flag_values.retry_poll_interval,
        max_attempts=flag_values.retry_max_attempts,
        sample_cpu=flag_values.sample_cpu,
        cpu_sample_interval=flag_values.cpu_sample_interval,
    )

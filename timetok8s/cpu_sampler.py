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
"""Background sampling of host CPU utilisation.

The sampler runs alongside one test case. Its owner must call Stop(), which
joins the thread, before reading BusyFraction().
"""

import logging
import threading

import psutil

from timetok8s import log_util


class CpuSampler(threading.Thread):
  """Thread that samples host-wide CPU utilisation at a fixed interval.

  Attributes:
    interval: float. Seconds between samples.
  """

  def __init__(self, interval=1.0):
    super(CpuSampler, self).__init__(name='CpuSampler', daemon=True)
    self.interval = interval
    self._stop_event = threading.Event()
    self._samples = []
    self._run_context = log_util.RunContext(log_util.GetRunContext())

  def run(self):
    log_util.SetRunContext(self._run_context)
    # The first call only establishes the reference point.
    psutil.cpu_percent(interval=None)
    while not self._stop_event.wait(self.interval):
      self._samples.append(psutil.cpu_percent(interval=None))
    # Covers the time since the last full interval.
    self._samples.append(psutil.cpu_percent(interval=None))

  def Stop(self):
    """Stops sampling and waits for the thread to exit."""
    self._stop_event.set()
    if self.is_alive():
      self.join()
    logging.debug('Collected %d CPU samples', len(self._samples))

  def BusyFraction(self):
    """Returns the average busy fraction of the host CPUs, in [0, 1].

    Raises:
      RuntimeError: if the sampler has not been stopped.
    """
    if self.is_alive():
      raise RuntimeError('CpuSampler must be stopped before it is read.')
    if not self._samples:
      return 0.0
    return sum(self._samples) / len(self._samples) / 100.0

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
"""Samples and summary statistics of phase durations."""

import statistics
from typing import Any, Dict, NamedTuple

SECONDS = 'seconds'
# Percentiles reported in the end-of-run summary.
SUMMARY_PERCENTILES = (50, 90)


class Sample(NamedTuple):
  """One measured value of one experiment result.

  Attributes:
    metric: Name of the metric, e.g. 'startup Runtime'.
    value: The measurement.
    unit: Unit of value.
    metadata: Describes the run the value was measured in.
    timestamp: Unix timestamp of the start of that run.
  """
  metric: str
  value: float
  unit: str
  metadata: Dict[str, Any]
  timestamp: float

  def asdict(self) -> Dict[str, Any]:
    return self._asdict()


def DurationSample(metric, seconds, metadata, timestamp):
  return Sample(metric, float(seconds), SECONDS, dict(metadata), timestamp)


def SummarizeDurations(durations, percentiles=SUMMARY_PERCENTILES):
  """Computes the mean, sample stddev and percentiles of some durations.

  Percentiles use the nearest rank below, so every reported value is one of
  the measured durations.

  Args:
    durations: non-empty sequence of durations in seconds.
    percentiles: sequence of percentiles in [0, 100].

  Returns:
    A dict with keys 'average', 'stddev' and 'p<percentile>' for each
    requested percentile. stddev is 0 for a single duration.

  Raises:
    ValueError: if durations is empty or a percentile is out of range.
  """
  if not durations:
    raise ValueError('No durations to summarize.')
  ordered = sorted(durations)
  summary = {
      'average': statistics.mean(ordered),
      'stddev': statistics.stdev(ordered) if len(ordered) > 1 else 0.0,
  }
  for percentile in percentiles:
    if not 0 <= percentile <= 100:
      raise ValueError('Invalid percentile %s' % percentile)
    index = min(int(len(ordered) * percentile / 100.0), len(ordered) - 1)
    summary['p%s' % percentile] = ordered[index]
  return summary

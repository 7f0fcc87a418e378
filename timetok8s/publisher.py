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

"""Classes to persist and summarize experiment results.

Every publisher receives each recorded ExperimentResult as soon as it exists.
Writes are serialized with a lock and flushed immediately, so a crash in a
later iteration never loses rows that were already published.
"""

import abc
import collections
import csv
import json
import logging
import os
import tempfile
import threading

from timetok8s import errors
from timetok8s import experiment
from timetok8s import sample

CSV_HEADER = (
    'name', 'args', 'platform', 'iteration', 'time', 'version', 'exitcode',
    'error', 'command exec (seconds)', 'apiserver answering (seconds)',
    'kubernetes svc (seconds)', 'dns svc (seconds)', 'app running (seconds)',
    'dns answering (seconds)', 'cpu time (seconds)', 'total duration (seconds)')


def FormatSeconds(seconds):
  return '%.3f' % seconds


class ResultPublisher(abc.ABC):
  """An object that can publish experiment results."""

  def __init__(self):
    self._lock = threading.Lock()

  def __enter__(self):
    return self

  def __exit__(self, *unused_args):
    self.Close()

  def PublishResult(self, result):
    """Publishes one result. Safe to call from several threads."""
    with self._lock:
      self._PublishResult(result)

  @abc.abstractmethod
  def _PublishResult(self, result):
    raise NotImplementedError()

  def Close(self):
    pass


def OpenCsvOutput(output_path, config_path):
  """Opens the CSV destination of a run.

  Args:
    output_path: string or None. Path to write to. When None, a new temporary
      file named after the config file is created.
    config_path: string. Path of the config file.

  Returns:
    A text file object opened for writing.

  Raises:
    errors.Setup.OutputError: if the destination cannot be opened.
  """
  try:
    if output_path:
      return open(output_path, 'w', newline='')
    return tempfile.NamedTemporaryFile(
        mode='w', newline='', delete=False,
        prefix=os.path.basename(config_path or 'timetok8s') + '.',
        suffix='.csv')
  except OSError as e:
    raise errors.Setup.OutputError(
        'Unable to open output file %s: %s' % (output_path, e))


class CSVPublisher(ResultPublisher):
  """Publisher which writes one CSV row per result.

  The header is written when the publisher is created.

  Attributes:
    stream: File-like object receiving the rows.
  """

  def __init__(self, stream):
    super(CSVPublisher, self).__init__()
    self.stream = stream
    self._writer = csv.writer(stream)
    self._writer.writerow(CSV_HEADER)
    self.stream.flush()

  def __repr__(self):
    return '<{0} path="{1}">'.format(type(self).__name__, self.path)

  @property
  def path(self):
    return getattr(self.stream, 'name', None)

  @staticmethod
  def FormatRow(result):
    """Returns the CSV fields of an experiment.ExperimentResult."""
    return [
        result.name,
        ' '.join(result.args),
        result.platform,
        str(result.iteration),
        result.timestamp.isoformat(sep=' '),
        result.version,
        str(result.exit_code),
        result.error,
        FormatSeconds(result.startup),
        FormatSeconds(result.api_ready),
        FormatSeconds(result.kubernetes_svc),
        FormatSeconds(result.dns_svc),
        FormatSeconds(result.app_running),
        FormatSeconds(result.dns_answering),
        FormatSeconds(result.cpu_time),
        FormatSeconds(result.total),
    ]

  def _PublishResult(self, result):
    logging.info('Updating %s ...', self.path)
    self._writer.writerow(self.FormatRow(result))
    self.stream.flush()

  def Close(self):
    if not self.stream.closed:
      self.stream.close()


class NewlineDelimitedJSONPublisher(ResultPublisher):
  """Publishes the samples of each result to a file as newline delimited JSON.

  Attributes:
    file_path: string. Destination path to write samples.
  """

  def __init__(self, file_path):
    super(NewlineDelimitedJSONPublisher, self).__init__()
    self.file_path = file_path
    try:
      self._fp = open(file_path, 'w')
    except OSError as e:
      raise errors.Setup.OutputError(
          'Unable to open JSON output file %s: %s' % (file_path, e))

  def __repr__(self):
    return '<{0} file_path="{1}">'.format(type(self).__name__, self.file_path)

  def _PublishResult(self, result):
    samples = [s.asdict() for s in result.GetSamples()]
    logging.debug('Publishing %d samples to %s', len(samples), self.file_path)
    for sample_dict in samples:
      self._fp.write(json.dumps(sample_dict) + '\n')
    self._fp.flush()

  def Close(self):
    if not self._fp.closed:
      self._fp.close()


class SummaryPublisher(ResultPublisher):
  """Logs per-phase statistics of all results when closed.

  Only successful results contribute to the statistics. Example output:

    -------------------------time-to-k8s Results Summary-------------------
    kind (3 of 3 runs succeeded):
      startup              average   21.305s  stddev   0.412s  p50 ...
      ...

  Attributes:
    stream: Optional file-like object that also receives the summary.
  """

  def __init__(self, stream=None):
    super(SummaryPublisher, self).__init__()
    self.stream = stream
    self._results = collections.OrderedDict()

  def __repr__(self):
    return '<{0} stream={1}>'.format(type(self).__name__, self.stream)

  def _PublishResult(self, result):
    self._results.setdefault(result.name, []).append(result)

  def _FormatSummary(self):
    metrics = experiment.PHASES + ('cpu_time', 'total')
    lines = ['-' * 25 + 'time-to-k8s Results Summary' + '-' * 25]
    for name, results in self._results.items():
      succeeded = [r for r in results if r.succeeded]
      lines.append('%s (%d of %d runs succeeded):' %
                   (name, len(succeeded), len(results)))
      if not succeeded:
        continue
      for metric in metrics:
        stats = sample.SummarizeDurations(
            [getattr(r, metric) for r in succeeded])
        lines.append('  %-20s average %8.3fs  stddev %7.3fs  p50 %8.3fs  '
                     'p90 %8.3fs' % (metric, stats['average'], stats['stddev'],
                                     stats['p50'], stats['p90']))
    return '\n'.join(lines)

  def Close(self):
    if not self._results:
      return
    summary = self._FormatSummary()
    logging.info('\n%s', summary)
    if self.stream is not None:
      self.stream.write(summary + '\n')
      self.stream.flush()

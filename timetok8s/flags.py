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
"""File used for the management of timetok8s flags."""

from absl import flags

FLAGS = flags.FLAGS

# Reference values for the retrying executor.
DEFAULT_POLL_INTERVAL = 0.01
DEFAULT_MAX_ATTEMPTS = 5000
DEFAULT_TIMEOUT = 6 * 60

flags.DEFINE_integer(
    'iterations',
    5,
    'How many recorded runs to execute per test case. An additional dry-run '
    'iteration, which is never recorded, always runs first.',
    lower_bound=0,
)
flags.DEFINE_string(
    'config',
    None,
    'Configuration file to load test cases from. See '
    'timetok8s/data/local-kubernetes.yaml for an example.',
)
flags.DEFINE_float(
    'timeout',
    DEFAULT_TIMEOUT,
    'Maximum time in seconds that a single test case run may take, summed '
    'over all of its phases. 0 disables the limit.',
    lower_bound=0,
)
flags.DEFINE_string(
    'output',
    None,
    'Path to write the generated CSV to. Default: a new temporary file named '
    'after the config file.',
)
flags.DEFINE_string(
    'json_path',
    None,
    'A path to additionally write newline-delimited JSON samples to.',
)
flags.DEFINE_string('kubectl', 'kubectl', 'Path to the kubectl binary.')
flags.DEFINE_float(
    'retry_poll_interval',
    DEFAULT_POLL_INTERVAL,
    'Seconds to sleep between attempts of a retried command.',
    lower_bound=0,
)
flags.DEFINE_integer(
    'retry_max_attempts',
    DEFAULT_MAX_ATTEMPTS,
    'Maximum number of attempts of a retried command before the phase fails.',
    lower_bound=1,
)
flags.DEFINE_boolean(
    'sample_cpu',
    True,
    'Whether to sample host CPU utilisation while each test case runs.',
)
flags.DEFINE_float(
    'cpu_sample_interval',
    1.0,
    'Seconds between host CPU utilisation samples.',
    lower_bound=0.01,
)
flags.DEFINE_list(
    'test_cases',
    [],
    'Names of the test cases from --config to run. Default: all of them.',
)
flags.DEFINE_multi_string(
    'config_override',
    [],
    'This flag can be repeated. Each instance of this flag overrides a '
    'single value of a test case, in the form name.key=value, e.g. '
    '--config_override=kind.setup="kind create cluster --wait 1m".',
)
flags.DEFINE_string(
    'log_path',
    None,
    'Path of the verbose log file. Default: timetok8s.log in the system '
    'temporary directory.',
)

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
"""Files bundled with timetok8s.

The directory holds the workload manifest template applied during the
app_running phase and an example test case configuration.
"""

import os

DATA_DIR = os.path.dirname(os.path.abspath(__file__))


class ResourceNotFound(ValueError):
  """Error raised when a bundled resource does not exist."""
  pass


def ResourcePath(resource_name):
  """Returns the path of a bundled resource.

  Raises:
    ResourceNotFound: if no file of that name is bundled.
  """
  path = os.path.join(DATA_DIR, resource_name)
  if not os.path.isfile(path):
    raise ResourceNotFound('%s (searched %s)' % (resource_name, DATA_DIR))
  return path

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
"""Local Kubernetes provisioning tools and their kubectl contexts.

Every supported tool writes a kubeconfig context of a fixed name. The context
flags are prefixed to every kubectl command issued against a test case's
cluster so that clusters of different tools never get confused.
"""

import enum
import logging
import os
from typing import Optional, Tuple

from timetok8s import command_util
from timetok8s import errors


class Provisioner(enum.Enum):
  """Supported cluster provisioning tools, valued by their identifier."""
  KIND = 'kind'
  MINIKUBE = 'minikube'
  K3D = 'k3d'

  @property
  def context_args(self) -> Tuple[str, ...]:
    return _CONTEXT_ARGS[self]


_CONTEXT_ARGS = {
    Provisioner.KIND: ('--context', 'kind-kind'),
    Provisioner.MINIKUBE: ('--context', 'minikube'),
    Provisioner.K3D: ('--context', 'k3d-k3s-default'),
}


def FromName(name: str) -> Provisioner:
  """Returns the Provisioner for an explicitly configured identifier."""
  try:
    return Provisioner(name.lower())
  except ValueError:
    raise errors.Config.InvalidValue(
        'Unknown tool %r. Valid tools are: %s' %
        (name, ', '.join(p.value for p in Provisioner))) from None


def Detect(binary: str) -> Optional[Provisioner]:
  """Detects the tool from the name of the setup binary.

  Args:
    binary: Path or name of the binary that creates the cluster.

  Returns:
    The Provisioner whose identifier is contained in the binary's base name, or
    None if no identifier is.

  Raises:
    errors.Config.InvalidValue: if more than one identifier matches.
  """
  base_name = os.path.basename(binary)
  matches = [p for p in Provisioner if p.value in base_name]
  if len(matches) > 1:
    raise errors.Config.InvalidValue(
        'Binary %r matches several tools (%s); set "tool" explicitly.' %
        (binary, ', '.join(p.value for p in matches)))
  return matches[0] if matches else None


def Resolve(test_case) -> Optional[Provisioner]:
  """Resolves the provisioning tool of a test case once.

  An explicit tool in the config wins over detection from the setup binary.

  Args:
    test_case: experiment.TestCase.

  Returns:
    The Provisioner, or None when the tool is unknown and kubectl should use
    its current context.
  """
  if test_case.tool:
    return FromName(test_case.tool)
  binary = command_util.SplitCommandLine(test_case.setup)[0]
  provisioner = Detect(binary)
  if provisioner is None:
    logging.warning('No known tool found in %r, kubectl will use the current '
                    'context for %s.', binary, test_case.name)
  return provisioner


def ContextArgs(provisioner: Optional[Provisioner]) -> Tuple[str, ...]:
  """Returns the kubectl flags that select the cluster of a provisioner."""
  if provisioner is None:
    return ()
  return provisioner.context_args

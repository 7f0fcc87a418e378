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
"""Builds the kubectl commands that probe a freshly provisioned cluster."""

import tempfile

import jinja2

from timetok8s import data

NETCAT_MANIFEST = 'netcat-svc.yaml.j2'
NETCAT_CONFIG = {
    'name': 'netcat',
    'image': 'busybox:1.36',
    'port': 8080,
}


class Kubectl(object):
  """Creates kubectl argument vectors bound to one cluster context.

  Attributes:
    kubectl: string. Path to the kubectl binary.
    context_args: tuple of strings prefixed to every command, see
        provisioners.ContextArgs.
  """

  def __init__(self, kubectl='kubectl', context_args=()):
    self.kubectl = kubectl
    self.context_args = tuple(context_args)

  def __repr__(self):
    return '<{0} {1} {2}>'.format(type(self).__name__, self.kubectl,
                                  ' '.join(self.context_args))

  def Command(self, *args):
    return [self.kubectl] + list(self.context_args) + list(args)

  def GetPodsCommand(self):
    return self.Command('get', 'po', '-A')

  def GetServiceCommand(self, name, namespace=None):
    cmd = self.Command('get', 'svc', name)
    if namespace:
      cmd.extend(['-n', namespace])
    return cmd

  def ApplyCommand(self, manifest_path):
    return self.Command('apply', '-f', manifest_path)

  def ExecCommand(self, target, *args):
    return self.Command('exec', target, '--', *args)


def CreateRenderedManifestFile(filename, config):
  """Returns a file containing a rendered Jinja manifest (.j2) template.

  The file is deleted when it is closed.
  """
  manifest_filename = data.ResourcePath(filename)
  environment = jinja2.Environment(undefined=jinja2.StrictUndefined)
  with open(manifest_filename) as manifest_file:
    manifest_template = environment.from_string(manifest_file.read())
  rendered_yaml = tempfile.NamedTemporaryFile(
      mode='w', prefix='timetok8s-', suffix='.yaml')
  rendered_yaml.write(manifest_template.render(config))
  rendered_yaml.flush()
  return rendered_yaml

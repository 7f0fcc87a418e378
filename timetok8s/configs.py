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
"""Configuration files for time-to-k8s.

The configuration is written in YAML (www.yaml.org) and names the test cases
to benchmark. Each test case gives the command line that creates a local
cluster and the command line that deletes it:

testcases:
  kind:
    setup: kind create cluster
    teardown: kind delete cluster
  minikube:
    setup: minikube start --wait=false
    teardown: minikube delete
    tool: minikube

The optional tool key names the provisioning tool explicitly; without it the
tool is detected from the setup binary's name.

Values may be overridden from the command line with
--config_override=<test case>.<key>=<value>, e.g.
--config_override=kind.setup="kind create cluster --image kindest/node:v1.29.2"
"""

import copy
import logging

import yaml

from timetok8s import errors
from timetok8s import experiment

TEST_CASES_KEYS = ('testcases', 'test_cases')
_REQUIRED_KEYS = frozenset(['setup', 'teardown'])
_VALID_KEYS = _REQUIRED_KEYS | frozenset(['tool'])


def MergeConfigs(default_config, override_config, warn_new_key=False):
  """Merges the override config into the default config.

  This function will recursively merge two nested dicts.
  The override_config represents overrides to the default_config dict, so any
  leaf key/value pairs which are present in both dicts will take their value
  from the override_config.

  Args:
    default_config: The dict which will have its values overridden.
    override_config: The dict wich contains the overrides.
    warn_new_key: Determines whether we warn the user if the override config
      has a key that the default config did not have.

  Returns:
    A dict containing the values from the default_config merged with those from
    the override_config.
  """
  def _Merge(d1, d2):
    merged_dict = copy.deepcopy(d1)
    for k, v in d2.items():
      if k not in d1:
        merged_dict[k] = copy.deepcopy(v)
        if warn_new_key:
          logging.warning('The key "%s" was not in the default config, '
                          'but was in user overrides. This may indicate '
                          'a typo.', k)
      elif isinstance(d1[k], dict) and isinstance(v, dict):
        merged_dict[k] = _Merge(d1[k], v)
      else:
        merged_dict[k] = v
    return merged_dict

  if override_config:
    return _Merge(default_config, override_config)
  else:
    return default_config


def _GetConfigFromOverrides(overrides):
  """Converts a list of overrides into a test case config."""
  config = {}

  for override in overrides:
    full_key, sep, value = override.partition('=')
    if not sep:
      raise errors.Config.InvalidValue(
          '--config_override flag value %r has no "=" character. The value '
          'must take the form name.key=value.' % override)
    keys = full_key.split('.')
    if len(keys) != 2 or not all(keys):
      raise errors.Config.InvalidValue(
          '--config_override key %r must take the form name.key.' % full_key)
    name, key = keys
    try:
      parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as e:
      raise errors.Config.ParseError(
          'Unable to parse --config_override value %r: %s' % (value, e))
    config = MergeConfigs(config, {name: {key: parsed_value}})

  return config


def LoadTestCaseConfig(path):
  """Reads the raw test case mapping from a YAML file.

  Args:
    path: string. Path of the config file.

  Returns:
    dict mapping test case name to a dict of its options.

  Raises:
    errors.Setup.MissingConfigError: if the file cannot be read.
    errors.Config.ParseError: if the file is not valid YAML or does not hold
        a test case mapping.
  """
  try:
    with open(path) as fp:
      config = yaml.safe_load(fp)
  except OSError as e:
    raise errors.Setup.MissingConfigError(
        'Unable to read config %s: %s' % (path, e))
  except yaml.YAMLError as e:
    raise errors.Config.ParseError(
        'Encountered a problem loading config. Please ensure that the config '
        'is valid YAML. Error received:\n%s' % e)

  if not isinstance(config, dict):
    raise errors.Config.ParseError(
        'Config %s must be a mapping with a "testcases" key.' % path)
  for key in TEST_CASES_KEYS:
    if key in config:
      test_cases = config[key] or {}
      break
  else:
    raise errors.Config.ParseError(
        'Config %s has no "testcases" key. Found: %s' %
        (path, ', '.join(sorted(str(k) for k in config))))
  if not isinstance(test_cases, dict):
    raise errors.Config.ParseError(
        '"testcases" in %s must map test case names to their options.' % path)
  return test_cases


def _BuildTestCase(name, options):
  if not isinstance(options, dict):
    raise errors.Config.InvalidValue(
        'Test case %s must be a mapping, got %r.' % (name, options))
  unrecognized = set(options) - _VALID_KEYS
  if unrecognized:
    raise errors.Config.UnrecognizedOption(
        'Unrecognized options for test case %s: %s. Valid options are: %s' %
        (name, ', '.join(sorted(unrecognized)), ', '.join(sorted(_VALID_KEYS))))
  missing = [key for key in sorted(_REQUIRED_KEYS) if not options.get(key)]
  if missing:
    raise errors.Config.MissingOption(
        'Test case %s is missing: %s' % (name, ', '.join(missing)))
  tool = options.get('tool')
  return experiment.TestCase(
      name=str(name),
      setup=str(options['setup']),
      teardown=str(options['teardown']),
      tool=str(tool) if tool else None)


def GetTestCases(path, overrides=(), selected_names=()):
  """Loads the test cases of a run.

  Args:
    path: string. Path of the YAML config file.
    overrides: sequence of name.key=value strings from --config_override.
    selected_names: optional sequence of test case names to keep.

  Returns:
    A tuple of experiment.TestCase ordered by name.

  Raises:
    errors.Setup.MissingConfigError: if no path was given or it is unreadable.
    errors.Config.InvalidValue, MissingOption, ParseError or
        UnrecognizedOption: if the config is invalid.
  """
  if not path:
    raise errors.Setup.MissingConfigError(
        '--config is a required flag. See '
        'timetok8s/data/local-kubernetes.yaml, for example.')
  config = LoadTestCaseConfig(path)
  config = MergeConfigs(config, _GetConfigFromOverrides(overrides),
                        warn_new_key=True)

  test_cases = tuple(
      _BuildTestCase(name, config[name]) for name in sorted(config, key=str))
  if selected_names:
    known = {tc.name for tc in test_cases}
    unknown = sorted(set(selected_names) - known)
    if unknown:
      raise errors.Config.InvalidValue(
          'Unknown test cases: %s. Known test cases: %s' %
          (', '.join(unknown), ', '.join(sorted(known))))
    test_cases = tuple(tc for tc in test_cases if tc.name in selected_names)
  if not test_cases:
    raise errors.Config.InvalidValue('Config %s has no test cases.' % path)
  return test_cases

# Copyright 2025 Katteli Inc.
# TestFlows.com Open-Source Software Testing Framework (http://testflows.com)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
import os
import re
import yaml
import logging
import logging.config

from argparse import ArgumentTypeError
from dataclasses import dataclass, field, fields, replace

import testflows.ec2.runner.args as args

from ..constants import default_runner_version
from ..errors import ConfigError

# add support for parsing ${ENV_VAR} in config
env_pattern = re.compile(r".*?\${(.*?)}.*?")


def env_constructor(loader, node):
    value = loader.construct_scalar(node)
    for group in env_pattern.findall(value):
        value = value.replace(f"${{{group}}}", os.environ.get(group, f"${{{group}}}"))
    return value


yaml.add_implicit_resolver("!path", env_pattern, None, yaml.SafeLoader)
yaml.add_constructor("!path", env_constructor, yaml.SafeLoader)


mode = args.mode_type
count = args.count_type
repository = args.repository_type
ec2_params = args.ec2_params_type
tags = args.tags_type


def text(v):
    return v


def switch(v):
    return v.strip().lower() in ("true", "yes", "on", "1")


#: action inputs as (attribute, input name, type)
action_inputs = [
    ("mode", "mode", mode),
    ("github_token", "github-token", text),
    ("github_repository", "github-repository", repository),
    ("aws_region", "aws-region", text),
    ("ec2_image_id", "ec2-image-id", text),
    ("ec2_instance_type", "ec2-instance-type", text),
    ("subnet_id", "subnet-id", text),
    ("security_group_id", "security-group-id", text),
    ("iam_role_name", "iam-role-name", text),
    ("key_name", "key-name", text),
    ("storage_path", "storage-path", text),
    ("storage_size", "storage-size", count),
    ("aws_resource_tags", "aws-resource-tags", tags),
    ("ec2_params", "ec2-params", ec2_params),
    ("runner_home_dir", "runner-home-dir", text),
    ("pre_runner_script", "pre-runner-script", text),
    ("runner_version", "runner-version", text),
    ("label", "label", text),
    ("ec2_instance_id", "ec2-instance-id", text),
    ("max_instance_ready_time", "max-instance-ready-time", count),
    ("max_runner_registration_time", "max-runner-registration-time", count),
    (
        "runner_registration_retry_interval",
        "runner-registration-retry-interval",
        count,
    ),
    (
        "runner_registration_quiet_period",
        "runner-registration-quiet-period",
        count,
    ),
    ("debug", "debug", switch),
]

#: environment variables used when action input is not set
fallback_variables = {
    "github_token": ["GITHUB_TOKEN"],
    "github_repository": ["GITHUB_REPOSITORY"],
    "aws_region": ["AWS_REGION", "AWS_DEFAULT_REGION"],
}


@dataclass(frozen=True)
class Config:
    """Program configuration class."""

    mode: str = None
    github_token: str = None
    github_repository: str = None
    aws_region: str = None
    ec2_image_id: str = None
    ec2_instance_type: str = None
    subnet_id: str = None
    security_group_id: str = None
    iam_role_name: str = None
    key_name: str = None
    storage_path: str = None
    storage_size: int = None
    aws_resource_tags: list[dict] = field(default_factory=list)
    ec2_params: dict = None
    runner_home_dir: str = None
    pre_runner_script: str = ""
    runner_version: str = default_runner_version
    label: str = None
    ec2_instance_id: str = None
    max_instance_ready_time: int = 300
    max_runner_registration_time: int = 300
    runner_registration_retry_interval: int = 10
    runner_registration_quiet_period: int = 30
    debug: bool = False
    # special
    logger_config: dict = None
    config_file: str = None

    @property
    def tag_specifications(self):
        """Instance and volume tag specifications or None if
        no tags are defined."""
        if not self.aws_resource_tags:
            return None
        return [
            {"ResourceType": "instance", "Tags": self.aws_resource_tags},
            {"ResourceType": "volume", "Tags": self.aws_resource_tags},
        ]

    @classmethod
    def from_environment(cls, environ=None):
        """Create configuration from GitHub Action inputs
        passed as INPUT_<NAME> environment variables."""
        if environ is None:
            environ = os.environ

        values = {}

        for attr, name, type in action_inputs:
            value = environ.get(f"INPUT_{name.upper()}", "").strip()

            if not value:
                for variable in fallback_variables.get(attr, []):
                    value = environ.get(variable, "").strip()
                    if value:
                        break

            if not value:
                continue

            try:
                values[attr] = type(value)
            except ArgumentTypeError as e:
                raise ConfigError(f"input '{name}' is invalid: {e}")

        return cls(**values)

    def update(self, args):
        """Return new configuration updated using command line arguments."""
        changes = {}

        for f in fields(self):
            if f.name in ["config_file", "logger_config"]:
                continue

            arg_value = getattr(args, f.name, None)

            if arg_value is not None:
                changes[f.name] = arg_value

        return replace(self, **changes)

    def check(self):
        """Check mandatory configuration parameters for the selected mode."""

        if not self.mode:
            raise ConfigError("the 'mode' input is not specified")

        if self.mode not in args.modes:
            raise ConfigError("wrong mode, allowed values: start, stop")

        if not self.github_token:
            raise ConfigError("the 'github-token' input is not specified")

        if not self.github_repository:
            raise ConfigError("the 'github-repository' input is not specified")

        if self.mode == "start":
            if not self.ec2_params and not (
                self.ec2_image_id
                and self.ec2_instance_type
                and self.subnet_id
                and self.security_group_id
            ):
                raise ConfigError(
                    "not all the required inputs are provided for the 'start' mode"
                )

        elif self.mode == "stop":
            if not self.label or not self.ec2_instance_id:
                raise ConfigError(
                    "not all the required inputs are provided for the 'stop' mode"
                )


def read(path: str):
    """Load raw configuration document."""
    with open(path, "r") as f:
        return yaml.load(f, Loader=yaml.SafeLoader)


def parse_config(filename: str):
    """Load and parse yaml configuration file into
    a dictionary of configuration values.

    Does not check that mandatory values for the mode are defined.
    """
    doc = read(filename)

    if not isinstance(doc, dict) or doc.get("config") is None:
        assert False, "config: entry is missing"

    doc = doc["config"]
    names = [f.name for f in fields(Config)]

    for name in doc:
        assert name in names, f"config.{name}: unknown option"

    for name in (
        "github_token",
        "aws_region",
        "ec2_image_id",
        "ec2_instance_type",
        "subnet_id",
        "security_group_id",
        "iam_role_name",
        "key_name",
        "storage_path",
        "runner_home_dir",
        "pre_runner_script",
        "runner_version",
        "label",
        "ec2_instance_id",
    ):
        if doc.get(name) is not None:
            assert isinstance(doc[name], str), f"config.{name}: not a string"

    if doc.get("mode") is not None:
        try:
            doc["mode"] = mode(doc["mode"])
        except ArgumentTypeError as e:
            assert False, f"config.mode: {e}"

    if doc.get("github_repository") is not None:
        try:
            doc["github_repository"] = repository(doc["github_repository"])
        except ArgumentTypeError as e:
            assert False, f"config.github_repository: {e}"

    for name in (
        "storage_size",
        "max_instance_ready_time",
        "max_runner_registration_time",
        "runner_registration_retry_interval",
        "runner_registration_quiet_period",
    ):
        if doc.get(name) is not None:
            v = doc[name]
            assert (
                isinstance(v, int) and v > 0
            ), f"config.{name}: is not an integer > 0"

    if doc.get("aws_resource_tags") is not None:
        v = doc["aws_resource_tags"]
        assert isinstance(v, list), "config.aws_resource_tags: is not a list"
        for i, tag in enumerate(v):
            assert isinstance(tag, dict) and set(tag) == {
                "Key",
                "Value",
            }, f"config.aws_resource_tags[{i}]: must have Key and Value"

    if doc.get("ec2_params") is not None:
        assert isinstance(
            doc["ec2_params"], dict
        ), "config.ec2_params: is not a dictionary"

    if doc.get("debug") is not None:
        assert isinstance(doc["debug"], bool), "config.debug: not a boolean"

    if doc.get("logger_config") is not None:
        try:
            logging.config.dictConfig(doc["logger_config"])
        except Exception as e:
            assert False, f"config.logger_config: {e}"

    if doc.get("config_file") is not None:
        assert False, "config.config_file: should not be defined"

    doc["config_file"] = filename

    return doc

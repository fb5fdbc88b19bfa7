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
import logging
import argparse

from dataclasses import replace

from . import __version__
from .actions import Action
from .args import (
    mode_type,
    count_type,
    repository_type,
    ec2_params_type,
    tags_type,
    config_type,
)
from .config import Config
from .lifecycle import run
from .logger import configure, logger
from .workflow import set_failed

description = """On-demand self-hosted GitHub Actions runner on AWS EC2.

In 'start' mode, launches a new EC2 instance that registers itself
as a self-hosted runner with a unique label and waits for the runner
to come online. The label and the instance id are set as step outputs.

In 'stop' mode, terminates the instance and removes the runner.

Each option can also be passed as INPUT_<NAME> environment variable.
"""


def argparser():
    """Command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="ec2-runner",
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--mode",
        metavar="{start,stop}",
        type=mode_type,
        help="start or stop the runner, default: $INPUT_MODE",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="path",
        type=config_type,
        help="configuration file in YAML format",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="enable debugging mode",
    )

    github_group = parser.add_argument_group("GitHub options")

    github_group.add_argument(
        "--github-token",
        metavar="token",
        type=str,
        help="GitHub token with repository administration permission, "
        "default: $GITHUB_TOKEN environment variable",
    )

    github_group.add_argument(
        "--github-repository",
        metavar="owner/repo",
        type=repository_type,
        help="GitHub repository, default: $GITHUB_REPOSITORY environment variable",
    )

    start_group = parser.add_argument_group("start mode options")

    start_group.add_argument(
        "--aws-region",
        metavar="region",
        type=str,
        help="AWS region, default: $AWS_REGION or $AWS_DEFAULT_REGION environment variable",
    )

    start_group.add_argument(
        "--ec2-image-id", metavar="ami-id", type=str, help="EC2 image id (AMI)"
    )

    start_group.add_argument(
        "--ec2-instance-type",
        metavar="type",
        type=str,
        help="EC2 instance type, for example: t3.medium",
    )

    start_group.add_argument(
        "--subnet-id", metavar="subnet-id", type=str, help="VPC subnet id"
    )

    start_group.add_argument(
        "--security-group-id",
        metavar="sg-id",
        type=str,
        help="EC2 security group id",
    )

    start_group.add_argument(
        "--iam-role-name",
        metavar="name",
        type=str,
        help="IAM role name to attach to the instance",
    )

    start_group.add_argument(
        "--key-name", metavar="keypair", type=str, help="EC2 key pair name"
    )

    start_group.add_argument(
        "--storage-path",
        metavar="device",
        type=str,
        help="root device name, for example: /dev/sda1",
    )

    start_group.add_argument(
        "--storage-size",
        metavar="GB",
        type=count_type,
        help="root volume size in GB",
    )

    start_group.add_argument(
        "--aws-resource-tags",
        metavar="tags",
        type=tags_type,
        help='tags for the instance and its volumes, for example: [{"Key": "Name", "Value": "runner"}]',
    )

    start_group.add_argument(
        "--ec2-params",
        metavar="params",
        type=ec2_params_type,
        help="raw EC2 RunInstances parameters used instead of the options above, "
        "${label} and ${githubRegistrationToken} in UserData are substituted",
    )

    start_group.add_argument(
        "--runner-home-dir",
        metavar="path",
        type=str,
        help="directory with pre-installed actions runner in the image",
    )

    start_group.add_argument(
        "--pre-runner-script",
        metavar="script",
        type=str,
        help="script to run before the runner is configured",
    )

    start_group.add_argument(
        "--runner-version",
        metavar="version",
        type=str,
        help="actions runner version to install when runner home directory is not specified",
    )

    start_group.add_argument(
        "--max-instance-ready-time",
        metavar="sec",
        type=count_type,
        help="maximum time to wait for the instance to be running, default: 300",
    )

    start_group.add_argument(
        "--max-runner-registration-time",
        metavar="sec",
        type=count_type,
        help="maximum time to wait for the runner to be registered, default: 300",
    )

    start_group.add_argument(
        "--runner-registration-retry-interval",
        metavar="sec",
        type=count_type,
        help="interval between runner registration checks, default: 10",
    )

    start_group.add_argument(
        "--runner-registration-quiet-period",
        metavar="sec",
        type=count_type,
        help="time to wait before the first runner registration check, default: 30",
    )

    stop_group = parser.add_argument_group("stop mode options")

    stop_group.add_argument(
        "--label",
        metavar="label",
        type=str,
        help="runner label returned by the 'start' mode",
    )

    stop_group.add_argument(
        "--ec2-instance-id",
        metavar="id",
        type=str,
        help="EC2 instance id returned by the 'start' mode",
    )

    return parser


def main(argv=None):
    """Program entry point. Returns process exit code."""
    args = argparser().parse_args(argv)

    try:
        config = Config.from_environment()

        if args.config is not None:
            config = replace(config, **args.config)

        config = config.update(args)

        Action.debug = config.debug
        configure(config, level=logging.DEBUG if config.debug else logging.INFO)

    except Exception as exc:
        configure(Config())
        logger.error(f"❌ Error: {type(exc).__name__} {exc}")
        set_failed(str(exc))
        return 1

    try:
        run(config)
    except Exception as exc:
        set_failed(str(exc))
        return 1

    return 0

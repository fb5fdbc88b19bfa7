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
import random

from .actions import Action
from .config import Config
from .constants import label_alphabet, label_length
from .instance import ec2_client, launch, wait_running, terminate
from .runner import login, get_registration_token, remove_runner, wait_registered
from .workflow import set_output


def generate_label():
    """Generate unique runner label."""
    return "".join(random.choice(label_alphabet) for _ in range(label_length))


def set_outputs(label: str, instance_id: str):
    """Set label and instance id step outputs."""
    with Action("Setting outputs", label=label, instance_id=instance_id):
        set_output("label", label)
        set_output("ec2-instance-id", instance_id)


def start(config: Config):
    """Start EC2 instance and wait for its self-hosted runner
    to be registered.

    Outputs are set right after the instance is launched
    so that the instance can be stopped even if it never
    becomes ready.
    """
    client = ec2_client(config)
    label = generate_label()

    token = get_registration_token(config)
    instance_id = launch(client, config, label=label, token=token)
    set_outputs(label=label, instance_id=instance_id)

    wait_running(client, instance_id, timeout=config.max_instance_ready_time)

    repo = login(config)
    wait_registered(
        repo,
        label=label,
        timeout=config.max_runner_registration_time,
        retry_interval=config.runner_registration_retry_interval,
        quiet_period=config.runner_registration_quiet_period,
    )

    return label, instance_id


def stop(config: Config):
    """Terminate EC2 instance and remove its self-hosted runner."""
    client = ec2_client(config)
    terminate(client, config.ec2_instance_id)

    repo = login(config)
    remove_runner(config, repo, label=config.label)


def run(config: Config):
    """Run the selected mode."""
    with Action("Checking configuration"):
        config.check()

    if config.mode == "start":
        start(config)
    else:
        stop(config)

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
import copy
import math
import boto3

from dataclasses import dataclass

from botocore.exceptions import WaiterError

from .actions import Action
from .config import Config
from .constants import instance_states, terminating_states, instance_running_delay
from .errors import NoInstanceIdError, InstanceStateError, UnexpectedStateError
from .scripts import user_data_script, substitute


@dataclass
class Launched:
    """Launch request returned an instance id."""

    instance_id: str


@dataclass
class NoInstanceId:
    """Launch request succeeded but returned no instance id."""

    response: dict


def ec2_client(config: Config):
    """Create EC2 client."""
    with Action(f"Creating AWS EC2 client for region {config.aws_region or 'default'}"):
        if config.aws_region:
            return boto3.client("ec2", region_name=config.aws_region)
        return boto3.client("ec2")


def launch_params(config: Config, label: str, token: str):
    """Build RunInstances request parameters.

    Custom ec2 params are used as is except for the UserData
    which is always set to the user data script. The script is passed
    as plain text, botocore base64 encodes it for the RunInstances call.
    """
    if config.ec2_params:
        params = copy.deepcopy(config.ec2_params)
        script = params.get("UserData")
        if script:
            script = substitute(script, label=label, token=token)
        else:
            script = user_data_script(config, label=label, token=token)
        params["UserData"] = script
        params.setdefault("MinCount", 1)
        params.setdefault("MaxCount", 1)
        return params

    params = {
        "ImageId": config.ec2_image_id,
        "InstanceType": config.ec2_instance_type,
        "MinCount": 1,
        "MaxCount": 1,
        "UserData": user_data_script(config, label=label, token=token),
        "SubnetId": config.subnet_id,
        "SecurityGroupIds": [config.security_group_id],
    }

    if config.iam_role_name:
        params["IamInstanceProfile"] = {"Name": config.iam_role_name}

    if config.tag_specifications:
        params["TagSpecifications"] = config.tag_specifications

    if config.key_name:
        params["KeyName"] = config.key_name

    if config.storage_path and config.storage_size:
        params["BlockDeviceMappings"] = [
            {
                "DeviceName": config.storage_path,
                "Ebs": {
                    "DeleteOnTermination": True,
                    "VolumeSize": int(config.storage_size),
                },
            }
        ]

    return params


def launch_result(response: dict):
    """Return Launched or NoInstanceId for RunInstances response."""
    instances = response.get("Instances") or []
    instance_id = instances[0].get("InstanceId") if instances else None
    if instance_id:
        return Launched(instance_id=instance_id)
    return NoInstanceId(response=response)


def launch(client, config: Config, label: str, token: str):
    """Launch new EC2 instance and return its id."""
    params = launch_params(config, label=label, token=token)

    with Action("Starting AWS EC2 instance", label=label) as action:
        result = launch_result(client.run_instances(**params))

        if isinstance(result, NoInstanceId):
            raise NoInstanceIdError(result.response)

        action.note(f"AWS EC2 instance {result.instance_id} is started")

    return result.instance_id


def observed_state(response: dict):
    """Return instance state name from DescribeInstances response."""
    try:
        return response["Reservations"][0]["Instances"][0]["State"]["Name"]
    except (KeyError, IndexError, TypeError):
        return "unknown"


def wait_running(client, instance_id: str, timeout: int = 300):
    """Wait for instance to be running."""
    delay = instance_running_delay
    max_attempts = max(1, math.ceil(timeout / delay))

    with Action(
        f"Waiting for AWS EC2 instance {instance_id} to be running",
        instance_id=instance_id,
    ) as action:
        waiter = client.get_waiter("instance_running")
        try:
            waiter.wait(
                InstanceIds=[instance_id],
                WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts},
            )
        except WaiterError as e:
            raise InstanceStateError(
                instance_id,
                state=observed_state(e.last_response),
                reason=e.kwargs.get("reason"),
            ) from e

        action.note(f"AWS EC2 instance {instance_id} is up and running")


def state_name(code):
    """Return instance state name for the state code.
    Only the low byte of the code is significant."""
    if not isinstance(code, int):
        return None
    return instance_states.get(code & 0xFF)


def terminate(client, instance_id: str):
    """Terminate instance and return its current state name."""
    with Action(
        f"Terminating AWS EC2 instance {instance_id}", instance_id=instance_id
    ) as action:
        response = client.terminate_instances(InstanceIds=[instance_id])

        try:
            code = response["TerminatingInstances"][0]["CurrentState"]["Code"]
        except (KeyError, IndexError, TypeError):
            code = None

        state = state_name(code)

        if state not in terminating_states:
            raise UnexpectedStateError(instance_id, code=code)

        action.note(f"AWS EC2 instance {instance_id} is {state}")

    return state

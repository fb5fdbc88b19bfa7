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
"""
Exception classes for EC2 runner.
"""


class ConfigError(Exception):
    pass


class NoInstanceIdError(Exception):
    """Exception to indicate that launch request succeeded
    but the response did not contain an instance id."""

    def __init__(self, response):
        self.response = response
        super().__init__(f"no ec2 instance id returned in {response}")


class InstanceStateError(Exception):
    """Exception to indicate that instance did not reach
    the running state."""

    def __init__(self, instance_id: str, state: str, reason: str = None):
        self.instance_id = instance_id
        self.state = state
        message = f"instance {instance_id} is in state '{state}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class UnexpectedStateError(Exception):
    """Exception to indicate that provider returned
    an unrecognized instance state."""

    def __init__(self, instance_id: str, code):
        self.instance_id = instance_id
        self.code = code
        super().__init__(
            f"unexpected state code {code} returned for instance {instance_id}"
        )


class RegistrationTimeoutError(TimeoutError):
    """Exception to indicate that runner did not register in time."""

    def __init__(self, timeout: int):
        self.timeout = timeout
        super().__init__(
            f"A timeout of {timeout / 60:g} minutes is exceeded. "
            "Your AWS EC2 instance was not able to register itself "
            "in GitHub as a new self-hosted runner."
        )


class RunnerRemovalError(Exception):
    """Exception to indicate that runner deletion was not acknowledged."""

    def __init__(self, name: str, id: int, status):
        self.name = name
        self.id = id
        self.status = status
        super().__init__(
            f"removal of runner {name} ({id}) returned status {status}, "
            "expected 204 No Content"
        )

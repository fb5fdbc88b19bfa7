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

# GitHub web and REST API
github_url = "https://github.com"
github_api_url = "https://api.github.com"
github_api_version = "2022-11-28"

# Runner label is a random token of this length
label_length = 5
label_alphabet = "0123456789abcdefghijklmnopqrstuvwxyz"

# Placeholders recognized inside custom ec2-params UserData
label_placeholder = "${label}"
token_placeholder = "${githubRegistrationToken}"

# Default actions runner release installed by the bootstrap script
default_runner_version = "2.313.0"

# EC2 instance state codes (low byte of State.Code)
instance_states = {
    0: "pending",
    16: "running",
    32: "shutting-down",
    48: "terminated",
    64: "stopping",
    80: "stopped",
}
# States accepted as a successful response to terminate request
terminating_states = ("shutting-down", "terminated", "stopping", "stopped")

# Delay between instance_running waiter checks in seconds
instance_running_delay = 15

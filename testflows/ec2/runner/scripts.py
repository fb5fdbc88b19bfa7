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
from .config import Config
from .constants import github_url, label_placeholder, token_placeholder

pre_runner_script_marker = "PRE_RUNNER_SCRIPT_EOF"


def pre_runner_script(script: str):
    """Return lines that save and source the pre-runner script."""
    return [
        f"cat > pre-runner-script.sh <<'{pre_runner_script_marker}'",
        *(script or "").splitlines(),
        pre_runner_script_marker,
        "source pre-runner-script.sh",
    ]


def start_runner(config: Config, label: str, token: str):
    """Return lines that configure and start the runner."""
    return [
        "export RUNNER_ALLOW_RUNASROOT=1",
        f"./config.sh --url {github_url}/{config.github_repository}"
        f" --token {token} --labels {label}",
        "./run.sh",
    ]


def user_data_script(config: Config, label: str, token: str):
    """Build user data script that registers and starts
    the self-hosted runner. User data scripts are run as the root user.

    If runner home directory is specified, the actions runner software
    is expected to be pre-installed in the image, so we cd into that
    directory and start the runner. Otherwise, the runner is downloaded
    for the instance architecture first.
    """
    version = config.runner_version

    if config.runner_home_dir:
        lines = [
            "#!/bin/bash",
            f'cd "{config.runner_home_dir}"',
            *pre_runner_script(config.pre_runner_script),
        ]
    else:
        lines = [
            "#!/bin/bash",
            "mkdir actions-runner && cd actions-runner",
            *pre_runner_script(config.pre_runner_script),
            'case $(uname -m) in aarch64) ARCH="arm64" ;; amd64|x86_64) ARCH="x64" ;; esac'
            " && export RUNNER_ARCH=${ARCH}",
            "curl -O -L https://github.com/actions/runner/releases/download/"
            f"v{version}/actions-runner-linux-${{RUNNER_ARCH}}-{version}.tar.gz",
            f"tar xzf ./actions-runner-linux-${{RUNNER_ARCH}}-{version}.tar.gz",
        ]

    return "\n".join(lines + start_runner(config, label=label, token=token)) + "\n"


def substitute(script: str, label: str, token: str):
    """Substitute label and registration token placeholders
    in a custom user data script."""
    return script.replace(label_placeholder, label).replace(token_placeholder, token)

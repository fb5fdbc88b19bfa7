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
import math
import time
import logging

from enum import Enum

from github import Github, Auth
from github.Repository import Repository
from github.SelfHostedActionsRunner import SelfHostedActionsRunner

from .actions import Action
from .config import Config
from .constants import github_api_url, github_api_version
from .errors import RegistrationTimeoutError, RunnerRemovalError
from .logger import logger
from .request import request


def login(config: Config):
    """Log in to GitHub and return the repository."""
    with Action("Logging in to GitHub"):
        github = Github(auth=Auth.Token(config.github_token), per_page=100)

    with Action(f"Getting repository {config.github_repository}"):
        repo: Repository = github.get_repo(config.github_repository)

    return repo


def get_registration_token(config: Config):
    """Get registration token for registering a self-hosted runner."""
    with Action("Getting registration token for the runner") as action:
        content, _ = request(
            f"{github_api_url}/repos/{config.github_repository}/actions/runners/registration-token",
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {config.github_token}",
                "X-GitHub-Api-Version": github_api_version,
            },
            data=b"",
            method="POST",
            format="json",
        )
        token = content["token"]
        action.note("GitHub registration token is received")

    return token


def runner_labels(runner: SelfHostedActionsRunner):
    """Return runner's label names."""
    return [label["name"] for label in runner.labels()]


def get_runner(repo: Repository, label: str):
    """Find self-hosted runner using its unique label.

    As we don't have the runner's id, it's not possible to get it
    in any other way. Any error while getting the list of runners
    is logged and treated as runner not found.
    """
    with Action(
        f"Looking for GitHub self-hosted runner with label {label}",
        level=logging.DEBUG,
        ignore_fail=True,
        label=label,
    ):
        for runner in repo.get_self_hosted_runners():
            if label in runner_labels(runner):
                return runner

    return None


def delete_runner(config: Config, runner: SelfHostedActionsRunner):
    """Delete self-hosted runner and return the response status code."""
    _, response = request(
        f"{github_api_url}/repos/{config.github_repository}/actions/runners/{runner.id}",
        headers={
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {config.github_token}",
            "X-GitHub-Api-Version": github_api_version,
        },
        method="DELETE",
    )
    return response.status


def remove_runner(config: Config, repo: Repository, label: str):
    """Remove self-hosted runner with the label.
    Runner that is not found is not removed."""
    runner = get_runner(repo, label)

    if runner is None:
        logger.info(
            f"GitHub self-hosted runner with label {label} is not found, "
            "so the removal is skipped",
            extra={"label": label},
        )
        return None

    with Action(
        f"Removing GitHub self-hosted runner {runner.name}", label=label
    ) as action:
        status = delete_runner(config, runner)
        if status != 204:
            raise RunnerRemovalError(runner.name, runner.id, status)
        action.note(f"GitHub self-hosted runner {runner.name} is removed")

    return runner


class RegistrationState(Enum):
    QUIET_PERIOD = "quiet period"
    POLLING = "polling"
    REGISTERED = "registered"
    TIMED_OUT = "timed out"


class RegistrationWaiter:
    """Wait for the runner started by the instance to register
    itself and come online.

    The waiter first sleeps for the quiet period giving the instance
    time to boot, then looks up the runner by its label every retry
    interval until the runner is online or the number of attempts
    that fit into the timeout is exhausted.
    """

    def __init__(
        self,
        repo: Repository,
        label: str,
        timeout: int = 300,
        retry_interval: int = 10,
        quiet_period: int = 30,
    ):
        self.repo = repo
        self.label = label
        self.timeout = timeout
        self.retry_interval = retry_interval
        self.quiet_period = quiet_period
        self.max_attempts = max(1, math.ceil(timeout / retry_interval))
        self.attempts = 0
        self.state = RegistrationState.QUIET_PERIOD

    def wait(self):
        """Block until runner is registered and return it."""
        with Action(
            f"Waiting {self.quiet_period}s for the AWS EC2 instance to be registered "
            "in GitHub as a new self-hosted runner",
            label=self.label,
        ):
            time.sleep(self.quiet_period)

        self.state = RegistrationState.POLLING

        with Action(
            f"Checking every {self.retry_interval}s if the GitHub self-hosted runner is registered",
            label=self.label,
        ) as action:
            for attempt in range(1, self.max_attempts + 1):
                self.attempts = attempt
                runner = get_runner(self.repo, self.label)

                if runner is not None and runner.status == "online":
                    self.state = RegistrationState.REGISTERED
                    action.note(
                        f"GitHub self-hosted runner {runner.name} is registered and ready to use"
                    )
                    return runner

                if attempt < self.max_attempts:
                    action.note(f"Checking...{attempt}")
                    time.sleep(self.retry_interval)

            self.state = RegistrationState.TIMED_OUT
            raise RegistrationTimeoutError(self.timeout)


def wait_registered(
    repo: Repository,
    label: str,
    timeout: int = 300,
    retry_interval: int = 10,
    quiet_period: int = 30,
):
    """Wait for runner with the label to be registered and online."""
    return RegistrationWaiter(
        repo=repo,
        label=label,
        timeout=timeout,
        retry_interval=retry_interval,
        quiet_period=quiet_period,
    ).wait()

"""Shared test configuration and fixtures."""

import logging

from unittest.mock import MagicMock

import pytest

from testflows.ec2.runner.config import Config

environment_variables = [
    "GITHUB_OUTPUT",
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
]


@pytest.fixture(scope="function", autouse=True)
def clean_environment(monkeypatch):
    """Remove GitHub Actions inputs inherited from the environment."""
    import os

    for name in list(os.environ):
        if name.startswith("INPUT_"):
            monkeypatch.delenv(name, raising=False)
    for name in environment_variables:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Remove handlers installed by logger configuration."""
    yield
    logger = logging.getLogger("testflows.ec2.runner")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sleeps(monkeypatch):
    """Replace time.sleep and record requested delays."""
    calls = []
    monkeypatch.setattr("time.sleep", lambda seconds: calls.append(seconds))
    return calls


@pytest.fixture
def config():
    """Valid start mode configuration."""
    return Config(
        mode="start",
        github_token="ghp_test",
        github_repository="owner/repo",
        aws_region="us-east-1",
        ec2_image_id="ami-0123456789abcdef0",
        ec2_instance_type="t3.medium",
        subnet_id="subnet-0123",
        security_group_id="sg-0123",
    )


def make_runner(name="ec2-runner", labels=("self-hosted",), status="online", id=1):
    """Create fake self-hosted runner."""
    runner = MagicMock()
    runner.name = name
    runner.id = id
    runner.status = status
    runner.labels.return_value = [{"id": i, "name": l} for i, l in enumerate(labels)]
    return runner


@pytest.fixture
def runner_factory():
    return make_runner

"""GitHub self-hosted runner tests."""

import logging

from unittest.mock import MagicMock
from urllib.error import HTTPError

import pytest

from github import GithubException

import testflows.ec2.runner.runner as runner_module

from testflows.ec2.runner.errors import RegistrationTimeoutError, RunnerRemovalError
from testflows.ec2.runner.runner import (
    RegistrationState,
    RegistrationWaiter,
    get_registration_token,
    get_runner,
    remove_runner,
    wait_registered,
)


def repository(*runners):
    repo = MagicMock()
    repo.get_self_hosted_runners.return_value = list(runners)
    return repo


class TestGetRegistrationToken:
    def test_token(self, config, monkeypatch):
        calls = []

        def request(url, **kwargs):
            calls.append((url, kwargs))
            return {"token": "tok123", "expires_at": "2025-01-01T00:00:00Z"}, None

        monkeypatch.setattr(runner_module, "request", request)

        assert get_registration_token(config) == "tok123"

        url, kwargs = calls[0]
        assert (
            url
            == "https://api.github.com/repos/owner/repo/actions/runners/registration-token"
        )
        assert kwargs["method"] == "POST"
        assert kwargs["headers"]["Authorization"] == "Bearer ghp_test"
        assert kwargs["format"] == "json"

    def test_error_is_raised(self, config, monkeypatch):
        def request(url, **kwargs):
            raise HTTPError(url, 403, "Forbidden", {}, None)

        monkeypatch.setattr(runner_module, "request", request)

        with pytest.raises(HTTPError):
            get_registration_token(config)


class TestGetRunner:
    def test_found(self, runner_factory):
        match = runner_factory(name="ec2-2", labels=("self-hosted", "ab3de"), id=2)
        repo = repository(
            runner_factory(name="ec2-1", labels=("self-hosted", "zzzzz"), id=1),
            match,
            runner_factory(name="ec2-3", labels=("ab3de",), id=3),
        )

        assert get_runner(repo, "ab3de") is match

    def test_not_found(self, runner_factory):
        repo = repository(runner_factory(labels=("self-hosted", "zzzzz")))

        assert get_runner(repo, "ab3de") is None

    def test_idempotent(self, runner_factory):
        repo = repository(runner_factory(labels=("ab3de",)))

        assert get_runner(repo, "ab3de") == get_runner(repo, "ab3de")
        assert repo.get_self_hosted_runners.call_count == 2

    def test_error_is_not_found(self, caplog):
        caplog.set_level(logging.INFO, logger="testflows.ec2.runner")
        repo = MagicMock()
        repo.get_self_hosted_runners.side_effect = GithubException(
            502, {"message": "Server Error"}, None
        )

        assert get_runner(repo, "ab3de") is None
        assert "GithubException" in caplog.text


class TestRemoveRunner:
    @pytest.fixture
    def deletes(self, monkeypatch):
        """Record runner delete requests and answer with the status."""

        class Deletes(list):
            status = 204

        calls = Deletes()

        def request(url, **kwargs):
            calls.append((url, kwargs))
            return "", MagicMock(status=calls.status)

        monkeypatch.setattr(runner_module, "request", request)
        return calls

    def test_not_found_is_skipped(self, config, deletes, caplog):
        caplog.set_level(logging.INFO, logger="testflows.ec2.runner")
        repo = repository()

        assert remove_runner(config, repo, "ab3de") is None

        assert deletes == []
        assert "removal is skipped" in caplog.text

    def test_removed(self, config, deletes, runner_factory):
        runner = runner_factory(name="ec2-ab3de", labels=("ab3de",), id=7)
        repo = repository(runner)

        assert remove_runner(config, repo, "ab3de") is runner

        url, kwargs = deletes[0]
        assert url == "https://api.github.com/repos/owner/repo/actions/runners/7"
        assert kwargs["method"] == "DELETE"
        assert kwargs["headers"]["Authorization"] == "Bearer ghp_test"

    def test_not_acknowledged(self, config, deletes, runner_factory):
        repo = repository(runner_factory(name="ec2-ab3de", labels=("ab3de",), id=7))
        deletes.status = 200

        with pytest.raises(RunnerRemovalError) as exc:
            remove_runner(config, repo, "ab3de")

        assert exc.value.status == 200
        assert "returned status 200" in str(exc.value)
        assert "ec2-ab3de (7)" in str(exc.value)

    def test_http_error(self, config, runner_factory, monkeypatch):
        def request(url, **kwargs):
            raise HTTPError(url, 500, "Server Error", {}, None)

        monkeypatch.setattr(runner_module, "request", request)
        repo = repository(runner_factory(labels=("ab3de",)))

        with pytest.raises(HTTPError):
            remove_runner(config, repo, "ab3de")


class TestRegistrationWaiter:
    def lookups(self, monkeypatch, results):
        """Replace runner lookup with a stub returning results in order."""
        calls = []

        def get_runner(repo, label):
            calls.append(label)
            return results[len(calls) - 1]

        monkeypatch.setattr(runner_module, "get_runner", get_runner)
        return calls

    def test_registered_on_third_poll(self, monkeypatch, sleeps, runner_factory):
        online = runner_factory(name="ec2-ab3de", labels=("ab3de",), status="online")
        offline = runner_factory(name="ec2-ab3de", labels=("ab3de",), status="offline")
        calls = self.lookups(monkeypatch, [None, offline, online, online])

        waiter = RegistrationWaiter(
            MagicMock(), "ab3de", timeout=300, retry_interval=10, quiet_period=30
        )
        assert waiter.state == RegistrationState.QUIET_PERIOD

        assert waiter.wait() is online

        assert waiter.state == RegistrationState.REGISTERED
        assert waiter.attempts == 3
        assert calls == ["ab3de", "ab3de", "ab3de"]
        assert sleeps == [30, 10, 10]

    def test_timed_out(self, monkeypatch, sleeps, runner_factory):
        offline = runner_factory(labels=("ab3de",), status="offline")
        calls = self.lookups(monkeypatch, [offline] * 100)

        waiter = RegistrationWaiter(
            MagicMock(), "ab3de", timeout=300, retry_interval=10, quiet_period=30
        )

        with pytest.raises(RegistrationTimeoutError) as exc:
            waiter.wait()

        assert waiter.state == RegistrationState.TIMED_OUT
        assert len(calls) == 30
        assert sleeps == [30] + [10] * 29
        assert "A timeout of 5 minutes is exceeded" in str(exc.value)

    def test_attempts_round_up(self, monkeypatch, sleeps):
        calls = self.lookups(monkeypatch, [None] * 10)

        with pytest.raises(RegistrationTimeoutError) as exc:
            wait_registered(
                MagicMock(), "ab3de", timeout=25, retry_interval=10, quiet_period=1
            )

        assert len(calls) == 3
        assert exc.value.timeout == 25

    def test_polls_repository(self, sleeps, runner_factory):
        online = runner_factory(labels=("ab3de",), status="online")
        repo = MagicMock()
        repo.get_self_hosted_runners.side_effect = [
            GithubException(502, {"message": "Bad Gateway"}, None),
            [],
            [online],
        ]

        assert wait_registered(repo, "ab3de") is online
        assert repo.get_self_hosted_runners.call_count == 3

# tests/test_retry.py

import pytest

from store import retry
from store.exceptions import InvalidArgument, NotFound, PermissionDenied, StorageError
from store.retry import retry_with_backoff


class Flaky:
    def __init__(self, failures, error=None, result="ok"):
        self.failures = failures
        self.error = error or StorageError("unavailable")
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


def test_retry_returns_after_transient_failures():
    operation = Flaky(failures=2)

    assert retry_with_backoff(operation) == "ok"
    assert operation.calls == 3


def test_retry_gives_up_after_max_attempts():
    operation = Flaky(failures=10)

    with pytest.raises(StorageError):
        retry_with_backoff(operation)
    assert operation.calls == 3


def test_retry_respects_max_attempts_setting(settings):
    settings.STORE_RETRY_ATTEMPTS = 5
    operation = Flaky(failures=10)

    with pytest.raises(StorageError):
        retry_with_backoff(operation)
    assert operation.calls == 5


@pytest.mark.parametrize("error_class", [PermissionDenied, NotFound, InvalidArgument])
def test_semantic_errors_are_not_retried(error_class):
    operation = Flaky(failures=10, error=error_class("nope"))

    with pytest.raises(error_class):
        retry_with_backoff(operation)
    assert operation.calls == 1


def test_delay_grows_with_each_attempt(monkeypatch):
    delays = []
    monkeypatch.setattr(retry.time, "sleep", delays.append)

    retry_with_backoff(Flaky(failures=2), max_attempts=3, initial_delay=1.0)

    assert delays == [1.0, 2.0]

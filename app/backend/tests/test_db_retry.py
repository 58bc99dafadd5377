from __future__ import annotations

import logging

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from bi_dashboard.db.retry import is_transient_error, run_with_retry


def _operational() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly"))


class _FlakyOperation:
    def __init__(self, failures: int, error_factory=_operational) -> None:
        self.failures = failures
        self.calls = 0
        self.error_factory = error_factory

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error_factory()
        return "rows"


def test_transient_errors_are_classified() -> None:
    assert is_transient_error(_operational())
    assert not is_transient_error(ProgrammingError("SELECT", {}, Exception("syntax error")))
    invalidated = ProgrammingError("SELECT", {}, Exception("gone"), connection_invalidated=True)
    assert is_transient_error(invalidated)


def test_retries_with_exponential_backoff_then_succeeds() -> None:
    sleeps: list[float] = []
    rollbacks: list[int] = []
    operation = _FlakyOperation(failures=2)

    result = run_with_retry(
        operation,
        max_retries=3,
        base_delay=0.5,
        on_retry=lambda: rollbacks.append(1),
        sleep=sleeps.append,
    )

    assert result == "rows"
    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]
    assert len(rollbacks) == 2


def test_exhausted_retries_raise_the_last_error(caplog: pytest.LogCaptureFixture) -> None:
    sleeps: list[float] = []
    operation = _FlakyOperation(failures=5)

    with caplog.at_level(logging.WARNING, logger="bi_dashboard.db.retry"):
        with pytest.raises(OperationalError):
            run_with_retry(operation, max_retries=3, base_delay=1, sleep=sleeps.append)

    assert operation.calls == 3
    assert sleeps == [2, 4]
    assert "Retries exhausted" in caplog.text


def test_non_transient_errors_fail_fast() -> None:
    sleeps: list[float] = []
    operation = _FlakyOperation(
        failures=1,
        error_factory=lambda: IntegrityError("INSERT", {}, Exception("duplicate key")),
    )

    with pytest.raises(IntegrityError):
        run_with_retry(operation, max_retries=3, base_delay=1, sleep=sleeps.append)

    assert operation.calls == 1
    assert sleeps == []


def test_zero_attempts_is_rejected() -> None:
    with pytest.raises(ValueError):
        run_with_retry(lambda: "rows", max_retries=0)

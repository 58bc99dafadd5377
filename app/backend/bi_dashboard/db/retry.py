"""Retrying query execution against the warehouse."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable

from bi_dashboard.core.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_error(exc: BaseException) -> bool:
    """Connection-level failures worth retrying; everything else fails fast."""

    if isinstance(exc, DisconnectionError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, OperationalError)


def run_with_retry(
    operation: Callable[[], T],
    *,
    description: str = "query",
    max_retries: int | None = None,
    base_delay: float | None = None,
    on_retry: Callable[[], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation``, retrying transient database errors with exponential backoff.

    ``max_retries`` is the total number of attempts. The delay before attempt
    ``n + 1`` is ``base_delay * 2 ** n``. Non-transient errors are raised on the
    first occurrence; when every attempt fails the last error is raised.
    """

    settings = get_settings()
    attempts = max_retries if max_retries is not None else settings.query_max_retries
    delay = base_delay if base_delay is not None else settings.query_retry_base_delay_seconds
    if attempts < 1:
        raise ValueError("max_retries must be at least 1")

    started = time.perf_counter()
    last_error: BaseException | None = None
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
        except (DBAPIError, DisconnectionError) as exc:
            if not is_transient_error(exc):
                raise
            last_error = exc
            if on_retry is not None:
                on_retry()
            if attempt == attempts:
                break
            wait = delay * 2**attempt
            logger.warning(
                "Retrying %s after transient error (attempt %d of %d, waiting %.1fs): %s",
                description,
                attempt,
                attempts,
                wait,
                getattr(exc, "orig", None) or exc,
            )
            sleep(wait)
            continue

        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > settings.slow_query_threshold_ms:
            logger.warning(
                "Slow %s (%.0fms)",
                description,
                elapsed_ms,
                extra={"duration_ms": round(elapsed_ms)},
            )
        return result

    logger.error("Retries exhausted for %s (%d attempts): %s", description, attempts, last_error)
    assert last_error is not None
    raise last_error


def fetch_all_mappings(
    session: Session,
    statement: Executable,
    params: Mapping[str, Any] | None = None,
    *,
    description: str = "query",
    max_retries: int | None = None,
) -> list[dict[str, Any]]:
    """Execute a statement and materialize its rows as plain dicts."""

    def _operation() -> list[dict[str, Any]]:
        result = session.execute(statement, dict(params or {}))
        return [dict(row) for row in result.mappings().all()]

    return run_with_retry(
        _operation,
        description=description,
        max_retries=max_retries,
        on_retry=session.rollback,
    )

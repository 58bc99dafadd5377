"""Database health checks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bi_dashboard.db.retry import run_with_retry

logger = logging.getLogger(__name__)


def check_database_health(session: Session) -> bool:
    """Round-trip ``SELECT 1``; any database error reports unhealthy."""

    try:
        value = run_with_retry(
            lambda: session.execute(text("SELECT 1 AS health_check")).scalar_one(),
            description="health check",
            max_retries=1,
            on_retry=session.rollback,
        )
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        return False
    return value == 1


def _check_with_new_session(session_factory: Callable[[], Session]) -> bool:
    session = session_factory()
    try:
        return check_database_health(session)
    finally:
        session.close()


async def monitor_database_health(
    session_factory: Callable[[], Session],
    interval_seconds: float,
) -> None:
    """Check immediately, then every ``interval_seconds`` until cancelled."""

    healthy = await run_in_threadpool(_check_with_new_session, session_factory)
    logger.info("Initial database state: %s", "healthy" if healthy else "unhealthy")
    while True:
        await asyncio.sleep(interval_seconds)
        healthy = await run_in_threadpool(_check_with_new_session, session_factory)
        if healthy:
            logger.info("Periodic database check: healthy")
        else:
            logger.warning("Periodic database check: unhealthy")

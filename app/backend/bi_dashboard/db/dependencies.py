"""Session dependency for the warehouse endpoints."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from bi_dashboard.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield a read-only warehouse session.

    Nothing is ever written through it, so the open read transaction is rolled
    back instead of committed when the request finishes.
    """

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

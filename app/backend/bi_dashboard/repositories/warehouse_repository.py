"""Read access to the data-warehouse views and their metadata."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy import column, inspect, select, table
from sqlalchemy.engine import Inspector
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from bi_dashboard.db.retry import fetch_all_mappings, run_with_retry
from bi_dashboard.models.entities import (
    ActiveCompany,
    CapacityDatamart,
    LeaveRecord,
    ProjectProgress,
    TaskMetrics,
)

logger = logging.getLogger(__name__)

STRUCTURE_SAMPLE_SIZE = 5

Row = dict[str, Any]
T = TypeVar("T")


class WarehouseUnavailableError(RuntimeError):
    """The warehouse could not be queried (connection lost, timeout, bad SQL)."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"Failed to {operation}")
        self.operation = operation
        self.cause = cause


def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a SQL ``LIKE`` pattern (``%`` and ``_``) into a regex."""

    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


class WarehouseRepository:
    """Queries against the warehouse views; every row comes back as a plain dict."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _fetch(self, statement: Select[Any], operation: str) -> list[Row]:
        try:
            return fetch_all_mappings(self.db, statement, description=operation)
        except SQLAlchemyError as exc:
            logger.error("Failed to %s: %s", operation, exc)
            raise WarehouseUnavailableError(operation, exc) from exc

    # ---------- Projects and companies ----------
    def list_project_metrics(self, company_id: int | None = None) -> list[Row]:
        progress = ProjectProgress.__table__
        statement = select(progress)
        if company_id is None:
            statement = statement.order_by(progress.c.company_id, progress.c.client_name, progress.c.project_name)
        else:
            statement = statement.where(progress.c.company_id == company_id).order_by(
                progress.c.client_name,
                progress.c.project_name,
            )
        return self._fetch(statement, "fetch project metrics")

    def list_companies(self) -> list[Row]:
        companies = ActiveCompany.__table__
        statement = select(companies.c.id, companies.c.name).order_by(companies.c.name)
        return self._fetch(statement, "fetch companies")

    # ---------- Capacity and tasks ----------
    def list_capacity(self, company_id: int | None = None) -> list[Row]:
        capacity = CapacityDatamart.__table__
        statement = select(capacity)
        if company_id is not None:
            statement = statement.where(capacity.c.company_id == company_id)
        statement = statement.order_by(capacity.c.company_id, capacity.c.user_name, capacity.c.month)
        return self._fetch(statement, "fetch capacity data")

    def list_task_metrics(self, company_id: int | None = None, limit: int | None = None) -> list[Row]:
        tasks = TaskMetrics.__table__
        statement = select(tasks)
        if company_id is not None:
            statement = statement.where(tasks.c.company_id == company_id)
        statement = statement.order_by(tasks.c.day.desc())
        if limit is not None:
            statement = statement.limit(limit)
        return self._fetch(statement, "fetch task data")

    # ---------- Leaves ----------
    def list_leaves(self, company_id: int | None = None) -> list[Row]:
        leaves = LeaveRecord.__table__
        statement = select(leaves)
        if company_id is not None:
            statement = statement.where(leaves.c.company_id == company_id)
        statement = statement.order_by(leaves.c.month.desc(), leaves.c.user_name)
        return self._fetch(statement, "fetch leaves data")

    # ---------- Introspection ----------
    def _inspector(self) -> Inspector:
        return inspect(self.db.connection())

    def _inspect(self, operation: str, call: Callable[[Inspector], T]) -> T:
        try:
            return run_with_retry(lambda: call(self._inspector()), description=operation, on_retry=self.db.rollback)
        except SQLAlchemyError as exc:
            logger.error("Failed to %s: %s", operation, exc)
            raise WarehouseUnavailableError(operation, exc) from exc

    def list_views(self, schema: str, pattern: str = "%") -> list[Row]:
        matcher = like_to_regex(pattern)
        names = self._inspect("list views", lambda inspector: inspector.get_view_names(schema=schema))
        return [
            {"table_name": name, "table_schema": schema}
            for name in sorted(names)
            if matcher.match(name)
        ]

    def describe_columns(self, schema: str, table_name: str) -> list[Row]:
        def _columns(inspector: Inspector) -> list[dict[str, Any]]:
            try:
                return inspector.get_columns(table_name, schema=schema)
            except NoSuchTableError:
                return []

        columns = self._inspect("describe relation", _columns)
        return [{"column_name": item["name"], "data_type": str(item["type"])} for item in columns]

    def sample_rows(self, schema: str, table_name: str, column_names: list[str]) -> list[Row]:
        """First rows of a relation; an unreadable relation yields no sample."""

        if not column_names:
            return []
        relation = table(table_name, *(column(name) for name in column_names), schema=schema)
        try:
            return fetch_all_mappings(
                self.db,
                select(relation).limit(STRUCTURE_SAMPLE_SIZE),
                description="sample relation",
                max_retries=1,
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Could not sample %s.%s: %s", schema, table_name, exc)
            return []

    def find_table(self, table_name: str) -> list[Row]:
        def _locations(inspector: Inspector) -> list[Row]:
            found = []
            for schema in sorted(inspector.get_schema_names()):
                if inspector.has_table(table_name, schema=schema) or table_name in inspector.get_view_names(
                    schema=schema
                ):
                    found.append({"table_schema": schema, "table_name": table_name})
            return found

        return self._inspect("find table", _locations)

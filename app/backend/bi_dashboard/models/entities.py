"""ORM mappings for the read-only data-warehouse views.

The views are produced upstream by dbt. Table schemas are logical names
(``warehouse``, ``warehouse_dev``, ``custom_dashboards``) resolved to the
physical schemas through the engine's ``schema_translate_map``. The views have
no primary keys; each mapping names an identity for the mapper only, and the
repository always selects columns rather than entities so that repeated rows
are never collapsed by the identity map.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from bi_dashboard.core.config import get_settings
from bi_dashboard.db.base import Base

WAREHOUSE = "warehouse"
WAREHOUSE_DEV = "warehouse_dev"
CUSTOM_DASHBOARDS = "custom_dashboards"


class ActiveCompany(Base):
    __tablename__ = "active_companies"
    __table_args__ = {"schema": WAREHOUSE}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class ProjectProgress(Base):
    __tablename__ = "avance_proyectos"
    __table_args__ = {"schema": WAREHOUSE_DEV}

    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    estimated_income: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    absolute_margin: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    margin_percentage: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    income_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    estimated_duration_workdays: Mapped[int | None] = mapped_column(Integer, nullable=True)
    real_duration_workdays: Mapped[int | None] = mapped_column(Integer, nullable=True)
    worked_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    estimated_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    remaining_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    pending_tasks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_tasks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_tasks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    task_progress_percentage: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    hours_progress_percentage: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    delivery_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    deviation_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __mapper_args__ = {"primary_key": [company_id, project_id]}


class CapacityDatamart(Base):
    __tablename__ = "matview_2y_capacity_datamart"
    __table_args__ = {"schema": WAREHOUSE}

    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    month: Mapped[date] = mapped_column(Date, nullable=False)
    gross_capacity: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    license_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    capacity: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    reserved_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    is_license: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __mapper_args__ = {"primary_key": [company_id, user_id, project_id, month]}


class TaskMetrics(Base):
    __tablename__ = "planner_metrics_datamart_by_task"
    __table_args__ = {"schema": WAREHOUSE}

    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    task_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    gross_capacity: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    capacity: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    scheduled_hs: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    __mapper_args__ = {"primary_key": [company_id, user_id, project_name, task_name, day]}


class LeaveRecord(Base):
    __tablename__ = get_settings().leaves_view_name
    __table_args__ = {"schema": CUSTOM_DASHBOARDS}

    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    project_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pm_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_pm: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    # Either ``YYYY-MM`` or an ISO-8601 timestamp depending on the upstream build.
    month: Mapped[str] = mapped_column(String(32), nullable=False)
    licencias: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    reserved_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    __mapper_args__ = {"primary_key": [company_id, user_id, project_id, month]}

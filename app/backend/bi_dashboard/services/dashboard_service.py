"""Dashboard, pass-through, and export service layer."""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from bi_dashboard.core.config import get_settings
from bi_dashboard.repositories.warehouse_repository import WarehouseRepository
from bi_dashboard.services.capacity_aggregation import (
    ALL,
    CapacityFilters,
    DailyCapacity,
    HierarchyNode,
    MonthlyCapacity,
    PeriodAggregate,
    aggregate,
    capacity_filter_options,
    coerce_rows,
    iter_nodes,
    monthly_capacity,
)
from bi_dashboard.services.leave_summary import (
    CalendarMonth,
    LeaveFilters,
    LeaveOption,
    ReservedHoursMode,
    UserLeaveSummary,
    build_leave_calendar,
    filter_leave_rows,
    leave_filter_options,
    leave_totals,
    summarize_projects,
    summarize_users,
    user_month_series,
)
from bi_dashboard.services.periods import month_label
from bi_dashboard.services.project_metrics import (
    ClientGroup,
    ProjectFilters,
    ProjectSortField,
    SortOrder,
    client_distribution,
    filter_projects,
    group_by_client,
    status_distribution,
)

Q2 = Decimal("0.01")

_MONTH_PARAM_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

CAPACITY_DAILY_COLUMNS = [
    "period",
    "gross_capacity",
    "scheduled_hours",
    "available_hours",
    "availability_percentage",
]
CAPACITY_HIERARCHY_COLUMNS = ["node_id", "node_type", "node_name", "parent_id", *CAPACITY_DAILY_COLUMNS]
LEAVE_USER_COLUMNS = [
    "user_id",
    "user_name",
    "total_leave_days",
    "total_reserved_hours",
    "months_count",
    "projects_count",
    "hours_per_leave_day",
    "leave_ranges",
]


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _money(value: Decimal) -> str:
    return str(_q2(value))


def _validate_month(value: str | None, field_name: str) -> None:
    if value is not None and not _MONTH_PARAM_RE.match(value):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{field_name} must use the YYYY-MM format.",
        )


class DashboardService:
    """Reads warehouse rows and turns them into dashboard payloads."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = WarehouseRepository(db)
        self.settings = get_settings()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_row(row: dict[str, Any]) -> dict[str, object]:
        """Warehouse row with numerics as strings and dates in ISO format."""

        serialized: dict[str, object] = {}
        for key, value in row.items():
            if isinstance(value, Decimal):
                serialized[key] = str(value)
            elif isinstance(value, (date, datetime)):
                serialized[key] = value.isoformat()
            else:
                serialized[key] = value
        return serialized

    @staticmethod
    def serialize_period(data: PeriodAggregate) -> dict[str, object]:
        payload: dict[str, object] = {
            "gross_capacity": _money(data.gross_capacity),
            "scheduled_hours": _money(data.scheduled_hours),
            "available_hours": _money(data.available_hours),
            "availability_percentage": _money(data.availability_percentage),
        }
        if data.project_breakdown is not None:
            payload["project_breakdown"] = {
                project_name: {
                    "scheduled_hours": _money(entry.scheduled_hours),
                    "percentage_of_capacity": _money(entry.percentage_of_capacity),
                }
                for project_name, entry in data.project_breakdown.items()
            }
        return payload

    @classmethod
    def serialize_node(cls, node: HierarchyNode) -> dict[str, object]:
        return {
            "id": node.id,
            "name": node.name,
            "type": node.type.value,
            "parent_id": node.parent_id,
            "daily_data": {period: cls.serialize_period(data) for period, data in node.daily_data.items()},
            "children": [cls.serialize_node(child) for child in node.children],
        }

    @staticmethod
    def serialize_daily(entry: DailyCapacity) -> dict[str, str]:
        return {
            "period": entry.period,
            "gross_capacity": _money(entry.gross_capacity),
            "scheduled_hours": _money(entry.scheduled_hours),
            "available_hours": _money(entry.available_hours),
            "availability_percentage": _money(entry.availability_percentage),
        }

    @staticmethod
    def serialize_monthly(entry: MonthlyCapacity) -> dict[str, str]:
        return {
            "month": entry.month,
            "month_label": month_label(entry.month),
            "capacity": _money(entry.capacity),
            "reserved_hours": _money(entry.reserved_hours),
            "available_hours": _money(entry.available_hours),
        }

    @staticmethod
    def serialize_user_summary(summary: UserLeaveSummary) -> dict[str, object]:
        return {
            "user_id": summary.user_id,
            "user_name": summary.user_name,
            "total_leave_days": summary.total_leave_days,
            "total_reserved_hours": _money(summary.total_reserved_hours),
            "months_count": summary.months_count,
            "projects_count": summary.projects_count,
            "hours_per_leave_day": _money(summary.hours_per_leave_day),
            "leave_ranges": summary.leave_ranges,
        }

    @staticmethod
    def serialize_calendar_month(month: CalendarMonth) -> dict[str, object]:
        return {
            "month": month.month,
            "month_label": month.month_label,
            "users": [
                {
                    "user_id": user.user_id,
                    "user_name": user.user_name,
                    "days": user.days,
                    "ranges": user.ranges,
                    "projects": [
                        {"project_name": project.project_name, "hours": _money(project.hours)}
                        for project in user.projects
                    ],
                }
                for user in month.users
            ],
        }

    @staticmethod
    def serialize_option(option: LeaveOption) -> dict[str, str]:
        return {"id": option.id, "name": option.name}

    @staticmethod
    def serialize_client_group(group: ClientGroup) -> dict[str, object]:
        return {
            "client_name": group.client_name,
            "total_projects": group.total_projects,
            "total_hours_deviation": _money(group.total_hours_deviation),
            "total_margin": _money(group.total_margin),
            "margin_percentage": _money(group.margin_percentage),
            "projects": [DashboardService.serialize_row(project) for project in group.projects],
        }

    # ---------- Raw datasets ----------
    def list_companies(self) -> list[dict[str, object]]:
        return [self.serialize_row(row) for row in self.repo.list_companies()]

    def list_projects(self, company_id: int | None = None) -> list[dict[str, object]]:
        return [self.serialize_row(row) for row in self.repo.list_project_metrics(company_id)]

    def list_capacity(self, company_id: int | None = None) -> list[dict[str, object]]:
        return [self.serialize_row(row) for row in self.repo.list_capacity(company_id)]

    def list_tasks(self, company_id: int | None = None, limit: int | None = None) -> list[dict[str, object]]:
        effective_limit = limit if limit is not None else self.settings.tasks_default_limit
        return [self.serialize_row(row) for row in self.repo.list_task_metrics(company_id, effective_limit)]

    def _leave_company(self, company_id: int | None) -> int | None:
        return company_id if company_id is not None else self.settings.leaves_default_company_id

    def list_leaves(self, company_id: int | None = None) -> list[dict[str, object]]:
        return [self.serialize_row(row) for row in self.repo.list_leaves(self._leave_company(company_id))]

    # ---------- Capacity ----------
    def capacity_usage(
        self,
        *,
        company_id: int | None,
        area: str | None,
        position: str | None,
        user: str | None,
    ) -> dict[str, object]:
        rows = coerce_rows(self.repo.list_task_metrics(company_id))
        options = capacity_filter_options(rows)
        result = aggregate(rows, CapacityFilters(area=area, position=position, user=user))
        return {
            "company_id": company_id,
            "has_data": result.has_data,
            "filters": {"area": area, "position": position, "user": user},
            "options": {
                "areas": options.areas,
                "positions": options.positions,
                "users": options.users,
            },
            "daily_series": [self.serialize_daily(entry) for entry in result.daily_series],
            "hierarchy": [self.serialize_node(node) for node in result.hierarchy],
        }

    def capacity_monthly(self, *, company_id: int | None) -> dict[str, object]:
        months = monthly_capacity(self.repo.list_capacity(company_id))
        return {
            "company_id": company_id,
            "has_data": bool(months),
            "months": [self.serialize_monthly(entry) for entry in months],
        }

    # ---------- Leaves ----------
    def _reserved_hours_mode(self, mode: ReservedHoursMode | None) -> ReservedHoursMode:
        return mode if mode is not None else ReservedHoursMode(self.settings.leave_reserved_hours_mode)

    def _leave_filters(
        self,
        *,
        user_id: str | None,
        project_id: str | None,
        month: str | None,
        from_month: str | None,
        to_month: str | None,
    ) -> LeaveFilters:
        if month == ALL:
            month = None
        _validate_month(month, "month")
        _validate_month(from_month, "from_month")
        _validate_month(to_month, "to_month")
        if from_month and to_month and to_month < from_month:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="to_month must be greater than or equal to from_month.",
            )
        return LeaveFilters(
            user_id=user_id,
            project_id=project_id,
            month=month,
            from_month=from_month,
            to_month=to_month,
            only_with_leave=True,
        )

    def leaves_dashboard(
        self,
        *,
        company_id: int | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
        month: str | None = None,
        from_month: str | None = None,
        to_month: str | None = None,
        reserved_hours_mode: ReservedHoursMode | None = None,
    ) -> dict[str, object]:
        filters = self._leave_filters(
            user_id=user_id,
            project_id=project_id,
            month=month,
            from_month=from_month,
            to_month=to_month,
        )
        mode = self._reserved_hours_mode(reserved_hours_mode)
        effective_company = self._leave_company(company_id)
        rows = coerce_rows(self.repo.list_leaves(effective_company))
        options = leave_filter_options(rows)
        filtered = filter_leave_rows(rows, filters)
        totals = leave_totals(filtered, mode)

        return {
            "company_id": effective_company,
            "has_data": bool(filtered),
            "reserved_hours_mode": mode.value,
            "options": {
                "months": options.months,
                "users": [self.serialize_option(option) for option in options.users],
                "projects": [self.serialize_option(option) for option in options.projects],
            },
            "totals": {
                "total_leave_days": totals.total_leave_days,
                "total_reserved_hours": _money(totals.total_reserved_hours),
                "total_users": totals.total_users,
                "total_projects": totals.total_projects,
            },
            "users": [self.serialize_user_summary(summary) for summary in summarize_users(filtered, mode)],
            "projects": [
                {
                    "project_name": project.project_name,
                    "total_leave_days": project.total_leave_days,
                    "total_reserved_hours": _money(project.total_reserved_hours),
                    "users_count": project.users_count,
                    "hours_per_leave_day": _money(project.hours_per_leave_day),
                }
                for project in summarize_projects(filtered, mode)
            ],
            "user_months": [
                {
                    "user_name": entry.user_name,
                    "month": entry.month,
                    "month_label": entry.month_label,
                    "leave_days": entry.leave_days,
                    "reserved_hours": _money(entry.reserved_hours),
                }
                for entry in user_month_series(filtered, mode)
            ],
            "calendar": [self.serialize_calendar_month(entry) for entry in build_leave_calendar(filtered)],
        }

    # ---------- Projects ----------
    def projects_dashboard(
        self,
        *,
        company_id: int | None = None,
        start_date_from: date | None = None,
        start_date_to: date | None = None,
        status_filter: str | None = None,
        client: str | None = None,
        show_empty: bool = False,
        sort_field: ProjectSortField = ProjectSortField.MARGIN_PERCENTAGE,
        order: SortOrder = SortOrder.DESC,
        client_limit: int = 15,
    ) -> dict[str, object]:
        if start_date_from and start_date_to and start_date_to < start_date_from:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="start_date_to must be greater than or equal to start_date_from.",
            )

        projects = self.repo.list_project_metrics(company_id)
        filtered = filter_projects(
            projects,
            ProjectFilters(
                start_date_from=start_date_from.isoformat() if start_date_from else None,
                start_date_to=start_date_to.isoformat() if start_date_to else None,
                status=status_filter,
                client=client,
                show_empty=show_empty,
            ),
        )
        return {
            "company_id": company_id,
            "has_data": bool(filtered),
            "options": {
                "statuses": sorted({str(p["project_status"]) for p in projects if p.get("project_status")}),
                "clients": sorted({str(p["client_name"]) for p in projects if p.get("client_name")}),
            },
            "client_groups": [
                self.serialize_client_group(group) for group in group_by_client(filtered, sort_field, order)
            ],
            "status_distribution": [
                {"status": item.status, "count": item.count, "percentage": _money(item.percentage)}
                for item in status_distribution(filtered)
            ],
            "client_distribution": [
                {"client_name": item.client_name, "count": item.count}
                for item in client_distribution(filtered, client_limit)
            ],
        }

    # ---------- Diagnostics ----------
    def _schema(self, schema: str | None) -> str:
        return schema or self.settings.schema_name(self.settings.custom_dashboards_suffix)

    def list_views(self, *, schema: str | None, pattern: str) -> dict[str, object]:
        resolved = self._schema(schema)
        views = self.repo.list_views(resolved, pattern)
        return {"schema": resolved, "views": views, "count": len(views)}

    def describe_relation(self, *, schema: str | None, table_name: str | None) -> dict[str, object]:
        resolved = self._schema(schema)
        relation = table_name or self.settings.leaves_view_name
        columns = self.repo.describe_columns(resolved, relation)
        if not columns:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Relation {resolved}.{relation} not found.",
            )
        sample = self.repo.sample_rows(resolved, relation, [str(item["column_name"]) for item in columns])
        return {
            "schema": resolved,
            "table": relation,
            "columns": columns,
            "column_count": len(columns),
            "sample_data": [self.serialize_row(row) for row in sample],
        }

    def find_table(self, table_name: str) -> dict[str, object]:
        locations = self.repo.find_table(table_name)
        return {"table": table_name, "found": bool(locations), "locations": locations}

    # ---------- Exports ----------
    def _export_rows(
        self,
        report_key: str,
        *,
        company_id: int | None,
        area: str | None,
        position: str | None,
        user: str | None,
        reserved_hours_mode: ReservedHoursMode | None,
    ) -> tuple[list[str], list[dict[str, object]]]:
        if report_key in {"capacity-daily", "capacity-hierarchy"}:
            result = aggregate(
                self.repo.list_task_metrics(company_id),
                CapacityFilters(area=area, position=position, user=user),
            )
            if report_key == "capacity-daily":
                return CAPACITY_DAILY_COLUMNS, [self.serialize_daily(entry) for entry in result.daily_series]

            flat_rows: list[dict[str, object]] = []
            for node in iter_nodes(result.hierarchy):
                for period, data in node.daily_data.items():
                    record: dict[str, object] = {
                        "node_id": node.id,
                        "node_type": node.type.value,
                        "node_name": node.name,
                        "parent_id": node.parent_id or "",
                        "period": period,
                    }
                    record.update(
                        {key: value for key, value in self.serialize_period(data).items() if key != "project_breakdown"}
                    )
                    flat_rows.append(record)
            return CAPACITY_HIERARCHY_COLUMNS, flat_rows

        if report_key == "leave-users":
            rows = filter_leave_rows(
                self.repo.list_leaves(self._leave_company(company_id)),
                LeaveFilters(only_with_leave=True),
            )
            summaries = summarize_users(rows, self._reserved_hours_mode(reserved_hours_mode))
            return LEAVE_USER_COLUMNS, [self.serialize_user_summary(summary) for summary in summaries]

        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Unknown report_key for export.",
        )

    def export_report(
        self,
        *,
        report_key: str,
        format_name: str,
        company_id: int | None = None,
        area: str | None = None,
        position: str | None = None,
        user: str | None = None,
        reserved_hours_mode: ReservedHoursMode | None = None,
    ) -> ExportFilePayload:
        normalized_key = report_key.strip().lower()
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        fieldnames, rows = self._export_rows(
            normalized_key,
            company_id=company_id,
            area=area,
            position=position,
            user=user,
            reserved_hours_mode=reserved_hours_mode,
        )
        base_filename = normalized_key if company_id is None else f"{normalized_key}-{company_id}"

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        # XLSX
        from openpyxl import Workbook

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "report"
        sheet.append(fieldnames)
        for row in rows:
            sheet.append([row.get(column, "") for column in fieldnames])

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from bi_dashboard.services.capacity_aggregation import HUNDRED, ZERO, to_decimal
from bi_dashboard.services.periods import normalize_day

ALL = "all"
MISSING_MARGIN_SORT_VALUE = Decimal("-999")

Project = Mapping[str, Any]


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class ProjectSortField(str, enum.Enum):
    CLIENT_NAME = "client_name"
    PROJECT_NAME = "project_name"
    START_DATE = "start_date"
    PROJECT_STATUS = "project_status"
    DELIVERY_STATUS = "delivery_status"
    HOURS_DEVIATION = "hours_deviation"
    DEVIATION_DAYS = "deviation_days"
    ABSOLUTE_MARGIN = "absolute_margin"
    MARGIN_PERCENTAGE = "margin_percentage"


@dataclass(slots=True, frozen=True)
class ProjectFilters:
    start_date_from: str | None = None
    start_date_to: str | None = None
    status: str | None = None
    client: str | None = None
    show_empty: bool = False


@dataclass(slots=True)
class ClientGroup:
    client_name: str
    projects: list[dict[str, Any]]
    total_projects: int
    total_hours_deviation: Decimal
    total_margin: Decimal
    margin_percentage: Decimal


@dataclass(slots=True, frozen=True)
class StatusCount:
    status: str
    count: int
    percentage: Decimal


@dataclass(slots=True, frozen=True)
class ClientCount:
    client_name: str
    count: int


def _text(value: object) -> str:
    return "" if value is None else str(value)


def hours_deviation(project: Project) -> Decimal:
    """Worked minus estimated hours; 0 while the estimate is incomplete."""

    if project.get("estimated_hours") is None or project.get("remaining_hours") is None:
        return ZERO
    return to_decimal(project.get("worked_hours")) - to_decimal(project.get("estimated_hours"))


def filter_projects(projects: Iterable[Project], filters: ProjectFilters | None = None) -> list[dict[str, Any]]:
    active = filters or ProjectFilters()
    selected: list[dict[str, Any]] = []
    for project in projects:
        start = normalize_day(project.get("start_date"))
        if active.start_date_from and start < active.start_date_from:
            continue
        if active.start_date_to and start > active.start_date_to:
            continue
        if active.status not in (None, ALL) and project.get("project_status") != active.status:
            continue
        if active.client not in (None, ALL) and project.get("client_name") != active.client:
            continue
        if not active.show_empty and project.get("margin_percentage") is None:
            continue
        selected.append(dict(project))
    return selected


_PROJECT_SORT_KEYS: dict[ProjectSortField, Callable[[Project], Any]] = {
    ProjectSortField.PROJECT_NAME: lambda project: _text(project.get("project_name")).casefold(),
    ProjectSortField.START_DATE: lambda project: normalize_day(project.get("start_date")),
    ProjectSortField.PROJECT_STATUS: lambda project: _text(project.get("project_status")).casefold(),
    ProjectSortField.DELIVERY_STATUS: lambda project: _text(project.get("delivery_status")).casefold(),
    ProjectSortField.HOURS_DEVIATION: hours_deviation,
    ProjectSortField.DEVIATION_DAYS: lambda project: to_decimal(project.get("deviation_days")),
    ProjectSortField.ABSOLUTE_MARGIN: lambda project: to_decimal(project.get("absolute_margin")),
    ProjectSortField.MARGIN_PERCENTAGE: lambda project: (
        MISSING_MARGIN_SORT_VALUE
        if project.get("margin_percentage") is None
        else to_decimal(project.get("margin_percentage"))
    ),
}

_GROUP_SORT_KEYS: dict[ProjectSortField, Callable[[ClientGroup], Any]] = {
    ProjectSortField.CLIENT_NAME: lambda group: group.client_name.casefold(),
    ProjectSortField.MARGIN_PERCENTAGE: lambda group: group.margin_percentage,
    ProjectSortField.ABSOLUTE_MARGIN: lambda group: group.total_margin,
    ProjectSortField.HOURS_DEVIATION: lambda group: group.total_hours_deviation,
}


def _client_margin_percentage(projects: list[dict[str, Any]], total_margin: Decimal) -> Decimal:
    income = sum((to_decimal(project.get("estimated_income")) for project in projects), ZERO)
    if income > ZERO:
        return total_margin / income * HUNDRED
    cost = sum((to_decimal(project.get("total_cost")) for project in projects), ZERO)
    if cost > ZERO:
        return total_margin / cost * HUNDRED
    return ZERO


def group_by_client(
    projects: Iterable[Project],
    sort_field: ProjectSortField = ProjectSortField.MARGIN_PERCENTAGE,
    order: SortOrder = SortOrder.DESC,
) -> list[ClientGroup]:
    """Group projects per client with margin and hours-deviation totals.

    Projects are sorted inside each group by ``sort_field``. Groups themselves
    are only reordered for the fields that exist at client level (name,
    margin, margin percentage, hours deviation); otherwise first-seen order
    is kept.
    """

    descending = order is SortOrder.DESC
    grouped: dict[str, list[dict[str, Any]]] = {}
    for project in projects:
        grouped.setdefault(_text(project.get("client_name")), []).append(dict(project))

    groups: list[ClientGroup] = []
    for client_name, client_projects in grouped.items():
        project_key = _PROJECT_SORT_KEYS.get(sort_field)
        if project_key is not None:
            client_projects.sort(key=project_key, reverse=descending)
        total_margin = sum((to_decimal(project.get("absolute_margin")) for project in client_projects), ZERO)
        groups.append(
            ClientGroup(
                client_name=client_name,
                projects=client_projects,
                total_projects=len(client_projects),
                total_hours_deviation=sum((hours_deviation(project) for project in client_projects), ZERO),
                total_margin=total_margin,
                margin_percentage=_client_margin_percentage(client_projects, total_margin),
            )
        )

    group_key = _GROUP_SORT_KEYS.get(sort_field)
    if group_key is not None:
        groups.sort(key=group_key, reverse=descending)
    return groups


def status_distribution(projects: Iterable[Project]) -> list[StatusCount]:
    counts: dict[str, int] = {}
    for project in projects:
        status = _text(project.get("project_status"))
        counts[status] = counts.get(status, 0) + 1

    total = sum(counts.values())
    distribution = [
        StatusCount(
            status=status,
            count=count,
            percentage=Decimal(count) / Decimal(total) * HUNDRED if total else ZERO,
        )
        for status, count in counts.items()
    ]
    return sorted(distribution, key=lambda item: item.count, reverse=True)


def client_distribution(projects: Iterable[Project], limit: int | None = 15) -> list[ClientCount]:
    """Projects per client, busiest first, truncated to ``limit`` entries."""

    counts: dict[str, int] = {}
    for project in projects:
        client = _text(project.get("client_name"))
        counts[client] = counts.get(client, 0) + 1

    distribution = sorted(
        (ClientCount(client_name=client, count=count) for client, count in counts.items()),
        key=lambda item: item.count,
        reverse=True,
    )
    return distribution if limit is None else distribution[:limit]

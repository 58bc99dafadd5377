"""Capacity aggregation: daily series and the area/position/user/project rollup.

Every public function is pure. Results are rebuilt from scratch on each call
from the rows passed in; nothing is cached or shared between calls.

Gross capacity is treated as a per-project slice: a user's capacity for a
period is the sum of the capacity reported on each of their project rows, and
every parent node is the sum of its direct children.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from bi_dashboard.services.periods import normalize_day, normalize_month

ZERO = Decimal("0")
HUNDRED = Decimal("100")
ALL = "all"


def to_decimal(value: object) -> Decimal:
    """Lenient numeric coercion; missing or non-numeric values count as zero."""

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else ZERO
    if isinstance(value, int):
        return Decimal(value)
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def derive_availability(gross_capacity: Decimal, scheduled_hours: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(available_hours, availability_percentage)``; 0 % when capacity is 0."""

    available = max(ZERO, gross_capacity - scheduled_hours)
    if gross_capacity <= ZERO:
        return available, ZERO
    return available, available / gross_capacity * HUNDRED


def _text(value: object) -> str:
    return "" if value is None else str(value)


@dataclass(slots=True, frozen=True)
class FactRow:
    """One user x project x period observation."""

    user_id: str
    user_name: str
    project_id: str
    project_name: str
    area: str
    position: str
    period: str
    gross_capacity: Decimal
    scheduled_hours: Decimal
    company_id: str = ""
    leave_intervals: str = ""

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> FactRow:
        """Build from a warehouse row (capacity, task metrics or leave view)."""

        if row.get("day") is not None:
            period = normalize_day(row["day"])
        else:
            period = normalize_month(row.get("month"))

        scheduled = row.get("scheduled_hs")
        if scheduled is None:
            scheduled = row.get("reserved_hours")

        user_name = row.get("user_name")
        if user_name is None:
            user_name = row.get("user")

        return cls(
            company_id=_text(row.get("company_id")),
            user_id=_text(row.get("user_id")),
            user_name=_text(user_name),
            project_id=_text(row.get("project_id")),
            project_name=_text(row.get("project_name")),
            area=_text(row.get("area")),
            position=_text(row.get("position")),
            period=period,
            gross_capacity=to_decimal(row.get("gross_capacity")),
            scheduled_hours=to_decimal(scheduled),
            leave_intervals=_text(row.get("licencias")),
        )


def coerce_rows(rows: Iterable[FactRow | Mapping[str, Any]]) -> list[FactRow]:
    return [row if isinstance(row, FactRow) else FactRow.from_mapping(row) for row in rows]


class NodeType(str, enum.Enum):
    AREA = "area"
    POSITION = "position"
    USER = "user"
    PROJECT = "project"


@dataclass(slots=True)
class ProjectBreakdown:
    scheduled_hours: Decimal = ZERO
    percentage_of_capacity: Decimal = ZERO


@dataclass(slots=True)
class PeriodAggregate:
    gross_capacity: Decimal = ZERO
    scheduled_hours: Decimal = ZERO
    available_hours: Decimal = ZERO
    availability_percentage: Decimal = ZERO
    project_breakdown: dict[str, ProjectBreakdown] | None = None

    def finalize(self) -> None:
        self.available_hours, self.availability_percentage = derive_availability(
            self.gross_capacity,
            self.scheduled_hours,
        )
        if self.project_breakdown is None:
            return
        for entry in self.project_breakdown.values():
            if self.gross_capacity > ZERO:
                entry.percentage_of_capacity = entry.scheduled_hours / self.gross_capacity * HUNDRED
            else:
                entry.percentage_of_capacity = ZERO


@dataclass(slots=True)
class HierarchyNode:
    id: str
    name: str
    type: NodeType
    daily_data: dict[str, PeriodAggregate] = field(default_factory=dict)
    children: list[HierarchyNode] = field(default_factory=list)
    parent_id: str | None = None


@dataclass(slots=True, frozen=True)
class DailyCapacity:
    period: str
    gross_capacity: Decimal
    scheduled_hours: Decimal
    available_hours: Decimal
    availability_percentage: Decimal


@dataclass(slots=True, frozen=True)
class CapacityFilters:
    """Exact-match filters; ``None`` or ``"all"`` leaves a level unconstrained."""

    area: str | None = None
    position: str | None = None
    user: str | None = None


@dataclass(slots=True)
class CapacityAggregation:
    hierarchy: list[HierarchyNode]
    daily_series: list[DailyCapacity]

    @property
    def has_data(self) -> bool:
        return bool(self.daily_series)


@dataclass(slots=True, frozen=True)
class CapacityFilterOptions:
    areas: list[str]
    positions: list[str]
    users: list[str]


def _matches(value: str, wanted: str | None) -> bool:
    return wanted is None or wanted == ALL or value == wanted


def filter_rows(rows: Iterable[FactRow], filters: CapacityFilters | None = None) -> list[FactRow]:
    """Keep rows matching every provided filter, preserving order."""

    active = filters or CapacityFilters()
    return [
        row
        for row in rows
        if _matches(row.area, active.area)
        and _matches(row.position, active.position)
        and _matches(row.user_name, active.user)
    ]


def _group_by(rows: Iterable[FactRow], key: Callable[[FactRow], str]) -> dict[str, list[FactRow]]:
    groups: dict[str, list[FactRow]] = {}
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups


def build_daily_series(rows: Iterable[FactRow]) -> list[DailyCapacity]:
    """Per-period totals across all rows, ascending by period."""

    totals: dict[str, tuple[Decimal, Decimal]] = {}
    for row in rows:
        gross, scheduled = totals.get(row.period, (ZERO, ZERO))
        totals[row.period] = (gross + row.gross_capacity, scheduled + row.scheduled_hours)

    series: list[DailyCapacity] = []
    for period in sorted(totals):
        gross, scheduled = totals[period]
        available, percentage = derive_availability(gross, scheduled)
        series.append(
            DailyCapacity(
                period=period,
                gross_capacity=gross,
                scheduled_hours=scheduled,
                available_hours=available,
                availability_percentage=percentage,
            )
        )
    return series


_LEVELS: tuple[tuple[NodeType, Callable[[FactRow], str]], ...] = (
    (NodeType.AREA, lambda row: row.area),
    (NodeType.POSITION, lambda row: row.position),
    (NodeType.USER, lambda row: row.user_name),
    (NodeType.PROJECT, lambda row: row.project_name),
)


def _leaf_daily_data(rows: list[FactRow]) -> dict[str, PeriodAggregate]:
    daily: dict[str, PeriodAggregate] = {}
    for row in rows:
        bucket = daily.setdefault(row.period, PeriodAggregate())
        bucket.gross_capacity += row.gross_capacity
        bucket.scheduled_hours += row.scheduled_hours
    for bucket in daily.values():
        bucket.finalize()
    return daily


def _roll_up(children: list[HierarchyNode], *, with_breakdown: bool) -> dict[str, PeriodAggregate]:
    daily: dict[str, PeriodAggregate] = {}
    for child in children:
        for period, child_data in child.daily_data.items():
            bucket = daily.get(period)
            if bucket is None:
                bucket = PeriodAggregate(project_breakdown={} if with_breakdown else None)
                daily[period] = bucket
            bucket.gross_capacity += child_data.gross_capacity
            bucket.scheduled_hours += child_data.scheduled_hours
            if bucket.project_breakdown is not None:
                # Leaf values are already summed per period, so assignment is idempotent.
                bucket.project_breakdown[child.name] = ProjectBreakdown(scheduled_hours=child_data.scheduled_hours)
    for bucket in daily.values():
        bucket.finalize()
    return daily


def _build_level(rows: list[FactRow], depth: int, parent_id: str | None) -> list[HierarchyNode]:
    node_type, key = _LEVELS[depth]
    nodes: list[HierarchyNode] = []
    for name, group in _group_by(rows, key).items():
        prefix = f"{parent_id}-" if parent_id else ""
        node = HierarchyNode(
            id=f"{prefix}{node_type.value}-{name}",
            name=name,
            type=node_type,
            parent_id=parent_id,
        )
        if node_type is NodeType.PROJECT:
            node.daily_data = _leaf_daily_data(group)
        else:
            node.children = _build_level(group, depth + 1, node.id)
            node.daily_data = _roll_up(node.children, with_breakdown=node_type is NodeType.USER)
        nodes.append(node)
    return nodes


def build_hierarchy(rows: Iterable[FactRow]) -> list[HierarchyNode]:
    """Area -> position -> user -> project forest in first-seen order."""

    return _build_level(list(rows), 0, None)


def aggregate(
    rows: Iterable[FactRow | Mapping[str, Any]],
    filters: CapacityFilters | None = None,
) -> CapacityAggregation:
    filtered = filter_rows(coerce_rows(rows), filters)
    return CapacityAggregation(
        hierarchy=build_hierarchy(filtered),
        daily_series=build_daily_series(filtered),
    )


def capacity_filter_options(rows: Iterable[FactRow | Mapping[str, Any]]) -> CapacityFilterOptions:
    """Sorted distinct values offered by the area/position/user selectors."""

    fact_rows = coerce_rows(rows)
    return CapacityFilterOptions(
        areas=sorted({row.area for row in fact_rows}),
        positions=sorted({row.position for row in fact_rows}),
        users=sorted({row.user_name for row in fact_rows}),
    )


def iter_nodes(nodes: Iterable[HierarchyNode]) -> Iterable[HierarchyNode]:
    """Depth-first, parents before children."""

    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


@dataclass(slots=True, frozen=True)
class MonthlyCapacity:
    month: str
    capacity: Decimal
    reserved_hours: Decimal
    available_hours: Decimal


def monthly_capacity(rows: Iterable[Mapping[str, Any]]) -> list[MonthlyCapacity]:
    """Net capacity against reserved hours per month, from capacity datamart rows.

    Availability is floored at zero per row before summing, so one overbooked
    user does not hide the free hours of another.
    """

    totals: dict[str, tuple[Decimal, Decimal, Decimal]] = {}
    for row in rows:
        month = normalize_month(row.get("month"))
        capacity = to_decimal(row.get("capacity"))
        reserved = to_decimal(row.get("reserved_hours"))
        total_capacity, total_reserved, total_available = totals.get(month, (ZERO, ZERO, ZERO))
        totals[month] = (
            total_capacity + capacity,
            total_reserved + reserved,
            total_available + max(ZERO, capacity - reserved),
        )
    return [
        MonthlyCapacity(
            month=month,
            capacity=totals[month][0],
            reserved_hours=totals[month][1],
            available_hours=totals[month][2],
        )
        for month in sorted(totals)
    ]

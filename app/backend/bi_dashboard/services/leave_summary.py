"""Leave analytics built on top of :func:`parse_leave_days`.

Leave days are always deduplicated per (user, month): the same day reported
by several project rows of one user counts once. Reserved hours are handled
according to :class:`ReservedHoursMode`.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from bi_dashboard.services.capacity_aggregation import ALL, ZERO, FactRow, coerce_rows
from bi_dashboard.services.leave_intervals import parse_leave_days
from bi_dashboard.services.periods import in_month_range, month_label

NO_PROJECT_LABEL = "Sin proyecto"

_MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")


class ReservedHoursMode(str, enum.Enum):
    """How reserved hours of leave rows are totalled per user.

    ``ALL_ROWS`` sums every row, so a (user, project, month) reported on
    several rows is counted several times. ``ONCE_PER_PROJECT_MONTH`` counts
    each (user, month, project) once, like the leave calendar does.
    """

    ALL_ROWS = "all_rows"
    ONCE_PER_PROJECT_MONTH = "once_per_project_month"


@dataclass(slots=True, frozen=True)
class LeaveFilters:
    user_id: str | None = None
    project_id: str | None = None
    month: str | None = None
    from_month: str | None = None
    to_month: str | None = None
    only_with_leave: bool = False


@dataclass(slots=True)
class UserLeaveSummary:
    user_id: str
    user_name: str
    total_leave_days: int = 0
    total_reserved_hours: Decimal = ZERO
    months_count: int = 0
    projects_count: int = 0
    leave_ranges: str = ""
    hours_per_leave_day: Decimal = ZERO


@dataclass(slots=True, frozen=True)
class LeaveTotals:
    total_leave_days: int
    total_reserved_hours: Decimal
    total_users: int
    total_projects: int


@dataclass(slots=True, frozen=True)
class ProjectLeaveSummary:
    project_name: str
    total_leave_days: int
    total_reserved_hours: Decimal
    users_count: int
    hours_per_leave_day: Decimal


@dataclass(slots=True, frozen=True)
class UserMonthLeave:
    user_name: str
    month: str
    month_label: str
    leave_days: int
    reserved_hours: Decimal


@dataclass(slots=True, frozen=True)
class CalendarProjectHours:
    project_name: str
    hours: Decimal


@dataclass(slots=True)
class CalendarUser:
    user_id: str
    user_name: str
    days: list[int] = field(default_factory=list)
    ranges: str = ""
    projects: list[CalendarProjectHours] = field(default_factory=list)


@dataclass(slots=True)
class CalendarMonth:
    month: str
    month_label: str
    users: list[CalendarUser]


@dataclass(slots=True, frozen=True)
class LeaveOption:
    id: str
    name: str


@dataclass(slots=True, frozen=True)
class LeaveFilterOptions:
    months: list[str]
    users: list[LeaveOption]
    projects: list[LeaveOption]


def _hours_per_day(hours: Decimal, days: int) -> Decimal:
    return hours / days if days > 0 else ZERO


def _leave_rows(rows: Iterable[FactRow | Mapping[str, Any]]) -> list[tuple[FactRow, set[int]]]:
    """Pair each row with its parsed days, dropping rows without leave."""

    paired: list[tuple[FactRow, set[int]]] = []
    for row in coerce_rows(rows):
        days = parse_leave_days(row.leave_intervals)
        if days:
            paired.append((row, days))
    return paired


def _project_key(row: FactRow) -> tuple[str, str, str]:
    return (row.user_id, row.period, f"{row.project_id}-{row.project_name}")


def _counted_rows(
    rows: Iterable[FactRow | Mapping[str, Any]],
    reserved_hours_mode: ReservedHoursMode,
) -> list[tuple[FactRow, set[int], Decimal]]:
    """Leave rows with the reserved hours each one contributes under ``reserved_hours_mode``."""

    processed: set[tuple[str, str, str]] = set()
    counted: list[tuple[FactRow, set[int], Decimal]] = []
    for row, days in _leave_rows(rows):
        hours = row.scheduled_hours
        if reserved_hours_mode is ReservedHoursMode.ONCE_PER_PROJECT_MONTH:
            key = _project_key(row)
            if key in processed:
                hours = ZERO
            processed.add(key)
        counted.append((row, days, hours))
    return counted


def filter_leave_rows(
    rows: Iterable[FactRow | Mapping[str, Any]],
    filters: LeaveFilters | None = None,
) -> list[FactRow]:
    """Apply the user/project/month selectors; a single month wins over a range."""

    active = filters or LeaveFilters()
    selected: list[FactRow] = []
    for row in coerce_rows(rows):
        if active.user_id not in (None, ALL) and row.user_id != str(active.user_id):
            continue
        if active.project_id not in (None, ALL) and row.project_id != str(active.project_id):
            continue
        if active.month and active.month != ALL:
            if row.period != active.month:
                continue
        elif not in_month_range(row.period, active.from_month, active.to_month):
            continue
        if active.only_with_leave and not parse_leave_days(row.leave_intervals):
            continue
        selected.append(row)
    return selected


def summarize_users(
    rows: Iterable[FactRow | Mapping[str, Any]],
    reserved_hours_mode: ReservedHoursMode = ReservedHoursMode.ALL_ROWS,
) -> list[UserLeaveSummary]:
    """Per-user leave summary, largest reserved hours first."""

    summaries: dict[str, UserLeaveSummary] = {}
    month_days: dict[tuple[str, str], set[int]] = {}
    months: dict[str, set[str]] = {}
    projects: dict[str, set[str]] = {}
    ranges: dict[str, dict[str, None]] = {}

    for row, days, hours in _counted_rows(rows, reserved_hours_mode):
        summary = summaries.get(row.user_id)
        if summary is None:
            summary = UserLeaveSummary(user_id=row.user_id, user_name=row.user_name)
            summaries[row.user_id] = summary
            months[row.user_id] = set()
            projects[row.user_id] = set()
            ranges[row.user_id] = {}

        month_days.setdefault((row.user_id, row.period), set()).update(days)
        months[row.user_id].add(row.period)
        projects[row.user_id].add(row.project_id)
        ranges[row.user_id][row.leave_intervals] = None
        summary.total_reserved_hours += hours

    for (user_id, _month), days in month_days.items():
        summaries[user_id].total_leave_days += len(days)

    for user_id, summary in summaries.items():
        summary.months_count = len(months[user_id])
        summary.projects_count = len(projects[user_id])
        summary.leave_ranges = ", ".join(ranges[user_id])
        summary.hours_per_leave_day = _hours_per_day(summary.total_reserved_hours, summary.total_leave_days)

    return sorted(summaries.values(), key=lambda item: item.total_reserved_hours, reverse=True)


def leave_totals(
    rows: Iterable[FactRow | Mapping[str, Any]],
    reserved_hours_mode: ReservedHoursMode = ReservedHoursMode.ALL_ROWS,
) -> LeaveTotals:
    month_days: dict[tuple[str, str], set[int]] = {}
    reserved = ZERO
    users: set[str] = set()
    projects: set[str] = set()
    for row, days, hours in _counted_rows(rows, reserved_hours_mode):
        month_days.setdefault((row.user_id, row.period), set()).update(days)
        reserved += hours
        users.add(row.user_id)
        projects.add(row.project_id)
    return LeaveTotals(
        total_leave_days=sum(len(days) for days in month_days.values()),
        total_reserved_hours=reserved,
        total_users=len(users),
        total_projects=len(projects),
    )


def summarize_projects(
    rows: Iterable[FactRow | Mapping[str, Any]],
    reserved_hours_mode: ReservedHoursMode = ReservedHoursMode.ALL_ROWS,
) -> list[ProjectLeaveSummary]:
    """Per-project leave totals.

    Leave days here are the plain sum of each row's day count; they are not
    deduplicated across users.
    """

    days_by_project: dict[str, int] = {}
    hours_by_project: dict[str, Decimal] = {}
    users_by_project: dict[str, set[str]] = {}
    for row, days, hours in _counted_rows(rows, reserved_hours_mode):
        name = row.project_name
        days_by_project[name] = days_by_project.get(name, 0) + len(days)
        hours_by_project[name] = hours_by_project.get(name, ZERO) + hours
        users_by_project.setdefault(name, set()).add(row.user_name)

    summaries = [
        ProjectLeaveSummary(
            project_name=name,
            total_leave_days=total_days,
            total_reserved_hours=hours_by_project[name],
            users_count=len(users_by_project[name]),
            hours_per_leave_day=_hours_per_day(hours_by_project[name], total_days),
        )
        for name, total_days in days_by_project.items()
    ]
    return sorted(summaries, key=lambda item: item.total_reserved_hours, reverse=True)


def user_month_series(
    rows: Iterable[FactRow | Mapping[str, Any]],
    reserved_hours_mode: ReservedHoursMode = ReservedHoursMode.ALL_ROWS,
) -> list[UserMonthLeave]:
    days: dict[tuple[str, str], set[int]] = {}
    hours: dict[tuple[str, str], Decimal] = {}
    for row, parsed, row_hours in _counted_rows(rows, reserved_hours_mode):
        key = (row.user_name, row.period)
        days.setdefault(key, set()).update(parsed)
        hours[key] = hours.get(key, ZERO) + row_hours

    series = [
        UserMonthLeave(
            user_name=user_name,
            month=month,
            month_label=month_label(month),
            leave_days=len(month_days),
            reserved_hours=hours[(user_name, month)],
        )
        for (user_name, month), month_days in days.items()
    ]
    return sorted(series, key=lambda item: (item.user_name.casefold(), item.month))


def build_leave_calendar(rows: Iterable[FactRow | Mapping[str, Any]]) -> list[CalendarMonth]:
    """Month -> user view with the reserved hours of each project.

    Every (user, month, project) contributes its reserved hours once; the
    first row seen for that combination provides the value.
    """

    calendar: dict[str, dict[str, CalendarUser]] = {}
    day_sets: dict[tuple[str, str], set[int]] = {}
    range_sets: dict[tuple[str, str], dict[str, None]] = {}
    project_hours: dict[tuple[str, str], dict[str, Decimal]] = {}
    processed: set[tuple[str, str, str]] = set()

    for row, days in _leave_rows(rows):
        users = calendar.setdefault(row.period, {})
        key = (row.period, row.user_name)
        if row.user_name not in users:
            users[row.user_name] = CalendarUser(user_id=row.user_id, user_name=row.user_name)
            day_sets[key] = set()
            range_sets[key] = {}
            project_hours[key] = {}

        day_sets[key].update(days)
        range_sets[key][row.leave_intervals] = None

        project_key = _project_key(row)
        if project_key in processed:
            continue
        processed.add(project_key)
        if row.project_name:
            project_hours[key][row.project_name] = row.scheduled_hours

    months: list[CalendarMonth] = []
    for month in sorted(calendar):
        users = list(calendar[month].values())
        for user in users:
            key = (month, user.user_name)
            user.days = sorted(day_sets[key])
            user.ranges = ", ".join(range_sets[key])
            user.projects = sorted(
                (CalendarProjectHours(project_name=name, hours=hours) for name, hours in project_hours[key].items()),
                key=lambda item: item.hours,
                reverse=True,
            )
        months.append(CalendarMonth(month=month, month_label=month_label(month), users=users))
    return months


def leave_filter_options(rows: Iterable[FactRow | Mapping[str, Any]]) -> LeaveFilterOptions:
    fact_rows = coerce_rows(rows)
    months = sorted({row.period for row in fact_rows if _MONTH_KEY_RE.match(row.period)})

    users: dict[str, LeaveOption] = {}
    projects: dict[str, LeaveOption] = {}
    for row in fact_rows:
        if not parse_leave_days(row.leave_intervals):
            continue
        users[row.user_id] = LeaveOption(id=row.user_id, name=row.user_name)
        projects[row.project_id] = LeaveOption(id=row.project_id, name=row.project_name or NO_PROJECT_LABEL)

    return LeaveFilterOptions(
        months=months,
        users=sorted(users.values(), key=lambda option: option.name.casefold()),
        projects=sorted(projects.values(), key=lambda option: option.name.casefold()),
    )

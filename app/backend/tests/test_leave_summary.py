from __future__ import annotations

from decimal import Decimal

from bi_dashboard.services.leave_summary import (
    NO_PROJECT_LABEL,
    LeaveFilters,
    ReservedHoursMode,
    build_leave_calendar,
    filter_leave_rows,
    leave_filter_options,
    leave_totals,
    summarize_projects,
    summarize_users,
    user_month_series,
)


def _leave(
    *,
    user_id: int = 1,
    user_name: str = "Ana",
    project_id: int = 7,
    project_name: str = "Apollo",
    month: str = "2023-10",
    licencias: str | None = "[1-3]",
    reserved_hours: object = 10,
) -> dict[str, object]:
    return {
        "company_id": 4195,
        "project_id": project_id,
        "project_name": project_name,
        "pm_name": "PM",
        "user_id": user_id,
        "user_name": user_name,
        "is_pm": False,
        "month": month,
        "licencias": licencias,
        "reserved_hours": reserved_hours,
    }


def test_duplicate_rows_do_not_double_leave_days() -> None:
    rows = [_leave(), _leave()]

    [summary] = summarize_users(rows)

    assert summary.total_leave_days == 3
    assert summary.months_count == 1
    assert summary.projects_count == 1
    assert summary.leave_ranges == "[1-3]"


def test_reserved_hours_modes_disagree_on_duplicate_rows() -> None:
    rows = [_leave(), _leave()]

    [all_rows] = summarize_users(rows, ReservedHoursMode.ALL_ROWS)
    [once] = summarize_users(rows, ReservedHoursMode.ONCE_PER_PROJECT_MONTH)

    # The default keeps summing every row even though the leave days are deduplicated.
    assert all_rows.total_reserved_hours == Decimal("20")
    assert all_rows.hours_per_leave_day == Decimal("20") / 3
    assert once.total_reserved_hours == Decimal("10")
    assert once.total_leave_days == all_rows.total_leave_days == 3


def test_leave_days_are_deduplicated_per_month_not_across_months() -> None:
    rows = [
        _leave(month="2023-10", licencias="[1-3]"),
        _leave(month="2023-10-01T00:00:00Z", project_id=8, project_name="Zeus", licencias="[3-4]"),
        _leave(month="2023-11", licencias="[1-3]"),
    ]

    [summary] = summarize_users(rows)

    assert summary.total_leave_days == 4 + 3
    assert summary.months_count == 2
    assert summary.projects_count == 2
    assert summary.total_reserved_hours == Decimal("30")
    assert summary.leave_ranges == "[1-3], [3-4]"


def test_rows_without_leave_are_skipped() -> None:
    rows = [
        _leave(user_id=1, licencias="", reserved_hours=50),
        _leave(user_id=2, user_name="Luis", licencias="[x]", reserved_hours=50),
        _leave(user_id=3, user_name="Eva", licencias="[5]", reserved_hours=8),
    ]

    summaries = summarize_users(rows)

    assert [summary.user_name for summary in summaries] == ["Eva"]


def test_users_are_sorted_by_reserved_hours_descending() -> None:
    rows = [
        _leave(user_id=1, user_name="Ana", reserved_hours=5),
        _leave(user_id=2, user_name="Luis", reserved_hours=30),
        _leave(user_id=3, user_name="Eva", reserved_hours=None),
    ]

    summaries = summarize_users(rows)

    assert [summary.user_name for summary in summaries] == ["Luis", "Ana", "Eva"]
    assert summaries[2].total_reserved_hours == Decimal("0")


def test_filter_leave_rows_by_user_project_and_months() -> None:
    rows = [
        _leave(user_id=1, month="2023-09"),
        _leave(user_id=1, month="2023-10", project_id=8),
        _leave(user_id=2, month="2023-11", licencias=None),
    ]

    assert len(filter_leave_rows(rows, LeaveFilters(user_id="1"))) == 2
    assert len(filter_leave_rows(rows, LeaveFilters(project_id="8"))) == 1
    assert [row.period for row in filter_leave_rows(rows, LeaveFilters(from_month="2023-10"))] == [
        "2023-10",
        "2023-11",
    ]
    assert [row.period for row in filter_leave_rows(rows, LeaveFilters(month="2023-09", to_month="2023-08"))] == [
        "2023-09"
    ]
    assert len(filter_leave_rows(rows, LeaveFilters(only_with_leave=True))) == 2


def test_all_sentinel_leaves_filters_unconstrained() -> None:
    rows = [_leave(user_id=1, month="2023-09"), _leave(user_id=2, month="2023-10")]

    kept = filter_leave_rows(rows, LeaveFilters(user_id="all", project_id="all", month="all"))

    assert [row.user_id for row in kept] == ["1", "2"]


def test_leave_totals() -> None:
    rows = [
        _leave(user_id=1, project_id=7, licencias="[1-2]", reserved_hours=4),
        _leave(user_id=1, project_id=8, licencias="[2-3]", reserved_hours=6),
        _leave(user_id=2, project_id=7, licencias="[9]", reserved_hours=1),
        _leave(user_id=3, project_id=9, licencias=None, reserved_hours=100),
    ]

    totals = leave_totals(rows)

    assert totals.total_leave_days == 3 + 1
    assert totals.total_reserved_hours == Decimal("11")
    assert totals.total_users == 2
    assert totals.total_projects == 2


def test_once_per_project_month_mode_applies_to_every_hours_figure() -> None:
    rows = [_leave(), _leave(), _leave(project_id=8, reserved_hours=5)]
    mode = ReservedHoursMode.ONCE_PER_PROJECT_MONTH

    [user] = summarize_users(rows, mode)
    totals = leave_totals(rows, mode)
    [project] = summarize_projects(rows, mode)
    [entry] = user_month_series(rows, mode)

    assert user.total_reserved_hours == Decimal("15")
    assert totals.total_reserved_hours == user.total_reserved_hours
    assert entry.reserved_hours == Decimal("15")
    assert project.total_reserved_hours == Decimal("15")
    assert project.total_leave_days == 9
    assert leave_totals(rows).total_reserved_hours == Decimal("25")


def test_summarize_projects_sums_row_day_counts() -> None:
    rows = [
        _leave(user_id=1, user_name="Ana", project_name="Apollo", licencias="[1-2]", reserved_hours=4),
        _leave(user_id=2, user_name="Luis", project_name="Apollo", licencias="[1-2]", reserved_hours=4),
        _leave(user_id=2, user_name="Luis", project_name="Zeus", licencias="[5]", reserved_hours=20),
    ]

    projects = summarize_projects(rows)

    assert [project.project_name for project in projects] == ["Zeus", "Apollo"]
    apollo = projects[1]
    assert apollo.total_leave_days == 4
    assert apollo.users_count == 2
    assert apollo.hours_per_leave_day == Decimal("2")


def test_user_month_series_is_sorted_by_user_then_month() -> None:
    rows = [
        _leave(user_name="Luis", user_id=2, month="2023-11", licencias="[1]"),
        _leave(user_name="Ana", month="2023-11", licencias="[1-2]"),
        _leave(user_name="Ana", month="2023-10", licencias="[4]", reserved_hours=3),
        _leave(user_name="Ana", month="2023-10", licencias="[4-5]", project_id=8, reserved_hours=2),
    ]

    series = user_month_series(rows)

    assert [(entry.user_name, entry.month) for entry in series] == [
        ("Ana", "2023-10"),
        ("Ana", "2023-11"),
        ("Luis", "2023-11"),
    ]
    assert series[0].leave_days == 2
    assert series[0].reserved_hours == Decimal("5")
    assert series[0].month_label == "Oct-2023"


def test_calendar_counts_each_project_once_per_user_and_month() -> None:
    rows = [
        _leave(month="2023-11", licencias="[10]", reserved_hours=8),
        _leave(month="2023-10", licencias="[1-3]", reserved_hours=10),
        _leave(month="2023-10", licencias="[1-3]", reserved_hours=10),
        _leave(month="2023-10", project_id=8, project_name="Zeus", licencias="[5]", reserved_hours=30),
    ]

    calendar = build_leave_calendar(rows)

    assert [month.month for month in calendar] == ["2023-10", "2023-11"]
    october = calendar[0]
    assert october.month_label == "Oct-2023"
    [ana] = october.users
    assert ana.days == [1, 2, 3, 5]
    assert ana.ranges == "[1-3], [5]"
    assert [(project.project_name, project.hours) for project in ana.projects] == [
        ("Zeus", Decimal("30")),
        ("Apollo", Decimal("10")),
    ]


def test_leave_filter_options() -> None:
    rows = [
        _leave(user_id=2, user_name="luis", project_id=8, project_name="", month="2023-11"),
        _leave(user_id=1, user_name="Ana", project_id=7, month="2023-10-01T00:00:00Z"),
        _leave(user_id=3, user_name="Eva", project_id=9, licencias=None, month="bad"),
    ]

    options = leave_filter_options(rows)

    assert options.months == ["2023-10", "2023-11"]
    assert [(option.id, option.name) for option in options.users] == [("1", "Ana"), ("2", "luis")]
    assert [(option.id, option.name) for option in options.projects] == [
        ("7", "Apollo"),
        ("8", NO_PROJECT_LABEL),
    ]

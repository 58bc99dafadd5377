import pytest

from bi_dashboard.core.config import get_settings
from bi_dashboard.services.leave_intervals import parse_leave_days


@pytest.mark.parametrize("raw", ["", None, "   ", "[]", "[ ]"])
def test_empty_input_has_no_days(raw: str | None) -> None:
    assert parse_leave_days(raw) == set()


def test_single_days_and_ranges_are_unioned() -> None:
    days = parse_leave_days("[2] [7-15] [20-25]")

    assert days == {2, 7, 8, 9, 10, 11, 12, 13, 14, 15, 20, 21, 22, 23, 24, 25}
    assert len(days) == 16


def test_single_day_range_collapses() -> None:
    assert parse_leave_days("[5-5]") == {5}


def test_malformed_tokens_are_ignored() -> None:
    assert parse_leave_days("[abc]") == set()
    assert parse_leave_days("[1-x] [3]") == {3}
    assert parse_leave_days("[--] [-] [4]") == {4}


def test_reversed_range_contributes_nothing() -> None:
    assert parse_leave_days("[10-3] [1]") == {1}


def test_brackets_are_optional_and_whitespace_is_flexible() -> None:
    assert parse_leave_days("  1\t[3-4]\n5-6 ") == {1, 3, 4, 5, 6}


def test_overlapping_ranges_are_deduplicated() -> None:
    assert parse_leave_days("[1-5] [3-7] [5]") == {1, 2, 3, 4, 5, 6, 7}


def test_comma_separated_entries_inside_one_bracket() -> None:
    assert parse_leave_days("[2,3,15-18]") == {2, 3, 15, 16, 17, 18}


def test_days_have_no_calendar_validation() -> None:
    assert parse_leave_days("[32] [0]") == {0, 32}


def test_extra_dash_segments_use_first_two_numbers() -> None:
    assert parse_leave_days("[10-12-15]") == {10, 11, 12}


def test_huge_ranges_are_rejected() -> None:
    limit = get_settings().leave_max_range_span

    assert parse_leave_days(f"[1-{limit + 5}] [7]") == {7}
    assert parse_leave_days("[0-1000]", max_range_span=1000) == set()


def test_range_limit_can_be_lifted() -> None:
    assert parse_leave_days("[0-1000]", max_range_span=0) == set(range(0, 1001))
    assert parse_leave_days("[5-9]", max_range_span=4) == set()
    assert parse_leave_days("[5-9]", max_range_span=5) == {5, 6, 7, 8, 9}

from datetime import date, datetime

from bi_dashboard.services.periods import in_month_range, month_label, normalize_day, normalize_month


def test_normalize_month_accepts_common_shapes() -> None:
    assert normalize_month("2023-10") == "2023-10"
    assert normalize_month("2023-10-01") == "2023-10"
    assert normalize_month("2023-10-01T00:00:00.000Z") == "2023-10"
    assert normalize_month(date(2024, 2, 1)) == "2024-02"
    assert normalize_month(datetime(2024, 12, 31, 23, 0)) == "2024-12"


def test_normalize_month_keeps_unparseable_values() -> None:
    assert normalize_month("octubre") == "octubre"
    assert normalize_month(None) == ""


def test_normalize_day() -> None:
    assert normalize_day(date(2023, 10, 1)) == "2023-10-01"
    assert normalize_day("2023-10-01T05:00:00Z") == "2023-10-01"
    assert normalize_day("someday") == "someday"


def test_month_label_uses_spanish_abbreviations() -> None:
    assert month_label("2023-10") == "Oct-2023"
    assert month_label("2024-01-15") == "Ene-2024"
    assert month_label("2024-13") == "2024-13"
    assert month_label("n/a") == "n/a"


def test_in_month_range_is_inclusive() -> None:
    assert in_month_range("2023-10", "2023-10", "2023-12")
    assert in_month_range("2023-12", None, "2023-12")
    assert not in_month_range("2023-09", "2023-10", None)
    assert not in_month_range("2024-01", "2023-10", "2023-12")
    assert in_month_range("2020-01", None, None)

"""Normalisation of the period values found in warehouse rows.

Months arrive either as ``YYYY-MM`` strings, as ISO-8601 timestamps or as
``date``/``datetime`` objects depending on the view. Values that cannot be
parsed are returned unchanged so they still group together; such keys do not
sort chronologically.
"""

from __future__ import annotations

import re
from datetime import date, datetime

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

_SHORT_MONTHS_ES = (
    "Ene",
    "Feb",
    "Mar",
    "Abr",
    "May",
    "Jun",
    "Jul",
    "Ago",
    "Sep",
    "Oct",
    "Nov",
    "Dic",
)


def _parse_datetime(value: str) -> datetime | None:
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def normalize_month(value: object) -> str:
    """Return ``YYYY-MM`` for any recognisable month value, else the raw string."""

    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return f"{value.year:04d}-{value.month:02d}"
    raw = str(value)
    if _MONTH_RE.match(raw):
        return raw
    parsed = _parse_datetime(raw)
    if parsed is None:
        return raw
    return f"{parsed.year:04d}-{parsed.month:02d}"


def normalize_day(value: object) -> str:
    """Return ``YYYY-MM-DD`` for any recognisable day value, else the raw string."""

    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    raw = str(value)
    parsed = _parse_datetime(raw)
    if parsed is None:
        return raw
    return parsed.date().isoformat()


def month_label(value: object) -> str:
    """Short display label such as ``Oct-2023``."""

    month = normalize_month(value)
    match = _MONTH_RE.match(month)
    if match is None:
        return month
    month_number = int(match.group(2))
    if not 1 <= month_number <= 12:
        return month
    return f"{_SHORT_MONTHS_ES[month_number - 1]}-{match.group(1)}"


def in_month_range(month: str, from_month: str | None, to_month: str | None) -> bool:
    """Inclusive string comparison on normalised ``YYYY-MM`` keys."""

    if from_month and month < from_month:
        return False
    if to_month and month > to_month:
        return False
    return True

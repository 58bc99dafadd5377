"""Parsing of the compact leave-interval strings (``licencias``).

Grammar: whitespace separated tokens, each ``[d]`` or ``[d1-d2]``. Brackets
are optional and several comma separated entries may share one bracket
(``[2,3,15-18]``). Day numbers are opaque integers with no calendar meaning.
"""

from __future__ import annotations

import logging
import re

from bi_dashboard.core.config import get_settings

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_BRACKETS_RE = re.compile(r"[\[\]]")


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def _token_days(token: str, max_range_span: int) -> set[int]:
    if "-" in token:
        pieces = token.split("-")
        start = _parse_int(pieces[0])
        end = _parse_int(pieces[1])
        if start is None or end is None:
            return set()
        if max_range_span and end - start >= max_range_span:
            return set()
        # A reversed range yields nothing.
        return set(range(start, end + 1))

    day = _parse_int(token)
    return {day} if day is not None else set()


def parse_leave_days(raw: str | None, max_range_span: int | None = None) -> set[int]:
    """Return the set of day numbers encoded in ``raw``.

    Malformed tokens contribute nothing; this function never raises for bad
    input data. Ranges covering more than ``max_range_span`` days (default
    ``Settings.leave_max_range_span``) are treated as corrupt; 0 lifts the
    limit.
    """

    if not raw:
        return set()

    span_limit = max_range_span if max_range_span is not None else get_settings().leave_max_range_span

    days: set[int] = set()
    for token in _WHITESPACE_RE.split(str(raw)):
        cleaned = _BRACKETS_RE.sub("", token)
        if not cleaned:
            continue
        for part in cleaned.split(","):
            if not part:
                continue
            parsed = _token_days(part, span_limit)
            if not parsed:
                logger.debug("Ignoring malformed leave token %r in %r", part, raw)
            days |= parsed
    return days

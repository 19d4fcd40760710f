"""Normalisation of card timestamps into DD/MM/YYYY dates."""

from __future__ import annotations

import re
from datetime import date, datetime

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

CANONICAL_FORMAT = "%d/%m/%Y"

_RELATIVE_PATTERN = re.compile(r"^\s*(\d+)\s+(day|week|month|year)s?\s+ago", re.IGNORECASE)


def normalize_date(raw: str | None, now: datetime | date) -> str:
    """Convert ``raw`` into the canonical ``DD/MM/YYYY`` form.

    ``raw`` is either a relative phrase such as ``"6 months ago"`` (resolved
    against ``now`` with calendar-aware arithmetic) or an absolute timestamp.
    Anything else, including empty input, yields ``""``.
    """

    if not raw:
        return ""
    text = str(raw).strip()
    if not text:
        return ""

    anchor = now.date() if isinstance(now, datetime) else now
    match = _RELATIVE_PATTERN.match(text)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()
        try:
            resolved = anchor - _relative_delta(amount, unit)
        except (OverflowError, ValueError):
            return ""
        return resolved.strftime(CANONICAL_FORMAT)

    parsed = _parse_absolute(text, anchor)
    if parsed is None:
        return ""
    return parsed.strftime(CANONICAL_FORMAT)


def _relative_delta(amount: int, unit: str) -> relativedelta:
    if unit == "day":
        return relativedelta(days=amount)
    if unit == "week":
        return relativedelta(days=amount * 7)
    if unit == "month":
        return relativedelta(months=amount)
    return relativedelta(years=amount)


def _parse_absolute(text: str, anchor: date) -> date | None:
    normalised = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(normalised).date()
    except ValueError:
        pass
    # Fields missing from the text (such as the year) come from ``anchor``;
    # numeric dates read day first, like the output.
    default = datetime(anchor.year, anchor.month, anchor.day)
    try:
        return dateparser.parse(text, default=default, dayfirst=True).date()
    except (dateparser.ParserError, ValueError, OverflowError):
        return None


__all__ = ["CANONICAL_FORMAT", "normalize_date"]

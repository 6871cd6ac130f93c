"""
Date normalization for imported rows.

normalize_date never fails: anything it cannot read as a real calendar date
becomes today's date. Numeric dates without a four digit year on either end
(2-digit years, MM/DD vs DD/MM) are not guessed at and also fall back to
today.
"""

import re
from datetime import date, datetime
from typing import Optional

# Unambiguous textual formats tried after ISO parsing
TEXT_DATE_FORMATS = [
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d-%b-%Y",
    "%d %b, %Y",
]


def _parse_general(candidate: str) -> Optional[date]:
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        pass

    # Remove ordinal suffixes like '1st', '2nd'
    cleaned = re.sub(r"(\d+)(st|nd|rd|th)\b", r"\1", candidate)
    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def _parse_numeric_parts(candidate: str) -> Optional[date]:
    parts = re.split(r"[/\-]", candidate)
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return None
    first, middle, last = (p.strip() for p in parts)

    try:
        if len(first) == 4:
            return date(int(first), int(middle), int(last))
        if len(last) == 4:
            # Day first, the convention of the exporting population
            return date(int(last), int(middle), int(first))
    except ValueError:
        return None
    return None


def normalize_date(raw: Optional[str], today: Optional[date] = None) -> date:
    """
    Convert a raw cell value into a calendar date.

    Args:
        raw: Cell text, possibly empty
        today: Fallback date; defaults to the current local date

    Returns:
        The parsed date, or the fallback when nothing matched
    """
    fallback = today or date.today()
    candidate = (raw or "").strip()
    if not candidate:
        return fallback

    parsed = _parse_general(candidate)
    if parsed is None:
        parsed = _parse_numeric_parts(candidate)
    return parsed or fallback


def format_date(value: date) -> str:
    return value.isoformat()

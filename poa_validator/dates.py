"""
Lenient date parsing for OCR text.

Accepts the three shapes that appear on California POA forms:
``01/15/2024`` (US month-first, ``-`` also allowed, 2-digit years pivot at 50),
``2024-01-15`` and ``January 15, 2024``. Anything that is not a real calendar
date yields None rather than a guess.
"""

from __future__ import annotations

import re
from datetime import date

_MONTHS: dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# Regex fragment for use inside labeled-field patterns. ISO first so a
# year-first date is never half-matched as month-first.
DATE_FRAGMENT = (
    r"(?:\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"
    r"|(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4})"
)

_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NUMERIC = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{2}|\d{4})$")
_NAMED = re.compile(r"^([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})$", re.IGNORECASE)


def parse_date(raw: str) -> date | None:
    """Parse one date string. Returns None when it is not a valid date."""
    value = raw.strip()

    try:
        match = _ISO.match(value)
        if match:
            year, month, day = (int(g) for g in match.groups())
            return date(year, month, day)

        match = _NUMERIC.match(value)
        if match:
            month, day = int(match.group(1)), int(match.group(2))
            year = _expand_year(match.group(3))
            return date(year, month, day)

        match = _NAMED.match(value)
        if match:
            month = _MONTHS.get(match.group(1)[:3].lower())
            if month is None:
                return None
            return date(int(match.group(3)), month, int(match.group(2)))
    except ValueError:
        return None

    return None


def _expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) == 2:
        return 2000 + year if year < 50 else 1900 + year
    return year

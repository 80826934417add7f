"""
Date normalization for scraped show dates.

Listing and detail pages expose dates either as machine-readable datetime
attributes ("2025-11-01T20:00:00Z", "2025-11-01") or as loose human text
("Saturday, November 1 @ 8:00 pm"). Both are reduced to a calendar date.

Human text must name a month and a day; a year is optional and, when
missing, the next occurrence after the run day is used. Text carrying only
a time ("Doors 7:00 pm") is not a date.

Unparseable input falls back to the run day, and callers that need to know
about it use resolve_show_date() to get the estimated flag as well.
"""

import datetime as dt
import re
from typing import Optional

from dateutil import parser as date_parser

# Leading ISO calendar date, with or without a time part
ISO_DATE_PATTERN = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})")

# "@" separates date and time in event-calendar markup
HUMAN_DATE_SEPARATORS = re.compile(r"\s*[@|]\s*")

# dateutil moves a date to the named weekday; the calendar date is authoritative
WEEKDAY_NAMES = re.compile(
    r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|mon|tues?|wed|thu(?:rs?)?|fri|sat|sun)\b\.?",
    re.IGNORECASE,
)

# Two fill-in values that differ in every date field (both leap years).
# A field that comes back equal under both was written in the text.
FILL_DEFAULTS = (dt.datetime(2000, 1, 1), dt.datetime(2004, 2, 2))

# Year-less dates this far before the run day are recent past, not next year
RECENT_PAST_WINDOW = dt.timedelta(days=30)


def _next_occurrence(month: int, day: int, today: dt.date) -> Optional[dt.date]:
    """Resolve a year-less month/day against the run day."""
    for year in range(today.year, today.year + 5):
        try:
            candidate = dt.date(year, month, day)
        except ValueError:
            continue  # Feb 29 outside a leap year
        if candidate >= today - RECENT_PAST_WINDOW:
            return candidate
    return None


def parse_show_date(raw: Optional[str], today: Optional[dt.date] = None) -> Optional[dt.date]:
    """Parse scraped date text into a calendar date.

    Args:
        raw: Date text as captured from the page
        today: Reference day used to pick the year when the text has none

    Returns:
        The calendar date, or None if the text holds no valid date
    """
    if not raw or not raw.strip():
        return None

    iso_match = ISO_DATE_PATTERN.match(raw)
    if iso_match:
        # The date as written, not shifted into UTC
        try:
            return dt.date.fromisoformat(iso_match.group(1))
        except ValueError:
            return None

    today = today or dt.date.today()
    text = HUMAN_DATE_SEPARATORS.sub(" ", WEEKDAY_NAMES.sub(" ", raw.strip()))
    try:
        first, second = (
            date_parser.parse(text, fuzzy=True, default=default) for default in FILL_DEFAULTS
        )
    except (ValueError, OverflowError, TypeError):
        return None

    if (first.month, first.day) != (second.month, second.day):
        return None
    if first.year == second.year:
        return first.date()
    return _next_occurrence(first.month, first.day, today)


def resolve_show_date(
    raw: Optional[str], today: Optional[dt.date] = None
) -> tuple[dt.date, bool]:
    """Parse date text, falling back to today.

    Returns:
        Tuple of (date, estimated) where estimated is True if the fallback was used
    """
    today = today or dt.date.today()
    parsed = parse_show_date(raw, today=today)
    if parsed is None:
        return today, True
    return parsed, False


def normalize_date(raw: Optional[str], today: Optional[dt.date] = None) -> str:
    """Normalize scraped date text to YYYY-MM-DD (today's date if unparseable)."""
    resolved, _ = resolve_show_date(raw, today=today)
    return resolved.isoformat()

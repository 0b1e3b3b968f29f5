"""
Calendar Date Module

Lenient parsing of the date forms that reach the core from forms, CSV/JSON
imports and synced copies, calendar-month arithmetic, and the past-due
predicate shared by loans and advances.
"""

from datetime import date, datetime
from typing import Any, Optional, Tuple
import calendar
import re

from dateutil import parser as date_parser

from .anomalies import AnomalyKind, DataQualityIssue, report_issue


_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DAY_FIRST = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from the forms the core accepts

    Accepted forms, tried in order:
    - ``date`` / ``datetime`` objects (time of day dropped)
    - ISO ``YYYY-MM-DD``, optionally followed by a time part
    - ``DD/MM/YYYY``
    - any free-form text understood by ``dateutil``

    Args:
        value: Raw value

    Returns:
        Parsed date, or None when the value is not a usable date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    iso = _ISO_PREFIX.match(text)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        except ValueError:
            return None

    day_first = _DAY_FIRST.match(text)
    if day_first:
        day, month, year = (int(part) for part in day_first.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def resolve_date(
    value: Any,
    as_of: date,
    entity_type: str,
    entity_id: str,
    field: str
) -> Tuple[date, Optional[DataQualityIssue]]:
    """
    Parse a date, falling back to ``as_of`` when it is unusable

    The fallback makes an unreadable date behave as "due now". It is logged
    and returned as an INVALID_DATE issue so the caller can surface it.

    Returns:
        Tuple of (resolved date, issue or None)
    """
    parsed = parse_date(value)
    if parsed is not None:
        return parsed, None

    issue = report_issue(
        AnomalyKind.INVALID_DATE,
        entity_type=entity_type,
        entity_id=entity_id,
        field=field,
        message=f"Unparseable {field} {value!r}, using {as_of.isoformat()}",
        raw_value=value,
    )
    return as_of, issue


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_past_due(due_date: date, today: date) -> bool:
    """A due date is past once today is strictly after it"""
    return today > due_date


def days_past_due(due_date: date, today: date) -> int:
    """Whole days since ``due_date``; zero when not yet due"""
    return max(0, (today - due_date).days)


def same_month(value: date, today: date) -> bool:
    """Check if ``value`` falls in today's calendar month"""
    return value.year == today.year and value.month == today.month

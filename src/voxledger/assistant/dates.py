"""Relative and absolute date phrases.

Resolves the date expressions people actually say ("yesterday", "next
Friday", "5th January", "in 3 days") against a reference day, and formats
dates the way replies read them out ("16 October 2026").
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta

MONTHS: dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

WEEKDAYS: dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

_MONTH_RE = "|".join(sorted(MONTHS, key=len, reverse=True))
_WEEKDAY_RE = "|".join(WEEKDAYS)


@dataclass(frozen=True)
class DateMatch:
    """A resolved date and where its phrase sits in the text."""

    value: date
    start: int
    end: int


def add_months(day: date, months: int) -> date:
    """Shift *day* by *months*, clamping to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _day_of_month(year: int, month: int, day: int, today: date, prefer_future: bool) -> date | None:
    """Build a day-month date, rolling to next year when it has passed."""
    resolved = _safe_date(year, month, day)
    if resolved is not None and prefer_future and resolved < today:
        resolved = _safe_date(year + 1, month, day)
    return resolved


def find_date(
    text: str,
    today: date | None = None,
    *,
    prefer_future: bool = False,
) -> DateMatch | None:
    """Find the first date phrase in *text* and resolve it.

    Args:
        text: Free-form utterance.
        today: Reference day (defaults to :meth:`date.today`).
        prefer_future: Roll bare day-month dates that already passed this
            year into next year (reminders), and read bare weekdays as the
            upcoming one.  Otherwise bare weekdays mean the most recent one.

    Returns:
        The resolved date with the span of the phrase, or ``None``.
    """
    today = today or date.today()
    lowered = text.lower()

    match = re.search(r"\b(\d{4})-(\d{2})-(\d{2})\b", lowered)
    if match:
        resolved = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if resolved:
            return DateMatch(resolved, match.start(), match.end())

    match = re.search(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b", lowered)
    if match:
        # Day first, as dates are written in India.
        resolved = _safe_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        if resolved:
            return DateMatch(resolved, match.start(), match.end())

    simple: list[tuple[str, date]] = [
        (r"\bday after tomorrow\b", today + timedelta(days=2)),
        (r"\bday before yesterday\b", today - timedelta(days=2)),
        (r"\btoday\b|\btonight\b", today),
        (r"\byesterday\b", today - timedelta(days=1)),
        (r"\btomorrow\b", today + timedelta(days=1)),
        (r"\bnext week\b", today + timedelta(days=7)),
        (r"\b(?:last week|a week ago|one week ago)\b", today - timedelta(days=7)),
        (r"\bnext month\b", add_months(today, 1)),
        (r"\b(?:last month|a month ago)\b", add_months(today, -1)),
    ]
    for pattern, value in simple:
        match = re.search(pattern, lowered)
        if match:
            return DateMatch(value, match.start(), match.end())

    match = re.search(r"\bin\s+(\d+)\s+(day|week|month)s?\b", lowered)
    if match:
        n, unit = int(match.group(1)), match.group(2)
        value = add_months(today, n) if unit == "month" else today + timedelta(
            days=n * (7 if unit == "week" else 1)
        )
        return DateMatch(value, match.start(), match.end())

    match = re.search(r"\b(\d+)\s+(day|week)s?\s+ago\b", lowered)
    if match:
        n = int(match.group(1)) * (7 if match.group(2) == "week" else 1)
        return DateMatch(today - timedelta(days=n), match.start(), match.end())

    match = re.search(rf"\b(?:(next|this|last|on)\s+)?({_WEEKDAY_RE})\b", lowered)
    if match:
        qualifier, weekday = match.group(1), WEEKDAYS[match.group(2)]
        ahead = (weekday - today.weekday()) % 7
        behind = (today.weekday() - weekday) % 7
        if qualifier == "next":
            value = today + timedelta(days=ahead or 7)
        elif qualifier == "last":
            value = today - timedelta(days=behind or 7)
        elif qualifier == "this" or prefer_future:
            value = today + timedelta(days=ahead)
        else:
            value = today - timedelta(days=behind)
        return DateMatch(value, match.start(), match.end())

    match = re.search(
        rf"\b(?:on\s+)?(?:the\s+)?(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?({_MONTH_RE})\b",
        lowered,
    )
    if match:
        resolved = _day_of_month(
            today.year, MONTHS[match.group(2)], int(match.group(1)), today, prefer_future,
        )
        if resolved:
            return DateMatch(resolved, match.start(), match.end())

    match = re.search(rf"\b(?:on\s+)?({_MONTH_RE})\s+(\d{{1,2}})(?:st|nd|rd|th)?\b", lowered)
    if match:
        resolved = _day_of_month(
            today.year, MONTHS[match.group(1)], int(match.group(2)), today, prefer_future,
        )
        if resolved:
            return DateMatch(resolved, match.start(), match.end())

    return None


def parse_date(
    text: str,
    today: date | None = None,
    *,
    prefer_future: bool = False,
) -> date | None:
    """Resolve the first date phrase in *text*, or return ``None``."""
    found = find_date(text, today, prefer_future=prefer_future)
    return found.value if found else None


def format_indian_date(day: date) -> str:
    """Format *day* the en-IN long way, e.g. ``16 October 2026``."""
    return f"{day.day} {calendar.month_name[day.month]} {day.year}"


# ── Query periods ─────────────────────────────────────────────────────────────

#: Phrase → period name, checked in order.
_PERIOD_PATTERNS: list[tuple[str, str]] = [
    (r"\btoday\b", "today"),
    (r"\byesterday\b", "yesterday"),
    (r"\bthis week\b", "this_week"),
    (r"\blast week\b", "last_week"),
    (r"\blast month\b", "last_month"),
    (r"\bthis year\b", "this_year"),
    (r"\bthis month\b", "this_month"),
]


def detect_period(text: str) -> str:
    """Return the reporting period a query mentions (default ``this_month``)."""
    lowered = text.lower()
    for pattern, name in _PERIOD_PATTERNS:
        if re.search(pattern, lowered):
            return name
    return "this_month"


def period_range(period: str, today: date | None = None) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` days of a named period."""
    today = today or date.today()
    if period == "today":
        return today, today
    if period == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if period == "this_week":
        start = today - timedelta(days=today.weekday())
        return start, today
    if period == "last_week":
        end = today - timedelta(days=today.weekday() + 1)
        return end - timedelta(days=6), end
    if period == "last_month":
        first_this = today.replace(day=1)
        end = first_this - timedelta(days=1)
        return end.replace(day=1), end
    if period == "this_year":
        return today.replace(month=1, day=1), today
    return today.replace(day=1), today


PERIOD_LABELS: dict[str, str] = {
    "today": "today",
    "yesterday": "yesterday",
    "this_week": "this week",
    "last_week": "last week",
    "this_month": "this month",
    "last_month": "last month",
    "this_year": "this year",
}

"""Natural-language date parsing.

Turns phrases like "tomorrow", "in 3 days", "next friday" or "jan 15th"
into datetimes with a fixed confidence per matcher. Matchers run in order
of specificity; the first hit wins. Everything except ISO-8601 input lands
on the end of the target day (23:59:59.999).
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from atomize.logging_config import get_logger

logger = get_logger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

FRIDAY = 4

_IN_DAYS = re.compile(r"^in\s+(\d+)\s+days?$")
_IN_WEEKS = re.compile(r"^in\s+(\d+)\s+weeks?$")
_NEXT_DAY = re.compile(r"^next\s+([a-z]+)$")
_THIS_DAY = re.compile(r"^(?:this\s+)?([a-z]+)$")
_BY_DAY = re.compile(r"^by\s+([a-z]+)$")
_MONTH_FIRST = re.compile(r"^([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?$")
_DAY_FIRST = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?([a-z]+)$")

# Trigger phrases for deadlines embedded in free text, tried in order
DEADLINE_PATTERNS = (
    re.compile(r"\bby\s+([^,.]+)", re.IGNORECASE),
    re.compile(r"\bdue\s+(?:on\s+)?([^,.]+)", re.IGNORECASE),
    re.compile(r"\bdeadline[:\s]+([^,.]+)", re.IGNORECASE),
    re.compile(r"\bbefore\s+([^,.]+)", re.IGNORECASE),
    re.compile(r"\buntil\s+([^,.]+)", re.IGNORECASE),
)


@dataclass
class ParsedDate:
    """A parsed date with the matcher's confidence."""

    date: datetime
    confidence: float
    original_text: str

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "confidence": self.confidence,
            "original_text": self.original_text,
        }


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def _weekday_index(name: str) -> int | None:
    try:
        return WEEKDAYS.index(name)
    except ValueError:
        return None


def _month_index(name: str) -> int | None:
    """Full month name or a prefix of at least three letters."""
    if len(name) < 3:
        return None
    for i, month in enumerate(MONTHS):
        if month.startswith(name):
            return i + 1
    return None


def _days_until(reference: datetime, weekday: int) -> int:
    """Days to the next occurrence of weekday strictly after reference."""
    return (weekday - reference.weekday()) % 7 or 7


# ─────────────────────────────────────────────────────────────────────────────
# Matchers: (normalized text, reference) -> (date, confidence) | None
# ─────────────────────────────────────────────────────────────────────────────

Match = Optional[tuple[datetime, float]]


def _match_today(text: str, ref: datetime) -> Match:
    if text in ("today", "now"):
        return end_of_day(ref), 1.0
    return None


def _match_tomorrow(text: str, ref: datetime) -> Match:
    if text == "tomorrow":
        return end_of_day(ref + timedelta(days=1)), 1.0
    return None


def _match_yesterday(text: str, ref: datetime) -> Match:
    if text == "yesterday":
        return end_of_day(ref - timedelta(days=1)), 1.0
    return None


def _match_next_week(text: str, ref: datetime) -> Match:
    if text == "next week":
        return end_of_day(ref + timedelta(days=7)), 0.9
    return None


def _match_in_days(text: str, ref: datetime) -> Match:
    m = _IN_DAYS.match(text)
    if m:
        return end_of_day(ref + timedelta(days=int(m.group(1)))), 1.0
    return None


def _match_in_weeks(text: str, ref: datetime) -> Match:
    m = _IN_WEEKS.match(text)
    if m:
        return end_of_day(ref + timedelta(weeks=int(m.group(1)))), 1.0
    return None


def _match_next_weekday(text: str, ref: datetime) -> Match:
    m = _NEXT_DAY.match(text)
    if m:
        weekday = _weekday_index(m.group(1))
        if weekday is not None:
            # "next" skips one more full week past the coming occurrence
            days = _days_until(ref, weekday) + 7
            return end_of_day(ref + timedelta(days=days)), 0.95
    return None


def _match_this_weekday(text: str, ref: datetime) -> Match:
    m = _THIS_DAY.match(text)
    if m:
        weekday = _weekday_index(m.group(1))
        if weekday is not None:
            return end_of_day(ref + timedelta(days=_days_until(ref, weekday))), 0.9
    return None


def _match_by_weekday(text: str, ref: datetime) -> Match:
    m = _BY_DAY.match(text)
    if m:
        weekday = _weekday_index(m.group(1))
        if weekday is not None:
            return end_of_day(ref + timedelta(days=_days_until(ref, weekday))), 0.9
    return None


def _match_month_day(text: str, ref: datetime) -> Match:
    m = _MONTH_FIRST.match(text)
    if m:
        month_name, day_str = m.group(1), m.group(2)
    else:
        m = _DAY_FIRST.match(text)
        if not m:
            return None
        day_str, month_name = m.group(1), m.group(2)

    month = _month_index(month_name)
    if month is None:
        return None
    day = int(day_str)

    for year in (ref.year, ref.year + 1):
        if day > calendar.monthrange(year, month)[1]:
            # Feb 29 outside a leap year, Apr 31, ...
            if year == ref.year:
                continue
            return None
        target = datetime(year, month, day, 23, 59, 59, 999000)
        if target >= ref:
            return target, 0.95
    return None


def _match_end_of_week(text: str, ref: datetime) -> Match:
    if text in ("end of week", "eow", "this weekend"):
        days = (FRIDAY - ref.weekday()) % 7
        return end_of_day(ref + timedelta(days=days)), 0.85
    return None


def _match_end_of_month(text: str, ref: datetime) -> Match:
    if text in ("end of month", "eom"):
        last_day = calendar.monthrange(ref.year, ref.month)[1]
        return end_of_day(ref.replace(day=last_day)), 0.9
    return None


MATCHERS: tuple[Callable[[str, datetime], Match], ...] = (
    _match_today,
    _match_tomorrow,
    _match_yesterday,
    _match_next_week,
    _match_in_days,
    _match_in_weeks,
    _match_next_weekday,
    _match_this_weekday,
    _match_by_weekday,
    _match_month_day,
    _match_end_of_week,
    _match_end_of_month,
)


def _parse_iso(text: str) -> datetime | None:
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def parse_natural_date(text: str, reference: datetime | None = None) -> ParsedDate | None:
    """
    Parse a natural-language date expression.

    Args:
        text: Phrase such as "tomorrow", "in 2 weeks", "next friday", "jan 15"
        reference: Instant the phrase is relative to (default: now)

    Returns:
        ParsedDate, or None if no matcher recognises the phrase or the
        date falls outside the representable range
    """
    if not text or not text.strip():
        return None

    ref = reference or datetime.now()
    normalized = " ".join(text.lower().split())

    for matcher in MATCHERS:
        try:
            result = matcher(normalized, ref)
        except OverflowError:
            # "in 99999999 days" lands past datetime.max
            logger.debug(f"Date out of range: {text!r}")
            return None
        if result is not None:
            value, confidence = result
            return ParsedDate(date=value, confidence=confidence, original_text=text)

    value = _parse_iso(text.strip())
    if value is not None:
        return ParsedDate(date=value, confidence=1.0, original_text=text)

    return None


def extract_deadline(text: str, reference: datetime | None = None) -> ParsedDate | None:
    """Find a deadline phrase ("by friday", "due tomorrow", ...) inside free text."""
    if not text:
        return None
    for pattern in DEADLINE_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        result = parse_natural_date(m.group(1).strip(), reference)
        if result is not None:
            return result
    return None


def strip_deadline_phrase(text: str, reference: datetime | None = None) -> str:
    """Remove the first recognised deadline phrase, for use as a clean title."""
    for pattern in DEADLINE_PATTERNS:
        m = pattern.search(text)
        if m and parse_natural_date(m.group(1).strip(), reference) is not None:
            cleaned = (text[: m.start()] + text[m.end():]).strip()
            return re.sub(r"\s{2,}", " ", cleaned).rstrip(" ,.") or text
    return text


def format_natural_date(value: datetime, reference: datetime | None = None) -> str:
    """Render a date relative to reference: "today", "friday", "next tuesday", "Mar 3"."""
    ref = reference or datetime.now()
    diff = (value.date() - ref.date()).days

    if diff == 0:
        return "today"
    if diff == 1:
        return "tomorrow"
    if diff == -1:
        return "yesterday"
    if 0 < diff <= 7:
        return WEEKDAYS[value.weekday()]
    if 7 < diff <= 14:
        return f"next {WEEKDAYS[value.weekday()]}"
    return f"{MONTHS[value.month - 1][:3].capitalize()} {value.day}"


__all__ = [
    "ParsedDate",
    "end_of_day",
    "extract_deadline",
    "format_natural_date",
    "parse_natural_date",
    "strip_deadline_phrase",
]

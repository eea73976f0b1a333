"""Tests for atomize/tasks/date_parser.py

The date parser turns the phrases people actually type ("friday",
"in 3 days", "jan 15th") into end-of-day datetimes. All tests use a fixed
reference of Wednesday 2026-03-11 10:00.
"""

from datetime import datetime

import pytest

from atomize.tasks.date_parser import (
    end_of_day,
    extract_deadline,
    format_natural_date,
    parse_natural_date,
    strip_deadline_phrase,
)

REF = datetime(2026, 3, 11, 10, 0)


def eod(year, month, day):
    return datetime(year, month, day, 23, 59, 59, 999000)


# ─────────────────────────────────────────────────────────────────────────────
# Relative Phrases
# ─────────────────────────────────────────────────────────────────────────────


class TestRelativePhrases:
    """Tests for today / tomorrow / in N days style phrases."""

    @pytest.mark.parametrize(
        "text,expected,confidence",
        [
            ("today", eod(2026, 3, 11), 1.0),
            ("now", eod(2026, 3, 11), 1.0),
            ("tomorrow", eod(2026, 3, 12), 1.0),
            ("yesterday", eod(2026, 3, 10), 1.0),
            ("next week", eod(2026, 3, 18), 0.9),
            ("in 3 days", eod(2026, 3, 14), 1.0),
            ("in 1 day", eod(2026, 3, 12), 1.0),
            ("in 2 weeks", eod(2026, 3, 25), 1.0),
        ],
    )
    def test_parses_phrase(self, text, expected, confidence):
        """Should resolve each phrase relative to the reference."""
        result = parse_natural_date(text, REF)

        assert result is not None
        assert result.date == expected
        assert result.confidence == confidence
        assert result.original_text == text

    def test_normalizes_case_and_whitespace(self):
        """Should ignore case and repeated spaces."""
        result = parse_natural_date("  In   3   DAYS ", REF)

        assert result.date == eod(2026, 3, 14)

    def test_end_of_day_precision(self):
        """Should land on 23:59:59.999."""
        assert end_of_day(REF) == datetime(2026, 3, 11, 23, 59, 59, 999000)


# ─────────────────────────────────────────────────────────────────────────────
# Weekdays
# ─────────────────────────────────────────────────────────────────────────────


class TestWeekdays:
    """Tests for weekday names (reference is a Wednesday)."""

    def test_bare_weekday_is_next_occurrence(self):
        """'friday' on a Wednesday is two days out."""
        result = parse_natural_date("friday", REF)

        assert result.date == eod(2026, 3, 13)
        assert result.confidence == 0.9

    def test_same_weekday_means_a_week_out(self):
        """'wednesday' on a Wednesday is the following week."""
        assert parse_natural_date("wednesday", REF).date == eod(2026, 3, 18)

    def test_this_weekday(self):
        assert parse_natural_date("this monday", REF).date == eod(2026, 3, 16)

    def test_next_weekday_skips_a_week(self):
        """'next friday' is the Friday after the coming one."""
        result = parse_natural_date("next friday", REF)

        assert result.date == eod(2026, 3, 20)
        assert result.confidence == 0.95

    def test_by_weekday(self):
        assert parse_natural_date("by sunday", REF).date == eod(2026, 3, 15)

    def test_abbreviated_weekday_not_recognized(self):
        """Only full weekday names are weekdays."""
        assert parse_natural_date("fri", REF) is None


# ─────────────────────────────────────────────────────────────────────────────
# Month and Day
# ─────────────────────────────────────────────────────────────────────────────


class TestMonthDay:
    """Tests for 'jan 15' / '15th of march' style dates."""

    @pytest.mark.parametrize("text", ["march 20", "mar 20", "Mar. 20th", "20 march", "20th of march"])
    def test_month_day_forms(self, text):
        """Should accept month-first and day-first forms."""
        result = parse_natural_date(text, REF)

        assert result.date == eod(2026, 3, 20)
        assert result.confidence == 0.95

    def test_today_counts_as_this_year(self):
        """The reference day itself is not in the past."""
        assert parse_natural_date("march 11", REF).date == eod(2026, 3, 11)

    def test_past_date_rolls_to_next_year(self):
        assert parse_natural_date("jan 15", REF).date == eod(2027, 1, 15)
        assert parse_natural_date("march 10", REF).date == eod(2027, 3, 10)

    def test_invalid_day_returns_none(self):
        """April has no 31st."""
        assert parse_natural_date("april 31", REF) is None

    def test_feb_29_waits_for_leap_year_only_one_year(self):
        """Neither 2026 nor 2027 has Feb 29."""
        assert parse_natural_date("feb 29", REF) is None

    def test_short_month_prefix_rejected(self):
        """Month prefixes need three letters."""
        assert parse_natural_date("ma 20", REF) is None


# ─────────────────────────────────────────────────────────────────────────────
# Period Ends and Fallbacks
# ─────────────────────────────────────────────────────────────────────────────


class TestPeriodEnds:
    """Tests for end of week / month and ISO fallback."""

    @pytest.mark.parametrize("text", ["end of week", "eow", "this weekend"])
    def test_end_of_week_is_friday(self, text):
        result = parse_natural_date(text, REF)

        assert result.date == eod(2026, 3, 13)
        assert result.confidence == 0.85

    def test_end_of_week_on_friday_is_today(self):
        friday = datetime(2026, 3, 13, 9, 0)

        assert parse_natural_date("eow", friday).date == eod(2026, 3, 13)

    @pytest.mark.parametrize("text", ["end of month", "eom"])
    def test_end_of_month(self, text):
        result = parse_natural_date(text, REF)

        assert result.date == eod(2026, 3, 31)
        assert result.confidence == 0.9

    def test_iso_fallback_keeps_time(self):
        """ISO input keeps its literal time."""
        result = parse_natural_date("2026-04-01T14:30:00", REF)

        assert result.date == datetime(2026, 4, 1, 14, 30)
        assert result.confidence == 1.0

    @pytest.mark.parametrize("text", ["", "   ", "someday", "in a few days", "blursday"])
    def test_unrecognized_returns_none(self, text):
        assert parse_natural_date(text, REF) is None

    @pytest.mark.parametrize("text", ["in 99999999 days", "in 9999999 weeks"])
    def test_out_of_range_offset_returns_none(self, text):
        """Offsets past the last representable date are not an error."""
        assert parse_natural_date(text, REF) is None

    def test_next_weekday_near_max_returns_none(self):
        assert parse_natural_date("next friday", datetime(9999, 12, 28)) is None


# ─────────────────────────────────────────────────────────────────────────────
# Deadlines in Free Text
# ─────────────────────────────────────────────────────────────────────────────


class TestExtractDeadline:
    """Tests for finding deadline phrases inside a sentence."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Send the deck by friday", eod(2026, 3, 13)),
            ("Pay rent due tomorrow", eod(2026, 3, 12)),
            ("Pay rent due on 15 march", eod(2026, 3, 15)),
            ("Tax return deadline: end of month", eod(2026, 3, 31)),
            ("Book flights before next week", eod(2026, 3, 18)),
            ("Hold the room until in 3 days", eod(2026, 3, 14)),
        ],
    )
    def test_finds_deadline(self, text, expected):
        assert extract_deadline(text, REF).date == expected

    def test_no_trigger_word(self):
        assert extract_deadline("Call the bank", REF) is None

    def test_trigger_needs_word_boundary(self):
        """'nearby' does not contain the word 'by'."""
        assert extract_deadline("Find nearby tomorrow cafes", REF) is None

    def test_unparseable_phrase_ignored(self):
        assert extract_deadline("Finish it by the time I get home", REF) is None

    def test_out_of_range_phrase_ignored(self):
        text = "Finish it by in 99999999 days"

        assert extract_deadline(text, REF) is None
        assert strip_deadline_phrase(text, REF) == text

    def test_strip_removes_phrase(self):
        assert strip_deadline_phrase("Send the deck by friday", REF) == "Send the deck"

    def test_strip_leaves_text_without_deadline(self):
        assert strip_deadline_phrase("Call the bank", REF) == "Call the bank"


# ─────────────────────────────────────────────────────────────────────────────
# Formatting
# ─────────────────────────────────────────────────────────────────────────────


class TestFormatNaturalDate:
    """Tests for rendering dates relative to now."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (datetime(2026, 3, 11, 18, 0), "today"),
            (datetime(2026, 3, 12), "tomorrow"),
            (datetime(2026, 3, 10), "yesterday"),
            (datetime(2026, 3, 13), "friday"),
            (datetime(2026, 3, 20), "next friday"),
            (datetime(2026, 3, 31), "Mar 31"),
        ],
    )
    def test_formats(self, value, expected):
        assert format_natural_date(value, REF) == expected

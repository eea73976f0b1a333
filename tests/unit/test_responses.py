"""Tests for atomize/responses.py

Message text is deterministic: the same task, stats and index always
produce the same string.
"""

from datetime import timedelta

import pytest

from atomize.responses import (
    DAY_COMPLETE_MESSAGES,
    TASK_COMPLETE_MESSAGES,
    Achievement,
    DayStats,
    celebration,
    check_in,
    completion_response,
    defer_message,
    explain_decision,
    gentle_reminder,
    pick_message,
    streak_broken_message,
    task_created_response,
    why_this_task,
)


class TestPickMessage:
    """Tests for pool rotation."""

    def test_wraps_around(self):
        assert pick_message(("a", "b", "c"), 4) == "b"

    def test_empty_pool_raises(self):
        with pytest.raises(ValueError):
            pick_message((), 0)


# ─────────────────────────────────────────────────────────────────────────────
# Task Events
# ─────────────────────────────────────────────────────────────────────────────


class TestTaskCreated:
    """Tests for the confirmation after adding a task."""

    def test_full_confirmation(self, make_task, now):
        task = make_task(
            "Write the report",
            deadline=now + timedelta(days=2),
            estimated_minutes=45,
            priority="medium",
            priority_reason="Medium: Due in 2 days",
        )

        text = task_created_response(task, now)

        assert text == (
            'Got it! I\'ve added "Write the report" 🟡\n'
            "\n"
            "⏰ Due: friday\n"
            "⏱️ Estimated: 45 minutes\n"
            "🟡 Medium: Due in 2 days"
        )

    def test_minimal_task(self, make_task, now):
        task = make_task("Tidy", priority="low", priority_reason="Low: No immediate deadline")

        assert task_created_response(task, now) == 'Got it! I\'ve added "Tidy" 🟢\n\n🟢 Low: No immediate deadline'


class TestCompletion:
    """Tests for completion messages."""

    def test_mid_day(self, make_task):
        task = make_task("Email Sam")

        text = completion_response(task, DayStats(completed_today=2, total_today=5, streak=1), index=2)

        assert text == f'{TASK_COMPLETE_MESSAGES[2]} "Email Sam" is done!\n\n📊 2 of 5 tasks done today'

    def test_streak_and_day_complete(self, make_task):
        task = make_task("Email Sam")

        text = completion_response(task, DayStats(completed_today=3, total_today=3, streak=4), index=1)

        lines = text.split("\n")
        assert lines[3] == "🔥 4 day streak!"
        assert lines[-1] == DAY_COMPLETE_MESSAGES[1]

    def test_nothing_planned_is_not_day_complete(self, make_task):
        text = completion_response(make_task("x"), DayStats(0, 0, 0))

        assert not any(m in text for m in DAY_COMPLETE_MESSAGES)

    def test_neutral_style(self, make_task):
        text = completion_response(make_task("x"), DayStats(1, 4, 0), nudge_style="neutral")

        assert text.startswith('Done. "x" is done!')


class TestNudges:
    """Tests for check-ins and reminders."""

    def test_check_in(self, make_task):
        assert check_in(make_task("Call mum"), 0) == 'Ready to tackle the next one?\n\nNext up: "Call mum"'

    def test_direct_check_in(self, make_task):
        assert check_in(make_task("Call mum"), 0, nudge_style="direct") == 'Next task: "Call mum"'

    def test_reminder_with_task(self, make_task):
        text = gentle_reminder(make_task("Call mum"), 2)

        assert text == 'Whenever you\'re ready, I\'m here to help.\n\nYou were working on: "Call mum"'

    def test_reminder_without_task(self):
        assert gentle_reminder(index=3) == "Need a hand getting started?"

    def test_defer(self, make_task):
        assert defer_message(make_task("Call mum")).startswith('No problem! I\'ve moved "Call mum" to tomorrow.')


# ─────────────────────────────────────────────────────────────────────────────
# Celebrations and Explanations
# ─────────────────────────────────────────────────────────────────────────────


class TestCelebration:
    """Tests for achievement messages."""

    @pytest.mark.parametrize(
        "achievement,expected",
        [
            (Achievement("streak", {"streak_days": 7}), "A whole week! Incredible consistency! 🏆"),
            (Achievement("streak", {"streak_days": 4}), "4 day streak! Keep it going! 🔥"),
            (Achievement("milestone", {"count": 50}), "50 tasks done! You're a productivity pro! 🏆"),
            (Achievement("milestone", {"count": 12}), "12 tasks completed! Amazing! 🎉"),
            (Achievement("mystery"), "Great job! 🎉"),
        ],
    )
    def test_messages(self, achievement, expected):
        assert celebration(achievement) == expected

    def test_task_complete_rotates(self):
        assert celebration(Achievement("task_complete"), 11) == TASK_COMPLETE_MESSAGES[1]

    def test_streak_broken(self):
        assert streak_broken_message(2) == "Starting fresh today! Let's build some momentum. 🌱"
        assert streak_broken_message(9).startswith("Your 9-day streak ended")


class TestExplanations:
    """Tests for decision explanations."""

    def test_priority(self):
        text = explain_decision("priority", {"level": "high", "reason": "Due within 24 hours"})

        assert text == "I set this as high priority because: Due within 24 hours"

    def test_schedule(self, now):
        output = {"date": now + timedelta(days=1), "reason": "your morning is free"}

        assert explain_decision("schedule", output, now) == (
            "I scheduled this for tomorrow because: your morning is free"
        )

    def test_atomization(self):
        assert explain_decision("atomization", {"task_count": 4}) == (
            "I broke this down into 4 smaller tasks to make it more manageable."
        )

    def test_unknown(self):
        assert explain_decision("vibes", {}) == "This was based on your task details and deadlines."

    def test_why_this_task(self, make_task, store, now):
        parent = make_task("Report")
        task = make_task("Draft intro", priority="high", deadline=now + timedelta(hours=5), parent_id=parent.id)

        assert why_this_task(task, now) == (
            'I suggested "Draft intro" because it\'s due very soon and it\'s marked as high priority '
            "and it's part of a larger task you're working on."
        )

    def test_why_this_task_default(self, make_task, now):
        task = make_task("Tidy", priority="low")

        assert why_this_task(task, now) == 'I suggested "Tidy" because it\'s next in your queue.'

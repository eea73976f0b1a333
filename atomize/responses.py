"""Encouraging message text for task events.

Every function here is pure. Message rotation takes an explicit index
(e.g. the count of tasks completed today) instead of hidden counter state,
so the same inputs always produce the same text.

Usage:
    from atomize.responses import completion_response, DayStats

    text = completion_response(task, DayStats(completed_today=2, total_today=5, streak=3), index=2)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from atomize.tasks.date_parser import format_natural_date
from atomize.tasks.models import Priority, Task

TASK_COMPLETE_MESSAGES = (
    "Nice work! ✨",
    "Done! 🎯",
    "Crushed it! 💪",
    "One down! ✅",
    "Great job! 🌟",
    "Boom! Task complete! 🚀",
    "You got this! ✨",
    "Progress! 📈",
    "Knocked it out! 🎉",
    "Well done! 👏",
)

DAY_COMPLETE_MESSAGES = (
    "You did it! All tasks done for today! 🎉",
    "Amazing! You've completed everything! 🏆",
    "What a day! All done! 🌟",
    "Incredible work today! You're on fire! 🔥",
    "All tasks complete! Time to relax! 😌",
    "100% done! You're a productivity machine! 💪",
)

STREAK_MESSAGES = {
    3: "3 days in a row! You're building momentum! 🔥",
    5: "5 day streak! You're on a roll! 🎯",
    7: "A whole week! Incredible consistency! 🏆",
    14: "Two weeks strong! You're unstoppable! 💪",
    30: "30 days! You've built a real habit! 🌟",
}

TASK_COUNT_MESSAGES = {
    10: "10 tasks completed! You're making great progress! 🎯",
    50: "50 tasks done! You're a productivity pro! 🏆",
    100: "100 tasks! Incredible achievement! 🌟",
}

CHECK_IN_MESSAGES = (
    "Ready to tackle the next one?",
    "What would you like to work on?",
    "Shall we get started?",
    "Pick up where you left off?",
    "Time to make some progress?",
)

GENTLE_REMINDER_MESSAGES = (
    "Hey! Just checking in. Ready to continue?",
    "Taking a break? No rush, just here when you need me.",
    "Whenever you're ready, I'm here to help.",
    "Need a hand getting started?",
)

# Plain pools for the "neutral" and "direct" nudge styles
NEUTRAL_COMPLETE_MESSAGES = ("Done.", "Completed.", "Marked complete.")
DIRECT_CHECK_IN_MESSAGES = ("Next task:", "Start this now:", "Up next:")
DIRECT_REMINDER_MESSAGES = ("Reminder: this is still open.", "This task is waiting on you.")

PRIORITY_EMOJI = {
    Priority.HIGH: "🔴",
    Priority.MEDIUM: "🟡",
    Priority.LOW: "🟢",
}


def pick_message(pool: Sequence[str], index: int) -> str:
    """Deterministic rotation through a message pool."""
    if not pool:
        raise ValueError("Message pool is empty")
    return pool[index % len(pool)]


@dataclass
class DayStats:
    completed_today: int
    total_today: int
    streak: int


@dataclass
class Achievement:
    type: str  # task_complete | day_complete | streak | milestone
    details: dict[str, Any] = field(default_factory=dict)


def task_created_response(task: Task, now: Optional[datetime] = None) -> str:
    emoji = PRIORITY_EMOJI[task.priority]
    lines = [f'Got it! I\'ve added "{task.title}" {emoji}', ""]
    if task.deadline:
        lines.append(f"⏰ Due: {format_natural_date(task.deadline, now)}")
    if task.estimated_minutes:
        lines.append(f"⏱️ Estimated: {task.estimated_minutes} minutes")
    if task.priority_reason:
        lines.append(f"{emoji} {task.priority_reason}")
    return "\n".join(lines).rstrip()


def completion_response(task: Task, stats: DayStats, index: int = 0, nudge_style: str = "encouraging") -> str:
    pool = NEUTRAL_COMPLETE_MESSAGES if nudge_style == "neutral" else TASK_COMPLETE_MESSAGES
    lines = [
        f'{pick_message(pool, index)} "{task.title}" is done!',
        "",
        f"📊 {stats.completed_today} of {stats.total_today} tasks done today",
    ]
    if stats.streak > 1:
        lines.append(f"🔥 {stats.streak} day streak!")
    if stats.total_today > 0 and stats.completed_today == stats.total_today:
        lines.extend(["", pick_message(DAY_COMPLETE_MESSAGES, index)])
    return "\n".join(lines)


def check_in(task: Task, index: int = 0, nudge_style: str = "encouraging") -> str:
    if nudge_style == "direct":
        return f'{pick_message(DIRECT_CHECK_IN_MESSAGES, index)} "{task.title}"'
    return f'{pick_message(CHECK_IN_MESSAGES, index)}\n\nNext up: "{task.title}"'


def gentle_reminder(task: Optional[Task] = None, index: int = 0, nudge_style: str = "encouraging") -> str:
    pool = DIRECT_REMINDER_MESSAGES if nudge_style == "direct" else GENTLE_REMINDER_MESSAGES
    reminder = pick_message(pool, index)
    if task is not None:
        return f'{reminder}\n\nYou were working on: "{task.title}"'
    return reminder


def celebration(achievement: Achievement, index: int = 0) -> str:
    if achievement.type == "task_complete":
        return pick_message(TASK_COMPLETE_MESSAGES, index)
    if achievement.type == "day_complete":
        return pick_message(DAY_COMPLETE_MESSAGES, index)
    if achievement.type == "streak":
        days = achievement.details.get("streak_days", 0)
        return STREAK_MESSAGES.get(days, f"{days} day streak! Keep it going! 🔥")
    if achievement.type == "milestone":
        count = achievement.details.get("count", 0)
        return TASK_COUNT_MESSAGES.get(count, f"{count} tasks completed! Amazing! 🎉")
    return "Great job! 🎉"


def explain_decision(decision_type: str, output: dict[str, Any], now: Optional[datetime] = None) -> str:
    """One-sentence explanation of a priority, schedule or atomization decision."""
    if decision_type == "priority":
        return f"I set this as {output['level']} priority because: {output['reason']}"
    if decision_type == "schedule":
        when = format_natural_date(output["date"], now)
        return f"I scheduled this for {when} because: {output['reason']}"
    if decision_type == "atomization":
        return f"I broke this down into {output['task_count']} smaller tasks to make it more manageable."
    return "This was based on your task details and deadlines."


def why_this_task(task: Task, now: datetime) -> str:
    reasons = []
    if task.deadline:
        days_until = math.ceil((task.deadline - now).total_seconds() / 86400)
        if days_until <= 1:
            reasons.append("it's due very soon")
        elif days_until <= 7:
            reasons.append(f"it's due in {days_until} days")
    if task.priority == Priority.HIGH:
        reasons.append("it's marked as high priority")
    if task.parent_id:
        reasons.append("it's part of a larger task you're working on")

    if not reasons:
        return f'I suggested "{task.title}" because it\'s next in your queue.'
    return f'I suggested "{task.title}" because {" and ".join(reasons)}.'


def streak_broken_message(previous_streak: int) -> str:
    if previous_streak >= 7:
        return (
            f"Your {previous_streak}-day streak ended, but that's okay! "
            "Every day is a fresh start. Ready to begin a new one? 💪"
        )
    return "Starting fresh today! Let's build some momentum. 🌱"


def defer_message(task: Task) -> str:
    return f'No problem! I\'ve moved "{task.title}" to tomorrow. Plans change, and that\'s totally fine. 👍'


__all__ = [
    "Achievement",
    "DayStats",
    "celebration",
    "check_in",
    "completion_response",
    "defer_message",
    "explain_decision",
    "gentle_reminder",
    "pick_message",
    "streak_broken_message",
    "task_created_response",
    "why_this_task",
]

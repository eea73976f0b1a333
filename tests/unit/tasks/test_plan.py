"""Tests for atomize/tasks/plan.py

Plans are derived from the ledger on demand; adapt_plan reacts to one
event and explains itself in a sentence.
"""

from datetime import datetime, timedelta

import pytest

from atomize.tasks.models import HistoryAction, Priority, TaskInput, TaskStatus, TaskUpdate
from atomize.tasks.plan import AdaptationTrigger, PlanChange, PlanManager, TriggerType

END_OF_TODAY = datetime(2026, 3, 11, 23, 59, 59, 999000)


# ─────────────────────────────────────────────────────────────────────────────
# Plans
# ─────────────────────────────────────────────────────────────────────────────


class TestPlans:
    """Tests for day and week plans."""

    def test_today_plan(self, plan_manager, make_task, store, now):
        high = make_task("Pay rent", priority="high", scheduled_date=now, estimated_minutes=15)
        low = make_task("Tidy desk", priority="low", scheduled_date=now)
        done = make_task("Reply to Sam", scheduled_date=now, estimated_minutes=20)
        make_task("Tomorrow thing", scheduled_date=now + timedelta(days=1))
        store.complete(done.id)

        plan = plan_manager.get_today_plan()

        assert plan.date == now.date()
        assert [t.id for t in plan.tasks] == [high.id, low.id]
        assert plan.completed_count == 1
        assert plan.total_count == 3
        assert plan.estimated_minutes == 45

    def test_deadline_places_unscheduled_task(self, plan_manager, make_task, now):
        task = make_task("Submit form", deadline=now.replace(hour=17))

        assert [t.id for t in plan_manager.get_today_plan().tasks] == [task.id]

    def test_schedule_wins_over_deadline(self, plan_manager, make_task, now):
        make_task("Later", scheduled_date=now + timedelta(days=2), deadline=now)

        assert plan_manager.get_today_plan().tasks == []

    def test_week_plan(self, plan_manager, make_task, now):
        task = make_task("Friday thing", scheduled_date=now + timedelta(days=2))

        week = plan_manager.get_week_plan()

        assert [p.date for p in week] == [(now + timedelta(days=i)).date() for i in range(7)]
        assert [t.id for t in week[2].tasks] == [task.id]

    def test_next_task_from_today(self, plan_manager, make_task, now):
        make_task("Undated", priority="high")
        today = make_task("Today", scheduled_date=now)

        assert plan_manager.get_next_task().id == today.id

    def test_reschedule(self, plan_manager, make_task, now):
        task = make_task("Move me")
        target = now + timedelta(days=3)

        moved = plan_manager.reschedule_task(task.id, target)

        assert moved.scheduled_date == target
        assert moved.history[-1].action == HistoryAction.RESCHEDULED

    def test_defer(self, plan_manager, make_task):
        task = make_task("Later")

        assert plan_manager.defer_task(task.id).status == TaskStatus.DEFERRED

    def test_to_dict(self, plan_manager, make_task, now):
        make_task("Today", scheduled_date=now)

        data = plan_manager.get_today_plan().to_dict()

        assert data["date"] == "2026-03-11"
        assert data["estimated_minutes"] == 30

    def test_unestimated_tasks_use_configured_minutes(self, store, priority_engine, clock, make_task, now):
        planner = PlanManager(store, priority_engine, clock=clock, default_task_minutes=45)
        make_task("Unestimated", scheduled_date=now)
        make_task("Estimated", scheduled_date=now, estimated_minutes=20)

        assert planner.get_today_plan().estimated_minutes == 65


# ─────────────────────────────────────────────────────────────────────────────
# Adaptation
# ─────────────────────────────────────────────────────────────────────────────


class TestAdaptPlan:
    """Tests for adapt_plan."""

    def test_trigger_type_coerced(self):
        assert AdaptationTrigger("time_passed").type == TriggerType.TIME_PASSED

    def test_unknown_trigger_rejected(self):
        with pytest.raises(ValueError):
            AdaptationTrigger("meteor_strike")

    def test_task_completed_names_next(self, plan_manager, make_task, store, now):
        first = make_task("Pay rent", priority="high", scheduled_date=now)
        make_task("Tidy desk", priority="low", scheduled_date=now)
        store.complete(first.id)

        adaptation = plan_manager.adapt_plan(AdaptationTrigger(TriggerType.TASK_COMPLETED, first.id))

        assert adaptation.changes == []
        assert adaptation.explanation == 'Great job! Next up: "Tidy desk"'

    def test_task_completed_all_done(self, plan_manager, make_task, store, now):
        task = make_task("Only one", scheduled_date=now)
        store.complete(task.id)

        adaptation = plan_manager.adapt_plan(AdaptationTrigger("task_completed", task.id))

        assert adaptation.explanation == "All done for today! 🎉"

    def test_task_deferred(self, plan_manager, make_task, store):
        task = make_task("Call the bank")
        store.defer(task.id)

        adaptation = plan_manager.adapt_plan(AdaptationTrigger("task_deferred", task.id))

        assert adaptation.changes == [
            PlanChange(task.id, "rescheduled", "Task deferred by user", "today", "tomorrow")
        ]
        assert adaptation.explanation == '"Call the bank" moved to tomorrow. No worries!'

    def test_unknown_task_is_quiet(self, plan_manager):
        adaptation = plan_manager.adapt_plan(AdaptationTrigger("task_deferred", "missing"))

        assert adaptation.changes == []
        assert adaptation.explanation == "Plan updated."

    def test_new_high_task_narrated(self, plan_manager, make_task, now):
        make_task("Existing", scheduled_date=now)
        urgent = make_task("Fix prod outage", priority="high")

        adaptation = plan_manager.adapt_plan(AdaptationTrigger("new_task", urgent.id))

        assert adaptation.changes == []
        assert adaptation.explanation == (
            'Added "Fix prod outage" as high priority. It\'s now at the top of your list.'
        )

    def test_new_low_task_not_narrated(self, plan_manager, make_task, now):
        make_task("Existing", scheduled_date=now)
        task = make_task("Someday", priority="low")

        assert plan_manager.adapt_plan(AdaptationTrigger("new_task", task.id)).explanation == "Plan updated."

    def test_deadline_changed_persists_priority(self, plan_manager, make_task, store, now):
        task = make_task("Renew passport", priority="low")
        store.update(task.id, TaskUpdate(deadline=now + timedelta(hours=2)), explicit=True)

        adaptation = plan_manager.adapt_plan(AdaptationTrigger("deadline_changed", task.id))

        stored = store.get(task.id)
        assert stored.priority == Priority.HIGH
        assert stored.priority_reason == "High: Due within 24 hours"
        assert adaptation.changes[0].change_type == "reprioritized"
        assert adaptation.changes[0].from_value == "low"
        assert adaptation.changes[0].to_value == "high"
        assert adaptation.explanation == '"Renew passport" priority changed to high: High: Due within 24 hours'

    def test_deadline_changed_same_level_is_quiet(self, plan_manager, make_task, store):
        task = make_task("Tidy", priority="low")
        saves = len(store.get(task.id).history)

        adaptation = plan_manager.adapt_plan(AdaptationTrigger("deadline_changed", task.id))

        assert adaptation.changes == []
        assert len(store.get(task.id).history) == saves

    def test_time_passed_sweeps_stale_schedules(self, plan_manager, make_task, store, now):
        yesterday = now - timedelta(days=1)
        pending = make_task("Stale pending", scheduled_date=yesterday)
        deferred = make_task("Stale deferred")
        store.defer(deferred.id, yesterday)
        finished = make_task("Finished", scheduled_date=yesterday)
        store.complete(finished.id)
        current = make_task("Current", scheduled_date=now)

        adaptation = plan_manager.adapt_plan(AdaptationTrigger("time_passed"))

        assert {c.task_id for c in adaptation.changes} == {pending.id, deferred.id}
        assert all(c.to_value == END_OF_TODAY for c in adaptation.changes)
        assert all(c.reason == "Auto-rescheduled from past date" for c in adaptation.changes)
        assert store.get(pending.id).scheduled_date == END_OF_TODAY
        assert store.get(deferred.id).status == TaskStatus.DEFERRED
        assert store.get(finished.id).scheduled_date == yesterday
        assert store.get(current.id).scheduled_date == now
        assert adaptation.explanation == "Moved 2 task(s) from past dates to today."

    def test_time_passed_nothing_stale(self, plan_manager):
        adaptation = plan_manager.adapt_plan(AdaptationTrigger("time_passed"))

        assert adaptation.to_dict() == {"changes": [], "explanation": "Plan updated."}

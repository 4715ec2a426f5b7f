"""mehtrics.handlers.notification

Schedule reminders and celebrations off domain events.

Scheduling means handing a ``Notification`` with a due time to the notifier.
Delivery is someone else's problem.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from mehtrics.core.events import (
    Event,
    EventType,
    HabitCompletedPayload,
    MoodCreatedPayload,
    TaskCreatedPayload,
)
from mehtrics.core.time import hours_until, utc_now
from mehtrics.handlers.sinks import Notification, Notifier

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
StreakLookup = Callable[[str], Awaitable[int]]

HIGH_PRIORITY_WINDOW_H = 24.0
DUE_SOON_WINDOW_H = 2.0
DUE_SOON_REMINDER = timedelta(minutes=30)
MOOD_CHECKIN_INTERVAL = timedelta(hours=8)

STREAK_MESSAGES: dict[int, str] = {
    3: "Great start! You're building momentum!",
    7: "One week strong! You're on fire!",
    14: "Two weeks of consistency! Amazing!",
    30: "30 days! You've built a real habit!",
    100: "100 days! You're a habit master!",
}


class TaskDeadlineNotificationHandler:
    """Remind about tasks that are due soon.

    - high priority, due within 24h: remind at half the remaining time
    - anything else due within 2h: remind in 30 minutes

    Overdue tasks fall into the second bucket.
    """

    event_type = EventType.TASK_CREATED

    def __init__(self, notifier: Notifier, *, clock: Clock = utc_now) -> None:
        self.notifier = notifier
        self.clock = clock

    async def handle(self, event: Event) -> None:
        if event.type != self.event_type:
            return
        data: TaskCreatedPayload = event.data  # type: ignore[assignment]
        if data.due_date is None:
            return

        now = self.clock()
        hours = hours_until(data.due_date, now=now)
        if data.priority == "high" and hours <= HIGH_PRIORITY_WINDOW_H:
            title = "High Priority Task Due Soon"
            scheduled_for = now + timedelta(hours=hours / 2)
        elif hours <= DUE_SOON_WINDOW_H:
            title = "Task Due Soon"
            scheduled_for = now + DUE_SOON_REMINDER
        else:
            return

        await self.notifier.schedule(
            Notification(
                user_id=data.user_id,
                kind="task_deadline",
                title=title,
                message=f'"{data.title}" is due in {round(hours)} hours',
                scheduled_for=scheduled_for,
                ref_id=data.task_id,
            )
        )
        logger.info(
            "task_deadline_notification_scheduled",
            extra={"task_id": data.task_id, "scheduled_for": scheduled_for.isoformat()},
        )


class HabitStreakNotificationHandler:
    event_type = EventType.HABIT_COMPLETED

    def __init__(self, notifier: Notifier, streaks: StreakLookup, *, clock: Clock = utc_now) -> None:
        self.notifier = notifier
        self.streaks = streaks
        self.clock = clock

    async def handle(self, event: Event) -> None:
        if event.type != self.event_type:
            return
        data: HabitCompletedPayload = event.data  # type: ignore[assignment]
        if not data.success:
            return

        streak = await self.streaks(data.habit_id)
        message = STREAK_MESSAGES.get(streak)
        if message is None:
            return

        await self.notifier.schedule(
            Notification(
                user_id=data.user_id,
                kind="habit_streak",
                title=f"{streak}-day streak",
                message=message,
                scheduled_for=self.clock(),
                ref_id=data.habit_id,
            )
        )
        logger.info("habit_streak_celebrated", extra={"habit_id": data.habit_id, "streak": streak})


class MoodReminderHandler:
    event_type = EventType.MOOD_CREATED

    def __init__(self, notifier: Notifier, *, clock: Clock = utc_now) -> None:
        self.notifier = notifier
        self.clock = clock

    async def handle(self, event: Event) -> None:
        if event.type != self.event_type:
            return
        data: MoodCreatedPayload = event.data  # type: ignore[assignment]
        await self.notifier.schedule(
            Notification(
                user_id=data.user_id,
                kind="mood_checkin",
                title="Mood check-in",
                message="How are you feeling now?",
                scheduled_for=self.clock() + MOOD_CHECKIN_INTERVAL,
                ref_id=data.mood_id,
            )
        )


async def no_streak(_habit_id: str) -> int:
    """Streak lookup used when no habit store is wired in."""

    return 0

"""Deadline reminders for open tasks.

An on-demand check rather than a scheduler: whoever calls it decides how often it
runs. Tasks that are not completed get an upcoming_deadline event a fixed number
of days before they are due, and a deadline_missed event once the due date has
passed. Event titles carry the due date (and the day count for reminders), so the
notification uniqueness key delivers each reminder once per task, recipient and
due date however often the check runs.
"""

import logging
import os
from datetime import date, timedelta
from typing import Iterable, List, Tuple

from dotenv import load_dotenv

from teamtasks.database.repository import TaskRepository
from teamtasks.models.notification import NotificationEvent, NotificationType
from teamtasks.models.task import Task

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_DAYS = (1, 3, 7)


def reminder_days_from_env() -> Tuple[int, ...]:
    """Parse DEADLINE_REMINDER_DAYS (comma-separated positive day counts)."""
    raw = os.getenv("DEADLINE_REMINDER_DAYS")
    if not raw:
        return DEFAULT_REMINDER_DAYS
    days = set()
    for part in raw.split(","):
        part = part.strip()
        if part.isdecimal() and int(part) > 0:
            days.add(int(part))
        elif part:
            logger.warning(f"Ignoring invalid DEADLINE_REMINDER_DAYS entry {part!r}")
    return tuple(sorted(days)) or DEFAULT_REMINDER_DAYS


def _recipients(task: Task) -> List[str]:
    return [r for r in dict.fromkeys([task.owner_id, *task.collaborator_ids]) if r]


def upcoming_deadline_events(
    tasks: TaskRepository,
    today: date,
    days_before: Iterable[int] = DEFAULT_REMINDER_DAYS,
) -> List[NotificationEvent]:
    """One event per open task due exactly `n` days after today, for each n in days_before."""
    due_dates = [today + timedelta(days=n) for n in sorted(set(days_before)) if n > 0]
    events = []
    for task in tasks.list_open_due_on(due_dates):
        days = (task.due_date - today).days
        events.append(NotificationEvent(
            event_type=NotificationType.UPCOMING_DEADLINE,
            task_id=task.id,
            recipients=_recipients(task),
            title=f"Due in {days} day{'s' if days != 1 else ''}: {task.title} ({task.due_date.isoformat()})",
            description=f"Task \"{task.title}\" is due on {task.due_date.isoformat()}.",
        ))
    return events


def missed_deadline_events(tasks: TaskRepository, today: date) -> List[NotificationEvent]:
    """One event per open task whose due date is before today."""
    events = []
    for task in tasks.list_open_overdue(today):
        events.append(NotificationEvent(
            event_type=NotificationType.DEADLINE_MISSED,
            task_id=task.id,
            recipients=_recipients(task),
            title=f"Overdue: {task.title} (due {task.due_date.isoformat()})",
            description=f"Task \"{task.title}\" was due on {task.due_date.isoformat()} and is not completed.",
        ))
    return events


def collect_deadline_events(
    tasks: TaskRepository,
    today: date,
    days_before: Iterable[int] = DEFAULT_REMINDER_DAYS,
) -> List[NotificationEvent]:
    """Upcoming reminders followed by missed-deadline events."""
    events = upcoming_deadline_events(tasks, today, days_before) + missed_deadline_events(tasks, today)
    logger.debug(f"Collected {len(events)} deadline events for {today.isoformat()}")
    return events

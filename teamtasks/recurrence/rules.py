"""Next-occurrence computation for recurring tasks.

Everything here is pure: same inputs, same outputs, no I/O. Roll-forward replays
rely on that to stay idempotent.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator, Optional, Union

from teamtasks.models.recurrence import (
    MONTH_BASED_PATTERNS,
    WEEK_BASED_PATTERNS,
    RecurrencePattern,
    RecurrenceRule,
    weekday_of,
)

_MONTHS_PER_UNIT: dict[RecurrencePattern, int] = {
    RecurrencePattern.MONTHLY: 1,
    RecurrencePattern.QUARTERLY: 3,
    RecurrencePattern.YEARLY: 12,
}


def add_months(base: date, months: int, anchor_day: Optional[int] = None) -> date:
    """Add calendar months, clamping to the last valid day of the target month.

    Args:
        base: Starting date
        months: Number of months to add
        anchor_day: Preferred day-of-month (defaults to base.day)
    """
    year = base.year + (base.month - 1 + months) // 12
    month = (base.month - 1 + months) % 12 + 1
    day = min(anchor_day or base.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def snap_to_weekday(d: date, weekday: Optional[int]) -> date:
    """Move d forward (0-6 days) to the given weekday (0 = Sunday)."""
    if weekday is None:
        return d
    return d + timedelta(days=(weekday - weekday_of(d)) % 7)


def advance(rule: RecurrenceRule, last_due_date: date) -> date:
    """Advance one step of the rule from last_due_date, ignoring end conditions."""
    interval = max(int(rule.interval or 1), 1)
    pattern = RecurrencePattern(rule.pattern)

    if pattern == RecurrencePattern.DAILY:
        return last_due_date + timedelta(days=interval)

    if pattern in WEEK_BASED_PATTERNS:
        weeks = interval * (2 if pattern == RecurrencePattern.BIWEEKLY else 1)
        return snap_to_weekday(last_due_date + timedelta(weeks=weeks), rule.weekday)

    return add_months(last_due_date, interval * _MONTHS_PER_UNIT[pattern], rule.anchor_day)


def next_occurrence(rule: RecurrenceRule, last_due_date: date, occurrences_so_far: int) -> Optional[date]:
    """Compute the due date of the next occurrence in a series.

    Args:
        rule: Recurrence rule of the series
        last_due_date: Due date of the most recent occurrence
        occurrences_so_far: Occurrences produced so far, the most recent included

    Returns:
        Next due date, or None when the series has reached its end condition
    """
    max_count = rule.max_count
    if max_count is not None and occurrences_so_far + 1 > max_count:
        return None

    candidate = advance(rule, last_due_date)

    end_date = rule.end_date
    if end_date is not None and candidate > end_date:
        return None
    return candidate


def occurrence_dates(rule: RecurrenceRule, first_due_date: date, limit: Optional[int] = None) -> Iterator[date]:
    """Yield the due dates of a series, first occurrence included.

    Unbounded rules yield forever unless a limit is given.
    """
    current = first_due_date
    produced = 1
    yield current
    while limit is None or produced < limit:
        nxt = next_occurrence(rule, current, produced)
        if nxt is None:
            return
        yield nxt
        current = nxt
        produced += 1


def rule_from_fields(
    pattern: Union[str, RecurrencePattern],
    *,
    due_date: Optional[date],
    interval: Optional[int] = None,
    weekday: Optional[int] = None,
    end_date: Optional[date] = None,
    max_count: Optional[int] = None,
) -> RecurrenceRule:
    """Build a rule from flat request fields, filling defaults from the first due date.

    Weekly and biweekly rules without a weekday recur on the due date's weekday;
    month-based rules anchor on the due date's day-of-month.

    Raises:
        ValueError: if the fields do not form a valid rule
    """
    pattern = RecurrencePattern(pattern)
    if pattern in WEEK_BASED_PATTERNS and weekday is None and due_date is not None:
        weekday = weekday_of(due_date)
    anchor_day = due_date.day if (pattern in MONTH_BASED_PATTERNS and due_date is not None) else None
    return RecurrenceRule.from_fields(
        pattern,
        interval=interval,
        weekday=weekday,
        end_date=end_date,
        max_count=max_count,
        anchor_day=anchor_day,
    )

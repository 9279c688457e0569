"""Recurrence rule model for teamtasks.

A rule is attached to a task instance and copied onto every successor in the series.
The end condition is a tagged variant: a series ends after a number of occurrences,
on a date, or never.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class RecurrencePattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


WEEK_BASED_PATTERNS = (RecurrencePattern.WEEKLY, RecurrencePattern.BIWEEKLY)
MONTH_BASED_PATTERNS = (RecurrencePattern.MONTHLY, RecurrencePattern.QUARTERLY, RecurrencePattern.YEARLY)

# Weekday numbers follow the client convention: 0 = Sunday ... 6 = Saturday.
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def weekday_of(d: date) -> int:
    """Weekday of a date in the 0 = Sunday convention."""
    # Python weekday: Monday=0 ... Sunday=6
    return (d.weekday() + 1) % 7


class EndAfterCount(BaseModel):
    kind: Literal["count"] = "count"
    max_count: int = Field(..., ge=1, description="Total occurrences in the series, first one included")


class EndByDate(BaseModel):
    kind: Literal["date"] = "date"
    end_date: date = Field(..., description="Last date an occurrence may fall on")


class NoEnd(BaseModel):
    kind: Literal["none"] = "none"


EndCondition = Annotated[Union[EndAfterCount, EndByDate, NoEnd], Field(discriminator="kind")]


class RecurrenceRule(BaseModel):
    """Recurrence specification for a task series."""

    pattern: RecurrencePattern
    interval: int = Field(1, ge=1, description="Every N units of the pattern's period")
    weekday: Optional[int] = Field(
        None, ge=0, le=6, description="Target weekday for weekly/biweekly (0 = Sunday)"
    )
    anchor_day: Optional[int] = Field(
        None, ge=1, le=31, description="Day-of-month the series returns to for month-based patterns"
    )
    end: EndCondition = Field(default_factory=NoEnd)

    @model_validator(mode="after")
    def _check_weekday(self) -> "RecurrenceRule":
        if self.pattern in WEEK_BASED_PATTERNS:
            if self.weekday is None:
                raise ValueError(f"weekday is required for {self.pattern.value} recurrence")
        else:
            self.weekday = None
        return self

    @property
    def max_count(self) -> Optional[int]:
        return self.end.max_count if isinstance(self.end, EndAfterCount) else None

    @property
    def end_date(self) -> Optional[date]:
        return self.end.end_date if isinstance(self.end, EndByDate) else None

    @classmethod
    def from_fields(
        cls,
        pattern: Union[str, RecurrencePattern],
        *,
        interval: Optional[int] = None,
        weekday: Optional[int] = None,
        end_date: Optional[date] = None,
        max_count: Optional[int] = None,
        anchor_day: Optional[int] = None,
    ) -> "RecurrenceRule":
        """Build a rule from the flat wire fields.

        Raises:
            ValueError: if both end_date and max_count are set, or any field is invalid
        """
        if end_date is not None and max_count is not None:
            raise ValueError("recurrence end condition must be either an end date or a max count, not both")
        if max_count is not None:
            end: Union[EndAfterCount, EndByDate, NoEnd] = EndAfterCount(max_count=max_count)
        elif end_date is not None:
            end = EndByDate(end_date=end_date)
        else:
            end = NoEnd()
        return cls(
            pattern=pattern,
            interval=1 if interval is None else interval,
            weekday=weekday,
            anchor_day=anchor_day,
            end=end,
        )

"""Local-date query windows for volume and daily statistics."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Literal

from .errors import ValidationError

WindowMode = Literal["last7days", "calendarWeek"]


@dataclass(frozen=True)
class DateWindow:
    """Inclusive range of local calendar dates."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError(
                code="invalid_window",
                message=f"Window end {self.end} is before start {self.start}.",
                field="window",
            )

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def bounds(self, tz: tzinfo) -> tuple[datetime, datetime]:
        """Aware datetimes ``[start_of_first_day, start_of_day_after_last)``."""
        lower = datetime.combine(self.start, time.min, tzinfo=tz)
        upper = datetime.combine(self.end + timedelta(days=1), time.min, tzinfo=tz)
        return lower, upper


def local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of ``moment`` in ``tz``. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(tz).date()


def today_in(tz: tzinfo) -> date:
    return datetime.now(tz).date()


def rolling_window(days: int = 7, *, today: date) -> DateWindow:
    """Today and the ``days - 1`` local days before it."""
    if days < 1:
        raise ValidationError(
            code="invalid_window",
            message=f"Window must cover at least one day, got {days}.",
            field="days",
        )
    return DateWindow(start=today - timedelta(days=days - 1), end=today)


def calendar_week(*, today: date) -> DateWindow:
    """Monday through Sunday of the week containing ``today``."""
    monday = today - timedelta(days=today.weekday())
    return DateWindow(start=monday, end=monday + timedelta(days=6))


def window_for_mode(mode: WindowMode, *, today: date) -> DateWindow:
    if mode == "last7days":
        return rolling_window(7, today=today)
    if mode == "calendarWeek":
        return calendar_week(today=today)
    raise ValidationError(
        code="invalid_window",
        message=f"Unknown window mode: {mode!r}",
        field="mode",
        docs_hint="Use 'last7days' or 'calendarWeek'.",
    )

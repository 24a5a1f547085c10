"""
Quiz Status Resolver

Derives a quiz's effective lifecycle status from its schedule fields and the
current time. This is the only place quiz date math happens; listings,
stats, the student feed and attempt recording all call `resolve_status`,
and API responses carry its output so clients never recompute it.

Window rules (all composed in the timezone of `now`):

    start = schedule_date at start_time
    end   = due_date at end_time           if both are set
          = due_date at 23:59:59.999999    if only due_date is set
          = schedule_date at end_time      if only end_time is set,
            rolled forward one day when end_time <= start_time
          = OPEN_ENDED                     otherwise

    upcoming: now < start
    active:   start <= now < end
    expired:  now >= end
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple

from quizflow.models.quiz import QuizStatus


# Sentinel end for quizzes with neither due date nor end time
OPEN_ENDED = datetime(2099, 12, 31)

TIME_STATUS_UPCOMING = "upcoming"
TIME_STATUS_ACTIVE = "active"
TIME_STATUS_EXPIRED = "expired"
TIME_STATUS_UNSCHEDULED = "unscheduled"


@dataclass(frozen=True)
class QuizWindow:
    start: datetime
    end: datetime

    @property
    def open_ended(self) -> bool:
        return self.end.replace(tzinfo=None) == OPEN_ENDED


@dataclass(frozen=True)
class ResolvedStatus:
    status: QuizStatus
    time_status: str
    is_upcoming: bool = False
    is_currently_active: bool = False
    is_expired: bool = False
    window: Optional[QuizWindow] = None


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """Parse "HH:MM" (24-hour) into (hour, minute)."""
    try:
        hour_str, minute_str = value.strip().split(":")
        hour, minute = int(hour_str), int(minute_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time of day {value!r}, expected HH:MM")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time of day {value!r}, expected HH:MM")
    return hour, minute


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _at(day: date, hour: int, minute: int, tz: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=tz)


def compute_window(quiz, tz: Optional[tzinfo] = None) -> Optional[QuizWindow]:
    """
    Compute the availability window of a scheduled quiz.

    Returns None when the quiz lacks the fields needed to place a start
    (schedule_date and start_time).
    """
    if not quiz.schedule_date or not quiz.start_time:
        return None

    schedule_day = _as_date(quiz.schedule_date)
    start_hour, start_minute = parse_time_of_day(quiz.start_time)
    start = _at(schedule_day, start_hour, start_minute, tz)

    due_day = _as_date(quiz.due_date) if quiz.due_date else None

    if due_day and quiz.end_time:
        end_hour, end_minute = parse_time_of_day(quiz.end_time)
        end = _at(due_day, end_hour, end_minute, tz)
    elif due_day:
        end = datetime.combine(due_day, time.max, tzinfo=tz)
    elif quiz.end_time:
        end_hour, end_minute = parse_time_of_day(quiz.end_time)
        end = _at(schedule_day, end_hour, end_minute, tz)
        # Window crosses midnight
        if (end_hour, end_minute) <= (start_hour, start_minute):
            end += timedelta(days=1)
    else:
        end = OPEN_ENDED.replace(tzinfo=tz)

    return QuizWindow(start=start, end=end)


def resolve_status(quiz, now: datetime) -> ResolvedStatus:
    """
    Resolve the effective status of `quiz` at `now`.

    Unscheduled quizzes (and scheduled ones missing their start) keep their
    stored status. The stored status is never modified.
    """
    stored = QuizStatus(quiz.status) if quiz.status else QuizStatus.DRAFT

    if not quiz.is_scheduled:
        return ResolvedStatus(status=stored, time_status=TIME_STATUS_UNSCHEDULED)

    window = compute_window(quiz, now.tzinfo)
    if window is None:
        return ResolvedStatus(status=stored, time_status=TIME_STATUS_UNSCHEDULED)

    if now < window.start:
        return ResolvedStatus(
            status=QuizStatus.SCHEDULED,
            time_status=TIME_STATUS_UPCOMING,
            is_upcoming=True,
            window=window,
        )
    if now < window.end:
        return ResolvedStatus(
            status=QuizStatus.ACTIVE,
            time_status=TIME_STATUS_ACTIVE,
            is_currently_active=True,
            window=window,
        )
    return ResolvedStatus(
        status=QuizStatus.CLOSED,
        time_status=TIME_STATUS_EXPIRED,
        is_expired=True,
        window=window,
    )


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_expiry_date(quiz, tz: Optional[tzinfo], months: int) -> Optional[datetime]:
    """
    When a scheduled quiz should be cleaned up: `months` after its window
    closes. Open-ended quizzes never expire.
    """
    window = compute_window(quiz, tz)
    if window is None or window.open_ended:
        return None
    return add_months(window.end, months)

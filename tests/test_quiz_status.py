from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from quizflow.models.quiz import QuizStatus
from quizflow.services.quiz_status import (
    OPEN_ENDED,
    add_months,
    compute_expiry_date,
    compute_window,
    parse_time_of_day,
    resolve_status,
)

UTC = timezone.utc


@dataclass
class FakeQuiz:
    is_scheduled: bool = True
    status: QuizStatus = QuizStatus.SCHEDULED
    schedule_date: Optional[date] = date(2025, 3, 10)
    start_time: Optional[str] = "09:00"
    end_time: Optional[str] = "17:00"
    due_date: Optional[date] = None


def at(day: int, hour: int, minute: int = 0, month: int = 3) -> datetime:
    return datetime(2025, month, day, hour, minute, tzinfo=UTC)


class TestResolveStatus:
    def test_same_day_window(self):
        quiz = FakeQuiz()

        upcoming = resolve_status(quiz, at(10, 8, 59))
        assert upcoming.status == QuizStatus.SCHEDULED
        assert upcoming.time_status == "upcoming"

        active = resolve_status(quiz, at(10, 12))
        assert active.status == QuizStatus.ACTIVE
        assert active.is_currently_active

        expired = resolve_status(quiz, at(10, 17))
        assert expired.status == QuizStatus.CLOSED
        assert expired.is_expired

    def test_start_is_inclusive(self):
        assert resolve_status(FakeQuiz(), at(10, 9)).is_currently_active

    def test_midnight_spanning_window_rolls_end_forward(self):
        quiz = FakeQuiz(start_time="22:00", end_time="02:00")

        window = compute_window(quiz, UTC)
        assert window.end == at(11, 2)
        assert resolve_status(quiz, at(11, 1)).is_currently_active
        assert resolve_status(quiz, at(11, 2)).is_expired

    def test_equal_start_and_end_rolls_a_full_day(self):
        quiz = FakeQuiz(start_time="09:00", end_time="09:00")

        assert compute_window(quiz, UTC).end == at(11, 9)
        assert resolve_status(quiz, at(10, 20)).is_currently_active

    def test_due_date_with_end_time(self):
        quiz = FakeQuiz(start_time="22:00", end_time="02:00", due_date=date(2025, 3, 12))

        # No roll on the due date path
        assert compute_window(quiz, UTC).end == at(12, 2)
        assert resolve_status(quiz, at(11, 12)).is_currently_active

    def test_due_date_without_end_time_runs_to_end_of_day(self):
        quiz = FakeQuiz(end_time=None, due_date=date(2025, 3, 12))

        assert resolve_status(quiz, at(12, 23, 59)).is_currently_active
        assert resolve_status(quiz, at(13, 0)).is_expired

    def test_no_end_is_open_ended(self):
        quiz = FakeQuiz(end_time=None, due_date=None)

        window = compute_window(quiz, UTC)
        assert window.open_ended
        assert window.end.replace(tzinfo=None) == OPEN_ENDED
        assert resolve_status(quiz, datetime(2090, 1, 1, tzinfo=UTC)).is_currently_active

    @pytest.mark.parametrize("stored", list(QuizStatus))
    def test_unscheduled_keeps_stored_status(self, stored):
        quiz = FakeQuiz(is_scheduled=False, status=stored)

        for now in (at(1, 0), at(10, 12), datetime(2099, 1, 1, tzinfo=UTC)):
            resolved = resolve_status(quiz, now)
            assert resolved.status == stored
            assert resolved.time_status == "unscheduled"
            assert not (resolved.is_upcoming or resolved.is_currently_active or resolved.is_expired)

    def test_scheduled_without_start_falls_back_to_stored_status(self):
        quiz = FakeQuiz(start_time=None, status=QuizStatus.DRAFT)

        resolved = resolve_status(quiz, at(10, 12))
        assert resolved.status == QuizStatus.DRAFT
        assert resolved.time_status == "unscheduled"

    def test_exactly_one_flag_for_scheduled_quizzes(self):
        quiz = FakeQuiz(start_time="22:00", end_time="02:00")
        now = at(10, 0)
        while now < at(12, 0):
            resolved = resolve_status(quiz, now)
            flags = [resolved.is_upcoming, resolved.is_currently_active, resolved.is_expired]
            assert flags.count(True) == 1
            now += timedelta(minutes=30)

    def test_stored_status_is_not_modified(self):
        quiz = FakeQuiz(status=QuizStatus.DRAFT)

        resolve_status(quiz, at(10, 12))
        assert quiz.status == QuizStatus.DRAFT

    def test_window_is_placed_in_the_zone_of_now(self):
        addis = ZoneInfo("Africa/Addis_Ababa")
        quiz = FakeQuiz()

        # 08:30 UTC is 11:30 in Addis Ababa
        now = datetime(2025, 3, 10, 8, 30, tzinfo=UTC).astimezone(addis)
        assert resolve_status(quiz, now).is_currently_active
        assert resolve_status(quiz, datetime(2025, 3, 10, 8, 30, tzinfo=UTC)).is_upcoming


class TestTimeOfDay:
    def test_parses_hours_and_minutes(self):
        assert parse_time_of_day("09:05") == (9, 5)
        assert parse_time_of_day(" 23:59 ") == (23, 59)

    @pytest.mark.parametrize("value", ["24:00", "9", "ab:cd", "12:60", ""])
    def test_rejects_malformed_values(self, value):
        with pytest.raises(ValueError):
            parse_time_of_day(value)


class TestExpiry:
    def test_add_months_clamps_day(self):
        assert add_months(datetime(2025, 1, 31, 12), 1) == datetime(2025, 2, 28, 12)
        assert add_months(datetime(2025, 12, 15), 1) == datetime(2026, 1, 15)

    def test_expiry_is_months_after_window_end(self):
        quiz = FakeQuiz()
        assert compute_expiry_date(quiz, UTC, 1) == at(10, 17, month=4)

    def test_open_ended_quiz_never_expires(self):
        quiz = FakeQuiz(end_time=None)
        assert compute_expiry_date(quiz, UTC, 1) is None

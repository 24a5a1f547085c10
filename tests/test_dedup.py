import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from quizflow.services.notification_service import (
    build_attempt_message,
    build_due_label,
    deduplicate_notifications,
    format_date,
    format_time_12h,
)
from quizflow.schemas.quiz import QuizScheduleRequest


@dataclass
class FakeNotification:
    type: str
    quiz_id: Optional[uuid.UUID]
    status: str = "pending"
    score: Optional[str] = None
    is_read: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)


QUIZ_A = uuid.uuid4()
QUIZ_B = uuid.uuid4()


def test_assignment_duplicates_keep_first_seen():
    newest = FakeNotification("quiz_assigned", QUIZ_A)
    older_unread = FakeNotification("quiz_assigned", QUIZ_A)
    older_read = FakeNotification("quiz_assigned", QUIZ_A, is_read=True)
    other_quiz = FakeNotification("quiz_assigned", QUIZ_B)

    unique, duplicates = deduplicate_notifications([newest, older_unread, older_read, other_quiz])

    assert unique == [newest, other_quiz]
    assert duplicates == [older_unread.id]


def test_graded_notifications_are_keyed_by_score():
    first = FakeNotification("quiz_graded", QUIZ_A, status="graded", score="80/100")
    same_score = FakeNotification("quiz_graded", QUIZ_A, status="graded", score="80/100")
    other_score = FakeNotification("quiz_graded", QUIZ_A, status="graded", score="60/100")
    assigned_but_graded = FakeNotification("quiz_assigned", QUIZ_A, status="graded", score="80/100")

    unique, duplicates = deduplicate_notifications([first, same_score, other_score, assigned_but_graded])

    assert unique == [first, other_score]
    assert duplicates == [same_score.id, assigned_but_graded.id]


def test_assigned_and_graded_do_not_collapse_into_each_other():
    assigned = FakeNotification("quiz_assigned", QUIZ_A)
    graded = FakeNotification("quiz_graded", QUIZ_A, status="graded", score="90/100")

    unique, duplicates = deduplicate_notifications([assigned, graded])

    assert unique == [assigned, graded]
    assert duplicates == []


def test_other_types_pass_through():
    export = FakeNotification("data_export", None)
    abandoned_1 = FakeNotification("quiz_abandoned", QUIZ_A, status="abandoned")
    abandoned_2 = FakeNotification("quiz_abandoned", QUIZ_A, status="abandoned")

    unique, duplicates = deduplicate_notifications([export, abandoned_1, abandoned_2])

    assert unique == [export, abandoned_1, abandoned_2]
    assert duplicates == []


def test_deduplicate_is_idempotent():
    notifications = [
        FakeNotification("quiz_assigned", QUIZ_A),
        FakeNotification("quiz_assigned", QUIZ_A),
        FakeNotification("quiz_graded", QUIZ_B, status="graded", score="50/100"),
        FakeNotification("quiz_graded", QUIZ_B, status="graded", score="50/100"),
        FakeNotification("announcement", None),
    ]

    once, _ = deduplicate_notifications(notifications)
    twice, duplicates = deduplicate_notifications(once)

    assert twice == once
    assert duplicates == []


def test_formatting_helpers():
    assert format_date(date(2025, 3, 10)) == "Mar 10, 2025"
    assert format_date(None) is None
    assert format_time_12h("00:05") == "12:05 AM"
    assert format_time_12h("12:00") == "12:00 PM"
    assert format_time_12h("17:30") == "5:30 PM"
    assert format_time_12h(None) == ""


def test_due_label_prefers_due_date():
    params = QuizScheduleRequest(schedule_date=date(2025, 3, 10), due_date=date(2025, 3, 14))
    assert build_due_label(params) == "Mar 14, 2025"
    assert build_due_label(QuizScheduleRequest(schedule_date=date(2025, 3, 10))) == "Mar 10, 2025"
    assert build_due_label(QuizScheduleRequest()) == "No deadline set"


def test_attempt_message():
    assert build_attempt_message(1, 1) == ""
    assert build_attempt_message(1, 3) == " (Attempt 1/3, 2 remaining)"
    assert build_attempt_message(3, 3) == " (Attempt 3/3, no attempts remaining)"

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import func, select

from quizflow.models import Notification, NotificationType, QuizResult
from quizflow.schemas.quiz import (
    QuestionInput,
    QuestionOption,
    QuestionType,
    QuizCreateRequest,
    QuizScheduleRequest,
)
from quizflow.services.quiz_service import (
    AttemptLimitExceededError,
    QuizNotAvailableError,
    QuizNotFoundError,
    QuizService,
    SubmissionNotFoundError,
)


def questions():
    return [
        QuestionInput(
            question_text="2 + 2?",
            options=[QuestionOption(text="3"), QuestionOption(text="4", is_correct=True)],
        ),
        QuestionInput(
            question_text="Capital of Ethiopia?",
            options=[QuestionOption(text="Addis Ababa", is_correct=True), QuestionOption(text="Gondar")],
        ),
        QuestionInput(
            question_type=QuestionType.SHORT,
            question_text="Explain photosynthesis.",
            short_answer="Light to chemical energy",
        ),
    ]


@pytest.fixture
def service(db, clock, outbox):
    return QuizService(db, clock=clock, email_sender=outbox)


@pytest.fixture
def scheduled_quiz(service, teacher):
    async def _scheduled_quiz(max_attempts: int = 1, **schedule):
        quiz = await service.create_quiz(teacher, QuizCreateRequest(
            title="Mixed Review",
            subject="General",
            grade_level=["1-1"],
            questions=questions(),
        ))
        params = {
            "schedule_date": date(2025, 3, 10),
            "start_time": "09:00",
            "end_time": "17:00",
            "max_attempts": max_attempts,
        }
        params.update(schedule)
        outcome = await service.schedule_quiz(teacher, quiz.id, QuizScheduleRequest(**params))
        return outcome.quiz

    return _scheduled_quiz


async def result_count(db, quiz_id, user_id=None) -> int:
    stmt = select(func.count(QuizResult.id)).where(QuizResult.quiz_id == quiz_id)
    if user_id is not None:
        stmt = stmt.where(QuizResult.user_id == user_id)
    return (await db.execute(stmt)).scalar()


async def notifications_of_type(db, quiz_id, notification_type):
    result = await db.execute(
        select(Notification).where(
            Notification.quiz_id == quiz_id,
            Notification.type == notification_type.value,
        )
    )
    return list(result.scalars().all())


async def test_scores_by_position(service, make_user, scheduled_quiz, outbox, db):
    student = await make_user("Liya", email="liya@school.test")
    quiz = await scheduled_quiz()

    outcome = await service.record_attempt(student, quiz.id, answers=[1, 1, None], time_taken=95)

    result = outcome.result
    assert not outcome.duplicate
    assert outcome.message == "Quiz submitted successfully"
    assert result.correct_answers == 1
    assert result.total_questions == 3
    assert result.score == 33
    assert result.time_taken == 95
    assert [a["is_correct"] for a in result.answers] == [True, False, False]
    # Short answers have no correct option and never score
    assert result.answers[2] == {
        "question_id": 3, "user_answer": -1, "correct_answer": -1, "is_correct": False,
    }

    graded = await notifications_of_type(db, quiz.id, NotificationType.QUIZ_GRADED)
    assert len(graded) == 1
    assert graded[0].score == "33/100"
    assert "You scored 33% (1/3 correct)" in graded[0].description
    assert len(outbox.to("liya@school.test")) == 2  # assignment + submission


async def test_repeat_within_window_returns_prior_result(service, make_user, scheduled_quiz, clock, db):
    student = await make_user("Liya")
    quiz = await scheduled_quiz(max_attempts=3)

    first = await service.record_attempt(student, quiz.id, answers=[1, 0, None])
    clock.advance(seconds=3)
    second = await service.record_attempt(student, quiz.id, answers=[0, 0, None])

    assert second.duplicate
    assert second.message == "Quiz already submitted"
    assert second.result.id == first.result.id
    assert await result_count(db, quiz.id) == 1

    clock.advance(seconds=3)
    third = await service.record_attempt(student, quiz.id, answers=[0, 0, None])
    assert not third.duplicate
    assert third.attempt_number == 2
    assert third.attempts_remaining == 1
    assert await result_count(db, quiz.id) == 2


async def test_attempt_budget_is_enforced(service, make_user, scheduled_quiz, clock, db):
    student = await make_user("Liya")
    quiz = await scheduled_quiz(max_attempts=2)

    await service.record_attempt(student, quiz.id, answers=[1, 0, None])
    clock.advance(seconds=10)
    await service.record_attempt(student, quiz.id, answers=[1, 1, None])
    clock.advance(seconds=10)

    with pytest.raises(AttemptLimitExceededError) as exc_info:
        await service.record_attempt(student, quiz.id, answers=[1, 0, None])

    assert exc_info.value.attempts_used == 2
    assert exc_info.value.max_attempts == 2
    assert await result_count(db, quiz.id) == 2


async def test_abandoned_attempt_counts_against_budget(service, make_user, scheduled_quiz, clock, db):
    student = await make_user("Liya")
    quiz = await scheduled_quiz(max_attempts=1)

    outcome = await service.record_attempt(student, quiz.id, answers=[1, 0], abandoned=True)

    assert outcome.message == "Quiz attempt recorded"
    assert outcome.result.abandoned
    assert outcome.result.score == 0
    assert outcome.result.answers == []
    abandoned = await notifications_of_type(db, quiz.id, NotificationType.QUIZ_ABANDONED)
    assert len(abandoned) == 1
    assert abandoned[0].score == "0/100"

    clock.advance(seconds=10)
    with pytest.raises(AttemptLimitExceededError):
        await service.record_attempt(student, quiz.id, answers=[1, 0, None])


async def test_abandonment_is_recorded_outside_the_window(service, make_user, scheduled_quiz, clock):
    student = await make_user("Liya")
    quiz = await scheduled_quiz()
    clock.set(datetime(2025, 3, 10, 18, 0, tzinfo=timezone.utc))

    outcome = await service.record_attempt(student, quiz.id, answers=[], abandoned=True)

    assert outcome.result.abandoned


@pytest.mark.parametrize("moment, time_status, message", [
    (datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc), "upcoming", "has not started yet"),
    (datetime(2025, 3, 10, 17, 0, tzinfo=timezone.utc), "expired", "has ended"),
])
async def test_rejects_outside_window(service, make_user, scheduled_quiz, clock, db, moment, time_status, message):
    student = await make_user("Liya")
    quiz = await scheduled_quiz()
    clock.set(moment)

    with pytest.raises(QuizNotAvailableError, match=message) as exc_info:
        await service.record_attempt(student, quiz.id, answers=[1, 0, None])

    assert exc_info.value.time_status == time_status
    assert await result_count(db, quiz.id) == 0


async def test_unknown_quiz(service, make_user):
    student = await make_user("Liya")
    from uuid import uuid4

    with pytest.raises(QuizNotFoundError):
        await service.record_attempt(student, uuid4(), answers=[])


async def test_majority_completion_fires_once(service, make_user, scheduled_quiz, clock, outbox, db, teacher):
    students = [await make_user(f"Student {i}", email=f"s{i}@school.test") for i in range(4)]
    quiz = await scheduled_quiz(max_attempts=3)

    async def majority_notifications():
        return await notifications_of_type(db, quiz.id, NotificationType.QUIZ_MAJORITY_COMPLETE)

    await service.record_attempt(students[0], quiz.id, answers=[1, 0, None])
    assert await majority_notifications() == []

    await service.record_attempt(students[1], quiz.id, answers=[1, 0, None])
    crossed = await majority_notifications()
    assert len(crossed) == 1
    assert crossed[0].recipient_id == teacher.id
    assert crossed[0].data == {"completed": 2, "total": 4, "percentage": 50}

    await service.record_attempt(students[2], quiz.id, answers=[1, 0, None])
    clock.advance(seconds=30)
    await service.record_attempt(students[0], quiz.id, answers=[1, 1, None])

    assert len(await majority_notifications()) == 1
    teacher_status_emails = [
        m for m in outbox.to("abebe@school.test") if m[1].startswith("📊 Quiz Status")
    ]
    assert len(teacher_status_emails) == 1
    assert "50% Complete" in teacher_status_emails[0][1]


async def test_majority_is_measured_against_every_student(service, make_user, scheduled_quiz, db):
    cohort = [
        await make_user(f"Cohort {i}", semester="1st semester", year="1st year") for i in range(2)
    ]
    for i in range(2):
        await make_user(f"Other {i}", semester="2nd semester", year="3rd year")
    quiz = await scheduled_quiz(max_attempts=1, semester="1st semester", academic_year=1)

    await service.record_attempt(cohort[0], quiz.id, answers=[1, 0, None])
    assert await notifications_of_type(db, quiz.id, NotificationType.QUIZ_MAJORITY_COMPLETE) == []

    await service.record_attempt(cohort[1], quiz.id, answers=[1, 0, None])
    crossed = await notifications_of_type(db, quiz.id, NotificationType.QUIZ_MAJORITY_COMPLETE)
    assert [n.data for n in crossed] == [{"completed": 2, "total": 4, "percentage": 50}]


async def test_abandoned_attempts_do_not_count_toward_majority(service, make_user, scheduled_quiz, db):
    students = [await make_user(f"Student {i}") for i in range(2)]
    quiz = await scheduled_quiz()

    await service.record_attempt(students[0], quiz.id, answers=[], abandoned=True)

    assert await notifications_of_type(db, quiz.id, NotificationType.QUIZ_MAJORITY_COMPLETE) == []


async def test_graded_notification_guard(service, make_user, scheduled_quiz, db):
    student = await make_user("Liya")
    quiz = await scheduled_quiz()
    outcome = await service.record_attempt(student, quiz.id, answers=[1, 0, None])

    again = await service.notifications.notify_submission(student, quiz, outcome.result, 1)

    assert again is None
    assert len(await notifications_of_type(db, quiz.id, NotificationType.QUIZ_GRADED)) == 1


async def test_latest_submission(service, make_user, scheduled_quiz, clock):
    student = await make_user("Liya")
    quiz = await scheduled_quiz(max_attempts=2)

    with pytest.raises(SubmissionNotFoundError):
        await service.get_latest_submission(student, quiz.id)

    await service.record_attempt(student, quiz.id, answers=[0, 1, None])
    clock.advance(minutes=1)
    await service.record_attempt(student, quiz.id, answers=[1, 0, None])

    result, found_quiz = await service.get_latest_submission(student, quiz.id)
    assert result.score == 67
    assert found_quiz.id == quiz.id

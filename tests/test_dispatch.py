from datetime import date

import pytest
from sqlalchemy import select

from quizflow.models import Notification, NotificationType, UserRole
from quizflow.schemas.quiz import QuestionInput, QuestionOption, QuizCreateRequest, QuizScheduleRequest
from quizflow.services.quiz_service import QuizService, QuizValidationError
from tests.conftest import Outbox


def schedule(**overrides) -> QuizScheduleRequest:
    values = {
        "schedule_date": date(2025, 3, 10),
        "start_time": "09:00",
        "end_time": "17:00",
    }
    values.update(overrides)
    return QuizScheduleRequest(**values)


async def create_quiz(service: QuizService, teacher, title="Cell Biology"):
    return await service.create_quiz(teacher, QuizCreateRequest(
        title=title,
        subject="Biology",
        grade_level=["1-1"],
        questions=[QuestionInput(
            question_text="Powerhouse of the cell?",
            options=[
                QuestionOption(text="Nucleus"),
                QuestionOption(text="Mitochondria", is_correct=True),
            ],
        )],
    ))


async def student_assignments(db, quiz_id):
    result = await db.execute(
        select(Notification).where(
            Notification.quiz_id == quiz_id,
            Notification.type == NotificationType.QUIZ_ASSIGNED.value,
            Notification.recipient_role == UserRole.STUDENT.value,
        )
    )
    return list(result.scalars().all())


@pytest.fixture
async def cohort(make_user):
    return {
        "first_y1": await make_user("Abel", email="abel@school.test", semester="1st semester", year="1st year"),
        "first_y2": await make_user("Bethel", email="bethel@school.test", semester="1st semester", year="2nd year"),
        "second_y1": await make_user("Dawit", email="dawit@school.test", semester="2nd semester", year="1st year"),
    }


async def test_second_dispatch_is_skipped_with_original_count(db, clock, outbox, teacher, cohort):
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    first = await service.schedule_quiz(teacher, quiz.id, schedule())
    assert first.dispatch.success
    assert first.dispatch.count == 3
    assert not first.dispatch.skipped

    second = await service.schedule_quiz(teacher, quiz.id, schedule(end_time="18:00"))
    assert second.dispatch.success
    assert second.dispatch.skipped
    assert second.dispatch.count == 3

    assert len(await student_assignments(db, quiz.id)) == 3

    # One "Quiz Shared" confirmation, from the first call only
    shared = await db.execute(
        select(Notification).where(
            Notification.quiz_id == quiz.id,
            Notification.recipient_id == teacher.id,
        )
    )
    assert len(shared.scalars().all()) == 1


async def test_cohort_filters(db, clock, outbox, teacher, cohort):
    service = QuizService(db, clock=clock, email_sender=outbox)

    by_semester = await create_quiz(service, teacher, "Semester only")
    outcome = await service.schedule_quiz(teacher, by_semester.id, schedule(semester="1st semester"))
    recipients = {n.recipient_id for n in await student_assignments(db, by_semester.id)}
    assert outcome.dispatch.count == 2
    assert recipients == {cohort["first_y1"].id, cohort["first_y2"].id}

    by_both = await create_quiz(service, teacher, "Semester and year")
    outcome = await service.schedule_quiz(
        teacher, by_both.id, schedule(semester="1st semester", academic_year=2)
    )
    recipients = {n.recipient_id for n in await student_assignments(db, by_both.id)}
    assert outcome.dispatch.count == 1
    assert recipients == {cohort["first_y2"].id}


async def test_no_matching_students_is_reported(db, clock, outbox, teacher, cohort):
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    outcome = await service.schedule_quiz(
        teacher, quiz.id, schedule(semester="2nd semester", academic_year=4)
    )

    assert not outcome.dispatch.success
    assert outcome.dispatch.error == "No students found matching the criteria"
    assert outcome.quiz.is_scheduled
    # No share confirmation without recipients
    assert outbox.to("abebe@school.test") == []


async def test_assignment_description_embeds_window(db, clock, outbox, teacher, cohort):
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    await service.schedule_quiz(
        teacher, quiz.id, schedule(start_time="13:30", end_time="15:00", due_date=date(2025, 3, 12))
    )

    notification = (await student_assignments(db, quiz.id))[0]
    assert notification.instructor == "Ms. Abebe"
    assert notification.due_label == "Mar 12, 2025"
    assert "covering Biology" in notification.description
    assert "Available from: Mar 10, 2025 at 1:30 PM" in notification.description
    assert "Due: Mar 12, 2025 at 3:00 PM" in notification.description


async def test_failing_email_does_not_block_other_recipients(db, clock, teacher, cohort):
    outbox = Outbox(fail_for={"abel@school.test"})
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    outcome = await service.schedule_quiz(teacher, quiz.id, schedule())

    assert outcome.dispatch.success
    assert outcome.dispatch.count == 3
    assert outcome.dispatch.emails_sent == 2
    assert len(outbox.to("bethel@school.test")) == 1
    assert len(outbox.to("dawit@school.test")) == 1
    assert len(await student_assignments(db, quiz.id)) == 3


async def test_email_respects_preferences_and_missing_address(db, clock, outbox, teacher, make_user):
    await make_user("Opted Out", email="optout@school.test", email_notifications=False)
    await make_user("No Address")
    await make_user("Default", email="default@school.test")
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    outcome = await service.schedule_quiz(teacher, quiz.id, schedule())

    assert outcome.dispatch.count == 3
    assert outcome.dispatch.emails_sent == 1
    assert outbox.to("optout@school.test") == []
    assert len(outbox.to("default@school.test")) == 1


async def test_schedule_sets_expiry_and_status(db, clock, outbox, teacher, cohort):
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    outcome = await service.schedule_quiz(teacher, quiz.id, schedule(max_attempts=3))

    assert outcome.resolved.is_currently_active
    assert outcome.quiz.max_attempts == 3
    assert outcome.quiz.expiry_date.replace(tzinfo=None).isoformat() == "2025-04-10T17:00:00"


@pytest.mark.parametrize("overrides, message", [
    ({"start_time": None}, "Schedule date and start time are required"),
    ({"end_time": None}, "End time is required when no due date is set"),
    ({"semester": "3rd semester"}, "Semester must be one of"),
    ({"academic_year": 7}, "Academic year must be between 1 and 4"),
    ({"max_attempts": 4}, "Max attempts must be 1, 2, 3 or 99"),
    ({"start_time": "25:00"}, "Invalid time of day"),
])
async def test_schedule_validation_writes_nothing(db, clock, outbox, teacher, cohort, overrides, message):
    service = QuizService(db, clock=clock, email_sender=outbox)
    quiz = await create_quiz(service, teacher)

    with pytest.raises(QuizValidationError, match=message):
        await service.schedule_quiz(teacher, quiz.id, schedule(**overrides))

    await db.refresh(quiz)
    assert not quiz.is_scheduled
    assert await student_assignments(db, quiz.id) == []

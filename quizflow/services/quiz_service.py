"""
Quiz Service

Business logic for quiz operations:
- Authoring drafts and scheduling them for a student cohort
- Student feed and attempt recording with grading
- Cleanup of quizzes past their expiry date
"""

import logging
from dataclasses import dataclass
from datetime import timedelta, timezone
from typing import List, Optional, Dict, Any, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quizflow.core.clock import Clock, get_clock
from quizflow.core.config import settings
from quizflow.models.quiz import Quiz, QuizStatus, ALLOWED_MAX_ATTEMPTS
from quizflow.models.quiz_question import QuizQuestion
from quizflow.models.quiz_result import QuizResult
from quizflow.models.user import User, SEMESTERS, YEAR_LABELS, YEAR_NUMBERS
from quizflow.repositories.quiz_repo import QuizRepository, QuizResultRepository
from quizflow.repositories.user_repo import UserRepository
from quizflow.schemas.quiz import (
    QuestionInput,
    QuestionType,
    QuizCreateRequest,
    QuizScheduleRequest,
    QuizUpdateRequest,
)
from quizflow.services.notification_service import (
    DispatchResult,
    EmailSender,
    NotificationService,
)
from quizflow.services.quiz_stats import compute_quiz_stats, completion_crossed, percentage
from quizflow.services.quiz_status import (
    ResolvedStatus,
    compute_expiry_date,
    parse_time_of_day,
    resolve_status,
)

logger = logging.getLogger(__name__)


# ============================================================
# EXCEPTIONS
# ============================================================

class QuizServiceError(Exception):
    pass


class QuizNotFoundError(QuizServiceError):
    pass


class QuizValidationError(QuizServiceError):
    pass


class SubmissionNotFoundError(QuizServiceError):
    pass


class AttemptLimitExceededError(QuizServiceError):
    def __init__(self, attempts_used: int, max_attempts: int):
        self.attempts_used = attempts_used
        self.max_attempts = max_attempts
        super().__init__(f"You have already used all {max_attempts} attempt(s) for this quiz.")


NOT_AVAILABLE_MESSAGES = {
    "upcoming": "This quiz has not started yet. Please wait until the scheduled time.",
    "expired": "This quiz has ended. The submission deadline has passed.",
}


class QuizNotAvailableError(QuizServiceError):
    def __init__(self, time_status: str):
        self.time_status = time_status
        super().__init__(
            NOT_AVAILABLE_MESSAGES.get(time_status, "This quiz is not currently available.")
        )


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class ScheduleOutcome:
    quiz: Quiz
    resolved: ResolvedStatus
    dispatch: DispatchResult


@dataclass
class StudentQuizView:
    quiz: Quiz
    resolved: ResolvedStatus
    attempts_used: int
    attempts_remaining: int
    can_attempt: bool


@dataclass
class AttemptOutcome:
    result: QuizResult
    message: str
    duplicate: bool = False
    attempt_number: Optional[int] = None
    max_attempts: Optional[int] = None

    @property
    def attempts_remaining(self) -> Optional[int]:
        if self.attempt_number is None or self.max_attempts is None:
            return None
        return max(0, self.max_attempts - self.attempt_number)


# ============================================================
# HELPERS
# ============================================================

def question_rows(questions: List[QuestionInput]) -> List[Dict[str, Any]]:
    """Normalize authored questions into QuizQuestion column values."""
    rows = []
    for order, question in enumerate(questions):
        options = []
        for index, option in enumerate(question.options):
            options.append({
                "id": option.id if option.id is not None else index + 1,
                "text": option.text,
                "is_correct": option.is_correct,
            })
        rows.append({
            "question_type": question.question_type.value,
            "question_text": question.question_text,
            "options": options,
            "short_answer": question.short_answer,
            "hints": list(question.hints),
            "display_order": order,
        })
    return rows


def _is_filled(row: Dict[str, Any]) -> bool:
    if not (row.get("question_text") or "").strip():
        return False
    if row.get("question_type") == QuestionType.SHORT.value:
        return True
    return any(
        (option.get("text") or "").strip() and option.get("is_correct")
        for option in row.get("options") or []
    )


def calculate_progress(rows: List[Dict[str, Any]]) -> int:
    """Share of questions that are complete enough to publish."""
    filled = sum(1 for row in rows if _is_filled(row))
    return percentage(filled, len(rows))


def score_answers(questions: List[QuizQuestion], answers: List[Optional[int]]) -> Tuple[int, List[Dict]]:
    """
    Grade by position: answer i is correct when it equals the index of
    question i's correct option. Questions without a correct option
    (short answers included) never score.
    """
    correct = 0
    details = []
    for index, question in enumerate(questions):
        user_answer = answers[index] if index < len(answers) else None
        correct_answer = question.correct_option_index
        is_correct = correct_answer is not None and user_answer == correct_answer
        if is_correct:
            correct += 1
        details.append({
            "question_id": index + 1,
            "user_answer": user_answer if user_answer is not None else -1,
            "correct_answer": correct_answer if correct_answer is not None else -1,
            "is_correct": is_correct,
        })
    return correct, details


# ============================================================
# SERVICE
# ============================================================

class QuizService:
    """Service for quiz authoring, scheduling, taking and grading."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        email_sender: Optional[EmailSender] = None,
    ):
        self.db = db
        self.clock = clock or get_clock()
        self.quiz_repo = QuizRepository(db)
        self.result_repo = QuizResultRepository(db)
        self.user_repo = UserRepository(db)
        self.notifications = NotificationService(db, clock=self.clock, email_sender=email_sender)

    def resolve(self, quiz: Quiz) -> ResolvedStatus:
        return resolve_status(quiz, self.clock.now())

    async def _get_owned(self, teacher: User, quiz_id: UUID) -> Quiz:
        quiz = await self.quiz_repo.get_live(quiz_id)
        if not quiz or quiz.teacher_id != teacher.id:
            raise QuizNotFoundError("Quiz not found")
        return quiz

    async def _get_live(self, quiz_id: UUID) -> Quiz:
        quiz = await self.quiz_repo.get_live(quiz_id)
        if not quiz:
            raise QuizNotFoundError("Quiz not found")
        return quiz

    # ============================================================
    # AUTHORING
    # ============================================================

    async def create_quiz(self, teacher: User, data: QuizCreateRequest) -> Quiz:
        title = (data.title or "").strip()
        subject = (data.subject or "").strip()
        if not title or not subject or not data.grade_level:
            raise QuizValidationError("Title, subject and grade level are required")

        rows = question_rows(data.questions)
        now = self.clock.utcnow()
        quiz = Quiz(
            teacher_id=teacher.id,
            title=title,
            subject=subject,
            grade_level=list(data.grade_level),
            status=QuizStatus.DRAFT,
            is_scheduled=False,
            progress=calculate_progress(rows),
            last_edited=now,
            created_at=now,
            updated_at=now,
            questions=[QuizQuestion(created_at=now, updated_at=now, **row) for row in rows],
        )
        self.db.add(quiz)
        await self.db.commit()
        await self.db.refresh(quiz)
        logger.info(f"Quiz {quiz.id} created by teacher {teacher.id}")
        return quiz

    async def update_quiz(self, teacher: User, quiz_id: UUID, data: QuizUpdateRequest) -> Quiz:
        quiz = await self._get_owned(teacher, quiz_id)
        now = self.clock.utcnow()

        if data.title is not None:
            if not data.title.strip():
                raise QuizValidationError("Title cannot be empty")
            quiz.title = data.title.strip()
        if data.subject is not None:
            if not data.subject.strip():
                raise QuizValidationError("Subject cannot be empty")
            quiz.subject = data.subject.strip()
        if data.grade_level is not None:
            if not data.grade_level:
                raise QuizValidationError("Grade level cannot be empty")
            quiz.grade_level = list(data.grade_level)
        if data.questions is not None:
            rows = question_rows(data.questions)
            quiz.questions = [QuizQuestion(created_at=now, updated_at=now, **row) for row in rows]
            quiz.progress = calculate_progress(rows)

        quiz.last_edited = now
        await self.db.commit()
        await self.db.refresh(quiz)
        return quiz

    async def get_quiz(self, teacher: User, quiz_id: UUID) -> Quiz:
        return await self._get_owned(teacher, quiz_id)

    async def list_teacher_quizzes(self, teacher: User, skip: int = 0, limit: int = 100) -> List[Quiz]:
        return await self.quiz_repo.get_by_teacher(teacher.id, skip=skip, limit=limit)

    async def list_drafts(self, teacher: User) -> List[Quiz]:
        quizzes = await self.quiz_repo.get_by_teacher(teacher.id, status=QuizStatus.DRAFT, limit=None)
        return [q for q in quizzes if not q.is_scheduled]

    async def list_scheduled(self, teacher: User) -> List[Quiz]:
        quizzes = await self.quiz_repo.get_by_teacher(teacher.id, limit=None)
        scheduled = [q for q in quizzes if q.is_scheduled]
        scheduled.sort(key=lambda q: (q.schedule_date, q.start_time or ""))
        return scheduled

    async def get_stats(self, teacher: User) -> Dict[str, int]:
        quizzes = await self.quiz_repo.get_by_teacher(teacher.id, limit=None)
        return compute_quiz_stats(quizzes, self.clock.now())

    # ============================================================
    # SCHEDULING
    # ============================================================

    def _validate_schedule(self, params: QuizScheduleRequest) -> None:
        if not params.schedule_date or not params.start_time:
            raise QuizValidationError("Schedule date and start time are required")
        if not params.end_time and not params.due_date:
            raise QuizValidationError("End time is required when no due date is set")
        try:
            parse_time_of_day(params.start_time)
            if params.end_time:
                parse_time_of_day(params.end_time)
        except ValueError as e:
            raise QuizValidationError(str(e))
        if params.semester and params.semester not in SEMESTERS:
            raise QuizValidationError(f"Semester must be one of: {', '.join(SEMESTERS)}")
        if params.academic_year is not None and params.academic_year not in YEAR_LABELS:
            raise QuizValidationError("Academic year must be between 1 and 4")
        if params.max_attempts not in ALLOWED_MAX_ATTEMPTS:
            raise QuizValidationError("Max attempts must be 1, 2, 3 or 99 (unlimited)")

    async def schedule_quiz(self, teacher: User, quiz_id: UUID, params: QuizScheduleRequest) -> ScheduleOutcome:
        """
        Schedule a quiz and share it with the matching cohort.

        Writes the schedule, then fans out assignment notifications; a
        repeat call for the same quiz does not notify students twice.
        """
        quiz = await self._get_owned(teacher, quiz_id)
        self._validate_schedule(params)

        quiz.schedule_date = params.schedule_date
        quiz.start_time = params.start_time
        quiz.end_time = params.end_time or None
        quiz.due_date = params.due_date
        quiz.semester = params.semester or None
        quiz.academic_year = params.academic_year
        quiz.max_attempts = params.max_attempts
        quiz.is_scheduled = True
        quiz.status = QuizStatus.SCHEDULED
        quiz.last_edited = self.clock.utcnow()

        expiry = compute_expiry_date(quiz, settings.tzinfo, settings.QUIZ_EXPIRY_MONTHS)
        quiz.expiry_date = expiry.astimezone(timezone.utc) if expiry else None

        await self.db.commit()
        await self.db.refresh(quiz)
        logger.info(f"Quiz {quiz.id} scheduled for {quiz.schedule_date} {quiz.start_time}")

        dispatch = await self.notifications.dispatch_quiz_assignment(quiz, params, teacher.name)
        if dispatch.success and not dispatch.skipped:
            await self.notifications.notify_quiz_shared(teacher, quiz, dispatch.count, params)

        return ScheduleOutcome(quiz=quiz, resolved=self.resolve(quiz), dispatch=dispatch)

    # ============================================================
    # DELETION & CLEANUP
    # ============================================================

    async def delete_quiz(self, teacher: User, quiz_id: UUID) -> int:
        """Soft delete; returns how many notifications were removed with it."""
        quiz = await self._get_owned(teacher, quiz_id)
        quiz.is_deleted = True
        quiz.last_edited = self.clock.utcnow()
        await self.db.commit()
        deleted = await self.notifications.delete_for_quiz(quiz.id)
        logger.info(f"Quiz {quiz.id} deleted with {deleted} notifications")
        return deleted

    async def permanent_delete_quiz(self, teacher: User, quiz_id: UUID) -> None:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz or quiz.teacher_id != teacher.id:
            raise QuizNotFoundError("Quiz not found")
        await self.quiz_repo.hard_delete(quiz.id)
        logger.info(f"Quiz {quiz_id} permanently deleted")

    async def cleanup_expired_quizzes(self) -> Dict[str, Any]:
        """Soft delete every quiz whose expiry date has passed."""
        expired = await self.quiz_repo.get_expired(self.clock.utcnow())
        quiz_ids = [quiz.id for quiz in expired]
        count = await self.quiz_repo.soft_delete_many(quiz_ids)
        logger.info(f"Cleaned up {count} expired quizzes")
        return {"success": True, "count": count, "quiz_ids": quiz_ids}

    # ============================================================
    # STUDENT FEED
    # ============================================================

    async def list_student_quizzes(self, student: User) -> List[StudentQuizView]:
        academic_year = YEAR_NUMBERS.get(student.year) if student.year else None
        quizzes = await self.quiz_repo.get_scheduled_for_cohort(student.semester, academic_year)

        now = self.clock.now()
        views = []
        for quiz in quizzes:
            resolved = resolve_status(quiz, now)
            used = await self.result_repo.count_user_attempts(student.id, quiz.id)
            remaining = max(0, quiz.max_attempts - used)
            views.append(StudentQuizView(
                quiz=quiz,
                resolved=resolved,
                attempts_used=used,
                attempts_remaining=remaining,
                can_attempt=resolved.is_currently_active and remaining > 0,
            ))
        return views

    # ============================================================
    # ATTEMPTS
    # ============================================================

    async def record_attempt(
        self,
        student: User,
        quiz_id: UUID,
        answers: List[Optional[int]],
        time_taken: Optional[int] = None,
        abandoned: bool = False,
    ) -> AttemptOutcome:
        """
        Record one attempt by `student`.

        Guards, in order: a repeat within the duplicate window returns the
        earlier result; a spent attempt budget is rejected; an abandoned
        attempt is stored with score 0; otherwise the quiz must be active
        right now before answers are graded and stored.
        """
        quiz = await self._get_live(quiz_id)
        now_utc = self.clock.utcnow()

        window = timedelta(seconds=settings.DUPLICATE_SUBMISSION_WINDOW_SECONDS)
        recent = await self.result_repo.get_recent_submission(student.id, quiz.id, now_utc - window)
        if recent:
            logger.warning(f"Duplicate submission by {student.id} for quiz {quiz.id}, returning existing result")
            return AttemptOutcome(result=recent, message="Quiz already submitted", duplicate=True)

        used = await self.result_repo.count_user_attempts(student.id, quiz.id)
        if used >= quiz.max_attempts:
            raise AttemptLimitExceededError(used, quiz.max_attempts)
        attempt_number = used + 1
        total_questions = len(quiz.questions)

        if abandoned:
            result = await self.result_repo.create(
                user_id=student.id,
                quiz_id=quiz.id,
                score=0,
                correct_answers=0,
                total_questions=total_questions,
                time_taken=time_taken,
                answers=[],
                submitted_at=now_utc,
                abandoned=True,
                created_at=now_utc,
                updated_at=now_utc,
            )
            logger.info(f"Abandoned attempt {attempt_number} recorded for quiz {quiz.id}")
            await self.notifications.notify_abandoned(student, quiz, result, attempt_number)
            return AttemptOutcome(
                result=result,
                message="Quiz attempt recorded",
                attempt_number=attempt_number,
                max_attempts=quiz.max_attempts,
            )

        resolved = self.resolve(quiz)
        if not resolved.is_currently_active:
            raise QuizNotAvailableError(resolved.time_status)

        correct, details = score_answers(quiz.questions, answers)
        first_completion = await self.result_repo.count_user_completions(student.id, quiz.id) == 0

        result = await self.result_repo.create(
            user_id=student.id,
            quiz_id=quiz.id,
            score=percentage(correct, total_questions),
            correct_answers=correct,
            total_questions=total_questions,
            time_taken=time_taken,
            answers=details,
            submitted_at=now_utc,
            abandoned=False,
            created_at=now_utc,
            updated_at=now_utc,
        )
        logger.info(
            f"Quiz {quiz.id} graded for {student.id}: {correct}/{total_questions} ({result.score}%)"
        )

        await self.notifications.notify_submission(student, quiz, result, attempt_number)
        await self.notifications.send_submission_email(student, quiz, result, attempt_number)
        await self._check_majority_completion(quiz, first_completion)

        return AttemptOutcome(
            result=result,
            message="Quiz submitted successfully",
            attempt_number=attempt_number,
            max_attempts=quiz.max_attempts,
        )

    async def _check_majority_completion(self, quiz: Quiz, first_completion: bool) -> None:
        """
        Tell the teacher once, on the submission that lifts completion
        across the threshold. Completion is measured against every
        student, not only the quiz's cohort.
        """
        try:
            total_students = await self.user_repo.count_students()
            completed = await self.result_repo.count_distinct_submitters(quiz.id)
            previous = completed - 1 if first_completion else completed
            crossed = completion_crossed(
                previous, completed, total_students, settings.MAJORITY_COMPLETION_THRESHOLD
            )
            logger.info(f"Quiz completion: {completed}/{total_students} students")
            if crossed is None:
                return

            teacher = await self.user_repo.get_by_id(quiz.teacher_id)
            if teacher is None:
                logger.warning(f"Teacher {quiz.teacher_id} not found for quiz {quiz.id}")
                return
            await self.notifications.notify_majority_completion(
                teacher, quiz, completed, total_students, crossed
            )
        except Exception as e:
            logger.error(f"Error checking majority completion: {e}")

    async def get_latest_submission(self, student: User, quiz_id: UUID) -> Tuple[QuizResult, Quiz]:
        result = await self.result_repo.get_latest(student.id, quiz_id)
        if not result:
            raise SubmissionNotFoundError("No submission found for this quiz")
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise QuizNotFoundError("Quiz not found")
        return result, quiz

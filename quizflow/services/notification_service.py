"""
Notification Service

Fans quiz events out to in-app notifications and preference-gated email,
and collapses duplicate notifications when they are read back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quizflow.core.clock import Clock, get_clock
from quizflow.core.config import settings
from quizflow.models import (
    Notification,
    NotificationPreference,
    NotificationStatus,
    NotificationType,
    User,
    UserRole,
)
from quizflow.models.user import YEAR_LABELS
from quizflow.repositories.notification_repo import NotificationRepository
from quizflow.repositories.user_repo import NotificationPreferenceRepository, UserRepository
from quizflow.services.quiz_status import parse_time_of_day
from quizflow.utils import email as email_templates
from quizflow.utils.email import send_email

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str], Awaitable[bool]]


# ============================================================
# EXCEPTIONS
# ============================================================

class NotificationServiceError(Exception):
    """Base exception for notification service errors."""
    pass


class NotificationNotFoundError(NotificationServiceError):
    """Notification does not exist or belongs to someone else."""
    pass


class NotificationPermissionError(NotificationServiceError):
    """User role may not perform this action."""
    pass


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class DispatchResult:
    success: bool
    count: int = 0
    skipped: bool = False
    emails_sent: int = 0
    error: Optional[str] = None


@dataclass
class PreferenceSnapshot:
    email_notifications: bool = True
    in_app_notifications: bool = True
    sms_notifications: bool = False

    @classmethod
    def from_row(cls, row: Optional[NotificationPreference]) -> "PreferenceSnapshot":
        if row is None:
            return cls()
        return cls(
            email_notifications=row.email_notifications,
            in_app_notifications=row.in_app_notifications,
            sms_notifications=row.sms_notifications,
        )


@dataclass
class TestNotificationReport:
    test_type: str
    email_notifications_enabled: bool
    in_app_notifications_enabled: bool
    in_app_notification_created: Optional[bool] = None
    in_app_notification_id: Optional[UUID] = None
    email_sent: Optional[bool] = None
    messages: List[str] = field(default_factory=list)


# ============================================================
# FORMATTING
# ============================================================

def format_date(value) -> Optional[str]:
    """Mar 10, 2025"""
    if not value:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_time_12h(value: Optional[str]) -> str:
    """'00:05' -> '12:05 AM', '13:30' -> '1:30 PM'"""
    if not value:
        return ""
    hour, minute = parse_time_of_day(value)
    display_hour = hour % 12 or 12
    period = "PM" if hour >= 12 else "AM"
    return f"{display_hour}:{minute:02d} {period}"


def _window_lines(params) -> str:
    schedule_date = format_date(params.schedule_date)
    due_date = format_date(params.due_date)
    start_time = format_time_12h(params.start_time)
    end_time = format_time_12h(params.end_time)

    text = ""
    if schedule_date and start_time:
        text += f"\n\n📅 Available from: {schedule_date} at {start_time}"
    if due_date and end_time:
        text += f"\n⏰ Due: {due_date} at {end_time}"
    elif schedule_date and end_time:
        text += f"\n⏰ Ends: {schedule_date} at {end_time}"
    return text


def build_assignment_description(teacher_name: str, subject: Optional[str], params) -> str:
    return (
        f"New quiz assigned by {teacher_name} covering {subject or 'multiple topics'}."
        + _window_lines(params)
    )


def build_share_description(title: str, student_count: int, params) -> str:
    return (
        f'Your quiz "{title}" has been shared with {student_count} students.'
        + _window_lines(params)
    )


def build_due_label(params) -> str:
    deadline = params.due_date or params.schedule_date
    return format_date(deadline) or "No deadline set"


def build_attempt_message(attempt_number: int, max_attempts: int) -> str:
    """' (Attempt 1/3, 2 remaining)', empty for single-attempt quizzes."""
    if max_attempts <= 1:
        return ""
    remaining = max_attempts - attempt_number
    if remaining > 0:
        return f" (Attempt {attempt_number}/{max_attempts}, {remaining} remaining)"
    return f" (Attempt {attempt_number}/{max_attempts}, no attempts remaining)"


# ============================================================
# DEDUPLICATION
# ============================================================

def _dedup_key(notification) -> Optional[str]:
    if not notification.quiz_id:
        return None
    is_graded = notification.status == NotificationStatus.GRADED.value
    if notification.type == NotificationType.QUIZ_ASSIGNED.value and not is_graded:
        return f"assigned:{notification.quiz_id}"
    if notification.type == NotificationType.QUIZ_GRADED.value or (
        notification.type == NotificationType.QUIZ_ASSIGNED.value and is_graded
    ):
        return f"graded:{notification.quiz_id}_{notification.score or 'no-score'}"
    return None


def deduplicate_notifications(notifications) -> Tuple[list, list]:
    """
    Keep the first notification seen per semantic key.

    Assignment notifications are keyed by quiz; graded ones by quiz and
    score. Everything else passes through. Returns the unique list in
    input order and the ids of dropped duplicates that are still unread.
    """
    unique = []
    duplicate_unread_ids = []
    seen = set()
    for notification in notifications:
        key = _dedup_key(notification)
        if key is None:
            unique.append(notification)
            continue
        if key in seen:
            if not notification.is_read:
                duplicate_unread_ids.append(notification.id)
            continue
        seen.add(key)
        unique.append(notification)
    return unique, duplicate_unread_ids


# ============================================================
# SERVICE
# ============================================================

class NotificationService:
    """In-app notifications plus the preference-gated email path."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        email_sender: Optional[EmailSender] = None,
    ):
        self.db = db
        self.clock = clock or get_clock()
        self.email_sender = email_sender or send_email
        self.notification_repo = NotificationRepository(db)
        self.user_repo = UserRepository(db)
        self.preference_repo = NotificationPreferenceRepository(db)

    # =========================================================
    # Preferences
    # =========================================================
    async def get_preferences(self, user_id: UUID) -> PreferenceSnapshot:
        row = await self.preference_repo.get_for_user(user_id)
        return PreferenceSnapshot.from_row(row)

    async def get_settings(self, user: User) -> PreferenceSnapshot:
        return await self.get_preferences(user.id)

    async def update_settings(self, user: User, **values) -> PreferenceSnapshot:
        changes = {k: v for k, v in values.items() if v is not None}
        if not changes:
            return await self.get_preferences(user.id)
        row = await self.preference_repo.upsert(user.id, **changes)
        logger.info(f"Notification settings updated for user {user.id}: {changes}")
        return PreferenceSnapshot.from_row(row)

    # =========================================================
    # Email
    # =========================================================
    async def send_email_notification(
        self,
        user: User,
        subject: str,
        html_body: str,
        preferences: Optional[PreferenceSnapshot] = None,
    ) -> bool:
        """
        Send one email if the user allows it and has an address.

        Delivery failures are logged and reported as False.
        """
        if preferences is None:
            preferences = await self.get_preferences(user.id)
        if not preferences.email_notifications:
            logger.info(f"Email notifications disabled for user {user.id}")
            return False
        if not user.email:
            logger.warning(f"User {user.id} has no email address")
            return False

        try:
            return await self.email_sender(user.email, subject, html_body)
        except Exception as e:
            logger.error(f"Failed to send email to user {user.id}: {e}")
            return False

    # =========================================================
    # Writes
    # =========================================================
    async def _create(self, commit: bool = True, **values) -> Notification:
        values.setdefault("created_at", self.clock.utcnow())
        values.setdefault("updated_at", values["created_at"])
        notification = await self.notification_repo.add(**values)
        if commit:
            await self.db.commit()
            await self.db.refresh(notification)
        return notification

    # =========================================================
    # Quiz assignment fan-out
    # =========================================================
    async def dispatch_quiz_assignment(self, quiz, params, teacher_name: str) -> DispatchResult:
        """
        Create one quiz_assigned notification per student in the quiz's
        cohort, then email those who allow it.

        Safe to call again for the same quiz: when student assignments
        already exist nothing is created and the existing count is returned.
        """
        existing = await self.notification_repo.count_student_assignments(quiz.id)
        if existing > 0:
            logger.warning(
                f"Notifications already exist for quiz {quiz.id}. Skipping duplicate notifications."
            )
            return DispatchResult(success=True, count=existing, skipped=True)

        year_label = None
        if params.academic_year:
            year_label = YEAR_LABELS.get(int(params.academic_year))

        students = await self.user_repo.get_students(
            semester=params.semester or None,
            year=year_label,
        )
        logger.info(
            f"Found {len(students)} students to notify "
            f"(semester={params.semester}, year={params.academic_year})"
        )
        if not students:
            return DispatchResult(success=False, error="No students found matching the criteria")

        description = build_assignment_description(teacher_name, quiz.subject, params)
        due_label = build_due_label(params)
        now = self.clock.utcnow()

        for student in students:
            await self._create(
                commit=False,
                recipient_id=student.id,
                recipient_role=UserRole.STUDENT.value,
                type=NotificationType.QUIZ_ASSIGNED.value,
                title=quiz.title,
                description=description,
                quiz_id=quiz.id,
                instructor=teacher_name,
                due_label=due_label,
                status=NotificationStatus.PENDING.value,
                created_at=now,
            )
        await self.db.commit()
        logger.info(f"Created {len(students)} assignment notifications for quiz {quiz.id}")

        preferences = await self.preference_repo.get_for_users(s.id for s in students)
        emails_sent = 0
        for student in students:
            html = email_templates.build_assignment_email(
                student.name or "Student", quiz.title, description
            )
            sent = await self.send_email_notification(
                student,
                f"📋 New Quiz Assigned: {quiz.title}",
                html,
                preferences=PreferenceSnapshot.from_row(preferences.get(student.id)),
            )
            if sent:
                emails_sent += 1

        return DispatchResult(success=True, count=len(students), emails_sent=emails_sent)

    async def notify_quiz_shared(self, teacher: User, quiz, student_count: int, params) -> Optional[Notification]:
        """Confirmation for the teacher; creation failures are logged."""
        description = build_share_description(quiz.title, student_count, params)
        try:
            notification = await self._create(
                recipient_id=teacher.id,
                recipient_role=UserRole.TEACHER.value,
                type=NotificationType.QUIZ_ASSIGNED.value,
                title=f"Quiz Shared: {quiz.title}",
                description=description,
                quiz_id=quiz.id,
                instructor=teacher.name,
                due_label=build_due_label(params),
                status=NotificationStatus.COMPLETED.value,
                data={"student_count": student_count},
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error creating share notification for quiz {quiz.id}: {e}")
            return None

        html = email_templates.build_share_confirmation_email(
            teacher.name or "Teacher", quiz.title, description
        )
        await self.send_email_notification(teacher, f"✅ Quiz Shared: {quiz.title}", html)
        return notification

    # =========================================================
    # Submission events
    # =========================================================
    async def notify_submission(
        self,
        student: User,
        quiz,
        result,
        attempt_number: int,
    ) -> Optional[Notification]:
        """
        Graded notification for a submission. Skipped if one was created
        for this student and quiz within the duplicate window.
        """
        since = self.clock.utcnow() - timedelta(seconds=settings.DUPLICATE_NOTIFICATION_WINDOW_SECONDS)
        recent = await self.notification_repo.get_recent_of_type(
            student.id, quiz.id, NotificationType.QUIZ_GRADED.value, since
        )
        if recent:
            logger.warning("Duplicate in-app notification detected, skipping creation")
            return None

        attempt_message = build_attempt_message(attempt_number, quiz.max_attempts)
        try:
            notification = await self._create(
                recipient_id=student.id,
                recipient_role=UserRole.STUDENT.value,
                type=NotificationType.QUIZ_GRADED.value,
                title=quiz.title,
                description=(
                    f"Your submission has been received. You scored {result.score}% "
                    f"({result.correct_answers}/{result.total_questions} correct){attempt_message}."
                ),
                quiz_id=quiz.id,
                score=f"{result.score}/100",
                status=NotificationStatus.GRADED.value,
                data={
                    "submission_id": str(result.id),
                    "attempt_number": attempt_number,
                    "max_attempts": quiz.max_attempts,
                },
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error creating submission notification: {e}")
            return None
        logger.info(f"Submission notification created for student {student.id}")
        return notification

    async def send_submission_email(self, student: User, quiz, result, attempt_number: int) -> bool:
        html = email_templates.build_submission_email(
            student.name or "Student",
            quiz.title,
            result.score,
            result.correct_answers,
            result.total_questions,
            build_attempt_message(attempt_number, quiz.max_attempts),
        )
        return await self.send_email_notification(student, f"✅ Quiz Submitted: {quiz.title}", html)

    async def notify_abandoned(self, student: User, quiz, result, attempt_number: int) -> Optional[Notification]:
        try:
            return await self._create(
                recipient_id=student.id,
                recipient_role=UserRole.STUDENT.value,
                type=NotificationType.QUIZ_ABANDONED.value,
                title=quiz.title,
                description="Quiz was not completed. This counts as 1 attempt. Score: 0/100",
                quiz_id=quiz.id,
                score="0/100",
                status=NotificationStatus.ABANDONED.value,
                data={
                    "submission_id": str(result.id),
                    "attempt_number": attempt_number,
                    "max_attempts": quiz.max_attempts,
                },
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error creating abandonment notification: {e}")
            return None

    async def notify_majority_completion(
        self,
        teacher: User,
        quiz,
        completed: int,
        total: int,
        percentage: int,
    ) -> Optional[Notification]:
        try:
            notification = await self._create(
                recipient_id=teacher.id,
                recipient_role=UserRole.TEACHER.value,
                type=NotificationType.QUIZ_MAJORITY_COMPLETE.value,
                title=f"Majority Completion: {quiz.title}",
                description=(
                    f"{completed} out of {total} students ({percentage}%) have completed the quiz."
                ),
                quiz_id=quiz.id,
                status=NotificationStatus.COMPLETED.value,
                data={"completed": completed, "total": total, "percentage": percentage},
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error creating majority completion notification: {e}")
            notification = None

        html = email_templates.build_majority_completion_email(
            teacher.name or "Teacher", quiz.title, completed, total, percentage
        )
        await self.send_email_notification(
            teacher,
            f"📊 Quiz Status: {quiz.title} - {percentage}% Complete",
            html,
        )
        return notification

    async def delete_for_quiz(self, quiz_id: UUID) -> int:
        deleted = await self.notification_repo.delete_for_quiz(quiz_id)
        logger.info(f"Deleted {deleted} notifications for quiz {quiz_id}")
        return deleted

    # =========================================================
    # Reading
    # =========================================================
    async def list_notifications(self, user: User, unread_only: bool = False) -> Tuple[list, int]:
        """
        Newest notifications for the user with duplicates collapsed.

        Unread duplicates are marked read as a side effect. Returns the
        unique notifications and how many of them are unread.
        """
        preferences = await self.get_preferences(user.id)
        if not preferences.in_app_notifications:
            logger.info(f"In-app notifications disabled for user {user.id}")
            return [], 0

        notifications = await self.notification_repo.get_for_recipient(
            user.id,
            unread_only=unread_only,
            limit=settings.NOTIFICATION_LIST_LIMIT,
        )
        unique, duplicate_ids = deduplicate_notifications(notifications)
        await self._mark_duplicates(duplicate_ids)
        unread = sum(1 for n in unique if not n.is_read)
        return unique, unread

    async def unread_count(self, user: User) -> int:
        preferences = await self.get_preferences(user.id)
        if not preferences.in_app_notifications:
            return 0
        notifications = await self.notification_repo.get_for_recipient(
            user.id, unread_only=True, limit=None
        )
        unique, duplicate_ids = deduplicate_notifications(notifications)
        await self._mark_duplicates(duplicate_ids)
        return len(unique)

    async def _mark_duplicates(self, duplicate_ids: List[UUID]) -> None:
        if not duplicate_ids:
            return
        marked = await self.notification_repo.mark_read(duplicate_ids)
        logger.info(f"Marked {marked} duplicate notifications as read")

    async def mark_as_read(self, user: User, notification_id: UUID) -> Notification:
        notification = await self.notification_repo.get_owned(notification_id, user.id)
        if not notification:
            raise NotificationNotFoundError("Notification not found")
        notification.is_read = True
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def mark_all_read(self, user: User) -> int:
        return await self.notification_repo.mark_all_read(user.id)

    async def delete_notification(self, user: User, notification_id: UUID) -> None:
        notification = await self.notification_repo.get_owned(notification_id, user.id)
        if not notification:
            raise NotificationNotFoundError("Notification not found")
        await self.db.delete(notification)
        await self.db.commit()

    # =========================================================
    # Misc
    # =========================================================
    async def create_data_export_notification(self, user: User, file_name: str) -> Notification:
        if not user.is_staff:
            raise NotificationPermissionError("Only teachers and admins can export data")
        notification = await self._create(
            recipient_id=user.id,
            recipient_role=user.role,
            type=NotificationType.DATA_EXPORT.value,
            title="Data Export Complete",
            description=f"Your personal data has been successfully exported as {file_name}",
            status=NotificationStatus.COMPLETED.value,
            data={
                "file_name": file_name,
                "export_date": self.clock.utcnow().isoformat(),
            },
        )
        logger.info(f"Data export notification created: {notification.id}")
        return notification

    async def cleanup_duplicate_notifications(self) -> int:
        """Keep the oldest quiz_assigned row per (recipient, quiz); delete the rest."""
        rows = await self.notification_repo.get_all_assignments()
        groups: Dict[Tuple[UUID, UUID], List[Notification]] = {}
        for row in rows:
            groups.setdefault((row.recipient_id, row.quiz_id), []).append(row)

        to_delete = []
        for group in groups.values():
            if len(group) < 2:
                continue
            group.sort(key=lambda n: n.created_at)
            to_delete.extend(n.id for n in group[1:])

        deleted = await self.notification_repo.delete_many(to_delete)
        logger.info(f"Cleanup complete. Deleted {deleted} duplicate notifications.")
        return deleted

    async def send_test_notifications(self, user: User, kind: Optional[str]) -> TestNotificationReport:
        preferences = await self.get_preferences(user.id)
        report = TestNotificationReport(
            test_type=kind or "all",
            email_notifications_enabled=preferences.email_notifications,
            in_app_notifications_enabled=preferences.in_app_notifications,
        )

        if kind in ("inapp", "both"):
            if preferences.in_app_notifications:
                notification = await self._create(
                    recipient_id=user.id,
                    recipient_role=user.role or UserRole.STUDENT.value,
                    type=NotificationType.ANNOUNCEMENT.value,
                    title="🧪 Test In-App Notification",
                    description=(
                        "This is a test in-app notification to verify your settings are working correctly."
                    ),
                    status=NotificationStatus.COMPLETED.value,
                    data={"is_test": True, "test_time": self.clock.utcnow().isoformat()},
                )
                report.in_app_notification_created = True
                report.in_app_notification_id = notification.id
            else:
                report.in_app_notification_created = False
                report.messages.append("In-app notifications are disabled for this user")

        if kind in ("email", "both"):
            if preferences.email_notifications and user.email:
                report.email_sent = await self.send_email_notification(
                    user,
                    "🧪 Test Email",
                    email_templates.build_test_email(user.name),
                    preferences=preferences,
                )
            else:
                report.email_sent = False
                report.messages.append("Email notifications are disabled for this user")

        return report

"""
Analytics Service

Teacher dashboards and per-quiz activity. Records are fetched here and
folded by the pure functions in quiz_stats.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quizflow.core.clock import Clock, get_clock
from quizflow.core.config import settings
from quizflow.models import User
from quizflow.repositories.notification_repo import NotificationRepository
from quizflow.repositories.quiz_repo import QuizRepository, QuizResultRepository
from quizflow.repositories.user_repo import UserRepository
from quizflow.services.quiz_stats import (
    assigned_student_ids,
    compute_class_progress,
    compute_dashboard_stats,
    compute_engagement_trend,
    compute_quiz_stats,
    compute_student_overview,
    summarize_results,
)
from quizflow.services.quiz_status import resolve_status

logger = logging.getLogger(__name__)


class AnalyticsServiceError(Exception):
    pass


class QuizNotFoundError(AnalyticsServiceError):
    pass


class AnalyticsService:
    """Read-only statistics over a teacher's quizzes."""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self.quiz_repo = QuizRepository(db)
        self.result_repo = QuizResultRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.user_repo = UserRepository(db)

    async def _teacher_records(self, teacher: User):
        quiz_ids = await self.quiz_repo.get_ids_by_teacher(teacher.id)
        assignments = await self.notification_repo.get_student_assignments(quiz_ids)
        results = await self.result_repo.get_by_quizzes(quiz_ids)
        return assignments, results

    # ============================================================
    # DASHBOARD
    # ============================================================

    async def get_dashboard_stats(self, teacher: User) -> Dict[str, Any]:
        assignments, results = await self._teacher_records(teacher)
        return compute_dashboard_stats(
            assignments, results, self.clock.now(), settings.TARGET_PROGRESS
        )

    async def get_class_progress(self, teacher: User) -> List[Dict[str, Any]]:
        _, results = await self._teacher_records(teacher)
        return compute_class_progress(results, self.clock.now(), settings.TARGET_PROGRESS)

    async def get_engagement_trend(self, teacher: User) -> List[Dict[str, Any]]:
        assignments, results = await self._teacher_records(teacher)
        return compute_engagement_trend(assignments, results, self.clock.now())

    async def get_student_overview(self, teacher: User, limit: int = 10) -> Dict[str, Any]:
        assignments, results = await self._teacher_records(teacher)
        students = await self.user_repo.get_many(assigned_student_ids(assignments)[:limit])
        return compute_student_overview(assignments, results, students, limit)

    # ============================================================
    # ACTIVITIES
    # ============================================================

    async def get_activities(self, teacher: User) -> List[Dict[str, Any]]:
        """One row per live quiz, newest first, with its effective status."""
        quizzes = await self.quiz_repo.get_by_teacher(teacher.id, limit=None)
        quizzes.sort(key=lambda q: q.created_at, reverse=True)
        results = await self.result_repo.get_by_quizzes(q.id for q in quizzes)

        now = self.clock.now()
        activities = []
        for quiz in quizzes:
            summary = summarize_results([r for r in results if r.quiz_id == quiz.id])
            activities.append({
                "id": quiz.id,
                "quiz_title": quiz.title,
                "subject": quiz.subject,
                "grade_level": ", ".join(quiz.grade_level or []),
                "status": resolve_status(quiz, now).status.value,
                "is_scheduled": quiz.is_scheduled,
                "schedule_date": quiz.schedule_date,
                "created_at": quiz.created_at,
                "last_edited": quiz.last_edited,
                "total_questions": len(quiz.questions),
                "total_attempts": summary["total_attempts"],
                "student_count": summary["student_count"],
                "average_score": summary["average_score"],
                "completion_rate": summary["completion_rate"],
                "progress": quiz.progress or 0,
            })
        return activities

    async def get_activity_stats(self, teacher: User) -> Dict[str, Any]:
        quizzes = await self.quiz_repo.get_by_teacher(teacher.id, limit=None)
        results = await self.result_repo.get_by_quizzes(q.id for q in quizzes)
        counts = compute_quiz_stats(quizzes, self.clock.now())
        summary = summarize_results(results)
        return {
            "total_quizzes": counts["total"],
            "draft_quizzes": counts["drafts"],
            "scheduled_quizzes": counts["scheduled"],
            "active_quizzes": counts["active"],
            "closed_quizzes": counts["closed"],
            "total_attempts": summary["total_attempts"],
            "total_students": summary["student_count"],
            "average_score": summary["average_score"],
            "engagement_rate": summary["completion_rate"],
        }

    async def get_quiz_performance(self, teacher: User, quiz_id: UUID) -> Dict[str, Any]:
        quiz = await self.quiz_repo.get_live(quiz_id)
        if not quiz or quiz.teacher_id != teacher.id:
            raise QuizNotFoundError("Quiz not found or unauthorized")

        results = await self.result_repo.get_by_quiz(quiz.id)
        students = await self.user_repo.get_many({r.user_id for r in results})
        summary = summarize_results(results)

        attempts = []
        for result in results:
            student = students.get(result.user_id)
            attempts.append({
                "attempt_id": result.id,
                "student_id": result.user_id,
                "student_name": student.name if student else "Unknown Student",
                "student_email": (student.email or "") if student else "",
                "score": result.score,
                "correct_answers": result.correct_answers,
                "total_questions": result.total_questions,
                "abandoned": result.abandoned,
                "time_taken": result.time_taken,
                "submitted_at": result.submitted_at,
            })

        return {
            "quiz": {
                "id": quiz.id,
                "title": quiz.title,
                "subject": quiz.subject,
                "total_questions": len(quiz.questions),
            },
            "statistics": {
                "total_attempts": summary["total_attempts"],
                "unique_students": summary["student_count"],
                "average_score": summary["average_score"],
                "highest_score": summary["highest_score"],
                "lowest_score": summary["lowest_score"],
            },
            "attempts": attempts,
        }

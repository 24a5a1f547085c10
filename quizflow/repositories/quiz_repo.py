"""
Quiz Repository

Data access layer for Quiz and QuizResult models.
"""

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete, update, or_

from quizflow.repositories.base import BaseRepository
from quizflow.models.quiz import Quiz, QuizStatus
from quizflow.models.quiz_question import QuizQuestion
from quizflow.models.quiz_result import QuizResult
from quizflow.models.notification import Notification


class QuizRepository(BaseRepository[Quiz]):
    """Repository for Quiz model. Soft deleted quizzes are hidden from every read."""

    def __init__(self, db: AsyncSession):
        super().__init__(Quiz, db)

    def _live(self):
        return select(self.model).where(self.model.is_deleted.is_(False))

    async def get_live(self, quiz_id: UUID) -> Optional[Quiz]:
        stmt = self._live().where(self.model.id == quiz_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_teacher(
        self,
        teacher_id: UUID,
        status: Optional[QuizStatus] = None,
        skip: int = 0,
        limit: Optional[int] = 100
    ) -> List[Quiz]:
        """Live quizzes, most recently edited first; ``limit=None`` returns all of them."""
        stmt = self._live().where(self.model.teacher_id == teacher_id)
        if status is not None:
            stmt = stmt.where(self.model.status == status)
        stmt = (
            stmt.order_by(self.model.last_edited.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_ids_by_teacher(self, teacher_id: UUID) -> List[UUID]:
        stmt = select(self.model.id).where(
            self.model.teacher_id == teacher_id,
            self.model.is_deleted.is_(False),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_scheduled_for_cohort(
        self,
        semester: Optional[str],
        academic_year: Optional[int],
    ) -> List[Quiz]:
        """
        Scheduled quizzes visible to a student cohort. A quiz with no
        semester or year filter matches every student on that dimension.
        """
        stmt = self._live().where(self.model.is_scheduled.is_(True))
        if semester:
            stmt = stmt.where(or_(self.model.semester.is_(None), self.model.semester == semester))
        if academic_year:
            stmt = stmt.where(
                or_(self.model.academic_year.is_(None), self.model.academic_year == academic_year)
            )
        stmt = stmt.order_by(self.model.schedule_date, self.model.start_time)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_expired(self, now: datetime) -> List[Quiz]:
        """Live quizzes whose expiry date has passed."""
        stmt = self._live().where(
            self.model.expiry_date.isnot(None),
            self.model.expiry_date <= now,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def soft_delete_many(self, quiz_ids: List[UUID]) -> int:
        if not quiz_ids:
            return 0
        stmt = (
            update(self.model)
            .where(self.model.id.in_(quiz_ids))
            .values(is_deleted=True, status=QuizStatus.CLOSED)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0

    async def hard_delete(self, quiz_id: UUID) -> None:
        """Remove a quiz with its questions, results and notifications."""
        await self.db.execute(delete(Notification).where(Notification.quiz_id == quiz_id))
        await self.db.execute(delete(QuizResult).where(QuizResult.quiz_id == quiz_id))
        await self.db.execute(delete(QuizQuestion).where(QuizQuestion.quiz_id == quiz_id))
        await self.db.execute(delete(self.model).where(self.model.id == quiz_id))
        await self.db.commit()


class QuizResultRepository(BaseRepository[QuizResult]):
    """Repository for QuizResult model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizResult, db)

    async def get_recent_submission(
        self,
        user_id: UUID,
        quiz_id: UUID,
        since: datetime
    ) -> Optional[QuizResult]:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
                self.model.submitted_at >= since,
            )
            .order_by(self.model.submitted_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def count_user_attempts(self, user_id: UUID, quiz_id: UUID) -> int:
        """Every recorded result counts, abandoned ones included."""
        stmt = (
            select(func.count(self.model.id))
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_user_completions(self, user_id: UUID, quiz_id: UUID) -> int:
        stmt = (
            select(func.count(self.model.id))
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
                self.model.abandoned.is_(False),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_distinct_submitters(self, quiz_id: UUID) -> int:
        """Students with at least one non-abandoned result for the quiz."""
        stmt = (
            select(func.count(func.distinct(self.model.user_id)))
            .where(
                self.model.quiz_id == quiz_id,
                self.model.abandoned.is_(False),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_latest(self, user_id: UUID, quiz_id: UUID) -> Optional[QuizResult]:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
            )
            .order_by(self.model.submitted_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_quiz(self, quiz_id: UUID) -> List[QuizResult]:
        stmt = (
            select(self.model)
            .where(self.model.quiz_id == quiz_id)
            .order_by(self.model.submitted_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_quizzes(self, quiz_ids: Iterable[UUID]) -> List[QuizResult]:
        ids = list(quiz_ids)
        if not ids:
            return []
        stmt = (
            select(self.model)
            .where(self.model.quiz_id.in_(ids))
            .order_by(self.model.submitted_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

"""
Notification Repository

Data access layer for Notification model.
"""

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, delete

from quizflow.repositories.base import BaseRepository
from quizflow.models.notification import Notification, NotificationType
from quizflow.models.user import UserRole


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    # =================
    # Listing
    # =================
    async def get_for_recipient(
        self,
        recipient_id: UUID,
        unread_only: bool = False,
        limit: Optional[int] = 50
    ) -> List[Notification]:
        """Newest first."""
        stmt = select(self.model).where(self.model.recipient_id == recipient_id)
        if unread_only:
            stmt = stmt.where(self.model.is_read.is_(False))
        stmt = stmt.order_by(self.model.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # =================
    # Assignments
    # =================
    async def count_student_assignments(self, quiz_id: UUID) -> int:
        """Student quiz_assigned rows for a quiz; teacher confirmations are excluded."""
        stmt = select(func.count(self.model.id)).where(
            self.model.quiz_id == quiz_id,
            self.model.type == NotificationType.QUIZ_ASSIGNED.value,
            self.model.recipient_role == UserRole.STUDENT.value,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_student_assignments(self, quiz_ids: Iterable[UUID]) -> List[Notification]:
        ids = list(quiz_ids)
        if not ids:
            return []
        stmt = (
            select(self.model)
            .where(
                self.model.quiz_id.in_(ids),
                self.model.type == NotificationType.QUIZ_ASSIGNED.value,
                self.model.recipient_role == UserRole.STUDENT.value,
            )
            .order_by(self.model.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_all_assignments(self) -> List[Notification]:
        """Every quiz_assigned row with a quiz, oldest first."""
        stmt = (
            select(self.model)
            .where(
                self.model.type == NotificationType.QUIZ_ASSIGNED.value,
                self.model.quiz_id.isnot(None),
            )
            .order_by(self.model.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_recent_of_type(
        self,
        recipient_id: UUID,
        quiz_id: UUID,
        notification_type: str,
        since: datetime
    ) -> List[Notification]:
        stmt = select(self.model).where(
            self.model.recipient_id == recipient_id,
            self.model.quiz_id == quiz_id,
            self.model.type == notification_type,
            self.model.created_at >= since,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # =================
    # Writes
    # =================
    async def add(self, **kwargs) -> Notification:
        """Stage a notification in the current transaction without committing."""
        instance = self.model(**kwargs)
        self.db.add(instance)
        return instance

    async def mark_read(self, ids: Iterable[UUID]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        stmt = update(self.model).where(self.model.id.in_(ids)).values(is_read=True)
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0

    async def mark_all_read(self, recipient_id: UUID) -> int:
        stmt = (
            update(self.model)
            .where(
                self.model.recipient_id == recipient_id,
                self.model.is_read.is_(False),
            )
            .values(is_read=True)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0

    async def delete_for_quiz(self, quiz_id: UUID) -> int:
        result = await self.db.execute(delete(self.model).where(self.model.quiz_id == quiz_id))
        await self.db.commit()
        return result.rowcount or 0

    async def delete_many(self, ids: Iterable[UUID]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        result = await self.db.execute(delete(self.model).where(self.model.id.in_(ids)))
        await self.db.commit()
        return result.rowcount or 0

    async def get_owned(self, notification_id: UUID, recipient_id: UUID) -> Optional[Notification]:
        stmt = select(self.model).where(
            self.model.id == notification_id,
            self.model.recipient_id == recipient_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

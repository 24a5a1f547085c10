"""
User Repository

Data access layer for users and their notification preferences.
"""

from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from quizflow.repositories.base import BaseRepository
from quizflow.models import User, UserRole, NotificationPreference


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Students
    # =================
    def _students(self, semester: Optional[str] = None, year: Optional[str] = None):
        stmt = select(User).where(User.role == UserRole.STUDENT.value)
        if semester:
            stmt = stmt.where(User.semester == semester)
        if year:
            stmt = stmt.where(User.year == year)
        return stmt

    async def get_students(
        self,
        semester: Optional[str] = None,
        year: Optional[str] = None,
    ) -> List[User]:
        """Students in a cohort; a None filter leaves that dimension open."""
        result = await self.db.execute(
            self._students(semester, year).order_by(User.created_at)
        )
        return list(result.scalars().all())

    async def count_students(self) -> int:
        """Every student account, regardless of cohort."""
        stmt = select(func.count(User.id)).where(User.role == UserRole.STUDENT.value)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_many(self, user_ids: Iterable[UUID]) -> Dict[UUID, User]:
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}


class NotificationPreferenceRepository(BaseRepository[NotificationPreference]):
    """Repository for per-user notification preferences."""

    def __init__(self, db: AsyncSession):
        super().__init__(NotificationPreference, db)

    async def get_for_user(self, user_id: UUID) -> Optional[NotificationPreference]:
        result = await self.db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_for_users(self, user_ids: Iterable[UUID]) -> Dict[UUID, NotificationPreference]:
        ids = list(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id.in_(ids))
        )
        return {pref.user_id: pref for pref in result.scalars().all()}

    async def upsert(self, user_id: UUID, **values) -> NotificationPreference:
        preference = await self.get_for_user(user_id)
        if preference is None:
            preference = NotificationPreference(user_id=user_id, **values)
            self.db.add(preference)
        else:
            for key, value in values.items():
                setattr(preference, key, value)
        await self.db.commit()
        await self.db.refresh(preference)
        return preference

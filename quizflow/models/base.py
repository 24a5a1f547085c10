"""
Base Model Module

This module provides a base class for all SQLAlchemy models with common fields:
- id: Primary key (UUID)
- created_at: Timestamp when record was created
- updated_at: Timestamp when record was last updated
"""

import uuid
from sqlalchemy import Column, DateTime, Uuid, func

from quizflow.db.database import Base


class BaseModel(Base):
    """
    Abstract base model class that provides common fields for all models.

    Attributes:
        id (UUID): Primary key, auto-generated UUID
        created_at (DateTime): Set when the record is created, unless the
            service supplies its own clock reading
        updated_at (DateTime): Updated every time the record is modified
    """

    __abstract__ = True

    # Server-generated timestamps come back with the INSERT/UPDATE
    __mapper_args__ = {"eager_defaults": True}

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
        index=True
    )

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True
    )

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self):
        """String representation for debugging."""
        return f"<{self.__class__.__name__}(id={self.id})>"

import enum

from sqlalchemy import Column, String, Boolean, ForeignKey, Text, Uuid, JSON
from .base import BaseModel


class NotificationType(str, enum.Enum):
    QUIZ_ASSIGNED = "quiz_assigned"
    QUIZ_GRADED = "quiz_graded"
    QUIZ_ABANDONED = "quiz_abandoned"
    QUIZ_MAJORITY_COMPLETE = "quiz_majority_complete"
    DATA_EXPORT = "data_export"
    ANNOUNCEMENT = "announcement"


class NotificationStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    GRADED = "graded"
    ABANDONED = "abandoned"


class Notification(BaseModel):
    __tablename__ = "notifications"

    recipient_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_role = Column(String(20), nullable=False, default="student")
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=True, index=True)
    instructor = Column(String(100), nullable=True)
    due_label = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default=NotificationStatus.PENDING.value)
    score = Column(String(20), nullable=True)  # "85/100"
    is_read = Column(Boolean, default=False, nullable=False)
    data = Column(JSON, nullable=True)  # extra metadata

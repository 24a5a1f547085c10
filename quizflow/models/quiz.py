from sqlalchemy import Column, String, Integer, ForeignKey, Date, DateTime, Boolean, Uuid, JSON, Enum, func
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class QuizStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    CLOSED = "closed"


# maxAttempts value meaning "no limit"
UNLIMITED_ATTEMPTS = 99
ALLOWED_MAX_ATTEMPTS = (1, 2, 3, UNLIMITED_ATTEMPTS)


class Quiz(BaseModel):
    __tablename__ = "quizzes"

    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Quiz info
    title = Column(String(200), nullable=False)
    subject = Column(String(200), nullable=False)
    grade_level = Column(JSON, nullable=False, default=list)  # ["1-1", "1-2"]

    # Cohort filters
    semester = Column(String(20), nullable=True)
    academic_year = Column(Integer, nullable=True)

    max_attempts = Column(Integer, default=1, nullable=False)

    # Schedule
    is_scheduled = Column(Boolean, default=False, nullable=False)
    schedule_date = Column(Date, nullable=True, index=True)
    start_time = Column(String(5), nullable=True)  # "HH:MM" (24-hour)
    end_time = Column(String(5), nullable=True)    # "HH:MM" (24-hour)
    due_date = Column(Date, nullable=True)

    # Stored status; advisory only once the quiz is scheduled
    status = Column(
        Enum(
            QuizStatus,
            name="quiz_status",
            values_callable=lambda x: [e.value for e in x]
        ),
        default=QuizStatus.DRAFT,
        nullable=False,
        index=True
    )

    # Soft deleted by the cleanup job once this passes
    expiry_date = Column(DateTime(timezone=True), nullable=True, index=True)

    progress = Column(Integer, default=0, nullable=False)
    last_edited = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    # Relationships
    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.display_order",
        lazy="selectin",
    )

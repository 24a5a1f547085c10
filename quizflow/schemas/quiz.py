"""
Quiz Schemas

Pydantic models for quiz-related API requests and responses.
"""

from datetime import date, datetime
from typing import Optional, List
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Enums
# ============================================================

class QuestionType(str, Enum):
    MCQ = "mcq"
    SHORT = "short"


# ============================================================
# Request Schemas
# ============================================================

class QuestionOption(BaseModel):
    id: Optional[int] = None
    text: str = ""
    is_correct: bool = False


class QuestionInput(BaseModel):
    """A question as authored by the teacher; drafts may be incomplete."""
    question_type: QuestionType = QuestionType.MCQ
    question_text: str = ""
    options: List[QuestionOption] = Field(default_factory=list)
    short_answer: str = ""
    hints: List[str] = Field(default_factory=lambda: ["", "", "", ""])

    @field_validator("hints")
    def pad_hints(cls, v):
        if len(v) > 4:
            raise ValueError("A question has at most 4 hints")
        return v + [""] * (4 - len(v))


class QuizCreateRequest(BaseModel):
    """Request to create a draft quiz."""
    title: str = Field(..., max_length=200)
    subject: str = Field(..., max_length=200)
    grade_level: List[str] = Field(default_factory=list)
    questions: List[QuestionInput] = Field(default_factory=list)


class QuizUpdateRequest(BaseModel):
    """Partial update of a quiz's editable fields."""
    title: Optional[str] = Field(None, max_length=200)
    subject: Optional[str] = Field(None, max_length=200)
    grade_level: Optional[List[str]] = None
    questions: Optional[List[QuestionInput]] = None


class QuizScheduleRequest(BaseModel):
    """
    Schedule / share a quiz.

    Field combinations are checked by the service so that a bad schedule
    is reported as a 400 with a readable message.
    """
    schedule_date: Optional[date] = None
    start_time: Optional[str] = Field(None, description="HH:MM, 24-hour")
    end_time: Optional[str] = Field(None, description="HH:MM, 24-hour")
    due_date: Optional[date] = None
    semester: Optional[str] = Field(None, description="'1st semester' or '2nd semester'")
    academic_year: Optional[int] = Field(None, description="1-4")
    max_attempts: int = Field(default=1, description="1, 2, 3 or 99 (unlimited)")


class QuizSubmitRequest(BaseModel):
    """Answers by question position; None for an unanswered question."""
    answers: List[Optional[int]] = Field(default_factory=list)
    time_taken: Optional[int] = Field(None, ge=0, description="Seconds")
    abandoned: bool = False


# ============================================================
# Response Schemas
# ============================================================

class QuestionResponse(BaseModel):
    id: UUID
    question_type: str
    question_text: str
    options: List[QuestionOption]
    short_answer: str
    hints: List[str]
    display_order: int

    class Config:
        from_attributes = True


class StudentOption(BaseModel):
    id: Optional[int] = None
    text: str = ""


class StudentQuestionResponse(BaseModel):
    """A question as shown to students (no answer key)."""
    id: UUID
    question_type: str
    question_text: str
    options: List[StudentOption]
    hints: List[str]
    display_order: int

    class Config:
        from_attributes = True


class QuizResponse(BaseModel):
    """Quiz with its effective status resolved at read time."""
    id: UUID
    teacher_id: UUID
    title: str
    subject: str
    grade_level: List[str]
    semester: Optional[str] = None
    academic_year: Optional[int] = None
    max_attempts: int
    is_scheduled: bool
    schedule_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    due_date: Optional[date] = None
    status: str
    stored_status: str
    time_status: str
    is_upcoming: bool
    is_currently_active: bool
    is_expired: bool
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    progress: int
    question_count: int
    last_edited: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def build(cls, quiz, resolved, **extra) -> "QuizResponse":
        window = resolved.window
        return cls(
            id=quiz.id,
            teacher_id=quiz.teacher_id,
            title=quiz.title,
            subject=quiz.subject,
            grade_level=quiz.grade_level or [],
            semester=quiz.semester,
            academic_year=quiz.academic_year,
            max_attempts=quiz.max_attempts,
            is_scheduled=quiz.is_scheduled,
            schedule_date=quiz.schedule_date,
            start_time=quiz.start_time,
            end_time=quiz.end_time,
            due_date=quiz.due_date,
            status=resolved.status.value,
            stored_status=getattr(quiz.status, "value", quiz.status),
            time_status=resolved.time_status,
            is_upcoming=resolved.is_upcoming,
            is_currently_active=resolved.is_currently_active,
            is_expired=resolved.is_expired,
            window_start=window.start if window else None,
            window_end=window.end if window and not window.open_ended else None,
            expiry_date=quiz.expiry_date,
            progress=quiz.progress,
            question_count=len(quiz.questions),
            last_edited=quiz.last_edited,
            created_at=quiz.created_at,
            **extra,
        )


class QuizDetailResponse(QuizResponse):
    questions: List[QuestionResponse]


class StudentQuizResponse(QuizResponse):
    """Quiz in a student's feed with their attempt budget."""
    attempts_used: int
    attempts_remaining: int
    can_attempt: bool
    questions: List[StudentQuestionResponse]


class QuizListResponse(BaseModel):
    quizzes: List[QuizResponse]
    total: int


class StudentQuizListResponse(BaseModel):
    quizzes: List[StudentQuizResponse]
    total: int


class QuizStatsResponse(BaseModel):
    total: int
    drafts: int
    scheduled: int
    active: int
    closed: int


class DispatchResponse(BaseModel):
    success: bool
    count: int = 0
    skipped: bool = False
    emails_sent: int = 0
    error: Optional[str] = None


class QuizScheduleResponse(BaseModel):
    quiz: QuizResponse
    notifications: DispatchResponse


class QuizDeleteResponse(BaseModel):
    success: bool = True
    deleted_notifications: int = 0


class CleanupResponse(BaseModel):
    success: bool
    count: int
    quiz_ids: List[UUID]
    queued: bool = False


class AnswerResult(BaseModel):
    question_id: int
    user_answer: int
    correct_answer: int
    is_correct: bool


class SubmissionResponse(BaseModel):
    """Result of recording an attempt."""
    message: str
    duplicate: bool = False
    user_id: UUID
    quiz_id: UUID
    score: int
    correct_answers: int
    total_questions: int
    time_taken: Optional[int] = None
    answers: List[AnswerResult]
    submitted_at: datetime
    abandoned: bool = False
    attempt_number: Optional[int] = None
    max_attempts: Optional[int] = None
    attempts_remaining: Optional[int] = None


class SubmissionRecord(BaseModel):
    id: UUID
    user_id: UUID
    quiz_id: UUID
    score: int
    correct_answers: int
    total_questions: int
    time_taken: Optional[int] = None
    answers: List[AnswerResult]
    submitted_at: datetime
    abandoned: bool

    class Config:
        from_attributes = True


class SubmissionQuizInfo(BaseModel):
    id: UUID
    title: str
    subject: str
    questions: List[QuestionResponse]


class SubmissionDetailResponse(BaseModel):
    submission: SubmissionRecord
    quiz: SubmissionQuizInfo

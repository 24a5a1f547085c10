from sqlalchemy import Column, Integer, Boolean, ForeignKey, DateTime, Uuid, JSON
from .base import BaseModel


class QuizResult(BaseModel):
    __tablename__ = "quiz_results"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Results
    score = Column(Integer, nullable=False, default=0)  # 0..100
    correct_answers = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    time_taken = Column(Integer, nullable=True)  # seconds

    # [{"question_id": 1, "user_answer": 2, "correct_answer": 2, "is_correct": true}, ...]
    answers = Column(JSON, nullable=False, default=list)

    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)
    abandoned = Column(Boolean, default=False, nullable=False)


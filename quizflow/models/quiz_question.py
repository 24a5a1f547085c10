from sqlalchemy import Column, String, Integer, ForeignKey, Text, Uuid, JSON
from sqlalchemy.orm import relationship
from .base import BaseModel


class QuizQuestion(BaseModel):
    __tablename__ = "quiz_questions"

    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Question content
    question_type = Column(String(10), nullable=False, default="mcq")  # mcq, short
    question_text = Column(Text, nullable=False)

    # [{"id": 1, "text": "...", "is_correct": true}, ...]
    options = Column(JSON, nullable=False, default=list)
    short_answer = Column(Text, nullable=False, default="")  # teacher reference for short answers
    hints = Column(JSON, nullable=False, default=lambda: ["", "", "", ""])

    display_order = Column(Integer, default=0, nullable=False)

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")

    @property
    def correct_option_index(self):
        """Position of the first option flagged correct, or None."""
        for index, option in enumerate(self.options or []):
            if option.get("is_correct"):
                return index
        return None

"""
Student Quiz Endpoints

- GET /student/quizzes - Scheduled quizzes for the student's cohort
"""

from fastapi import APIRouter, Depends

from quizflow.api.deps import require_student
from quizflow.api.v1.endpoints.quizzes import get_quiz_service
from quizflow.models.user import User
from quizflow.schemas.quiz import (
    StudentQuestionResponse,
    StudentQuizListResponse,
    StudentQuizResponse,
)
from quizflow.services.quiz_service import QuizService

router = APIRouter(prefix="/student", tags=["Student Quizzes"])


@router.get(
    "/quizzes",
    response_model=StudentQuizListResponse,
    summary="Quiz feed for the current student",
)
async def list_student_quizzes(
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
):
    views = await service.list_student_quizzes(current_user)
    quizzes = [
        StudentQuizResponse.build(
            view.quiz,
            view.resolved,
            attempts_used=view.attempts_used,
            attempts_remaining=view.attempts_remaining,
            can_attempt=view.can_attempt,
            questions=[StudentQuestionResponse.model_validate(q) for q in view.quiz.questions],
        )
        for view in views
    ]
    return StudentQuizListResponse(quizzes=quizzes, total=len(quizzes))

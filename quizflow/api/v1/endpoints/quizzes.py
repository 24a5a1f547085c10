"""
Quiz Endpoints

HTTP API for quiz authoring, scheduling and taking.

Endpoints:
----------
Teacher:
- POST   /quizzes                      - Create a draft quiz
- GET    /quizzes                      - List own quizzes
- GET    /quizzes/drafts               - List unscheduled drafts
- GET    /quizzes/scheduled            - List scheduled quizzes
- GET    /quizzes/stats                - Counts by effective status
- POST   /quizzes/cleanup-expired      - Soft delete expired quizzes
- GET    /quizzes/{quiz_id}            - Get quiz with questions
- PUT    /quizzes/{quiz_id}            - Update a quiz
- DELETE /quizzes/{quiz_id}            - Soft delete a quiz
- DELETE /quizzes/{quiz_id}/permanent  - Hard delete a quiz
- POST   /quizzes/{quiz_id}/schedule   - Schedule and share with students

Student:
- POST   /quizzes/{quiz_id}/submit     - Record an attempt
- GET    /quizzes/{quiz_id}/submission - Latest own submission
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from quizflow.db.database import get_db
from quizflow.db.redis import get_arq_pool
from quizflow.api.deps import require_teacher, require_student, get_request_clock, get_email_sender
from quizflow.core.clock import Clock
from quizflow.models.user import User
from quizflow.schemas.quiz import (
    CleanupResponse,
    DispatchResponse,
    QuestionResponse,
    QuizCreateRequest,
    QuizDeleteResponse,
    QuizDetailResponse,
    QuizListResponse,
    QuizResponse,
    QuizScheduleRequest,
    QuizScheduleResponse,
    QuizStatsResponse,
    QuizSubmitRequest,
    QuizUpdateRequest,
    SubmissionDetailResponse,
    SubmissionQuizInfo,
    SubmissionRecord,
    SubmissionResponse,
)
from quizflow.services.notification_service import EmailSender
from quizflow.services.quiz_service import (
    AttemptLimitExceededError,
    QuizNotAvailableError,
    QuizNotFoundError,
    QuizService,
    QuizValidationError,
    SubmissionNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


def get_quiz_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_request_clock),
    email_sender: EmailSender = Depends(get_email_sender),
) -> QuizService:
    return QuizService(db, clock=clock, email_sender=email_sender)


def _detail(service: QuizService, quiz) -> QuizDetailResponse:
    return QuizDetailResponse.build(
        quiz,
        service.resolve(quiz),
        questions=[QuestionResponse.model_validate(q) for q in quiz.questions],
    )


def _listing(service: QuizService, quizzes) -> QuizListResponse:
    return QuizListResponse(
        quizzes=[QuizResponse.build(q, service.resolve(q)) for q in quizzes],
        total=len(quizzes),
    )


# ============================================================
# AUTHORING
# ============================================================

@router.post(
    "",
    response_model=QuizDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft quiz",
)
async def create_quiz(
    request: QuizCreateRequest,
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        quiz = await service.create_quiz(current_user, request)
    except QuizValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _detail(service, quiz)


@router.get("", response_model=QuizListResponse, summary="List own quizzes")
async def list_quizzes(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    quizzes = await service.list_teacher_quizzes(current_user, skip=skip, limit=limit)
    return _listing(service, quizzes)


@router.get("/drafts", response_model=QuizListResponse, summary="List drafts")
async def list_drafts(
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return _listing(service, await service.list_drafts(current_user))


@router.get("/scheduled", response_model=QuizListResponse, summary="List scheduled quizzes")
async def list_scheduled(
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return _listing(service, await service.list_scheduled(current_user))


@router.get("/stats", response_model=QuizStatsResponse, summary="Quiz counts by effective status")
async def quiz_stats(
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return await service.get_stats(current_user)


@router.post(
    "/cleanup-expired",
    response_model=CleanupResponse,
    summary="Soft delete quizzes past their expiry date",
)
async def cleanup_expired(
    background: bool = Query(False, description="Enqueue on the worker instead of running inline"),
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    if background:
        pool = await get_arq_pool()
        await pool.enqueue_job("cleanup_expired_quizzes")
        logger.info(f"Expired quiz cleanup queued by {current_user.id}")
        return CleanupResponse(success=True, count=0, quiz_ids=[], queued=True)
    return CleanupResponse(**await service.cleanup_expired_quizzes())


@router.get("/{quiz_id}", response_model=QuizDetailResponse, summary="Get a quiz")
async def get_quiz(
    quiz_id: UUID,
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        quiz = await service.get_quiz(current_user, quiz_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _detail(service, quiz)


@router.put("/{quiz_id}", response_model=QuizDetailResponse, summary="Update a quiz")
async def update_quiz(
    quiz_id: UUID,
    request: QuizUpdateRequest,
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        quiz = await service.update_quiz(current_user, quiz_id, request)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except QuizValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _detail(service, quiz)


@router.delete("/{quiz_id}", response_model=QuizDeleteResponse, summary="Delete a quiz")
async def delete_quiz(
    quiz_id: UUID,
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        deleted = await service.delete_quiz(current_user, quiz_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return QuizDeleteResponse(deleted_notifications=deleted)


@router.delete(
    "/{quiz_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently delete a quiz",
)
async def permanent_delete_quiz(
    quiz_id: UUID,
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        await service.permanent_delete_quiz(current_user, quiz_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ============================================================
# SCHEDULING
# ============================================================

@router.post(
    "/{quiz_id}/schedule",
    response_model=QuizScheduleResponse,
    summary="Schedule a quiz and notify its cohort",
)
async def schedule_quiz(
    quiz_id: UUID,
    request: QuizScheduleRequest,
    current_user: User = Depends(require_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        outcome = await service.schedule_quiz(current_user, quiz_id, request)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except QuizValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    dispatch = outcome.dispatch
    return QuizScheduleResponse(
        quiz=QuizResponse.build(outcome.quiz, outcome.resolved),
        notifications=DispatchResponse(
            success=dispatch.success,
            count=dispatch.count,
            skipped=dispatch.skipped,
            emails_sent=dispatch.emails_sent,
            error=dispatch.error,
        ),
    )


# ============================================================
# TAKING
# ============================================================

@router.post(
    "/{quiz_id}/submit",
    response_model=SubmissionResponse,
    summary="Submit answers (or record an abandoned attempt)",
)
async def submit_quiz(
    quiz_id: UUID,
    request: QuizSubmitRequest,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        outcome = await service.record_attempt(
            current_user,
            quiz_id,
            answers=request.answers,
            time_taken=request.time_taken,
            abandoned=request.abandoned,
        )
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AttemptLimitExceededError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": str(e),
                "attempts_used": e.attempts_used,
                "max_attempts": e.max_attempts,
            },
        )
    except QuizNotAvailableError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": str(e), "time_status": e.time_status},
        )

    result = outcome.result
    return SubmissionResponse(
        message=outcome.message,
        duplicate=outcome.duplicate,
        user_id=result.user_id,
        quiz_id=result.quiz_id,
        score=result.score,
        correct_answers=result.correct_answers,
        total_questions=result.total_questions,
        time_taken=result.time_taken,
        answers=result.answers or [],
        submitted_at=result.submitted_at,
        abandoned=result.abandoned,
        attempt_number=outcome.attempt_number,
        max_attempts=outcome.max_attempts,
        attempts_remaining=outcome.attempts_remaining,
    )


@router.get(
    "/{quiz_id}/submission",
    response_model=SubmissionDetailResponse,
    summary="Latest own submission for a quiz",
)
async def get_submission(
    quiz_id: UUID,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        result, quiz = await service.get_latest_submission(current_user, quiz_id)
    except (SubmissionNotFoundError, QuizNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return SubmissionDetailResponse(
        submission=SubmissionRecord.model_validate(result),
        quiz=SubmissionQuizInfo(
            id=quiz.id,
            title=quiz.title,
            subject=quiz.subject,
            questions=[QuestionResponse.model_validate(q) for q in quiz.questions],
        ),
    )

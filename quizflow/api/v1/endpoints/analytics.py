"""
Teacher Analytics Endpoints

Endpoints:
----------
- GET /teacher/dashboard/stats               - Headline numbers
- GET /teacher/dashboard/class-progress      - Average score per week
- GET /teacher/dashboard/engagement-trend    - Daily active share
- GET /teacher/dashboard/students            - Per-student overview
- GET /teacher/activities                    - Per-quiz activity
- GET /teacher/activities/stats              - Activity totals
- GET /teacher/quizzes/{quiz_id}/performance - Attempts for one quiz
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quizflow.db.database import get_db
from quizflow.api.deps import require_teacher, get_request_clock
from quizflow.core.clock import Clock
from quizflow.models.user import User
from quizflow.schemas.analytics import (
    ActivityListResponse,
    ActivityStatsResponse,
    ClassProgressPoint,
    DashboardStatsResponse,
    EngagementPoint,
    QuizPerformanceResponse,
    StudentOverviewResponse,
)
from quizflow.services.analytics_service import AnalyticsService, QuizNotFoundError

router = APIRouter(prefix="/teacher", tags=["Teacher Analytics"])


def get_analytics_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_request_clock),
) -> AnalyticsService:
    return AnalyticsService(db, clock=clock)


# ============================================================
# DASHBOARD
# ============================================================

@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_dashboard_stats(current_user)


@router.get("/dashboard/class-progress", response_model=List[ClassProgressPoint])
async def class_progress(
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_class_progress(current_user)


@router.get("/dashboard/engagement-trend", response_model=List[EngagementPoint])
async def engagement_trend(
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_engagement_trend(current_user)


@router.get("/dashboard/students", response_model=StudentOverviewResponse)
async def student_overview(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_student_overview(current_user, limit=limit)


# ============================================================
# ACTIVITIES
# ============================================================

@router.get("/activities", response_model=ActivityListResponse)
async def activities(
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    data = await service.get_activities(current_user)
    return ActivityListResponse(count=len(data), data=data)


@router.get("/activities/stats", response_model=ActivityStatsResponse)
async def activity_stats(
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.get_activity_stats(current_user)


@router.get("/quizzes/{quiz_id}/performance", response_model=QuizPerformanceResponse)
async def quiz_performance(
    quiz_id: UUID,
    current_user: User = Depends(require_teacher),
    service: AnalyticsService = Depends(get_analytics_service),
):
    try:
        return await service.get_quiz_performance(current_user, quiz_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

from fastapi import APIRouter
from quizflow.api.v1.endpoints import quizzes, student_quizzes, notifications, analytics

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# Teacher authoring, scheduling and student submission (/quizzes)
api_router.include_router(
    quizzes.router,
    prefix=""
)

# Student quiz feed (/student/quizzes)
api_router.include_router(
    student_quizzes.router,
    prefix=""
)

api_router.include_router(
    notifications.router,
    prefix=""  # Routes define own prefix (/notifications)
)

# Teacher dashboard and activity analytics (/teacher/...)
api_router.include_router(
    analytics.router,
    prefix=""
)

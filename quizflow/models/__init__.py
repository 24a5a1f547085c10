from quizflow.models.base import Base
from quizflow.models.user import User, UserRole
from quizflow.models.notification_preference import NotificationPreference
from quizflow.models.quiz import Quiz, QuizStatus
from quizflow.models.quiz_question import QuizQuestion
from quizflow.models.quiz_result import QuizResult
from quizflow.models.notification import (
    Notification,
    NotificationType,
    NotificationStatus,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "NotificationPreference",
    "Quiz",
    "QuizStatus",
    "QuizQuestion",
    "QuizResult",
    "Notification",
    "NotificationType",
    "NotificationStatus",
]

from quizflow.repositories.base import BaseRepository
from quizflow.repositories.user_repo import UserRepository, NotificationPreferenceRepository
from quizflow.repositories.quiz_repo import (
    QuizRepository,
    QuizResultRepository,
)
from quizflow.repositories.notification_repo import NotificationRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "NotificationPreferenceRepository",
    "QuizRepository",
    "QuizResultRepository",
    "NotificationRepository",
]

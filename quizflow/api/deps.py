from fastapi import HTTPException, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import uuid
import logging

from quizflow.db.database import get_db
from quizflow.models import User
from quizflow.core.clock import Clock, get_clock
from quizflow.core.security import verify_token
from quizflow.repositories.user_repo import UserRepository
from quizflow.services.notification_service import EmailSender
from quizflow.utils.email import send_email

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


# =====================================================
# Get Current user
# =====================================================
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency that validates the JWT and returns the current user.

    Raises:
        HTTPException 401: If token is invalid, or the user is unknown or inactive
    """
    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = uuid.UUID(payload.get("sub", ""))
    except ValueError:
        raise _unauthorized("Invalid token subject")

    user = await UserRepository(db).get_by_id(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


# =====================================================
# Role checks
# =====================================================
async def require_teacher(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher access required"
        )
    return current_user


async def require_student(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student access required"
        )
    return current_user


# =====================================================
# Collaborators
# =====================================================
def get_request_clock() -> Clock:
    return get_clock()


def get_email_sender() -> EmailSender:
    return send_email

from datetime import datetime, timezone, timedelta
from typing import Any, Union, Optional, Dict
import uuid

from jose import JWTError, jwt

# =====================================================
# Application Settings
# =====================================================
from quizflow.core.config import settings


# =====================================================
# Token Type Constants
# =====================================================
TOKEN_TYPE_ACCESS = "access"


# =====================================================
# JWT Creation
# =====================================================
def create_access_token(
    subject: Union[str, Any],
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Tokens are normally issued by the identity service; this is used by
    tooling and tests.
    """
    # Current UTC time (timezone-aware)
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "exp": expire,                     # Expiration time
        "sub": str(subject),               # Subject (user ID)
        "type": TOKEN_TYPE_ACCESS,         # Token type
        "iat": now,                        # Issued at
        "jti": str(uuid.uuid4())           # Unique token ID
    }
    if role:
        to_encode["role"] = role

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


# =====================================================
# Token Verification
# =====================================================
def verify_token(
    token: str,
    token_type: str = TOKEN_TYPE_ACCESS
) -> Optional[Dict[str, Any]]:
    """
    Verify a JWT token and return its payload if valid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    if payload.get("type") != token_type:
        return None

    return payload

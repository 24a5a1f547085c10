from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyUrl, EmailStr, Field, field_validator
import secrets


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"  # Ignore extra fields in .env file
    )

    # -------------------------
    # Database
    # -------------------------
    DATABASE_URL: AnyUrl

    SQLALCHEMY_ECHO: bool = False
    DB_POOL_MIN_SIZE: Optional[int] = None
    DB_POOL_MAX_SIZE: Optional[int] = None

    # -------------------------
    # Security / Auth
    # -------------------------
    SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # -------------------------
    # Application
    # -------------------------
    PROJECT_NAME: str = "Quizflow API"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Zone in which quiz schedule dates and "HH:MM" times are interpreted
    TIMEZONE: str = "UTC"

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    FRONTEND_URL: Optional[str] = None

    # -------------------------
    # Email
    # -------------------------
    EMAIL_MODE: str = Field(
        default="smtp",
        description="Email transport: 'smtp' or 'brevo'"
    )

    SMTP_EMAIL: Optional[EmailStr] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: Optional[int] = None

    BREVO_API_KEY: Optional[str] = None
    BREVO_SENDER_EMAIL: Optional[EmailStr] = None
    BREVO_SENDER_NAME: str = "Quizflow"
    BREVO_API_URL: str = "https://api.brevo.com/v3/smtp/email"

    # -------------------------
    # Redis (for ARQ task queue)
    # -------------------------
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the background job queue"
    )

    # =========================================================
    # Quiz lifecycle
    # =========================================================
    DUPLICATE_SUBMISSION_WINDOW_SECONDS: int = Field(
        default=5,
        ge=0,
        description="A second submission inside this window is treated as a double click"
    )

    DUPLICATE_NOTIFICATION_WINDOW_SECONDS: int = Field(
        default=5,
        ge=0,
        description="Graded notifications inside this window are not created twice"
    )

    MAJORITY_COMPLETION_THRESHOLD: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Percentage of students that must submit before the teacher is told"
    )

    QUIZ_EXPIRY_MONTHS: int = Field(
        default=1,
        ge=1,
        description="Scheduled quizzes are soft deleted this many months after they close"
    )

    NOTIFICATION_LIST_LIMIT: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Newest notifications fetched per listing"
    )

    TARGET_PROGRESS: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Class progress target shown on teacher dashboards"
    )

    @field_validator("ALGORITHM")
    def validate_algorithm(cls, v):
        if not v or not isinstance(v, str):
            raise ValueError("ALGORITHM must be a non-empty string.")
        return v

    @field_validator("EMAIL_MODE")
    def validate_email_mode(cls, v):
        """Ensure email mode is a valid option."""
        allowed = {"smtp", "brevo"}
        if v not in allowed:
            raise ValueError(f"EMAIL_MODE must be one of: {allowed}")
        return v

    @field_validator("TIMEZONE")
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"TIMEZONE must be an IANA zone name, got {v!r}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


settings = Settings()

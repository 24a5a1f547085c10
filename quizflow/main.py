"""
FastAPI Application Entry Point

This module initializes the FastAPI application with:
- CORS configuration
- Route registration
- Health check endpoints
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quizflow.core.config import settings
from quizflow.db.database import check_db_connection
from quizflow.db.redis import (
    check_redis_connection,
    get_redis_pool,
    close_redis_pool,
    close_arq_pool,
)
from quizflow.api.v1.router import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Application Lifespan Events
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: check the database and open the Redis pool.
    Shutdown: close Redis connections.
    """
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    logger.info(f"Debug mode: {settings.DEBUG}, schedule timezone: {settings.TIMEZONE}")

    try:
        if await check_db_connection():
            logger.info("Database connection established successfully")
        else:
            logger.warning("Database connection check failed")
    except Exception as e:
        logger.error(f"Database connection error on startup: {e}")

    # The API keeps serving without Redis; only queued cleanup is lost
    try:
        get_redis_pool()
        if await check_redis_connection():
            logger.info("Redis connection established successfully")
        else:
            logger.warning("Redis connection check failed - background cleanup unavailable")
    except Exception as e:
        logger.error(f"Redis connection error on startup: {e}")

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    await close_redis_pool()
    await close_arq_pool()
    logger.info("Shutdown complete")


# ============================================================
# Create FastAPI Application
# ============================================================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Classroom Quiz API

    Features:
    - Quiz authoring and scheduling
    - Cohort notifications (in-app and email)
    - Attempt limits and scoring
    - Teacher dashboards
    """,
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# ----------------------------------------------------
# Health Check Endpoints
# ----------------------------------------------------
@app.get("/", tags=["Health"])
async def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.DEBUG else "disabled"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Report database and Redis connectivity."""
    try:
        db_healthy = await check_db_connection()
        redis_healthy = await check_redis_connection()
        return {
            "status": "healthy" if db_healthy and redis_healthy else "degraded",
            "database": "connected" if db_healthy else "disconnected",
            "redis": "connected" if redis_healthy else "disconnected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": str(e)}
        )


app.include_router(
    api_router,
    prefix=settings.API_V1_PREFIX
)


# ----------------------------------------------------
# Exception Handlers
# ----------------------------------------------------
@app.exception_handler(404)
async def not_found_handler(request, exc):
    return JSONResponse(
        status_code=404,
        content={"detail": getattr(exc, "detail", None) or "Not found"}
    )


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    logger.error(f"Internal server error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

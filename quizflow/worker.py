"""
ARQ Worker Configuration

Running the Worker:
------------------
    # From project root directory
    arq quizflow.worker.WorkerSettings

    # With verbose logging
    arq quizflow.worker.WorkerSettings --verbose

The worker only runs jobs enqueued by the API; expired-quiz cleanup is
started on demand with POST /quizzes/cleanup-expired?background=true.
"""

import logging
from typing import Any, Dict

from quizflow.core.config import settings
from quizflow.db.redis import get_arq_redis_settings
from quizflow.tasks.quiz_tasks import cleanup_expired_quizzes

# ============================================================
# Logging Configuration
# ============================================================

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Startup and Shutdown Hooks
# ============================================================

async def startup(ctx: Dict[str, Any]) -> None:
    logger.info("ARQ Worker starting up...")
    logger.info(f"Quiz expiry: {settings.QUIZ_EXPIRY_MONTHS} months, timezone: {settings.TIMEZONE}")
    logger.info("ARQ Worker ready to process jobs")


async def shutdown(ctx: Dict[str, Any]) -> None:
    logger.info("ARQ Worker shutdown complete")


# ============================================================
# Worker Configuration Class
# ============================================================

class WorkerSettings:
    """
    ARQ Worker settings.

    Discovered by ARQ when you run:
        arq quizflow.worker.WorkerSettings
    """

    functions = [
        cleanup_expired_quizzes,
    ]

    redis_settings = get_arq_redis_settings()

    on_startup = startup
    on_shutdown = shutdown

    job_timeout = 300      # 5 minutes
    keep_result = 3600     # 1 hour
    max_tries = 3
    retry_delay = 60

    max_jobs = 5
    poll_delay = 0.5

    queue_name = "arq:queue"
    health_check_interval = 10

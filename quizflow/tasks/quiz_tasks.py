"""
Quiz Maintenance Tasks

Background jobs run by the ARQ worker.
"""

import logging
from typing import Any, Dict

from quizflow.db.database import AsyncSessionLocal
from quizflow.services.quiz_service import QuizService

logger = logging.getLogger(__name__)


async def cleanup_expired_quizzes(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """
    Soft delete every quiz whose expiry date has passed.

    Runs only when a teacher queues it from the API.
    Returns the same payload as the inline endpoint, with ids as strings.
    """
    job_id = ctx.get("job_id", "unknown")
    job_try = ctx.get("job_try", 1)
    logger.info(f"Expired quiz cleanup started (job: {job_id}, attempt: {job_try})")

    async with AsyncSessionLocal() as session:
        try:
            outcome = await QuizService(session).cleanup_expired_quizzes()
        except Exception as e:
            await session.rollback()
            logger.error(f"Expired quiz cleanup failed: {e}", exc_info=True)
            raise

    logger.info(f"Expired quiz cleanup finished: {outcome['count']} quizzes")
    return {
        "success": outcome["success"],
        "count": outcome["count"],
        "quiz_ids": [str(quiz_id) for quiz_id in outcome["quiz_ids"]],
    }

"""
Background Tasks Module

Task functions for the ARQ worker. Each receives the ARQ `ctx` dict
(job_id, job_try, redis) as its first argument.

Enqueue from the API:
    pool = await get_arq_pool()
    await pool.enqueue_job("cleanup_expired_quizzes")

Run a worker from the project root:
    arq quizflow.worker.WorkerSettings
"""

from quizflow.tasks.quiz_tasks import cleanup_expired_quizzes

__all__ = [
    "cleanup_expired_quizzes",
]

"""
Celery tasks for scheduled notification jobs.

Contains:
- check_letter_deadlines: Urgent/overdue letter notifications (scheduled)
- update_request_sla: Request SLA status recomputation (scheduled)
- send_digest: Daily and weekly email digests (scheduled)
"""
import asyncio
import logging

from app.config import get_settings
from app.models.enums import DigestFrequency
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()


def get_async_session_for_celery():
    """Create an async session factory for use within Celery tasks (via run_async)."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    return session_maker, engine


def run_async(coro):
    """Run async coroutine in sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _with_session(job):
    session_maker, engine = get_async_session_for_celery()
    try:
        async with session_maker() as db:
            return await job(db)
    finally:
        await engine.dispose()


@celery_app.task(
    bind=True,
    name="app.tasks.notification_tasks.check_letter_deadlines",
    max_retries=3,
    default_retry_delay=60,
)
def check_letter_deadlines(self) -> dict:
    """
    Notify owners about urgent and overdue letters.

    Scheduled daily. Repeat runs on the same day are deduplicated.

    Returns:
        Dict with notification counts
    """
    from app.services.deadlines import run_deadline_check

    logger.info("Starting letter deadline check task")

    try:
        result = run_async(_with_session(run_deadline_check))
    except Exception as e:
        logger.error(f"Error in deadline check task: {e}")
        raise self.retry(exc=e)

    return {
        "success": True,
        "checked": result.checked,
        "urgent": result.urgent,
        "overdue": result.overdue,
        "escalations": result.escalations,
    }


@celery_app.task(
    name="app.tasks.notification_tasks.update_request_sla",
)
def update_request_sla() -> dict:
    """
    Recompute SLA statuses of open requests.

    Returns:
        Dict with updated and checked counts
    """
    from app.services.request_sla import update_sla_statuses

    try:
        updated, checked = run_async(_with_session(update_sla_statuses))
    except Exception as e:
        logger.error(f"Error in request SLA task: {e}")
        return {"success": False, "error": str(e)}

    return {"success": True, "updated": updated, "checked": checked}


@celery_app.task(
    name="app.tasks.notification_tasks.send_digest",
)
def send_digest(frequency: str) -> dict:
    """
    Send notification digests for a frequency.

    Args:
        frequency: DAILY or WEEKLY

    Returns:
        Dict with digest counts
    """
    from app.services.digest import send_digests

    logger.info(f"Starting {frequency} digest task")

    try:
        digest_frequency = DigestFrequency(frequency.upper())
        result = run_async(
            _with_session(lambda db: send_digests(db, digest_frequency))
        )
    except Exception as e:
        logger.error(f"Error in {frequency} digest task: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "users": result.users,
        "sent": result.sent,
        "failed": result.failed,
        "skipped": result.skipped,
    }

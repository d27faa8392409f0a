"""
API routes for scheduled jobs, called by an external scheduler.

All endpoints require the header "Authorization: Bearer <CRON_SECRET>".

Endpoints:
- POST /api/cron/sla - Letter deadline check
- POST /api/cron/digest?type=daily|weekly - Email digests
- POST /api/cron/requests-sla - Request SLA status update
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import verify_cron_secret
from app.database import get_async_session
from app.models.enums import DigestFrequency
from app.services.deadlines import run_deadline_check
from app.services.digest import send_digests
from app.services.request_sla import update_sla_statuses

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_secret)],
)

DIGEST_TYPES = {
    "daily": DigestFrequency.DAILY,
    "weekly": DigestFrequency.WEEKLY,
}


@router.post("/sla", summary="Run letter deadline check")
async def cron_deadline_check(
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Notify about urgent and overdue letters."""
    result = await run_deadline_check(db)
    return {
        "success": True,
        "checked": result.checked,
        "urgent": result.urgent,
        "overdue": result.overdue,
        "escalations": result.escalations,
    }


@router.post("/digest", summary="Send email digests")
async def cron_digest(
    digest_type: str = Query("daily", alias="type"),
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Send daily or weekly notification digests."""
    frequency = DIGEST_TYPES.get(digest_type)
    if frequency is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid digest type",
        )

    result = await send_digests(db, frequency)
    logger.info(f"Cron: {digest_type} digest sent")
    return {
        "success": True,
        "users": result.users,
        "sent": result.sent,
        "failed": result.failed,
        "skipped": result.skipped,
    }


@router.post("/requests-sla", summary="Update request SLA statuses")
async def cron_requests_sla(
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Recompute the SLA status of open requests."""
    updated, checked = await update_sla_statuses(db)
    return {"success": True, "updated": updated, "checked": checked}

"""
SLA rules and status calculation for service requests.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import as_utc
from app.models.enums import RequestPriority, RequestStatus, SlaStatus
from app.models.request import Request

logger = logging.getLogger(__name__)

# Remaining time below which a request is at risk
AT_RISK_HOURS = 2

# Requests in these statuses are no longer tracked
CLOSED_STATUSES = (RequestStatus.DONE, RequestStatus.CANCELLED, RequestStatus.SPAM)


@dataclass(frozen=True)
class SlaRule:
    first_response_hours: int
    resolution_hours: int


SLA_RULES = {
    RequestPriority.URGENT: SlaRule(first_response_hours=1, resolution_hours=4),
    RequestPriority.HIGH: SlaRule(first_response_hours=4, resolution_hours=24),
    RequestPriority.NORMAL: SlaRule(first_response_hours=24, resolution_hours=72),
    RequestPriority.LOW: SlaRule(first_response_hours=48, resolution_hours=168),
}


def get_rule(priority: RequestPriority) -> SlaRule:
    return SLA_RULES.get(RequestPriority(priority), SLA_RULES[RequestPriority.NORMAL])


def calculate_sla_deadline(created_at: datetime, priority: RequestPriority) -> datetime:
    """Resolution deadline for a request created at created_at."""
    return as_utc(created_at) + timedelta(hours=get_rule(priority).resolution_hours)


def calculate_first_response_deadline(
    created_at: datetime, priority: RequestPriority
) -> datetime:
    """First response deadline for a request created at created_at."""
    return as_utc(created_at) + timedelta(hours=get_rule(priority).first_response_hours)


def calculate_sla_status(
    sla_deadline: Optional[datetime],
    resolved_at: Optional[datetime],
    status: RequestStatus,
    now: Optional[datetime] = None,
) -> SlaStatus:
    """
    SLA status of a request.

    Resolved requests are judged by their resolution time, open
    requests by the time left until the deadline.
    """
    if sla_deadline is None:
        return SlaStatus.ON_TIME

    now = as_utc(now or datetime.now(timezone.utc))
    deadline = as_utc(sla_deadline)

    if status == RequestStatus.DONE or resolved_at is not None:
        finished = as_utc(resolved_at) if resolved_at else now
        return SlaStatus.ON_TIME if finished <= deadline else SlaStatus.BREACHED

    if now > deadline:
        return SlaStatus.BREACHED
    if deadline - now <= timedelta(hours=AT_RISK_HOURS):
        return SlaStatus.AT_RISK
    return SlaStatus.ON_TIME


def hours_until_deadline(
    sla_deadline: Optional[datetime], now: Optional[datetime] = None
) -> Optional[float]:
    """Hours left until the deadline, rounded to 0.1. Negative when past."""
    if sla_deadline is None:
        return None
    now = as_utc(now or datetime.now(timezone.utc))
    hours = (as_utc(sla_deadline) - now).total_seconds() / 3600
    return round(hours, 1)


def apply_sla_deadlines(request: Request, created_at: Optional[datetime] = None) -> None:
    """Set both SLA deadlines and the initial status from the priority."""
    created_at = created_at or request.created_at or datetime.now(timezone.utc)
    request.sla_deadline = calculate_sla_deadline(created_at, request.priority)
    request.first_response_deadline = calculate_first_response_deadline(
        created_at, request.priority
    )
    request.sla_status = calculate_sla_status(
        request.sla_deadline, request.resolved_at, request.status
    )


async def update_sla_statuses(
    db: AsyncSession, now: Optional[datetime] = None
) -> Tuple[int, int]:
    """
    Recompute the SLA status of every open request with a deadline.

    Returns:
        Tuple of (updated, checked)
    """
    now = as_utc(now or datetime.now(timezone.utc))
    result = await db.execute(
        select(Request).where(
            Request.deleted_at.is_(None),
            Request.status.not_in([status.value for status in CLOSED_STATUSES]),
            Request.sla_deadline.is_not(None),
        )
    )
    requests = result.scalars().all()

    updated = 0
    for request in requests:
        new_status = calculate_sla_status(
            request.sla_deadline, request.resolved_at, request.status, now
        )
        if new_status != request.sla_status:
            request.sla_status = new_status
            updated += 1

    if updated:
        await db.commit()

    logger.info(f"Request SLA update: {updated} updated of {len(requests)} checked")
    return updated, len(requests)

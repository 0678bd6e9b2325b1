"""
Scheduled maintenance jobs and the application's job registry.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..core.audit_service import create_audit_log
from ..core.audit_models import AuditAction
from ..core.logging_config import log_exception
from ..support.models import SupportTicket, TicketMessage, TicketStatus, MessageSender
from ..prescriptions.models import Prescription
from .registry import CronJobDefinition, CronJobRegistry

logger = logging.getLogger(__name__)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def close_resolved_tickets(db: Session, days: int, now: Optional[datetime] = None) -> int:
    """
    Close resolved tickets the patient has not replied to.

    A ticket qualifies when it was resolved at or before the start of the
    day `days` days ago and has no patient message after its resolution.

    Returns:
        int: Number of tickets closed
    """
    now = now or datetime.now(timezone.utc)
    cutoff = start_of_day(now) - timedelta(days=days)

    tickets = (
        db.query(SupportTicket)
        .filter(
            SupportTicket.status == TicketStatus.RESOLVED,
            SupportTicket.resolved_at.isnot(None),
            SupportTicket.resolved_at <= cutoff,
        )
        .all()
    )

    closed = 0
    for ticket in tickets:
        try:
            patient_reply = (
                db.query(TicketMessage.id)
                .filter(
                    TicketMessage.ticket_id == ticket.id,
                    TicketMessage.sender_type == MessageSender.USER,
                    TicketMessage.created_at > ticket.resolved_at,
                )
                .first()
            )
            if patient_reply:
                continue

            ticket.status = TicketStatus.CLOSED
            ticket.closed_at = now
            create_audit_log(
                db,
                action=AuditAction.TICKET_AUTO_CLOSED,
                resource_type="support_ticket",
                resource_id=ticket.id,
                details={"resolvedDaysAgo": days},
                commit=False,
            )
            db.commit()
            closed += 1
        except Exception as e:
            db.rollback()
            log_exception(logger, f"❌ Failed to auto-close ticket {ticket.id}", e)

    logger.info(f"🎫 Auto-closed {closed} of {len(tickets)} resolved ticket(s)")
    return closed


def flag_expired_prescriptions(db: Session, now: Optional[datetime] = None) -> int:
    """
    Mark prescriptions that expired before today.

    Each one gets its expired_notified_at set and a PRESCRIPTION_EXPIRED
    audit row, which is where patient outreach picks it up. Prescriptions
    without a patient are skipped.

    Returns:
        int: Number of prescriptions flagged
    """
    now = now or datetime.now(timezone.utc)
    today = start_of_day(now)

    prescriptions = (
        db.query(Prescription)
        .filter(
            Prescription.expires_at <= today,
            Prescription.expired_notified_at.is_(None),
        )
        .all()
    )

    flagged = 0
    for prescription in prescriptions:
        if prescription.patient_id is None:
            logger.warning(f"⚠️ Prescription {prescription.id} has no patient, skipping")
            continue

        prescription.expired_notified_at = now
        create_audit_log(
            db,
            action=AuditAction.PRESCRIPTION_EXPIRED,
            user_id=prescription.patient_id,
            resource_type="prescription",
            resource_id=prescription.id,
            details={"doctorId": prescription.doctor_id},
            commit=False,
        )
        flagged += 1

    db.commit()
    logger.info(f"💊 Flagged {flagged} expired prescription(s)")
    return flagged


def _run_with_session(job, *args):
    db = SessionLocal()
    try:
        return job(db, *args)
    finally:
        db.close()


# Session work runs in a worker thread, off the scheduler's event loop
async def ticket_auto_close_job() -> None:
    await asyncio.to_thread(_run_with_session, close_resolved_tickets, settings.ticket_auto_close_days)


async def prescription_expiration_job() -> None:
    await asyncio.to_thread(_run_with_session, flag_expired_prescriptions)


CRON_JOBS = [
    CronJobDefinition(
        name="ticket-auto-close",
        schedule="0 2 * * *",
        description="Close resolved support tickets without a patient reply",
        handler=ticket_auto_close_job,
    ),
    CronJobDefinition(
        name="prescription-expiration",
        schedule="0 9 * * *",
        description="Flag prescriptions that expired before today",
        handler=prescription_expiration_job,
        run_on_startup=True,
    ),
]


def build_registry() -> CronJobRegistry:
    registry = CronJobRegistry()
    registry.register_all(CRON_JOBS)
    return registry


cron_registry = build_registry()


def get_cron_registry() -> CronJobRegistry:
    """FastAPI dependency returning the application registry."""
    return cron_registry

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.orm import Session

from fpcp.config import get_settings
from fpcp.db.database import sync_session
from fpcp.models.base import utcnow
from fpcp.notifications.dispatcher import EmailDispatcher
from fpcp.notifications.errors import JobError
from fpcp.notifications.reminders import ReminderScanner
from fpcp.notifications.resend import ResendSender


def get_sync_session() -> Session:
    return sync_session()


def dispatch_pending_emails(
    session: Session, batch_size: Optional[int] = None
) -> Dict[str, Any]:
    """在既有 session 中發送待寄郵件"""
    settings = get_settings()
    if not ResendSender.is_configured(settings):
        logger.warning("Resend API key not set, leaving queued emails pending")
        return {"processed": 0, "sent": 0, "failed": 0, "skipped": 0}

    dispatcher = EmailDispatcher(session, ResendSender(settings), settings)
    result = dispatcher.run(batch_size)
    return {
        "processed": result.processed,
        "sent": result.sent,
        "failed": result.failed,
        "skipped": result.skipped,
    }


def scan_deadline_reminders(
    session: Session, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """掃描即將到期專案並寄出提醒

    The dispatch pass runs synchronously after the scan. Its failure is
    reported under ``dispatch_error`` and does not fail the scan.
    """
    settings = get_settings()
    scanner = ReminderScanner(session, settings)
    result = scanner.run(now or utcnow())

    summary: Dict[str, Any] = {
        "projects_processed": result.projects_processed,
        "emails_queued": result.emails_queued,
        "projects_failed": result.projects_failed,
    }

    if settings.dispatch_after_scan:
        try:
            summary["dispatch"] = dispatch_pending_emails(session)
        except JobError as e:
            logger.error(f"Dispatch after reminder scan failed: {e}")
            summary["dispatch_error"] = str(e)

    return summary


def run_deadline_reminders(now: Optional[datetime] = None) -> Dict[str, Any]:
    """每小時：截止日提醒排程任務"""
    with get_sync_session() as session:
        return scan_deadline_reminders(session, now)


def run_email_dispatch(batch_size: Optional[int] = None) -> Dict[str, Any]:
    """每 5 分鐘：發送待寄郵件"""
    with get_sync_session() as session:
        return dispatch_pending_emails(session, batch_size)


def run_deadline_reminders_job():
    try:
        run_deadline_reminders()
    except JobError as e:
        logger.error(f"Deadline reminder job failed: {e}")


def run_email_dispatch_job():
    try:
        run_email_dispatch()
    except JobError as e:
        logger.error(f"Email dispatch job failed: {e}")

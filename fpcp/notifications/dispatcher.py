from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fpcp.config import Settings, get_settings
from fpcp.models.base import utcnow
from fpcp.models.email_queue import EmailStatus, QueuedEmail
from fpcp.notifications.errors import JobError
from fpcp.notifications.templates import render_queued_email
from fpcp.notifications.transport import MailTransport


@dataclass
class DispatchResult:
    """Counts for one dispatch run.

    ``processed`` counts only rows this run claimed (``sent + failed``).
    Rows another run had already finished or locked are in ``skipped``.
    """

    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0


class EmailDispatcher:
    """Drains pending queue rows and moves each to ``sent`` or ``failed``.

    Every claimed row gets exactly one terminal write. Failed rows are never
    retried here.
    """

    def __init__(
        self,
        session: Session,
        transport: MailTransport,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.transport = transport
        self.settings = settings or get_settings()

    def fetch_pending(self, batch_size: int) -> List[int]:
        stmt = (
            select(QueuedEmail.id)
            .where(QueuedEmail.status == EmailStatus.pending)
            .order_by(QueuedEmail.created_at, QueuedEmail.id)
            .limit(batch_size)
        )
        return list(self.session.scalars(stmt).all())

    def _claim(self, email_id: int) -> Optional[QueuedEmail]:
        """Lock the row if it is still pending; None if another run has it."""
        stmt = (
            select(QueuedEmail)
            .where(QueuedEmail.id == email_id, QueuedEmail.status == EmailStatus.pending)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).first()

    def _deliver(self, email: QueuedEmail) -> bool:
        try:
            rendered = render_queued_email(email, self.settings.app_base_url)
            return self.transport.send(rendered.to, rendered.subject, rendered.html)
        except Exception as e:
            logger.error(f"Error processing email {email.id}: {e}")
            return False

    def dispatch_one(self, email_id: int) -> Optional[EmailStatus]:
        """Send one queued email. Returns its terminal status, or None if skipped."""
        email = self._claim(email_id)
        if email is None:
            self.session.rollback()
            logger.debug(f"Email {email_id} already handled, skipping")
            return None

        if self._deliver(email):
            status = EmailStatus.sent
            email.sent_at = utcnow()
        else:
            status = EmailStatus.failed
        email.status = status
        self.session.commit()
        return status

    def run(self, batch_size: Optional[int] = None) -> DispatchResult:
        if batch_size is None:
            batch_size = self.settings.dispatch_batch_size
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        try:
            email_ids = self.fetch_pending(batch_size)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching emails: {e}")
            self.session.rollback()
            raise JobError(f"Could not fetch pending emails: {e}") from e

        logger.info(f"Processing {len(email_ids)} emails")

        result = DispatchResult()
        try:
            for email_id in email_ids:
                try:
                    status = self.dispatch_one(email_id)
                except SQLAlchemyError as e:
                    self.session.rollback()
                    result.processed += 1
                    result.failed += 1
                    logger.error(f"Error updating email {email_id}: {e}")
                    continue

                if status is None:
                    result.skipped += 1
                    continue

                result.processed += 1
                if status is EmailStatus.sent:
                    result.sent += 1
                else:
                    result.failed += 1
                    logger.error(f"Failed to send email {email_id}")
        except SQLAlchemyError as e:
            logger.error(f"Email dispatch aborted: {e}")
            raise JobError(f"Email dispatch aborted: {e}") from e

        logger.info(
            f"Email dispatch completed: {result.sent} sent, {result.failed} failed, "
            f"{result.skipped} skipped"
        )
        return result

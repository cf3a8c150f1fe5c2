from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Enum, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fpcp.db.database import Base
from fpcp.models.base import utcnow


class TemplateType(enum.Enum):
    new_project = "new_project"
    application_status = "application_status"
    deadline_reminder = "deadline_reminder"
    other = "other"


class EmailStatus(enum.Enum):
    pending = "pending"
    sent = "sent"
    failed = "failed"


class QueuedEmail(Base):
    __tablename__ = "email_queue"

    id: Mapped[int] = mapped_column(primary_key=True)
    to_email: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    template_type: Mapped[TemplateType] = mapped_column(
        Enum(TemplateType), nullable=False, default=TemplateType.other
    )
    # "metadata" is reserved on declarative classes
    payload: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    status: Mapped[EmailStatus] = mapped_column(
        Enum(EmailStatus), nullable=False, default=EmailStatus.pending, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), nullable=False
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    @property
    def is_terminal(self) -> bool:
        return self.status in (EmailStatus.sent, EmailStatus.failed)

    def __repr__(self) -> str:
        return (
            f"<QueuedEmail {self.id} {self.template_type.value} "
            f"to={self.to_email} {self.status.value}>"
        )

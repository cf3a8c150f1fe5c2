from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from fpcp.db.database import Base

PREFERENCE_FLAGS = (
    "deadline_reminders",
    "new_projects",
    "application_updates",
    "project_updates",
)


class EmailPreference(Base):
    __tablename__ = "email_preferences"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id"), unique=True, nullable=False
    )
    deadline_reminders: Mapped[bool] = mapped_column(Boolean, default=True)
    new_projects: Mapped[bool] = mapped_column(Boolean, default=True)
    application_updates: Mapped[bool] = mapped_column(Boolean, default=True)
    project_updates: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<EmailPreference user={self.user_id}>"


def preference_enabled(preference: Optional[EmailPreference], flag: str) -> bool:
    """Return whether ``flag`` is on for this user.

    A user without a preference row, or with a NULL flag, gets every email type.
    Only an explicit False opts out.
    """
    if flag not in PREFERENCE_FLAGS:
        raise ValueError(f"Unknown email preference flag: {flag}")
    if preference is None:
        return True
    return getattr(preference, flag) is not False

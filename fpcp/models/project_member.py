from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fpcp.db.database import Base

if TYPE_CHECKING:
    from fpcp.models.profile import Profile
    from fpcp.models.project import Project


class MemberStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    status: Mapped[MemberStatus] = mapped_column(
        Enum(MemberStatus), nullable=False, default=MemberStatus.pending
    )
    interview_notes: Mapped[Optional[str]] = mapped_column(Text)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    project: Mapped["Project"] = relationship(back_populates="members")
    user: Mapped["Profile"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<ProjectMember project={self.project_id} user={self.user_id} "
            f"{self.status.value}>"
        )

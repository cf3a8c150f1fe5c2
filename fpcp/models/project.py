from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fpcp.db.database import Base
from fpcp.models.base import TimestampMixin

if TYPE_CHECKING:
    from fpcp.models.profile import Profile
    from fpcp.models.project_member import ProjectMember


class ProjectStatus(enum.Enum):
    open = "open"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class Project(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    required_skills: Mapped[Optional[List[str]]] = mapped_column(JSON)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime)
    owner_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus), nullable=False, default=ProjectStatus.open
    )
    last_reminder_sent: Mapped[Optional[datetime]] = mapped_column(DateTime)

    owner: Mapped["Profile"] = relationship()
    members: Mapped[List["ProjectMember"]] = relationship(back_populates="project")

    def __repr__(self) -> str:
        return f"<Project {self.id} {self.title!r} ({self.status.value})>"

from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from fpcp.db.database import Base
from fpcp.models.base import TimestampMixin


class UserRole(enum.Enum):
    freelancer = "freelancer"
    project_owner = "project_owner"


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), nullable=False, default=UserRole.freelancer
    )

    def __repr__(self) -> str:
        return f"<Profile {self.id} {self.email} ({self.role.value})>"

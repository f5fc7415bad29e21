from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow_naive() -> datetime:
    # stored columns are timezone-naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class AccountMixin:
    """Columns shared by every role that can log in."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow_naive)

    def to_dict(self) -> dict:
        return {"ID": self.id, "Name": self.name, "Email": self.email}


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.peerreview.modules.student.models import Student  # noqa: E402,F401
from app.peerreview.modules.staff.models import Staff  # noqa: E402,F401
from app.peerreview.modules.admin.models import Admin  # noqa: E402,F401
from app.peerreview.modules.module.models import Enrollment, Module, Supervision  # noqa: E402,F401

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.peerreview.models import AccountMixin, Base


class Student(AccountMixin, Base):
    __tablename__ = "students"

    matric_no: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["MatricNo"] = self.matric_no
        return d

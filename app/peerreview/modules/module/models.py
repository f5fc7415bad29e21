from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.peerreview.models import Base, utcnow_naive


class Module(Base):
    __tablename__ = "modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)  # e.g. "CS2103"
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow_naive)

    def to_dict(self) -> dict:
        return {"ID": self.id, "Code": self.code, "Name": self.name}


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("module_id", "student_id", name="uq_enrollment_module_student"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    module_id: Mapped[int] = mapped_column(ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False)

    student: Mapped["Student"] = relationship(lazy="joined")  # noqa: F821

    def to_dict(self) -> dict:
        return {"ID": self.id, "ModuleID": self.module_id, "Student": self.student.to_dict()}


class Supervision(Base):
    __tablename__ = "supervisions"
    __table_args__ = (UniqueConstraint("module_id", "staff_id", name="uq_supervision_module_staff"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    module_id: Mapped[int] = mapped_column(ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id", ondelete="CASCADE"), nullable=False)

    staff: Mapped["Staff"] = relationship(lazy="joined")  # noqa: F821

    def to_dict(self) -> dict:
        return {"ID": self.id, "ModuleID": self.module_id, "Staff": self.staff.to_dict()}

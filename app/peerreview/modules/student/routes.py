from __future__ import annotations

from pydantic import Field

from app.peerreview.models import Student
from app.peerreview.modules.accounts import AccountRoutes, NewAccount


class NewStudent(NewAccount):
    matric_no: str | None = Field(default=None, max_length=32)


class StudentRoutes(AccountRoutes):
    model = Student
    role = "student"
    new_account_shape = NewStudent

    def build(self, body: NewStudent) -> Student:
        student = super().build(body)
        student.matric_no = (body.matric_no or "").strip().upper() or None
        return student

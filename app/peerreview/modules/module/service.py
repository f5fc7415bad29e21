from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session


class NotFound(LookupError):
    pass


class AlreadyExists(RuntimeError):
    pass


def create_module(s: "Session", code: str, name: str):
    from app.peerreview.models import Module

    code = code.strip().upper()
    if s.query(Module).filter(Module.code == code).one_or_none() is not None:
        raise AlreadyExists(f"Module {code} already exists")
    module = Module(code=code, name=name.strip())
    s.add(module)
    s.flush()
    return module


def _require(s: "Session", model, pk: int, label: str):
    obj = s.get(model, pk)
    if obj is None:
        raise NotFound(f"{label} {pk} not found")
    return obj


def _link(s: "Session", link) -> None:
    s.add(link)
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise AlreadyExists("Already assigned to this module") from e


def enroll_student(s: "Session", module_id: int, student_id: int):
    from app.peerreview.models import Enrollment, Module, Student

    _require(s, Module, module_id, "Module")
    _require(s, Student, student_id, "Student")
    enrollment = Enrollment(module_id=module_id, student_id=student_id)
    _link(s, enrollment)
    return enrollment


def assign_supervisor(s: "Session", module_id: int, staff_id: int):
    from app.peerreview.models import Module, Staff, Supervision

    _require(s, Module, module_id, "Module")
    _require(s, Staff, staff_id, "Staff")
    supervision = Supervision(module_id=module_id, staff_id=staff_id)
    _link(s, supervision)
    return supervision


def enrollments_query(s: "Session", module_id: int | None) -> "Query":
    from app.peerreview.models import Enrollment

    q = s.query(Enrollment)
    if module_id is not None:
        q = q.filter(Enrollment.module_id == module_id)
    return q.order_by(Enrollment.id.asc())


def supervisions_query(s: "Session", module_id: int | None) -> "Query":
    from app.peerreview.models import Supervision

    q = s.query(Supervision)
    if module_id is not None:
        q = q.filter(Supervision.module_id == module_id)
    return q.order_by(Supervision.id.asc())

"""
Module routes. One domain, three route groups: the modules themselves,
student enrollments and staff supervisions, each mounted under its own prefix.
"""

from __future__ import annotations

from flask import Blueprint
from pydantic import Field

from app.peerreview.codec import decode_request, handle_response, handle_response_with_object
from app.peerreview.db import Database
from app.peerreview.models import Module
from app.peerreview.modules.accounts import PascalBody
from app.peerreview.modules.module.service import (
    AlreadyExists,
    NotFound,
    assign_supervisor,
    create_module,
    enroll_student,
    enrollments_query,
    supervisions_query,
)
from app.peerreview.utils import paginate, query_int


class NewModule(PascalBody):
    code: str = Field(min_length=1, max_length=32)
    name: str = Field(min_length=1, max_length=255)


class NewEnrollment(PascalBody):
    module_id: int = Field(alias="ModuleID")
    student_id: int = Field(alias="StudentID")


class NewSupervision(PascalBody):
    module_id: int = Field(alias="ModuleID")
    staff_id: int = Field(alias="StaffID")


class ModuleRoutes:
    def __init__(self, db: Database) -> None:
        self.db = db

    def register(self, bp: Blueprint) -> None:
        @bp.post("/")
        def create():
            body = decode_request(NewModule)
            with self.db.session_scope() as s:
                try:
                    module = create_module(s, body.code, body.name)
                except AlreadyExists as e:
                    return handle_response(409, str(e))
                created = module.to_dict()
            return handle_response_with_object(201, created)

        @bp.get("/")
        def list_modules():
            with self.db.session_scope() as s:
                modules = s.query(Module).order_by(Module.code.asc()).all()
                return handle_response_with_object(200, [m.to_dict() for m in modules])

        @bp.get("/<int:module_id>")
        def get(module_id: int):
            with self.db.session_scope() as s:
                module = s.get(Module, module_id)
                if module is None:
                    return handle_response(404, "Module not found")
                return handle_response_with_object(200, module.to_dict())


class EnrollmentRoutes:
    def __init__(self, db: Database) -> None:
        self.db = db

    def register(self, bp: Blueprint) -> None:
        @bp.post("/")
        def enroll():
            body = decode_request(NewEnrollment)
            with self.db.session_scope() as s:
                try:
                    enrollment = enroll_student(s, body.module_id, body.student_id)
                except NotFound as e:
                    return handle_response(404, str(e))
                except AlreadyExists:
                    return handle_response(409, "Student already enrolled in this module")
                created = enrollment.to_dict()
            return handle_response_with_object(201, created)

        @bp.get("/")
        def list_enrollments():
            module_id = query_int("moduleId")
            page, limit = query_int("page"), query_int("limit")
            with self.db.session_scope() as s:
                result = paginate(enrollments_query(s, module_id), page, limit)
            return handle_response_with_object(200, result)


class SupervisionRoutes:
    def __init__(self, db: Database) -> None:
        self.db = db

    def register(self, bp: Blueprint) -> None:
        @bp.post("/")
        def supervise():
            body = decode_request(NewSupervision)
            with self.db.session_scope() as s:
                try:
                    supervision = assign_supervisor(s, body.module_id, body.staff_id)
                except NotFound as e:
                    return handle_response(404, str(e))
                except AlreadyExists:
                    return handle_response(409, "Staff already supervises this module")
                created = supervision.to_dict()
            return handle_response_with_object(201, created)

        @bp.get("/")
        def list_supervisions():
            module_id = query_int("moduleId")
            page, limit = query_int("page"), query_int("limit")
            with self.db.session_scope() as s:
                result = paginate(supervisions_query(s, module_id), page, limit)
            return handle_response_with_object(200, result)

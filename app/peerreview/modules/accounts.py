"""Signup, login and lookup routes shared by every role that holds an account."""

from __future__ import annotations

import logging
from typing import ClassVar

from flask import Blueprint
from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_pascal
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.peerreview.codec import RequestBody, decode_request, handle_response, handle_response_with_object
from app.peerreview.db import Database
from app.peerreview.models import AccountMixin
from app.peerreview.tokens import TokenIssuer

logger = logging.getLogger(__name__)


class PascalBody(RequestBody):
    """Request shapes use PascalCase keys (`Name`, `Email`, `ModuleID`)."""

    model_config = ConfigDict(alias_generator=to_pascal)


class NewAccount(PascalBody):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=4)


class Credentials(PascalBody):
    email: str
    password: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_by_email(s: Session, model: type[AccountMixin], email: str) -> AccountMixin | None:
    return s.query(model).filter(model.email == normalize_email(email)).one_or_none()


def authenticate(s: Session, model: type[AccountMixin], creds: Credentials) -> AccountMixin | None:
    account = find_by_email(s, model, creds.email)
    if account is None or not check_password_hash(account.password_hash, creds.password):
        return None
    return account


class AccountRoutes:
    model: ClassVar[type[AccountMixin]]
    role: ClassVar[str]
    new_account_shape: ClassVar[type[NewAccount]] = NewAccount

    def __init__(self, db: Database, issuer: TokenIssuer) -> None:
        self.db = db
        self.issuer = issuer

    def build(self, body: NewAccount) -> AccountMixin:
        return self.model(
            name=body.name.strip(),
            email=normalize_email(body.email),
            password_hash=generate_password_hash(body.password),
        )

    def register(self, bp: Blueprint) -> None:
        label = self.role.capitalize()

        @bp.post("/")
        def create():
            body = decode_request(self.new_account_shape)
            with self.db.session_scope() as s:
                if find_by_email(s, self.model, body.email) is not None:
                    return handle_response(409, f"{label} with this email already exists")
                account = self.build(body)
                s.add(account)
                try:
                    s.flush()
                except IntegrityError:
                    s.rollback()
                    return handle_response(409, f"{label} already exists")
                created = account.to_dict()
            logger.info("%s created id=%s", label, created["ID"])
            return handle_response_with_object(201, created)

        @bp.post("/login")
        def login():
            creds = decode_request(Credentials)
            with self.db.session_scope() as s:
                account = authenticate(s, self.model, creds)
                if account is None:
                    logger.info("%s login failed email=%s", label, normalize_email(creds.email))
                    return handle_response(401, "Invalid credentials")
                claims = account.to_dict()
            token = self.issuer.issue(claims, role=self.role)
            return handle_response(200, token)

        @bp.get("/<int:account_id>")
        def get(account_id: int):
            with self.db.session_scope() as s:
                account = s.get(self.model, account_id)
                if account is None:
                    return handle_response(404, f"{label} not found")
                return handle_response_with_object(200, account.to_dict())

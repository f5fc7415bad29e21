from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from app.peerreview.config import Settings, current_jwt_secret
from app.peerreview.db import Database, init_db
from app.peerreview.tokens import TokenIssuer


@dataclass(frozen=True)
class ServerContext:
    """Everything a route group may depend on, built once at startup."""

    settings: Settings
    db: Database
    issuer: TokenIssuer


def build_context(settings: Settings, *, db: Database | None = None) -> ServerContext:
    if db is None:
        db = init_db(settings.database_url, env=settings.env)
    issuer = TokenIssuer(
        current_jwt_secret,
        issuer=settings.jwt_issuer,
        ttl=timedelta(seconds=settings.jwt_ttl_seconds),
    )
    return ServerContext(settings=settings, db=db, issuer=issuer)

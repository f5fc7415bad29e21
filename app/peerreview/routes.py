from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from flask import Blueprint, Flask

from app.peerreview.codec import handle_response
from app.peerreview.errors import DuplicatePrefixError

if TYPE_CHECKING:
    from app.peerreview.context import ServerContext

logger = logging.getLogger(__name__)

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Liveness probe. No DB access, so it answers even while the pool is closed."""
    return handle_response(200, "Server is healthy")


class RouteGroup(Protocol):
    def register(self, bp: Blueprint) -> None: ...


def _blueprint_name(index: int, prefix: str) -> str:
    # unique and dot-free whatever the prefix looks like
    return f"group{index}_" + re.sub(r"\W", "_", prefix.strip("/"))


def default_route_groups(ctx: "ServerContext") -> list[tuple[str, RouteGroup]]:
    from app.peerreview.modules.admin.routes import AdminRoutes
    from app.peerreview.modules.module.routes import EnrollmentRoutes, ModuleRoutes, SupervisionRoutes
    from app.peerreview.modules.staff.routes import StaffRoutes
    from app.peerreview.modules.student.routes import StudentRoutes

    return [
        ("/student", StudentRoutes(ctx.db, ctx.issuer)),
        ("/staff", StaffRoutes(ctx.db, ctx.issuer)),
        ("/admin", AdminRoutes(ctx.db, ctx.issuer)),
        ("/module", ModuleRoutes(ctx.db)),
        ("/module/enroll", EnrollmentRoutes(ctx.db)),
        ("/module/supervise", SupervisionRoutes(ctx.db)),
    ]


def compose_routes(app: Flask, groups: Iterable[tuple[str, RouteGroup]]) -> None:
    """
    Mount each group on its own blueprint under its prefix, plus /health.

    Prefixes are compared exactly (case-sensitive); a repeated prefix raises
    DuplicatePrefixError before anything is registered.
    """
    groups = list(groups)
    seen: set[str] = set()
    for prefix, _group in groups:
        if not prefix.startswith("/") or prefix == "/":
            raise ValueError(f"Route prefix must be a non-root path, got {prefix!r}")
        if prefix in seen:
            raise DuplicatePrefixError(f"Route prefix {prefix} registered twice")
        seen.add(prefix)

    for index, (prefix, group) in enumerate(groups):
        sub = Blueprint(_blueprint_name(index, prefix), __name__, url_prefix=prefix)
        group.register(sub)
        app.register_blueprint(sub)
        logger.debug("Mounted %s at %s", type(group).__name__, prefix)

    app.register_blueprint(bp)

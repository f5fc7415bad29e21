from __future__ import annotations

import math

from flask import request
from sqlalchemy.orm import Query

from app.peerreview.errors import BadRequest


def query_int(name: str, *, minimum: int = 1) -> int | None:
    """Read an optional integer query parameter, rejecting junk with a 400."""
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f"Bad Request. Wrong Type provided {name}", field=name) from None
    if value < minimum:
        raise BadRequest(f"Bad Request. {name} must be at least {minimum}", field=name)
    return value


def paginate(q: Query, page: int | None, limit: int | None) -> dict:
    """
    Slice a query into the `{rows, totalPages, ...}` envelope the dashboard pages expect.

    Without `limit` every row comes back as a single page.
    """
    total = q.count()
    if limit is None:
        rows = q.all()
        return {"rows": [r.to_dict() for r in rows], "page": 1, "limit": total, "totalRows": total, "totalPages": 1}
    page = page or 1
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return {
        "rows": [r.to_dict() for r in rows],
        "page": page,
        "limit": limit,
        "totalRows": total,
        "totalPages": max(1, math.ceil(total / limit)),
    }

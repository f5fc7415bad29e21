"""
JSON request/response helpers shared by every route group.

Request bodies are decoded strictly: unknown fields and type mismatches are
rejected with a `BadRequest` naming the offending field. Responses are
either a `{"message": ...}` envelope or a bare serialized object; callers
pick by endpoint, not by shape.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime
from typing import Any, TypeVar

from flask import Response, request
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import PydanticSerializationError

from app.peerreview.errors import BadRequest, SerializationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_WRONG_TYPE_SUFFIXES = ("_type", "_parsing")


class RequestBody(BaseModel):
    """Base for request shapes: no extra fields, no type coercion."""

    model_config = ConfigDict(extra="forbid", strict=True)


def _field_name(loc: tuple[Any, ...]) -> str | None:
    parts = [str(p) for p in loc]
    return ".".join(parts) if parts else None


def _bad_request_from(err: ValidationError) -> BadRequest:
    first = err.errors()[0]
    kind = first.get("type", "")
    field = _field_name(tuple(first.get("loc", ())))
    if kind == "extra_forbidden":
        return BadRequest(f"Bad Request. Unknown field {field}", field=field)
    if kind == "json_invalid":
        return BadRequest(f"Bad Request. {first.get('msg', 'Invalid JSON')}")
    if kind == "missing":
        return BadRequest(f"Bad Request. Missing field {field}", field=field)
    if field and kind.endswith(_WRONG_TYPE_SUFFIXES):
        return BadRequest(f"Bad Request. Wrong Type provided {field}", field=field)
    if field:
        return BadRequest(f"Bad Request. {field}: {first.get('msg')}", field=field)
    return BadRequest(f"Bad Request. {first.get('msg')}")


def decode_body(body: Any, shape: type[ModelT]) -> ModelT:
    """
    Parse `body` as JSON into a new `shape` instance.

    `body` may be bytes, str, or a binary stream (read to end). `shape`
    should subclass `RequestBody` so unknown fields are rejected. Nothing is
    returned on failure, so callers never see a half-filled object.
    """
    if not (isinstance(shape, type) and issubclass(shape, BaseModel)):
        raise TypeError(f"decode_body target must be a pydantic model, got {shape!r}")
    if hasattr(body, "read"):
        body = body.read()
    if body is None:
        body = b""
    try:
        return shape.model_validate_json(body, strict=True)
    except ValidationError as e:
        raise _bad_request_from(e) from e


def decode_request(shape: type[ModelT]) -> ModelT:
    """Decode the current Flask request body."""
    return decode_body(request.get_data(cache=False), shape)


def _json_default(o: Any) -> Any:
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if isinstance(o, BaseModel):
        return o.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return dataclasses.asdict(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def _dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), allow_nan=False, default=_json_default)


def handle_response(status_code: int, message: str) -> Response:
    return Response(_dumps({"message": message}), status=status_code, mimetype="application/json")


def handle_response_with_object(status_code: int, obj: Any) -> Response:
    """
    Serialize `obj` as the whole response body.

    Raises SerializationError instead of writing a partial body; the app's
    error handler turns it into a logged 500.
    """
    try:
        body = _dumps(obj)
    except (TypeError, ValueError, PydanticSerializationError) as e:
        raise SerializationError(f"Could not serialize {type(obj).__name__} response: {e}") from e
    return Response(body, status=status_code, mimetype="application/json")

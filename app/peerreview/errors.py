from werkzeug.exceptions import BadRequest as _HTTPBadRequest


class BadRequest(_HTTPBadRequest):
    """Request body could not be decoded into the expected shape."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(description=message)
        self.field = field


class SigningError(RuntimeError):
    pass


class SerializationError(RuntimeError):
    pass


class ListenError(RuntimeError):
    """The HTTP listener could not bind its address."""


class DuplicatePrefixError(ValueError):
    pass

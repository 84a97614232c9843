"""Application error type shared by the content cache and the HTTP layer.

A single exception class tagged with a ``kind`` replaces a hierarchy of
error subclasses.  The HTTP layer only needs ``status`` and the two
messages; the cache only needs to tell read failures from parse failures.

Kinds
-----
``"source_read"``
    The backing content file could not be read (missing file, I/O error).
``"parse"``
    The content file was read but is not valid JSON.
``"not_found"``
    No content is available to serve.
``"bad_request"``
    The client sent something unusable.
``"internal"``
    Anything else.
"""

from typing import Literal, Optional

ErrorKind = Literal["source_read", "parse", "not_found", "bad_request", "internal"]

_DEFAULT_STATUS = {
    "source_read": 500,
    "parse": 500,
    "not_found": 404,
    "bad_request": 400,
    "internal": 500,
}


class AppError(Exception):
    """Error carrying an HTTP status and a client-safe message."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        public_message: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.public_message = public_message
        self.status = status if status is not None else _DEFAULT_STATUS[kind]

    def __repr__(self) -> str:
        return f"AppError(kind={self.kind!r}, status={self.status}, message={self.message!r})"


def source_read_error(message: str) -> AppError:
    return AppError("source_read", message, "Error loading homepage content")


def parse_error(message: str) -> AppError:
    return AppError("parse", message, "Error loading homepage content")


def not_found(message: str, public_message: str = "Resource not found") -> AppError:
    return AppError("not_found", message, public_message)


def client_message(status: int, message: str, public_message: Optional[str], production: bool) -> str:
    """Return the message a client is allowed to see for an error.

    Outside production the internal message is returned for easier debugging.
    """
    if public_message:
        return public_message
    if not production:
        return message or "Internal server error"
    if status == 404:
        return "Resource not found"
    if 400 <= status < 500:
        return "Invalid request"
    return "Internal server error"

"""mdcapture.errors - error taxonomy and retry eligibility.

Pure functions, no I/O.  Maps an arbitrary exception onto an
:class:`ErrorKind` and decides whether another attempt is worthwhile.

Usage::

    from mdcapture.errors import classify, is_retryable

    try:
        page.goto(url)
    except Exception as exc:
        print(classify(exc), is_retryable(exc))
"""

from __future__ import annotations

import errno
import socket
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    NETWORK     = "NETWORK_ERROR"
    TIMEOUT     = "TIMEOUT_ERROR"
    PARSE       = "PARSE_ERROR"
    VALIDATION  = "VALIDATION_ERROR"
    RATE_LIMIT  = "RATE_LIMIT_ERROR"
    FILE_EXISTS = "FILE_EXISTS_ERROR"


# ---------------------------------------------------------------------------
# Classification tables (evaluated once at import time)
# ---------------------------------------------------------------------------

TRANSIENT_NETWORK_CODES: frozenset[str] = frozenset(
    {"ETIMEDOUT", "ENOTFOUND", "ECONNRESET", "ECONNREFUSED"},
)

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})

_RATE_LIMIT_PHRASES: tuple[str, ...] = ("rate limit", "too many requests")

_TRANSIENT_ERRNOS: frozenset[int] = frozenset(
    {errno.ETIMEDOUT, errno.ECONNRESET, errno.ECONNREFUSED},
)

_TRANSIENT_EXC_TYPES: tuple[type[BaseException], ...] = (
    ConnectionResetError,
    ConnectionRefusedError,
    socket.gaierror,
)

_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.RATE_LIMIT},
)


# ---------------------------------------------------------------------------
# Public exception
# ---------------------------------------------------------------------------

class ClassifiedError(RuntimeError):
    """An error tagged with an :class:`ErrorKind` and structured context.

    Attributes:
        kind      -- the error category
        context   -- extra facts about the failure (copied at construction)
        cause     -- the wrapped original exception, if any
        timestamp -- ISO-8601 UTC creation time
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        self.timestamp = datetime.now(UTC).isoformat()

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "kind": self.kind.value,
            "context": dict(self.context),
            "cause": repr(self.cause) if self.cause is not None else None,
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Attribute lookups
# ---------------------------------------------------------------------------

def _network_code(error: BaseException) -> str | None:
    """Return the symbolic network fault code carried by *error*, if any."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code.upper() in TRANSIENT_NETWORK_CODES:
        return code.upper()
    err_no = getattr(error, "errno", None)
    if isinstance(err_no, int) and err_no in _TRANSIENT_ERRNOS:
        return errno.errorcode.get(err_no)
    if isinstance(error, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(error, _TRANSIENT_EXC_TYPES):
        return "ECONNRESET" if isinstance(error, ConnectionResetError) else "ECONNREFUSED"
    return None


def _status(error: BaseException) -> int | None:
    """Return an HTTP-like status code carried by *error*, if any."""
    for attr in ("status", "status_code", "code"):
        value = getattr(error, attr, None)
        # bool is an int subclass; never treat it as a status
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
    return None


def _is_timeout(error: BaseException) -> bool:
    if isinstance(error, ClassifiedError):
        return error.kind is ErrorKind.TIMEOUT
    # Playwright raises its own TimeoutError class, unrelated to the builtin
    return isinstance(error, TimeoutError) or type(error).__name__ == "TimeoutError"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify(error: BaseException) -> ErrorKind:
    """Classify *error* into an :class:`ErrorKind`.

    Checks run in priority order; the first match wins.  Unknown shapes fall
    back to :attr:`ErrorKind.PARSE` so they are not retried indefinitely.
    """
    if _is_timeout(error):
        return ErrorKind.TIMEOUT

    if _network_code(error):
        return ErrorKind.NETWORK

    status = _status(error)
    if status is not None:
        if status == 429:
            return ErrorKind.RATE_LIMIT
        if status >= 500:
            return ErrorKind.NETWORK

    message = str(error).lower()
    if any(phrase in message for phrase in _RATE_LIMIT_PHRASES):
        return ErrorKind.RATE_LIMIT

    if isinstance(error, ClassifiedError):
        return error.kind
    return ErrorKind.PARSE


def is_retryable(error: BaseException) -> bool:
    """Return ``True`` if another attempt at the failed operation may succeed."""
    context = getattr(error, "context", None)
    if isinstance(context, dict) and context.get("non_retryable"):
        return False

    if _network_code(error):
        return True

    status = _status(error)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES

    # Timeouts, rate-limit phrasing, and errors a lower layer already
    # classified as transient; everything else is permanent.
    return classify(error) in _RETRYABLE_KINDS


def wrap_error(
    error: BaseException,
    kind: ErrorKind,
    context: dict[str, Any] | None = None,
    *,
    message: str | None = None,
) -> ClassifiedError:
    """Return a :class:`ClassifiedError` describing *error*.

    An existing ClassifiedError keeps its kind and cause; its context is
    merged with *context* into a new instance so the original is untouched.
    """
    extra = dict(context or {})
    if isinstance(error, ClassifiedError):
        return ClassifiedError(
            message or error.message,
            error.kind,
            {**error.context, **extra},
            cause=error.cause if error.cause is not None else error,
        )
    return ClassifiedError(message or str(error) or type(error).__name__, kind, extra, cause=error)


def format_error(error: BaseException, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Render *error* as a JSON-serialisable dict for logs and reports."""
    if isinstance(error, ClassifiedError):
        data = error.to_dict()
        if context:
            data["context"] = {**data["context"], **context}
        return data
    return {
        "name": type(error).__name__,
        "message": str(error),
        "kind": classify(error).value,
        "context": dict(context or {}),
        "cause": None,
        "timestamp": datetime.now(UTC).isoformat(),
    }

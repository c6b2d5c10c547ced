"""
MODULE OVERVIEW:
Error types delivered to "error" handlers.

WHAT IS HAPPENING HERE:
httpx raises a wide family of exceptions. Handlers should not need to know
about httpx, so every failure that ends a connection attempt is folded into one
of a handful of `EventSourceError` subclasses. The original exception is kept
as `__cause__` for anyone who wants the details.

None of these are fatal: each one leads to a scheduled reconnect. Only an
explicit `close()` stops the client.
"""
import httpx


class EventSourceError(Exception):
    """Base class for every failure reported through the "error" event."""


class TransportError(EventSourceError):
    """The connection could not be established or was reset."""


class ConnectionTimeoutError(EventSourceError):
    """No activity on the stream within the configured timeout."""


class StreamEndedError(EventSourceError):
    """The server closed the response body."""


class HTTPStatusError(EventSourceError):
    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"unexpected status {status_code} {reason}".rstrip())


def classify_error(exc: BaseException) -> EventSourceError:
    if isinstance(exc, EventSourceError):
        return exc

    if isinstance(exc, httpx.TimeoutException):
        error: EventSourceError = ConnectionTimeoutError(str(exc) or "stream timed out")
    elif isinstance(exc, httpx.HTTPStatusError):
        error = HTTPStatusError(exc.response.status_code, exc.response.reason_phrase)
    elif isinstance(exc, (httpx.TransportError, OSError)):
        error = TransportError(str(exc) or exc.__class__.__name__)
    else:
        error = EventSourceError(str(exc) or exc.__class__.__name__)

    error.__cause__ = exc
    return error

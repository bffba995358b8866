"""goose-reply exception hierarchy.

Base exceptions for the reply client with correlation ID support.

Usage:
    from goose_reply.exceptions import ReplyConnectionError, ReplyStreamError

    try:
        text = session.collect_text(session_id, messages)
    except ReplyStreamError as e:
        logger.error("Turn failed (%s): %s", e.correlation_id, e)
"""

import uuid


class GooseReplyError(Exception):
    """Base exception for all goose-reply errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class ConfigurationError(GooseReplyError):
    """Errors from client configuration."""

    pass


class ReplyTransportError(GooseReplyError):
    """A request failed before the reply stream produced any event.

    Raised at call time (on the first pull from a stream) so callers can
    tell "could not start the turn" apart from "the turn failed".
    """

    def __init__(self, message: str, *, url: str | None = None, **kwargs):
        self.url = url
        super().__init__(message, **kwargs)


class ReplyConnectionError(ReplyTransportError):
    """Connection refused, connect timeout, or no response headers in time."""

    pass


class ReplyHTTPError(ReplyTransportError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int, **kwargs):
        self.status_code = status_code
        super().__init__(message, **kwargs)


class ReplyProtocolError(ReplyTransportError):
    """The response is not a server-sent event stream."""

    def __init__(self, message: str, *, content_type: str | None = None, **kwargs):
        self.content_type = content_type
        super().__init__(message, **kwargs)


class ReplyStreamError(GooseReplyError):
    """A reply turn ended with an Error event from the backend."""

    def __init__(self, message: str, *, session_id: str | None = None, **kwargs):
        self.session_id = session_id
        super().__init__(message, **kwargs)

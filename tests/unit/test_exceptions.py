"""Tests for the goose-reply exception hierarchy."""

import pytest

from goose_reply.exceptions import (
    ConfigurationError,
    GooseReplyError,
    ReplyConnectionError,
    ReplyHTTPError,
    ReplyProtocolError,
    ReplyStreamError,
    ReplyTransportError,
)


class TestGooseReplyError:
    def test_message(self):
        assert str(GooseReplyError("boom")) == "boom"

    def test_correlation_id_generated(self):
        first = GooseReplyError("a")
        second = GooseReplyError("b")

        assert first.correlation_id
        assert first.correlation_id != second.correlation_id

    def test_correlation_id_passed_through(self):
        assert GooseReplyError("a", correlation_id="abc").correlation_id == "abc"


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_class",
        [ReplyConnectionError, ReplyHTTPError, ReplyProtocolError],
    )
    def test_transport_errors(self, exc_class):
        assert issubclass(exc_class, ReplyTransportError)
        assert issubclass(exc_class, GooseReplyError)

    def test_stream_error_is_not_transport_error(self):
        assert not issubclass(ReplyStreamError, ReplyTransportError)
        assert issubclass(ReplyStreamError, GooseReplyError)

    def test_configuration_error(self):
        assert issubclass(ConfigurationError, GooseReplyError)


class TestAttributes:
    def test_http_error(self):
        exc = ReplyHTTPError("HTTP 503", status_code=503, url="http://x/reply")

        assert exc.status_code == 503
        assert exc.url == "http://x/reply"

    def test_protocol_error(self):
        exc = ReplyProtocolError("not sse", content_type="text/html", correlation_id="c1")

        assert exc.content_type == "text/html"
        assert exc.correlation_id == "c1"
        assert exc.url is None

    def test_stream_error(self):
        exc = ReplyStreamError("agent crashed", session_id="s1")

        assert exc.session_id == "s1"
        assert str(exc) == "agent crashed"

"""Tests for AsyncReplySession."""

from contextlib import aclosing

import httpx
import pytest
import pytest_asyncio

from goose_reply.client import AsyncReplySession, ReplyClientConfig
from goose_reply.events import (
    ConfirmationAction,
    FinishEvent,
    MessageEvent,
    ToolConfirmationRequest,
    UnknownEvent,
    user_message,
)
from goose_reply.exceptions import ReplyConnectionError, ReplyHTTPError, ReplyStreamError
from goose_reply.streaming.turn import ReplyState
from tests.helpers.sse import (
    FINISH,
    SESSION_ID,
    FakeBackend,
    confirmation_item,
    error_record,
    message_record,
    text_item,
)

MESSAGES = [user_message("hi")]


@pytest_asyncio.fixture
async def make_async_session(reply_config):
    """Build an AsyncReplySession wired to a FakeBackend."""
    clients: list[httpx.AsyncClient] = []

    def _make(backend: FakeBackend) -> AsyncReplySession:
        client = backend.async_client()
        clients.append(client)
        return AsyncReplySession(reply_config, client=client)

    yield _make

    for client in clients:
        await client.aclose()


def _hello_world() -> FakeBackend:
    return FakeBackend(
        [message_record(text_item("Hello ")), message_record(text_item("world")), FINISH]
    )


def _with_confirmation() -> FakeBackend:
    return FakeBackend(
        [
            message_record(text_item("Checking. "), confirmation_item("t1", "developer__shell")),
            message_record(text_item("Done.")),
            FINISH,
        ]
    )


class TestAsyncReplySessionInit:
    def test_rejects_non_http_scheme(self):
        with pytest.raises(ValueError, match="Invalid URL scheme"):
            AsyncReplySession(ReplyClientConfig(base_url="ws://goose.test"))

    @pytest.mark.asyncio()
    async def test_owned_client_closed(self, reply_config):
        async with AsyncReplySession(reply_config) as session:
            client = session._get_http_client()

        assert client.is_closed
        assert session._http_client is None


class TestAsyncStreaming:
    @pytest.mark.asyncio()
    async def test_stream_text(self, make_async_session):
        session = make_async_session(_hello_world())

        chunks = [chunk async for chunk in session.stream_text(SESSION_ID, MESSAGES)]

        assert chunks == ["Hello ", "world"]
        assert session.state == ReplyState.COMPLETED
        assert session.finish_reason == "stop"

    @pytest.mark.asyncio()
    async def test_stream_events_passes_unknown_through(self, make_async_session):
        backend = FakeBackend([{"type": "Ping"}, message_record(text_item("x")), FINISH])
        session = make_async_session(backend)

        events = [event async for event in session.stream_events(SESSION_ID, MESSAGES)]

        assert [type(e) for e in events] == [UnknownEvent, MessageEvent, FinishEvent]

    @pytest.mark.asyncio()
    async def test_backend_error(self, make_async_session):
        backend = FakeBackend([message_record(text_item("a")), error_record("boom"), FINISH])
        session = make_async_session(backend)

        chunks = [chunk async for chunk in session.stream_text(SESSION_ID, MESSAGES)]

        assert chunks == ["a"]
        assert session.last_error == "boom"
        assert session.state == ReplyState.FAILED

    @pytest.mark.asyncio()
    async def test_mid_stream_timeout(self, make_async_session):
        backend = FakeBackend(
            [message_record(text_item("Hello "))], fail_with=httpx.ReadTimeout("timed out")
        )
        session = make_async_session(backend)

        chunks = [chunk async for chunk in session.stream_text(SESSION_ID, MESSAGES)]

        assert chunks == ["Hello "]
        assert session.last_error == "Request timeout after 5.0 seconds"
        assert backend.reply_stream.closed

    @pytest.mark.asyncio()
    async def test_early_exit_with_aclosing(self, make_async_session):
        backend = FakeBackend([message_record(text_item(str(i))) for i in range(5)] + [FINISH])
        session = make_async_session(backend)

        async with aclosing(session.stream_text(SESSION_ID, MESSAGES)) as chunks:
            async for _ in chunks:
                break

        assert backend.reply_stream.closed
        assert session.state == ReplyState.STREAMING

    @pytest.mark.asyncio()
    async def test_http_error_raised(self, make_async_session):
        session = make_async_session(FakeBackend(reply_status=503))

        with pytest.raises(ReplyHTTPError):
            async for _ in session.stream_text(SESSION_ID, MESSAGES):
                pass

        assert session.state == ReplyState.FAILED

    @pytest.mark.asyncio()
    async def test_connection_error_raised(self, make_async_session):
        session = make_async_session(FakeBackend(connect_error=httpx.ConnectError("refused")))

        with pytest.raises(ReplyConnectionError):
            await session.collect_text(SESSION_ID, MESSAGES)


class TestAsyncConfirmations:
    @pytest.mark.asyncio()
    async def test_yields_request(self, make_async_session):
        backend = _with_confirmation()
        session = make_async_session(backend)
        items = []

        async for item in session.stream_with_confirmations(SESSION_ID, MESSAGES):
            items.append(item)
            if isinstance(item, ToolConfirmationRequest):
                assert await session.confirm(item.id, "deny", SESSION_ID)

        assert items[0] == "Checking. "
        assert isinstance(items[1], ToolConfirmationRequest)
        assert items[2] == "Done."
        assert backend.bodies("/confirm") == [
            {"id": "t1", "principalType": "Tool", "action": "deny", "sessionId": SESSION_ID}
        ]

    @pytest.mark.asyncio()
    async def test_auto_confirm(self, make_async_session):
        backend = _with_confirmation()
        session = make_async_session(backend)

        items = [
            item
            async for item in session.stream_with_confirmations(
                SESSION_ID, MESSAGES, auto_confirm=ConfirmationAction.ALWAYS_ALLOW
            )
        ]

        assert items == ["Checking. ", "Done."]
        assert [body["action"] for body in backend.bodies("/confirm")] == ["always_allow"]

    @pytest.mark.asyncio()
    async def test_confirm_failure_returns_false(self, make_async_session):
        session = make_async_session(FakeBackend(confirm_status=404))
        assert await session.confirm("t1", "allow_once", SESSION_ID) is False


class TestAsyncCollectAndHealth:
    @pytest.mark.asyncio()
    async def test_collect_text(self, make_async_session):
        session = make_async_session(_hello_world())
        assert await session.collect_text(SESSION_ID, MESSAGES) == "Hello world"

    @pytest.mark.asyncio()
    async def test_collect_text_error(self, make_async_session):
        session = make_async_session(FakeBackend([error_record("boom")]))

        with pytest.raises(ReplyStreamError, match="boom"):
            await session.collect_text(SESSION_ID, MESSAGES)

    @pytest.mark.asyncio()
    async def test_health_check(self, make_async_session):
        assert await make_async_session(FakeBackend()).health_check() is True

    @pytest.mark.asyncio()
    async def test_health_check_unreachable(self, make_async_session):
        session = make_async_session(FakeBackend(connect_error=httpx.ConnectError("refused")))
        assert await session.health_check() is False

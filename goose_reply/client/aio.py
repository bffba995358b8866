"""Cooperative (asyncio) reply session.

Mirrors ReplySession method for method; the task yields control at every
awaited read, so other coroutines run between frames. Classification is
shared with the blocking session through goose_reply.streaming.turn.

Leaving an ``async for`` early does not finalize an async generator
deterministically; wrap the stream in ``contextlib.aclosing`` (or call
``aclose()``) to release the connection right away::

    async with AsyncReplySession(config) as session:
        async with aclosing(session.stream_text(sid, messages)) as chunks:
            async for chunk in chunks:
                ...
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

import httpx

from goose_reply.client.base import BaseReplySession, ReplyClientConfig
from goose_reply.events import (
    ConfirmationAction,
    MessageEvent,
    ToolConfirmationRequest,
    parse_event,
)
from goose_reply.exceptions import ReplyStreamError, ReplyTransportError
from goose_reply.streaming.decoder import astream_records
from goose_reply.streaming.turn import message_text, split_message

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from goose_reply.events import ReplyEvent

logger = logging.getLogger(__name__)


class AsyncReplySession(BaseReplySession):
    """Async counterpart of ReplySession.

    Args:
        config: Connection settings (built from environment settings if omitted).
        client: Optional httpx.AsyncClient. When omitted, a pooled client is
            created on first use and closed by ``close()``.
    """

    def __init__(
        self,
        config: ReplyClientConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config)
        self._http_client = client
        self._owns_client = client is None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create a shared httpx.AsyncClient with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout())
        return self._http_client

    async def close(self) -> None:
        """Close the owned HTTP client and release connections."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> AsyncReplySession:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- Streaming ---

    async def stream_events(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
    ) -> AsyncIterator[ReplyEvent]:
        """Send ``messages`` to ``session_id`` and stream the typed reply events.

        Same contract as ReplySession.stream_events().
        """
        self._turn.begin()
        logger.debug("Starting async SSE stream for session %s", session_id)
        records = astream_records(
            self._get_http_client(),
            self._url("/reply"),
            headers=self._headers(),
            body=self._reply_body(session_id, messages),
            timeout=self._timeout(),
        )

        try:
            async with aclosing(records):
                async for record in records:
                    event = parse_event(record)
                    terminal = self._turn.observe(event)
                    yield event
                    if terminal:
                        return
        except ReplyTransportError as e:
            self._turn.fail(str(e))
            raise
        self._turn.close()

    async def stream_text(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
    ) -> AsyncIterator[str]:
        """Stream the reply as text chunks; see ReplySession.stream_text()."""
        async with aclosing(self.stream_events(session_id, messages)) as events:
            async for event in events:
                if isinstance(event, MessageEvent) and (text := message_text(event)):
                    yield text

    async def stream_with_confirmations(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
        auto_confirm: ConfirmationAction | str | None = None,
    ) -> AsyncIterator[str | ToolConfirmationRequest]:
        """Stream text chunks and tool confirmation requests in order.

        See ReplySession.stream_with_confirmations(). An auto-confirmation
        is awaited before the next item is produced.
        """
        action = ConfirmationAction(auto_confirm) if auto_confirm else None
        async with aclosing(self.stream_events(session_id, messages)) as events:
            async for event in events:
                if not isinstance(event, MessageEvent):
                    continue
                for item in split_message(event):
                    if isinstance(item, ToolConfirmationRequest) and action:
                        await self.confirm(item.id, action, session_id)
                        logger.debug(
                            "Auto-confirmed tool %s with action %s", item.tool_name, action
                        )
                        continue
                    yield item

    async def collect_text(self, session_id: str, messages: list[dict[str, Any]]) -> str:
        """Run a whole turn and return the full reply text.

        Raises:
            ReplyStreamError: The turn ended with an Error event.
            ReplyTransportError: The request could not be started.
        """
        chunks = [chunk async for chunk in self.stream_text(session_id, messages)]
        if self.last_error is not None:
            raise ReplyStreamError(self.last_error, session_id=session_id)
        return "".join(chunks)

    # --- Side-channel requests ---

    async def confirm(
        self,
        confirmation_id: str,
        action: ConfirmationAction | str,
        session_id: str,
    ) -> bool:
        """Send a decision for a tool confirmation request; never raises."""
        decision = self._decision(confirmation_id, action, session_id)
        if decision is None:
            return False

        try:
            response = await self._get_http_client().post(
                self._url("/confirm"),
                headers=self._headers(),
                json=decision.to_wire(),
                timeout=self._timeout(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to confirm permission %s: %s", confirmation_id, e)
            return False

        self._confirmed(decision)
        return True

    async def health_check(self) -> bool:
        """Check if the backend is up (``GET /status`` answers "ok")."""
        try:
            response = await self._get_http_client().get(
                self._url("/status"), headers=self._headers(), timeout=self._timeout()
            )
            is_healthy = response.is_success and response.text.strip().strip('"') == "ok"
        except httpx.HTTPError as e:
            logger.error("Health check failed: %s", e)
            return False
        logger.debug("Health check result: %s", is_healthy)
        return is_healthy

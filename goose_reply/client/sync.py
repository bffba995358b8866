"""Blocking reply session.

Each pull from a stream blocks until the next frame arrives or the
connection closes. Leaving a loop early closes the HTTP response.

Usage::

    with ReplySession(config) as session:
        for chunk in session.stream_text(session_id, [user_message("hi")]):
            print(chunk, end="")
        if session.last_error:
            print("failed:", session.last_error)
"""

from __future__ import annotations

import logging
from contextlib import closing
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
from goose_reply.streaming.decoder import stream_records
from goose_reply.streaming.turn import message_text, split_message

if TYPE_CHECKING:
    from collections.abc import Iterator

    from goose_reply.events import ReplyEvent

logger = logging.getLogger(__name__)


class ReplySession(BaseReplySession):
    """Sends messages to a backend session and streams the reply.

    Args:
        config: Connection settings (built from environment settings if omitted).
        client: Optional httpx.Client to use. When omitted, a pooled client
            is created on first use and closed by ``close()``.
    """

    def __init__(
        self,
        config: ReplyClientConfig | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config)
        self._http_client = client
        self._owns_client = client is None

    def _get_http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self._timeout())
        return self._http_client

    def close(self) -> None:
        """Close the owned HTTP client and release pooled connections."""
        if self._http_client is not None and self._owns_client:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> ReplySession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Streaming ---

    def stream_events(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
    ) -> Iterator[ReplyEvent]:
        """Send ``messages`` to ``session_id`` and stream the typed reply events.

        The request is sent on the first pull. Errors before any event
        (connection refused, non-2xx status) raise ReplyTransportError there;
        later transport failures arrive as a final ErrorEvent.

        Yields:
            Events in the order the backend emitted them.
        """
        self._turn.begin()
        logger.debug("Starting SSE stream for session %s", session_id)
        records = stream_records(
            self._get_http_client(),
            self._url("/reply"),
            headers=self._headers(),
            body=self._reply_body(session_id, messages),
            timeout=self._timeout(),
        )

        try:
            with closing(records):
                for record in records:
                    event = parse_event(record)
                    terminal = self._turn.observe(event)
                    yield event
                    if terminal:
                        return
        except ReplyTransportError as e:
            self._turn.fail(str(e))
            raise
        self._turn.close()

    def stream_text(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
    ) -> Iterator[str]:
        """Stream the reply as text chunks, one per message event.

        Ends at the first Error or Finish event. On error nothing is
        yielded for it; check ``last_error`` afterwards.
        """
        with closing(self.stream_events(session_id, messages)) as events:
            for event in events:
                if isinstance(event, MessageEvent) and (text := message_text(event)):
                    yield text

    def stream_with_confirmations(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
        auto_confirm: ConfirmationAction | str | None = None,
    ) -> Iterator[str | ToolConfirmationRequest]:
        """Stream text chunks and tool confirmation requests in order.

        With ``auto_confirm`` set, each request is answered with that action
        right away and not yielded. Otherwise the request is yielded and the
        stream continues; the caller answers it with ``confirm()`` whenever
        it likes.

        Raises:
            ValueError: ``auto_confirm`` is not a ConfirmationAction value.
        """
        action = ConfirmationAction(auto_confirm) if auto_confirm else None
        with closing(self.stream_events(session_id, messages)) as events:
            for event in events:
                if not isinstance(event, MessageEvent):
                    continue
                for item in split_message(event):
                    if isinstance(item, ToolConfirmationRequest) and action:
                        self.confirm(item.id, action, session_id)
                        logger.debug(
                            "Auto-confirmed tool %s with action %s", item.tool_name, action
                        )
                        continue
                    yield item

    def collect_text(self, session_id: str, messages: list[dict[str, Any]]) -> str:
        """Run a whole turn and return the full reply text.

        Raises:
            ReplyStreamError: The turn ended with an Error event.
            ReplyTransportError: The request could not be started.
        """
        text = "".join(self.stream_text(session_id, messages))
        if self.last_error is not None:
            raise ReplyStreamError(self.last_error, session_id=session_id)
        logger.debug("Received response: %s", text[:100])
        return text

    # --- Side-channel requests ---

    def confirm(
        self,
        confirmation_id: str,
        action: ConfirmationAction | str,
        session_id: str,
    ) -> bool:
        """Send a decision for a tool confirmation request.

        Best effort: failures are logged and reported as False, never raised.

        Returns:
            True if the backend accepted the decision.
        """
        decision = self._decision(confirmation_id, action, session_id)
        if decision is None:
            return False

        try:
            response = self._get_http_client().post(
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

    def health_check(self) -> bool:
        """Check if the backend is up (``GET /status`` answers "ok")."""
        try:
            response = self._get_http_client().get(
                self._url("/status"), headers=self._headers(), timeout=self._timeout()
            )
            is_healthy = response.is_success and response.text.strip().strip('"') == "ok"
        except httpx.HTTPError as e:
            logger.error("Health check failed: %s", e)
            return False
        logger.debug("Health check result: %s", is_healthy)
        return is_healthy

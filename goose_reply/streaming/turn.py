"""Turn classification shared by the sync and async reply sessions.

Pure functions and a small state tracker: nothing here performs I/O, so
the blocking and the cooperative session drive exactly the same logic and
it can be tested without a transport.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from goose_reply.events import (
    ErrorEvent,
    FinishEvent,
    MessageEvent,
    ReplyEvent,
    TextContent,
    ToolConfirmationRequest,
)

logger = logging.getLogger(__name__)

TextChunk = str
TurnItem = TextChunk | ToolConfirmationRequest


class ReplyState(StrEnum):
    """Lifecycle of one reply turn."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


def message_text(event: ReplyEvent) -> str:
    """Concatenate the text items of a message event ("" for other events)."""
    if not isinstance(event, MessageEvent):
        return ""
    return "".join(item.text for item in event.message.content if isinstance(item, TextContent))


def confirmation_requests(event: ReplyEvent) -> list[ToolConfirmationRequest]:
    """Tool confirmation requests carried by a message event, in order."""
    if not isinstance(event, MessageEvent):
        return []
    return [item for item in event.message.content if isinstance(item, ToolConfirmationRequest)]


def split_message(event: MessageEvent) -> list[TurnItem]:
    """Flatten a message into text chunks and confirmation requests.

    Order is preserved. Adjacent text items are merged into one chunk and
    empty text is dropped; other content kinds are ignored.
    """
    items: list[TurnItem] = []
    pending: list[str] = []

    for item in event.message.content:
        if isinstance(item, TextContent):
            pending.append(item.text)
        elif isinstance(item, ToolConfirmationRequest):
            if text := "".join(pending):
                items.append(text)
            pending = []
            items.append(item)

    if text := "".join(pending):
        items.append(text)
    return items


class TurnTracker:
    """Tracks the state of the current turn for the side-channel accessors.

    ``observe()`` is fed every event in order and reports whether the
    event ends the turn.
    """

    def __init__(self) -> None:
        self.state = ReplyState.IDLE
        self.last_error: str | None = None
        self.finish_reason: str | None = None

    def begin(self) -> None:
        """Start a new turn, forgetting the previous outcome."""
        self.state = ReplyState.REQUESTING
        self.last_error = None
        self.finish_reason = None

    def streaming(self) -> None:
        if self.state == ReplyState.REQUESTING:
            self.state = ReplyState.STREAMING

    def observe(self, event: ReplyEvent) -> bool:
        """Record a received event; True if it is terminal."""
        self.streaming()
        if isinstance(event, ErrorEvent):
            self.fail(event.error)
            return True
        if isinstance(event, FinishEvent):
            self.finish_reason = event.reason
            self.state = ReplyState.COMPLETED
            return True
        return False

    def fail(self, message: str) -> None:
        logger.error("Reply turn failed: %s", message)
        self.last_error = message
        self.state = ReplyState.FAILED

    def close(self) -> None:
        """The stream ended without a terminal event."""
        if self.state in (ReplyState.REQUESTING, ReplyState.STREAMING):
            self.state = ReplyState.COMPLETED

    @property
    def failed(self) -> bool:
        return self.state == ReplyState.FAILED

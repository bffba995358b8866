"""Conversation wrappers that remember which backend session to talk to.

The reply sessions take an explicit session id on every call. These thin
wrappers bind one id and accept plain text, for callers that hold a
single conversation at a time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from goose_reply.events import user_message
from goose_reply.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from goose_reply.client import AsyncReplySession, ReplySession
    from goose_reply.events import ConfirmationAction, ReplyEvent, ToolConfirmationRequest


def _require_session_id(session_id: str) -> str:
    if not session_id:
        raise ConfigurationError("No session ID provided")
    return session_id


class Conversation:
    """A ReplySession bound to one backend session.

    Usage::

        chat = Conversation(ReplySession(), session_id)
        print(chat.send("What's in this directory?"))
    """

    def __init__(self, session: ReplySession, session_id: str) -> None:
        self.session = session
        self.session_id = _require_session_id(session_id)

    def send(self, text: str) -> str:
        """Send ``text`` and return the whole reply."""
        return self.session.collect_text(self.session_id, [user_message(text)])

    def stream(self, text: str) -> Iterator[str]:
        return self.session.stream_text(self.session_id, [user_message(text)])

    def events(self, text: str) -> Iterator[ReplyEvent]:
        return self.session.stream_events(self.session_id, [user_message(text)])

    def stream_with_confirmations(
        self,
        text: str,
        auto_confirm: ConfirmationAction | str | None = None,
    ) -> Iterator[str | ToolConfirmationRequest]:
        return self.session.stream_with_confirmations(
            self.session_id, [user_message(text)], auto_confirm=auto_confirm
        )

    def confirm(self, confirmation_id: str, action: ConfirmationAction | str) -> bool:
        return self.session.confirm(confirmation_id, action, self.session_id)


class AsyncConversation:
    """An AsyncReplySession bound to one backend session."""

    def __init__(self, session: AsyncReplySession, session_id: str) -> None:
        self.session = session
        self.session_id = _require_session_id(session_id)

    async def send(self, text: str) -> str:
        return await self.session.collect_text(self.session_id, [user_message(text)])

    def stream(self, text: str) -> AsyncIterator[str]:
        return self.session.stream_text(self.session_id, [user_message(text)])

    def events(self, text: str) -> AsyncIterator[ReplyEvent]:
        return self.session.stream_events(self.session_id, [user_message(text)])

    def stream_with_confirmations(
        self,
        text: str,
        auto_confirm: ConfirmationAction | str | None = None,
    ) -> AsyncIterator[str | ToolConfirmationRequest]:
        return self.session.stream_with_confirmations(
            self.session_id, [user_message(text)], auto_confirm=auto_confirm
        )

    async def confirm(self, confirmation_id: str, action: ConfirmationAction | str) -> bool:
        return await self.session.confirm(confirmation_id, action, self.session_id)

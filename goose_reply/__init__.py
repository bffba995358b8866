"""Streaming reply client for the goose agent backend.

Usage::

    from goose_reply import ReplySession, user_message

    with ReplySession() as session:
        for item in session.stream_with_confirmations(session_id, [user_message("hi")]):
            ...
"""

from goose_reply.client import AsyncReplySession, ReplyClientConfig, ReplySession
from goose_reply.conversation import AsyncConversation, Conversation
from goose_reply.events import (
    ConfirmationAction,
    ConfirmationDecision,
    ErrorEvent,
    FinishEvent,
    MessageEvent,
    ModelChangeEvent,
    ReplyEvent,
    TextContent,
    ToolConfirmationRequest,
    UnknownContent,
    UnknownEvent,
    parse_event,
    user_message,
)
from goose_reply.exceptions import (
    ConfigurationError,
    GooseReplyError,
    ReplyConnectionError,
    ReplyHTTPError,
    ReplyProtocolError,
    ReplyStreamError,
    ReplyTransportError,
)
from goose_reply.streaming import ReplyState

__all__ = [
    "AsyncConversation",
    "AsyncReplySession",
    "ConfigurationError",
    "ConfirmationAction",
    "ConfirmationDecision",
    "Conversation",
    "ErrorEvent",
    "FinishEvent",
    "GooseReplyError",
    "MessageEvent",
    "ModelChangeEvent",
    "ReplyClientConfig",
    "ReplyConnectionError",
    "ReplyEvent",
    "ReplyHTTPError",
    "ReplyProtocolError",
    "ReplySession",
    "ReplyState",
    "ReplyStreamError",
    "ReplyTransportError",
    "TextContent",
    "ToolConfirmationRequest",
    "UnknownContent",
    "UnknownEvent",
    "parse_event",
    "user_message",
]

"""Reply sessions: blocking (ReplySession) and asyncio (AsyncReplySession)."""

from goose_reply.client.aio import AsyncReplySession
from goose_reply.client.base import SECRET_HEADER, ReplyClientConfig
from goose_reply.client.sync import ReplySession

__all__ = [
    "SECRET_HEADER",
    "AsyncReplySession",
    "ReplyClientConfig",
    "ReplySession",
]

"""Streaming module: SSE decoding and turn classification.

The decoder turns an HTTP response body into JSON records; the turn
helpers classify typed events. Neither depends on the session classes,
so both can be tested on their own.
"""

from goose_reply.streaming.decoder import (
    astream_records,
    error_record,
    iter_records,
    stream_records,
)
from goose_reply.streaming.turn import (
    ReplyState,
    TurnTracker,
    confirmation_requests,
    message_text,
    split_message,
)

__all__ = [
    "ReplyState",
    "TurnTracker",
    "astream_records",
    "confirmation_requests",
    "error_record",
    "iter_records",
    "message_text",
    "split_message",
    "stream_records",
]

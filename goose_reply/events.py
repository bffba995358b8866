"""Reply stream event models.

Every SSE frame of a reply carries one JSON object discriminated by its
``type`` field. parse_event() turns such a record into one of the typed
events below; kinds this client does not know about are kept as
UnknownEvent / UnknownContent instead of failing, so newer backends keep
working with older clients.

Wire shapes::

    {"type": "Message", "message": {"role": "assistant", "content": [...]}}
    {"type": "Error", "error": "..."}
    {"type": "Finish", "reason": "stop"}
"""

from __future__ import annotations

import logging
import time
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class _Frozen(BaseModel):
    """Immutable model that accepts both field names and wire aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# CONTENT ITEMS
# =============================================================================


class TextContent(_Frozen):
    """A fragment of reply text."""

    type: Literal["text"] = "text"
    text: str = ""


class ToolConfirmationRequest(_Frozen):
    """The agent asks permission before running a tool.

    Attributes:
        id: Confirmation id to echo back in the decision.
        tool_name: Fully qualified tool name (``extension__tool``).
        arguments: Arguments the tool would be called with.
        prompt: Optional security warning to show the user.
    """

    type: Literal["toolConfirmationRequest"] = "toolConfirmationRequest"
    id: str
    tool_name: str = Field(alias="toolName")
    arguments: dict[str, Any] = Field(default_factory=dict)
    prompt: str | None = None

    @field_validator("arguments", mode="before")
    @classmethod
    def _coerce_arguments(cls, value: Any) -> Any:
        if value is None:
            return {}
        return value if isinstance(value, dict) else {"value": value}

    @field_validator("prompt", mode="before")
    @classmethod
    def _coerce_prompt(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)


class UnknownContent(_Frozen):
    """A content item of a kind this client does not interpret."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


ContentItem = TextContent | ToolConfirmationRequest | UnknownContent

_CONTENT_MODELS: dict[str, type[TextContent] | type[ToolConfirmationRequest]] = {
    "text": TextContent,
    "toolConfirmationRequest": ToolConfirmationRequest,
}


def parse_content(item: Any) -> ContentItem:
    """Parse one raw message content item.

    Unknown kinds, and known kinds with an invalid payload, become
    UnknownContent.
    """
    if isinstance(item, (TextContent, ToolConfirmationRequest, UnknownContent)):
        return item
    if not isinstance(item, dict):
        return UnknownContent(type=type(item).__name__, data={"value": item})

    kind = str(item.get("type", ""))
    model = _CONTENT_MODELS.get(kind)
    if model is not None:
        try:
            return model.model_validate(item)
        except PydanticValidationError as e:
            logger.warning("Invalid %s content item: %s", kind, e.errors()[0]["msg"])
    return UnknownContent(type=kind or "unknown", data=item)


# =============================================================================
# EVENTS
# =============================================================================


class ReplyMessage(_Frozen):
    """A (partial) conversation message as streamed by the backend."""

    role: str = "assistant"
    id: str | None = None
    created: int | None = None
    content: list[ContentItem] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _parse_content_items(cls, value: Any) -> list[ContentItem]:
        if value is None:
            return []
        return [parse_content(item) for item in value]


class MessageEvent(_Frozen):
    """A chunk of the assistant reply."""

    type: Literal["Message"] = "Message"
    message: ReplyMessage


class ErrorEvent(_Frozen):
    """The turn failed on the backend, or the connection dropped mid-stream."""

    type: Literal["Error"] = "Error"
    error: str = "Unknown error"

    @field_validator("error", mode="before")
    @classmethod
    def _default_missing_error(cls, value: Any) -> Any:
        if value is None or value == "":
            return "Unknown error"
        return value if isinstance(value, str) else str(value)

    @property
    def message(self) -> str:
        return self.error


class FinishEvent(_Frozen):
    """The backend finished generating this turn."""

    type: Literal["Finish"] = "Finish"
    reason: str = "stop"

    @field_validator("reason", mode="before")
    @classmethod
    def _default_missing_reason(cls, value: Any) -> Any:
        if value is None:
            return "stop"
        return value if isinstance(value, str) else str(value)


class ModelChangeEvent(_Frozen):
    """The backend switched model (e.g. lead/worker handoff)."""

    type: Literal["ModelChange"] = "ModelChange"
    model: str
    mode: str = ""


class UnknownEvent(_Frozen):
    """Any other event kind (Ping, Notification, future additions)."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


ReplyEvent = MessageEvent | ErrorEvent | FinishEvent | ModelChangeEvent | UnknownEvent

_EVENT_MODELS: dict[str, type[BaseModel]] = {
    "Message": MessageEvent,
    "Error": ErrorEvent,
    "Finish": FinishEvent,
    "ModelChange": ModelChangeEvent,
}

TERMINAL_EVENTS = (ErrorEvent, FinishEvent)


def parse_event(record: dict[str, Any]) -> ReplyEvent:
    """Map one decoded SSE record onto the ReplyEvent union.

    This is the single place where raw JSON is interpreted; everything
    downstream works with the typed models.

    Args:
        record: JSON object decoded from one ``data:`` payload.

    Returns:
        The typed event. Records whose ``type`` is unknown, or whose
        payload does not validate, are returned as UnknownEvent; an
        invalid Error or Finish record still yields its terminal event.
    """
    kind = str(record.get("type", ""))
    model = _EVENT_MODELS.get(kind)
    if model is None:
        logger.debug("Passing through unknown event type %r", kind)
        return UnknownEvent(type=kind or "unknown", data=record)

    try:
        return model.model_validate(record)  # type: ignore[return-value]
    except PydanticValidationError as e:
        logger.warning("Invalid %s event (%d validation errors)", kind, e.error_count())

    # Error and Finish end the turn however malformed their payload is.
    if kind == "Error":
        return ErrorEvent()
    if kind == "Finish":
        return FinishEvent()
    return UnknownEvent(type=kind, data=record)


# =============================================================================
# CONFIRMATION DECISIONS
# =============================================================================


class ConfirmationAction(StrEnum):
    """Decision sent back for a ToolConfirmationRequest."""

    ALLOW_ONCE = "allow_once"
    ALWAYS_ALLOW = "always_allow"
    DENY = "deny"


class ConfirmationDecision(_Frozen):
    """Body of ``POST /confirm``."""

    id: str
    principal_type: str = Field(default="Tool", alias="principalType")
    action: ConfirmationAction
    session_id: str = Field(alias="sessionId")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the backend's camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


def user_message(text: str) -> dict[str, Any]:
    """Build a user message in the backend's wire format."""
    return {
        "role": "user",
        "created": int(time.time()),
        "content": [{"type": "text", "text": text}],
    }

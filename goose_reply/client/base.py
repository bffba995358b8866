"""Shared plumbing for the sync and async reply sessions.

Holds configuration, URL and header construction, and the bookkeeping
both sessions need. Transport-specific code lives in sync.py and aio.py.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, Field, SecretStr

from goose_reply.events import ConfirmationAction, ConfirmationDecision
from goose_reply.settings import get_settings
from goose_reply.streaming.turn import ReplyState, TurnTracker

if TYPE_CHECKING:
    from goose_reply.settings import Settings

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Secret-Key"


class ReplyClientConfig(BaseModel):
    """Configuration for a reply session."""

    base_url: str = Field(..., description="Backend base URL")
    secret_key: SecretStr = Field(default=SecretStr(""), description="X-Secret-Key value")
    timeout: float = Field(default=60.0, gt=0, description="Read timeout in seconds")
    connect_timeout: float = Field(default=10.0, gt=0, description="Connect timeout in seconds")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ReplyClientConfig:
        settings = settings or get_settings()
        return cls(
            base_url=settings.goose_url,
            secret_key=settings.goose_secret_key,
            timeout=settings.reply_timeout,
            connect_timeout=settings.connect_timeout,
        )


class BaseReplySession:
    """Transport-independent part of a reply session.

    A session may run one stream at a time; ``confirm`` calls are
    independent requests and may run concurrently with the stream.
    """

    _ALLOWED_SCHEMES = {"http", "https"}

    def __init__(self, config: ReplyClientConfig | None = None) -> None:
        if config is None:
            config = ReplyClientConfig.from_settings()

        parsed = urlparse(config.base_url)
        if parsed.scheme not in self._ALLOWED_SCHEMES:
            msg = f"Invalid URL scheme '{parsed.scheme}'. Only {self._ALLOWED_SCHEMES} allowed."
            raise ValueError(msg)

        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._turn = TurnTracker()
        self._confirmed_ids: set[str] = set()

    # --- Side channel for the most recent turn ---

    @property
    def state(self) -> ReplyState:
        return self._turn.state

    @property
    def last_error(self) -> str | None:
        """Error message of the last turn, None if it did not fail."""
        return self._turn.last_error

    @property
    def finish_reason(self) -> str | None:
        return self._turn.finish_reason

    # --- Request construction ---

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self) -> dict[str, str]:
        return {SECRET_HEADER: self.config.secret_key.get_secret_value()}

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout)

    @staticmethod
    def _reply_body(session_id: str, messages: list[dict[str, Any]]) -> dict[str, Any]:
        return {"session_id": session_id, "messages": messages}

    def _decision(
        self,
        confirmation_id: str,
        action: ConfirmationAction | str,
        session_id: str,
    ) -> ConfirmationDecision | None:
        """Build the decision body, or None (logged) if the action is invalid."""
        try:
            decision = ConfirmationDecision(
                id=confirmation_id,
                action=ConfirmationAction(action),
                session_id=session_id,
            )
        except ValueError as e:
            logger.error("Failed to confirm permission %s: %s", confirmation_id, e)
            return None

        if confirmation_id in self._confirmed_ids:
            logger.warning(
                "Confirmation %s was already answered; sending %s again",
                confirmation_id,
                decision.action,
            )
        return decision

    def _confirmed(self, decision: ConfirmationDecision) -> None:
        self._confirmed_ids.add(decision.id)
        logger.info("Confirmed permission %s with action %s", decision.id, decision.action)

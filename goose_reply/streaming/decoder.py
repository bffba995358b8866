"""Stream decoder: server-sent events to JSON records.

Opens the reply request as a streamed response, checks that it really is
an event stream, and turns every ``data:`` frame into one decoded JSON
object. SSE framing itself (multi-line data, comments, ``id``/``retry``
fields) is handled by httpx-sse.

Failure handling differs by phase:

- before the response headers arrive: ReplyTransportError is raised
- a frame with unparseable JSON: logged and skipped
- the connection fails mid-stream: one synthetic ``{"type": "Error"}``
  record ends the sequence

The response is closed on every exit path, including a consumer that
stops iterating early.
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing, asynccontextmanager, contextmanager
from typing import TYPE_CHECKING, Any

import httpx
from httpx_sse import EventSource

from goose_reply.exceptions import ReplyConnectionError, ReplyHTTPError, ReplyProtocolError

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

    from httpx_sse import ServerSentEvent

logger = logging.getLogger(__name__)

SSE_CONTENT_TYPE = "text/event-stream"

_SSE_REQUEST_HEADERS = {
    "Accept": SSE_CONTENT_TYPE,
    "Cache-Control": "no-store",
}


def error_record(message: str) -> dict[str, Any]:
    """Build the synthetic record that reports a mid-stream failure."""
    return {"type": "Error", "error": message}


def _decode_frame(sse: ServerSentEvent) -> dict[str, Any] | None:
    if not sse.data:
        return None

    try:
        record = json.loads(sse.data)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse SSE data (%s): %s", e, sse.data[:200])
        return None

    if not isinstance(record, dict):
        logger.warning("Skipping non-object SSE payload: %s", sse.data[:200])
        return None

    logger.debug("Received SSE event: %s", record.get("type", "unknown"))
    return record


def iter_records(sse_events: Iterable[ServerSentEvent]) -> Iterator[dict[str, Any]]:
    """Decode SSE events into JSON records, skipping malformed frames.

    Args:
        sse_events: Parsed server-sent events, e.g. ``EventSource.iter_sse()``.

    Yields:
        One dict per frame, in arrival order.
    """
    for sse in sse_events:
        record = _decode_frame(sse)
        if record is not None:
            yield record


async def aiter_records(
    sse_events: AsyncIterable[ServerSentEvent],
) -> AsyncIterator[dict[str, Any]]:
    """Async counterpart of iter_records()."""
    async for sse in sse_events:
        record = _decode_frame(sse)
        if record is not None:
            yield record


def _check_response(response: httpx.Response, url: str) -> None:
    if not response.is_success:
        raise ReplyHTTPError(
            f"HTTP {response.status_code} {response.reason_phrase} from {url}",
            status_code=response.status_code,
            url=url,
        )

    content_type = response.headers.get("content-type", "")
    if SSE_CONTENT_TYPE not in content_type:
        raise ReplyProtocolError(
            f"Expected {SSE_CONTENT_TYPE} from {url}, got {content_type or 'no content type'}",
            content_type=content_type or None,
            url=url,
        )


def _build_request(
    client: httpx.Client | httpx.AsyncClient,
    url: str,
    headers: dict[str, str],
    body: dict[str, Any],
    timeout: httpx.Timeout | None,
) -> httpx.Request:
    return client.build_request(
        "POST",
        url,
        headers={**_SSE_REQUEST_HEADERS, **headers},
        json=body,
        timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
    )


def _timeout_message(timeout: httpx.Timeout | None) -> str:
    seconds = timeout.read if timeout is not None else None
    return f"Request timeout after {seconds} seconds"


@contextmanager
def open_event_stream(
    client: httpx.Client,
    url: str,
    *,
    headers: dict[str, str],
    body: dict[str, Any],
    timeout: httpx.Timeout | None = None,
) -> Iterator[EventSource]:
    """POST ``body`` and hold the response open as an event source.

    Raises:
        ReplyConnectionError: No response headers could be obtained.
        ReplyHTTPError: The backend answered with a non-2xx status.
        ReplyProtocolError: The response is not ``text/event-stream``.
    """
    try:
        request = _build_request(client, url, headers, body, timeout)
        response = client.send(request, stream=True)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ReplyConnectionError(f"Could not open reply stream at {url}: {e}", url=url) from e

    try:
        _check_response(response, url)
        yield EventSource(response)
    finally:
        response.close()
        logger.debug("Closed reply stream %s", url)


@asynccontextmanager
async def aopen_event_stream(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str],
    body: dict[str, Any],
    timeout: httpx.Timeout | None = None,
) -> AsyncIterator[EventSource]:
    """Async counterpart of open_event_stream()."""
    try:
        request = _build_request(client, url, headers, body, timeout)
        response = await client.send(request, stream=True)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ReplyConnectionError(f"Could not open reply stream at {url}: {e}", url=url) from e

    try:
        _check_response(response, url)
        yield EventSource(response)
    finally:
        await response.aclose()
        logger.debug("Closed reply stream %s", url)


def stream_records(
    client: httpx.Client,
    url: str,
    *,
    headers: dict[str, str],
    body: dict[str, Any],
    timeout: httpx.Timeout | None = None,
) -> Iterator[dict[str, Any]]:
    """Stream the decoded records of one reply request.

    Single pass: the sequence follows the one-shot HTTP response body and
    cannot be replayed.

    Args:
        client: HTTP client to send the request with.
        url: Full URL of the reply endpoint.
        headers: Extra request headers (authentication).
        body: JSON request body.
        timeout: Request timeout; the client default when omitted.

    Yields:
        Decoded records; a transport failure after the headers ends the
        sequence with one error_record().
    """
    with open_event_stream(
        client, url, headers=headers, body=body, timeout=timeout
    ) as event_source:
        try:
            yield from iter_records(event_source.iter_sse())
        except httpx.TimeoutException:
            logger.error("Stream timeout: %s", _timeout_message(timeout))
            yield error_record(_timeout_message(timeout))
        except httpx.HTTPError as e:
            logger.error("HTTP error during streaming: %s", e)
            yield error_record(str(e) or type(e).__name__)


async def astream_records(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str],
    body: dict[str, Any],
    timeout: httpx.Timeout | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Async counterpart of stream_records()."""
    async with aopen_event_stream(
        client, url, headers=headers, body=body, timeout=timeout
    ) as event_source:
        try:
            async with aclosing(aiter_records(event_source.aiter_sse())) as records:
                async for record in records:
                    yield record
        except httpx.TimeoutException:
            logger.error("Async stream timeout: %s", _timeout_message(timeout))
            yield error_record(_timeout_message(timeout))
        except httpx.HTTPError as e:
            logger.error("Async HTTP error during streaming: %s", e)
            yield error_record(str(e) or type(e).__name__)

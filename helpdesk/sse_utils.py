"""SSE helpers for agent event streams.

Each :class:`~helpdesk.streaming.events.StreamEvent` becomes one
Server-Sent Events frame::

    event: <type>
    data: <json payload>

Frames are written in emission order. The adapter stops pulling events when
the client disconnects, which closes the underlying generator.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Optional

from .streaming.events import StreamEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: StreamEvent) -> str:
    """Render ``event`` as a single SSE frame."""

    payload = json.dumps(event.data, default=str, ensure_ascii=False)
    return f"event: {event.type.value}\ndata: {payload}\n\n"


async def sse_event_stream(
    events: AsyncIterator[StreamEvent],
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for ``events`` until the stream ends or the client leaves."""

    try:
        async for event in events:
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected; stopping stream before %s event", event.type.value)
                break
            yield format_sse(event)
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()


__all__ = ["SSE_HEADERS", "format_sse", "sse_event_stream"]

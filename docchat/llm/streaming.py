from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator

import structlog

from docchat.core.exceptions import StreamParseError

logger = structlog.get_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def is_done_line(line: str) -> bool:
    return line.strip() == DATA_PREFIX + DONE_SENTINEL


def parse_event_line(line: str) -> str | None:
    """
    Decode one server-sent event line of a chat-completions stream.

    Returns the incremental content it carries, or ``None`` for lines that
    carry none (blank lines, comments, the done sentinel, role-only deltas).
    Raises StreamParseError when the payload is not the expected JSON.
    """
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX) :]
    if payload == DONE_SENTINEL:
        return None

    try:
        event = json.loads(payload)
        choices = event.get("choices") or []
        if not choices:
            return None
        delta = choices[0].get("delta") or {}
        content = delta.get("content")
    except (ValueError, AttributeError, TypeError) as exc:
        raise StreamParseError(f"Malformed stream event: {payload[:200]}") from exc

    if content is not None and not isinstance(content, str):
        raise StreamParseError(f"Unexpected delta content type: {type(content).__name__}")
    return content or None


async def iter_deltas(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield content deltas from raw stream lines, skipping undecodable ones."""
    async for line in lines:
        if is_done_line(line):
            return
        try:
            content = parse_event_line(line)
        except StreamParseError as exc:
            logger.warning("stream_line_skipped", error=exc.message)
            continue
        if content:
            yield content

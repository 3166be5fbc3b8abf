"""Pseudo-streaming: replay a finished answer as paced SSE chunks."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional

from ..helpers import debug_log, error_log
from .chunk_builder import DONE_EVENT, chunk_builder

Sleep = Callable[[float], Awaitable[None]]


def _utf16_width(char: str) -> int:
    return 2 if ord(char) > 0xFFFF else 1


def split_content(content: str, chunk_size: int) -> List[str]:
    """Fixed-size slices in order, no word-boundary awareness.

    ``chunk_size`` counts UTF-16 code units, the unit browser clients
    measure text in. A slice that would end inside a surrogate pair
    (emoji and other astral characters) stops before that character
    instead, so every chunk is valid text. A single astral character
    still gets its own chunk when ``chunk_size`` is 1. Combining
    sequences (emoji ZWJ, accents) can be split.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    if all(ord(char) <= 0xFFFF for char in content):
        return [content[i:i + chunk_size] for i in range(0, len(content), chunk_size)]

    chunks = []
    start = 0
    used = 0
    for index, char in enumerate(content):
        width = _utf16_width(char)
        if index > start and used + width > chunk_size:
            chunks.append(content[start:index])
            start = index
            used = 0
        used += width
    if start < len(content):
        chunks.append(content[start:])
    return chunks


async def iter_chunks(
    completion_id: str,
    model: Optional[str],
    content: str,
    *,
    chunk_size: int = 5,
    delay: float = 0.01,
    sleep: Sleep = asyncio.sleep,
) -> AsyncIterator[Dict]:
    """Yield one content chunk per slice, pausing ``delay`` after each, then the stop chunk."""
    for piece in split_content(content, chunk_size):
        yield chunk_builder.build_chunk(completion_id, model, piece)
        await sleep(delay)
    yield chunk_builder.build_chunk(completion_id, model, "", "stop")


async def stream_events(
    completion_id: str,
    model: Optional[str],
    content: str,
    *,
    chunk_size: int = 5,
    delay: float = 0.01,
    sleep: Sleep = asyncio.sleep,
) -> AsyncIterator[str]:
    """
    SSE rendering of :func:`iter_chunks` followed by ``data: [DONE]``.

    A failure part-way through yields a single stop chunk carrying the error
    text instead of ``[DONE]``, so clients always see a finish signal.
    """
    emitted = 0
    try:
        async for chunk in iter_chunks(
            completion_id,
            model,
            content,
            chunk_size=chunk_size,
            delay=delay,
            sleep=sleep,
        ):
            yield chunk_builder.to_sse(chunk)
            emitted += 1
        yield DONE_EVENT
        debug_log("[STREAM] 伪流式输出完成", chunks=emitted)
    except Exception as exc:
        error_log("[STREAM] 伪流式输出中断", error=str(exc), chunks=emitted)
        error_chunk = chunk_builder.build_chunk(
            completion_id, model, f"\n\n[Stream Error: {exc}]", "stop"
        )
        yield chunk_builder.to_sse(error_chunk)

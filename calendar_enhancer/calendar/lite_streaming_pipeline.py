"""Streaming enhancement pipeline - calendar_enhancer.

Wires one ICSLineUnfolder and one ICSEventEnhancer to an async byte stream
(typically an httpx response body) and yields rewritten bytes as soon as each
chunk has been processed. Each call gets its own unfolder and enhancer; the
campus table is the only shared state and it is read-only.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Optional

from .lite_enhancer import ICSEventEnhancer
from .lite_exceptions import CalendarContentTooLargeError
from .lite_unfolder import DEFAULT_STREAM_DECODE_ERRORS, ICSLineUnfolder

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024  # 10MB limit
DEFAULT_CHUNK_SIZE = 8192  # 8KB chunks for in-memory input


def _finish(unfolder: ICSLineUnfolder, enhancer: ICSEventEnhancer, output: list[bytes]) -> None:
    unfolder.flush(output.append, enhancer)
    if enhancer.has_open_event:
        enhancer.discard_open_event()


async def enhance_ics_stream(
    byte_stream: AsyncIterator[bytes],
    max_bytes: Optional[int] = DEFAULT_MAX_BODY_BYTES,
    stream_decode_errors: str = DEFAULT_STREAM_DECODE_ERRORS,
) -> AsyncGenerator[bytes, None]:
    """Rewrite an iCalendar byte stream chunk by chunk.

    Args:
        byte_stream: Async iterator yielding upstream byte chunks in order
        max_bytes: Cap on total upstream bytes (None disables the check)
        stream_decode_errors: UTF-8 decode error handling ('replace' or 'strict')

    Yields:
        Rewritten, re-folded output bytes; nothing is yielded for chunks that
        did not complete a line.

    Raises:
        CalendarContentTooLargeError: If the upstream exceeds ``max_bytes``.
            Errors raised by ``byte_stream`` propagate unchanged. In both
            cases the stream is not flushed, so an open event is never emitted.
    """
    unfolder = ICSLineUnfolder(decode_errors=stream_decode_errors)
    enhancer = ICSEventEnhancer()
    total_bytes = 0
    output: list[bytes] = []

    logger.debug("Starting enhancement stream (max_bytes=%s)", max_bytes)

    async for chunk in byte_stream:
        if not chunk:
            continue

        total_bytes += len(chunk)
        if max_bytes is not None and total_bytes > max_bytes:
            logger.error(
                "Calendar stream too large: %d bytes exceeds %d limit", total_bytes, max_bytes
            )
            raise CalendarContentTooLargeError(
                f"Calendar stream too large: {total_bytes} bytes exceeds {max_bytes} limit",
                limit_bytes=max_bytes,
            )

        unfolder.process_chunk(chunk, output.append, enhancer)
        if output:
            yield b"".join(output)
            output.clear()

    _finish(unfolder, enhancer, output)
    if output:
        yield b"".join(output)

    logger.debug(
        "Enhancement stream completed: %d bytes in, %d events rewritten, %d discarded",
        total_bytes,
        enhancer.events_rewritten,
        enhancer.events_discarded,
    )


def enhance_ics_bytes(
    data: bytes,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    stream_decode_errors: str = DEFAULT_STREAM_DECODE_ERRORS,
) -> bytes:
    """Rewrite a complete in-memory calendar by feeding it in ``chunk_size`` pieces."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    unfolder = ICSLineUnfolder(decode_errors=stream_decode_errors)
    enhancer = ICSEventEnhancer()
    output: list[bytes] = []

    for start in range(0, len(data), chunk_size):
        unfolder.process_chunk(data[start : start + chunk_size], output.append, enhancer)
    _finish(unfolder, enhancer, output)

    return b"".join(output)

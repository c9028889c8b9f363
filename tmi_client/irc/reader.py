"""Frame reading: raw bytes off the stream, sliced into protocol lines."""

from __future__ import annotations

import asyncio

from ..constants import READ_CHUNK_SIZE


async def read_chunk(
    reader: asyncio.StreamReader, chunk_size: int = READ_CHUNK_SIZE
) -> bytes:
    """Read until the accumulated bytes end with a newline or the peer hits EOF.

    Returns ``b""`` only when the stream is at EOF with nothing buffered.
    Read errors propagate to the caller.
    """
    buf = bytearray()
    while True:
        data = await reader.read(chunk_size)
        if not data:
            break
        buf += data
        if buf.endswith(b"\n"):
            break
    return bytes(buf)


def split_lines(chunk: bytes) -> list[str]:
    """Split a chunk on CRLF into raw lines, dropping empty pieces."""
    text = chunk.decode("utf-8", errors="replace")
    return [line for line in text.split("\r\n") if line]

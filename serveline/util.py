"""Byte helpers and async stream copying, including HTTP chunked encoding."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any, Optional

_COPY_BUF_SIZE = 65536
# Room for a 4-digit hex size line and the trailing CRLF in a 64 KiB frame.
_CHUNK_DATA_SIZE = 65534 - 6

_SPECIAL_ESCAPES = {
    0x09: "\\t",
    0x0A: "\\n",
    0x0D: "\\r",
    0x22: '\\"',
    0x27: "\\'",
    0x5C: "\\\\",
}


class CopyReadError(Exception):
    """Reading from the source stream failed."""


class CopyWriteError(Exception):
    """Writing to the destination stream failed."""


def _escape_byte(byte: int) -> str:
    special = _SPECIAL_ESCAPES.get(byte)
    if special is not None:
        return special
    if 0x20 <= byte < 0x7F:
        return chr(byte)
    return f"\\x{byte:02x}"


def escape_ascii(data: bytes) -> str:
    """Show printable ASCII as-is and escape everything else, like `\\n` or `\\x19`."""
    return "".join(_escape_byte(byte) for byte in data)


def escape_and_elide(data: bytes, max_len: int) -> str:
    """Escape `data`, keeping only the first `max_len` bytes and marking a cut with `...`."""
    if len(data) > max_len:
        return escape_ascii(data[:max_len]) + "..."
    return escape_ascii(data)


def find_slice(needle: Sequence[Any], haystack: Sequence[Any]) -> Optional[int]:
    """Return the first index where `needle` occurs in `haystack`, or None."""
    if len(needle) > len(haystack):
        return None
    if isinstance(haystack, (bytes, bytearray, str)) and isinstance(needle, type(haystack)):
        index = haystack.find(needle)
        return None if index < 0 else index
    width = len(needle)
    needle_list = list(needle)
    return next(
        (
            start
            for start in range(len(haystack) - width + 1)
            if list(haystack[start : start + width]) == needle_list
        ),
        None,
    )


async def _read_chunks(reader: Any, size: int) -> AsyncIterator[bytes]:
    while True:
        try:
            chunk = await reader.read(size)
        except OSError as exc:
            raise CopyReadError(str(exc)) from exc
        if not chunk:
            return
        yield chunk


async def _write(writer: Any, data: bytes) -> None:
    try:
        writer.write(data)
        await writer.drain()
    except OSError as exc:
        raise CopyWriteError(str(exc)) from exc


async def copy_async(reader: Any, writer: Any) -> int:
    """Copy everything from `reader` to `writer` and return the number of bytes copied.

    `reader` needs an async `read(n)`; `writer` needs `write(data)` and async `drain()`.
    """
    copied = 0
    async for chunk in _read_chunks(reader, _COPY_BUF_SIZE):
        await _write(writer, chunk)
        copied += len(chunk)
    return copied


async def copy_chunked_async(reader: Any, writer: Any) -> int:
    """Copy `reader` to `writer` in HTTP chunked transfer encoding.

    Returns the data bytes copied plus 3 for the final `0\\r\\n` chunk.
    """
    copied = 0
    async for chunk in _read_chunks(reader, _CHUNK_DATA_SIZE):
        await _write(writer, f"{len(chunk):x}\r\n".encode("ascii") + chunk + b"\r\n")
        copied += len(chunk)
    await _write(writer, b"0\r\n\r\n")
    return copied + 3


class WriteCounter:
    """Wraps a writer and counts the bytes written through it."""

    def __init__(self, writer: Any) -> None:
        self._writer = writer
        self._written = 0

    def write(self, data: bytes) -> None:
        self._writer.write(data)
        self._written += len(data)

    async def drain(self) -> None:
        await self._writer.drain()

    def num_bytes_written(self) -> int:
        return self._written
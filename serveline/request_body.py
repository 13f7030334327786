"""Request bodies: pending on the connection, held in memory, or saved to a file."""

from __future__ import annotations

import contextlib
import enum
import io
import os
import tempfile
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from serveline.util import CopyReadError, CopyWriteError, copy_async, escape_and_elide

_READ_SIZE = 65536
_ELIDE_LEN = 100
_PENDING_MESSAGE = (
    "cannot read pending body; the handler did not ask the server to receive the body"
)


class PendingBodyError(ValueError):
    """The body has not been received from the client yet."""


class BodyTruncatedError(Exception):
    """The connection ended or failed before the whole body arrived."""


class BodyTooLongError(Exception):
    """The body is longer than the allowed maximum."""


class BodySaveError(Exception):
    """Creating or writing the file that holds the body failed."""


class RequestBodyKind(enum.Enum):
    """Where a request body is."""

    PENDING_KNOWN = "pending_known"
    PENDING_UNKNOWN = "pending_unknown"
    BYTES = "bytes"
    FILE = "file"
    TEMP_FILE = "temp_file"


def _remove_quietly(path: Union[str, os.PathLike]) -> None:
    with contextlib.suppress(OSError):
        os.remove(path)


def _check_length(length: int) -> int:
    if length < 0:
        raise ValueError(f"length must not be negative: {length}")
    return length


@dataclass(frozen=True)
class RequestBody:
    """The body of an HTTP request.

    A temp-file body deletes its file when the body is garbage-collected.
    """

    kind: RequestBodyKind
    data: bytes = b""
    path: Optional[Path] = None
    size: Optional[int] = 0

    @classmethod
    def empty(cls) -> RequestBody:
        return cls(RequestBodyKind.BYTES)

    @classmethod
    def pending_known(cls, length: int) -> RequestBody:
        """A body of `length` bytes that is still on the connection."""
        return cls(RequestBodyKind.PENDING_KNOWN, size=_check_length(length))

    @classmethod
    def pending_unknown(cls) -> RequestBody:
        """A body of unknown length that is still on the connection."""
        return cls(RequestBodyKind.PENDING_UNKNOWN, size=None)

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray, memoryview, str]) -> RequestBody:
        """A body held in memory; text is encoded as UTF-8."""
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return cls(RequestBodyKind.BYTES, data=raw, size=len(raw))

    @classmethod
    def from_file(cls, path: Union[str, os.PathLike], length: int) -> RequestBody:
        """A body saved in a file that the body does not own."""
        return cls(RequestBodyKind.FILE, path=Path(path), size=_check_length(length))

    @classmethod
    def from_temp_file(cls, path: Union[str, os.PathLike], length: int) -> RequestBody:
        """A body saved in a file that is deleted when the body goes away."""
        body = cls(RequestBodyKind.TEMP_FILE, path=Path(path), size=_check_length(length))
        weakref.finalize(body, _remove_quietly, body.path)
        return body

    def is_pending(self) -> bool:
        return self.kind in (RequestBodyKind.PENDING_KNOWN, RequestBodyKind.PENDING_UNKNOWN)

    def is_empty(self) -> Optional[bool]:
        """Whether the body has no bytes, or None when the length is unknown."""
        length = self.length()
        return None if length is None else length == 0

    def length(self) -> Optional[int]:
        """The body length in bytes, or None when it is unknown."""
        return self.size

    def reader(self) -> BinaryIO:
        """Open the body for reading.

        Raises PendingBodyError for a pending body, and OSError when the file cannot be opened.
        """
        if self.is_pending():
            raise PendingBodyError(_PENDING_MESSAGE)
        if self.kind is RequestBodyKind.BYTES:
            return io.BytesIO(self.data)
        return open(self.path, "rb")

    def read_bytes(self) -> bytes:
        """Return the whole body."""
        if self.kind is RequestBodyKind.BYTES:
            return self.data
        with self.reader() as stream:
            return stream.read()

    def read_text(self) -> str:
        """Return the whole body decoded as UTF-8; raises ValueError when it is not UTF-8."""
        try:
            return self.read_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("message body is not UTF-8") from exc

    def __repr__(self) -> str:
        if self.kind is RequestBodyKind.PENDING_KNOWN:
            return f"RequestBody(pending, len={self.size})"
        if self.kind is RequestBodyKind.PENDING_UNKNOWN:
            return "RequestBody(pending)"
        if self.kind is RequestBodyKind.BYTES:
            return f'RequestBody(len={self.size} "{escape_and_elide(self.data, _ELIDE_LEN)}")'
        return f"RequestBody({self.kind.value}, len={self.size}, path={str(self.path)!r})"


class _LimitedReader:
    """Reads at most `limit` bytes from an async reader."""

    def __init__(self, reader: Any, limit: int) -> None:
        self._reader = reader
        self._remaining = limit

    async def read(self, n: int = -1) -> bytes:
        if self._remaining <= 0:
            return b""
        size = self._remaining if n < 0 else min(n, self._remaining)
        chunk = await self._reader.read(size)
        self._remaining -= len(chunk)
        return chunk


class _FileWriter:
    """Adapts a binary file to the writer interface that `copy_async` expects."""

    def __init__(self, file: BinaryIO) -> None:
        self._file = file

    def write(self, data: bytes) -> None:
        self._file.write(data)

    async def drain(self) -> None:
        self._file.flush()


async def read_http_body_to_bytes(reader: Any, length: int) -> RequestBody:
    """Read exactly `length` bytes from `reader` into memory.

    Raises BodyTruncatedError when the stream ends early or fails.
    """
    chunks: list[bytes] = []
    remaining = _check_length(length)
    try:
        while remaining > 0:
            chunk = await reader.read(min(remaining, _READ_SIZE))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
    except OSError as exc:
        raise BodyTruncatedError(f"error reading body: {exc}") from exc
    if remaining > 0:
        raise BodyTruncatedError(f"body ended {remaining} bytes early")
    return RequestBody.from_bytes(b"".join(chunks))


async def read_http_unsized_body_to_bytes(reader: Any) -> RequestBody:
    """Read `reader` to its end into memory.

    Raises BodyTruncatedError when reading fails.
    """
    chunks: list[bytes] = []
    try:
        while True:
            chunk = await reader.read(_READ_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
    except OSError as exc:
        raise BodyTruncatedError(f"error reading body: {exc}") from exc
    return RequestBody.from_bytes(b"".join(chunks))


def _new_temp_file(directory: Union[str, os.PathLike]) -> tuple[BinaryIO, Path]:
    try:
        fd, name = tempfile.mkstemp(dir=directory)
    except OSError as exc:
        raise BodySaveError(f"error creating temporary file in {str(directory)!r}: {exc}") from exc
    return os.fdopen(fd, "wb"), Path(name)


async def _copy_to_temp_file(
    reader: Any, limit: int, directory: Union[str, os.PathLike]
) -> tuple[Path, int]:
    file, path = _new_temp_file(directory)
    try:
        try:
            with file:
                copied = await copy_async(_LimitedReader(reader, limit), _FileWriter(file))
        except CopyReadError as exc:
            raise BodyTruncatedError(f"error reading body: {exc}") from exc
        except (CopyWriteError, OSError) as exc:
            raise BodySaveError(f"error saving body to {str(path)!r}: {exc}") from exc
    except BaseException:
        _remove_quietly(path)
        raise
    return path, copied


async def read_http_body_to_file(
    reader: Any, length: int, directory: Union[str, os.PathLike]
) -> RequestBody:
    """Read exactly `length` bytes from `reader` into a new temp file in `directory`.

    Raises BodyTruncatedError when the stream ends early or fails,
    and BodySaveError when the file cannot be created or written.
    """
    _check_length(length)
    path, copied = await _copy_to_temp_file(reader, length, directory)
    if copied != length:
        _remove_quietly(path)
        raise BodyTruncatedError(f"body ended {length - copied} bytes early")
    return RequestBody.from_temp_file(path, length)


async def read_http_unsized_body_to_file(
    reader: Any, directory: Union[str, os.PathLike], max_len: int
) -> RequestBody:
    """Read `reader` to its end into a new temp file in `directory`.

    Raises BodyTooLongError when the body is longer than `max_len`,
    BodyTruncatedError when reading fails and BodySaveError when writing fails.
    """
    _check_length(max_len)
    path, copied = await _copy_to_temp_file(reader, max_len + 1, directory)
    if copied > max_len:
        _remove_quietly(path)
        raise BodyTooLongError(f"body is longer than {max_len} bytes")
    return RequestBody.from_temp_file(path, copied)
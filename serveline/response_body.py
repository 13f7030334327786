"""Response bodies: held in memory or stored in a file."""

from __future__ import annotations

import contextlib
import enum
import io
import os
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from serveline.util import escape_and_elide

_ELIDE_LEN = 100


class ResponseBodyKind(enum.Enum):
    """Where a response body is."""

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
class ResponseBody:
    """The body of an HTTP response.

    A temp-file body deletes its file when the body is garbage-collected.
    """

    kind: ResponseBodyKind
    data: bytes = b""
    path: Optional[Path] = None
    size: int = 0

    @classmethod
    def empty(cls) -> ResponseBody:
        return cls(ResponseBodyKind.BYTES)

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray, memoryview, str]) -> ResponseBody:
        """A body held in memory; text is encoded as UTF-8."""
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return cls(ResponseBodyKind.BYTES, data=raw, size=len(raw))

    @classmethod
    def from_file(cls, path: Union[str, os.PathLike], length: int) -> ResponseBody:
        """A body sent from a file that the body does not own."""
        return cls(ResponseBodyKind.FILE, path=Path(path), size=_check_length(length))

    @classmethod
    def from_temp_file(cls, path: Union[str, os.PathLike], length: int) -> ResponseBody:
        """A body sent from a file that is deleted when the body goes away."""
        body = cls(ResponseBodyKind.TEMP_FILE, path=Path(path), size=_check_length(length))
        weakref.finalize(body, _remove_quietly, body.path)
        return body

    def is_empty(self) -> bool:
        return self.length() == 0

    def length(self) -> int:
        """The body length in bytes."""
        return self.size

    def reader(self) -> BinaryIO:
        """Open the body for reading; raises OSError when the file cannot be opened."""
        if self.kind is ResponseBodyKind.BYTES:
            return io.BytesIO(self.data)
        return open(self.path, "rb")

    def read_bytes(self) -> bytes:
        """Return the whole body."""
        if self.kind is ResponseBodyKind.BYTES:
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
        if self.kind is ResponseBodyKind.BYTES:
            return f'ResponseBody(len={self.size} "{escape_and_elide(self.data, _ELIDE_LEN)}")'
        return f"ResponseBody({self.kind.value}, len={self.size}, path={str(self.path)!r})"
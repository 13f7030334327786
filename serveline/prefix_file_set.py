"""Tracks the files that share a path prefix, so the oldest can be deleted."""

from __future__ import annotations

import datetime as _dt
import heapq
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

Timestamp = Union[float, _dt.datetime]
Duration = Union[float, _dt.timedelta]


class FileSetError(Exception):
    """Listing, inspecting or deleting files failed."""


@dataclass(order=True)
class PrefixFile:
    """A file on disk; files are ordered by modification time (epoch seconds)."""

    path: Path = field(compare=False)
    mtime: float
    length: int = field(compare=False)


def _seconds(value: Timestamp | Duration) -> float:
    if isinstance(value, _dt.datetime):
        return value.timestamp()
    if isinstance(value, _dt.timedelta):
        return value.total_seconds()
    return float(value)


class PrefixFileSet:
    """The regular files whose names start with the file name of `path_prefix`."""

    def __init__(self, path_prefix: str | os.PathLike[str]) -> None:
        prefix = Path(path_prefix)
        directory = prefix.parent
        if not prefix.name or directory == prefix:
            raise FileSetError(f"path has no parent: {str(prefix)!r}")
        self._files: list[PrefixFile] = []
        self._len = 0
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if not entry.name.startswith(prefix.name):
                        continue
                    try:
                        if not entry.is_file(follow_symlinks=False):
                            continue
                        stat = entry.stat(follow_symlinks=False)
                    except OSError as exc:
                        raise FileSetError(
                            f"error reading metadata of {entry.path!r}: {exc}"
                        ) from exc
                    self.push(PrefixFile(Path(entry.path), stat.st_mtime, stat.st_size))
        except FileSetError:
            raise
        except OSError as exc:
            raise FileSetError(f"error reading dir {str(directory)!r}: {exc}") from exc

    def delete_oldest(self) -> None:
        """Delete the file with the oldest modification time."""
        if not self._files:
            raise FileSetError("no files to delete")
        oldest = self._files[0]
        try:
            os.remove(oldest.path)
        except OSError as exc:
            raise FileSetError(f"error deleting file {str(oldest.path)!r}: {exc}") from exc
        self._len -= oldest.length
        heapq.heappop(self._files)

    def delete_older_than(self, now: Timestamp, duration: Duration) -> None:
        """Delete every file modified before `now - duration`."""
        min_mtime = _seconds(now) - _seconds(duration)
        while self._files and self._files[0].mtime < min_mtime:
            self.delete_oldest()

    def delete_oldest_while_over_max_len(self, max_len: int) -> None:
        """Delete the oldest files until their total size is at most `max_len`."""
        while self._len > max_len:
            self.delete_oldest()

    def push(self, file: PrefixFile) -> None:
        """Start tracking `file`."""
        heapq.heappush(self._files, file)
        self._len += file.length

    def total_len(self) -> int:
        """Return the total size in bytes of the tracked files."""
        return self._len

    def __len__(self) -> int:
        return len(self._files)
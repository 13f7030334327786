"""Writes log events to size- and age-limited files, deleting old ones."""

from __future__ import annotations

import datetime as _dt
import io
import itertools
import os
import threading
import time as _time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from serveline.clock import to_datetime
from serveline.logger import Level, LogChannel, LogEvent
from serveline.prefix_file_set import PrefixFile, PrefixFileSet
from serveline.tag_list import TagList
from serveline.tags import tag

Duration = Union[int, float, _dt.timedelta]
Timestamp = Union[int, float, _dt.datetime]

_CHANNEL_SIZE = 100


def _to_timedelta(value: Duration) -> _dt.timedelta:
    if isinstance(value, _dt.timedelta):
        return value
    return _dt.timedelta(seconds=value)


def _to_seconds(value: Timestamp) -> float:
    if isinstance(value, _dt.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=_dt.timezone.utc)
        return value.timestamp()
    return float(value)


def _jsonl_bytes(event: LogEvent) -> bytes:
    buf = io.StringIO()
    event.write_jsonl(buf)
    return buf.getvalue().encode("utf-8")


@dataclass
class LogFile:
    """An open log file and the number of bytes written to it."""

    file: BinaryIO
    path: Path
    created: float
    length: int = 0

    @classmethod
    def create(cls, path_prefix: Union[str, os.PathLike]) -> LogFile:
        """Create a new file named `<prefix>.<UTC time>-<n>`, trying larger `n` while taken."""
        prefix = os.fspath(path_prefix)
        for n in itertools.count():
            dt = to_datetime(_time.time())
            path = Path(
                f"{prefix}.{dt.year:04}{dt.month:02}{dt.day:02}"
                f"T{dt.hour:02}{dt.minute:02}{dt.second:02}Z-{n}"
            )
            try:
                handle = open(path, "xb")
            except FileExistsError:
                continue
            return cls(handle, path, _time.time())
        raise AssertionError("unreachable")

    def write_all(self, data: bytes) -> None:
        """Write all of `data` to the file and flush it."""
        self.file.write(data)
        self.file.flush()
        self.length += len(data)

    def age(self, now: Timestamp) -> _dt.timedelta:
        """Time between the file's creation and `now`; zero if `now` is earlier."""
        return _dt.timedelta(seconds=max(_to_seconds(now) - self.created, 0.0))

    def close(self) -> None:
        """Flush the file to disk and close it."""
        if self.file.closed:
            return
        self.file.flush()
        os.fsync(self.file.fileno())
        self.file.close()


class LogFileWriter:
    """Settings for a thread that writes log events to files starting with `path_prefix`.

    Files matching the prefix are deleted, oldest first, to keep their total
    size at most `max_keep_bytes`.
    """

    def __init__(self, path_prefix: Union[str, os.PathLike], max_keep_bytes: int) -> None:
        self.path_prefix = Path(path_prefix)
        self.max_keep_bytes = max_keep_bytes
        self.max_keep_age: Optional[_dt.timedelta] = None
        self.max_write_age = _dt.timedelta(hours=24)
        self.max_write_bytes = 10 * 1024 * 1024

    def with_max_keep_age(self, duration: Duration) -> LogFileWriter:
        """Also delete files older than `duration`, which must be at least one minute."""
        delta = _to_timedelta(duration)
        if delta < _dt.timedelta(minutes=1):
            raise ValueError(f"duration is less than 1 minute: {delta}")
        self.max_keep_age = delta
        return self

    def with_max_write_age(self, duration: Duration) -> LogFileWriter:
        """Start a new file when the current one is older than `duration` (at least 1s)."""
        delta = _to_timedelta(duration)
        if delta < _dt.timedelta(seconds=1):
            raise ValueError(f"duration is less than 1 second: {delta}")
        self.max_write_age = delta
        return self

    def with_max_write_bytes(self, length: int) -> LogFileWriter:
        """Write at most `length` bytes (at least 64 KiB) to each file."""
        if length < 64 * 1024:
            raise ValueError(f"len is less than 64 KiB: {length}")
        self.max_write_bytes = length
        return self

    def start_writer_thread(self) -> LogChannel:
        """Create the first log file and start the writer thread.

        Returns the channel to send events to; closing it stops the thread.
        """
        prefix = self.path_prefix
        if not prefix.name:
            raise ValueError(f"path_prefix does not contain a filename part: {str(prefix)!r}")
        directory = prefix.parent
        if not directory.is_absolute():
            directory = Path.cwd() / directory
        directory = directory.resolve(strict=True)
        path_prefix = directory / prefix.name
        file_set = PrefixFileSet(path_prefix)
        file_set.delete_oldest_while_over_max_len(self.max_keep_bytes)
        log_file = LogFile.create(path_prefix)
        log_file.write_all(
            _jsonl_bytes(LogEvent(Level.INFO, TagList([tag("msg", "Starting log writer")])))
        )
        channel = LogChannel(_CHANNEL_SIZE)
        thread = threading.Thread(
            target=_write_events,
            args=(
                channel,
                file_set,
                path_prefix,
                log_file,
                self.max_keep_bytes,
                self.max_keep_age,
                self.max_write_age,
                self.max_write_bytes,
            ),
            name="log-file-writer",
            daemon=True,
        )
        thread.start()
        return channel


def _write_events(
    channel: LogChannel,
    file_set: PrefixFileSet,
    path_prefix: Path,
    log_file: LogFile,
    max_keep_bytes: int,
    max_keep_age: Optional[_dt.timedelta],
    max_write_age: _dt.timedelta,
    max_write_bytes: int,
) -> None:
    try:
        for event in channel:
            data = _jsonl_bytes(event)
            now = _time.time()
            if (
                log_file.length + len(data) > max_write_bytes
                or log_file.age(now) > max_write_age
            ):
                file_set.push(PrefixFile(log_file.path, now, log_file.length))
                log_file.close()
                log_file = LogFile.create(path_prefix)
            if max_keep_age is not None:
                file_set.delete_older_than(now, max_keep_age)
            file_set.delete_oldest_while_over_max_len(
                max(max_keep_bytes - log_file.length - len(data), 0)
            )
            log_file.write_all(data)
    finally:
        log_file.close()
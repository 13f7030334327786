"""Structured log events, bounded log channels and the process-wide logger."""

from __future__ import annotations

import datetime as _dt
import enum
import sys
import threading
import time as _time
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional, TextIO, Union

from serveline.clock import epoch_ns, iso8601_utc
from serveline.tag_list import TagList
from serveline.tags import Tag

Timestamp = Union[int, float, _dt.datetime]

_TAG_PRIORITY = {
    "msg": 0,
    "http_method": 1,
    "path": 2,
    "request_body_len": 3,
    "request_body": 4,
    "response_body_len": 5,
}
_DEFAULT_CHANNEL_SIZE = 100


class Level(enum.Enum):
    """Severity of a log event."""

    ERROR = "error"
    INFO = "info"
    DEBUG = "debug"

    def __str__(self) -> str:
        return self.value


@dataclass
class LogEvent:
    """One log record: when it happened, how severe it is, and its tags."""

    level: Level
    tags: Any = field(default_factory=TagList)
    time: Timestamp = field(default_factory=_time.time)

    def __post_init__(self) -> None:
        if not isinstance(self.tags, TagList):
            self.tags = TagList(self.tags)

    def write_jsonl(self, f: TextIO) -> None:
        """Write the event to the text stream `f` as one JSON line."""
        stamp = iso8601_utc(self.time)
        time_ns = epoch_ns(self.time)
        tags = f"{self.tags}," if len(self.tags) else ""
        f.write(
            f'{{"time":"{stamp}","level":"{self.level}",{tags}"time_ns":{time_ns}}}\n'
        )


class LoggerStoppedError(Exception):
    """The logger no longer accepts events."""


class GlobalLoggerAlreadySetError(Exception):
    """A global logger has already been set."""


class LogChannel:
    """A bounded, thread-safe queue of log events.

    `send` blocks while the channel is full. After `close`, sending raises
    `LoggerStoppedError` and iteration ends once the queued events are consumed.
    """

    def __init__(self, maxsize: int = _DEFAULT_CHANNEL_SIZE) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1: {maxsize}")
        self._maxsize = maxsize
        self._items: deque[LogEvent] = deque()
        self._cond = threading.Condition()
        self._closed = False

    def send(self, event: LogEvent) -> None:
        with self._cond:
            self._cond.wait_for(lambda: self._closed or len(self._items) < self._maxsize)
            if self._closed:
                raise LoggerStoppedError("logger stopped")
            self._items.append(event)
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[LogEvent]:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._closed or bool(self._items))
                if not self._items:
                    return
                event = self._items.popleft()
                self._cond.notify_all()
            yield event


_global_lock = threading.Lock()
_global_channel: Optional[LogChannel] = None
_global_is_default = False


class GlobalLoggerHandle:
    """Clears the global logger, and closes its channel, when cleared or on exit."""

    def __init__(self, channel: LogChannel) -> None:
        self._channel = channel
        self._cleared = False

    def clear(self) -> None:
        global _global_channel, _global_is_default
        if self._cleared:
            return
        self._cleared = True
        with _global_lock:
            if _global_channel is self._channel and not _global_is_default:
                _global_channel = None
                _global_is_default = False
        self._channel.close()

    def __enter__(self) -> GlobalLoggerHandle:
        return self

    def __exit__(self, *args: object) -> None:
        self.clear()


def _spawn(target: Any, channel: LogChannel, name: str) -> None:
    threading.Thread(target=target, args=(channel,), name=name, daemon=True).start()


def _print_events(channel: LogChannel) -> None:
    for event in channel:
        print(f"{iso8601_utc(event.time)} {event.level} {event.tags}", flush=True)


def _print_jsonl_events(channel: LogChannel) -> None:
    for event in channel:
        stream = sys.stdout
        event.write_jsonl(stream)
        stream.flush()


def start_stdout_logger_thread() -> LogChannel:
    """Start a thread that prints events to stdout in a readable form."""
    channel = LogChannel(_DEFAULT_CHANNEL_SIZE)
    _spawn(_print_events, channel, "stdout-logger")
    return channel


def start_stdout_jsonl_logger_thread() -> LogChannel:
    """Start a thread that prints events to stdout as JSON lines."""
    channel = LogChannel(_DEFAULT_CHANNEL_SIZE)
    _spawn(_print_jsonl_events, channel, "stdout-jsonl-logger")
    return channel


def set_global_logger(channel: LogChannel) -> GlobalLoggerHandle:
    """Make `channel` the global logger, replacing a default stdout logger.

    Raises GlobalLoggerAlreadySetError when another logger was set explicitly.
    """
    global _global_channel, _global_is_default
    with _global_lock:
        if _global_channel is not None and not _global_is_default:
            raise GlobalLoggerAlreadySetError("a global logger is already set")
        previous = _global_channel
        _global_channel = channel
        _global_is_default = False
    if previous is not None:
        previous.close()
    return GlobalLoggerHandle(channel)


def global_logger() -> LogChannel:
    """Return the global logger, starting a default stdout logger when none is set."""
    global _global_channel, _global_is_default
    with _global_lock:
        if _global_channel is None:
            _global_channel = start_stdout_logger_thread()
            _global_is_default = True
        return _global_channel


_thread_state = threading.local()


def _thread_tags() -> list[Tag]:
    tags = getattr(_thread_state, "tags", None)
    if tags is None:
        tags = []
        _thread_state.tags = tags
    return tags


def add_thread_local_log_tag(name: str, value: Any) -> None:
    """Add a tag to every event this thread logs from now on."""
    _thread_tags().append(Tag(name, value))


def clear_thread_local_log_tags() -> None:
    """Remove this thread's extra log tags."""
    _thread_tags().clear()


def thread_local_log_tags() -> list[Tag]:
    """Return a copy of this thread's extra log tags."""
    return list(_thread_tags())


def log(time: Timestamp, level: Level, tags: Any) -> None:
    """Send an event with `tags` plus this thread's tags to the global logger.

    Raises LoggerStoppedError when the global logger has stopped.
    """
    combined = [*TagList(tags), *_thread_tags()]
    combined.sort(key=lambda t: _TAG_PRIORITY.get(t.name, 99))
    global_logger().send(LogEvent(level, TagList(combined), time))


def _log_message(level: Level, msg: str, tags: Any) -> None:
    log(_time.time(), level, [Tag("msg", msg), *TagList(tags)])


def error(msg: str, tags: Any = None) -> None:
    """Log `msg` at error level."""
    _log_message(Level.ERROR, msg, tags)


def info(msg: str, tags: Any = None) -> None:
    """Log `msg` at info level."""
    _log_message(Level.INFO, msg, tags)


def debug(msg: str, tags: Any = None) -> None:
    """Log `msg` at debug level."""
    _log_message(Level.DEBUG, msg, tags)
"""A fixed-size set of tokens for limiting concurrent work."""

from __future__ import annotations

import asyncio
import datetime as _dt
import threading
from typing import Callable, Optional


class TokenTimeout(Exception):
    """No token became available before the timeout passed."""


class Token:
    """A token. If it came from a `TokenSet`, releasing it puts it back in the set.

    A token with no set is useful in tests. Releasing is idempotent, and a token that
    is garbage-collected is released.
    """

    def __init__(self, on_release: Optional[Callable[[], None]] = None) -> None:
        self._lock = threading.Lock()
        self._on_release = on_release

    def release(self) -> None:
        with self._lock:
            callback, self._on_release = self._on_release, None
        if callback is not None:
            callback()

    def __enter__(self) -> Token:
        return self

    def __exit__(self, *args: object) -> None:
        self.release()

    def __del__(self) -> None:
        if getattr(self, "_on_release", None) is not None:
            try:
                self.release()
            except Exception:
                pass


def _wake(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)


class TokenSet:
    """A set of `size` tokens. Taking a token when none are left waits for a release."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"size must not be negative: {size}")
        self._cond = threading.Condition()
        self._available = size
        self._async_waiters: set[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = set()

    def _put_back(self) -> None:
        with self._cond:
            self._available += 1
            self._cond.notify()
            waiters = list(self._async_waiters)
        for loop, future in waiters:
            try:
                loop.call_soon_threadsafe(_wake, future)
            except RuntimeError:
                pass

    def _take(self) -> Token:
        self._available -= 1
        return Token(self._put_back)

    def wait_token(self) -> Token:
        """Block until a token is available and take it."""
        with self._cond:
            self._cond.wait_for(lambda: self._available > 0)
            return self._take()

    def wait_token_timeout(self, timeout: float | _dt.timedelta) -> Token:
        """Take a token, waiting at most `timeout` (seconds or timedelta).

        Raises TokenTimeout when none became available in time.
        """
        seconds = timeout.total_seconds() if isinstance(timeout, _dt.timedelta) else float(timeout)
        with self._cond:
            if not self._cond.wait_for(lambda: self._available > 0, timeout=seconds):
                raise TokenTimeout(f"no token available after {seconds} seconds")
            return self._take()

    async def async_wait_token(self) -> Token:
        """Wait without blocking the event loop until a token is available and take it."""
        loop = asyncio.get_running_loop()
        while True:
            with self._cond:
                if self._available > 0:
                    return self._take()
                waiter = (loop, loop.create_future())
                self._async_waiters.add(waiter)
            try:
                await waiter[1]
            finally:
                with self._cond:
                    self._async_waiters.discard(waiter)

    def available(self) -> int:
        """Return the number of tokens currently in the set."""
        with self._cond:
            return self._available
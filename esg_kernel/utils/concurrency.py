"""
In-process concurrency primitives.

Responsibility:
    ``KeyedLockRegistry`` gives mutual exclusion per key (source period id
    for rollovers, data point id for gap transitions) while letting
    different keys proceed concurrently.  ``CancellationToken`` is the
    cooperative cancel/timeout signal a rollover checks between per-section
    copy units.

Architecture position:
    Kernel > Utils.  Pure threading, no database access.  Database row
    locks (``SELECT ... FOR UPDATE``) are taken by the services themselves;
    these locks serialize callers inside one process before they reach the
    database.

Invariants enforced:
    - A key's lock object lives only while some thread holds or waits on
      it, so the registry does not grow with every key ever used.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Hashable, Iterator

from esg_kernel.exceptions import RolloverCancelledError


class KeyedLockRegistry:
    """One ``threading.Lock`` per key, created on demand."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable, timeout: float | None = None) -> Iterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        Raises:
            TimeoutError: If the lock was not acquired within ``timeout``
                seconds.  ``None`` waits forever.
        """
        lock = self._checkout(key)
        try:
            acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise TimeoutError(f"lock for {key!r} not acquired within {timeout}s")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


class CancellationToken:
    """
    Cooperative cancellation signal with an optional deadline.

    Any thread may call ``cancel()``; the worker polls ``raise_if_cancelled``
    between units of work.
    """

    def __init__(self, timeout_seconds: float | None = None):
        self._event = threading.Event()
        self._reason: str | None = None
        self._deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("timeout exceeded")
            return True
        return False

    @property
    def reason(self) -> str | None:
        return self._reason

    def raise_if_cancelled(self, sections_processed: int = 0) -> None:
        """
        Raises:
            RolloverCancelledError: If cancelled or past the deadline.
        """
        if self.is_cancelled:
            raise RolloverCancelledError(self._reason or "cancelled", sections_processed)

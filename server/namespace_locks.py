"""Per-fingerprint reader/writer locks guarding chunk namespaces."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional
from weakref import WeakValueDictionary

from common.exceptions import NamespaceBusy

logger = logging.getLogger(__name__)


class NamespaceLock:
    """
    Reader/writer lock for one chunk namespace.

    Chunk writes and resume queries hold it shared, a merge holds it
    exclusively from listing until the namespace is deleted. A waiting
    merge blocks new shared holders so it cannot be starved by uploads.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_shared(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            acquired = self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0,
                timeout,
            )
            if not acquired:
                return False
            self._readers += 1
            return True

    def release_shared(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_exclusive(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            self._writers_waiting += 1
            try:
                acquired = self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout,
                )
            finally:
                self._writers_waiting -= 1
            if not acquired:
                # shared waiters may have been held back by this attempt
                self._cond.notify_all()
                return False
            self._writer = True
            return True

    def release_exclusive(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class NamespaceLocks:
    """
    Registry handing out one NamespaceLock per fingerprint.

    Locks are kept in a WeakValueDictionary: an entry lives exactly as long
    as some request holds or waits on it.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Default seconds to wait for a lock (None waits forever)
        """
        self._timeout = timeout
        self._locks: WeakValueDictionary[str, NamespaceLock] = WeakValueDictionary()
        self._guard = threading.Lock()

    def get(self, fingerprint: str) -> NamespaceLock:
        with self._guard:
            lock = self._locks.get(fingerprint)
            if lock is None:
                lock = NamespaceLock()
                self._locks[fingerprint] = lock
            return lock

    @contextmanager
    def shared(self, fingerprint: str, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the namespace lock of a fingerprint in shared mode."""
        lock = self.get(fingerprint)
        wait = self._timeout if timeout is None else timeout
        if not lock.acquire_shared(wait):
            logger.warning(f"Timed out waiting for shared lock on namespace {fingerprint}")
            raise NamespaceBusy(
                f"Namespace {fingerprint} is being merged, try again later",
                fingerprint=fingerprint,
            )
        try:
            yield
        finally:
            lock.release_shared()

    @contextmanager
    def exclusive(self, fingerprint: str, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the namespace lock of a fingerprint in exclusive mode."""
        lock = self.get(fingerprint)
        wait = self._timeout if timeout is None else timeout
        if not lock.acquire_exclusive(wait):
            logger.warning(f"Timed out waiting for exclusive lock on namespace {fingerprint}")
            raise NamespaceBusy(
                f"Namespace {fingerprint} is busy, try again later",
                fingerprint=fingerprint,
            )
        try:
            yield
        finally:
            lock.release_exclusive()

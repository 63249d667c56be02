"""
Per-client storage for the active TLS credential.

A client holds at most one credential. Requests read it concurrently while
registration occasionally swaps it for a new one, so access goes through a
reader/writer lock: any number of readers, or a single writer.

Usage:
    cache = CredentialCache()
    previous = cache.set(credential)
    current = cache.get()
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .credentials import TLSCredential

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Reader/writer lock built on a ``threading.Condition``.

    Readers share the lock; writers hold it exclusively. A waiting writer
    blocks new readers so a steady stream of reads cannot starve it.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class CredentialCache:
    """Holds zero or one published ``TLSCredential``."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._credential: Optional[TLSCredential] = None

    @property
    def has_credential(self) -> bool:
        return self.get() is not None

    def get(self) -> Optional[TLSCredential]:
        """Return the active credential, or None."""
        with self._lock.read_locked():
            return self._credential

    def set(self, credential: TLSCredential) -> Optional[TLSCredential]:
        """
        Publish a new credential, replacing the current one.

        Returns:
            The credential that was replaced, or None
        """
        with self._lock.write_locked():
            previous, self._credential = self._credential, credential
        if previous is not None and previous is not credential:
            logger.info(
                "Replaced credential %s with %s for merchant %s",
                previous.fingerprint, credential.fingerprint, credential.mch_id,
            )
        return previous

    def clear(self) -> Optional[TLSCredential]:
        """Drop the active credential and return it."""
        with self._lock.write_locked():
            previous, self._credential = self._credential, None
        return previous

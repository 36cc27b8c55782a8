from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from slotbook.application.exceptions import LockUnavailable
from slotbook.application.ports.slot_lock import SlotLockPort


class MemoryLeaseLock(SlotLockPort):
    """
    In-process lease store. A lease not released within ttl_seconds may be
    taken over by the next waiter, so a stuck holder cannot block a
    provider's calendar forever. Swap for a distributed lock when running
    more than one process.
    """

    def __init__(
        self,
        ttl_seconds: float = 10.0,
        wait_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._wait = wait_seconds
        self._clock = clock
        self._leases: dict[str, tuple[str, float]] = {}
        self._cond = threading.Condition()
        self._logger = logging.getLogger(__name__)

    def acquire(self, key: str) -> str:
        """Take the lease on key and return its token."""
        token = uuid.uuid4().hex
        deadline = self._clock() + self._wait
        with self._cond:
            while True:
                now = self._clock()
                lease = self._leases.get(key)
                if lease is None or lease[1] <= now:
                    if lease is not None:
                        self._logger.warning("Expired lease taken over", extra={"reason": key})
                    self._leases[key] = (token, now + self._ttl)
                    return token
                remaining = min(deadline, lease[1]) - now
                if now >= deadline:
                    raise LockUnavailable(f"could not acquire lock {key!r} within {self._wait}s")
                self._cond.wait(timeout=max(remaining, 0.001))

    def release(self, key: str, token: str) -> bool:
        """Release the lease if token still owns it. False if it expired and was taken over."""
        with self._cond:
            lease = self._leases.get(key)
            if lease is None or lease[0] != token:
                return False
            del self._leases[key]
            self._cond.notify_all()
            return True

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        token = self.acquire(key)
        try:
            yield
        finally:
            self.release(key, token)

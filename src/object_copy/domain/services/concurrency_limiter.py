"""Counting limiter bounding simultaneous chunk transfers."""

from __future__ import annotations

import threading
from types import TracebackType
from typing import Optional


class ConcurrencyLimiter:
    """Bounds the number of chunk transfers running at once.

    Acquisition order is not FIFO. The limiter also records how many slots
    are held and the high-water mark, which feed the active-worker gauge.

    Example:
        limiter = ConcurrencyLimiter(capacity=5)
        with limiter:
            transfer_chunk()
    """

    def __init__(self, capacity: int = 5) -> None:
        """Initialize limiter.

        Args:
            capacity: Maximum concurrent holders.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"Concurrency must be positive, got {capacity}")
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def active(self) -> int:
        """Number of slots currently held."""
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        """Highest number of slots held at once."""
        with self._lock:
            return self._peak

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """Acquire a slot, blocking until one is free.

        Args:
            timeout: Maximum seconds to wait, or None to wait forever.

        Returns:
            True if a slot was acquired.
        """
        if not self._semaphore.acquire(timeout=timeout):
            return False
        self._mark_acquired()
        return True

    def try_acquire(self) -> bool:
        """Acquire a slot only if one is free right now.

        Returns:
            True if a slot was acquired.
        """
        if not self._semaphore.acquire(blocking=False):
            return False
        self._mark_acquired()
        return True

    def release(self) -> None:
        """Return a slot."""
        with self._lock:
            if self._active == 0:
                raise RuntimeError("Limiter released more times than acquired")
            self._active -= 1
        self._semaphore.release()

    def _mark_acquired(self) -> None:
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)

    def __enter__(self) -> "ConcurrencyLimiter":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

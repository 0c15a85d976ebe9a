"""
Fixed-capacity circular sample buffer.

The buffer always holds exactly ``capacity`` elements. It starts out filled
with a neutral value and every write overwrites the oldest elements.

Usage:
    ring = RingBuffer(capacity=4096)

    # Producer thread
    ring.enqueue(samples)

    # Consumer thread
    window = np.empty(len(ring))
    ring.retrieve(window)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import numpy as np

from ..core.errors import ConfigurationError, SizeMismatch


class ReadWriteLock:
    """Lock allowing many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of readers cannot
    starve the producer.
    """

    def __init__(self) -> None:
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


class RingBuffer:
    """
    Circular buffer with overwrite-oldest semantics.

    Thread-safe for one writer and any number of readers. Storage is a single
    pre-allocated numpy array, so enqueueing never allocates.

    Attributes:
        capacity: Number of elements held, fixed at construction
    """

    def __init__(self, capacity: int, dtype: Any = np.float64, fill: Any = 0) -> None:
        """
        Initialize the ring buffer.

        Args:
            capacity: Number of elements (must be at least 1)
            dtype: numpy dtype of the stored elements
            fill: Neutral value the buffer is pre-filled with

        Raises:
            ConfigurationError: If capacity is smaller than 1
        """
        if capacity < 1:
            raise ConfigurationError(f"Ring buffer capacity must be at least 1, got {capacity}")

        self.capacity = int(capacity)
        self._values = np.full(self.capacity, fill, dtype=dtype)
        # Index of the oldest element, i.e. the next slot to be overwritten
        self._pointer = 0
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        return self.capacity

    def length(self) -> int:
        """Capacity of the buffer. This is not a count of written elements."""
        return self.capacity

    @property
    def dtype(self) -> np.dtype:
        return self._values.dtype

    @property
    def cursor(self) -> int:
        """Current write position (index of the oldest element)."""
        return self._pointer

    def enqueue(self, items) -> None:
        """
        Append items in order, overwriting the oldest elements.

        Args:
            items: Sequence or array of elements
        """
        items = np.asarray(items, dtype=self._values.dtype).ravel()
        num_items = len(items)
        if num_items == 0:
            return

        n = self.capacity
        values = self._values

        with self._lock.write_locked():
            # Batch at least as large as the buffer: keep only its tail
            if num_items >= n:
                values[:] = items[num_items - n:]
                self._pointer = 0
                return

            ptr = self._pointer
            end = ptr + num_items
            if end < n:
                values[ptr:end] = items
                self._pointer = end
            else:
                tail = n - ptr
                head = end - n
                values[ptr:n] = items[:tail]
                values[:head] = items[tail:]
                self._pointer = head

    def retrieve(self, out: np.ndarray) -> np.ndarray:
        """
        Copy all elements into out, oldest first. The buffer is left unchanged.

        Args:
            out: Writable array whose length equals the capacity

        Returns:
            out

        Raises:
            SizeMismatch: If len(out) differs from the capacity
        """
        n = self.capacity
        m = len(out)
        if m != n:
            raise SizeMismatch(
                f"Target buffer must be of the same size as source buffer "
                f"(expected {n}, got {m})",
                expected=n,
                actual=m,
            )

        with self._lock.read_locked():
            ptr = self._pointer
            tail_size = n - ptr
            out[:tail_size] = self._values[ptr:]
            out[tail_size:] = self._values[:ptr]
        return out

    def snapshot(self) -> np.ndarray:
        """Return a new array with the buffer contents, oldest first."""
        return self.retrieve(np.empty(self.capacity, dtype=self._values.dtype))

    def at(self, offset: int) -> Optional[Any]:
        """
        Element located offset positions after the oldest one.

        Returns:
            The element, or None if offset is outside [0, capacity)
        """
        with self._lock.read_locked():
            n = self.capacity
            if n == 0 or offset < 0 or offset >= n:
                return None
            return self._values[(self._pointer + offset) % n].item()

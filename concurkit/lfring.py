"""Bounded ring buffer for single or multiple producers and consumers.

Every slot holds an element and the ring index it was last written at.
Producers claim a slot by checking that its index is exactly one lap behind
their tail position. Consumers copy elements out and then advance the head.
"""

from __future__ import annotations

import enum
import threading
from typing import Any, Iterable

MAX_ELEMENTS = 0x80000000
_INDEX_MASK = 0xFFFFFFFF


class RingFlag(enum.IntFlag):
    """Producer and consumer modes of a ring."""

    MP = 0x0000
    SP = 0x0001
    MC = 0x0000
    SC = 0x0002


_SUPPORTED_FLAGS = int(RingFlag.SP | RingFlag.SC)


class RingNotEmpty(Exception):
    """Raised when a ring that still holds elements is closed."""


def _round_up_pow2(n: int) -> int:
    return 1 << (n - 1).bit_length() if n > 1 else 1


class LockFreeRing:
    """Fixed-capacity FIFO ring; enqueue and dequeue move whole batches."""

    def __init__(self, n_elems: int, flags: int = RingFlag.MP | RingFlag.MC) -> None:
        if not 0 < n_elems <= MAX_ELEMENTS:
            raise ValueError(f"invalid number of elements: {n_elems}")
        if int(flags) & ~_SUPPORTED_FLAGS:
            raise ValueError(f"invalid flags: {flags:#x}")
        size = _round_up_pow2(n_elems)
        self._flags = int(flags)
        self._mask = size - 1
        self._ptrs: list[Any] = [None] * size
        self._idx: list[int] = [i - size for i in range(size)]
        self._head = 0
        self._tail = 0
        self._atomic = threading.Lock()
        self._closed = False

    @property
    def _single_producer(self) -> bool:
        return bool(self._flags & RingFlag.SP)

    @property
    def _single_consumer(self) -> bool:
        return bool(self._flags & RingFlag.SC)

    def capacity(self) -> int:
        """Number of slots in the ring (a power of two)."""
        return self._mask + 1

    def __len__(self) -> int:
        return max(0, self._tail - self._head)

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("ring has been closed")

    def _cond_update_tail(self, neu: int) -> int:
        with self._atomic:
            if neu < self._tail:
                return self._tail
            self._tail = neu
            return neu

    def _cond_reload(self, idx: int) -> int:
        fresh = self._tail
        return fresh if idx < fresh else idx + 1

    def _try_enqueue(self, tail: int, elem: Any, size: int) -> tuple[bool, int]:
        pos = tail & self._mask
        with self._atomic:
            idx = self._idx[pos]
            if idx == tail - size:
                self._ptrs[pos] = elem
                self._idx[pos] = tail
                return True, tail
        if idx != tail:
            # Far behind: restart from a fresh tail.
            return False, self._cond_reload(tail)
        # Slot already filled by another producer; try the next one.
        return False, tail + 1

    def enqueue(self, elems: Iterable[Any]) -> int:
        """Enqueue as many of elems as fit; return how many were enqueued."""
        self._check_open()
        items = list(elems)
        size = self._mask + 1
        tail = self._tail

        if self._single_producer:
            actual = min(self._head + size - tail, len(items))
            if actual <= 0:
                return 0
            for elem in items[:actual]:
                pos = tail & self._mask
                if self._idx[pos] != tail - size:
                    raise RuntimeError("ring slot out of sequence")
                self._ptrs[pos] = elem
                self._idx[pos] = tail
                tail += 1
            self._tail = tail
            return actual

        actual = 0
        while actual < len(items) and tail < self._head + size:
            claimed, tail = self._try_enqueue(tail, items[actual], size)
            if claimed:
                actual += 1
                tail += 1
        self._cond_update_tail(tail)
        return actual

    def _find_tail(self, head: int, tail: int) -> int:
        if self._single_producer:
            return self._tail
        size = self._mask + 1
        # Pick up elements written but not yet published through the tail.
        while tail < head + size and self._idx[tail & self._mask] == tail:
            tail += 1
        return self._cond_update_tail(tail)

    def dequeue(self, n_elems: int) -> tuple[list[Any], int]:
        """Dequeue up to n_elems; return the elements and the ring index of the first."""
        self._check_open()
        if n_elems < 0:
            raise ValueError("n_elems must not be negative")
        head = self._head
        tail = self._tail
        while True:
            actual = min(tail - head, n_elems)
            if actual <= 0:
                tail = self._find_tail(head, tail)
                actual = min(tail - head, n_elems)
                if actual <= 0:
                    return [], head & _INDEX_MASK
            items = [self._ptrs[(head + i) & self._mask] for i in range(actual)]
            if self._single_consumer:
                self._head = head + actual
                break
            with self._atomic:
                if self._head == head:
                    self._head = head + actual
                    break
                head = self._head
        return items, head & _INDEX_MASK

    def close(self) -> None:
        """Release the ring; it must be empty."""
        if self._closed:
            return
        if self._head != self._tail:
            raise RingNotEmpty("ring buffer not empty")
        self._closed = True

    def __enter__(self) -> "LockFreeRing":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
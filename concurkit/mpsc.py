"""Unbounded FIFO queue for many producers and a single consumer.

Any thread may push at any time. Only one thread at a time may call the
consumer operations: has_front, front, pop and clear.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Optional


class _Node:
    __slots__ = ("value", "next")

    def __init__(self, value: Any) -> None:
        self.value = value
        self.next: Optional[_Node] = None


class MPSCQueue:
    """Linked FIFO queue; producers swap the tail, the consumer owns the head."""

    def __init__(self) -> None:
        self._head: Optional[_Node] = None
        self._tail: Optional[_Node] = None
        self._atomic = threading.Lock()

    def push(self, item: Any) -> None:
        """Append item at the back of the queue (producer operation)."""
        node = _Node(item)
        with self._atomic:
            old_tail = self._tail
            self._tail = node
            if old_tail is None:
                self._head = node
                return
        # Link the previous tail to the new one; the consumer waits for this.
        old_tail.next = node

    def has_front(self) -> bool:
        """True if the queue holds at least one item (consumer operation)."""
        return self._head is not None

    def __bool__(self) -> bool:
        return self.has_front()

    def front(self) -> Any:
        """Return the item at the front without removing it (consumer operation)."""
        head = self._head
        if head is None:
            raise IndexError("front of an empty queue")
        return head.value

    def pop(self) -> Any:
        """Remove and return the item at the front (consumer operation)."""
        popped = self._head
        if popped is None:
            raise IndexError("pop from an empty queue")
        with self._atomic:
            if self._tail is popped:
                # The only item: the queue becomes empty.
                self._tail = None
                self._head = None
                return popped.value
        # A producer has swapped the tail but may not have linked it yet.
        while (following := popped.next) is None:
            time.sleep(0)
        self._head = following
        return popped.value

    def clear(self) -> int:
        """Remove every item; return how many were removed."""
        removed = 0
        while self.has_front():
            self.pop()
            removed += 1
        return removed


def stress(total: int = 75_000_000, producers: int = 64) -> int:
    """Push values 0..total-1 from many producers into one consumer.

    Returns the number of items consumed; raises RuntimeError if a value is
    lost or seen twice, or if the queue is not empty at the end.
    """
    if total < 0 or producers <= 0:
        raise ValueError("total must not be negative and producers must be positive")
    queue = MPSCQueue()
    counter_lock = threading.Lock()
    next_value = 0
    consumed = 0
    seen = bytearray(total)
    errors: list[BaseException] = []

    def produce() -> None:
        nonlocal next_value
        try:
            while True:
                with counter_lock:
                    value = next_value
                    next_value += 1
                if value >= total:
                    break
                queue.push(value)
        except BaseException as exc:
            errors.append(exc)

    def consume() -> None:
        nonlocal consumed
        try:
            while consumed < total:
                if queue.has_front():
                    value = queue.pop()
                    if seen[value]:
                        raise RuntimeError(f"value {value} consumed twice")
                    seen[value] = 1
                    consumed += 1
                else:
                    time.sleep(0)
        except BaseException as exc:
            errors.append(exc)

    consumer = threading.Thread(target=consume)
    consumer.start()
    workers = [threading.Thread(target=produce) for _ in range(producers)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    consumer.join()
    if errors:
        raise errors[0]
    if queue.has_front():
        raise RuntimeError("queue not empty after stress run")
    if seen.count(0):
        raise RuntimeError("some values were never consumed")
    return consumed
"""Unbounded multi-producer, multi-consumer FIFO queue with consumer slots.

The queue is a singly linked list that always starts with a dummy node.
Producers append at the tail; consumers advance the head and return the data
held by the new head. Retired nodes go through a free pool that is drained
opportunistically by whichever thread wins the freeing lock.
"""

from __future__ import annotations

import argparse
import threading
import time
from collections import deque
from typing import Any, Optional, Sequence

DEFAULT_CONSUMERS = 16
MAX_FREE = 150
_SOME_ID = 667814649


class QueueError(Exception):
    """Raised when the queue cannot carry out an operation."""


class TooManyConsumers(QueueError):
    """Raised when every consumer slot is taken."""


class _Node:
    __slots__ = ("data", "next")

    def __init__(self, data: Any = None) -> None:
        self.data = data
        self.next: Optional[_Node] = None


class LockFreeQueue:
    """FIFO queue shared by any number of producers and a bounded set of consumers."""

    def __init__(self, max_consumers: int = DEFAULT_CONSUMERS) -> None:
        if max_consumers < 0:
            raise ValueError("max_consumers must not be negative")
        self._max = max_consumers or DEFAULT_CONSUMERS
        dummy = _Node()
        self._head = dummy
        self._tail = dummy
        self._head_lock = threading.Lock()
        self._tail_lock = threading.Lock()
        self._tid_lock = threading.Lock()
        self._freeing = threading.Lock()
        self._pool: deque[_Node] = deque()
        self._tids = [False] * self._max
        self._released = False

    def _check_open(self) -> None:
        if self._released:
            raise QueueError("queue has been released")

    def enqueue(self, data: Any) -> None:
        """Append data at the tail of the queue."""
        self._check_open()
        node = _Node(data)
        with self._tail_lock:
            old_tail = self._tail
            self._tail = node
            if old_tail.next is not None:
                raise QueueError("old tail was not the end of the list")
            old_tail.next = node

    def dequeue_tid(self, tid: int) -> Any:
        """Remove and return the oldest item using consumer slot tid, or None if empty."""
        self._check_open()
        if not 0 <= tid < self._max:
            raise QueueError(f"consumer id {tid} out of range 0..{self._max - 1}")
        with self._head_lock:
            old_head = self._head
            new_head = old_head.next
            if new_head is None:
                return None  # never remove the last node
            self._head = new_head
            data = new_head.data
            new_head.data = None  # the new head is now the dummy node
        self._retire(old_head)
        return data

    def dequeue(self) -> Any:
        """Remove and return the oldest item, claiming a free consumer slot for the call."""
        tid = self._alloc_tid()
        try:
            return self.dequeue_tid(tid)
        finally:
            self._tids[tid] = False

    def freelist_count(self) -> int:
        """Number of nodes held in the free pool, counting its sentinel node."""
        if self._released:
            return 0
        return 1 + len(self._pool)

    def release(self) -> int:
        """Tear the queue down; return the number of items that were still queued."""
        self._check_open()
        with self._head_lock, self._tail_lock:
            dropped = 0
            node: Optional[_Node] = self._head.next
            while node is not None:
                dropped += 1
                following = node.next
                node.next = None
                node.data = None
                node = following
            self._head.next = None
            self._tail = self._head
        if not self._free_pool(free_all=True):
            raise QueueError("free pool is busy")
        if self._pool:
            raise QueueError("free pool could not be drained")
        self._released = True
        return dropped

    def _alloc_tid(self) -> int:
        with self._tid_lock:
            for tid, taken in enumerate(self._tids):
                if not taken:
                    self._tids[tid] = True
                    return tid
        raise TooManyConsumers(f"all {self._max} consumer slots are in use")

    def _retire(self, node: _Node) -> None:
        node.next = None
        if self._freeing.acquire(blocking=False):
            try:
                self._drain(MAX_FREE)
            finally:
                self._freeing.release()
        else:
            self._pool.append(node)
            self._free_pool(free_all=False)

    def _free_pool(self, free_all: bool) -> bool:
        if not self._freeing.acquire(blocking=False):
            return False
        try:
            self._drain(None if free_all else MAX_FREE)
        finally:
            self._freeing.release()
        return True

    def _drain(self, limit: Optional[int]) -> None:
        freed = 0
        while self._pool and (limit is None or freed < limit):
            self._pool.popleft()
            freed += 1


def stress(
    producers: int = 100, consumers: int = 10, items_per_producer: int = 500000
) -> tuple[int, int, int]:
    """Run concurrent producers and consumers; return (added, removed, freelist)."""
    queue = LockFreeQueue(consumers)
    lock = threading.Lock()
    added = 0
    removed = 0
    running = 1
    errors: list[BaseException] = []

    def produce() -> None:
        nonlocal added, running
        count = 0
        try:
            for _ in range(items_per_producer):
                queue.enqueue(_SOME_ID)
                count += 1
        except BaseException as exc:  # reported after the join
            errors.append(exc)
        finally:
            with lock:
                added += count
                running -= 1

    def consume(tid: int) -> None:
        nonlocal removed
        deleted = 0
        try:
            while True:
                item = queue.dequeue_tid(tid)
                if item is not None:
                    if item != _SOME_ID:
                        raise QueueError("data wrong")
                    deleted += 1
                elif running:
                    time.sleep(0)
                else:
                    break
        except BaseException as exc:
            errors.append(exc)
        finally:
            with lock:
                removed += deleted

    consumer_threads = [
        threading.Thread(target=consume, args=(tid,)) for tid in range(consumers)
    ]
    for thread in consumer_threads:
        thread.start()
    producer_threads = []
    for _ in range(producers):
        with lock:
            running += 1
        thread = threading.Thread(target=produce)
        producer_threads.append(thread)
        thread.start()
    with lock:
        running -= 1
    for thread in producer_threads + consumer_threads:
        thread.join()
    if errors:
        raise errors[0]
    freelist = queue.freelist_count()
    queue.release()
    return added, removed, freelist


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Queue stress test.")
    parser.add_argument("-p", "--producers", type=int, default=100)
    parser.add_argument("-c", "--consumers", type=int, default=10)
    parser.add_argument("-n", "--items", type=int, default=500000)
    args = parser.parse_args(argv)
    added, removed, freelist = stress(args.producers, args.consumers, args.items)
    print(f"Total push {added} elements, pop {removed} elements. freelist={freelist}")
    if added == removed:
        print("Test PASS!!")
        return 0
    print("Test Failed!!")
    return 1
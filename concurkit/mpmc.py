"""Blocking multi-producer, multi-consumer queue built from linked cell segments.

Every enqueue and dequeue takes a ticket from a shared counter. The ticket
selects a cell in a chain of fixed-size segments that handles extend on
demand. A dequeuer whose cell is still empty parks a waiter in the cell,
and the matching enqueuer wakes it. Segments that no handle can reach any
more are dropped once the oldest live segment is far enough behind.
"""

from __future__ import annotations

import argparse
import enum
import threading
import time
from dataclasses import dataclass
from itertools import chain
from typing import Any, Optional, Sequence

N = 1 << 12  # cells per segment
N_BITS = N - 1
N_HANDLES = 128  # one slot is kept empty, so 127 handles per role
_SPIN = 256


class QueueOp(enum.IntFlag):
    """Roles a handle can be registered for."""

    DEQUEUE = 1 << 0
    ENQUEUE = 1 << 1


class _Node:
    __slots__ = ("id", "next", "cells")

    def __init__(self) -> None:
        self.id = 0
        self.next: Optional[_Node] = None
        self.cells: list[Any] = [None] * N


class _Waiter:
    __slots__ = ("event",)

    def __init__(self) -> None:
        self.event = threading.Event()


@dataclass(eq=False)
class Handle:
    """Per-thread position in the segment chain for enqueues and dequeues."""

    push: _Node
    pop: _Node
    spare: Optional[_Node] = None


class MPMCQueue:
    """Unbounded FIFO queue whose dequeue blocks until an item arrives."""

    def __init__(self, enqueuers: int, dequeuers: int, threshold: int = 8) -> None:
        if enqueuers < 1 or dequeuers < 1:
            raise ValueError("enqueuers and dequeuers must be positive")
        self.threshold = threshold
        self._enqueuers = enqueuers
        self._dequeuers = dequeuers
        self._init_node = _Node()
        self._init_id = 0
        self._put_index = 0
        self._pop_index = 0
        self._atomic = threading.Lock()
        self._enqueue_handles: list[Handle] = []
        self._dequeue_handles: list[Handle] = []
        self._enq_barrier = threading.Barrier(enqueuers)
        self._deq_barrier = threading.Barrier(dequeuers)

    def _add_handle(self, handles: list[Handle], handle: Handle) -> None:
        with self._atomic:
            if len(handles) >= N_HANDLES - 1:
                raise RuntimeError("too many registered handles")
            handles.append(handle)

    def register(self, ops: int) -> Handle:
        """Create a handle for the given roles.

        Waits until all enqueuers (and then all dequeuers) given at
        construction have registered.
        """
        ops = QueueOp(ops)
        handle = Handle(push=self._init_node, pop=self._init_node, spare=_Node())
        if ops & QueueOp.ENQUEUE:
            self._add_handle(self._enqueue_handles, handle)
            self._enq_barrier.wait()
        if ops & QueueOp.DEQUEUE:
            self._add_handle(self._dequeue_handles, handle)
            self._deq_barrier.wait()
        return handle

    def _take_ticket(self, name: str) -> int:
        with self._atomic:
            ticket = getattr(self, name)
            setattr(self, name, ticket + 1)
            return ticket

    def _find_cell(self, handle: Handle, attr: str, index: int) -> _Node:
        curr: _Node = getattr(handle, attr)
        for j in range(curr.id, index // N):
            following = curr.next
            if following is None:
                spare = handle.spare
                if spare is None:
                    spare = handle.spare = _Node()
                spare.id = j + 1
                with self._atomic:
                    if curr.next is None:
                        curr.next = spare
                        handle.spare = None
                    following = curr.next
            curr = following
        setattr(handle, attr, curr)
        return curr

    def enqueue(self, handle: Handle, value: Any) -> None:
        """Append value; None is reserved for empty cells and is rejected."""
        if value is None:
            raise ValueError("cannot enqueue None")
        index = self._take_ticket("_put_index")
        node = self._find_cell(handle, "push", index)
        pos = index & N_BITS
        with self._atomic:
            previous = node.cells[pos]
            node.cells[pos] = value
        if isinstance(previous, _Waiter):
            previous.event.set()

    def dequeue(self, handle: Handle) -> Any:
        """Remove and return the next item, blocking until one is available."""
        index = self._take_ticket("_pop_index")
        node = self._find_cell(handle, "pop", index)
        pos = index & N_BITS
        value = None
        for _ in range(_SPIN):
            value = node.cells[pos]
            if value is not None:
                break
        else:
            waiter = _Waiter()
            with self._atomic:
                value = node.cells[pos]
                if value is None:
                    node.cells[pos] = waiter
            if value is None:
                waiter.event.wait()
                value = node.cells[pos]
        if pos == N_BITS:
            self._reclaim(handle)
        return value

    def _reclaim(self, handle: Handle) -> None:
        with self._atomic:
            init_index = self._init_id
            if init_index < 0 or handle.pop.id - init_index < self.threshold:
                return
            self._init_id = -1  # claim the reclamation
            dequeuers = list(self._dequeue_handles)
            enqueuers = list(self._enqueue_handles)
        init_node = self._init_node
        min_node = dequeuers[0].pop
        positions = chain(
            (h.pop for h in dequeuers[1:]), (h.push for h in enqueuers)
        )
        for node in positions:
            if min_node.id <= init_index:
                break
            if node.id < min_node.id:
                min_node = node
        new_id = min_node.id
        if new_id <= init_index:
            with self._atomic:
                self._init_id = init_index
            return
        self._init_node = min_node
        with self._atomic:
            self._init_id = new_id
        while init_node is not min_node:
            following = init_node.next
            init_node.next = None
            init_node = following


def run_round(
    queue: MPMCQueue, producers: int = 4, consumers: int = 4, per_thread: int = 2500000
) -> tuple[list[int], float]:
    """Move producers * per_thread distinct values through a fresh queue.

    Returns the values that never arrived (empty on success) and the
    elapsed time in seconds.
    """
    if producers < 1 or consumers < 1 or per_thread < 0:
        raise ValueError("producers and consumers must be positive")
    if producers != queue._enqueuers or consumers != queue._dequeuers:
        raise ValueError("thread counts must match the queue's registration counts")
    if queue._enqueue_handles or queue._dequeue_handles:
        raise ValueError("queue already has registered handles")
    total = producers * per_thread
    if total % consumers:
        raise ValueError("values cannot be shared evenly among consumers")
    per_consumer = total // consumers
    received = bytearray(total + 1)
    errors: list[BaseException] = []
    start = threading.Barrier(producers + consumers + 1)

    def produce(index: int) -> None:
        try:
            handle = queue.register(QueueOp.ENQUEUE)
            start.wait()
            base = 1 + index * per_thread
            for value in range(base, base + per_thread):
                queue.enqueue(handle, value)
        except threading.BrokenBarrierError:
            pass
        except BaseException as exc:
            errors.append(exc)
            start.abort()

    def consume() -> None:
        try:
            handle = queue.register(QueueOp.DEQUEUE)
            start.wait()
            for _ in range(per_consumer):
                received[queue.dequeue(handle)] = 1
        except threading.BrokenBarrierError:
            pass
        except BaseException as exc:
            errors.append(exc)
            start.abort()

    threads = [threading.Thread(target=consume) for _ in range(consumers)]
    threads += [threading.Thread(target=produce, args=(i,)) for i in range(producers)]
    for thread in threads:
        thread.start()
    try:
        start.wait()
    except threading.BrokenBarrierError:
        pass
    began = time.perf_counter()
    for thread in threads:
        thread.join()
    elapsed = time.perf_counter() - began
    if errors:
        raise errors[0]
    missing = [value for value, seen in enumerate(received[1:], start=1) if not seen]
    return missing, elapsed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="MPMC queue benchmark.")
    parser.add_argument("count", nargs="?", type=int, default=2500000)
    parser.add_argument("threshold", nargs="?", type=int, default=8)
    parser.add_argument("-t", "--threads", type=int, default=4)
    parser.add_argument("-r", "--rounds", type=int, default=8)
    args = parser.parse_args(argv)
    total = args.threads * args.count
    print(f"Amount: {total}", flush=True)
    for round_no in range(args.rounds):
        print(f"\n#{round_no}")
        queue = MPMCQueue(args.threads, args.threads, args.threshold)
        missing, elapsed = run_round(queue, args.threads, args.threads, args.count)
        if missing:
            print(f"Error: ints[{missing[0]}]")
        else:
            print(f"ints[1-{total}] have been verified through")
        print(f"elapsed time: {elapsed:f} seconds")
        print(f"DONE #{round_no}", flush=True)
    return 0
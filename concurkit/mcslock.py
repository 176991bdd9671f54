"""MCS queue lock: each waiter spins on its own node."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass(eq=False)
class MCSNode:
    """Queue node owned by one thread for one acquire/release pair."""

    next: Optional["MCSNode"] = None
    wait: threading.Event = field(default_factory=threading.Event)


class MCSLock:
    """Fair lock that hands ownership to waiters in arrival order."""

    def __init__(self) -> None:
        self._tail: Optional[MCSNode] = None
        self._atomic = threading.Lock()
        self._local = threading.local()

    def acquire(self, node: MCSNode) -> None:
        """Acquire the lock, queueing on node if it is held."""
        node.next = None
        node.wait.clear()
        with self._atomic:
            prev = self._tail
            self._tail = node
        if prev is None:
            return
        prev.next = node
        node.wait.wait()

    def release(self, node: MCSNode) -> None:
        """Release the lock; node must be the one passed to acquire."""
        successor = node.next
        if successor is None:
            with self._atomic:
                if self._tail is None:
                    raise RuntimeError("release of unlocked lock")
                if self._tail is node:
                    self._tail = None
                    return
            # A waiter swapped in but has not linked itself yet.
            while (successor := node.next) is None:
                time.sleep(0)
        successor.wait.set()

    def locked(self) -> bool:
        """True if some thread holds or waits for the lock."""
        return self._tail is not None

    def __enter__(self) -> "MCSLock":
        node = MCSNode()
        stack = getattr(self._local, "nodes", None)
        if stack is None:
            stack = self._local.nodes = []
        self.acquire(node)
        stack.append(node)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release(self._local.nodes.pop())
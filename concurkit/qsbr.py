"""Quiescent-state-based reclamation.

Registered threads periodically call ``checkpoint`` when they hold no
references to shared objects. A writer that has made an object unreachable
calls ``barrier`` to get a target epoch; once ``sync`` returns True for that
epoch, every registered thread has passed a checkpoint since, and the object
may be reclaimed.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

MAGIC = 0xDEADBEEF
N_DATA = 4


@dataclass(eq=False)
class _ThreadRecord:
    local_epoch: int = 0


class QSBR:
    """Epoch counter shared by a set of registered threads."""

    def __init__(self) -> None:
        self._global_epoch = 1
        self._lock = threading.Lock()
        self._records: list[_ThreadRecord] = []
        self._local = threading.local()

    def _record(self) -> Optional[_ThreadRecord]:
        return getattr(self._local, "record", None)

    def register(self) -> None:
        """Register the calling thread."""
        record = self._record()
        if record is None:
            record = self._local.record = _ThreadRecord()
        record.local_epoch = 0
        with self._lock:
            if record not in self._records:
                self._records.append(record)

    def unregister(self) -> None:
        """Unregister the calling thread; a no-op if it is not registered."""
        record = self._record()
        if record is None:
            return
        self._local.record = None
        with self._lock:
            self._records.remove(record)

    def checkpoint(self) -> None:
        """Announce a quiescent state of the calling thread."""
        record = self._record()
        if record is None:
            raise RuntimeError("thread is not registered")
        record.local_epoch = self._global_epoch

    def barrier(self) -> int:
        """Advance the global epoch and return the new value as a target."""
        with self._lock:
            self._global_epoch += 1
            return self._global_epoch

    def sync(self, target: int) -> bool:
        """True once every registered thread has observed the target epoch."""
        self.checkpoint()
        with self._lock:
            records = list(self._records)
        return all(record.local_epoch >= target for record in records)


@dataclass
class _Data:
    ptr: Optional[int] = None
    visible: bool = False


def stress(seconds: float = 10.0, workers: Optional[int] = None) -> int:
    """Run one writer and several readers over shared objects for a while.

    The writer alternately publishes and retires objects, destroying a retired
    object only after a grace period. Readers raise if they ever see a
    destroyed object. Returns the number of destructions.
    """
    n_workers = workers if workers is not None else (os.cpu_count() or 1)
    if n_workers <= 0:
        raise ValueError("workers must be positive")
    qsbr = QSBR()
    data = [_Data() for _ in range(N_DATA)]
    stop = threading.Event()
    barrier = threading.Barrier(n_workers)
    errors: list[BaseException] = []
    destructions = 0

    def access(obj: _Data) -> None:
        if obj.visible and obj.ptr != MAGIC:
            raise RuntimeError("reader saw a reclaimed object")

    def write(obj: _Data) -> None:
        nonlocal destructions
        if obj.visible:
            obj.visible = False
            target = qsbr.barrier()
            while not qsbr.sync(target):
                time.sleep(0)
                if stop.is_set():
                    return
            obj.ptr = None
            destructions += 1
        else:
            obj.ptr = MAGIC
            obj.visible = True

    def run(wid: int) -> None:
        qsbr.register()
        try:
            barrier.wait()
            n = 0
            while not stop.is_set():
                n = (n + 1) & (N_DATA - 1)
                if wid == 0:
                    write(data[n])
                    continue
                access(data[n])
                qsbr.checkpoint()
            barrier.wait()
        except threading.BrokenBarrierError:
            pass
        except BaseException as exc:
            errors.append(exc)
            stop.set()
            barrier.abort()
        finally:
            qsbr.unregister()

    timer = threading.Timer(seconds, stop.set)
    threads = [threading.Thread(target=run, args=(i,)) for i in range(n_workers)]
    timer.start()
    try:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    finally:
        timer.cancel()
    if errors:
        raise errors[0]
    return destructions
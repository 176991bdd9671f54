"""Benchmark of moving keys between two sorted lists under one lock."""

from __future__ import annotations

import argparse
import random
import threading
import time
from bisect import bisect_left
from dataclasses import dataclass
from typing import Optional, Sequence

DEFAULT_DURATION = 1000
DEFAULT_NTHREADS = 64
DEFAULT_ISIZE = 256
DEFAULT_VRANGE = 512


class ListPair:
    """Two sorted sets of integers; keys move from one to the other atomically."""

    def __init__(self, init_size: int = DEFAULT_ISIZE, value_range: int = DEFAULT_VRANGE) -> None:
        if init_size <= 0 or value_range <= 0:
            raise ValueError("init_size and value_range must be positive")
        step = value_range // init_size
        if step == 0:
            raise ValueError("init_size must not exceed value_range")
        self._lists = (
            list(range(0, value_range, step)),
            list(range(1, value_range + 1, step)),
        )
        self._lock = threading.Lock()

    def move(self, key: int, source: int) -> bool:
        """Move key from list source to the other list.

        False if key is not in the source list or already in the other one.
        """
        if source not in (0, 1):
            raise ValueError(f"source must be 0 or 1, not {source}")
        src, dst = self._lists[source], self._lists[1 - source]
        with self._lock:
            i = bisect_left(src, key)
            if i == len(src) or src[i] != key:
                return False
            j = bisect_left(dst, key)
            if j < len(dst) and dst[j] == key:
                return False
            del src[i]
            dst.insert(j, key)
        return True

    def values(self, which: int) -> list[int]:
        """Snapshot of list which, in ascending order."""
        if which not in (0, 1):
            raise ValueError(f"which must be 0 or 1, not {which}")
        with self._lock:
            return list(self._lists[which])


@dataclass(frozen=True)
class BenchResult:
    """Outcome of a benchmark run."""

    duration_ms: int
    moves: int
    sizes: tuple[int, int]

    @property
    def ops_per_second(self) -> float:
        if self.duration_ms == 0:
            return float("inf")
        return self.moves * 1000.0 / self.duration_ms


def benchmark(
    duration_ms: int = DEFAULT_DURATION,
    n_threads: int = DEFAULT_NTHREADS,
    init_size: int = DEFAULT_ISIZE,
    value_range: int = DEFAULT_VRANGE,
) -> BenchResult:
    """Let n_threads move random keys for duration_ms and count the attempts."""
    if duration_ms < 0 or n_threads < 1:
        raise ValueError("duration_ms must not be negative and n_threads must be positive")
    pair = ListPair(init_size, value_range)
    master = random.Random()
    stop = threading.Event()
    barrier = threading.Barrier(n_threads + 1)
    counts = [0] * n_threads

    def worker(slot: int, rng: random.Random) -> None:
        barrier.wait()
        moves = 0
        while not stop.is_set():
            source = rng.getrandbits(1)
            key = rng.randrange(value_range)
            pair.move(key, source)
            moves += 1
        counts[slot] = moves

    threads = [
        threading.Thread(target=worker, args=(slot, random.Random(master.getrandbits(31))))
        for slot in range(n_threads)
    ]
    for thread in threads:
        thread.start()
    barrier.wait()
    start = time.monotonic()
    time.sleep(duration_ms / 1000)
    stop.set()
    end = time.monotonic()
    for thread in threads:
        thread.join()
    return BenchResult(
        duration_ms=int((end - start) * 1000),
        moves=sum(counts),
        sizes=(len(pair.values(0)), len(pair.values(1))),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="List move benchmark.")
    parser.add_argument("-d", "--duration", type=int, default=DEFAULT_DURATION)
    parser.add_argument("-t", "--threads", type=int, default=DEFAULT_NTHREADS)
    parser.add_argument("-i", "--initial-size", type=int, default=DEFAULT_ISIZE)
    parser.add_argument("-r", "--range", dest="value_range", type=int, default=DEFAULT_VRANGE)
    args = parser.parse_args(argv)
    print("List move benchmark")
    print(f"Test time:     {args.duration}")
    print(f"Thread number: {args.threads}")
    print(f"Initial size:  {args.initial_size}")
    print(f"Value range:   {args.value_range}")
    result = benchmark(args.duration, args.threads, args.initial_size, args.value_range)
    print(f"\tduration:     {result.duration_ms} ms")
    print(f"\tops/second    {result.ops_per_second:f}/s")
    return 0
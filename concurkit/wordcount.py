"""Parallel word counting with per-thread caches merged into a shared table.

Each worker counts the words of its own slice of the input into a private
hash table. The buckets of every table are ordered alphabetically, so after
all workers are done, each one merges a disjoint range of buckets from all
private tables into the main table. Words are ASCII letter runs, counted
case-insensitively and stored in lower case.
"""

from __future__ import annotations

import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Sequence, Union

MAX_WORD_SIZE = 32
MAX_N_WORDS = 8192
N_LETTERS = ord("z") - ord("a") + 1
MIN_N_BUCKETS = N_LETTERS

_SHIFT = N_LETTERS.bit_length()
_CODE_CHARS = 32 // _SHIFT
_WORD_BYTES = re.compile(rb"[A-Za-z]+")
_WORD_TEXT = re.compile(r"[A-Za-z]+")


def _letter_value(ch: str) -> int:
    lowered = ch.lower()
    if not ("a" <= lowered <= "z"):
        raise ValueError(f"not an ASCII letter: {ch!r}")
    return ord(lowered) - ord("a")


def word_code(word: str) -> int:
    """Alphabet-ordered 32-bit code built from the first letters of word."""
    code = 0
    for position, ch in enumerate(word[:_CODE_CHARS]):
        code |= _letter_value(ch) << ((_CODE_CHARS - 1 - position) * _SHIFT)
    return code


_CODE_MIN = word_code("a")
_CODE_RANGE = word_code("z" * 10) - _CODE_MIN


def _check_word(word: str) -> str:
    if not word or not word.isascii() or not word.isalpha():
        raise ValueError(f"not a word of ASCII letters: {word!r}")
    return word.lower()


class WordCounter:
    """Per-thread word caches plus a main cache that they are merged into."""

    def __init__(self, n_threads: int, n_words: int) -> None:
        if n_threads < 1:
            raise ValueError("n_threads must be positive")
        if n_words < 0:
            raise ValueError("n_words must not be negative")
        self.n_threads = n_threads
        self.n_buckets = max(min(n_words, MAX_N_WORDS), MIN_N_BUCKETS)
        self._thread_caches: list[list[dict[str, int]]] = [
            [{} for _ in range(self.n_buckets)] for _ in range(n_threads)
        ]
        self._main: list[dict[str, int]] = [{} for _ in range(self.n_buckets)]

    def bucket_of(self, word: str) -> int:
        """Bucket index of word; buckets follow alphabetical order."""
        code = word_code(word)
        bucket = int((float(code) - _CODE_MIN) * self.n_buckets / _CODE_RANGE)
        return min(bucket, self.n_buckets - 1)

    def _cache(self, tid: Optional[int]) -> list[dict[str, int]]:
        if tid is None:
            return self._main
        if not 0 <= tid < self.n_threads:
            raise IndexError(f"thread id {tid} out of range 0..{self.n_threads - 1}")
        return self._thread_caches[tid]

    def add_word(self, tid: int, word: str) -> None:
        """Count one occurrence of word in the cache of thread tid."""
        cache = self._cache(tid)
        key = _check_word(word)
        bucket = cache[self.bucket_of(key)]
        bucket[key] = bucket.get(key, 0) + 1

    def merge_results(self, tid: int) -> None:
        """Merge this worker's share of buckets from every thread cache into the main cache."""
        self._cache(tid)
        if self.n_threads > self.n_buckets:
            if tid > self.n_buckets - 1:
                return
            n_workers = self.n_buckets
        else:
            n_workers = self.n_threads
        per_worker = self.n_buckets // n_workers
        start = per_worker * tid
        end = start + per_worker
        if tid == n_workers - 1:
            end += self.n_buckets % n_workers
        for cache in self._thread_caches:
            for j in range(start, end):
                main = self._main[j]
                for word, count in cache[j].items():
                    main[word] = main.get(word, 0) + count

    def results(self, tid: Optional[int] = None) -> list[tuple[str, int]]:
        """(word, count) pairs in bucket order; tid None means the main cache."""
        return [
            (word, bucket[word])
            for bucket in self._cache(tid)
            for word in sorted(bucket, key=lambda w: (word_code(w), w))
        ]

    def _full_buckets(self, tid: Optional[int] = None) -> int:
        return sum(1 for bucket in self._cache(tid) if bucket)


def split_words(data: Union[bytes, str]) -> list[str]:
    """Words of data: maximal runs of ASCII letters, in order."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return [m.group().decode("ascii") for m in _WORD_BYTES.finditer(bytes(data))]
    return _WORD_TEXT.findall(data)


def _is_letter(byte: int) -> bool:
    return (ord("A") <= byte <= ord("Z")) or (ord("a") <= byte <= ord("z"))


def _slices(data: bytes, n_threads: int) -> list[tuple[int, int]]:
    size = len(data)
    share = size // n_threads
    starts = [0]
    for tid in range(1, n_threads):
        pos = share * tid
        # A word crossing the boundary belongs to the earlier slice.
        while pos < size and _is_letter(data[pos]):
            pos += 1
        starts.append(pos)
    ends = starts[1:] + [size]
    return [(start, max(start, end)) for start, end in zip(starts, ends)]


def count_words(path: Union[str, Path], n_threads: int) -> WordCounter:
    """Count the words of a file with n_threads workers; return the merged counter."""
    if n_threads < 1:
        raise ValueError("n_threads must be positive")
    data = Path(path).read_bytes()
    counter = WordCounter(n_threads, len(data) // MAX_WORD_SIZE)
    barrier = threading.Barrier(n_threads)
    errors: list[BaseException] = []

    def work(tid: int, start: int, end: int) -> None:
        try:
            for word in split_words(data[start:end]):
                counter.add_word(tid, word)
            barrier.wait()
            counter.merge_results(tid)
        except threading.BrokenBarrierError:
            pass
        except BaseException as exc:
            errors.append(exc)
            barrier.abort()

    threads = [
        threading.Thread(target=work, args=(tid, start, end))
        for tid, (start, end) in enumerate(_slices(data, n_threads))
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    if errors:
        raise errors[0]
    return counter


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    n_threads = 0
    if len(args) >= 2:
        try:
            n_threads = int(args[1])
        except ValueError:
            n_threads = 0
    if n_threads <= 0:
        print("ERROR: Wrong arguments")
        print("usage: wordcount FILE_NAME THREAD_NUMBER")
        return 1
    start = time.perf_counter()
    try:
        counter = count_words(args[0], n_threads)
    except OSError as exc:
        print(f"open: {exc}", file=sys.stderr)
        return 1
    elapsed = (time.perf_counter() - start) * 1000.0
    results = counter.results()
    for word, count in results:
        print(f"{word} : {count}")
    total = len(results)
    count_total = sum(count for _, count in results)
    print(
        f"Words: {total}, word counts: {count_total}, "
        f"full buckets: {counter._full_buckets()} "
        f"(ideal {min(total, counter.n_buckets)})"
    )
    print(f"Done in {elapsed:g} msec")
    return 0
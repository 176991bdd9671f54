"""Concurrency building blocks for threads: queues, a ring, a lock, reclamation, timers, a bus and tools."""

__version__ = "0.1.0"

__all__ = [
    "lfq",
    "lfring",
    "lftimer",
    "listmove",
    "mbus",
    "mcslock",
    "mpmc",
    "mpsc",
    "picosh",
    "qsbr",
    "wordcount",
]
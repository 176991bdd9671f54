# concurkit

Small, self-contained concurrency building blocks for Python threads, each
with a compact API, and a few demonstration commands.

## What is inside

| Module                | What it gives you |
|-----------------------|-------------------|
| `concurkit.lfq`       | `LockFreeQueue`: an unbounded FIFO for many producers and a bounded number of consumer slots, with a free pool for retired nodes |
| `concurkit.lfring`    | `LockFreeRing`: a bounded ring buffer with batch enqueue and dequeue, configured by `RingFlag` for single or multiple producers and consumers |
| `concurkit.mcslock`   | `MCSLock` with per-waiter `MCSNode`s: a fair, queue-based lock |
| `concurkit.mbus`      | `Bus`: delivers messages to registered client callbacks, to one client or by broadcast |
| `concurkit.lftimer`   | `TimerService`: a tick-driven pool of timers with set, reset, cancel and expiry callbacks |
| `concurkit.mpsc`      | `MPSCQueue`: an unbounded multi-producer, single-consumer FIFO |
| `concurkit.qsbr`      | `QSBR`: quiescent-state-based reclamation with register, checkpoint, barrier and sync |
| `concurkit.mpmc`      | `MPMCQueue`: a blocking multi-producer, multi-consumer queue used through per-thread `Handle`s |
| `concurkit.listmove`  | `ListPair`: two sorted lists between which keys are moved atomically, and `benchmark` |
| `concurkit.wordcount` | `WordCounter` and `count_words`: a parallel map/reduce word counter |
| `concurkit.picosh`    | A tiny shell with pipes, `<` and `>` redirection and a built-in `cd` |

No third-party dependencies are needed.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Examples

### Queue with consumer slots

```python
from concurkit.lfq import LockFreeQueue

queue = LockFreeQueue(max_consumers=4)
queue.enqueue("job-1")
queue.enqueue("job-2")
print(queue.dequeue())   # "job-1"
print(queue.dequeue())   # "job-2"
print(queue.dequeue())   # None: the queue is empty
queue.release()          # returns how many items were still queued
```

A consumer that owns a fixed slot can call `dequeue_tid(tid)` directly.
If every consumer slot is busy, `dequeue()` raises `TooManyConsumers`;
other failures raise `QueueError`.

### Ring buffer

```python
from concurkit.lfring import LockFreeRing, RingFlag

ring = LockFreeRing(2, RingFlag.MP | RingFlag.MC)
print(ring.capacity())            # 2
print(ring.enqueue([2, 3, 4]))    # 2: only two fit
print(ring.dequeue(4))            # ([2, 3], 0): elements and ring index of the first
ring.close()                      # raises RingNotEmpty if elements remain
```

The capacity is the requested size rounded up to a power of two. The ring
is also a context manager that closes itself on exit.

### MCS lock

```python
from concurkit.mcslock import MCSLock, MCSNode

lock = MCSLock()
node = MCSNode()
lock.acquire(node)
try:
    ...  # critical section
finally:
    lock.release(node)

with lock:   # a fresh node is used behind the scenes
    ...
```

### Message bus

```python
from concurkit.mbus import Bus

bus = Bus(8)
bus.register(1, lambda ctx, msg: print(ctx, msg), "client-1")
bus.send(1, "hello", False)
bus.send(0, "to everyone", True)
bus.unregister(1)
```

`register`, `send` and `unregister` return `False` for an invalid id, a
taken slot or a client that is not registered.

### Timers

```python
from concurkit.lftimer import TimerService

fired = []
timers = TimerService(16)
timer = timers.alloc(lambda tim, expiration, arg: fired.append(expiration), None)
timers.set(timer, 5)
timers.tick_set(5)
timers.expire()
print(fired)  # [5]
timers.free(timer)
```

`alloc` returns `None` when the pool is exhausted. An invalid timer,
tick or expiration, or freeing an active timer, raises `TimerError`.

### Multi-producer, single-consumer queue

```python
from concurkit.mpsc import MPSCQueue

queue = MPSCQueue()
queue.push(1)
queue.push(2)
print(queue.front())  # 1
print(queue.pop())    # 1
print(queue.clear())  # 1 item removed
```

### QSBR

```python
from concurkit.qsbr import QSBR

qs = QSBR()
qs.register()
target = qs.barrier()
qs.checkpoint()
print(qs.sync(target))  # True once every registered thread has passed a checkpoint
qs.unregister()
```

### Word count

```python
from concurkit.wordcount import count_words

counter = count_words("book.txt", 4)
for word, count in counter.results():
    print(word, count)
```

Words are runs of ASCII letters, counted case-insensitively.

## Commands

```
concurkit-lfq [-p PRODUCERS] [-c CONSUMERS] [-n ITEMS]
concurkit-mbus [-t THREADS]
concurkit-mpmc [COUNT [THRESHOLD]] [-t THREADS] [-r ROUNDS]
concurkit-listmove [-d MS] [-t THREADS] [-i INITIAL_SIZE] [-r RANGE]
concurkit-wordcount FILE THREADS
concurkit-picosh
```

- `concurkit-lfq` runs producers and consumers over a `LockFreeQueue` and
  reports whether every pushed item was popped.
- `concurkit-mbus` starts threads that each send a message to the next
  one over a `Bus`.
- `concurkit-mpmc` runs rounds of producers and consumers over an
  `MPMCQueue` and verifies that every value arrived.
- `concurkit-listmove` measures moves per second between two lists.
- `concurkit-wordcount` prints each word with its count, then a summary.
- `concurkit-picosh` prompts with `$ ` on standard error, reads one command
  line at a time and prints `?` when a command cannot be started, a
  redirection target cannot be opened or `cd` fails. It exits at end of
  input.

## What it does not do

- The structures are built for Python threads. Their short critical
  sections are guarded by `threading` locks, so they offer correct
  concurrent behaviour but not the raw speed of hardware atomics.
- `concurkit-picosh` has no quoting, variables, globbing, job control or
  built-ins other than `cd`.

## Running the stress functions

`concurkit.lfq.stress`, `concurkit.mpsc.stress`, `concurkit.qsbr.stress`,
`concurkit.mpmc.run_round` and `concurkit.listmove.benchmark` can also be
called from Python with smaller sizes for quick checks.
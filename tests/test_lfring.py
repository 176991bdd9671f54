import threading

import pytest

from concurkit.lfring import LockFreeRing, RingFlag, RingNotEmpty

MODES = [
    RingFlag.MP | RingFlag.MC,
    RingFlag.MP | RingFlag.SC,
    RingFlag.SP | RingFlag.MC,
    RingFlag.SP | RingFlag.SC,
]


@pytest.mark.parametrize("flags", MODES)
def test_ringbuffer(flags):
    rb = LockFreeRing(2, flags)

    items, _ = rb.dequeue(1)
    assert items == []
    assert rb.enqueue([1]) == 1

    items, idx = rb.dequeue(1)
    assert len(items) == 1
    assert idx == 0
    assert items[0] == 1

    items, _ = rb.dequeue(1)
    assert items == []

    assert rb.enqueue([2, 3, 4]) == 2

    items, idx = rb.dequeue(1)
    assert len(items) == 1
    assert idx == 1
    assert items[0] == 2

    items, idx = rb.dequeue(4)
    assert len(items) == 1
    assert idx == 2
    assert items[0] == 3

    rb.close()


@pytest.mark.parametrize("n", [1, 2, 3, 7, 100])
def test_capacity_is_power_of_two_at_least_n(n):
    cap = LockFreeRing(n).capacity()
    assert cap >= n
    assert cap & (cap - 1) == 0
    assert cap < 2 * n or n == 1


@pytest.mark.parametrize("n", [0, -1, 0x80000001])
def test_invalid_size(n):
    with pytest.raises(ValueError):
        LockFreeRing(n)


def test_invalid_flags():
    with pytest.raises(ValueError):
        LockFreeRing(4, 0x4)


def test_close_non_empty_raises():
    rb = LockFreeRing(4)
    rb.enqueue(["a"])
    with pytest.raises(RingNotEmpty):
        rb.close()
    assert rb.dequeue(1)[0] == ["a"]
    rb.close()
    with pytest.raises(ValueError):
        rb.enqueue(["b"])


@pytest.mark.parametrize("flags", MODES)
def test_fifo_order_over_many_laps(flags):
    rb = LockFreeRing(4, flags)
    out = []
    for start in range(0, 40, 3):
        assert rb.enqueue(range(start, start + 3)) == 3
        items, _ = rb.dequeue(3)
        out.extend(items)
    assert out == list(range(0, 42))


def test_full_ring_rejects():
    rb = LockFreeRing(4)
    assert rb.enqueue(range(10)) == rb.capacity()
    assert rb.enqueue([99]) == 0
    items, idx = rb.dequeue(100)
    assert items == list(range(rb.capacity()))
    assert idx == 0


def test_concurrent_mpmc_delivers_each_item_once():
    rb = LockFreeRing(64)
    producers, per_producer = 4, 500
    total = producers * per_producer
    received = []
    lock = threading.Lock()

    def produce(base):
        pending = list(range(base, base + per_producer))
        while pending:
            n = rb.enqueue(pending[:8])
            pending = pending[n:]

    def consume():
        while True:
            with lock:
                if len(received) >= total:
                    return
            items, _ = rb.dequeue(8)
            if items:
                with lock:
                    received.extend(items)

    threads = [
        threading.Thread(target=produce, args=(i * per_producer,))
        for i in range(producers)
    ] + [threading.Thread(target=consume) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(received) == list(range(total))
    leftover, _ = rb.dequeue(1)
    assert leftover == []
    assert rb.enqueue(["after"]) == 1
    assert rb.dequeue(4)[0] == ["after"]
    rb.close()
import threading

import pytest

from concurkit.lfq import LockFreeQueue, QueueError, main, stress


def test_fifo_order():
    queue = LockFreeQueue(4)
    for value in ["a", "b", "c"]:
        queue.enqueue(value)
    assert [queue.dequeue(), queue.dequeue(), queue.dequeue()] == ["a", "b", "c"]


def test_empty_queue_returns_none():
    queue = LockFreeQueue(2)
    assert queue.dequeue() is None
    queue.enqueue(5)
    assert queue.dequeue_tid(1) == 5
    assert queue.dequeue_tid(0) is None


def test_zero_consumers_uses_default_slots():
    queue = LockFreeQueue(0)
    queue.enqueue("x")
    assert queue.dequeue_tid(15) == "x"
    with pytest.raises(QueueError):
        queue.dequeue_tid(16)


def test_negative_consumers_rejected():
    with pytest.raises(ValueError):
        LockFreeQueue(-1)


def test_tid_out_of_range():
    queue = LockFreeQueue(3)
    with pytest.raises(QueueError):
        queue.dequeue_tid(3)
    with pytest.raises(QueueError):
        queue.dequeue_tid(-1)


def test_freelist_single_thread():
    queue = LockFreeQueue(1)
    for value in range(10):
        queue.enqueue(value)
    assert [queue.dequeue() for _ in range(10)] == list(range(10))
    assert queue.freelist_count() == 1


def test_release_reports_dropped_and_closes():
    queue = LockFreeQueue(1)
    queue.enqueue(1)
    queue.enqueue(2)
    assert queue.release() == 2
    assert queue.freelist_count() == 0
    with pytest.raises(QueueError):
        queue.enqueue(3)
    with pytest.raises(QueueError):
        queue.release()


def test_concurrent_producers_keep_every_item():
    queue = LockFreeQueue(2)
    threads = [
        threading.Thread(target=lambda base=base: [queue.enqueue(base + i) for i in range(200)])
        for base in (0, 1000, 2000)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    items = []
    while (item := queue.dequeue()) is not None:
        items.append(item)
    assert sorted(items) == sorted(b + i for b in (0, 1000, 2000) for i in range(200))


def test_stress_balances():
    added, removed, freelist = stress(4, 3, 500)
    assert added == removed == 2000
    assert freelist >= 1


def test_main_passes(capsys):
    assert main(["-p", "2", "-c", "2", "-n", "100"]) == 0
    assert "Test PASS!!" in capsys.readouterr().out
import random

import pytest

from concurkit.listmove import BenchResult, ListPair, benchmark, main


def test_initial_lists_interleave():
    pair = ListPair(4, 8)
    assert pair.values(0) == [0, 2, 4, 6]
    assert pair.values(1) == [1, 3, 5, 7]


def test_move_transfers_key():
    pair = ListPair(4, 8)
    assert pair.move(2, 0) is True
    assert 2 not in pair.values(0)
    assert 2 in pair.values(1)
    assert pair.values(1) == sorted(pair.values(1))


def test_move_missing_key_fails():
    pair = ListPair(4, 8)
    before = (pair.values(0), pair.values(1))
    assert pair.move(3, 0) is False
    assert (pair.values(0), pair.values(1)) == before


def test_move_fails_when_destination_has_key():
    pair = ListPair(8, 8)
    assert 1 in pair.values(0) and 1 in pair.values(1)
    assert pair.move(1, 0) is False


def test_move_back_and_forth():
    pair = ListPair(4, 8)
    original = pair.values(0)
    assert pair.move(4, 0)
    assert pair.move(4, 1)
    assert pair.values(0) == original


def test_invalid_source_rejected():
    pair = ListPair(4, 8)
    with pytest.raises(ValueError):
        pair.move(2, 2)
    with pytest.raises(ValueError):
        pair.values(-1)


@pytest.mark.parametrize("size, value_range", [(0, 8), (4, 0), (16, 8)])
def test_invalid_construction(size, value_range):
    with pytest.raises(ValueError):
        ListPair(size, value_range)


def test_random_moves_keep_lists_sorted_and_conserved():
    pair = ListPair(16, 32)
    total = len(pair.values(0)) + len(pair.values(1))
    rng = random.Random(7)
    for _ in range(2000):
        pair.move(rng.randrange(32), rng.getrandbits(1))
    a, b = pair.values(0), pair.values(1)
    assert a == sorted(a) and b == sorted(b)
    assert len(set(a)) == len(a) and len(set(b)) == len(b)
    assert len(a) + len(b) == total


def test_benchmark_counts_moves_and_conserves_items():
    result = benchmark(50, 4, 8, 16)
    assert result.moves > 0
    assert result.duration_ms >= 40
    assert sum(result.sizes) == 2 * 8
    assert result.ops_per_second > 0


def test_ops_per_second_zero_duration():
    assert BenchResult(0, 5, (1, 1)).ops_per_second == float("inf")


def test_benchmark_rejects_no_threads():
    with pytest.raises(ValueError):
        benchmark(10, 0, 8, 16)


def test_main_prints_report(capsys):
    assert main(["-d", "20", "-t", "2", "-i", "4", "-r", "8"]) == 0
    out = capsys.readouterr().out
    assert "List move benchmark" in out
    assert "ops/second" in out
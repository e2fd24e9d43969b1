import pytest
from src.core.tick_window import TickWindow


def test_capacity_is_never_exceeded():
    w = TickWindow(5)
    for i in range(12):
        w.append(float(i))
        assert len(w) <= 5
    assert w.snapshot() == [7.0, 8.0, 9.0, 10.0, 11.0]
    assert w.is_full


def test_seed_keeps_newest_prices():
    w = TickWindow(3)
    w.seed([1, 2, 3, 4, 5])
    assert w.snapshot() == [3.0, 4.0, 5.0]
    w.append(6)
    assert w.snapshot() == [4.0, 5.0, 6.0]


def test_seed_replaces_previous_contents():
    w = TickWindow(10)
    w.seed([1, 2, 3])
    w.seed([9])
    assert w.snapshot() == [9.0]


def test_last_and_clear():
    w = TickWindow(10)
    w.seed([1, 2, 3, 4])
    assert w.last(2) == [3.0, 4.0]
    assert w.last(0) == []
    w.clear()
    assert len(w) == 0


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        TickWindow(0)

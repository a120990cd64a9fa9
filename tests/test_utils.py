import pytest

from affinity_recs.utils import CooldownStore, to_percent


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_cooldown_counts_down_and_expires():
    clock = FakeClock(1000.0)
    store = CooldownStore(default_seconds=30, clock=clock)

    assert store.remaining("affinity", "guild", "user") is None
    store.set("affinity", "guild", "user")
    clock.now += 10
    assert store.remaining("affinity", "guild", "user") == pytest.approx(20)

    clock.now += 20
    assert store.remaining("affinity", "guild", "user") is None
    assert len(store) == 0


def test_cooldown_keys_are_independent():
    clock = FakeClock()
    store = CooldownStore(clock=clock)
    store.set("affinity", "guild-1", "user", seconds=5)

    assert store.remaining("affinity", "guild-2", "user") is None
    assert store.remaining("overtime", "guild-1", "user") is None
    assert store.remaining("affinity", "guild-1", "other") is None
    assert store.remaining("affinity", "guild-1", "user") == pytest.approx(5)


def test_cooldown_clear_and_purge():
    clock = FakeClock()
    store = CooldownStore(clock=clock)
    store.set("affinity", "g", "a", seconds=5)
    store.set("affinity", "g", "b", seconds=50)
    store.set("affinity", "g", "c", seconds=50)

    store.clear("affinity", "g", "b")
    store.clear("affinity", "g", "missing")
    clock.now = 10

    assert store.purge() == 1
    assert len(store) == 1
    assert store.remaining("affinity", "g", "c") == pytest.approx(40)


@pytest.mark.parametrize("score,expected", [
    (0.0, 0),
    (1.0, 100),
    (1 / 3, 33),
    (2 / 3, 67),
    (0.125, 13),
    (0.994, 99),
])
def test_to_percent(score, expected):
    assert to_percent(score) == expected

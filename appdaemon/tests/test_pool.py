from __future__ import annotations

import threading
from collections import Counter

import pytest

from llm_notifier_app.errors import NoProviderConfigured
from llm_notifier_app.pool import ProviderPool


def test_round_robin_visits_each_once_per_cycle_and_wraps():
    pool = ProviderPool(["a", "b", "c"])
    picks = [pool.select() for _ in range(7)]
    assert picks == ["a", "b", "c", "a", "b", "c", "a"]


def test_single_provider_is_always_selected():
    pool = ProviderPool(["only"])
    assert [pool.select() for _ in range(3)] == ["only"] * 3


def test_empty_pool_raises():
    with pytest.raises(NoProviderConfigured):
        ProviderPool([]).select()


def test_concurrent_selection_keeps_rotation_even():
    pool = ProviderPool(["a", "b", "c"])
    picks: list[str] = []
    lock = threading.Lock()

    def worker():
        local = [pool.select() for _ in range(100)]
        with lock:
            picks.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert Counter(picks) == {"a": 200, "b": 200, "c": 200}

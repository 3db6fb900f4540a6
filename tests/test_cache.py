import threading

import pytest

from marketstock.utils.cache import QueryCache, invalidate_after, PRODUCTS, MARKETS


def test_get_fetches_once_until_invalidated():
    cache = QueryCache()
    calls = []

    def fetch():
        calls.append(1)
        return [len(calls)]

    assert cache.get(PRODUCTS, fetch) == [1]
    assert cache.get(PRODUCTS, fetch) == [1]
    assert len(calls) == 1

    cache.invalidate(PRODUCTS)
    assert cache.is_stale(PRODUCTS)
    assert cache.get(PRODUCTS, fetch) == [2]
    assert not cache.is_stale(PRODUCTS)


def test_unknown_key_is_stale():
    assert QueryCache().is_stale(MARKETS)


def test_failed_fetch_keeps_previous_entry():
    cache = QueryCache()
    cache.get(PRODUCTS, lambda: ["old"])
    cache.invalidate(PRODUCTS)

    def broken():
        raise RuntimeError("store down")

    with pytest.raises(RuntimeError):
        cache.get(PRODUCTS, broken)
    assert cache.is_stale(PRODUCTS)
    assert cache.get(PRODUCTS, lambda: ["new"]) == ["new"]


def test_subscribers_are_notified_per_key():
    cache = QueryCache()
    seen = []
    unsubscribe = cache.subscribe(PRODUCTS, seen.append)

    cache.invalidate(MARKETS)
    cache.invalidate(PRODUCTS, MARKETS)
    assert seen == [PRODUCTS]

    unsubscribe()
    cache.invalidate(PRODUCTS)
    assert seen == [PRODUCTS]


def test_invalidate_after_runs_on_failure():
    cache = QueryCache()
    cache.get(PRODUCTS, lambda: [])
    with pytest.raises(ValueError):
        with invalidate_after(cache, PRODUCTS):
            raise ValueError("write failed")
    assert cache.is_stale(PRODUCTS)


def test_clear_drops_everything():
    cache = QueryCache()
    cache.get(PRODUCTS, lambda: [1])
    cache.clear()
    assert cache.is_stale(PRODUCTS)


def test_invalidation_during_fetch_is_not_lost():
    cache = QueryCache()
    source = {"value": "old"}
    fetching = threading.Event()
    release = threading.Event()
    results = []

    def slow_fetch():
        value = source["value"]
        fetching.set()
        release.wait(timeout=5)
        return value

    reader = threading.Thread(target=lambda: results.append(cache.get(PRODUCTS, slow_fetch)))
    reader.start()
    assert fetching.wait(timeout=5)

    # a write lands while the read is still in flight
    source["value"] = "new"
    cache.invalidate(PRODUCTS)
    release.set()
    reader.join(timeout=5)

    assert results == ["old"]
    assert cache.is_stale(PRODUCTS)
    assert cache.get(PRODUCTS, lambda: source["value"]) == "new"

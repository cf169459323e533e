import pytest

from photo_gallery.image_engine.memory_cache import MemoryCache
from photo_gallery.image_engine.metrics import metrics


def test_put_then_get_returns_same_bytes():
    cache = MemoryCache(100)
    cache.put("a", b"hello")
    assert cache.get("a") == b"hello"
    assert cache.get("missing") is None


def test_evicts_least_recently_accessed_first():
    cache = MemoryCache(30)
    cache.put("a", b"x" * 10)
    cache.put("b", b"x" * 10)
    cache.put("c", b"x" * 10)
    # touching "a" makes "b" the oldest
    assert cache.get("a") is not None

    cache.put("d", b"x" * 10)

    assert "b" not in cache
    assert cache.keys() == ["c", "a", "d"]
    assert cache.total_bytes == 30
    assert metrics.count("memory_cache.evictions") == 1


def test_never_evicts_the_entry_just_inserted():
    cache = MemoryCache(25)
    cache.put("a", b"x" * 10)
    cache.put("b", b"x" * 10)
    cache.put("big", b"x" * 25)

    assert cache.keys() == ["big"]
    assert cache.total_bytes == 25


def test_budget_holds_after_any_sequence_of_puts():
    cache = MemoryCache(64)
    for i in range(200):
        cache.put(f"k{i % 17}", bytes(i % 23 + 1))
        assert cache.total_bytes <= 64


def test_entry_larger_than_budget_is_not_held():
    cache = MemoryCache(8)
    cache.put("a", b"1234")
    assert cache.put("huge", b"x" * 9) is False
    assert "huge" not in cache
    assert cache.get("a") == b"1234"


def test_replace_updates_size_accounting():
    cache = MemoryCache(100)
    cache.put("a", b"x" * 40)
    cache.put("a", b"y" * 10)
    assert cache.total_bytes == 10
    assert cache.get("a") == b"y" * 10


def test_clear_and_remove():
    cache = MemoryCache(100)
    cache.put("a", b"1")
    cache.put("b", b"22")
    cache.remove("a")
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
    assert cache.total_bytes == 0


def test_negative_budget_rejected():
    with pytest.raises(ValueError):
        MemoryCache(-1)

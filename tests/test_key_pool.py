"""Tests for the credential key pool."""

import threading

from autoshorts_core.ai.keys import ApiKey, KeyPool


def test_from_values_skips_blanks():
    pool = KeyPool.from_values(["aaa", " ", "", " bbb "])
    assert [k.name for k in pool.keys] == ["key-1", "key-2"]
    assert pool.keys[1].value == "bbb"


def test_repr_hides_secret():
    key = ApiKey("key-1", "AIzaSySecretValue1234")
    assert "Secret" not in repr(key)
    assert key.masked == "AIza...1234"


def test_acquire_skips_excluded():
    pool = KeyPool.from_values(["a", "b", "c"])
    assert pool.acquire().name == "key-1"
    assert pool.acquire(exclude={"key-1"}).name == "key-2"
    assert pool.acquire(exclude={"key-1", "key-2", "key-3"}) is None


def test_empty_pool():
    pool = KeyPool([])
    assert len(pool) == 0
    assert pool.current is None
    assert pool.acquire() is None


def test_rotate_wraps_around():
    pool = KeyPool.from_values(["a", "b"])
    pool.rotate(pool.current)
    assert pool.current.name == "key-2"
    pool.rotate(pool.current)
    assert pool.current.name == "key-1"


def test_stale_rotation_is_ignored():
    """Two workers failing on the same key rotate the pool once."""
    pool = KeyPool.from_values(["a", "b", "c"])
    failed = pool.current
    pool.rotate(failed)
    pool.rotate(failed)
    assert pool.current.name == "key-2"


def test_concurrent_rotation_rotates_once():
    pool = KeyPool.from_values(["a", "b", "c"])
    failed = pool.current
    threads = [threading.Thread(target=pool.rotate, args=(failed,)) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert pool.current.name == "key-2"

"""Tests for the size-bounded LRU audio cache."""

import random
import threading

import pytest

from qbz.storage.audio_cache import AudioCache


def _payload(size: int) -> bytes:
    return b"\x00" * size


class TestBasics:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            AudioCache(0)

    def test_miss_returns_none(self):
        assert AudioCache(100).get(1) is None

    def test_insert_then_get(self):
        cache = AudioCache(100)
        cache.insert(1, b"abc")
        track = cache.get(1)
        assert track.data == b"abc"
        assert track.size_bytes == 3
        assert 1 in cache
        assert len(cache) == 1

    def test_accepts_bytearray(self):
        cache = AudioCache(100)
        cache.insert(1, bytearray(b"abc"))
        assert cache.get(1).data == b"abc"

    def test_oversize_insert_leaves_cache_untouched(self):
        cache = AudioCache(10)
        cache.insert(1, _payload(6))
        cache.insert(2, _payload(11))
        assert cache.contains(1)
        assert not cache.contains(2)
        assert cache.current_size_bytes == 6

    def test_payload_equal_to_capacity_fits(self):
        cache = AudioCache(10)
        cache.insert(1, _payload(4))
        cache.insert(2, _payload(10))
        assert not cache.contains(1)
        assert cache.contains(2)
        assert cache.current_size_bytes == 10


class TestEviction:
    def test_get_promotes_entry(self):
        cache = AudioCache(30)
        cache.insert(1, _payload(10))
        cache.insert(2, _payload(10))
        cache.insert(3, _payload(10))

        cache.get(1)
        cache.insert(4, _payload(10))

        assert cache.contains(1)
        assert not cache.contains(2)
        assert cache.contains(3)
        assert cache.contains(4)
        assert cache.current_size_bytes == 30

    def test_contains_does_not_promote(self):
        cache = AudioCache(20)
        cache.insert(1, _payload(10))
        cache.insert(2, _payload(10))

        assert cache.contains(1)
        cache.insert(3, _payload(10))

        assert not cache.contains(1)
        assert cache.contains(2)

    def test_evicts_as_many_as_needed(self):
        cache = AudioCache(30)
        for track_id in (1, 2, 3):
            cache.insert(track_id, _payload(10))

        cache.insert(4, _payload(25))

        assert [t for t in (1, 2, 3, 4) if cache.contains(t)] == [4]
        assert cache.current_size_bytes == 25

    def test_evict_to_fit(self):
        cache = AudioCache(30)
        for track_id in (1, 2, 3):
            cache.insert(track_id, _payload(10))

        cache.evict_to_fit(15)

        assert not cache.contains(1)
        assert not cache.contains(2)
        assert cache.contains(3)
        assert cache.current_size_bytes == 10

    def test_replacement_accounts_size_delta(self):
        cache = AudioCache(100)
        cache.insert(1, _payload(40))
        cache.insert(2, _payload(10))

        cache.insert(1, _payload(25))

        assert cache.current_size_bytes == 35
        assert len(cache) == 2
        assert cache.get(1).size_bytes == 25

    def test_replacement_makes_entry_most_recent(self):
        cache = AudioCache(30)
        cache.insert(1, _payload(10))
        cache.insert(2, _payload(10))
        cache.insert(3, _payload(10))

        cache.insert(1, _payload(10))
        cache.insert(4, _payload(10))

        assert cache.contains(1)
        assert not cache.contains(2)

    def test_random_operations_keep_size_consistent(self):
        rng = random.Random(1234)
        cache = AudioCache(1000)

        for _ in range(500):
            track_id = rng.randrange(30)
            if rng.random() < 0.7:
                cache.insert(track_id, _payload(rng.randrange(1, 1200)))
            else:
                cache.get(track_id)

            stored = sum(
                cache.get(t).size_bytes for t in range(30) if cache.contains(t)
            )
            assert cache.current_size_bytes == stored
            assert cache.current_size_bytes <= cache.max_size_bytes


class TestFetching:
    def test_mark_and_unmark(self):
        cache = AudioCache(100)
        cache.mark_fetching(7)
        assert cache.is_fetching(7)
        cache.unmark_fetching(7)
        assert not cache.is_fetching(7)

    def test_unmark_unknown_is_noop(self):
        cache = AudioCache(100)
        cache.unmark_fetching(7)
        assert not cache.is_fetching(7)

    def test_reserve_claims_once(self):
        cache = AudioCache(100)
        assert cache.reserve(7)
        assert cache.is_fetching(7)
        assert not cache.reserve(7)

    def test_reserve_refuses_cached_track(self):
        cache = AudioCache(100)
        cache.insert(7, b"abc")
        assert not cache.reserve(7)
        assert not cache.is_fetching(7)

    def test_reserve_is_exclusive_across_threads(self):
        cache = AudioCache(100)
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(cache.reserve(7))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1


class TestStats:
    def test_stats_snapshot(self):
        cache = AudioCache(100)
        cache.insert(1, _payload(30))
        cache.insert(2, _payload(20))
        cache.mark_fetching(3)

        stats = cache.stats()

        assert stats.cached_tracks == 2
        assert stats.current_size_bytes == 50
        assert stats.max_size_bytes == 100
        assert stats.fetching_count == 1
        assert stats.usage_ratio == pytest.approx(0.5)

    def test_clear_resets_everything(self):
        cache = AudioCache(100)
        cache.insert(1, _payload(30))
        cache.mark_fetching(2)

        cache.clear()

        stats = cache.stats()
        assert stats.cached_tracks == 0
        assert stats.current_size_bytes == 0
        assert stats.fetching_count == 0
        assert cache.get(1) is None

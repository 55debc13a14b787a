# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Tests for the album shuffle cache.
"""

import threading

import pytest
from unittest.mock import patch

from photoframe.models import Asset
from photoframe.shuffle_cache import RefreshResult, ShuffleCache

from conftest import FakeImmichClient, make_asset


def reverse_in_place(items):
    """Deterministic stand-in for random.shuffle."""
    items.reverse()


@pytest.fixture
def album_client(album_assets):
    return FakeImmichClient(album=album_assets)


@pytest.fixture
def loaded_cache(album_client):
    cache = ShuffleCache(album_client, "album-1")
    assert cache.refresh().ok
    return cache


class TestRefresh:
    """Tests for ShuffleCache.refresh()."""

    def test_empty_before_refresh(self, album_client):
        cache = ShuffleCache(album_client, "album-1")
        assert cache.next() is None
        assert len(cache) == 0

    def test_filters_to_images(self, album_client):
        cache = ShuffleCache(album_client, "album-1")
        result = cache.refresh()

        assert result == RefreshResult(ok=True, count=4)
        assert len(cache) == 4

    def test_index_in_source_order(self, album_client):
        cache = ShuffleCache(album_client, "album-1")
        with patch("photoframe.shuffle_cache.random.shuffle"):
            cache.refresh()

        records = [cache.next() for _ in range(4)]
        assert [(r.id, r.index, r.total) for r in records] == [
            ("img-1", 1, 4), ("img-2", 2, 4), ("img-3", 3, 4), ("img-4", 4, 4),
        ]

    def test_records_are_formatted(self, album_client):
        cache = ShuffleCache(album_client, "album-1")
        with patch("photoframe.shuffle_cache.random.shuffle"):
            cache.refresh()

        first = cache.next()
        second = cache.next()
        assert first.date == "4 Mayıs 2023"
        assert first.location == "Paris, France"
        assert second.date == "31 Aralık 2021"
        assert second.location == ""

    def test_refresh_shuffles(self, album_client):
        cache = ShuffleCache(album_client, "album-1")
        with patch("photoframe.shuffle_cache.random.shuffle", side_effect=reverse_in_place):
            cache.refresh()

        assert cache.next().id == "img-4"

    def test_refresh_resets_cursor(self, loaded_cache):
        loaded_cache.next()
        loaded_cache.next()
        loaded_cache.refresh()

        assert loaded_cache.get_status()["cursor"] == 0

    def test_failure_keeps_sequence_and_cursor(self, loaded_cache, album_client):
        loaded_cache.next()
        before = list(loaded_cache._sequence)
        status_before = loaded_cache.get_status()

        album_client.album_error = "GET /api/albums/album-1 failed: timeout"
        result = loaded_cache.refresh()

        assert result.ok is False
        assert "timeout" in result.reason
        assert loaded_cache._sequence == before
        status = loaded_cache.get_status()
        assert status["cursor"] == status_before["cursor"] == 1
        assert status["size"] == 4
        assert status["last_error"] == result.reason

    def test_empty_album_is_failure(self, loaded_cache, album_client):
        album_client.album = [make_asset("v", asset_type="VIDEO")]

        result = loaded_cache.refresh()

        assert result.ok is False
        assert len(loaded_cache) == 4

    def test_successful_refresh_clears_error(self, loaded_cache, album_client):
        album_client.album_error = "boom"
        loaded_cache.refresh()
        album_client.album_error = None
        loaded_cache.refresh()

        status = loaded_cache.get_status()
        assert status["last_error"] is None
        assert status["last_refresh"] is not None

    def test_refresh_picks_up_new_photos(self, loaded_cache, album_client):
        album_client.album = album_client.album + [make_asset("img-5")]
        loaded_cache.refresh()

        ids = {loaded_cache.next().id for _ in range(5)}
        assert ids == {"img-1", "img-2", "img-3", "img-4", "img-5"}

    @pytest.mark.parametrize("bad_asset", [
        Asset(id="bad", original_file_name=123),
        Asset(id="bad", type=5),
    ])
    def test_malformed_asset_is_failure(self, loaded_cache, album_client, bad_asset):
        loaded_cache.next()
        before = list(loaded_cache._sequence)
        album_client.album = album_client.album + [bad_asset]

        result = loaded_cache.refresh()

        assert result.ok is False
        assert "malformed" in result.reason
        assert loaded_cache._sequence == before
        status = loaded_cache.get_status()
        assert status["cursor"] == 1
        assert status["last_error"] == result.reason

    def test_fetch_runs_without_lock(self, loaded_cache, album_client):
        fetch_started = threading.Event()
        release = threading.Event()

        def blocking_fetch(album_id):
            album_client.album_calls += 1
            fetch_started.set()
            release.wait(5)
            return [make_asset("new-1"), make_asset("new-2")]

        album_client.fetch_album = blocking_fetch
        results = []
        refresh_thread = threading.Thread(target=lambda: results.append(loaded_cache.refresh()))
        refresh_thread.start()
        try:
            assert fetch_started.wait(2)

            served = []
            reader = threading.Thread(target=lambda: served.append(loaded_cache.next()))
            reader.start()
            reader.join(1)
            assert not reader.is_alive()
            assert served[0].id.startswith("img-")
            assert loaded_cache.get_status()["cursor"] == 1
        finally:
            release.set()
            refresh_thread.join(5)

        assert results == [RefreshResult(ok=True, count=2)]
        status = loaded_cache.get_status()
        assert status["cursor"] == 0
        assert status["size"] == 2
        assert {loaded_cache.next().id for _ in range(2)} == {"new-1", "new-2"}


class TestNext:
    """Tests for ShuffleCache.next()."""

    def test_full_pass_covers_album_once(self, loaded_cache):
        ids = [loaded_cache.next().id for _ in range(len(loaded_cache))]
        assert sorted(ids) == ["img-1", "img-2", "img-3", "img-4"]

    def test_every_pass_covers_album(self, loaded_cache):
        for _ in range(3):
            ids = [loaded_cache.next().id for _ in range(4)]
            assert sorted(ids) == ["img-1", "img-2", "img-3", "img-4"]

    def test_reshuffle_after_pass(self, album_client):
        cache = ShuffleCache(album_client, "album-1")
        with patch("photoframe.shuffle_cache.random.shuffle", side_effect=reverse_in_place) as shuffle:
            cache.refresh()
            assert shuffle.call_count == 1

            first_pass = [cache.next().id for _ in range(4)]
            assert first_pass == ["img-4", "img-3", "img-2", "img-1"]
            assert shuffle.call_count == 1

            # length + 1 calls: one reshuffle, then position 0 of the new order
            record = cache.next()
            assert shuffle.call_count == 2

        assert record.id == "img-1"
        status = cache.get_status()
        assert status["passes"] == 1
        assert status["cursor"] == 1

    def test_concurrent_readers_get_distinct_records(self, loaded_cache):
        results = []
        lock = threading.Lock()

        def worker():
            record = loaded_cache.next()
            with lock:
                results.append(record.id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == ["img-1", "img-2", "img-3", "img-4"]

    def test_status(self, loaded_cache):
        status = loaded_cache.get_status()
        assert status["strategy"] == "album"
        assert status["album_id"] == "album-1"
        assert status["size"] == 4
        assert status["passes"] == 0

"""Tests for fingerprinting and the two-tier preview cache."""

import json
from unittest.mock import patch

import pytest

from services.preview_cache import MemoryTier, PreviewCache
from utils.cache import canonicalize_options, compute_fingerprint, is_fingerprint
from utils.errors import CacheWriteFailed


@pytest.fixture
def cache(tmp_path) -> PreviewCache:
    return PreviewCache(
        metadata_dir=str(tmp_path / "metadata"),
        clips_dir=str(tmp_path / "clips"),
    )


class TestFingerprint:
    """Tests for compute_fingerprint."""

    def test_key_order_does_not_matter(self):
        a = compute_fingerprint("spotify:x", {"quality": "medium", "duration": 7, "audio": True})
        b = compute_fingerprint("spotify:x", {"audio": True, "duration": 7, "quality": "medium"})
        assert a == b

    def test_differs_by_input(self):
        options = {"quality": "medium"}
        assert compute_fingerprint("spotify:x", options) != compute_fingerprint("spotify:y", options)

    def test_differs_by_option_value(self):
        assert compute_fingerprint("spotify:x", {"duration": 7}) != compute_fingerprint(
            "spotify:x", {"duration": 8}
        )

    def test_shape(self):
        fp = compute_fingerprint("youtube:abc12345678", {})
        assert is_fingerprint(fp)
        assert not is_fingerprint("../etc/passwd")

    def test_canonical_form_is_compact(self):
        assert canonicalize_options({"b": 1, "a": 2}) == '{"a":2,"b":1}'
        assert canonicalize_options(None) == "{}"


class TestMemoryTier:
    """Tests for the in-memory TTL tier."""

    def test_expiry(self):
        now = [1000.0]
        tier = MemoryTier(ttl_seconds=10, clock=lambda: now[0])
        tier.set("k", "v")
        assert tier.get("k") == "v"

        now[0] += 11
        assert tier.get("k") is None
        assert len(tier) == 0

    def test_lru_eviction(self):
        tier = MemoryTier(ttl_seconds=100, max_keys=2)
        tier.set("a", 1)
        tier.set("b", 2)
        tier.get("a")  # a is now most recently used
        tier.set("c", 3)

        assert tier.get("a") == 1
        assert tier.get("b") is None
        assert tier.get("c") == 3

    def test_clear_expired(self):
        now = [0.0]
        tier = MemoryTier(ttl_seconds=5, clock=lambda: now[0])
        tier.set("a", 1)
        now[0] = 3
        tier.set("b", 2)
        now[0] = 6
        assert tier.clear_expired() == 1
        assert tier.get("b") == 2


class TestPreviewCacheMetadata:
    """Tests for metadata storage."""

    def test_put_and_get(self, cache, sample_metadata):
        fp = sample_metadata.cache_key
        cache.put_metadata(fp, sample_metadata)
        assert cache.get_metadata(fp) == sample_metadata
        assert (cache.metadata_dir / f"{fp}.json").exists()

    def test_durable_round_trip_after_restart(self, tmp_path, sample_metadata):
        fp = sample_metadata.cache_key
        first = PreviewCache(str(tmp_path / "metadata"), str(tmp_path / "clips"))
        first.put_metadata(fp, sample_metadata)

        # Fresh instance has an empty memory tier
        second = PreviewCache(str(tmp_path / "metadata"), str(tmp_path / "clips"))
        assert second.get_stats()["memory_cache_entries"] == 0
        assert second.get_metadata(fp) == sample_metadata
        assert second.get_stats()["memory_cache_entries"] == 1

    def test_missing_returns_none(self, cache):
        assert cache.get_metadata("b" * 64) is None

    def test_corrupt_file_is_deleted(self, cache):
        fp = "c" * 64
        path = cache.metadata_dir / f"{fp}.json"
        path.write_text("{not json")

        assert cache.get_metadata(fp) is None
        assert not path.exists()

    def test_incomplete_record_is_deleted(self, cache):
        fp = "d" * 64
        path = cache.metadata_dir / f"{fp}.json"
        path.write_text(json.dumps({"title": "only a title"}))

        assert cache.get_metadata(fp) is None
        assert not path.exists()

    def test_disk_failure_keeps_memory_entry(self, cache, sample_metadata):
        fp = sample_metadata.cache_key
        with patch.object(PreviewCache, "_atomic_write", side_effect=OSError("disk full")):
            with pytest.raises(CacheWriteFailed):
                cache.put_metadata(fp, sample_metadata)

        assert cache.get_metadata(fp) == sample_metadata
        assert not (cache.metadata_dir / f"{fp}.json").exists()


class TestPreviewCacheClips:
    """Tests for clip storage."""

    def test_put_clip_copies_and_keeps_source(self, cache, tmp_path):
        fp = "e" * 64
        source = tmp_path / "rendered.mp4"
        source.write_bytes(b"video")

        stored = cache.put_clip(fp, source)

        assert stored == cache.clips_dir / f"{fp}.mp4"
        assert stored.read_bytes() == b"video"
        assert source.exists()
        assert cache.get_clip_path(fp) == stored
        assert cache.has(fp)

    def test_put_clip_missing_source(self, cache, tmp_path):
        with pytest.raises(CacheWriteFailed):
            cache.put_clip("f" * 64, tmp_path / "missing.mp4")
        assert not cache.has("f" * 64)

    def test_no_partial_files_left(self, cache, tmp_path):
        source = tmp_path / "rendered.mp4"
        source.write_bytes(b"video")
        cache.put_clip("e" * 64, source)
        assert [p.name for p in cache.clips_dir.iterdir()] == [f"{'e' * 64}.mp4"]


class TestPreviewCacheRemoval:
    """Tests for delete and clear."""

    def test_delete_and_clear_on_empty_cache(self, cache):
        cache.delete("a" * 64)
        assert cache.clear() == 0

    def test_delete_removes_both_tiers(self, cache, sample_metadata, tmp_path):
        fp = sample_metadata.cache_key
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"video")
        cache.put_metadata(fp, sample_metadata)
        cache.put_clip(fp, source)

        cache.delete(fp)
        cache.delete(fp)

        assert cache.get_metadata(fp) is None
        assert not cache.has(fp)

    def test_clear_removes_everything(self, cache, sample_metadata, tmp_path):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"video")
        cache.put_metadata(sample_metadata.cache_key, sample_metadata)
        cache.put_clip(sample_metadata.cache_key, source)

        assert cache.clear() == 2
        stats = cache.get_stats()
        assert stats["metadata_cached"] == 0
        assert stats["clips_cached"] == 0
        assert stats["memory_cache_entries"] == 0


class TestPreviewCacheStats:
    """Tests for cache statistics."""

    def test_expired_memory_entries_not_counted(self, cache, sample_metadata):
        now = [0.0]
        cache._memory = MemoryTier(ttl_seconds=10, clock=lambda: now[0])
        cache.put_metadata(sample_metadata.cache_key, sample_metadata)
        assert cache.get_stats()["memory_cache_entries"] == 1

        now[0] = 11
        stats = cache.get_stats()

        assert stats["memory_cache_entries"] == 0
        assert stats["metadata_cached"] == 1

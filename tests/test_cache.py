"""
Tests for the on-disk manifest cache.

Covers:
- Cache layout and sidecar metadata
- Miss behavior for absent and unparsable entries
- Modification-time fallback when the sidecar is missing
- Atomic writes and cache clearing
"""

import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from manifetch.exceptions import CacheError, CacheMissError, CacheWriteError
from manifetch.release.cache import ManifestCache
from manifetch.release.manifest import Manifest, ServiceEntry

pytestmark = [pytest.mark.unit]


@pytest.fixture
def cache(tmp_path):
    return ManifestCache(str(tmp_path / "cache"))


class TestManifestCacheLayout:
    def test_creates_root_directory(self, tmp_path):
        root = tmp_path / "nested" / "cache"

        ManifestCache(str(root))

        assert root.is_dir()

    def test_cache_paths(self, cache):
        manifest_path, meta_path = cache.cache_paths("rc", "v1.2.3")

        assert manifest_path == os.path.join(cache.cache_dir, "rc", "v1.2.3.yaml")
        assert meta_path == os.path.join(cache.cache_dir, "rc", "v1.2.3.meta.json")

    def test_root_creation_failure_raises_cache_write_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(CacheWriteError):
            ManifestCache(str(blocker / "cache"))


class TestManifestCacheSaveLoad:
    def test_save_then_load(self, cache):
        manifest = Manifest(
            platform_version="v1.2.3",
            services=[ServiceEntry(name="commodore", service_version="1.2.3")],
        )
        fetched_at = datetime(2026, 5, 1, 8, 30, tzinfo=timezone.utc)

        cache.save("stable", "v1.2.3", manifest, fetched_at=fetched_at)
        loaded, loaded_at = cache.load("stable", "v1.2.3")

        assert loaded == manifest
        assert loaded_at == fetched_at

    def test_sidecar_holds_rfc3339_timestamp(self, cache):
        fetched_at = datetime(2026, 5, 1, 8, 30, tzinfo=timezone.utc)

        cache.save("stable", "v1.2.3", Manifest(platform_version="v1.2.3"), fetched_at)

        _, meta_path = cache.cache_paths("stable", "v1.2.3")
        with open(meta_path, encoding="utf-8") as f:
            assert json.load(f) == {"fetched_at": "2026-05-01T08:30:00Z"}

    def test_save_defaults_fetched_at_to_now(self, cache):
        before = datetime.now(timezone.utc)

        cache.save("stable", "latest", Manifest(platform_version="v1.0.0"))
        _, fetched_at = cache.load("stable", "latest")

        assert before - timedelta(seconds=1) <= fetched_at <= datetime.now(timezone.utc)

    def test_save_overwrites_existing_entry(self, cache):
        cache.save("stable", "latest", Manifest(platform_version="v1.0.0"))
        cache.save("stable", "latest", Manifest(platform_version="v1.1.0"))

        loaded, _ = cache.load("stable", "latest")

        assert loaded.platform_version == "v1.1.0"

    def test_save_leaves_no_temporary_files(self, cache):
        cache.save("stable", "v1.2.3", Manifest(platform_version="v1.2.3"))

        names = sorted(os.listdir(os.path.join(cache.cache_dir, "stable")))

        assert names == ["v1.2.3.meta.json", "v1.2.3.yaml"]

    def test_save_failure_raises_cache_write_error(self, cache, mocker):
        mocker.patch(
            "manifetch.release.cache._atomic_write_text", side_effect=OSError("disk full")
        )

        with pytest.raises(CacheWriteError, match="failed to cache manifest"):
            cache.save("stable", "v1.2.3", Manifest(platform_version="v1.2.3"))


class TestManifestCacheMisses:
    def test_absent_entry_is_a_miss(self, cache):
        with pytest.raises(CacheMissError):
            cache.load("stable", "v9.9.9")

    def test_unparsable_entry_is_a_miss(self, cache, mocker):
        manifest_path, _ = cache.cache_paths("stable", "v1.2.3")
        os.makedirs(os.path.dirname(manifest_path))
        with open(manifest_path, "w", encoding="utf-8") as f:
            f.write("platform_version: [broken\n")
        read_metadata = mocker.spy(cache, "read_metadata")

        with pytest.raises(CacheMissError):
            cache.load("stable", "v1.2.3")

        read_metadata.assert_not_called()

    def test_missing_sidecar_falls_back_to_mtime(self, cache):
        cache.save("stable", "v1.2.3", Manifest(platform_version="v1.2.3"))
        manifest_path, meta_path = cache.cache_paths("stable", "v1.2.3")
        os.remove(meta_path)
        mtime = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp()
        os.utime(manifest_path, (mtime, mtime))

        _, fetched_at = cache.load("stable", "v1.2.3")

        assert fetched_at == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_corrupt_sidecar_falls_back_to_mtime(self, cache):
        cache.save("stable", "v1.2.3", Manifest(platform_version="v1.2.3"))
        manifest_path, meta_path = cache.cache_paths("stable", "v1.2.3")
        with open(meta_path, "w", encoding="utf-8") as f:
            f.write("{not json")

        _, fetched_at = cache.load("stable", "v1.2.3")

        assert fetched_at == datetime.fromtimestamp(
            os.path.getmtime(manifest_path), timezone.utc
        )


def test_read_metadata_accepts_nanosecond_precision(cache, tmp_path):
    meta_path = tmp_path / "v1.meta.json"
    meta_path.write_text('{"fetched_at": "2026-01-01T00:00:00.123456789Z"}')

    fetched_at = cache.read_metadata(str(meta_path))

    assert fetched_at == datetime(2026, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)


def test_age():
    now = datetime(2026, 1, 1, 1, 0, tzinfo=timezone.utc)

    assert ManifestCache.age(now - timedelta(minutes=5), now) == timedelta(minutes=5)


class TestManifestCacheClear:
    def test_clear_single_channel(self, cache):
        cache.save("stable", "latest", Manifest(platform_version="v1.0.0"))
        cache.save("rc", "latest", Manifest(platform_version="v1.1.0-rc1"))

        removed = cache.clear("rc")

        assert removed == 1
        assert not os.path.exists(os.path.join(cache.cache_dir, "rc"))
        cache.load("stable", "latest")

    def test_clear_everything(self, cache):
        cache.save("stable", "latest", Manifest(platform_version="v1.0.0"))
        cache.save("stable", "v1.0.0", Manifest(platform_version="v1.0.0"))
        cache.save("rc", "latest", Manifest(platform_version="v1.1.0-rc1"))

        assert cache.clear() == 3
        assert os.listdir(cache.cache_dir) == []

    def test_clear_unknown_channel_is_noop(self, cache):
        assert cache.clear("beta") == 0


class TestManifestCacheUndecodableFiles:
    def test_non_utf8_manifest_is_a_miss(self, cache):
        manifest_path, _ = cache.cache_paths("stable", "latest")
        os.makedirs(os.path.dirname(manifest_path))
        with open(manifest_path, "wb") as f:
            f.write(b"platform_version: \xff\xfe\n")

        with pytest.raises(CacheMissError, match="could not read cached manifest"):
            cache.load("stable", "latest")

    def test_non_utf8_sidecar_falls_back_to_mtime(self, cache):
        cache.save("stable", "v1.2.3", Manifest(platform_version="v1.2.3"))
        manifest_path, meta_path = cache.cache_paths("stable", "v1.2.3")
        with open(meta_path, "wb") as f:
            f.write(b'{"fetched_at": "\xff"}')
        mtime = datetime(2026, 2, 3, 4, 5, 6, tzinfo=timezone.utc).timestamp()
        os.utime(manifest_path, (mtime, mtime))

        manifest, fetched_at = cache.load("stable", "v1.2.3")

        assert manifest.platform_version == "v1.2.3"
        assert fetched_at == datetime(2026, 2, 3, 4, 5, 6, tzinfo=timezone.utc)


class TestManifestCacheKeys:
    @pytest.mark.parametrize(
        "channel,version",
        [
            ("stable", "v1/../../escape"),
            ("../outside", "latest"),
            ("stable", ".."),
            (".", "latest"),
            ("stable", ""),
        ],
    )
    def test_rejects_keys_that_are_not_single_components(self, cache, channel, version):
        with pytest.raises(CacheError, match="invalid cache key component"):
            cache.cache_paths(channel, version)

    def test_save_with_traversal_key_writes_nothing(self, cache, tmp_path):
        with pytest.raises(CacheError):
            cache.save("stable", "v1/../../../escape", Manifest(platform_version="v1"))

        assert not list(tmp_path.rglob("escape*"))

    def test_clear_rejects_traversal_channel(self, cache, tmp_path):
        keep = tmp_path / "keep"
        keep.mkdir()

        with pytest.raises(CacheError):
            cache.clear("../keep")

        assert keep.is_dir()

    def test_invalid_key_is_not_a_miss(self):
        assert not issubclass(CacheError, CacheMissError)

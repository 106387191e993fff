"""Tests for cache keys and their on-disk location."""

from pathlib import Path

from domain.cache_key import CacheKey, resolve_cache_location


class TestResolveCacheLocation:
    def test_layout(self):
        location = resolve_cache_location("/cache", "widgetpm", "2.3", "abc123")

        assert location.cache_directory == Path("/cache/widgetpm/2.3")
        assert location.cache_path == Path("/cache/widgetpm/2.3/abc123.tar.gz")

    def test_managers_do_not_collide(self):
        npm = resolve_cache_location("/cache", "npm", "8.1.0", "abc123")
        yarn = resolve_cache_location("/cache", "yarn", "8.1.0", "abc123")

        assert npm.cache_path != yarn.cache_path

    def test_versions_do_not_collide(self):
        old = resolve_cache_location("/cache", "npm", "6.14.13", "abc123")
        new = resolve_cache_location("/cache", "npm", "8.1.0", "abc123")

        assert old.cache_path != new.cache_path
        assert old.cache_directory.parent == new.cache_directory.parent

    def test_version_is_stripped(self):
        location = resolve_cache_location("/cache", "npm", " 8.1.0\n", "abc123")

        assert location.cache_directory == Path("/cache/npm/8.1.0")

    def test_version_cannot_escape_its_segment(self):
        location = resolve_cache_location("/cache", "npm", "../../etc", "abc123")

        assert location.cache_directory.parent == Path("/cache/npm")
        assert location.cache_path.parent == location.cache_directory

    def test_empty_version(self):
        location = resolve_cache_location("/cache", "npm", "", "abc123")

        assert location.cache_directory == Path("/cache/npm/unknown")


class TestCacheKey:
    def test_resolve_delegates_to_layout(self):
        key = CacheKey(cli_name="bower", cli_version="1.8.14", digest="ff00")

        location = key.resolve(Path("/var/cache/deps"))

        assert location.cache_path == Path("/var/cache/deps/bower/1.8.14/ff00.tar.gz")

    def test_equal_keys_map_to_equal_paths(self):
        first = CacheKey("npm", "8.1.0", "abc")
        second = CacheKey("npm", "8.1.0", "abc")

        assert first == second
        assert first.resolve("/c") == second.resolve("/c")

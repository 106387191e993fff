"""Tests for manifest fingerprints."""

import hashlib

import pytest

from domain.errors import ManifestUnreadable
from domain.fingerprint import calculate_content_hash, compute_file_hash
from domain.hash_constants import HASH_ALGORITHM, BLOCK_SIZE


class TestComputeFileHash:
    def test_matches_configured_algorithm(self, tmp_path):
        manifest = tmp_path / "deps.json"
        manifest.write_bytes(b'{"a":"1.0.0"}')

        expected = hashlib.new(HASH_ALGORITHM, b'{"a":"1.0.0"}').hexdigest()

        assert compute_file_hash(manifest) == expected

    def test_identical_content_gives_identical_digest(self, tmp_path):
        first = tmp_path / "one" / "package.json"
        second = tmp_path / "two" / "package.json"
        for path in (first, second):
            path.parent.mkdir()
            path.write_bytes(b'{"dependencies": {"lodash": "^4.17.21"}}')

        assert compute_file_hash(first) == compute_file_hash(second)

    @pytest.mark.parametrize("variant", [
        b'{"a":"1.0.1"}',
        b'{"a":"1.0.0"} ',
        b'{"a": "1.0.0"}',
        b'{"a":"1.0.0"}\n',
        b'{"b":"1.0.0"}',
    ])
    def test_any_byte_difference_changes_digest(self, tmp_path, variant):
        original = tmp_path / "original.json"
        original.write_bytes(b'{"a":"1.0.0"}')
        changed = tmp_path / "changed.json"
        changed.write_bytes(variant)

        assert compute_file_hash(original) != compute_file_hash(changed)

    def test_large_file_read_in_blocks(self, tmp_path):
        content = bytes(range(256)) * (BLOCK_SIZE // 64)
        manifest = tmp_path / "big.lock"
        manifest.write_bytes(content)

        assert compute_file_hash(manifest) == hashlib.new(HASH_ALGORITHM, content).hexdigest()
        assert compute_file_hash(manifest) == calculate_content_hash(content)

    def test_empty_file(self, tmp_path):
        manifest = tmp_path / "empty.json"
        manifest.write_bytes(b"")

        assert compute_file_hash(manifest) == hashlib.new(HASH_ALGORITHM).hexdigest()

    def test_missing_file_raises_manifest_unreadable(self, tmp_path):
        missing = tmp_path / "package.json"

        with pytest.raises(ManifestUnreadable) as exc_info:
            compute_file_hash(missing)

        assert exc_info.value.config_path == missing
        assert exc_info.value.kind == "manifest_unreadable"
        assert str(missing) in str(exc_info.value)

    def test_directory_raises_manifest_unreadable(self, tmp_path):
        with pytest.raises(ManifestUnreadable):
            compute_file_hash(tmp_path)

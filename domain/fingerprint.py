"""Content fingerprints of dependency manifests."""

import hashlib
from pathlib import Path
from typing import Union

from .errors import ManifestUnreadable
from .hash_constants import HASH_ALGORITHM, BLOCK_SIZE


def calculate_content_hash(content: bytes) -> str:
    """
    Calculate the hash of a manifest's content using the configured algorithm.

    Args:
        content: The manifest content as bytes

    Returns:
        The hexadecimal hash string
    """
    hasher = hashlib.new(HASH_ALGORITHM)

    # Process in blocks for memory efficiency
    for i in range(0, len(content), BLOCK_SIZE):
        hasher.update(content[i:i + BLOCK_SIZE])

    return hasher.hexdigest()


def compute_file_hash(file_path: Union[str, Path]) -> str:
    """
    Calculates the digest of a manifest file's content in blocks.

    The caller is expected to have checked that the file exists; a file that
    vanished or cannot be read is reported as ManifestUnreadable.
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    try:
        with open(file_path, "rb") as f:
            while True:
                chunk = f.read(BLOCK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
    except OSError as e:
        raise ManifestUnreadable(Path(file_path), e.strerror or str(e)) from e
    return hasher.hexdigest()

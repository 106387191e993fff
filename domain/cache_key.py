"""Cache keys and the on-disk location they map to."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .hash_constants import ARCHIVE_SUFFIX


@dataclass(frozen=True)
class CacheLocation:
    cache_directory: Path
    cache_path: Path


@dataclass(frozen=True)
class CacheKey:
    """Identifies one cached snapshot: (manager, manager version, manifest digest)."""
    cli_name: str
    cli_version: str
    digest: str

    def resolve(self, cache_root: Union[str, Path]) -> CacheLocation:
        return resolve_cache_location(cache_root, self.cli_name, self.cli_version, self.digest)


def _path_segment(value: str) -> str:
    # A version like "8.1.0\n" or "a/b" must stay a single directory name
    segment = value.strip()
    for sep in filter(None, (os.sep, os.altsep)):
        segment = segment.replace(sep, "_")
    if segment in ("", ".", ".."):
        segment = segment.replace(".", "_") or "unknown"
    return segment


def resolve_cache_location(
    cache_root: Union[str, Path],
    cli_name: str,
    cli_version: str,
    digest: str
) -> CacheLocation:
    """
    Compose the cache directory and archive path for a key.

    cache_directory = <cache_root>/<cli_name>/<cli_version>
    cache_path      = <cache_directory>/<digest>.tar.gz
    """
    cache_directory = Path(cache_root) / _path_segment(cli_name) / _path_segment(cli_version)
    return CacheLocation(
        cache_directory=cache_directory,
        cache_path=cache_directory / f"{digest}{ARCHIVE_SUFFIX}"
    )

import logging
from pathlib import Path
from typing import Any, Dict, List

from domain.cache_key import CacheKey, CacheLocation
from domain.cache_repository import CacheRepository
from domain.hash_constants import ARCHIVE_SUFFIX

logger = logging.getLogger(__name__)


class FileSystemCacheRepository(CacheRepository):
    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def locate(self, key: CacheKey) -> CacheLocation:
        """Resolve the archive location of a key under this cache root."""
        return key.resolve(self.cache_dir)

    def has_entry(self, key: CacheKey) -> bool:
        """Check if an archive exists for the key."""
        return self.locate(key).cache_path.is_file()

    def list_entries(self) -> List[Path]:
        """Return all archives, skipping in-flight temporary files."""
        if not self.cache_dir.exists():
            return []
        return sorted(
            path for path in self.cache_dir.glob(f"*/*/*{ARCHIVE_SUFFIX}")
            if path.is_file() and not path.name.startswith(".")
        )

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get statistics about the cache."""
        managers: Dict[str, int] = {}
        cache_size_bytes = 0

        entries = self.list_entries()
        for archive in entries:
            # <cache_dir>/<cli_name>/<cli_version>/<digest>.tar.gz
            cli_name = archive.parent.parent.name
            managers[cli_name] = managers.get(cli_name, 0) + 1
            cache_size_bytes += archive.stat().st_size

        return {
            "cache_dir": str(self.cache_dir),
            "total_entries": len(entries),
            "managers": managers,
            "cache_size_bytes": cache_size_bytes
        }

    def clean(self) -> int:
        """
        Remove every cached archive, including abandoned temporary files.

        Only <cli_name>/<cli_version>/ directories left empty are removed;
        anything else under the cache root is kept.
        """
        if not self.cache_dir.exists():
            return 0

        entries = self.list_entries()
        leftovers = self.cache_dir.glob(f"*/*/.*{ARCHIVE_SUFFIX}.*.tmp")
        for path in [*entries, *leftovers]:
            path.unlink()

        for version_dir in sorted(self.cache_dir.glob("*/*")):
            _remove_empty_directory(version_dir)
        for manager_dir in sorted(self.cache_dir.glob("*")):
            _remove_empty_directory(manager_dir)

        logger.info("Removed %d cached archive(s) from %s", len(entries), self.cache_dir)
        return len(entries)


def _remove_empty_directory(path: Path) -> None:
    if path.is_dir() and not path.is_symlink() and not any(path.iterdir()):
        path.rmdir()

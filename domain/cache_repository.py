from abc import ABC, abstractmethod
from typing import Any, Dict, List
from pathlib import Path

from .cache_key import CacheKey, CacheLocation


class CacheRepository(ABC):
    """
    Abstract repository interface for the archived dependency snapshots.

    Snapshots live at <cache_root>/<cli_name>/<cli_version>/<digest>.tar.gz
    and are only ever added by a successful install+compress cycle.
    """

    @abstractmethod
    def locate(self, key: CacheKey) -> CacheLocation:
        """
        Get the cache directory and archive path for a key.

        Args:
            key: The cache key of a manifest

        Returns:
            The location, whether or not an archive exists there
        """
        pass

    @abstractmethod
    def has_entry(self, key: CacheKey) -> bool:
        """
        Check if an archive exists for the key.

        Args:
            key: The cache key of a manifest

        Returns:
            True if the archive exists, False otherwise
        """
        pass

    @abstractmethod
    def list_entries(self) -> List[Path]:
        """Return the paths of all archives in the cache, sorted."""
        pass

    @abstractmethod
    def get_cache_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the cache.

        Returns:
            Dictionary containing:
            - total_entries: Number of archives
            - managers: Number of archives per manager
            - cache_size_bytes: Total size of all archives
        """
        pass

    @abstractmethod
    def clean(self) -> int:
        """
        Remove every cached archive.

        Returns:
            The number of archives removed
        """
        pass

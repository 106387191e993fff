from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from domain.errors import CacheError


class LoadStatus(str, Enum):
    SKIPPED = "skipped"
    RESTORED = "restored"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass
class CacheOutcome:
    manager: str
    status: LoadStatus
    cache_path: Optional[Path] = None
    error: Optional[CacheError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def is_cache_hit(self) -> bool:
        return self.status == LoadStatus.RESTORED


@dataclass
class CacheKeyInfo:
    manager: str
    config_path: Path
    digest: str
    cli_version: str
    cache_path: Path
    cached: bool

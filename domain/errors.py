"""Error kinds reported by the cache flow.

Every step of a manager's cache flow fails with exactly one of these. The
orchestrator catches them at its boundary and hands them back inside the
outcome, so callers can branch on ``kind`` instead of parsing messages.
"""

from pathlib import Path
from typing import Optional


class CacheError(Exception):
    """Base class for all errors of a manager's cache flow."""

    kind = "cache_error"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self)}


class ManifestUnreadable(CacheError):
    kind = "manifest_unreadable"

    def __init__(self, config_path: Path, reason: Optional[str] = None):
        self.config_path = Path(config_path)
        message = f"error reading dependency config file {self.config_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CliNotFound(CacheError):
    kind = "cli_not_found"

    def __init__(self, cli_name: str):
        self.cli_name = cli_name
        super().__init__(f"Command line tool {cli_name} not installed")


class CliVersionError(CacheError):
    kind = "cli_version_error"

    def __init__(self, cli_name: str, command: str, reason: Optional[str] = None):
        self.cli_name = cli_name
        self.command = command
        message = f"error querying {cli_name} version with [{command}]"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CleanupError(CacheError):
    kind = "cleanup_error"

    def __init__(self, install_directory: Path):
        self.install_directory = Path(install_directory)
        super().__init__(f"error removing installed dependencies at {self.install_directory}")


class ExtractError(CacheError):
    kind = "extract_error"

    def __init__(self, archive_path: Path):
        self.archive_path = Path(archive_path)
        super().__init__(f"error extracting {self.archive_path}")


class InstallError(CacheError):
    kind = "install_error"

    def __init__(self, command: str, returncode: Optional[int] = None):
        self.command = command
        self.returncode = returncode
        message = f"error running {command}"
        if returncode is not None:
            message += f" (exit status {returncode})"
        super().__init__(message)


class CompressError(CacheError):
    kind = "compress_error"

    def __init__(self, source_dir: Path):
        self.source_dir = Path(source_dir)
        super().__init__(f"error tar-ing {self.source_dir}")

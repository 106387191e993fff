"""Per package manager configuration consumed by the cache flow."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union


def _absolute(path: Union[str, Path], base: Path) -> Path:
    """Resolve a path relative to base and normalize it (no symlink resolution)."""
    return Path(os.path.normpath(base / Path(path).expanduser()))


@dataclass
class ManagerConfig:
    """
    Everything the cache flow needs to know about one package manager.

    The manifest and install directory are interpreted against work_dir,
    which defaults to the process working directory; a relative cache
    directory is interpreted against the process working directory. After
    construction every path field is absolute.
    """
    cli_name: str
    config_path: Path
    install_directory: Path
    install_command: str
    cache_directory: Path
    version_provider: Callable[[], str] = field(repr=False)
    install_options: str = ""
    force_refresh: bool = False
    work_dir: Optional[Path] = None

    def __post_init__(self):
        self.work_dir = Path(os.path.abspath(self.work_dir or os.getcwd()))
        self.config_path = _absolute(self.config_path, self.work_dir)
        self.install_directory = _absolute(self.install_directory, self.work_dir)
        self.cache_directory = _absolute(self.cache_directory, Path(os.getcwd()))

        # a restore clears the install directory, which must not hold the project
        if self.work_dir.is_relative_to(self.install_directory):
            raise ValueError(
                f"Install directory {self.install_directory} of {self.cli_name} "
                f"contains the project directory {self.work_dir}"
            )

    def get_cli_version(self) -> str:
        return self.version_provider()

    @property
    def archive_name(self) -> str:
        """Top-level entry name of the install directory inside an archive."""
        return self.install_directory.name

    @property
    def extract_directory(self) -> Path:
        """Directory an archive is unpacked into, so its entry lands on install_directory."""
        return self.install_directory.parent

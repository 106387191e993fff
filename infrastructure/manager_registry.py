import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from domain.manager_config import ManagerConfig
from infrastructure.cli_tools import CliTools

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTOR_DIR = Path(__file__).parent / "managers"
DESCRIPTOR_PATTERN = re.compile(r"^(\S+)Config\.json$")


class ManagerDescriptor(BaseModel):
    """Static description of a package manager, loaded from <name>Config.json."""
    model_config = ConfigDict(extra="forbid")

    cli_name: str = Field(..., min_length=1, description="Executable name, also the cache path segment")
    config_file: str = Field(..., min_length=1, description="Manifest the manager reads")
    install_directory: str = Field(..., min_length=1, description="Directory the manager populates")
    install_command: str = Field(..., min_length=1, description="Command that installs dependencies")
    install_options: str = Field("", description="Default options appended to the install command")
    version_command: str = Field(..., min_length=1, description="Command printing the manager version")
    version_pattern: Optional[str] = Field(None, description="Regex extracting the version from its output")


class ManagerRegistry:
    """
    Discovers the package managers this tool knows about.

    The descriptor directory is scanned on the first call to list_available()
    and the mapping is kept for the lifetime of the registry. Create one
    registry at startup and pass it to whatever needs it.
    """

    def __init__(
        self,
        descriptor_dir: Union[str, Path] = DEFAULT_DESCRIPTOR_DIR,
        cli_tools: Optional[CliTools] = None
    ):
        self.descriptor_dir = Path(descriptor_dir)
        self.cli_tools = cli_tools or CliTools()
        self._managers: Optional[Dict[str, Path]] = None

    def list_available(self) -> Dict[str, Path]:
        """
        Return a mapping of manager name to descriptor path.

        Ex: {'npm': .../managers/npmConfig.json, 'bower': .../managers/bowerConfig.json}
        """
        if self._managers is None:
            managers = {}
            for path in sorted(self.descriptor_dir.iterdir()):
                result = DESCRIPTOR_PATTERN.match(path.name)
                if result is not None and path.is_file():
                    managers[result.group(1)] = path
            logger.debug("Found managers %s in %s", sorted(managers), self.descriptor_dir)
            self._managers = managers
        return self._managers

    def load_descriptor(self, name: str) -> ManagerDescriptor:
        """Load and validate the descriptor of a manager."""
        managers = self.list_available()
        if name not in managers:
            raise ValueError(f"Unsupported manager: {name}")

        try:
            return ManagerDescriptor.model_validate_json(managers[name].read_bytes())
        except ValidationError as e:
            raise ValueError(f"Invalid descriptor for {name} ({managers[name]}): {e}") from e

    def build_config(
        self,
        name: str,
        cache_directory: Union[str, Path],
        work_dir: Optional[Union[str, Path]] = None,
        force_refresh: bool = False,
        install_options: Optional[str] = None
    ) -> ManagerConfig:
        """
        Create the ManagerConfig of one manager for a project.

        Args:
            name: Manager name as listed by list_available()
            cache_directory: Root of the cache for all managers
            work_dir: Project directory (defaults to the process working directory)
            force_refresh: Ignore existing cache entries
            install_options: Extra options appended after the descriptor's defaults
        """
        descriptor = self.load_descriptor(name)
        options = " ".join(filter(None, [descriptor.install_options, install_options]))
        project_dir = Path(os.path.abspath(work_dir or os.getcwd()))

        def get_version() -> str:
            return self.cli_tools.query_version(
                descriptor.cli_name,
                descriptor.version_command,
                cwd=project_dir,
                version_pattern=descriptor.version_pattern
            )

        return ManagerConfig(
            cli_name=descriptor.cli_name,
            config_path=Path(descriptor.config_file),
            install_directory=Path(descriptor.install_directory),
            install_command=descriptor.install_command,
            install_options=options,
            cache_directory=Path(cache_directory),
            force_refresh=force_refresh,
            work_dir=project_dir,
            version_provider=get_version
        )

    def build_configs(
        self,
        names: Iterable[str],
        cache_directory: Union[str, Path],
        work_dir: Optional[Union[str, Path]] = None,
        force_refresh: bool = False,
        install_options: Optional[Dict[str, str]] = None
    ) -> List[ManagerConfig]:
        """Create ManagerConfigs for several managers; options are keyed by manager name."""
        install_options = install_options or {}
        return [
            self.build_config(
                name,
                cache_directory,
                work_dir=work_dir,
                force_refresh=force_refresh,
                install_options=install_options.get(name)
            )
            for name in names
        ]

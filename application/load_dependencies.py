import asyncio
import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from domain.archive import ArchiveEngine
from domain.cache_key import CacheKey, CacheLocation
from domain.errors import CacheError, CleanupError, CliNotFound, CompressError
from domain.fingerprint import compute_file_hash
from domain.installer import InstallRunner, compose_install_command
from domain.manager_config import ManagerConfig
from infrastructure.cli_tools import CliTools
from application.dtos import CacheKeyInfo, CacheOutcome, LoadStatus

logger = logging.getLogger(__name__)


class ManagerLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the manager name, e.g. "[npm] cache exists"."""

    def process(self, msg, kwargs):
        return f"[{self.extra['cli_name']}] {msg}", kwargs


class LoadDependencies:
    """
    Restores a manager's installed dependencies from the cache, or installs
    and caches them.

    For one manager the flow is strictly sequential:

        manifest missing            -> skipped, nothing to do
        CLI not on PATH             -> CliNotFound
        hash manifest, resolve key
        archive exists, no refresh  -> clear install directory, extract
        otherwise                   -> install, then archive

    The first error ends the flow. It is logged and returned inside the
    CacheOutcome, never raised, so one failing manager cannot stop the others.
    """

    def __init__(
        self,
        archive_engine: Optional[ArchiveEngine] = None,
        install_runner: Optional[InstallRunner] = None,
        cli_tools: Optional[CliTools] = None
    ):
        self.archive_engine = archive_engine or ArchiveEngine()
        self.install_runner = install_runner or InstallRunner()
        self.cli_tools = cli_tools or CliTools()

    async def load(self, config: ManagerConfig) -> CacheOutcome:
        """Run the cache flow for one manager."""
        log = ManagerLogAdapter(logger, {"cli_name": config.cli_name})

        if not config.config_path.exists():
            log.info("Dependency config file %s does not exist. Skipping install", config.config_path)
            return CacheOutcome(manager=config.cli_name, status=LoadStatus.SKIPPED)
        log.info("config file exists")

        location: Optional[CacheLocation] = None
        try:
            if not self.cli_tools.is_available(config.cli_name):
                raise CliNotFound(config.cli_name)
            log.info("cli exists")

            key = await asyncio.to_thread(self.compute_key, config)
            location = key.resolve(config.cache_directory)
            log.info("hash of %s: %s", config.config_path, key.digest)

            if not config.force_refresh and location.cache_path.is_file():
                log.info("cache exists")
                await self._extract_dependencies(config, location.cache_path, log)
                status = LoadStatus.RESTORED
            else:
                if config.force_refresh:
                    log.info("force refresh requested, ignoring any cached archive")
                await self._install_dependencies(config, log)
                await self._archive_dependencies(config, location, log)
                status = LoadStatus.INSTALLED

        except CacheError as e:
            log.error("%s", e)
            return CacheOutcome(
                manager=config.cli_name,
                status=LoadStatus.FAILED,
                cache_path=location.cache_path if location else None,
                error=e
            )

        return CacheOutcome(manager=config.cli_name, status=status, cache_path=location.cache_path)

    async def load_all(self, configs: Iterable[ManagerConfig]) -> List[CacheOutcome]:
        """
        Run manager flows concurrently, one outcome per manager, in input order.

        Managers whose install directories overlap (npm and yarn both use
        node_modules) run one after another, so no flow clears or archives a
        directory another flow is still populating.
        """
        configs = list(configs)
        outcomes: List[Optional[CacheOutcome]] = [None] * len(configs)

        async def run_group(indices: List[int]) -> None:
            for index in indices:
                outcomes[index] = await self.load(configs[index])

        groups = _group_by_install_directory(configs)
        await asyncio.gather(*(run_group(indices) for indices in groups))
        return outcomes

    def compute_key(self, config: ManagerConfig) -> CacheKey:
        """Hash the manifest and query the manager version."""
        return CacheKey(
            cli_name=config.cli_name,
            cli_version=config.get_cli_version(),
            digest=compute_file_hash(config.config_path)
        )

    def describe(self, config: ManagerConfig) -> CacheKeyInfo:
        """
        Compute the cache key of a manager's manifest without installing.

        Raises:
            CacheError: If the manifest cannot be read or the version query fails
        """
        key = self.compute_key(config)
        location = key.resolve(config.cache_directory)
        return CacheKeyInfo(
            manager=config.cli_name,
            config_path=config.config_path,
            digest=key.digest,
            cli_version=key.cli_version,
            cache_path=location.cache_path,
            cached=location.cache_path.is_file()
        )

    async def _install_dependencies(self, config: ManagerConfig, log: ManagerLogAdapter) -> None:
        command = compose_install_command(config.install_command, config.install_options)
        log.info("running [%s]...", command)
        await self.install_runner.run(command, cwd=config.work_dir)
        log.info("installed %s dependencies, now archiving", config.cli_name)

    async def _archive_dependencies(
        self,
        config: ManagerConfig,
        location: CacheLocation,
        log: ManagerLogAdapter
    ) -> None:
        log.info("archiving dependencies from %s", config.install_directory)
        try:
            location.cache_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CompressError(config.install_directory) from e

        await self.archive_engine.compress(
            config.install_directory,
            location.cache_path,
            arcname=config.archive_name
        )
        log.info("installed and archived dependencies")

    async def _extract_dependencies(
        self,
        config: ManagerConfig,
        cache_path: Path,
        log: ManagerLogAdapter
    ) -> None:
        log.info("clearing installed dependencies at %s", config.install_directory)
        await asyncio.to_thread(_remove_install_directory, config.install_directory)
        log.info("...cleared")

        log.info("extracting dependencies from %s", cache_path)
        await self.archive_engine.extract(cache_path, config.extract_directory)
        log.info("done extracting")


def _remove_install_directory(install_directory: Path) -> None:
    try:
        if install_directory.is_symlink() or install_directory.is_file():
            install_directory.unlink()
        elif install_directory.exists():
            shutil.rmtree(install_directory)
    except OSError as e:
        raise CleanupError(install_directory) from e


def _overlaps(first: Path, second: Path) -> bool:
    return first.is_relative_to(second) or second.is_relative_to(first)


def _group_by_install_directory(configs: List[ManagerConfig]) -> List[List[int]]:
    """Indices of configs, grouped so that overlapping install directories share a group."""
    groups: List[List[int]] = []
    for index, config in enumerate(configs):
        overlapping = [
            group for group in groups
            if any(_overlaps(config.install_directory, configs[i].install_directory) for i in group)
        ]
        merged = sorted([index] + [i for group in overlapping for i in group])
        groups = [group for group in groups if group not in overlapping] + [merged]
    return groups

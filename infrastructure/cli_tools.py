import logging
import re
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Union

from domain.errors import CliVersionError

logger = logging.getLogger(__name__)


class CliTools:
    """Looks up package manager executables and queries their versions."""

    def __init__(self, version_timeout: float = 30):
        """
        Initialize CLI helpers.

        Args:
            version_timeout: Seconds to wait for a version query
        """
        self.version_timeout = version_timeout

    def is_available(self, cli_name: str) -> bool:
        """Check if cli_name resolves to an executable on PATH."""
        return shutil.which(cli_name) is not None

    def query_version(
        self,
        cli_name: str,
        version_command: str,
        cwd: Optional[Union[str, Path]] = None,
        version_pattern: Optional[str] = None
    ) -> str:
        """
        Run the manager's version command and return its version string.

        By default the last line of output is the version. With
        version_pattern, the first group of the first match (or the whole
        match) is used instead. The command runs on every call, so an
        upgraded manager is seen by the next flow.

        Raises:
            CliVersionError: If the command fails, times out or prints nothing
        """
        try:
            result = subprocess.run(
                shlex.split(version_command),
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                timeout=self.version_timeout
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.warning("Version query [%s] failed: %s", version_command, e)
            raise CliVersionError(cli_name, version_command, str(e)) from e

        if result.returncode != 0:
            logger.warning("Version query [%s] failed: %s", version_command, result.stderr.strip())
            raise CliVersionError(cli_name, version_command, f"exit status {result.returncode}")

        lines = result.stdout.strip().splitlines()
        if not lines:
            raise CliVersionError(cli_name, version_command, "empty output")

        version = lines[-1].strip()
        if version_pattern:
            match = re.search(version_pattern, result.stdout)
            if not match:
                raise CliVersionError(
                    cli_name, version_command, f"output does not match {version_pattern!r}"
                )
            version = match.group(1) if match.groups() else match.group(0)

        return version

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from .errors import InstallError

logger = logging.getLogger(__name__)


def compose_install_command(install_command: str, install_options: Optional[str] = None) -> str:
    """Join the install command and its options into one shell command."""
    return f"{install_command} {install_options or ''}".strip()


class InstallRunner:
    """Runs a package manager's install command as an external process."""

    async def run(self, command: str, cwd: Optional[Union[str, Path]] = None) -> None:
        """
        Run the install command through the shell and wait for it.

        Output is forwarded to this process' stdout/stderr and not parsed.

        Raises:
            InstallError: If the process cannot be started or exits non-zero
        """
        logger.debug("Spawning [%s] in %s", command, cwd or ".")
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=str(cwd) if cwd is not None else None
            )
        except OSError as e:
            logger.debug("Could not start [%s]: %s", command, e)
            raise InstallError(command) from e

        returncode = await process.wait()
        if returncode != 0:
            raise InstallError(command, returncode)

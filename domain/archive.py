"""Tar/gzip archives of installed dependency directories."""
import asyncio
import logging
import os
import tarfile
import tempfile
from pathlib import Path
from typing import Optional, Union

from .errors import CompressError, ExtractError

logger = logging.getLogger(__name__)


class ArchiveEngine:
    """
    Compresses a directory into a .tar.gz and extracts it back.

    Both operations are coroutines that run the blocking tar work on a worker
    thread. Each one either returns None or raises its typed error, once.
    """

    async def compress(
        self,
        source_dir: Union[str, Path],
        dest_archive_path: Union[str, Path],
        arcname: Optional[str] = None
    ) -> None:
        """
        Archive the full contents of source_dir at dest_archive_path.

        The archive is written to a temporary file next to the destination
        and renamed into place, so a partial archive is never visible under
        the final name.

        Args:
            source_dir: Directory to archive
            dest_archive_path: Final path of the .tar.gz file
            arcname: Name of the top-level entry (defaults to the base name
                of source_dir)

        Raises:
            CompressError: If the source cannot be read or the archive
                cannot be written
        """
        await asyncio.to_thread(
            self.compress_sync, Path(source_dir), Path(dest_archive_path), arcname
        )

    async def extract(self, archive_path: Union[str, Path], dest_dir: Union[str, Path]) -> None:
        """
        Unpack the full archive into dest_dir.

        Raises:
            ExtractError: If the archive is missing, corrupt or cannot be
                written out
        """
        await asyncio.to_thread(self.extract_sync, Path(archive_path), Path(dest_dir))

    @staticmethod
    def compress_sync(source_dir: Path, dest_archive_path: Path, arcname: Optional[str] = None) -> None:
        if not source_dir.is_dir():
            logger.debug("Source directory %s does not exist", source_dir)
            raise CompressError(source_dir)

        try:
            dest_archive_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{dest_archive_path.name}.",
                suffix=".tmp",
                dir=dest_archive_path.parent
            )
        except OSError as e:
            logger.debug("Cannot prepare %s: %s", dest_archive_path, e)
            raise CompressError(source_dir) from e

        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as raw, tarfile.open(fileobj=raw, mode="w:gz") as tar:
                tar.add(str(source_dir), arcname=arcname or source_dir.name, recursive=True)
            os.replace(temp_path, dest_archive_path)
        except (OSError, tarfile.TarError) as e:
            logger.debug("Failed to archive %s: %s", source_dir, e)
            temp_path.unlink(missing_ok=True)
            raise CompressError(source_dir) from e

    @staticmethod
    def extract_sync(archive_path: Path, dest_dir: Path) -> None:
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            with tarfile.open(archive_path, mode="r:gz") as tar:
                tar.extractall(path=dest_dir, filter="data")
        except (OSError, tarfile.TarError) as e:
            logger.debug("Failed to extract %s: %s", archive_path, e)
            raise ExtractError(archive_path) from e

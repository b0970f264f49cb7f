"""File Mutator - rename, delete and safe-write inside the instance directory.

All operations run the blocking filesystem call in a worker thread so each one
is a suspension point for the event loop, and every failure is reported as a
FileOperationError carrying the operation, the path and the original OSError.
Whether that error is fatal is decided by the caller.
"""

import asyncio
import os
import tempfile
from pathlib import Path

import structlog

from ..constants import TEMP_SUFFIX
from ..utils.exceptions import FileOperationError

logger = structlog.get_logger(__name__)


class FileMutator:
    """
    Thin async wrapper over the filesystem operations the reconciler needs.

    Features:
    - rename and delete with uniform error reporting
    - write_atomic: write-to-temp-then-replace, so readers never see a
      truncated file and a crash leaves the previous content in place
    """

    async def rename(self, src: Path, dst: Path) -> None:
        """
        Rename ``src`` to ``dst``, replacing ``dst`` if it exists.

        Raises:
            FileOperationError: If the source is missing or the rename fails
        """
        logger.debug("Renaming file", src=str(src), dst=str(dst))
        try:
            await asyncio.to_thread(os.replace, src, dst)
        except OSError as e:
            raise FileOperationError("rename", str(src), e) from e

    async def delete(self, path: Path) -> None:
        """
        Delete a file.

        Raises:
            FileOperationError: If the file is missing or cannot be removed
        """
        logger.debug("Deleting file", path=str(path))
        try:
            await asyncio.to_thread(os.unlink, path)
        except OSError as e:
            raise FileOperationError("delete", str(path), e) from e

    async def write_atomic(
        self,
        path: Path,
        data: bytes,
        create_parents: bool = True,
        overwrite: bool = True,
    ) -> bool:
        """
        Write ``data`` to ``path`` through a temporary sibling file.

        Args:
            path: Destination file
            data: Complete file content
            create_parents: Create missing parent directories first
            overwrite: When False an existing target is left untouched

        Returns:
            bool: True if written, False if declined because the target exists
                and overwrite is False

        Raises:
            FileOperationError: If any step of the write fails
        """
        return await asyncio.to_thread(
            self._write_atomic_sync, path, data, create_parents, overwrite
        )

    def _write_atomic_sync(
        self, path: Path, data: bytes, create_parents: bool, overwrite: bool
    ) -> bool:
        if not overwrite and path.exists():
            logger.debug("Target exists, not overwriting", path=str(path))
            return False

        try:
            if create_parents:
                path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX
            )
        except OSError as e:
            raise FileOperationError("write", str(path), e) from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            raise FileOperationError("write", str(path), e) from e

        logger.debug("Wrote file", path=str(path), size=len(data))
        return True

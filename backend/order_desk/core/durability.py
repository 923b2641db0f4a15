"""
Atomic file writes for the database image.

The image is written to a temporary file next to the target, flushed,
then renamed over the target, so the canonical file is always either the
previous image or the new one.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from order_desk.core.errors import WriteError

logger = logging.getLogger(__name__)


def _fsync_directory(directory: Path) -> None:
    # Directory handles cannot be opened on Windows
    if not hasattr(os, "O_DIRECTORY"):
        return
    dir_fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def atomic_write_file(path: Union[Path, str], content: bytes, *, fsync: bool = True) -> None:
    """
    Write bytes to path using the write-rename pattern.

    Args:
        path: Target file path
        content: Bytes to write
        fsync: Whether to fsync the file and its directory around the rename

    Raises:
        WriteError: If any step fails. The target is left untouched.
    """
    path = Path(path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                if fsync:
                    f.flush()
                    os.fsync(f.fileno())

            os.replace(temp_path, path)

            if fsync:
                _fsync_directory(path.parent)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError as cleanup_error:
                logger.debug("Failed to clean up temp file %s: %s", temp_path, cleanup_error)
            raise

    except Exception as e:
        raise WriteError(f"Failed to write {path}: {e}") from e

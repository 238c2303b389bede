"""
Collision-safe relocation of files into rule folders.
"""

import os
import errno
import logging
from pathlib import Path
from typing import Optional, Union

from .history import FileMoveRecord

logger = logging.getLogger(__name__)

# link() failures meaning "no hard links here", not "cannot move"
_NO_HARDLINK_ERRNOS = {errno.EPERM, errno.EOPNOTSUPP, errno.ENOTSUP}


class MoveError(Exception):
    """Raised when a file could not be relocated; the file stays where it was."""

    def __init__(self, file_name: str, reason: str, cause: Optional[OSError] = None):
        self.file_name = file_name
        self.reason = reason
        self.cause = cause
        super().__init__(f"Error moving {file_name}: {reason}")


class CollisionSafeMover:
    """Move files into named subfolders without ever overwriting an entry."""

    def move(
        self,
        source: Union[str, Path],
        folder_name: str,
        watched_root: Union[str, Path],
    ) -> FileMoveRecord:
        """Move a file into a folder under the watched root.

        Args:
            source: File to move
            folder_name: Destination folder name (single path segment)
            watched_root: Directory the destination folder lives in

        Returns:
            Record describing the completed move

        Raises:
            MoveError: If the folder cannot be created or the move fails
        """
        source = Path(source)
        file_name = source.name
        destination_dir = Path(watched_root) / folder_name

        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory {destination_dir}: {e}")
            raise MoveError(file_name, f"cannot create {destination_dir}: {e}", e)

        if not source.exists():
            raise MoveError(
                file_name, "file no longer exists", FileNotFoundError(str(source))
            )

        target = self.unique_destination(destination_dir / file_name)

        while True:
            try:
                self._place(source, target)
                break
            except FileExistsError:
                # another writer took the name after it was checked
                logger.info(f"Destination appeared during move: {target}")
                target = self.unique_destination(destination_dir / file_name)
            except OSError as e:
                logger.error(f"Failed to move {source} -> {target}: {e}")
                raise MoveError(file_name, str(e), e)

        logger.info(f"Moved: {source} -> {target}")
        return FileMoveRecord(
            file_name=file_name,
            source_dir=str(source.parent),
            destination_path=str(target),
        )

    @staticmethod
    def unique_destination(target: Path) -> Path:
        """Find the first free name of the form stem_<n>.ext.

        Args:
            target: Preferred destination path

        Returns:
            target itself if free, otherwise the first free numbered variant
        """
        if not os.path.lexists(target):
            return target

        base = target.stem
        ext = target.suffix
        parent = target.parent
        counter = 1

        while True:
            candidate = parent / f"{base}_{counter}{ext}"
            if not os.path.lexists(candidate):
                logger.info(f"Resolved conflict: {target} -> {candidate}")
                return candidate
            counter += 1

    @staticmethod
    def _place(source: Path, target: Path):
        """Move source to target without ever replacing an existing entry.

        A hard link claims the name atomically (FileExistsError if taken),
        then the source name is removed. A cross-device move fails instead of
        copying. Filesystems without hard links fall back to a checked rename.
        """
        try:
            os.link(source, target, follow_symlinks=False)
        except OSError as e:
            if e.errno not in _NO_HARDLINK_ERRNOS:
                raise
            if os.path.lexists(target):
                raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(target))
            os.rename(source, target)
            return

        try:
            os.unlink(source)
        except OSError:
            os.unlink(target)
            raise

"""
File access: watching the folder, moving files and remembering the moves.
"""

from .history import FileMoveRecord, MoveHistory
from .mover import CollisionSafeMover, MoveError
from .watcher import FolderWatcher, WatchError

__all__ = [
    "FileMoveRecord",
    "MoveHistory",
    "CollisionSafeMover",
    "MoveError",
    "FolderWatcher",
    "WatchError",
]

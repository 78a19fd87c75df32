"""
Work directory layout shared by the lock store and the comm channel
"""

import shutil
from pathlib import Path
from typing import Union

from ..core.logger import get_logger

logger = get_logger(__name__)

LOCKS_DIR_NAME = "locks"
COMMS_DIR_NAME = "comms"


def force_create_directory(path: Union[str, Path]) -> Path:
    """Create ``path`` as a directory, replacing any non-directory in the way.

    Raises OSError when the directory cannot be created.
    """
    path = Path(path)
    for component in reversed([path, *path.parents]):
        if (component.exists() or component.is_symlink()) and not component.is_dir():
            logger.warning(f"Replacing non-directory at {component}")
            remove_path(component)
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_path(path: Union[str, Path]) -> None:
    """Remove a file, symlink or directory tree; missing paths are ignored"""
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


class WorkDirectory:
    """Process-wide work directory holding the locks/ and comms/ folders.

    The directories are created on demand and never removed; only the records
    inside them have a per-instance lifetime.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    @property
    def locks_dir(self) -> Path:
        return self.root / LOCKS_DIR_NAME

    @property
    def comms_dir(self) -> Path:
        return self.root / COMMS_DIR_NAME

    def lock_path(self, instance_id: str) -> Path:
        return self.locks_dir / instance_id

    def comm_path(self, instance_id: str) -> Path:
        return self.comms_dir / instance_id

    def ensure_locks_dir(self) -> Path:
        return force_create_directory(self.locks_dir)

    def ensure_comms_dir(self) -> Path:
        return force_create_directory(self.comms_dir)

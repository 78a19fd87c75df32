"""
Lock store - one PID file per instance id under <workdir>/locks
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.logger import get_logger
from .errors import LockIOError
from .workdir import WorkDirectory, remove_path

logger = get_logger(__name__)


class LockStatus(Enum):
    ABSENT = "absent"
    HELD = "held"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class LockProbe:
    """Result of probing a lock record"""
    status: LockStatus
    pid: Optional[int] = None

    @classmethod
    def absent(cls) -> "LockProbe":
        return cls(LockStatus.ABSENT)

    @classmethod
    def held_by(cls, pid: int) -> "LockProbe":
        return cls(LockStatus.HELD, pid)

    @classmethod
    def malformed(cls) -> "LockProbe":
        return cls(LockStatus.MALFORMED)


class LockStore:
    """Directory-backed lock records whose body is the owner's PID.

    ``acquire`` is last-writer-wins, not an atomic test-and-set: callers are
    expected to probe first and accept the race between two simultaneous
    launches.
    """

    def __init__(self, work_dir: WorkDirectory):
        self.work_dir = work_dir

    def ensure_ready(self) -> None:
        """Create the locks directory, raising LockIOError on failure"""
        try:
            self.work_dir.ensure_locks_dir()
        except OSError as e:
            raise LockIOError(f"Unable to create lock directory {self.work_dir.locks_dir}: {e}") from e

    def probe(self, instance_id: str) -> LockProbe:
        """Check whether a lock record exists and who holds it"""
        path = self.work_dir.lock_path(instance_id)
        if not path.exists() and not path.is_symlink():
            return LockProbe.absent()
        if not path.is_file():
            logger.debug(f"Lock path is not a regular file: {path}")
            return LockProbe.malformed()

        try:
            body = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            # Owner released between the existence check and the read
            return LockProbe.absent()
        except OSError as e:
            raise LockIOError(f"Unable to read lock {path}: {e}") from e

        try:
            pid = int(body)
        except ValueError:
            logger.debug(f"Lock {path} has unreadable body {body!r}")
            return LockProbe.malformed()
        if pid <= 0:
            return LockProbe.malformed()
        return LockProbe.held_by(pid)

    def reclaim(self, instance_id: str) -> None:
        """Delete the lock record; deleting an absent record is not an error"""
        path = self.work_dir.lock_path(instance_id)
        try:
            remove_path(path)
        except OSError as e:
            raise LockIOError(f"Unable to remove lock {path}: {e}") from e

    def acquire(self, instance_id: str, pid: int) -> None:
        """Write ``pid`` as the lock body, creating directories as needed"""
        self.ensure_ready()
        path = self.work_dir.lock_path(instance_id)
        try:
            path.write_text(str(pid), encoding="utf-8")
        except OSError as e:
            raise LockIOError(f"Unable to write lock {path}: {e}") from e
        logger.debug(f"Lock {instance_id} acquired by PID {pid}")

    def release(self, instance_id: str) -> None:
        """Release the lock on shutdown"""
        self.reclaim(instance_id)
        logger.debug(f"Lock {instance_id} released")

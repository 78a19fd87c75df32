"""
Singleton coordinator - decides whether this launch owns the window or hands
off to an already running instance
"""

import os
import sys
from enum import Enum
from typing import Callable, Optional

from ..core.logger import get_logger, TRACE
from .comm import CommChannel, COMMAND_FOCUS
from .errors import CommIOError, LockIOError
from .identity import compute_instance_id, current_username
from .liveness import ProcessLivenessOracle
from .lock_store import LockStore, LockStatus

logger = get_logger(__name__)

EXIT_ALREADY_RUNNING = 1
EXIT_LOCK_FAILURE = 1


def _report_to_stderr(message: str) -> None:
    sys.stderr.write(message + "\n")


class CoordinatorState(Enum):
    START = "start"
    PROBING = "probing"
    WINNER = "winner"
    LOSER = "loser"
    RUNNING = "running"
    NOTIFIED = "notified"
    SHUTTING_DOWN = "shutting_down"
    DONE = "done"


class SingletonCoordinator:
    """Runs the single-instance protocol for one launch.

    ``start()`` probes the lock: a free or stale lock makes this process the
    winner (lock written, comm record watched), a lock held by a live
    instance makes it the loser (``focus`` sent, ``terminate`` called).
    ``shutdown()`` undoes the winner's bookkeeping and may be called any
    number of times.
    """

    def __init__(self, key: str,
                 lock_store: LockStore,
                 comm: CommChannel,
                 oracle: ProcessLivenessOracle,
                 on_focus: Callable[[], None],
                 terminate: Callable[[int], None] = sys.exit,
                 report: Optional[Callable[[str], None]] = None,
                 user: Optional[str] = None,
                 pid: Optional[int] = None):
        self.key = key
        self.user = user if user is not None else current_username()
        self.pid = pid if pid is not None else os.getpid()
        self.instance_id = compute_instance_id(key, self.user)

        self.lock_store = lock_store
        self.comm = comm
        self.oracle = oracle
        self.on_focus = on_focus
        self.terminate = terminate
        self.report = report or _report_to_stderr

        self.state = CoordinatorState.START
        self.error: Optional[Exception] = None

    def _transition(self, state: CoordinatorState) -> None:
        logger.log(TRACE, f"[{self.key}] {self.state.value} -> {state.value}")
        self.state = state

    def start(self) -> bool:
        """Run the probe and return True when this process should open its window"""
        self._transition(CoordinatorState.PROBING)
        logger.debug(f"Singleton {self.key!r} for user {self.user!r} -> {self.instance_id}")

        try:
            self.lock_store.ensure_ready()
            probe = self.lock_store.probe(self.instance_id)

            if probe.status is LockStatus.MALFORMED:
                logger.debug(f"Reclaiming malformed lock {self.instance_id}")
                self.lock_store.reclaim(self.instance_id)
            elif probe.status is LockStatus.HELD:
                if self.oracle.is_alive_and_same_app(probe.pid):
                    self._become_loser(probe.pid)
                    return False
                logger.debug(f"Reclaiming stale lock {self.instance_id} held by PID {probe.pid}")
                self.lock_store.reclaim(self.instance_id)

            self._become_winner()
            return True

        except LockIOError as e:
            logger.error(f"Singleton lock failure for {self.key!r}: {e}")
            self.error = e
            self._transition(CoordinatorState.DONE)
            self.report(str(e))
            self.terminate(EXIT_LOCK_FAILURE)
            return False

    def _become_winner(self) -> None:
        self._transition(CoordinatorState.WINNER)
        self.lock_store.acquire(self.instance_id, self.pid)

        try:
            self.comm.watch(self.instance_id, self._handle_command)
        except CommIOError as e:
            # Startup goes on; only bring-to-front is lost
            logger.warning(f"Focus requests disabled for {self.key!r}: {e}")

        self._transition(CoordinatorState.RUNNING)
        logger.info(f"Running as singleton {self.key!r} (PID {self.pid})")

    def _become_loser(self, owner_pid: int) -> None:
        self._transition(CoordinatorState.LOSER)
        logger.info(f"Instance already running: {self.key} (PID {owner_pid})")

        try:
            self.comm.send(self.instance_id, COMMAND_FOCUS)
        except CommIOError as e:
            logger.warning(f"Could not ask PID {owner_pid} to come forward: {e}")

        self._transition(CoordinatorState.NOTIFIED)
        self._transition(CoordinatorState.DONE)
        self.report(f"Instance already running: {self.key}")
        self.terminate(EXIT_ALREADY_RUNNING)

    def _handle_command(self, command: str) -> None:
        if command == COMMAND_FOCUS:
            logger.debug(f"Focus requested for {self.key!r}")
            self.on_focus()
        else:
            logger.debug(f"Ignoring unknown command {command!r}")

    def shutdown(self) -> None:
        """Stop watching and release the lock; later calls do nothing"""
        if self.state is not CoordinatorState.RUNNING:
            return
        self._transition(CoordinatorState.SHUTTING_DOWN)

        try:
            self.comm.stop(self.instance_id)
        except CommIOError as e:
            logger.warning(str(e))

        try:
            self.lock_store.release(self.instance_id)
        except LockIOError as e:
            logger.error(f"Failed to release lock for {self.key!r}: {e}")

        self._transition(CoordinatorState.DONE)
        logger.info(f"Singleton {self.key!r} released")

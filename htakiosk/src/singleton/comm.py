"""
Comm channel - a file mailbox per instance id under <workdir>/comms

A losing launch appends command tokens to the record; the owning process
watches the record, drains it and dispatches each token in file order.
"""

import os
from pathlib import Path
from typing import Callable, Dict, List

from PyQt6.QtCore import QObject, QFileSystemWatcher

from ..core.logger import get_logger, TRACE
from .errors import CommIOError
from .workdir import WorkDirectory, remove_path

logger = get_logger(__name__)

COMMAND_FOCUS = "focus"

DRAIN_SUFFIX = ".draining"


def parse_commands(body: str) -> List[str]:
    """Split a comm record body into its non-empty command tokens"""
    return [line.strip() for line in body.splitlines() if line.strip()]


def send_command(work_dir: WorkDirectory, instance_id: str, command: str) -> None:
    """Append ``command`` to the comm record of ``instance_id``"""
    try:
        work_dir.ensure_comms_dir()
        with open(work_dir.comm_path(instance_id), 'a', encoding='utf-8') as f:
            f.write(command + '\n')
    except OSError as e:
        raise CommIOError(f"Unable to send {command!r} to {instance_id}: {e}") from e
    logger.debug(f"Sent {command!r} to {instance_id}")


class CommChannel(QObject):
    """Watches comm records and hands their commands to the registered handlers.

    ``QFileSystemWatcher`` reports creation through the directory and
    modification through the file; both end up in ``_on_path_changed``.
    Events are delivered on the thread owning this object, so handlers run
    serialized with the rest of the GUI code.
    """

    def __init__(self, work_dir: WorkDirectory, parent: QObject = None):
        super().__init__(parent)
        self.work_dir = work_dir
        self._handlers: Dict[str, Callable[[str], None]] = {}
        self._watcher = QFileSystemWatcher(self)
        self._watcher.directoryChanged.connect(self._on_path_changed)
        self._watcher.fileChanged.connect(self._on_path_changed)

    def send(self, instance_id: str, command: str) -> None:
        send_command(self.work_dir, instance_id, command)

    def is_watching(self, instance_id: str) -> bool:
        return instance_id in self._handlers

    def watch(self, instance_id: str, on_command: Callable[[str], None]) -> None:
        """Start dispatching commands for ``instance_id`` to ``on_command``.

        A record already present when the watch starts is drained right away.
        """
        try:
            self.work_dir.ensure_comms_dir()
        except OSError as e:
            raise CommIOError(f"Unable to create comm directory {self.work_dir.comms_dir}: {e}") from e

        self._handlers[instance_id] = on_command
        self._arm(instance_id)
        logger.debug(f"Watching comm record {self.work_dir.comm_path(instance_id)}")
        self.drain(instance_id)

    def stop(self, instance_id: str) -> None:
        """Stop watching ``instance_id`` and remove its record"""
        if self._handlers.pop(instance_id, None) is not None:
            path = str(self.work_dir.comm_path(instance_id))
            if path in self._watcher.files():
                self._watcher.removePath(path)
            if not self._handlers and str(self.work_dir.comms_dir) in self._watcher.directories():
                self._watcher.removePath(str(self.work_dir.comms_dir))
            logger.debug(f"Stopped watching {instance_id}")

        try:
            remove_path(self.work_dir.comm_path(instance_id))
        except OSError as e:
            raise CommIOError(f"Unable to remove comm record for {instance_id}: {e}") from e

    def stop_all(self) -> None:
        for instance_id in list(self._handlers):
            self.stop(instance_id)

    def _arm(self, instance_id: str) -> None:
        """(Re-)register the paths for ``instance_id`` with the watcher"""
        comms_dir = self.work_dir.comms_dir
        if not comms_dir.is_dir():
            logger.warning(f"Comm directory {comms_dir} vanished, recreating it")
            self.work_dir.ensure_comms_dir()
            # The old watch points at the deleted directory
            if str(comms_dir) in self._watcher.directories():
                self._watcher.removePath(str(comms_dir))
        if str(comms_dir) not in self._watcher.directories():
            self._watcher.addPath(str(comms_dir))

        path = self.work_dir.comm_path(instance_id)
        if path.is_file() and str(path) not in self._watcher.files():
            self._watcher.addPath(str(path))

    def _on_path_changed(self, changed: str) -> None:
        logger.log(TRACE, f"Filesystem event on {changed}")
        for instance_id in list(self._handlers):
            path = self.work_dir.comm_path(instance_id)
            if changed not in (str(path), str(self.work_dir.comms_dir)):
                continue
            try:
                self.drain(instance_id)
            except CommIOError as e:
                logger.warning(str(e))
            finally:
                if instance_id in self._handlers:
                    try:
                        self._arm(instance_id)
                    except OSError as e:
                        logger.warning(f"Unable to re-arm watch for {instance_id}: {e}")

    def _take_record(self, path: Path) -> str:
        """Move the record aside, read it and delete it.

        Renaming first means a sender appending after this point starts a
        new record (and a new event) instead of writing into one being read.
        """
        draining = path.with_name(path.name + DRAIN_SUFFIX)
        try:
            os.replace(path, draining)
        except FileNotFoundError:
            return ""
        try:
            return draining.read_text(encoding='utf-8')
        finally:
            remove_path(draining)

    def drain(self, instance_id: str) -> List[str]:
        """Consume the pending record for ``instance_id`` and dispatch it.

        Returns the dispatched tokens, in file order.
        """
        handler = self._handlers.get(instance_id)
        if handler is None:
            return []

        path = self.work_dir.comm_path(instance_id)
        if not path.exists():
            return []

        try:
            body = self._take_record(path)
        except OSError as e:
            raise CommIOError(f"Unable to drain comm record {path}: {e}") from e

        commands = parse_commands(body)
        for command in commands:
            logger.debug(f"Dispatching {command!r} for {instance_id}")
            try:
                handler(command)
            except Exception:
                logger.exception(f"Handler for {command!r} failed")
        return commands

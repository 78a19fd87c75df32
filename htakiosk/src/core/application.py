"""
Main application class for htakiosk
"""

import sys
from typing import TYPE_CHECKING, Callable, Optional

from PyQt6.QtCore import QObject

from .config import Config
from .logger import get_logger
from ..singleton.comm import CommChannel
from ..singleton.coordinator import SingletonCoordinator
from ..singleton.liveness import ProcessLivenessOracle
from ..singleton.lock_store import LockStore
from ..singleton.workdir import WorkDirectory

if TYPE_CHECKING:
    from ..ui.kiosk_window import KioskWindow


class KioskApplication(QObject):
    """Owns the kiosk window and, in singleton mode, the coordinator.

    The window reference is only touched from the GUI thread: focus requests
    arrive through Qt signals on that same thread.
    """

    def __init__(self, config: Config, url: str,
                 terminate: Callable[[int], None] = sys.exit):
        super().__init__()
        self.config = config
        self.url = url
        self.terminate = terminate
        self.logger = get_logger(__name__)

        self.window: Optional["KioskWindow"] = None
        self.coordinator: Optional[SingletonCoordinator] = None

    def _create_coordinator(self, key: str) -> SingletonCoordinator:
        work_dir = WorkDirectory(self.config.singleton.resolve_work_dir())
        return SingletonCoordinator(
            key,
            lock_store=LockStore(work_dir),
            comm=CommChannel(work_dir, parent=self),
            oracle=ProcessLivenessOracle(),
            on_focus=self.focus_window,
            terminate=self.terminate,
        )

    def start(self) -> bool:
        """Run the singleton protocol (if enabled) and open the window.

        Returns False when another instance owns the window.
        """
        key = self.config.singleton.key
        if key:
            self.coordinator = self._create_coordinator(key)
            if not self.coordinator.start():
                return False
        else:
            self.logger.debug("No singleton key, skipping instance check")

        self.window = self.create_window()
        self.window.closed.connect(self._on_window_closed)
        self.window.load()
        return True

    def create_window(self) -> "KioskWindow":
        # WebEngine is only loaded once a window is needed
        from ..ui.kiosk_window import KioskWindow
        return KioskWindow(self.url, self.config.window)

    def focus_window(self):
        """Bring the window forward in answer to another launch"""
        if self.window is None:
            self.logger.debug("Focus requested but no window is open")
            return
        self.window.bring_to_front()

    def _on_window_closed(self):
        self.window = None
        self.shutdown()

    def shutdown(self):
        """Release singleton state; safe to call more than once"""
        if self.coordinator is not None:
            self.coordinator.shutdown()

"""
Kiosk window - a single browser view around the launched URL
"""

from typing import Optional

from PyQt6.QtWidgets import QApplication, QMainWindow
from PyQt6.QtCore import Qt, QUrl, pyqtSignal
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWebEngineCore import QWebEnginePage, QWebEngineProfile
from PyQt6.QtWebEngineWidgets import QWebEngineView

from ..core.config import WindowConfig, APP_NAME
from ..core.logger import get_logger

ZOOM_STEP = 0.1
ZOOM_MIN = 0.25
ZOOM_MAX = 5.0


class KioskWindow(QMainWindow):
    """Main window hosting the web view.

    The window stays hidden until the first page load finishes, then applies
    its menu, full-screen and maximize/minimize options and shows itself.
    """

    # Signals
    closed = pyqtSignal()

    def __init__(self, url: str, config: WindowConfig):
        super().__init__()
        self.url = url
        self.config = config
        self.logger = get_logger(__name__)
        self._shown = False
        self.dev_tools_view: Optional[QWebEngineView] = None

        self.setWindowTitle(APP_NAME)
        self.resize(config.width, config.height)
        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        if config.always_on_top:
            self.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, True)

        # Off-the-record profile: nothing shared with other launches.
        # Owned by the application so it outlives the page.
        self.profile = QWebEngineProfile(QApplication.instance())
        self.page = QWebEnginePage(self.profile, self)
        self.view = QWebEngineView(self)
        self.view.setPage(self.page)
        self.setCentralWidget(self.view)

        if not config.developer:
            self.page.action(QWebEnginePage.WebAction.InspectElement).setVisible(False)

        self.page.titleChanged.connect(self._on_title_changed)
        self.view.loadFinished.connect(self._on_load_finished)

        self._setup_menu()
        self.menuBar().setVisible(config.show_menu)

    def _setup_menu(self):
        """Build the optional menu bar"""
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        view_menu = menu_bar.addMenu("&View")
        view_menu.addAction(self.view.pageAction(QWebEnginePage.WebAction.Reload))
        view_menu.addAction(self.view.pageAction(QWebEnginePage.WebAction.ReloadAndBypassCache))
        if self.config.developer:
            dev_tools_action = QAction("Toggle &Developer Tools", self)
            dev_tools_action.setShortcut(QKeySequence("F12"))
            dev_tools_action.triggered.connect(self.toggle_dev_tools)
            view_menu.addAction(dev_tools_action)
        view_menu.addSeparator()

        reset_zoom = QAction("Actual Size", self)
        reset_zoom.setShortcut(QKeySequence("Ctrl+0"))
        reset_zoom.triggered.connect(lambda: self.set_zoom(1.0))
        view_menu.addAction(reset_zoom)

        zoom_in = QAction("Zoom In", self)
        zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in.triggered.connect(lambda: self.set_zoom(self.view.zoomFactor() + ZOOM_STEP))
        view_menu.addAction(zoom_in)

        zoom_out = QAction("Zoom Out", self)
        zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out.triggered.connect(lambda: self.set_zoom(self.view.zoomFactor() - ZOOM_STEP))
        view_menu.addAction(zoom_out)
        view_menu.addSeparator()

        fullscreen_action = QAction("Toggle Full Screen", self)
        fullscreen_action.setShortcut(QKeySequence.StandardKey.FullScreen)
        fullscreen_action.triggered.connect(self.toggle_fullscreen)
        view_menu.addAction(fullscreen_action)

        window_menu = menu_bar.addMenu("&Window")
        minimize_action = QAction("Minimize", self)
        minimize_action.triggered.connect(self.showMinimized)
        window_menu.addAction(minimize_action)
        close_action = QAction("Close", self)
        close_action.setShortcut(QKeySequence.StandardKey.Close)
        close_action.triggered.connect(self.close)
        window_menu.addAction(close_action)

    def load(self):
        """Start loading the URL; the window appears when loading finishes"""
        self.logger.info(f"Loading {self.url}")
        self.view.setUrl(QUrl(self.url))

    def set_zoom(self, factor: float):
        factor = max(ZOOM_MIN, min(ZOOM_MAX, factor))
        self.view.setZoomFactor(factor)

    def toggle_fullscreen(self):
        if self.isFullScreen():
            self.showNormal()
        else:
            self.showFullScreen()

    def toggle_dev_tools(self):
        """Open or hide the developer tools in a separate window"""
        if not self.config.developer:
            return
        if self.dev_tools_view is None:
            self.dev_tools_view = QWebEngineView()
            self.dev_tools_view.setWindowTitle(f"{APP_NAME} - Developer Tools")
            self.page.setDevToolsPage(self.dev_tools_view.page())
        self.dev_tools_view.setVisible(not self.dev_tools_view.isVisible())

    def bring_to_front(self):
        """Restore and raise the window above other applications"""
        self.logger.debug("Bringing window to front")
        if self.isMinimized():
            self.setWindowState(self.windowState() & ~Qt.WindowState.WindowMinimized)
        if not self.isVisible():
            self.show()
        self.raise_()
        self.activateWindow()

    def _on_title_changed(self, title: str):
        self.setWindowTitle(title or APP_NAME)

    def _on_load_finished(self, ok: bool):
        if not ok:
            self.logger.warning(f"Failed to load {self.url}")
        if self._shown:
            return
        self._shown = True

        # The engine resets zoom set before the first load
        self.set_zoom(self.config.zoom)

        if self.config.fullscreen:
            self.showFullScreen()
        elif self.config.maximize:
            self.showMaximized()
        elif self.config.minimize:
            self.showMinimized()
        else:
            self.show()

    def closeEvent(self, event):
        """Handle window close event"""
        self.logger.info("Kiosk window closing")
        if self.dev_tools_view is not None:
            self.dev_tools_view.close()
        self.closed.emit()
        super().closeEvent(event)

#!/usr/bin/env python3
"""
htakiosk - Main Application Entry Point
"""

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from PyQt6.QtWidgets import QApplication
from PyQt6.QtCore import QTimer, QtMsgType, qInstallMessageHandler

from htakiosk.src.core.application import KioskApplication
from htakiosk.src.core.config import Config, APP_NAME, APP_VERSION
from htakiosk.src.core.logger import setup_logging, get_logger, LOG_LEVELS

URL_SCHEMES = ("http://", "https://", "file://")

EXIT_INVALID_INPUT = 1


def qt_message_handler(mode, context, message):
    """Route Qt diagnostics through the logging module"""
    qt_logger = logging.getLogger("qt")
    if mode == QtMsgType.QtDebugMsg:
        qt_logger.debug(message)
    elif mode == QtMsgType.QtInfoMsg:
        qt_logger.info(message)
    elif mode == QtMsgType.QtWarningMsg:
        qt_logger.warning(message)
    elif mode == QtMsgType.QtCriticalMsg:
        qt_logger.error(message)
    elif mode == QtMsgType.QtFatalMsg:
        qt_logger.critical(message)


def resolve_url(path: str) -> Optional[str]:
    """Return the URL to load for ``path``, or None if it is not acceptable.

    http(s) and file URLs are used as given; an existing file becomes a
    file:// URL.
    """
    if path.startswith(URL_SCHEMES):
        return path
    if os.path.isfile(path):
        return "file://" + os.path.abspath(path)
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Open a URL in a single kiosk window")
    parser.add_argument('-p', '--path', required=True, help='Path (URL) to launch')
    parser.add_argument('-x', '--width', type=int, help='Width of the window (default 1024)')
    parser.add_argument('-y', '--height', type=int, help='Height of the window (default 768)')
    parser.add_argument('-s', '--singleton', metavar='KEY', help='Limit to a single instance per KEY')
    parser.add_argument('-f', '--fullscreen', action='store_true', default=None,
                        help='Launch the window in full screen mode')
    parser.add_argument('-t', '--always-on-top', action='store_true', default=None,
                        help='Keep the window above other windows')
    parser.add_argument('-m', '--show-menu', action='store_true', default=None,
                        help='Show menu bar in the window')
    parser.add_argument('-d', '--developer', action='store_true', default=None,
                        help='Enable developer tools')
    parser.add_argument('-z', '--zoom', type=float, help='Zoom factor of the page (default 1.0)')
    parser.add_argument('--maximize', action='store_true', default=None, help='Start maximized')
    parser.add_argument('--minimize', action='store_true', default=None, help='Start minimized')
    parser.add_argument('--log-level', type=str.upper, choices=sorted(LOG_LEVELS),
                        help='Logging verbosity (default NONE)')
    parser.add_argument('--log-file', help='Append log records to this file')
    parser.add_argument('--config', help='Path to config file')
    parser.add_argument('--save-config', action='store_true',
                        help='Store the given options as defaults, then continue')
    parser.add_argument('-v', '--version', action='version', version=f"%(prog)s {APP_VERSION}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Load the config file and apply command-line options over it"""
    config = Config(args.config)
    config.apply_overrides({
        'window': {
            'width': args.width,
            'height': args.height,
            'fullscreen': args.fullscreen,
            'always_on_top': args.always_on_top,
            'show_menu': args.show_menu,
            'developer': args.developer,
            'zoom': args.zoom,
            'maximize': args.maximize,
            'minimize': args.minimize,
        },
        'singleton': {
            'key': args.singleton,
        },
        'logging': {
            'level': args.log_level,
            'file': args.log_file,
        },
    })
    return config


def install_signal_handlers(app: QApplication) -> QTimer:
    """Quit cleanly on SIGINT/SIGTERM so the singleton records get removed"""
    def handle_signal(signum, frame):
        get_logger(__name__).info(f"Received signal {signum}, quitting")
        app.quit()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    # Python only runs signal handlers when it regains control from Qt
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(500)
    return timer


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)
    config = load_config(args)

    try:
        setup_logging(config.logging.level, config.logging.file)
    except ValueError as e:
        # Only a config file can carry a bad name; argparse checks --log-level
        sys.stderr.write(f"{e}, logging disabled\n")
        config.logging.level = "NONE"
        setup_logging(config.logging.level, config.logging.file)
    logger = get_logger(__name__)

    if args.save_config:
        try:
            config.save()
        except OSError as e:
            logger.error(f"Error saving config: {e}")

    url = resolve_url(args.path)
    if not url:
        sys.stderr.write(f"Invalid URL: {args.path}\n")
        return EXIT_INVALID_INPUT

    # QtWebEngineWidgets refuses to load after the QApplication exists
    import PyQt6.QtWebEngineWidgets  # noqa: F401

    qInstallMessageHandler(qt_message_handler)

    # Create the Qt application
    app = QApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)

    kiosk = KioskApplication(config, url)
    if not kiosk.start():
        return 1
    app.aboutToQuit.connect(kiosk.shutdown)
    signal_timer = install_signal_handlers(app)

    logger.info(f"Started {APP_NAME} {APP_VERSION} for {url}")
    exit_code = app.exec()
    signal_timer.stop()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

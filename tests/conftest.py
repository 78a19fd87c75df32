#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures for htakiosk tests.
"""

import logging
import sys
from pathlib import Path

# tests/conftest.py -> tests/ -> repository root
_repo_root = Path(__file__).resolve().parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest

from htakiosk.src.singleton.workdir import WorkDirectory


@pytest.fixture(scope="session")
def qapp():
    """A Qt core application for QObject based tests"""
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def work_dir(tmp_path):
    """An empty work directory under the test's temporary path"""
    return WorkDirectory(tmp_path / "htakiosk")


@pytest.fixture
def restore_logging():
    """Put the root logger back the way pytest configured it"""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)

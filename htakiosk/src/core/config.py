"""
Configuration management for htakiosk
"""

import os
import re
import json
import tempfile
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, fields

from .logger import get_logger
from ..singleton.identity import current_username

APP_NAME = "htakiosk"
APP_VERSION = "0.3.0"

logger = get_logger(__name__)


@dataclass
class WindowConfig:
    """Options handed to the browser window"""
    width: int = 1024
    height: int = 768
    fullscreen: bool = False
    always_on_top: bool = False
    show_menu: bool = False
    developer: bool = False
    zoom: float = 1.0
    maximize: bool = False
    minimize: bool = False


@dataclass
class SingletonConfig:
    """Single-instance coordination options"""
    key: Optional[str] = None
    # Defaults to <tempdir>/htakiosk-<user> when unset
    work_dir: Optional[str] = None

    def resolve_work_dir(self) -> Path:
        """Get the process-wide work directory.

        The default is per user: directories created by another user are not
        writable for us.
        """
        if self.work_dir:
            return Path(self.work_dir)
        user = re.sub(r"[^\w.-]", "_", current_username())
        return Path(tempfile.gettempdir()) / f"{APP_NAME}-{user}"


@dataclass
class LoggingConfig:
    """Logging options"""
    level: str = "NONE"
    file: Optional[str] = None


def _section(cls, data: Optional[Dict[str, Any]]):
    """Build a config section, ignoring keys the section does not know"""
    if not data:
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return cls(**{key: value for key, value in data.items() if key in known})


class Config:
    """Main configuration class"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or self._get_default_config_path()
        self.window = WindowConfig()
        self.singleton = SingletonConfig()
        self.logging = LoggingConfig()
        self.load()

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path"""
        return str(Path.home() / ".config" / APP_NAME / "config.json")

    def load(self) -> None:
        """Load configuration from file, keeping defaults when it is absent"""
        if not os.path.exists(self.config_file):
            return

        try:
            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading config {self.config_file}: {e}")
            return

        self.window = _section(WindowConfig, data.get('window'))
        self.singleton = _section(SingletonConfig, data.get('singleton'))
        self.logging = _section(LoggingConfig, data.get('logging'))

    def save(self) -> None:
        """Save configuration to file"""
        config_data = {
            'window': asdict(self.window),
            'singleton': asdict(self.singleton),
            'logging': asdict(self.logging),
        }

        Path(self.config_file).parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(config_data, f, indent=2)
        logger.info(f"Configuration saved to {self.config_file}")

    def apply_overrides(self, overrides: Dict[str, Dict[str, Any]]) -> None:
        """Apply command-line values on top of the loaded ones.

        ``overrides`` maps a section name to the values given explicitly;
        ``None`` values mean "not given" and are skipped.
        """
        for section_name, values in overrides.items():
            section = getattr(self, section_name)
            for key, value in values.items():
                if value is not None:
                    setattr(section, key, value)

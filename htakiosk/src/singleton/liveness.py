"""
Process liveness - decides whether a recorded PID is still a running htakiosk
"""

import os
import sys
from typing import Iterable, List, Optional, Tuple

import psutil

from ..core.logger import get_logger
from .errors import ProcessQueryError

logger = get_logger(__name__)

# Image name of the bundled (frozen) launcher per platform
BUNDLED_PROCESS_NAMES = {
    "linux": "htakiosk",
    "darwin": "htakiosk",
    "win32": "htakiosk.exe",
}

INTERPRETER_PREFIXES = ("python",)

# (image name, entry point) identifying a launcher process
ProcessSignature = Tuple[str, Optional[str]]


def _normalize_name(name: str) -> str:
    name = os.path.basename(name).lower()
    if name.endswith(".exe"):
        name = name[:-4]
    return name


def _is_interpreter(name: str) -> bool:
    return _normalize_name(name).startswith(INTERPRETER_PREFIXES)


def _entry_point(cmdline: List[str], cwd: Optional[str] = None) -> Optional[str]:
    """Script or module an interpreter was started with.

    Scripts are returned as absolute paths, resolved against the process's
    working directory when they were given relative.
    """
    args = iter(cmdline[1:])
    for arg in args:
        if arg == "-m":
            return next(args, None)
        if arg == "-c":
            return None
        if arg.startswith("-"):
            continue
        if cwd and not os.path.isabs(arg):
            arg = os.path.join(cwd, arg)
        return os.path.normpath(arg)
    return None


def process_signature(name: str, cmdline: List[str],
                      cwd: Optional[str] = None) -> ProcessSignature:
    """Build the identity of a process from its name and command line.

    Interpreters (``python3``, ``pythonw.exe``...) are told apart by what they
    run; any other image is identified by its name alone.
    """
    if _is_interpreter(name):
        return _normalize_name(name), _entry_point(cmdline, cwd)
    return _normalize_name(name), None


class ProcessLivenessOracle:
    """Answers "is PID n a live instance of this application?" """

    def __init__(self, platform: Optional[str] = None,
                 extra_names: Iterable[str] = ()):
        self.platform = platform or sys.platform
        self.bundled_name = BUNDLED_PROCESS_NAMES.get(self.platform)
        self.extra_names = {_normalize_name(name) for name in extra_names}
        self._own_signature: Optional[ProcessSignature] = None

    def own_signature(self) -> ProcessSignature:
        """Signature of the running process, computed once"""
        if self._own_signature is None:
            try:
                proc = psutil.Process(os.getpid())
                self._own_signature = process_signature(proc.name(), self._cmdline(proc), self._cwd(proc))
            except psutil.Error as e:
                raise ProcessQueryError(f"Unable to query own process: {e}") from e
        return self._own_signature

    @staticmethod
    def _cmdline(proc: "psutil.Process") -> List[str]:
        try:
            return proc.cmdline()
        except psutil.AccessDenied:
            return []

    @staticmethod
    def _cwd(proc: "psutil.Process") -> Optional[str]:
        try:
            return proc.cwd()
        except psutil.AccessDenied:
            return None

    def _lookup(self, pid: int) -> Optional[ProcessSignature]:
        """Signature of ``pid``, or None when no such process exists"""
        try:
            proc = psutil.Process(pid)
            if proc.status() == psutil.STATUS_ZOMBIE:
                return None
            return process_signature(proc.name(), self._cmdline(proc), self._cwd(proc))
        except psutil.NoSuchProcess:
            return None
        except psutil.Error as e:
            raise ProcessQueryError(f"Unable to query PID {pid}: {e}") from e

    def matches(self, signature: ProcessSignature) -> bool:
        """Whether a process signature belongs to this application"""
        name, _ = signature
        if self.bundled_name and name == _normalize_name(self.bundled_name):
            return True
        if name in self.extra_names:
            return True
        return signature == self.own_signature()

    def is_alive_and_same_app(self, pid: int) -> bool:
        """True when ``pid`` is running and is this application.

        Query failures count as "not alive" so a broken process table never
        blocks a launch.
        """
        try:
            signature = self._lookup(pid)
            if signature is None:
                logger.debug(f"No process with PID {pid}")
                return False
            same_app = self.matches(signature)
        except ProcessQueryError as e:
            logger.warning(f"{e}; treating lock owner as dead")
            return False

        if not same_app:
            logger.debug(f"PID {pid} belongs to another program: {signature}")
        return same_app

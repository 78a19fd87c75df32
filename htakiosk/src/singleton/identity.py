"""
Instance identity - maps a singleton key to a filesystem-safe id
"""

import getpass
import hashlib
import os

from ..core.logger import get_logger

logger = get_logger(__name__)


def current_username() -> str:
    """Name of the user running this process"""
    try:
        return getpass.getuser()
    except (KeyError, OSError) as e:
        # No passwd entry (e.g. containers with arbitrary uids)
        logger.debug(f"Falling back to uid for username: {e}")
        return str(os.getuid()) if hasattr(os, "getuid") else "unknown"


def compute_instance_id(key: str, user: str) -> str:
    """Derive the instance id for a (key, user) pair.

    The result is a 64 character lowercase hex string, safe to use as a single
    path segment on every supported filesystem.
    """
    digest = hashlib.sha256(f"{key}.{user}".encode("utf-8"))
    return digest.hexdigest()

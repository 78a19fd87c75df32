"""
Errors raised by the single-instance machinery
"""


class SingletonError(Exception):
    """Base class for single-instance coordination failures"""


class LockIOError(SingletonError):
    """The lock directory or lock record could not be created, read or written.

    Fatal for a launch: without the lock the process cannot tell whether it
    would be a duplicate.
    """


class CommIOError(SingletonError):
    """The comm record could not be written, read or removed"""


class ProcessQueryError(SingletonError):
    """The process table could not be queried"""

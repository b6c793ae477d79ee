"""Exception types for nmcleaner."""


class NmcleanerError(Exception):
    """Base class for nmcleaner errors."""


class ScanRootError(NmcleanerError):
    """The scan root does not exist, is not a directory, or cannot be read."""


class EntityScanError(NmcleanerError):
    """A single candidate directory could not be stat'ed or measured."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class BackupError(NmcleanerError):
    """The backup archive could not be created or finalized."""


class RemovalError(NmcleanerError):
    """A single target directory could not be removed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason

"""Exception types raised by the watcher and the merge pipeline."""


class HdrError(Exception):
    """Base class for all expected failures. `kind` names the error category."""
    kind = "HdrError"


class InvalidFolderError(HdrError):
    kind = "InvalidFolder"


class NotConfiguredError(HdrError):
    kind = "NotConfigured"


class AlreadyWatchingError(HdrError):
    kind = "AlreadyWatching"


class WatchSetupError(HdrError):
    kind = "WatchSetupError"


class LockError(HdrError):
    kind = "LockError"


class NoInputError(HdrError):
    kind = "NoInput"


class InvalidArgumentError(HdrError):
    kind = "InvalidArgument"


class DecodeError(HdrError):
    kind = "DecodeError"


class DimensionMismatchError(HdrError):
    kind = "DimensionMismatch"


class PathError(HdrError):
    kind = "PathError"


class EncodeError(HdrError):
    kind = "EncodeError"

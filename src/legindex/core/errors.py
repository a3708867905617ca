"""Engine-level exceptions."""


class LegIndexError(Exception):
    """Base exception for index synchronization errors."""


class RebuildInProgressError(LegIndexError):
    """Raised when a rebuild or clear is requested while a rebuild is running."""


class ChannelClosedError(LegIndexError):
    """Raised when publishing to or subscribing on a stopped event channel."""


class SearchParseError(LegIndexError):
    """The search query could not be parsed."""


class SearchBackendError(LegIndexError):
    """The search backend failed while executing a query."""

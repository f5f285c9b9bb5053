"""
Error types for the EPG reconciler

Every fatal condition of a run is a ReconcilerError subclass so callers can
stop the run with a single except clause.
"""


class ReconcilerError(Exception):
    """Base class for fatal reconciliation errors"""


class MalformedInputError(ReconcilerError):
    """Raised when a feed or the channel allow-list cannot be trusted"""


class FeedError(ReconcilerError):
    """Raised when a feed cannot be selected, fetched or parsed"""


class OutputWriteError(ReconcilerError):
    """Raised when a channel schedule cannot be written"""


class IntervalConflictError(RuntimeError):
    """Raised when an overlapping interval is accepted into an index"""

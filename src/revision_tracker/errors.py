"""Error kinds raised by the scheduling engine."""


class RevisionTrackerError(Exception):
    """Base class for every rejected operation."""


class NotFound(RevisionTrackerError):
    """Unknown main topic or subtopic id."""


class InvalidArgument(RevisionTrackerError):
    """Bad input: empty title, out-of-range revision number, bad interval list."""


class Unauthorized(RevisionTrackerError):
    """The entity exists but belongs to another owner."""

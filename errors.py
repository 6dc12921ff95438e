# errors.py
"""Error taxonomy for the competition tracker.

Nothing here is fatal: every error means "the operation did not happen,
state is unchanged" and is reported back to the user.
"""


class TrackerError(Exception):
    """Base class for all tracker errors."""

    category = "danger"


class PersistenceError(TrackerError):
    """The competition document could not be read or written."""


class ValidationError(TrackerError):
    """User input was rejected before any state change."""

    category = "warning"


class NotFoundError(TrackerError):
    """A referenced participant (or log) no longer exists."""

    category = "warning"


class ExternalResourceError(TrackerError):
    """Copying, reading or opening a proof file or link failed."""

"""Custom exceptions for the crypto price tracker.

All pipeline exceptions live here to avoid circular imports between
the fetch, rate, report and accounting modules.
"""


class TrackerError(Exception):
    """Base exception for all tracker errors."""


class ConfigurationError(TrackerError):
    """Raised when the currency configuration file is missing or invalid."""


class TransportError(TrackerError):
    """Raised on network failure or a non-success HTTP status."""


class DataShapeError(TrackerError):
    """Raised when a remote payload is malformed or too short to use."""


class RateUnavailableError(TrackerError):
    """Raised when no exchange rate is found within the walk-back budget."""

    def __init__(self, requested: object, attempts: int) -> None:
        super().__init__(
            f"no exchange rate available for {requested} "
            f"or the {attempts - 1} days before it"
        )
        self.requested = requested
        self.attempts = attempts


class PersistenceError(TrackerError):
    """Raised when a report workbook cannot be written."""


class ForwardingError(TrackerError):
    """Raised when the accounting system rejects or cannot receive a record."""

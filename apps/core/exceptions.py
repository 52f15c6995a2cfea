"""
Exception types shared across the reconciliation engine.
"""


class UrbanClimateError(Exception):
    """Base class for errors raised by this project."""


class SourceUnavailable(UrbanClimateError):
    """
    A single provider failed for one collection cycle.

    Adapters absorb this internally; it never escapes the orchestrator.
    """

    def __init__(self, source, reason=''):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}" if reason else f"{source} unavailable")


class InsufficientData(UrbanClimateError):
    """An analytics operation lacks enough input to produce a result."""

    def __init__(self, message, required=None, available=None):
        self.required = required
        self.available = available
        super().__init__(message)


class InvalidInput(UrbanClimateError):
    """Malformed coordinates, missing parameters or mismatched series."""


class ForecastUnavailable(UrbanClimateError):
    """No stored forecast exists for the requested location."""

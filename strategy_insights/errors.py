"""Exception hierarchy for the correlation engine."""


class CorrelationEngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(CorrelationEngineError, ValueError):
    """Request rejected before any repository access (bad entity type, id or options)."""


class DataAccessError(CorrelationEngineError):
    """The entity repository could not be reached or timed out."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class ComputationError(CorrelationEngineError):
    """Malformed entity data or unexpected state while building a correlation."""

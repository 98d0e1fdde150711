"""Custom exceptions for request validation."""


class InvalidRequestError(ValueError):
    """Raised when a question or source identifier is missing or malformed."""

    def __init__(self, message: str, field: str = "unknown"):
        """Initialize invalid request error.

        Args:
            message: Human-readable error message
            field: Name of the offending input (e.g., 'question', 'source_id')
        """
        super().__init__(message)
        self.field = field

# FeedRec/errors.py


class FeedRecError(Exception):
    """Base class for errors raised by the recommendation core."""


class ValidationError(FeedRecError, ValueError):
    """Malformed or missing input. Reported before any external call."""


class DimensionalityMismatchError(ValidationError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"embedding dimensionality mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class EmbeddingGenerationError(FeedRecError):
    def __init__(self, reason: str = ""):
        message = "embedding generation failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NotFoundError(FeedRecError, LookupError):
    pass


class UpstreamError(FeedRecError):
    """A store, index or embedding API could not be reached."""

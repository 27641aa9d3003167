"""Validation and precondition errors raised by the matching engine.

All of these are deterministic input-shape failures. None of them is retried;
the caller decides how to present them (e.g. ask the user to retake photos).
"""

from __future__ import annotations


class EngineError(ValueError):
    """Base class for every error the engine raises on bad input."""

    @property
    def kind(self) -> str:
        """Stable name of the error kind, used in API error bodies."""
        return type(self).__name__


class MissingEmbedding(EngineError):
    """A sample or query has no usable embedding."""

    def __init__(self, reason: str = "embedding is required") -> None:
        self.reason = reason
        super().__init__(reason)


class DimensionMismatch(EngineError):
    """An embedding does not have the expected number of dimensions."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding must have {expected} dimensions, got {actual}")


class InsufficientSamples(EngineError):
    """Too few samples with a detected face to enroll a profile."""

    def __init__(self, actual: int, required: int) -> None:
        self.actual = actual
        self.required = required
        super().__init__(f"Need at least {required} samples with a detected face, got {actual}")


class InvalidThreshold(EngineError):
    """Threshold is not a number in [0, 1]."""

    def __init__(self, threshold: object) -> None:
        self.threshold = threshold
        super().__init__(f"Threshold must be between 0 and 1, got {threshold!r}")

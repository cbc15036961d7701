"""
Error types raised by the engine.

Everything that can be recovered numerically (singular fits, short
histories, out-of-band vitals) is absorbed inside the engine. Only malformed
input shapes and caller-level history guards surface as exceptions.
"""


class ClinicastError(Exception):
    """Base class for engine errors."""


class MalformedInputError(ClinicastError, ValueError):
    """Input shape is inconsistent (ragged rows, ambiguous ordering, mixed signals or subjects)."""


class InsufficientHistoryError(ClinicastError):
    """Not enough history to train a model for the subject."""

    def __init__(self, message: str, required: int, available: int):
        super().__init__(message)
        self.required = required
        self.available = available


class SingularMatrixError(ClinicastError, ArithmeticError):
    """Matrix has no usable pivot. Internal to the regression trainer."""

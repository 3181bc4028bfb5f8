"""
Exception types raised by the estimation engine.

Both concrete errors derive from ValueError so callers that already
guard regression calls with ``except ValueError`` keep working.
"""


class EngineError(ValueError):
    """Base class for all engine errors."""


class SingularMatrixError(EngineError):
    """
    Matrix could not be inverted.

    Raised by the Gauss-Jordan inverse when the best available pivot is
    numerically zero. In a fit this usually means collinear predictors or
    too few observations relative to the number of variables.
    """

    def __init__(self, message: str = "Matrix is singular or nearly singular",
                 pivot: float = 0.0, column: int = -1):
        super().__init__(message)
        self.pivot = pivot
        self.column = column


class InvalidArgumentError(EngineError):
    """Malformed configuration or input, detected before any matrix work."""


__all__ = ["EngineError", "SingularMatrixError", "InvalidArgumentError"]

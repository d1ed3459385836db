"""
Error types raised by the epochmatrix core.

- ShapeError          : a matrix was initialized from rows that are not square
- EmptyCatalogError   : an epoch catalog was built from an empty epoch list
- SanityError         : loaded data is inconsistent across datasets/labels
- AbortError          : an asynchronous load of an update cycle failed

ShapeError, EmptyCatalogError and SanityError are raised synchronously where
the problem is detected. AbortError wraps the failing load's exception
(available as ``__cause__``) and stops the whole update cycle.
"""

from __future__ import annotations


class EpochMatrixError(Exception):
    """Base class for all errors raised by this package."""


class ShapeError(EpochMatrixError, ValueError):
    pass


class EmptyCatalogError(EpochMatrixError, ValueError):
    pass


class SanityError(EpochMatrixError, ValueError):
    pass


class AbortError(EpochMatrixError, RuntimeError):
    """
    Raised when any load of an update cycle fails.

    Parameters
    ----------
    cycle_id : int
        Identifier of the aborted update cycle.
    message : str
        Human readable reason.
    """

    def __init__(self, cycle_id: int, message: str) -> None:
        super().__init__(f"Update cycle {cycle_id} aborted: {message}")
        self.cycle_id = cycle_id

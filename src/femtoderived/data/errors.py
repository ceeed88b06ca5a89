"""Typed exceptions raised by the data model.

Invalid rows are rejected when a production batch is committed, by raising
a :class:`CommitError`. Once committed, rows are trusted; inconsistencies
found by downstream checks are reported as :class:`DataQualityError`.
"""

from typing import List


class FemtoError(Exception):
    """Base exception for all data model errors."""


class CommitError(FemtoError):
    """Raised when a batch cannot be committed because a row is invalid."""


class InvalidEnumError(CommitError):
    """Raised when an enumerated tag is outside of its closed enumeration."""


class DanglingReferenceError(CommitError):
    """Raised when an index points to a row which does not exist (yet)."""


class ChildrenCycleError(CommitError):
    """Raised when the children relation has a self-reference or a cycle."""

    def __init__(self, cycle_path: List[int]):
        """Initialize with the cycle path.

        Parameters
        ----------
        cycle_path : List[int]
            List of particle indexes showing the cycle
        """
        self.cycle_path = cycle_path
        cycle_str = " -> ".join(str(i) for i in cycle_path)
        super().__init__(f"Cycle detected in the children relation: {cycle_str}")


class LabelRangeError(CommitError):
    """Raised when a truth label points outside of the truth table."""


class CompanionLengthError(CommitError):
    """Raised when a 1:1 companion table does not match its owner length."""


class ColumnValueError(CommitError, ValueError):
    """Raised when a value cannot be stored in its fixed-width column."""


class WriteOnceError(FemtoError):
    """Raised when a write-once attribute or a closed container is written."""


class DataQualityError(FemtoError):
    """Raised when committed data fails a downstream consistency check."""

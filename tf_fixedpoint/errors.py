"""Errors raised by fixed-point tensor operations.

All of them signal a violated precondition and are raised before the
destination of an operation is written.
"""


class FixedPointError(Exception):
    """Base class for errors raised by this package."""


class ShapeMismatch(FixedPointError, ValueError):
    """Operand or destination shapes violate an operation's contract."""


class PlacementMismatch(FixedPointError, ValueError):
    """Operands reside on different devices."""


class IndexOutOfRange(FixedPointError, IndexError):
    """Slice bounds fall outside the first axis."""


class UnsupportedRank(FixedPointError, ValueError):
    """An operand does not have a rank the operation accepts."""

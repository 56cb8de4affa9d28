from functools import reduce
from typing import List
from typing import Tuple


prod = lambda xs: reduce(lambda x, y: x * y, xs, 1)


def wrap(value: int, nbits: int, signed: bool = True) -> int:
    """Reduce `value` modulo 2**nbits into the range of the word type."""
    value &= (1 << nbits) - 1
    if signed and value >= 1 << (nbits - 1):
        value -= 1 << nbits
    return value


def low_bits_mask(width: int, nbits: int, signed: bool = True) -> int:
    """Word with exactly `width` low-order one-bits.

    A width of zero (or less) gives an all-zero mask, while a width of
    `nbits` gives all ones, which for signed words is -1.
    """
    if width <= 0:
        return 0
    return wrap((1 << min(width, nbits)) - 1, nbits, signed)


def as_batched(shape: List[int]) -> Tuple[int, int, int]:
    """View a matrix shape as [batch, rows, cols]; rank-2 counts as batch 1."""
    if len(shape) == 2:
        return (1, shape[0], shape[1])
    return tuple(shape)

"""
Exceptions raised by the crop kernels.

Every checked precondition of a crop or crop-gradient invocation fails with
one of these errors. They subclass built-in exceptions so callers can catch
them either by their precise type or as ``ValueError``/``IndexError``.
"""
from typing import Optional, Sequence


class ShapeMismatchError(ValueError):
    """
    Raised when shapes, ranks or offset lengths are inconsistent.

    Attributes
    ----------
    expected : tuple or int or None
        The value that was required (a shape, a rank or a length).
    actual : tuple or int or None
        The value that was supplied.
    """

    def __init__(self, message: str, expected=None, actual=None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class UnsupportedRankError(ValueError):
    """
    Raised when a kernel is invoked on a tensor whose rank has no specialization.

    Attributes
    ----------
    op : str
        Name of the operation that was dispatched.
    rank : int
        Rank that was requested.
    supported : tuple[int, ...]
        Ranks that do have a specialization.
    """

    def __init__(self, op: str, rank: int, supported: Sequence[int]) -> None:
        lo, hi = min(supported), max(supported)
        super().__init__(f"{op}: rank {rank} is not supported, only ranks {lo} to {hi} are.")
        self.op = op
        self.rank = rank
        self.supported = tuple(supported)


class OffsetRangeError(IndexError):
    """
    Raised when a crop window does not fit inside the full-size tensor.

    Attributes
    ----------
    axis : int
        Axis on which the window falls outside the tensor.
    offset : int
        Offset requested on that axis.
    extent : int or None
        Size of the window on that axis.
    size : int or None
        Size of the full tensor on that axis.
    """

    def __init__(self, axis: int, offset: int, extent: Optional[int] = None, size: Optional[int] = None) -> None:
        if offset < 0:
            msg = f"Offset {offset} on axis {axis} is negative."
        else:
            msg = (f"Window [{offset}, {offset + extent}) on axis {axis} "
                   f"does not fit in a dimension of size {size}.")
        super().__init__(msg)
        self.axis = axis
        self.offset = offset
        self.extent = extent
        self.size = size

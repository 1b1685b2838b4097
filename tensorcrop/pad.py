"""
Signed per-axis padding, the primitive behind crop and its gradient.

A pad descriptor holds one ``(low, high)`` pair per axis. Negative amounts
remove that many leading/trailing elements, positive amounts insert zeros.
Cropping is a pad with non-positive amounts; scattering a gradient back to
the full-size tensor is a pad with non-negative amounts.
"""
import logging
from typing import Any, Sequence, Tuple

from tensorcrop.errors import OffsetRangeError, ShapeMismatchError

logger = logging.getLogger(__name__)

PadDescriptor = Tuple[Tuple[int, int], ...]


def _check_offsets(
    full_dims: Sequence[int],
    window_dims: Sequence[int],
    offsets: Sequence[int],
    check_bounds: bool,
) -> None:
    if len(offsets) != len(full_dims):
        raise ShapeMismatchError(
            "Offsets size should be equal to dimension size of input tensor.",
            expected=len(full_dims), actual=len(offsets),
        )
    if len(window_dims) != len(full_dims):
        raise ShapeMismatchError(
            f"Rank mismatch between tensors of shape {tuple(full_dims)} and {tuple(window_dims)}.",
            expected=len(full_dims), actual=len(window_dims),
        )
    if not check_bounds:
        return
    for axis, (size, extent, offset) in enumerate(zip(full_dims, window_dims, offsets)):
        if offset < 0:
            raise OffsetRangeError(axis, offset)
        if offset + extent > size:
            raise OffsetRangeError(axis, offset, extent, size)


def check_rank(rank: int, *arrays: Any) -> None:
    """Verify every array in ``arrays`` has exactly ``rank`` axes."""
    for a in arrays:
        if a.ndim != rank:
            raise ShapeMismatchError(
                f"Expected a rank {rank} tensor, got shape {tuple(a.shape)}.",
                expected=rank, actual=a.ndim,
            )


def crop_paddings(
    x_dims: Sequence[int],
    out_dims: Sequence[int],
    offsets: Sequence[int],
    check_bounds: bool = True,
) -> PadDescriptor:
    """
    Build the descriptor that crops ``x_dims`` down to ``out_dims``.

    Parameters
    ----------
    x_dims : sequence of int
        Shape of the input tensor.
    out_dims : sequence of int
        Shape of the cropped output.
    offsets : sequence of int
        Start of the window inside the input, one entry per axis.
    check_bounds : bool, default=True
        Reject negative offsets and windows that overrun the input.

    Returns
    -------
    tuple of (int, int)
        ``(-offsets[i], -(x_dims[i] - out_dims[i] - offsets[i]))`` per axis.

    Raises
    ------
    ShapeMismatchError
        If ``offsets`` or ``out_dims`` do not have one entry per axis of ``x_dims``.
    OffsetRangeError
        If ``check_bounds`` and the window does not fit.
    """
    _check_offsets(x_dims, out_dims, offsets, check_bounds)
    return tuple(
        (-o, -(x - s - o)) for x, s, o in zip(x_dims, out_dims, offsets)
    )


def crop_grad_paddings(
    d_x_dims: Sequence[int],
    d_out_dims: Sequence[int],
    offsets: Sequence[int],
    check_bounds: bool = True,
) -> PadDescriptor:
    """
    Build the descriptor that places a ``d_out_dims`` gradient inside ``d_x_dims``.

    The sign convention is the opposite of :func:`crop_paddings`: the amounts
    are ``(offsets[i], d_x_dims[i] - d_out_dims[i] - offsets[i])`` and insert
    zeros around the gradient. Validation is the same as for the forward pass.
    """
    _check_offsets(d_x_dims, d_out_dims, offsets, check_bounds)
    return tuple(
        (o, x - s - o) for x, s, o in zip(d_x_dims, d_out_dims, offsets)
    )


def padded_shape(shape: Sequence[int], paddings: PadDescriptor) -> Tuple[int, ...]:
    """Shape that results from applying ``paddings`` to an array of ``shape``."""
    return tuple(n + lo + hi for n, (lo, hi) in zip(shape, paddings))


def pad(src: Any, paddings: PadDescriptor, out: Any) -> Any:
    """
    Apply a signed pad descriptor to ``src`` and write the result into ``out``.

    Parameters
    ----------
    src : numpy.ndarray or cupy.ndarray
        Source array. It is never modified.
    paddings : tuple of (int, int)
        One ``(low, high)`` pair per axis of ``src``.
    out : numpy.ndarray or cupy.ndarray
        Pre-allocated destination on the same backend as ``src``. Every
        element is written. It must not share memory with ``src``.

    Returns
    -------
    numpy.ndarray or cupy.ndarray
        ``out``, for chaining.

    Raises
    ------
    ShapeMismatchError
        If ``paddings`` does not have one pair per axis of ``src``, or if
        ``out.shape`` differs from ``src.shape + low + high``.

    Notes
    -----
    - Negative amounts become a slice into ``src``, positive amounts a slice
      into ``out``; the kept block is copied with one vectorized assignment,
      so the work runs as a single backend kernel on CPU or GPU.
    - When any amount is positive, ``out`` is zero-filled first.
    """
    if len(paddings) != src.ndim:
        raise ShapeMismatchError(
            f"Pad descriptor has {len(paddings)} entries for a rank {src.ndim} array.",
            expected=src.ndim, actual=len(paddings),
        )
    expected = padded_shape(src.shape, paddings)
    if tuple(out.shape) != expected:
        raise ShapeMismatchError(
            f"Output shape {tuple(out.shape)} does not match padded shape {expected}.",
            expected=expected, actual=tuple(out.shape),
        )
    if any(n < 0 for n in expected):
        raise ShapeMismatchError(f"Pad descriptor {paddings} yields negative extents.", actual=expected)

    src_index = []
    out_index = []
    for n, (lo, hi) in zip(src.shape, paddings):
        src_start = max(-lo, 0)
        src_stop = n - max(-hi, 0)
        out_start = max(lo, 0)
        kept = max(src_stop - src_start, 0)
        src_index.append(slice(src_start, src_start + kept))
        out_index.append(slice(out_start, out_start + kept))

    logger.debug("pad %s -> %s with %s", tuple(src.shape), expected, paddings)
    if any(lo > 0 or hi > 0 for lo, hi in paddings):
        out.fill(0)
    out[tuple(out_index)] = src[tuple(src_index)]
    return out

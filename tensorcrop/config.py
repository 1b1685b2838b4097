from typing import Optional

from tensorcrop.tensor import _normalize_device

bounds_check = True
"""bool: Whether crop offsets are validated against the tensor extents.

Toggled by the :class:``unchecked_bounds`` context manager. When ``False``,
the kernels still verify ranks and the output shape of every pad, but they
no longer reject negative offsets or windows that overrun the input up front.
"""

default_device = "cpu"
"""str: Device used by :class:``ExecutionContext`` when none is given."""


class unchecked_bounds:
    """
    Context manager that temporarily disables offset range validation.

    Examples
    --------
    >>> with unchecked_bounds():
    ...     out = crop(x, offsets=[1, 1], shape=[2, 2])

    Notes
    -----
    Nesting is safe; the previous value of ``bounds_check`` is restored on exit.
    """
    def __enter__(self):
        global bounds_check
        self.prev = bounds_check
        bounds_check = False

    def __exit__(self, *args):
        global bounds_check
        bounds_check = self.prev


def set_default_device(device: Optional[str]) -> str:
    """
    Set the device used by execution contexts created without one.

    Parameters
    ----------
    device : {'cpu', 'cuda', 'cuda:0', ...} or None
        Device specifier. ``None`` resets to ``'cpu'``.

    Returns
    -------
    str
        The normalized device that is now the default.

    Raises
    ------
    ValueError
        If ``device`` is not a recognized device string.
    """
    global default_device
    default_device = _normalize_device(device) or "cpu"
    return default_device

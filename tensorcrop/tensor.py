from typing import Any, Iterable, Optional, Literal, Sequence, Tuple, Union

import numpy as np
try:
    import cupy as cp
    _HAS_CUPY = True
except Exception:
    cp = None
    _HAS_CUPY = False

def _is_cupy_array(x: Any) -> bool:
    """True when CuPy is importable and ``x`` is a ``cupy.ndarray``."""
    return _HAS_CUPY and isinstance(x, cp.ndarray)

_DeviceStr = Literal["cpu", "cuda"]
def _normalize_device(device: Optional[Union[str, _DeviceStr]]) -> Optional[_DeviceStr]:
    """
    Map a user-facing device string onto ``'cpu'`` or ``'cuda'``.

    Parameters
    ----------
    device : str or None
        ``'cpu'``, ``'cuda'`` or an indexed form such as ``'cuda:1'``
        (the index is dropped). ``None`` passes through unchanged.

    Returns
    -------
    {'cpu', 'cuda', None}

    Raises
    ------
    ValueError
        For any other value, e.g. ``'gpu'``.

    Examples
    --------
    >>> _normalize_device('CUDA:1')
    'cuda'
    """
    if device is None:
        return None
    if isinstance(device, str):
        dev = device.lower()
        if dev.startswith("cuda"):
            return "cuda"
        if dev == "cpu":
            return "cpu"
    raise ValueError(f"Unknown device spec: {device!r}")

def _backend_for(device: Optional[str]) -> Any:
    """
    Array module serving ``device``: NumPy for CPU (and ``None``), CuPy for CUDA.

    Raises
    ------
    RuntimeError
        If CUDA is requested but CuPy cannot be imported.
    """
    if (_normalize_device(device) or "cpu") == "cuda":
        if not _HAS_CUPY:
            raise RuntimeError("CUDA requested but CuPy is not installed/available.")
        return cp
    return np

_grad_enabled = True
"""bool: When False, new tensors neither require gradients nor record parents.

Flipped by :class:``no_grad``.
"""

class no_grad:
    """
    Context manager under which no autograd graph is recorded.

    Examples
    --------
    >>> with no_grad():
    ...     y = x.crop([1, 1], [2, 2])
    >>> y.requires_grad
    False

    Notes
    -----
    Contexts may be nested; leaving one restores whatever mode was active
    when it was entered.
    """
    def __enter__(self):
        global _grad_enabled
        self.prev = _grad_enabled
        _grad_enabled = False

    def __exit__(self, *args):
        global _grad_enabled
        _grad_enabled = self.prev

class Tensor:
    """
    Dense N-dimensional array on a NumPy (CPU) or CuPy (CUDA) backend.

    Each instance keeps its backend module in ``self.backend`` so that ops
    can stay device-agnostic. When gradient tracking is on, ops link their
    results to their inputs and :meth:``backward`` walks those links in
    reverse topological order.

    Notes
    -----
    - Data is stored as ``float32`` unless ``dtype`` says otherwise.
    - ``.grad`` is created as zeros at construction time for tensors that
      require gradients, so contributions can always be added in place.
    """
    def __init__(
        self,
        data: Any,
        _prev: Iterable["Tensor"] = (),
        requires_grad: bool = False,
        device: Optional[str] = None,
        dtype: Optional[Any] = None,
    ) -> None:
        """
        Wrap ``data`` as a tensor.

        Parameters
        ----------
        data : array-like
            Nested lists, a scalar, a ``numpy.ndarray`` or a ``cupy.ndarray``.
        _prev : Iterable[Tensor], optional
            Internal: tensors this one was computed from.
        requires_grad : bool, default False
            Accumulate gradients into ``.grad`` during backpropagation.
            Ignored inside :class:``no_grad``.
        device : {'cpu', 'cuda', 'cuda:0', ...} or None, optional
            Where to store the data. ``None`` keeps CuPy arrays on the GPU and
            puts everything else on the CPU.
        dtype : data-type or None, optional
            Element type; ``float32`` by default.

        Raises
        ------
        RuntimeError
            If CUDA is requested but CuPy cannot be imported.
        ValueError
            If ``device`` is not a recognized device string.
        """
        dev = _normalize_device(device)
        if dev is None:
            dev = "cuda" if _is_cupy_array(data) else "cpu"

        backend = _backend_for(dev)
        if dev == "cpu" and _is_cupy_array(data):
            data = cp.asnumpy(data)
        data = backend.asarray(data, dtype=dtype if dtype is not None else backend.float32)

        self.backend = backend
        self.data = data
        self.requires_grad = bool(requires_grad) and _grad_enabled
        self.grad = self.backend.zeros_like(self.data) if self.requires_grad else None

        self._backward = lambda: None
        self._prev = set(_prev) if _grad_enabled else set()

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    @property
    def dtype(self) -> Union[np.dtype, str]:
        return self.data.dtype

    @property
    def ndim(self) -> int:
        """int: Rank of the tensor."""
        return self.data.ndim

    @property
    def device(self) -> _DeviceStr:
        """str: ``'cuda'`` for CuPy-backed tensors, otherwise ``'cpu'``."""
        return "cuda" if (_HAS_CUPY and self.backend is cp) else "cpu"

    def sum(self) -> "Tensor":
        """
        Sum of all elements, as a 0-d tensor.

        The backward pass broadcasts the scalar upstream gradient to every
        element of ``self``.
        """
        out = Tensor(self.backend.sum(self.data), _prev=(self,), requires_grad=self.requires_grad, dtype=self.dtype)

        def _backward():
            Tensor._accumulate_grad(self, self.backend.broadcast_to(out.grad, self.data.shape))
        out._backward = _backward

        return out

    def crop(
        self,
        offsets: Sequence[int],
        shape: Sequence[int],
    ) -> "Tensor":
        """
        Extract the window of size ``shape`` starting at ``offsets``.

        Parameters
        ----------
        offsets : sequence of int
            Start index of the window along every axis. Must have one entry
            per axis of ``self``.
        shape : sequence of int
            Extent of the window along every axis.

        Returns
        -------
        Tensor
            New tensor of shape ``shape`` holding a copy of the window.
            ``requires_grad`` follows ``self``.

        Raises
        ------
        ShapeMismatchError
            If ``len(offsets)`` or ``len(shape)`` differs from ``self.ndim``.
        UnsupportedRankError
            If ``self.ndim`` is outside 1..6.
        OffsetRangeError
            If the window does not fit inside ``self`` (bounds checking on).

        Notes
        -----
        - Crop is a linear selection, so its gradient is zero-padding: the
          backward pass places ``out.grad`` at ``offsets`` inside a zero
          tensor shaped like ``self`` and accumulates it into ``self.grad``.
        - Equivalent to ``x[o0:o0+s0, o1:o1+s1, ...]`` in NumPy/PyTorch.

        Examples
        --------
        >>> x = Tensor(np.arange(16).reshape(4, 4), requires_grad=True)
        >>> y = x.crop([1, 1], [2, 2])
        >>> y.data
        array([[ 5.,  6.],
               [ 9., 10.]], dtype=float32)
        """
        from tensorcrop.ops import crop, crop_grad

        offsets = [int(o) for o in offsets]
        out_data = crop(self, offsets, shape=shape).data
        out = Tensor(out_data, _prev=(self,), requires_grad=self.requires_grad, dtype=self.dtype)

        def _backward():
            g = crop_grad(Tensor(out.grad, dtype=self.dtype), offsets, self.shape)
            Tensor._accumulate_grad(self, g.data)

        out._backward = _backward
        return out

    def backward(
        self,
        gradient: Optional[Any] = None,
    ) -> None:
        """
        Propagate gradients from this tensor to every tracked ancestor.

        Parameters
        ----------
        gradient : array-like, optional
            Upstream gradient, shaped like ``self``. Defaults to ones, so
            non-scalar tensors can be backpropagated as if summed.

        Raises
        ------
        RuntimeError
            If ``self.requires_grad`` is False.
        """
        if not self.requires_grad:
            raise RuntimeError("Tensor does not require gradient")
        if gradient is None:
            self.grad = self.backend.ones_like(self.data)
        else:
            self.grad = self.backend.asarray(gradient, dtype=self.data.dtype)

        order = []
        seen = set()

        def visit(t):
            if t in seen:
                return
            seen.add(t)
            for parent in t._prev:
                visit(parent)
            order.append(t)

        visit(self)

        for t in reversed(order):
            if t.requires_grad:
                t._backward()

    def zero_grad(self) -> None:
        """Replace ``.grad`` with zeros (no-op for tensors without gradients)."""
        if self.requires_grad:
            self.grad = self.backend.zeros_like(self.data)

    def __repr__(self) -> str:
        body = self.backend.array2string(self.data, separator=', ', prefix='tensor(')
        return f"tensor({body}, dtype={self.dtype}, requires_grad={self.requires_grad}, device='{self.device}')"

    def to(
        self,
        device: str,
    ) -> "Tensor":
        """
        Move data and gradient to ``device`` in place.

        Parameters
        ----------
        device : str
            ``"cpu"`` switches the backend to NumPy, ``"cuda"`` to CuPy.

        Returns
        -------
        Tensor
            ``self``, for chaining.

        Raises
        ------
        RuntimeError
            If CUDA is requested but CuPy cannot be imported.
        """
        dev = _normalize_device(device)
        if dev is None or dev == self.device:
            return self
        xp = _backend_for(dev)
        if dev == "cpu":
            self.data = cp.asnumpy(self.data)
            self.grad = cp.asnumpy(self.grad) if self.grad is not None else None
        else:
            self.data = cp.asarray(self.data)
            self.grad = cp.asarray(self.grad) if self.grad is not None else None
        self.backend = xp
        return self

    def xp(self) -> Any:
        """Return the current array backend (NumPy or CuPy)."""
        return self.backend

    @staticmethod
    def _accumulate_grad(
        tensor: "Tensor",
        grad: Any,
    ) -> None:
        """
        Add ``grad`` into ``tensor.grad``.

        Gradients add up across every path through which ``tensor``
        reaches the output; tensors that do not require gradients are left
        untouched.
        """
        if not tensor.requires_grad:
            return
        if tensor.grad is None:
            tensor.grad = tensor.backend.array(grad)
        else:
            tensor.grad += grad

    @staticmethod
    def zeros(
        *shape: int,
        requires_grad: bool = False,
        device: Optional[str] = "cpu",
        dtype: Optional[Any] = None,
    ) -> "Tensor":
        """
        Create a tensor filled with zeros.

        Parameters
        ----------
        *shape : int
            Shape of the output tensor.
        requires_grad : bool, default=False
            Track operations on the tensor for automatic differentiation.
        device : str or None, default="cpu"
            ``"cpu"`` or ``"cuda"``.
        dtype : data-type or None, optional
            Element type, ``float32`` by default.
        """
        xp = _backend_for(device)
        data = xp.zeros(shape, dtype=dtype if dtype is not None else xp.float32)
        return Tensor(data, requires_grad=requires_grad, dtype=data.dtype)

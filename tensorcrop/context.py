from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from tensorcrop import config
from tensorcrop.errors import ShapeMismatchError
from tensorcrop.tensor import Tensor, _backend_for, _normalize_device

GRAD_SUFFIX = "@GRAD"


def grad_var_name(name: str) -> str:
    """Return the name under which the gradient of variable ``name`` is stored."""
    return name + GRAD_SUFFIX


class ExecutionContext:
    """
    Tensors, attributes and device of a single operator invocation.

    Kernels read their inputs and attributes from the context and obtain
    their outputs from it; they never allocate storage themselves.

    Parameters
    ----------
    inputs : mapping of str to Tensor
        Input tensors by role name (e.g. ``"X"``, ``"Out@GRAD"``).
    attrs : mapping of str to Any, optional
        Operator attributes (e.g. ``{"offsets": [1, 1]}``).
    device : {'cpu', 'cuda', ...} or None, optional
        Default device for outputs, ``config.default_device`` when omitted.
    output_shapes : mapping of str to sequence of int, optional
        Shapes of outputs known up front.

    Attributes
    ----------
    outputs : dict[str, Tensor]
        Outputs allocated so far through :meth:``output``.
    """
    def __init__(
        self,
        inputs: Mapping[str, Tensor],
        attrs: Optional[Mapping[str, Any]] = None,
        device: Optional[str] = None,
        output_shapes: Optional[Mapping[str, Sequence[int]]] = None,
    ) -> None:
        self.inputs: Dict[str, Tensor] = dict(inputs)
        self.attrs: Dict[str, Any] = dict(attrs or {})
        self.device = _normalize_device(device) or config.default_device
        self.outputs: Dict[str, Tensor] = {}
        self._output_shapes: Dict[str, Tuple[int, ...]] = {}
        for name, shape in (output_shapes or {}).items():
            self.set_output_shape(name, shape)

    def has_input(self, name: str) -> bool:
        return name in self.inputs

    def input(self, name: str) -> Tensor:
        """
        Return the input tensor registered as ``name``.

        Raises
        ------
        KeyError
            If no such input was supplied.
        """
        try:
            return self.inputs[name]
        except KeyError:
            raise KeyError(f"Input {name!r} not found; available inputs: {sorted(self.inputs)}") from None

    def set_output_shape(self, name: str, shape: Sequence[int]) -> None:
        self._output_shapes[name] = tuple(int(s) for s in shape)

    def output_shape(self, name: str) -> Optional[Tuple[int, ...]]:
        return self._output_shapes.get(name)

    def output(
        self,
        name: str,
        shape: Optional[Sequence[int]] = None,
        dtype: Optional[Any] = None,
        device: Optional[str] = None,
    ) -> Tensor:
        """
        Return the output tensor ``name``, allocating it on first access.

        Parameters
        ----------
        name : str
            Output role name (e.g. ``"Out"``, ``"X@GRAD"``).
        shape : sequence of int, optional
            Shape to allocate. Overrides a previously declared shape.
        dtype : data-type or None, optional
            Element type of the allocation, ``float32`` by default. Kernels
            pass the dtype of the tensor whose data they copy.
        device : str or None, optional
            Device of the allocation, ``self.device`` by default.

        Returns
        -------
        Tensor
            Uninitialized output.

        Raises
        ------
        ShapeMismatchError
            If no shape was given or declared for ``name``.
        """
        if name in self.outputs:
            return self.outputs[name]
        if shape is not None:
            self.set_output_shape(name, shape)
        shape = self.output_shape(name)
        if shape is None:
            raise ShapeMismatchError(f"Shape of output {name!r} is unknown.")

        xp = _backend_for(_normalize_device(device) or self.device)
        if dtype is None:
            dtype = xp.float32
        out = Tensor(xp.empty(shape, dtype=dtype), dtype=dtype)
        self.outputs[name] = out
        return out

    def attr_ints(self, name: str, default: Optional[Sequence[int]] = None) -> List[int]:
        """
        Read attribute ``name`` as a list of ints.

        Raises
        ------
        KeyError
            If the attribute is missing and no ``default`` is given.
        """
        if name not in self.attrs:
            if default is None:
                raise KeyError(f"Attribute {name!r} not found.")
            return [int(v) for v in default]
        return [int(v) for v in self.attrs[name]]

    def backend(self) -> Any:
        """Return the array module (NumPy or CuPy) for ``self.device``."""
        return _backend_for(self.device)

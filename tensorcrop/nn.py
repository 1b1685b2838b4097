from typing import Any, List, Sequence
from tensorcrop.tensor import Tensor

class Module:
    """
    Base class for layers.

    Submodules assigned as attributes are registered automatically via
    :meth:`__setattr__`. The public API mirrors a minimal subset of PyTorch's
    ``torch.nn.Module``.
    """
    def __init__(self) -> None:
        self._modules = {}
        self.training = True

    def modules(self) -> List["Module"]:
        """Return this module followed by all submodules, depth first."""
        mods = [self]
        for module in self._modules.values():
            mods.extend(module.modules())
        return mods

    def train(self, mode: bool = True) -> "Module":
        """
        Set training mode for this module and all submodules.

        Returns
        -------
        Module
            ``self`` (to allow chaining).
        """
        self.training = mode
        for module in self._modules.values():
            module.train(mode)
        return self

    def eval(self) -> "Module":
        """Set evaluation mode for this module and all submodules."""
        return self.train(False)

    def __setattr__(self, name: str, value: Any) -> None:
        if isinstance(value, Module):
            self._modules[name] = value
        super().__setattr__(name, value)

    def extra_repr(self) -> str:
        return ""

    def __repr__(self):
        lines = [f"{self.__class__.__name__}({self.extra_repr()}"]
        for name, module in self._modules.items():
            mod_repr = "\n    ".join(repr(module).splitlines())
            lines.append(f"  ({name}): {mod_repr}")
        if len(lines) == 1:
            return lines[0] + ")"
        lines.append(")")
        return "\n".join(lines)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.forward(*args, **kwargs)

    def forward(self, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError


class Crop(Module):
    """
    Crop every input to a fixed window.

    Parameters
    ----------
    offsets : sequence of int
        Start of the window along every axis of the input.
    shape : sequence of int
        Extent of the window along every axis.

    Notes
    -----
    Input rank must equal ``len(offsets)`` and lie in 1..6. Gradients flow
    back through :meth:`Tensor.crop`.

    Examples
    --------
    >>> layer = Crop(offsets=(0, 0, 2, 2), shape=(8, 3, 28, 28))
    >>> y = layer(x)    # x: (8, 3, 32, 32)
    """
    def __init__(self, offsets: Sequence[int], shape: Sequence[int]) -> None:
        super().__init__()
        self.offsets = tuple(int(o) for o in offsets)
        self.shape = tuple(int(s) for s in shape)

    def extra_repr(self) -> str:
        return f"offsets={self.offsets}, shape={self.shape}"

    def forward(self, x: Tensor) -> Tensor:
        return x.crop(self.offsets, self.shape)

"""
Crop operator kernels.

``CropKernel`` copies a window of ``X`` into ``Out``; ``CropGradKernel``
scatters ``Out@GRAD`` back into a zero-filled ``X@GRAD``. Both look up the
tensor rank at run time and hand the context to a rank-specialized function
through a :class:`~tensorcrop.dispatch.RankDispatcher`.
"""
import logging
from typing import Optional, Sequence

from tensorcrop import config
from tensorcrop.context import ExecutionContext, grad_var_name
from tensorcrop.dispatch import RankDispatcher
from tensorcrop.errors import ShapeMismatchError
from tensorcrop.pad import check_rank, crop_grad_paddings, crop_paddings, pad
from tensorcrop.tensor import Tensor

logger = logging.getLogger(__name__)


def infer_crop_shape(context: ExecutionContext) -> tuple:
    """
    Determine and declare the shape of ``Out``.

    The shape is taken from the reference input ``Y`` when present, else
    from the ``shape`` attribute.

    Raises
    ------
    ShapeMismatchError
        If neither source is available, or the shape does not have one entry
        per axis of ``X``.
    """
    x = context.input("X")
    if context.has_input("Y"):
        shape = context.input("Y").shape
    elif "shape" in context.attrs:
        shape = tuple(context.attr_ints("shape"))
    else:
        raise ShapeMismatchError("Crop needs either a reference input 'Y' or a 'shape' attribute.")

    if len(shape) != x.ndim:
        raise ShapeMismatchError(
            "Shape size should be equal to dimension size of input tensor.",
            expected=x.ndim, actual=len(shape),
        )
    context.set_output_shape("Out", shape)
    return shape


def _crop_function(context: ExecutionContext, rank: int) -> None:
    x = context.input("X")
    out = context.output("Out", dtype=x.dtype, device=x.device)
    check_rank(rank, x.data, out.data)

    offsets = context.attr_ints("offsets", default=[0] * rank)
    paddings = crop_paddings(x.shape, out.shape, offsets, check_bounds=config.bounds_check)
    logger.debug("crop %s -> %s at offsets %s", x.shape, out.shape, offsets)
    pad(x.data, paddings, out.data)


def _crop_grad_function(context: ExecutionContext, rank: int) -> None:
    d_out = context.input(grad_var_name("Out"))
    d_x = context.output(grad_var_name("X"), dtype=d_out.dtype, device=d_out.device)
    check_rank(rank, d_out.data, d_x.data)

    offsets = context.attr_ints("offsets", default=[0] * rank)
    paddings = crop_grad_paddings(d_x.shape, d_out.shape, offsets, check_bounds=config.bounds_check)
    logger.debug("crop_grad %s -> %s at offsets %s", d_out.shape, d_x.shape, offsets)
    pad(d_out.data, paddings, d_x.data)


class CropKernel:
    """
    Forward crop: ``Out = X[offsets : offsets + Out.shape]``.

    Inputs ``X`` (and optionally ``Y``), attributes ``offsets`` and ``shape``,
    output ``Out``.
    """
    dispatch = RankDispatcher("crop", _crop_function)

    def compute(self, context: ExecutionContext) -> Tensor:
        if context.output_shape("Out") is None:
            infer_crop_shape(context)
        self.dispatch(context, context.input("X").ndim)
        return context.output("Out")


class CropGradKernel:
    """
    Backward crop: ``X@GRAD`` is zero except for ``Out@GRAD`` at ``offsets``.

    The shape of ``X@GRAD`` is the shape of input ``X`` unless declared on
    the context beforehand.
    """
    dispatch = RankDispatcher("crop_grad", _crop_grad_function)

    def compute(self, context: ExecutionContext) -> Tensor:
        d_x_name = grad_var_name("X")
        if context.output_shape(d_x_name) is None:
            context.set_output_shape(d_x_name, context.input("X").shape)
        self.dispatch(context, context.input(grad_var_name("Out")).ndim)
        return context.output(d_x_name)


def crop(
    x: Tensor,
    offsets: Optional[Sequence[int]] = None,
    shape: Optional[Sequence[int]] = None,
    y: Optional[Tensor] = None,
) -> Tensor:
    """
    Crop ``x`` to ``shape`` (or to the shape of ``y``) starting at ``offsets``.

    Parameters
    ----------
    x : Tensor
        Input of rank 1 to 6.
    offsets : sequence of int, optional
        Start of the window along every axis. Defaults to all zeros.
    shape : sequence of int, optional
        Output shape. Ignored when ``y`` is given.
    y : Tensor, optional
        Reference tensor whose shape is the output shape.

    Returns
    -------
    Tensor
        Newly allocated tensor on the device of ``x``. Not tracked by
        autograd; use :meth:`Tensor.crop` for that.
    """
    inputs = {"X": x}
    if y is not None:
        inputs["Y"] = y
    attrs: dict = {}
    if offsets is not None:
        attrs["offsets"] = list(offsets)
    if shape is not None:
        attrs["shape"] = list(shape)

    context = ExecutionContext(inputs, attrs, device=x.device)
    return CropKernel().compute(context)


def crop_grad(
    d_out: Tensor,
    offsets: Sequence[int],
    x_shape: Sequence[int],
) -> Tensor:
    """
    Scatter ``d_out`` into a zero tensor of shape ``x_shape`` at ``offsets``.

    Returns
    -------
    Tensor
        Gradient with respect to the crop input, on the device of ``d_out``.
    """
    context = ExecutionContext(
        {grad_var_name("Out"): d_out},
        {"offsets": list(offsets)},
        device=d_out.device,
        output_shapes={grad_var_name("X"): x_shape},
    )
    return CropGradKernel().compute(context)

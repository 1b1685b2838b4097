import numpy as np
import pytest

from tensorcrop import config
from tensorcrop.config import set_default_device
from tensorcrop.context import ExecutionContext, grad_var_name
from tensorcrop.errors import ShapeMismatchError
from tensorcrop.ops import CropKernel, infer_crop_shape
from tests.utils import make_tensor, tdata, assert_close


def test_grad_var_name():
    assert grad_var_name("X") == "X@GRAD"
    assert grad_var_name("Out") == "Out@GRAD"


def test_missing_input_names_available_inputs():
    context = ExecutionContext({"X": make_tensor(np.zeros(3), requires_grad=False)})
    with pytest.raises(KeyError, match="available inputs"):
        context.input("Y")


def test_output_is_allocated_once_on_context_device(device):
    x = make_tensor(np.zeros((2, 2)), requires_grad=False, device=device)
    context = ExecutionContext({"X": x}, device=device)

    out = context.output("Out", shape=(3, 1))

    assert out.shape == (3, 1)
    assert out.dtype == np.float32
    assert out.device == device
    assert context.output("Out") is out
    assert context.outputs == {"Out": out}


def test_output_without_shape_fails():
    context = ExecutionContext({})
    with pytest.raises(ShapeMismatchError, match="unknown"):
        context.output("Out")


def test_attr_ints_reads_and_defaults():
    context = ExecutionContext({}, {"offsets": (1.0, 2, np.int64(3))})

    assert context.attr_ints("offsets") == [1, 2, 3]
    assert context.attr_ints("shape", default=(4, 5)) == [4, 5]
    with pytest.raises(KeyError):
        context.attr_ints("shape")


def test_device_is_explicit_or_config_default():
    assert ExecutionContext({}).device == config.default_device
    assert ExecutionContext({}, device="cuda:1").device == "cuda"

    x = make_tensor(np.zeros(2), requires_grad=False, device="cpu")
    assert ExecutionContext({"X": x}).device == "cpu"
    assert ExecutionContext({"X": x}).backend() is np


def test_set_default_device_validates():
    assert set_default_device(None) == "cpu"
    with pytest.raises(ValueError, match="Unknown device spec"):
        set_default_device("tpu")
    assert config.default_device == "cpu"


def test_infer_crop_shape_prefers_reference_input():
    x = make_tensor(np.zeros((5, 5)), requires_grad=False)
    y = make_tensor(np.zeros((2, 4)), requires_grad=False)
    context = ExecutionContext({"X": x, "Y": y}, {"shape": [1, 1]})

    assert infer_crop_shape(context) == (2, 4)
    assert context.output_shape("Out") == (2, 4)


def test_infer_crop_shape_requires_a_source():
    context = ExecutionContext({"X": make_tensor(np.zeros((5, 5)), requires_grad=False)})
    with pytest.raises(ShapeMismatchError, match="reference input"):
        infer_crop_shape(context)


def test_infer_crop_shape_rank_must_match():
    context = ExecutionContext(
        {"X": make_tensor(np.zeros((5, 5)), requires_grad=False)}, {"shape": [2, 2, 2]},
    )
    with pytest.raises(ShapeMismatchError, match="Shape size"):
        infer_crop_shape(context)


def test_crop_kernel_uses_declared_output_shape(rng, device):
    x_np = rng.normal(size=(4, 6)).astype(np.float32)
    context = ExecutionContext(
        {"X": make_tensor(x_np, requires_grad=False, device=device)},
        {"offsets": [1, 2]},
        output_shapes={"Out": (3, 2)},
    )

    out = CropKernel().compute(context)

    assert context.outputs["Out"] is out
    assert_close(tdata(out), x_np[1:4, 2:4])


def test_crop_kernel_offsets_length_mismatch_fails(rng):
    context = ExecutionContext(
        {"X": make_tensor(rng.normal(size=(4, 6)), requires_grad=False)},
        {"offsets": [1], "shape": [2, 2]},
    )
    with pytest.raises(ShapeMismatchError, match="Offsets size") as excinfo:
        CropKernel().compute(context)
    assert (excinfo.value.expected, excinfo.value.actual) == (2, 1)


def test_output_takes_requested_dtype_and_device(device):
    context = ExecutionContext({"Y": make_tensor(np.zeros(2), requires_grad=False)})

    out = context.output("Out", shape=(2,), dtype=np.int64, device=device)

    assert out.dtype == np.int64
    assert out.device == device

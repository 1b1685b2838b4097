import numpy as np

from tensorcrop.nn import Crop, Module
from tests.utils import make_tensor, make_torch, tdata, assert_close, assert_grad_close


class _TwoCrops(Module):
    def __init__(self):
        super().__init__()
        self.outer = Crop(offsets=(0, 1, 1), shape=(2, 4, 4))
        self.inner = Crop(offsets=(1, 1, 0), shape=(1, 2, 3))

    def forward(self, x):
        return self.inner(self.outer(x))


def test_crop_layer_forward_backward(rng, device):
    x_np = rng.normal(size=(2, 3, 6, 6)).astype(np.float32)

    xt = make_torch(x_np, requires_grad=True)
    x = make_tensor(x_np, requires_grad=True, device=device)

    layer = Crop(offsets=(0, 1, 2, 1), shape=(2, 2, 3, 4))
    yt = xt[:, 1:3, 2:5, 1:5]
    y = layer(x)

    yt.sum().backward()
    y.sum().backward()

    assert_close(tdata(y), yt.detach().cpu().numpy())
    assert_grad_close(x, xt)


def test_nested_crop_layers_compose(rng, device):
    x_np = rng.normal(size=(3, 5, 6)).astype(np.float32)

    xt = make_torch(x_np, requires_grad=True)
    x = make_tensor(x_np, requires_grad=True, device=device)

    model = _TwoCrops()
    yt = xt[0:2, 1:5, 1:5][1:2, 1:3, 0:3]
    y = model(x)

    yt.sum().backward()
    y.sum().backward()

    assert_close(tdata(y), yt.detach().cpu().numpy())
    assert_grad_close(x, xt)


def test_train_eval_propagates_and_repr():
    model = _TwoCrops()

    model.eval()
    assert all(m.training is False for m in model.modules())
    model.train()
    assert all(m.training is True for m in model.modules())

    assert repr(Crop((1, 2), (3, 4))) == "Crop(offsets=(1, 2), shape=(3, 4))"
    assert "(outer): Crop(offsets=(0, 1, 1), shape=(2, 4, 4))" in repr(model)

import numpy as np
import pytest
import importlib

from tensorcrop import config

@pytest.fixture
def rng():
    return np.random.default_rng(0)

def _has_cupy():
    return importlib.util.find_spec("cupy") is not None

@pytest.fixture(params=["cpu", "cuda"])
def device(request):
    if request.param == "cuda" and not _has_cupy():
        pytest.skip("cupy not installed")
    return request.param

@pytest.fixture(autouse=True)
def _restore_config():
    bounds_check, default_device = config.bounds_check, config.default_device
    yield
    config.bounds_check, config.default_device = bounds_check, default_device

import numpy as np
import pytest

from deepzoom.api import DeepZoomViewer, RenderConfig
from deepzoom.core.orbit import WorldPoint, evaluate_orbit


@pytest.fixture
def config():
    return RenderConfig(width=800, height=600, seed=0, backend='numpy')


@pytest.fixture
def viewer(config):
    return DeepZoomViewer(config)


@pytest.fixture
def small_config():
    return RenderConfig(width=32, height=24, seed=0, backend='numpy')


@pytest.fixture
def cardioid_orbit():
    """Bounded orbit of c = -0.75 (the cusp between the two largest bulbs)."""
    result = evaluate_orbit(WorldPoint(-0.75, 0.0))
    assert result.escape_iteration is None
    return result.orbit


@pytest.fixture
def rng():
    return np.random.default_rng(1234)

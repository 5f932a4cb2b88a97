import numpy as np
import pytest

from models.raster import Raster


def make_gray(values, alpha=255):
    """Серый растр из двумерного массива значений."""
    values = np.asarray(values, dtype=np.uint8)
    pixels = np.empty(values.shape + (4,), dtype=np.uint8)
    pixels[..., :3] = values[..., np.newaxis]
    pixels[..., 3] = alpha
    return Raster(pixels)


@pytest.fixture
def random_raster():
    rng = np.random.default_rng(42)
    return Raster(rng.integers(0, 256, size=(7, 9, 4), dtype=np.uint8))


@pytest.fixture
def gradient_4x4():
    # Значение пикселя: 10 * (y * 4 + x)
    return make_gray(np.arange(16).reshape(4, 4) * 10)

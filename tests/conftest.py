# tests/conftest.py
from __future__ import annotations

import numpy as np
import pytest

from astroconv.kernels import gaussian_kernel


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)


@pytest.fixture
def noise_image(rng) -> np.ndarray:
    """Small random image without blank pixels."""
    return rng.random((16, 16))


@pytest.fixture
def gauss5() -> np.ndarray:
    """5x5 normalized Gaussian kernel."""
    return gaussian_kernel(1.0, radius=2)


@pytest.fixture
def asymmetric_kernel() -> np.ndarray:
    """3x5 kernel with no symmetry, to catch flips and transposes."""
    return np.arange(1.0, 16.0).reshape(3, 5)

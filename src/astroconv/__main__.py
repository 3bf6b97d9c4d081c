"""
Self-check for the astroconv package.

Usage
-----
$ python -m astroconv
"""

import logging

import numpy as np

from . import __version__
from .convolve import convolve, make_kernel
from .kernels import gaussian_kernel


def _diagnostics():
    logging.basicConfig(level=logging.INFO, format="  %(message)s")
    print(f"astroconv image convolution toolkit v{__version__}\n")

    rng = np.random.default_rng(0)
    img = rng.random((64, 48))
    ker = gaussian_kernel(1.5)

    print("Spatial vs frequency domain:")
    y_sp = convolve(img, ker, domain="spatial", edge_correction=False, num_threads=2)
    y_fr = convolve(img, ker, domain="frequency", num_threads=2)
    print(f"  max difference: {np.max(np.abs(y_sp - y_fr)):.2e}")

    print("\nKernel making:")
    sharp = np.zeros((32, 32))
    sharp[16, 16] = 1.0
    blurry = convolve(sharp, ker, domain="frequency", num_threads=2)
    k_est = make_kernel(blurry, sharp, radius=ker.shape[0] // 2 + 1, num_threads=2)
    print(f"  made kernel shape: {k_est.shape}, sum: {k_est.sum():.6f}")
    print(f"  max difference to input kernel: {np.max(np.abs(k_est - ker)):.2e}")


if __name__ == "__main__":
    _diagnostics()

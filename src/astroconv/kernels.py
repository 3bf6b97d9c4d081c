# src/astroconv/kernels.py
"""Kernel checks, preparation (normalize, flip) and simple kernel builders."""
from __future__ import annotations

from typing import Optional

import numpy as np

__all__ = [
    "check_kernel",
    "normalize_kernel",
    "flip_kernel",
    "prepare_kernel",
    "gaussian_kernel",
    "delta_kernel",
]


ArrayLike = np.ndarray


# ---------------------------------------------------------------------------
# Checks and preparation
# ---------------------------------------------------------------------------

def check_kernel(kernel: ArrayLike, ndim: Optional[int] = None) -> ArrayLike:
    """
    Return `kernel` as a float64 array after checking its shape.

    Parameters
    ----------
    kernel : array_like
        Kernel to check.
    ndim : int | None
        Required number of dimensions (that of the image).

    Raises
    ------
    ValueError
        If the kernel is empty, has the wrong number of dimensions, or an
        even size along any axis (there must be a single central pixel).
    """
    ker = np.asarray(kernel, dtype=np.float64)
    if ker.size == 0:
        raise ValueError("Kernel is empty")
    if ndim is not None and ker.ndim != ndim:
        raise ValueError(
            f"Kernel has {ker.ndim} dimensions but the image has {ndim}, shape {ker.shape}"
        )
    if any(s % 2 == 0 for s in ker.shape):
        raise ValueError(
            "The kernel has to have an odd number of pixels on every side (there has "
            f"to be one pixel in the centre), got shape {ker.shape}"
        )
    return ker


def normalize_kernel(kernel: ArrayLike) -> ArrayLike:
    """
    Copy of `kernel` with blank (NaN) pixels set to zero, divided by its sum.
    """
    ker = np.nan_to_num(np.asarray(kernel, dtype=np.float64), nan=0.0, copy=True)
    s = ker.sum()
    if s == 0.0 or not np.isfinite(s):
        raise ValueError(f"Kernel sum is {s!r}, it can't be normalized")
    return ker / s


def flip_kernel(kernel: ArrayLike) -> ArrayLike:
    """Copy of `kernel` rotated by 180 degrees (sample order reversed)."""
    ker = np.asarray(kernel)
    return ker[(slice(None, None, -1),) * ker.ndim].copy()


def prepare_kernel(
    kernel: ArrayLike,
    ndim: Optional[int] = None,
    normalize: bool = True,
    flip: bool = True,
) -> ArrayLike:
    """
    Check the kernel, zero its blank pixels, then normalize and flip it.

    The input array is never modified.
    """
    ker = check_kernel(kernel, ndim)
    if normalize:
        ker = normalize_kernel(ker)
    else:
        ker = np.nan_to_num(ker, nan=0.0, copy=True)
    if flip:
        ker = flip_kernel(ker)
    return ker


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def gaussian_kernel(
    sigma: float,
    ndim: int = 2,
    radius: Optional[int] = None,
    truncate: float = 3.0,
) -> ArrayLike:
    """
    Isotropic Gaussian kernel of ``2*radius + 1`` pixels per side, summing to 1.

    Parameters
    ----------
    sigma : float
        Standard deviation in pixels.
    ndim : int
        Number of dimensions (1, 2 or 3).
    radius : int | None
        Half width. If None, ``round(truncate * sigma)`` (at least 1).
    truncate : float
        Truncation in standard deviations when `radius` is None.
    """
    if sigma <= 0:
        raise ValueError("sigma must be positive")
    if ndim not in (1, 2, 3):
        raise ValueError(f"ndim must be 1, 2 or 3, got {ndim!r}")
    if radius is None:
        radius = max(1, int(round(truncate * sigma)))

    x = np.arange(-radius, radius + 1, dtype=np.float64)
    g = np.exp(-0.5 * (x / sigma) ** 2)

    k = g
    for _ in range(ndim - 1):
        k = np.multiply.outer(k, g)
    return k / k.sum()


def delta_kernel(ndim: int = 2) -> ArrayLike:
    """Single-pixel kernel of value 1: convolving with it changes nothing."""
    if ndim not in (1, 2, 3):
        raise ValueError(f"ndim must be 1, 2 or 3, got {ndim!r}")
    return np.ones((1,) * ndim, dtype=np.float64)

# src/astroconv/core/spatial.py
"""Direct (spatial domain) convolution that respects blank pixels."""
from __future__ import annotations

import logging

import numpy as np

from astroconv.core.box import kernel_box, overlap
from astroconv.core.threads import run_in_threads

__all__ = [
    "convolve_spatial",
]

logger = logging.getLogger(__name__)

ArrayLike = np.ndarray


def _check_inputs(img: ArrayLike, ker: ArrayLike) -> None:
    if img.ndim not in (1, 2, 3):
        raise ValueError(f"Only 1D, 2D or 3D images are supported, got shape {img.shape}")
    if ker.ndim != img.ndim:
        raise ValueError(
            f"Kernel ({ker.ndim}D) and image ({img.ndim}D) must have the same "
            "number of dimensions"
        )
    if img.size == 0 or ker.size == 0:
        raise ValueError("Image and kernel must not be empty")
    if any(k % 2 == 0 for k in ker.shape):
        raise ValueError(f"Kernel must have an odd size on every axis, got {ker.shape}")


def _element_strides(shape) -> np.ndarray:
    strides = np.ones(len(shape), dtype=np.intp)
    for d in range(len(shape) - 2, -1, -1):
        strides[d] = strides[d + 1] * shape[d + 1]
    return strides


def _convolve_on_thread(
    indexs: np.ndarray,
    img: ArrayLike,
    ker: ArrayLike,
    edge_correction: bool,
    out: ArrayLike,
) -> None:
    """
    Convolve the pixels in `indexs` (flat, row-major) and write them to `out`.

    Every pixel accumulates over the kernel elements in the same order, so
    the result does not depend on how the pixels were split between threads.
    """
    n = indexs.size
    if n == 0:
        return

    flat = img.reshape(-1)
    values = flat[indexs]

    coords = np.array(np.unravel_index(indexs, img.shape), dtype=np.intp)
    fpixel_i, lpixel_i = kernel_box(coords, ker.shape)
    ov = overlap(img.shape, fpixel_i, lpixel_i)

    strides = _element_strides(img.shape)
    half = np.asarray(ker.shape, dtype=np.intp) // 2

    total = np.zeros(n, dtype=np.float64)
    ksum = np.zeros(n, dtype=np.float64) if edge_correction else np.ones(n, dtype=np.float64)

    for kidx in np.ndindex(*ker.shape):
        k = np.asarray(kidx, dtype=np.intp)
        kcol = k[:, None]
        inside = np.all((kcol >= ov.fpixel_o) & (kcol <= ov.lpixel_o), axis=0)
        if not inside.any():
            continue

        sel = np.flatnonzero(inside)
        v = flat[indexs[sel] + int(np.dot(k - half, strides))]
        good = ~np.isnan(v)
        sel = sel[good]

        w = ker[kidx]
        total[sel] += w * v[good]
        if edge_correction:
            ksum[sel] += w

    res = np.full(n, np.nan, dtype=np.float64)
    np.divide(total, ksum, out=res, where=ksum != 0.0)

    # A blank pixel stays blank.
    res[np.isnan(values)] = np.nan

    out.reshape(-1)[indexs] = res


def convolve_spatial(
    image: ArrayLike,
    kernel: ArrayLike,
    edge_correction: bool = True,
    numthreads: int = 1,
) -> ArrayLike:
    """
    Convolve `image` with `kernel` directly in the spatial domain.

    For each output pixel the kernel is centred on it and only the part
    that overlaps the image is used. Blank (NaN) input samples are skipped.

    Parameters
    ----------
    image : ndarray, 1D/2D/3D
        Input image. NaN marks blank pixels. Not modified.
    kernel : ndarray
        Kernel with an odd size on every axis and the same number of
        dimensions as `image`. It is applied as given: element ``k`` weighs
        the image sample at ``p + k - centre``, so callers wanting a true
        convolution pass a flipped kernel.
    edge_correction : bool
        If True, divide each pixel by the sum of the kernel weights that
        were actually used (kernel parts outside the image or on blank
        pixels are excluded). This removes the darkening at the edges. If
        False, the missing parts count as zeros.
    numthreads : int
        Number of threads to split the pixels between.

    Returns
    -------
    out : ndarray of float64, same shape as `image`
        Convolved image. A pixel is NaN if it was blank in the input, or if
        no kernel weight could be used for it under edge correction.
    """
    img = np.ascontiguousarray(image, dtype=np.float64)
    ker = np.ascontiguousarray(kernel, dtype=np.float64)
    _check_inputs(img, ker)

    out = np.empty(img.shape, dtype=np.float64)
    logger.debug(
        "Spatial convolution of %s image with %s kernel on %d threads",
        img.shape, ker.shape, numthreads,
    )
    run_in_threads(_convolve_on_thread, img.size, numthreads, img, ker, bool(edge_correction), out)
    return out

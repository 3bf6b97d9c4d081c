# src/astroconv/core/frequency.py
"""Frequency domain convolution and deconvolution (kernel making)."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

import numpy as np

from astroconv.core.fft import (
    FFTContext,
    complex_divide,
    complex_multiply,
    complex_to_real,
    make_padded_complex,
    padded_sizes,
    two_dimension_fft,
)
from astroconv.timing import report_timing

ArrayLike = np.ndarray

__all__ = [
    "CONV_FLOATING_POINT_ERR",
    "DEFAULT_MIN_SHARP_SPEC",
    "remove_padding",
    "correct_deconvolve",
    "convolve_frequency",
]

logger = logging.getLogger(__name__)

# Anything smaller than this after the inverse transform is round-off.
CONV_FLOATING_POINT_ERR = 1e-10

DEFAULT_MIN_SHARP_SPEC = 0.005


# ---------------------------------------------------------------------------
# Post-processing of the padded spatial array
# ---------------------------------------------------------------------------

def remove_padding(
    rpad: ArrayLike,
    isize: Sequence[int],
    ksize: Sequence[int],
    make_kernel: Optional[int] = None,
) -> ArrayLike:
    """
    Crop the padded real array back to the output region.

    In convolution the output starts at ``(ksize - 1) / 2`` on each axis
    (the kernel sizes are odd, so this is exact) and has the image size.
    In make-kernel mode the output is the central ``2 * radius - 1`` pixels
    on every axis where that is smaller than the image.

    Values whose magnitude is within :data:`CONV_FLOATING_POINT_ERR` of zero
    are set to exactly 0.
    """
    rpad = np.asarray(rpad, dtype=np.float64)
    ps = rpad.shape
    start = []
    width = []
    for d in range(2):
        if make_kernel:
            mkwidth = 2 * int(make_kernel) - 1
            if mkwidth < isize[d]:
                start.append(ps[d] // 2 - int(make_kernel))
                width.append(mkwidth)
            else:
                start.append(0)
                width.append(int(isize[d]))
        else:
            start.append((int(ksize[d]) - 1) // 2)
            width.append(int(isize[d]))

    out = rpad[start[0]:start[0] + width[0], start[1]:start[1] + width[1]].copy()
    out[np.abs(out) <= CONV_FLOATING_POINT_ERR] = 0.0
    return out


def correct_deconvolve(pimg: ArrayLike, radius: int) -> ArrayLike:
    """
    Centre and normalize the inverse transform of a spectral division.

    The division result is periodic with the zero offset on pixel (0, 0).
    Pixels are moved so that offset lands on ``(ps0/2 - 1, ps1/2 - 1)``::

        i' = i - (ps0/2 + 1)   if i > ps0/2
        i' = i + ps0/2 - 1     otherwise

    (same for the second axis). The spectrum (magnitude) of each sample is
    kept if it lies closer than `radius` to that centre and set to 0
    otherwise. Finally the array is divided by its sum.

    Parameters
    ----------
    pimg : ndarray (complex), even sides
        Inverse transform of the divided spectra.
    radius : int
        Radius of the kernel to make.

    Returns
    -------
    ndarray of float64, same shape as `pimg`
    """
    ps0, ps1 = pimg.shape
    if ps0 % 2 or ps1 % 2:
        raise ValueError(f"Padded sides must be even for deconvolution, got {pimg.shape}")

    s = complex_to_real(pimg, "spectrum")

    i = np.arange(ps0)
    j = np.arange(ps1)
    ii = np.where(i > ps0 // 2, i - (ps0 // 2 + 1), i + ps0 // 2 - 1)
    jj = np.where(j > ps1 // 2, j - (ps1 // 2 + 1), j + ps1 // 2 - 1)
    ci, cj = ps0 // 2 - 1, ps1 // 2 - 1

    r = np.sqrt(((ii - ci) ** 2)[:, None] + ((jj - cj) ** 2)[None, :])

    n = np.zeros((ps0, ps1), dtype=np.float64)
    n[np.ix_(ii, jj)] = np.where(r < radius, s, 0.0)

    total = n.sum()
    if total == 0.0:
        logger.warning(
            "Deconvolution left no signal within radius %d; the kernel is blank", radius
        )
        return np.full((ps0, ps1), np.nan)
    return n / total


# ---------------------------------------------------------------------------
# Frequency domain convolution
# ---------------------------------------------------------------------------

def _check_inputs(img: ArrayLike, ker: ArrayLike, make_kernel: Optional[int]) -> None:
    if img.ndim != 2:
        raise ValueError(
            f"Frequency domain convolution supports 1D and 2D images, got shape {img.shape}"
        )
    if ker.ndim != img.ndim:
        raise ValueError(f"Kernel shape {ker.shape} does not match image shape {img.shape}")
    if img.size == 0 or ker.size == 0:
        raise ValueError("Image and kernel must not be empty")
    if np.isnan(img).any():
        raise ValueError(
            "The image has blank (NaN) pixels: in the frequency domain every output "
            "pixel would become blank. Use spatial domain convolution instead."
        )
    if np.isnan(ker).any():
        raise ValueError("The kernel has blank (NaN) pixels")

    if make_kernel is None:
        if any(k % 2 == 0 for k in ker.shape):
            raise ValueError(f"Kernel must have an odd size on every axis, got {ker.shape}")
    else:
        if int(make_kernel) < 1:
            raise ValueError(f"make_kernel radius must be a positive integer, got {make_kernel!r}")
        if img.shape != ker.shape:
            raise ValueError(
                "To make a kernel, the blurry and sharp images must have the same size, "
                f"got {img.shape} and {ker.shape}"
            )


def convolve_frequency(
    image: ArrayLike,
    kernel: ArrayLike,
    numthreads: int = 1,
    make_kernel: Optional[int] = None,
    min_sharp_spec: float = DEFAULT_MIN_SHARP_SPEC,
    steps: Optional[Dict[str, ArrayLike]] = None,
) -> ArrayLike:
    """
    Convolve (or deconvolve) through the Fourier transform.

    Pipeline: pad → forward FFT of image and kernel → multiply (or divide)
    → inverse FFT → real part (or centred, normalized spectrum) → crop.

    Parameters
    ----------
    image : ndarray, 1D or 2D
        Input image, without blank pixels. In make-kernel mode, the blurry
        image. Not modified.
    kernel : ndarray
        Kernel with odd sides, used as given (multiplication of spectra is
        already a true convolution). In make-kernel mode, the sharp image,
        with the same shape as `image`.
    numthreads : int
        Threads used for the row and column transforms.
    make_kernel : int | None
        If given, divide the spectra instead and return a kernel of this
        radius that turns the sharp image into the blurry one. Both images
        should already be divided by their sums.
    min_sharp_spec : float
        Deconvolution only: frequencies where the sharp image's spectrum is
        not above this value are set to zero.
    steps : dict | None
        If given, the intermediate arrays are stored in it by name:
        ``"input padded"``, ``"kernel padded"``, ``"input transformed"``,
        ``"kernel transformed"``, ``"multiplied"`` or ``"divided"`` and
        ``"padded output"``.

    Returns
    -------
    ndarray of float64
        Same shape as `image` for convolution; at most ``2*radius - 1`` on
        each axis in make-kernel mode.
    """
    img = np.asarray(image, dtype=np.float64)
    ker = np.asarray(kernel, dtype=np.float64)

    one_dim = img.ndim == 1
    if one_dim:
        if ker.ndim != 1:
            raise ValueError(f"Kernel shape {ker.shape} does not match image shape {img.shape}")
        img = img.reshape(1, -1)
        ker = ker.reshape(1, -1)
    _check_inputs(img, ker, make_kernel)

    with report_timing(logger, "Input and Kernel images padded."):
        ps0, ps1 = padded_sizes(img.shape, ker.shape, make_kernel=bool(make_kernel))
        ctx = FFTContext(
            pimg=make_padded_complex(img, ps0, ps1),
            pker=make_padded_complex(ker, ps0, ps1),
        )
    if steps is not None:
        steps["input padded"] = complex_to_real(ctx.pimg, "real")
        steps["kernel padded"] = complex_to_real(ctx.pker, "real")

    with report_timing(logger, "Images converted to frequency domain."):
        two_dimension_fft(ctx, numthreads)
    if steps is not None:
        steps["input transformed"] = complex_to_real(ctx.pimg, "spectrum")
        steps["kernel transformed"] = complex_to_real(ctx.pker, "spectrum")

    operation = "divided" if make_kernel else "multiplied"
    with report_timing(logger, f"{operation.capitalize()} in the frequency domain."):
        if make_kernel:
            ctx.pimg = complex_divide(ctx.pimg, ctx.pker, min_sharp_spec)
        else:
            ctx.pimg = complex_multiply(ctx.pimg, ctx.pker)
        ctx.pker = None
    if steps is not None:
        steps[operation] = complex_to_real(ctx.pimg, "spectrum")

    with report_timing(logger, "Converted back to the spatial domain."):
        two_dimension_fft(ctx, numthreads, inverse=True)
        if make_kernel:
            rpad = correct_deconvolve(ctx.pimg, int(make_kernel))
        else:
            rpad = complex_to_real(ctx.pimg, "real")
    if steps is not None:
        steps["padded output"] = rpad.copy()

    with report_timing(logger, "Padded parts removed."):
        out = remove_padding(rpad, img.shape, ker.shape, make_kernel)

    return out.reshape(-1) if one_dim else out

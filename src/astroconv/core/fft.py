# src/astroconv/core/fft.py
"""Padded complex buffers, spectral arithmetic and threaded 2D FFT."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Tuple

import numpy as np
from scipy import fft as sp_fft

from astroconv.core.threads import run_in_threads

ArrayLike = np.ndarray
ComplexToReal = Literal["spectrum", "phase", "real"]

__all__ = [
    "MAX_DIVIDED_SPECTRUM",
    "padded_sizes",
    "make_padded_complex",
    "complex_to_real",
    "complex_multiply",
    "complex_divide",
    "FFTContext",
    "two_dimension_fft",
]

logger = logging.getLogger(__name__)

# A properly normalized deconvolution can't have a larger spectrum.
MAX_DIVIDED_SPECTRUM = 1.00001


# ---------------------------------------------------------------------------
# Padding
# ---------------------------------------------------------------------------

def _round_up_even(n: int) -> int:
    return n + 1 if n % 2 else n


def padded_sizes(
    isize: Sequence[int],
    ksize: Sequence[int],
    make_kernel: bool = False,
) -> Tuple[int, int]:
    """
    Sizes of the padded complex arrays for a 2D convolution.

    Each side holds the full linear convolution (``isize + ksize - 1``) so
    there is no wrap-around. In make-kernel mode no padding is added. The
    result is rounded up to even on both axes.

    Parameters
    ----------
    isize, ksize : sequence of two ints
        Image and kernel sizes.
    make_kernel : bool
        Deconvolution mode: pad only to the image size.

    Returns
    -------
    (ps0, ps1) : tuple of int
    """
    if len(isize) != 2 or len(ksize) != 2:
        raise ValueError(f"Expected 2D sizes, got {tuple(isize)} and {tuple(ksize)}")
    if make_kernel:
        ps0, ps1 = int(isize[0]), int(isize[1])
    else:
        ps0 = int(isize[0]) + int(ksize[0]) - 1
        ps1 = int(isize[1]) + int(ksize[1]) - 1
    return _round_up_even(ps0), _round_up_even(ps1)


def make_padded_complex(x: ArrayLike, ps0: int, ps1: int) -> ArrayLike:
    """
    Zero-filled ``(ps0, ps1)`` complex array with `x` in its top-left corner.

    The imaginary parts are all zero. `x` itself is not modified.
    """
    x = np.asarray(x)
    if x.ndim != 2:
        raise ValueError(f"Expected 2D array to pad, got shape {x.shape}")
    if x.shape[0] > ps0 or x.shape[1] > ps1:
        raise ValueError(f"Array of shape {x.shape} does not fit in ({ps0}, {ps1})")
    out = np.zeros((ps0, ps1), dtype=np.complex128)
    out[: x.shape[0], : x.shape[1]].real = x
    return out


# ---------------------------------------------------------------------------
# Complex arithmetic
# ---------------------------------------------------------------------------

def complex_to_real(c: ArrayLike, action: ComplexToReal = "real") -> ArrayLike:
    """
    Real view of a complex array.

    Parameters
    ----------
    c : ndarray (complex)
        Input array.
    action : {"spectrum", "phase", "real"}
        - "spectrum": ``sqrt(re**2 + im**2)``
        - "phase": ``atan2(im, re)``
        - "real": the real part only.

    Returns
    -------
    ndarray of float64
    """
    c = np.asarray(c)
    if action == "spectrum":
        return np.abs(c).astype(np.float64)
    if action == "phase":
        return np.arctan2(c.imag, c.real).astype(np.float64)
    if action == "real":
        return np.array(c.real, dtype=np.float64)
    raise ValueError(f"Unknown complex to real action {action!r}")


def complex_multiply(a: ArrayLike, b: ArrayLike) -> ArrayLike:
    """Elementwise ``(ac - bd) + i(ad + bc)``."""
    return np.multiply(a, b, dtype=np.complex128)


def complex_divide(a: ArrayLike, b: ArrayLike, min_sharp_spec: float) -> ArrayLike:
    """
    Elementwise ``a / b`` for deconvolution.

    Where the spectrum of `b` is not above `min_sharp_spec` the division
    would only amplify noise, so the result is 0 there. Results whose
    spectrum is above :data:`MAX_DIVIDED_SPECTRUM` are also set to 0: with
    both inputs normalized to a zero-frequency value of 1, such bins are
    ill-conditioned.

    Parameters
    ----------
    a, b : ndarray (complex), same shape
        Numerator (blurry image) and denominator (sharp image) spectra.
    min_sharp_spec : float
        Spectral floor of `b`.

    Returns
    -------
    ndarray of complex128
    """
    a = np.asarray(a, dtype=np.complex128)
    b = np.asarray(b, dtype=np.complex128)
    if a.shape != b.shape:
        raise ValueError(f"Spectra must have the same shape, got {a.shape} and {b.shape}")

    out = np.zeros(a.shape, dtype=np.complex128)
    np.divide(a, b, out=out, where=np.abs(b) > min_sharp_spec)
    out[np.abs(out) > MAX_DIVIDED_SPECTRUM] = 0.0
    return out


# ---------------------------------------------------------------------------
# Threaded 2D FFT
# ---------------------------------------------------------------------------

@dataclass
class FFTContext:
    """
    Buffers shared by all the FFT threads of one convolution.

    `pimg` holds the padded image (and, after the spectral step, the
    combined spectrum); `pker` the padded kernel. Threads only ever touch
    the rows or columns they were given.
    """

    pimg: ArrayLike
    pker: Optional[ArrayLike] = None

    def __post_init__(self) -> None:
        if self.pimg.ndim != 2:
            raise ValueError(f"Padded buffers must be 2D, got shape {self.pimg.shape}")
        if self.pker is not None and self.pker.shape != self.pimg.shape:
            raise ValueError(
                f"Padded image {self.pimg.shape} and kernel {self.pker.shape} differ"
            )

    @property
    def ps0(self) -> int:
        return self.pimg.shape[0]

    @property
    def ps1(self) -> int:
        return self.pimg.shape[1]


def _one_dimension_fft(
    indexs: np.ndarray,
    ctx: FFTContext,
    axis: int,
    inverse: bool,
) -> None:
    """
    Transform the rows (``axis=1``) or columns (``axis=0``) in `indexs`.

    Indexes at or beyond the number of rows/columns belong to the kernel
    buffer (forward transform on two arrays).
    """
    maxindex = ctx.ps0 if axis == 1 else ctx.ps1
    transform = sp_fft.ifft if inverse else sp_fft.fft

    on_img = indexs[indexs < maxindex]
    on_ker = indexs[indexs >= maxindex] - maxindex

    for buf, sel in ((ctx.pimg, on_img), (ctx.pker, on_ker)):
        if sel.size == 0:
            continue
        if buf is None:
            raise ValueError("Kernel buffer requested but not present in the FFT context")
        # ifft divides by the transform length.
        if axis == 1:
            buf[sel, :] = transform(buf[sel, :], axis=1, workers=1)
        else:
            buf[:, sel] = transform(buf[:, sel], axis=0, workers=1)


def two_dimension_fft(ctx: FFTContext, numthreads: int = 1, inverse: bool = False) -> None:
    """
    In-place 2D FFT as 1D transforms on every row, then every column.

    The forward transform is applied to both buffers of `ctx` (the work
    items are ``2 * ps0`` rows then ``2 * ps1`` columns); the inverse only
    to ``ctx.pimg``. Each pass is spread over `numthreads` threads and
    finishes on its own barrier before the next one starts.

    Parameters
    ----------
    ctx : FFTContext
        Shared buffers, modified in place.
    numthreads : int
        Number of threads per pass.
    inverse : bool
        Inverse (normalized) transform instead of the forward one.
    """
    multiple = 1 if inverse else 2
    if multiple == 2 and ctx.pker is None:
        raise ValueError("Forward transform needs both the image and kernel buffers")

    run_in_threads(_one_dimension_fft, multiple * ctx.ps0, numthreads, ctx, 1, inverse)
    run_in_threads(_one_dimension_fft, multiple * ctx.ps1, numthreads, ctx, 0, inverse)

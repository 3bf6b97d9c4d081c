# src/astroconv/convolve.py
"""Convolution entry point: checks, kernel preparation and domain dispatch."""
from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

import numpy as np

from astroconv.core.frequency import DEFAULT_MIN_SHARP_SPEC, convolve_frequency
from astroconv.core.spatial import convolve_spatial
from astroconv.kernels import check_kernel, prepare_kernel
from astroconv.timing import report_timing

ArrayLike = np.ndarray
Domain = Literal["spatial", "frequency"]

DOMAINS = ("spatial", "frequency")

__all__ = [
    "Domain",
    "DOMAINS",
    "ConvolveConfig",
    "convolve",
    "make_kernel",
]

logger = logging.getLogger(__name__)


def _default_num_threads() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class ConvolveConfig:
    """
    Options of one convolution.

    Attributes
    ----------
    domain : {"spatial", "frequency"}
        Where to convolve. Only the spatial domain handles blank pixels and
        edge correction; only the frequency domain can make a kernel.
    edge_correction : bool
        Spatial domain: renormalize by the kernel weights actually used.
    make_kernel : int | None
        Radius of the kernel to make by deconvolution. ``None`` (or 0)
        means normal convolution.
    min_sharp_spec : float
        Deconvolution: lowest spectrum of the sharp image that is divided.
    kernel_flip : bool
        True convolution. With False both domains compute the correlation.
    kernel_normalize : bool
        Divide the kernel by its sum.
    num_threads : int
        Number of threads. Defaults to the number of CPUs.
    """

    domain: Domain = "spatial"
    edge_correction: bool = True
    make_kernel: Optional[int] = None
    min_sharp_spec: float = DEFAULT_MIN_SHARP_SPEC
    kernel_flip: bool = True
    kernel_normalize: bool = True
    num_threads: int = field(default_factory=_default_num_threads)

    def __post_init__(self) -> None:
        if self.domain not in DOMAINS:
            raise ValueError(f"Unknown domain {self.domain!r}; expected one of {DOMAINS}")

        if isinstance(self.num_threads, bool) or int(self.num_threads) != self.num_threads:
            raise ValueError(f"num_threads must be an integer, got {self.num_threads!r}")
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be >= 1, got {self.num_threads!r}")

        if not 0.0 <= float(self.min_sharp_spec) <= 1.0:
            raise ValueError(f"min_sharp_spec must be in [0, 1], got {self.min_sharp_spec!r}")

        if self.make_kernel is not None:
            if isinstance(self.make_kernel, bool) or int(self.make_kernel) != self.make_kernel:
                raise ValueError(f"make_kernel must be an integer radius, got {self.make_kernel!r}")
            if self.make_kernel < 0:
                raise ValueError(f"make_kernel must be positive, got {self.make_kernel!r}")
            if self.make_kernel == 0:
                object.__setattr__(self, "make_kernel", None)
            elif self.domain == "spatial":
                raise ValueError(
                    "make_kernel can only be used in the frequency domain, not the "
                    "spatial domain"
                )

    def replace(self, **changes: Any) -> "ConvolveConfig":
        return dataclasses.replace(self, **changes)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _check_image(img: ArrayLike) -> None:
    if img.ndim not in (1, 2, 3):
        raise ValueError(f"Only 1D, 2D or 3D images are supported, got shape {img.shape}")
    if img.size == 0:
        raise ValueError("Image is empty")


def _check_frequency(img: ArrayLike, name: str = "image") -> None:
    if img.ndim > 2:
        raise ValueError(
            f"Frequency domain convolution supports 1D and 2D data, the {name} has "
            f"shape {img.shape}"
        )
    if np.isnan(img).any():
        raise ValueError(
            f"There are blank (NaN) pixels in the {name} and frequency domain "
            "convolution was requested: all the convolved pixels would become "
            "blank. Only spatial domain convolution can account for blank pixels."
        )


def _divide_by_sum(x: ArrayLike, name: str) -> ArrayLike:
    s = x.sum()
    if s == 0.0 or not np.isfinite(s):
        raise ValueError(f"The {name} image sums to {s!r}, it can't be normalized")
    return x / s


def _make_kernel(
    blurry: ArrayLike,
    sharp: ArrayLike,
    cfg: ConvolveConfig,
    steps: Optional[Dict[str, ArrayLike]],
) -> ArrayLike:
    if sharp.shape != blurry.shape:
        raise ValueError(
            "To make a kernel, the input (blurry) image and the sharp image given as "
            f"the kernel must have the same size, got {blurry.shape} and {sharp.shape}"
        )
    _check_frequency(blurry, "blurry image")
    _check_frequency(sharp, "sharp image")

    # Both spectra then have a zero-frequency value of 1.
    blurry = _divide_by_sum(blurry, "blurry")
    sharp = _divide_by_sum(sharp, "sharp")

    logger.info(
        "Making a kernel of radius %d from %s images using %d threads",
        cfg.make_kernel, blurry.shape, cfg.num_threads,
    )
    return convolve_frequency(
        blurry,
        sharp,
        numthreads=cfg.num_threads,
        make_kernel=cfg.make_kernel,
        min_sharp_spec=cfg.min_sharp_spec,
        steps=steps,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def convolve(
    image: ArrayLike,
    kernel: ArrayLike,
    config: Optional[ConvolveConfig] = None,
    steps: Optional[Dict[str, ArrayLike]] = None,
    **options: Any,
) -> ArrayLike:
    """
    Convolve an image with a kernel in the spatial or frequency domain.

    Parameters
    ----------
    image : ndarray, 1D/2D/3D
        Input image, NaN for blank pixels. Not modified. In make-kernel mode
        this is the blurry image.
    kernel : ndarray
        Kernel with an odd size on every axis and the same dimensions as
        `image`. Not modified. In make-kernel mode, the sharp image (same
        shape as `image`).
    config : ConvolveConfig | None
        Options; defaults to ``ConvolveConfig()``.
    steps : dict | None
        Frequency domain only: filled with the intermediate arrays (see
        :func:`astroconv.core.frequency.convolve_frequency`).
    **options
        Overrides for single fields of `config`, e.g. ``domain="frequency"``.

    Returns
    -------
    ndarray of float64
        The convolved image (same shape as `image`), or the made kernel.

    Raises
    ------
    ValueError
        For any invalid option or input, before the convolution starts.
    """
    cfg = config if config is not None else ConvolveConfig()
    if options:
        cfg = cfg.replace(**options)

    img = np.asarray(image, dtype=np.float64)
    _check_image(img)

    if cfg.make_kernel:
        return _make_kernel(img, np.asarray(kernel, dtype=np.float64), cfg, steps)

    ker = check_kernel(kernel, img.ndim)
    if cfg.domain == "frequency":
        _check_frequency(img)

    # Multiplying spectra already flips the kernel once, so the frequency
    # path flips it exactly when the spatial path does not.
    if cfg.domain == "spatial":
        flip = cfg.kernel_flip
    else:
        flip = not cfg.kernel_flip
    ker = prepare_kernel(ker, img.ndim, normalize=cfg.kernel_normalize, flip=flip)

    logger.info(
        "Convolving %s image with %s kernel in the %s domain using %d threads",
        img.shape, ker.shape, cfg.domain, cfg.num_threads,
    )

    if cfg.domain == "spatial":
        with report_timing(logger, "Convolved in the spatial domain."):
            return convolve_spatial(
                img, ker, edge_correction=cfg.edge_correction, numthreads=cfg.num_threads
            )

    return convolve_frequency(img, ker, numthreads=cfg.num_threads, steps=steps)


def make_kernel(
    blurry: ArrayLike,
    sharp: ArrayLike,
    radius: int,
    min_sharp_spec: float = DEFAULT_MIN_SHARP_SPEC,
    num_threads: int = 1,
    steps: Optional[Dict[str, ArrayLike]] = None,
) -> ArrayLike:
    """
    Estimate the kernel that blurs `sharp` into `blurry`.

    Both images are divided by their sums, their spectra divided, and the
    result centred, cut at `radius` and normalized to a total of 1.

    Returns
    -------
    ndarray of float64
        Kernel of ``2*radius - 1`` pixels per side (or the image size when
        that is smaller).
    """
    cfg = ConvolveConfig(
        domain="frequency",
        make_kernel=radius,
        min_sharp_spec=min_sharp_spec,
        num_threads=num_threads,
    )
    if cfg.make_kernel is None:
        raise ValueError(f"radius must be a positive integer, got {radius!r}")
    return convolve(blurry, sharp, cfg, steps=steps)

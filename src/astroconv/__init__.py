"""
astroconv
Spatial and frequency domain convolution of astronomical images.
"""

import logging

# Robust version detection that works even when not installed
try:
    from importlib import metadata as _metadata
except ImportError:  # environment quirks
    _metadata = None  # type: ignore

try:
    __version__ = _metadata.version("astroconv") if _metadata else "0.0.0.dev0"
except Exception:
    # Not installed (dev mode) or no metadata available
    __version__ = "0.0.0.dev0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from . import core, kernels  # noqa: E402
from .convolve import DOMAINS, ConvolveConfig, convolve, make_kernel  # noqa: E402

__all__ = [
    "core",
    "kernels",
    "DOMAINS",
    "ConvolveConfig",
    "convolve",
    "make_kernel",
    "__version__",
]

"""
astroconv.core
==============

Computational primitives behind :func:`astroconv.convolve`.

Submodules
----------
- :mod:`astroconv.core.threads`   : Job distribution between threads, barriers.
- :mod:`astroconv.core.box`       : Overlap of a kernel box with the image.
- :mod:`astroconv.core.spatial`   : Direct convolution with blank pixels.
- :mod:`astroconv.core.fft`       : Padded complex arrays and threaded 2D FFT.
- :mod:`astroconv.core.frequency` : FFT convolution and kernel making.
"""

from .threads import (
    NON_THREAD_INDEX,
    distribute_in_threads,
    thread_indexs,
    make_barrier,
    ThreadPlan,
    run_in_threads,
)
from .box import overlap, kernel_box
from .spatial import convolve_spatial
from .fft import (
    padded_sizes,
    make_padded_complex,
    complex_to_real,
    complex_multiply,
    complex_divide,
    FFTContext,
    two_dimension_fft,
)
from .frequency import (
    CONV_FLOATING_POINT_ERR,
    DEFAULT_MIN_SHARP_SPEC,
    remove_padding,
    correct_deconvolve,
    convolve_frequency,
)

__all__ = [
    # threads
    "NON_THREAD_INDEX",
    "distribute_in_threads",
    "thread_indexs",
    "make_barrier",
    "ThreadPlan",
    "run_in_threads",
    # box
    "overlap",
    "kernel_box",
    # spatial
    "convolve_spatial",
    # fft
    "padded_sizes",
    "make_padded_complex",
    "complex_to_real",
    "complex_multiply",
    "complex_divide",
    "FFTContext",
    "two_dimension_fft",
    # frequency
    "CONV_FLOATING_POINT_ERR",
    "DEFAULT_MIN_SHARP_SPEC",
    "remove_padding",
    "correct_deconvolve",
    "convolve_frequency",
]

# src/astroconv/core/box.py
"""Overlap of a box (e.g. a kernel centred on a pixel) with the image."""
from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np

__all__ = [
    "Overlap",
    "overlap",
    "kernel_box",
]


class Overlap(NamedTuple):
    """
    Inclusive first/last pixels of the overlap, per axis.

    ``fpixel_i``/``lpixel_i`` are coordinates in the image, ``fpixel_o``/
    ``lpixel_o`` the same region in the box's own coordinates. Every field
    has shape ``(ndim, ...)`` where ``...`` is the shape of the inputs.
    """

    fpixel_i: np.ndarray
    lpixel_i: np.ndarray
    fpixel_o: np.ndarray
    lpixel_o: np.ndarray
    empty: np.ndarray


def overlap(dsize: Sequence[int], fpixel_i, lpixel_i) -> Overlap:
    """
    Intersect boxes with the image ``[0, dsize-1]`` on every axis.

    The boxes are given by their inclusive first and last pixels in image
    coordinates and may lie partly (or fully) outside the image. This is a
    plain interval intersection done independently on each axis, vectorised
    so a whole batch of boxes is clipped at once.

    Parameters
    ----------
    dsize : sequence of int
        Image size along each axis (axis 0 slowest).
    fpixel_i, lpixel_i : array_like, shape (ndim, ...)
        First and last pixel of each box.

    Returns
    -------
    Overlap
        Clipped boxes in image and box coordinates. ``empty`` is True where
        the box does not touch the image at all; the other fields are then
        meaningless.
    """
    dsize_a = np.asarray(dsize, dtype=np.intp)
    fpix = np.asarray(fpixel_i, dtype=np.intp)
    lpix = np.asarray(lpixel_i, dtype=np.intp)
    if fpix.shape != lpix.shape or fpix.shape[0] != dsize_a.size:
        raise ValueError(
            f"Box corners {fpix.shape}/{lpix.shape} do not match "
            f"{dsize_a.size} image dimensions"
        )
    if np.any(lpix < fpix):
        raise ValueError("Last pixel of a box is before its first pixel")

    # Broadcast the image size against any trailing batch dimensions.
    last = (dsize_a - 1).reshape((-1,) + (1,) * (fpix.ndim - 1))

    f_i = np.maximum(fpix, 0)
    l_i = np.minimum(lpix, last)

    f_o = f_i - fpix
    l_o = l_i - fpix

    empty = np.any(l_i < f_i, axis=0)
    return Overlap(f_i, l_i, f_o, l_o, empty)


def kernel_box(coords, ksize: Sequence[int]):
    """
    First and last image pixel covered by an odd kernel centred on `coords`.

    Parameters
    ----------
    coords : array_like, shape (ndim, ...)
        Pixel coordinates of the kernel centre.
    ksize : sequence of int
        Kernel size along each axis (odd).
    """
    c = np.asarray(coords, dtype=np.intp)
    half = (np.asarray(ksize, dtype=np.intp) // 2).reshape((-1,) + (1,) * (c.ndim - 1))
    return c - half, c + half

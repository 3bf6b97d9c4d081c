# tests/test_core_spatial.py
import numpy as np
import pytest
from scipy.ndimage import correlate

from astroconv.core.box import kernel_box, overlap
from astroconv.core.spatial import convolve_spatial


def test_overlap_clips_boxes_on_both_sides():
    # 1D image of 10 pixels, boxes of 5 centred on 0, 5 and 9.
    f, l = kernel_box(np.array([[0, 5, 9]]), (5,))
    ov = overlap((10,), f, l)
    np.testing.assert_array_equal(ov.fpixel_i[0], [0, 3, 7])
    np.testing.assert_array_equal(ov.lpixel_i[0], [2, 7, 9])
    np.testing.assert_array_equal(ov.fpixel_o[0], [2, 0, 0])
    np.testing.assert_array_equal(ov.lpixel_o[0], [4, 4, 2])
    assert not ov.empty.any()


def test_overlap_flags_boxes_outside_image():
    ov = overlap((4, 4), np.array([[5], [0]]), np.array([[7], [2]]))
    assert ov.empty.tolist() == [True]


def test_matches_scipy_correlate_without_edge_correction(rng, asymmetric_kernel):
    img = rng.standard_normal((20, 17))
    y = convolve_spatial(img, asymmetric_kernel, edge_correction=False)
    ref = correlate(img, asymmetric_kernel, mode="constant", cval=0.0)
    np.testing.assert_allclose(y, ref, rtol=1e-12, atol=1e-12)


def test_identity_kernel_returns_input(rng):
    img = rng.random((9, 13))
    for edge in (True, False):
        y = convolve_spatial(img, np.ones((1, 1)), edge_correction=edge)
        np.testing.assert_array_equal(y, img)


def test_linearity_on_interior(rng, gauss5):
    i1 = rng.random((24, 24))
    i2 = rng.random((24, 24))
    a, b = 2.5, -0.75
    lhs = convolve_spatial(a * i1 + b * i2, gauss5)
    rhs = a * convolve_spatial(i1, gauss5) + b * convolve_spatial(i2, gauss5)
    np.testing.assert_allclose(lhs[2:-2, 2:-2], rhs[2:-2, 2:-2], rtol=1e-10, atol=1e-12)


def test_edge_correction_keeps_flat_image_flat(gauss5):
    img = np.full((11, 8), 3.0)
    corrected = convolve_spatial(img, gauss5, edge_correction=True)
    np.testing.assert_allclose(corrected, 3.0, rtol=1e-12)

    darkened = convolve_spatial(img, gauss5, edge_correction=False)
    assert darkened[0, 0] < 3.0
    np.testing.assert_allclose(darkened[5, 4], 3.0, rtol=1e-12)


def test_blank_pixels_are_skipped_and_kept_blank():
    img = np.ones((5, 5))
    img[2, 2] = np.nan
    ker = np.ones((3, 3)) / 9.0
    y = convolve_spatial(img, ker, edge_correction=True)
    assert np.isnan(y[2, 2])
    # neighbours ignore the blank pixel and stay at 1 after correction
    np.testing.assert_allclose(y[np.isfinite(y)], 1.0)


def test_fully_blank_neighbourhood_gives_blank_pixel():
    img = np.full((5, 5), np.nan)
    img[2, 2] = 3.0
    ring = np.ones((3, 3))
    ring[1, 1] = 0.0
    with np.errstate(all="raise"):
        y = convolve_spatial(img, ring / ring.sum(), edge_correction=True)
    assert np.all(np.isnan(y))


def test_thread_count_does_not_change_result(rng, gauss5):
    img = rng.random((31, 29))
    img[rng.random(img.shape) < 0.1] = np.nan
    y1 = convolve_spatial(img, gauss5, numthreads=1)
    y8 = convolve_spatial(img, gauss5, numthreads=8)
    np.testing.assert_array_equal(y1, y8)


def test_one_and_three_dimensions(rng):
    x = rng.random(30)
    k = np.array([0.25, 0.5, 0.25])
    y = convolve_spatial(x, k, edge_correction=False, numthreads=3)
    np.testing.assert_allclose(y, correlate(x, k, mode="constant"), atol=1e-12)

    cube = rng.random((6, 7, 8))
    k3 = rng.random((3, 3, 5))
    y3 = convolve_spatial(cube, k3, edge_correction=False, numthreads=4)
    np.testing.assert_allclose(y3, correlate(cube, k3, mode="constant"), atol=1e-12)


def test_input_is_not_modified(rng, gauss5):
    img = rng.random((8, 8))
    img[3, 3] = np.nan
    before = img.copy()
    convolve_spatial(img, gauss5)
    np.testing.assert_array_equal(img, before)


@pytest.mark.parametrize(
    "kernel",
    [np.ones((2, 3)), np.ones(3), np.ones((3, 3, 3))],
)
def test_rejects_bad_kernels(kernel):
    with pytest.raises(ValueError):
        convolve_spatial(np.ones((6, 6)), kernel)

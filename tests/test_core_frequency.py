# tests/test_core_frequency.py
import numpy as np
import pytest
from scipy.signal import fftconvolve

from astroconv.core.frequency import (
    CONV_FLOATING_POINT_ERR,
    convolve_frequency,
    correct_deconvolve,
    remove_padding,
)


def test_matches_scipy_fftconvolve_same(rng, asymmetric_kernel):
    img = rng.standard_normal((21, 18))
    y = convolve_frequency(img, asymmetric_kernel, numthreads=4)
    ref = fftconvolve(img, asymmetric_kernel, mode="same")
    assert y.shape == img.shape
    np.testing.assert_allclose(y, ref, atol=1e-9)


def test_one_dimensional_input(rng):
    x = rng.random(40)
    k = np.array([1.0, 2.0, 3.0, 2.0, 1.0]) / 9.0
    y = convolve_frequency(x, k, numthreads=2)
    assert y.shape == x.shape
    np.testing.assert_allclose(y, np.convolve(x, k, mode="same"), atol=1e-9)


def test_roundoff_is_snapped_to_zero():
    img = np.zeros((12, 12))
    img[6, 6] = 1.0
    ker = np.zeros((3, 3))
    ker[1, 1] = 1.0
    y = convolve_frequency(img, ker)
    assert y[6, 6] == pytest.approx(1.0)
    y[6, 6] = 0.0
    assert np.all(y == 0.0)


def test_remove_padding_offsets():
    rpad = np.arange(100.0).reshape(10, 10)
    out = remove_padding(rpad, (6, 8), (5, 3))
    np.testing.assert_array_equal(out, rpad[2:8, 1:9])

    small = np.full((4, 4), CONV_FLOATING_POINT_ERR / 2)
    assert np.all(remove_padding(small, (4, 4), (1, 1)) == 0.0)


def test_remove_padding_make_kernel_crop():
    rpad = np.arange(400.0).reshape(20, 20)
    out = remove_padding(rpad, (20, 20), (20, 20), make_kernel=3)
    # centre (ps/2 - 1) is in the middle of the 2*3-1 wide crop
    np.testing.assert_array_equal(out, rpad[7:12, 7:12])
    wide = remove_padding(rpad, (20, 20), (20, 20), make_kernel=15)
    assert wide.shape == (20, 20)


def test_correct_deconvolve_centres_and_normalizes():
    pimg = np.zeros((8, 8), dtype=np.complex128)
    pimg[0, 0] = 2.0
    pimg[0, 1] = 1.0
    pimg[7, 0] = 1.0
    out = correct_deconvolve(pimg, radius=3)
    assert out.sum() == pytest.approx(1.0)
    assert out[3, 3] == pytest.approx(0.5)
    assert out[3, 4] == pytest.approx(0.25)
    assert out[2, 3] == pytest.approx(0.25)


def test_correct_deconvolve_cuts_outside_radius():
    pimg = np.zeros((8, 8), dtype=np.complex128)
    pimg[0, 0] = 1.0
    pimg[0, 3] = 1.0  # three pixels from the centre
    out = correct_deconvolve(pimg, radius=2)
    assert out[3, 3] == pytest.approx(1.0)
    assert out.sum() == pytest.approx(1.0)


def test_deconvolution_recovers_kernel(gauss5):
    sharp = np.zeros((32, 32))
    sharp[16, 16] = 1.0
    blurry = convolve_frequency(sharp, gauss5)
    k_est = convolve_frequency(blurry / blurry.sum(), sharp, make_kernel=3)
    assert k_est.shape == (5, 5)
    assert k_est.sum() == pytest.approx(1.0)
    np.testing.assert_allclose(k_est, gauss5, atol=1e-8)


def test_steps_are_recorded(rng, gauss5):
    steps = {}
    img = rng.random((10, 10))
    convolve_frequency(img, gauss5, steps=steps)
    assert set(steps) == {
        "input padded",
        "kernel padded",
        "input transformed",
        "kernel transformed",
        "multiplied",
        "padded output",
    }
    assert steps["input padded"].shape == (14, 14)
    np.testing.assert_array_equal(steps["input padded"][:10, :10], img)


def test_rejects_blank_pixels_and_cubes(gauss5):
    img = np.ones((8, 8))
    img[1, 1] = np.nan
    with pytest.raises(ValueError, match="blank"):
        convolve_frequency(img, gauss5)
    with pytest.raises(ValueError):
        convolve_frequency(np.ones((4, 4, 4)), np.ones((3, 3, 3)))


def test_make_kernel_needs_same_sizes():
    with pytest.raises(ValueError, match="same size"):
        convolve_frequency(np.ones((8, 8)), np.ones((8, 6)), make_kernel=2)


def test_inputs_are_not_modified(rng, gauss5):
    img = rng.random((9, 9))
    before_img, before_ker = img.copy(), gauss5.copy()
    convolve_frequency(img, gauss5, numthreads=2)
    np.testing.assert_array_equal(img, before_img)
    np.testing.assert_array_equal(gauss5, before_ker)

import astroconv
from astroconv import core, kernels
from astroconv.core import convolve_frequency, convolve_spatial, two_dimension_fft


def test_public_api_imports():
    assert isinstance(astroconv.__version__, str)
    assert callable(astroconv.convolve)
    assert callable(astroconv.make_kernel)
    assert astroconv.DOMAINS == ("spatial", "frequency")
    assert core.convolve_spatial is convolve_spatial
    assert core.convolve_frequency is convolve_frequency
    assert callable(two_dimension_fft)
    assert callable(kernels.gaussian_kernel)

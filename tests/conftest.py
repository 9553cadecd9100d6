"""
Pytest configuration for the LII Spectra test suite.

Shared fixtures: a soot-in-nitrogen property store, detection wavelengths,
a short time grid and a seeded random number generator.
"""

import numpy as np
import pytest

from liispectra import Prop


@pytest.fixture
def prop():
    """Soot in nitrogen, 30 nm particles heated by a 7 ns, 0.15 J/cm^2 pulse."""
    return Prop(['soot', 'nitrogen'], dp0=30., F0=0.15, tlp=7.)


@pytest.fixture
def wavelengths():
    return np.array([442., 716.])


@pytest.fixture
def t():
    return np.arange(-20., 301., 1.)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def T_true():
    return np.linspace(2500., 4000., 6)

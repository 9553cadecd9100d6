import numpy as np
import pytest

from liispectra import ConfigurationError, ParameterMismatchWarning, Prop


def test_materials_loaded(prop):
    """Soot density and gas properties come from the material definitions."""
    assert prop.rho(3000.) == pytest.approx(2303. - 7.3106e-2 * 3000.)
    assert prop.Tg == 300.
    assert prop.gamma1 == pytest.approx(1.4)
    assert prop.dp0 == 30.


def test_material_variant():
    prop = Prop(['soot', 'nitrogen'], opts={'rho': 'constant'})
    assert prop.rho(1000.) == pytest.approx(1860.)
    assert prop.rho(3000.) == pytest.approx(1860.)


def test_unknown_material():
    with pytest.raises(ConfigurationError):
        Prop(['unobtainium'])


def test_unknown_option():
    with pytest.raises(ConfigurationError):
        Prop(['soot'], opts={'colour': 'black'})


def test_unsupported_variant():
    with pytest.raises(ConfigurationError):
        Prop(['iron'], opts={'cp': 'michelsen'})


def test_constants_immutable(prop):
    assert prop.h == pytest.approx(6.62606957e-34)
    with pytest.raises(AttributeError):
        prop.h = 1.
    with pytest.raises(AttributeError):
        prop['kb'] = 1.


def test_unknown_property_rejected(prop):
    """Typos do not silently create new properties."""
    with pytest.raises(ConfigurationError):
        prop.aplha = 0.3
    with pytest.raises(AttributeError):
        prop.not_a_property


def test_add_property(prop):
    prop.add_property('sigma_J', 0.05, doc='relative signal noise [-]')
    assert prop.sigma_J == 0.05
    assert prop.describe('sigma_J') == 'relative signal noise [-]'
    prop.sigma_J = 0.1
    assert prop['sigma_J'] == 0.1

    with pytest.raises(ConfigurationError):
        prop.add_property('alpha')


def test_describe(prop):
    assert 'accommodation' in prop.describe('alpha')
    assert prop.describe('phi') == 'physical constant'


def test_check(prop):
    prop.check(['alpha', 'dp0'])
    with pytest.raises(ConfigurationError):
        prop.check(['alpha', 'beta'])
    with pytest.raises(ConfigurationError):
        prop.check(['kb'])


def test_copy_is_independent(prop):
    copied = prop.copy()
    copied.alpha = 0.2
    assert prop.alpha == 0.37
    assert copied.alpha == 0.2


def test_override_returns_copy(prop):
    new = prop.override(['alpha', 'dp0'], [0.25, 20.])
    assert new.alpha == 0.25
    assert new.dp0 == 20.
    assert prop.alpha == 0.37
    assert prop.dp0 == 30.


def test_override_none(prop):
    new = prop.override(['alpha'], None)
    assert new is not prop
    assert new.alpha == prop.alpha


def test_override_size_mismatch(prop):
    """A vector of the wrong length warns and keeps the default values."""
    with pytest.warns(ParameterMismatchWarning):
        new = prop.override(['alpha'], [0.1, 0.2])
    assert new.alpha == 0.37


def test_functions_bound_to_copy(prop):
    """Correlations read the values of the store they are evaluated from."""
    new = prop.override(['hvb'], [1e7])
    assert new.hv(prop.Tb) == pytest.approx(1e7)
    assert prop.hv(prop.Tb) == pytest.approx(2.19e7)


def test_evaluate_constant_override(prop):
    """A function-valued property replaced by a scalar evaluates as that scalar."""
    new = prop.override(['Em'], [0.4])
    assert new.evaluate('Em', 500., 30.) == 0.4
    assert new.evaluate('Emr', 500., 700., 30.) == pytest.approx(1.)
    assert prop.evaluate('Em', 500., 30.) == pytest.approx(0.35)


def test_krishnan_absorption():
    prop = Prop(['soot'], opts={'Em': 'krishnan'})
    Em = prop.Em(np.array([400., 600., 800.]))
    assert np.all(Em > 0.1)
    assert np.all(Em < 0.5)


def test_iron_drude():
    prop = Prop(['iron', 'argon'], opts={'Em': 'drude'})
    Em = prop.Em(500.)
    assert 0 < Em < 1
    assert prop.mg == pytest.approx(6.6335e-26)

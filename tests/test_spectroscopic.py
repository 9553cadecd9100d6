import numpy as np
import pytest

from liispectra import (
    ConfigurationError,
    HTModel,
    ParameterMismatchWarning,
    Prop,
    SModel,
    ratio_temperature,
)
from liispectra.inversion import SequentialSpectralFit, SmoothPriorSpectralFit
from liispectra.pyrometry import AdvancedPyrometry, RatioPyrometry


def noisy_shots(J, n_shots, level, rng):
    """Repeat a single-shot signal with relative Gaussian noise."""
    z = rng.standard_normal((J.shape[0], n_shots, J.shape[2]))
    return J[:, :1, :] * (1 + level * z)


#-- Forward model ------------------------------------------------------------#
def test_forward_shapes(prop, wavelengths):
    smodel = SModel(prop, l=wavelengths)
    assert smodel.forward(3000.).shape == (1, 1, 2)
    assert smodel.forward(np.linspace(2000., 3000., 5)).shape == (5, 1, 2)
    assert smodel.forward(np.full((5, 3), 3000.)).shape == (5, 3, 2)


def test_forward_accepts_trajectory(prop, wavelengths, t):
    traj = HTModel(prop, t=t).solve()
    smodel = SModel(prop, l=wavelengths)
    J = smodel.forward(traj)
    assert J.shape == (t.size, 1, 2)
    np.testing.assert_allclose(J, smodel.forward(traj.T))


def test_forward_scales_with_absorption(prop, wavelengths):
    smodel = SModel(prop, l=wavelengths)
    J = smodel.forward(3000.)
    J2 = smodel.forward(3000., prop.override(['Em0'], [0.7]))
    np.testing.assert_allclose(J2, 2 * J)


def test_blackbody_wien_limit(prop):
    smodel = SModel(prop, l=[500.])
    wien = SModel(prop, l=[500.], opts={'planck': 'wien'})
    np.testing.assert_allclose(wien.blackbody(2000.), smodel.blackbody(2000.), rtol=1e-5)
    # Full Planck exceeds Wien at long wavelengths and high temperatures
    assert smodel.blackbody(5000., l=[1000.])[0, 0, 0] > wien.blackbody(5000., l=[1000.])[0, 0, 0]


def test_data_scaling(prop, wavelengths):
    J = SModel(prop, l=wavelengths).forward(3000.)
    J_sc = SModel(prop, l=wavelengths, data_sc=4.).forward(3000.)
    np.testing.assert_allclose(J_sc, J / 4.)


def test_wavelengths_from_prop():
    prop = Prop(['soot', 'nitrogen'], dp0=30., l=[500., 700.])
    np.testing.assert_allclose(SModel(prop).l, [500., 700.])


def test_missing_wavelengths(prop):
    with pytest.raises(ConfigurationError):
        SModel(prop)


#-- Closed-form ratio --------------------------------------------------------#
def test_ratio_temperature_reference_values():
    T, degenerate = ratio_temperature(2., 1., 650., 750., 1.)
    assert T == pytest.approx(17837.4, rel=1e-5)
    assert not degenerate

    T, _ = ratio_temperature(0.9, 1., 650., 750., 1.)
    assert T == pytest.approx(3061.66, rel=1e-5)
    assert 2000. < T < 4500.


def test_ratio_temperature_degenerate():
    T, degenerate = ratio_temperature(np.array([-1., 0.9]), np.array([1., 1.]), 650., 750., 1.)
    np.testing.assert_array_equal(degenerate, [True, False])
    assert np.all(np.isfinite(T))


def test_ratio_swap_invariance(prop, T_true):
    smodel = SModel(prop, l=[442., 716.])
    swapped = SModel(prop, l=[716., 442.])
    J = smodel.forward(T_true)

    T1 = smodel.inverse(J).T
    T2 = swapped.inverse(J[:, :, ::-1]).T
    np.testing.assert_allclose(T1, T2, rtol=1e-12)


#-- Two-color strategies -----------------------------------------------------#
def test_ratio_round_trip_wien(prop, wavelengths, T_true):
    smodel = SModel(prop, l=wavelengths, opts={'planck': 'wien'})
    result = smodel.inverse(smodel.forward(T_true))

    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=1e-9)
    assert result.C is None
    assert not np.any(result.out['degenerate'])


def test_ratio_round_trip_planck(prop, wavelengths, T_true):
    """The closed form is exact under Wien and close under full Planck."""
    smodel = SModel(prop, l=wavelengths)
    result = smodel.inverse(smodel.forward(T_true))
    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=1e-2)


def test_ratio_per_shot(prop, wavelengths):
    smodel = SModel(prop, l=wavelengths, opts={'planck': 'wien'})
    T = np.array([[2500., 2600., 2700.], [3000., 3100., 3200.]])
    result = smodel.inverse(smodel.forward(T))
    assert result.T.shape == (2, 3)
    np.testing.assert_allclose(result.T, T, rtol=1e-9)
    np.testing.assert_allclose(result.mean_over_shots().T[:, 0], [2600., 3100.])
    assert result.Ti == pytest.approx(2600.)


def test_result_is_read_only(prop, wavelengths, T_true):
    result = SModel(prop, l=wavelengths).inverse(SModel(prop, l=wavelengths).forward(T_true))
    with pytest.raises(ValueError):
        result.T[0, 0] = 0.


def test_scaling_factor_recovered(prop, wavelengths, T_true):
    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'scaling-factor', 'planck': 'wien'})
    result = smodel.inverse(2.5 * smodel.forward(T_true))

    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=1e-9)
    np.testing.assert_allclose(result.C, 2.5, rtol=1e-9)


def test_const_temperature(prop, wavelengths, T_true):
    J = 2.5 * SModel(prop, l=wavelengths).forward(T_true)
    ratio = SModel(prop, l=wavelengths).inverse(J)
    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'const-temperature', 'T_ref': 3000.})
    result = smodel.inverse(J)

    np.testing.assert_allclose(result.T, ratio.T)
    np.testing.assert_allclose(result.C, J[:, :, 0] / smodel.forward(3000.)[0, 0, 0])
    assert result.out['T_ref'] == 3000.


def test_const_temperature_defaults_to_boiling_point(prop, wavelengths, T_true):
    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': '2color-constT'})
    result = smodel.inverse(smodel.forward(T_true))
    assert result.out['T_ref'] == prop.Tb


def test_const_concentration_not_available(prop, wavelengths, T_true):
    J = SModel(prop, l=wavelengths).forward(T_true)

    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'const-concentration'})
    with pytest.raises(ConfigurationError, match='C was not specified'):
        smodel.inverse(J)

    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'constC', 'C': 1.})
    with pytest.raises(ConfigurationError, match='not implemented'):
        smodel.inverse(J)


#-- Monte Carlo uncertainty --------------------------------------------------#
def test_advanced_shapes(prop, wavelengths, T_true, rng):
    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'advanced', 'nsamples': 200}, rng=0)
    J = noisy_shots(smodel.forward(T_true), 30, 0.02, rng)
    result = smodel.inverse(J)

    Nt = T_true.size
    assert result.T.shape == (Nt, 1)
    assert result.C.shape == (Nt, 1)
    assert result.s_T.shape == (Nt, 1)
    assert result.out['T_samples'].shape == (Nt, 200)
    assert result.out['s_C'].shape == (Nt, 1)
    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=0.02)
    assert np.all(result.s_T > 0)


def test_advanced_zero_scatter(prop, wavelengths, T_true):
    """Identical shots give the deterministic temperature and no spread."""
    smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'advanced', 'nsamples': 100}, rng=0)
    J = np.repeat(smodel.forward(T_true), 10, axis=1)
    result = smodel.inverse(J)

    ratio = SModel(prop, l=wavelengths).inverse(J[:, :1, :])
    np.testing.assert_allclose(result.T, ratio.T, rtol=1e-12)
    np.testing.assert_allclose(result.s_T, 0., atol=1e-6)


def test_advanced_uncertainty_shrinks_with_scatter(prop, wavelengths, T_true, rng):
    J = SModel(prop, l=wavelengths).forward(T_true)
    z = rng.standard_normal((T_true.size, 30, 2))

    s_T = []
    for level in (0.05, 0.02, 0.005):
        smodel = SModel(prop, l=wavelengths, opts={'pyrometry': 'advanced'}, rng=1)
        s_T.append(np.mean(smodel.inverse(J * (1 + level * z)).s_T))

    assert s_T[0] > s_T[1] > s_T[2] > 0


def test_advanced_reproducible_with_seed(prop, wavelengths, T_true, rng):
    J = noisy_shots(SModel(prop, l=wavelengths).forward(T_true), 20, 0.02, rng)
    opts = {'pyrometry': '2color-advanced', 'nsamples': 300}

    a = SModel(prop, l=wavelengths, opts=opts, rng=5).inverse(J)
    b = SModel(prop, l=wavelengths, opts=opts, rng=np.random.default_rng(5)).inverse(J)
    np.testing.assert_array_equal(a.s_T, b.s_T)
    np.testing.assert_array_equal(a.out['T_samples'], b.out['T_samples'])


#-- Configuration and dispatch -----------------------------------------------#
def test_default_strategy(prop):
    assert isinstance(SModel(prop, l=[442., 716.]).pyrometry, RatioPyrometry)
    assert isinstance(SModel(prop, l=[400., 500., 600.]).pyrometry, SequentialSpectralFit)


def test_strategy_aliases(prop, wavelengths):
    assert isinstance(SModel(prop, l=wavelengths, opts={'pyrometry': '2color-advanced'}).pyrometry,
                      AdvancedPyrometry)
    smodel = SModel(prop, l=[400., 500., 600.],
                    opts={'pyrometry': 'spectral-fit', 'multicolor': 'priorC-smooth'})
    assert isinstance(smodel.pyrometry, SmoothPriorSpectralFit)


def test_unknown_strategy(prop, wavelengths):
    with pytest.raises(ConfigurationError):
        SModel(prop, l=wavelengths, opts={'pyrometry': 'three-color'})
    with pytest.raises(ConfigurationError):
        SModel(prop, l=wavelengths, opts={'pyrometry': 'spectral-fit', 'multicolor': 'magic'})


def test_two_color_needs_two_wavelengths(prop):
    with pytest.raises(ConfigurationError):
        SModel(prop, l=[400., 500., 600.], opts={'pyrometry': 'ratio'})


def test_unknown_option(prop, wavelengths):
    with pytest.raises(ConfigurationError):
        SModel(prop, l=wavelengths, opts={'nsample': 10})
    with pytest.raises(ConfigurationError):
        SModel(prop, l=wavelengths, opts={'planck': 'rayleigh-jeans'})


def test_unknown_free_parameter(prop, wavelengths):
    with pytest.raises(ConfigurationError):
        SModel(prop, x=['Em1'], l=wavelengths)


def test_signal_channel_mismatch(prop, wavelengths):
    smodel = SModel(prop, l=wavelengths)
    with pytest.raises(ConfigurationError):
        smodel.inverse(np.ones((5, 1, 3)))


def test_two_dimensional_signal_is_single_shot(prop, wavelengths, T_true):
    smodel = SModel(prop, l=wavelengths)
    J = smodel.forward(T_true)
    np.testing.assert_allclose(smodel.inverse(J[:, 0, :]).T, smodel.inverse(J).T)


#-- Evaluate -----------------------------------------------------------------#
def test_evaluate(prop, wavelengths, T_true):
    J = SModel(prop, l=wavelengths).forward(T_true)
    smodel = SModel(prop, x=['Em0'], l=wavelengths, J=J)

    np.testing.assert_allclose(smodel.evaluate([0.35]), smodel.inverse().T)
    np.testing.assert_allclose(smodel.evaluate(), smodel.inverse().T)
    assert prop.Em0 == 0.35


def test_evaluate_size_mismatch(prop, wavelengths, T_true):
    J = SModel(prop, l=wavelengths).forward(T_true)
    smodel = SModel(prop, x=['Em0'], l=wavelengths, J=J)
    with pytest.warns(ParameterMismatchWarning):
        T = smodel.evaluate([0.3, 0.4])
    np.testing.assert_allclose(T, smodel.inverse().T)


def test_inverse_without_signal(prop, wavelengths):
    with pytest.raises(ConfigurationError):
        SModel(prop, l=wavelengths).inverse()


def test_single_wavelength_forward_only(prop):
    smodel = SModel(prop, l=[500.])
    assert smodel.pyrometry is None
    J = smodel.forward(np.linspace(2000., 3000., 4))
    assert J.shape == (4, 1, 1)
    assert np.all(J > 0)

    with pytest.raises(ConfigurationError):
        smodel.inverse(J)


def test_single_wavelength_spectral_fit(prop):
    with pytest.raises(ConfigurationError):
        SModel(prop, l=[500.], opts={'pyrometry': 'spectral-fit'})

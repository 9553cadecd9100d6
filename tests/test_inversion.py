import numpy as np
import pytest
from scipy.optimize import least_squares

from liispectra import SModel, find_corner, l_curve, lsq_covariance
from liispectra.inversion import SmoothPriorSpectralFit, fit_timestep, initial_guess


WAVELENGTHS = [450., 550., 650., 750.]


def spectral_model(prop, multicolor='sequential', **opts):
    return SModel(
        prop, l=WAVELENGTHS,
        opts={'pyrometry': 'spectral-fit', 'multicolor': multicolor, **opts},
    )


def test_lsq_covariance_linear():
    """For a linear model with unit weights the covariance is (A^T A)^-1."""
    x = np.linspace(0., 1., 10)
    A = np.column_stack([x, np.ones_like(x)])
    y = 2. * x + 1.

    res = least_squares(lambda p: A @ p - y, [0., 0.])
    np.testing.assert_allclose(lsq_covariance(res), np.linalg.inv(A.T @ A), rtol=1e-5)


def test_lsq_covariance_unweighted_scaled_by_mse():
    x = np.linspace(0., 1., 10)
    A = np.column_stack([x, np.ones_like(x)])
    y = 2. * x + 1. + 0.1 * np.sin(20 * x)

    res = least_squares(lambda p: A @ p - y, [0., 0.])
    mse = np.sum(res.fun ** 2) / (10 - 2)
    np.testing.assert_allclose(
        lsq_covariance(res, weighted=False), mse * np.linalg.inv(A.T @ A), rtol=1e-4)


def test_initial_guess(prop, T_true):
    smodel = spectral_model(prop)
    data = 1.5 * smodel.forward(T_true)[:, 0, :]
    T0, C0 = initial_guess(smodel, data, prop)

    np.testing.assert_allclose(T0, T_true, rtol=1e-2)
    np.testing.assert_allclose(C0, 1.5, rtol=0.1)


def test_initial_guess_fallback(prop):
    smodel = spectral_model(prop, T0=2800.)
    # No signal on the shortest or the longest channel
    data = np.ones((2, 4))
    data[0, 0] = 0.
    data[1, -1] = 0.
    T0, _ = initial_guess(smodel, data, prop)
    np.testing.assert_allclose(T0, 2800.)


def test_fit_timestep(prop):
    smodel = spectral_model(prop)
    data = 1.7 * smodel.forward(3200.)[0, 0, :]
    T, C, s_T, s_C, resid, success = fit_timestep(smodel, prop, data, None, 3000., 1.)

    assert success
    assert T == pytest.approx(3200., rel=1e-4)
    assert C == pytest.approx(1.7, rel=1e-3)


def test_sequential_noise_free(prop, T_true):
    smodel = spectral_model(prop)
    result = smodel.inverse(1.7 * smodel.forward(T_true))

    assert result.T.shape == (T_true.size, 1)
    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=1e-3)
    np.testing.assert_allclose(result.C[:, 0], 1.7, rtol=1e-2)
    assert np.all(result.out['success'])


def test_sequential_weighted(prop, T_true, rng):
    smodel = spectral_model(prop, progress=False)
    J = smodel.forward(T_true)
    J = J * (1 + 0.01 * rng.standard_normal((T_true.size, 20, len(WAVELENGTHS))))
    result = smodel.inverse(J)

    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=0.03)
    assert np.all(result.s_T > 0)
    assert np.all(result.out['s_C'] > 0)


def test_const_mass(prop, T_true):
    smodel = spectral_model(prop, 'simultaneous-const-mass')
    result = smodel.inverse(1.7 * smodel.forward(T_true))

    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=1e-3)
    np.testing.assert_allclose(result.C[:, 0], 1.7, rtol=1e-2)
    # One shared scaling factor
    assert np.ptp(result.C) == 0.
    n = T_true.size + 1
    assert result.out['cov'].shape == (n, n)


def test_smooth_prior_noise_free(prop, T_true):
    smodel = spectral_model(prop, 'simultaneous-smooth-prior', **{'lambda': 1e-6})
    C_true = np.linspace(1.7, 1.5, T_true.size).reshape(-1, 1, 1)
    result = smodel.inverse(C_true * smodel.forward(T_true))

    np.testing.assert_allclose(result.T[:, 0], T_true, rtol=1e-3)
    np.testing.assert_allclose(result.C[:, 0], C_true.ravel(), rtol=1e-2)
    assert result.out['lambda'] == 1e-6


def test_negative_prior_weight(prop):
    smodel = spectral_model(prop)
    with pytest.raises(ValueError):
        SmoothPriorSpectralFit(smodel, lam=-1.)


def test_l_curve(prop, T_true, rng):
    smodel = spectral_model(prop, 'simultaneous-smooth-prior')
    C_true = np.linspace(1.7, 1.5, T_true.size).reshape(-1, 1, 1)
    J = C_true * smodel.forward(T_true)
    J = J * (1 + 0.02 * rng.standard_normal((T_true.size, 20, len(WAVELENGTHS))))

    residual_norms, solution_norms = l_curve(smodel, J, [1e-4, 1., 1e4])

    assert residual_norms.shape == (3,)
    assert np.all(np.isfinite(residual_norms))
    assert residual_norms[-1] > residual_norms[0]
    assert solution_norms[-1] < solution_norms[0]


def test_find_corner():
    residual_norms = np.array([1., 1.01, 1.05, 2., 10.])
    solution_norms = np.array([10., 2., 1.05, 1.01, 1.])
    assert find_corner(residual_norms, solution_norms) == 2


def test_find_corner_flat_curve():
    with pytest.raises(ValueError):
        find_corner(np.array([1., 2., 3.]), np.full(3, 5.))
    with pytest.raises(ValueError):
        find_corner(np.full(3, 1.), np.array([3., 2., 1.]))

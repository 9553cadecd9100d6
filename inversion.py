"""
Inversion Module

Spectral fitting of incandescence signals at any number of wavelengths by
nonlinear least squares, with temporally regularized (simultaneous) and
time-step-by-time-step (sequential) variants, uncertainty quantification,
and L-curve selection of the regularization weight.
"""

import numpy as np
import scipy.sparse as sp
from joblib import Parallel, delayed
from scipy.optimize import least_squares
from tqdm import tqdm

from .errors import ConfigurationError
from .preprocessing import (
    average_shots,
    build_jacobian_sparsity,
    create_difference_operator,
    create_smoother,
)
from .pyrometry import Pyrometry, PyrometryResult, ratio_temperature


def lsq_covariance(res, weighted=True):
    """
    Covariance of the parameters of a least-squares fit.

    Parameters
    ----------
    res : scipy.optimize.OptimizeResult
        Result of ``scipy.optimize.least_squares``
    weighted : bool, optional
        True if the residuals were divided by the measurement uncertainty.
        Otherwise the covariance is scaled by the mean squared residual.
        Default: True

    Returns
    -------
    np.ndarray
        Covariance matrix, shape (Nx, Nx)

    Notes
    -----
    C = (J^T J)^(-1), evaluated with the pseudo-inverse so that parameters
    pinned at a bound do not make the matrix singular. For an unweighted
    fit with no degrees of freedom the result is NaN.
    """
    J = res.jac
    if sp.issparse(J):
        J = J.toarray()
    cov = np.linalg.pinv(J.T @ J)

    if not weighted:
        dof = res.fun.size - res.x.size
        mse = np.sum(res.fun ** 2) / dof if dof > 0 else np.nan
        cov = cov * mse

    return cov


def initial_guess(smodel, data, prop):
    """
    Initial temperature and scaling factor for the spectral fits.

    The temperature comes from two-color pyrometry on the shortest and
    longest wavelengths, falling back to the ``T0`` option where that
    estimate is not finite or outside ``T_bounds``. The scaling factor is
    the mean ratio of the data to the forward model at that temperature.

    Parameters
    ----------
    smodel : SModel
        Spectroscopic model
    data : np.ndarray
        Shot-averaged signal, shape (Nt, Nl)
    prop : Prop
        Properties

    Returns
    -------
    T0 : np.ndarray
        Shape (Nt,)
    C0 : np.ndarray
        Shape (Nt,)
    """
    lo, hi = smodel.opts['T_bounds']
    i, j = np.argmin(smodel.l), np.argmax(smodel.l)
    Emr = prop.evaluate('Emr', smodel.l[i], smodel.l[j], prop.dp0)
    T0, _ = ratio_temperature(data[:, i], data[:, j], smodel.l[i], smodel.l[j], Emr, prop.phi)
    T0 = np.where(np.isfinite(T0) & (T0 > lo) & (T0 < hi), T0, smodel.opts['T0'])

    with np.errstate(divide='ignore', invalid='ignore'):
        C0 = np.nanmean(data / smodel.forward(T0, prop)[:, 0, :], axis=1)
    C0 = np.where(np.isfinite(C0) & (C0 > 0), C0, 1.)
    return T0, C0


def fit_timestep(smodel, prop, data, sigma, T0, C0):
    """
    Fit temperature and scaling factor at a single time step.

    Parameters
    ----------
    smodel : SModel
        Spectroscopic model
    prop : Prop
        Properties
    data : np.ndarray
        Signal at each wavelength, shape (Nl,)
    sigma : np.ndarray or None
        Uncertainty of each channel. None for an unweighted fit.
    T0, C0 : float
        Initial guess

    Returns
    -------
    tuple
        (T, C, s_T, s_C, residual norm, success)
    """
    lo, hi = smodel.opts['T_bounds']
    scale = sigma if sigma is not None else (np.mean(np.abs(data)) or 1.)

    def residual(x):
        return (data - x[1] * smodel.forward(x[0], prop)[0, 0, :]) / scale

    x0 = [np.clip(T0, lo, hi), max(C0, 0.)]
    res = least_squares(residual, x0, bounds=([lo, 0.], [hi, np.inf]), x_scale='jac')

    cov = lsq_covariance(res, weighted=sigma is not None)
    s = np.sqrt(np.abs(np.diag(cov)))
    return res.x[0], res.x[1], s[0], s[1], np.linalg.norm(res.fun), res.success


def _weights(se, nshots):
    # Standard error weighting only when every channel has a spread
    if nshots > 1 and np.all(se > 0):
        return se
    return None


class SequentialSpectralFit(Pyrometry):
    """
    Spectral fit solved independently at each time step.

    The signal is averaged across shots. At each time step (T, C) minimize
    the squared difference between the data and C times the forward model,
    weighted by the standard error across shots when more than one shot is
    available. Time steps are distributed over ``n_jobs`` joblib workers.
    """
    name = 'sequential'

    def invert(self, J, prop):
        print('Performing sequential spectral fit')

        data, se = average_shots(J)
        Nt = data.shape[0]
        sigma = _weights(se, J.shape[1])
        T0, C0 = initial_guess(self.smodel, data, prop)

        results = Parallel(n_jobs=self.smodel.opts['n_jobs'])(
            delayed(fit_timestep)(
                self.smodel, prop, data[i],
                sigma[i] if sigma is not None else None,
                T0[i], C0[i],
            )
            for i in tqdm(range(Nt), desc='Spectral fit',
                          disable=not self.smodel.opts['progress'])
        )
        T, C, s_T, s_C, resid, success = (np.array(v) for v in zip(*results))

        print('Complete')

        out = {
            's_C': s_C.reshape(-1, 1),
            'resid': resid,
            'success': success.astype(bool),
        }
        return PyrometryResult(
            T=T.reshape(-1, 1), C=C.reshape(-1, 1), s_T=s_T.reshape(-1, 1), out=out
        )


class SimultaneousSpectralFit(Pyrometry):
    """
    Spectral fit solved jointly over all time steps.

    This class solves the regularized nonlinear least squares problem

        minimize ||(y - C*F(T)) / s||^2 + lambda * ||L*C / C_ref||^2

    where y is the shot-averaged signal, F the forward model, s the
    standard error across shots (or the mean signal for a single shot), L the
    first-order difference operator and C_ref the mean initial scaling
    factor. The subclasses fix how C couples across time.

    Parameters
    ----------
    smodel : SModel
        Spectroscopic model
    lam : float, optional
        Regularization weight. Default: the ``lambda`` option of smodel

    Notes
    -----
    The Jacobian is block-sparse: each time step only depends on its own
    temperature and scaling factor. The posterior covariance is
    (J^T J)^(-1) including the prior rows.

    References
    ----------
    Eilers (2003). A perfect smoother. Analytical Chemistry, 75(14), 3631-3636.
    """
    shared_C = False
    prior = False

    def __init__(self, smodel, lam=None):
        super().__init__(smodel)
        self.lam = smodel.opts['lambda'] if lam is None else lam
        if self.lam < 0:
            raise ConfigurationError("Regularization weight must be non-negative")

    def invert(self, J, prop):
        print(f'Performing simultaneous spectral fit ({self.name})')

        data, se = average_shots(J)
        Nt, Nl = data.shape
        sigma = _weights(se, J.shape[1])
        weighted = sigma is not None
        if not weighted:
            # Normalize so that the prior weight is independent of signal units
            sigma = np.full_like(data, np.mean(np.abs(data)) or 1.)

        T0, C0 = initial_guess(self.smodel, data, prop)
        C_ref = np.mean(C0)
        if self.shared_C:
            C0 = np.array([np.median(C0)])
        NC = C0.size

        prior = self.prior and Nt > 1
        L = create_difference_operator(Nt) if prior else None
        w = np.sqrt(self.lam)

        def residual(x):
            T, C = x[:Nt], x[Nt:]
            model = C.reshape(-1, 1) * self.smodel.forward(T, prop)[:, 0, :]
            r = ((data - model) / sigma).ravel()
            if prior:
                r = np.concatenate([r, w * (L @ C) / C_ref])
            return r

        lo, hi = self.smodel.opts['T_bounds']
        res = least_squares(
            residual,
            np.concatenate([np.clip(T0, lo, hi), C0]),
            bounds=(
                np.r_[np.full(Nt, lo), np.zeros(NC)],
                np.r_[np.full(Nt, hi), np.full(NC, np.inf)],
            ),
            jac_sparsity=build_jacobian_sparsity(Nt, Nl, self.shared_C, prior),
            x_scale='jac',
            method='trf',
        )

        cov = lsq_covariance(res)
        if not weighted:
            # Scale by the data residuals only, the prior rows are not data
            dof = Nt * Nl - res.x.size
            cov = cov * (np.sum(res.fun[:Nt * Nl] ** 2) / dof if dof > 0 else np.nan)
        s = np.sqrt(np.abs(np.diag(cov)))

        T = res.x[:Nt]
        C = np.broadcast_to(res.x[Nt:], (Nt,)) if self.shared_C else res.x[Nt:]
        s_C = np.broadcast_to(s[Nt:], (Nt,)) if self.shared_C else s[Nt:]
        resid = np.linalg.norm(res.fun[:Nt * Nl].reshape(Nt, Nl), axis=1)

        print('Complete')

        out = {
            's_C': np.array(s_C).reshape(-1, 1),
            'resid': resid,
            'success': res.success,
            'message': res.message,
            'nfev': res.nfev,
            'cov': cov,
            'lambda': self.lam if prior else 0.,
            'C_ref': C_ref,
        }
        return PyrometryResult(
            T=T.reshape(-1, 1),
            C=np.array(C).reshape(-1, 1),
            s_T=s[:Nt].reshape(-1, 1),
            out=out,
        )


class ConstMassSpectralFit(SimultaneousSpectralFit):
    """
    Simultaneous spectral fit with a single scaling factor for all time
    steps (no mass loss).
    """
    name = 'simultaneous-const-mass'
    shared_C = True


class SmoothPriorSpectralFit(SimultaneousSpectralFit):
    """
    Simultaneous spectral fit with a smoothness prior on the scaling factor.
    """
    name = 'simultaneous-smooth-prior'
    prior = True


def l_curve(smodel, J, lambdas, prop=None):
    """
    Compute the L-curve for the smoothness prior weight.

    Parameters
    ----------
    smodel : SModel
        Spectroscopic model
    J : np.ndarray
        Signal, shape (Nt, Nshots, Nl)
    lambdas : array-like
        Regularization weights to test
    prop : Prop, optional
        Properties. Default: smodel.prop

    Returns
    -------
    residual_norms : np.ndarray
        Norm of the data residual for each weight
    solution_norms : np.ndarray
        Roughness sqrt(C^T D C) / C_ref of the scaling factor for each weight
    """
    prop = smodel.prop if prop is None else prop
    J = smodel.check_signal(J)

    residual_norms = []
    solution_norms = []
    for lam in lambdas:
        result = SmoothPriorSpectralFit(smodel, lam=lam).invert(J, prop)
        C = result.C.ravel()
        D = create_smoother(C.size)

        residual_norms.append(np.linalg.norm(result.out['resid']))
        solution_norms.append(np.sqrt(C @ (D @ C)) / result.out['C_ref'])

    return np.array(residual_norms), np.array(solution_norms)


def find_corner(residual_norms, solution_norms):
    """
    Find the corner of the L-curve (optimal regularization).

    The corner is the point of maximum distance from the line joining the
    end points of the curve in normalized log-log coordinates.

    Parameters
    ----------
    residual_norms : np.ndarray
        Residual norms for different weights
    solution_norms : np.ndarray
        Solution norms for different weights

    Returns
    -------
    int
        Index of the optimal weight

    Raises
    ------
    ValueError
        If either norm is constant over all weights, so the curve has no
        corner.
    """
    x = np.log10(residual_norms)
    y = np.log10(solution_norms)
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        raise ValueError("L-curve is flat in residual or solution norm; no corner to find")

    x_norm = (x - x.min()) / (x.max() - x.min())
    y_norm = (y - y.min()) / (y.max() - y.min())

    dx = x_norm[-1] - x_norm[0]
    dy = y_norm[-1] - y_norm[0]
    distances = np.abs(dx * (y_norm[0] - y_norm) - dy * (x_norm[0] - x_norm)) / np.hypot(dx, dy)

    return int(np.argmax(distances))

"""
Spectroscopic Module

Forward and inverse spectroscopic models for laser-induced incandescence.

The forward model maps particle temperature to the incandescence signal at
the measurement wavelengths using Planck's law and the absorption function
of the material. The inverse model recovers temperature (and a scaling
factor) from measured signals by two-color pyrometry or spectral fitting.
"""

import numpy as np

from .errors import ConfigurationError
from .heat_transfer import Trajectory
from .inversion import ConstMassSpectralFit, SequentialSpectralFit, SmoothPriorSpectralFit
from .pyrometry import (
    AdvancedPyrometry,
    ConstConcentrationPyrometry,
    ConstTemperaturePyrometry,
    RatioPyrometry,
    ScalingFactorPyrometry,
    ratio_temperature,
)


DEFAULT_OPTS = {
    'pyrometry': 'default',     # see PYROMETRY, 'spectral-fit' or 'default'
    'multicolor': 'sequential',  # see MULTICOLOR
    'planck': 'full',           # 'full' or 'wien'
    'nsamples': 1000,           # Monte Carlo draws for 'advanced'
    'T_ref': None,              # K, reference for 'const-temperature', defaults to prop.Tb
    'C': None,                  # constant scaling factor for 'const-concentration'
    'T_bounds': (300., 6000.),  # K, spectral fit bounds
    'T0': 3000.,                # K, fallback initial guess for spectral fits
    'lambda': 1e-2,             # smoothness prior weight
    'n_jobs': 1,                # joblib workers for the sequential fit
    'progress': False,          # progress bar for the sequential fit
}

# Two-color and placeholder strategies, with the names used by earlier
# versions of the analysis scripts as aliases
PYROMETRY = {
    'ratio': RatioPyrometry,
    '2color': RatioPyrometry,
    'scaling-factor': ScalingFactorPyrometry,
    '2color-scalingfactor': ScalingFactorPyrometry,
    'const-temperature': ConstTemperaturePyrometry,
    '2color-constT': ConstTemperaturePyrometry,
    'advanced': AdvancedPyrometry,
    '2color-advanced': AdvancedPyrometry,
    'const-concentration': ConstConcentrationPyrometry,
    'constC': ConstConcentrationPyrometry,
}

# Spectral fitting strategies, selected when pyrometry is 'spectral-fit'
MULTICOLOR = {
    'sequential': SequentialSpectralFit,
    'default': SequentialSpectralFit,
    'simultaneous-const-mass': ConstMassSpectralFit,
    'constC-mass': ConstMassSpectralFit,
    'simultaneous-smooth-prior': SmoothPriorSpectralFit,
    'priorC-smooth': SmoothPriorSpectralFit,
}


class SModel:
    """
    Spectroscopic model.

    Parameters
    ----------
    prop : Prop
        Material and experimental properties
    x : list of str, optional
        Names of the properties treated as free parameters by ``evaluate``
    t : array-like, optional
        Time grid in ns, shape (Nt,). Attached to inversion results and
        used as the time axis by ``results_to_frame``.
    l : array-like, optional
        Measurement wavelengths in nm. Default: prop.l
    J : np.ndarray, optional
        Measured signal, shape (Nt, Nshots, Nl), used by ``evaluate``
    opts : dict, optional
        Inversion options. See ``DEFAULT_OPTS``.
    data_sc : float, optional
        Signal scaling constant for instrument calibration. Default: 1
    rng : int or np.random.Generator, optional
        Seed or generator for the Monte Carlo uncertainty draws

    Raises
    ------
    ConfigurationError
        Unknown option or strategy, unknown free parameter, missing
        wavelengths, or a strategy that does not support the number of
        wavelengths.

    Example
    -------
    >>> prop = Prop(['soot', 'nitrogen'], dp0=30)
    >>> smodel = SModel(prop, l=[442, 716], opts={'pyrometry': 'advanced'}, rng=0)
    >>> result = smodel.inverse(J)
    >>> result.T, result.s_T
    """

    def __init__(self, prop, x=None, t=None, l=None, J=None, opts=None,
                 data_sc=1., rng=None):
        opts = dict(opts or {})
        unknown = set(opts) - set(DEFAULT_OPTS)
        if unknown:
            raise ConfigurationError(f"Unknown spectroscopic options: {sorted(unknown)}")
        self.opts = {**DEFAULT_OPTS, **opts}
        if self.opts['planck'] not in ('full', 'wien'):
            raise ConfigurationError(f"Unknown planck option '{self.opts['planck']}'")

        self.prop = prop
        self.x = list(x) if x is not None else []
        prop.check(self.x)

        if l is None:
            l = prop.l
        if l is None:
            raise ConfigurationError("No measurement wavelengths given (l or prop.l)")
        self.l = np.atleast_1d(np.asarray(l, dtype=float))

        self.t = None if t is None else np.asarray(t, dtype=float)
        self.J = None if J is None else self.check_signal(J)
        self.data_sc = data_sc
        self.rng = np.random.default_rng(rng)

        self.pyrometry = self._select_strategy()

    def _select_strategy(self):
        pyrometry = self.opts['pyrometry']
        if pyrometry == 'default':
            if len(self.l) < 2:
                # Forward model only
                return None
            pyrometry = 'ratio' if len(self.l) == 2 else 'spectral-fit'

        if pyrometry in ('spectral-fit', 'spectral'):
            if len(self.l) < 2:
                raise ConfigurationError("Spectral fitting requires at least two wavelengths")
            table, key = MULTICOLOR, self.opts['multicolor']
        else:
            table, key = PYROMETRY, pyrometry

        try:
            strategy = table[key]
        except KeyError:
            raise ConfigurationError(
                f"Unknown pyrometry/multicolor option '{key}'. Choose from {sorted(table)}."
            ) from None
        return strategy(self)

    def check_signal(self, J):
        """
        Return J as an array of shape (Nt, Nshots, Nl).

        A 2D signal is treated as a single shot.

        Raises
        ------
        ConfigurationError
            If the number of channels does not match the wavelengths.
        """
        J = np.asarray(J, dtype=float)
        if J.ndim == 2:
            J = J[:, np.newaxis, :]
        if J.ndim != 3 or J.shape[2] != len(self.l):
            raise ConfigurationError(
                f"Signal of shape {J.shape} does not match {len(self.l)} wavelengths; "
                f"expected (Nt, Nshots, {len(self.l)})"
            )
        return J

    #-- Forward model ----------------------------------------------------#
    @staticmethod
    def _as_2d(T):
        if isinstance(T, Trajectory):
            T = T.T
        T = np.asarray(T, dtype=float)
        if T.ndim == 0:
            return T.reshape(1, 1)
        if T.ndim == 1:
            return T.reshape(-1, 1)
        if T.ndim > 2:
            raise ValueError(f"Temperature must have at most two axes (time, shot), got {T.ndim}")
        return T

    def blackbody(self, T, l=None, prop=None):
        """
        Evaluate Planck's law in wavelength form.

        Parameters
        ----------
        T : float or np.ndarray
            Temperature in K, shape (), (Nt,) or (Nt, Nshots)
        l : array-like, optional
            Wavelengths in nm. Default: self.l
        prop : Prop, optional
            Properties. Default: self.prop

        Returns
        -------
        np.ndarray
            Spectral radiance, C_J * 2hc^2 / l^5 / (exp(phi/(l*T)) - 1),
            shape (Nt, Nshots, Nl). Uses exp(-phi/(l*T)) under the Wien
            approximation (``planck='wien'``).
        """
        prop = self.prop if prop is None else prop
        l = self.l if l is None else np.atleast_1d(np.asarray(l, dtype=float))
        T = self._as_2d(T)

        lm = l.reshape(1, 1, -1) * 1e-9
        x = prop.phi / (lm * T[:, :, np.newaxis])
        I0 = prop.C_J * 2 * prop.h * prop.c ** 2 / lm ** 5

        with np.errstate(over='ignore', divide='ignore'):
            if self.opts['planck'] == 'wien':
                return I0 * np.exp(-x)
            return I0 / np.expm1(x)

    def forward(self, T, prop=None, Em=None):
        """
        Evaluate the forward model, temperature to incandescence.

        Parameters
        ----------
        T : float, np.ndarray or Trajectory
            Temperature in K, shape (), (Nt,) or (Nt, Nshots)
        prop : Prop, optional
            Properties. Default: self.prop
        Em : callable, optional
            Absorption function Em(l, dp). Default: prop.Em

        Returns
        -------
        np.ndarray
            Signal of shape (Nt, Nshots, Nl)

        Notes
        -----
        J = blackbody(T, l) * Em(l, dp0) / l / data_sc. The temperature is
        trusted to be positive.
        """
        prop = self.prop if prop is None else prop
        if Em is None:
            Em_l = prop.evaluate('Em', self.l, prop.dp0)
        else:
            Em_l = Em(self.l, prop.dp0)

        p3 = np.broadcast_to(Em_l / (self.l * 1e-9) / self.data_sc, self.l.shape)
        return self.blackbody(T, self.l, prop) * p3.reshape(1, 1, -1)

    #-- Inverse model ----------------------------------------------------#
    def calc_ratio_pyrometry(self, J1, J2, prop=None):
        """
        Two-color pyrometry on a pair of channels.

        Parameters
        ----------
        J1, J2 : np.ndarray
            Signals at self.l[0] and self.l[1], shape (Nt, N)
        prop : Prop, optional
            Properties. Default: self.prop

        Returns
        -------
        T : np.ndarray
            Temperature, shape (Nt, N)
        C : np.ndarray
            Scaling factor from the first channel, shape (Nt, N)
        s_T : np.ndarray
            Standard deviation of T along the second axis, shape (Nt, 1)
        out : dict
            'degenerate': mask of non-positive ratio arguments
        """
        prop = self.prop if prop is None else prop
        l1, l2 = self.l[0], self.l[1]
        Emr = prop.evaluate('Emr', l1, l2, prop.dp0)

        T, degenerate = ratio_temperature(J1, J2, l1, l2, Emr, prop.phi)
        T = self._as_2d(T)
        with np.errstate(divide='ignore', invalid='ignore'):
            C = self._as_2d(J1) / self.forward(T, prop)[:, :, 0]
        s_T = np.std(T, axis=1, ddof=1 if T.shape[1] > 1 else 0, keepdims=True)

        return T, C, s_T, {'degenerate': self._as_2d(degenerate)}

    def inverse(self, J=None, prop=None):
        """
        Evaluate the inverse model, incandescence to temperature.

        Parameters
        ----------
        J : np.ndarray, optional
            Signal, shape (Nt, Nshots, Nl). Default: self.J
        prop : Prop, optional
            Properties. Default: self.prop

        Returns
        -------
        PyrometryResult
            Temperature, scaling factor, uncertainty and diagnostics. The
            content depends on the selected strategy. If the time grid
            matches the signal it is stored as out['t'].

        Raises
        ------
        ConfigurationError
            If there is no signal, or no inverse strategy is available for
            a single wavelength.
        """
        if self.pyrometry is None:
            raise ConfigurationError(
                f"No inverse model for {len(self.l)} wavelength; "
                "pyrometry needs at least two wavelengths"
            )
        if J is None:
            J = self.J
        if J is None:
            raise ConfigurationError("No signal to invert")
        J = self.check_signal(J)
        prop = self.prop if prop is None else prop
        result = self.pyrometry.invert(J, prop)
        if self.t is not None and len(self.t) == J.shape[0]:
            result.out.setdefault('t', self.t)
        return result

    def evaluate(self, x=None):
        """
        Invert the stored signal with the free parameters set to x.

        The stored properties are never modified; the override is applied
        to an owned copy.

        Parameters
        ----------
        x : array-like, optional
            Values of the free parameters, in the order of ``self.x``.
            If None the stored values are used.

        Returns
        -------
        np.ndarray
            Temperature

        Notes
        -----
        If the length of x does not match the number of free parameters a
        ParameterMismatchWarning is issued and the stored values are used.
        """
        prop = self.prop.override(self.x, x)
        return self.inverse(self.J, prop).T

"""
Pyrometry Module

Two-color pyrometry for recovering particle temperature, and optionally a
scaling factor and its uncertainty, from incandescence signals measured at
two wavelengths.

Each strategy implements ``invert(J, prop) -> PyrometryResult``. The
strategy used by a spectroscopic model is selected by its ``pyrometry``
option (see ``spectroscopic.SModel``).
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .preprocessing import average_shots


@dataclass(frozen=True)
class PyrometryResult:
    """
    Output of an inversion.

    Attributes
    ----------
    T : np.ndarray
        Temperature in K, shape (Nt, Nshots) or (Nt, 1) for strategies that
        combine shots
    C : np.ndarray, optional
        Scaling factor, same shape as T
    s_T : np.ndarray, optional
        1-sigma temperature uncertainty, same shape as T
    out : dict
        Diagnostics: residuals, scaling factor uncertainty, Monte Carlo
        draws, and the mask of degenerate ratio evaluations
    """
    T: np.ndarray
    C: Optional[np.ndarray] = None
    s_T: Optional[np.ndarray] = None
    out: dict = field(default_factory=dict)

    def __post_init__(self):
        for value in (self.T, self.C, self.s_T):
            if isinstance(value, np.ndarray):
                value.setflags(write=False)

    @property
    def Ti(self):
        """Average temperature over shots at the first time step."""
        return float(np.nanmean(self.T[0, :]))

    def mean_over_shots(self):
        """Return a new result with T, C and s_T averaged across shots."""
        def _mean(value):
            if value is None:
                return None
            return np.nanmean(value, axis=1, keepdims=True)

        return PyrometryResult(
            T=_mean(self.T), C=_mean(self.C), s_T=_mean(self.s_T), out=self.out
        )


def ratio_temperature(J1, J2, l1, l2, Emr, phi=0.0143877696):
    """
    Closed-form two-color temperature from the ratio of two channels.

    Parameters
    ----------
    J1, J2 : np.ndarray
        Signals at the two wavelengths, same shape
    l1, l2 : float
        Wavelengths in nm
    Emr : float or np.ndarray
        Absorption function ratio, E(m, l1) / E(m, l2)
    phi : float, optional
        h*c/kb in m.K. Default: 0.0143877696

    Returns
    -------
    T : np.ndarray
        Temperature in K
    degenerate : np.ndarray
        True where the logarithm argument is not positive

    Notes
    -----
    Under the Wien approximation to Planck's law,

        T = phi * (1/l2 - 1/l1) * 1e9 / ln(J1/J2 * (l1/l2)^6 / Emr)

    The logarithm is evaluated in complex arithmetic and the real part of T
    is returned, so noisy samples with a non-positive ratio give a finite
    (non-physical) temperature instead of an error. These samples are
    reported in ``degenerate``.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        arg = np.asarray(J1, dtype=float) / np.asarray(J2, dtype=float) \
            * (l1 / l2) ** 6 / Emr
        T = phi * (1 / l2 - 1 / l1) * 1e9 / np.log(arg.astype(complex))
    return np.real(T), ~(arg > 0)


class Pyrometry:
    """
    Base class for pyrometry strategies.

    Parameters
    ----------
    smodel : SModel
        Spectroscopic model providing the wavelengths, forward model,
        options and random number generator
    """
    name = None
    nl = None  # required number of wavelengths, None for any

    def __init__(self, smodel):
        self.smodel = smodel
        if self.nl is not None and len(smodel.l) != self.nl:
            raise ConfigurationError(
                f"Pyrometry '{self.name}' requires {self.nl} wavelengths, "
                f"{len(smodel.l)} were given"
            )

    def invert(self, J, prop):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class RatioPyrometry(Pyrometry):
    """
    Simple and fast two-color pyrometry, one temperature per time step and
    shot. No scaling factor is returned.
    """
    name = 'ratio'
    nl = 2

    def invert(self, J, prop):
        T, _, _, out = self.smodel.calc_ratio_pyrometry(J[:, :, 0], J[:, :, 1], prop)
        return PyrometryResult(T=T, out={'degenerate': out['degenerate']})


class ScalingFactorPyrometry(Pyrometry):
    """
    Two-color pyrometry followed by the scaling factor that maps the
    blackbody signal at the recovered temperature onto the first channel.
    """
    name = 'scaling-factor'
    nl = 2

    def invert(self, J, prop):
        T, _, _, out = self.smodel.calc_ratio_pyrometry(J[:, :, 0], J[:, :, 1], prop)
        with np.errstate(divide='ignore', invalid='ignore'):
            C = (J / self.smodel.forward(T, prop))[:, :, 0]
        return PyrometryResult(T=T, C=C, out={'degenerate': out['degenerate']})


class ConstTemperaturePyrometry(Pyrometry):
    """
    Two-color temperature, with the scaling factor evaluated against the
    blackbody signal at a fixed reference temperature.

    The reference temperature is the ``T_ref`` option or, if unset, the
    boiling point ``Tb`` of the material.
    """
    name = 'const-temperature'
    nl = 2

    def invert(self, J, prop):
        T_ref = self.smodel.opts['T_ref']
        if T_ref is None:
            T_ref = prop.Tb
        if T_ref is None:
            raise ConfigurationError(
                "Constant temperature pyrometry needs the T_ref option or prop.Tb"
            )

        T, _, _, out = self.smodel.calc_ratio_pyrometry(J[:, :, 0], J[:, :, 1], prop)
        C = (J / self.smodel.forward(T_ref * np.ones_like(T), prop))[:, :, 0]
        return PyrometryResult(
            T=T, C=C, out={'degenerate': out['degenerate'], 'T_ref': T_ref}
        )


class AdvancedPyrometry(Pyrometry):
    """
    Two-color pyrometry on shot-averaged signals with Monte Carlo
    uncertainty propagation.

    Each channel is averaged across shots. The standard error of the mean
    at every time step defines a normal distribution per channel from which
    ``nsamples`` independent draws are taken (a multivariate normal with
    diagonal covariance). Two-color pyrometry on each draw gives an
    empirical temperature distribution whose standard deviation is s_T.
    """
    name = 'advanced'
    nl = 2

    def invert(self, J, prop):
        data, se = average_shots(J)
        Nt = data.shape[0]
        T, C, _, out = self.smodel.calc_ratio_pyrometry(data[:, [0]], data[:, [1]], prop)

        nn = self.smodel.opts['nsamples']
        rng = self.smodel.rng
        datas1 = rng.normal(data[:, [0]], se[:, [0]], size=(Nt, nn))
        datas2 = rng.normal(data[:, [1]], se[:, [1]], size=(Nt, nn))
        T_s, C_s, s_T, _ = self.smodel.calc_ratio_pyrometry(datas1, datas2, prop)

        out = {
            'degenerate': out['degenerate'],
            'T_samples': T_s,
            'C_samples': C_s,
            's_C': np.std(C_s, axis=1, ddof=1 if nn > 1 else 0, keepdims=True),
            'resid': np.zeros(Nt),
        }
        return PyrometryResult(T=T, C=C, s_T=s_T, out=out)


class ConstConcentrationPyrometry(Pyrometry):
    """
    Pyrometry with the scaling factor held at a constant value.

    Not implemented. Inverting always raises ConfigurationError, stating
    whether the required ``C`` option was missing.
    """
    name = 'const-concentration'
    nl = None

    def invert(self, J, prop):
        if self.smodel.opts['C'] is None:
            raise ConfigurationError(
                "Constant concentration pyrometry: C was not specified"
            )
        raise ConfigurationError(
            "Constant concentration pyrometry is not implemented"
        )

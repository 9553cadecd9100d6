"""
Materials Module

Material and gas definitions used to populate a property store. Each
definition takes the store and its ``opts`` dictionary and assigns the
properties of that material, choosing between correlation variants where
``opts`` selects one.

Available definitions: soot, iron, argon, nitrogen.
"""

import numpy as np

from .correlations import PropFunction, antoine, claus_clap, drude, kelvin, tolman, watson
from .errors import ConfigurationError


# Shared correlations, evaluated from the coefficients stored in the Prop
def _rho_poly(prop, T):
    T = np.asarray(T, dtype=float)
    return prop.Arho + prop.Brho * T + prop.Crho * T ** 2


def _cp_poly(prop, T):
    T = np.asarray(T, dtype=float)
    return prop.Ccp + prop.Dcp * T + prop.Ecp / T ** 2


def _cp_michelsen(prop, T):
    # Einstein-type heat capacity of graphite (Michelsen, 2003)
    T = np.asarray(T, dtype=float)
    a = 597 / T
    b = 1739 / T
    return prop.R / prop.M * (
        1.115 * a ** 2 * np.exp(a) / (np.exp(a) - 1) ** 2
        + 1.789 * b ** 2 * np.exp(b) / (np.exp(b) - 1) ** 2
        + T / 8620
    )


def _Em_const(prop, l, dp=None):
    return prop.Em0 * np.ones_like(np.asarray(l, dtype=float))


def _Em_krishnan(prop, l, dp=None):
    # Krishnan et al. (2000) soot refractive index, wavelength in um
    x = np.log(np.asarray(l, dtype=float) * 1e-3)
    n = 1.811 + 0.1263 * x + 0.027 * x ** 2 + 0.0417 * x ** 3
    k = 0.5821 + 0.1213 * x + 0.2309 * x ** 2 - 0.01 * x ** 3
    m2 = (n + 1j * k) ** 2
    return np.imag((m2 - 1) / (m2 + 2))


def _Em_drude(prop, l, dp=None):
    return drude(prop, l)[0]


def _Emr(prop, l1, l2, dp=None):
    return prop.evaluate('Em', l1, dp) / prop.evaluate('Em', l2, dp)


def _Eml(prop, dp=None):
    return prop.evaluate('Em', prop.l_laser, dp)


def _mv(prop, T=None):
    return prop.evaluate('Mv', T) / prop.Na


def _check(opts, family, supported, material):
    if opts[family] not in supported:
        raise ConfigurationError(
            f"Option {family}='{opts[family]}' is not available for {material}. "
            f"Choose from {sorted(supported)}."
        )


def _common(prop):
    """Properties shared by every particle material."""
    prop.rho = PropFunction(_rho_poly)
    prop.hv = PropFunction(watson)
    prop.mv = PropFunction(_mv)
    prop.gamma = PropFunction(tolman)
    prop.Emr = PropFunction(_Emr)
    prop.Eml = PropFunction(_Eml)


def soot(prop, opts):
    """
    Soot (amorphous carbon) with C3 as the dominant vapor species.

    Variants: rho in {'default', 'constant'}, cp in {'default',
    'michelsen'}, Em in {'default', 'krishnan'}. Only the
    Clausius-Clapeyron vapor pressure is available.

    References
    ----------
    Michelsen (2003). Understanding and predicting the temporal response of
    laser-induced incandescence. J. Chem. Phys. 118, 7012.
    Liu et al. (2006). Applied Physics B, 83, 355-382.
    """
    _check(opts, 'rho', {'default', 'constant'}, 'soot')
    _check(opts, 'cp', {'default', 'michelsen'}, 'soot')
    _check(opts, 'Em', {'default', 'krishnan'}, 'soot')
    _check(opts, 'pv', {'default'}, 'soot')

    _common(prop)
    prop.M = 0.01201

    if opts['rho'] == 'constant':
        prop.Arho, prop.Brho, prop.Crho = 1860., 0., 0.
    else:
        prop.Arho, prop.Brho, prop.Crho = 2303., -7.3106e-2, 0.

    if opts['cp'] == 'michelsen':
        prop.cp = PropFunction(_cp_michelsen)
    else:
        prop.Ccp, prop.Dcp, prop.Ecp = 1878., 0.1082, -1.5149e8
        prop.cp = PropFunction(_cp_poly)

    prop.alpha = 0.37

    prop.Mv = 0.036
    prop.Tb = 4136.
    prop.Pref = 101325.
    prop.hvb = 2.19e7
    prop.Tcr = 6810.
    prop.n = 0.38
    prop.alpham = 0.77
    prop.pv = PropFunction(claus_clap)

    prop.Em0 = 0.35
    prop.Em = PropFunction(_Em_krishnan if opts['Em'] == 'krishnan' else _Em_const)

    prop.Aa = 1e18
    prop.Ea = 9.6e5


def iron(prop, opts):
    """
    Liquid iron.

    Variants: rho in {'default', 'constant'}, pv in {'default', 'kelvin',
    'antoine'}, Em in {'default', 'drude'}.
    """
    _check(opts, 'rho', {'default', 'constant'}, 'iron')
    _check(opts, 'cp', {'default'}, 'iron')
    _check(opts, 'pv', {'default', 'kelvin', 'antoine'}, 'iron')
    _check(opts, 'Em', {'default', 'drude'}, 'iron')

    _common(prop)
    prop.M = 0.055845
    prop.Tm = 1811.

    if opts['rho'] == 'constant':
        prop.Arho, prop.Brho, prop.Crho = 7000., 0., 0.
    else:
        prop.Arho, prop.Brho, prop.Crho = 8171., -0.64985, 0.

    prop.Ccp, prop.Dcp, prop.Ecp = 835., 0., 0.
    prop.cp = PropFunction(_cp_poly)

    prop.alpha = 0.1

    prop.Mv = 0.055845
    prop.Tb = 3134.
    prop.Pref = 101325.
    prop.hvb = 6.09e6
    prop.Tcr = 9250.
    prop.n = 0.38
    prop.alpham = 1.
    prop.gamma0 = 1.865
    prop.gammaT = 3.5e-4
    prop.delta = 0.
    prop.C1, prop.C2, prop.C3 = 11.353, 19574., 0.
    prop.pv = PropFunction({
        'default': claus_clap,
        'kelvin': kelvin,
        'antoine': antoine,
    }[opts['pv']])

    prop.Em0 = 0.32
    prop.omega_p = 3.0e16
    prop.tau = 5e-17
    prop.Em = PropFunction(_Em_drude if opts['Em'] == 'drude' else _Em_const)


def argon(prop, opts):
    """Argon at ambient conditions."""
    prop.Tg = 300.
    prop.Pg = 101325.
    prop.mg = 6.6335e-26
    prop.gamma1 = 5 / 3
    prop.zeta_rot = 0


def nitrogen(prop, opts):
    """Nitrogen at ambient conditions."""
    prop.Tg = 300.
    prop.Pg = 101325.
    prop.mg = 4.6518e-26
    prop.gamma1 = 1.4
    prop.zeta_rot = 2


MATERIALS = {
    'soot': soot,
    'iron': iron,
    'argon': argon,
    'Ar': argon,
    'nitrogen': nitrogen,
    'N2': nitrogen,
}

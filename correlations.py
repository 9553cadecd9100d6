"""
Correlations Module

Thermophysical and optical correlations evaluated against a property
store. Every function takes the store as its first argument so that the
same correlation can be attached to any material and always reads the
values of the store it is evaluated from.

Units: temperature in K, particle diameter in nm, wavelength in nm,
pressure in Pa, latent heat in J/kg.
"""

import functools

import numpy as np


class PropFunction:
    """
    Marks a property that is computed from other entries of a store.

    The wrapped function takes the store as its first argument. When the
    entry is read from a ``Prop`` it is returned bound to that store, so a
    copied or overridden store evaluates with its own values.

    Parameters
    ----------
    func : callable
        Function with signature ``func(prop, *args)``
    """

    def __init__(self, func):
        self.func = func
        functools.update_wrapper(self, func)

    def bind(self, prop):
        return functools.partial(self.func, prop)

    def __repr__(self):
        return f"PropFunction({getattr(self.func, '__name__', 'lambda')})"


def watson(prop, T):
    """
    Watson equation for the latent heat of vaporization.

    Parameters
    ----------
    prop : Prop
        Store providing ``hvb`` (J/kg), ``Tb``, ``Tcr`` and ``n``
    T : float or np.ndarray
        Temperature in K

    Returns
    -------
    np.ndarray
        Latent heat in J/kg. Zero at and above the critical temperature.

    Notes
    -----
    hv(T) = hvb * ((1 - T/Tcr) / (1 - Tb/Tcr))^n
    """
    T = np.asarray(T, dtype=float)
    ratio = np.clip(1 - T / prop.Tcr, 0, None) / (1 - prop.Tb / prop.Tcr)
    return prop.hvb * ratio ** prop.n


def claus_clap(prop, T, dp=None, hv=None):
    """
    Clausius-Clapeyron equation for the vapor pressure over a flat surface.

    Parameters
    ----------
    prop : Prop
        Store providing ``Mv``, ``R`` and either ``C`` or the reference
        point (``Pref``, ``Tb``, ``hvb``)
    T : float or np.ndarray
        Temperature in K
    dp : float, optional
        Particle diameter in nm. Not used over a flat surface.
    hv : float or np.ndarray, optional
        Latent heat in J/kg. Evaluated from ``prop.hv`` if omitted.

    Returns
    -------
    np.ndarray
        Vapor pressure in Pa

    Notes
    -----
    pv = exp(C - hv*Mv / (R*T)). If ``C`` is not set it is chosen so that
    pv(Tb) = Pref.
    """
    T = np.asarray(T, dtype=float)
    if hv is None:
        hv = prop.evaluate('hv', T)
    Mv = prop.evaluate('Mv', T)
    C = prop.C
    if C is None:
        C = np.log(prop.Pref) + prop.hvb * prop.evaluate('Mv', prop.Tb) / (prop.R * prop.Tb)
    return np.exp(C - hv * Mv / (prop.R * T))


def antoine(prop, T, dp=None, hv=None):
    """
    Antoine equation, log10(pv) = C1 - C2 / (T + C3), with pv in Pa.
    """
    T = np.asarray(T, dtype=float)
    return 10 ** (prop.C1 - prop.C2 / (T + prop.C3))


def kelvin(prop, T, dp, hv=None):
    """
    Kelvin equation for the vapor pressure over a curved surface.

    Parameters
    ----------
    prop : Prop
        Store providing ``gamma``, ``rho``, ``Mv`` and ``R``
    T : float or np.ndarray
        Temperature in K
    dp : float or np.ndarray
        Particle diameter in nm
    hv : float or np.ndarray, optional
        Latent heat in J/kg, passed to the flat-surface equation

    Returns
    -------
    np.ndarray
        Vapor pressure in Pa

    Notes
    -----
    pv = pv_flat * exp(4*gamma*Mv / (dp*rho*R*T)), with the flat-surface
    vapor pressure from the Clausius-Clapeyron equation and the surface
    tension from ``prop.gamma`` (Tolman equation by default).
    """
    T = np.asarray(T, dtype=float)
    pv_flat = claus_clap(prop, T, dp, hv)
    gamma = prop.gamma(dp, T)
    Mv = prop.evaluate('Mv', T)
    return pv_flat * np.exp(
        4 * gamma * Mv / (dp * 1e-9 * prop.evaluate('rho', T) * prop.R * T)
    )


def tolman(prop, dp, T=None):
    """
    Tolman equation for the size-dependent surface tension.

    The flat-surface value is ``gamma0`` at the melting point ``Tm``,
    decreasing linearly with slope ``gammaT`` (N/m/K). ``delta`` is the
    Tolman length in nm.

    Returns
    -------
    np.ndarray
        Surface tension in N/m
    """
    gamma_flat = prop.gamma0
    if T is not None and prop.gammaT:
        gamma_flat = gamma_flat - prop.gammaT * (np.asarray(T, dtype=float) - prop.Tm)
    return gamma_flat / (1 + 4 * prop.delta / np.asarray(dp, dtype=float))


def drude(prop, l):
    """
    Evaluate the absorption function using Drude theory.

    Parameters
    ----------
    prop : Prop
        Store providing the plasma frequency ``omega_p`` (rad/s) and the
        relaxation time ``tau`` (s)
    l : float or np.ndarray
        Wavelength in nm

    Returns
    -------
    Em : np.ndarray
        Absorption function, Im((m^2 - 1) / (m^2 + 2))
    n : np.ndarray
        Real part of the refractive index
    k : np.ndarray
        Imaginary part of the refractive index
    """
    omega = 2 * np.pi * prop.c / (np.asarray(l, dtype=float) * 1e-9)
    eps = 1 - prop.omega_p ** 2 / (omega ** 2 + 1j * omega / prop.tau)
    m = np.sqrt(eps)
    Em = np.imag((eps - 1) / (eps + 2))
    return Em, m.real, m.imag

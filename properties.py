"""
Properties Module

Container for material and experimental properties used by the heat
transfer and spectroscopic models.

The container has a fixed, documented schema (``SCHEMA``). Physical
constants are immutable. New properties are introduced explicitly with
``Prop.add_property``. Overrides for sensitivity analysis and optimization
are applied to an owned copy through ``Prop.override`` so that a shared
instance is never modified in place.
"""

import warnings

import numpy as np

from .correlations import PropFunction
from .errors import ConfigurationError, ParameterMismatchWarning
from .materials import MATERIALS


CONSTANTS = {
    'h': 6.62606957e-34,   # Planck's constant [m^2.kg/s]
    'c': 2.99792458e8,     # speed of light in a vacuum [m/s]
    'kb': 1.3806488e-23,   # Boltzmann constant [m^2.kg/s^2/K]
    'R': 8.3144621,        # universal gas constant [J/mol/K]
    'phi': 0.0143877696,   # constant for Planck's law, phi = h*c/kb [m.K]
    'Na': 6.02214129e23,   # Avogadro's number [1/mol]
}

# name: (default, description)
SCHEMA = {
    # Sensible energy
    'M': (None, 'molar mass of the particle material [kg/mol]'),
    'Tm': (None, 'melting temperature [K]'),
    'rho': (None, 'density, rho(T) [kg/m^3]'),
    'Arho': (None, 'density coefficient, constant [kg/m^3]'),
    'Brho': (0., 'density coefficient, linear [kg/m^3/K]'),
    'Crho': (0., 'density coefficient, quadratic [kg/m^3/K^2]'),
    'cp': (None, 'specific heat capacity, cp(T) [J/kg/K]'),
    'Ccp': (None, 'heat capacity coefficient, constant [J/kg/K]'),
    'Dcp': (0., 'heat capacity coefficient, linear [J/kg/K^2]'),
    'Ecp': (0., 'heat capacity coefficient, inverse square [J.K/kg]'),

    # Conduction
    'alpha': (None, 'thermal accommodation coefficient [-]'),
    'Tg': (None, 'gas temperature [K]'),
    'Pg': (None, 'gas pressure [Pa]'),
    'mg': (None, 'mass of a gas molecule [kg]'),
    'gamma1': (None, 'heat capacity ratio of the gas [-]'),
    'zeta_rot': (None, 'rotational degrees of freedom of the gas [-]'),

    # Evaporation
    'Mv': (None, 'molar mass of the vapor [kg/mol]'),
    'mv': (None, 'mass of a vapor molecule [kg]'),
    'pv': (None, 'vapor pressure, pv(T, dp, hv) [Pa]'),
    'hv': (None, 'latent heat of vaporization, hv(T) [J/kg]'),
    'hvb': (None, 'latent heat at the boiling/reference point [J/kg]'),
    'Tb': (None, 'boiling/reference temperature [K]'),
    'Pref': (None, 'reference pressure for the vapor pressure curve [Pa]'),
    'Tcr': (None, 'critical temperature [K]'),
    'n': (None, 'Watson exponent [-]'),
    'C': (None, 'Clausius-Clapeyron constant [-]'),
    'C1': (None, 'Antoine constant [-]'),
    'C2': (None, 'Antoine constant [K]'),
    'C3': (None, 'Antoine constant [K]'),
    'alpham': (None, 'mass accommodation coefficient [-]'),
    'gamma': (None, 'surface tension, gamma(dp, T) [N/m]'),
    'gamma0': (None, 'surface tension of a flat surface at Tm [N/m]'),
    'gammaT': (0., 'surface tension temperature coefficient [N/m/K]'),
    'delta': (0., 'Tolman length [nm]'),

    # Optical
    'Em': (None, 'absorption function, Em(l, dp) [-]'),
    'Emr': (None, 'absorption function ratio, Emr(l1, l2, dp) [-]'),
    'Em0': (None, 'constant absorption function [-]'),
    'omega_p': (None, 'Drude plasma frequency [rad/s]'),
    'tau': (None, 'Drude relaxation time [s]'),

    # Absorption
    'Eml': (None, 'absorption function at the laser wavelength [-]'),
    'F0': (None, 'laser fluence [J/cm^2]'),
    'tlp': (None, 'laser pulse length, FWHM [ns]'),
    'tlm': (0., 'laser pulse centre [ns]'),
    'l_laser': (1064., 'laser wavelength [nm]'),

    # Annealing
    'Aa': (None, 'annealing pre-exponential factor [1/s]'),
    'Ea': (None, 'annealing activation energy [J/mol]'),

    # Particle size and signal
    'dp0': (None, 'particle diameter [nm]'),
    'Ti': (None, 'initial temperature for simulation [K], defaults to Tg'),
    'l': (None, 'measurement wavelengths [nm]'),
    'C_J': (1., 'constant scaling the blackbody distribution [-]'),
}

DEFAULT_OPTS = {
    'rho': 'default',
    'cp': 'default',
    'hv': 'default',
    'abs': 'default',
    'Em': 'default',
    'M': 'default',
    'pv': 'default',
    'mv': 'default',
    'propmodel': 'default',
}


class Prop:
    """
    Material and experimental property store.

    Properties are read as attributes or items. Function-valued properties
    built from other entries (``PropFunction``) are returned bound to the
    store they are read from.

    Parameters
    ----------
    materials : str or list of str, optional
        Names of material definitions to load, e.g. ['soot', 'nitrogen'].
        Later definitions overwrite earlier ones.
    opts : dict, optional
        Correlation variant per property family. See ``DEFAULT_OPTS``.
    **kwargs
        Property values assigned after the materials are loaded,
        e.g. dp0=30, F0=0.15.

    Raises
    ------
    ConfigurationError
        Unknown material, option or property name.

    Example
    -------
    >>> prop = Prop(['soot', 'nitrogen'], dp0=30, F0=0.15, tlp=7)
    >>> prop.rho(3000)
    """

    def __init__(self, materials=(), opts=None, **kwargs):
        print('Reading material properties...')

        object.__setattr__(
            self, '_values', {name: default for name, (default, _) in SCHEMA.items()}
        )
        object.__setattr__(
            self, '_docs', {name: doc for name, (_, doc) in SCHEMA.items()}
        )

        opts = dict(opts or {})
        unknown = set(opts) - set(DEFAULT_OPTS)
        if unknown:
            raise ConfigurationError(f"Unknown property options: {sorted(unknown)}")
        object.__setattr__(self, 'opts', {**DEFAULT_OPTS, **opts})

        if isinstance(materials, str):
            materials = [materials]
        for name in materials:
            try:
                definition = MATERIALS[name]
            except KeyError:
                raise ConfigurationError(
                    f"Unknown material '{name}'. Available: {sorted(MATERIALS)}"
                ) from None
            definition(self, self.opts)

        for name, value in kwargs.items():
            self[name] = value

        print('Material properties loaded.')

    #-- Mapping access ---------------------------------------------------#
    def __getitem__(self, name):
        if name in CONSTANTS:
            return CONSTANTS[name]
        value = self._values[name]
        if isinstance(value, PropFunction):
            return value.bind(self)
        return value

    def __setitem__(self, name, value):
        if name in CONSTANTS:
            raise AttributeError(f"'{name}' is a physical constant and cannot be changed")
        if name not in self._values:
            raise ConfigurationError(
                f"Unknown property '{name}'. Use add_property to introduce it."
            )
        self._values[name] = value

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"Prop has no property '{name}'") from None

    def __setattr__(self, name, value):
        if name == 'opts':
            object.__setattr__(self, name, value)
        else:
            self[name] = value

    def __contains__(self, name):
        return name in CONSTANTS or name in self._values

    def keys(self):
        return list(CONSTANTS) + list(self._values)

    def __repr__(self):
        n_set = sum(value is not None for value in self._values.values())
        return f"Prop({n_set}/{len(self._values)} properties set, opts={self.opts})"

    #-- Schema management ------------------------------------------------#
    def add_property(self, name, value=None, doc=''):
        """
        Introduce a new named property.

        Raises
        ------
        ConfigurationError
            If the property already exists.
        """
        if name in self:
            raise ConfigurationError(f"Property '{name}' already exists")
        self._values[name] = value
        self._docs[name] = doc

    def describe(self, name):
        """Return the documented meaning and units of a property."""
        if name in CONSTANTS:
            return 'physical constant'
        return self._docs[name]

    def check(self, names):
        """
        Raise ConfigurationError if any of ``names`` is not a property that
        can be overridden.
        """
        for name in names:
            if name in CONSTANTS:
                raise ConfigurationError(f"'{name}' is a physical constant and cannot be a free parameter")
            if name not in self._values:
                raise ConfigurationError(f"Unknown property '{name}' in free parameter list")

    #-- Copy and override ------------------------------------------------#
    def copy(self):
        """Return a copy of the store that updates independently."""
        copied = object.__new__(Prop)
        values = {
            name: value.copy() if isinstance(value, np.ndarray) else value
            for name, value in self._values.items()
        }
        object.__setattr__(copied, '_values', values)
        object.__setattr__(copied, '_docs', dict(self._docs))
        object.__setattr__(copied, 'opts', dict(self.opts))
        return copied

    def override(self, names, x):
        """
        Return an owned copy with the values in ``x`` assigned to ``names``.

        Parameters
        ----------
        names : list of str
            Property names, in the order of ``x``
        x : array-like or None
            Override values. If None, an unmodified copy is returned.

        Returns
        -------
        Prop
            Copy of the store with the overrides applied

        Notes
        -----
        If the length of ``x`` does not match ``names`` a
        ParameterMismatchWarning is issued and the copy keeps the default
        values.
        """
        prop = self.copy()
        if x is None:
            return prop

        x = np.atleast_1d(np.asarray(x, dtype=float))
        if len(x) != len(names):
            warnings.warn(
                f"Parameter size mismatch: expected {len(names)} value(s) for "
                f"{list(names)}, got {len(x)}. Using default values.",
                ParameterMismatchWarning,
                stacklevel=3,
            )
            return prop

        for name, value in zip(names, x):
            prop[name] = value
        return prop

    def evaluate(self, name, *args):
        """
        Evaluate a property that may be either a function or a constant.

        Function-valued properties are called with ``args``; other values
        are returned as they are. This allows a correlation to be replaced
        by a scalar during an override.
        """
        value = self[name]
        if callable(value):
            return value(*args)
        return value

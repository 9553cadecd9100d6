"""
Heat Transfer Module

Particle energy and mass balance for time-resolved laser-induced
incandescence. The model integrates the temperature, the relative particle
mass and the annealed fraction of a single particle heated by a Gaussian
laser pulse and cooled by conduction, evaporation and radiation.

Time is measured in ns relative to the laser pulse centre. Particle
diameters are in nm; all other quantities are in SI units.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.integrate import solve_ivp
from tqdm import tqdm

from .errors import ConfigurationError, IntegrationError


DEFAULT_OPTS = {
    'abs': True,       # laser absorption
    'cond': True,      # free-molecular conduction
    'evap': True,      # evaporation / sublimation
    'rad': False,      # thermal radiation
    'sens': True,      # sensible energy storage, False gives an isothermal particle
    'ann': False,      # annealing
    'method': 'LSODA',
    'rtol': 1e-6,
    'atol': 1e-8,
    'max_step': None,  # ns, defaults to the smallest grid spacing
    'm_min': 1e-4,     # relative mass at which the particle is considered evaporated
}

# Properties required by each submodel
REQUIRED = {
    'sens': ['cp'],
    'abs': ['F0', 'tlp', 'Eml'],
    'cond': ['alpha', 'Tg', 'Pg', 'mg'],
    'evap': ['pv', 'hv', 'mv', 'alpham'],
    'rad': ['Eml', 'Tg'],
    'ann': ['Aa', 'Ea'],
}


@dataclass
class Trajectory:
    """
    Temperature history produced by the heat transfer model.

    Attributes
    ----------
    t : np.ndarray
        Time grid in ns, shape (Nt,)
    T : np.ndarray
        Temperature in K, shape (Nt, Nshots)
    mp : np.ndarray, optional
        Particle mass in kg, shape (Nt, Nshots). Present if evaporation is
        enabled.
    X : np.ndarray, optional
        Annealed fraction, shape (Nt, Nshots). Present if annealing is
        enabled.
    dp : np.ndarray, optional
        Particle diameter in nm, shape (Nt, Nshots)
    success : bool
        False if the integrator failed before the end of the grid
    message : str
        Solver message
    """
    t: np.ndarray
    T: np.ndarray
    mp: Optional[np.ndarray] = None
    X: Optional[np.ndarray] = None
    dp: Optional[np.ndarray] = None
    success: bool = True
    message: str = ''

    @property
    def Tpeak(self):
        """Peak temperature of each shot."""
        return np.nanmax(self.T, axis=0)

    @classmethod
    def stack(cls, trajectories):
        """Combine single-shot trajectories along the shot axis."""
        def _hstack(name):
            values = [getattr(tr, name) for tr in trajectories]
            if any(v is None for v in values):
                return None
            return np.hstack(values)

        return cls(
            t=trajectories[0].t,
            T=_hstack('T'),
            mp=_hstack('mp'),
            X=_hstack('X'),
            dp=_hstack('dp'),
            success=all(tr.success for tr in trajectories),
            message='; '.join(tr.message for tr in trajectories if tr.message),
        )


class HTModel:
    """
    Heat transfer model for laser-heated nanoparticles.

    Parameters
    ----------
    prop : Prop
        Material and experimental properties
    x : list of str, optional
        Names of the properties treated as free parameters by ``evaluate``
    t : array-like, optional
        Time grid in ns relative to the laser pulse centre.
        Default: -20 to 2000 ns in 1 ns steps.
    opts : dict, optional
        Active submodels and integrator settings. See ``DEFAULT_OPTS``.

    Raises
    ------
    ConfigurationError
        Unknown option, unknown free parameter, missing property required
        by an active submodel, or an invalid time grid.

    Notes
    -----
    The state vector is (T, m/m0, X). The energy balance is

        m*cp(T) dT/dt = q_abs - q_cond - hv*J_evap - q_rad

    with dm/dt = -J_evap and first-order annealing dX/dt = k(T)*(1 - X).
    Temperature-dependent properties are evaluated from the store at every
    call of the right-hand side.
    """

    def __init__(self, prop, x=None, t=None, opts=None):
        opts = dict(opts or {})
        unknown = set(opts) - set(DEFAULT_OPTS)
        if unknown:
            raise ConfigurationError(f"Unknown heat transfer options: {sorted(unknown)}")
        self.opts = {**DEFAULT_OPTS, **opts}

        self.prop = prop
        self.x = list(x) if x is not None else []
        prop.check(self.x)

        if t is None:
            t = np.arange(-20., 2001., 1.)
        self.t = np.asarray(t, dtype=float)
        if self.t.ndim != 1 or self.t.size < 2 or np.any(np.diff(self.t) <= 0):
            raise ConfigurationError("Time grid must be increasing with at least two points")

        self._check_required(prop)

    def _check_required(self, prop):
        missing = {name for name in ('dp0', 'rho') if prop[name] is None}
        for submodel, names in REQUIRED.items():
            if self.opts[submodel]:
                missing.update(name for name in names if prop[name] is None)
        if self.opts['cond'] and prop.gamma1 is None and prop.zeta_rot is None:
            missing.add('gamma1')
        if prop.Ti is None and prop.Tg is None:
            missing.add('Ti')
        if missing:
            raise ConfigurationError(
                f"Properties required by the active submodels are not set: {sorted(missing)}"
            )

    #-- Particle geometry ------------------------------------------------#
    def dp(self, prop, T, mp):
        """Particle diameter [nm] from mass [kg] and density at T."""
        return 1e9 * (6 * np.clip(mp, 0, None) / (np.pi * prop.evaluate('rho', T))) ** (1 / 3)

    def mass(self, prop, T, dp):
        """Particle mass [kg] from diameter [nm] and density at T."""
        return prop.evaluate('rho', T) * np.pi * (dp * 1e-9) ** 3 / 6

    #-- Energy and mass balance terms ------------------------------------#
    def laser_profile(self, prop, t):
        """
        Normalized Gaussian temporal profile of the laser pulse [1/s].

        ``tlp`` is the full width at half maximum and ``tlm`` the centre,
        both in ns.
        """
        sigma = prop.tlp / (2 * np.sqrt(2 * np.log(2)))
        return np.exp(-(t - prop.tlm) ** 2 / (2 * sigma ** 2)) / (sigma * 1e-9 * np.sqrt(2 * np.pi))

    def q_abs(self, prop, t, dp):
        """
        Absorbed laser power [W] in the Rayleigh limit.

        q_abs = pi^2 * dp^3 * E(m_laser) / l_laser * F0 * f(t)
        """
        Cabs = np.pi ** 2 * (dp * 1e-9) ** 3 * prop.evaluate('Eml', dp) / (prop.l_laser * 1e-9)
        return Cabs * prop.F0 * 1e4 * self.laser_profile(prop, t)  # F0: J/cm2 > J/m2

    def q_cond(self, prop, T, dp):
        """
        Conduction to the surrounding gas [W] in the free-molecular regime.

        Notes
        -----
        q_cond = alpha * pi*dp^2 * Pg/8 * c_g * (gamma + 1)/(gamma - 1) * (T/Tg - 1)

        where c_g is the mean molecular speed of the gas. If the heat
        capacity ratio is not set, (gamma + 1)/(gamma - 1) = 4 + zeta_rot.
        """
        if prop.gamma1 is not None:
            gamma_ratio = (prop.gamma1 + 1) / (prop.gamma1 - 1)
        else:
            gamma_ratio = 4 + prop.zeta_rot
        c_g = np.sqrt(8 * prop.kb * prop.Tg / (np.pi * prop.mg))
        return prop.evaluate('alpha', T) * np.pi * (dp * 1e-9) ** 2 * prop.Pg / 8 \
            * c_g * gamma_ratio * (T / prop.Tg - 1)

    def mass_flux(self, prop, T, dp, hv=None):
        """
        Rate of mass loss by evaporation [kg/s] from the Hertz-Knudsen
        equation.
        """
        if hv is None:
            hv = prop.evaluate('hv', T)
        pv = prop.evaluate('pv', T, dp, hv)
        mv = prop.evaluate('mv', T)
        return prop.evaluate('alpham', T) * np.pi * (dp * 1e-9) ** 2 * mv * pv / (prop.kb * T) \
            * np.sqrt(prop.kb * T / (2 * np.pi * mv))

    def q_evap(self, prop, T, dp):
        """Energy carried away by evaporation [W]."""
        hv = prop.evaluate('hv', T)
        return hv * self.mass_flux(prop, T, dp, hv)

    def q_rad(self, prop, T, dp):
        """
        Net thermal radiation [W] in the Rayleigh limit, taking the
        absorption function at the laser wavelength as representative.
        """
        Em = prop.evaluate('Eml', dp)
        return 199 * np.pi ** 3 * (dp * 1e-9) ** 3 * prop.kb ** 5 * Em \
            * (T ** 5 - prop.Tg ** 5) / (prop.h * (prop.h * prop.c) ** 3)

    def annealing_rate(self, prop, T, X):
        """First-order annealing rate [1/s]."""
        return prop.Aa * np.exp(-prop.Ea / (prop.R * T)) * (1 - X)

    def de_fun(self, prop, t, y, mp0):
        """
        Right-hand side of the ODE system in ns.

        Parameters
        ----------
        prop : Prop
            Properties to evaluate
        t : float
            Time in ns
        y : np.ndarray
            State (T, m/m0, X)
        mp0 : float
            Initial particle mass in kg

        Returns
        -------
        np.ndarray
            Time derivative of the state per ns
        """
        T, mr, X = y
        mp = mr * mp0
        dp = self.dp(prop, T, mp)

        q = 0.
        dmdt = 0.
        if self.opts['abs']:
            q += self.q_abs(prop, t, dp)
        if self.opts['cond']:
            q -= self.q_cond(prop, T, dp)
        if self.opts['evap']:
            hv = prop.evaluate('hv', T)
            J = self.mass_flux(prop, T, dp, hv)
            q -= hv * J
            dmdt = -J
        if self.opts['rad']:
            q -= self.q_rad(prop, T, dp)

        dTdt = q / (mp * prop.evaluate('cp', T)) if self.opts['sens'] else 0.
        dXdt = self.annealing_rate(prop, T, X) if self.opts['ann'] else 0.

        return 1e-9 * np.array([dTdt, dmdt / mp0, dXdt], dtype=float)

    #-- Integration ------------------------------------------------------#
    def _integrate(self, prop):
        Ti = prop.Ti if prop.Ti is not None else prop.Tg
        mp0 = self.mass(prop, Ti, prop.dp0)
        ntime = self.t.size

        max_step = self.opts['max_step'] or np.min(np.diff(self.t))

        def evaporated(t, y):
            return y[1] - self.opts['m_min']
        evaporated.terminal = True
        evaporated.direction = -1

        sol = solve_ivp(
            lambda t, y: self.de_fun(prop, t, y, mp0),
            (self.t[0], self.t[-1]),
            [Ti, 1., 0.],
            method=self.opts['method'],
            t_eval=self.t,
            rtol=self.opts['rtol'],
            atol=self.opts['atol'],
            max_step=max_step,
            events=evaporated if self.opts['evap'] else None,
        )

        # Unreached time steps stay NaN
        y = np.full((3, ntime), np.nan)
        nreached = sol.t.size
        y[:, :nreached] = sol.y

        message = sol.message
        if sol.status == 1:
            # Particle fully evaporated, nothing left to emit
            y[1, nreached:] = 0.
            y[2, nreached:] = y[2, nreached - 1] if nreached else np.nan
            message = f"Particle fully evaporated at t = {sol.t_events[0][0]:.2f} ns"

        T = y[0].reshape(-1, 1)
        mp = (y[1] * mp0).reshape(-1, 1)
        trajectory = Trajectory(
            t=self.t,
            T=T,
            mp=mp if self.opts['evap'] else None,
            X=y[2].reshape(-1, 1) if self.opts['ann'] else None,
            dp=self.dp(prop, T, mp),
            success=sol.status >= 0,
            message=message,
        )

        if sol.status < 0:
            raise IntegrationError(f"Heat transfer integration failed: {sol.message}", trajectory)

        return trajectory

    def solve(self):
        """
        Integrate the heat transfer model using the stored property values.

        Returns
        -------
        Trajectory
            Temperature (and mass, annealed fraction) history, one shot

        Raises
        ------
        IntegrationError
            If the integrator fails. The partial trajectory is attached.
        """
        print('Solving heat transfer model...')
        trajectory = self._integrate(self.prop)
        print('Complete')
        return trajectory

    def evaluate(self, x=None, progress=False):
        """
        Integrate the heat transfer model with the free parameters set to x.

        This is the entry point for optimization and sensitivity loops. The
        stored properties are never modified; each evaluation works on an
        owned copy.

        Parameters
        ----------
        x : array-like, optional
            Values of the free parameters, in the order of ``self.x``.
            A 2D array evaluates one row per shot. If None the stored
            values are used.
        progress : bool, optional
            Show a progress bar over the rows of a 2D x. Default: False

        Returns
        -------
        Trajectory
            Shape (Nt, Nrows) for a 2D x, (Nt, 1) otherwise

        Notes
        -----
        If the length of a row of x does not match the number of free
        parameters, a ParameterMismatchWarning is issued and the stored
        values are used.
        """
        if x is None:
            rows = [None]
        else:
            x = np.asarray(x, dtype=float)
            rows = x.reshape(1, -1) if x.ndim < 2 else x

        trajectories = []
        for xi in tqdm(rows, desc='Evaluating', disable=not progress):
            prop = self.prop.override(self.x, xi)
            trajectories.append(self._integrate(prop))

        if len(trajectories) == 1:
            return trajectories[0]
        return Trajectory.stack(trajectories)

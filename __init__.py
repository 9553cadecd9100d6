"""
LII Spectra Package

A toolkit for time-resolved laser-induced incandescence (TiRe-LII):
nanoparticle heat transfer modelling and spectroscopic forward/inverse
pyrometry for recovering particle temperature from incandescence signals.

Based on the LII heat transfer and pyrometry programs of T. A. Sipkens.
"""

__version__ = "1.0.0"
__author__ = "Timothy Sipkens"

# Import main classes and functions for easy access
from .errors import (
    ConfigurationError,
    IntegrationError,
    ParameterMismatchWarning
)

from .properties import (
    Prop,
    CONSTANTS
)

from .heat_transfer import (
    HTModel,
    Trajectory
)

from .spectroscopic import (
    SModel,
    PYROMETRY,
    MULTICOLOR
)

from .pyrometry import (
    PyrometryResult,
    ratio_temperature
)

from .inversion import (
    l_curve,
    find_corner,
    lsq_covariance
)

from .preprocessing import (
    get_baseline,
    process_signals,
    average_shots,
    create_smoother
)

from .io_utils import (
    results_to_frame,
    save_results,
    save_trajectory
)

__all__ = [
    # Errors
    'ConfigurationError',
    'IntegrationError',
    'ParameterMismatchWarning',

    # Properties
    'Prop',
    'CONSTANTS',

    # Heat transfer
    'HTModel',
    'Trajectory',

    # Spectroscopy
    'SModel',
    'PYROMETRY',
    'MULTICOLOR',
    'PyrometryResult',
    'ratio_temperature',

    # Spectral fitting
    'l_curve',
    'find_corner',
    'lsq_covariance',

    # Preprocessing
    'get_baseline',
    'process_signals',
    'average_shots',
    'create_smoother',

    # I/O utilities
    'results_to_frame',
    'save_results',
    'save_trajectory',
]

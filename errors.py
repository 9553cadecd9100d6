"""
Errors Module

Exception and warning classes raised by the heat transfer and
spectroscopic models.
"""


class ConfigurationError(ValueError):
    """
    Raised when a model is configured with an unknown, missing or
    unsupported option, property name or strategy.
    """


class IntegrationError(RuntimeError):
    """
    Raised when the heat transfer ODE integrator fails.

    Parameters
    ----------
    message : str
        Solver message
    trajectory : Trajectory
        Partial trajectory up to the point of failure. Time steps that were
        not reached are filled with NaN.
    """

    def __init__(self, message, trajectory=None):
        super().__init__(message)
        self.trajectory = trajectory


class ParameterMismatchWarning(UserWarning):
    """Override vector does not match the list of free parameters."""

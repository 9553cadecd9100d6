"""
Preprocessing Module

Functions for signal preprocessing including background removal, shot
averaging, and construction of the sparse operators used by the spectral
fits.

Signals are arrays of shape (Nt, Nshots, Nl): time steps, laser shots and
wavelength channels.
"""

import numpy as np
import scipy.sparse as sp


def get_baseline(J, t, t_end=0.):
    """
    Estimate the background of each shot and channel from the pre-pulse
    part of the signal.

    Parameters
    ----------
    J : np.ndarray
        Signal, shape (Nt, Nshots, Nl)
    t : np.ndarray
        Time grid in ns, shape (Nt,)
    t_end : float, optional
        End of the pre-pulse window in ns. Samples with t < t_end are
        treated as background. Default: 0 (laser pulse centre)

    Returns
    -------
    np.ndarray
        Background, shape (1, Nshots, Nl)

    Raises
    ------
    ValueError
        If no samples fall inside the pre-pulse window
    """
    J = np.asarray(J, dtype=float)
    mask = np.asarray(t) < t_end
    if not np.any(mask):
        raise ValueError(f"No samples before t = {t_end} ns to estimate the background")
    return np.mean(J[mask], axis=0, keepdims=True)


def process_signals(J, t, t_end=0.):
    """
    Remove the pre-pulse background from raw signals.

    Parameters
    ----------
    J : np.ndarray
        Raw signal, shape (Nt, Nshots, Nl)
    t : np.ndarray
        Time grid in ns, shape (Nt,)
    t_end : float, optional
        End of the pre-pulse window in ns. Default: 0

    Returns
    -------
    np.ndarray
        Background-corrected signal, same shape as J
    """
    J = np.asarray(J, dtype=float)
    return J - get_baseline(J, t, t_end)


def average_shots(J):
    """
    Average a signal across shots.

    Parameters
    ----------
    J : np.ndarray
        Signal, shape (Nt, Nshots, Nl)

    Returns
    -------
    J_mean : np.ndarray
        Mean over shots, shape (Nt, Nl)
    J_se : np.ndarray
        Standard error of the mean, std(ddof=1)/sqrt(Nshots), shape (Nt, Nl).
        Zero for a single shot.
    """
    J = np.asarray(J, dtype=float)
    nshots = J.shape[1]
    J_mean = np.mean(J, axis=1)
    if nshots < 2:
        return J_mean, np.zeros_like(J_mean)
    J_se = np.std(J, axis=1, ddof=1) / np.sqrt(nshots)
    return J_mean, J_se


def build_jacobian_sparsity(Nt, Nl, shared_C=False, prior=False):
    """
    Build the sparsity pattern of the Jacobian for the simultaneous
    spectral fit.

    Parameters are ordered [T_0, ..., T_{Nt-1}, C_0, ..., C_{Nt-1}], or
    [T_0, ..., T_{Nt-1}, C] if the scaling factor is shared across time.
    Residuals are ordered by time step, then wavelength, followed by the
    Nt-1 rows of the smoothness prior on C if requested.

    Parameters
    ----------
    Nt : int
        Number of time steps
    Nl : int
        Number of wavelength channels
    shared_C : bool, optional
        Single scaling factor for all time steps. Default: False
    prior : bool, optional
        Append rows for a first-difference prior on C. Default: False

    Returns
    -------
    scipy.sparse.lil_matrix
        Boolean pattern of shape (Nt*Nl [+ Nt-1], Nt + NC)
    """
    NC = 1 if shared_C else Nt
    nrows = Nt * Nl + (Nt - 1 if prior and not shared_C else 0)
    S = sp.lil_matrix((nrows, Nt + NC), dtype=np.int8)

    for j in range(Nt):
        rows = slice(j * Nl, (j + 1) * Nl)
        S[rows, j] = 1
        S[rows, Nt + (0 if shared_C else j)] = 1

    if prior and not shared_C:
        for j in range(Nt - 1):
            S[Nt * Nl + j, Nt + j] = 1
            S[Nt * Nl + j, Nt + j + 1] = 1

    return S


def create_difference_operator(N):
    """
    Create a first-order difference operator for temporal regularization.

    Parameters
    ----------
    N : int
        Length of the time series

    Returns
    -------
    scipy.sparse.csr_matrix
        Matrix L of shape (N-1, N) with (Lx)_t = x_{t+1} - x_t
    """
    return sp.diags([-np.ones(N - 1), np.ones(N - 1)], [0, 1], shape=(N - 1, N), format='csr')


def create_smoother(N):
    """
    Create the smoothness penalty matrix D = L^T L.

    Parameters
    ----------
    N : int
        Length of the time series

    Returns
    -------
    scipy.sparse.csr_matrix
        Matrix of shape (N, N) such that x^T D x = sum_t (x_{t+1} - x_t)^2

    Notes
    -----
    D = 2*I - I(k=1) - I(k=-1) with the first and last diagonal entries
    equal to 1 (reflecting boundaries).
    """
    L = create_difference_operator(N)
    return (L.T @ L).tocsr()

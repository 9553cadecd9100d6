"""
I/O Utilities Module

Functions for tabulating and saving inversion results and heat transfer
trajectories.
"""

import os

import numpy as np
import pandas as pd


def results_to_frame(result, t=None):
    """
    Tabulate an inversion result.

    Parameters
    ----------
    result : PyrometryResult
        Output of ``SModel.inverse``
    t : np.ndarray, optional
        Time grid in ns, shape (Nt,). Default: result.out['t'] if the
        model had a time grid, else the time step index

    Returns
    -------
    pd.DataFrame
        One row per time step. Columns T, C and s_T for a single shot (or
        shot-combined result), otherwise T_0, T_1, ... per shot.

    Example
    -------
    >>> df = results_to_frame(smodel.inverse(J), t)
    >>> df[['t', 'T']].head()
    """
    T = np.asarray(result.T)
    Nt = T.shape[0]
    if t is None:
        t = result.out.get('t')
    if t is None:
        t = np.arange(Nt)
    if len(t) != Nt:
        raise ValueError(f"Time grid of length {len(t)} does not match {Nt} time steps")

    df = pd.DataFrame({'t': np.asarray(t)})
    for name in ('T', 'C', 's_T'):
        value = getattr(result, name)
        if value is None:
            continue
        value = np.asarray(value).reshape(Nt, -1)
        if value.shape[1] == 1:
            df[name] = value[:, 0]
        else:
            for i in range(value.shape[1]):
                df[f'{name}_{i}'] = value[:, i]

    s_C = result.out.get('s_C')
    if s_C is not None and np.shape(s_C) == (Nt, 1):
        df['s_C'] = np.asarray(s_C)[:, 0]

    return df


def save_results(result, t, result_dir, prefix=''):
    """
    Save an inversion result.

    Parameters
    ----------
    result : PyrometryResult
        Output of ``SModel.inverse``
    t : np.ndarray
        Time grid in ns
    result_dir : str or Path
        Directory to save results
    prefix : str, optional
        Prefix for output files

    Notes
    -----
    Saves numpy arrays of T (and C, s_T where present) and a CSV file
    for easy analysis.
    """
    os.makedirs(result_dir, exist_ok=True)

    np.save(f'{result_dir}/{prefix}temperature.npy', np.asarray(result.T))
    if result.C is not None:
        np.save(f'{result_dir}/{prefix}scaling_factor.npy', np.asarray(result.C))
    if result.s_T is not None:
        np.save(f'{result_dir}/{prefix}temperature_uncertainty.npy', np.asarray(result.s_T))

    df = results_to_frame(result, t)
    df.to_csv(f'{result_dir}/{prefix}results.csv', index=False)

    print(f"Results saved to {result_dir}")


def save_trajectory(trajectory, result_dir, prefix=''):
    """
    Save a heat transfer trajectory as CSV.

    Parameters
    ----------
    trajectory : Trajectory
        Output of ``HTModel.solve`` or ``HTModel.evaluate``
    result_dir : str or Path
        Directory to save results
    prefix : str, optional
        Prefix for output files

    Returns
    -------
    pd.DataFrame
        The saved table, one row per time step
    """
    os.makedirs(result_dir, exist_ok=True)

    df = pd.DataFrame({'t': trajectory.t})
    for name in ('T', 'mp', 'dp', 'X'):
        value = getattr(trajectory, name)
        if value is None:
            continue
        if value.shape[1] == 1:
            df[name] = value[:, 0]
        else:
            for i in range(value.shape[1]):
                df[f'{name}_{i}'] = value[:, i]

    df.to_csv(f'{result_dir}/{prefix}trajectory.csv', index=False)

    print(f"Trajectory saved to {result_dir}")
    return df

"""
L-Curve Method for Regularization Parameter Selection

This script demonstrates how to use the L-curve criterion to select the
smoothness prior weight λ for the simultaneous spectral fit of
multi-wavelength LII signals.
"""

import numpy as np
from pathlib import Path

from liispectra import (
    Prop,
    HTModel,
    SModel,
    l_curve,
    find_corner,
    save_results
)


def main():
    """
    Demonstrate L-curve method for λ selection.
    """
    result_dir = Path('./results/l_curve_analysis')
    result_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 70)
    print("L-CURVE ANALYSIS FOR REGULARIZATION PARAMETER SELECTION")
    print("=" * 70)

    rng = np.random.default_rng(0)
    wavelengths = [420., 500., 580., 660., 740.]

    # Synthetic data (see example_workflow.py for the full pipeline)
    print("\nSimulating signals...")
    prop = Prop(['soot', 'nitrogen'], dp0=30., F0=0.12, tlp=7., l=wavelengths)
    t = np.arange(10., 301., 10.)
    trajectory = HTModel(prop, t=np.r_[-30., t]).solve()
    T_true = trajectory.T[1:, 0]

    smodel = SModel(
        prop, t=t,
        opts={'pyrometry': 'spectral-fit', 'multicolor': 'simultaneous-smooth-prior'}
    )
    # Scaling factor slowly decreasing with mass loss
    C_true = np.linspace(1., 0.9, t.size).reshape(-1, 1, 1)
    J_clean = C_true * smodel.forward(T_true)
    J = J_clean * (1 + 0.02 * rng.standard_normal((t.size, 20, len(wavelengths))))

    # Define range of λ values to test (logarithmic spacing)
    lambda_range = np.logspace(-4, 3, 15)

    print(f"\nComputing L-curve for {len(lambda_range)} λ values...")
    print(f"Range: {lambda_range.min():.2e} to {lambda_range.max():.2e}")

    residual_norms, solution_norms = l_curve(smodel, J, lambda_range)

    # Find optimal λ
    corner_idx = find_corner(residual_norms, solution_norms)
    lambda_optimal = lambda_range[corner_idx]

    print(f"\n{'=' * 70}")
    print(f"OPTIMAL REGULARIZATION PARAMETER")
    print(f"{'=' * 70}")
    print(f"λ_optimal = {lambda_optimal:.2e}")
    print(f"Located at index {corner_idx} of {len(lambda_range)} tested values")

    # Now run inversion with optimal λ
    print(f"\nRunning inversion with optimal λ = {lambda_optimal:.2e}...")
    smodel.opts['lambda'] = lambda_optimal
    smodel = SModel(prop, t=t, opts=smodel.opts)
    result = smodel.inverse(J)

    error = result.T[:, 0] - T_true
    print(f"  Temperature RMSE: {np.sqrt(np.mean(error ** 2)):.2f} K")
    print(f"  Mean uncertainty: {np.mean(result.s_T):.2f} K")

    save_results(result, t, result_dir, prefix='smooth_prior_')

    print("\n" + "=" * 70)
    print("ANALYSIS COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    main()

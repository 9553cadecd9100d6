"""
Example Usage Script

This script demonstrates a complete workflow for time-resolved LII:
simulate a soot particle temperature history, generate synthetic
multi-shot two-color signals, and recover the temperature by pyrometry.
"""

import numpy as np
from pathlib import Path

from liispectra import (
    Prop,
    HTModel,
    SModel,
    process_signals,
    results_to_frame,
    save_results,
    save_trajectory
)


def main():
    """
    Complete simulation and inversion pipeline for synthetic LII data.
    """

    # =========================================================================
    # 1. SETUP
    # =========================================================================

    result_dir = Path('./results/synthetic_soot')
    result_dir.mkdir(parents=True, exist_ok=True)

    # Detection wavelengths (nm) and number of laser shots
    wavelengths = [442., 716.]
    n_shots = 50
    noise_level = 0.02  # relative, per shot

    rng = np.random.default_rng(42)

    # Soot in nitrogen, 30 nm particles, 0.15 J/cm^2 with a 7 ns pulse
    prop = Prop(['soot', 'nitrogen'], dp0=30., F0=0.15, tlp=7., l=wavelengths)


    # =========================================================================
    # 2. HEAT TRANSFER MODEL
    # =========================================================================

    print("=" * 70)
    print("SOLVING HEAT TRANSFER MODEL")
    print("=" * 70)

    t = np.arange(-50., 1001., 1.)
    htmodel = HTModel(prop, x=['alpha'], t=t, opts={'rad': True})
    trajectory = htmodel.solve()

    print(f"\nTrajectory Summary:")
    print(f"  Peak temperature: {trajectory.Tpeak[0]:.1f} K")
    print(f"  Final temperature: {trajectory.T[-1, 0]:.1f} K")
    print(f"  Mass lost: {100 * (1 - trajectory.mp[-1, 0] / trajectory.mp[0, 0]):.2f} %")
    print(f"  Solver: {trajectory.message}")

    # Sensitivity to the thermal accommodation coefficient
    sweep = htmodel.evaluate(np.array([[0.2], [0.37], [0.5]]), progress=True)
    print(f"  Temperature at 500 ns for alpha = 0.2, 0.37, 0.5: "
          f"{np.round(sweep.T[t == 500.][0], 1)} K")


    # =========================================================================
    # 3. SYNTHETIC SIGNALS
    # =========================================================================

    print("\n" + "=" * 70)
    print("GENERATING SYNTHETIC SIGNALS")
    print("=" * 70)

    smodel = SModel(prop, t=t, opts={'pyrometry': 'advanced', 'nsamples': 500}, rng=rng)

    # Signals are only evaluated once the particle is hot
    hot = t >= 0
    J_clean = smodel.forward(trajectory.T[hot, 0])
    J = J_clean * (1 + noise_level * rng.standard_normal((hot.sum(), n_shots, 2)))

    # Add a constant background and remove it again from the pre-pulse part
    background = 0.01 * J_clean.max()
    J_raw = np.concatenate([np.zeros((np.sum(~hot), n_shots, 2)), J], axis=0) + background
    J_proc = process_signals(J_raw, t, t_end=-10.)[hot]

    print(f"\nSignal shape (Nt, Nshots, Nl): {J_proc.shape}")


    # =========================================================================
    # 4. PYROMETRY
    # =========================================================================

    print("\n" + "=" * 70)
    print("PERFORMING PYROMETRY")
    print("=" * 70)

    result = smodel.inverse(J_proc)

    T_true = trajectory.T[hot, 0]
    valid = t[hot] >= 5
    error = result.T[valid, 0] - T_true[valid]

    print(f"\nFit Statistics:")
    print(f"  RMSE: {np.sqrt(np.mean(error ** 2)):.2f} K")
    print(f"  Mean uncertainty: {np.mean(result.s_T[valid]):.2f} K")
    print(f"  Degenerate samples: {int(np.sum(result.out['degenerate']))}")

    df = results_to_frame(result, t[hot])
    print(df.head())


    # =========================================================================
    # 5. SAVE RESULTS
    # =========================================================================

    print("\n" + "=" * 70)
    print("SAVING RESULTS")
    print("=" * 70)

    save_trajectory(trajectory, result_dir)
    save_results(result, t[hot], result_dir, prefix='advanced_')

    print("\n" + "=" * 70)
    print("ANALYSIS COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    main()

"""
Trace utilities: resampling onto a common time grid (to compare fixed
and adaptive runs), drift of a supposedly steady trace, and the
response to a current pulse.
"""

import numpy as np
from scipy.interpolate import interp1d


def resample_to_grid(t, y, grid):
    """Linear interpolation of (t, y) onto `grid`; grid must lie inside t."""
    t = np.asarray(t, dtype=float)
    # adaptive runs can record the same time twice at a breakpoint
    t_unique, idx = np.unique(t, return_index=True)
    f = interp1d(t_unique, np.asarray(y, dtype=float)[idx], kind='linear',
                 assume_sorted=True)
    return f(np.asarray(grid, dtype=float))


def common_grid(t_a, t_b, dt):
    t_end = min(t_a[-1], t_b[-1])
    return np.arange(0.0, t_end + 0.5 * dt, dt)


def max_abs_difference(t_a, y_a, t_b, y_b, dt=0.1):
    grid = common_grid(t_a, t_b, dt)
    return float(np.max(np.abs(resample_to_grid(t_a, y_a, grid)
                               - resample_to_grid(t_b, y_b, grid))))


def drift_rate(t, v, t_start=0.0):
    """Least-squares slope (mV/ms) of v over t >= t_start."""
    t = np.asarray(t, dtype=float)
    mask = t >= t_start
    if mask.sum() < 2:
        return 0.0
    slope, _ = np.polyfit(t[mask], np.asarray(v, dtype=float)[mask], 1)
    return float(slope)


def pulse_response(t, v, onset, duration, baseline=50.0):
    """Baseline mean before the pulse, extreme deflection during it, and their difference."""
    t = np.asarray(t)
    v = np.asarray(v)
    base_mask = (t >= onset - baseline) & (t < onset)
    pulse_mask = (t >= onset) & (t <= onset + duration)
    v_base = float(np.mean(v[base_mask]))
    window = v[pulse_mask]
    peak = float(window[np.argmax(np.abs(window - v_base))])
    return v_base, peak, peak - v_base

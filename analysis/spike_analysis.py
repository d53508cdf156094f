"""
Spike detection and pre -> post latency on recorded traces (times in ms).
"""

import numpy as np


def detect_spikes(V, t, threshold=-20.0):
    """Detect spikes from a membrane potential trace.

    Parameters
    ----------
    V : np.ndarray
        Membrane potential trace (mV).
    t : np.ndarray
        Time array (ms).
    threshold : float
        Spike detection threshold (mV).

    Returns
    -------
    spike_times : np.ndarray
        Times of positive-going threshold crossings (ms), linearly
        interpolated between samples.
    """
    V = np.asarray(V)
    t = np.asarray(t)
    idx = np.where((V[:-1] < threshold) & (V[1:] >= threshold))[0]
    frac = (threshold - V[idx]) / (V[idx + 1] - V[idx])
    return t[idx] + frac * (t[idx + 1] - t[idx])


def firing_rate(spike_times, duration_ms):
    """Mean rate in Hz."""
    if duration_ms <= 0:
        return 0.0
    return len(spike_times) / (duration_ms / 1000.0)


def spike_latency(pre_spikes, post_spikes, max_lag_ms=20.0):
    """Mean latency from each presynaptic spike to the first later postsynaptic one.

    Returns
    -------
    mean_latency_ms : float
        NaN when no pair falls within max_lag_ms.
    latencies : list of float
    """
    post_spikes = np.sort(np.asarray(post_spikes))
    latencies = []
    for t_pre in np.sort(np.asarray(pre_spikes)):
        k = np.searchsorted(post_spikes, t_pre)
        if k < len(post_spikes):
            lag = post_spikes[k] - t_pre
            if lag <= max_lag_ms:
                latencies.append(float(lag))
    if not latencies:
        return float('nan'), latencies
    return float(np.mean(latencies)), latencies

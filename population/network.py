"""
Network topology helpers for TC-RE populations.

Cells sit on a ring; a presynaptic cell contacts every postsynaptic cell
within `radius` along the ring. Synaptic conductance is normalised by
convergence and conduction delays are constant or Gaussian.

Connectivity matrices are (n_post, n_pre): conn[j, i] = 1 means pre_i -> post_j.
"""

import numpy as np

from simulation.errors import ConfigurationError


def place_cells_on_ring(n, circumference=1.0):
    """Evenly spaced positions in [0, circumference)."""
    if n < 1:
        raise ConfigurationError(f"need at least one cell, got {n}", parameter='n')
    return np.arange(n) * (circumference / n)


def ring_distance(a, b, circumference=1.0):
    d = np.abs(np.asarray(a)[..., np.newaxis] - np.asarray(b)[np.newaxis, ...]) % circumference
    return np.minimum(d, circumference - d)


def build_connectivity(pre_positions, radius, post_positions=None,
                       circumference=1.0, allow_self=False):
    """Distance-dependent connectivity on the ring.

    Parameters
    ----------
    pre_positions : ndarray
        Presynaptic positions.
    radius : float
        Connection radius in the same units as the positions.
    post_positions : ndarray, optional
        Postsynaptic positions; defaults to the presynaptic population
        (recurrent connectivity).
    circumference : float
        Length of the ring.
    allow_self : bool
        For recurrent connectivity, keep the diagonal (autapses).

    Returns
    -------
    conn : ndarray (n_post, n_pre) of int8
    """
    if radius < 0:
        raise ConfigurationError(f"radius must be >= 0, got {radius}", parameter='radius')
    recurrent = post_positions is None
    post = pre_positions if recurrent else post_positions
    dist = ring_distance(post, pre_positions, circumference)
    conn = (dist <= radius + 1e-12).astype(np.int8)
    if recurrent and not allow_self:
        np.fill_diagonal(conn, 0)
    return conn


def normalize_weights(connectivity_matrix, total_conductance):
    """Per-synapse conductance so each postsynaptic cell receives
    `total_conductance` in total, split equally among its inputs.

    Returns
    -------
    weights : ndarray (n_post, n_pre)
        weights[j, i] is the conductance from pre_i to post_j.
    """
    n_inputs = connectivity_matrix.sum(axis=1)
    n_inputs_safe = np.maximum(n_inputs, 1)
    per_synapse = total_conductance / n_inputs_safe
    return connectivity_matrix.astype(np.float64) * per_synapse[:, np.newaxis]


def assign_delays(connectivity_matrix, mean_ms=1.0, std_ms=0.0, min_ms=0.1, seed=42):
    """Conduction delays (ms) for existing connections, zero elsewhere.

    std_ms = 0 gives the same constant delay everywhere.
    """
    if std_ms > 0:
        rng = np.random.default_rng(seed)
        delays = rng.normal(mean_ms, std_ms, size=connectivity_matrix.shape)
    else:
        delays = np.full(connectivity_matrix.shape, float(mean_ms))
    delays = np.clip(delays, min_ms, None)
    return delays * connectivity_matrix


def connectivity_stats(conn):
    n_post, n_pre = conn.shape
    convergence = conn.sum(axis=1)
    return {
        'connections': int(conn.sum()),
        'p_eff': float(conn.sum() / max(n_post * n_pre, 1)),
        'mean_convergence': float(convergence.mean()) if n_post else 0.0,
    }

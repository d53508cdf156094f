"""
Implicit cable solver on a compartment tree (Hines 1984).

For compartment i with parent p and axial resistance R_i (MOhm), the
linearised update over one step solves for dV:

  (c cm_i / dt + G_i) dV_i + s_i sum_j (dV_i - dV_j) / R_ij
      = -I_i + s_i sum_j (V_j - V_i) / R_ij

I_i and G_i = dI_i/dV are the total membrane current density and its
slope, s_i = 1e5 / area_i converts nA to uA/cm2, and c is 1 for
backward Euler and 2 for Crank-Nicholson (dV is then the half-step
increment and V advances by 2 dV).

Because parents precede children, the matrix is tridiagonal on the
tree: eliminating rows from the last compartment back to the root and
then substituting forward solves it in O(n).
"""

import numpy as np


def assemble(cell, v, i_mem, g_mem, dt, c=1.0):
    """Diagonal, off-diagonals and right-hand side of the step system.

    Returns (d, a_ip, a_pi, b): a_ip[i] is the coefficient of dV_parent in
    row i, a_pi[i] the coefficient of dV_i in the parent's row.
    """
    n = len(cell.compartments)
    cm = np.array([comp.cm for comp in cell.compartments])
    s = np.array([comp.point_scale() for comp in cell.compartments])
    d = c * cm / dt + g_mem
    b = -np.asarray(i_mem, dtype=float).copy()
    a_ip = np.zeros(n)
    a_pi = np.zeros(n)
    for i in range(1, n):
        p = cell.parent_index[i]
        r = cell.axial_resistance[i]
        gi = s[i] / r
        gp = s[p] / r
        d[i] += gi
        d[p] += gp
        a_ip[i] = -gi
        a_pi[i] = -gp
        dv = v[p] - v[i]
        b[i] += gi * dv
        b[p] -= gp * dv
    return d, a_ip, a_pi, b


def hines_solve(d, a_ip, a_pi, b, parent_index):
    """Solve the tree system; children are eliminated strictly before parents."""
    d = np.array(d, dtype=float)
    b = np.array(b, dtype=float)
    n = len(d)
    for i in range(n - 1, 0, -1):
        p = parent_index[i]
        f = a_pi[i] / d[i]
        d[p] -= f * a_ip[i]
        b[p] -= f * b[i]
    x = np.empty(n)
    x[0] = b[0] / d[0]
    for i in range(1, n):
        x[i] = (b[i] - a_ip[i] * x[parent_index[i]]) / d[i]
    return x


def dense_matrix(d, a_ip, a_pi, parent_index):
    """The same system as a full matrix, for checking the tree solve."""
    n = len(d)
    m = np.diag(np.asarray(d, dtype=float))
    for i in range(1, n):
        p = parent_index[i]
        m[i, p] = a_ip[i]
        m[p, i] = a_pi[i]
    return m


def voltage_derivatives(cell, v, i_mem):
    """dV/dt for every compartment, used by the adaptive integrator."""
    n = len(cell.compartments)
    cm = np.array([comp.cm for comp in cell.compartments])
    s = np.array([comp.point_scale() for comp in cell.compartments])
    flux = -np.asarray(i_mem, dtype=float).copy()
    for i in range(1, n):
        p = cell.parent_index[i]
        axial = (v[p] - v[i]) / cell.axial_resistance[i]
        flux[i] += s[i] * axial
        flux[p] -= s[p] * axial
    return flux / cm


class CableSolver:
    """Advances the voltages of one cell by one implicit step."""

    def __init__(self, method='backward_euler'):
        self.method = method

    def _solve(self, cell, v, i_mem, g_mem, dt, c):
        d, a_ip, a_pi, b = assemble(cell, v, i_mem, g_mem, dt, c)
        return hines_solve(d, a_ip, a_pi, b, cell.parent_index)

    def step(self, cell, t, dt):
        """Return the new voltage of every compartment; nothing is assigned here."""
        comps = cell.compartments
        v = np.array([comp.v for comp in comps])
        i_mem = np.empty(len(comps))
        g_mem = np.empty(len(comps))
        for k, comp in enumerate(comps):
            i_mem[k], g_mem[k] = comp.total_membrane_current(comp.v, t)

        if self.method == 'backward_euler':
            return v + self._solve(cell, v, i_mem, g_mem, dt, 1.0)

        dv = self._solve(cell, v, i_mem, g_mem, dt, 2.0)
        if self.method == 'crank_nicholson_corrected':
            # re-linearise the membrane current around the half-step voltage
            v_half = v + dv
            i_half = np.array([comp.total_membrane_current(vh, t + dt / 2.0)[0]
                               for comp, vh in zip(comps, v_half)])
            dv = self._solve(cell, v, i_half - g_mem * dv, g_mem, dt, 2.0)
        return v + 2.0 * dv

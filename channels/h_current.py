"""
Hyperpolarization-activated cation current (I_h), Huguenard & McCormick
1992 kinetics as used by Destexhe et al. 1996:

  m_inf = 1 / (1 + exp((V + shift + 75) / (5.5 * slope)))
  tau_m = 1 / (exp(-14.59 - 0.086 V') + exp(-1.87 + 0.0701 V'))
  I_h   = ghbar * m * (V - E_h)
"""

import numpy as np

from channels.base import Mechanism, q10_factor


class HCurrent(Mechanism):
    kind = 'ih'
    gates = ('m',)
    ions = ('h',)
    defaults = {
        'ghbar': 0.02,      # mS/cm2
        'shift': 0.0,       # mV
        'slope': 1.0,
        'q10': 3.0,
    }
    density_params = ('ghbar',)

    def rates(self, v, comp):
        vs = v + self.shift
        m_inf = 1.0 / (1.0 + np.exp((vs + 75.0) / (5.5 * self.slope)))
        tau_m = 1.0 / (np.exp(-14.59 - 0.086 * vs) + np.exp(-1.87 + 0.0701 * vs))
        return (m_inf,), (tau_m / q10_factor(self.q10, self.temperature, 24.0),)

    def current(self, v, comp):
        return self.ghbar * self.states['m'] * (v - comp.rev.eh)

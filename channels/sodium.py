"""
Sodium currents and the fast Hodgkin-Huxley spike mechanism.

hh2 is the Traub & Miles 1991 formulation as used by Destexhe et al.
1996 for thalamic neurons: V is measured relative to `vtraub`, which
sets the spike threshold.

  I_Na = gnabar * m^3 * h * (V - E_Na)
  I_K  = gkbar * n^4 * (V - E_K)

A model containing hh2 is "fast spiking"; the driver never integrates
it with the adaptive solver.
"""

import numpy as np

from channels.base import Mechanism, q10_factor, vtrap


class PersistentSodium(Mechanism):
    """Non-inactivating Na+ current, m^3 gating."""

    kind = 'inap'
    gates = ('m',)
    ions = ('na',)
    defaults = {
        'gnabar': 0.005,    # mS/cm2
        'shift': 0.0,
        'slope': 1.0,
        'tau': 0.2,         # ms
    }
    density_params = ('gnabar',)

    def rates(self, v, comp):
        m_inf = 1.0 / (1.0 + np.exp(-(v + self.shift + 57.9) / (6.4 * self.slope)))
        return (m_inf,), (self.tau,)

    def current(self, v, comp):
        return self.gnabar * self.states['m'] ** 3 * (v - comp.rev.ena)


class HHSpiking(Mechanism):
    """Fast Na+ / delayed-rectifier K+ spike currents (Traub convention)."""

    kind = 'hh2'
    gates = ('m', 'h', 'n')
    ions = ('na', 'k')
    fast_spiking = True
    defaults = {
        'gnabar': 90.0,     # mS/cm2
        'gkbar': 10.0,      # mS/cm2
        'vtraub': -52.0,    # mV
        'q10': 3.0,
    }
    density_params = ('gnabar', 'gkbar')

    def rates(self, v, comp):
        tadj = q10_factor(self.q10, self.temperature, 36.0)
        v2 = v - self.vtraub

        a_m = 0.32 * vtrap(13.0 - v2, 4.0)
        b_m = 0.28 * vtrap(v2 - 40.0, 5.0)
        a_h = 0.128 * np.exp((17.0 - v2) / 18.0)
        b_h = 4.0 / (1.0 + np.exp((40.0 - v2) / 5.0))
        a_n = 0.032 * vtrap(15.0 - v2, 5.0)
        b_n = 0.5 * np.exp((10.0 - v2) / 40.0)

        inf = (a_m / (a_m + b_m), a_h / (a_h + b_h), a_n / (a_n + b_n))
        tau = (1.0 / (a_m + b_m) / tadj,
               1.0 / (a_h + b_h) / tadj,
               1.0 / (a_n + b_n) / tadj)
        return inf, tau

    def current(self, v, comp):
        m, h, n = (self.states[g] for g in self.gates)
        return (self.gnabar * m ** 3 * h * (v - comp.rev.ena)
                + self.gkbar * n ** 4 * (v - comp.rev.ek))

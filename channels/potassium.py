"""
Voltage-gated potassium currents other than the spike delayed rectifier.

  I_A   = gkbar * m^4 * h * (V - E_K)     Huguenard & McCormick 1992
  I_Kir = gkbar * m * (V - E_K)           inward rectifier, fast gate
"""

import numpy as np

from channels.base import Mechanism, q10_factor


class APotassium(Mechanism):
    """Transient A-type K+ current."""

    kind = 'ia'
    gates = ('m', 'h')
    ions = ('k',)
    defaults = {
        'gkbar': 0.5,       # mS/cm2
        'shift_m': 0.0,
        'shift_h': 0.0,
        'q10': 3.0,
    }
    density_params = ('gkbar',)

    def rates(self, v, comp):
        phi = q10_factor(self.q10, self.temperature, 23.0)
        vm = v + self.shift_m
        vh = v + self.shift_h
        m_inf = 1.0 / (1.0 + np.exp(-(vm + 60.0) / 8.5))
        tau_m = (1.0 / (np.exp((vm + 35.8) / 19.7) + np.exp(-(vm + 79.7) / 12.7))
                 + 0.37) / phi
        h_inf = 1.0 / (1.0 + np.exp((vh + 78.0) / 6.0))
        if vh < -63.0:
            tau_h = 1.0 / (np.exp((vh + 46.0) / 5.0) + np.exp(-(vh + 238.0) / 37.5)) / phi
        else:
            tau_h = 19.0 / phi
        return (m_inf, h_inf), (tau_m, tau_h)

    def current(self, v, comp):
        m = self.states['m']
        return self.gkbar * m ** 4 * self.states['h'] * (v - comp.rev.ek)


class InwardRectifierPotassium(Mechanism):
    """Inward-rectifying K+ current with a single fast activation gate."""

    kind = 'ikir'
    gates = ('m',)
    ions = ('k',)
    defaults = {
        'gkbar': 0.02,      # mS/cm2
        'vhalf': -97.9,     # mV
        'slope': 9.7,       # mV
        'tau': 0.5,         # ms
    }
    density_params = ('gkbar',)

    def rates(self, v, comp):
        m_inf = 1.0 / (1.0 + np.exp((v - self.vhalf) / self.slope))
        return (m_inf,), (self.tau,)

    def current(self, v, comp):
        return self.gkbar * self.states['m'] * (v - comp.rev.ek)

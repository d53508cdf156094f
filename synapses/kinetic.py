"""
First-order kinetic synapse (Destexhe, Mainen & Sejnowski 1994).

Each delivered event releases a square pulse of transmitter,
T = weight * Tmax for `pulse_ms`:

  dr/dt = alpha * T * (1 - r) - beta * r
  I     = gmax * r * (V - erev)

r is linear in itself for constant T, so the fixed-step update is the
exact exponential one with r_inf = alpha T / (alpha T + beta) and
tau = 1 / (alpha T + beta). The event weight is the probability of
channel activation and scales the transmitter pulse.
"""

import numpy as np

from simulation.errors import ConfigurationError
from synapses.base import PointProcess


class KineticSynapse(PointProcess):
    states_names = ('r',)

    def __init__(self, location, gmax=0.01, erev=0.0, alpha=1.1, beta=0.19,
                 tmax=1.0, pulse_ms=1.0, x=0.5, name=None):
        if gmax < 0:
            raise ConfigurationError(f"gmax must be >= 0, got {gmax}", parameter='gmax')
        if not pulse_ms > 0:
            raise ConfigurationError(f"pulse_ms must be > 0, got {pulse_ms}",
                                     parameter='pulse_ms')
        super().__init__(location, x=x, name=name)
        self.gmax = gmax         # uS
        self._erev = erev
        self.alpha = alpha       # 1/(ms mM)
        self.beta = beta         # 1/ms
        self.tmax = tmax         # mM
        self.pulse_ms = pulse_ms
        self.transmitter = 0.0
        self.release_end = -np.inf
        self.release_times = []

    @property
    def erev(self):
        return self._erev

    def reset(self):
        super().reset()
        self.transmitter = 0.0
        self.release_end = -np.inf
        self.release_times = []

    def activate(self, t, weight=1.0):
        self.transmitter = weight * self.tmax
        self.release_end = t + self.pulse_ms
        self.release_times.append(t)

    def _transmitter(self, t):
        return self.transmitter if t < self.release_end else 0.0

    def _rates(self, t):
        a = self.alpha * self._transmitter(t)
        return a / (a + self.beta), 1.0 / (a + self.beta)

    def advance(self, t, dt):
        r_inf, tau = self._rates(t)
        r = self.states['r']
        self.states['r'] = r_inf + (r - r_inf) * np.exp(-dt / tau)

    def derivatives(self, t):
        r = self.states['r']
        return [self.alpha * self._transmitter(t) * (1.0 - r) - self.beta * r]

    def breakpoints(self, t_stop):
        if 0.0 < self.release_end <= t_stop:
            return [self.release_end]
        return []

    def conductance(self):
        return self.gmax * self.states['r']

    def membrane_current(self, v, t):
        return self.conductance() * (v - self.erev)

"""
GABA_B-shaped IPSC with a double-exponential rise and a biexponential decay.

For an event at t0 with weight s:

  tau = t - t0
  g(t) = s * amp * (1 - exp(-tau/tau_rise))
               * (w exp(-tau/tfall_fast) + (1 - w) exp(-tau/tfall_slow)) / peak

`trise` is the time-to-peak. The rise time constant `tau_rise` is solved
so the kernel maximum falls exactly at `trise`, and `peak` is the kernel
value there, so a single event of weight 1 peaks at exactly `amp` (uS)
`trise` ms after the event. Events superpose linearly.

  I = g(t) * (V - erev)    (nA, outward positive)

erev defaults to 0 mV as in the recorded-IPSC protocol this current
reproduces; set erev to E_K (about -100 mV) for a physiological GABA_B
current.
"""

import numpy as np
from scipy.optimize import brentq

from simulation.errors import ConfigurationError
from synapses.base import PointProcess


def ipsc_kernel(tau, tau_rise, tfall_fast, tfall_slow, w):
    """Unnormalised waveform, zero for tau < 0."""
    tau = np.asarray(tau, dtype=float)
    k = (1.0 - np.exp(-tau / tau_rise)) * (w * np.exp(-tau / tfall_fast)
                                           + (1.0 - w) * np.exp(-tau / tfall_slow))
    return np.where(tau >= 0.0, k, 0.0)


def rise_time_constant(trise, tfall_fast, tfall_slow, w):
    """Rise time constant that puts the kernel maximum at `trise`."""
    fast = w * np.exp(-trise / tfall_fast)
    slow = (1.0 - w) * np.exp(-trise / tfall_slow)
    decay = fast + slow
    slope = -(fast / tfall_fast + slow / tfall_slow)
    if decay + trise * slope <= 0.0:
        raise ConfigurationError(
            f"trise={trise} ms is too long for decay constants "
            f"{tfall_fast}/{tfall_slow} ms", parameter='trise')

    def dk(tau_rise):
        # d/dtau of the kernel at tau = trise
        e = np.exp(-trise / tau_rise)
        return e / tau_rise * decay + (1.0 - e) * slope

    lo, hi = trise * 1e-3, trise
    while dk(hi) <= 0.0:
        hi *= 2.0
    return brentq(dk, lo, hi, xtol=1e-14, rtol=1e-14)


def kernel_peak(trise, tfall_fast, tfall_slow, w):
    """Time, value and rise time constant of the kernel maximum."""
    tau_rise = rise_time_constant(trise, tfall_fast, tfall_slow, w)
    return trise, float(ipsc_kernel(trise, tau_rise, tfall_fast, tfall_slow, w)), tau_rise


class GABABSynapse(PointProcess):
    """Event-triggered biexponential IPSC conductance."""

    def __init__(self, location, amp=0.001, trise=2.0, tfall_fast=50.0,
                 tfall_slow=200.0, w=0.5, erev=0.0, x=0.5, name='ipsc'):
        for pname, value in (('trise', trise), ('tfall_fast', tfall_fast),
                             ('tfall_slow', tfall_slow)):
            if not value > 0:
                raise ConfigurationError(f"{pname} must be > 0, got {value}",
                                         parameter=pname)
        if not 0.0 <= w <= 1.0:
            raise ConfigurationError(f"w must be in [0, 1], got {w}", parameter='w')
        if amp < 0:
            raise ConfigurationError(f"amp must be >= 0, got {amp}", parameter='amp')
        self.t_peak, self.peak, self.tau_rise = kernel_peak(trise, tfall_fast, tfall_slow, w)
        super().__init__(location, x=x, name=name)
        self.amp = amp
        self.trise = trise
        self.tfall_fast = tfall_fast
        self.tfall_slow = tfall_slow
        self.w = w
        self.erev = erev
        self.events = []
        self.g = 0.0

    def reset(self):
        super().reset()
        self.events = []
        self.g = 0.0

    def activate(self, t, weight=1.0):
        self.events.append((t, weight))

    def conductance(self, t):
        g = 0.0
        for t0, weight in self.events:
            if t >= t0:
                g += weight * float(ipsc_kernel(t - t0, self.tau_rise, self.tfall_fast,
                                                self.tfall_slow, self.w))
        return self.amp * g / self.peak

    def membrane_current(self, v, t):
        self.g = self.conductance(t)
        return self.g * (v - self.erev)

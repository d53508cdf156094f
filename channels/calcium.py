"""
Calcium handling: low-threshold T-type current, the calcium pump / decay
of the submembrane shell, and the calcium-activated potassium current.

I_T follows Huguenard & McCormick 1992 / Destexhe et al. 1996, with
GHK permeability instead of a fixed E_Ca:

  I_T = pcabar * m^2 * h * GHK(V, Cai, Cao)

Activation and inactivation curves take independent voltage shifts and
slope factors (experimental variability between preparations). The
inactivation time constant has three selectable forms (`tauh_mode`):

  1  piecewise exponential, TC relay cells (Huguenard & McCormick 1992)
  2  smooth sigmoidal fit (Destexhe et al. 1998)
  3  slow reticular-type inactivation (Huguenard & Prince 1992)
"""

import numpy as np

from channels.base import FARADAY, Mechanism, ghk, q10_factor
from simulation.errors import ConfigurationError

TAUH_MODES = (1, 2, 3)


def tauh_piecewise(vh):
    if vh < -80.0:
        return np.exp((vh + 467.0) / 66.6)
    return 28.0 + np.exp(-(vh + 22.0) / 10.5)


def tauh_smooth(vh):
    return 30.8 + (211.4 + np.exp((vh + 113.2) / 5.0)) / (1.0 + np.exp((vh + 84.0) / 3.2))


def tauh_reticular(vh):
    return 85.0 + 1.0 / (np.exp((vh + 46.0) / 4.0) + np.exp(-(vh + 405.0) / 50.0))


_TAUH = {1: tauh_piecewise, 2: tauh_smooth, 3: tauh_reticular}


class TCalcium(Mechanism):
    """Low-threshold transient Ca2+ current (I_T)."""

    kind = 'it'
    gates = ('m', 'h')
    defaults = {
        'pcabar': 1e-4,     # cm/s
        'shift_m': 0.0,     # mV, positive shifts the curve leftward
        'shift_h': 0.0,
        'slope_m': 1.0,     # multiplies the Boltzmann slope
        'slope_h': 1.0,
        'tauh_mode': 1,
        'q10_m': 2.5,
        'q10_h': 2.5,
    }
    density_params = ('pcabar',)

    def _validate(self):
        super()._validate()
        if self.tauh_mode not in TAUH_MODES:
            raise ConfigurationError(
                f"it.tauh_mode must be one of {TAUH_MODES}, got {self.tauh_mode!r}",
                parameter='tauh_mode')
        for name in ('slope_m', 'slope_h'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(
                    f"it.{name} must be > 0, got {getattr(self, name)}",
                    parameter=name)

    def rates(self, v, comp):
        vm = v + self.shift_m
        vh = v + self.shift_h
        m_inf = 1.0 / (1.0 + np.exp(-(vm + 57.0) / (6.2 * self.slope_m)))
        h_inf = 1.0 / (1.0 + np.exp((vh + 81.0) / (4.0 * self.slope_h)))
        tau_m = 0.612 + 1.0 / (np.exp(-(vm + 132.0) / 16.7)
                               + np.exp((vm + 16.8) / 18.2))
        tau_h = _TAUH[self.tauh_mode](vh)
        tau_m /= q10_factor(self.q10_m, self.temperature, 24.0)
        tau_h /= q10_factor(self.q10_h, self.temperature, 24.0)
        return (m_inf, h_inf), (tau_m, tau_h)

    def current(self, v, comp):
        m = self.states['m']
        h = self.states['h']
        return self.pcabar * m * m * h * ghk(v, comp.cai, comp.cao, 2, self.temperature)


class CalciumDecay(Mechanism):
    """Submembrane Ca2+ shell: influx from I_T, first-order pump.

      dCai/dt = drive + (cainf - Cai) / taur
      drive   = -10 * ica / (2 F depth)     (only inward ica, mM/ms)

    ica in uA/cm2 and depth in um.
    """

    kind = 'cad'
    gates = ('cai',)
    concentration = True
    defaults = {
        'depth': 1.0,       # um
        'taur': 5.0,        # ms
        'cainf': 2.4e-4,    # mM
    }

    def _validate(self):
        for name in ('depth', 'taur'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(
                    f"cad.{name} must be > 0, got {getattr(self, name)}",
                    parameter=name)
        if self.cainf < 0:
            raise ConfigurationError(
                f"cad.cainf must be >= 0, got {self.cainf}", parameter='cainf')

    def drive(self, comp):
        d = -10.0 * comp.ica / (2.0 * FARADAY * self.depth)
        return d if d > 0.0 else 0.0

    def rates(self, v, comp):
        return (self.cainf + self.drive(comp) * self.taur,), (self.taur,)


class AHPPotassium(Mechanism):
    """Ca2+-activated K+ current (Destexhe et al. 1996, m^2 gating).

      car   = (Cai / cac)^2
      m_inf = car / (1 + car),  tau_m = 1 / (beta (1 + car))
    """

    kind = 'iahp'
    gates = ('m',)
    ions = ('k',)
    defaults = {
        'gkbar': 0.1,       # mS/cm2
        'beta': 0.03,       # 1/ms
        'cac': 0.025,       # mM
        'taumin': 0.1,      # ms
        'q10': 3.0,
    }
    density_params = ('gkbar',)

    def rates(self, v, comp):
        car = (comp.cai / self.cac) ** 2
        m_inf = car / (1.0 + car)
        tau_m = 1.0 / (self.beta * (1.0 + car)) / q10_factor(self.q10, self.temperature, 22.0)
        return (m_inf,), (max(tau_m, self.taumin),)

    def current(self, v, comp):
        m = self.states['m']
        return self.gkbar * m * m * (v - comp.rev.ek)

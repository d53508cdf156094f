"""
Intracellular chloride dynamics.

Chloride enters with the (outward-positive) chloride current carried by
GABA_A synapses, relaxes toward a set point and optionally diffuses
longitudinally to adjacent compartments that also carry cldyn:

  dCli/dt = 10 * icl / (F * depth) + (cli0 - Cli) / tau
            + sum_j k_j * (Cli_j - Cli)

  k_j = dcl * A_cross / (dist_ij * vol_i)

The equation is linear in Cli, so the exponential update used for gates
is exact here as well. E_Cl on the compartment follows from Nernst.
"""

import numpy as np

from channels.base import FARADAY, Mechanism
from simulation.errors import ConfigurationError


def diffusion_coupling(comp, other, dcl):
    """Exchange rate (1/ms) of chloride from `comp` toward `other`."""
    d_cross = min(comp.diam, other.diam)
    a_cross = np.pi * (d_cross / 2.0) ** 2
    dist = (comp.L + other.L) / 2.0
    vol = np.pi * (comp.diam / 2.0) ** 2 * comp.L
    return dcl * a_cross / (dist * vol)


class ChlorideDynamics(Mechanism):
    kind = 'cldyn'
    gates = ('cli',)
    ions = ('cl',)
    concentration = True
    defaults = {
        'cli0': 5.0,        # mM
        'tau': 500.0,       # ms
        'depth': 1.0,       # um
        'dcl': 0.0,         # um2/ms, 0 disables diffusion
    }

    def _validate(self):
        for name in ('tau', 'depth'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(
                    f"cldyn.{name} must be > 0, got {getattr(self, name)}",
                    parameter=name)
        for name in ('cli0', 'dcl'):
            if getattr(self, name) < 0:
                raise ConfigurationError(
                    f"cldyn.{name} must be >= 0, got {getattr(self, name)}",
                    parameter=name)

    def initialize(self, v, comp):
        # starts at the set point; neighbours may not be initialised yet
        self.states['cli'] = self.cli0

    def rates(self, v, comp):
        a = self.cli0 / self.tau + 10.0 * comp.icl / (FARADAY * self.depth)
        b = 1.0 / self.tau
        if self.dcl > 0:
            for other in comp.neighbors():
                if 'cldyn' not in other.mechanisms:
                    continue
                k = diffusion_coupling(comp, other, self.dcl)
                a += k * other.cli
                b += k
        # concentrations stay non-negative
        return (max(a / b, 0.0),), (1.0 / b,)

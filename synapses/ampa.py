"""
AMPA synapse, Destexhe et al. 1994 kinetic formalism.

  alpha = 1.1 ms^-1 mM^-1, beta = 0.19 ms^-1, E_rev = 0 mV
"""

from synapses.kinetic import KineticSynapse


class AMPASynapse(KineticSynapse):
    """First-order kinetic AMPA synapse."""

    def __init__(self, location, gmax=0.02, erev=0.0, alpha=1.1, beta=0.19,
                 tmax=1.0, pulse_ms=1.0, x=0.5, name='ampa'):
        super().__init__(location, gmax=gmax, erev=erev, alpha=alpha, beta=beta,
                         tmax=tmax, pulse_ms=pulse_ms, x=x, name=name)

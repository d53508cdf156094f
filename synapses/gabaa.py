"""
GABA_A synapse, Destexhe et al. 1994 kinetic formalism.

Same scheme as AMPA with faster binding:
  alpha = 5.0 ms^-1 mM^-1, beta = 0.18 ms^-1

The current is carried by chloride. Unless a fixed erev is given it
reverses at the compartment's E_Cl, which follows intracellular
chloride when cldyn is inserted, and its current loads Cl- into the
compartment.
"""

from synapses.kinetic import KineticSynapse


class GABAASynapse(KineticSynapse):
    """First-order kinetic GABA_A synapse."""

    ion = 'cl'

    def __init__(self, location, gmax=0.035, erev=None, alpha=5.0, beta=0.18,
                 tmax=1.0, pulse_ms=1.0, x=0.5, name='gabaa'):
        super().__init__(location, gmax=gmax, erev=erev, alpha=alpha, beta=beta,
                         tmax=tmax, pulse_ms=pulse_ms, x=x, name=name)

    @property
    def erev(self):
        if self._erev is None:
            return self.location.ecl
        return self._erev

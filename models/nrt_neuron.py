"""
Reticular thalamic (RE / nRt) neuron: soma with two optional flanking
compartments attached at either end, used to concentrate synaptic input
close to, but not on, the soma.

   flank0 ---- soma ---- flank1

Kinetics after Destexhe et al. 1996: I_Ts with the slow reticular
inactivation time constant (tauh_mode 3), I_AHP and Ca2+ decay, leak,
and hh2 spike currents on the soma when fast spiking is requested.
"""

from models.builder import apply_parameters
from models.cell import Cell

DEFAULT_GEOMETRY = {
    'soma_diam': 25.0,          # um, soma L = diam
    'dend_L': 40.0,             # um, each flank
    'dend_diam': 2.0,           # um
    'dend_correction': 1.0,
}

DEFAULT_RE_PARAMS = {
    'cm': 1.0,
    'Ra': 100.0,
    'pas': {'g': 0.05, 'e': -90.0},
    'cad': {'depth': 1.0, 'taur': 5.0, 'cainf': 2.4e-4},
    'it': {'pcabar': 8e-5, 'shift_m': 2.0, 'shift_h': 2.0, 'tauh_mode': 3},
    'iahp': {'gkbar': 0.01},
    'hh2': {'gnabar': 100.0, 'gkbar': 10.0, 'vtraub': -55.0},
}

WHERE = {'hh2': ('soma',)}


def build_re(spec):
    cell = Cell(name=spec.name, kind='RE', temperature=spec.temperature,
                active=spec.active)
    soma = cell.add_compartment('soma', 'soma', L=spec.soma_diam, diam=spec.soma_diam)
    if spec.flanks:
        cell.add_compartment('flank0', 'flank', L=spec.dend_L, diam=spec.dend_diam,
                             parent=soma, x=0.0)
        cell.add_compartment('flank1', 'flank', L=spec.dend_L, diam=spec.dend_diam,
                             parent=soma, x=1.0)
    return apply_parameters(cell, spec.merged_params(DEFAULT_RE_PARAMS), spec, WHERE)

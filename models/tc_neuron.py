"""
Thalamocortical (TC) relay neuron: soma plus two dendritic compartments
in series.

Based on the reduced three-compartment TC cell of Destexhe, Neubig,
Ulrich & Huguenard 1998 (J Neurosci 18:3574-3588), with kinetics from
Huguenard & McCormick 1992 and Destexhe et al. 1996.

   soma ---- dend1 ---- dend2

The dendrites stand in for a much larger dendritic arbor; the dendritic
correction factor scales their cm, Ra and channel densities to recover
the missing membrane area.

Mechanisms in active mode:
  I_T, I_h, I_A, I_Kir, I_NaP, I_AHP, Ca2+ decay, Cl- dynamics, leak
  plus hh2 spike currents on the soma when fast spiking is requested.
"""

from models.builder import apply_parameters
from models.cell import Cell

DEFAULT_GEOMETRY = {
    'soma_diam': 38.0,          # um, soma L = diam
    'dend_L': 100.0,            # um, each dendritic compartment
    'dend_diam': 3.0,           # um
    'dend_correction': 7.954,
}

DEFAULT_TC_PARAMS = {
    'cm': 0.88,                 # uF/cm2
    'Ra': 173.0,                # Ohm cm
    'pas': {'g': 0.0379, 'e': -76.5},
    'cad': {'depth': 1.0, 'taur': 5.0, 'cainf': 2.4e-4},
    'cldyn': {'cli0': 5.0, 'tau': 500.0, 'depth': 1.0, 'dcl': 2.0},
    'it': {'pcabar': 2e-5, 'shift_m': 0.0, 'shift_h': 0.0,
           'slope_m': 1.0, 'slope_h': 1.0, 'tauh_mode': 1},
    'ih': {'ghbar': 0.005, 'shift': 0.0, 'slope': 1.0},
    'ia': {'gkbar': 0.3},
    'ikir': {'gkbar': 0.01},
    'inap': {'gnabar': 0.002},
    'iahp': {'gkbar': 0.01},
    'hh2': {'gnabar': 90.0, 'gkbar': 10.0, 'vtraub': -52.0},
}

WHERE = {'hh2': ('soma',)}


def build_tc(spec):
    cell = Cell(name=spec.name, kind='TC', temperature=spec.temperature,
                active=spec.active)
    soma = cell.add_compartment('soma', 'soma', L=spec.soma_diam, diam=spec.soma_diam)
    dend1 = cell.add_compartment('dend1', 'proximal', L=spec.dend_L,
                                 diam=spec.dend_diam, parent=soma, x=1.0)
    cell.add_compartment('dend2', 'distal', L=spec.dend_L,
                         diam=spec.dend_diam, parent=dend1, x=1.0)
    return apply_parameters(cell, spec.merged_params(DEFAULT_TC_PARAMS), spec, WHERE)

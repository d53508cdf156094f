"""
A neuron as a tree of compartments.

The first compartment is the root (soma); every later one is attached
to an existing compartment at a fractional position along it, so the
tree is connected and acyclic by construction and parents always come
before their children. The cable solver relies on that ordering.

Axial resistance between a child and its parent (MOhm) runs from the
child's midpoint to the attachment point on the parent:

  R = 0.01 * Ra_c * (L_c / 2) / (pi r_c^2) + 0.01 * Ra_p * |x - 0.5| L_p / (pi r_p^2)

with lengths in um and Ra in Ohm cm.
"""

import logging
from typing import Mapping

import numpy as np

from models.compartment import Compartment
from simulation.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _half_resistance(comp, length):
    return 0.01 * comp.Ra * length / (np.pi * (comp.diam / 2.0) ** 2)


class Cell:
    """Ordered compartment tree with named locations."""

    def __init__(self, name='cell', kind=None, temperature=34.0, active=True):
        self.name = name
        self.kind = kind
        self.temperature = temperature
        self.active = active
        self.compartments = []
        self.parent_index = []
        self.connection_x = []
        self.axial_resistance = np.zeros(0)
        self._by_name = {}

    def __repr__(self):
        names = ', '.join(c.name for c in self.compartments)
        return f"Cell({self.name!r}, kind={self.kind!r}, [{names}])"

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------
    def add_compartment(self, name, role, L, diam, cm=1.0, Ra=100.0,
                        parent=None, x=1.0):
        if name in self._by_name:
            raise ConfigurationError(f"duplicate compartment name {name!r}",
                                     parameter='name')
        if not 0.0 <= x <= 1.0:
            raise ConfigurationError(f"connection point must be in [0, 1], got {x}",
                                     parameter='x')
        if parent is None:
            if self.compartments:
                raise ConfigurationError(
                    f"{self.name} already has a root; {name!r} needs a parent",
                    parameter='parent')
            parent_idx = -1
        else:
            parent_comp = self.location(parent) if isinstance(parent, str) else parent
            if parent_comp.cell is not self:
                raise ConfigurationError(
                    f"parent {parent_comp.name!r} belongs to another cell",
                    parameter='parent')
            parent_idx = self.compartments.index(parent_comp)

        comp = Compartment(name, role, L, diam, cm=cm, Ra=Ra,
                           temperature=self.temperature)
        comp.cell = self
        self.compartments.append(comp)
        self.parent_index.append(parent_idx)
        self.connection_x.append(x)
        self._by_name[name] = comp
        self.update_axial()
        logger.debug(f"{self.name}: added {comp!r} parent={parent_idx} x={x}")
        return comp

    def update_axial(self):
        r = np.zeros(len(self.compartments))
        for i, comp in enumerate(self.compartments):
            p = self.parent_index[i]
            if p < 0:
                continue
            parent = self.compartments[p]
            r[i] = (_half_resistance(comp, comp.L / 2.0)
                    + _half_resistance(parent, abs(self.connection_x[i] - 0.5) * parent.L))
        self.axial_resistance = r

    def parent(self, comp):
        p = self.parent_index[self.compartments.index(comp)]
        return self.compartments[p] if p >= 0 else None

    def children(self, comp):
        i = self.compartments.index(comp)
        return [c for c, p in zip(self.compartments, self.parent_index) if p == i]

    def neighbors(self, comp):
        parent = self.parent(comp)
        return ([parent] if parent is not None else []) + self.children(comp)

    # ------------------------------------------------------------------
    # Named locations
    # ------------------------------------------------------------------
    @property
    def soma(self):
        return self.compartments[0]

    def location(self, name):
        try:
            return self._by_name[name]
        except KeyError:
            raise ConfigurationError(
                f"{self.name} has no compartment {name!r}; "
                f"available: {', '.join(self._by_name)}", parameter=name) from None

    def synapse_locations(self):
        return [c.name for c in self.compartments]

    def __iter__(self):
        return iter(self.compartments)

    def __len__(self):
        return len(self.compartments)

    @property
    def fast_spiking(self):
        return any(c.fast_spiking for c in self.compartments)

    def initialize(self, v):
        for comp in self.compartments:
            comp.initialize(v)

    # ------------------------------------------------------------------
    # Parameter adjustment
    # ------------------------------------------------------------------
    def _resolve(self, value, comp):
        if isinstance(value, Mapping):
            return value.get(comp.name)
        return value

    def _check_names(self, values):
        for value in values:
            if isinstance(value, Mapping):
                for name in value:
                    self.location(name)

    @staticmethod
    def _check_correction(dend_correction):
        if not dend_correction > 0:
            raise ConfigurationError(
                f"dendritic correction factor must be > 0, got {dend_correction}",
                parameter='dend_correction')

    def adjust_passive(self, cm=None, Ra=None, dend_correction=1.0):
        """Set cm and Ra; non-somatic cm is multiplied and Ra divided by the factor."""
        self._check_correction(dend_correction)
        self._check_names((cm, Ra))
        for comp in self.compartments:
            factor = 1.0 if comp.is_soma else dend_correction
            c = self._resolve(cm, comp)
            if c is not None:
                comp.cm = c * factor
            r = self._resolve(Ra, comp)
            if r is not None:
                comp.Ra = r / factor

    def adjust_leak(self, g=None, e=None, dend_correction=1.0):
        values = {k: v for k, v in (('g', g), ('e', e)) if v is not None}
        self.adjust_channel('pas', values, dend_correction)

    def adjust_channel(self, kind, values, dend_correction=1.0, scaled=None):
        """Overwrite parameters of an inserted mechanism compartment by compartment.

        Each value is either one number for every compartment carrying the
        mechanism or a mapping compartment name -> number. Parameters
        listed in `scaled` (default: the mechanism's density parameters)
        are multiplied by `dend_correction` everywhere except the soma.
        """
        self._check_correction(dend_correction)
        self._check_names(values.values())
        carriers = [c for c in self.compartments if c.has(kind)]
        if not carriers:
            if not self.active and kind != 'pas':
                raise ConfigurationError(
                    f"cannot adjust {kind!r} on passive-only cell {self.name}",
                    parameter=kind)
            raise ConfigurationError(
                f"mechanism {kind!r} is not inserted in any compartment of {self.name}",
                parameter=kind)
        for value in values.values():
            if isinstance(value, Mapping):
                for name in value:
                    self.location(name).mechanism(kind)
        if scaled is None:
            scaled = type(carriers[0].mechanism(kind)).density_params

        for comp in carriers:
            params = {}
            for name, value in values.items():
                x = self._resolve(value, comp)
                if x is None:
                    continue
                if name in scaled and not comp.is_soma:
                    x = x * dend_correction
                params[name] = x
            if params:
                comp.mechanism(kind).set_params(**params)

    def adjust_it(self, dend_correction=1.0, **values):
        self.adjust_channel('it', values, dend_correction)

    def adjust_ih(self, dend_correction=1.0, **values):
        self.adjust_channel('ih', values, dend_correction)

    def adjust_ia(self, dend_correction=1.0, **values):
        self.adjust_channel('ia', values, dend_correction)

    def adjust_ikir(self, dend_correction=1.0, **values):
        self.adjust_channel('ikir', values, dend_correction)

    def adjust_inap(self, dend_correction=1.0, **values):
        self.adjust_channel('inap', values, dend_correction)

    def adjust_iahp(self, dend_correction=1.0, **values):
        self.adjust_channel('iahp', values, dend_correction)

    def adjust_hh2(self, dend_correction=1.0, **values):
        self.adjust_channel('hh2', values, dend_correction)

    def adjust_cad(self, dend_correction=1.0, **values):
        self.adjust_channel('cad', values, dend_correction)

    def adjust_cldyn(self, dend_correction=1.0, **values):
        self.adjust_channel('cldyn', values, dend_correction)

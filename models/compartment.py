"""
A single isopotential cylinder of membrane.

Geometry is in um, cm in uF/cm2, Ra in Ohm cm. Every geometry setter
recomputes the derived area immediately and asks the owning cell to
refresh its axial resistances, so nothing is ever stale.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from channels import create_mechanism
from channels.base import nernst
from simulation.errors import ConfigurationError

logger = logging.getLogger(__name__)

ION_DEFAULTS = {
    'na': ('ena', 50.0),
    'k': ('ek', -100.0),
    'h': ('eh', -40.0),
    'cl': ('ecl', -80.0),
}

CAI_REST = 2.4e-4   # mM
CAO = 2.0           # mM
CLI_REST = 5.0      # mM
CLO = 130.0         # mM


@dataclass
class ReversalPotentials:
    """Per-compartment reversal potentials (mV); None until an ion is used."""
    ena: Optional[float] = None
    ek: Optional[float] = None
    eh: Optional[float] = None
    ecl: Optional[float] = None

    def ensure(self, ion):
        name, value = ION_DEFAULTS[ion]
        if getattr(self, name) is None:
            setattr(self, name, value)


def _positive(name, value):
    if not value > 0:
        raise ConfigurationError(f"{name} must be > 0, got {value}", parameter=name)
    return float(value)


class Compartment:
    """Cylinder with passive properties and inserted mechanisms."""

    def __init__(self, name, role, L, diam, cm=1.0, Ra=100.0, temperature=34.0):
        self.name = name
        self.role = role
        self.cell = None
        self.temperature = temperature
        self._L = _positive('L', L)
        self._diam = _positive('diam', diam)
        self._cm = _positive('cm', cm)
        self._Ra = _positive('Ra', Ra)
        self.area = np.pi * self._diam * self._L

        self.mechanisms = {}
        self.point_processes = []
        self.rev = ReversalPotentials()
        self.cao = CAO
        self.clo = CLO

        self.v = -65.0
        # density currents of the last evaluation (uA/cm2)
        self.ica = 0.0
        self.icl = 0.0
        self.i_membrane = 0.0

    def __repr__(self):
        return f"Compartment({self.name!r}, L={self._L:g}, diam={self._diam:g})"

    # ------------------------------------------------------------------
    # Geometry and passive properties
    # ------------------------------------------------------------------
    @property
    def L(self):
        return self._L

    @L.setter
    def L(self, value):
        self._L = _positive('L', value)
        self._geometry_changed()

    @property
    def diam(self):
        return self._diam

    @diam.setter
    def diam(self, value):
        self._diam = _positive('diam', value)
        self._geometry_changed()

    @property
    def cm(self):
        return self._cm

    @cm.setter
    def cm(self, value):
        self._cm = _positive('cm', value)

    @property
    def Ra(self):
        return self._Ra

    @Ra.setter
    def Ra(self, value):
        self._Ra = _positive('Ra', value)
        self._geometry_changed()

    def _geometry_changed(self):
        self.area = np.pi * self._diam * self._L
        if self.cell is not None:
            self.cell.update_axial()

    @property
    def is_soma(self):
        return self.role == 'soma'

    def point_scale(self):
        """Factor converting a point current in nA to a density in uA/cm2."""
        return 1e5 / self.area

    def neighbors(self):
        if self.cell is None:
            return []
        return self.cell.neighbors(self)

    # ------------------------------------------------------------------
    # Mechanisms
    # ------------------------------------------------------------------
    def insert(self, kind, **params):
        """Insert a mechanism, or overwrite the parameters of an inserted one."""
        mech = self.mechanisms.get(kind)
        if mech is not None:
            mech.set_params(**params)
            return mech
        mech = create_mechanism(kind, temperature=self.temperature, **params)
        for ion in mech.ions:
            self.rev.ensure(ion)
        self.mechanisms[kind] = mech
        logger.debug(f"{self.name}: inserted {mech!r}")
        return mech

    def mechanism(self, kind):
        try:
            return self.mechanisms[kind]
        except KeyError:
            raise ConfigurationError(
                f"mechanism {kind!r} is not inserted in compartment {self.name!r}",
                parameter=kind) from None

    def has(self, kind):
        return kind in self.mechanisms

    @property
    def fast_spiking(self):
        return any(m.fast_spiking for m in self.mechanisms.values())

    def ordered_mechanisms(self):
        """Concentration mechanisms first: gates read the updated Cai / Cli."""
        mechs = list(self.mechanisms.values())
        return [m for m in mechs if m.concentration] + [m for m in mechs if not m.concentration]

    # ------------------------------------------------------------------
    # Ions
    # ------------------------------------------------------------------
    @property
    def cai(self):
        cad = self.mechanisms.get('cad')
        return cad.states['cai'] if cad is not None else CAI_REST

    @property
    def cli(self):
        cl = self.mechanisms.get('cldyn')
        return cl.states['cli'] if cl is not None else CLI_REST

    @property
    def ecl(self):
        if 'cldyn' in self.mechanisms:
            return nernst(self.cli, self.clo, -1, self.temperature)
        if self.rev.ecl is None:
            return ION_DEFAULTS['cl'][1]
        return self.rev.ecl

    # ------------------------------------------------------------------
    # Point processes (stimuli, synapses)
    # ------------------------------------------------------------------
    def attach(self, pp):
        if pp.ion is not None:
            self.rev.ensure(pp.ion)
        if pp not in self.point_processes:
            self.point_processes.append(pp)

    def detach(self, pp):
        if pp in self.point_processes:
            self.point_processes.remove(pp)

    # ------------------------------------------------------------------
    # Currents
    # ------------------------------------------------------------------
    def _density(self, v, t, record):
        total = 0.0
        ica = 0.0
        for mech in self.mechanisms.values():
            i = mech.current(v, self)
            if record:
                mech.i = i
            if mech.kind == 'it':
                ica += i
            total += i
        scale = self.point_scale()
        icl = 0.0
        for pp in self.point_processes:
            i = pp.membrane_current(v, t)
            if record:
                pp.i = pp.recorded_current(i)
            if pp.ion == 'cl':
                icl += i * scale
            total += i * scale
        if record:
            self.ica = ica
            self.icl = icl
            self.i_membrane = total
        return total

    def total_membrane_current(self, v, t, dv=0.001):
        """Total outward current density and its slope dI/dV at `v`.

        Sums the leak, every inserted channel and every attached point
        process (converted from nA). The slope is a forward difference,
        as needed by the implicit cable solver.
        """
        i = self._density(v, t, True)
        i_dv = self._density(v + dv, t, False)
        return i, (i_dv - i) / dv

    def update_currents(self, t):
        """Re-evaluate and store every current at the present state."""
        return self._density(self.v, t, True)

    def initialize(self, v):
        """Pin V and relax every state to its steady state at V."""
        self.v = v
        self._density(v, 0.0, True)
        for mech in self.ordered_mechanisms():
            mech.initialize(v, self)
        # Cai and I_T depend on each other; a few passes reach the fixed point
        if 'cad' in self.mechanisms:
            for _ in range(20):
                previous = self.cai
                self._density(v, 0.0, True)
                self.mechanisms['cad'].initialize(v, self)
                if abs(self.cai - previous) <= 1e-12:
                    break
            for mech in self.ordered_mechanisms():
                if not mech.concentration:
                    mech.initialize(v, self)
        self._density(v, 0.0, True)

    def advance_states(self, dt):
        for mech in self.ordered_mechanisms():
            mech.advance(self.v, dt, self)

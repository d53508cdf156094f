"""
Declarative recording.

A TraceSpec names a target (a compartment or a point process) and a
quantity; the RecorderSet resolves it once into a getter and an
append-only buffer. Compartment quantities:

  v, cai, cli, ecl, ica, icl, i_membrane
  <kind>.i           last current density of an inserted mechanism
  <kind>.<gate>      a gating / concentration state, e.g. it.h, cad.cai

Point-process quantities: i (nA, own sign convention), g (uS) and any
named state (r for kinetic synapses).
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from models.compartment import Compartment
from simulation.errors import ConfigurationError
from synapses.kinetic import KineticSynapse

COMPARTMENT_QUANTITIES = ('v', 'cai', 'cli', 'ecl', 'ica', 'icl', 'i_membrane')
ACTIVE_QUANTITIES = ('cai', 'cli', 'ica', 'icl')


@dataclass(frozen=True)
class TraceSpec:
    target: Any
    quantity: str
    label: Optional[str] = None

    def key(self):
        return self.label or f"{self.target.name}.{self.quantity}"


def _compartment_getter(comp, quantity):
    if quantity in COMPARTMENT_QUANTITIES:
        return (lambda: getattr(comp, quantity)), quantity in ACTIVE_QUANTITIES
    kind, _, field_name = quantity.partition('.')
    mech = comp.mechanism(kind)
    if field_name == 'i':
        return (lambda: mech.i), kind != 'pas'
    if field_name in mech.gates:
        return (lambda: mech.states[field_name]), kind != 'pas'
    raise ConfigurationError(
        f"cannot record {quantity!r} on {comp.name}: {kind} has gates {mech.gates}",
        parameter=quantity)


def _point_process_getter(pp, quantity):
    if quantity == 'i':
        return lambda: pp.i
    if quantity == 'g':
        if isinstance(pp, KineticSynapse):
            return pp.conductance
        if hasattr(pp, 'g'):
            return lambda: pp.g
    if quantity in pp.states:
        return lambda: pp.states[quantity]
    raise ConfigurationError(f"cannot record {quantity!r} on {pp!r}", parameter=quantity)


class Recorder:
    def __init__(self, spec, getter, active):
        self.spec = spec
        self.getter = getter
        self.active = active
        self.buffer = []

    def sample(self):
        self.buffer.append(float(self.getter()))


class RecorderSet:
    """Ordered recorders keyed by label; time is always recorded first."""

    def __init__(self):
        self.recorders = {}
        self.times = []

    def __len__(self):
        return len(self.recorders)

    def __contains__(self, label):
        return label in self.recorders

    def add(self, spec):
        label = spec.key()
        if label == 't' or label in self.recorders:
            raise ConfigurationError(f"duplicate trace label {label!r}", parameter=label)
        if isinstance(spec.target, Compartment):
            getter, active = _compartment_getter(spec.target, spec.quantity)
        else:
            getter, active = _point_process_getter(spec.target, spec.quantity), False
        rec = Recorder(spec, getter, active)
        self.recorders[label] = rec
        return rec

    @property
    def has_active(self):
        return any(r.active for r in self.recorders.values())

    @property
    def needs_currents(self):
        return any(r.spec.quantity != 'v' for r in self.recorders.values())

    def clear(self):
        self.times = []
        for rec in self.recorders.values():
            rec.buffer = []

    def sample(self, t):
        self.times.append(t)
        for rec in self.recorders.values():
            rec.sample()

    def to_result(self, **info):
        result = RunResult(**info)
        result['t'] = np.array(self.times)
        for label, rec in self.recorders.items():
            result[label] = np.array(rec.buffer)
        return result


class RunResult(dict):
    """Ordered mapping label -> numpy array, 't' first, plus run metadata."""

    def __init__(self, policy=None, method=None, steps=0):
        super().__init__()
        self.policy = policy
        self.method = method
        self.steps = steps

    @property
    def t(self):
        return self['t']

    def __repr__(self):
        return (f"RunResult(policy={self.policy!r}, method={self.method!r}, "
                f"steps={self.steps}, traces={list(self)})")

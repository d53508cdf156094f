"""
Cell construction from a build specification.

`CellBuildSpec` replaces the positional template arguments of a cell
type with named, validated fields. `build_cell` dispatches on `kind` to
the TC or RE build strategy; both return a `Cell` with the same
interface, differing only in topology and default parameters.

Parameter sets are plain dicts:

  {'cm': 0.88, 'Ra': 173.0,
   'pas': {'g': 0.0379, 'e': -76.5},
   'it': {'pcabar': {'soma': 2e-5, 'dend1': 2e-5}, 'tauh_mode': 1},
   ...}

A value is either a number for every compartment carrying the mechanism
or a mapping compartment name -> number. Density parameters are
multiplied by the dendritic correction factor on non-somatic
compartments (see `Cell.adjust_channel`).
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Optional

from simulation.errors import ConfigurationError

logger = logging.getLogger(__name__)

# insertion order; concentration mechanisms first
ACTIVE_KINDS = ('cad', 'cldyn', 'it', 'ih', 'ia', 'ikir', 'inap', 'iahp')


@dataclass
class CellBuildSpec:
    kind: str = 'TC'
    soma_diam: Optional[float] = None
    dend_L: Optional[float] = None
    dend_diam: Optional[float] = None
    dend_correction: Optional[float] = None
    active: bool = True
    fast_spiking: bool = False
    flanks: bool = True
    temperature: float = 34.0
    name: Optional[str] = None
    params: dict = field(default_factory=dict)

    def __post_init__(self):
        from models import nrt_neuron, tc_neuron
        defaults = {'TC': tc_neuron, 'RE': nrt_neuron}
        if self.kind not in defaults:
            raise ConfigurationError(
                f"unknown cell kind {self.kind!r}; expected 'TC' or 'RE'",
                parameter='kind')
        module = defaults[self.kind]
        for name, value in module.DEFAULT_GEOMETRY.items():
            if getattr(self, name) is None:
                setattr(self, name, value)
        for name in ('soma_diam', 'dend_L', 'dend_diam', 'dend_correction'):
            value = getattr(self, name)
            if not value > 0:
                raise ConfigurationError(f"{name} must be > 0, got {value}",
                                         parameter=name)
        if self.name is None:
            self.name = self.kind
        if self.fast_spiking and not self.active:
            raise ConfigurationError(
                "fast spiking requires an active build", parameter='fast_spiking')

    def merged_params(self, defaults):
        """Defaults overridden mechanism by mechanism with `params`."""
        merged = copy.deepcopy(defaults)
        for key, value in self.params.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(copy.deepcopy(value))
            else:
                merged[key] = copy.deepcopy(value)
        return merged


def apply_parameters(cell, params, spec, where=None):
    """Insert mechanisms for the build mode and set their parameters."""
    where = where or {}
    corr = spec.dend_correction
    cell.adjust_passive(cm=params.get('cm'), Ra=params.get('Ra'), dend_correction=corr)
    for comp in cell:
        comp.insert('pas')
    cell.adjust_leak(dend_correction=corr, **params.get('pas', {}))
    if not spec.active:
        return cell

    kinds = list(ACTIVE_KINDS) + (['hh2'] if spec.fast_spiking else [])
    for kind in kinds:
        values = params.get(kind)
        if values is None:
            continue
        targets = where.get(kind)
        for comp in cell:
            if targets is None or comp.name in targets:
                comp.insert(kind)
        cell.adjust_channel(kind, values, dend_correction=corr)
    return cell


def build_cell(spec='TC', **overrides):
    """Build a TC or RE cell from a spec or a kind name plus spec fields."""
    from models import nrt_neuron, tc_neuron
    if isinstance(spec, str):
        spec = CellBuildSpec(kind=spec, **overrides)
    elif overrides:
        raise TypeError("pass either a CellBuildSpec or a kind with overrides")
    builders = {'TC': tc_neuron.build_tc, 'RE': nrt_neuron.build_re}
    cell = builders[spec.kind](spec)
    logger.debug(f"built {cell!r} active={spec.active} fast_spiking={spec.fast_spiking}")
    return cell

"""
TC-RE network on a ring.

  TC_i --AMPA--> RE_j         (on RE flanks when present, else soma)
  RE_j --GABA_A--> TC_i       (on TC dend1)
  RE_j --GABA_A--> RE_k       (on RE soma, no autapses)

Each connection is its own kinetic synapse whose conductance is the
convergence-normalised share of the total per postsynaptic cell. Spikes
are detected on the presynaptic soma and delivered after the
connection's delay with its activation probability as event weight.
Every cell is built with hh2 so it can spike, which pins the network to
fixed-step integration.
"""

import logging

import numpy as np

from models.builder import CellBuildSpec, build_cell
from population.network import (assign_delays, build_connectivity, connectivity_stats,
                                place_cells_on_ring, normalize_weights)
from simulation.driver import Simulation
from simulation.errors import ConfigurationError
from simulation.events import Connection
from simulation.state import SimulationState
from synapses.ampa import AMPASynapse
from synapses.gabaa import GABAASynapse

logger = logging.getLogger(__name__)


class ThalamicNetwork:
    """TC and RE populations wired by distance on a shared ring."""

    def __init__(self, n_tc=4, n_re=4, radius_tc_re=0.25, radius_re_tc=0.25,
                 radius_re_re=0.25, g_ampa_total=0.02, g_gabaa_tc_total=0.035,
                 g_gabaa_re_total=0.01, delay_ms=1.0, delay_std_ms=0.0,
                 weight=1.0, threshold=-20.0, tc_spec=None, re_spec=None, seed=42):
        if n_tc < 1 or n_re < 1:
            raise ConfigurationError("need at least one TC and one RE cell",
                                     parameter='n_tc' if n_tc < 1 else 'n_re')
        self.n_tc = n_tc
        self.n_re = n_re
        self.threshold = threshold

        tc_spec = dict(tc_spec or {})
        re_spec = dict(re_spec or {})
        tc_spec.setdefault('fast_spiking', True)
        re_spec.setdefault('fast_spiking', True)
        self.tc = [build_cell(CellBuildSpec(kind='TC', name=f"TC{i}", **tc_spec))
                   for i in range(n_tc)]
        self.re = [build_cell(CellBuildSpec(kind='RE', name=f"RE{j}", **re_spec))
                   for j in range(n_re)]

        self.tc_positions = place_cells_on_ring(n_tc)
        self.re_positions = place_cells_on_ring(n_re)
        self.tc_to_re = build_connectivity(self.tc_positions, radius_tc_re,
                                           post_positions=self.re_positions)
        self.re_to_tc = build_connectivity(self.re_positions, radius_re_tc,
                                           post_positions=self.tc_positions)
        self.re_to_re = build_connectivity(self.re_positions, radius_re_re)

        self.connections = []
        self._wire(self.tc, self.re, self.tc_to_re, g_ampa_total, AMPASynapse,
                   self._re_target, delay_ms, delay_std_ms, weight, seed)
        self._wire(self.re, self.tc, self.re_to_tc, g_gabaa_tc_total, GABAASynapse,
                   lambda cell: cell.location('dend1'), delay_ms, delay_std_ms, weight, seed + 1)
        self._wire(self.re, self.re, self.re_to_re, g_gabaa_re_total, GABAASynapse,
                   lambda cell: cell.soma, delay_ms, delay_std_ms, weight, seed + 2)

        for name, conn in (('TC->RE', self.tc_to_re), ('RE->TC', self.re_to_tc),
                           ('RE->RE', self.re_to_re)):
            stats = connectivity_stats(conn)
            logger.info(f"{name}: {stats['connections']} connections, "
                        f"mean convergence {stats['mean_convergence']:.1f}")
            unreached = int(np.sum(conn.sum(axis=1) == 0))
            if unreached:
                logger.warning(f"{name}: {unreached} postsynaptic cell(s) receive no input; "
                               f"increase the connection radius")

    @staticmethod
    def _re_target(cell):
        names = cell.synapse_locations()
        return cell.location('flank0') if 'flank0' in names else cell.soma

    def _wire(self, pre, post, conn, total, synapse_cls, target, delay_ms,
              delay_std_ms, weight, seed):
        weights = normalize_weights(conn, total)
        delays = assign_delays(conn, mean_ms=delay_ms, std_ms=delay_std_ms, seed=seed)
        for j, post_cell in enumerate(post):
            for i, pre_cell in enumerate(pre):
                if not conn[j, i]:
                    continue
                syn = synapse_cls(target(post_cell), gmax=weights[j, i],
                                  name=f"{pre_cell.name}->{post_cell.name}")
                self.connections.append(Connection(
                    source=pre_cell.soma, target=syn, threshold=self.threshold,
                    delay=float(delays[j, i]), weight=weight))

    @property
    def cells(self):
        return self.tc + self.re

    def simulation(self, state=None):
        """A Simulation over every cell with all connections registered."""
        sim = Simulation(self.cells, state or SimulationState(policy='fixed'))
        for conn in self.connections:
            sim.connect(conn)
        for cell in self.cells:
            sim.record(cell.soma, 'v', label=f"{cell.name}.soma.v")
        return sim

    def run(self, t_stop, v_init=-70.0, state=None):
        sim = self.simulation(state)
        sim.initialize(v_init)
        result = sim.run(t_stop)
        result.spikes = {det.source.cell.name: np.array(det.spikes)
                         for det in sim.detectors.values()}
        return result

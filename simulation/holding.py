"""
Holding current from a voltage-clamp sub-run.

The cell is clamped at the target potential for a settling period; the
clamp current at the end is the bias that holds the cell there. The
sub-run has its own Simulation, state and recorders, every other point
process on the cell is detached for its duration, and the clamp is
detached on every exit path. Gating states reached under the clamp are
not carried over: the main run re-initialises from the steady state at
the holding potential.
"""

import contextlib
import logging

from simulation.driver import Simulation
from simulation.recording import TraceSpec
from simulation.state import SimulationState
from stimulus.clamps import VoltageClamp, attached_clamp

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def isolated(cell):
    """Temporarily detach every point process from the cell."""
    saved = {comp: list(comp.point_processes) for comp in cell}
    for comp in cell:
        comp.point_processes = []
    try:
        yield cell
    finally:
        for comp, pps in saved.items():
            comp.point_processes = pps


class HoldingCurrentSolver:
    """Bias current (nA) that holds `location` (default soma) at v_hold."""

    def __init__(self, v_hold=-70.0, settle=3000.0, rs=0.01, location=None,
                 **state_options):
        self.v_hold = v_hold
        self.settle = settle
        self.rs = rs
        self.location = location
        self.state_options = state_options

    def solve(self, cell):
        comp = cell.location(self.location) if self.location else cell.soma
        with isolated(cell), attached_clamp(VoltageClamp, comp, vc=self.v_hold,
                                            rs=self.rs, name='holding_clamp') as clamp:
            state = SimulationState(v_init=self.v_hold, **self.state_options)
            sim = Simulation([cell], state)
            sim.record(TraceSpec(clamp, 'i', label='clamp.i'))
            sim.initialize(self.v_hold)
            result = sim.run(self.settle)
        i_hold = float(result['clamp.i'][-1])
        logger.info(f"holding current for {cell.name} at {self.v_hold} mV: {i_hold:.6f} nA "
                    f"({result.policy}, {result.steps} steps)")
        return i_hold


def compute_holding_current(cell, v_hold=-70.0, settle=3000.0, **options):
    return HoldingCurrentSolver(v_hold=v_hold, settle=settle, **options).solve(cell)

"""
Single-cell stimulus protocol.

Builds the cell, finds the holding current (voltage-clamp sub-run)
unless one is given, attaches the holding electrode (optionally noisy),
a current pulse and a GABA_B-shaped IPSC, runs the Integration Driver
and returns the fixed-order trace table:

  t
  <comp>.v                       every compartment, tree order
  ipsc.i, ipsc.g                 when an IPSC is configured
  hold.i, pulse.i                electrode currents
  <comp>.<kind>.i / .<gate>      channel currents and states, plus
  <comp>.cai / <comp>.cli        only for noise-free active builds

Every series has one sample per accepted step plus the initial one.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from models.builder import CellBuildSpec, build_cell
from simulation.driver import Simulation
from simulation.errors import ProtocolError
from simulation.holding import compute_holding_current
from simulation.recording import TraceSpec
from simulation.state import SimulationState
from stimulus.clamps import CurrentClamp
from synapses.gabab import GABABSynapse

logger = logging.getLogger(__name__)


@dataclass
class ProtocolSpec:
    t_stop: float = 10000.0         # ms
    dt: float = 0.1
    policy: str = 'auto'
    method: str = 'backward_euler'
    adaptive_method: str = 'BDF'
    rtol: float = 1e-5
    atol: float = 1e-7

    v_hold: float = -70.0
    i_hold: Optional[float] = None  # nA; None -> voltage-clamp sub-run
    settle: float = 3000.0          # ms
    noise_std: float = 0.0          # nA
    seed: Optional[int] = None

    pulse_amp: float = -0.05        # nA
    pulse_delay: float = 100.0
    pulse_dur: float = 10.0
    pulse_location: str = 'soma'

    ipsc_amp: float = 0.0           # uS, 0 disables
    ipsc_onset: float = 500.0
    ipsc_trise: float = 2.0
    ipsc_tfall_fast: float = 50.0
    ipsc_tfall_slow: float = 200.0
    ipsc_w: float = 0.5
    ipsc_erev: float = 0.0
    ipsc_location: str = 'soma'

    record_channels: Optional[bool] = None

    def __post_init__(self):
        if self.t_stop < 0:
            raise ProtocolError(f"t_stop must be >= 0, got {self.t_stop}")
        if self.settle < 0:
            raise ProtocolError(f"settle must be >= 0, got {self.settle}")
        if self.noise_std < 0:
            raise ProtocolError(f"noise_std must be >= 0, got {self.noise_std}")

    def state_options(self):
        return dict(dt=self.dt, policy=self.policy, method=self.method,
                    adaptive_method=self.adaptive_method, rtol=self.rtol, atol=self.atol)


def channel_trace_specs(cell):
    specs = []
    for comp in cell:
        for kind, mech in comp.mechanisms.items():
            if kind == 'pas':
                continue
            if mech.concentration:
                specs.append(TraceSpec(comp, mech.gates[0]))
                continue
            specs.append(TraceSpec(comp, f"{kind}.i", label=f"{comp.name}.{kind}.i"))
            for gate in mech.gates:
                specs.append(TraceSpec(comp, f"{kind}.{gate}", label=f"{comp.name}.{kind}.{gate}"))
    return specs


def trace_specs(cell, electrodes=(), ipsc=None, channels=False):
    """Ordered trace specification for the output table."""
    specs = [TraceSpec(comp, 'v') for comp in cell]
    if ipsc is not None:
        specs += [TraceSpec(ipsc, 'i'), TraceSpec(ipsc, 'g')]
    specs += [TraceSpec(e, 'i') for e in electrodes]
    if channels:
        specs += channel_trace_specs(cell)
    return specs


def run_protocol(build, protocol=None, cell=None):
    """Run one stimulus protocol; returns the RunResult trace table.

    `build` is a CellBuildSpec or a kind name ('TC' / 'RE'); pass `cell`
    to reuse an already built cell instead.
    """
    protocol = protocol or ProtocolSpec()
    if isinstance(build, str):
        build = CellBuildSpec(kind=build)
    cell = cell or build_cell(build)

    i_hold = protocol.i_hold
    if i_hold is None:
        i_hold = compute_holding_current(cell, v_hold=protocol.v_hold,
                                         settle=protocol.settle,
                                         **protocol.state_options())
    soma = cell.soma
    hold = CurrentClamp(soma, delay=0.0, dur=np.inf, amp=i_hold,
                        noise_std=protocol.noise_std, seed=protocol.seed, name='hold')
    pulse = CurrentClamp(cell.location(protocol.pulse_location), delay=protocol.pulse_delay,
                         dur=protocol.pulse_dur, amp=protocol.pulse_amp, name='pulse')
    ipsc = None
    if protocol.ipsc_amp > 0:
        ipsc = GABABSynapse(cell.location(protocol.ipsc_location), amp=protocol.ipsc_amp,
                            trise=protocol.ipsc_trise, tfall_fast=protocol.ipsc_tfall_fast,
                            tfall_slow=protocol.ipsc_tfall_slow, w=protocol.ipsc_w,
                            erev=protocol.ipsc_erev, name='ipsc')

    logger.info(f"protocol on {cell.name}: i_hold={i_hold:.6f} nA, pulse {protocol.pulse_amp} nA "
                f"at {protocol.pulse_delay} ms, ipsc_amp={protocol.ipsc_amp} uS")

    channels = protocol.record_channels
    if channels is None:
        channels = build.active and protocol.noise_std == 0

    try:
        sim = Simulation([cell], SimulationState(v_init=protocol.v_hold,
                                                 **protocol.state_options()))
        if ipsc is not None:
            sim.add_event(ipsc, protocol.ipsc_onset)
        sim.record_all(trace_specs(cell, (hold, pulse), ipsc, channels=channels))
        sim.initialize(protocol.v_hold)
        result = sim.run(protocol.t_stop)
    finally:
        for pp in (hold, pulse, ipsc):
            if pp is not None:
                pp.detach()
    result.holding_current = i_hold
    return result

"""
Integration driver: owns the clock, the recorders and the event queue
of one run.

Fixed step (backward Euler / Crank-Nicholson), per step, in this order:
  1. channel currents and their slopes at the present V
  2. synaptic and stimulus currents (per-step noise drawn here)
  3. cable solve; every compartment's V is replaced at once, then gates,
     concentrations and synapse states advance with the exact
     exponential update at the new V
  4. spike detection and delivery of events due in [t, t + dt)
  5. recording of the post-step state

Adaptive: the whole system (voltages, gates, concentrations, synapse
states) is handed to scipy's implicit variable-order solvers, integrated
piecewise between discontinuities (stimulus edges, pending events,
transmitter pulse ends) and interrupted at spike-detector threshold
crossings. Every accepted solver step is recorded.
"""

import logging
import time

import numpy as np
from scipy.integrate import solve_ivp

from simulation.cable import CableSolver, voltage_derivatives
from simulation.errors import ConfigurationError, ProtocolError, SimulationDivergenceError
from simulation.events import EventQueue, SpikeDetector
from simulation.recording import RecorderSet, TraceSpec
from simulation.state import SimulationState, select_step_policy

logger = logging.getLogger(__name__)

V_LIMIT = 500.0     # mV
EPS_T = 1e-9        # ms


class Simulation:
    """One run over a set of cells."""

    def __init__(self, cells, state=None, noise_present=None):
        if not isinstance(cells, (list, tuple)):
            cells = [cells]
        if not cells:
            raise ConfigurationError("a simulation needs at least one cell",
                                     parameter='cells')
        self.cells = list(cells)
        self.state = state or SimulationState()
        self.recorders = RecorderSet()
        self.queue = EventQueue()
        self.detectors = {}
        self.scheduled = []
        self._noise_override = noise_present
        self._initialized = False

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def compartments(self):
        return [comp for cell in self.cells for comp in cell.compartments]

    def point_processes(self):
        return [pp for comp in self.compartments() for pp in comp.point_processes]

    @property
    def noise_present(self):
        if self._noise_override is not None:
            return self._noise_override
        return any(pp.noisy for pp in self.point_processes())

    @property
    def fast_spiking(self):
        return any(cell.fast_spiking for cell in self.cells)

    def record(self, target, quantity='v', label=None):
        spec = target if isinstance(target, TraceSpec) else TraceSpec(target, quantity, label)
        self._check_owned(spec.target)
        return self.recorders.add(spec)

    def record_all(self, specs):
        for spec in specs:
            self.record(spec)

    def _check_owned(self, target):
        comp = getattr(target, 'location', target)
        if comp not in self.compartments():
            raise ConfigurationError(f"{target!r} is not part of this simulation",
                                     parameter='target')

    def add_event(self, target, t, weight=1.0):
        """Deliver one event to `target` at time `t` in every run."""
        self._check_owned(target)
        if t < 0:
            raise ConfigurationError(f"event time must be >= 0, got {t}", parameter='t')
        self.scheduled.append((t, target, weight))

    def connect(self, connection):
        """Register a spike detector on the source and route its spikes."""
        self._check_owned(connection.source)
        self._check_owned(connection.target)
        key = (id(connection.source), connection.threshold)
        det = self.detectors.get(key)
        if det is None:
            det = SpikeDetector(connection.source, connection.threshold)
            self.detectors[key] = det
        det.connections.append(connection)
        return det

    def initialize(self, v_init=None):
        """Reset the clock, recorders and events; relax every state at v_init."""
        if v_init is not None:
            self.state.v_init = v_init
        v = self.state.v_init
        self.state.reset()
        self.queue.clear()
        self.recorders.clear()
        for pp in self.point_processes():
            pp.reset()
        for cell in self.cells:
            cell.initialize(v)
        for det in self.detectors.values():
            det.reset(det.source.v)
        for t, target, weight in self.scheduled:
            self.queue.push(t, target, weight)
        self._update_currents(0.0)
        self.recorders.sample(0.0)
        self._initialized = True

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self, t_stop):
        if t_stop < 0:
            raise ProtocolError(f"t_stop must be >= 0, got {t_stop}")
        noise = self.noise_present
        policy = select_step_policy(self.state.policy, noise, self.fast_spiking)
        if noise and self.recorders.has_active:
            raise ProtocolError("active-mechanism state cannot be recorded while "
                                "noise is injected")
        if not self._initialized:
            self.initialize()
        method = self.state.method if policy == 'fixed' else self.state.adaptive_method
        if policy == 'fixed' and self.fast_spiking and self.state.dt > 0.1:
            logger.warning(f"dt={self.state.dt} ms with hh2 spike currents; spikes may be "
                           f"missed or distorted above 0.1 ms")
        logger.info(f"run to {t_stop} ms: policy={policy} method={method} "
                    f"v_init={self.state.v_init} cells={len(self.cells)}")
        start = time.time()
        try:
            if policy == 'fixed':
                self._run_fixed(t_stop)
            else:
                self._run_adaptive(t_stop)
        finally:
            self._initialized = False
        logger.info(f"run finished: {self.state.step} steps in {time.time() - start:.1f} s")
        return self.recorders.to_result(policy=policy, method=method, steps=self.state.step)

    def _update_currents(self, t):
        for comp in self.compartments():
            comp.update_currents(t)

    def _check(self, t):
        for comp in self.compartments():
            v = comp.v
            if not np.isfinite(v) or abs(v) > V_LIMIT:
                raise SimulationDivergenceError(
                    f"{comp.cell.name}.{comp.name}: V={v} at t={t:.4f} ms "
                    f"(step {self.state.step})", step=self.state.step, t=t)
            for mech in comp.mechanisms.values():
                for gate, x in mech.states.items():
                    if not np.isfinite(x):
                        raise SimulationDivergenceError(
                            f"{comp.name}.{mech.kind}.{gate} is not finite at t={t:.4f} ms "
                            f"(step {self.state.step})", step=self.state.step, t=t)

    def _deliver(self, t_end, inclusive=False):
        for te, target, weight in self.queue.pop_due(t_end, inclusive=inclusive):
            target.activate(te, weight)

    # ------------------------------------------------------------------
    # Fixed step
    # ------------------------------------------------------------------
    def _run_fixed(self, t_stop):
        dt = self.state.dt
        # last step is shortened so the final sample lands on t_stop
        n_steps = int(np.ceil(t_stop / dt - 1e-9))
        solvers = [CableSolver(self.state.method) for _ in self.cells]
        pps = self.point_processes()
        comps = self.compartments()
        detectors = list(self.detectors.values())
        record_currents = self.recorders.needs_currents

        for k in range(n_steps):
            t = k * dt
            last = k == n_steps - 1
            h = t_stop - t if last else dt
            for pp in pps:
                pp.begin_step(t, h)
            v_new = [solver.step(cell, t, h) for solver, cell in zip(solvers, self.cells)]
            v_prev = [det.source.v for det in detectors]
            for cell, vs in zip(self.cells, v_new):
                for comp, v in zip(cell.compartments, vs):
                    comp.v = v
            for comp in comps:
                comp.advance_states(h)
            for pp in pps:
                pp.advance(t, h)

            t_new = t_stop if last else (k + 1) * dt
            self.state.t = t_new
            self.state.step = k + 1
            self._check(t_new)

            for det, v0 in zip(detectors, v_prev):
                tc = det.check(t, v0, t_new, det.source.v)
                if tc is not None:
                    det.fire(tc, self.queue)
            self._deliver(t_new)

            if record_currents:
                self._update_currents(t_new)
            self.recorders.sample(t_new)

    # ------------------------------------------------------------------
    # Adaptive
    # ------------------------------------------------------------------
    def _layout(self):
        self._v_slots = self.compartments()
        self._mech_slots = [(comp, mech) for comp in self._v_slots
                            for mech in comp.ordered_mechanisms() if mech.gates]
        self._pp_slots = [pp for pp in self.point_processes() if pp.states_names]

    def _pack(self):
        y = [comp.v for comp in self._v_slots]
        for _, mech in self._mech_slots:
            y.extend(mech.states[g] for g in mech.gates)
        for pp in self._pp_slots:
            y.extend(pp.states[s] for s in pp.states_names)
        return np.array(y, dtype=float)

    def _unpack(self, y):
        k = 0
        for comp in self._v_slots:
            comp.v = y[k]
            k += 1
        for _, mech in self._mech_slots:
            for g in mech.gates:
                mech.states[g] = y[k]
                k += 1
        for pp in self._pp_slots:
            for s in pp.states_names:
                pp.states[s] = y[k]
                k += 1

    def _rhs(self, t, y):
        self._unpack(y)
        dy = []
        for cell in self.cells:
            i_mem = [comp.update_currents(t) for comp in cell.compartments]
            v = [comp.v for comp in cell.compartments]
            dy.extend(voltage_derivatives(cell, v, i_mem))
        for comp, mech in self._mech_slots:
            dy.extend(mech.derivatives(comp.v, comp))
        for pp in self._pp_slots:
            dy.extend(pp.derivatives(t))
        return np.array(dy, dtype=float)

    def _next_breakpoint(self, t, t_stop):
        candidates = [t_stop]
        for pp in self.point_processes():
            candidates.extend(pp.breakpoints(t_stop))
        nxt = self.queue.next_time()
        if nxt is not None:
            candidates.append(nxt)
        later = [c for c in candidates if t + EPS_T < c <= t_stop]
        return min(later) if later else t_stop

    def _detector_events(self):
        events = []
        index = {id(comp): k for k, comp in enumerate(self._v_slots)}
        for det in self.detectors.values():
            k = index[id(det.source)]

            def crossing(t, y, k=k, thr=det.threshold):
                return y[k] - thr
            crossing.terminal = True
            crossing.direction = 1 if det.armed else -1
            events.append(crossing)
        return events

    def _run_adaptive(self, t_stop):
        self._layout()
        detectors = list(self.detectors.values())
        t = 0.0
        self._deliver(t, inclusive=True)
        while t < t_stop - EPS_T:
            t_next = self._next_breakpoint(t, t_stop)
            events = self._detector_events()
            sol = solve_ivp(self._rhs, (t, t_next), self._pack(),
                            method=self.state.adaptive_method,
                            rtol=self.state.rtol, atol=self.state.atol,
                            max_step=self.state.max_step,
                            events=events or None)
            if sol.status == -1:
                raise SimulationDivergenceError(
                    f"adaptive solver failed at t={t:.4f} ms (step {self.state.step}): "
                    f"{sol.message}", step=self.state.step, t=t)

            for k in range(1, len(sol.t)):
                self._unpack(sol.y[:, k])
                self.state.step += 1
                self.state.t = sol.t[k]
                self._check(sol.t[k])
                self._update_currents(sol.t[k])
                self.recorders.sample(sol.t[k])

            t = float(sol.t[-1])
            self._unpack(sol.y[:, -1])
            if sol.status == 1:
                for det, hits in zip(detectors, sol.t_events):
                    if len(hits) == 0:
                        continue
                    if det.armed:
                        det.armed = False
                        det.fire(t, self.queue)
                    else:
                        det.armed = True
            self._deliver(t + EPS_T, inclusive=True)

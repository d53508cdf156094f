"""
Tests for the integration driver, the step policy and the holding-current solver.
"""
import numpy as np
import pytest

from analysis.traces import drift_rate, max_abs_difference
from models import build_cell
from models.cell import Cell
from simulation.driver import Simulation
from simulation.errors import ConfigurationError, ProtocolError, SimulationDivergenceError
from simulation.events import Connection, EventQueue, SpikeDetector
from simulation.holding import HoldingCurrentSolver, compute_holding_current
from simulation.state import SimulationState, select_step_policy
from stimulus import CurrentClamp
from synapses import AMPASynapse


def passive_tc():
    return build_cell('TC', active=False)


def single_compartment(g=0.05, e=-70.0):
    cell = Cell('single')
    soma = cell.add_compartment('soma', 'soma', 20.0, 20.0, cm=1.0)
    soma.insert('pas', g=g, e=e)
    return cell


class TestStepPolicy:
    """auto -> fixed with noise or hh2, adaptive otherwise; explicit adaptive is checked."""

    @pytest.mark.parametrize('noise, fast, expected', [
        (False, False, 'adaptive'),
        (True, False, 'fixed'),
        (False, True, 'fixed'),
        (True, True, 'fixed'),
    ])
    def test_auto(self, noise, fast, expected):
        assert select_step_policy('auto', noise, fast) == expected

    @pytest.mark.parametrize('noise, fast', [(True, False), (False, True), (True, True)])
    def test_explicit_fixed_always_honoured(self, noise, fast):
        assert select_step_policy('fixed', noise, fast) == 'fixed'

    @pytest.mark.parametrize('noise, fast', [(True, False), (False, True)])
    def test_adaptive_rejected(self, noise, fast):
        with pytest.raises(ProtocolError):
            select_step_policy('adaptive', noise, fast)

    def test_unknown_settings(self):
        with pytest.raises(ProtocolError):
            SimulationState(policy='rk4')
        with pytest.raises(ProtocolError):
            SimulationState(method='euler')
        with pytest.raises(ProtocolError):
            SimulationState(dt=0.0)

    def test_adaptive_with_hh2_cell(self):
        cell = build_cell('TC', fast_spiking=True)
        sim = Simulation([cell], SimulationState(policy='adaptive'))
        with pytest.raises(ProtocolError):
            sim.run(10.0)

    def test_adaptive_with_noise(self):
        cell = passive_tc()
        CurrentClamp(cell.soma, noise_std=0.01, seed=1)
        sim = Simulation([cell], SimulationState(policy='adaptive'))
        with pytest.raises(ProtocolError):
            sim.run(10.0)

    def test_recording_active_state_with_noise(self):
        cell = build_cell('TC')
        CurrentClamp(cell.soma, noise_std=0.01, seed=1)
        sim = Simulation([cell], SimulationState(policy='fixed'))
        sim.record(cell.soma, 'it.h')
        with pytest.raises(ProtocolError):
            sim.run(10.0)


class TestFixedStep:

    def test_zero_duration_returns_initial_sample(self):
        cell = passive_tc()
        sim = Simulation([cell], SimulationState(policy='fixed'))
        sim.record(cell.soma, 'v')
        sim.initialize(-70.0)
        result = sim.run(0.0)
        assert len(result['t']) == 1
        assert result['soma.v'][0] == -70.0

    def test_sample_count(self):
        cell = passive_tc()
        sim = Simulation([cell], SimulationState(policy='fixed', dt=0.1))
        sim.record(cell.soma, 'v')
        sim.initialize(-70.0)
        result = sim.run(5.0)
        assert len(result.t) == 51
        assert len(result['soma.v']) == 51
        assert result.t[-1] == pytest.approx(5.0)
        assert result.steps == 50

    def test_run_reaches_stop_time_off_grid(self):
        cell = single_compartment()
        sim = Simulation([cell], SimulationState(policy='fixed', dt=0.1))
        sim.record(cell.soma, 'v')
        sim.initialize(-60.0)
        result = sim.run(0.25)
        np.testing.assert_allclose(result.t, [0.0, 0.1, 0.2, 0.25])
        assert result.steps == 3
        assert result.t[-1] == 0.25
        # backward Euler on a single leak compartment, last step 0.05 ms
        tau = 1.0 / 0.05
        v = -60.0
        for h in (0.1, 0.1, 0.05):
            v = (v + h / tau * -70.0) / (1.0 + h / tau)
        assert result['soma.v'][-1] == pytest.approx(v, rel=1e-9)

    def test_trace_order_and_duplicate_labels(self):
        cell = passive_tc()
        sim = Simulation([cell])
        for comp in cell:
            sim.record(comp, 'v')
        with pytest.raises(ConfigurationError):
            sim.record(cell.soma, 'v')
        sim.initialize(-70.0)
        result = sim.run(1.0)
        assert list(result) == ['t', 'soma.v', 'dend1.v', 'dend2.v']

    def test_foreign_target(self):
        sim = Simulation([passive_tc()])
        with pytest.raises(ConfigurationError):
            sim.record(passive_tc().soma, 'v')

    @pytest.mark.parametrize('policy', ['fixed', 'adaptive'])
    def test_passive_rest_does_not_drift(self, policy):
        cell = passive_tc()
        sim = Simulation([cell], SimulationState(policy=policy))
        sim.record(cell.soma, 'v')
        sim.initialize(-76.5)
        result = sim.run(200.0)
        assert abs(drift_rate(result.t, result['soma.v'])) < 1e-6

    def test_divergence_detected_on_first_step(self):
        cell = passive_tc()
        CurrentClamp(cell.soma, amp=1e6)
        sim = Simulation([cell], SimulationState(policy='fixed'))
        sim.initialize(-70.0)
        with pytest.raises(SimulationDivergenceError) as err:
            sim.run(10.0)
        assert err.value.step == 1
        assert err.value.t == pytest.approx(0.1)

    def test_rerun_is_reproducible(self):
        cell = build_cell('TC')
        CurrentClamp(cell.soma, amp=-0.05, noise_std=0.01, seed=3)
        sim = Simulation([cell], SimulationState(policy='fixed'))
        sim.record(cell.soma, 'v')
        sim.initialize(-70.0)
        first = sim.run(20.0)['soma.v']
        sim.initialize(-70.0)
        second = sim.run(20.0)['soma.v']
        np.testing.assert_array_equal(first, second)

    @pytest.mark.parametrize('method', ['crank_nicholson', 'crank_nicholson_corrected'])
    def test_methods_agree(self, method):
        traces = {}
        for m in ('backward_euler', method):
            cell = passive_tc()
            CurrentClamp(cell.soma, delay=5.0, dur=10.0, amp=-0.05)
            sim = Simulation([cell], SimulationState(policy='fixed', method=m, dt=0.025))
            sim.record(cell.soma, 'v')
            sim.initialize(-76.5)
            traces[m] = sim.run(40.0)['soma.v']
        assert np.max(np.abs(traces['backward_euler'] - traces[method])) < 0.2


class TestAdaptive:

    def test_matches_fixed_step(self):
        runs = {}
        for policy in ('fixed', 'adaptive'):
            cell = passive_tc()
            CurrentClamp(cell.soma, delay=20.0, dur=10.0, amp=-0.05)
            sim = Simulation([cell], SimulationState(policy=policy))
            sim.record(cell.soma, 'v')
            sim.initialize(-76.5)
            runs[policy] = sim.run(80.0)
        assert runs['adaptive'].policy == 'adaptive'
        assert runs['adaptive'].method == 'BDF'
        diff = max_abs_difference(runs['fixed'].t, runs['fixed']['soma.v'],
                                  runs['adaptive'].t, runs['adaptive']['soma.v'])
        assert diff < 0.5

    def test_records_every_accepted_step(self):
        cell = passive_tc()
        sim = Simulation([cell], SimulationState(policy='adaptive'))
        sim.record(cell.soma, 'v')
        sim.initialize(-70.0)
        result = sim.run(50.0)
        assert result.t[0] == 0.0
        assert result.t[-1] == pytest.approx(50.0)
        assert np.all(np.diff(result.t) > 0)
        assert len(result.t) == result.steps + 1


class TestEvents:

    def test_queue_orders_by_time_then_insertion(self):
        q = EventQueue()
        q.push(2.0, 'b')
        q.push(1.0, 'a')
        q.push(2.0, 'c')
        assert [e[1] for e in q.pop_due(3.0)] == ['a', 'b', 'c']

    def test_pop_due_is_half_open(self):
        q = EventQueue()
        q.push(1.0, 'a')
        assert q.pop_due(1.0) == []
        assert len(q.pop_due(1.0, inclusive=True)) == 1

    def test_detector_interpolates_and_rearms(self):
        det = SpikeDetector(source=None, threshold=-20.0)
        det.reset(-70.0)
        assert det.check(0.0, -30.0, 1.0, -10.0) == pytest.approx(0.5)
        assert det.check(1.0, -10.0, 2.0, 0.0) is None
        assert det.check(2.0, 0.0, 3.0, -40.0) is None
        assert det.check(3.0, -40.0, 4.0, 0.0) == pytest.approx(3.5)

    def test_invalid_connection(self):
        with pytest.raises(ConfigurationError):
            Connection(source=None, target=None, weight=1.5)
        with pytest.raises(ConfigurationError):
            Connection(source=None, target=None, delay=-1.0)

    @pytest.mark.parametrize('policy', ['fixed', 'adaptive'])
    def test_scheduled_event_activates_synapse(self, policy):
        cell = passive_tc()
        syn = AMPASynapse(cell.location('dend1'))
        sim = Simulation([cell], SimulationState(policy=policy))
        sim.add_event(syn, 5.0)
        sim.record(syn, 'r')
        sim.record(cell.location('dend1'), 'v')
        sim.initialize(-76.5)
        result = sim.run(20.0)
        before = result['t'] < 5.0
        assert np.all(result['ampa.r'][before] == 0.0)
        assert result['ampa.r'].max() > 0.1
        assert result['dend1.v'].max() > -76.0
        assert syn.release_times == [pytest.approx(5.0)]

    def test_connection_delay(self):
        source = build_cell('TC', fast_spiking=True, name='pre')
        target = build_cell('RE', name='post')
        syn = AMPASynapse(target.soma)
        CurrentClamp(source.soma, delay=10.0, dur=10.0, amp=2.0, name='kick')
        sim = Simulation([source, target], SimulationState(policy='fixed', dt=0.025))
        det = sim.connect(Connection(source.soma, syn, threshold=-20.0, delay=3.0))
        sim.initialize(-70.0)
        sim.run(40.0)
        assert len(det.spikes) >= 1
        assert 10.0 < det.spikes[0] < 20.0
        assert syn.release_times[0] == pytest.approx(det.spikes[0] + 3.0)
        for t_release, t_spike in zip(syn.release_times, det.spikes):
            assert t_release == pytest.approx(t_spike + 3.0)


class TestHoldingCurrent:

    def test_matches_passive_analytic_value(self):
        cell = single_compartment(g=0.05, e=-70.0)
        i_hold = compute_holding_current(cell, v_hold=-60.0, settle=200.0)
        expected = 0.05 * 10.0 * cell.soma.area * 1e-5
        assert i_hold == pytest.approx(expected, rel=1e-3)

    def test_idempotent(self):
        cell = passive_tc()
        solver = HoldingCurrentSolver(v_hold=-65.0, settle=200.0)
        assert solver.solve(cell) == pytest.approx(solver.solve(cell), rel=1e-9)

    def test_other_point_processes_restored(self):
        cell = passive_tc()
        clamp = CurrentClamp(cell.soma, amp=0.3)
        compute_holding_current(cell, v_hold=-65.0, settle=100.0)
        assert cell.soma.point_processes == [clamp]

    def test_clamp_state_does_not_leak(self):
        cell = build_cell('TC')
        compute_holding_current(cell, v_hold=-50.0, settle=200.0)
        assert cell.soma.point_processes == []
        sim = Simulation([cell])
        sim.initialize(-70.0)
        it = cell.soma.mechanism('it')
        assert it.states['h'] == pytest.approx(it.steady_state(-70.0, cell.soma)['h'])
        assert cell.soma.v == -70.0

    def test_holding_current_holds(self):
        cell = passive_tc()
        i_hold = compute_holding_current(cell, v_hold=-65.0, settle=500.0)
        CurrentClamp(cell.soma, amp=i_hold)
        sim = Simulation([cell], SimulationState(policy='fixed'))
        sim.record(cell.soma, 'v')
        sim.initialize(-65.0)
        result = sim.run(500.0)
        assert result['soma.v'][-1] == pytest.approx(-65.0, abs=0.05)

"""
Tests for the synaptic point processes.
"""
import numpy as np
import pytest

from models import build_cell
from models.compartment import Compartment
from simulation.errors import ConfigurationError
from synapses import (AMPASynapse, GABAASynapse, GABABSynapse, KineticSynapse,
                      ipsc_kernel, kernel_peak, rise_time_constant)


@pytest.fixture
def comp():
    return Compartment('soma', 'soma', L=20.0, diam=20.0)


class TestIPSCKernel:

    def test_zero_at_and_before_trigger(self):
        assert ipsc_kernel(0.0, 0.4, 50.0, 200.0, 0.5) == 0.0
        assert ipsc_kernel(-5.0, 0.4, 50.0, 200.0, 0.5) == 0.0

    @pytest.mark.parametrize('trise', [0.5, 2.0, 10.0])
    def test_peaks_at_rise_time(self, trise):
        t_peak, peak, tau_rise = kernel_peak(trise, 50.0, 200.0, 0.5)
        assert t_peak <= trise
        assert tau_rise < trise
        grid = np.linspace(0.0, 1000.0, 200001)
        k = ipsc_kernel(grid, tau_rise, 50.0, 200.0, 0.5)
        assert grid[np.argmax(k)] == pytest.approx(trise, abs=0.01)
        assert k.max() <= peak * (1.0 + 1e-9)

    def test_rises_monotonically_to_peak(self):
        t_peak, _, tau_rise = kernel_peak(2.0, 50.0, 200.0, 0.5)
        tau = np.linspace(0.0, 0.99 * t_peak, 200)
        assert np.all(np.diff(ipsc_kernel(tau, tau_rise, 50.0, 200.0, 0.5)) > 0)

    def test_rise_too_slow_for_decay(self):
        with pytest.raises(ConfigurationError):
            rise_time_constant(100.0, 10.0, 20.0, 0.5)

    def test_late_decay_is_biexponential(self):
        _, _, tau_rise = kernel_peak(2.0, 50.0, 200.0, 0.5)
        tau = np.array([100.0, 300.0, 600.0])
        expected = 0.5 * np.exp(-tau / 50.0) + 0.5 * np.exp(-tau / 200.0)
        np.testing.assert_allclose(ipsc_kernel(tau, tau_rise, 50.0, 200.0, 0.5), expected,
                                   rtol=1e-12)

    def test_single_exponential_limits(self):
        tau = np.array([400.0])
        np.testing.assert_allclose(ipsc_kernel(tau, 1.0, 50.0, 200.0, 0.0),
                                   np.exp(-2.0), rtol=1e-12)
        np.testing.assert_allclose(ipsc_kernel(tau, 1.0, 50.0, 200.0, 1.0),
                                   np.exp(-8.0), rtol=1e-12)


class TestGABABSynapse:

    def test_peak_equals_amplitude_at_rise_time(self, comp):
        syn = GABABSynapse(comp, amp=1.0, trise=2.0, w=0.5)
        assert syn.t_peak <= syn.trise
        syn.activate(100.0)
        assert syn.conductance(102.0) == pytest.approx(1.0, rel=1e-9)
        grid = 100.0 + np.linspace(0.0, 1000.0, 5001)
        assert max(syn.conductance(t) for t in grid) <= 1.0 + 1e-9

    def test_invalid_rise_time_leaves_compartment_clean(self, comp):
        with pytest.raises(ConfigurationError):
            GABABSynapse(comp, trise=100.0, tfall_fast=10.0, tfall_slow=20.0)
        assert comp.point_processes == []

    def test_events_superpose(self, comp):
        syn = GABABSynapse(comp, amp=0.001)
        syn.activate(0.0)
        one = syn.conductance(80.0)
        syn.activate(0.0, weight=0.5)
        assert syn.conductance(80.0) == pytest.approx(1.5 * one)

    def test_current_sign(self, comp):
        syn = GABABSynapse(comp, amp=0.001, erev=-100.0)
        syn.activate(0.0)
        assert syn.membrane_current(-70.0, 50.0) > 0.0
        assert syn.g > 0.0

    def test_reset_clears_events(self, comp):
        syn = GABABSynapse(comp)
        syn.activate(0.0)
        syn.reset()
        assert syn.conductance(50.0) == 0.0

    @pytest.mark.parametrize('kwargs', [{'trise': 0.0}, {'w': 1.5}, {'amp': -1.0}])
    def test_invalid_parameters(self, comp, kwargs):
        with pytest.raises(ConfigurationError):
            GABABSynapse(comp, **kwargs)


class TestKineticSynapse:

    def test_release_opens_channel_exactly(self, comp):
        syn = KineticSynapse(comp, gmax=0.01, alpha=1.1, beta=0.19)
        syn.activate(0.0)
        syn.advance(0.0, 0.5)
        a = 1.1
        r_inf = a / (a + 0.19)
        expected = r_inf * (1.0 - np.exp(-0.5 * (a + 0.19)))
        assert syn.states['r'] == pytest.approx(expected, rel=1e-12)

    def test_decay_after_pulse(self, comp):
        syn = KineticSynapse(comp, pulse_ms=1.0)
        syn.states['r'] = 0.4
        syn.advance(5.0, 2.0)
        assert syn.states['r'] == pytest.approx(0.4 * np.exp(-2.0 * 0.19))

    def test_weight_scales_transmitter(self, comp):
        full = KineticSynapse(comp)
        half = KineticSynapse(comp)
        full.activate(0.0, weight=1.0)
        half.activate(0.0, weight=0.5)
        assert half.derivatives(0.0)[0] == pytest.approx(0.5 * full.derivatives(0.0)[0])

    def test_breakpoint_at_pulse_end(self, comp):
        syn = KineticSynapse(comp, pulse_ms=1.0)
        assert syn.breakpoints(100.0) == []
        syn.activate(10.0)
        assert syn.breakpoints(100.0) == [11.0]

    def test_ampa_is_excitatory(self, comp):
        syn = AMPASynapse(comp)
        syn.states['r'] = 0.5
        assert syn.membrane_current(-70.0, 0.0) < 0.0

    def test_gabaa_reverses_at_ecl(self):
        cell = build_cell('TC')
        dend = cell.location('dend1')
        cell.initialize(-70.0)
        syn = GABAASynapse(dend)
        assert syn.erev == pytest.approx(dend.ecl)
        syn.states['r'] = 1.0
        assert syn.membrane_current(dend.ecl, 0.0) == pytest.approx(0.0, abs=1e-12)

    def test_gabaa_fixed_reversal(self, comp):
        assert GABAASynapse(comp, erev=-75.0).erev == -75.0

    def test_gabaa_current_loads_chloride(self):
        cell = build_cell('TC')
        dend = cell.location('dend1')
        cell.initialize(-60.0)
        syn = GABAASynapse(dend)
        syn.states['r'] = 1.0
        dend.update_currents(0.0)
        assert dend.icl > 0.0
        cli0 = dend.cli
        dend.advance_states(10.0)
        assert dend.cli > cli0

    def test_location_must_be_compartment(self):
        with pytest.raises(ConfigurationError):
            AMPASynapse('soma')

    def test_attach_and_detach(self, comp):
        syn = AMPASynapse(comp)
        assert syn.attached
        syn.detach()
        assert not syn.attached
        assert syn not in comp.point_processes

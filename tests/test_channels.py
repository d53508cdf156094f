"""
Tests for the ion channel kinetics models.
"""
import numpy as np
import pytest

from channels import MECHANISMS, create_mechanism
from channels.base import ghk, nernst
from channels.calcium import tauh_piecewise, tauh_reticular, tauh_smooth
from models.compartment import Compartment
from simulation.errors import ConfigurationError


@pytest.fixture
def comp():
    return Compartment('soma', 'soma', L=20.0, diam=20.0)


GATED = ['it', 'ih', 'ia', 'ikir', 'inap', 'hh2', 'iahp']


class TestExactExponentialUpdate:
    """One step at fixed V must match x_inf + (x0 - x_inf) exp(-h / tau)."""

    @pytest.mark.parametrize('kind', GATED)
    def test_closed_form(self, comp, kind):
        mech = comp.insert(kind)
        v = -62.0
        for gate in mech.gates:
            mech.states[gate] = 0.3
        inf, tau = mech.rates(v, comp)
        h = 0.1
        mech.advance(v, h, comp)
        for gate, x_inf, tau_x in zip(mech.gates, inf, tau):
            expected = x_inf + (0.3 - x_inf) * np.exp(-h / tau_x)
            assert mech.states[gate] == pytest.approx(expected, rel=1e-12, abs=1e-15)

    def test_long_step_reaches_steady_state(self, comp):
        mech = comp.insert('it')
        mech.states.update(m=0.9, h=0.0)
        mech.advance(-75.0, 1e6, comp)
        ss = mech.steady_state(-75.0, comp)
        assert mech.states['m'] == pytest.approx(ss['m'])
        assert mech.states['h'] == pytest.approx(ss['h'])

    @pytest.mark.parametrize('kind', GATED)
    def test_gates_stay_in_unit_interval(self, comp, kind):
        mech = comp.insert(kind)
        mech.initialize(-70.0, comp)
        for v in np.linspace(-120.0, 60.0, 37):
            mech.advance(v, 0.1, comp)
            for x in mech.states.values():
                assert 0.0 <= x <= 1.0

    @pytest.mark.parametrize('kind', GATED)
    def test_derivatives_vanish_at_steady_state(self, comp, kind):
        mech = comp.insert(kind)
        mech.initialize(-65.0, comp)
        np.testing.assert_allclose(mech.derivatives(-65.0, comp), 0.0, atol=1e-12)


class TestTCalcium:

    def test_tauh_modes_are_selectable(self, comp):
        mech = comp.insert('it')
        taus = []
        for mode in (1, 2, 3):
            mech.set_params(tauh_mode=mode)
            taus.append(mech.rates(-70.0, comp)[1][1])
        assert len(set(np.round(taus, 9))) == 3

    def test_tauh_mode_functions(self):
        assert tauh_piecewise(-90.0) == pytest.approx(np.exp(377.0 / 66.6))
        assert tauh_piecewise(-60.0) == pytest.approx(28.0 + np.exp(38.0 / 10.5))
        assert tauh_smooth(-60.0) > 30.8
        assert tauh_reticular(-60.0) > 85.0

    def test_invalid_tauh_mode(self, comp):
        with pytest.raises(ConfigurationError) as err:
            comp.insert('it', tauh_mode=4)
        assert err.value.parameter == 'tauh_mode'

    def test_shift_moves_activation_curve(self, comp):
        plain = create_mechanism('it')
        shifted = create_mechanism('it', shift_m=5.0)
        m_plain = plain.rates(-55.0, comp)[0][0]
        m_shifted = shifted.rates(-60.0, comp)[0][0]
        assert m_shifted == pytest.approx(m_plain)

    def test_slope_factor_flattens_curve(self, comp):
        steep = create_mechanism('it')
        flat = create_mechanism('it', slope_m=2.0)
        # above the half-activation point a flatter curve is lower
        assert flat.rates(-40.0, comp)[0][0] < steep.rates(-40.0, comp)[0][0]

    def test_current_is_inward_below_reversal(self, comp):
        mech = comp.insert('it')
        mech.states.update(m=0.5, h=0.5)
        assert mech.current(-50.0, comp) < 0.0


class TestConcentrations:

    def test_cad_rests_at_cainf_without_influx(self, comp):
        cad = comp.insert('cad', cainf=3e-4)
        comp.ica = 0.0
        cad.initialize(-70.0, comp)
        assert comp.cai == pytest.approx(3e-4)

    def test_inward_calcium_raises_cai(self, comp):
        cad = comp.insert('cad')
        comp.ica = -2.0
        inf, tau = cad.rates(-70.0, comp)
        assert inf[0] > cad.cainf
        assert tau[0] == cad.taur

    def test_outward_calcium_current_is_ignored(self, comp):
        cad = comp.insert('cad')
        comp.ica = 5.0
        assert cad.rates(-70.0, comp)[0][0] == pytest.approx(cad.cainf)

    def test_chloride_loads_with_outward_chloride_current(self, comp):
        cl = comp.insert('cldyn', cli0=5.0)
        comp.icl = 1.0
        inf, _ = cl.rates(-70.0, comp)
        assert inf[0] > 5.0

    def test_ecl_follows_cli(self, comp):
        comp.insert('cldyn', cli0=5.0)
        comp.mechanism('cldyn').initialize(-70.0, comp)
        e_rest = comp.ecl
        comp.mechanism('cldyn').states['cli'] = 20.0
        assert comp.ecl > e_rest

    def test_nernst_chloride(self):
        e = nernst(5.0, 130.0, -1, 34.0)
        assert -90.0 < e < -80.0

    def test_ghk_zero_voltage_is_continuous(self):
        assert ghk(0.0, 1e-4, 2.0, 2, 34.0) == pytest.approx(ghk(1e-5, 1e-4, 2.0, 2, 34.0),
                                                            rel=1e-3)

    def test_iahp_activates_with_calcium(self, comp):
        comp.insert('cad')
        ahp = comp.insert('iahp')
        low = ahp.rates(-60.0, comp)[0][0]
        comp.mechanism('cad').states['cai'] = 0.05
        high = ahp.rates(-60.0, comp)[0][0]
        assert high > low


class TestMechanismParameters:

    def test_registry_has_every_kind(self):
        assert set(MECHANISMS) == {'pas', 'it', 'cad', 'ih', 'iahp', 'ia', 'ikir',
                                   'inap', 'hh2', 'cldyn'}

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            create_mechanism('ixyz')

    def test_unknown_parameter(self):
        with pytest.raises(ConfigurationError) as err:
            create_mechanism('ih', gbar=1.0)
        assert err.value.parameter == 'gbar'

    def test_negative_density(self):
        with pytest.raises(ConfigurationError):
            create_mechanism('pas', g=-1.0)

    def test_hh2_is_fast_spiking(self):
        assert create_mechanism('hh2').fast_spiking
        assert not create_mechanism('it').fast_spiking

    def test_temperature_speeds_kinetics(self, comp):
        cold = create_mechanism('ih', temperature=24.0)
        warm = create_mechanism('ih', temperature=34.0)
        assert warm.rates(-80.0, comp)[1][0] == pytest.approx(cold.rates(-80.0, comp)[1][0] / 3.0)

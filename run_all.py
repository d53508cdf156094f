"""
Run the reference scenarios.

Usage:
  python run_all.py                  # TC pulse protocol, 2 s
  python run_all.py --full           # TC pulse protocol, 10 s as published
  python run_all.py --scenario re    # RE cell with an IPSC
  python run_all.py --scenario methods   # fixed vs adaptive on a passive cell
  python run_all.py --scenario network   # small TC-RE ring network
"""

import argparse
import logging
import time

import numpy as np

from analysis.spike_analysis import detect_spikes, spike_latency
from analysis.traces import drift_rate, max_abs_difference, pulse_response
from circuit.protocol import ProtocolSpec, run_protocol
from models.builder import CellBuildSpec
from population.thalamic_network import ThalamicNetwork
from stimulus.clamps import CurrentClamp


def run_tc_pulse(t_stop, policy):
    print("=" * 60)
    print(f"TC CELL, -0.05 nA / 10 ms PULSE, t_stop={t_stop} ms, policy={policy}")
    print("=" * 60)
    protocol = ProtocolSpec(t_stop=t_stop, policy=policy)
    result = run_protocol(CellBuildSpec(kind='TC'), protocol)
    t, v = result['t'], result['soma.v']
    base, peak, delta = pulse_response(t, v, protocol.pulse_delay, protocol.pulse_dur)
    print(f"  holding current: {result.holding_current:.4f} nA")
    print(f"  samples: {len(t)} ({result.policy}, {result.method})")
    print(f"  baseline {base:.3f} mV, pulse extreme {peak:.3f} mV, deflection {delta:.3f} mV")
    return result


def run_re_ipsc(t_stop):
    print("=" * 60)
    print("RE CELL WITH GABA_B-SHAPED IPSC")
    print("=" * 60)
    protocol = ProtocolSpec(t_stop=t_stop, pulse_amp=0.0, ipsc_amp=0.002,
                            ipsc_onset=200.0, settle=1000.0)
    result = run_protocol(CellBuildSpec(kind='RE'), protocol)
    v = result['soma.v']
    print(f"  holding current: {result.holding_current:.4f} nA")
    print(f"  peak IPSC conductance: {result['ipsc.g'].max():.5f} uS")
    print(f"  soma V range: {v.min():.2f} .. {v.max():.2f} mV")
    return result


def run_method_comparison(t_stop):
    print("=" * 60)
    print("FIXED vs ADAPTIVE, PASSIVE TC CELL")
    print("=" * 60)
    build = CellBuildSpec(kind='TC', active=False)
    runs = {}
    for policy in ('fixed', 'adaptive'):
        runs[policy] = run_protocol(build, ProtocolSpec(t_stop=t_stop, policy=policy,
                                                        settle=500.0))
        print(f"  {policy}: {runs[policy].steps} steps, "
              f"drift {drift_rate(runs[policy]['t'], runs[policy]['soma.v'], 150.0):.2e} mV/ms")
    diff = max_abs_difference(runs['fixed']['t'], runs['fixed']['soma.v'],
                              runs['adaptive']['t'], runs['adaptive']['soma.v'])
    print(f"  max |V_fixed - V_adaptive| = {diff:.4f} mV")
    return runs


def run_network(t_stop):
    print("=" * 60)
    print("TC-RE RING NETWORK")
    print("=" * 60)
    net = ThalamicNetwork(n_tc=4, n_re=4)
    sim = net.simulation()
    kick = CurrentClamp(net.tc[0].soma, delay=20.0, dur=5.0, amp=1.0, name='kick')
    sim.initialize(-70.0)
    result = sim.run(t_stop)
    kick.detach()
    for cell in net.cells:
        spikes = detect_spikes(result[f"{cell.name}.soma.v"], result['t'])
        print(f"  {cell.name}: {len(spikes)} spikes")
    tc0 = detect_spikes(result['TC0.soma.v'], result['t'])
    re0 = detect_spikes(result['RE0.soma.v'], result['t'])
    latency, _ = spike_latency(tc0, re0)
    print(f"  TC0 -> RE0 latency: {latency:.2f} ms")
    return result


def main():
    parser = argparse.ArgumentParser(description='Thalamic compartmental model scenarios')
    parser.add_argument('--scenario', choices=['tc', 're', 'methods', 'network'],
                        default='tc')
    parser.add_argument('--full', action='store_true',
                        help='Run the full 10 s TC protocol')
    parser.add_argument('--policy', choices=['auto', 'fixed', 'adaptive'], default='auto')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')
    np.set_printoptions(precision=4)
    start = time.time()

    if args.scenario == 'tc':
        run_tc_pulse(10000.0 if args.full else 2000.0, args.policy)
    elif args.scenario == 're':
        run_re_ipsc(1500.0)
    elif args.scenario == 'methods':
        run_method_comparison(300.0)
    else:
        run_network(200.0)

    print(f"\nDone in {time.time() - start:.1f} s")


if __name__ == '__main__':
    main()

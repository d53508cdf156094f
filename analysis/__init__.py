from analysis.spike_analysis import detect_spikes, firing_rate, spike_latency
from analysis.traces import drift_rate, max_abs_difference, pulse_response, resample_to_grid

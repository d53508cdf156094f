from circuit.protocol import ProtocolSpec, run_protocol, trace_specs

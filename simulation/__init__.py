"""
Simulation engine: clock and step policy, cable solver, integration
driver, recorders, synaptic events and the holding-current sub-run.

Import the pieces from their modules (simulation.driver,
simulation.holding, ...); this package module stays import-free so that
the channel and model layers can use simulation.errors without a cycle.
"""

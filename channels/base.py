"""
Common machinery for membrane mechanisms.

Every mechanism is a small state machine living on one compartment:

  rates(v, comp)      -> (x_inf, tau) tuples aligned with `gates`
  advance(v, dt, comp) exact exponential update of every gate
  derivatives(v, comp) dx/dt, used by the adaptive integrator
  current(v, comp)    -> current density (uA/cm2, outward positive)

Concentration mechanisms (cad, cldyn) use the same interface: their
single state is linear in itself, so x_inf and tau describe it exactly.

Units follow the conductance-based convention: conductance densities in
mS/cm2, voltages in mV, time in ms, so g * (V - E) is in uA/cm2.
Permeabilities are in cm/s and concentrations in mM.
"""

import numpy as np

from simulation.errors import ConfigurationError

FARADAY = 96485.309   # C/mol
R_GAS = 8.3145        # J/(mol K)


def vtrap(x, y):
    """x / (exp(x/y) - 1), continuous through x = 0."""
    if abs(x / y) < 1e-6:
        return y * (1.0 - x / y / 2.0)
    return x / (np.exp(x / y) - 1.0)


def q10_factor(q10, temperature, reference):
    return q10 ** ((temperature - reference) / 10.0)


def ghk(v, ci, co, z, temperature):
    """Goldman-Hodgkin-Katz driving term.

    Multiplied by a permeability in cm/s this gives a current density in
    uA/cm2 (positive = outward).
    """
    u = z * FARADAY * v * 1e-3 / (R_GAS * (temperature + 273.15))
    if abs(u) < 1e-6:
        efun = 1.0 + u / 2.0
    else:
        efun = u / (1.0 - np.exp(-u))
    return z * FARADAY * efun * (ci - co * np.exp(-u))


def nernst(ci, co, z, temperature):
    """Equilibrium potential in mV."""
    return 1e3 * R_GAS * (temperature + 273.15) / (z * FARADAY) * np.log(co / ci)


class Mechanism:
    """Base class for density mechanisms inserted into a compartment."""

    kind = None
    # ions whose reversal potential this mechanism reads from the compartment
    ions = ()
    gates = ()
    defaults = {}
    # parameters multiplied by the dendritic correction factor
    density_params = ()
    fast_spiking = False
    # concentration mechanisms advance before gating mechanisms
    concentration = False

    def __init__(self, temperature=34.0, **params):
        self.temperature = temperature
        for name, value in self.defaults.items():
            setattr(self, name, value)
        self.set_params(**params)
        self.states = {g: 0.0 for g in self.gates}
        # last evaluated current density, kept for recording
        self.i = 0.0

    def __repr__(self):
        return f"{type(self).__name__}({self.params()})"

    def params(self):
        return {name: getattr(self, name) for name in self.defaults}

    def set_params(self, **params):
        unknown = sorted(set(params) - set(self.defaults))
        if unknown:
            raise ConfigurationError(
                f"{self.kind}: unknown parameter(s) {', '.join(unknown)}",
                parameter=unknown[0])
        for name, value in params.items():
            setattr(self, name, value)
        self._validate()

    def _validate(self):
        for name in self.density_params:
            if getattr(self, name) < 0:
                raise ConfigurationError(
                    f"{self.kind}.{name} must be >= 0, got {getattr(self, name)}",
                    parameter=name)

    # ------------------------------------------------------------------
    # Kinetics
    # ------------------------------------------------------------------
    def rates(self, v, comp):
        return (), ()

    def steady_state(self, v, comp):
        inf, _ = self.rates(v, comp)
        return dict(zip(self.gates, inf))

    def initialize(self, v, comp):
        self.states.update(self.steady_state(v, comp))

    def advance(self, v, dt, comp):
        """Exact solution of dx/dt = (x_inf - x) / tau over dt at fixed v."""
        inf, tau = self.rates(v, comp)
        for gate, x_inf, tau_x in zip(self.gates, inf, tau):
            x = self.states[gate]
            self.states[gate] = x_inf + (x - x_inf) * np.exp(-dt / tau_x)

    def derivatives(self, v, comp):
        inf, tau = self.rates(v, comp)
        return [(x_inf - self.states[g]) / tau_x
                for g, x_inf, tau_x in zip(self.gates, inf, tau)]

    def current(self, v, comp):
        return 0.0


def boltzmann(v, half, slope):
    return 1.0 / (1.0 + np.exp(-(v - half) / slope))

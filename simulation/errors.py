"""
Error taxonomy for building and running compartmental simulations.

  ConfigurationError       - bad geometry, unknown or uninserted mechanism,
                             adjustment incompatible with the build mode.
  ProtocolError            - run setup that cannot be honoured (adaptive
                             stepping with noise or fast spiking, recording
                             active state while noise is on).
  SimulationDivergenceError - non-finite state or voltage outside the
                             physiological envelope during a run.
"""


class SimulationError(Exception):
    """Base class for all simulator errors."""


class ConfigurationError(SimulationError, ValueError):
    """Raised at build / adjust time for an invalid cell configuration."""

    def __init__(self, message, parameter=None):
        super().__init__(message)
        self.parameter = parameter


class ProtocolError(SimulationError, ValueError):
    """Raised at run setup for an unsupported protocol combination."""


class SimulationDivergenceError(SimulationError, ArithmeticError):
    """Raised when the numerical solution leaves the plausible range."""

    def __init__(self, message, step=None, t=None):
        super().__init__(message)
        self.step = step
        self.t = t

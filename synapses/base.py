"""
Point processes: anything attached to a compartment that contributes a
current in nA (synapses, current and voltage clamps).

The solver sees `membrane_current(v, t)`, outward positive like a
channel current. `i` holds the last value in the process's own sign
convention (electrode current is positive when depolarising) for
recording.
"""

from models.compartment import Compartment
from simulation.errors import ConfigurationError


class PointProcess:
    ion = None
    states_names = ()
    electrode = False

    def __init__(self, location, x=0.5, name=None):
        if not isinstance(location, Compartment):
            raise ConfigurationError(
                f"{type(self).__name__} needs a compartment, got {location!r}",
                parameter='location')
        if not 0.0 <= x <= 1.0:
            raise ConfigurationError(f"position must be in [0, 1], got {x}",
                                     parameter='x')
        self.location = location
        self.x = x
        self.name = name or type(self).__name__.lower()
        self.i = 0.0
        self.states = {s: 0.0 for s in self.states_names}
        location.attach(self)

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r} @ {self.location.name})"

    @property
    def attached(self):
        return self in self.location.point_processes

    def detach(self):
        self.location.detach(self)

    def membrane_current(self, v, t):
        return 0.0

    def recorded_current(self, i):
        return -i if self.electrode else i

    # ------------------------------------------------------------------
    # Hooks used by the integration driver
    # ------------------------------------------------------------------
    def reset(self):
        """Return to the pre-run state; called by Simulation.initialize."""
        self.states = {s: 0.0 for s in self.states_names}
        self.i = 0.0

    def begin_step(self, t, dt):
        """Called once per fixed step before currents are evaluated."""

    def advance(self, t, dt):
        """Advance internal state over [t, t + dt) (fixed step)."""

    def derivatives(self, t):
        return []

    def breakpoints(self, t_stop):
        """Times in (0, t_stop] where the current is discontinuous."""
        return []

    def activate(self, t, weight=1.0):
        raise ConfigurationError(f"{self!r} does not accept events")

    @property
    def noisy(self):
        return False

"""
Electrode stimuli.

CurrentClamp injects `amp` nA during [delay, delay + dur). A zero delay
and infinite duration make a constant holding bias. With noise_std > 0
a Gaussian sample N(0, noise_std) is added to the amplitude once per
fixed step; the generator is reseeded on every reset so repeated runs
see the same noise.

VoltageClamp drives its compartment toward `vc` through a series
resistance rs (MOhm); the injected current is (vc - V) / rs nA.

Clamps are attached when constructed. `attached_clamp` scopes one to a
block and guarantees it is detached on every exit path.
"""

import contextlib

import numpy as np

from simulation.errors import ConfigurationError
from synapses.base import PointProcess


class CurrentClamp(PointProcess):
    electrode = True

    def __init__(self, location, delay=0.0, dur=np.inf, amp=0.0, noise_std=0.0,
                 seed=None, x=0.5, name='iclamp'):
        if delay < 0:
            raise ConfigurationError(f"delay must be >= 0, got {delay}", parameter='delay')
        if dur < 0:
            raise ConfigurationError(f"dur must be >= 0, got {dur}", parameter='dur')
        if noise_std < 0:
            raise ConfigurationError(f"noise_std must be >= 0, got {noise_std}",
                                     parameter='noise_std')
        super().__init__(location, x=x, name=name)
        self.delay = delay
        self.dur = dur
        self.amp = amp
        self.noise_std = noise_std
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self._noise = 0.0

    @property
    def noisy(self):
        return self.noise_std > 0

    def reset(self):
        super().reset()
        self.rng = np.random.default_rng(self.seed)
        self._noise = 0.0

    def begin_step(self, t, dt):
        if self.noise_std > 0:
            self._noise = self.rng.normal(0.0, self.noise_std)

    def injected(self, t):
        if self.delay <= t < self.delay + self.dur:
            return self.amp + self._noise
        return 0.0

    def membrane_current(self, v, t):
        return -self.injected(t)

    def breakpoints(self, t_stop):
        return [s for s in (self.delay, self.delay + self.dur) if 0.0 < s <= t_stop]


class VoltageClamp(PointProcess):
    electrode = True

    def __init__(self, location, vc=-70.0, rs=0.01, x=0.5, name='vclamp'):
        if not rs > 0:
            raise ConfigurationError(f"rs must be > 0, got {rs}", parameter='rs')
        super().__init__(location, x=x, name=name)
        self.vc = vc
        self.rs = rs

    def membrane_current(self, v, t):
        return -(self.vc - v) / self.rs


@contextlib.contextmanager
def attached_clamp(clamp_cls, location, **kwargs):
    """Attach a clamp for the duration of a with-block."""
    clamp = clamp_cls(location, **kwargs)
    try:
        yield clamp
    finally:
        clamp.detach()

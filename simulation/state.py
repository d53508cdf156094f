"""
Simulation clock and integration settings, plus the step-policy rule.

One SimulationState belongs to one Simulation; nothing here is shared
between runs.
"""

import logging
from dataclasses import dataclass

from simulation.errors import ProtocolError

logger = logging.getLogger(__name__)

FIXED_METHODS = ('backward_euler', 'crank_nicholson', 'crank_nicholson_corrected')
ADAPTIVE_METHODS = ('BDF', 'LSODA', 'Radau')
POLICIES = ('auto', 'fixed', 'adaptive')


@dataclass
class SimulationState:
    t: float = 0.0
    dt: float = 0.1                 # ms, fixed-step size
    method: str = 'backward_euler'  # fixed-step scheme
    policy: str = 'auto'
    adaptive_method: str = 'BDF'
    rtol: float = 1e-5
    atol: float = 1e-7
    max_step: float = 5.0           # ms, adaptive
    v_init: float = -70.0
    step: int = 0

    def __post_init__(self):
        if self.method not in FIXED_METHODS:
            raise ProtocolError(f"unknown fixed-step method {self.method!r}; "
                                f"expected one of {FIXED_METHODS}")
        if self.adaptive_method not in ADAPTIVE_METHODS:
            raise ProtocolError(f"unknown adaptive method {self.adaptive_method!r}; "
                                f"expected one of {ADAPTIVE_METHODS}")
        if self.policy not in POLICIES:
            raise ProtocolError(f"unknown step policy {self.policy!r}; "
                                f"expected one of {POLICIES}")
        if not self.dt > 0:
            raise ProtocolError(f"dt must be > 0, got {self.dt}")
        if not (self.rtol > 0 and self.atol > 0 and self.max_step > 0):
            raise ProtocolError("rtol, atol and max_step must be > 0")

    def reset(self):
        self.t = 0.0
        self.step = 0


def select_step_policy(policy, noise, fast_spiking):
    """Resolve 'auto' and reject adaptive stepping where it is unreliable.

    Adaptive stepping is chosen only when there is neither per-step noise
    (no smooth local error estimate) nor an hh2 spike mechanism (large
    stiff spikes). An explicit 'fixed' is always honoured.
    """
    if policy == 'fixed':
        return 'fixed'
    if policy == 'auto':
        chosen = 'fixed' if (noise or fast_spiking) else 'adaptive'
        logger.info(f"step policy auto -> {chosen} "
                    f"(noise={bool(noise)}, fast_spiking={bool(fast_spiking)})")
        return chosen
    if policy == 'adaptive':
        if noise:
            raise ProtocolError("adaptive stepping cannot be used with injected noise")
        if fast_spiking:
            raise ProtocolError("adaptive stepping cannot be used with fast-spiking (hh2) "
                                "mechanisms; use policy='fixed'")
        return 'adaptive'
    raise ProtocolError(f"unknown step policy {policy!r}")

"""
Discrete synaptic events: a time-ordered queue, threshold spike
detectors on source compartments, and the connections between them.
"""

import heapq
import itertools
from dataclasses import dataclass
from typing import Any

from simulation.errors import ConfigurationError


@dataclass
class Connection:
    """Spike on `source` (compartment) -> event on `target` after `delay` ms."""
    source: Any
    target: Any
    threshold: float = -20.0
    delay: float = 1.0
    weight: float = 1.0

    def __post_init__(self):
        if self.delay < 0:
            raise ConfigurationError(f"delay must be >= 0, got {self.delay}",
                                     parameter='delay')
        if not 0.0 <= self.weight <= 1.0:
            raise ConfigurationError(
                f"weight is an activation probability in [0, 1], got {self.weight}",
                parameter='weight')


class EventQueue:
    """Heap of (time, sequence, target, weight); ties keep insertion order."""

    def __init__(self):
        self._heap = []
        self._counter = itertools.count()

    def __len__(self):
        return len(self._heap)

    def clear(self):
        self._heap = []
        self._counter = itertools.count()

    def push(self, t, target, weight=1.0):
        heapq.heappush(self._heap, (t, next(self._counter), target, weight))

    def next_time(self):
        return self._heap[0][0] if self._heap else None

    def pop_due(self, t_end, inclusive=False):
        """Remove and return events with time < t_end (or <= when inclusive)."""
        due = []
        while self._heap:
            t = self._heap[0][0]
            if t < t_end or (inclusive and t <= t_end):
                t, _, target, weight = heapq.heappop(self._heap)
                due.append((t, target, weight))
            else:
                break
        return due


class SpikeDetector:
    """Upward threshold crossings of a compartment's voltage."""

    def __init__(self, source, threshold):
        self.source = source
        self.threshold = threshold
        self.connections = []
        self.spikes = []
        self.armed = True

    def reset(self, v):
        self.spikes = []
        self.armed = v < self.threshold

    def check(self, t0, v0, t1, v1):
        """Crossing time within [t0, t1] by linear interpolation, or None."""
        if not self.armed:
            if v1 < self.threshold:
                self.armed = True
            return None
        if v1 >= self.threshold:
            self.armed = False
            if v1 == v0:
                return t1
            return t0 + (t1 - t0) * (self.threshold - v0) / (v1 - v0)
        return None

    def fire(self, t, queue):
        self.spikes.append(t)
        for conn in self.connections:
            queue.push(t + conn.delay, conn.target, conn.weight)

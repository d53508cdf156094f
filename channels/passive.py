"""Ohmic leak."""

from channels.base import Mechanism


class Leak(Mechanism):
    kind = 'pas'
    defaults = {
        'g': 0.05,          # mS/cm2
        'e': -70.0,         # mV
    }
    density_params = ('g',)

    def current(self, v, comp):
        return self.g * (v - self.e)

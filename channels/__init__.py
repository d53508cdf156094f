"""
Membrane mechanisms, looked up by kind string.

  pas    ohmic leak
  it     T-type Ca2+ (GHK)            cad    Ca2+ decay / pump
  ih     H-current                    iahp   Ca2+-activated K+
  ia     A-type K+                    ikir   inward-rectifying K+
  inap   persistent Na+               hh2    fast Na+/K+ spike currents
  cldyn  intracellular Cl- dynamics
"""

from channels.base import Mechanism
from channels.calcium import AHPPotassium, CalciumDecay, TCalcium
from channels.chloride import ChlorideDynamics
from channels.h_current import HCurrent
from channels.passive import Leak
from channels.potassium import APotassium, InwardRectifierPotassium
from channels.sodium import HHSpiking, PersistentSodium
from simulation.errors import ConfigurationError

MECHANISMS = {cls.kind: cls for cls in (
    Leak, TCalcium, CalciumDecay, HCurrent, AHPPotassium, APotassium,
    InwardRectifierPotassium, PersistentSodium, HHSpiking, ChlorideDynamics,
)}


def mechanism_class(kind):
    try:
        return MECHANISMS[kind]
    except KeyError:
        raise ConfigurationError(
            f"unknown mechanism kind {kind!r}; expected one of {sorted(MECHANISMS)}",
            parameter='kind') from None


def create_mechanism(kind, temperature=34.0, **params):
    return mechanism_class(kind)(temperature=temperature, **params)

from synapses.ampa import AMPASynapse
from synapses.base import PointProcess
from synapses.gabaa import GABAASynapse
from synapses.gabab import GABABSynapse, ipsc_kernel, kernel_peak, rise_time_constant
from synapses.kinetic import KineticSynapse

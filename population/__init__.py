from population.network import (assign_delays, build_connectivity, normalize_weights,
                                place_cells_on_ring, ring_distance)
from population.thalamic_network import ThalamicNetwork

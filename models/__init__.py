from models.builder import CellBuildSpec, build_cell
from models.cell import Cell
from models.compartment import Compartment, ReversalPotentials

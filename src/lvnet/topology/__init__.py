"""
Topology Layer
==============

LV feeder modeling:
- Nodes with per-phase loads and productions
- Cables routed along geographic polylines (haversine length)
- Radial path search from the source
- Equivalent upstream impedance (Zph, Zn) at any node
"""

from .phases import PHASES, PHASE_ANGLES, PhaseValues
from .cable import Cable, CableType, Coordinate, haversine_m
from .node import Node
from .network import LVNetwork, SpanningTree, create_radial_feeder
from .impedance import CME_IMPEDANCE_MIN_OHM, EquivalentImpedances, compute_equiv_impedances_to_source

__all__ = [
    "PHASES",
    "PHASE_ANGLES",
    "PhaseValues",
    "Cable",
    "CableType",
    "Coordinate",
    "haversine_m",
    "Node",
    "LVNetwork",
    "SpanningTree",
    "create_radial_feeder",
    "CME_IMPEDANCE_MIN_OHM",
    "EquivalentImpedances",
    "compute_equiv_impedances_to_source",
]

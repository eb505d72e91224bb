"""
Power Flow Module
=================

Load-flow solvers for LV feeders:
- Solver contract and result container
- Four-wire backward/forward sweep (unbalanced, with injections)
- Balanced voltage-drop screening on pandapower
"""

from .base import CableCurrents, PowerFlowResult, PowerFlowSolver
from .bfs import BackwardForwardSweepSolver
from .screening import (
    build_pandapower_network,
    run_balanced_screening,
    run_powerflow,
    summarize_screening_results,
)

__all__ = [
    "CableCurrents",
    "PowerFlowResult",
    "PowerFlowSolver",
    "BackwardForwardSweepSolver",
    "build_pandapower_network",
    "run_balanced_screening",
    "run_powerflow",
    "summarize_screening_results",
]

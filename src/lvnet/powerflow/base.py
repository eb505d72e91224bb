"""
Power Flow Contract
===================

Abstract solver interface and the result container shared by the
compensation engine. Solvers take the network plus optional nodal
current injections (compensators) and return per-node phase-neutral
voltages and per-cable currents.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional, Sequence

import pandas as pd

from ..topology.network import LVNetwork
from ..topology.phases import PHASES, PhaseValues

if TYPE_CHECKING:
    from ..compensation.injection import Injection


@dataclass(frozen=True)
class CableCurrents:
    """
    Currents carried by one cable, oriented from the source side.

    Attributes:
        cable_id: Cable identifier
        i_phase: Phase current phasors {'A': .., 'B': .., 'C': ..} (A)
        i_neutral: Neutral conductor current phasor (A)
    """
    cable_id: str
    i_phase: Dict[str, complex]
    i_neutral: complex

    @property
    def magnitudes(self) -> PhaseValues:
        return PhaseValues(*(abs(self.i_phase[p]) for p in PHASES))

    @property
    def neutral_magnitude(self) -> float:
        return abs(self.i_neutral)

    def to_dict(self) -> dict:
        return {
            "cable_id": self.cable_id,
            "i_phase_a": self.magnitudes.a,
            "i_phase_b": self.magnitudes.b,
            "i_phase_c": self.magnitudes.c,
            "i_neutral": self.neutral_magnitude,
        }


@dataclass
class PowerFlowResult:
    """
    Load-flow solution.

    Attributes:
        converged: True if the solver met its tolerance
        iterations: Iterations spent
        node_voltages: Phase-neutral voltage magnitudes per node (V)
        neutral_voltages: Neutral-point voltage phasor per node (V)
        cable_currents: Currents per cable
    """
    converged: bool
    iterations: int
    node_voltages: Dict[str, PhaseValues] = field(default_factory=dict)
    neutral_voltages: Dict[str, complex] = field(default_factory=dict)
    cable_currents: Dict[str, CableCurrents] = field(default_factory=dict)

    def voltages_at(self, node_id: str) -> PhaseValues:
        """Phase-neutral voltages at a node."""
        if node_id not in self.node_voltages:
            raise KeyError(f"No voltage result for node {node_id}")
        return self.node_voltages[node_id]

    def currents_in(self, cable_id: str) -> Optional[CableCurrents]:
        return self.cable_currents.get(cable_id)

    def bus_frame(self) -> pd.DataFrame:
        """Per-node voltages as a DataFrame indexed by node id."""
        rows = []
        for node_id, v in self.node_voltages.items():
            rows.append({
                "node_id": node_id,
                "u_a_v": v.a,
                "u_b_v": v.b,
                "u_c_v": v.c,
                "spread_v": v.spread,
                "u_neutral_v": abs(self.neutral_voltages.get(node_id, 0j)),
            })
        return pd.DataFrame(rows, columns=[
            "node_id", "u_a_v", "u_b_v", "u_c_v", "spread_v", "u_neutral_v",
        ]).set_index("node_id")

    def cable_frame(self) -> pd.DataFrame:
        """Per-cable current magnitudes as a DataFrame indexed by cable id."""
        rows = [c.to_dict() for c in self.cable_currents.values()]
        return pd.DataFrame(rows, columns=[
            "cable_id", "i_phase_a", "i_phase_b", "i_phase_c", "i_neutral",
        ]).set_index("cable_id")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "converged": self.converged,
            "iterations": self.iterations,
            "node_voltages": {k: v.to_dict() for k, v in self.node_voltages.items()},
            "neutral_voltages": {k: abs(v) for k, v in self.neutral_voltages.items()},
            "cable_currents": {k: c.to_dict() for k, c in self.cable_currents.items()},
        }


class PowerFlowSolver(ABC):
    """
    Abstract base class for LV load-flow solvers.

    The compensation engine only relies on this contract; it never
    inspects how a solver reaches its solution.
    """

    name: str = "abstract"

    @abstractmethod
    def solve(
        self,
        network: LVNetwork,
        injections: Optional[Sequence["Injection"]] = None,
    ) -> PowerFlowResult:
        """
        Solve the network.

        Args:
            network: Network with per-phase loads and productions
            injections: Nodal current sources (compensators)

        Returns:
            PowerFlowResult; non-convergence is flagged, not raised
        """
        pass

    def node_voltage_solver(self, network: LVNetwork, node_id: str):
        """
        Bind the solver to one network and node.

        Returns:
            Callable mapping an Injection to the node's phase voltages
        """
        def solve_node(injection: "Injection") -> PhaseValues:
            return self.solve(network, [injection]).voltages_at(node_id)

        return solve_node

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

"""
Optimal Compensator Placement
=============================

Ranks the nodes of a feeder as EQUI8 locations:

    score(node) = I_neutral(node) / Zph_upstream(node)

A good location carries a strong neutral current while its upstream
impedance stays moderate, so the device does not dominate the local
voltage. Only nodes with Zph within [10 %, 70 %] of the feeder's largest
upstream Zph and at least 2 A of neutral current are candidates.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging

from ..powerflow.base import PowerFlowResult
from ..topology.network import LVNetwork


logger = logging.getLogger(__name__)

Z_MIN_RATIO = 0.10
Z_MAX_RATIO = 0.70
MIN_NEUTRAL_CURRENT_A = 2.0
MIN_IMPEDANCE_OHM = 0.001

# Typical impedance used to estimate I_N from the voltage spread (ohm)
TYPICAL_IMPEDANCE_OHM = 0.5


@dataclass(frozen=True)
class PlacementCandidate:
    node_id: str
    node_name: str
    score: float
    neutral_current_a: float
    zph_ohm: float
    zn_ohm: float
    position_ratio: float

    @property
    def justification(self) -> str:
        return (
            f"I_N={self.neutral_current_a:.1f} A, Z_up={self.zph_ohm:.3f} ohm, "
            f"position={self.position_ratio * 100:.0f}% of the feeder"
        )

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "node_name": self.node_name,
            "score": self.score,
            "neutral_current_a": self.neutral_current_a,
            "zph_ohm": self.zph_ohm,
            "zn_ohm": self.zn_ohm,
            "position_ratio": self.position_ratio,
            "justification": self.justification,
        }


@dataclass
class PlacementAnalysis:
    """
    Ranked placement candidates.

    Attributes:
        candidates: Qualifying nodes, best score first
        total_zph_ohm: Largest upstream Zph on the feeder
        z_bounds: (Zmin, Zmax) applied
        reason: Why no node qualifies
    """
    candidates: List[PlacementCandidate] = field(default_factory=list)
    total_zph_ohm: float = 0.0
    z_bounds: Tuple[float, float] = (0.0, 0.0)
    reason: Optional[str] = None

    @property
    def optimal(self) -> Optional[PlacementCandidate]:
        return self.candidates[0] if self.candidates else None

    def to_dict(self) -> dict:
        return {
            "optimal": self.optimal.to_dict() if self.optimal else None,
            "candidates": [c.to_dict() for c in self.candidates],
            "total_zph_ohm": self.total_zph_ohm,
            "z_bounds": list(self.z_bounds),
            "reason": self.reason,
        }


def upstream_impedances(network: LVNetwork) -> Dict[str, Tuple[float, float]]:
    """
    Upstream (Zph, Zn) resistances of every reachable node, in one pass.

    Cables of unknown type contribute nothing.
    """
    tree = network.spanning_tree()
    if tree is None:
        return {}

    impedances = {tree.source_id: (0.0, 0.0)}
    for node_id in tree.order[1:]:
        zph, zn = impedances[tree.parent[node_id]]
        cable = tree.parent_cable[node_id]
        cable_type = network.get_cable_type(cable.type_id)
        if cable_type is not None:
            zph += cable_type.r_grd_ohm_per_km * cable.length_km
            zn += cable_type.r0_ohm_per_km * cable.length_km
        impedances[node_id] = (zph, zn)
    return impedances


def neutral_current_at(network: LVNetwork, result: PowerFlowResult, node_id: str) -> float:
    """
    Neutral current feeding a node, from its upstream cable.

    Falls back to the largest phase deviation divided by a typical
    impedance when no cable current is available.
    """
    cable = network.upstream_cable(node_id)
    currents = result.currents_in(cable.id) if cable else None
    if currents is not None:
        return currents.neutral_magnitude

    voltages = result.node_voltages.get(node_id)
    if voltages is None:
        return 0.0
    deviation = max(abs(v - voltages.mean) for v in voltages.as_tuple())
    return deviation / TYPICAL_IMPEDANCE_OHM


def find_optimal_compensator_node(
    network: LVNetwork,
    result: PowerFlowResult,
    log: Optional[logging.Logger] = None,
) -> PlacementAnalysis:
    """
    Rank candidate nodes for a neutral compensator.

    Args:
        network: Feeder topology
        result: Load-flow solution without any compensator
        log: Diagnostic sink (defaults to the module logger)

    Returns:
        PlacementAnalysis, candidates sorted by descending score
    """
    log = log or logger

    impedances = upstream_impedances(network)
    total_zph = max((zph for zph, _ in impedances.values()), default=0.0)

    if total_zph < MIN_IMPEDANCE_OHM:
        return PlacementAnalysis(reason="Network impedance too low for analysis")

    z_min = total_zph * Z_MIN_RATIO
    z_max = total_zph * Z_MAX_RATIO
    log.debug("EQUI8 placement: Z_total=%.4f ohm, bounds [%.4f, %.4f] ohm", total_zph, z_min, z_max)

    candidates = []
    for node in network.nodes:
        if node.is_source or node.id not in impedances:
            continue

        zph, zn = impedances[node.id]
        if zph < z_min or zph > z_max:
            log.debug("  %s: Z=%.4f ohm outside bounds", node.display_name, zph)
            continue

        i_n = neutral_current_at(network, result, node.id)
        if i_n < MIN_NEUTRAL_CURRENT_A:
            log.debug("  %s: I_N=%.2f A below threshold", node.display_name, i_n)
            continue

        candidates.append(PlacementCandidate(
            node_id=node.id,
            node_name=node.display_name,
            score=i_n / max(zph, MIN_IMPEDANCE_OHM),
            neutral_current_a=i_n,
            zph_ohm=zph,
            zn_ohm=zn,
            position_ratio=zph / total_zph,
        ))

    candidates.sort(key=lambda c: c.score, reverse=True)

    if not candidates:
        return PlacementAnalysis(
            total_zph_ohm=total_zph,
            z_bounds=(z_min, z_max),
            reason=(
                f"No node meets the criteria (neutral current >= {MIN_NEUTRAL_CURRENT_A} A "
                f"and upstream impedance within bounds)"
            ),
        )

    log.info("EQUI8 placement: best node %s (%s)", candidates[0].node_name, candidates[0].justification)
    return PlacementAnalysis(
        candidates=candidates,
        total_zph_ohm=total_zph,
        z_bounds=(z_min, z_max),
    )

"""
Equivalent Upstream Impedance
=============================

Reduces the path from the source to a node into two scalar resistances:
- phase-equivalent Zph = sum((R0 + 2*R12) / 3 * L_km)  (grid operator convention)
- neutral-equivalent Zn = sum(R0 * L_km)

Reactances are ignored: the CME model is resistance-based.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from .network import LVNetwork


logger = logging.getLogger(__name__)

# Minimum Zph / Zn for the CME empirical model (ohm)
CME_IMPEDANCE_MIN_OHM = 0.15


@dataclass(frozen=True)
class EquivalentImpedances:
    """
    Upstream equivalent resistances at a node.

    Attributes:
        zph_ohm: Phase-equivalent resistance (ohm)
        zn_ohm: Neutral-equivalent resistance (ohm)
        zph_valid: zph_ohm >= 0.15 ohm
        zn_valid: zn_ohm >= 0.15 ohm
    """
    zph_ohm: float = 0.0
    zn_ohm: float = 0.0
    zph_valid: bool = False
    zn_valid: bool = False

    @property
    def valid(self) -> bool:
        return self.zph_valid and self.zn_valid

    def to_dict(self) -> dict:
        return {
            "zph_ohm": self.zph_ohm,
            "zn_ohm": self.zn_ohm,
            "zph_valid": self.zph_valid,
            "zn_valid": self.zn_valid,
        }


def compute_equiv_impedances_to_source(
    node_id: str,
    network: LVNetwork,
    log: Optional[logging.Logger] = None,
) -> EquivalentImpedances:
    """
    Sum cable resistances from the source down to a node.

    Args:
        node_id: Node where the compensator is installed
        network: Radial LV network
        log: Diagnostic sink (defaults to the module logger)

    Returns:
        EquivalentImpedances; all zero and invalid when there is no
        source or the node cannot be reached
    """
    log = log or logger

    if network.source is None:
        log.warning("EQUI8 CME: no source node in network %s", network.name)
        return EquivalentImpedances()

    path = network.path_to_source(node_id)
    if path is None:
        log.warning("EQUI8 CME: node %s not reachable from the source", node_id)
        return EquivalentImpedances()

    zph_total = 0.0
    zn_total = 0.0
    for cable in path:
        cable_type = network.get_cable_type(cable.type_id)
        if cable_type is None:
            log.warning("EQUI8 CME: cable type %s not found (cable %s skipped)", cable.type_id, cable.id)
            continue

        length_km = cable.length_km
        zph_total += cable_type.r_grd_ohm_per_km * length_km
        zn_total += cable_type.r0_ohm_per_km * length_km

    zph_valid = zph_total >= CME_IMPEDANCE_MIN_OHM
    zn_valid = zn_total >= CME_IMPEDANCE_MIN_OHM

    if not zph_valid:
        log.warning(
            "EQUI8 CME: Zph=%.4f ohm < %s ohm (CME condition not met)", zph_total, CME_IMPEDANCE_MIN_OHM
        )
    if not zn_valid:
        log.warning(
            "EQUI8 CME: Zn=%.4f ohm < %s ohm (CME condition not met)", zn_total, CME_IMPEDANCE_MIN_OHM
        )

    log.debug(
        "EQUI8 CME: equivalent impedances at node %s: Zph=%.4f ohm, Zn=%.4f ohm",
        node_id, zph_total, zn_total,
    )

    return EquivalentImpedances(
        zph_ohm=zph_total,
        zn_ohm=zn_total,
        zph_valid=zph_valid,
        zn_valid=zn_valid,
    )

"""
EQUI8 Current Injection
=======================

Phasor injection handed to the load-flow solver at the compensator node:
- +I on the neutral (real, aligned with phase A)
- I/3 withdrawn from each phase, aligned with the phase reference angle
"""

from dataclasses import dataclass
from typing import Dict
import cmath

from ..topology.phases import PHASE_ANGLES


@dataclass(frozen=True)
class Injection:
    """
    Nodal current injection of one compensator (A).

    Attributes:
        node_id: Installation node
        i_neutral: Current injected into the neutral
        i_phase_a, i_phase_b, i_phase_c: Currents injected into each phase
            (negative = withdrawal)
        magnitude: Scalar compensator current I
    """
    node_id: str
    i_neutral: complex
    i_phase_a: complex
    i_phase_b: complex
    i_phase_c: complex
    magnitude: float

    @property
    def phase_currents(self) -> Dict[str, complex]:
        return {"A": self.i_phase_a, "B": self.i_phase_b, "C": self.i_phase_c}

    def to_dict(self) -> dict:
        """Convert to dictionary (complex values as re/im pairs)."""
        def _c(z: complex) -> dict:
            return {"re": z.real, "im": z.imag}

        return {
            "node_id": self.node_id,
            "magnitude": self.magnitude,
            "i_neutral": _c(self.i_neutral),
            "i_phase_a": _c(self.i_phase_a),
            "i_phase_b": _c(self.i_phase_b),
            "i_phase_c": _c(self.i_phase_c),
        }


def build_injection(node_id: str, iinj: float) -> Injection:
    """
    Build the four-phasor injection for a compensator current.

    Args:
        node_id: Installation node
        iinj: Compensator current magnitude (A, >= 0)

    Returns:
        Injection with rect(-I/3, angle) on each phase and I + 0j on the neutral
    """
    if iinj < 0:
        raise ValueError(f"Injected current must be non-negative, got {iinj}")

    i_per_phase = -iinj / 3.0

    return Injection(
        node_id=node_id,
        i_neutral=complex(iinj, 0.0),
        i_phase_a=cmath.rect(i_per_phase, PHASE_ANGLES["A"]),
        i_phase_b=cmath.rect(i_per_phase, PHASE_ANGLES["B"]),
        i_phase_c=cmath.rect(i_per_phase, PHASE_ANGLES["C"]),
        magnitude=iinj,
    )

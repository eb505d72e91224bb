"""
Phase Quantities
================

Per-phase real values (voltages, apparent powers, current magnitudes)
and the phasor angle conventions shared by the whole engine.
"""

from dataclasses import dataclass
from typing import Dict, Tuple
import math


PHASES = ("A", "B", "C")

# Phase reference angles (radians): A at 0°, B at -120°, C at +120°
PHASE_ANGLES: Dict[str, float] = {
    "A": 0.0,
    "B": -2.0 * math.pi / 3.0,
    "C": 2.0 * math.pi / 3.0,
}


@dataclass(frozen=True)
class PhaseValues:
    """
    Three real values, one per phase.

    Order is preserved for per-phase attribution; min/max/mean treat
    the triple as an unordered set.

    Attributes:
        a: Phase A value
        b: Phase B value
        c: Phase C value
    """
    a: float = 0.0
    b: float = 0.0
    c: float = 0.0

    @classmethod
    def uniform(cls, value: float) -> "PhaseValues":
        """Same value on all three phases."""
        return cls(value, value, value)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "PhaseValues":
        """Build from a {'A': .., 'B': .., 'C': ..} mapping (case-insensitive)."""
        norm = {str(k).upper(): float(v) for k, v in data.items()}
        return cls(norm.get("A", 0.0), norm.get("B", 0.0), norm.get("C", 0.0))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.a, self.b, self.c)

    def get(self, phase: str) -> float:
        """Value for phase 'A', 'B' or 'C'."""
        return {"A": self.a, "B": self.b, "C": self.c}[phase.upper()]

    def with_phase(self, phase: str, value: float) -> "PhaseValues":
        """Copy with one phase replaced."""
        values = dict(zip(PHASES, self.as_tuple()))
        values[phase.upper()] = float(value)
        return PhaseValues(values["A"], values["B"], values["C"])

    @property
    def mean(self) -> float:
        return (self.a + self.b + self.c) / 3.0

    @property
    def max(self) -> float:
        return max(self.a, self.b, self.c)

    @property
    def min(self) -> float:
        return min(self.a, self.b, self.c)

    @property
    def spread(self) -> float:
        """Max - min over the three phases."""
        return self.max - self.min

    @property
    def total(self) -> float:
        return self.a + self.b + self.c

    def to_dict(self) -> dict:
        return {"A": self.a, "B": self.b, "C": self.c}

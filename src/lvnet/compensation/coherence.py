"""
CME Coherence Validator
=======================

Compares the voltages achieved after calibration with the CME targets.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from ..topology.phases import PhaseValues
from .cme import CMEResult


logger = logging.getLogger(__name__)

# Vendor accuracy on voltages (V)
CME_VOLTAGE_ACCURACY_V = 2.0


@dataclass(frozen=True)
class CoherenceResult:
    """Whether every phase is within tolerance, with per-phase |target - achieved| (V)."""
    valid: bool
    errors: PhaseValues
    tolerance_v: float = CME_VOLTAGE_ACCURACY_V

    @property
    def max_error(self) -> float:
        return self.errors.max

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": self.errors.to_dict(),
            "tolerance_v": self.tolerance_v,
        }


def validate_cme_coherence(
    cme: CMEResult,
    achieved: PhaseValues,
    tolerance_v: float = CME_VOLTAGE_ACCURACY_V,
    log: Optional[logging.Logger] = None,
) -> CoherenceResult:
    log = log or logger

    errors = PhaseValues(
        abs(cme.u_a_target - achieved.a),
        abs(cme.u_b_target - achieved.b),
        abs(cme.u_c_target - achieved.c),
    )
    valid = errors.max <= tolerance_v

    if not valid:
        log.warning(
            "EQUI8 CME coherence: errors A=%.2f V, B=%.2f V, C=%.2f V exceed %.1f V",
            errors.a, errors.b, errors.c, tolerance_v,
        )

    return CoherenceResult(valid=valid, errors=errors, tolerance_v=tolerance_v)

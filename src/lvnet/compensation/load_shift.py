"""
Load Shift Compensation (deprecated)
====================================

Former EQUI8 model: instead of injecting current, move part of the
mono-phase load of a node from its most-loaded phase to its
least-loaded phase. It does not reproduce the physical behaviour of a
neutral compensator and is kept only for regression comparison against
the CME model. Production code never selects it.
"""

from dataclasses import dataclass
from typing import Dict
import cmath
import logging
import math
import warnings

from ..topology.impedance import CME_IMPEDANCE_MIN_OHM
from ..topology.phases import PHASE_ANGLES, PHASES, PhaseValues
from ..resources.compensator import NeutralCompensator
from .cme import CME_LN_OFFSET, CME_LN_SLOPE


logger = logging.getLogger(__name__)

MAX_SHIFT_FRACTION = 0.5
# Share of the source phase's load that may be moved at most
MAX_SHIFT_SOURCE_SHARE = 0.9


def _deprecated(name: str) -> None:
    warnings.warn(
        f"{name} is deprecated, use the CME compensation model",
        DeprecationWarning,
        stacklevel=3,
    )


@dataclass(frozen=True)
class CurrentImbalance:
    """Phase current magnitudes, their extreme phases and the neutral current (A)."""
    currents: PhaseValues
    max_phase: str
    min_phase: str
    imbalance_a: float
    imbalance_percent: float
    neutral_current_a: float

    def to_dict(self) -> dict:
        return {
            "currents": self.currents.to_dict(),
            "max_phase": self.max_phase,
            "min_phase": self.min_phase,
            "imbalance_a": self.imbalance_a,
            "imbalance_percent": self.imbalance_percent,
            "neutral_current_a": self.neutral_current_a,
        }


@dataclass(frozen=True)
class Redistribution:
    values: PhaseValues
    shifted_kva: float
    from_phase: str
    to_phase: str
    limited: bool


def analyze_current_imbalance(i_phase: Dict[str, complex]) -> CurrentImbalance:
    """
    Imbalance of the phase currents feeding a node.

    The neutral current is |I_A + I_B + I_C| with each magnitude placed
    on its phase reference angle.
    """
    _deprecated("analyze_current_imbalance")

    currents = PhaseValues(*(abs(i_phase[p]) for p in PHASES))

    # First phase wins on ties
    max_phase = max(PHASES, key=lambda p: (currents.get(p), -PHASES.index(p)))
    min_phase = min(PHASES, key=lambda p: (currents.get(p), PHASES.index(p)))

    imbalance_a = currents.max - currents.min
    imbalance_percent = imbalance_a / currents.mean * 100.0 if currents.mean > 0 else 0.0

    i_neutral = sum(cmath.rect(currents.get(p), PHASE_ANGLES[p]) for p in PHASES)

    return CurrentImbalance(
        currents=currents,
        max_phase=max_phase,
        min_phase=min_phase,
        imbalance_a=imbalance_a,
        imbalance_percent=imbalance_percent,
        neutral_current_a=abs(i_neutral),
    )


def load_shift_fraction(zph: float, zn: float) -> float:
    """Share of the most-loaded phase to move, from the CME impedance terms, in [0, 0.5]."""
    _deprecated("load_shift_fraction")

    zph = max(CME_IMPEDANCE_MIN_OHM, zph)
    zn = max(CME_IMPEDANCE_MIN_OHM, zn)

    denom = CME_LN_SLOPE * math.log(zph) + CME_LN_OFFSET
    factor = (2 * zph) / (zph + zn)
    fraction = (1 / denom) * factor

    return min(MAX_SHIFT_FRACTION, max(0.0, fraction))


def redistribute_load(
    distribution: PhaseValues,
    imbalance: CurrentImbalance,
    compensator: NeutralCompensator,
    zph: float,
    zn: float,
) -> Redistribution:
    """
    Move power from the most- to the least-loaded phase.

    The shift is capped by the compensator power rating and by 90 % of
    the power on the source phase. Nothing moves when the neutral current
    is within the compensator tolerance.
    """
    _deprecated("redistribute_load")

    from_phase, to_phase = imbalance.max_phase, imbalance.min_phase

    if imbalance.neutral_current_a <= compensator.tolerance_a:
        return Redistribution(distribution, 0.0, from_phase, to_phase, False)

    source_kva = distribution.get(from_phase)
    shift_kva = source_kva * load_shift_fraction(zph, zn)

    limited = shift_kva > compensator.max_power_kva
    if limited:
        shift_kva = compensator.max_power_kva
    shift_kva = min(shift_kva, source_kva * MAX_SHIFT_SOURCE_SHARE)

    values = distribution.with_phase(from_phase, source_kva - shift_kva)
    values = values.with_phase(to_phase, values.get(to_phase) + shift_kva)

    return Redistribution(values, shift_kva, from_phase, to_phase, limited)

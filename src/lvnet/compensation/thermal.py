"""
Thermal Current Limits
======================

Conductor thermal ceilings for the compensator current, by duration class.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union
import logging

from ..resources.compensator import ThermalWindow


logger = logging.getLogger(__name__)

THERMAL_LIMITS_A: Dict[ThermalWindow, float] = {
    ThermalWindow.MIN_15: 80.0,
    ThermalWindow.HOURS_3: 60.0,
    ThermalWindow.PERMANENT: 45.0,
}


@dataclass(frozen=True)
class ThermalClamp:
    """Clamped current, whether the ceiling was hit, and the ceiling used (A)."""
    i_clamped: float
    limited: bool
    limit: float


def thermal_limit(window: Union[ThermalWindow, str]) -> float:
    """
    Current ceiling for a duration class.

    Args:
        window: ThermalWindow or its value ('15min', '3h', 'permanent')

    Returns:
        Ceiling in amperes
    """
    if not isinstance(window, ThermalWindow):
        try:
            window = ThermalWindow(window)
        except ValueError:
            raise ValueError(f"Unknown thermal window: {window!r}") from None
    return THERMAL_LIMITS_A[window]


def clamp_by_thermal(
    i_est: float,
    window: Union[ThermalWindow, str],
    log: Optional[logging.Logger] = None,
) -> ThermalClamp:
    """Limit a requested current to the ceiling of its duration class."""
    log = log or logger

    limit = thermal_limit(window)
    limited = i_est > limit
    i_clamped = min(i_est, limit)

    if limited:
        log.warning(
            "EQUI8 CME: estimated current %.1f A limited to %s A (window %s)",
            i_est, limit, getattr(window, "value", window),
        )

    return ThermalClamp(i_clamped=i_clamped, limited=limited, limit=limit)

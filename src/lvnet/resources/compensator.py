"""
Neutral Compensator (EQUI8)
===========================

Shunt device installed at a four-wire node. In CME mode it behaves as
a current source: +I injected on the neutral, I/3 withdrawn from each
phase. Ratings and user presets live here; the engine only reads them.
"""

from dataclasses import dataclass
from enum import Enum


class ThermalWindow(Enum):
    """Duration class selecting the thermal current ceiling."""
    MIN_15 = "15min"
    HOURS_3 = "3h"
    PERMANENT = "permanent"


class CompensationMode(Enum):
    """Compensation model applied for the device."""
    CME = "CME"                # Current injection (production)
    LOAD_SHIFT = "LOAD_SHIFT"  # Deprecated load redistribution
    NONE = "NONE"


@dataclass
class NeutralCompensator:
    """
    Neutral compensator configuration.

    Attributes:
        id: Compensator identifier
        node_id: Installation node
        max_power_kva: Hard power ceiling (kVA)
        tolerance_a: Minimum neutral current worth acting on (A)
        enabled: Device in service
        zph_ohm: Preset phase-equivalent impedance; 0 = derive from topology
        zn_ohm: Preset neutral-equivalent impedance; 0 = derive from topology
        thermal_window: Duration class for the current ceiling
        mode: Compensation model
    """
    id: str
    node_id: str
    max_power_kva: float = 30.0
    tolerance_a: float = 5.0
    enabled: bool = True
    zph_ohm: float = 0.0
    zn_ohm: float = 0.0
    thermal_window: ThermalWindow = ThermalWindow.PERMANENT
    mode: CompensationMode = CompensationMode.CME

    def __post_init__(self):
        """Validate compensator parameters."""
        if isinstance(self.thermal_window, str):
            self.thermal_window = ThermalWindow(self.thermal_window)
        if isinstance(self.mode, str):
            self.mode = CompensationMode(self.mode.upper())

        if self.max_power_kva < 0:
            raise ValueError("max_power_kva must be non-negative")
        if self.tolerance_a < 0:
            raise ValueError("tolerance_a must be non-negative")
        if self.zph_ohm < 0 or self.zn_ohm < 0:
            raise ValueError("Preset impedances must be non-negative")

    @property
    def has_preset_impedances(self) -> bool:
        return self.zph_ohm > 0 and self.zn_ohm > 0

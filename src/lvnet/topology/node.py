"""
Node Model
==========

Network nodes: the source (MV/LV transformer secondary) and the
connection points where clients draw or inject power per phase.
"""

from dataclasses import dataclass, field
from typing import Optional

from .phases import PhaseValues


@dataclass
class Node:
    """
    LV network node.

    Attributes:
        id: Node identifier
        lat: Latitude (decimal degrees)
        lng: Longitude (decimal degrees)
        name: Display name
        is_source: True for the feeding transformer
        charges_kva: Mono-phase load per phase (kVA)
        productions_kva: Mono-phase production per phase (kVA, unity PF)
        power_factor: Load power factor (lagging)
    """
    id: str
    lat: float = 0.0
    lng: float = 0.0
    name: Optional[str] = None
    is_source: bool = False
    charges_kva: PhaseValues = field(default_factory=PhaseValues)
    productions_kva: PhaseValues = field(default_factory=PhaseValues)
    power_factor: float = 0.95

    def __post_init__(self):
        """Validate node parameters."""
        if not (0 < self.power_factor <= 1.0):
            raise ValueError("power_factor must be between 0 and 1")
        if min(self.charges_kva.as_tuple()) < 0 or min(self.productions_kva.as_tuple()) < 0:
            raise ValueError("charges_kva and productions_kva must be non-negative")

    @property
    def display_name(self) -> str:
        return self.name or self.id

"""
Cable Model
===========

LV cables and cable types. A cable follows a geographic route
(polyline of lat/lng points); its electrical length is the great-circle
length of that route.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import math


EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class Coordinate:
    """Geographic point in decimal degrees."""
    lat: float
    lng: float


def haversine_m(c0: Coordinate, c1: Coordinate) -> float:
    """
    Great-circle distance between two points (m).

    Args:
        c0: Start point
        c1: End point

    Returns:
        Distance in meters on a spherical earth of radius 6371 km
    """
    d_lat = math.radians(c1.lat - c0.lat)
    d_lon = math.radians(c1.lng - c0.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(c0.lat)) * math.cos(math.radians(c1.lat))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def polyline_length_m(coordinates: Sequence[Coordinate]) -> float:
    """Length of a polyline, summed leg by leg (m)."""
    length_m = 0.0
    for c0, c1 in zip(coordinates[:-1], coordinates[1:]):
        length_m += haversine_m(c0, c1)
    return length_m


@dataclass
class CableType:
    """
    Cable type with per-km sequence resistances/reactances.

    Attributes:
        id: Cable type identifier
        label: Human-readable designation (e.g. 'BAXB 4x95')
        r12_ohm_per_km: Positive-sequence resistance (ohm/km)
        x12_ohm_per_km: Positive-sequence reactance (ohm/km)
        r0_ohm_per_km: Zero-sequence resistance (ohm/km)
        x0_ohm_per_km: Zero-sequence reactance (ohm/km)
        max_current_a: Admissible current per conductor (A)
    """
    id: str
    r12_ohm_per_km: float
    r0_ohm_per_km: float
    x12_ohm_per_km: float = 0.0
    x0_ohm_per_km: float = 0.0
    max_current_a: float = 200.0
    label: str = ""

    def __post_init__(self):
        """Validate cable type parameters."""
        if self.r12_ohm_per_km < 0 or self.r0_ohm_per_km < 0:
            raise ValueError("Cable resistances must be non-negative")
        if self.max_current_a <= 0:
            raise ValueError("max_current_a must be positive")

    @property
    def r_grd_ohm_per_km(self) -> float:
        """Line-to-neutral equivalent resistance (R0 + 2*R12) / 3 (ohm/km)."""
        return (self.r0_ohm_per_km + 2 * self.r12_ohm_per_km) / 3


@dataclass
class Cable:
    """
    Cable section between two nodes.

    Attributes:
        id: Cable identifier
        node_a_id: Upstream end (as drawn)
        node_b_id: Downstream end (as drawn)
        type_id: Cable type reference
        coordinates: Route polyline, first point at node A
        length_m: Explicit length, used when the route has fewer than two points
    """
    id: str
    node_a_id: str
    node_b_id: str
    type_id: str
    coordinates: List[Coordinate] = field(default_factory=list)
    length_m: Optional[float] = None

    def __post_init__(self):
        """Validate cable parameters."""
        if self.node_a_id == self.node_b_id:
            raise ValueError(f"Cable {self.id} connects node {self.node_a_id} to itself")
        if self.length_m is not None and self.length_m < 0:
            raise ValueError("length_m must be non-negative")

    @property
    def route_length_m(self) -> float:
        """Electrical length (m) from the route, falling back to length_m."""
        if len(self.coordinates) >= 2:
            return polyline_length_m(self.coordinates)
        return float(self.length_m or 0.0)

    @property
    def length_km(self) -> float:
        return self.route_length_m / 1000.0

    def other_end(self, node_id: str) -> Optional[str]:
        """Node at the opposite end, or None if node_id is not an end."""
        if node_id == self.node_a_id:
            return self.node_b_id
        if node_id == self.node_b_id:
            return self.node_a_id
        return None

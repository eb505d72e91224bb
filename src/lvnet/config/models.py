from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, PositiveFloat, confloat, model_validator

from ..resources.compensator import NeutralCompensator
from ..topology.cable import Cable, CableType, Coordinate
from ..topology.network import LVNetwork
from ..topology.node import Node
from ..topology.phases import PhaseValues


class PhaseSpec(BaseModel):
    A: confloat(ge=0) = Field(0.0, description="Phase A value.")
    B: confloat(ge=0) = Field(0.0, description="Phase B value.")
    C: confloat(ge=0) = Field(0.0, description="Phase C value.")

    def to_phase_values(self) -> PhaseValues:
        return PhaseValues(float(self.A), float(self.B), float(self.C))


class CableTypeSpec(BaseModel):
    id: str
    label: str = Field("", description="Designation, e.g. 'BAXB 4x95'.")
    r12_ohm_per_km: confloat(ge=0) = Field(..., description="Positive-sequence resistance (ohm/km).")
    r0_ohm_per_km: confloat(ge=0) = Field(..., description="Zero-sequence resistance (ohm/km).")
    x12_ohm_per_km: confloat(ge=0) = Field(0.0, description="Positive-sequence reactance (ohm/km).")
    x0_ohm_per_km: confloat(ge=0) = Field(0.0, description="Zero-sequence reactance (ohm/km).")
    max_current_a: PositiveFloat = Field(200.0, description="Admissible current per conductor (A).")


class NodeSpec(BaseModel):
    id: str
    name: Optional[str] = None
    lat: float = Field(0.0, description="Latitude (decimal degrees).")
    lng: float = Field(0.0, description="Longitude (decimal degrees).")
    is_source: bool = False
    charges_kva: PhaseSpec = Field(default_factory=PhaseSpec, description="Mono-phase load per phase (kVA).")
    productions_kva: PhaseSpec = Field(
        default_factory=PhaseSpec, description="Mono-phase production per phase (kVA)."
    )
    power_factor: confloat(gt=0, le=1) = Field(0.95, description="Load power factor.")


class CableSpec(BaseModel):
    id: str
    node_a_id: str
    node_b_id: str
    type_id: str
    coordinates: List[Tuple[float, float]] = Field(
        default_factory=list, description="Route polyline as (lat, lng) pairs."
    )
    length_m: Optional[confloat(ge=0)] = Field(
        None, description="Explicit length (m), used when the route has fewer than two points."
    )


class CompensatorSpec(BaseModel):
    id: str
    node_id: str
    max_power_kva: confloat(ge=0) = Field(30.0, description="Power ceiling (kVA).")
    tolerance_a: confloat(ge=0) = Field(5.0, description="Neutral current worth acting on (A).")
    enabled: bool = True
    zph_ohm: confloat(ge=0) = Field(0.0, description="Preset Zph (ohm); 0 derives it from the topology.")
    zn_ohm: confloat(ge=0) = Field(0.0, description="Preset Zn (ohm); 0 derives it from the topology.")
    thermal_window: Literal["15min", "3h", "permanent"] = Field(
        "permanent", description="Duration class of the current ceiling."
    )
    mode: Literal["CME", "LOAD_SHIFT", "NONE"] = Field("CME", description="Compensation model.")


class SolverSpec(BaseModel):
    source_voltage_v: Optional[PositiveFloat] = Field(
        None, description="Phase-neutral source voltage (V). Defaults to the nominal voltage."
    )
    tolerance_v: PositiveFloat = Field(1e-4, description="Sweep convergence tolerance (V).")
    max_iterations: int = Field(100, ge=1, description="Sweep iteration ceiling.")


class ScreeningSpec(BaseModel):
    voltage_tolerance_pct: confloat(gt=0, le=50) = Field(
        10.0, description="Allowed voltage deviation from nominal (%)."
    )


class CaseInput(BaseModel):
    name: str = Field("LVNetwork", description="Network name.")
    nominal_voltage_v: PositiveFloat = Field(230.0, description="Phase-neutral nominal voltage (V).")

    cable_types: List[CableTypeSpec]
    nodes: List[NodeSpec]
    cables: List[CableSpec] = Field(default_factory=list)
    compensators: List[CompensatorSpec] = Field(default_factory=list)

    solver: SolverSpec = Field(default_factory=SolverSpec)
    screening: ScreeningSpec = Field(default_factory=ScreeningSpec)

    @model_validator(mode="after")
    def _check_references(self) -> "CaseInput":
        for label, items in (
            ("node", self.nodes),
            ("cable", self.cables),
            ("cable type", self.cable_types),
            ("compensator", self.compensators),
        ):
            ids = [item.id for item in items]
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {label} ids: {duplicates}")

        sources = [n.id for n in self.nodes if n.is_source]
        if len(sources) != 1:
            raise ValueError(f"Exactly one source node is required, found {len(sources)}")

        node_ids = {n.id for n in self.nodes}
        type_ids = {t.id for t in self.cable_types}
        for cable in self.cables:
            if cable.node_a_id == cable.node_b_id:
                raise ValueError(f"Cable {cable.id} connects node {cable.node_a_id} to itself")
            for end in (cable.node_a_id, cable.node_b_id):
                if end not in node_ids:
                    raise ValueError(f"Cable {cable.id} references unknown node {end}")
            if cable.type_id not in type_ids:
                raise ValueError(f"Cable {cable.id} references unknown cable type {cable.type_id}")
        for comp in self.compensators:
            if comp.node_id not in node_ids:
                raise ValueError(f"Compensator {comp.id} references unknown node {comp.node_id}")
        return self

    def to_network(self) -> LVNetwork:
        """Build the domain network model."""
        net = LVNetwork(name=self.name, nominal_voltage_v=float(self.nominal_voltage_v))
        for t in self.cable_types:
            net.add_cable_type(CableType(**t.model_dump()))
        for n in self.nodes:
            net.add_node(Node(
                id=n.id,
                lat=n.lat,
                lng=n.lng,
                name=n.name,
                is_source=n.is_source,
                charges_kva=n.charges_kva.to_phase_values(),
                productions_kva=n.productions_kva.to_phase_values(),
                power_factor=float(n.power_factor),
            ))
        for c in self.cables:
            net.add_cable(Cable(
                id=c.id,
                node_a_id=c.node_a_id,
                node_b_id=c.node_b_id,
                type_id=c.type_id,
                coordinates=[Coordinate(lat, lng) for lat, lng in c.coordinates],
                length_m=c.length_m,
            ))
        return net

    def to_compensators(self) -> List[NeutralCompensator]:
        """Build the compensator configurations."""
        return [NeutralCompensator(**c.model_dump()) for c in self.compensators]

import pytest

from lvnet.powerflow.bfs import BackwardForwardSweepSolver
from lvnet.topology import CableType, PhaseValues, create_radial_feeder


@pytest.fixture
def cable_type():
    return CableType(id="BAXB95", r12_ohm_per_km=0.32, r0_ohm_per_km=1.28, label="BAXB 4x95")


@pytest.fixture
def unbalanced_feeder(cable_type):
    """Two 200 m sections; phase A lightly loaded, B and C heavy at the end."""
    return create_radial_feeder(
        cable_type,
        [200.0, 200.0],
        [PhaseValues(), PhaseValues(2.0, 10.0, 10.0)],
        name="Unbalanced",
    )


@pytest.fixture
def balanced_feeder(cable_type):
    return create_radial_feeder(
        cable_type,
        [200.0, 200.0],
        [PhaseValues.uniform(3.0), PhaseValues.uniform(5.0)],
        name="Balanced",
    )


@pytest.fixture
def solver():
    return BackwardForwardSweepSolver()


@pytest.fixture
def case_dict():
    deg_200m = 200.0 * 180.0 / (3.141592653589793 * 6371000.0)
    return {
        "name": "TestCase",
        "cable_types": [
            {"id": "BAXB95", "r12_ohm_per_km": 0.32, "r0_ohm_per_km": 1.28},
        ],
        "nodes": [
            {"id": "SRC", "lat": 50.0, "lng": 4.0, "is_source": True},
            {"id": "N1", "lat": 50.0 + deg_200m, "lng": 4.0},
            {
                "id": "N2",
                "lat": 50.0 + 2 * deg_200m,
                "lng": 4.0,
                "charges_kva": {"A": 2.0, "B": 10.0, "C": 10.0},
            },
        ],
        "cables": [
            {
                "id": "C1",
                "node_a_id": "SRC",
                "node_b_id": "N1",
                "type_id": "BAXB95",
                "coordinates": [[50.0, 4.0], [50.0 + deg_200m, 4.0]],
            },
            {
                "id": "C2",
                "node_a_id": "N1",
                "node_b_id": "N2",
                "type_id": "BAXB95",
                "length_m": 200.0,
            },
        ],
        "compensators": [
            {"id": "EQ1", "node_id": "N2"},
        ],
    }

import pytest

from lvnet.compensation.placement import find_optimal_compensator_node, upstream_impedances
from lvnet.powerflow.base import PowerFlowResult
from lvnet.topology import LVNetwork, Node, PhaseValues, create_radial_feeder


@pytest.fixture
def long_feeder(cable_type):
    """Three 200 m sections, single-phase load at the far end."""
    return create_radial_feeder(
        cable_type,
        [200.0, 200.0, 200.0],
        [PhaseValues(), PhaseValues(), PhaseValues(0.0, 10.0, 0.0)],
    )


def test_upstream_impedances(long_feeder):
    z = upstream_impedances(long_feeder)

    assert z["SRC"] == (0.0, 0.0)
    assert z["N3"][0] == pytest.approx(0.384, rel=1e-6)
    assert z["N3"][1] == pytest.approx(0.768, rel=1e-6)


def test_best_node_balances_current_and_impedance(long_feeder, solver):
    result = solver.solve(long_feeder)

    analysis = find_optimal_compensator_node(long_feeder, result)

    # N3 sits beyond 70 % of the feeder impedance
    assert [c.node_id for c in analysis.candidates] == ["N1", "N2"]
    assert analysis.optimal.node_id == "N1"
    assert analysis.candidates[0].score >= analysis.candidates[1].score
    assert analysis.total_zph_ohm == pytest.approx(0.384, rel=1e-6)
    assert analysis.z_bounds[0] == pytest.approx(0.0384, rel=1e-6)
    assert analysis.z_bounds[1] == pytest.approx(0.2688, rel=1e-6)
    assert analysis.optimal.position_ratio == pytest.approx(1 / 3, rel=1e-6)
    assert analysis.reason is None


def test_no_candidate_on_balanced_feeder(cable_type, solver):
    net = create_radial_feeder(
        cable_type, [200.0, 200.0, 200.0], [PhaseValues.uniform(4.0)] * 3
    )

    analysis = find_optimal_compensator_node(net, solver.solve(net))

    assert analysis.optimal is None
    assert analysis.candidates == []
    assert "No node" in analysis.reason


def test_network_without_cables():
    net = LVNetwork(nodes=[Node(id="SRC", is_source=True)])

    analysis = find_optimal_compensator_node(net, PowerFlowResult(converged=True, iterations=0))

    assert analysis.optimal is None
    assert analysis.reason is not None


def test_to_dict(long_feeder, solver):
    d = find_optimal_compensator_node(long_feeder, solver.solve(long_feeder)).to_dict()

    assert d["optimal"]["node_id"] == "N1"
    assert "I_N=" in d["optimal"]["justification"]

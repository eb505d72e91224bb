import pytest

from lvnet.compensation.injection import build_injection
from lvnet.powerflow.bfs import BackwardForwardSweepSolver
from lvnet.topology import LVNetwork, Node, PhaseValues, create_radial_feeder


def test_unloaded_feeder_sits_at_source_voltage(cable_type, solver):
    net = create_radial_feeder(cable_type, [200.0, 200.0], [PhaseValues(), PhaseValues()])

    r = solver.solve(net)

    assert r.converged
    for v in r.node_voltages.values():
        assert v.a == pytest.approx(230.0)
        assert v.spread == pytest.approx(0.0, abs=1e-9)


def test_source_voltage_override(cable_type):
    net = create_radial_feeder(cable_type, [100.0], [PhaseValues()])

    r = BackwardForwardSweepSolver(source_voltage_v=240.0).solve(net)

    assert r.voltages_at("N1").b == pytest.approx(240.0)


def test_balanced_load_gives_no_spread(balanced_feeder, solver):
    r = solver.solve(balanced_feeder)

    assert r.converged
    v1, v2 = r.voltages_at("N1"), r.voltages_at("N2")
    assert v2.spread < 1e-6
    assert abs(r.neutral_voltages["N2"]) < 1e-6
    # Voltage falls along the feeder
    assert 230.0 > v1.a > v2.a
    assert r.currents_in("C1").neutral_magnitude < 1e-6


def test_light_phase_rises_under_imbalance(unbalanced_feeder, solver):
    r = solver.solve(unbalanced_feeder)
    v = r.voltages_at("N2")

    assert r.converged
    assert v.a == v.max
    assert v.a > 230.0
    assert v.spread > 20.0
    assert r.currents_in("C2").neutral_magnitude > 20.0


def test_neutral_injection_reduces_imbalance(unbalanced_feeder, solver):
    before = solver.solve(unbalanced_feeder)
    after = solver.solve(unbalanced_feeder, [build_injection("N2", 20.0)])

    assert after.converged
    assert after.voltages_at("N2").spread < before.voltages_at("N2").spread
    assert after.currents_in("C2").neutral_magnitude < before.currents_in("C2").neutral_magnitude


def test_production_raises_voltage(cable_type, solver):
    net = create_radial_feeder(
        cable_type, [300.0], [PhaseValues()], productions_kva=[PhaseValues.uniform(5.0)]
    )

    r = solver.solve(net)

    assert r.voltages_at("N1").a > 230.0


def test_injection_at_unknown_node_rejected(unbalanced_feeder, solver):
    with pytest.raises(ValueError):
        solver.solve(unbalanced_feeder, [build_injection("N9", 10.0)])


def test_network_without_source_rejected(solver):
    with pytest.raises(ValueError):
        solver.solve(LVNetwork(nodes=[Node(id="A")]))


def test_solver_parameters_validated():
    with pytest.raises(ValueError):
        BackwardForwardSweepSolver(tolerance_v=0.0)
    with pytest.raises(ValueError):
        BackwardForwardSweepSolver(max_iterations=0)


def test_non_convergence_is_flagged(unbalanced_feeder):
    r = BackwardForwardSweepSolver(max_iterations=1).solve(unbalanced_feeder)

    assert not r.converged
    assert r.iterations == 1


def test_result_frames(unbalanced_feeder, solver):
    r = solver.solve(unbalanced_feeder)

    bus = r.bus_frame()
    cables = r.cable_frame()
    assert list(bus.index) == ["SRC", "N1", "N2"]
    assert bus.loc["N2", "spread_v"] == pytest.approx(r.voltages_at("N2").spread)
    assert list(cables.index) == ["C1", "C2"]
    assert set(r.to_dict()) == {"converged", "iterations", "node_voltages", "neutral_voltages", "cable_currents"}


def test_missing_node_voltage_raises(unbalanced_feeder, solver):
    with pytest.raises(KeyError):
        solver.solve(unbalanced_feeder).voltages_at("N9")

import pytest

from lvnet.compensation.calibration import CME_MAX_ITERATIONS, calibrate_injection
from lvnet.compensation.cme import compute_cme_targets
from lvnet.compensation.coherence import validate_cme_coherence
from lvnet.topology.phases import PhaseValues


class LinearNodeSolver:
    """Spread at the node falls linearly with the injected current."""

    def __init__(self, spread0, slope, mean=230.0):
        self.spread0 = spread0
        self.slope = slope
        self.mean = mean
        self.calls = []

    def spread(self, current):
        return self.spread0 - self.slope * current

    def __call__(self, injection):
        self.calls.append(injection.magnitude)
        s = self.spread(injection.magnitude)
        return PhaseValues(self.mean + s / 2, self.mean - s / 2, self.mean)


class ConstantNodeSolver:
    def __init__(self, voltages):
        self.voltages = voltages
        self.calls = []

    def __call__(self, injection):
        self.calls.append(injection.magnitude)
        return self.voltages


@pytest.fixture
def cme():
    # dU_init = 20 V, target ~4.82 V, I_est ~13.80 A
    return compute_cme_targets(240.0, 220.0, 230.0, 0.3, 0.6)


def test_converges_on_first_solve_when_estimate_is_exact(cme):
    slope = (20.0 - cme.delta_u_equi8) / cme.i_eq_est
    solve = LinearNodeSolver(20.0, slope)

    r = calibrate_injection("N2", cme, solve)

    assert r.converged
    assert r.iterations == 1
    assert r.final_iinj == pytest.approx(cme.i_eq_est)
    assert r.residual <= 0.5
    assert r.node_id == "N2"


def test_converges_after_secant_steps(cme):
    # First solve lands 1 V above the target
    slope = (20.0 - (cme.delta_u_equi8 + 1.0)) / cme.i_eq_est
    solve = LinearNodeSolver(20.0, slope)

    r = calibrate_injection("N2", cme, solve)

    assert r.converged
    assert 2 <= r.iterations <= 6
    assert r.residual <= 0.5
    assert abs(r.delta_u_achieved - cme.delta_u_equi8) <= 0.5
    assert r.delta_u_target == pytest.approx(cme.delta_u_equi8)
    assert len(solve.calls) == r.iterations
    # Reported current is the one whose voltages are reported
    assert r.final_iinj == solve.calls[-1]
    assert r.delta_u_achieved == pytest.approx(solve.spread(r.final_iinj))
    assert not r.thermal_limited


def test_stops_after_max_iterations(cme):
    solve = ConstantNodeSolver(PhaseValues(240.0, 225.0, 230.0))

    r = calibrate_injection("N2", cme, solve)

    assert not r.converged
    assert r.iterations == CME_MAX_ITERATIONS
    assert len(solve.calls) == CME_MAX_ITERATIONS
    assert r.final_iinj == solve.calls[-1]
    assert r.final_iinj >= 0.0
    assert r.voltages_achieved == PhaseValues(240.0, 225.0, 230.0)


def test_custom_iteration_limit(cme):
    solve = ConstantNodeSolver(PhaseValues(240.0, 225.0, 230.0))

    r = calibrate_injection("N2", cme, solve, max_iterations=5)

    assert r.iterations == 5
    assert len(solve.calls) == 5


def test_thermal_ceiling_holds():
    # I_est ~181 A, clamped to 45 A; the spread never moves
    cme = compute_cme_targets(300.0, 200.0, 250.0, 0.15, 0.15)
    solve = ConstantNodeSolver(PhaseValues.uniform(230.0))

    r = calibrate_injection("N2", cme, solve, thermal_window="permanent")

    assert solve.calls[0] == 45.0
    assert max(solve.calls) <= 45.0
    assert r.final_iinj == 45.0
    assert r.thermal_limited
    assert r.thermal_limit == 45.0
    assert not r.converged


def test_longer_window_raises_ceiling():
    cme = compute_cme_targets(300.0, 200.0, 250.0, 0.15, 0.15)
    solve = ConstantNodeSolver(PhaseValues.uniform(230.0))

    r = calibrate_injection("N2", cme, solve, thermal_window="15min")

    assert solve.calls[0] == 80.0
    assert r.thermal_limit == 80.0


def test_aborted_targets_do_not_solve():
    cme = compute_cme_targets(240.0, 220.0, 230.0, 0.05, 0.6)
    solve = ConstantNodeSolver(PhaseValues.uniform(230.0))

    r = calibrate_injection("N2", cme, solve)

    assert solve.calls == []
    assert not r.converged
    assert r.iterations == 0
    assert r.final_iinj == 0.0


def test_balanced_targets_do_not_solve():
    cme = compute_cme_targets(230.0, 230.1, 229.9, 0.3, 0.6)
    solve = ConstantNodeSolver(PhaseValues.uniform(230.0))

    r = calibrate_injection("N2", cme, solve)

    assert solve.calls == []
    assert r.converged
    assert r.iterations == 0
    assert r.final_iinj == 0.0


def test_to_dict(cme):
    slope = (20.0 - cme.delta_u_equi8) / cme.i_eq_est
    d = calibrate_injection("N2", cme, LinearNodeSolver(20.0, slope)).to_dict()

    assert d["converged"] is True
    assert set(d["voltages_achieved"]) == {"A", "B", "C"}


def test_coherence_within_tolerance(cme):
    r = validate_cme_coherence(cme, cme.targets)

    assert r.valid
    assert r.max_error == pytest.approx(0.0)


def test_coherence_reports_per_phase_errors(cme):
    achieved = PhaseValues(cme.u_a_target + 3.0, cme.u_b_target - 0.5, cme.u_c_target)

    r = validate_cme_coherence(cme, achieved)

    assert not r.valid
    assert r.errors.a == pytest.approx(3.0)
    assert r.errors.b == pytest.approx(0.5)
    assert r.errors.c == pytest.approx(0.0)


def test_coherence_custom_tolerance(cme):
    achieved = PhaseValues(cme.u_a_target + 3.0, cme.u_b_target, cme.u_c_target)

    assert validate_cme_coherence(cme, achieved, tolerance_v=5.0).valid

import cmath
import math

import pytest

from lvnet.compensation.load_shift import (
    analyze_current_imbalance,
    load_shift_fraction,
    redistribute_load,
)
from lvnet.resources.compensator import NeutralCompensator
from lvnet.topology.phases import PhaseValues

pytestmark = pytest.mark.filterwarnings("ignore::DeprecationWarning")


@pytest.fixture
def imbalance():
    return analyze_current_imbalance({
        "A": complex(10.0, 0.0),
        "B": cmath.rect(20.0, -2 * math.pi / 3),
        "C": cmath.rect(30.0, 2 * math.pi / 3),
    })


def test_functions_warn():
    with pytest.warns(DeprecationWarning):
        load_shift_fraction(0.3, 0.6)


def test_current_imbalance(imbalance):
    assert imbalance.max_phase == "C"
    assert imbalance.min_phase == "A"
    assert imbalance.imbalance_a == pytest.approx(20.0)
    assert imbalance.imbalance_percent == pytest.approx(100.0)
    # |10 + 20 at -120 + 30 at +120| = 10 * sqrt(3)
    assert imbalance.neutral_current_a == pytest.approx(10.0 * math.sqrt(3))


def test_neutral_current_uses_reference_angles():
    # Magnitudes only; the phasor angles are replaced by the phase references
    r = analyze_current_imbalance({"A": 10j, "B": 10j, "C": 10j})

    assert r.neutral_current_a == pytest.approx(0.0, abs=1e-9)


def test_shift_fraction():
    f = load_shift_fraction(0.3, 0.6)

    assert f == pytest.approx((2 * 0.3 / 0.9) / (0.9119 * math.log(0.3) + 3.8654))
    assert 0.0 <= load_shift_fraction(0.01, 5.0) <= 0.5
    assert 0.0 <= load_shift_fraction(3.0, 0.01) <= 0.5


def test_redistribution_moves_power_to_lightest_phase(imbalance):
    comp = NeutralCompensator(id="EQ", node_id="N", tolerance_a=5.0, max_power_kva=30.0)

    r = redistribute_load(PhaseValues(2.0, 5.0, 10.0), imbalance, comp, 0.3, 0.6)

    shift = 10.0 * load_shift_fraction(0.3, 0.6)
    assert r.shifted_kva == pytest.approx(shift)
    assert (r.from_phase, r.to_phase) == ("C", "A")
    assert r.values.c == pytest.approx(10.0 - shift)
    assert r.values.a == pytest.approx(2.0 + shift)
    assert r.values.total == pytest.approx(17.0)
    assert not r.limited


def test_redistribution_limited_by_power_rating(imbalance):
    comp = NeutralCompensator(id="EQ", node_id="N", tolerance_a=5.0, max_power_kva=1.0)

    r = redistribute_load(PhaseValues(2.0, 5.0, 10.0), imbalance, comp, 0.3, 0.6)

    assert r.limited
    assert r.shifted_kva == pytest.approx(1.0)


def test_redistribution_skipped_within_tolerance(imbalance):
    comp = NeutralCompensator(id="EQ", node_id="N", tolerance_a=50.0)

    r = redistribute_load(PhaseValues(2.0, 5.0, 10.0), imbalance, comp, 0.3, 0.6)

    assert r.shifted_kva == 0.0
    assert r.values == PhaseValues(2.0, 5.0, 10.0)

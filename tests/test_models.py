import logging

import pytest

from lvnet.compensation.models import (
    CMEModel,
    LoadShiftModel,
    get_compensation_model,
)
from lvnet.resources.compensator import CompensationMode, NeutralCompensator
from lvnet.topology import PhaseValues, create_radial_feeder


def test_factory_returns_cme_model():
    model = get_compensation_model("CME")

    assert isinstance(model, CMEModel)
    assert model.mode == CompensationMode.CME


def test_factory_never_returns_load_shift(caplog):
    with caplog.at_level(logging.WARNING):
        model = get_compensation_model(CompensationMode.LOAD_SHIFT)

    assert isinstance(model, CMEModel)
    assert any("deprecated" in rec.message for rec in caplog.records)


def test_factory_rejects_unknown_mode():
    with pytest.raises(ValueError):
        get_compensation_model("SRG2")


def test_compensator_validation():
    with pytest.raises(ValueError):
        NeutralCompensator(id="EQ", node_id="N2", max_power_kva=-1.0)
    c = NeutralCompensator(id="EQ", node_id="N2", thermal_window="3h", mode="cme")
    assert c.mode == CompensationMode.CME
    assert c.thermal_window.value == "3h"


def test_cme_end_to_end(unbalanced_feeder, solver):
    compensator = NeutralCompensator(id="EQ1", node_id="N2")

    outcome = CMEModel().apply(unbalanced_feeder, compensator, solver)

    assert outcome.applied
    assert outcome.cme is not None and not outcome.cme.aborted
    assert outcome.voltages_before.a == outcome.voltages_before.max
    cal = outcome.calibration
    assert 1 <= cal.iterations <= 20
    assert 0.0 < cal.final_iinj <= 45.0
    assert outcome.injection.magnitude == cal.final_iinj
    # Final solve reproduces the calibrated state
    assert outcome.voltages_after.spread == pytest.approx(cal.delta_u_achieved, abs=1e-6)
    assert outcome.voltages_after.spread < outcome.voltages_before.spread
    assert outcome.reduction_percent > 0
    assert outcome.coherence is not None
    assert outcome.to_dict()["mode"] == "CME"


def test_cme_uses_preset_impedances(unbalanced_feeder, solver):
    # Presets below the CME floor abort although the topology is valid
    compensator = NeutralCompensator(id="EQ1", node_id="N2", zph_ohm=0.05, zn_ohm=0.05)

    outcome = CMEModel().apply(unbalanced_feeder, compensator, solver)

    assert outcome.aborted
    assert not outcome.applied
    assert not outcome.succeeded
    assert outcome.injection.magnitude == 0.0
    assert outcome.voltages_after == outcome.voltages_before
    assert outcome.result is outcome.baseline
    assert "Impedance too low" in outcome.reason


def test_cme_aborts_on_short_feeder(cable_type, solver):
    net = create_radial_feeder(cable_type, [20.0], [PhaseValues(1.0, 8.0, 8.0)])
    compensator = NeutralCompensator(id="EQ1", node_id="N1")

    outcome = CMEModel().apply(net, compensator, solver)

    assert outcome.aborted
    assert outcome.cme.delta_u_init > 0
    assert outcome.cme.i_eq_est == 0.0


def test_cme_balanced_node_is_left_alone(balanced_feeder, solver):
    compensator = NeutralCompensator(id="EQ1", node_id="N2")

    outcome = CMEModel().apply(balanced_feeder, compensator, solver)

    assert not outcome.applied
    assert outcome.succeeded
    assert outcome.calibration.iterations == 0


def test_disabled_compensator_skipped(unbalanced_feeder, solver):
    compensator = NeutralCompensator(id="EQ1", node_id="N2", enabled=False)

    outcome = CMEModel().apply(unbalanced_feeder, compensator, solver)

    assert not outcome.applied
    assert outcome.succeeded
    assert outcome.reason == "Compensator disabled"


def test_mode_none_skipped(unbalanced_feeder, solver):
    compensator = NeutralCompensator(id="EQ1", node_id="N2", mode="NONE")

    outcome = get_compensation_model(compensator.mode).apply(unbalanced_feeder, compensator, solver)

    assert not outcome.applied


def test_baseline_is_reused(unbalanced_feeder, solver):
    baseline = solver.solve(unbalanced_feeder)
    compensator = NeutralCompensator(id="EQ1", node_id="N2")

    outcome = CMEModel().apply(unbalanced_feeder, compensator, solver, baseline=baseline)

    assert outcome.baseline is baseline


def test_load_shift_model_is_deprecated(unbalanced_feeder, solver):
    with pytest.warns(DeprecationWarning):
        model = LoadShiftModel()
    compensator = NeutralCompensator(id="EQ1", node_id="N2", mode="LOAD_SHIFT")

    with pytest.warns(DeprecationWarning):
        outcome = model.apply(unbalanced_feeder, compensator, solver)

    assert model.mode == CompensationMode.LOAD_SHIFT
    assert outcome.applied
    assert outcome.load_shift["shifted_kva"] > 0
    assert outcome.load_shift["to_phase"] == "A"
    assert outcome.voltages_after.spread < outcome.voltages_before.spread
    # The caller's network is not modified
    assert unbalanced_feeder.get_node("N2").charges_kva == PhaseValues(2.0, 10.0, 10.0)

"""
Compensation Models
===================

Strategy interface for applying a neutral compensator to a network.

- CMEModel: current injection calibrated against full re-solves (production)
- LoadShiftModel: deprecated load redistribution, regression use only

get_compensation_model() is the production factory; it never returns
the deprecated model.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple, Union
import logging
import warnings

from ..powerflow.base import PowerFlowResult, PowerFlowSolver
from ..resources.compensator import CompensationMode, NeutralCompensator
from ..topology.impedance import compute_equiv_impedances_to_source
from ..topology.network import LVNetwork
from ..topology.phases import PhaseValues
from .calibration import CalibrationResult, calibrate_injection
from .cme import CMEResult, compute_cme_targets
from .coherence import CoherenceResult, validate_cme_coherence
from .injection import Injection, build_injection
from .load_shift import analyze_current_imbalance, redistribute_load
from .report import cme_metrics, log_cme_report, reduction_percent


logger = logging.getLogger(__name__)

# Minimum total shift (kVA) for the load-shift model to re-solve
MIN_SHIFT_KVA = 0.01


@dataclass
class CompensationOutcome:
    """
    Result of applying one compensator.

    Attributes:
        mode: Model that produced the outcome
        compensator_id: Compensator identifier
        node_id: Installation node
        applied: True if the network state was changed
        voltages_before: Node voltages without compensation (V)
        voltages_after: Node voltages in the final state (V)
        baseline: Power-flow result without compensation
        result: Final power-flow result
        injection: Final injection (CME only)
        cme: CME targets (CME only)
        calibration: Calibration loop outcome (CME only)
        coherence: Target vs achieved check (CME only)
        load_shift: Redistribution details (load-shift only)
        reason: Why nothing was applied
    """
    mode: CompensationMode
    compensator_id: str
    node_id: str
    applied: bool
    voltages_before: PhaseValues
    voltages_after: PhaseValues
    baseline: PowerFlowResult
    result: PowerFlowResult
    injection: Optional[Injection] = None
    cme: Optional[CMEResult] = None
    calibration: Optional[CalibrationResult] = None
    coherence: Optional[CoherenceResult] = None
    load_shift: Optional[dict] = None
    reason: Optional[str] = None

    @property
    def reduction_percent(self) -> float:
        return reduction_percent(self.voltages_before.spread, self.voltages_after.spread)

    @property
    def aborted(self) -> bool:
        return self.cme is not None and self.cme.aborted

    @property
    def succeeded(self) -> bool:
        """False if the CME model aborted or the calibration did not converge."""
        if self.aborted:
            return False
        if self.calibration is not None and not self.calibration.converged:
            return False
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "mode": self.mode.value,
            "compensator_id": self.compensator_id,
            "node_id": self.node_id,
            "applied": self.applied,
            "succeeded": self.succeeded,
            "reason": self.reason,
            "voltages_before": self.voltages_before.to_dict(),
            "voltages_after": self.voltages_after.to_dict(),
            "reduction_percent": self.reduction_percent,
            "injection": self.injection.to_dict() if self.injection else None,
            "cme": self.cme.to_dict() if self.cme else None,
            "calibration": self.calibration.to_dict() if self.calibration else None,
            "coherence": self.coherence.to_dict() if self.coherence else None,
            "load_shift": self.load_shift,
        }


class CompensationModel(ABC):
    """
    Abstract base class for compensation models.

    Args:
        log: Diagnostic sink (defaults to the module logger)
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    @property
    @abstractmethod
    def mode(self) -> CompensationMode:
        pass

    @abstractmethod
    def apply(
        self,
        network: LVNetwork,
        compensator: NeutralCompensator,
        solver: PowerFlowSolver,
        baseline: Optional[PowerFlowResult] = None,
    ) -> CompensationOutcome:
        """
        Apply the compensator to the network.

        Args:
            network: Network with per-phase loads
            compensator: Device configuration
            solver: Load-flow solver
            baseline: Uncompensated solution, solved here if omitted

        Returns:
            CompensationOutcome
        """
        pass

    def _not_applied(
        self,
        compensator: NeutralCompensator,
        baseline: PowerFlowResult,
        reason: str,
        **extra,
    ) -> CompensationOutcome:
        voltages = baseline.node_voltages.get(compensator.node_id, PhaseValues())
        return CompensationOutcome(
            mode=self.mode,
            compensator_id=compensator.id,
            node_id=compensator.node_id,
            applied=False,
            voltages_before=voltages,
            voltages_after=voltages,
            baseline=baseline,
            result=baseline,
            reason=reason,
            **extra,
        )

    def _precheck(
        self,
        network: LVNetwork,
        compensator: NeutralCompensator,
        solver: PowerFlowSolver,
        baseline: Optional[PowerFlowResult],
    ) -> Tuple[PowerFlowResult, Optional[str]]:
        baseline = baseline or solver.solve(network)
        if not compensator.enabled:
            return baseline, "Compensator disabled"
        if compensator.mode == CompensationMode.NONE:
            return baseline, "Compensation mode NONE"
        if compensator.node_id not in baseline.node_voltages:
            return baseline, f"Node {compensator.node_id} has no load-flow result"
        return baseline, None

    def _impedances(self, network: LVNetwork, compensator: NeutralCompensator) -> Tuple[float, float]:
        """Compensator presets where set, otherwise the upstream path resistances."""
        zph, zn = compensator.zph_ohm, compensator.zn_ohm
        if compensator.has_preset_impedances:
            return zph, zn
        resolved = compute_equiv_impedances_to_source(compensator.node_id, network, log=self.log)
        return (
            zph if zph > 0 else resolved.zph_ohm,
            zn if zn > 0 else resolved.zn_ohm,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mode={self.mode.value})"


class CMEModel(CompensationModel):
    """
    EQUI8 as a shunt current source.

    Baseline solve, CME targets from the upstream impedances, calibration
    of the injected current against re-solves, final solve and coherence
    check. An impedance below the CME floor aborts with no effect on the
    network.
    """

    @property
    def mode(self) -> CompensationMode:
        return CompensationMode.CME

    def apply(
        self,
        network: LVNetwork,
        compensator: NeutralCompensator,
        solver: PowerFlowSolver,
        baseline: Optional[PowerFlowResult] = None,
    ) -> CompensationOutcome:
        baseline, skip_reason = self._precheck(network, compensator, solver, baseline)
        if skip_reason:
            self.log.info("EQUI8 %s skipped: %s", compensator.id, skip_reason)
            return self._not_applied(compensator, baseline, skip_reason)

        node_id = compensator.node_id
        before = baseline.voltages_at(node_id)
        zph, zn = self._impedances(network, compensator)

        cme = compute_cme_targets(before.a, before.b, before.c, zph, zn, log=self.log)

        if cme.aborted:
            log_cme_report(cme_metrics(node_id, cme), log=self.log)
            return self._not_applied(
                compensator, baseline, cme.abort_reason,
                cme=cme, injection=build_injection(node_id, 0.0),
            )

        calibration = calibrate_injection(
            node_id,
            cme,
            solver.node_voltage_solver(network, node_id),
            compensator.thermal_window,
            log=self.log,
        )

        if calibration.iterations == 0:
            log_cme_report(cme_metrics(node_id, cme, calibration), log=self.log)
            return self._not_applied(
                compensator, baseline, "Phase voltages already balanced",
                cme=cme, calibration=calibration, injection=build_injection(node_id, 0.0),
            )

        injection = build_injection(node_id, calibration.final_iinj)
        final = solver.solve(network, [injection])
        after = final.voltages_at(node_id)

        coherence = validate_cme_coherence(cme, after, log=self.log)
        log_cme_report(cme_metrics(node_id, cme, calibration, coherence), log=self.log)

        return CompensationOutcome(
            mode=self.mode,
            compensator_id=compensator.id,
            node_id=node_id,
            applied=True,
            voltages_before=before,
            voltages_after=after,
            baseline=baseline,
            result=final,
            injection=injection,
            cme=cme,
            calibration=calibration,
            coherence=coherence,
        )


class LoadShiftModel(CompensationModel):
    """
    Deprecated: redistributes mono-phase power at the node instead of
    injecting current. Only for comparison with the CME model.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        warnings.warn(
            "LoadShiftModel is deprecated, use CMEModel",
            DeprecationWarning,
            stacklevel=2,
        )
        super().__init__(log=log)

    @property
    def mode(self) -> CompensationMode:
        return CompensationMode.LOAD_SHIFT

    def apply(
        self,
        network: LVNetwork,
        compensator: NeutralCompensator,
        solver: PowerFlowSolver,
        baseline: Optional[PowerFlowResult] = None,
    ) -> CompensationOutcome:
        baseline, skip_reason = self._precheck(network, compensator, solver, baseline)
        if skip_reason:
            return self._not_applied(compensator, baseline, skip_reason)

        node_id = compensator.node_id
        cable = network.upstream_cable(node_id)
        currents = baseline.currents_in(cable.id) if cable else None
        if currents is None:
            return self._not_applied(compensator, baseline, f"No upstream cable currents at {node_id}")

        imbalance = analyze_current_imbalance(currents.i_phase)
        zph, zn = self._impedances(network, compensator)
        node = network.get_node(node_id)

        charges = redistribute_load(node.charges_kva, imbalance, compensator, zph, zn)
        productions = redistribute_load(node.productions_kva, imbalance, compensator, zph, zn)
        shifted_kva = charges.shifted_kva + productions.shifted_kva

        details = {
            "imbalance": imbalance.to_dict(),
            "shifted_kva": shifted_kva,
            "from_phase": imbalance.max_phase,
            "to_phase": imbalance.min_phase,
            "limited": charges.limited or productions.limited,
            "charges_kva": charges.values.to_dict(),
            "productions_kva": productions.values.to_dict(),
        }

        if shifted_kva <= MIN_SHIFT_KVA:
            return self._not_applied(
                compensator, baseline,
                f"Neutral current {imbalance.neutral_current_a:.1f} A within tolerance",
                load_shift=details,
            )

        shifted = network.with_node_power(node_id, charges.values, productions.values)
        final = solver.solve(shifted)

        self.log.info(
            "EQUI8 load shift at %s: %.2f kVA moved %s -> %s",
            node_id, shifted_kva, imbalance.max_phase, imbalance.min_phase,
        )

        return CompensationOutcome(
            mode=self.mode,
            compensator_id=compensator.id,
            node_id=node_id,
            applied=True,
            voltages_before=baseline.voltages_at(node_id),
            voltages_after=final.voltages_at(node_id),
            baseline=baseline,
            result=final,
            load_shift=details,
        )


def get_compensation_model(
    mode: Union[CompensationMode, str] = CompensationMode.CME,
    log: Optional[logging.Logger] = None,
) -> CompensationModel:
    """
    Factory for the production compensation model.

    LOAD_SHIFT requests are served by the CME model. NONE also maps to the
    CME model, which skips devices whose mode is NONE.

    Args:
        mode: CompensationMode or its string value

    Returns:
        CompensationModel instance
    """
    log = log or logger

    if not isinstance(mode, CompensationMode):
        try:
            mode = CompensationMode(str(mode).upper())
        except ValueError:
            raise ValueError(
                f"Unknown compensation mode: {mode!r}. "
                f"Available: {[m.value for m in CompensationMode]}"
            ) from None

    if mode == CompensationMode.LOAD_SHIFT:
        log.warning("EQUI8 LOAD_SHIFT mode is deprecated, using CME")

    return CMEModel(log=log)

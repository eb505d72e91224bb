"""
CME Calibration Loop
====================

Iteratively re-solves the network with the compensator injection and
adjusts the injected current until the voltage spread at the node is
within CME_TOLERANCE_V of the CME target, or CME_MAX_ITERATIONS solves
have been spent.

The solver is an opaque callable: it receives an Injection and returns
the phase-neutral voltages at the compensator node.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Union
import logging

from ..resources.compensator import ThermalWindow
from ..topology.phases import PhaseValues
from .cme import CMEResult
from .injection import Injection, build_injection
from .secant import adjust_secant
from .thermal import clamp_by_thermal


logger = logging.getLogger(__name__)

CME_TOLERANCE_V = 0.5
CME_MAX_ITERATIONS = 20

# Fraction of the ceiling above which the result is reported as thermally limited
THERMAL_LIMITED_FRACTION = 0.99

NodeVoltageSolver = Callable[[Injection], PhaseValues]


@dataclass(frozen=True)
class CalibrationResult:
    """
    Outcome of the calibration loop.

    final_iinj is always the current of the last solve, so that it matches
    voltages_achieved, including when the loop ran out of iterations.
    """
    node_id: str
    converged: bool
    iterations: int
    final_iinj: float
    delta_u_achieved: float
    delta_u_target: float
    residual: float
    thermal_limited: bool
    thermal_limit: float
    voltages_achieved: PhaseValues
    voltages_target: PhaseValues

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "node_id": self.node_id,
            "converged": self.converged,
            "iterations": self.iterations,
            "final_iinj": self.final_iinj,
            "delta_u_achieved": self.delta_u_achieved,
            "delta_u_target": self.delta_u_target,
            "residual": self.residual,
            "thermal_limited": self.thermal_limited,
            "thermal_limit": self.thermal_limit,
            "voltages_achieved": self.voltages_achieved.to_dict(),
            "voltages_target": self.voltages_target.to_dict(),
        }


def calibrate_injection(
    node_id: str,
    cme: CMEResult,
    solve: NodeVoltageSolver,
    thermal_window: Union[ThermalWindow, str] = ThermalWindow.PERMANENT,
    tolerance_v: float = CME_TOLERANCE_V,
    max_iterations: int = CME_MAX_ITERATIONS,
    log: Optional[logging.Logger] = None,
) -> CalibrationResult:
    """
    Calibrate the compensator current against full network solves.

    Args:
        node_id: Compensator node
        cme: Targets from compute_cme_targets
        solve: Callable returning node voltages for a given injection
        thermal_window: Duration class for the current ceiling
        tolerance_v: Convergence tolerance on the spread (V)
        max_iterations: Maximum number of solves
        log: Diagnostic sink (defaults to the module logger)

    Returns:
        CalibrationResult. Aborted or balanced CME results do not call the
        solver: the result has zero iterations and zero current.
    """
    log = log or logger

    clamp = clamp_by_thermal(cme.i_eq_est, thermal_window, log=log)
    target = cme.delta_u_equi8

    if cme.aborted or cme.i_eq_est <= 0:
        initial = cme.targets
        return CalibrationResult(
            node_id=node_id,
            converged=not cme.aborted,
            iterations=0,
            final_iinj=0.0,
            delta_u_achieved=cme.delta_u_init,
            delta_u_target=target,
            residual=abs(cme.delta_u_init - target),
            thermal_limited=False,
            thermal_limit=clamp.limit,
            voltages_achieved=initial,
            voltages_target=initial,
        )

    iinj = clamp.i_clamped
    iinj_prev = 0.0
    du_prev = cme.delta_u_init

    converged = False
    iterations = 0
    voltages = cme.targets
    du_achieved = cme.delta_u_init
    residual = abs(du_achieved - target)

    log.info(
        "EQUI8 CME calibration at %s: target dU=%.2f V, I0=%.2f A (limit %.0f A)",
        node_id, target, iinj, clamp.limit,
    )

    for iteration in range(1, max_iterations + 1):
        iterations = iteration
        voltages = solve(build_injection(node_id, iinj))
        du_achieved = voltages.spread
        residual = abs(du_achieved - target)

        log.debug(
            "  iter %d: I=%.2f A, dU=%.2f V, residual=%.3f V",
            iteration, iinj, du_achieved, residual,
        )

        if residual <= tolerance_v:
            converged = True
            break

        if iteration == max_iterations:
            break

        next_iinj = adjust_secant(
            iinj, du_achieved, target, iinj_prev, du_prev, clamp.limit
        )
        iinj_prev, du_prev = iinj, du_achieved
        iinj = next_iinj

    thermal_limited = iinj >= THERMAL_LIMITED_FRACTION * clamp.limit

    if converged:
        log.info(
            "EQUI8 CME converged in %d iterations: I=%.2f A, dU=%.2f V",
            iterations, iinj, du_achieved,
        )
    else:
        log.warning(
            "EQUI8 CME did not converge after %d iterations: I=%.2f A, "
            "dU=%.2f V, target=%.2f V",
            iterations, iinj, du_achieved, target,
        )
    if thermal_limited:
        log.warning(
            "EQUI8 CME current %.2f A at thermal limit %.0f A", iinj, clamp.limit
        )

    return CalibrationResult(
        node_id=node_id,
        converged=converged,
        iterations=iterations,
        final_iinj=iinj,
        delta_u_achieved=du_achieved,
        delta_u_target=target,
        residual=residual,
        thermal_limited=thermal_limited,
        thermal_limit=clamp.limit,
        voltages_achieved=voltages,
        voltages_target=cme.targets,
    )

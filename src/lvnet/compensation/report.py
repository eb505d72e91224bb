"""
CME Diagnostics Report
======================

Collects the metrics of one compensator run into a flat dict and
writes them to the log.
"""

from typing import Optional
import logging

from .calibration import CalibrationResult
from .cme import CMEResult
from .coherence import CoherenceResult


logger = logging.getLogger(__name__)


def reduction_percent(delta_u_init: float, delta_u_final: float) -> float:
    """Relative reduction of the voltage spread (%)."""
    if delta_u_init <= 0:
        return 0.0
    return (delta_u_init - delta_u_final) / delta_u_init * 100.0


def cme_metrics(
    node_id: str,
    cme: CMEResult,
    calibration: Optional[CalibrationResult] = None,
    coherence: Optional[CoherenceResult] = None,
) -> dict:
    """
    Flat metrics dict for one compensator.

    Returns:
        Dict with targets, achieved spread, injected current and flags
    """
    achieved = calibration.delta_u_achieved if calibration else cme.delta_u_init
    metrics = {
        "node_id": node_id,
        "aborted": cme.aborted,
        "abort_reason": cme.abort_reason,
        "u_mean_v": cme.u_mean,
        "delta_u_init_v": cme.delta_u_init,
        "delta_u_target_v": cme.delta_u_equi8,
        "delta_u_achieved_v": achieved,
        "reduction_percent": reduction_percent(cme.delta_u_init, achieved),
        "i_eq_est_a": cme.i_eq_est,
        "i_injected_a": calibration.final_iinj if calibration else 0.0,
        "converged": calibration.converged if calibration else False,
        "iterations": calibration.iterations if calibration else 0,
        "thermal_limited": calibration.thermal_limited if calibration else False,
        "coherent": coherence.valid if coherence else None,
    }
    return metrics


def log_cme_report(metrics: dict, log: Optional[logging.Logger] = None) -> None:
    log = log or logger

    if metrics["aborted"]:
        log.warning("EQUI8 CME at %s aborted: %s", metrics["node_id"], metrics["abort_reason"])
        return

    log.info(
        "EQUI8 CME at %s: dU %.2f -> %.2f V (target %.2f V, -%.1f%%), "
        "I=%.2f A (est. %.2f A), %d iter, converged=%s, thermal_limited=%s, coherent=%s",
        metrics["node_id"],
        metrics["delta_u_init_v"],
        metrics["delta_u_achieved_v"],
        metrics["delta_u_target_v"],
        metrics["reduction_percent"],
        metrics["i_injected_a"],
        metrics["i_eq_est_a"],
        metrics["iterations"],
        metrics["converged"],
        metrics["thermal_limited"],
        metrics["coherent"],
    )

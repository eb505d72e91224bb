"""
Compensation Module
===================

EQUI8 neutral compensator engine (CME mode):
- CME target voltages and current estimate
- Injection phasors and thermal ceilings
- Damped secant calibration against full load-flow re-solves
- Coherence check and diagnostics
- Compensation model strategies and optimal placement
"""

from .cme import CMEResult, compute_cme_targets
from .injection import Injection, build_injection
from .thermal import THERMAL_LIMITS_A, ThermalClamp, clamp_by_thermal, thermal_limit
from .secant import adjust_secant
from .calibration import CME_MAX_ITERATIONS, CME_TOLERANCE_V, CalibrationResult, calibrate_injection
from .coherence import CoherenceResult, validate_cme_coherence
from .report import cme_metrics, log_cme_report
from .models import (
    CMEModel,
    CompensationModel,
    CompensationOutcome,
    LoadShiftModel,
    get_compensation_model,
)
from .placement import PlacementAnalysis, PlacementCandidate, find_optimal_compensator_node

__all__ = [
    "CMEResult",
    "compute_cme_targets",
    "Injection",
    "build_injection",
    "THERMAL_LIMITS_A",
    "ThermalClamp",
    "clamp_by_thermal",
    "thermal_limit",
    "adjust_secant",
    "CME_MAX_ITERATIONS",
    "CME_TOLERANCE_V",
    "CalibrationResult",
    "calibrate_injection",
    "CoherenceResult",
    "validate_cme_coherence",
    "cme_metrics",
    "log_cme_report",
    "CMEModel",
    "CompensationModel",
    "CompensationOutcome",
    "LoadShiftModel",
    "get_compensation_model",
    "PlacementAnalysis",
    "PlacementCandidate",
    "find_optimal_compensator_node",
]

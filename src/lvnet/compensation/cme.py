"""
CME Target Calculator
=====================

Vendor formulas for the EQUI8 in CME (current injection) mode:

    dU_EQUI8 = [1 / (0.9119 ln(Zph) + 3.8654)] * dU_init * [2 Zph / (Zph + Zn)]
    ratio_ph = (U_ph - U_mean) / dU_init
    U*_ph    = U_mean + ratio_ph * dU_EQUI8
    I_EQUI8  = 0.392 * Zph^(-0.8065) * dU_init * [2 Zph / (Zph + Zn)]

The constants are empirical fits; they are calibration data and must not
be tuned. Valid only for Zph >= 0.15 ohm and Zn >= 0.15 ohm.
Expected accuracy: +/-2 V on voltages, +/-5 A on current.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import math

from ..topology.impedance import CME_IMPEDANCE_MIN_OHM
from ..topology.phases import PhaseValues


logger = logging.getLogger(__name__)

# Spread below which the phases are considered balanced (V)
CME_BALANCED_SPREAD_V = 0.5

CME_LN_SLOPE = 0.9119
CME_LN_OFFSET = 3.8654
CME_CURRENT_COEFF = 0.392
CME_CURRENT_EXPONENT = -0.8065


@dataclass(frozen=True)
class CMEResult:
    """
    CME targets for one compensator node.

    Attributes:
        u_a_target, u_b_target, u_c_target: Target phase voltages (V)
        u_mean: Mean of the initial phase voltages (V)
        delta_u_init: Initial spread max - min (V)
        delta_u_equi8: Target spread after compensation (V)
        i_eq_est: Theoretical injected current (A)
        ratio_a, ratio_b, ratio_c: Per-phase deviation from the mean / dU_init
        zph_valid, zn_valid: Impedance floor checks
        aborted: True if the model could not be applied
        abort_reason: Human-readable reason when aborted
    """
    u_a_target: float
    u_b_target: float
    u_c_target: float
    u_mean: float
    delta_u_init: float
    delta_u_equi8: float
    i_eq_est: float
    ratio_a: float
    ratio_b: float
    ratio_c: float
    zph_valid: bool
    zn_valid: bool
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def targets(self) -> PhaseValues:
        return PhaseValues(self.u_a_target, self.u_b_target, self.u_c_target)

    @property
    def balanced(self) -> bool:
        """Not aborted and nothing to compensate."""
        return not self.aborted and self.i_eq_est == 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "u_a_target": self.u_a_target,
            "u_b_target": self.u_b_target,
            "u_c_target": self.u_c_target,
            "u_mean": self.u_mean,
            "delta_u_init": self.delta_u_init,
            "delta_u_equi8": self.delta_u_equi8,
            "i_eq_est": self.i_eq_est,
            "ratio_a": self.ratio_a,
            "ratio_b": self.ratio_b,
            "ratio_c": self.ratio_c,
            "zph_valid": self.zph_valid,
            "zn_valid": self.zn_valid,
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
        }


def compute_cme_targets(
    u1: float,
    u2: float,
    u3: float,
    zph: float,
    zn: float,
    log: Optional[logging.Logger] = None,
) -> CMEResult:
    """
    Apply the CME formulas to the natural phase voltages at a node.

    Args:
        u1, u2, u3: Phase A/B/C voltages before compensation (V)
        zph: Phase-equivalent upstream impedance (ohm)
        zn: Neutral-equivalent upstream impedance (ohm)
        log: Diagnostic sink (defaults to the module logger)

    Returns:
        CMEResult. Aborted (voltages unchanged, no current) when an
        impedance is below the floor; unchanged with zero current when
        the spread is below 0.5 V.
    """
    log = log or logger

    voltages = PhaseValues(u1, u2, u3)
    u_mean = voltages.mean
    delta_u_init = voltages.spread

    zph_valid = zph >= CME_IMPEDANCE_MIN_OHM
    zn_valid = zn >= CME_IMPEDANCE_MIN_OHM

    if not (zph_valid and zn_valid):
        reason = (
            f"Impedance too low: Zph={zph:.4f} ohm, Zn={zn:.4f} ohm "
            f"(min={CME_IMPEDANCE_MIN_OHM} ohm)"
        )
        log.error("EQUI8 CME abort: %s", reason)
        return CMEResult(
            u_a_target=u1,
            u_b_target=u2,
            u_c_target=u3,
            u_mean=u_mean,
            delta_u_init=delta_u_init,
            delta_u_equi8=0.0,
            i_eq_est=0.0,
            ratio_a=0.0,
            ratio_b=0.0,
            ratio_c=0.0,
            zph_valid=zph_valid,
            zn_valid=zn_valid,
            aborted=True,
            abort_reason=reason,
        )

    zph_eff = max(CME_IMPEDANCE_MIN_OHM, zph)
    zn_eff = max(CME_IMPEDANCE_MIN_OHM, zn)

    if delta_u_init < CME_BALANCED_SPREAD_V:
        log.info(
            "EQUI8 CME: low imbalance (dU=%.2f V < %s V), no compensation",
            delta_u_init, CME_BALANCED_SPREAD_V,
        )
        return CMEResult(
            u_a_target=u1,
            u_b_target=u2,
            u_c_target=u3,
            u_mean=u_mean,
            delta_u_init=delta_u_init,
            delta_u_equi8=delta_u_init,
            i_eq_est=0.0,
            ratio_a=0.0,
            ratio_b=0.0,
            ratio_c=0.0,
            zph_valid=True,
            zn_valid=True,
        )

    ln_zph = math.log(zph_eff)
    denom = CME_LN_SLOPE * ln_zph + CME_LN_OFFSET
    impedance_factor = (2 * zph_eff) / (zph_eff + zn_eff)
    delta_u_equi8 = (1 / denom) * delta_u_init * impedance_factor

    ratio_a = (u1 - u_mean) / delta_u_init
    ratio_b = (u2 - u_mean) / delta_u_init
    ratio_c = (u3 - u_mean) / delta_u_init

    u_a_target = u_mean + ratio_a * delta_u_equi8
    u_b_target = u_mean + ratio_b * delta_u_equi8
    u_c_target = u_mean + ratio_c * delta_u_equi8

    i_eq_est = CME_CURRENT_COEFF * math.pow(zph_eff, CME_CURRENT_EXPONENT) * delta_u_init * impedance_factor

    log.debug(
        "EQUI8 CME formulas: Zph=%.4f ohm, Zn=%.4f ohm, ln(Zph)=%.4f, denom=%.4f, "
        "factor=%.4f, dU_init=%.2f V, dU_target=%.2f V, I_est=%.2f A, "
        "U*=(%.2f, %.2f, %.2f) V",
        zph_eff, zn_eff, ln_zph, denom, impedance_factor, delta_u_init,
        delta_u_equi8, i_eq_est, u_a_target, u_b_target, u_c_target,
    )

    return CMEResult(
        u_a_target=u_a_target,
        u_b_target=u_b_target,
        u_c_target=u_c_target,
        u_mean=u_mean,
        delta_u_init=delta_u_init,
        delta_u_equi8=delta_u_equi8,
        i_eq_est=i_eq_est,
        ratio_a=ratio_a,
        ratio_b=ratio_b,
        ratio_c=ratio_c,
        zph_valid=True,
        zn_valid=True,
    )

"""
Secant Current Adjustment
=========================

One damped secant step on the injected current, driving the achieved
voltage spread toward the CME target.
"""

SECANT_DAMPING = 0.7
SECANT_MAX_CHANGE = 0.2
SECANT_FIRST_STEP_GAIN = 0.5
SECANT_FLAT_SLOPE_GAIN = 1.05
SECANT_EPS = 1e-6


def adjust_secant(
    iinj_current: float,
    du_achieved: float,
    du_target: float,
    iinj_prev: float,
    du_prev: float,
    thermal_limit: float,
) -> float:
    """
    Next injected current.

    With no usable history (first iteration, or the spread did not move)
    the step is proportional to the spread ratio. Otherwise the slope
    dU/dI from the last two points gives the secant estimate, whose change
    is limited to +/-20 % of the current value and damped by 0.7. When the
    spread moved while the current did not, the current is held.

    Args:
        iinj_current: Current used in the last solve (A)
        du_achieved: Spread obtained with iinj_current (V)
        du_target: CME target spread (V)
        iinj_prev: Previous current (A), 0 on the first iteration
        du_prev: Spread obtained with iinj_prev (V)
        thermal_limit: Active thermal ceiling (A)

    Returns:
        New current in [0, thermal_limit]
    """
    if iinj_prev == 0 or abs(du_achieved - du_prev) < SECANT_EPS:
        ratio = du_achieved / du_target if du_target > 0 else 1.0
        raw = iinj_current * (1 + (1 - ratio) * SECANT_FIRST_STEP_GAIN)
        damped = iinj_current + (raw - iinj_current) * SECANT_DAMPING
        return max(0.0, min(damped, thermal_limit))

    # Spread moved at a constant current: infinite slope, hold the current
    if iinj_current == iinj_prev:
        return max(0.0, min(iinj_current, thermal_limit))

    slope = (du_achieved - du_prev) / (iinj_current - iinj_prev)

    if abs(slope) < SECANT_EPS:
        return max(0.0, min(iinj_current * SECANT_FLAT_SLOPE_GAIN, thermal_limit))

    raw = iinj_current - (du_achieved - du_target) / slope

    max_change = abs(iinj_current) * SECANT_MAX_CHANGE
    delta = max(-max_change, min(max_change, raw - iinj_current))

    return max(0.0, min(iinj_current + delta * SECANT_DAMPING, thermal_limit))

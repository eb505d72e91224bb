"""
Resources Module
================

Device models attached to the LV network:
- Neutral compensator (EQUI8)
"""

from .compensator import CompensationMode, NeutralCompensator, ThermalWindow

__all__ = ["CompensationMode", "NeutralCompensator", "ThermalWindow"]

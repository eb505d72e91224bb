"""
Configuration Module
====================

Validated case inputs (JSON) and their conversion to the domain model.
"""

from .models import (
    CableSpec,
    CableTypeSpec,
    CaseInput,
    CompensatorSpec,
    NodeSpec,
    PhaseSpec,
    ScreeningSpec,
    SolverSpec,
)

__all__ = [
    "CableSpec",
    "CableTypeSpec",
    "CaseInput",
    "CompensatorSpec",
    "NodeSpec",
    "PhaseSpec",
    "ScreeningSpec",
    "SolverSpec",
]

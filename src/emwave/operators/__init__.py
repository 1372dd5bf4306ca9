"""Element-level electromagnetic operators."""

from .base import BaseOperator, available_operators, get_operator, register_operator
from .electromagnetic import EMWaveOperator, assemble_emwave, wave_coefficients
from .farfield import (
    FarFieldKind,
    FarFieldOperator,
    FarFieldResult,
    apply_em_farfield_direct,
    reflection_coefficient,
    transmission_coefficient,
)

__all__ = [
    # Base functionality
    "BaseOperator",
    "register_operator",
    "get_operator",
    "available_operators",
    # Volume kernel
    "assemble_emwave",
    "wave_coefficients",
    "EMWaveOperator",
    # Boundary kernel
    "apply_em_farfield_direct",
    "reflection_coefficient",
    "transmission_coefficient",
    "FarFieldKind",
    "FarFieldResult",
    "FarFieldOperator",
]

"""emwave: element assembly for frequency-domain electromagnetic waves.

Residual and analytic Jacobian of the curl-curl wave equations at one
quadrature point, split into twelve real unknowns, plus the far-field
impedance boundary condition.
"""

__version__ = "0.1.0"
__license__ = "BSD-3-Clause"

from .models import (
    ALL_FIELD_VARIABLES,
    TEMPERATURE,
    ConstantOptics,
    ElementContext,
    EquationTerms,
    Family,
    FieldState,
    FieldVariable,
    LinearOptics,
    LocalAccumulator,
    MaterialConstants,
    Part,
    ProblemDescription,
    mass_fraction,
    mesh_displacement,
)
from .operators import (
    EMWaveOperator,
    FarFieldKind,
    FarFieldOperator,
    apply_em_farfield_direct,
    assemble_emwave,
    get_operator,
)
from .services import AssemblyEngine, ElementJob
from .utils import (
    ConfigManager,
    EMWaveConfig,
    EMWaveError,
    setup_logging,
    setup_logging_from_config,
)

__all__ = [
    # Field variables
    "Family",
    "Part",
    "FieldVariable",
    "ALL_FIELD_VARIABLES",
    "TEMPERATURE",
    "mesh_displacement",
    "mass_fraction",
    "FieldState",
    # Element data
    "ElementContext",
    "LocalAccumulator",
    "ProblemDescription",
    "EquationTerms",
    # Materials
    "MaterialConstants",
    "ConstantOptics",
    "LinearOptics",
    # Kernels
    "assemble_emwave",
    "apply_em_farfield_direct",
    "FarFieldKind",
    "EMWaveOperator",
    "FarFieldOperator",
    "get_operator",
    # Services
    "AssemblyEngine",
    "ElementJob",
    # Utilities
    "ConfigManager",
    "EMWaveConfig",
    "EMWaveError",
    "setup_logging",
    "setup_logging_from_config",
]

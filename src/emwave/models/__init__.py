"""Data model of the element assembly: unknowns, element data, materials."""

from .element import BasisFunctions, ElementContext, LocalAccumulator, SurfaceContext
from .fields import (
    ALL_FIELD_VARIABLES,
    TEMPERATURE,
    Family,
    FieldState,
    FieldVariable,
    Part,
    Variable,
    mass_fraction,
    mesh_displacement,
)
from .materials import (
    CoefficientResolver,
    ConstantOptics,
    LinearOptics,
    MaterialConstants,
    OpticalProperties,
)
from .problem import EquationTerms, ProblemDescription, TermType

__all__ = [
    "Family",
    "Part",
    "FieldVariable",
    "Variable",
    "ALL_FIELD_VARIABLES",
    "TEMPERATURE",
    "mesh_displacement",
    "mass_fraction",
    "FieldState",
    "BasisFunctions",
    "ElementContext",
    "SurfaceContext",
    "LocalAccumulator",
    "TermType",
    "EquationTerms",
    "ProblemDescription",
    "MaterialConstants",
    "OpticalProperties",
    "CoefficientResolver",
    "ConstantOptics",
    "LinearOptics",
]

"""Problem description: which equations, terms and unknowns are active."""

import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional

from ..utils.exceptions import InvalidSelectorError, ValidationError
from ..utils.logging_config import get_logger
from .fields import (
    ALL_FIELD_VARIABLES,
    TEMPERATURE,
    FieldVariable,
    VariableKey,
    mass_fraction,
    mesh_displacement,
)

logger = get_logger(__name__)


class TermType(enum.Flag):
    """Weak-form term types of the wave equations."""

    NONE = 0
    ADVECTION = enum.auto()
    DIFFUSION = enum.auto()


@dataclass(frozen=True)
class EquationTerms:
    """Term multipliers of one equation; ``None`` marks an inactive term."""

    advection: Optional[float] = 1.0
    diffusion: Optional[float] = 1.0

    @property
    def flags(self) -> TermType:
        flags = TermType.NONE
        if self.advection is not None:
            flags |= TermType.ADVECTION
        if self.diffusion is not None:
            flags |= TermType.DIFFUSION
        return flags

    def multiplier(self, term: TermType) -> float:
        """Multiplier of ``term``, 0 when the term is inactive."""
        value = self.advection if term is TermType.ADVECTION else self.diffusion
        return 0.0 if value is None else float(value)


@dataclass
class ProblemDescription:
    """Active equations and variables of the current material block.

    Parameters
    ----------
    equations : Dict[FieldVariable, EquationTerms]
        Active EM equations with their term multipliers
    active_variables : Iterable[VariableKey]
        Unknowns present in the problem; Jacobian blocks are produced only
        for these
    num_dim : int
        Spatial dimension of the mesh
    num_species : int
        Number of species mass fraction unknowns
    """

    equations: Dict[FieldVariable, EquationTerms] = field(default_factory=dict)
    active_variables: FrozenSet[VariableKey] = frozenset()
    num_dim: int = 3
    num_species: int = 0

    def __post_init__(self):
        if self.num_dim not in (1, 2, 3):
            raise ValidationError(f"num_dim must be 1, 2 or 3, got {self.num_dim}",
                                  invalid_field="num_dim", actual_value=self.num_dim)
        for equation in self.equations:
            if not isinstance(equation, FieldVariable):
                raise InvalidSelectorError("Equations must be keyed by FieldVariable",
                                           selector=equation)
        self.active_variables = frozenset(self.active_variables)

    def is_equation_active(self, equation: FieldVariable) -> bool:
        terms = self.equations.get(equation)
        return terms is not None and terms.flags != TermType.NONE

    def is_variable_active(self, variable: VariableKey) -> bool:
        return variable in self.active_variables

    def terms(self, equation: FieldVariable) -> EquationTerms:
        return self.equations.get(equation, EquationTerms(None, None))

    @classmethod
    def full_wave(
        cls,
        num_dim: int = 3,
        temperature: bool = False,
        mesh: bool = False,
        num_species: int = 0,
        advection: Optional[float] = 1.0,
        diffusion: Optional[float] = 1.0,
        equations: Iterable[FieldVariable] = ALL_FIELD_VARIABLES,
    ) -> "ProblemDescription":
        """Standard setup with the EM equations active and coupled unknowns.

        Parameters
        ----------
        num_dim : int, optional
            Spatial dimension, by default 3
        temperature : bool, optional
            Whether temperature is an unknown
        mesh : bool, optional
            Whether mesh displacements are unknowns
        num_species : int, optional
            Number of species mass fraction unknowns
        advection, diffusion : float, optional
            Term multipliers applied to every equation
        equations : Iterable[FieldVariable], optional
            Active equations, by default all twelve
        """
        terms = EquationTerms(advection=advection, diffusion=diffusion)
        active = set(ALL_FIELD_VARIABLES)
        if temperature:
            active.add(TEMPERATURE)
        if mesh:
            active.update(mesh_displacement(b) for b in range(num_dim))
        active.update(mass_fraction(w) for w in range(num_species))

        problem = cls(
            equations={equation: terms for equation in equations},
            active_variables=active,
            num_dim=num_dim,
            num_species=num_species,
        )
        logger.debug(f"Created wave problem with {len(problem.equations)} equations "
                     f"and {len(active)} active variables")
        return problem

"""Unknowns of the frequency-domain wave system and their point values."""

import enum
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

import numpy as np

from ..utils.algebra import DIM
from ..utils.exceptions import InvalidSelectorError


class Family(enum.Enum):
    """Electromagnetic field family."""

    E = "E"
    H = "H"


class Part(enum.Enum):
    """Real or imaginary part of a complex field."""

    REAL = "REAL"
    IMAG = "IMAG"

    @property
    def other(self) -> "Part":
        return Part.IMAG if self is Part.REAL else Part.REAL


@dataclass(frozen=True)
class FieldVariable:
    """One of the twelve scalar unknowns ``{E,H} x {0,1,2} x {REAL,IMAG}``.

    Parameters
    ----------
    family : Family
        E or H field
    component : int
        Cartesian component, 0, 1 or 2
    part : Part
        Real or imaginary part
    """

    family: Family
    component: int
    part: Part

    def __post_init__(self):
        if not isinstance(self.family, Family) or not isinstance(self.part, Part):
            raise InvalidSelectorError(
                "Field variable needs a Family and a Part", selector=(self.family, self.part)
            )
        if self.component not in range(DIM):
            raise InvalidSelectorError(
                f"Field component must be 0, 1 or 2, got {self.component}",
                selector=self.component,
            )

    @property
    def conjugate(self) -> "FieldVariable":
        """The same component with the opposite real/imaginary part."""
        return FieldVariable(self.family, self.component, self.part.other)

    def with_component(self, component: int) -> "FieldVariable":
        return FieldVariable(self.family, component, self.part)

    @property
    def name(self) -> str:
        """Legacy selector name, e.g. ``EM_E1_REAL``."""
        return f"EM_{self.family.value}{self.component + 1}_{self.part.value}"

    @classmethod
    def from_name(cls, name: str) -> "FieldVariable":
        """Parse a legacy selector name such as ``EM_H2_IMAG``.

        Raises
        ------
        InvalidSelectorError
            If the name does not denote one of the twelve unknowns
        """
        try:
            prefix, family_component, part = name.split("_")
            if prefix != "EM" or len(family_component) != 2:
                raise ValueError(name)
            return cls(Family(family_component[0]), int(family_component[1]) - 1, Part(part))
        except (ValueError, AttributeError) as e:
            raise InvalidSelectorError(
                f"Invalid EM variable name: {name!r}", selector=name, cause=e
            ) from e

    def __repr__(self) -> str:
        return self.name


ALL_FIELD_VARIABLES = tuple(
    FieldVariable(family, component, part)
    for family in Family
    for component in range(DIM)
    for part in Part
)


@dataclass(frozen=True)
class Variable:
    """Non-electromagnetic unknown an EM residual can be sensitive to."""

    name: str
    index: int = 0

    def __repr__(self) -> str:
        return f"{self.name}[{self.index}]" if self.name != "TEMPERATURE" else self.name


TEMPERATURE = Variable("TEMPERATURE")


def mesh_displacement(b: int) -> Variable:
    """Key for the ``b``-th mesh displacement component."""
    return Variable("MESH_DISPLACEMENT", b)


def mass_fraction(w: int) -> Variable:
    """Key for the ``w``-th species mass fraction."""
    return Variable("MASS_FRACTION", w)


def is_mesh_displacement(key) -> bool:
    return isinstance(key, Variable) and key.name == "MESH_DISPLACEMENT"


VariableKey = Union[FieldVariable, Variable]


def _vector(values) -> np.ndarray:
    return np.zeros(DIM) if values is None else np.asarray(values, dtype=float).reshape(DIM)


@dataclass
class FieldState:
    """Values of all unknowns at one quadrature point.

    Attributes
    ----------
    e_real, e_imag, h_real, h_imag : np.ndarray
        Real and imaginary parts of E and H, length 3 each
    temperature : float
        Temperature at the point
    mass_fractions : np.ndarray
        Species mass fractions at the point
    position : np.ndarray
        Physical coordinates of the point
    """

    e_real: np.ndarray = None
    e_imag: np.ndarray = None
    h_real: np.ndarray = None
    h_imag: np.ndarray = None
    temperature: float = 0.0
    mass_fractions: np.ndarray = field(default_factory=lambda: np.zeros(0))
    position: np.ndarray = None

    def __post_init__(self):
        self.e_real = _vector(self.e_real)
        self.e_imag = _vector(self.e_imag)
        self.h_real = _vector(self.h_real)
        self.h_imag = _vector(self.h_imag)
        self.position = _vector(self.position)
        self.mass_fractions = np.asarray(self.mass_fractions, dtype=float)

    def vector(self, family: Family, part: Part) -> np.ndarray:
        """The 3-vector of one field family and part."""
        return {
            (Family.E, Part.REAL): self.e_real,
            (Family.E, Part.IMAG): self.e_imag,
            (Family.H, Part.REAL): self.h_real,
            (Family.H, Part.IMAG): self.h_imag,
        }[(family, part)]

    def value(self, variable: FieldVariable) -> float:
        return float(self.vector(variable.family, variable.part)[variable.component])

    def complex_vector(self, family: Family) -> np.ndarray:
        return self.vector(family, Part.REAL) + 1j * self.vector(family, Part.IMAG)

    @classmethod
    def interpolate(
        cls,
        phi: np.ndarray,
        nodal_values: Mapping,
        nodal_coordinates: Optional[np.ndarray] = None,
        num_species: int = 0,
    ) -> "FieldState":
        """Evaluate a point state from nodal values and basis values.

        Parameters
        ----------
        phi : np.ndarray
            Basis function values at the point, shape (N,)
        nodal_values : Mapping
            Nodal arrays keyed by ``FieldVariable``, ``TEMPERATURE`` or
            ``mass_fraction(w)``; missing keys are zero
        nodal_coordinates : np.ndarray, optional
            Node coordinates, shape (N, 3), used for the point position
        num_species : int, optional
            Number of species mass fractions to interpolate
        """
        phi = np.asarray(phi, dtype=float)

        def at_point(key):
            values = nodal_values.get(key)
            return 0.0 if values is None else float(np.dot(phi, values))

        vectors = {}
        for family in Family:
            for part in Part:
                vectors[(family, part)] = [
                    at_point(FieldVariable(family, c, part)) for c in range(DIM)
                ]

        position = None
        if nodal_coordinates is not None:
            position = phi @ np.asarray(nodal_coordinates, dtype=float)

        return cls(
            e_real=vectors[(Family.E, Part.REAL)],
            e_imag=vectors[(Family.E, Part.IMAG)],
            h_real=vectors[(Family.H, Part.REAL)],
            h_imag=vectors[(Family.H, Part.IMAG)],
            temperature=at_point(TEMPERATURE),
            mass_fractions=[at_point(mass_fraction(w)) for w in range(num_species)],
            position=position,
        )

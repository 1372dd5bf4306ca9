"""Optical material properties and the coefficient resolver interface.

The wave equations see a material through its complex permittivity
``eps = (n + i k)^2 * eps_base``, where ``n`` is the refractive index and
``k`` the extinction coefficient. A :class:`CoefficientResolver` evaluates
``n`` and ``k`` at a quadrature point together with their sensitivities to
every other unknown (temperature, species, mesh position).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import constants

from ..utils.algebra import DIM
from ..utils.exceptions import ValidationError
from ..utils.logging_config import get_logger
from .element import ElementContext, SurfaceContext
from .fields import TEMPERATURE, FieldState, Variable, mass_fraction, mesh_displacement

logger = get_logger(__name__)

Context = Union[ElementContext, SurfaceContext]


@dataclass(frozen=True)
class MaterialConstants:
    """Read-only physical constants used during assembly.

    Attributes
    ----------
    omega : float
        Angular frequency of the time-harmonic fields
    permittivity : float
        Base permittivity scaling the relative complex permittivity
    magnetic_permeability : float
        Magnetic permeability, constant over the domain
    """

    omega: float = 1.0
    permittivity: float = constants.epsilon_0
    magnetic_permeability: float = constants.mu_0

    @classmethod
    def from_config(cls, config) -> "MaterialConstants":
        """Build constants from an ``EMWaveConfig``."""
        physics = config.physics
        return cls(
            omega=physics.omega,
            permittivity=physics.permittivity,
            magnetic_permeability=physics.magnetic_permeability,
        )


def complex_permittivity(n: float, k: float, base_permittivity: float = 1.0) -> complex:
    """``(n + i k)^2 * base_permittivity``."""
    return (n + 1j * k) ** 2 * base_permittivity


def permittivity_derivatives(n: float, k: float,
                             base_permittivity: float = 1.0) -> Tuple[complex, complex]:
    """Derivatives of :func:`complex_permittivity` with respect to ``n`` and ``k``."""
    d_dn = 2.0 * (n + 1j * k) * base_permittivity
    return d_dn, 1j * d_dn


def impedance(permittivity: complex, magnetic_permeability: float) -> complex:
    """Complex wave impedance ``sqrt(mu / eps)`` (principal branch)."""
    return complex(np.sqrt(complex(magnetic_permeability) / complex(permittivity)))


@dataclass
class OpticalProperties:
    """Refractive index and extinction coefficient at one point.

    Attributes
    ----------
    n, k : float
        Refractive index and extinction coefficient
    dn, dk : Dict[Variable, np.ndarray]
        Sensitivity bundles: per-dof derivatives ``d n / d u_j`` keyed by
        the unknown ``u`` (temperature, mass fraction, mesh displacement)
    """

    n: float
    k: float
    dn: Dict[Variable, np.ndarray] = field(default_factory=dict)
    dk: Dict[Variable, np.ndarray] = field(default_factory=dict)

    def permittivity(self, base_permittivity: float = 1.0) -> complex:
        return complex_permittivity(self.n, self.k, base_permittivity)

    def impedance(self, material: MaterialConstants) -> complex:
        return impedance(self.permittivity(material.permittivity), material.magnetic_permeability)

    def sensitivity_keys(self):
        """Every unknown with a sensitivity in either bundle."""
        return list(dict.fromkeys(list(self.dn) + list(self.dk)))

    def sensitivity(self, key: Variable, num_dofs: int) -> Tuple[np.ndarray, np.ndarray]:
        """``(dn, dk)`` for ``key``, zeros where a bundle has no entry."""
        zeros = np.zeros(num_dofs)
        return self.dn.get(key, zeros), self.dk.get(key, zeros)


class CoefficientResolver(ABC):
    """Evaluates optical properties and their sensitivities at a point."""

    @abstractmethod
    def resolve(self, state: FieldState, context: Context,
                time: float = 0.0) -> OpticalProperties:
        """Return the optical properties at the point described by ``state``.

        Parameters
        ----------
        state : FieldState
            Unknowns at the point
        context : ElementContext or SurfaceContext
            Basis data used to express sensitivities per dof
        time : float, optional
            Current time
        """


class ConstantOptics(CoefficientResolver):
    """Spatially and thermally uniform material."""

    def __init__(self, n: float = 1.0, k: float = 0.0):
        self.n = float(n)
        self.k = float(k)

    def resolve(self, state, context, time=0.0):
        return OpticalProperties(self.n, self.k)

    def __repr__(self) -> str:
        return f"ConstantOptics(n={self.n}, k={self.k})"


class LinearOptics(CoefficientResolver):
    """Material whose ``n`` and ``k`` vary linearly with the other unknowns.

    ``n = n0 + dn_dT (T - T_ref) + sum_w dn_dC[w] C_w + dn_dx . x`` and the
    same form for ``k``.

    Parameters
    ----------
    n0, k0 : float
        Values at the reference state
    reference_temperature : float, optional
        Temperature at which ``n = n0``
    dn_dT, dk_dT : float, optional
        Thermo-optic coefficients
    dn_dC, dk_dC : Sequence[float], optional
        Coefficients per species mass fraction
    dn_dx, dk_dx : Sequence[float], optional
        Spatial gradients, length 3
    """

    def __init__(
        self,
        n0: float = 1.0,
        k0: float = 0.0,
        reference_temperature: float = 0.0,
        dn_dT: float = 0.0,
        dk_dT: float = 0.0,
        dn_dC: Optional[Sequence[float]] = None,
        dk_dC: Optional[Sequence[float]] = None,
        dn_dx: Optional[Sequence[float]] = None,
        dk_dx: Optional[Sequence[float]] = None,
    ):
        self.n0 = float(n0)
        self.k0 = float(k0)
        self.reference_temperature = float(reference_temperature)
        self.dn_dT = float(dn_dT)
        self.dk_dT = float(dk_dT)

        num_species = max(len(dn_dC or ()), len(dk_dC or ()))
        self.dn_dC = self._padded(dn_dC, num_species)
        self.dk_dC = self._padded(dk_dC, num_species)
        self.dn_dx = self._padded(dn_dx, DIM)
        self.dk_dx = self._padded(dk_dx, DIM)

    @staticmethod
    def _padded(values, length) -> np.ndarray:
        result = np.zeros(length)
        if values is not None:
            values = np.asarray(values, dtype=float)
            if len(values) > length:
                raise ValidationError(f"Expected at most {length} coefficients, got {len(values)}",
                                      actual_value=values)
            result[:len(values)] = values
        return result

    @property
    def num_species(self) -> int:
        return len(self.dn_dC)

    def _value(self, base, d_dT, d_dC, d_dx, state: FieldState) -> float:
        value = base + d_dT * (state.temperature - self.reference_temperature)
        concentrations = np.zeros(len(d_dC))
        available = min(len(d_dC), len(state.mass_fractions))
        concentrations[:available] = state.mass_fractions[:available]
        value += float(np.dot(d_dC, concentrations))
        value += float(np.dot(d_dx, state.position))
        return value

    def _bundle(self, d_dT, d_dC, d_dx, context) -> Dict[Variable, np.ndarray]:
        bundle = {TEMPERATURE: d_dT * context.basis_for(TEMPERATURE).phi}
        for w, coefficient in enumerate(d_dC):
            key = mass_fraction(w)
            bundle[key] = coefficient * context.basis_for(key).phi
        for b, coefficient in enumerate(d_dx):
            key = mesh_displacement(b)
            bundle[key] = coefficient * context.basis_for(key).phi
        return bundle

    def resolve(self, state, context, time=0.0):
        n = self._value(self.n0, self.dn_dT, self.dn_dC, self.dn_dx, state)
        k = self._value(self.k0, self.dk_dT, self.dk_dC, self.dk_dx, state)
        return OpticalProperties(
            n=n,
            k=k,
            dn=self._bundle(self.dn_dT, self.dn_dC, self.dn_dx, context),
            dk=self._bundle(self.dk_dT, self.dk_dC, self.dk_dx, context),
        )

    def __repr__(self) -> str:
        return f"LinearOptics(n0={self.n0}, k0={self.k0}, dn_dT={self.dn_dT}, dk_dT={self.dk_dT})"

"""Quadrature-point element data and the per-element local accumulator."""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from ..utils.algebra import DIM
from .fields import FieldVariable, VariableKey


@dataclass
class BasisFunctions:
    """Basis functions of one interpolation at a quadrature point.

    Attributes
    ----------
    phi : np.ndarray
        Values, shape (N,)
    grad_phi : np.ndarray
        Physical gradients, shape (N, 3)
    d_grad_phi_dmesh : np.ndarray, optional
        ``d grad_phi[i][p] / d X[b][j]``, shape (N, 3, dim, Nm), where
        ``X[b][j]`` is mesh displacement component ``b`` at mesh dof ``j``
    """

    phi: np.ndarray
    grad_phi: np.ndarray
    d_grad_phi_dmesh: Optional[np.ndarray] = None

    def __post_init__(self):
        self.phi = np.asarray(self.phi, dtype=float)
        self.grad_phi = np.asarray(self.grad_phi, dtype=float).reshape(len(self.phi), DIM)
        if self.d_grad_phi_dmesh is not None:
            self.d_grad_phi_dmesh = np.asarray(self.d_grad_phi_dmesh, dtype=float)

    @property
    def num_dofs(self) -> int:
        return len(self.phi)


@dataclass
class ElementContext:
    """Geometry and basis data of one element at one quadrature point.

    Attributes
    ----------
    basis : BasisFunctions
        Element basis, used for every variable without an override
    det_J : float
        Determinant of the reference-to-physical mapping
    h3 : float
        Volume scale factor (1 for Cartesian coordinates)
    weight : float
        Quadrature weight
    d_det_J_dmesh : np.ndarray, optional
        ``d det_J / d X[b][j]``, shape (dim, Nm)
    dh3_dq : np.ndarray, optional
        ``d h3 / d x[b]``, shape (3,)
    variable_bases : Mapping
        Per-variable basis overrides
    """

    basis: BasisFunctions
    det_J: float
    h3: float = 1.0
    weight: float = 1.0
    d_det_J_dmesh: Optional[np.ndarray] = None
    dh3_dq: np.ndarray = None
    variable_bases: Mapping[VariableKey, BasisFunctions] = field(default_factory=dict)

    def __post_init__(self):
        self.dh3_dq = np.zeros(DIM) if self.dh3_dq is None else np.asarray(self.dh3_dq, dtype=float)
        if self.d_det_J_dmesh is not None:
            self.d_det_J_dmesh = np.asarray(self.d_det_J_dmesh, dtype=float)

    def basis_for(self, variable: VariableKey) -> BasisFunctions:
        return self.variable_bases.get(variable, self.basis)

    def dof_count(self, variable: VariableKey) -> int:
        return self.basis_for(variable).num_dofs

    @property
    def has_mesh_sensitivities(self) -> bool:
        return self.d_det_J_dmesh is not None and self.basis.d_grad_phi_dmesh is not None


@dataclass
class SurfaceContext:
    """Boundary quadrature point: outward normal and face basis values."""

    normal: np.ndarray
    basis: BasisFunctions
    local_coords: Optional[np.ndarray] = None
    variable_bases: Mapping[VariableKey, BasisFunctions] = field(default_factory=dict)

    def __post_init__(self):
        self.normal = np.asarray(self.normal, dtype=float).reshape(DIM)

    def basis_for(self, variable: VariableKey) -> BasisFunctions:
        return self.variable_bases.get(variable, self.basis)


class LocalAccumulator:
    """Dense residual and Jacobian blocks for one element.

    Residual blocks are keyed by equation, Jacobian blocks by
    ``(equation, variable)``. Blocks are created zeroed on first use and
    are only ever added to.
    """

    def __init__(self):
        self._residual: Dict[FieldVariable, np.ndarray] = {}
        self._jacobian: Dict[Tuple[FieldVariable, VariableKey], np.ndarray] = {}

    def add_residual(self, equation: FieldVariable, values: np.ndarray) -> None:
        values = np.asarray(values, dtype=float)
        block = self._residual.setdefault(equation, np.zeros(values.shape))
        block += values

    def add_jacobian(self, equation: FieldVariable, variable: VariableKey,
                     values: np.ndarray) -> None:
        values = np.asarray(values, dtype=float)
        block = self._jacobian.setdefault((equation, variable), np.zeros(values.shape))
        block += values

    def residual(self, equation: FieldVariable) -> Optional[np.ndarray]:
        return self._residual.get(equation)

    def jacobian(self, equation: FieldVariable, variable: VariableKey) -> Optional[np.ndarray]:
        return self._jacobian.get((equation, variable))

    @property
    def residual_blocks(self) -> Dict[FieldVariable, np.ndarray]:
        return dict(self._residual)

    @property
    def jacobian_blocks(self) -> Dict[Tuple[FieldVariable, VariableKey], np.ndarray]:
        return dict(self._jacobian)

    def merge(self, other: "LocalAccumulator") -> "LocalAccumulator":
        """Add every block of ``other`` into this accumulator."""
        for equation, values in other._residual.items():
            self.add_residual(equation, values)
        for (equation, variable), values in other._jacobian.items():
            self.add_jacobian(equation, variable, values)
        return self

    def copy(self) -> "LocalAccumulator":
        return LocalAccumulator().merge(self)

    def is_empty(self) -> bool:
        return not self._residual and not self._jacobian

    def __repr__(self) -> str:
        return (f"LocalAccumulator(residual_blocks={len(self._residual)}, "
                f"jacobian_blocks={len(self._jacobian)})")

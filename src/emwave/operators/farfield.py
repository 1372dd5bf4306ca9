"""Far-field boundary condition for a plane wave at normal incidence.

The exterior medium is described by ``n2``/``k2`` in the boundary data and
the interior medium by the coefficient resolver. The two impedances give
the Fresnel coefficients at normal incidence, which couple the interior
electric field to the prescribed incident field.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Sequence, Union

import numpy as np

from ..models.element import SurfaceContext
from ..models.fields import Family, FieldState, FieldVariable, Part
from ..models.materials import (
    CoefficientResolver,
    MaterialConstants,
    complex_permittivity,
    impedance,
)
from ..models.problem import ProblemDescription
from ..utils.algebra import DIM, PERMUTATION_TENSOR, complex_cross
from ..utils.exceptions import InvalidSelectorError
from ..utils.logging_config import get_logger
from ..utils.validation import validate_farfield_data
from .base import BaseOperator, register_operator

logger = get_logger(__name__)


class FarFieldKind(enum.Enum):
    """Which part of which boundary equation set is evaluated."""

    E_REAL = "EM_ER_FARFIELD_DIRECT_BC"
    E_IMAG = "EM_EI_FARFIELD_DIRECT_BC"
    H_REAL = "EM_HR_FARFIELD_DIRECT_BC"
    H_IMAG = "EM_HI_FARFIELD_DIRECT_BC"

    @property
    def family(self) -> Family:
        return Family.E if self in (FarFieldKind.E_REAL, FarFieldKind.E_IMAG) else Family.H

    @property
    def part(self) -> Part:
        return Part.REAL if self in (FarFieldKind.E_REAL, FarFieldKind.H_REAL) else Part.IMAG

    @property
    def indicators(self):
        """``(real, imag)`` weights selecting the output part."""
        return (1.0, 0.0) if self.part is Part.REAL else (0.0, 1.0)

    @classmethod
    def parse(cls, kind: Union["FarFieldKind", str]) -> "FarFieldKind":
        if isinstance(kind, cls):
            return kind
        for member in cls:
            if kind in (member.name, member.value):
                return member
        raise InvalidSelectorError(f"Unknown far-field boundary kind: {kind!r}", selector=kind,
                                   suggestion=f"Use one of {[m.value for m in cls]}")


@dataclass(frozen=True)
class FarFieldData:
    """Exterior medium and incident field of a far-field boundary."""

    n2: float
    k2: float
    incident: np.ndarray

    @classmethod
    def from_array(cls, bc_data: Sequence[float]) -> "FarFieldData":
        data = validate_farfield_data(bc_data)
        return cls(n2=data[0], k2=data[1], incident=data[2:5] + 1j * data[5:8])


def parse_farfield_data(bc_data: Sequence[float]) -> FarFieldData:
    return FarFieldData.from_array(bc_data)


def reflection_coefficient(impedance_interior: complex, impedance_exterior: complex) -> complex:
    """Normal-incidence reflection coefficient ``(Z2 - Z1) / (Z2 + Z1)``."""
    return (impedance_exterior - impedance_interior) / (impedance_exterior + impedance_interior)


def transmission_coefficient(impedance_interior: complex, impedance_exterior: complex) -> complex:
    """Normal-incidence transmission coefficient ``2 Z2 / (Z2 + Z1)``."""
    return 2.0 * impedance_exterior / (impedance_exterior + impedance_interior)


@dataclass
class FarFieldResult:
    """Boundary residual of one kind and its Jacobian.

    Attributes
    ----------
    residual : np.ndarray
        Residual components, shape (3,)
    jacobian : Dict[FieldVariable, np.ndarray]
        Blocks of shape (3, N) keyed by interior field variable
    gamma, tau : complex
        Reflection and transmission coefficients used
    """

    residual: np.ndarray
    jacobian: Dict[FieldVariable, np.ndarray] = field(default_factory=dict)
    gamma: complex = 0.0
    tau: complex = 0.0


def apply_em_farfield_direct(
    context: SurfaceContext,
    state: FieldState,
    bc_kind: Union[FarFieldKind, str],
    bc_data: Sequence[float],
    material: MaterialConstants,
    resolver: CoefficientResolver,
    problem: ProblemDescription,
    time: float = 0.0,
    assemble_jacobian: bool = True,
) -> FarFieldResult:
    """Evaluate the far-field boundary residual at one surface point.

    E-kinds impose ``n x (tau / (1 + Gamma) E + E_inc)``; H-kinds impose
    ``-(tau / (1 + Gamma) E + E_inc) / Z2``. The real or imaginary part is
    returned according to ``bc_kind``.

    Parameters
    ----------
    context : SurfaceContext
        Outward unit normal and basis values at the point
    state : FieldState
        Interior unknowns at the point
    bc_kind : FarFieldKind or str
        Boundary kind, enum member or legacy name
    bc_data : Sequence[float]
        ``[n2, k2, Re(inc), Im(inc)]`` with 3-vector incident parts
    material : MaterialConstants
        Base permittivity and permeability shared by both media
    resolver : CoefficientResolver
        Interior optical properties
    problem : ProblemDescription
        Active variables and spatial dimension
    time : float, optional
        Current time, forwarded to the resolver
    assemble_jacobian : bool, optional
        Whether to build Jacobian blocks

    Returns
    -------
    FarFieldResult
        Fresh residual and Jacobian blocks. For both the E-type and H-type
        kinds the blocks are keyed by the interior E components, real and
        imaginary, since the residual depends on E alone

    Raises
    ------
    InvalidSelectorError
        If ``bc_kind`` is not a far-field kind
    ValidationError
        If ``bc_data`` is malformed
    """
    kind = FarFieldKind.parse(bc_kind)
    data = parse_farfield_data(bc_data)

    interior = resolver.resolve(state, context, time)
    z1 = interior.impedance(material)
    z2 = impedance(complex_permittivity(data.n2, data.k2, material.permittivity),
                   material.magnetic_permeability)

    gamma = reflection_coefficient(z1, z2)
    tau = transmission_coefficient(z1, z2)
    ratio = tau / (1.0 + gamma)

    normal = context.normal.astype(complex)
    e_interior = state.complex_vector(Family.E)

    if kind.family is Family.E:
        cpx_func = complex_cross(normal, ratio * e_interior + data.incident)
        # d cpx_func[p] / d E[g] = ratio * e(p, q, g) n[q]
        d_func = ratio * np.einsum("pqg,q->pg", PERMUTATION_TENSOR, normal)
    else:
        cpx_func = -e_interior / z2 * ratio - data.incident / z2
        d_func = -ratio / z2 * np.eye(DIM, dtype=complex)

    real, imag = kind.indicators
    residual = real * cpx_func.real + imag * cpx_func.imag
    result = FarFieldResult(residual=residual, gamma=gamma, tau=tau)

    if not assemble_jacobian:
        return result

    for part, d_field in ((Part.REAL, 1.0), (Part.IMAG, 1j)):
        for g in range(problem.num_dim):
            variable = FieldVariable(Family.E, g, part)
            if not problem.is_variable_active(variable):
                continue
            entry = d_func[:, g] * d_field
            entry = real * entry.real + imag * entry.imag
            phi_j = context.basis_for(variable).phi
            result.jacobian[variable] = np.outer(entry, phi_j)

    logger.debug(f"Far-field {kind.value}: Gamma={gamma:.4g}, tau={tau:.4g}")
    return result


@register_operator("em_farfield_direct")
class FarFieldOperator(BaseOperator):
    """Far-field boundary operator bound to one material pair."""

    def assemble(self, context, state, bc_kind, bc_data, problem, time=0.0,
                 assemble_jacobian=True) -> FarFieldResult:
        return apply_em_farfield_direct(context, state, bc_kind, bc_data, self.material,
                                        self.resolver, problem, time=time,
                                        assemble_jacobian=assemble_jacobian)

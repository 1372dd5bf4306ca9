"""Volume kernel for the frequency-domain curl-curl wave equations.

Each scalar equation is one Cartesian component of the real or imaginary
part of either Maxwell curl equation. With ``dir`` its component, ``u`` its
primary unknown and ``u*`` the real/imaginary partner of ``u``, the weak
form at a quadrature point is::

    R_i = [ (a u + c u*) phi_i  -  sum_pq e(p,q,dir) dphi_i/dx_p X_q ] det_J h3 w

where ``X`` is the cross field (H for E-equations, E for H-equations) and
``a``, ``c`` come from the coupling table below.
"""

from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Tuple, Union

import numpy as np

from ..models.element import ElementContext, LocalAccumulator
from ..models.fields import (
    Family,
    FieldState,
    FieldVariable,
    Part,
    is_mesh_displacement,
    mesh_displacement,
)
from ..models.materials import (
    CoefficientResolver,
    MaterialConstants,
    OpticalProperties,
    complex_permittivity,
    permittivity_derivatives,
)
from ..models.problem import ProblemDescription, TermType
from ..utils.algebra import PERMUTATION_TENSOR
from ..utils.exceptions import ErrorCode, InvalidSelectorError, ValidationError
from ..utils.logging_config import get_logger
from ..utils.validation import validate_conjugate_pair
from .base import BaseOperator, register_operator

logger = get_logger(__name__)


@dataclass(frozen=True)
class WaveCoefficients:
    """Advection and conjugate coefficients with their ``n``/``k`` derivatives."""

    advection: float
    conjugate: float
    advection_dn: float = 0.0
    advection_dk: float = 0.0
    conjugate_dn: float = 0.0
    conjugate_dk: float = 0.0

    def source(self, emf: float, emf_conj: float) -> float:
        return self.advection * emf + self.conjugate * emf_conj

    def source_sensitivity(self, emf: float, emf_conj: float,
                           dn: np.ndarray, dk: np.ndarray) -> np.ndarray:
        """Per-dof derivative of :meth:`source` through ``n`` and ``k``."""
        return (emf * (self.advection_dn * dn + self.advection_dk * dk)
                + emf_conj * (self.conjugate_dn * dn + self.conjugate_dk * dk))


def _electric(sign: float) -> Callable:
    def formula(n: float, k: float, material: MaterialConstants) -> WaveCoefficients:
        omega = material.omega
        eps = complex_permittivity(n, k, material.permittivity)
        d_eps_dn, d_eps_dk = permittivity_derivatives(n, k, material.permittivity)
        return WaveCoefficients(
            advection=omega * eps.imag,
            conjugate=sign * omega * eps.real,
            advection_dn=omega * d_eps_dn.imag,
            advection_dk=omega * d_eps_dk.imag,
            conjugate_dn=sign * omega * d_eps_dn.real,
            conjugate_dk=sign * omega * d_eps_dk.real,
        )
    return formula


def _magnetic(sign: float) -> Callable:
    def formula(n: float, k: float, material: MaterialConstants) -> WaveCoefficients:
        return WaveCoefficients(
            advection=0.0,
            conjugate=sign * material.omega * material.magnetic_permeability,
        )
    return formula


class CouplingRule(NamedTuple):
    formula: Callable[[float, float, MaterialConstants], WaveCoefficients]
    cross_family: Family
    cross_part: Part


COUPLING_TABLE: Dict[Tuple[Family, Part], CouplingRule] = {
    (Family.E, Part.REAL): CouplingRule(_electric(+1.0), Family.H, Part.REAL),
    (Family.E, Part.IMAG): CouplingRule(_electric(-1.0), Family.H, Part.IMAG),
    (Family.H, Part.REAL): CouplingRule(_magnetic(-1.0), Family.E, Part.REAL),
    (Family.H, Part.IMAG): CouplingRule(_magnetic(+1.0), Family.E, Part.IMAG),
}


def coupling_rule(variable: FieldVariable) -> CouplingRule:
    try:
        return COUPLING_TABLE[(variable.family, variable.part)]
    except (KeyError, AttributeError) as e:
        raise InvalidSelectorError("assemble_emwave must be called with a usable em_var",
                                   selector=variable, cause=e) from e


def wave_coefficients(variable: FieldVariable, optics: OpticalProperties,
                      material: MaterialConstants) -> WaveCoefficients:
    """Coupling coefficients of the equation driven by ``variable``."""
    return coupling_rule(variable).formula(optics.n, optics.k, material)


class MeshSensitivityTerms(NamedTuple):
    """Partial sums of ``dR_i / dX[b][j]`` for one displacement component."""

    coefficient: np.ndarray
    det_J: np.ndarray
    h3: np.ndarray
    basis_gradient: np.ndarray

    @property
    def total(self) -> np.ndarray:
        return self.coefficient + self.det_J + self.h3 + self.basis_gradient


def _as_field_variable(selector: Union[FieldVariable, str]) -> FieldVariable:
    if isinstance(selector, FieldVariable):
        return selector
    if isinstance(selector, str):
        return FieldVariable.from_name(selector)
    raise InvalidSelectorError("Invalid EM variable selector", selector=selector)


def mesh_sensitivity_terms(
    b: int,
    context: ElementContext,
    integrand: np.ndarray,
    coefficients: WaveCoefficients,
    optics: OpticalProperties,
    emf: float,
    emf_conj: float,
    curl_weights: np.ndarray,
    multipliers: Tuple[float, float],
    equation: FieldVariable,
) -> MeshSensitivityTerms:
    """Split ``dR_i / dX[b][j]`` into its four geometric contributions.

    Parameters
    ----------
    b : int
        Displacement component
    context : ElementContext
        Quadrature point data including mesh sensitivities
    integrand : np.ndarray
        Bracketed residual integrand per test function, before ``det_J h3 w``
    coefficients : WaveCoefficients
        Coupling coefficients of the equation
    optics : OpticalProperties
        Resolver output with the mesh sensitivity bundles
    emf, emf_conj : float
        Primary and conjugate unknown values
    curl_weights : np.ndarray
        ``sum_q e(p,q,dir) X_q`` per ``p``
    multipliers : Tuple[float, float]
        Advection and diffusion multipliers
    equation : FieldVariable
        Equation whose test functions are used

    Returns
    -------
    MeshSensitivityTerms
        ``coefficient``: permittivity sensitivity to geometry;
        ``det_J``: mapping determinant sensitivity;
        ``h3``: volume scale sensitivity;
        ``basis_gradient``: test-function gradient sensitivity
    """
    key = mesh_displacement(b)
    test = context.basis_for(equation)
    mesh_phi = context.basis_for(key).phi
    advection, diffusion = multipliers
    scale = context.det_J * context.h3 * context.weight

    dn, dk = optics.sensitivity(key, len(mesh_phi))
    d_source = coefficients.source_sensitivity(emf, emf_conj, dn, dk)
    coefficient = advection * np.outer(test.phi, d_source) * scale

    det_J = np.outer(integrand, context.d_det_J_dmesh[b]) * context.h3 * context.weight

    dh3 = context.dh3_dq[b] * mesh_phi
    h3 = np.outer(integrand, dh3) * context.det_J * context.weight

    d_grad_phi = test.d_grad_phi_dmesh[:, :, b, :]
    basis_gradient = -diffusion * np.einsum("ipj,p->ij", d_grad_phi, curl_weights) * scale

    return MeshSensitivityTerms(coefficient, det_J, h3, basis_gradient)


def assemble_emwave(
    time: float,
    tt: float,
    dt: float,
    context: ElementContext,
    state: FieldState,
    problem: ProblemDescription,
    material: MaterialConstants,
    resolver: CoefficientResolver,
    accumulator: LocalAccumulator,
    em_eqn: Union[FieldVariable, str],
    em_var: Union[FieldVariable, str],
    em_conjvar: Union[FieldVariable, str],
    assemble_residual: bool = True,
    assemble_jacobian: bool = True,
) -> bool:
    """Add one quadrature point's residual and Jacobian for one EM equation.

    Parameters
    ----------
    time : float
        Present time, forwarded to the coefficient resolver
    tt, dt : float
        Time integration parameter and step size; the frequency-domain
        equations carry no time derivative, so these do not enter the terms
    context : ElementContext
        Basis and geometry at the quadrature point
    state : FieldState
        Unknowns at the quadrature point
    problem : ProblemDescription
        Active equations, term multipliers and active variables
    material : MaterialConstants
        Frequency, base permittivity and permeability
    resolver : CoefficientResolver
        Refractive index / extinction coefficient model
    accumulator : LocalAccumulator
        Element accumulator, added into
    em_eqn, em_var, em_conjvar : FieldVariable or str
        Equation, its primary unknown and the real/imaginary partner

    Returns
    -------
    bool
        False when the equation is inactive and nothing was added

    Raises
    ------
    InvalidSelectorError
        If a selector is not one of the twelve field unknowns or the
        conjugate selector does not partner ``em_var``
    ValidationError
        If mesh displacements are active but the context has no mesh
        sensitivities
    """
    em_eqn = _as_field_variable(em_eqn)
    em_var = _as_field_variable(em_var)
    em_conjvar = _as_field_variable(em_conjvar)
    validate_conjugate_pair(em_var, em_conjvar)

    if not problem.is_equation_active(em_eqn):
        logger.debug(f"Equation {em_eqn!r} inactive, skipping")
        return False

    rule = coupling_rule(em_var)
    direction = em_var.component
    emf = state.value(em_var)
    emf_conj = state.value(em_conjvar)
    cross_field = state.vector(rule.cross_family, rule.cross_part)

    optics = resolver.resolve(state, context, time)
    coefficients = rule.formula(optics.n, optics.k, material)

    terms = problem.terms(em_eqn)
    flags = terms.flags
    advection = terms.multiplier(TermType.ADVECTION)
    diffusion = terms.multiplier(TermType.DIFFUSION)

    test = context.basis_for(em_eqn)
    scale = context.det_J * context.h3 * context.weight

    # curl_matrix[p, q] = e(p, q, dir)
    curl_matrix = PERMUTATION_TENSOR[:, :, direction]
    curl_weights = curl_matrix @ cross_field

    advection_part = advection * coefficients.source(emf, emf_conj) * test.phi
    diffusion_part = -diffusion * (test.grad_phi @ curl_weights)
    integrand = advection_part + diffusion_part

    if assemble_residual:
        accumulator.add_residual(em_eqn, integrand * scale)

    if not assemble_jacobian:
        return True

    if TermType.ADVECTION in flags:
        for variable, coefficient in ((em_var, coefficients.advection),
                                      (em_conjvar, coefficients.conjugate)):
            if problem.is_variable_active(variable):
                phi_j = context.basis_for(variable).phi
                accumulator.add_jacobian(
                    em_eqn, variable,
                    advection * coefficient * np.outer(test.phi, phi_j) * scale)

    if TermType.DIFFUSION in flags:
        for b in range(problem.num_dim):
            variable = FieldVariable(rule.cross_family, b, rule.cross_part)
            if problem.is_variable_active(variable):
                phi_j = context.basis_for(variable).phi
                # d X_q / d X_b = delta(q, b)
                accumulator.add_jacobian(
                    em_eqn, variable,
                    -diffusion * np.outer(test.grad_phi @ curl_matrix[:, b], phi_j) * scale)

    # Temperature, species and any other non-geometric sensitivity source
    if TermType.ADVECTION in flags:
        for key in optics.sensitivity_keys():
            if is_mesh_displacement(key) or not problem.is_variable_active(key):
                continue
            dn, dk = optics.sensitivity(key, context.dof_count(key))
            d_source = coefficients.source_sensitivity(emf, emf_conj, dn, dk)
            accumulator.add_jacobian(
                em_eqn, key, advection * np.outer(test.phi, d_source) * scale)

    for b in range(problem.num_dim):
        key = mesh_displacement(b)
        if not problem.is_variable_active(key):
            continue
        if not context.has_mesh_sensitivities:
            raise ValidationError(
                "Mesh displacement is active but the element context has no mesh sensitivities",
                invalid_field="context", error_code=ErrorCode.INVALID_ELEMENT)
        mesh_terms = mesh_sensitivity_terms(
            b, context, integrand, coefficients, optics, emf, emf_conj,
            curl_weights, (advection, diffusion), em_eqn)
        accumulator.add_jacobian(em_eqn, key, mesh_terms.total)

    return True


@register_operator("emwave")
class EMWaveOperator(BaseOperator):
    """Volume operator for the twelve frequency-domain wave equations."""

    def assemble(self, context, state, problem, accumulator, em_eqn, em_var=None,
                 em_conjvar=None, time=0.0, tt=0.0, dt=0.0,
                 assemble_residual=True, assemble_jacobian=True) -> bool:
        """Assemble one equation at one quadrature point.

        ``em_var`` defaults to the equation variable and ``em_conjvar`` to
        its conjugate partner.
        """
        em_eqn = _as_field_variable(em_eqn)
        em_var = em_eqn if em_var is None else _as_field_variable(em_var)
        em_conjvar = em_var.conjugate if em_conjvar is None else em_conjvar

        return assemble_emwave(
            time, tt, dt, context, state, problem, self.material, self.resolver,
            accumulator, em_eqn, em_var, em_conjvar,
            assemble_residual=assemble_residual, assemble_jacobian=assemble_jacobian)

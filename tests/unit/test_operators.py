"""Unit tests for the electromagnetic operators."""

import numpy as np
import pytest

from emwave.models import (
    ALL_FIELD_VARIABLES,
    TEMPERATURE,
    BasisFunctions,
    ConstantOptics,
    ElementContext,
    EquationTerms,
    Family,
    FieldState,
    FieldVariable,
    LocalAccumulator,
    MaterialConstants,
    Part,
    ProblemDescription,
    SurfaceContext,
    mesh_displacement,
)
from emwave.models.materials import CoefficientResolver, OpticalProperties, complex_permittivity
from emwave.operators import (
    BaseOperator,
    EMWaveOperator,
    FarFieldKind,
    FarFieldOperator,
    apply_em_farfield_direct,
    assemble_emwave,
    available_operators,
    get_operator,
    reflection_coefficient,
    register_operator,
    transmission_coefficient,
    wave_coefficients,
)
from emwave.operators.farfield import parse_farfield_data
from emwave.utils.algebra import permutation
from emwave.utils.exceptions import InvalidSelectorError, ValidationError
from emwave.utils.verification import central_difference

E1R = FieldVariable(Family.E, 0, Part.REAL)
E2I = FieldVariable(Family.E, 1, Part.IMAG)
H3R = FieldVariable(Family.H, 2, Part.REAL)


@pytest.fixture
def point_context():
    """Quadrature point with hand-picked basis values."""
    basis = BasisFunctions(
        phi=np.array([0.1, 0.2, 0.3, 0.4]),
        grad_phi=np.array([
            [-1.0, -0.5, -0.2],
            [1.0, 0.0, 0.3],
            [0.0, 0.7, -0.4],
            [0.0, -0.2, 0.3],
        ]),
    )
    return ElementContext(basis=basis, det_J=2.0, h3=1.5, weight=0.25)


@pytest.fixture
def point_state():
    return FieldState(
        e_real=[0.3, -0.7, 1.1],
        e_imag=[0.5, 0.2, -0.4],
        h_real=[-0.6, 0.9, 0.25],
        h_imag=[0.8, -0.3, 0.45],
    )


def reference_residual(context, state, material, n, k, equation, advection=1.0, diffusion=1.0):
    """Residual written out term by term with the permutation symbol."""
    eps = complex_permittivity(n, k, material.permittivity)
    omega, mu = material.omega, material.magnetic_permeability
    if equation.family is Family.E:
        a = omega * eps.imag
        c = omega * eps.real if equation.part is Part.REAL else -omega * eps.real
        cross = state.vector(Family.H, equation.part)
    else:
        a = 0.0
        c = -omega * mu if equation.part is Part.REAL else omega * mu
        cross = state.vector(Family.E, equation.part)

    emf = state.value(equation)
    emf_conj = state.value(equation.conjugate)
    basis = context.basis
    scale = context.det_J * context.h3 * context.weight

    residual = np.zeros(basis.num_dofs)
    for i in range(basis.num_dofs):
        diff = 0.0
        for p in range(3):
            for q in range(3):
                diff += permutation(p, q, equation.component) * basis.grad_phi[i, p] * cross[q]
        residual[i] = (advection * (a * emf + c * emf_conj) * basis.phi[i]
                       - diffusion * diff) * scale
    return residual


class TestOperatorRegistry:
    """Test operator registration system."""

    def test_builtin_operators(self):
        assert get_operator("emwave") is EMWaveOperator
        assert get_operator("em_farfield_direct") is FarFieldOperator
        assert {"emwave", "em_farfield_direct"} <= set(available_operators())

    def test_register_custom_operator(self):
        @register_operator("test_zero")
        class ZeroOperator(BaseOperator):
            def assemble(self, *args, **kwargs):
                return 0.0

        op = get_operator("test_zero")(MaterialConstants(), ConstantOptics())
        assert isinstance(op, BaseOperator)
        assert op() == 0.0

    def test_unknown_operator(self):
        with pytest.raises(InvalidSelectorError):
            get_operator("curl_curl_time_domain")

    def test_resolver_type_checked(self):
        with pytest.raises(TypeError):
            EMWaveOperator(MaterialConstants(), resolver=1.5)


class TestWaveCoefficients:
    """Test the coupling-coefficient table."""

    def test_table(self, unit_material):
        optics = OpticalProperties(n=1.5, k=0.2)
        eps = complex_permittivity(1.5, 0.2, unit_material.permittivity)
        omega, mu = unit_material.omega, unit_material.magnetic_permeability

        e_real = wave_coefficients(E1R, optics, unit_material)
        assert e_real.advection == pytest.approx(omega * eps.imag)
        assert e_real.conjugate == pytest.approx(omega * eps.real)

        e_imag = wave_coefficients(E2I, optics, unit_material)
        assert e_imag.advection == pytest.approx(omega * eps.imag)
        assert e_imag.conjugate == pytest.approx(-omega * eps.real)

        h_real = wave_coefficients(H3R, optics, unit_material)
        assert h_real.advection == 0.0
        assert h_real.conjugate == pytest.approx(-omega * mu)
        assert wave_coefficients(H3R.conjugate, optics, unit_material).conjugate == pytest.approx(omega * mu)

    @pytest.mark.parametrize("variable", [E1R, E2I])
    def test_coefficient_derivatives(self, unit_material, variable):
        coefficients = wave_coefficients(variable, OpticalProperties(1.5, 0.2), unit_material)

        def pair(n, k):
            c = wave_coefficients(variable, OpticalProperties(n, k), unit_material)
            return np.array([c.advection, c.conjugate])

        fd_n = central_difference(lambda x: pair(x, 0.2), 1.5)
        fd_k = central_difference(lambda x: pair(1.5, x), 0.2)
        np.testing.assert_allclose([coefficients.advection_dn, coefficients.conjugate_dn], fd_n, atol=1e-7)
        np.testing.assert_allclose([coefficients.advection_dk, coefficients.conjugate_dk], fd_k, atol=1e-7)


class TestAssembleEmwave:
    """Test the volume kernel at one quadrature point."""

    @pytest.mark.parametrize("equation", ALL_FIELD_VARIABLES, ids=lambda v: v.name)
    def test_residual_matches_index_form(self, equation, point_context, point_state, unit_material,
                                         constant_optics):
        problem = ProblemDescription.full_wave(advection=0.7, diffusion=1.2)
        accumulator = LocalAccumulator()

        active = assemble_emwave(0.0, 0.5, 0.1, point_context, point_state, problem, unit_material,
                                 constant_optics, accumulator, equation, equation,
                                 equation.conjugate)

        assert active
        expected = reference_residual(point_context, point_state, unit_material, 1.4, 0.1,
                                      equation, advection=0.7, diffusion=1.2)
        np.testing.assert_allclose(accumulator.residual(equation), expected, rtol=1e-12, atol=1e-14)

    def test_point_jacobian_matches_finite_differences(self, point_context, point_state,
                                                       unit_material, constant_optics):
        """Field blocks are the derivative of the residual w.r.t. point values."""
        problem = ProblemDescription.full_wave()
        phi = point_context.basis.phi

        for equation in ALL_FIELD_VARIABLES:
            accumulator = LocalAccumulator()
            assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, problem, unit_material,
                            constant_optics, accumulator, equation, equation, equation.conjugate)

            for variable in ALL_FIELD_VARIABLES:
                def residual(delta):
                    state = FieldState(e_real=point_state.e_real.copy(),
                                       e_imag=point_state.e_imag.copy(),
                                       h_real=point_state.h_real.copy(),
                                       h_imag=point_state.h_imag.copy())
                    state.vector(variable.family, variable.part)[variable.component] += delta
                    return reference_residual(point_context, state, unit_material, 1.4, 0.1,
                                              equation)

                d_point = central_difference(residual, 0.0)
                block = accumulator.jacobian(equation, variable)
                if block is None:
                    np.testing.assert_allclose(d_point, 0.0, atol=1e-9)
                else:
                    # u = sum_j u_j phi_j, so d/du_j = d/du * phi_j
                    np.testing.assert_allclose(block, np.outer(d_point, phi), atol=1e-8)

    def test_string_selectors(self, point_context, point_state, unit_material, constant_optics,
                              wave_problem):
        by_name = LocalAccumulator()
        by_value = LocalAccumulator()

        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, wave_problem, unit_material,
                        constant_optics, by_name, "EM_E2_IMAG", "EM_E2_IMAG", "EM_E2_REAL")
        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, wave_problem, unit_material,
                        constant_optics, by_value, E2I, E2I, E2I.conjugate)

        np.testing.assert_array_equal(by_name.residual(E2I), by_value.residual(E2I))
        assert set(by_name.jacobian_blocks) == set(by_value.jacobian_blocks)

    @pytest.mark.parametrize("selectors", [
        ("EM_E1_REAL", "EM_E1_REAL", "EM_E2_IMAG"),
        ("EM_E1_REAL", "EM_E1_REAL", "EM_E1_REAL"),
        ("EM_E1_REAL", "EM_E4_REAL", "EM_E4_IMAG"),
        ("VELOCITY1", "EM_E1_REAL", "EM_E1_IMAG"),
        (E1R, 7, E1R.conjugate),
    ])
    def test_invalid_selectors(self, selectors, point_context, point_state, unit_material,
                               constant_optics, wave_problem):
        accumulator = LocalAccumulator()
        with pytest.raises(InvalidSelectorError):
            assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, wave_problem,
                            unit_material, constant_optics, accumulator, *selectors)
        assert accumulator.is_empty()

    def test_inactive_equation_is_noop(self, point_context, point_state, unit_material,
                                       constant_optics):
        problem = ProblemDescription.full_wave(equations=[H3R])
        accumulator = LocalAccumulator()

        active = assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, problem,
                                 unit_material, constant_optics, accumulator, E1R, E1R,
                                 E1R.conjugate)

        assert active is False
        assert accumulator.is_empty()

    def test_residual_and_jacobian_flags(self, point_context, point_state, unit_material,
                                         constant_optics, wave_problem):
        residual_only = LocalAccumulator()
        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, wave_problem, unit_material,
                        constant_optics, residual_only, E1R, E1R, E1R.conjugate,
                        assemble_jacobian=False)
        assert residual_only.residual(E1R) is not None
        assert residual_only.jacobian_blocks == {}

        jacobian_only = LocalAccumulator()
        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, wave_problem, unit_material,
                        constant_optics, jacobian_only, E1R, E1R, E1R.conjugate,
                        assemble_residual=False)
        assert jacobian_only.residual(E1R) is None
        assert jacobian_only.jacobian(E1R, E1R.conjugate) is not None

    def test_contributions_accumulate(self, point_context, point_state, unit_material,
                                      constant_optics, wave_problem):
        accumulator = LocalAccumulator()
        for _ in range(2):
            assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, wave_problem,
                            unit_material, constant_optics, accumulator, H3R, H3R,
                            H3R.conjugate)

        single = reference_residual(point_context, point_state, unit_material, 1.4, 0.1, H3R)
        np.testing.assert_allclose(accumulator.residual(H3R), 2.0 * single)

    def test_inactive_diffusion_term(self, point_context, point_state, unit_material,
                                     constant_optics):
        problem = ProblemDescription.full_wave(diffusion=None)
        accumulator = LocalAccumulator()
        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, problem, unit_material,
                        constant_optics, accumulator, E1R, E1R, E1R.conjugate)

        expected = reference_residual(point_context, point_state, unit_material, 1.4, 0.1,
                                      E1R, diffusion=0.0)
        np.testing.assert_allclose(accumulator.residual(E1R), expected)
        blocks = accumulator.jacobian_blocks
        assert set(blocks) == {(E1R, E1R), (E1R, E1R.conjugate)}

    def test_blocks_only_for_active_variables(self, point_context, point_state, unit_material,
                                              linear_optics):
        equation = FieldVariable(Family.E, 2, Part.REAL)
        problem = ProblemDescription(
            equations={equation: EquationTerms()},
            active_variables={equation, FieldVariable(Family.H, 0, Part.REAL)},
        )
        accumulator = LocalAccumulator()
        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, problem, unit_material,
                        linear_optics, accumulator, equation, equation, equation.conjugate)

        assert set(accumulator.jacobian_blocks) == {
            (equation, equation),
            (equation, FieldVariable(Family.H, 0, Part.REAL)),
        }

    def test_temperature_block_uses_sensitivity_bundle(self, point_context, point_state,
                                                       unit_material):
        class ThermalOptics(CoefficientResolver):
            def resolve(self, state, context, time=0.0):
                phi = context.basis_for(TEMPERATURE).phi
                return OpticalProperties(n=1.5, k=0.2, dn={TEMPERATURE: 0.1 * phi},
                                         dk={TEMPERATURE: -0.05 * phi})

        problem = ProblemDescription.full_wave(temperature=True)
        accumulator = LocalAccumulator()
        assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, problem, unit_material,
                        ThermalOptics(), accumulator, E1R, E1R, E1R.conjugate)

        coefficients = wave_coefficients(E1R, OpticalProperties(1.5, 0.2), unit_material)
        emf, emf_conj = point_state.value(E1R), point_state.value(E1R.conjugate)
        d_source = (emf * (coefficients.advection_dn * 0.1 - coefficients.advection_dk * 0.05)
                    + emf_conj * (coefficients.conjugate_dn * 0.1 - coefficients.conjugate_dk * 0.05))
        phi = point_context.basis.phi
        scale = point_context.det_J * point_context.h3 * point_context.weight

        np.testing.assert_allclose(accumulator.jacobian(E1R, TEMPERATURE),
                                   d_source * np.outer(phi, phi) * scale)

    def test_mesh_requires_sensitivities(self, point_context, point_state, unit_material,
                                         constant_optics):
        problem = ProblemDescription.full_wave(mesh=True)
        with pytest.raises(ValidationError):
            assemble_emwave(0.0, 0.0, 0.0, point_context, point_state, problem, unit_material,
                            constant_optics, LocalAccumulator(), E1R, E1R, E1R.conjugate)

    def test_operator_defaults_to_conjugate_partner(self, point_context, point_state,
                                                    unit_material, constant_optics,
                                                    wave_problem):
        op = EMWaveOperator(unit_material, constant_optics)
        accumulator = LocalAccumulator()
        assert op(point_context, point_state, wave_problem, accumulator, "EM_H3_REAL")

        expected = reference_residual(point_context, point_state, unit_material, 1.4, 0.1, H3R)
        np.testing.assert_allclose(accumulator.residual(H3R), expected)


class TestFarFieldCoefficients:
    """Test normal-incidence Fresnel coefficients."""

    def test_matched_impedance(self):
        assert reflection_coefficient(377.0, 377.0) == pytest.approx(0.0)
        assert transmission_coefficient(377.0, 377.0) == pytest.approx(1.0)

    def test_known_values(self):
        assert reflection_coefficient(1.0, 3.0) == pytest.approx(0.5)
        assert transmission_coefficient(1.0, 3.0) == pytest.approx(1.5)

    def test_kind_parsing(self):
        assert FarFieldKind.parse("EM_ER_FARFIELD_DIRECT_BC") is FarFieldKind.E_REAL
        assert FarFieldKind.parse("H_IMAG") is FarFieldKind.H_IMAG
        assert FarFieldKind.parse(FarFieldKind.E_IMAG) is FarFieldKind.E_IMAG
        assert FarFieldKind.H_REAL.indicators == (1.0, 0.0)
        assert FarFieldKind.E_IMAG.indicators == (0.0, 1.0)
        assert FarFieldKind.H_IMAG.family is Family.H

        with pytest.raises(InvalidSelectorError):
            FarFieldKind.parse("EM_DIRECT_BC")

    def test_parse_data(self, farfield_data):
        data = parse_farfield_data(farfield_data)
        assert data.n2 == 1.2
        np.testing.assert_allclose(data.incident, [0.3 + 0.05j, -0.2 + 0.4j, 0.1 - 0.25j])


class TestApplyFarField:
    """Test the far-field boundary kernel."""

    @pytest.fixture
    def surface(self):
        basis = BasisFunctions(phi=np.array([0.0, 0.5, 0.2, 0.3]), grad_phi=np.zeros((4, 3)))
        normal = np.array([1.0, 2.0, 2.0]) / 3.0
        return SurfaceContext(normal=normal, basis=basis)

    def test_matched_media(self, surface, point_state, unit_material, wave_problem):
        """Equal impedances give Gamma = 0, tau = 1 and no ratio scaling."""
        inc = np.array([0.3 + 0.05j, -0.2 + 0.4j, 0.1 - 0.25j])
        bc_data = [1.4, 0.1, 0.3, -0.2, 0.1, 0.05, 0.4, -0.25]
        e_field = point_state.complex_vector(Family.E)
        optics = ConstantOptics(1.4, 0.1)

        result = apply_em_farfield_direct(surface, point_state, "EM_ER_FARFIELD_DIRECT_BC",
                                          bc_data, unit_material, optics, wave_problem)
        assert result.gamma == pytest.approx(0.0, abs=1e-14)
        assert result.tau == pytest.approx(1.0)
        np.testing.assert_allclose(result.residual, np.cross(surface.normal, e_field + inc).real)

        result = apply_em_farfield_direct(surface, point_state, FarFieldKind.E_IMAG,
                                          bc_data, unit_material, optics, wave_problem)
        np.testing.assert_allclose(result.residual, np.cross(surface.normal, e_field + inc).imag)

    def test_h_kind_residual(self, surface, point_state, unit_material, wave_problem,
                             farfield_data, constant_optics):
        eps2 = complex_permittivity(1.2, 0.05, unit_material.permittivity)
        z2 = np.sqrt(unit_material.magnetic_permeability / eps2)
        inc = parse_farfield_data(farfield_data).incident
        e_field = point_state.complex_vector(Family.E)

        result = apply_em_farfield_direct(surface, point_state, FarFieldKind.H_IMAG,
                                          farfield_data, unit_material, constant_optics,
                                          wave_problem)

        ratio = result.tau / (1.0 + result.gamma)
        assert ratio == pytest.approx(1.0)
        np.testing.assert_allclose(result.residual, (-e_field / z2 * ratio - inc / z2).imag)
        np.testing.assert_allclose(result.tau - result.gamma, 1.0)

    @pytest.mark.parametrize("kind", list(FarFieldKind))
    def test_jacobian_matches_finite_differences(self, kind, surface, point_state, unit_material,
                                                 wave_problem, farfield_data, constant_optics):
        result = apply_em_farfield_direct(surface, point_state, kind, farfield_data,
                                          unit_material, constant_optics, wave_problem)
        phi = surface.basis.phi

        assert set(result.jacobian) == {v for v in ALL_FIELD_VARIABLES if v.family is Family.E}
        for variable, block in result.jacobian.items():
            def residual(delta):
                state = FieldState(e_real=point_state.e_real.copy(),
                                   e_imag=point_state.e_imag.copy())
                state.vector(variable.family, variable.part)[variable.component] += delta
                return apply_em_farfield_direct(surface, state, kind, farfield_data,
                                                unit_material, constant_optics, wave_problem,
                                                assemble_jacobian=False).residual

            assert block.shape == (3, 4)
            np.testing.assert_allclose(block, np.outer(central_difference(residual, 0.0), phi),
                                       atol=1e-8)

    def test_jacobian_respects_dimension_and_activity(self, surface, point_state, unit_material,
                                                      farfield_data, constant_optics):
        problem = ProblemDescription.full_wave(num_dim=2)
        result = apply_em_farfield_direct(surface, point_state, FarFieldKind.E_REAL,
                                          farfield_data, unit_material, constant_optics, problem)
        assert all(v.component < 2 for v in result.jacobian)

        result = apply_em_farfield_direct(surface, point_state, FarFieldKind.E_REAL,
                                          farfield_data, unit_material, constant_optics, problem,
                                          assemble_jacobian=False)
        assert result.jacobian == {}

    def test_outputs_are_fresh(self, surface, point_state, unit_material, wave_problem,
                               farfield_data, constant_optics):
        first = apply_em_farfield_direct(surface, point_state, FarFieldKind.H_REAL,
                                         farfield_data, unit_material, constant_optics,
                                         wave_problem)
        second = apply_em_farfield_direct(surface, point_state, FarFieldKind.H_REAL,
                                          farfield_data, unit_material, constant_optics,
                                          wave_problem)
        np.testing.assert_array_equal(first.residual, second.residual)
        assert first.residual is not second.residual

    def test_invalid_inputs(self, surface, point_state, unit_material, wave_problem,
                            farfield_data, constant_optics):
        with pytest.raises(InvalidSelectorError):
            apply_em_farfield_direct(surface, point_state, "EM_DIRECT_BC", farfield_data,
                                     unit_material, constant_optics, wave_problem)
        with pytest.raises(ValidationError):
            apply_em_farfield_direct(surface, point_state, FarFieldKind.E_REAL, [1.0, 0.0],
                                     unit_material, constant_optics, wave_problem)

    def test_operator_binding(self, surface, point_state, unit_material, wave_problem,
                              farfield_data, constant_optics):
        op = FarFieldOperator(unit_material, constant_optics)
        result = op(surface, point_state, "EM_HR_FARFIELD_DIRECT_BC", farfield_data, wave_problem)
        expected = apply_em_farfield_direct(surface, point_state, FarFieldKind.H_REAL,
                                            farfield_data, unit_material, constant_optics,
                                            wave_problem)
        np.testing.assert_allclose(result.residual, expected.residual)

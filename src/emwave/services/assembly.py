"""Assembly engine driving the EM kernels over tetrahedral elements."""

import concurrent.futures
import threading
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..models.element import LocalAccumulator
from ..models.fields import FieldState, mesh_displacement
from ..models.materials import CoefficientResolver, MaterialConstants
from ..models.problem import ProblemDescription
from ..operators.base import get_operator
from ..operators.farfield import FarFieldKind, FarFieldResult
from ..utils.config_manager import EMWaveConfig
from ..utils.exceptions import ConfigurationError
from ..utils.logging_config import get_logger, log_performance
from ..utils.reference_element import TetrahedronP1, tetrahedron_quadrature

logger = get_logger(__name__)

Element = Union[TetrahedronP1, np.ndarray]


@dataclass
class ElementJob:
    """One element of a batch assembly."""

    coordinates: np.ndarray
    nodal_values: Mapping = field(default_factory=dict)
    time: float = 0.0
    tt: float = 0.0
    dt: float = 0.0


class AssemblyEngine:
    """Element-level residual and Jacobian assembly for the wave equations.

    Parameters
    ----------
    problem : ProblemDescription
        Active equations and variables
    material : MaterialConstants
        Frequency, base permittivity and permeability
    resolver : CoefficientResolver
        Optical property model
    config : EMWaveConfig, optional
        Quadrature order, worker count and finite-difference step. Its
        ``num_dim`` must agree with the problem
    """

    def __init__(self, problem: ProblemDescription, material: MaterialConstants,
                 resolver: CoefficientResolver, config: Optional[EMWaveConfig] = None):
        self.problem = problem
        self.material = material
        self.resolver = resolver
        if config is None:
            config = EMWaveConfig()
            config.assembly.num_dim = problem.num_dim
        elif config.assembly.num_dim != problem.num_dim:
            raise ConfigurationError(
                f"Configured num_dim {config.assembly.num_dim} does not match "
                f"problem num_dim {problem.num_dim}",
                config_key="assembly.num_dim",
                actual_value=str(config.assembly.num_dim),
            )
        self.config = config

        self.volume_operator = get_operator("emwave")(material, resolver)
        self.boundary_operator = get_operator("em_farfield_direct")(material, resolver)
        self.quadrature = tetrahedron_quadrature(self.config.assembly.quadrature_order)

        self.elements_assembled = 0
        self._stats_lock = threading.Lock()

        logger.info(f"AssemblyEngine initialized with {len(problem.equations)} equations, "
                    f"quadrature order {self.config.assembly.quadrature_order}")

    @property
    def mesh_active(self) -> bool:
        return any(self.problem.is_variable_active(mesh_displacement(b))
                   for b in range(self.problem.num_dim))

    def displaced_element(self, coordinates: Element, nodal_values: Mapping) -> TetrahedronP1:
        """Tetrahedron at its reference coordinates plus nodal mesh displacements."""
        if isinstance(coordinates, TetrahedronP1):
            coordinates = coordinates.coordinates
        coordinates = np.array(coordinates, dtype=float)
        for b in range(self.problem.num_dim):
            displacement = nodal_values.get(mesh_displacement(b))
            if displacement is not None:
                coordinates[:, b] += np.asarray(displacement, dtype=float)
        return TetrahedronP1(coordinates)

    @log_performance("assemble_element")
    def assemble_element(
        self,
        element: Element,
        nodal_values: Mapping,
        time: float = 0.0,
        tt: float = 0.0,
        dt: float = 0.0,
        accumulator: Optional[LocalAccumulator] = None,
        assemble_residual: bool = True,
        assemble_jacobian: bool = True,
    ) -> LocalAccumulator:
        """Assemble every active equation over the element quadrature rule.

        Parameters
        ----------
        element : TetrahedronP1 or np.ndarray
            Element or its undisplaced (4, 3) nodal coordinates
        nodal_values : Mapping
            Nodal arrays keyed by variable; missing keys are zero
        time, tt, dt : float, optional
            Time, time integration parameter and step size
        accumulator : LocalAccumulator, optional
            Accumulator to add into; a new one is created when omitted

        Returns
        -------
        LocalAccumulator
            The accumulator holding the element blocks
        """
        accumulator = accumulator if accumulator is not None else LocalAccumulator()
        tet = self.displaced_element(element, nodal_values)
        with_mesh = assemble_jacobian and self.mesh_active

        points, weights = self.quadrature
        for xi, weight in zip(points, weights):
            context = tet.context(xi, weight, with_mesh_sensitivities=with_mesh)
            state = FieldState.interpolate(context.basis.phi, nodal_values,
                                           tet.coordinates, self.problem.num_species)
            for equation in self.problem.equations:
                self.volume_operator.assemble(
                    context, state, self.problem, accumulator, equation,
                    time=time, tt=tt, dt=dt,
                    assemble_residual=assemble_residual,
                    assemble_jacobian=assemble_jacobian,
                )

        with self._stats_lock:
            self.elements_assembled += 1
        return accumulator

    def _run_job(self, job: ElementJob) -> LocalAccumulator:
        return self.assemble_element(job.coordinates, job.nodal_values,
                                     job.time, job.tt, job.dt)

    def assemble_elements(self, jobs: Sequence[ElementJob],
                          max_workers: Optional[int] = None) -> List[LocalAccumulator]:
        """Assemble independent elements concurrently, one accumulator each.

        Results are returned in job order.
        """
        if not jobs:
            return []

        max_workers = max_workers or self.config.assembly.max_workers
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(self._run_job, jobs))

        logger.info(f"Assembled {len(results)} elements")
        return results

    def apply_farfield(
        self,
        element: Element,
        face: int,
        local_coords: Sequence[float],
        nodal_values: Mapping,
        bc_kind: Union[FarFieldKind, str],
        bc_data: Sequence[float],
        time: float = 0.0,
        assemble_jacobian: bool = True,
    ) -> FarFieldResult:
        """Evaluate the far-field boundary kernel at a point of an element face."""
        tet = self.displaced_element(element, nodal_values)
        context = tet.surface_context(face, local_coords)
        state = FieldState.interpolate(context.basis.phi, nodal_values,
                                       tet.coordinates, self.problem.num_species)
        return self.boundary_operator.assemble(context, state, bc_kind, bc_data, self.problem,
                                               time=time, assemble_jacobian=assemble_jacobian)

    def get_stats(self) -> Mapping[str, Any]:
        return {
            "elements_assembled": self.elements_assembled,
            "equations": len(self.problem.equations),
            "quadrature_points": len(self.quadrature[1]),
        }

    def __repr__(self) -> str:
        return (f"AssemblyEngine(equations={len(self.problem.equations)}, "
                f"resolver={self.resolver!r})")

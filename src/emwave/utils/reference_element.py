"""Linear tetrahedron with exact geometric sensitivities.

Used by the element driver and by the finite-difference checks: because the
mapping is affine, ``det_J`` and the physical basis gradients have closed-form
derivatives with respect to the nodal coordinates.
"""

from typing import Tuple

import numpy as np

from ..models.element import BasisFunctions, ElementContext, SurfaceContext
from .algebra import DIM
from .exceptions import ErrorCode, ValidationError
from .logging_config import get_logger

logger = get_logger(__name__)

NUM_NODES = 4

# Gradients of (1 - xi - eta - zeta, xi, eta, zeta) in reference coordinates
REFERENCE_GRADIENTS = np.array([
    [-1.0, -1.0, -1.0],
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, 0.0, 1.0],
])

FACE_NODES = ((0, 1, 2), (0, 1, 3), (0, 2, 3), (1, 2, 3))


def tetrahedron_quadrature(order: int = 2) -> Tuple[np.ndarray, np.ndarray]:
    """Quadrature points and weights on the reference tetrahedron.

    Parameters
    ----------
    order : int, optional
        1 for the centroid rule, 2 for the four-point rule, by default 2

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Points of shape (nq, 3) and weights summing to the reference volume 1/6
    """
    if order == 1:
        return np.array([[0.25, 0.25, 0.25]]), np.array([1.0 / 6.0])
    if order == 2:
        a = 0.5854101966249685
        b = 0.1381966011250105
        points = np.array([
            [b, b, b],
            [a, b, b],
            [b, a, b],
            [b, b, a],
        ])
        return points, np.full(4, 1.0 / 24.0)
    raise ValidationError(f"Tetrahedron quadrature of order {order} not available",
                          invalid_field="quadrature_order", actual_value=order,
                          constraint="1 or 2")


def shape_functions(xi: np.ndarray) -> np.ndarray:
    xi = np.asarray(xi, dtype=float).reshape(DIM)
    return np.array([1.0 - xi.sum(), xi[0], xi[1], xi[2]])


class TetrahedronP1:
    """Four-node linear tetrahedron.

    Parameters
    ----------
    coordinates : np.ndarray
        Nodal coordinates, shape (4, 3), positively oriented

    Raises
    ------
    ValidationError
        If the element is inverted or degenerate
    """

    def __init__(self, coordinates: np.ndarray):
        coordinates = np.asarray(coordinates, dtype=float)
        if coordinates.shape != (NUM_NODES, DIM):
            raise ValidationError(f"Tetrahedron needs (4, 3) coordinates, got {coordinates.shape}",
                                  invalid_field="coordinates", actual_value=coordinates.shape,
                                  error_code=ErrorCode.INVALID_ELEMENT)
        self.coordinates = coordinates

        # J[a, c] = d x_a / d xi_c
        self.jacobian = coordinates.T @ REFERENCE_GRADIENTS
        self.det_J = float(np.linalg.det(self.jacobian))
        if self.det_J <= 0.0:
            raise ValidationError(f"Tetrahedron has non-positive Jacobian determinant {self.det_J:.3e}",
                                  invalid_field="coordinates", actual_value=self.det_J,
                                  constraint="det_J > 0", error_code=ErrorCode.INVALID_ELEMENT)
        self.grad_phi = REFERENCE_GRADIENTS @ np.linalg.inv(self.jacobian)

    @property
    def volume(self) -> float:
        return self.det_J / 6.0

    def d_det_J_dmesh(self) -> np.ndarray:
        """``d det_J / d x[j][b]`` as shape (3, 4)."""
        return self.det_J * self.grad_phi.T

    def d_grad_phi_dmesh(self) -> np.ndarray:
        """``d grad_phi[i][p] / d x[j][b]`` as shape (4, 3, 3, 4)."""
        return -np.einsum("ib,jp->ipbj", self.grad_phi, self.grad_phi)

    def basis(self, xi: np.ndarray, with_mesh_sensitivities: bool = True) -> BasisFunctions:
        return BasisFunctions(
            phi=shape_functions(xi),
            grad_phi=self.grad_phi,
            d_grad_phi_dmesh=self.d_grad_phi_dmesh() if with_mesh_sensitivities else None,
        )

    def context(self, xi: np.ndarray, weight: float = 1.0,
                with_mesh_sensitivities: bool = True) -> ElementContext:
        """Element context at reference point ``xi``."""
        return ElementContext(
            basis=self.basis(xi, with_mesh_sensitivities),
            det_J=self.det_J,
            h3=1.0,
            weight=weight,
            d_det_J_dmesh=self.d_det_J_dmesh() if with_mesh_sensitivities else None,
            dh3_dq=np.zeros(DIM),
        )

    def physical_point(self, xi: np.ndarray) -> np.ndarray:
        return shape_functions(xi) @ self.coordinates

    def outward_normal(self, face: int) -> np.ndarray:
        """Unit normal of ``face`` pointing away from the opposite node."""
        a, b, c = self._face(face)
        x = self.coordinates
        normal = np.cross(x[b] - x[a], x[c] - x[a])
        opposite = (set(range(NUM_NODES)) - {a, b, c}).pop()
        if np.dot(normal, x[opposite] - x[a]) > 0.0:
            normal = -normal
        return normal / np.linalg.norm(normal)

    def face_to_reference(self, face: int, local_coords: np.ndarray) -> np.ndarray:
        """Map face coordinates ``(s, t)`` to reference element coordinates."""
        s, t = np.asarray(local_coords, dtype=float).reshape(2)
        a, b, c = self._face(face)
        phi = np.zeros(NUM_NODES)
        phi[a] += 1.0 - s - t
        phi[b] += s
        phi[c] += t
        return phi[1:]

    def surface_context(self, face: int, local_coords: np.ndarray) -> SurfaceContext:
        """Surface context at face coordinates ``(s, t)`` of ``face``."""
        xi = self.face_to_reference(face, local_coords)
        return SurfaceContext(
            normal=self.outward_normal(face),
            basis=self.basis(xi, with_mesh_sensitivities=False),
            local_coords=np.asarray(local_coords, dtype=float),
        )

    @staticmethod
    def _face(face: int):
        if face not in range(len(FACE_NODES)):
            raise ValidationError(f"Tetrahedron face must be 0..3, got {face}",
                                  invalid_field="face", actual_value=face,
                                  error_code=ErrorCode.INVALID_ELEMENT)
        return FACE_NODES[face]

    def __repr__(self) -> str:
        return f"TetrahedronP1(det_J={self.det_J:.4g})"

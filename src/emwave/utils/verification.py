"""Finite-difference checks for analytic Jacobian blocks."""

from typing import Callable, Dict, Mapping, Optional

import numpy as np

from .logging_config import get_logger

logger = get_logger(__name__)


def central_difference(fn: Callable[[float], np.ndarray], x0: float, h: float = 1e-6) -> np.ndarray:
    """Second-order central difference ``(fn(x0 + h) - fn(x0 - h)) / 2h``."""
    forward = np.asarray(fn(x0 + h), dtype=float)
    backward = np.asarray(fn(x0 - h), dtype=float)
    return (forward - backward) / (2.0 * h)


def perturbed(nodal_values: Mapping, variable, j: int, delta: float, num_nodes: int = 4) -> Dict:
    """Copy of ``nodal_values`` with dof ``j`` of ``variable`` shifted by ``delta``."""
    values = dict(nodal_values)
    column = np.array(values.get(variable, np.zeros(num_nodes)), dtype=float)
    column[j] += delta
    values[variable] = column
    return values


def finite_difference_jacobian(
    engine,
    element,
    nodal_values: Mapping,
    variable,
    h: Optional[float] = None,
    time: float = 0.0,
    num_nodes: int = 4,
) -> Dict:
    """Numerical ``d R[eqn] / d u[variable]`` for every active equation.

    Each nodal value of ``variable`` is perturbed in turn and the element
    residual is reassembled on both sides.

    Parameters
    ----------
    engine : AssemblyEngine
        Engine used to assemble residuals
    element : TetrahedronP1 or np.ndarray
        Element or its undisplaced nodal coordinates
    nodal_values : Mapping
        Nodal arrays keyed by variable
    variable : VariableKey
        Unknown to perturb
    h : float, optional
        Step size, by default the configured ``fd_step``
    time : float, optional
        Current time
    num_nodes : int, optional
        Dofs per variable

    Returns
    -------
    Dict[FieldVariable, np.ndarray]
        Blocks of shape (num_nodes, num_nodes) keyed by equation
    """
    h = engine.config.assembly.fd_step if h is None else h
    equations = list(engine.problem.equations)

    def residuals(delta, j):
        accumulator = engine.assemble_element(
            element, perturbed(nodal_values, variable, j, delta, num_nodes),
            time=time, assemble_jacobian=False)
        rows = []
        for equation in equations:
            block = accumulator.residual(equation)
            rows.append(np.zeros(num_nodes) if block is None else block)
        return np.array(rows)

    columns = [central_difference(lambda delta: residuals(delta, j), 0.0, h)
               for j in range(num_nodes)]
    stacked = np.stack(columns, axis=-1)

    logger.debug(f"Finite-difference sensitivities to {variable!r} with h={h}")
    return {equation: stacked[e] for e, equation in enumerate(equations)}


def finite_difference_block(engine, element, nodal_values: Mapping, equation, variable,
                            h: Optional[float] = None, time: float = 0.0) -> np.ndarray:
    """Numerical ``d R[equation] / d u[variable]`` for one element."""
    return finite_difference_jacobian(engine, element, nodal_values, variable, h=h,
                                      time=time)[equation]


def analytic_block(accumulator, equation, variable, num_nodes: int = 4) -> np.ndarray:
    """Assembled Jacobian block, zeros where nothing was assembled."""
    block = accumulator.jacobian(equation, variable)
    return np.zeros((num_nodes, num_nodes)) if block is None else block

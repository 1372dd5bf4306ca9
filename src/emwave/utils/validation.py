"""Upstream validation for assembly inputs."""

from typing import Sequence

import numpy as np

from .exceptions import (
    DegenerateMaterialError,
    ErrorCode,
    InvalidSelectorError,
    ValidationError,
    validate_and_raise,
)
from .logging_config import get_logger

logger = get_logger(__name__)

FARFIELD_DATA_LENGTH = 8


def validate_farfield_data(bc_data: Sequence[float]) -> np.ndarray:
    """Validate the far-field boundary data layout.

    Parameters
    ----------
    bc_data : Sequence[float]
        ``[n2, k2, Re(inc_x), Re(inc_y), Re(inc_z), Im(inc_x), Im(inc_y), Im(inc_z)]``

    Returns
    -------
    np.ndarray
        The data as a float array

    Raises
    ------
    ValidationError
        If the data has the wrong length or non-finite entries
    """
    try:
        data = np.asarray(bc_data, dtype=float).reshape(-1)
    except (TypeError, ValueError) as e:
        raise ValidationError("Far-field data must be numeric", invalid_field="bc_data",
                              actual_value=bc_data, error_code=ErrorCode.INVALID_BOUNDARY_DATA,
                              cause=e) from e

    validate_and_raise(
        data.shape == (FARFIELD_DATA_LENGTH,),
        f"Far-field data needs {FARFIELD_DATA_LENGTH} values, got {data.size}",
        invalid_field="bc_data",
        actual_value=data.size,
        error_code=ErrorCode.INVALID_BOUNDARY_DATA,
    )
    validate_and_raise(np.all(np.isfinite(data)), "Far-field data contains non-finite values",
                       invalid_field="bc_data", actual_value=data,
                       error_code=ErrorCode.INVALID_BOUNDARY_DATA)

    return data


def validate_material_pair(impedance_interior: complex, impedance_exterior: complex,
                           tolerance: float = 1e-12) -> None:
    """Reject impedance pairs for which the far-field coefficients blow up.

    The boundary kernel divides by ``Z1 + Z2`` and by ``1 + Gamma``; callers
    should run this check once per material pair before assembling.

    Raises
    ------
    DegenerateMaterialError
        If either denominator is within ``tolerance`` (relative) of zero
    """
    z1 = complex(impedance_interior)
    z2 = complex(impedance_exterior)
    scale = max(abs(z1), abs(z2), 1e-300)

    pair = {"impedance_interior": z1, "impedance_exterior": z2}

    validate_and_raise(np.isfinite(z1) and np.isfinite(z2), "Impedances must be finite",
                       DegenerateMaterialError, **pair)
    validate_and_raise(abs(z1 + z2) > tolerance * scale, "Impedance sum Z1 + Z2 vanishes",
                       DegenerateMaterialError, **pair)
    # 1 + Gamma = 2 Z2 / (Z1 + Z2)
    validate_and_raise(abs(z2) > tolerance * scale,
                       "Exterior impedance vanishes, 1 + Gamma is zero",
                       DegenerateMaterialError, **pair)

    logger.debug(f"Material pair accepted: Z1={z1}, Z2={z2}")


def validate_conjugate_pair(variable, conjugate) -> None:
    """Require ``conjugate`` to be the real/imaginary partner of ``variable``."""
    validate_and_raise(
        conjugate == variable.conjugate,
        f"{conjugate!r} is not the conjugate partner of {variable!r}",
        InvalidSelectorError,
        selector=conjugate,
        suggestion=f"Use {variable.conjugate!r}",
    )

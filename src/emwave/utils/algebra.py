"""Index-notation helpers for three-dimensional vector algebra."""

from typing import Sequence

import numpy as np

DIM = 3


def permutation(i: int, j: int, k: int) -> int:
    """Levi-Civita symbol over the indices (0, 1, 2).

    Returns +1 for even permutations, -1 for odd permutations and 0 when
    any index repeats.
    """
    if i == j or j == k or i == k:
        return 0
    if (i, j, k) in ((0, 1, 2), (1, 2, 0), (2, 0, 1)):
        return 1
    return -1


def kronecker(i: int, j: int) -> int:
    """Kronecker delta."""
    return 1 if i == j else 0


PERMUTATION_TENSOR = np.array(
    [[[permutation(i, j, k) for k in range(DIM)] for j in range(DIM)] for i in range(DIM)],
    dtype=float,
)


def complex_cross(v0: Sequence[complex], v1: Sequence[complex]) -> np.ndarray:
    """Cross product of two complex 3-vectors.

    ``v2[k] = sum_ij permutation(i, j, k) * v0[i] * v1[j]``

    Parameters
    ----------
    v0, v1 : Sequence[complex]
        Length-3 vectors

    Returns
    -------
    np.ndarray
        Complex vector ``v0 x v1``
    """
    v0 = np.asarray(v0, dtype=complex)
    v1 = np.asarray(v1, dtype=complex)
    if v0.shape != (DIM,) or v1.shape != (DIM,):
        raise ValueError(f"complex_cross expects two length-{DIM} vectors, "
                         f"got shapes {v0.shape} and {v1.shape}")

    v2 = np.zeros(DIM, dtype=complex)
    for i in range(DIM):
        for j in range(DIM):
            for k in range(DIM):
                v2[k] += permutation(i, j, k) * v0[i] * v1[j]
    return v2

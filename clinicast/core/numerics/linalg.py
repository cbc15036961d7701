"""
Linear Algebra Kernel - Square matrix inversion by Gauss-Jordan elimination.
"""

from collections.abc import Sequence

import numpy as np

from clinicast.core.domain.errors import MalformedInputError, SingularMatrixError

PIVOT_EPSILON = 1e-12


def invert(matrix: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    """
    Invert a square matrix.

    The matrix is augmented with the identity; for each column the row with
    the largest absolute value at or below the diagonal is swapped in as the
    pivot, the pivot row is scaled to 1, and the column is eliminated from
    every other row. The right half is then the inverse.

    Args:
        matrix: n x n matrix

    Returns:
        n x n inverse as a float array

    Raises:
        SingularMatrixError: if a pivot magnitude falls below 1e-12
        MalformedInputError: if the input is not square
    """
    a = np.array(matrix, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise MalformedInputError(f"Expected a square matrix, got shape {a.shape}")

    n = a.shape[0]
    aug = np.hstack([a, np.eye(n)])

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(aug[col:, col])))
        if abs(aug[pivot_row, col]) < PIVOT_EPSILON:
            raise SingularMatrixError(f"No usable pivot in column {col}")

        if pivot_row != col:
            aug[[col, pivot_row]] = aug[[pivot_row, col]]

        aug[col] = aug[col] / aug[col, col]

        for row in range(n):
            if row == col:
                continue
            factor = aug[row, col]
            if factor != 0.0:
                aug[row] = aug[row] - factor * aug[col]

    return aug[:, n:]

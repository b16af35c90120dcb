# -*- coding: utf-8 -*-
"""Weighted projections onto the affine set ``{v : T @ v = y}``.

Created on October 18, 2026
@author: Donald Erb

"""

import warnings

import numpy as np
from scipy.linalg import LinAlgError, LinAlgWarning, cho_factor, cho_solve, lu_factor, lu_solve

from .utils import _MIN_FLOAT, NumericalError


def _factorize(matrix):
    """
    Factorizes a square matrix for repeated solving.

    Uses a Cholesky factorization if `matrix` is numerically positive definite and
    an LU factorization with partial pivoting otherwise.

    Parameters
    ----------
    matrix : numpy.ndarray, shape (M, M)
        The matrix to factorize.

    Returns
    -------
    Callable
        A function that takes the right hand side, ``b``, and returns the solution
        to ``matrix @ x = b``.

    Raises
    ------
    NumericalError
        Raised if `matrix` contains non-finite values or is singular to working precision.

    """
    if not np.isfinite(matrix).all():
        raise NumericalError('non-finite value encountered in the weighted Gram matrix')
    size = matrix.shape[0]
    try:
        factorization = cho_factor(matrix, lower=True, check_finite=False)
        pivots = np.abs(np.diag(factorization[0]))**2
        solver = cho_solve
    except LinAlgError:
        # scipy only warns for exactly singular matrices, so check the pivots directly
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', LinAlgWarning)
            factorization = lu_factor(matrix, check_finite=False)
        pivots = np.abs(np.diag(factorization[0]))
        solver = lu_solve

    if pivots.min() <= size * _MIN_FLOAT * pivots.max():
        raise NumericalError(
            'the weighted Gram matrix is singular; the constraint matrix must have full row rank'
        )

    def solve(rhs):
        return solver(factorization, rhs, check_finite=False)

    return solve


def weighted_projection(operator, weights, y):
    """
    Computes the weighted projection onto the solutions of ``operator @ v = y``.

    For any ``u``, ``projection @ u + pinv_y`` is the point satisfying
    ``operator @ v = y`` that is closest to ``u`` in the norm
    ``sqrt(sum(weights * v**2))``.

    Parameters
    ----------
    operator : numpy.ndarray, shape (L, M)
        The constraint matrix, ``T``. Must have full row rank.
    weights : numpy.ndarray, shape (M,)
        The positive weight for each coordinate.
    y : numpy.ndarray, shape (L, K)
        The right hand side of the constraint.

    Returns
    -------
    projection : numpy.ndarray, shape (M, M)
        The projector onto the null space of `operator` that is orthogonal with
        respect to the weighted inner product,
        ``I - W @ (operator @ W)^-1 @ operator`` with ``W = operator.T / weights``.
    pinv_y : numpy.ndarray, shape (M, K)
        The minimum weighted norm solution, ``W @ (operator @ W)^-1 @ y``.

    Raises
    ------
    NumericalError
        Raised if the weighted Gram matrix ``operator @ W`` is singular.

    """
    weighted_transpose = operator.T / weights[:, None]
    solve = _factorize(operator @ weighted_transpose)
    pinv_y = weighted_transpose @ solve(y)
    projection = np.eye(operator.shape[1]) - weighted_transpose @ solve(operator)

    return projection, pinv_y


class _ProjectionHelper:
    """
    An object to help with the weighted projection step.

    Allows only recalculating the projection matrices when the coordinate weights change.

    Attributes
    ----------
    factorizations : int
        The number of times the projection matrices have been calculated.
    operator : numpy.ndarray, shape (L, M)
        The constraint matrix.
    pinv_y : numpy.ndarray, shape (M, K)
        The minimum weighted norm solution for the current weights.
    projection : numpy.ndarray, shape (M, M)
        The weighted null space projector for the current weights.
    y : numpy.ndarray, shape (L, K)
        The right hand side of the constraint.

    """

    def __init__(self, operator, y, weights):
        """
        Initializes the object and calculates the projection matrices.

        Parameters
        ----------
        operator : numpy.ndarray, shape (L, M)
            The constraint matrix.
        y : numpy.ndarray, shape (L, K)
            The right hand side of the constraint.
        weights : numpy.ndarray, shape (M,)
            The positive weight for each coordinate.

        """
        self.operator = operator
        self.y = y
        self.projection = None
        self.pinv_y = None
        self.factorizations = 0
        self._weights = None

        self.update(weights)

    def update(self, weights):
        """
        Recalculates the projection matrices only if the weights have changed.

        Parameters
        ----------
        weights : numpy.ndarray, shape (M,)
            The positive weight for each coordinate.

        Returns
        -------
        bool
            True if the projection matrices were recalculated.

        """
        if self._weights is not None and np.array_equal(weights, self._weights):
            return False
        self.projection, self.pinv_y = weighted_projection(self.operator, weights, self.y)
        # copy since the solver rescales the weights in place
        self._weights = weights.copy()
        self.factorizations += 1

        return True

    def project(self, values):
        """Projects `values` onto the affine set ``{v : operator @ v = y}``."""
        return self.projection @ values + self.pinv_y

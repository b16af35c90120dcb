# -*- coding: utf-8 -*-
"""Helper functions and exception classes for pyunmixing.

Created on October 18, 2026
@author: Donald Erb

"""

import numpy as np


# the minimum positive float values such that a + _MIN_FLOAT != a
_MIN_FLOAT = np.finfo(float).eps


class ConfigurationError(ValueError):
    """
    Error raised when the inputs for an unmixing problem are malformed or inconsistent.

    Covers shape mismatches, invalid option values, conflicting warm starts, and
    partial warm starts. Always raised before any iteration is performed.
    """


class NumericalError(np.linalg.LinAlgError):
    """
    Error raised when the weighted Gram matrix of the constraint operator cannot be factored.

    Indicates that the stacked constraint matrix does not have full row rank, for
    example due to duplicate or degenerate dictionary spectra.
    """


class ParameterWarning(UserWarning):
    """
    Warning issued when a parameter value is outside of the recommended range.

    For cases where a parameter value is valid and will not cause errors, but is
    outside of the recommended range of values and as a result may cause issues
    such as numerical instability that would otherwise be hard to diagnose.
    """


class ConvergenceWarning(UserWarning):
    """
    Warning issued when the iteration budget is exhausted before convergence.

    The returned values are still the best current estimates, and the final primal
    and dual residuals are returned so the caller can decide how to proceed.
    """


def column_norms(matrix):
    """
    Computes the l2 norm of each column of a matrix.

    Parameters
    ----------
    matrix : array-like, shape (M, N)
        The input matrix.

    Returns
    -------
    numpy.ndarray, shape (N,)
        The l2 norm of each column.

    """
    matrix = np.asarray(matrix, dtype=float)
    return np.sqrt((matrix * matrix).sum(axis=0))


def soft_threshold(values, threshold):
    """
    Applies the soft thresholding (shrinkage) operator elementwise.

    Parameters
    ----------
    values : numpy.ndarray
        The values to shrink.
    threshold : float or numpy.ndarray
        The nonnegative threshold(s). Must be broadcastable against `values`. An
        infinite threshold sets the corresponding values to 0.

    Returns
    -------
    numpy.ndarray
        The shrunk values, ``max(values - threshold, 0) - max(-values - threshold, 0)``.

    Notes
    -----
    This is the proximal operator of ``threshold * |values|``.

    """
    return np.maximum(values - threshold, 0) - np.maximum(-values - threshold, 0)


def concave_basis(wavelengths):
    """
    Creates the bases spanning concave backgrounds along a wavelength axis.

    Column ``j`` is the piecewise linear tent that is 1 at ``wavelengths[j]`` and
    falls linearly to 0 at both ends of the axis. The first and last columns are
    the two linear ramps. Any background whose discrete second derivative is
    nonpositive at every interior point can be written as ``basis @ z`` with
    ``z[1:-1] >= 0``, and the first and last coefficients are unconstrained.

    Parameters
    ----------
    wavelengths : array-like, shape (L,)
        The wavelength samples. Must be strictly increasing or strictly decreasing.

    Returns
    -------
    basis : numpy.ndarray, shape (L, L)
        The concave basis matrix. Columns are not normalized.

    Raises
    ------
    ConfigurationError
        Raised if `wavelengths` is not strictly monotonic.

    References
    ----------
    Itoh, Y., et al. Hyperspectral unmixing with adaptive concave background (HUWACB).
    IEEE Transactions on Geoscience and Remote Sensing, 2017, 55(11), 6222-6236.

    """
    wavelengths = np.asarray_chkfinite(wavelengths, dtype=float).reshape(-1)
    num_bands = wavelengths.shape[0]
    if num_bands < 2:
        return np.ones((num_bands, num_bands))

    steps = np.diff(wavelengths)
    if not (np.all(steps > 0) or np.all(steps < 0)):
        raise ConfigurationError('wavelengths must be strictly monotonic')

    rows = wavelengths[:, None]
    peaks = wavelengths[None, :]
    # the first and last columns divide by zero on one side, which is never selected
    with np.errstate(divide='ignore', invalid='ignore'):
        rising = (rows - wavelengths[0]) / (peaks - wavelengths[0])
        falling = (wavelengths[-1] - rows) / (wavelengths[-1] - peaks)
    indices = np.arange(num_bands)
    basis = np.where(indices[:, None] <= indices[None, :], rising, falling)
    basis[:, 0] = falling[:, 0]
    basis[:, -1] = rising[:, -1]

    return basis

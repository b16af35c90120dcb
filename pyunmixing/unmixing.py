# -*- coding: utf-8 -*-
"""Robust unmixing of spectra with a concave background.

Created on October 18, 2026
@author: Donald Erb


The function huwacb was adapted from the MATLAB implementation of hyperspectral
unmixing with adaptive concave background (HUWACB) by Yuki Itoh, solved with a
generalized alternating direction method of multipliers (ADMM) that uses
separate adaptive penalties for each sample and for each coordinate.

"""

import logging
import warnings

import numpy as np

from ._algorithm_setup import (
    BackgroundWarmStart, FullWarmStart, _Algorithm, _class_wrapper
)
from ._linalg import _ProjectionHelper
from ._penalty import _update_penalties
from ._validation import _check_max_iter, _check_scalar_variable
from .utils import ConvergenceWarning, soft_threshold


logger = logging.getLogger(__name__)

# residuals are calculated and the penalties updated on the first iteration
# and then every _CHECKPOINT_INTERVAL iterations
_CHECKPOINT_INTERVAL = 10


class _Unmixing(_Algorithm):
    """A base class for all unmixing algorithms."""

    @_Algorithm._register
    def huwacb(self, data, dictionary=None, tol=1e-4, max_iter=1000, verbose=False,
               lambda_a=0.0, x0=None, z0=None, r0=None, d0=None, b0=None,
               concave_basis=None, rho=0.01, rho_v=1.0):
        """
        Hyperspectral unmixing with adaptive concave background (HUWACB).

        Decomposes each measured spectrum into a nonnegative combination of dictionary
        spectra, a concave background, and a sparse residual by solving

            minimize    ||r||_1 / ||y||_2 + lambda_a * ||x||_1
            subject to  y = A @ x + C @ z + r, x >= 0, z[1:-1] >= 0

        for each sample, where `A` is the dictionary and `C` is the concave basis. Using
        an l1 loss makes the fit robust to outliers and calibration artifacts.

        Parameters
        ----------
        data : array-like, shape (L,) or (L, K)
            The measured spectra, with L bands and K samples. A one dimensional input
            is treated as a single sample.
        dictionary : array-like, shape (L, N), optional
            The dictionary of reference spectra, with N spectra. Default is None, which
            only fits the concave background and residual.
        tol : float, optional
            The exit criteria. The fit is converged once both the primal and dual residuals
            are below ``tol * sqrt((2 * L + N) * K)``. Default is 1e-4.
        max_iter : int, optional
            The maximum number of iterations. Default is 1000.
        verbose : bool, optional
            If True, will log the residuals at each checkpoint at the INFO level. Default
            is False.
        lambda_a : float or array-like, shape (N,), optional
            The nonnegative sparsity weight for the dictionary coefficients, either a
            single value or one value per dictionary spectrum. Default is 0.
        x0 : array-like, shape (N,) or (N, K), optional
            The initial dictionary coefficients. Must be given along with `z0` (or `b0`),
            `r0`, and `d0`. Single columns are used for all samples.
        z0 : array-like, shape (L,) or (L, K), optional
            The initial concave basis coefficients. Cannot be given with `b0`.
        r0 : array-like, shape (L,) or (L, K), optional
            The initial residual, in the same units as the output 'residual'.
        d0 : array-like, shape (N + 2 * L,) or (N + 2 * L, K), optional
            The initial unscaled dual variables, such as the output 'dual' of a previous fit.
        b0 : array-like, shape (L,) or (L, K), optional
            An initial background that is converted to concave basis coefficients. Can
            be given alone or in place of `z0` for a full warm start.
        concave_basis : array-like, shape (L, L), optional
            The basis for representing the concave background. Default is None, which
            creates the basis from the wavelengths using :func:`.utils.concave_basis`
            and normalizes each column to a norm of 2.
        rho : float or array-like, shape (K,), optional
            The initial penalty for each sample. Must be greater than 0. Default is 0.01.
        rho_v : float or array-like, shape (N + 2 * L,), optional
            The initial penalty for each coordinate. Must be greater than 0. Default is 1.

        Returns
        -------
        abundances : numpy.ndarray, shape (N,) or (N, K)
            The estimated dictionary coefficients. Has a shape of (0, K) if no
            dictionary was given.
        params : dict
            A dictionary with the following items:

            * 'baseline': numpy.ndarray, shape (L,) or (L, K)
                The estimated concave background, ``concave_basis @ coefficients``.
            * 'coefficients': numpy.ndarray, shape (L,) or (L, K)
                The estimated concave basis coefficients.
            * 'concave_basis': numpy.ndarray, shape (L, L)
                The concave basis used for the fit.
            * 'residual': numpy.ndarray, shape (L,) or (L, K)
                The estimated residual.
            * 'dual': numpy.ndarray, shape (N + 2 * L,) or (N + 2 * L, K)
                The unscaled dual variables.
            * 'rho': numpy.ndarray, shape (K,)
                The per-sample penalties at the last iteration.
            * 'rho_v': numpy.ndarray, shape (N + 2 * L,)
                The per-coordinate penalties at the last iteration.
            * 'primal_residual': float
                The primal residual at the last checkpoint.
            * 'dual_residual': float
                The dual residual at the last checkpoint.
            * 'tol_history': numpy.ndarray, shape (M, 4)
                The iteration, primal residual, dual residual, and the dual residual
                estimated from the affine variable for each of the M checkpoints.
            * 'iterations': int
                The number of iterations performed.
            * 'converged': bool
                True if the exit criteria was reached before `max_iter` iterations.

        Raises
        ------
        ConfigurationError
            Raised if any input has an invalid shape or value, if both `b0` and `z0`
            are given, or if only some of the values for a full warm start are given.
        NumericalError
            Raised if the weighted Gram matrix of the constraint matrix is singular.

        Warns
        -----
        ConvergenceWarning
            Issued if the exit criteria was not reached within `max_iter` iterations.

        Notes
        -----
        The per-sample penalties are rescaled whenever the primal and dual residuals of
        a sample differ by more than a factor of 10, and the per-coordinate penalties are
        similarly rescaled during the first 300 iterations. The returned `rho`, `rho_v`,
        and 'dual' values can be fed back, along with the other outputs, as a warm start.

        Large values of `lambda_a` (roughly 0.1 and above for unit-norm dictionary
        spectra) can stall the penalty adaptation, leaving the per-coordinate penalties
        spread over many orders of magnitude and the primal residual well above `tol`
        even after many thousands of iterations. The returned abundances are still
        usable, but `params['converged']` will be False; lowering `lambda_a` or
        increasing `tol` avoids the stall.

        References
        ----------
        Itoh, Y., et al. Hyperspectral unmixing with adaptive concave background (HUWACB).
        IEEE Transactions on Geoscience and Remote Sensing, 2017, 55(11), 6222-6236.

        Boyd, S., et al. Distributed Optimization and Statistical Learning via the
        Alternating Direction Method of Multipliers. Foundations and Trends in Machine
        Learning, 2011, 3(1), 1-122.

        """
        tol = _check_scalar_variable(tol, variable_name='tol')
        max_iter = _check_max_iter(max_iter)
        problem, warm_start, rho, rho_v = self._setup_unmixing(
            data, dictionary=dictionary, lambda_a=lambda_a, concave_basis=concave_basis,
            rho=rho, rho_v=rho_v, x0=x0, z0=z0, r0=r0, d0=d0, b0=b0
        )
        t, dual, state = _huwacb_admm(problem, warm_start, rho, rho_v, tol, max_iter, verbose)

        abundances, coefficients, residual = problem.split(t)
        params = {
            'baseline': problem.concave_basis @ coefficients,
            'coefficients': coefficients,
            'concave_basis': problem.concave_basis,
            'residual': residual,
            'dual': rho[None, :] * rho_v[:, None] * dual,
            'rho': rho,
            'rho_v': rho_v,
            **state
        }
        if not params['converged']:
            warnings.warn(
                (f'huwacb did not converge within {max_iter} iterations; final primal and '
                 f'dual residuals were {state["primal_residual"]:.3e} and '
                 f'{state["dual_residual"]:.3e}'), ConvergenceWarning, stacklevel=2
            )

        return abundances, params


_unmixing_wrapper = _class_wrapper(_Unmixing)


@_unmixing_wrapper
def huwacb(data, dictionary=None, wavelengths=None, tol=1e-4, max_iter=1000, verbose=False,
           lambda_a=0.0, x0=None, z0=None, r0=None, d0=None, b0=None, concave_basis=None,
           rho=0.01, rho_v=1.0):
    """
    Hyperspectral unmixing with adaptive concave background (HUWACB).

    Decomposes each measured spectrum into a nonnegative combination of dictionary
    spectra, a concave background, and a sparse residual using an l1 loss.

    Parameters
    ----------
    data : array-like, shape (L,) or (L, K)
        The measured spectra, with L bands and K samples. A one dimensional input
        is treated as a single sample.
    dictionary : array-like, shape (L, N), optional
        The dictionary of reference spectra, with N spectra. Default is None, which
        only fits the concave background and residual.
    wavelengths : array-like, shape (L,), optional
        The wavelength samples of the measured data, used to create the concave basis.
        Default is None, which will create an array from -1 to 1 with L points.
    tol : float, optional
        The exit criteria. The fit is converged once both the primal and dual residuals
        are below ``tol * sqrt((2 * L + N) * K)``. Default is 1e-4.
    max_iter : int, optional
        The maximum number of iterations. Default is 1000.
    verbose : bool, optional
        If True, will log the residuals at each checkpoint at the INFO level. Default
        is False.
    lambda_a : float or array-like, shape (N,), optional
        The nonnegative sparsity weight for the dictionary coefficients. Default is 0.
    x0 : array-like, shape (N,) or (N, K), optional
        The initial dictionary coefficients. Must be given along with `z0` (or `b0`),
        `r0`, and `d0`.
    z0 : array-like, shape (L,) or (L, K), optional
        The initial concave basis coefficients. Cannot be given with `b0`.
    r0 : array-like, shape (L,) or (L, K), optional
        The initial residual.
    d0 : array-like, shape (N + 2 * L,) or (N + 2 * L, K), optional
        The initial unscaled dual variables.
    b0 : array-like, shape (L,) or (L, K), optional
        An initial background that is converted to concave basis coefficients.
    concave_basis : array-like, shape (L, L), optional
        The basis for representing the concave background. Default is None, which
        creates the basis from `wavelengths`.
    rho : float or array-like, shape (K,), optional
        The initial penalty for each sample. Default is 0.01.
    rho_v : float or array-like, shape (N + 2 * L,), optional
        The initial penalty for each coordinate. Default is 1.

    Returns
    -------
    abundances : numpy.ndarray, shape (N,) or (N, K)
        The estimated dictionary coefficients.
    params : dict
        A dictionary of the other outputs. See :meth:`.Unmixer.huwacb` for all items.

    References
    ----------
    Itoh, Y., et al. Hyperspectral unmixing with adaptive concave background (HUWACB).
    IEEE Transactions on Geoscience and Remote Sensing, 2017, 55(11), 6222-6236.

    """


def _penalty_threshold(penalty_weights, rho, rho_v):
    """The soft threshold for each coordinate and sample, ``c1 / (rho * rho_v)``."""
    return penalty_weights / rho[None, :] / rho_v[:, None]


def _admm_sweep(projector, t, dual, threshold, lower_bounds):
    """
    Performs one projection, thresholding, and dual update.

    Parameters
    ----------
    projector : pyunmixing._linalg._ProjectionHelper
        The object for projecting onto the constraint set.
    t : numpy.ndarray, shape (M, K)
        The penalized variable from the previous iteration.
    dual : numpy.ndarray, shape (M, K)
        The scaled dual variables from the previous iteration.
    threshold : numpy.ndarray, shape (M, K)
        The soft threshold for each coordinate and sample.
    lower_bounds : numpy.ndarray, shape (M,)
        The lower bound of each coordinate.

    Returns
    -------
    s : numpy.ndarray, shape (M, K)
        The updated affine variable.
    t : numpy.ndarray, shape (M, K)
        The updated penalized variable.
    dual : numpy.ndarray, shape (M, K)
        The updated scaled dual variables.

    """
    s = projector.project(t - dual)
    t = np.maximum(soft_threshold(s + dual, threshold), lower_bounds[:, None])
    dual = dual + s - t

    return s, t, dual


def _initialize(problem, warm_start, projector, threshold, rho, rho_v):
    """
    Creates the initial affine, penalized, and scaled dual variables.

    Parameters
    ----------
    problem : pyunmixing._algorithm_setup._Problem
        The assembled problem.
    warm_start : NoWarmStart or FullWarmStart or BackgroundWarmStart
        The warm start.
    projector : pyunmixing._linalg._ProjectionHelper
        The object for projecting onto the constraint set.
    threshold : numpy.ndarray, shape (M, K)
        The soft threshold for each coordinate and sample.
    rho : numpy.ndarray, shape (K,)
        The penalty for each sample.
    rho_v : numpy.ndarray, shape (M,)
        The penalty for each coordinate.

    Returns
    -------
    s, t, dual : numpy.ndarray, shape (M, K)
        The initial affine variable, penalized variable, and scaled dual variables.

    """
    lower_bounds = problem.lower_bounds
    if isinstance(warm_start, FullWarmStart):
        dual = warm_start.dual / rho[None, :] / rho_v[:, None]
        t = problem.stack(warm_start.abundances, warm_start.coefficients, warm_start.residual)
    elif isinstance(warm_start, BackgroundWarmStart):
        dual = np.zeros((problem.num_coordinates, problem.num_samples))
        t = problem.stack(
            np.zeros((problem.num_atoms, problem.num_samples)), warm_start.coefficients,
            np.zeros((problem.num_bands, problem.num_samples))
        )
    else:
        s = projector.pinv_y.copy()
        t = np.maximum(soft_threshold(s, threshold), lower_bounds[:, None])
        return s, t, s - t

    return _admm_sweep(projector, t, dual, threshold, lower_bounds)


def _huwacb_admm(problem, warm_start, rho, rho_v, tol, max_iter, verbose):
    """
    Solves the unmixing problem using ADMM with adaptive penalties.

    Parameters
    ----------
    problem : pyunmixing._algorithm_setup._Problem
        The assembled problem.
    warm_start : NoWarmStart or FullWarmStart or BackgroundWarmStart
        The warm start.
    rho : numpy.ndarray, shape (K,)
        The penalty for each sample. Modified inplace.
    rho_v : numpy.ndarray, shape (M,)
        The penalty for each coordinate. Modified inplace.
    tol : float
        The exit criteria for the primal and dual residuals, before scaling by
        ``sqrt(M * K)``.
    max_iter : int
        The maximum number of iterations.
    verbose : bool
        If True, will log the residuals at each checkpoint.

    Returns
    -------
    t : numpy.ndarray, shape (M, K)
        The final penalized variable, which satisfies all bounds.
    dual : numpy.ndarray, shape (M, K)
        The final scaled dual variables.
    dict
        The final residuals and convergence information: 'primal_residual',
        'dual_residual', 'tol_history', 'iterations', and 'converged'.

    """
    projector = _ProjectionHelper(problem.operator, problem.y, rho_v)
    threshold = _penalty_threshold(problem.penalty_weights, rho, rho_v)
    s, t, dual = _initialize(problem, warm_start, projector, threshold, rho, rho_v)

    exit_tol = tol * np.sqrt(problem.num_coordinates * problem.num_samples)
    primal_residual = np.inf
    dual_residual = np.inf
    tol_history = []
    iteration = 1
    while iteration <= max_iter and (primal_residual > exit_tol or dual_residual > exit_tol):
        checkpoint = iteration == 1 or iteration % _CHECKPOINT_INTERVAL == 0
        if checkpoint:
            s_start = s
            t_start = t

        s, t, dual = _admm_sweep(projector, t, dual, threshold, problem.lower_bounds)

        if checkpoint:
            residuals, rho_v_changed = _update_penalties(
                s, t, s_start, t_start, dual, rho, rho_v, iteration
            )
            primal_residual = residuals['primal']
            dual_residual = residuals['dual']
            tol_history.append(
                (iteration, primal_residual, dual_residual, residuals['dual_alt'])
            )
            if verbose:
                logger.info(
                    'iteration %4d: primal residual = %.6e, dual residual = %.6e, '
                    'alternate dual residual = %.6e', iteration, primal_residual,
                    dual_residual, residuals['dual_alt']
                )
            if rho_v_changed:
                projector.update(rho_v)
            threshold = _penalty_threshold(problem.penalty_weights, rho, rho_v)

        iteration += 1

    return t, dual, {
        'primal_residual': primal_residual,
        'dual_residual': dual_residual,
        'tol_history': np.array(tol_history).reshape(-1, 4),
        'iterations': iteration - 1,
        'converged': bool(primal_residual <= exit_tol and dual_residual <= exit_tol),
    }

# -*- coding: utf-8 -*-
"""Residual calculations and adaptive penalty updates for the ADMM solver.

Created on October 18, 2026
@author: Donald Erb

"""

import numpy as np


# the penalty parameters are rescaled when the primal and dual residuals differ
# by more than this factor
_IMBALANCE_RATIO = 10
_SCALE_FACTOR = 2
# the per-coordinate penalties are only adapted before this iteration to prevent
# late-stage oscillations
_COORDINATE_CUTOFF = 300


def _residuals(s, t, s_start, t_start, rho, rho_v):
    """
    Calculates the primal and dual residuals at a checkpoint.

    Parameters
    ----------
    s : numpy.ndarray, shape (M, K)
        The current affine (projected) variable.
    t : numpy.ndarray, shape (M, K)
        The current penalized (thresholded) variable.
    s_start : numpy.ndarray, shape (M, K)
        The affine variable at the start of the checkpoint iteration.
    t_start : numpy.ndarray, shape (M, K)
        The penalized variable at the start of the checkpoint iteration.
    rho : numpy.ndarray, shape (K,)
        The penalty for each sample.
    rho_v : numpy.ndarray, shape (M,)
        The penalty for each coordinate.

    Returns
    -------
    dict
        A dictionary with the following items:

        * 'primal': float
            The Frobenius norm of ``s - t``.
        * 'dual': float
            ``sqrt(sum((rho_v[i] * rho[j] * (t - t_start)[i, j])**2))``.
        * 'dual_alt': float
            The same as 'dual' but using the change of `s` rather than `t`. Only
            used for reporting.
        * 'squared_primal': numpy.ndarray, shape (M, K)
            The elementwise squared primal residual.
        * 'cross_change': numpy.ndarray, shape (M, K)
            ``|(t - t_start) * (s - s_start)|``, used to estimate the dual residual
            of each sample and coordinate.

    """
    primal_residual = s - t
    t_change = t - t_start
    s_change = s - s_start
    squared_primal = primal_residual**2
    rho_v_2 = rho_v**2
    rho_2 = rho**2

    return {
        'primal': np.sqrt(squared_primal.sum()),
        'dual': np.sqrt(rho_v_2 @ t_change**2 @ rho_2),
        'dual_alt': np.sqrt(rho_v_2 @ s_change**2 @ rho_2),
        'squared_primal': squared_primal,
        'cross_change': np.abs(t_change * s_change),
    }


def _rebalance_samples(primal_norms, dual_norms, rho, dual):
    """
    Rescales the penalty of each sample whose primal and dual residuals are unbalanced.

    Samples whose primal residual is more than ``_IMBALANCE_RATIO`` times their dual
    residual have their penalty doubled, and the reverse halves the penalty. The scaled
    dual variables of the affected columns are inversely rescaled so that the unscaled
    dual, ``rho * rho_v * dual``, is unchanged.

    Parameters
    ----------
    primal_norms : numpy.ndarray, shape (K,)
        The l2 norm of the primal residual of each sample.
    dual_norms : numpy.ndarray, shape (K,)
        The estimated dual residual of each sample.
    rho : numpy.ndarray, shape (K,)
        The penalty for each sample. Modified inplace.
    dual : numpy.ndarray, shape (M, K)
        The scaled dual variables. Modified inplace.

    Returns
    -------
    increased : numpy.ndarray[bool], shape (K,)
        The samples whose penalty was increased.
    decreased : numpy.ndarray[bool], shape (K,)
        The samples whose penalty was decreased.

    """
    increased = primal_norms > _IMBALANCE_RATIO * dual_norms
    decreased = dual_norms > _IMBALANCE_RATIO * primal_norms
    rho[increased] *= _SCALE_FACTOR
    dual[:, increased] /= _SCALE_FACTOR
    rho[decreased] /= _SCALE_FACTOR
    dual[:, decreased] *= _SCALE_FACTOR

    return increased, decreased


def _rebalance_coordinates(primal_norms, dual_norms, rho_v, dual):
    """
    Rescales the penalty of each coordinate whose primal and dual residuals are unbalanced.

    Same as :func:`._rebalance_samples`, but operates on the rows of `dual`.

    Parameters
    ----------
    primal_norms : numpy.ndarray, shape (M,)
        The l2 norm of the primal residual of each coordinate across all samples.
    dual_norms : numpy.ndarray, shape (M,)
        The estimated dual residual of each coordinate.
    rho_v : numpy.ndarray, shape (M,)
        The penalty for each coordinate. Modified inplace.
    dual : numpy.ndarray, shape (M, K)
        The scaled dual variables. Modified inplace.

    Returns
    -------
    bool
        True if any coordinate penalty was changed, which requires recalculating
        the weighted projection.

    """
    increased = primal_norms > _IMBALANCE_RATIO * dual_norms
    decreased = dual_norms > _IMBALANCE_RATIO * primal_norms
    rho_v[increased] *= _SCALE_FACTOR
    dual[increased] /= _SCALE_FACTOR
    rho_v[decreased] /= _SCALE_FACTOR
    dual[decreased] *= _SCALE_FACTOR

    return bool(increased.any() or decreased.any())


def _update_penalties(s, t, s_start, t_start, dual, rho, rho_v, iteration):
    """
    Calculates the residuals and rebalances the penalties at a checkpoint.

    Parameters
    ----------
    s : numpy.ndarray, shape (M, K)
        The current affine (projected) variable.
    t : numpy.ndarray, shape (M, K)
        The current penalized (thresholded) variable.
    s_start : numpy.ndarray, shape (M, K)
        The affine variable at the start of the checkpoint iteration.
    t_start : numpy.ndarray, shape (M, K)
        The penalized variable at the start of the checkpoint iteration.
    dual : numpy.ndarray, shape (M, K)
        The scaled dual variables. Modified inplace.
    rho : numpy.ndarray, shape (K,)
        The penalty for each sample. Modified inplace.
    rho_v : numpy.ndarray, shape (M,)
        The penalty for each coordinate. Modified inplace.
    iteration : int
        The current iteration, starting at 1.

    Returns
    -------
    residuals : dict
        The output of :func:`._residuals`, computed before any rebalancing.
    rho_v_changed : bool
        True if any value in `rho_v` was changed.

    Notes
    -----
    The per-sample penalties are updated first, and the per-coordinate dual residuals
    use the updated per-sample penalties.

    """
    residuals = _residuals(s, t, s_start, t_start, rho, rho_v)
    squared_primal = residuals['squared_primal']
    cross_change = residuals['cross_change']

    _rebalance_samples(
        np.sqrt(squared_primal.sum(axis=0)), rho * np.sqrt(rho_v**2 @ cross_change),
        rho, dual
    )

    rho_v_changed = False
    if iteration < _COORDINATE_CUTOFF:
        rho_v_changed = _rebalance_coordinates(
            np.sqrt(squared_primal.sum(axis=1)), rho_v * np.sqrt(cross_change @ rho**2),
            rho_v, dual
        )

    return residuals, rho_v_changed

# -*- coding: utf-8 -*-
"""Setup code for the unmixing algorithms in pyunmixing.

Created on October 18, 2026
@author: Donald Erb

"""

from functools import wraps
from inspect import signature
import warnings

import numpy as np
from scipy.linalg import LinAlgError, solve

from ._validation import (
    _check_array, _check_block, _check_penalty_vector, _check_sized_array
)
from .utils import (
    _MIN_FLOAT, ConfigurationError, NumericalError, ParameterWarning, column_norms,
    concave_basis as _make_concave_basis
)


# scale applied to the residual block of the consensus variable
_RESIDUAL_SCALE = 0.2


class NoWarmStart:
    """Designates that the solver starts from the minimum norm feasible point."""

    def __repr__(self):
        return f'{type(self).__name__}()'


class FullWarmStart:
    """
    A warm start from a previous solution.

    Attributes
    ----------
    abundances : numpy.ndarray, shape (N, K)
        The initial dictionary coefficients.
    coefficients : numpy.ndarray, shape (L, K)
        The initial concave basis coefficients.
    residual : numpy.ndarray, shape (L, K)
        The initial residual, in the same units as the output residual.
    dual : numpy.ndarray, shape (N + 2 * L, K)
        The initial unscaled dual variables.

    """

    def __init__(self, abundances, coefficients, residual, dual):
        self.abundances = abundances
        self.coefficients = coefficients
        self.residual = residual
        self.dual = dual

    def __repr__(self):
        return f'{type(self).__name__}(num_samples={self.dual.shape[1]})'


class BackgroundWarmStart:
    """
    A warm start from only an initial background.

    Attributes
    ----------
    coefficients : numpy.ndarray, shape (L, K)
        The concave basis coefficients of the initial background.

    """

    def __init__(self, coefficients):
        self.coefficients = coefficients

    def __repr__(self):
        return f'{type(self).__name__}(num_samples={self.coefficients.shape[1]})'


class _Problem:
    """
    The assembled constraint and penalty terms for the unmixing problem.

    Attributes
    ----------
    concave_basis : numpy.ndarray, shape (L, L)
        The concave basis used to represent the background.
    lower_bounds : numpy.ndarray, shape (N + 2 * L,)
        The lower bound of each coordinate of the consensus variable; -inf for
        unconstrained coordinates.
    num_atoms : int
        The number of dictionary spectra, N.
    num_bands : int
        The number of spectral bands, L.
    num_samples : int
        The number of samples, K.
    operator : numpy.ndarray, shape (L, N + 2 * L)
        The stacked constraint matrix ``[A, C, _RESIDUAL_SCALE * I]``.
    penalty_weights : numpy.ndarray, shape (N + 2 * L, K)
        The l1 penalty weight of each coordinate of the consensus variable.
    y : numpy.ndarray, shape (L, K)
        The measured spectra.

    """

    def __init__(self, y, dictionary, basis, lambda_a):
        """
        Assembles the constraint matrix, penalty weights, and bounds.

        Parameters
        ----------
        y : numpy.ndarray, shape (L, K)
            The measured spectra.
        dictionary : numpy.ndarray, shape (L, N)
            The dictionary spectra. N can be 0.
        basis : numpy.ndarray, shape (L, L)
            The concave basis.
        lambda_a : numpy.ndarray, shape (N,)
            The sparsity weight for each dictionary spectrum.

        """
        self.y = y
        self.concave_basis = basis
        self.num_bands, self.num_samples = y.shape
        self.num_atoms = dictionary.shape[1]
        num_atoms = self.num_atoms
        num_bands = self.num_bands

        self.operator = np.hstack(
            (dictionary, basis, _RESIDUAL_SCALE * np.eye(num_bands))
        )

        sample_norms = column_norms(y)
        if (sample_norms == 0).any():
            warnings.warn(
                ('some samples are all zero, so their residuals are weighted using machine '
                 'epsilon rather than their norm'), ParameterWarning, stacklevel=3
            )
        self.penalty_weights = np.zeros((num_atoms + 2 * num_bands, self.num_samples))
        self.penalty_weights[:num_atoms] = lambda_a[:, None]
        self.penalty_weights[num_atoms + num_bands:] = (
            _RESIDUAL_SCALE / np.maximum(sample_norms, _MIN_FLOAT)
        )[None, :]

        self.lower_bounds = np.zeros(num_atoms + 2 * num_bands)
        self.lower_bounds[num_atoms] = -np.inf
        self.lower_bounds[num_atoms + num_bands - 1:] = -np.inf

    @property
    def num_coordinates(self):
        """The number of rows of the consensus variable, ``N + 2 * L``."""
        return self.operator.shape[1]

    def stack(self, abundances, coefficients, residual):
        """Stacks the three blocks into the consensus variable."""
        return np.vstack((abundances, coefficients, residual / _RESIDUAL_SCALE))

    def split(self, values):
        """
        Splits the consensus variable into its three blocks.

        Parameters
        ----------
        values : numpy.ndarray, shape (N + 2 * L, K)
            The consensus variable.

        Returns
        -------
        abundances : numpy.ndarray, shape (N, K)
            The dictionary coefficients.
        coefficients : numpy.ndarray, shape (L, K)
            The concave basis coefficients.
        residual : numpy.ndarray, shape (L, K)
            The residual, scaled back to the units of `y`.

        """
        num_atoms = self.num_atoms
        split_index = num_atoms + self.num_bands
        return (
            values[:num_atoms], values[num_atoms:split_index],
            values[split_index:] * _RESIDUAL_SCALE
        )


def _make_warm_start(problem, x0=None, z0=None, r0=None, d0=None, b0=None,
                     check_finite=True):
    """
    Validates the initial values and creates the corresponding warm start.

    Parameters
    ----------
    problem : _Problem
        The assembled problem.
    x0, z0, r0, d0, b0 : array-like, optional
        The initial abundances, concave basis coefficients, residual, unscaled dual
        variables, and background, respectively. Each can either have one column per
        sample or a single column that is used for all samples.
    check_finite : bool, optional
        If True (default), will raise an error if any input value is not finite.

    Returns
    -------
    NoWarmStart or FullWarmStart or BackgroundWarmStart
        The validated warm start.

    Raises
    ------
    ConfigurationError
        Raised if both `b0` and `z0` are given, if only some of the values for a full
        warm start are given, or if any value has the wrong shape.
    NumericalError
        Raised if `b0` is given and the concave basis is singular.

    """
    if b0 is not None and z0 is not None:
        raise ConfigurationError('b0 and z0 cannot both be given')

    # check the combination before converting b0
    given = [value is not None for value in (x0, z0 if b0 is None else b0, r0, d0)]
    if not any(given):
        return NoWarmStart()
    elif not (all(given) or (b0 is not None and not any(given[:1] + given[2:]))):
        missing = [name for name, value in zip(('x0', 'z0', 'r0', 'd0'), given) if not value]
        raise ConfigurationError(
            f'warm starts require all of x0, z0 (or b0), r0, and d0; missing {missing}'
        )

    num_samples = problem.num_samples
    num_bands = problem.num_bands
    if b0 is not None:
        background = _check_block(b0, num_bands, num_samples, check_finite, name='b0')
        try:
            z0 = solve(problem.concave_basis, background, check_finite=False)
        except LinAlgError as exc:
            raise NumericalError('the concave basis is singular') from exc
        if not all(given):
            return BackgroundWarmStart(z0)

    return FullWarmStart(
        _check_block(x0, problem.num_atoms, num_samples, check_finite, name='x0'),
        _check_block(z0, num_bands, num_samples, check_finite, name='z0'),
        _check_block(r0, num_bands, num_samples, check_finite, name='r0'),
        _check_block(d0, problem.num_coordinates, num_samples, check_finite, name='d0')
    )


class _Algorithm:
    """
    A base class for all algorithm types.

    Attributes
    ----------
    wavelengths : numpy.ndarray or None
        The wavelength samples for the object. If initialized with None, then `wavelengths`
        is initialized the first function call to have the same length as the number of
        bands of the input `data` and has min and max values of -1 and 1, respectively.

    """

    def __init__(self, wavelengths=None, check_finite=True):
        """
        Initializes the algorithm object.

        Parameters
        ----------
        wavelengths : array-like, shape (L,), optional
            The wavelength samples of the measured data. Must be strictly monotonic.
            Default is None, which will create an array from -1 to 1 during the first
            function call with length equal to the number of bands of the input data.
        check_finite : bool, optional
            If True (default), will raise an error if any values in input data are not finite.
            Setting to False will skip the check. Note that errors may occur if
            `check_finite` is False and the input data contains non-finite values.

        Raises
        ------
        ConfigurationError
            Raised if `wavelengths` is not a one dimensional array.

        """
        if wavelengths is None:
            self.wavelengths = None
            self._size = None
        else:
            self.wavelengths = _check_array(
                wavelengths, dtype=float, check_finite=True, name='wavelengths'
            )
            self._size = len(self.wavelengths)

        self._concave_basis = None
        self._check_finite = check_finite

    @classmethod
    def _register(cls, func):
        """
        Wraps an unmixing function to validate inputs and correct outputs.

        The input data is converted to a numpy array with one column per sample and
        validated to ensure the number of bands is consistent with the wavelengths.
        If the input data was one dimensional, the per-sample outputs are converted
        back to one dimensional arrays.

        Parameters
        ----------
        func : Callable
            The function that is being decorated.

        Returns
        -------
        numpy.ndarray
            The calculated abundances.
        dict
            A dictionary of parameters output by the unmixing function.

        """
        @wraps(func)
        def inner(self, data, *args, **kwargs):
            y = _check_array(
                data, dtype=float, check_finite=self._check_finite, ensure_1d=False,
                ensure_2d=True, name='data'
            )
            one_sample = np.ndim(data) < 2
            if self.wavelengths is None:
                self.wavelengths = np.linspace(-1, 1, y.shape[0])
                self._size = y.shape[0]
            elif y.shape[0] != self._size:
                raise ConfigurationError(
                    f'data has {y.shape[0]} bands but wavelengths has length {self._size}'
                )

            abundances, params = func(self, y, *args, **kwargs)
            if one_sample:
                abundances = abundances[:, 0]
                for key in ('baseline', 'coefficients', 'residual', 'dual'):
                    params[key] = params[key][:, 0]

            return abundances, params

        return inner

    def _get_concave_basis(self, concave_basis=None):
        """
        Validates the input concave basis or creates one from the wavelengths.

        Parameters
        ----------
        concave_basis : array-like, shape (L, L), optional
            The concave basis to use. Default is None, which creates the basis from
            :attr:`.wavelengths` using :func:`pyunmixing.utils.concave_basis`,
            normalizes each column, and then scales by 2.

        Returns
        -------
        numpy.ndarray, shape (L, L)
            The concave basis.

        Raises
        ------
        ConfigurationError
            Raised if the input `concave_basis` does not have a shape of (L, L).

        """
        if concave_basis is not None:
            basis = _check_sized_array(
                concave_basis, self._size, dtype=float, check_finite=True, ensure_1d=False,
                axis=0, name='concave_basis'
            )
            if basis.shape != (self._size, self._size):
                raise ConfigurationError(
                    f'concave_basis must have a shape of {(self._size, self._size)}'
                )
            return basis

        if self._concave_basis is None or self._concave_basis.shape[0] != self._size:
            basis = _make_concave_basis(self.wavelengths)
            self._concave_basis = 2 * basis / column_norms(basis)[None, :]

        return self._concave_basis

    def _setup_unmixing(self, y, dictionary=None, lambda_a=0.0, concave_basis=None,
                        rho=0.01, rho_v=1.0, x0=None, z0=None, r0=None, d0=None, b0=None):
        """
        Sets the starting parameters for doing unmixing with a concave background.

        Parameters
        ----------
        y : numpy.ndarray, shape (L, K)
            The measured spectra, already converted to a numpy array by
            :meth:`~._Algorithm._register`.
        dictionary : array-like, shape (L, N), optional
            The dictionary spectra. Default is None, which uses no dictionary (N = 0).
        lambda_a : float or array-like, shape (N,), optional
            The nonnegative sparsity weight for the dictionary coefficients. Default is 0.
        concave_basis : array-like, shape (L, L), optional
            The concave basis. Default is None, which creates it from the wavelengths.
        rho : float or array-like, shape (K,), optional
            The initial penalty for each sample. Default is 0.01.
        rho_v : float or array-like, shape (N + 2 * L,), optional
            The initial penalty for each coordinate. Default is 1.
        x0, z0, r0, d0, b0 : array-like, optional
            The initial values for a warm start. See :func:`._make_warm_start`.

        Returns
        -------
        problem : _Problem
            The assembled problem.
        warm_start : NoWarmStart or FullWarmStart or BackgroundWarmStart
            The validated warm start.
        rho : numpy.ndarray, shape (K,)
            The validated per-sample penalties.
        rho_v : numpy.ndarray, shape (N + 2 * L,)
            The validated per-coordinate penalties.

        Raises
        ------
        ConfigurationError
            Raised if any input has an invalid shape or value.

        """
        num_bands, num_samples = y.shape
        if dictionary is None:
            dictionary = np.empty((num_bands, 0))
        else:
            dictionary = _check_array(
                dictionary, dtype=float, check_finite=True, ensure_1d=False, ensure_2d=True,
                name='dictionary'
            )
            if dictionary.size == 0:
                dictionary = np.empty((num_bands, 0))
            elif dictionary.shape[0] != num_bands:
                raise ConfigurationError(
                    f'dictionary has {dictionary.shape[0]} bands but data has {num_bands}'
                )
        num_atoms = dictionary.shape[1]

        lambda_a = _check_penalty_vector(lambda_a, num_atoms, allow_zero=True, name='lambda_a')
        rho = _check_penalty_vector(rho, num_samples, name='rho')
        rho_v = _check_penalty_vector(rho_v, num_atoms + 2 * num_bands, name='rho_v')

        problem = _Problem(y, dictionary, self._get_concave_basis(concave_basis), lambda_a)
        warm_start = _make_warm_start(
            problem, x0=x0, z0=z0, r0=r0, d0=d0, b0=b0, check_finite=self._check_finite
        )

        return problem, warm_start, rho, rho_v


def _class_wrapper(klass):
    """
    Wraps a function to call the corresponding class method instead.

    Parameters
    ----------
    klass : _Algorithm
        The class being wrapped.

    """
    def outer(func):
        func_signature = signature(func)
        method = func.__name__

        @wraps(func)
        def inner(*args, **kwargs):
            total_inputs = func_signature.bind(*args, **kwargs)
            wavelengths = total_inputs.arguments.pop('wavelengths', None)
            return getattr(klass(wavelengths=wavelengths), method)(
                *total_inputs.args, **total_inputs.kwargs
            )
        return inner

    return outer

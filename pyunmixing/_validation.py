# -*- coding: utf-8 -*-
"""Code for validating inputs.

Created on October 18, 2026
@author: Donald Erb

"""

import numpy as np

from .utils import ConfigurationError


def _check_scalar(data, desired_length, fill_scalar=False, coerce_0d=True, name='input',
                  **asarray_kwargs):
    """
    Checks if the input is scalar and potentially coerces it to the desired length.

    Parameters
    ----------
    data : array-like
        Either a scalar value or an array. Array-like inputs with only 1 item will also
        be considered scalar. Multidimensional inputs are flattened.
    desired_length : int
        If `data` is an array, `desired_length` is the length the array must have. If `data`
        is a scalar and `fill_scalar` is True, then `desired_length` is the length of the output.
    fill_scalar : bool, optional
        If True and `data` is a scalar, then will output an array with a length of
        `desired_length`. Default is False, which leaves scalar values unchanged.
    coerce_0d : bool, optional
        If True (default) and `data` is an array-like, `output` will be a scalar. If
        False, `output` will also be an array with shape (1,).
    name : str, optional
        The name for the variable if an exception is raised. Default is 'input'.
    **asarray_kwargs : dict
        Additional keyword arguments to pass to :func:`numpy.asarray`.

    Returns
    -------
    output : numpy.ndarray or numpy.number
        The array of values or the single array scalar, depending on the input parameters.
    is_scalar : bool
        True if the input was a scalar value or had a length of 1; otherwise, is False.

    Raises
    ------
    ConfigurationError
        Raised if `data` is not a scalar and its length is not equal to `desired_length`.

    """
    output = np.asarray(data, **asarray_kwargs)
    ndim = output.ndim
    if not ndim:
        is_scalar = True
    else:
        if ndim > 1:  # coerce to 1d shape
            output = output.reshape(-1)
        len_output = len(output)
        if len_output == 1 and coerce_0d:
            is_scalar = True
            output = np.asarray(output[0], **asarray_kwargs)
        else:
            is_scalar = False

    if is_scalar:
        if fill_scalar:
            output = np.full(desired_length, output)
        else:
            # index with an empty tuple to get the single scalar while maintaining the numpy dtype
            output = output[()]
    elif desired_length is not None and len_output != desired_length:
        raise ConfigurationError(
            f'length mismatch for {name}; expected 1 or {desired_length} but got {len_output}'
        )

    return output, is_scalar


def _check_scalar_variable(value, allow_zero=False, variable_name='tol', **asarray_kwargs):
    """
    Ensures the input is a single value that is positive (or nonnegative).

    Parameters
    ----------
    value : numpy.Number or array-like
        The value to check.
    allow_zero : bool, optional
        If False (default), only allows `value` > 0. If True, allows `value` >= 0.
    variable_name : str, optional
        The name displayed if an error occurs. Default is 'tol'.
    **asarray_kwargs : dict
        Additional keyword arguments to pass to :func:`numpy.asarray`.

    Returns
    -------
    output : numpy.Number
        The verified scalar value.

    Raises
    ------
    ConfigurationError
        Raised if `value` is not a single finite value, or if it is less than or equal
        to 0 if `allow_zero` is False or less than 0 if `allow_zero` is True.

    """
    output = _check_scalar(value, 1, name=variable_name, **asarray_kwargs)[0]
    if not np.isfinite(output):
        raise ConfigurationError(f'{variable_name} must be finite')
    if allow_zero:
        operation = np.less
        text = 'greater than or equal to'
    else:
        operation = np.less_equal
        text = 'greater than'
    if operation(output, 0):
        raise ConfigurationError(f'{variable_name} must be {text} 0')

    return output


def _check_max_iter(max_iter):
    """
    Ensures the maximum number of iterations is a positive integer.

    Raises
    ------
    ConfigurationError
        Raised if `max_iter` is not positive or is not an integer value.

    """
    output = _check_scalar_variable(max_iter, variable_name='max_iter')
    if output != int(output):
        raise ConfigurationError('max_iter must be an integer')

    return int(output)


def _check_penalty_vector(value, length, allow_zero=False, name='rho'):
    """
    Validates a penalty input that can either be a scalar or have one value per entry.

    Parameters
    ----------
    value : float or array-like
        The penalty value(s).
    length : int
        The number of entries that the output should have.
    allow_zero : bool, optional
        If False (default), all values must be > 0. If True, values must be >= 0.
    name : str, optional
        The name for the variable if an exception is raised. Default is 'rho'.

    Returns
    -------
    output : numpy.ndarray, shape (`length`,)
        The penalty values, with scalar inputs filled to `length`. Always a copy of
        the input since the penalties are modified in place by the solver.

    Raises
    ------
    ConfigurationError
        Raised if the length of `value` is not 1 or `length`, or if any value is
        non-finite or outside of the allowed range.

    """
    output = _check_scalar(
        value, length, fill_scalar=True, name=name, dtype=float
    )[0].astype(float, copy=True)
    if not np.isfinite(output).all():
        raise ConfigurationError(f'all values of {name} must be finite')
    if allow_zero:
        if (output < 0).any():
            raise ConfigurationError(f'all values of {name} must be greater than or equal to 0')
    elif (output <= 0).any():
        raise ConfigurationError(f'all values of {name} must be greater than 0')

    return output


def _check_array(array, dtype=None, order=None, check_finite=False, ensure_1d=True,
                 ensure_2d=False, name='data'):
    """
    Validates the shape and values of the input array and controls the output parameters.

    Parameters
    ----------
    array : array-like
        The input array to check.
    dtype : type or numpy.dtype, optional
        The dtype to cast the output array. Default is None, which uses the typing of `array`.
    order : {None, 'C', 'F'}, optional
        The order for the output array. Default is None, which will use the default array
        ordering. Other valid options are 'C' for C ordering or 'F' for Fortran ordering.
    check_finite : bool, optional
        If True, will raise an error if any values in `array` are not finite. Default is False,
        which skips the check.
    ensure_1d : bool, optional
        If True (default), will raise an error if the shape of `array` is not a one dimensional
        array with shape (N,) or a two dimensional array with shape (N, 1) or (1, N).
    ensure_2d : bool, optional
        If True, will raise an error if `array` is not a one or two dimensional array, and
        one dimensional inputs are converted to a single column with shape (N, 1). Only
        used if `ensure_1d` is False. Default is False.
    name : str, optional
        The name for the variable if an exception is raised. Default is 'data'.

    Returns
    -------
    output : numpy.ndarray
        The array after performing all validations.

    Raises
    ------
    ConfigurationError
        Raised if `array` does not have the required dimensions or if `check_finite`
        is True and `array` contains non-finite values.

    Notes
    -----
    If `ensure_1d` is True and `array` has a shape of (N, 1) or (1, N), it is reshaped to
    (N,) for better compatibility for all functions.

    """
    output = np.asarray(array, dtype=dtype, order=order)
    if check_finite and not np.isfinite(output).all():
        raise ConfigurationError(f'{name} must only contain finite values')
    if ensure_1d:
        output = np.atleast_1d(output)
        dimensions = output.ndim
        if dimensions == 2 and 1 in output.shape:
            output = output.reshape(-1)
        elif dimensions != 1:
            raise ConfigurationError(f'{name} must be a one dimensional array')
    elif ensure_2d:
        output = np.atleast_1d(output)
        dimensions = output.ndim
        if dimensions == 1:
            output = output.reshape(-1, 1)
        elif dimensions != 2:
            raise ConfigurationError(f'{name} must be a one or two dimensional array')

    return output


def _check_sized_array(array, length, dtype=None, order=None, check_finite=False,
                       ensure_1d=True, axis=-1, name='weights', ensure_2d=False):
    """
    Validates the input array and ensures its length is correct.

    Parameters
    ----------
    array : array-like
        The input array to check.
    length : int
        The length that the input should have on the specified `axis`.
    dtype : type or numpy.dtype, optional
        The dtype to cast the output array. Default is None, which uses the typing of `array`.
    order : {None, 'C', 'F'}, optional
        The order for the output array. Default is None, which will use the default array
        ordering. Other valid options are 'C' for C ordering or 'F' for Fortran ordering.
    check_finite : bool, optional
        If True, will raise an error if any values if `array` are not finite. Default is False,
        which skips the check.
    ensure_1d : bool, optional
        If True (default), will raise an error if the shape of `array` is not a one dimensional
        array with shape (N,) or a two dimensional array with shape (N, 1) or (1, N).
    axis : int, optional
        The axis of the input on which to check its length. Default is -1.
    name : str, optional
        The name for the variable if an exception is raised. Default is 'weights'.
    ensure_2d : bool, optional
        If True and `ensure_1d` is False, one dimensional inputs are converted to a
        single column. Default is False.

    Returns
    -------
    output : numpy.ndarray
        The array after performing all validations.

    Raises
    ------
    ConfigurationError
        Raised if `array` does not match `length` on the given `axis`.

    """
    output = _check_array(
        array, dtype=dtype, order=order, check_finite=check_finite, ensure_1d=ensure_1d,
        ensure_2d=ensure_2d, name=name
    )
    if output.shape[axis] != length:
        raise ConfigurationError(
            f'length mismatch for {name}; expected {length} but got {output.shape[axis]}'
        )
    return output


def _check_block(array, num_rows, num_columns, check_finite=True, name='x0'):
    """
    Validates a block of values that spans all samples, broadcasting single columns.

    Parameters
    ----------
    array : array-like, shape (`num_rows`,), (`num_rows`, 1), or (`num_rows`, `num_columns`)
        The input block. One dimensional inputs and inputs with a single column are
        repeated for every column.
    num_rows : int
        The required number of rows.
    num_columns : int
        The number of columns of the output, ie. the number of samples.
    check_finite : bool, optional
        If True (default), will raise an error if any values are not finite.
    name : str, optional
        The name for the variable if an exception is raised. Default is 'x0'.

    Returns
    -------
    output : numpy.ndarray, shape (`num_rows`, `num_columns`)
        A new array containing the validated block.

    Raises
    ------
    ConfigurationError
        Raised if the number of rows is not `num_rows` or if the number of columns is
        neither 1 nor `num_columns`.

    """
    output = _check_sized_array(
        array, num_rows, dtype=float, check_finite=check_finite, ensure_1d=False,
        ensure_2d=True, axis=0, name=name
    )
    if output.shape[1] == 1:
        output = np.repeat(output, num_columns, axis=1)
    elif output.shape[1] != num_columns:
        raise ConfigurationError(
            f'{name} must have 1 or {num_columns} columns but instead had {output.shape[1]}'
        )
    else:
        output = output.copy()

    return output

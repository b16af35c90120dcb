# -*- coding: utf-8 -*-
"""Tests for pyunmixing.unmixing.

@author: Donald Erb
Created on October 18, 2026

"""

import logging
from unittest import mock

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal
import pytest

from pyunmixing import ConfigurationError, ConvergenceWarning, ParameterWarning, Unmixer
from pyunmixing import _linalg, _penalty, unmixing
from pyunmixing.utils import column_norms, concave_basis

from .base_tests import BaseTester, get_data, get_outlier_data


_PARAM_KEYS = (
    'baseline', 'coefficients', 'concave_basis', 'residual', 'dual', 'rho', 'rho_v',
    'primal_residual', 'dual_residual', 'tol_history', 'iterations', 'converged'
)


def check_feasibility(y, dictionary, abundances, params):
    """
    Ensures the outputs satisfy the mixing constraint to within the final primal residual.

    The affine variable exactly satisfies the constraint, so the distance of the output
    from the constraint is bounded by the norm of the constraint matrix times the
    primal residual. Only valid if the last iteration was a checkpoint.

    """
    operator = np.hstack(
        (dictionary, params['concave_basis'], 0.2 * np.eye(params['concave_basis'].shape[0]))
    )
    mismatch = dictionary @ abundances + params['baseline'] + params['residual'] - y

    assert np.linalg.norm(mismatch) <= (
        1.0001 * np.linalg.norm(operator, 2) * params['primal_residual']
        + 1e-8 * np.linalg.norm(y)
    )


@pytest.mark.filterwarnings('ignore::pyunmixing.ConvergenceWarning')
class TestHuwacb(BaseTester):
    """Class for testing huwacb."""

    module = unmixing
    func_name = 'huwacb'
    checked_keys = _PARAM_KEYS
    required_kwargs = {'max_iter': 200}

    def test_output_shapes(self):
        """Ensures all outputs have the correct shapes."""
        num_bands, num_samples = self.y.shape
        num_coordinates = 3 + 2 * num_bands
        abundances, params = self.class_func(self.y, self.dictionary, max_iter=50)

        assert abundances.shape == (3, num_samples)
        assert params['coefficients'].shape == (num_bands, num_samples)
        assert params['concave_basis'].shape == (num_bands, num_bands)
        assert params['dual'].shape == (num_coordinates, num_samples)
        assert params['rho'].shape == (num_samples,)
        assert params['rho_v'].shape == (num_coordinates,)
        assert params['tol_history'].shape[1] == 4
        assert isinstance(params['iterations'], int)
        assert isinstance(params['converged'], bool)
        assert_allclose(
            params['baseline'], params['concave_basis'] @ params['coefficients'], rtol=1e-12
        )

    @pytest.mark.parametrize('max_iter', (10, 100, 500))
    def test_feasibility(self, max_iter):
        """Ensures the outputs nearly satisfy the mixing constraint."""
        abundances, params = self.class_func(self.y, self.dictionary, max_iter=max_iter)

        check_feasibility(self.y, self.dictionary, abundances, params)

    def test_bounds_at_every_checkpoint(self):
        """Ensures the abundances and interior basis coefficients are never negative."""
        num_bands = self.y.shape[0]
        with mock.patch.object(
            unmixing, '_update_penalties', wraps=_penalty._update_penalties
        ) as mocked:
            abundances, params = self.class_func(self.y, self.dictionary, max_iter=300)

        assert mocked.call_count > 1
        for call in mocked.call_args_list:
            t = call.args[1]
            assert (t[:3] >= 0).all()
            assert (t[4:3 + num_bands - 1] >= 0).all()
        assert (abundances >= 0).all()
        assert (params['coefficients'][1:-1] >= 0).all()

    def test_checkpoint_iterations(self):
        """Ensures the residuals are calculated on the first and every tenth iteration."""
        with mock.patch.object(
            unmixing, '_update_penalties', wraps=_penalty._update_penalties
        ) as mocked:
            params = self.class_func(self.y, self.dictionary, max_iter=50, tol=1e-14)[1]

        expected_iterations = [1, 10, 20, 30, 40, 50]
        assert [call.args[-1] for call in mocked.call_args_list] == expected_iterations
        assert_array_equal(params['tol_history'][:, 0], expected_iterations)
        assert params['iterations'] == 50
        assert_allclose(params['primal_residual'], params['tol_history'][-1, 1], rtol=1e-14)
        assert_allclose(params['dual_residual'], params['tol_history'][-1, 2], rtol=1e-14)

    def test_small_residual_for_clean_data(self):
        """Ensures noise-free mixtures are explained without a large residual."""
        abundances, params = self.class_func(self.y, self.dictionary, max_iter=5000, tol=1e-6)
        mismatch = (
            self.dictionary @ abundances + params['baseline'] + params['residual'] - self.y
        )

        assert params['converged']
        assert np.abs(params['residual']).max() < 1e-3
        assert np.abs(mismatch).max() < 1e-4

    def test_sparsity(self):
        """Ensures increasing the sparsity weight never increases the number of spectra used."""
        counts = []
        for lambda_a in (0, 0.01, 0.05, 0.1, 1, 1e3):
            abundances = self.class_func(
                self.y, self.dictionary, max_iter=2000, lambda_a=lambda_a
            )[0]
            counts.append(np.count_nonzero(abundances > 0))

        assert counts[0] > 0
        assert counts[-1] == 0
        for previous_count, count in zip(counts[:-1], counts[1:]):
            assert count <= previous_count

    def test_factorizations_only_on_coordinate_changes(self):
        """Ensures the projection is only recalculated when the coordinate penalties change."""
        coordinate_changes = []
        helpers = []

        def recording_rebalance(*args, **kwargs):
            output = original_rebalance(*args, **kwargs)
            coordinate_changes.append(output)
            return output

        class RecordingHelper(_linalg._ProjectionHelper):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                helpers.append(self)

        original_rebalance = _penalty._rebalance_coordinates
        with mock.patch.object(_penalty, '_rebalance_coordinates', recording_rebalance):
            with mock.patch.object(unmixing, '_ProjectionHelper', RecordingHelper):
                params = self.class_func(
                    self.y, self.dictionary, max_iter=400, tol=1e-14, lambda_a=0.1
                )[1]

        assert len(helpers) == 1
        # checkpoints after iteration 300 never update the coordinate penalties
        checkpoints = params['tol_history'][:, 0]
        assert params['iterations'] > 300
        assert len(coordinate_changes) == np.count_nonzero(checkpoints < 300)
        assert helpers[0].factorizations == 1 + sum(coordinate_changes)

    @pytest.mark.parametrize('dictionary', (None, np.empty((40, 0))))
    def test_empty_dictionary(self, dictionary):
        """Ensures no dictionary fits only the background and residual."""
        abundances, params = self.class_func(self.y, dictionary, max_iter=500)

        assert abundances.shape == (0, self.y.shape[1])
        assert params['dual'].shape == (2 * self.y.shape[0], self.y.shape[1])
        check_feasibility(self.y, np.empty((self.y.shape[0], 0)), abundances, params)
        assert (params['coefficients'][1:-1] >= 0).all()

    def test_convergence_warning(self):
        """Ensures a warning is issued if the fit does not converge."""
        with pytest.warns(ConvergenceWarning):
            params = self.class_func(self.y, self.dictionary, max_iter=1, tol=1e-10)[1]

        assert not params['converged']
        assert params['iterations'] == 1
        assert params['tol_history'].shape == (1, 4)

    @pytest.mark.parametrize('verbose', (True, False))
    def test_verbose(self, caplog, verbose):
        """Ensures the residuals at each checkpoint are only logged if verbose is True."""
        caplog.set_level(logging.INFO, logger='pyunmixing.unmixing')
        params = self.class_func(
            self.y, self.dictionary, max_iter=30, tol=1e-14, verbose=verbose
        )[1]

        records = [record for record in caplog.records if record.name == 'pyunmixing.unmixing']
        if verbose:
            assert len(records) == len(params['tol_history'])
            assert 'primal residual' in records[0].getMessage()
        else:
            assert not records

    def test_background_warm_start(self):
        """Ensures an initial background can be used as a warm start."""
        abundances, params = self.class_func(
            self.y, self.dictionary, max_iter=500, b0=np.ones(self.y.shape[0])
        )

        check_feasibility(self.y, self.dictionary, abundances, params)
        assert (abundances >= 0).all()

    def test_warm_start_conflict_fails(self):
        """Ensures b0 and z0 cannot both be given."""
        num_bands = self.y.shape[0]
        with pytest.raises(ConfigurationError):
            self.class_func(
                self.y, self.dictionary, b0=np.ones(num_bands), z0=np.ones(num_bands)
            )

    def test_partial_warm_start_fails(self):
        """Ensures giving only some of the warm start values raises an exception."""
        with pytest.raises(ConfigurationError):
            self.class_func(self.y, self.dictionary, x0=np.ones(3))

    def test_unknown_option_fails(self):
        """Ensures unknown keyword arguments raise an exception."""
        with pytest.raises(TypeError):
            self.class_func(self.y, self.dictionary, unknown_option=1)

    @pytest.mark.parametrize('kwargs', ({'tol': 0}, {'tol': -1e-3}, {'max_iter': 0}))
    def test_invalid_options_fail(self, kwargs):
        """Ensures invalid tolerances and iteration counts raise an exception."""
        with pytest.raises(ConfigurationError):
            self.class_func(self.y, self.dictionary, **kwargs)

    def test_non_finite_data_fails(self):
        """Ensures non-finite data raises an exception."""
        y = self.y.copy()
        y[5, 1] = np.nan
        with pytest.raises(ConfigurationError):
            self.class_func(y, self.dictionary)

    def test_wrong_bands_fails(self):
        """Ensures data with a different number of bands than the wavelengths fails."""
        with pytest.raises(ConfigurationError):
            self.class_func(self.y[:-1], self.dictionary[:-1])

    def test_zero_sample_warns(self):
        """Ensures a sample that is all zero issues a warning but is still fit."""
        y = self.y.copy()
        y[:, 1] = 0
        with pytest.warns(ParameterWarning):
            abundances, params = self.class_func(y, self.dictionary, max_iter=100)

        assert np.isfinite(abundances).all()
        assert np.isfinite(params['residual']).all()

    def test_penalties_not_modified(self):
        """Ensures input penalty arrays are not modified even though the output penalties are."""
        rho = np.full(self.y.shape[1], 0.01)
        rho_v = np.ones(3 + 2 * self.y.shape[0])
        params = self.class_func(
            self.y, self.dictionary, max_iter=100, rho=rho, rho_v=rho_v
        )[1]

        assert_array_equal(rho, 0.01)
        assert_array_equal(rho_v, 1.)
        assert params['rho'] is not rho
        assert params['rho_v'] is not rho_v

    def test_reversed_wavelengths(self):
        """Ensures reversing the band order gives the same fit in reversed order."""
        abundances, params = self.class_func(self.y, self.dictionary, max_iter=100)
        reversed_abundances, reversed_params = Unmixer(self.wavelengths[::-1]).huwacb(
            self.y[::-1], self.dictionary[::-1], max_iter=100
        )

        assert_allclose(reversed_abundances, abundances, rtol=1e-6, atol=1e-8)
        assert_allclose(reversed_params['baseline'][::-1], params['baseline'], rtol=1e-6, atol=1e-8)
        assert_allclose(reversed_params['residual'][::-1], params['residual'], rtol=1e-6, atol=1e-8)


class TestHuwacbOutlier:
    """Tests huwacb on a single spectrum with one large outlier."""

    tol = 1e-5
    kwargs = {'lambda_a': 0.01, 'tol': tol, 'max_iter': 20000}

    def test_outlier_isolated(self, outlier_fixture):
        """Ensures the abundances are recovered and the outlier is moved to the residual."""
        dictionary, y = outlier_fixture
        abundances, params = Unmixer().huwacb(y, dictionary, **self.kwargs)

        exit_tol = self.tol * np.sqrt(2 * 5 + 2)
        assert params['converged']
        assert params['primal_residual'] <= exit_tol
        assert params['dual_residual'] <= exit_tol
        assert_allclose(abundances, [1., 0.], atol=1e-2)
        assert_allclose(params['residual'][3], -2.995, atol=5e-2)
        assert_allclose(np.delete(params['residual'], 3), 0, atol=5e-2)

    def test_default_wavelengths(self, outlier_fixture):
        """Ensures the wavelengths are created from the data if not given."""
        dictionary, y = outlier_fixture
        fitter = Unmixer()
        fitter.huwacb(y, dictionary, max_iter=10)

        assert_allclose(fitter.wavelengths, np.linspace(-1, 1, 5), rtol=1e-14)

    def test_default_concave_basis(self, outlier_fixture):
        """Ensures fitting without a concave basis uses the scaled basis from the wavelengths."""
        dictionary, y = outlier_fixture
        basis = concave_basis(np.linspace(-1, 1, 5))
        expected_basis = 2 * basis / column_norms(basis)

        abundances, params = Unmixer().huwacb(y, dictionary, max_iter=200)
        given_abundances, given_params = Unmixer().huwacb(
            y, dictionary, max_iter=200, concave_basis=expected_basis
        )

        assert_allclose(params['concave_basis'], expected_basis, rtol=1e-14, atol=1e-14)
        assert_allclose(column_norms(params['concave_basis']), 2, rtol=1e-14)
        assert_allclose(abundances, given_abundances, rtol=1e-12, atol=1e-14)
        assert_allclose(params['baseline'], given_params['baseline'], rtol=1e-12, atol=1e-14)

    def test_idempotent_warm_start(self, outlier_fixture):
        """Ensures restarting from a converged solution stops within one checkpoint cycle."""
        dictionary, y = outlier_fixture
        fitter = Unmixer()
        abundances, params = fitter.huwacb(y, dictionary, **self.kwargs)
        assert params['converged']

        new_abundances, new_params = fitter.huwacb(
            y, dictionary, x0=abundances, z0=params['coefficients'], r0=params['residual'],
            d0=params['dual'], rho=params['rho'], rho_v=params['rho_v'], **self.kwargs
        )

        assert new_params['converged']
        assert new_params['iterations'] <= 10
        assert_allclose(new_abundances, abundances, atol=1e-3)
        assert_allclose(new_params['residual'], params['residual'], atol=1e-3)
        assert_allclose(new_params['baseline'], params['baseline'], atol=1e-3)


def test_functional_default_wavelengths():
    """Ensures the functional interface works without wavelengths."""
    _, dictionary, y, _ = get_data(num_samples=2, num_bands=20)
    with pytest.warns(ConvergenceWarning):
        abundances, params = unmixing.huwacb(y, dictionary, max_iter=5, tol=1e-12)

    assert abundances.shape == (3, 2)
    assert params['baseline'].shape == (20, 2)


def test_outlier_data():
    """Ensures the outlier data has its outlier at index 3."""
    dictionary, y = get_outlier_data()

    assert dictionary.shape == (5, 2)
    assert_allclose(np.linalg.norm(dictionary, axis=0), 1, rtol=1e-14)
    assert y[3] < -2

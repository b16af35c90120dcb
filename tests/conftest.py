# -*- coding: utf-8 -*-
"""Setup code for testing pyunmixing.

@author: Donald Erb
Created on October 18, 2026

"""

import numpy as np
import pytest

from .base_tests import get_data, get_outlier_data


@pytest.fixture
def small_data():
    """A small array of data for testing."""
    return np.arange(10, dtype=float)


@pytest.fixture()
def data_fixture():
    """Test fixture for creating wavelengths, dictionary, data, and abundances for testing."""
    return get_data()


@pytest.fixture()
def outlier_fixture():
    """Test fixture for creating the dictionary and data of a spectrum with an outlier."""
    return get_outlier_data()

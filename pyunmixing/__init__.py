# -*- coding: utf-8 -*-
"""
=====================================================================================
pyunmixing - Robust unmixing of spectra into reference spectra and concave backgrounds.
=====================================================================================

pyunmixing decomposes measured spectra into a nonnegative combination of reference
spectra, a smooth concave background, and a sparse residual using an l1 loss.

@author: Donald Erb
Created on October 18, 2026

"""

__version__ = '0.1.0'

# import utils first since it is imported by other modules; likewise, import
# api last since it imports the other modules
from . import utils, unmixing, api

from .api import Unmixer
from .unmixing import huwacb
from .utils import ConfigurationError, ConvergenceWarning, NumericalError, ParameterWarning

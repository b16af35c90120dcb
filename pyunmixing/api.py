# -*- coding: utf-8 -*-
"""The main entry point for using the object oriented api of pyunmixing."""

from .unmixing import _Unmixing


class Unmixer(_Unmixing):
    """
    A class for all unmixing algorithms.

    Contains all available unmixing algorithms in pyunmixing as methods to
    allow a single interface for easier usage. The concave basis created from
    the wavelengths is reused between calls.

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

    Attributes
    ----------
    wavelengths : numpy.ndarray or None
        The wavelength samples for the object. If initialized with None, then `wavelengths`
        is initialized the first function call to have the same length as the number of
        bands of the input data and has min and max values of -1 and 1, respectively.

    """

    def _get_method(self, method):
        """
        A helper function to allow accessing methods by their string.

        Parameters
        ----------
        method : str
            The name of the desired method as a string. Capitalization is ignored. For
            example, both 'huwacb' and 'HUWACB' would return :meth:`~.Unmixer.huwacb`.

        Returns
        -------
        output : Callable
            The callable method corresponding to the input string.

        Raises
        ------
        AttributeError
            Raised if the input method does not exist.

        """
        method_string = method.lower()
        if hasattr(self, method_string):
            output = getattr(self, method_string)
        else:
            raise AttributeError(f'unknown method "{method}"')

        return output

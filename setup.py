#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""The setup script.

All metadata now exists in setup.cfg. setup.py is now only needed to allow
for editable installs when using older versions of pip.


Notes on minimum required versions for dependencies:

numpy: >= 1.20 to match the oldest numpy supported by scipy 1.6
scipy: >= 1.6 for check_finite support in scipy.linalg.cho_solve and lu_solve
    along with scipy.linalg.LinAlgWarning

"""

from setuptools import setup


if __name__ == '__main__':

    setup()

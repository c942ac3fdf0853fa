"""Pytest configuration and fixtures for ncbuild tests.

Restores stdio and the ncbuild.output module state after every test, since
the output module holds module-level references to the streams it writes to.
"""

import sys
import warnings

import pytest

# Suppress ResourceWarnings from subprocess pipe cleanup in Python 3.13
if sys.version_info >= (3, 13):
    warnings.filterwarnings("ignore", category=ResourceWarning)


@pytest.fixture(autouse=True)
def _restore_output_state():  # noqa: PT004
    """Reset ncbuild.output streams and verbosity after each test."""
    yield

    from ncbuild import output

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__

    output._output_stream = sys.stdout
    output._error_stream = sys.stderr
    output._verbose = False

"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
numba
    Applied to tests that exercise the compiled backend.  They skip
    themselves when numba is not installed; deselect them explicitly with
    ``-m "not numba"``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  The
post-order pass is serial by construction, and warnings about it are not
informative for correctness testing.
"""

import warnings


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs very early in the pytest lifecycle, before any test modules
    are imported, which is important for catching warnings from numba
    kernel compilation.
    """
    config.addinivalue_line(
        "markers",
        "numba: exercises the numba-compiled backend (skipped without numba)",
    )

    try:
        from numba.core.errors import NumbaPerformanceWarning

        warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)
    except ImportError:
        # Numba not available, no warnings to suppress
        pass


def pytest_unconfigure(config):
    """Restore default warning behavior."""
    warnings.resetwarnings()

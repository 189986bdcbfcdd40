"""
_context.py
===========
Context managers for kontra.

Provides clean, Pythonic context managers for temporarily changing state:
- Logging control (suppress/change levels)
- Backend selection (force specific backend)

All context managers properly restore state on exit, even if exceptions occur.
"""

import logging
from contextlib import contextmanager
from typing import Optional


# Module-level state for backend override
_backend_override = None


# ============================================================================ #
# Logging Context Managers
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Temporarily change a logger's level.

    Useful for suppressing verbose output from specific modules during
    bulk operations.

    Parameters
    ----------
    logger_name : str
        Name of the logger to suppress (e.g., 'kontra._tree')
    level : int, default logging.CRITICAL
        Temporary logging level.

    Yields
    ------
    None
        Control is yielded back to the with-block.

    Examples
    --------
    >>> # Hide polytomy warnings while building many trees
    >>> with suppress_logger('kontra._logging'):
    ...     trees = [Tree(e, l, resolve_polytomies=True) for e, l in inputs]

    Notes
    -----
    - Exception-safe: Logger level restored even if exception raised
    - Nesting-safe: Can nest multiple suppress_logger contexts
    """
    logger = logging.getLogger(logger_name)
    original_level = logger.level

    try:
        logger.setLevel(level)
        yield
    finally:
        logger.setLevel(original_level)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Temporarily suppress all kontra logging.

    Every module logger is a child of the ``kontra`` logger, so raising the
    parent's level silences them all.

    Parameters
    ----------
    level : int, default logging.CRITICAL
        Temporary logging level.

    Examples
    --------
    >>> with quiet():
    ...     result = reconcile(tree, traits)

    >>> # Show only warnings
    >>> with quiet(logging.WARNING):
    ...     cs = compute_contrasts(tree, trait)
    """
    with suppress_logger("kontra", level):
        yield


# ============================================================================ #
# Backend Context Managers
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Temporarily force a specific backend for contrast computations.

    Parameters
    ----------
    backend : str
        Backend to use. Valid options:
        - 'python': Pure Python (always available)
        - 'numba': Compiled pass (requires numba)
        - 'best': Use best available (default behavior)

    Yields
    ------
    None
        Control is yielded back to the with-block.

    Raises
    ------
    ValueError
        If requested backend is not available.

    Examples
    --------
    >>> with use_backend('python'):
    ...     cs = compute_contrasts(tree, trait)

    Notes
    -----
    - **Not thread-safe**: Uses module-level state
    - Backend availability checked when context entered
    - Original behavior restored on exit

    Thread Safety Warning
    ---------------------
    This context manager modifies module-level state and is NOT thread-safe.
    If you need thread-safe backend selection, pass the backend parameter
    directly instead:

        cs = compute_contrasts(tree, trait, backend='numba')
    """
    global _backend_override

    from ._backend import resolve_backend

    if backend != "best":
        resolve_backend(backend)

    original_override = _backend_override

    try:
        _backend_override = backend
        yield
    finally:
        _backend_override = original_override


def get_backend_override() -> Optional[str]:
    """
    Get the current backend override, if any.

    Returns
    -------
    str or None
        Current backend override, or None if no override active.

    Examples
    --------
    >>> get_backend_override()
    None

    >>> with use_backend('python'):
    ...     print(get_backend_override())
    python
    """
    return _backend_override

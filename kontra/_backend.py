"""
_backend.py
===========
Backend detection and selection for the contrast pass.

This module detects available execution backends (pure Python, numba) and
provides functions to query and select the best backend.

Functions in this module have NO side effects - they only query system state.
Logging is done by the calling code, not here.
"""

from typing import List, Optional, Tuple


BACKENDS = ("python", "numba")


# ============================================================================ #
# Backend Detection (No Side Effects)
# ============================================================================ #


def check_numba_available() -> bool:
    """
    Check if numba is available for the compiled backend.

    Returns
    -------
    bool
        True if numba can be imported, False otherwise.
    """
    try:
        import numba  # noqa: F401

        return True
    except ImportError:
        return False


def get_available_backends() -> List[str]:
    """
    Get list of available execution backends.

    Returns
    -------
    list[str]
        List of available backends in preference order.
        Always includes 'python'.
        Includes 'numba' if numba and the compiled kernel import cleanly.

    Examples
    --------
    >>> get_available_backends()
    ['python']  # No numba installed

    >>> get_available_backends()
    ['python', 'numba']  # Numba installed
    """
    backends = ["python"]  # Always available

    if check_numba_available():
        ok, _ = import_cpu_kernels()
        if ok:
            backends.append("numba")

    return backends


def get_best_backend() -> str:
    """
    Get the most optimized available backend.

    Returns
    -------
    str
        'numba' if available, otherwise 'python'.
    """
    backends = get_available_backends()
    # List is in preference order, last is best
    return backends[-1]


def resolve_backend(backend: str) -> str:
    """
    Resolve a backend name to an available backend.

    Parameters
    ----------
    backend : str
        Backend name:
        - 'best': Use the best available backend
        - 'python', 'numba': Use specific backend

    Returns
    -------
    str
        Resolved backend name.

    Raises
    ------
    ValueError
        If the name is unknown, or the requested backend is not available.

    Examples
    --------
    >>> resolve_backend('best')
    'numba'  # Returns best available

    >>> resolve_backend('python')
    'python'
    """
    if backend == "best":
        return get_best_backend()

    if backend not in BACKENDS:
        raise ValueError(
            f"Unknown backend '{backend}'. "
            f"Valid backends: 'best', {', '.join(repr(b) for b in BACKENDS)}"
        )

    available = get_available_backends()
    if backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )

    return backend


# ============================================================================ #
# Kernel Import Helpers
# ============================================================================ #


def import_cpu_kernels() -> Tuple[bool, Optional[object]]:
    """
    Try to import the compiled pass from the _cpu_kernels module.

    Returns
    -------
    tuple
        (success, pass_kernel)
        - success: Whether import succeeded
        - pass_kernel: _pic_pass_njit function or None
    """
    try:
        from kontra._cpu_kernels import _pic_pass_njit

        return (True, _pic_pass_njit)
    except ImportError:
        return (False, None)


# ============================================================================ #
# Module-Level State Query (Read-Only)
# ============================================================================ #


def get_backend_info() -> dict:
    """
    Get comprehensive backend information.

    Returns
    -------
    dict
        Dictionary with keys:
        - 'numba_available': bool
        - 'backends': list[str]
        - 'best_backend': str
        - 'cpu_kernels_available': bool

    Examples
    --------
    >>> info = get_backend_info()
    >>> info['backends']
    ['python', 'numba']
    """
    cpu_kernels_ok, _ = import_cpu_kernels()
    return {
        "numba_available": check_numba_available(),
        "backends": get_available_backends(),
        "best_backend": get_best_backend(),
        "cpu_kernels_available": cpu_kernels_ok,
    }

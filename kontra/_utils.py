"""
_utils.py
=========
General-purpose helpers for kontra.

These are standalone functions that don't depend on the main classes.
"""

from typing import Iterable

import numpy as np


def summarize_ids(ids: Iterable[int], limit: int = 5) -> str:
    """
    Format a collection of node IDs for log and error messages.

    Parameters
    ----------
    ids : Iterable[int]
        Node IDs, in the order they should be reported.
    limit : int, default 5
        Maximum number of IDs to spell out.

    Returns
    -------
    str
        Comma-separated IDs, truncated with a count of the remainder.

    Examples
    --------
    >>> summarize_ids([3, 1, 4])
    '3, 1, 4'

    >>> summarize_ids(range(8))
    '0, 1, 2, 3, 4 (+3 more)'

    >>> summarize_ids([])
    '(none)'
    """
    ids = [int(i) for i in ids]
    if not ids:
        return "(none)"
    shown = ", ".join(str(i) for i in ids[:limit])
    if len(ids) > limit:
        shown += f" (+{len(ids) - limit} more)"
    return shown


def standardize_contrasts(contrasts: np.ndarray, variances: np.ndarray) -> np.ndarray:
    """
    Divide each contrast by the square root of its variance.

    Parameters
    ----------
    contrasts, variances : np.ndarray[float64]
        Aligned arrays; every variance must be positive.

    Returns
    -------
    np.ndarray[float64]
        Standardized contrasts.

    Examples
    --------
    >>> standardize_contrasts(np.array([2.0, -3.0]), np.array([4.0, 9.0]))
    array([ 1., -1.])
    """
    return np.asarray(contrasts, dtype=np.float64) / np.sqrt(
        np.asarray(variances, dtype=np.float64)
    )


def read_only(arr: np.ndarray) -> np.ndarray:
    """Flag *arr* non-writeable and return it."""
    arr.flags.writeable = False
    return arr

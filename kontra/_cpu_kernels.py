"""
_cpu_kernels.py
===============
numba-compiled post-order contrast pass.

This module contains ONLY numba-accelerated code and should not import other
project modules to avoid import-time complications.  It requires numba; the
backend module imports it lazily and reports the 'numba' backend as
unavailable when the import fails.

Exported Functions
------------------
_pic_pass_njit : njit function
    Same loop as ``_kernels._pic_pass_python``.  Instead of raising, it
    returns ``(status, node)``: status 0 on success, status 1 when ``node``
    has two children at zero total adjusted distance.  The Python wrapper
    turns status 1 into DegenerateBranchLengthError.

Notes
-----
- cache=True persists the compiled binary to disk for faster subsequent runs
- The loop carries a dependency from children to parents, so it is serial
"""

from numba import njit


STATUS_OK = 0
STATUS_DEGENERATE = 1


@njit(cache=True)
def _pic_pass_njit(
    order,
    left_child,
    right_child,
    distance,
    root,
    values,
    adjusted,
    contrast,
    variance,
    ancestral_var,
):
    """
    Combined adjust / estimate / contrast pass over *order*.

    Parameters
    ----------
    order : int32[:]
        Bottom-up internal node schedule.
    left_child, right_child : int32[:]
    distance : float64[:]
        Raw branch lengths.
    root : int
    values, adjusted : float64[:]
        Tip slots pre-filled (observed values, raw lengths).
    contrast, variance, ancestral_var : float64[:]
        Written at internal slots.

    Returns
    -------
    (int, int)
        (status, offending node or -1).
    """
    for i in range(order.shape[0]):
        node = order[i]
        a = left_child[node]
        b = right_child[node]
        v_a = adjusted[a]
        v_b = adjusted[b]
        total = v_a + v_b
        if total == 0.0:
            return STATUS_DEGENERATE, int(node)

        x_a = values[a]
        x_b = values[b]
        values[node] = (x_a * v_b + x_b * v_a) / total
        contrast[node] = x_a - x_b
        variance[node] = total
        extra = (v_a * v_b) / total
        ancestral_var[node] = extra
        if node != root:
            adjusted[node] = distance[node] + extra

    return STATUS_OK, -1

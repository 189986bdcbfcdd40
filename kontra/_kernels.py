"""
_kernels.py
===========
Felsenstein's independent-contrast arithmetic and the pure-Python reference
implementation of the single post-order pass.

For an internal node n with children a, b (a < b by ID), child values x_a,
x_b and *adjusted* child branch lengths v_a, v_b:

    ancestral value   x_n = (x_a * v_b + x_b * v_a) / (v_a + v_b)
    contrast          c_n = x_a - x_b
    variance          s_n = v_a + v_b
    adjusted length   v_n = raw_length(n) + (v_a * v_b) / (v_a + v_b)

The weighted-sum form of the ancestral value is canonical.  It is
algebraically identical to the inverse-variance form

    x_n = (x_a / v_a + x_b / v_b) / (1 / v_a + 1 / v_b)

but stays finite when exactly one of v_a, v_b is zero, where the estimate
collapses onto the zero-length child.  ``inverse_variance_mean`` is kept for
cross-checking.

Tip edges are never adjusted.  The root has no parent edge; its adjusted
length slot keeps the -1.0 sentinel.
"""

from kontra._errors import DegenerateBranchLengthError


# ======================================================================== #
# Scalar formulas                                                           #
# ======================================================================== #


def ancestral_value(x_a: float, v_a: float, x_b: float, v_b: float, node: int = -1) -> float:
    """
    Maximum-likelihood ancestral value of two children (weighted-sum form).

    Raises
    ------
    DegenerateBranchLengthError   if ``v_a + v_b == 0``.

    Examples
    --------
    >>> ancestral_value(1.0, 1.0, 4.0, 2.0)
    2.0
    """
    total = v_a + v_b
    if total == 0.0:
        raise DegenerateBranchLengthError(node)
    return (x_a * v_b + x_b * v_a) / total


def inverse_variance_mean(x_a: float, v_a: float, x_b: float, v_b: float) -> float:
    """
    Inverse-variance weighted mean of two values.

    Equal to ``ancestral_value`` to floating-point tolerance; undefined when
    either length is zero.

    Examples
    --------
    >>> inverse_variance_mean(1.0, 1.0, 4.0, 2.0)
    2.0
    """
    return (x_a / v_a + x_b / v_b) / (1.0 / v_a + 1.0 / v_b)


def adjusted_length(raw: float, v_a: float, v_b: float, node: int = -1) -> float:
    """
    Lengthen the edge above a node by the variance of its ancestral estimate.

    Raises
    ------
    DegenerateBranchLengthError   if ``v_a + v_b == 0``.

    Examples
    --------
    >>> adjusted_length(1.0, 2.0, 2.0)
    2.0
    """
    total = v_a + v_b
    if total == 0.0:
        raise DegenerateBranchLengthError(node)
    return raw + (v_a * v_b) / total


def raw_contrast(x_a: float, v_a: float, x_b: float, v_b: float, node: int = -1):
    """
    Return ``(contrast, variance)`` for two sibling values.

    The sign convention is first child minus second child.

    Raises
    ------
    DegenerateBranchLengthError   if ``v_a + v_b == 0``.
    """
    total = v_a + v_b
    if total == 0.0:
        raise DegenerateBranchLengthError(node)
    return x_a - x_b, total


# ======================================================================== #
# Reference post-order pass                                                 #
# ======================================================================== #


def _pic_pass_python(
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
) -> None:
    """
    **Private.**  Run the combined adjust / estimate / contrast pass.

    Parameters
    ----------
    order : int32[n_internal]
        Bottom-up internal node schedule.
    left_child, right_child : int32[n_nodes]
    distance : float64[n_nodes]
        Raw branch lengths.
    root : int
    values : float64[n_nodes]
        Tip slots hold observed values on entry; internal slots are written.
    adjusted : float64[n_nodes]
        Tip slots hold raw lengths on entry; internal slots are written.
    contrast, variance, ancestral_var : float64[n_nodes]
        Written at internal slots.

    Raises
    ------
    DegenerateBranchLengthError
        At the first internal node whose children sit at zero total adjusted
        distance.  Output arrays are then partially written; callers must
        discard them.

    Notes
    -----
    Every output is a caller-owned array, so concurrent calls over one tree
    never share state.  ``_pic_pass_njit`` in ``_cpu_kernels`` is the same
    loop compiled by numba.
    """
    for node in order:
        node = int(node)
        a = int(left_child[node])
        b = int(right_child[node])
        v_a = float(adjusted[a])
        v_b = float(adjusted[b])
        x_a = float(values[a])
        x_b = float(values[b])

        values[node] = ancestral_value(x_a, v_a, x_b, v_b, node)
        contrast[node], variance[node] = raw_contrast(x_a, v_a, x_b, v_b, node)
        ancestral_var[node] = (v_a * v_b) / (v_a + v_b)
        if node != root:
            adjusted[node] = adjusted_length(float(distance[node]), v_a, v_b, node)

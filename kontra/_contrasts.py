"""
_contrasts.py
=============
Public entry points for Felsenstein's phylogenetic independent contrasts.

Public API
----------
  compute_contrasts(tree, trait, standardize=False, ancestral=False,
                    backend='best') -> ContrastSet
  compute_contrasts_many(tree, traits, **kwargs) -> dict[str, ContrastSet]

Pipeline
--------
1. Align the trait to the tree's tip IDs (TraitMismatchError on mismatch).
2. Derive the bottom-up schedule (CycleDetectedError if none exists).
3. Allocate per-call scratch arrays and run the single post-order pass on the
   selected backend (DegenerateBranchLengthError at the offending node).
4. Assemble the ContrastSet keyed by internal node ID.

Nothing is returned unless every step succeeds.  The tree is only read.

Logging
-------
  Module loggers under 'kontra' (silence them all with quiet()):
      INFO level:    backend availability (on import), one line per call.
      WARNING level: backend fallback.
"""

import logging
from typing import Dict, Mapping

import numpy as np

from kontra._backend import (
    BACKENDS,
    check_numba_available,
    get_available_backends,
    get_best_backend,
    import_cpu_kernels,
    resolve_backend,
)
from kontra._context import get_backend_override
from kontra._errors import DegenerateBranchLengthError
from kontra._kernels import _pic_pass_python
from kontra._logging import (
    log_backend_availability,
    log_contrast_run,
    log_optimization_status,
)
from kontra._order import postorder_internal
from kontra._result import ContrastSet
from kontra._traits import as_trait_vector


logger = logging.getLogger(__name__)

_NUMBA_AVAILABLE = check_numba_available()
_cpu_import_ok, _pic_pass_njit = import_cpu_kernels()

# Log backend availability on module import
log_optimization_status(_NUMBA_AVAILABLE)
log_backend_availability(get_available_backends())


def compute_contrasts(
    tree,
    trait,
    standardize: bool = False,
    ancestral: bool = False,
    backend: str = "best",
) -> ContrastSet:
    """
    Compute one independent contrast per internal node of *tree*.

    Parameters
    ----------
    tree : Tree
        Validated bifurcating tree.  Never modified.
    trait : TraitVector or Mapping[str, float]
        Observed value for every tip label, and no other labels.
    standardize : bool, default False
        Also report ``contrast / sqrt(variance)``.
    ancestral : bool, default False
        Also report ancestral values and their variances.
    backend : str, default 'best'
        'best', 'python' or 'numba'.  A ``use_backend`` block overrides it.
        An unavailable backend logs a warning and falls back to the best
        available one.

    Returns
    -------
    ContrastSet

    Raises
    ------
    TraitMismatchError
        Trait labels differ from the tree's tip labels.
    TraitValueError
        A trait value is not a finite number.
    CycleDetectedError
        The tree's child arrays admit no bottom-up schedule.
    DegenerateBranchLengthError
        Both children of some internal node sit at zero adjusted distance.
    ValueError
        *backend* is not a known backend name.

    Notes
    -----
    Sign convention: every contrast is the first child's value minus the
    second child's value, where the first child is the one with the smaller
    node ID.  Two traits over the same tree therefore share one convention.

    Examples
    --------
    >>> cs = compute_contrasts(tree, {'A': 1.0, 'B': 3.0, 'C': 2.0})
    >>> [c.contrast for c in cs]
    [-2.0, ...]
    """
    trait = as_trait_vector(trait)
    values = trait.align(tree)
    order = postorder_internal(tree)

    resolved = _resolve(backend)

    n_nodes = tree.n_nodes
    adjusted = np.array(tree.distance, dtype=np.float64)
    contrast = np.full(n_nodes, np.nan, dtype=np.float64)
    variance = np.full(n_nodes, np.nan, dtype=np.float64)
    ancestral_var = np.full(n_nodes, np.nan, dtype=np.float64)

    if resolved == "numba":
        status, node = _pic_pass_njit(
            order,
            tree.left_child,
            tree.right_child,
            tree.distance,
            tree.root,
            values,
            adjusted,
            contrast,
            variance,
            ancestral_var,
        )
        if status != 0:
            raise DegenerateBranchLengthError(node)
    else:
        _pic_pass_python(
            order,
            tree.left_child,
            tree.right_child,
            tree.distance,
            tree.root,
            values,
            adjusted,
            contrast,
            variance,
            ancestral_var,
        )

    result = ContrastSet.assemble(
        tree.internal_nodes(),
        contrast,
        variance,
        adjusted,
        values,
        ancestral_var,
        standardize=standardize,
        ancestral=ancestral,
    )
    log_contrast_run(len(result), resolved, standardize)
    return result


def compute_contrasts_many(
    tree, traits: Mapping[str, object], **kwargs
) -> Dict[str, ContrastSet]:
    """
    Compute contrasts for several named traits over one shared tree.

    Each trait runs as an independent ``compute_contrasts`` call with its own
    scratch arrays; results are keyed by trait name in input order.

    Parameters
    ----------
    tree : Tree
    traits : Mapping[str, TraitVector or Mapping[str, float]]
    **kwargs
        Forwarded to ``compute_contrasts``.

    Returns
    -------
    dict[str, ContrastSet]

    Examples
    --------
    >>> out = compute_contrasts_many(tree, {'wing': wing, 'tarsus': tarsus})
    >>> np.corrcoef(out['wing'].standardize(), out['tarsus'].standardize())
    """
    return {
        name: compute_contrasts(tree, trait, **kwargs) for name, trait in traits.items()
    }


def _resolve(backend: str) -> str:
    """Apply any ``use_backend`` override and resolve to an available backend."""
    backend_override = get_backend_override()
    if backend_override is not None:
        backend = backend_override

    try:
        return resolve_backend(backend)
    except ValueError as e:
        if backend not in BACKENDS:
            raise
        # Backend known but not installed, fall back to best available
        logger.warning(str(e))
        return get_best_backend()

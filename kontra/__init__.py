"""
kontra
======

Felsenstein's phylogenetic independent contrasts (PIC) for continuous traits
on rooted, bifurcating trees.

*kontra* turns trait values observed at the tips of a phylogeny into one
contrast per internal node.  Under Brownian motion the standardized contrasts
are independent and identically distributed, so they can be fed to ordinary
correlation and regression tools without the non-independence introduced by
shared ancestry.

Main Classes
------------
Tree : Validated, read-only bifurcating tree with branch lengths
TraitVector : Immutable mapping from tip label to trait value
ContrastSet : Contrasts, variances and ancestral values keyed by node ID
Contrast : One internal node's contrast

Functions
---------
compute_contrasts : Contrasts for one trait over one tree
compute_contrasts_many : Contrasts for several traits over one shared tree
postorder_internal : Bottom-up processing order of a tree's internal nodes
reconcile : Prune tips without data and data without tips

Errors
------
PicError : Base class
MalformedTreeError : Structural tree invariant violated
TraitMismatchError : Trait labels differ from tip labels
TraitValueError : Trait value not a finite number
DegenerateBranchLengthError : Zero-sum sibling branch lengths
CycleDetectedError : No bottom-up schedule exists

Context Managers
----------------
quiet : Suppress logging during operations
suppress_logger : Suppress specific logger
use_backend : Force specific computational backend

Backend Information
-------------------
get_available_backends : Query available computational backends
get_backend_info : Get comprehensive backend status
check_numba_available : Check if numba is available

Examples
--------
The five-primate example (body mass, log scale):

>>> from kontra import Tree, compute_contrasts
>>> edges = [
...     (5, 0, 0.21), (5, 1, 0.21),          # Homo, Pongo
...     (6, 5, 0.28), (6, 2, 0.49),          # Macaca
...     (7, 6, 0.13), (7, 3, 0.62),          # Ateles
...     (8, 7, 0.38), (8, 4, 1.00),          # Galago
... ]
>>> labels = {0: 'Homo', 1: 'Pongo', 2: 'Macaca', 3: 'Ateles', 4: 'Galago'}
>>> tree = Tree(edges, labels)
>>> x = {'Homo': 4.09434, 'Pongo': 3.61092, 'Macaca': 2.37024,
...      'Ateles': 2.02815, 'Galago': -1.46968}
>>> cs = compute_contrasts(tree, x, standardize=True, ancestral=True)
>>> round(cs.ancestral_state(5), 4)
3.8526

With context managers:

>>> from kontra import quiet, use_backend
>>> with quiet(), use_backend('python'):
...     cs = compute_contrasts(tree, x)
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._tree import Tree
from ._traits import TraitVector, Reconciliation, reconcile
from ._result import Contrast, ContrastSet
from ._order import postorder_internal
from ._contrasts import compute_contrasts, compute_contrasts_many

# Errors
from ._errors import (
    PicError,
    MalformedTreeError,
    TraitMismatchError,
    TraitValueError,
    DegenerateBranchLengthError,
    CycleDetectedError,
)

# Context managers (user-facing utilities)
from ._context import (
    suppress_logger,
    quiet,
    use_backend,
)

# Backend information (useful for checking capabilities)
from ._backend import (
    get_available_backends,
    get_backend_info,
    check_numba_available,
)

# Public API
__all__ = [
    # Main classes
    "Tree",
    "TraitVector",
    "Contrast",
    "ContrastSet",
    "Reconciliation",
    # Functions
    "compute_contrasts",
    "compute_contrasts_many",
    "postorder_internal",
    "reconcile",
    # Errors
    "PicError",
    "MalformedTreeError",
    "TraitMismatchError",
    "TraitValueError",
    "DegenerateBranchLengthError",
    "CycleDetectedError",
    # Context managers
    "suppress_logger",
    "quiet",
    "use_backend",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    "check_numba_available",
    # Version info
    "__version__",
]

"""
_result.py
==========
Containers for the output of ``compute_contrasts``.

``ContrastSet`` stores one entry per internal node in parallel, read-only
numpy arrays aligned on ``nodes`` (internal node IDs, ascending).  IDs are the
input tree's own; nothing is renumbered, so two traits computed over the same
tree produce identically indexed results.
"""

from typing import Dict, Iterator, NamedTuple, Optional

import numpy as np

from kontra._utils import read_only, standardize_contrasts


class Contrast(NamedTuple):
    """
    The contrast at one internal node.

    Attributes
    ----------
    node : int
        Internal node ID.
    contrast : float
        First (smaller-ID) child's value minus second child's value.
    variance : float
        Sum of the two children's adjusted branch lengths.
    standardized : float or None
        ``contrast / sqrt(variance)``; None unless standardization was
        requested.
    """

    node: int
    contrast: float
    variance: float
    standardized: Optional[float] = None


class ContrastSet:
    """
    Independent contrasts for one trait over one tree.

    Attributes (all read-only)
    --------------------------
    nodes               : int32  [n_internal]  Internal node IDs, ascending.
    contrasts           : float64[n_internal]  Raw contrasts.
    variances           : float64[n_internal]  Contrast variances.
    standardized        : float64[n_internal] or None
    ancestral           : float64[n_internal] or None
        Maximum-likelihood ancestral values (root included).
    ancestral_variances : float64[n_internal] or None
        Variance of each ancestral estimate given its own subtree,
        ``v_a * v_b / (v_a + v_b)``.
    adjusted_lengths    : float64[n_nodes]
        Felsenstein-adjusted branch length above every node, indexed by node
        ID.  Tips keep their raw length; the root holds -1.0.

    Examples
    --------
    >>> cs = compute_contrasts(tree, trait, standardize=True)
    >>> len(cs)
    4
    >>> cs[5]
    Contrast(node=5, contrast=0.48342, variance=0.42, standardized=0.7459...)
    """

    def __init__(
        self,
        nodes: np.ndarray,
        contrasts: np.ndarray,
        variances: np.ndarray,
        adjusted_lengths: np.ndarray,
        standardized: Optional[np.ndarray] = None,
        ancestral: Optional[np.ndarray] = None,
        ancestral_variances: Optional[np.ndarray] = None,
    ) -> None:
        self.nodes = read_only(nodes)
        self.contrasts = read_only(contrasts)
        self.variances = read_only(variances)
        self.adjusted_lengths = read_only(adjusted_lengths)
        self.standardized = None if standardized is None else read_only(standardized)
        self.ancestral = None if ancestral is None else read_only(ancestral)
        self.ancestral_variances = (
            None if ancestral_variances is None else read_only(ancestral_variances)
        )
        self._index: Dict[int, int] = {
            int(node): i for i, node in enumerate(self.nodes)
        }

    @classmethod
    def assemble(
        cls,
        internal: np.ndarray,
        contrast: np.ndarray,
        variance: np.ndarray,
        adjusted: np.ndarray,
        values: np.ndarray,
        ancestral_var: np.ndarray,
        standardize: bool,
        ancestral: bool,
    ) -> "ContrastSet":
        """
        Gather per-node scratch arrays (indexed by node ID) into a result.

        Parameters
        ----------
        internal : int32[n_internal]
            Internal node IDs, ascending.
        contrast, variance, adjusted, values, ancestral_var : float64[n_nodes]
            Scratch arrays written by the post-order pass.
        standardize, ancestral : bool
            Which optional outputs to include.
        """
        contrasts = contrast[internal].copy()
        variances = variance[internal].copy()
        return cls(
            nodes=internal.astype(np.int32, copy=True),
            contrasts=contrasts,
            variances=variances,
            adjusted_lengths=adjusted.copy(),
            standardized=(
                standardize_contrasts(contrasts, variances) if standardize else None
            ),
            ancestral=values[internal].copy() if ancestral else None,
            ancestral_variances=ancestral_var[internal].copy() if ancestral else None,
        )

    # ---- Lookup --------------------------------------------------------- #

    def __len__(self) -> int:
        return int(self.nodes.shape[0])

    def __contains__(self, node) -> bool:
        return int(node) in self._index

    def __getitem__(self, node) -> Contrast:
        """
        Return the Contrast at internal node *node*.

        Raises
        ------
        KeyError   if *node* is not an internal node of the tree.
        """
        i = self._position(node)
        return self._contrast_at(i)

    def __iter__(self) -> Iterator[Contrast]:
        for i in range(len(self)):
            yield self._contrast_at(i)

    def __repr__(self) -> str:
        return (
            f"ContrastSet(n_contrasts={len(self)}, "
            f"standardized={self.standardized is not None}, "
            f"ancestral={self.ancestral is not None})"
        )

    def to_dict(self) -> Dict[int, Contrast]:
        """Return ``{node: Contrast}`` for every internal node."""
        return {c.node: c for c in self}

    def standardize(self) -> np.ndarray:
        """
        Return standardized contrasts, computing them if not stored.

        Returns
        -------
        np.ndarray[float64]
            ``contrasts / sqrt(variances)``, aligned on ``nodes``.
        """
        if self.standardized is not None:
            return self.standardized
        return standardize_contrasts(self.contrasts, self.variances)

    def ancestral_state(self, node) -> float:
        """
        Return the ancestral value estimated at internal node *node*.

        Raises
        ------
        ValueError   if ancestral values were not requested.
        KeyError     if *node* is not an internal node.
        """
        if self.ancestral is None:
            raise ValueError(
                "Ancestral values were not computed; call compute_contrasts "
                "with ancestral=True."
            )
        return float(self.ancestral[self._position(node)])

    # ---- Private -------------------------------------------------------- #

    def _position(self, node) -> int:
        key = int(node)
        if key not in self._index:
            raise KeyError(f"Node {key} is not an internal node of this tree.")
        return self._index[key]

    def _contrast_at(self, i: int) -> Contrast:
        std = None if self.standardized is None else float(self.standardized[i])
        return Contrast(
            node=int(self.nodes[i]),
            contrast=float(self.contrasts[i]),
            variance=float(self.variances[i]),
            standardized=std,
        )

"""
_tree.py
========
A rooted, strictly bifurcating phylogenetic tree represented as a set of
parallel, read-only numpy arrays indexed by node ID.

Public API
----------
  Tree(edges, tip_labels, root=None, resolve_polytomies=False)
      Constructor.  Validates every structural invariant and builds the
      arrays.  Raises MalformedTreeError naming the violated invariant.

  Tree.from_arrays(parent, distance, names, resolve_polytomies=False)
      Build from a parent-pointer array.

  .children_of(node) / .parent_of(node) / .branch_length(node)
  .is_tip(node) / .tip_count() / .internal_count() / .tip_id(label)
  .internal_nodes() / .postorder() / .total_length()
  .drop_tips(labels)

Node-ID conventions
-------------------
Node IDs are the dense integers ``0 … n_nodes-1`` supplied by the caller, in
any order; they are never renumbered by construction.  The two children of an
internal node are stored so that ``left_child < right_child``.  This makes the
child order (and therefore the sign of every contrast) a function of the IDs
alone, independent of the order in which edges were supplied.

Immutability
------------
Every array is flagged non-writeable at the end of ``__init__``.  Per-run
derived values (adjusted branch lengths, ancestral states) are never stored on
the tree; each contrast computation allocates its own scratch arrays, so one
tree can be shared freely between independent trait computations.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from kontra._errors import MalformedTreeError
from kontra._logging import log_polytomy_resolution, log_tree_summary
from kontra._order import postorder_internal
from kontra._utils import read_only, summarize_ids


logger = logging.getLogger(__name__)


class Tree:
    """
    A rooted, strictly bifurcating phylogenetic tree with branch lengths.

    Attributes (all read-only after construction)
    ----------------------------------------------
    n_nodes    : int        Total number of nodes (2 * n_tips - 1).
    n_tips     : int        Number of tip (taxon) nodes.
    n_internal : int        Number of internal nodes (n_tips - 1).
    root       : int        Node ID of the root.
    names      : list[str]  Tip label for each node; '' for internal nodes.

    Arrays
    ------
    parent      : int32  [n_nodes]   Parent ID; -1 for root.
    distance    : float64[n_nodes]   Raw branch length to parent; -1.0 for root.
    left_child  : int32  [n_nodes]   Smaller child ID; -1 for tips.
    right_child : int32  [n_nodes]   Larger child ID; -1 for tips.
    auxiliary   : bool   [n_nodes]   True for nodes added by polytomy resolution.
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(
        self,
        edges: Iterable[Tuple[int, int, float]],
        tip_labels: Mapping[int, str],
        root: Optional[int] = None,
        resolve_polytomies: bool = False,
    ) -> None:
        """
        Validate *edges* and *tip_labels* and build the tree arrays.

        Parameters
        ----------
        edges : iterable of (parent, child, length)
            One entry per non-root node.  Lengths must be finite and >= 0.
        tip_labels : Mapping[int, str]
            Label for every tip, keyed by tip ID.
        root : int, optional
            Expected root ID.  Checked against the inferred root.
        resolve_polytomies : bool, default False
            If False, a node with more than two children is an error.  If
            True, it is binarized with zero-length auxiliary nodes (see
            ``_resolve_polytomies``).

        Raises
        ------
        MalformedTreeError
            If any structural invariant is violated.
        """
        parent, distance, n_nodes = Tree._read_edges(edges, tip_labels)
        tree_root = Tree._find_root(parent, n_nodes)
        if root is not None and int(root) != tree_root:
            raise MalformedTreeError(
                f"Expected root {int(root)} but node {tree_root} is the only "
                f"node without a parent."
            )

        children: List[List[int]] = [[] for _ in range(n_nodes)]
        for child in range(n_nodes):
            if parent[child] != -1:
                children[parent[child]].append(child)
        Tree._check_connected(children, tree_root, n_nodes)

        polytomies = []
        for node in range(n_nodes):
            k = len(children[node])
            if k == 1:
                raise MalformedTreeError(
                    f"Internal node {node} has a single child ({children[node][0]}); "
                    f"every internal node must have exactly two children."
                )
            if k > 2:
                polytomies.append(node)

        names = Tree._read_labels(tip_labels, children, n_nodes)

        n_auxiliary = 0
        if polytomies:
            if not resolve_polytomies:
                node = polytomies[0]
                raise MalformedTreeError(
                    f"Internal node {node} has {len(children[node])} children "
                    f"(polytomies at {summarize_ids(polytomies)}); pass "
                    f"resolve_polytomies=True to binarize them with zero-length "
                    f"branches."
                )
            n_auxiliary = Tree._resolve_polytomies(
                polytomies, children, parent, distance, names
            )
            n_nodes += n_auxiliary
            log_polytomy_resolution(polytomies, n_auxiliary)

        n_tips = sum(1 for node in range(n_nodes) if not children[node])
        n_internal = n_nodes - n_tips
        if n_internal != n_tips - 1:
            raise MalformedTreeError(
                f"{n_tips} tips require {n_tips - 1} internal nodes for a "
                f"bifurcating tree, found {n_internal}."
            )

        # ---- Allocate arrays ---------------------------------------- #
        left_child = np.full(n_nodes, -1, dtype=np.int32)
        right_child = np.full(n_nodes, -1, dtype=np.int32)
        for node in range(n_nodes):
            if children[node]:
                a, b = sorted(children[node])
                left_child[node] = a
                right_child[node] = b
        auxiliary = np.zeros(n_nodes, dtype=bool)
        auxiliary[n_nodes - n_auxiliary :] = True

        self.parent = read_only(np.asarray(parent, dtype=np.int32))
        self.distance = read_only(np.asarray(distance, dtype=np.float64))
        self.left_child = read_only(left_child)
        self.right_child = read_only(right_child)
        self.auxiliary = read_only(auxiliary)
        self.names: List[str] = names

        self.n_nodes: int = n_nodes
        self.n_tips: int = n_tips
        self.n_internal: int = n_internal
        self.root: int = tree_root

        self._name_index: Dict[str, int] = {
            name: node for node, name in enumerate(names) if name
        }

        log_tree_summary(n_tips, n_internal, self.total_length())

    @classmethod
    def from_arrays(
        cls, parent, distance, names, resolve_polytomies: bool = False
    ) -> "Tree":
        """
        Build a tree from a parent-pointer array.

        Parameters
        ----------
        parent : sequence of int
            Parent ID for each node; -1 for the root.
        distance : sequence of float
            Branch length to parent for each node; the root entry is ignored.
        names : sequence of str
            Tip label for each node; '' for internal nodes.
        resolve_polytomies : bool, default False
            Forwarded to the constructor.

        Returns
        -------
        Tree

        Examples
        --------
        >>> t = Tree.from_arrays([2, 2, -1], [1.0, 2.0, -1.0], ["A", "B", ""])
        >>> t.children_of(2)
        (0, 1)
        """
        parent = [int(p) for p in parent]
        distance = list(distance)
        names = list(names)
        if not (len(parent) == len(distance) == len(names)):
            raise MalformedTreeError(
                f"parent, distance and names must have equal lengths, got "
                f"{len(parent)}, {len(distance)}, {len(names)}."
            )
        edges = [
            (p, child, distance[child]) for child, p in enumerate(parent) if p != -1
        ]
        tip_labels = {node: name for node, name in enumerate(names) if name != ""}
        return cls(edges, tip_labels, resolve_polytomies=resolve_polytomies)

    # ================================================================== #
    # Public methods                                                       #
    # ================================================================== #

    def children_of(self, node) -> Tuple[int, int]:
        """
        Return ``(left, right)`` for an internal node; ``left < right``.

        Raises
        ------
        ValueError   if *node* is a tip.
        """
        node_id = self._resolve_node(node)
        left = int(self.left_child[node_id])
        if left == -1:
            raise ValueError(f"Node {node_id} is a tip and has no children.")
        return left, int(self.right_child[node_id])

    def parent_of(self, node) -> Optional[int]:
        """Return the parent ID of *node*, or None for the root."""
        p = int(self.parent[self._resolve_node(node)])
        return None if p == -1 else p

    def branch_length(self, node) -> float:
        """
        Return the raw length of the edge above *node*.

        Raises
        ------
        ValueError   if *node* is the root (it has no parent edge).
        """
        node_id = self._resolve_node(node)
        if node_id == self.root:
            raise ValueError(f"Node {node_id} is the root and has no parent edge.")
        return float(self.distance[node_id])

    def is_tip(self, node) -> bool:
        return int(self.left_child[self._resolve_node(node)]) == -1

    def tip_count(self) -> int:
        return self.n_tips

    def internal_count(self) -> int:
        return self.n_internal

    def tip_id(self, label: str) -> int:
        """
        Return the node ID of the tip labelled *label*.

        Raises
        ------
        KeyError   if no tip carries *label*.
        """
        if label not in self._name_index:
            raise KeyError(f"No tip with label '{label}' found in tree.")
        return self._name_index[label]

    @property
    def tip_labels(self) -> List[str]:
        """Tip labels in ascending tip-ID order."""
        return [name for name in self.names if name]

    def internal_nodes(self) -> np.ndarray:
        """Return the internal node IDs in ascending order."""
        return np.flatnonzero(self.left_child != -1).astype(np.int32)

    def postorder(self) -> np.ndarray:
        """Return the internal nodes in bottom-up processing order."""
        return postorder_internal(self)

    def total_length(self) -> float:
        """Sum of all raw branch lengths (the root has none)."""
        mask = self.parent != -1
        return float(self.distance[mask].sum())

    def drop_tips(self, labels: Iterable[str]) -> "Tree":
        """
        Return a new tree without the tips named in *labels*.

        Internal nodes left with a single child are collapsed: the surviving
        child's branch absorbs the removed edge.  If the root is collapsed,
        its surviving child becomes the new root and its edge is discarded.
        Surviving nodes are renumbered ``0 … m-1`` preserving the relative
        order of their original IDs.  ``auxiliary`` flags follow the
        surviving nodes.

        Parameters
        ----------
        labels : Iterable[str]
            Tip labels to remove.

        Returns
        -------
        Tree

        Raises
        ------
        KeyError            if a label is not a tip of this tree.
        MalformedTreeError  if every tip would be removed.
        """
        drop = {self.tip_id(label) for label in labels}
        if not drop:
            return self
        if len(drop) == self.n_tips:
            raise MalformedTreeError("Cannot drop every tip from the tree.")

        n = self.n_nodes
        # survivor[v]: node representing v's subtree after pruning (-1 = empty)
        # lift[v]:     path length from survivor[v] up to v
        survivor = np.full(n, -1, dtype=np.int64)
        lift = np.zeros(n, dtype=np.float64)
        for node in range(n):
            if self.left_child[node] == -1 and node not in drop:
                survivor[node] = node

        new_edges = []
        for node in self.postorder():
            node = int(node)
            kept = [
                int(c)
                for c in (self.left_child[node], self.right_child[node])
                if survivor[c] != -1
            ]
            if len(kept) == 2:
                survivor[node] = node
                for c in kept:
                    new_edges.append(
                        (node, int(survivor[c]), lift[c] + float(self.distance[c]))
                    )
            elif len(kept) == 1:
                c = kept[0]
                survivor[node] = survivor[c]
                lift[node] = lift[c] + float(self.distance[c])

        new_root = int(survivor[self.root])
        nodes = sorted({new_root} | {c for _, c, _ in new_edges})
        renumber = {old: new for new, old in enumerate(nodes)}

        edges = [(renumber[p], renumber[c], length) for p, c, length in new_edges]
        tip_labels = {
            renumber[old]: self.names[old] for old in nodes if self.names[old]
        }
        pruned = Tree(edges, tip_labels)
        # surviving auxiliary nodes keep their flag under the new IDs
        pruned.auxiliary = read_only(self.auxiliary[nodes].copy())
        return pruned

    def __repr__(self) -> str:
        return (
            f"Tree(n_tips={self.n_tips}, n_internal={self.n_internal}, "
            f"root={self.root})"
        )

    # ================================================================== #
    # Private instance methods                                             #
    # ================================================================== #

    def _resolve_node(self, node) -> int:
        """
        **Private.**  Return the integer node ID for *node*.

        Integers (including numpy integers) are range-checked; strings are
        looked up as tip labels.

        Raises
        ------
        IndexError   if an integer ID is out of range.
        KeyError     if *node* is a string that labels no tip.
        """
        if isinstance(node, str):
            return self.tip_id(node)
        node_id = int(node)
        if not 0 <= node_id < self.n_nodes:
            raise IndexError(
                f"Node ID {node_id} out of range for tree with {self.n_nodes} nodes."
            )
        return node_id

    # ================================================================== #
    # Private static methods (validation stages)                           #
    # ================================================================== #

    @staticmethod
    def _read_edges(edges, tip_labels) -> Tuple[List[int], List[float], int]:
        """
        **Private static.**  Read the edge list into parent/distance lists.

        Checks edge shape, branch lengths, self-loops, multiple parents and
        that node IDs are dense non-negative integers.
        """
        parent_of: Dict[int, int] = {}
        length_of: Dict[int, float] = {}
        ids = set()

        for edge in edges:
            try:
                p, c, length = edge
            except (TypeError, ValueError):
                raise MalformedTreeError(
                    f"Edge {edge!r} is not a (parent, child, length) triple."
                ) from None
            p = Tree._node_id(p)
            c = Tree._node_id(c)
            try:
                length = float(length)
            except (TypeError, ValueError):
                raise MalformedTreeError(
                    f"Branch length {length!r} on edge {p} -> {c} is not a number."
                ) from None
            if not math.isfinite(length):
                raise MalformedTreeError(
                    f"Branch length on edge {p} -> {c} is not finite ({length})."
                )
            if length < 0.0:
                raise MalformedTreeError(
                    f"Branch length on edge {p} -> {c} is negative ({length})."
                )
            if p == c:
                raise MalformedTreeError(f"Edge {p} -> {c} is a self-loop.")
            if c in parent_of:
                raise MalformedTreeError(
                    f"Node {c} has more than one parent edge "
                    f"(from {parent_of[c]} and {p})."
                )
            parent_of[c] = p
            length_of[c] = length
            ids.add(p)
            ids.add(c)

        for node in tip_labels:
            ids.add(Tree._node_id(node))

        if not ids:
            raise MalformedTreeError("Tree has no nodes.")

        n_nodes = max(ids) + 1
        if len(ids) != n_nodes:
            missing = sorted(set(range(n_nodes)) - ids)
            raise MalformedTreeError(
                f"Node IDs must be dense in 0..{n_nodes - 1}; missing "
                f"{summarize_ids(missing)}."
            )

        parent = [-1] * n_nodes
        distance = [-1.0] * n_nodes
        for c, p in parent_of.items():
            parent[c] = p
            distance[c] = length_of[c]
        return parent, distance, n_nodes

    @staticmethod
    def _node_id(node) -> int:
        """**Private static.**  Validate and return a node ID."""
        if isinstance(node, (bool, np.bool_)) or not isinstance(
            node, (int, np.integer)
        ):
            raise MalformedTreeError(f"Node ID {node!r} is not an integer.")
        node = int(node)
        if node < 0:
            raise MalformedTreeError(f"Node ID {node} is negative.")
        return node

    @staticmethod
    def _find_root(parent: List[int], n_nodes: int) -> int:
        """**Private static.**  Return the single parentless node."""
        roots = [node for node in range(n_nodes) if parent[node] == -1]
        if not roots:
            raise MalformedTreeError(
                "Every node has a parent, so the edges contain a cycle."
            )
        if len(roots) > 1:
            raise MalformedTreeError(
                f"Tree is disconnected: {len(roots)} nodes have no parent "
                f"(multiple roots: {summarize_ids(roots)})."
            )
        return roots[0]

    @staticmethod
    def _check_connected(children: List[List[int]], root: int, n_nodes: int) -> None:
        """
        **Private static.**  Every node must be reachable from the root.

        With a single parentless node and one parent per node, any node not
        reachable from the root lies on (or hangs off) a cycle.
        """
        seen = np.zeros(n_nodes, dtype=bool)
        seen[root] = True
        stack = [root]
        while stack:
            node = stack.pop()
            for c in children[node]:
                if not seen[c]:
                    seen[c] = True
                    stack.append(c)
        unreachable = np.flatnonzero(~seen)
        if unreachable.size:
            raise MalformedTreeError(
                f"Cycle detected: node(s) {summarize_ids(unreachable)} are not "
                f"reachable from root {root}."
            )

    @staticmethod
    def _read_labels(
        tip_labels: Mapping[int, str], children: List[List[int]], n_nodes: int
    ) -> List[str]:
        """**Private static.**  Check tip labels and return the names list."""
        names = [""] * n_nodes
        seen: Dict[str, int] = {}
        for node, label in tip_labels.items():
            node = int(node)
            if children[node]:
                raise MalformedTreeError(
                    f"Internal node {node} carries label {label!r}; only tips "
                    f"are labelled."
                )
            if not isinstance(label, str) or label == "":
                raise MalformedTreeError(
                    f"Tip {node} has invalid label {label!r}; labels must be "
                    f"non-empty strings."
                )
            if label in seen:
                raise MalformedTreeError(
                    f"Duplicate tip label '{label}' at IDs {seen[label]} and {node}."
                )
            seen[label] = node
            names[node] = label

        unlabelled = [
            node for node in range(n_nodes) if not children[node] and names[node] == ""
        ]
        if unlabelled:
            raise MalformedTreeError(
                f"Tip(s) {summarize_ids(unlabelled)} have no label."
            )
        return names

    @staticmethod
    def _resolve_polytomies(
        polytomies: List[int],
        children: List[List[int]],
        parent: List[int],
        distance: List[float],
        names: List[str],
    ) -> int:
        """
        **Private static.**  Binarize every node in *polytomies* in place.

        A node with children c1 < c2 < … < ck is converted to a left-to-right
        cascade of (k - 2) auxiliary nodes whose parent branches have length
        0.0:

            (c1, c2, c3, c4)  →  (((c1, c2):0.0, c3):0.0, c4)

        Auxiliary nodes take the next free IDs, polytomies processed in
        ascending ID order.  Only the unrooted topology of the original node
        is preserved; the relative order of the extra zero-length branches is
        a convention, not an inference.

        Returns
        -------
        int
            Number of auxiliary nodes added.
        """
        next_id = len(parent)
        start = next_id
        for node in polytomies:
            kids = sorted(children[node])
            current = kids[0]
            for c in kids[1:-1]:
                aux = next_id
                next_id += 1
                children.append([current, c])
                parent.append(node)
                distance.append(0.0)
                names.append("")
                parent[current] = aux
                parent[c] = aux
                current = aux
            children[node] = [current, kids[-1]]
        return next_id - start

"""
_order.py
=========
Bottom-up (post-order) scheduling of internal nodes.

The contrast pass needs every internal node to be processed after both of its
children.  ``postorder_from_children`` derives such a schedule directly from
the raw child arrays, without trusting any validation done elsewhere, and
raises ``CycleDetectedError`` when no schedule exists.

Tie-breaking
------------
Kahn's algorithm with a min-heap: whenever several internal nodes have all
their children processed, the one with the smallest ID is emitted first.  The
schedule is therefore a pure function of the topology and the node IDs.
"""

import heapq

import numpy as np

from kontra._errors import CycleDetectedError


def postorder_from_children(left_child, right_child) -> np.ndarray:
    """
    Return the internal node IDs in bottom-up order.

    Parameters
    ----------
    left_child, right_child : int array [n_nodes]
        Child IDs for each node; -1 for tips.

    Returns
    -------
    np.ndarray[int32]
        Every internal node exactly once, each after both its children.

    Raises
    ------
    CycleDetectedError
        If some internal nodes can never become ready (a cycle, or a node
        listed as the child of more than one parent).

    Examples
    --------
    >>> left = np.array([-1, -1, -1, 0, 3])
    >>> right = np.array([-1, -1, -1, 1, 2])
    >>> postorder_from_children(left, right)
    array([3, 4], dtype=int32)
    """
    left_child = np.asarray(left_child)
    right_child = np.asarray(right_child)
    n_nodes = int(left_child.shape[0])

    internal = np.flatnonzero(left_child != -1)
    # waiting_on[v]: number of internal children of v not yet scheduled
    waiting_on = np.zeros(n_nodes, dtype=np.int64)
    # claimed_by[c]: the internal node listing c as a child
    claimed_by = np.full(n_nodes, -1, dtype=np.int64)
    shared = set()

    for node in internal:
        for c in (int(left_child[node]), int(right_child[node])):
            if claimed_by[c] != -1:
                shared.add(int(node))
            claimed_by[c] = node
            if left_child[c] != -1:
                waiting_on[node] += 1

    ready = [int(node) for node in internal if waiting_on[node] == 0]
    heapq.heapify(ready)

    order = np.empty(internal.shape[0], dtype=np.int32)
    pos = 0
    while ready:
        node = heapq.heappop(ready)
        order[pos] = node
        pos += 1
        p = int(claimed_by[node])
        if p != -1:
            waiting_on[p] -= 1
            if waiting_on[p] == 0:
                heapq.heappush(ready, p)

    if pos < internal.shape[0] or shared:
        scheduled = set(order[:pos].tolist())
        stuck = sorted(set(int(n) for n in internal if int(n) not in scheduled))
        raise CycleDetectedError(stuck or sorted(shared))

    return order


def postorder_internal(tree) -> np.ndarray:
    """
    Return *tree*'s internal node IDs in bottom-up order.

    See ``postorder_from_children`` for the ordering rule.
    """
    return postorder_from_children(tree.left_child, tree.right_child)

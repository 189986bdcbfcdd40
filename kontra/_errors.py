"""
_errors.py
==========
Exception hierarchy for kontra.

Every error raised by the contrast computation derives from ``PicError``.
Each concrete error also derives from the built-in exception a caller would
naturally catch for that kind of failure, so ``except ValueError`` around
tree construction keeps working.
"""

from typing import Iterable, Sequence

from kontra._utils import summarize_ids


class PicError(Exception):
    """Base class for all phylogenetic independent contrast errors."""


class MalformedTreeError(PicError, ValueError):
    """A structural tree invariant is violated."""


class TraitMismatchError(PicError, KeyError):
    """
    The trait vector's labels do not equal the tree's tip labels.

    Attributes
    ----------
    missing : tuple[str, ...]
        Tip labels with no trait value.
    extra : tuple[str, ...]
        Trait labels that are not tips of the tree.
    """

    def __init__(self, missing: Iterable[str] = (), extra: Iterable[str] = ()):
        self.missing = tuple(sorted(missing))
        self.extra = tuple(sorted(extra))
        parts = []
        if self.missing:
            parts.append(f"no trait value for tip(s) {list(self.missing)}")
        if self.extra:
            parts.append(f"trait label(s) {list(self.extra)} not in tree")
        super().__init__("; ".join(parts) or "trait labels do not match tree")

    def __str__(self) -> str:
        # KeyError.__str__ wraps the message in quotes
        return str(self.args[0])


class TraitValueError(PicError, ValueError):
    """A trait value is not a finite real number."""


class DegenerateBranchLengthError(PicError, ArithmeticError):
    """
    Both adjusted child branch lengths of an internal node are zero.

    Attributes
    ----------
    node : int
        ID of the internal node whose children sit at zero distance.
    """

    def __init__(self, node: int):
        self.node = int(node)
        super().__init__(
            f"Internal node {self.node}: both child branches have zero adjusted "
            f"length, so the contrast variance is zero."
        )


class CycleDetectedError(PicError, RuntimeError):
    """
    No post-order schedule exists for the internal nodes.

    Attributes
    ----------
    nodes : tuple[int, ...]
        Internal nodes that could not be scheduled.
    """

    def __init__(self, nodes: Sequence[int]):
        self.nodes = tuple(int(n) for n in nodes)
        super().__init__(
            f"Cannot order {len(self.nodes)} internal node(s) bottom-up: "
            f"{summarize_ids(self.nodes)}"
        )

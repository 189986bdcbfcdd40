"""
_traits.py
==========
Trait vectors and tree/trait reconciliation.

``TraitVector`` is the immutable ``label -> value`` mapping consumed by
``compute_contrasts``.  ``reconcile`` is the loader-side collaborator: it
prunes tips without data and discards data without tips, reporting both, so
that the core only ever sees label sets that match exactly.
"""

import math
from collections import Counter
from collections.abc import Mapping
from typing import Iterator, NamedTuple, Sequence, Tuple

import numpy as np

from kontra._errors import TraitMismatchError, TraitValueError
from kontra._logging import log_reconciliation


class TraitVector(Mapping):
    """
    Immutable mapping from tip label to observed trait value.

    Parameters
    ----------
    values : Mapping[str, float]
        Observed value for each tip label.  Values must be finite reals.

    Raises
    ------
    TraitValueError
        If a label is not a non-empty string or a value is not finite.

    Examples
    --------
    >>> x = TraitVector({'A': 1.0, 'B': 2.5})
    >>> x['B']
    2.5
    >>> len(x)
    2
    """

    def __init__(self, values: Mapping[str, float]) -> None:
        data = {}
        for label, value in dict(values).items():
            if not isinstance(label, str) or label == "":
                raise TraitValueError(
                    f"Trait label {label!r} is not a non-empty string."
                )
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise TraitValueError(
                    f"Trait value {value!r} for '{label}' is not a number."
                ) from None
            if not math.isfinite(value):
                raise TraitValueError(
                    f"Trait value for '{label}' is not finite ({value})."
                )
            data[label] = value
        self._data = data

    @classmethod
    def from_arrays(cls, labels: Sequence[str], values) -> "TraitVector":
        """
        Build from parallel label and value sequences.

        Raises
        ------
        TraitValueError   if lengths differ or a label repeats.
        """
        labels = list(labels)
        values = np.asarray(values, dtype=np.float64).ravel()
        if len(labels) != values.shape[0]:
            raise TraitValueError(
                f"{len(labels)} labels but {values.shape[0]} values."
            )
        dupes = sorted(label for label, n in Counter(labels).items() if n > 1)
        if dupes:
            raise TraitValueError(f"Duplicate trait label(s): {dupes}")
        return cls(dict(zip(labels, values.tolist())))

    # ---- Mapping protocol ------------------------------------------- #

    def __getitem__(self, label: str) -> float:
        return self._data[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"TraitVector({self._data!r})"

    # ---- Tree alignment --------------------------------------------- #

    def align(self, tree) -> np.ndarray:
        """
        Return a value array indexed by *tree*'s node IDs.

        Tip slots hold the observed values; internal slots are NaN.

        Raises
        ------
        TraitMismatchError
            If the label set differs from the tree's tip label set.
        """
        tips = set(tree.tip_labels)
        labels = set(self._data)
        if tips != labels:
            raise TraitMismatchError(missing=tips - labels, extra=labels - tips)

        values = np.full(tree.n_nodes, np.nan, dtype=np.float64)
        for label, value in self._data.items():
            values[tree.tip_id(label)] = value
        return values


def as_trait_vector(trait) -> TraitVector:
    """Return *trait* as a TraitVector, converting plain mappings."""
    if isinstance(trait, TraitVector):
        return trait
    if not isinstance(trait, Mapping):
        raise TypeError(
            f"trait must be a TraitVector or a Mapping[str, float], "
            f"got {type(trait).__name__}"
        )
    return TraitVector(trait)


class Reconciliation(NamedTuple):
    """
    Tree and trait data with matching label sets.

    Attributes
    ----------
    tree : Tree
        Input tree with data-less tips pruned (the same object if none were).
    trait : TraitVector
        Input trait restricted to the tree's tips.
    dropped_tips : tuple[str, ...]
        Tips removed from the tree, sorted.
    dropped_traits : tuple[str, ...]
        Trait labels discarded, sorted.
    """

    tree: object
    trait: TraitVector
    dropped_tips: Tuple[str, ...]
    dropped_traits: Tuple[str, ...]


def reconcile(tree, trait) -> Reconciliation:
    """
    Make *tree* and *trait* cover exactly the same labels.

    Tips with no trait value are pruned from the tree (see
    ``Tree.drop_tips``); trait labels that are not tips are discarded.  Both
    are logged at WARNING level and reported in the result.

    Parameters
    ----------
    tree : Tree
    trait : TraitVector or Mapping[str, float]

    Returns
    -------
    Reconciliation

    Raises
    ------
    TraitMismatchError
        If no label is shared, so nothing would remain to analyse.

    Examples
    --------
    >>> r = reconcile(tree, {'A': 1.0, 'B': 2.0, 'Z': 9.0})
    >>> r.dropped_traits
    ('Z',)
    """
    trait = as_trait_vector(trait)
    tips = set(tree.tip_labels)
    labels = set(trait)

    dropped_tips = tuple(sorted(tips - labels))
    dropped_traits = tuple(sorted(labels - tips))
    if not tips & labels:
        raise TraitMismatchError(missing=tips, extra=labels)

    log_reconciliation(dropped_tips, dropped_traits)

    if dropped_tips:
        tree = tree.drop_tips(dropped_tips)
    if dropped_traits:
        trait = TraitVector({label: trait[label] for label in trait if label in tips})

    return Reconciliation(tree, trait, dropped_tips, dropped_traits)

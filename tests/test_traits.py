"""
tests/test_traits.py
====================
Tests for TraitVector and tree/trait reconciliation.
"""

import logging
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, os.path.dirname(__file__))

from kontra import (
    PicError,
    Reconciliation,
    TraitMismatchError,
    TraitValueError,
    TraitVector,
    Tree,
    compute_contrasts,
    reconcile,
)
from examples_trees import (
    BALANCED_EDGES,
    BALANCED_LABELS,
    PRIMATE_EDGES,
    PRIMATE_LABELS,
    PRIMATE_VALUES,
)


@pytest.fixture(scope="module")
def primate():
    return Tree(PRIMATE_EDGES, PRIMATE_LABELS)


@pytest.fixture(scope="module")
def balanced():
    return Tree(BALANCED_EDGES, BALANCED_LABELS)


# ======================================================================== #
# TraitVector                                                               #
# ======================================================================== #


class TestTraitVector:
    def test_mapping_protocol(self):
        x = TraitVector({"A": 1, "B": 2.5})
        assert x["A"] == 1.0
        assert isinstance(x["A"], float)
        assert len(x) == 2
        assert sorted(x) == ["A", "B"]
        assert "B" in x

    def test_copies_input(self):
        source = {"A": 1.0}
        x = TraitVector(source)
        source["A"] = 99.0
        assert x["A"] == 1.0

    def test_no_item_assignment(self):
        x = TraitVector({"A": 1.0})
        with pytest.raises(TypeError):
            x["A"] = 2.0

    def test_numpy_scalars_accepted(self):
        x = TraitVector({"A": np.float32(1.5), "B": np.int64(3)})
        assert x["A"] == 1.5
        assert x["B"] == 3.0

    @pytest.mark.parametrize("bad", [float("nan"), float("-inf"), "x", None, [1.0]])
    def test_bad_value(self, bad):
        with pytest.raises(TraitValueError):
            TraitVector({"A": bad})

    @pytest.mark.parametrize("label", ["", 3, None])
    def test_bad_label(self, label):
        with pytest.raises(TraitValueError):
            TraitVector({label: 1.0})

    def test_value_error_hierarchy(self):
        with pytest.raises(ValueError):
            TraitVector({"A": float("nan")})
        with pytest.raises(PicError):
            TraitVector({"A": float("nan")})

    def test_from_arrays(self):
        x = TraitVector.from_arrays(["A", "B", "C"], np.array([1.0, 2.0, 3.0]))
        assert dict(x) == {"A": 1.0, "B": 2.0, "C": 3.0}

    def test_from_arrays_length_mismatch(self):
        with pytest.raises(TraitValueError, match="2 labels but 3 values"):
            TraitVector.from_arrays(["A", "B"], [1.0, 2.0, 3.0])

    def test_from_arrays_duplicate(self):
        with pytest.raises(TraitValueError, match="Duplicate"):
            TraitVector.from_arrays(["A", "B", "A"], [1.0, 2.0, 3.0])

    def test_align(self, balanced):
        values = TraitVector({"D": 4.0, "C": 3.0, "B": 2.0, "A": 1.0}).align(balanced)
        np.testing.assert_array_equal(values[:4], [1.0, 2.0, 3.0, 4.0])
        assert np.isnan(values[4:]).all()

    def test_align_mismatch(self, balanced):
        with pytest.raises(TraitMismatchError) as excinfo:
            TraitVector({"A": 1.0, "B": 2.0, "E": 5.0}).align(balanced)
        assert excinfo.value.missing == ("C", "D")
        assert excinfo.value.extra == ("E",)

    def test_mismatch_message_unquoted(self, balanced):
        with pytest.raises(TraitMismatchError) as excinfo:
            TraitVector({"A": 1.0, "B": 2.0, "C": 3.0}).align(balanced)
        assert str(excinfo.value) == "no trait value for tip(s) ['D']"

    def test_mismatch_is_key_error(self, balanced):
        with pytest.raises(KeyError):
            TraitVector({"A": 1.0}).align(balanced)


# ======================================================================== #
# reconcile                                                                 #
# ======================================================================== #


class TestReconcile:
    def test_exact_match_is_noop(self, primate):
        r = reconcile(primate, PRIMATE_VALUES)
        assert isinstance(r, Reconciliation)
        assert r.tree is primate
        assert r.dropped_tips == ()
        assert r.dropped_traits == ()
        assert dict(r.trait) == PRIMATE_VALUES

    def test_extra_traits_discarded(self, primate):
        r = reconcile(primate, dict(PRIMATE_VALUES, Gorilla=4.5, Lemur=0.2))
        assert r.dropped_traits == ("Gorilla", "Lemur")
        assert set(r.trait) == set(PRIMATE_VALUES)
        assert r.tree is primate

    def test_missing_tips_pruned(self, primate):
        trait = {k: v for k, v in PRIMATE_VALUES.items() if k != "Macaca"}
        r = reconcile(primate, trait)
        assert r.dropped_tips == ("Macaca",)
        assert r.tree.tip_labels == ["Homo", "Pongo", "Ateles", "Galago"]

    def test_result_feeds_compute_contrasts(self, primate):
        trait = {k: v for k, v in PRIMATE_VALUES.items() if k != "Ateles"}
        trait["Gorilla"] = 4.5
        r = reconcile(primate, trait)
        cs = compute_contrasts(r.tree, r.trait, backend="python")
        assert len(cs) == 3

    def test_no_overlap_raises(self, primate):
        with pytest.raises(TraitMismatchError):
            reconcile(primate, {"Gorilla": 4.5})

    def test_warnings_logged(self, primate, caplog):
        trait = {k: v for k, v in PRIMATE_VALUES.items() if k != "Homo"}
        trait["Gorilla"] = 4.5
        with caplog.at_level(logging.WARNING, logger="kontra"):
            reconcile(primate, trait)
        assert "1 tip(s) pruned from tree (no trait value): Homo" in caplog.text
        assert "1 trait value(s) discarded (label not in tree): Gorilla" in caplog.text

    def test_long_lists_truncated(self, primate, caplog):
        trait = dict(PRIMATE_VALUES)
        trait.update({f"x{i}": float(i) for i in range(8)})
        with caplog.at_level(logging.WARNING, logger="kontra"):
            reconcile(primate, trait)
        assert "(+3 more)" in caplog.text

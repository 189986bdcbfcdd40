"""
tests/test_contrasts.py
=======================
End-to-end tests for compute_contrasts / compute_contrasts_many.

Reference values for the primate example are recomputed here from the
contrast recurrences so that every assertion can be traced by hand:

  node 5  (Homo, Pongo)      c = 4.09434 - 3.61092          s = 0.21 + 0.21
  node 6  (Macaca, HP)       c = 2.37024 - x5               s = 0.49 + v5
  node 7  (Ateles, HPM)      c = 2.02815 - x6               s = 0.62 + v6
  node 8  (Galago, HPMA)     c = -1.46968 - x7              s = 1.00 + v7

The first child is always the smaller node ID.

All tests pin backend='python' unless they are about backend selection; the
compiled pass is compared against it in test_kernel_agreement.py.
"""

import logging
import math
import os
import sys
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, os.path.dirname(__file__))

from kontra import (
    Contrast,
    ContrastSet,
    DegenerateBranchLengthError,
    TraitMismatchError,
    TraitValueError,
    TraitVector,
    Tree,
    compute_contrasts,
    compute_contrasts_many,
)
from examples_trees import (
    BALANCED_EDGES,
    BALANCED_LABELS,
    PRIMATE_EDGES,
    PRIMATE_LABELS,
    PRIMATE_VALUES,
    random_trait,
    random_tree_edges,
    relabel,
)


# ======================================================================== #
# Fixtures                                                                  #
# ======================================================================== #


@pytest.fixture(scope="module")
def primate():
    return Tree(PRIMATE_EDGES, PRIMATE_LABELS)


@pytest.fixture(scope="module")
def primate_result(primate):
    return compute_contrasts(
        primate, PRIMATE_VALUES, standardize=True, ancestral=True, backend="python"
    )


@pytest.fixture(scope="module")
def expected():
    """Primate reference values from the recurrences, node by node."""
    x = PRIMATE_VALUES
    out = {}

    c5, s5 = x["Homo"] - x["Pongo"], 0.21 + 0.21
    x5 = (x["Homo"] * 0.21 + x["Pongo"] * 0.21) / s5
    v5 = 0.28 + 0.21 * 0.21 / s5
    out[5] = (c5, s5, x5, v5)

    c6, s6 = x["Macaca"] - x5, 0.49 + v5
    x6 = (x["Macaca"] * v5 + x5 * 0.49) / s6
    v6 = 0.13 + 0.49 * v5 / s6
    out[6] = (c6, s6, x6, v6)

    c7, s7 = x["Ateles"] - x6, 0.62 + v6
    x7 = (x["Ateles"] * v6 + x6 * 0.62) / s7
    v7 = 0.38 + 0.62 * v6 / s7
    out[7] = (c7, s7, x7, v7)

    c8, s8 = x["Galago"] - x7, 1.00 + v7
    x8 = (x["Galago"] * v7 + x7 * 1.00) / s8
    out[8] = (c8, s8, x8, None)
    return out


# ======================================================================== #
# 1. Primate reference values                                               #
# ======================================================================== #


class TestPrimateExample:
    def test_one_contrast_per_internal_node(self, primate_result):
        assert len(primate_result) == 4
        assert primate_result.nodes.tolist() == [5, 6, 7, 8]

    def test_homo_pongo(self, primate_result):
        c = primate_result[5]
        assert c.contrast == pytest.approx(0.48342, abs=1e-9)
        assert c.variance == pytest.approx(0.42)
        assert primate_result.ancestral_state(5) == pytest.approx(3.85263)

    def test_macaca_node(self, primate_result):
        c = primate_result[6]
        assert c.contrast == pytest.approx(-1.48239, abs=1e-9)
        assert c.variance == pytest.approx(0.875)
        assert primate_result.ancestral_state(6) == pytest.approx(3.20038, rel=1e-5)

    def test_ateles_node(self, primate_result):
        c = primate_result[7]
        assert c.contrast == pytest.approx(-1.1722284, rel=1e-5)
        assert c.variance == pytest.approx(0.9656)
        assert primate_result.ancestral_state(7) == pytest.approx(2.78082, rel=1e-5)

    def test_root_node(self, primate_result):
        c = primate_result[8]
        assert c.contrast == pytest.approx(-4.25050, rel=1e-5)
        assert c.variance == pytest.approx(1.6019056, rel=1e-6)

    @pytest.mark.parametrize("node", [5, 6, 7, 8])
    def test_matches_recurrence(self, primate_result, expected, node):
        c, s, x, _ = expected[node]
        assert primate_result[node].contrast == pytest.approx(c, rel=1e-12)
        assert primate_result[node].variance == pytest.approx(s, rel=1e-12)
        assert primate_result.ancestral_state(node) == pytest.approx(x, rel=1e-12)

    def test_adjusted_lengths(self, primate_result, expected):
        adj = primate_result.adjusted_lengths
        assert adj[5] == pytest.approx(0.385)
        assert adj[6] == pytest.approx(0.3456)
        assert adj[7] == pytest.approx(expected[7][3])
        assert adj[8] == -1.0

    def test_tip_lengths_not_adjusted(self, primate_result):
        np.testing.assert_allclose(
            primate_result.adjusted_lengths[:5], [0.21, 0.21, 0.49, 0.62, 1.00]
        )

    def test_standardized(self, primate_result):
        for c in primate_result:
            assert c.standardized == pytest.approx(c.contrast / math.sqrt(c.variance))

    def test_ancestral_variances(self, primate_result):
        assert primate_result.ancestral_variances[0] == pytest.approx(0.105)


# ======================================================================== #
# 2. Determinism and order invariance                                       #
# ======================================================================== #


class TestDeterminism:
    def test_idempotent(self, primate):
        a = compute_contrasts(primate, PRIMATE_VALUES, backend="python")
        b = compute_contrasts(primate, PRIMATE_VALUES, backend="python")
        np.testing.assert_array_equal(a.contrasts, b.contrasts)
        np.testing.assert_array_equal(a.variances, b.variances)
        np.testing.assert_array_equal(a.adjusted_lengths, b.adjusted_lengths)

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_edge_order_irrelevant(self, seed):
        rng = np.random.default_rng(seed)
        edges, labels = random_tree_edges(30, rng)
        trait = random_trait(labels, rng)
        shuffled = [edges[i] for i in rng.permutation(len(edges))]

        a = compute_contrasts(Tree(edges, labels), trait, backend="python")
        b = compute_contrasts(Tree(shuffled, labels), trait, backend="python")
        np.testing.assert_array_equal(a.nodes, b.nodes)
        np.testing.assert_array_equal(a.contrasts, b.contrasts)
        np.testing.assert_array_equal(a.variances, b.variances)

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_node_ids_irrelevant_up_to_sign(self, seed):
        rng = np.random.default_rng(seed)
        edges, labels = random_tree_edges(25, rng)
        trait = random_trait(labels, rng)
        perm = rng.permutation(2 * 25 - 1)
        new_edges, new_labels = relabel(edges, labels, perm)

        a = compute_contrasts(Tree(edges, labels), trait, backend="python")
        b = compute_contrasts(Tree(new_edges, new_labels), trait, backend="python")
        for c in a:
            other = b[int(perm[c.node])]
            assert other.variance == pytest.approx(c.variance, rel=1e-12)
            assert abs(other.contrast) == pytest.approx(abs(c.contrast), rel=1e-12)

    def test_tree_not_mutated(self, primate):
        before = {
            name: getattr(primate, name).copy()
            for name in ("parent", "distance", "left_child", "right_child")
        }
        compute_contrasts(primate, PRIMATE_VALUES, ancestral=True, backend="python")
        for name, arr in before.items():
            np.testing.assert_array_equal(getattr(primate, name), arr)

    def test_threads_share_tree(self, primate):
        rng = np.random.default_rng(7)
        traits = [random_trait(PRIMATE_LABELS, rng) for _ in range(16)]
        serial = [
            compute_contrasts(primate, t, backend="python").contrasts for t in traits
        ]
        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel = list(
                pool.map(
                    lambda t: compute_contrasts(primate, t, backend="python").contrasts,
                    traits,
                )
            )
        for s, p in zip(serial, parallel):
            np.testing.assert_array_equal(s, p)


# ======================================================================== #
# 3. Shape of the output                                                    #
# ======================================================================== #


class TestContrastSet:
    def test_n_minus_one(self):
        rng = np.random.default_rng(3)
        edges, labels = random_tree_edges(50, rng)
        cs = compute_contrasts(Tree(edges, labels), random_trait(labels, rng))
        assert len(cs) == 49

    def test_single_tip_has_no_contrasts(self):
        cs = compute_contrasts(Tree([], {0: "solo"}), {"solo": 1.0})
        assert len(cs) == 0

    def test_getitem_returns_contrast(self, primate_result):
        assert isinstance(primate_result[5], Contrast)
        assert primate_result[5].node == 5

    def test_getitem_tip_raises(self, primate_result):
        with pytest.raises(KeyError):
            primate_result[0]

    def test_contains(self, primate_result):
        assert 7 in primate_result
        assert 2 not in primate_result

    def test_iter_in_node_order(self, primate_result):
        assert [c.node for c in primate_result] == [5, 6, 7, 8]

    def test_to_dict(self, primate_result):
        d = primate_result.to_dict()
        assert sorted(d) == [5, 6, 7, 8]
        assert d[6] == primate_result[6]

    def test_arrays_read_only(self, primate_result):
        with pytest.raises(ValueError):
            primate_result.contrasts[0] = 0.0

    def test_optional_outputs_absent(self, primate):
        cs = compute_contrasts(primate, PRIMATE_VALUES, backend="python")
        assert cs.standardized is None
        assert cs.ancestral is None
        assert cs[5].standardized is None

    def test_standardize_on_demand(self, primate, primate_result):
        cs = compute_contrasts(primate, PRIMATE_VALUES, backend="python")
        np.testing.assert_allclose(cs.standardize(), primate_result.standardized)

    def test_ancestral_state_not_requested(self, primate):
        cs = compute_contrasts(primate, PRIMATE_VALUES, backend="python")
        with pytest.raises(ValueError, match="ancestral=True"):
            cs.ancestral_state(5)

    def test_repr(self, primate_result):
        assert repr(primate_result) == (
            "ContrastSet(n_contrasts=4, standardized=True, ancestral=True)"
        )

    def test_accepts_trait_vector(self, primate, primate_result):
        cs = compute_contrasts(primate, TraitVector(PRIMATE_VALUES), backend="python")
        np.testing.assert_array_equal(cs.contrasts, primate_result.contrasts)

    def test_returns_contrast_set(self, primate_result):
        assert isinstance(primate_result, ContrastSet)


# ======================================================================== #
# 4. Zero-length branches and polytomies                                    #
# ======================================================================== #


class TestZeroLengths:
    def test_one_zero_length_child(self):
        # (A:0, B:1):1, C:1
        edges = [(3, 0, 0.0), (3, 1, 1.0), (4, 3, 1.0), (4, 2, 1.0)]
        tree = Tree(edges, {0: "A", 1: "B", 2: "C"})
        cs = compute_contrasts(
            tree, {"A": 2.0, "B": 5.0, "C": 1.0}, ancestral=True, backend="python"
        )
        assert cs.ancestral_state(3) == 2.0
        assert cs[3].contrast == -3.0
        assert cs[3].variance == 1.0
        assert cs.adjusted_lengths[3] == 1.0

    def test_zero_length_cherry_raises(self):
        edges = [(3, 0, 0.0), (3, 1, 0.0), (4, 3, 1.0), (4, 2, 1.0)]
        tree = Tree(edges, {0: "A", 1: "B", 2: "C"})
        with pytest.raises(DegenerateBranchLengthError) as excinfo:
            compute_contrasts(tree, {"A": 1.0, "B": 2.0, "C": 3.0}, backend="python")
        assert excinfo.value.node == 3

    def test_resolved_polytomy(self):
        star = [(4, 0, 1.0), (4, 1, 2.0), (4, 2, 3.0), (4, 3, 4.0)]
        tree = Tree(star, {0: "A", 1: "B", 2: "C", 3: "D"}, resolve_polytomies=True)
        cs = compute_contrasts(
            tree, {"A": 1.0, "B": 2.0, "C": 3.0, "D": 4.0}, backend="python"
        )
        assert len(cs) == 3
        assert cs[5].variance == pytest.approx(3.0)
        # auxiliary node 5 sits at zero raw length above (A, B)
        assert cs.adjusted_lengths[5] == pytest.approx(2.0 / 3.0)


# ======================================================================== #
# 5. Trait validation                                                       #
# ======================================================================== #


class TestTraitValidation:
    def test_missing_tip(self, primate):
        trait = dict(PRIMATE_VALUES)
        del trait["Galago"]
        with pytest.raises(TraitMismatchError) as excinfo:
            compute_contrasts(primate, trait)
        assert excinfo.value.missing == ("Galago",)
        assert excinfo.value.extra == ()

    def test_extra_label(self, primate):
        trait = dict(PRIMATE_VALUES, Gorilla=4.5)
        with pytest.raises(TraitMismatchError) as excinfo:
            compute_contrasts(primate, trait)
        assert excinfo.value.extra == ("Gorilla",)

    def test_mismatch_reported_before_degenerate_branch(self):
        edges = [(3, 0, 0.0), (3, 1, 0.0), (4, 3, 1.0), (4, 2, 1.0)]
        tree = Tree(edges, {0: "A", 1: "B", 2: "C"})
        with pytest.raises(TraitMismatchError):
            compute_contrasts(tree, {"A": 1.0, "B": 2.0})

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "heavy", None])
    def test_non_finite_value(self, primate, bad):
        trait = dict(PRIMATE_VALUES, Homo=bad)
        with pytest.raises(TraitValueError):
            compute_contrasts(primate, trait)

    def test_not_a_mapping(self, primate):
        with pytest.raises(TypeError):
            compute_contrasts(primate, [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_unknown_backend(self, primate):
        with pytest.raises(ValueError, match="Unknown backend"):
            compute_contrasts(primate, PRIMATE_VALUES, backend="cuda")

    def test_unknown_backend_does_not_fall_back(self, primate, caplog):
        with caplog.at_level(logging.WARNING, logger="kontra"):
            with pytest.raises(ValueError):
                compute_contrasts(primate, PRIMATE_VALUES, backend="Numba")
        assert "not available" not in caplog.text


# ======================================================================== #
# 6. Several traits                                                         #
# ======================================================================== #


class TestComputeMany:
    def test_keys_in_input_order(self, primate):
        rng = np.random.default_rng(11)
        traits = {
            "mass": PRIMATE_VALUES,
            "brain": random_trait(PRIMATE_LABELS, rng),
            "tail": random_trait(PRIMATE_LABELS, rng),
        }
        out = compute_contrasts_many(primate, traits, backend="python")
        assert list(out) == ["mass", "brain", "tail"]

    def test_matches_single_calls(self, primate, primate_result):
        out = compute_contrasts_many(
            primate,
            {"mass": PRIMATE_VALUES},
            standardize=True,
            ancestral=True,
            backend="python",
        )
        np.testing.assert_array_equal(out["mass"].contrasts, primate_result.contrasts)
        np.testing.assert_array_equal(
            out["mass"].standardized, primate_result.standardized
        )

    def test_shared_variances(self):
        tree = Tree(BALANCED_EDGES, BALANCED_LABELS)
        out = compute_contrasts_many(
            tree,
            {
                "x": {"A": 1.0, "B": 2.0, "C": 3.0, "D": 4.0},
                "y": {"A": -1.0, "B": 0.5, "C": 0.0, "D": 9.0},
            },
            backend="python",
        )
        np.testing.assert_array_equal(out["x"].variances, out["y"].variances)
        np.testing.assert_array_equal(out["x"].nodes, out["y"].nodes)


# ======================================================================== #
# 7. Logging                                                                #
# ======================================================================== #


class TestLogging:
    def test_run_logged_at_info(self, primate, caplog):
        with caplog.at_level(logging.INFO, logger="kontra"):
            compute_contrasts(primate, PRIMATE_VALUES, backend="python")
        assert "compute_contrasts(raw, backend='python'): 4 contrasts" in caplog.text

    def test_standardized_mode_logged(self, primate, caplog):
        with caplog.at_level(logging.INFO, logger="kontra"):
            compute_contrasts(primate, PRIMATE_VALUES, standardize=True, backend="python")
        assert "compute_contrasts(standardized" in caplog.text

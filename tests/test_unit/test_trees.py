"""
Unit tests for tree parsing and rate-class assignment.
"""

import numpy as np
import pytest

from famrate.io.trees import FamilySizeRange, Tree


class TestNewickParsing:
    """Test Newick parsing."""

    def test_parse_simple_tree(self, small_tree):
        """Leaves, node count and branch lengths are read."""
        assert small_tree.n_leaves == 3
        assert small_tree.n_nodes == 5
        assert sorted(small_tree.leaf_names) == ["A", "B", "C"]
        assert small_tree.max_branch_length() == 2.0

    def test_postorder_ends_at_root(self, small_tree):
        """Post-order visits children before parents."""
        nodes = small_tree.postorder()
        assert nodes[-1] is small_tree.root
        seen = set()
        for node in nodes:
            for child in node.children:
                assert child.id in seen
            seen.add(node.id)

    def test_comments_are_ignored(self):
        """Bracketed comments are stripped before parsing."""
        tree = Tree.from_newick("((A:1,B:1)[internal]:1,C:2);")
        assert tree.n_leaves == 3

    def test_missing_semicolon(self):
        with pytest.raises(ValueError, match="semicolon"):
            Tree.from_newick("((A:1,B:1):1,C:2)")

    def test_negative_branch_length(self):
        with pytest.raises(ValueError, match="Negative branch length"):
            Tree.from_newick("((A:1,B:-1):1,C:2);")

    def test_duplicate_leaf_names(self):
        with pytest.raises(ValueError, match="unique"):
            Tree.from_newick("((A:1,A:1):1,C:2);")

    def test_from_file(self, tree_file):
        tree = Tree.from_file(tree_file)
        assert tree.n_leaves == 3


class TestRateClasses:
    """Test mapping of #k labels onto rate classes."""

    def test_unlabelled_tree_has_one_class(self, small_tree):
        assert small_tree.n_rate_classes == 1
        assert all(node.rate_class == 0 for node in small_tree.branch_nodes())

    def test_labels_define_classes(self, labeled_tree):
        """A #1 label on the (A,B) stem creates a second class."""
        assert labeled_tree.n_rate_classes == 2
        stem = [node for node in labeled_tree.branch_nodes() if node.label == "#1"]
        assert len(stem) == 1
        assert stem[0].rate_class == 1
        others = [node for node in labeled_tree.branch_nodes() if node.label is None]
        assert all(node.rate_class == 0 for node in others)

    def test_sparse_labels_are_compacted(self):
        """Labels 0 and 5 map onto classes 0 and 1."""
        tree = Tree.from_newick("((A:1,B:1)#5:1,C:2);")
        assert tree.n_rate_classes == 2
        assert max(node.rate_class for node in tree.branch_nodes()) == 1

    def test_set_rates(self, labeled_tree):
        """Each branch takes the rate of its class."""
        labeled_tree.set_rates([0.1, 0.3])
        for node in labeled_tree.branch_nodes():
            expected = 0.3 if node.label == "#1" else 0.1
            assert node.rate == expected
        np.testing.assert_allclose(labeled_tree.get_rates(), [0.1, 0.3])

    def test_set_rates_wrong_length(self, labeled_tree):
        with pytest.raises(ValueError, match="Expected 2 rates"):
            labeled_tree.set_rates([0.1])

    def test_assign_rate_classes_explicit(self, small_tree):
        """Explicit labels override the parsed ones."""
        n_branches = len(small_tree.branch_nodes())
        n = small_tree.assign_rate_classes([0] * (n_branches - 1) + [3])
        assert n == 2


class TestFamilySizeRange:
    """Test the default family size range."""

    def test_small_counts(self):
        """Small data use the minimum root bound of 30 and +50 headroom."""
        size_range = FamilySizeRange.from_max_count(6)
        assert size_range.min == 0
        assert size_range.max == 56
        assert size_range.root_min == 1
        assert size_range.root_max == 30
        assert size_range.n_root_sizes == 30

    def test_large_counts(self):
        """Large data scale the bounds by 25% (root) and 20% (nodes)."""
        size_range = FamilySizeRange.from_max_count(400)
        assert size_range.root_max == 500
        assert size_range.max == 480

"""
Unit tests for the session context.
"""

import logging

import pytest

from famrate.config import SearchConfig
from famrate.io.families import FamilyTable
from famrate.io.trees import FamilySizeRange, Tree
from famrate.session import LambdaSession


class TestSessionSetup:
    """Test validation of tree and families."""

    def test_family_size_from_table(self, session):
        assert session.family_size == FamilySizeRange.from_max_count(6)
        assert session.tree.family_size is session.family_size

    def test_single_leaf(self, family_table):
        with pytest.raises(ValueError, match="at least two leaves"):
            LambdaSession(Tree.from_newick("A:1;"), family_table)

    def test_no_overlap(self, family_table):
        with pytest.raises(ValueError, match="No tree leaf"):
            LambdaSession(Tree.from_newick("(X:1,Y:1);"), family_table)

    def test_zero_branch_lengths(self, family_table):
        with pytest.raises(ValueError, match="positive branch lengths"):
            LambdaSession(Tree.from_newick("((A,B),C);"), family_table)

    def test_missing_species_warns(self, family_table, caplog):
        tree = Tree.from_newick("((A:1,B:1):1,(C:1,D:1):1);")
        with caplog.at_level(logging.WARNING, logger="famrate.session"):
            session = LambdaSession(tree, family_table)
        assert "D" in caplog.text
        assert session.leaf_counts(0)["D"] is None


class TestSessionState:
    """Test mutable session state."""

    def test_set_rates_clears_cache(self, session):
        session.set_rates([0.1])
        session.evaluator.evaluate(session.tree, session.leaf_counts(0))
        assert len(session.cache) > 0
        session.set_rates([0.1])
        assert len(session.cache) > 0
        session.set_rates([0.2])
        assert len(session.cache) == 0

    def test_family_size_override(self, session):
        original = session.family_size
        narrow = FamilySizeRange.from_max_count(2)
        with session.family_size_override(narrow):
            assert session.tree.family_size is narrow
            assert session.family_size is narrow
        assert session.tree.family_size is original
        assert session.family_size is original

    def test_override_restored_on_error(self, session):
        original = session.family_size
        with pytest.raises(RuntimeError):
            with session.family_size_override(FamilySizeRange.from_max_count(2)):
                raise RuntimeError("boom")
        assert session.tree.family_size is original

    def test_require_prior_fits_once(self, session):
        prior = session.require_prior()
        assert session.require_prior() is prior

    def test_seeded_rng(self, small_tree, family_table):
        a = LambdaSession(small_tree, family_table, SearchConfig(seed=9)).rng.uniform()
        b = LambdaSession(small_tree, family_table, SearchConfig(seed=9)).rng.uniform()
        assert a == b


class TestSearchConfig:
    """Test configuration validation."""

    def test_defaults(self):
        config = SearchConfig()
        assert config.tol_rates == 1e-6
        assert config.tol_mixture == 1e-5
        assert config.max_runs == 10
        assert config.family_size_max == 1000

    @pytest.mark.parametrize("kwargs", [
        {"tol_rates": 0},
        {"max_runs": 0},
        {"max_em_iterations": 0},
        {"family_size_max": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SearchConfig(**kwargs)

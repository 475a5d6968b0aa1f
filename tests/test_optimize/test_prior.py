"""
Tests for the empirical root-size prior.
"""

import logging

import numpy as np
import pytest
from scipy.stats import poisson

from famrate.io.families import FamilyTable
from famrate.io.trees import Tree
from famrate.optimize.objectives import PoissonFitObjective
from famrate.optimize.prior import PriorEstimator, collect_leaf_sizes, poisson_prior


class TestLeafSizes:
    """Test collection of shifted leaf sizes."""

    def test_zeros_dropped_and_shifted(self):
        """Counts {0, 0, 1, 2} give sizes [0, 1]."""
        table = FamilyTable.from_counts({"f": {"A": 0, "B": 0, "C": 1, "D": 2}})
        np.testing.assert_array_equal(collect_leaf_sizes(table), [0, 1])

    def test_missing_ignored(self):
        table = FamilyTable.from_counts({"f": {"A": None, "B": 3}})
        np.testing.assert_array_equal(collect_leaf_sizes(table), [2])

    def test_restricted_to_tree(self):
        """Species absent from the tree are not used."""
        table = FamilyTable.from_counts({"f": {"A": 2, "B": 3, "Z": 9}})
        tree = Tree.from_newick("(A:1,B:1);")
        np.testing.assert_array_equal(collect_leaf_sizes(table, tree), [1, 2])


class TestPoissonPrior:
    """Test the shifted Poisson prior array."""

    def test_shifted_indexing(self):
        """Entry i holds PoissonPMF(root_min - 1 + i)."""
        prior = poisson_prior(0.5, root_min=1, family_size_max=10)
        assert prior.shape == (10,)
        assert prior[0] == pytest.approx(poisson.pmf(0, 0.5))
        assert prior[3] == pytest.approx(poisson.pmf(3, 0.5))

    def test_negative_rate_gives_zeros(self):
        prior = poisson_prior(-1.0, family_size_max=5)
        assert not np.any(np.isnan(prior))
        assert np.all(prior == 0.0)

    def test_fit_objective_negative_rate(self):
        """A negative rate scores log(0) instead of NaN."""
        objective = PoissonFitObjective([0, 1, 2])
        assert objective.evaluate(np.array([-0.5])) == -np.inf


class TestPriorEstimator:
    """Test fitting the Poisson rate."""

    def test_fit_rate_is_sample_mean(self):
        """The ML Poisson rate of sizes [0, 1] is 0.5."""
        estimator = PriorEstimator(rng=np.random.default_rng(3))
        rate = estimator.fit_rate([0, 1])
        assert rate == pytest.approx(0.5, abs=1e-3)
        assert estimator.iterations > 0

    def test_fit_returns_prior(self, family_table, small_tree):
        estimator = PriorEstimator(family_size_max=100, rng=np.random.default_rng(3))
        prior = estimator.fit(family_table, small_tree)
        sizes = collect_leaf_sizes(family_table, small_tree)
        assert estimator.rate == pytest.approx(sizes.mean(), abs=1e-3)
        assert prior.shape == (100,)
        assert prior[0] == pytest.approx(poisson.pmf(0, estimator.rate))

    def test_fit_logs_result(self, family_table, caplog):
        estimator = PriorEstimator(rng=np.random.default_rng(3))
        with caplog.at_level(logging.INFO, logger="famrate.optimize.prior"):
            estimator.fit(family_table)
        assert "Empirical Prior Estimation Result" in caplog.text
        assert "Poisson lambda:" in caplog.text

    def test_session_fit_prior(self, session):
        prior = session.fit_prior()
        assert session.prior is prior
        assert session.prior_rate == pytest.approx(
            collect_leaf_sizes(session.families, session.tree).mean(), abs=1e-3
        )

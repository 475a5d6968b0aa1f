"""
Tests for the single lambda search.
"""

import logging
import warnings

import numpy as np
import pytest

from famrate.config import SearchConfig
from famrate.io.families import FamilyTable
from famrate.optimize.scoring import PosteriorScorer
from famrate.optimize.search import SingleRateSearch, search_rates
from famrate.session import LambdaSession


@pytest.fixture
def three_families(small_tree):
    """Three families over two of the three species."""
    table = FamilyTable.from_counts({
        "f1": {"A": 1, "B": 2},
        "f2": {"A": 3, "B": 2},
        "f3": {"A": 2, "B": 2},
    })
    session = LambdaSession(small_tree, table, SearchConfig(seed=11))
    session.fit_prior()
    return session


class TestSingleRateSearch:
    """End-to-end single rate searches."""

    def test_result_respects_bound_or_warns(self, three_families):
        """The fitted rate is below 1 / max branch length unless flagged."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            report = SingleRateSearch(three_families).search()
        run = report.best
        rate = run.params.rates[0]
        assert rate > 0
        assert rate * 2.0 < 1.0 or run.boundary_warning
        assert report.converged is None

    def test_optimum_beats_neighbours(self, fitted_session):
        """The returned rate scores at least as well as nearby rates."""
        report = SingleRateSearch(fitted_session).search()
        best = report.best
        scorer = PosteriorScorer(fitted_session, fitted_session.prior)
        rate = best.params.rates[0]
        for factor in (0.9, 1.1):
            assert scorer.score([rate * factor]) <= best.score + 1e-9

    def test_seeded_runs_are_reproducible(self, small_tree, family_table):
        results = []
        for _ in range(2):
            session = LambdaSession(small_tree, family_table, SearchConfig(seed=5))
            session.fit_prior()
            results.append(SingleRateSearch(session).search().best.score)
        assert results[0] == results[1]

    def test_convergence_check(self, fitted_session, caplog):
        with caplog.at_level(logging.INFO, logger="famrate.optimize.convergence"):
            report = SingleRateSearch(fitted_session).search(check_convergence=True)
        assert report.n_runs >= 2
        assert report.converged is not None
        assert "runs." in caplog.text

    def test_result_logged(self, fitted_session, caplog):
        with caplog.at_level(logging.INFO, logger="famrate.optimize"):
            SingleRateSearch(fitted_session).run_once()
        assert "Lambda Search Result:" in caplog.text
        assert "Lambda : " in caplog.text

    def test_two_rate_classes(self, labeled_tree, family_table):
        session = LambdaSession(labeled_tree, family_table, SearchConfig(seed=2))
        session.fit_prior()
        run = SingleRateSearch(session).search().best
        assert run.params.rates.shape == (2,)
        assert np.all(run.params.rates >= 0)


class TestSearchRates:
    """Test dispatch between the search modes."""

    def test_fix_cluster0_without_mixture(self, fitted_session):
        with pytest.raises(ValueError, match="fix_cluster0"):
            search_rates(fitted_session, k=0, fix_cluster0=True)

    def test_plain_search(self, fitted_session):
        report = search_rates(fitted_session)
        assert report.n_runs == 1
        assert report.best.membership is None

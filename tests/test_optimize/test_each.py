"""
Tests for the per-family lambda search.
"""

import logging

import numpy as np
import pytest

from famrate.optimize.each import EACH_BOUNDARY, PerFamilySearch


class TestPerFamilySearch:
    """End-to-end per-family searches."""

    def test_one_fit_per_family(self, session):
        fits = PerFamilySearch(session).search()
        assert [fit.family_id for fit in fits] == ["fam1", "fam2", "fam3", "fam4"]
        for fit in fits:
            assert fit.rates.shape == (1,)
            assert np.isfinite(fit.score)

    def test_duplicate_copies_result(self, session):
        """fam3 repeats fam1's result without running the optimizer."""
        search = PerFamilySearch(session)
        fits = search.search()
        assert fits[2].rates is fits[0].rates
        assert fits[2].score == fits[0].score
        assert fits[2].iterations == 0
        assert fits[2].ref == 0
        assert search.optimizer.n_calls == 3

    def test_family_size_restored(self, session):
        """Per-family ranges do not leak into the session."""
        original = session.family_size
        PerFamilySearch(session).search()
        assert session.family_size is original
        assert session.tree.family_size is original

    def test_family_size_restored_on_error(self, session, monkeypatch):
        original = session.family_size
        search = PerFamilySearch(session)

        def explode(objective, x0):
            raise RuntimeError("boom")

        monkeypatch.setattr(search.optimizer, "minimize", explode)
        with pytest.raises(RuntimeError):
            search.search()
        assert session.family_size is original
        assert session.tree.family_size is original

    def test_fitted_rates_stored_on_families(self, session):
        fits = PerFamilySearch(session).search()
        for family, fit in zip(session.families, fits):
            np.testing.assert_array_equal(family.fitted_rates, fit.rates)
            assert family.boundary_warning == fit.boundary_warning

    def test_boundary_flag(self, session):
        """Flags follow rate * max branch length against 0.5."""
        search = PerFamilySearch(session)
        fits = search.search()
        for fit in fits:
            product = float(fit.rates[0]) * session.max_branch_length
            expected = product >= EACH_BOUNDARY or abs(product - EACH_BOUNDARY) < 1e-3
            assert fit.boundary_warning == expected

    def test_near_boundary(self, session):
        search = PerFamilySearch(session)
        assert search.near_boundary([0.2499])
        assert search.near_boundary([0.3])
        assert not search.near_boundary([0.1])

    def test_no_prior_needed(self, session):
        PerFamilySearch(session).search()
        assert session.prior is None

    def test_progress_logged(self, session, caplog):
        with caplog.at_level(logging.INFO, logger="famrate.optimize.each"):
            PerFamilySearch(session).search()
        assert "fam1: Lambda Search Result of 1/4" in caplog.text
        assert "copied from fam1" in caplog.text

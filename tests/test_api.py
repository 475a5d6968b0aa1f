"""
Tests for the high-level API.
"""

import json
import warnings

import numpy as np
import pytest

from famrate import (
    EachResult,
    LambdaResult,
    OutputFileError,
    SearchConfig,
    scan_lambda,
    score_lambda,
    search_each,
    search_lambda,
)


@pytest.fixture(autouse=True)
def ignore_boundary_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        yield


class TestSearchLambda:
    """Test search_lambda()."""

    def test_from_files(self, tree_file, families_file):
        result = search_lambda(tree_file, families_file, config=SearchConfig(seed=3))
        assert isinstance(result, LambdaResult)
        assert result.k == 0
        assert result.rates.shape == (1,)
        assert result.weights is None
        assert result.prior_rate is not None
        assert np.isfinite(result.score)

    def test_from_objects(self, small_tree, family_table):
        result = search_lambda(small_tree, family_table, config=SearchConfig(seed=3))
        assert result.n_rate_classes == 1
        assert result.max_branch_length == 2.0

    def test_mixture(self, small_tree, family_table):
        config = SearchConfig(seed=3, maxiter=60, max_em_iterations=3)
        result = search_lambda(small_tree, family_table, k=2, fix_cluster0=True, config=config)
        assert result.rates.shape == (2,)
        assert result.rates[0] == 0.0
        assert result.cluster_rates.shape == (2, 1)
        assert result.weights.sum() == pytest.approx(1.0)
        assert result.membership.shape == (4, 2)
        assert "Cluster 0 (fixed)" in result.summary()

    def test_convergence_check(self, small_tree, family_table):
        result = search_lambda(
            small_tree, family_table, check_convergence=True, config=SearchConfig(seed=3, max_runs=3)
        )
        assert result.converged is not None
        assert 1 <= len(result.run_scores) <= 3
        assert result.score == max(result.run_scores)

    def test_summary_and_json(self, small_tree, family_table, tmp_path):
        result = search_lambda(small_tree, family_table, config=SearchConfig(seed=3))
        summary = result.summary()
        assert "LAMBDA SEARCH" in summary
        assert "lambda1 =" in summary

        path = tmp_path / "result.json"
        result.to_json(str(path))
        data = json.loads(path.read_text())
        assert data["k"] == 0
        assert data["rates"] == pytest.approx(list(result.rates))
        assert data["membership"] is None

    def test_to_json_unwritable_path(self, small_tree, family_table, tmp_path):
        result = search_lambda(small_tree, family_table, config=SearchConfig(seed=3))
        with pytest.raises(OutputFileError):
            result.to_json(str(tmp_path / "missing" / "result.json"))

    def test_repr(self, small_tree, family_table):
        result = search_lambda(small_tree, family_table, config=SearchConfig(seed=3))
        assert repr(result).startswith("LambdaResult(k=0")


class TestOtherModes:
    """Test search_each(), scan_lambda() and score_lambda()."""

    def test_search_each(self, tree_file, families_file):
        result = search_each(tree_file, families_file)
        assert isinstance(result, EachResult)
        assert len(result.fits) == 4
        data = result.to_dict()
        assert [family["id"] for family in data["families"]] == ["fam1", "fam2", "fam3", "fam4"]
        assert data["families"][2]["ref"] == 0
        assert "PER-FAMILY LAMBDA SEARCH" in result.summary()

    def test_scan_with_strings(self, small_tree, family_table):
        result = scan_lambda(small_tree, family_table, ["0.05:0.05:0.2"], config=SearchConfig(seed=3))
        assert result.n_points == 4

    def test_score_matches_scan(self, small_tree, family_table):
        config = SearchConfig(seed=3)
        grid = scan_lambda(small_tree, family_table, ["0.1:0.1:0.1"], config=config)
        score = score_lambda(small_tree, family_table, [0.1], config=config)
        assert score == pytest.approx(grid.scores[0])

    def test_score_negative_rate(self, small_tree, family_table):
        assert score_lambda(small_tree, family_table, [-0.1]) == -np.inf

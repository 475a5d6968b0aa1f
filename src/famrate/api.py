"""
High-level API for famrate lambda estimation.

This module provides a simplified interface over the search modes,
with result objects that summarize and export their contents. Trees and
family tables may be given as objects or as file paths.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .config import SearchConfig
from .io.families import FamilyTable
from .io.report import BOUNDARY_MARKER, open_output
from .io.trees import Tree
from .optimize.each import FamilyFit, PerFamilySearch
from .optimize.grid import GridResult, GridScanner, RangeSpec
from .optimize.scoring import PosteriorScorer, log_score_line
from .optimize.search import search_rates
from .session import LambdaSession

logger = logging.getLogger(__name__)

TreeLike = Union[Tree, str, Path]
FamiliesLike = Union[FamilyTable, str, Path]


@dataclass
class LambdaResult:
    """
    Result of a lambda search.

    Attributes
    ----------
    rates : np.ndarray
        Fitted rate per rate class (for a mixture: all clusters, cluster-major)
    score : float
        Log-posterior score of the best run
    n_rate_classes : int
        Number of rate classes (R)
    k : int
        Number of mixture clusters (0 = no mixture)
    weights : np.ndarray, optional
        Mixture weights of all K clusters (sum to 1)
    membership : np.ndarray, optional
        Family-by-cluster responsibilities
    family_ids : list[str]
        Family identifiers, in membership row order
    run_scores : list[float]
        Best score of every run
    converged : bool, optional
        Convergence verdict (None if not checked)
    boundary_warning : bool
        Whether a fitted rate breaks rate * max branch length < 1
    max_branch_length : float
        Longest branch of the tree
    prior_rate : float, optional
        Fitted Poisson rate of the root-size prior

    Examples
    --------
    >>> from famrate import search_lambda
    >>> result = search_lambda("tree.nwk", "families.tsv")
    >>> print(result.summary())
    >>> result.to_json("lambda.json")
    """

    rates: np.ndarray
    score: float
    n_rate_classes: int
    k: int = 0
    fix_cluster0: bool = False
    weights: Optional[np.ndarray] = None
    membership: Optional[np.ndarray] = None
    family_ids: List[str] = field(default_factory=list)
    run_scores: List[float] = field(default_factory=list)
    converged: Optional[bool] = None
    boundary_warning: bool = False
    max_branch_length: float = 0.0
    prior_rate: Optional[float] = None

    @property
    def cluster_rates(self) -> Optional[np.ndarray]:
        """Rates reshaped to (K, R) for a mixture, None otherwise."""
        if self.k == 0:
            return None
        return np.asarray(self.rates).reshape(self.k, self.n_rate_classes)

    def summary(self) -> str:
        """
        Human-readable summary of the search.

        Returns
        -------
        str
            Formatted multi-line summary
        """
        lines = []
        lines.append("=" * 70)
        lines.append("LAMBDA SEARCH" if self.k == 0 else f"LAMBDA MIXTURE SEARCH (k = {self.k})")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Score (log posterior): {self.score:.6f}")
        lines.append(f"Rate classes:          {self.n_rate_classes}")
        if self.prior_rate is not None:
            lines.append(f"Prior Poisson lambda:  {self.prior_rate:.6f}")
        lines.append("")
        lines.append("LAMBDA:")
        if self.k == 0:
            for i, rate in enumerate(self.rates):
                lines.append(f"  lambda{i + 1} = {rate:.8f}")
        else:
            for cluster, (rates, weight) in enumerate(zip(self.cluster_rates, self.weights)):
                fixed = " (fixed)" if self.fix_cluster0 and cluster == 0 else ""
                rate_str = ", ".join(f"{rate:.8f}" for rate in rates)
                lines.append(f"  Cluster {cluster}{fixed}: lambda = {rate_str}, p = {weight:.4f}")

        if self.boundary_warning:
            lines.append("")
            lines.append(
                f"WARNING: lambda * max branch length ({self.max_branch_length:g}) >= 1; "
                "estimates may be unreliable"
            )

        if self.converged is not None:
            lines.append("")
            verdict = "converged" if self.converged else "failed to converge"
            lines.append(f"Score {verdict} in {len(self.run_scores)} runs")

        lines.append("")
        lines.append("=" * 70)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Results as a JSON-serializable dictionary."""
        return {
            'rates': [float(r) for r in self.rates],
            'score': float(self.score),
            'n_rate_classes': int(self.n_rate_classes),
            'k': int(self.k),
            'fix_cluster0': bool(self.fix_cluster0),
            'weights': None if self.weights is None else [float(w) for w in self.weights],
            'membership': None if self.membership is None else {
                family_id: [float(v) for v in row]
                for family_id, row in zip(self.family_ids, self.membership)
            },
            'run_scores': [float(s) for s in self.run_scores],
            'converged': self.converged,
            'boundary_warning': bool(self.boundary_warning),
            'prior_rate': None if self.prior_rate is None else float(self.prior_rate),
        }

    def to_json(self, filepath: Optional[str] = None, indent: int = 2) -> str:
        """
        Export results as JSON, optionally writing them to ``filepath``.
        """
        json_str = json.dumps(self.to_dict(), indent=indent)
        if filepath:
            with open_output(filepath) as f:
                f.write(json_str)
        return json_str

    def __str__(self) -> str:
        return self.summary()

    def __repr__(self) -> str:
        rates = ", ".join(f"{r:.4g}" for r in self.rates)
        return f"LambdaResult(k={self.k}, rates=[{rates}], score={self.score:.2f})"


@dataclass
class EachResult:
    """
    Result of a per-family lambda search.

    Attributes
    ----------
    fits : list[FamilyFit]
        One fit per family, in table order
    max_branch_length : float
        Longest branch of the tree
    """

    fits: List[FamilyFit]
    max_branch_length: float = 0.0

    @property
    def n_boundary(self) -> int:
        return sum(1 for fit in self.fits if fit.boundary_warning)

    def summary(self) -> str:
        lines = ["=" * 70, "PER-FAMILY LAMBDA SEARCH", "=" * 70, ""]
        for fit in self.fits:
            marker = BOUNDARY_MARKER if fit.boundary_warning else ""
            rates = ",".join(f"{r:g}" for r in fit.rates)
            lines.append(f"{marker}{fit.family_id}\tlambda = {rates}\tlnL = {fit.score:.6f}")
        lines.append("")
        lines.append(f"{self.n_boundary} of {len(self.fits)} families near the lambda boundary")
        lines.append("=" * 70)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'families': [
                {
                    'id': fit.family_id,
                    'rates': [float(r) for r in fit.rates],
                    'score': float(fit.score),
                    'boundary_warning': bool(fit.boundary_warning),
                    'ref': fit.ref,
                }
                for fit in self.fits
            ],
        }

    def to_json(self, filepath: Optional[str] = None, indent: int = 2) -> str:
        json_str = json.dumps(self.to_dict(), indent=indent)
        if filepath:
            with open_output(filepath) as f:
                f.write(json_str)
        return json_str


def load_tree(tree: TreeLike) -> Tree:
    """Tree object, or parse it from a Newick file path."""
    if isinstance(tree, Tree):
        return tree
    return Tree.from_file(tree)


def load_families(families: FamiliesLike) -> FamilyTable:
    """Family table object, or parse it from a file path."""
    if isinstance(families, FamilyTable):
        return families
    return FamilyTable.from_file(families)


def make_session(tree: TreeLike, families: FamiliesLike, config: Optional[SearchConfig] = None) -> LambdaSession:
    """Build a session and fit its root-size prior."""
    session = LambdaSession(load_tree(tree), load_families(families), config)
    session.fit_prior()
    return session


def search_lambda(
    tree: TreeLike,
    families: FamiliesLike,
    k: int = 0,
    fix_cluster0: bool = False,
    check_convergence: bool = False,
    config: Optional[SearchConfig] = None,
    session: Optional[LambdaSession] = None,
) -> LambdaResult:
    """
    Search for the lambda values maximizing the posterior score.

    Parameters
    ----------
    tree : Tree, str or Path
        Tree (``#k`` branch labels define rate classes)
    families : FamilyTable, str or Path
        Gene family counts
    k : int, default=0
        Number of mixture clusters (0 for a plain search)
    fix_cluster0 : bool, default=False
        Pin cluster 0's rates to 0 (mixture only)
    check_convergence : bool, default=False
        Restart until two runs agree (up to ``config.max_runs``)
    config : SearchConfig, optional
        Search settings
    session : LambdaSession, optional
        Existing session to reuse (tree/families/config are then ignored)

    Returns
    -------
    LambdaResult
        Best rates, score, and mixture details

    Raises
    ------
    ZeroPosteriorError
        If a family's posterior is zero at some evaluated rate vector
    """
    if session is None:
        session = make_session(tree, families, config)
    report = search_rates(session, k=k, fix_cluster0=fix_cluster0, check_convergence=check_convergence)
    best = report.best

    if k > 0:
        rates = np.concatenate([best.params.cluster_rates(c) for c in range(k)])
        weights = best.params.full_weights()
    else:
        rates = best.params.rates.copy()
        weights = None

    return LambdaResult(
        rates=rates,
        score=best.score,
        n_rate_classes=session.n_rate_classes,
        k=k,
        fix_cluster0=fix_cluster0,
        weights=weights,
        membership=best.membership,
        family_ids=[family.id for family in session.families],
        run_scores=report.scores,
        converged=report.converged,
        boundary_warning=best.boundary_warning,
        max_branch_length=session.max_branch_length,
        prior_rate=session.prior_rate,
    )


def search_each(
    tree: TreeLike,
    families: FamiliesLike,
    config: Optional[SearchConfig] = None,
    session: Optional[LambdaSession] = None,
) -> EachResult:
    """
    Fit independent lambda values to every family.

    Returns
    -------
    EachResult
        Per-family rates with boundary flags
    """
    if session is None:
        session = LambdaSession(load_tree(tree), load_families(families), config)
    fits = PerFamilySearch(session).search()
    return EachResult(fits=fits, max_branch_length=session.max_branch_length)


def scan_lambda(
    tree: TreeLike,
    families: FamiliesLike,
    ranges: Sequence[Union[RangeSpec, str]],
    config: Optional[SearchConfig] = None,
    session: Optional[LambdaSession] = None,
) -> GridResult:
    """
    Posterior score over a grid of lambda values.

    Parameters
    ----------
    ranges : sequence of RangeSpec or "start:step:end" strings
        One range per rate class

    Returns
    -------
    GridResult
        Grid points and scores
    """
    if session is None:
        session = make_session(tree, families, config)
    specs = [spec if isinstance(spec, RangeSpec) else RangeSpec.parse(spec) for spec in ranges]
    return GridScanner(session).scan(specs)


def score_lambda(
    tree: TreeLike,
    families: FamiliesLike,
    rates: Sequence[float],
    config: Optional[SearchConfig] = None,
    session: Optional[LambdaSession] = None,
) -> float:
    """
    Posterior score of fixed lambda values (no search).

    Returns
    -------
    float
        Log-posterior score (``-inf`` if any rate is negative)
    """
    if session is None:
        session = make_session(tree, families, config)
    scorer = PosteriorScorer(session, session.require_prior())
    score = scorer.score(rates)
    log_score_line(rates, score, level=logging.INFO)
    return score

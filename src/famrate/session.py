"""
Shared state for one lambda estimation session.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np

from .config import SearchConfig
from .core.birthdeath import BirthDeathCache
from .core.likelihood import LikelihoodEvaluator
from .io.families import FamilyTable
from .io.trees import FamilySizeRange, Tree

logger = logging.getLogger(__name__)


class LambdaSession:
    """
    Context passed explicitly to every search component.

    Holds the tree, the family table, the session-wide family size range,
    the root-size prior (once fitted), the transition cache and the random
    number generator.

    Parameters
    ----------
    tree : Tree
        Phylogenetic tree with branch lengths (and optional ``#k`` labels)
    families : FamilyTable
        Observed gene counts
    config : SearchConfig, optional
        Search settings

    Examples
    --------
    >>> session = LambdaSession(tree, families)
    >>> session.fit_prior()
    >>> session.max_branch_length
    2.0
    """

    def __init__(self, tree: Tree, families: FamilyTable, config: Optional[SearchConfig] = None):
        self.tree = tree
        self.families = families
        self.config = config or SearchConfig()
        self.rng = np.random.default_rng(self.config.seed)
        self.cache = BirthDeathCache()
        self.evaluator = LikelihoodEvaluator(self.cache)
        self.prior: Optional[np.ndarray] = None
        self.prior_rate: Optional[float] = None

        if tree.n_leaves < 2:
            raise ValueError("Tree must have at least two leaves")
        missing = [name for name in tree.leaf_names if name not in families.species]
        if len(missing) == tree.n_leaves:
            raise ValueError("No tree leaf matches a species in the family table")
        if missing:
            logger.warning("Species without counts (treated as missing): %s", ", ".join(missing))
        if tree.max_branch_length() <= 0:
            raise ValueError("Tree must have positive branch lengths")

        self.family_size = FamilySizeRange.from_max_count(families.max_count())
        tree.family_size = self.family_size

    @property
    def max_branch_length(self) -> float:
        return self.tree.max_branch_length()

    @property
    def n_rate_classes(self) -> int:
        return self.tree.n_rate_classes

    def set_rates(self, rates) -> None:
        """Assign rates to the tree; the transition cache is rebuilt lazily."""
        rates = np.asarray(rates, dtype=float)
        if not np.array_equal(rates, self.tree.get_rates()):
            self.cache.clear()
        self.tree.set_rates(rates)

    def leaf_counts(self, index: int) -> dict:
        """Counts of family ``index`` restricted to species on the tree."""
        counts = self.families[index].counts
        return {name: counts.get(name) for name in self.tree.leaf_names}

    def fit_prior(self) -> np.ndarray:
        """Fit the empirical root-size prior and keep it for the session."""
        from .optimize.prior import PriorEstimator

        estimator = PriorEstimator(
            family_size_max=self.config.family_size_max,
            tol=self.config.tol_rates,
            rng=self.rng,
        )
        self.prior = estimator.fit(self.families, self.tree, root_min=self.family_size.root_min)
        self.prior_rate = estimator.rate
        return self.prior

    def require_prior(self) -> np.ndarray:
        if self.prior is None:
            self.fit_prior()
        return self.prior

    @contextmanager
    def family_size_override(self, size_range: FamilySizeRange) -> Iterator[FamilySizeRange]:
        """
        Temporarily replace the tree's family size range.

        The original range is restored on every exit path.
        """
        saved_tree_range = self.tree.family_size
        saved_session_range = self.family_size
        self.tree.family_size = size_range
        self.family_size = size_range
        try:
            yield size_range
        finally:
            self.tree.family_size = saved_tree_range
            self.family_size = saved_session_range

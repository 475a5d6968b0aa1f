"""
Empirical Poisson prior over root family size.

Root sizes are assumed to follow the leaf size distribution. Zero leaf
counts are dropped (the root has at least one gene), the remaining counts
are shifted by -1 and a single Poisson rate is fitted to them.
"""

import logging
from typing import Optional

import numpy as np
from scipy.stats import poisson

from ..config import FAMILYSIZEMAX
from ..io.families import FamilyTable
from ..io.trees import Tree
from .objectives import PoissonFitObjective
from .simplex import SimplexOptimizer, TOL_RATES

logger = logging.getLogger(__name__)


def collect_leaf_sizes(families: FamilyTable, tree: Optional[Tree] = None) -> np.ndarray:
    """
    Positive leaf counts minus one, over all families and species.

    Parameters
    ----------
    families : FamilyTable
        Observed counts
    tree : Tree, optional
        When given, only species present on the tree are used

    Returns
    -------
    np.ndarray of int
        Shifted counts in family then species order
    """
    species = families.species
    if tree is not None:
        on_tree = set(tree.leaf_names)
        species = [name for name in species if name in on_tree]

    sizes = []
    for family in families:
        for name in species:
            count = family.counts.get(name)
            if count is not None and count > 0:
                sizes.append(count - 1)
    return np.array(sizes, dtype=int)


def poisson_prior(rate: float, root_min: int = 1, family_size_max: int = FAMILYSIZEMAX) -> np.ndarray:
    """
    Shifted Poisson probabilities for root sizes root_min, root_min + 1, ...

    Entry i is PoissonPMF(root_min - 1 + i, rate); NaN values become 0.
    """
    with np.errstate(invalid='ignore'):
        prior = poisson.pmf(np.arange(family_size_max) + root_min - 1, rate)
    return np.where(np.isnan(prior), 0.0, prior)


class PriorEstimator:
    """
    Fit the empirical root-size prior.

    Parameters
    ----------
    family_size_max : int
        Length of the prior array
    tol : float
        Simplex tolerance (x and f)
    rng : np.random.Generator, optional
        Source of the random starting rate

    Attributes
    ----------
    rate : float
        Fitted Poisson rate (after :meth:`fit`)
    score : float
        Negative log-likelihood at the fitted rate
    iterations : int
        Simplex iterations used
    leaf_sizes : np.ndarray
        Shifted leaf sizes the rate was fitted to

    Examples
    --------
    >>> estimator = PriorEstimator(rng=np.random.default_rng(1))
    >>> prior = estimator.fit(families, tree)
    >>> prior.shape
    (1000,)
    """

    def __init__(
        self,
        family_size_max: int = FAMILYSIZEMAX,
        tol: float = TOL_RATES,
        rng: Optional[np.random.Generator] = None,
    ):
        self.family_size_max = family_size_max
        self.optimizer = SimplexOptimizer(tolx=tol, tolf=tol)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.rate: Optional[float] = None
        self.score: Optional[float] = None
        self.iterations = 0
        self.leaf_sizes = np.array([], dtype=int)

    def fit_rate(self, leaf_sizes) -> float:
        """Maximum likelihood Poisson rate from a random non-negative seed."""
        self.leaf_sizes = np.asarray(leaf_sizes, dtype=int)
        objective = PoissonFitObjective(self.leaf_sizes)
        run = self.optimizer.minimize(objective, [self.rng.uniform()])
        self.rate = float(run.x[0])
        self.score = run.fun
        self.iterations = run.iterations

        logger.info("Empirical Prior Estimation Result: (%d iterations)", self.iterations)
        logger.info("Poisson lambda: %f & Score: %f", self.rate, self.score)
        return self.rate

    def fit(self, families: FamilyTable, tree: Optional[Tree] = None, root_min: int = 1) -> np.ndarray:
        """
        Fit the prior from all observed leaf counts.

        Returns
        -------
        np.ndarray, shape (family_size_max,)
            Prior probability of root size ``root_min + i`` at index i
        """
        sizes = collect_leaf_sizes(families, tree)
        if sizes.size == 0:
            logger.warning("No positive leaf counts; prior rate taken from the random seed")
        rate = self.fit_rate(sizes)
        return poisson_prior(rate, root_min=root_min, family_size_max=self.family_size_max)

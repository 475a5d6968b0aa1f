"""
Objective functions handed to the simplex optimizer.

Every objective exposes ``evaluate(x)``, the score to maximize, and is
callable as the negated score so it can be minimized directly.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
from scipy.stats import poisson

from ..session import LambdaSession
from .parameters import ParameterLayout
from .scoring import (
    INFEASIBLE_SCORE,
    MixturePosteriorScorer,
    PosteriorScorer,
    log_score_line,
)

logger = logging.getLogger(__name__)


class Objective(ABC):
    """Scalar score of a real parameter vector."""

    @abstractmethod
    def evaluate(self, x: np.ndarray) -> float:
        """Score to maximize (``-inf`` for infeasible points)."""

    def __call__(self, x: np.ndarray) -> float:
        return -self.evaluate(x)


class SingleRateObjective(Objective):
    """Posterior score of one shared rate vector."""

    def __init__(self, scorer: PosteriorScorer):
        self.scorer = scorer

    def evaluate(self, x: np.ndarray) -> float:
        return self.scorer.score(x)


class MixtureObjective(Objective):
    """Posterior score of a ``[cluster rates, weights]`` vector."""

    def __init__(self, scorer: MixturePosteriorScorer):
        self.scorer = scorer

    @property
    def layout(self) -> ParameterLayout:
        return self.scorer.layout

    def evaluate(self, x: np.ndarray) -> float:
        return self.scorer.score(x)


class PerFamilyObjective(Objective):
    """
    Log of one family's best likelihood over root sizes.

    No prior term is used. The family is selected by index; the tree's
    family size range must already fit that family.
    """

    def __init__(self, session: LambdaSession, index: int):
        self.session = session
        self.index = index
        self.counts = session.leaf_counts(index)
        self.n_evaluations = 0

    def evaluate(self, x: np.ndarray) -> float:
        self.n_evaluations += 1
        rates = np.asarray(x, dtype=float).ravel()
        if np.any(rates < 0) or np.any(np.isnan(rates)):
            score = INFEASIBLE_SCORE
        else:
            self.session.set_rates(rates)
            likelihood = self.session.evaluator.evaluate(self.session.tree, self.counts)
            with np.errstate(divide='ignore'):
                score = float(np.log(likelihood.max()))
        log_score_line(rates, score)
        return score


class PoissonFitObjective(Objective):
    """
    Poisson log-likelihood of a sample of (shifted) leaf sizes.

    NaN probabilities (e.g. from a negative rate) count as zero.
    """

    def __init__(self, sizes):
        self.sizes = np.asarray(sizes, dtype=float)

    def evaluate(self, x: np.ndarray) -> float:
        rate = float(np.ravel(x)[0])
        with np.errstate(invalid='ignore'):
            pmf = poisson.pmf(self.sizes, rate)
        pmf = np.where(np.isnan(pmf), 0.0, pmf)
        with np.errstate(divide='ignore'):
            return float(np.sum(np.log(pmf)))

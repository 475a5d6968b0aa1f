"""
Posterior scoring of rate vectors over all gene families.

The per-family "posterior" is the unnormalized product of the family
likelihood and the root-size prior, maximized over root sizes:

    posterior[s] = exp(log(likelihood[s]) + log(prior[s]))

No division by the evidence is made; scores are only compared with each
other. The aggregate score is the sum of log(max posterior) over families.
"""

import logging
from typing import Optional

import numpy as np

from ..exceptions import ZeroPosteriorError
from ..session import LambdaSession
from .parameters import ParameterLayout, ParameterVector

logger = logging.getLogger(__name__)

# log(0): score of an infeasible parameter vector
INFEASIBLE_SCORE = -np.inf


def format_values(values) -> str:
    """Comma-joined values as written in search logs."""
    return ",".join(f"{float(v):g}" for v in np.ravel(values))


def log_score_line(rates, score: float, level: int = logging.DEBUG) -> None:
    logger.log(level, "Lambda : %s & Score: %f", format_values(rates), score)


def align_prior(prior: np.ndarray, n_root_sizes: int) -> np.ndarray:
    """Prior restricted (or zero-padded) to the candidate root sizes."""
    aligned = np.zeros(n_root_sizes)
    m = min(n_root_sizes, len(prior))
    aligned[:m] = prior[:m]
    return aligned


def unnormalized_posterior(likelihood: np.ndarray, prior: np.ndarray) -> np.ndarray:
    with np.errstate(divide='ignore', invalid='ignore'):
        posterior = np.exp(np.log(likelihood) + np.log(align_prior(prior, len(likelihood))))
    return np.nan_to_num(posterior, nan=0.0)


class PosteriorScorer:
    """
    Aggregate log-posterior of all families for one rate vector.

    Parameters
    ----------
    session : LambdaSession
        Session holding the tree and families
    prior : np.ndarray
        Root-size prior (index i = root size ``root_min + i``)

    Attributes
    ----------
    max_likelihood : np.ndarray
        Best likelihood per family from the last feasible evaluation
    max_posterior : np.ndarray
        Best posterior per family from the last feasible evaluation
    n_evaluations : int
        Number of calls to :meth:`score`

    Examples
    --------
    >>> scorer = PosteriorScorer(session, session.require_prior())
    >>> scorer.score([0.01])
    -42.1
    """

    def __init__(self, session: LambdaSession, prior: np.ndarray):
        self.session = session
        self.prior = np.asarray(prior, dtype=float)
        n = session.families.n_families
        self.max_likelihood = np.zeros(n)
        self.max_posterior = np.zeros(n)
        self.n_evaluations = 0

    def score(self, rates) -> float:
        """
        Log-posterior summed over families.

        Returns ``INFEASIBLE_SCORE`` (log 0) when any rate is negative.

        Raises
        ------
        ZeroPosteriorError
            If a family's best posterior is exactly zero
        """
        self.n_evaluations += 1
        rates = np.asarray(rates, dtype=float).ravel()
        if np.any(rates < 0) or np.any(np.isnan(rates)):
            log_score_line(rates, INFEASIBLE_SCORE)
            return INFEASIBLE_SCORE

        self.session.set_rates(rates)
        score = self._score_families()
        log_score_line(rates, score)
        return score

    def _score_families(self) -> float:
        session = self.session
        families = session.families
        score = 0.0
        for i, family in enumerate(families):
            if families.is_duplicate(i):
                self.max_likelihood[i] = self.max_likelihood[family.ref]
                self.max_posterior[i] = self.max_posterior[family.ref]
            else:
                likelihood = session.evaluator.evaluate(session.tree, session.leaf_counts(i))
                self.max_likelihood[i] = likelihood.max()
                if family.max_likelihood_root is None:
                    family.max_likelihood_root = int(np.argmax(likelihood))
                self.max_posterior[i] = unnormalized_posterior(likelihood, self.prior).max()

            if self.max_posterior[i] == 0:
                raise ZeroPosteriorError(family.id)
            score += np.log(self.max_posterior[i])
        return float(score)


class MixturePosteriorScorer:
    """
    Aggregate log-posterior when families are drawn from K rate clusters.

    Each cluster contributes its weighted best posterior to a family:

        posterior = sum_k w_k * max_s(L_k[s] * prior[s])

    Each evaluation also refreshes ``membership``: the responsibility of
    cluster k for a family is its share of that sum.

    Parameters
    ----------
    session : LambdaSession
        Session holding the tree and families
    prior : np.ndarray
        Root-size prior
    layout : ParameterLayout
        Mixture parameter layout (k >= 2)
    """

    def __init__(self, session: LambdaSession, prior: np.ndarray, layout: ParameterLayout):
        if not layout.is_mixture:
            raise ValueError("MixturePosteriorScorer requires a mixture layout")
        self.session = session
        self.prior = np.asarray(prior, dtype=float)
        self.layout = layout
        n = session.families.n_families
        self.membership = np.full((n, layout.k), 1.0 / layout.k)
        self.max_posterior = np.zeros(n)
        self.n_evaluations = 0

    def score(self, values) -> float:
        """
        Mixture log-posterior for a full ``[rates, weights]`` vector.

        Infeasible vectors (negative rate or weight, free weights summing
        above 1) score ``INFEASIBLE_SCORE``.
        """
        self.n_evaluations += 1
        if isinstance(values, ParameterVector):
            params = values
        else:
            params = ParameterVector(self.layout, values)

        if not params.is_feasible():
            log_score_line(params.values, INFEASIBLE_SCORE)
            return INFEASIBLE_SCORE

        weights = params.full_weights()
        cluster_likelihoods = self._cluster_likelihoods(params)
        score = self._combine(cluster_likelihoods, weights)
        log_score_line(params.values, score)
        return score

    def _cluster_likelihoods(self, params: ParameterVector) -> list[Optional[np.ndarray]]:
        """Likelihood vectors indexed [family][cluster, root size]."""
        session = self.session
        families = session.families
        per_family: list[Optional[np.ndarray]] = [None] * families.n_families
        for cluster in range(self.layout.k):
            session.set_rates(params.cluster_rates(cluster))
            for i in range(families.n_families):
                if families.is_duplicate(i):
                    continue
                likelihood = session.evaluator.evaluate(session.tree, session.leaf_counts(i))
                if per_family[i] is None:
                    per_family[i] = np.zeros((self.layout.k, len(likelihood)))
                per_family[i][cluster] = likelihood
        return per_family

    def _combine(self, per_family: list[Optional[np.ndarray]], weights: np.ndarray) -> float:
        families = self.session.families
        score = 0.0
        for i, family in enumerate(families):
            if families.is_duplicate(i):
                self.max_posterior[i] = self.max_posterior[family.ref]
                self.membership[i] = self.membership[family.ref]
            else:
                likelihoods = per_family[i]
                prior = align_prior(self.prior, likelihoods.shape[1])
                contributions = weights * (likelihoods * prior).max(axis=1)
                self.max_posterior[i] = contributions.sum()
                if self.max_posterior[i] > 0:
                    self.membership[i] = contributions / self.max_posterior[i]
                if family.max_likelihood_root is None:
                    family.max_likelihood_root = int(np.argmax(weights @ likelihoods))

            if self.max_posterior[i] == 0:
                raise ZeroPosteriorError(family.id)
            score += np.log(self.max_posterior[i])
        return float(score)

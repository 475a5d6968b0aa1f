"""
Mixture lambda search: families drawn from K latent rate clusters.

Each run alternates a simplex fit of all cluster rates and weights with
a responsibility update that reseeds the weights from the mean family
membership, until the first free weight stops moving.
"""

import logging
import warnings
from typing import Optional

import numpy as np

from ..config import SearchConfig
from ..session import LambdaSession
from .convergence import (
    ConvergenceReport,
    ConvergenceSupervisor,
    SearchRun,
    warn_stability_bound,
)
from .objectives import MixtureObjective
from .parameters import ParameterLayout, ParameterVector
from .scoring import MixturePosteriorScorer, format_values
from .simplex import SimplexOptimizer

logger = logging.getLogger(__name__)


class MixtureSearch:
    """
    Fit R rates per cluster, K mixture weights and family responsibilities.

    Parameters
    ----------
    session : LambdaSession
        Session with tree, families and prior
    k : int
        Number of clusters (at least 2)
    fix_cluster0 : bool
        Pin cluster 0's rates to 0 and derive its weight as
        1 - sum(other weights)
    config : SearchConfig, optional
        Tolerances and caps (defaults to the session's)

    Attributes
    ----------
    layout : ParameterLayout
        Free-parameter layout
    scorer : MixturePosteriorScorer
        Objective backend; holds the latest cluster membership
    optimizer : SimplexOptimizer
        Simplex with the loose (mixture) tolerance profile
    """

    def __init__(
        self,
        session: LambdaSession,
        k: int,
        fix_cluster0: bool = False,
        config: Optional[SearchConfig] = None,
    ):
        if k < 2:
            raise ValueError(f"A mixture search needs k >= 2, got {k}")
        self.session = session
        self.config = config or session.config
        self.layout = ParameterLayout(n_rates=session.n_rate_classes, k=k, fix_cluster0=fix_cluster0)
        self.scorer = MixturePosteriorScorer(session, session.require_prior(), self.layout)
        self.objective = MixtureObjective(self.scorer)
        self.optimizer = SimplexOptimizer(
            tolx=self.config.tol_mixture,
            tolf=self.config.tol_mixture,
            maxiter=self.config.maxiter,
        )

    def _fit(self, params: ParameterVector):
        run = self.optimizer.minimize(self.objective, params.values)
        params.values[:] = run.x
        # Refresh the membership at the accepted point, not the last vertex tried
        self.scorer.score(params)
        return run

    def run_once(self, run_index: int = 0) -> SearchRun:
        """One EM-refined fit from a random start."""
        params = ParameterVector.randomize(
            self.layout, self.session.rng, self.session.max_branch_length
        )
        run = self._fit(params)
        evaluations = run.evaluations
        current = params.weights[0]

        em_iterations = 0
        while True:
            if em_iterations >= self.config.max_em_iterations:
                message = (
                    f"Mixture refinement stopped after {em_iterations} iterations "
                    f"without the first weight settling"
                )
                logger.warning(message)
                warnings.warn(message, UserWarning)
                break
            em_iterations += 1

            mean_membership = self.scorer.membership.mean(axis=0)
            params.weights[:] = mean_membership[self.layout.weight_clusters]
            run = self._fit(params)
            evaluations += run.evaluations

            previous, current = current, params.weights[0]
            logger.debug("EM iteration %d: p0 %f -> %f", em_iterations, previous, current)
            if abs(current - previous) < self.optimizer.tolx:
                break

        score = -run.fun
        self._log_result(params, score, run.iterations)
        rates = np.concatenate([params.cluster_rates(c) for c in range(self.layout.k)])
        return SearchRun(
            params=params,
            score=score,
            iterations=run.iterations,
            evaluations=evaluations,
            converged=run.converged,
            boundary_warning=warn_stability_bound(rates, self.session.max_branch_length),
            membership=self.scorer.membership.copy(),
            em_iterations=em_iterations,
        )

    def _log_result(self, params: ParameterVector, score: float, iterations: int) -> None:
        rates = np.concatenate([params.cluster_rates(c) for c in range(self.layout.k)])
        logger.info("Lambda Search Result: %d", iterations)
        logger.info("Lambda : %s", format_values(rates))
        logger.info("p : %s", format_values(params.full_weights()))
        logger.info("p0 : %f", params.weights[0])
        logger.info("Score: %f", score)

    def search(self, check_convergence: bool = False) -> ConvergenceReport:
        """
        Run the mixture search, optionally restarting until scores agree.

        Returns
        -------
        ConvergenceReport
            Runs and convergence verdict; the best run carries the
            cluster membership
        """
        if check_convergence:
            supervisor = ConvergenceSupervisor(tolf=self.optimizer.tolf, max_runs=self.config.max_runs)
            report = supervisor.run(self.run_once)
        else:
            report = ConvergenceReport(runs=[self.run_once(0)])
        logger.info("Cluster membership:\n%s", format_membership(self.session, report.best.membership))
        return report


def format_membership(session: LambdaSession, membership: np.ndarray) -> str:
    """One line per family: id followed by its K responsibilities."""
    lines = []
    for family, row in zip(session.families, membership):
        lines.append(family.id + "\t" + "\t".join(f"{value:f}" for value in row))
    return "\n".join(lines)

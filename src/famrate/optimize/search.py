"""
Single lambda search: one rate vector shared by all families.
"""

import logging
from typing import Optional

from ..config import SearchConfig
from ..session import LambdaSession
from .convergence import (
    ConvergenceReport,
    ConvergenceSupervisor,
    SearchRun,
    warn_stability_bound,
)
from .mixture import MixtureSearch
from .objectives import SingleRateObjective
from .parameters import ParameterLayout, ParameterVector
from .scoring import PosteriorScorer, log_score_line
from .simplex import SimplexOptimizer

logger = logging.getLogger(__name__)


class SingleRateSearch:
    """
    Find the rate vector (one rate per rate class) maximizing the posterior score.

    Parameters
    ----------
    session : LambdaSession
        Session with tree, families and prior
    config : SearchConfig, optional
        Tolerances and caps (defaults to the session's)

    Examples
    --------
    >>> search = SingleRateSearch(session)
    >>> report = search.search(check_convergence=True)
    >>> report.best.params.rates
    array([0.0123])
    """

    def __init__(self, session: LambdaSession, config: Optional[SearchConfig] = None):
        self.session = session
        self.config = config or session.config
        self.layout = ParameterLayout(n_rates=session.n_rate_classes)
        self.scorer = PosteriorScorer(session, session.require_prior())
        self.objective = SingleRateObjective(self.scorer)
        self.optimizer = SimplexOptimizer(
            tolx=self.config.tol_rates,
            tolf=self.config.tol_rates,
            maxiter=self.config.maxiter,
        )

    def run_once(self, run_index: int = 0) -> SearchRun:
        """One simplex fit from a random start below the stability bound."""
        start = ParameterVector.randomize(self.layout, self.session.rng, self.session.max_branch_length)
        run = self.optimizer.minimize(self.objective, start.values)
        params = ParameterVector(self.layout, run.x)
        score = -run.fun

        logger.info("Lambda Search Result: %d", run.iterations)
        log_score_line(params.rates, score, level=logging.INFO)
        return SearchRun(
            params=params,
            score=score,
            iterations=run.iterations,
            evaluations=run.evaluations,
            converged=run.converged,
            boundary_warning=warn_stability_bound(params.rates, self.session.max_branch_length),
        )

    def search(self, check_convergence: bool = False) -> ConvergenceReport:
        """
        Run the search, optionally restarting until scores agree.

        Returns
        -------
        ConvergenceReport
            Runs and convergence verdict (None without a check)
        """
        if check_convergence:
            supervisor = ConvergenceSupervisor(tolf=self.optimizer.tolf, max_runs=self.config.max_runs)
            return supervisor.run(self.run_once)
        return ConvergenceReport(runs=[self.run_once(0)])


def search_rates(
    session: LambdaSession,
    k: int = 0,
    fix_cluster0: bool = False,
    check_convergence: bool = False,
) -> ConvergenceReport:
    """
    Lambda search entry point: plain search for k == 0, mixture otherwise.
    """
    if k > 0:
        return MixtureSearch(session, k=k, fix_cluster0=fix_cluster0).search(check_convergence)
    if fix_cluster0:
        raise ValueError("fix_cluster0 requires a mixture search (k >= 2)")
    return SingleRateSearch(session).search(check_convergence)

"""
Search run records and the multi-run convergence check.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from .parameters import ParameterVector

logger = logging.getLogger(__name__)

DEFAULT_MAX_RUNS = 10


@dataclass
class SearchRun:
    """
    Outcome of one search from one random start.

    Attributes
    ----------
    params : ParameterVector
        Fitted parameters
    score : float
        Log-posterior at ``params`` (higher is better)
    iterations : int
        Simplex iterations of the last optimizer call
    evaluations : int
        Objective evaluations over the whole run
    converged : bool
        Whether the last optimizer call met its tolerances
    boundary_warning : bool
        Whether a fitted rate reaches the stability bound
    membership : np.ndarray, optional
        Family-by-cluster responsibilities (mixture searches only)
    em_iterations : int
        EM refinement rounds (mixture searches only)
    """

    params: ParameterVector
    score: float
    iterations: int
    evaluations: int = 0
    converged: bool = True
    boundary_warning: bool = False
    membership: Optional[np.ndarray] = None
    em_iterations: int = 0

    @property
    def fun(self) -> float:
        """Minimized objective value (negated score)."""
        return -self.score


@dataclass
class ConvergenceReport:
    """
    All runs of a supervised search.

    Attributes
    ----------
    runs : list[SearchRun]
        Runs in execution order
    converged : bool, optional
        Verdict of the convergence check (None if no check was requested)
    """

    runs: list[SearchRun] = field(default_factory=list)
    converged: Optional[bool] = None

    @property
    def n_runs(self) -> int:
        return len(self.runs)

    @property
    def scores(self) -> list[float]:
        return [run.score for run in self.runs]

    @property
    def best(self) -> SearchRun:
        """Run with the highest score."""
        if not self.runs:
            raise ValueError("No search runs recorded")
        return max(self.runs, key=lambda run: run.score)


def exceeds_stability_bound(rates, max_branch_length: float, limit: float = 1.0, tol: float = 0.0) -> bool:
    """
    Whether any ``rate * max_branch_length`` reaches ``limit`` (or lies within ``tol`` of it).

    The birth-death transition probabilities lose numerical stability
    once lambda * t approaches 1.
    """
    products = np.asarray(rates, dtype=float) * max_branch_length
    return bool(np.any((products >= limit) | (np.abs(products - limit) < tol)))


def warn_stability_bound(rates, max_branch_length: float) -> bool:
    """Warn (without failing) when a rate breaks ``rate * max_branch_length < 1``."""
    if not exceeds_stability_bound(rates, max_branch_length):
        return False
    message = (
        f"lambda * max branch length >= 1 for rates "
        f"{', '.join(f'{r:g}' for r in np.ravel(rates))} "
        f"(max branch length {max_branch_length:g}); results may be numerically unstable"
    )
    logger.warning(message)
    warnings.warn(message, UserWarning)
    return True


class ConvergenceSupervisor:
    """
    Repeat a search from fresh random starts until the best scores agree.

    After each run the new objective value is compared with the minimum
    of all previous runs; the search has converged once they differ by
    less than ``10 * tolf``. Non-convergence is only logged.

    Parameters
    ----------
    tolf : float
        Objective tolerance of the underlying optimizer
    max_runs : int
        Maximum number of runs

    Examples
    --------
    >>> supervisor = ConvergenceSupervisor(tolf=1e-6)
    >>> report = supervisor.run(lambda i: search.run_once())
    >>> report.converged
    True
    """

    def __init__(self, tolf: float, max_runs: int = DEFAULT_MAX_RUNS):
        if max_runs < 1:
            raise ValueError(f"max_runs must be at least 1, got {max_runs}")
        self.tolf = tolf
        self.max_runs = max_runs

    def run(self, search_once: Callable[[int], SearchRun]) -> ConvergenceReport:
        """
        Call ``search_once(run_index)`` until convergence or ``max_runs``.

        Returns
        -------
        ConvergenceReport
            Every run plus the verdict
        """
        report = ConvergenceReport(converged=False)
        previous = []
        while not report.converged and report.n_runs < self.max_runs:
            run = search_once(report.n_runs)
            if previous and abs(min(previous) - run.fun) < 10 * self.tolf:
                report.converged = True
            previous.append(run.fun)
            report.runs.append(run)

        if report.converged:
            logger.info("score converged in %d runs.", report.n_runs)
        else:
            logger.warning("score failed to converge in %d runs.", self.max_runs)
        return report

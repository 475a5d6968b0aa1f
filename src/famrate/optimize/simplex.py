"""
Derivative-free simplex minimizer shared by every search mode.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.optimize import minimize

from ..config import SearchConfig

logger = logging.getLogger(__name__)

# Default simplex tolerance
TOL_RATES = SearchConfig.tol_rates


@dataclass
class OptimizationRun:
    """
    Summary of one simplex minimization.

    Attributes
    ----------
    x : np.ndarray
        Best point found
    fun : float
        Objective value at ``x``
    iterations : int
        Number of simplex iterations
    evaluations : int
        Number of objective evaluations
    converged : bool
        False when the iteration cap stopped the search
    """

    x: np.ndarray
    fun: float
    iterations: int
    evaluations: int
    converged: bool


class SimplexOptimizer:
    """
    Nelder-Mead minimizer of a scalar function of a real vector.

    Converges when both the simplex extent (``tolx``) and the spread of
    objective values (``tolf``) fall below tolerance. Reaching the
    iteration cap is not an error: the best point found is returned and
    the run is marked as not converged.

    Parameters
    ----------
    tolx : float
        Absolute tolerance on the simplex extent
    tolf : float
        Absolute tolerance on the objective spread
    maxiter : int, optional
        Iteration cap (default 200 * number of parameters)

    Examples
    --------
    >>> opt = SimplexOptimizer(tolx=1e-6, tolf=1e-6)
    >>> run = opt.minimize(lambda x: ((x - 2.0) ** 2).sum(), np.array([0.5]))
    >>> round(float(run.x[0]), 3)
    2.0
    """

    def __init__(self, tolx: float = TOL_RATES, tolf: float = TOL_RATES, maxiter: Optional[int] = None):
        self.tolx = tolx
        self.tolf = tolf
        self.maxiter = maxiter
        self.n_calls = 0

    def minimize(self, objective: Callable[[np.ndarray], float], x0) -> OptimizationRun:
        """
        Minimize ``objective`` starting from ``x0``.

        Parameters
        ----------
        objective : callable
            Maps a 1-D parameter array to a float (``+inf`` for infeasible points)
        x0 : array_like
            Starting point (copied, never modified)

        Returns
        -------
        OptimizationRun
            Best point, its value, and iteration counts
        """
        self.n_calls += 1
        x0 = np.array(x0, dtype=float, copy=True).ravel()
        maxiter = self.maxiter if self.maxiter is not None else 200 * max(len(x0), 1)

        with np.errstate(invalid='ignore', over='ignore'):
            result = minimize(
                objective,
                x0,
                method='Nelder-Mead',
                options={
                    'xatol': self.tolx,
                    'fatol': self.tolf,
                    'maxiter': maxiter,
                    'maxfev': maxiter * 2,
                },
            )

        run = OptimizationRun(
            x=np.array(result.x, dtype=float),
            fun=float(result.fun),
            iterations=int(result.nit),
            evaluations=int(result.nfev),
            converged=bool(result.success),
        )
        if not run.converged:
            logger.warning(
                "Simplex search stopped after %d iterations without converging (%s)",
                run.iterations, result.message,
            )
        return run

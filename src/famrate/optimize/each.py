"""
Independent lambda search for every family.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..config import SearchConfig
from ..session import LambdaSession
from .convergence import exceeds_stability_bound
from .objectives import PerFamilyObjective
from .scoring import format_values
from .simplex import SimplexOptimizer

logger = logging.getLogger(__name__)

# Per-family rates are flagged once rate * max branch length reaches this
EACH_BOUNDARY = 0.5
EACH_BOUNDARY_TOL = 1e-3


@dataclass
class FamilyFit:
    """
    Rates fitted to one family.

    Attributes
    ----------
    family_id : str
        Family identifier
    rates : np.ndarray
        Fitted rate per rate class
    score : float
        Log of the family's best likelihood at ``rates``
    iterations : int
        Simplex iterations (0 when copied from a duplicate)
    boundary_warning : bool
        Rate at or near the stability limit
    ref : int, optional
        Index of the family the result was copied from
    """

    family_id: str
    rates: np.ndarray
    score: float
    iterations: int
    boundary_warning: bool = False
    ref: Optional[int] = None


class PerFamilySearch:
    """
    Fit a rate vector to each family alone (no prior).

    Families are processed in table order; each fit starts from the
    previous family's rates. Duplicate families copy the result of the
    family they refer to without running the optimizer. The session's
    family size range is overridden per family and restored afterwards.

    Parameters
    ----------
    session : LambdaSession
        Session with tree and families
    config : SearchConfig, optional
        Tolerances (defaults to the session's)
    """

    def __init__(self, session: LambdaSession, config: Optional[SearchConfig] = None):
        self.session = session
        self.config = config or session.config
        self.optimizer = SimplexOptimizer(
            tolx=self.config.tol_rates,
            tolf=self.config.tol_rates,
            maxiter=self.config.maxiter,
        )

    def near_boundary(self, rates) -> bool:
        return exceeds_stability_bound(
            rates, self.session.max_branch_length, limit=EACH_BOUNDARY, tol=EACH_BOUNDARY_TOL
        )

    def search(self) -> list[FamilyFit]:
        """
        Fit every family.

        Returns
        -------
        list[FamilyFit]
            One fit per family, in table order
        """
        session = self.session
        families = session.families
        n_families = families.n_families
        rates = np.full(session.n_rate_classes, 0.5 / session.max_branch_length)
        fits: list[FamilyFit] = []

        with session.family_size_override(session.family_size):
            for i, family in enumerate(families):
                if families.is_duplicate(i):
                    source = fits[family.ref]
                    family.fitted_rates = families[family.ref].fitted_rates
                    family.boundary_warning = source.boundary_warning
                    fits.append(FamilyFit(
                        family_id=family.id,
                        rates=source.rates,
                        score=source.score,
                        iterations=0,
                        boundary_warning=source.boundary_warning,
                        ref=family.ref,
                    ))
                    logger.info("%s: Lambda Search Result of %d/%d copied from %s",
                                family.id, i + 1, n_families, families[family.ref].id)
                    continue

                with session.family_size_override(family.size_range()):
                    objective = PerFamilyObjective(session, i)
                    run = self.optimizer.minimize(objective, rates)

                rates = run.x.copy()
                boundary = self.near_boundary(rates)
                family.fitted_rates = rates.copy()
                family.boundary_warning = boundary
                fits.append(FamilyFit(
                    family_id=family.id,
                    rates=family.fitted_rates,
                    score=-run.fun,
                    iterations=run.iterations,
                    boundary_warning=boundary,
                ))

                logger.info("%s: Lambda Search Result of %d/%d in %d iteration",
                            family.id, i + 1, n_families, run.iterations)
                if boundary:
                    logger.warning("%s: Caution : at least one lambda near boundary", family.id)
                logger.info("%s: Lambda : %s & Score: %f",
                            family.id, format_values(rates), -run.fun)

        return fits

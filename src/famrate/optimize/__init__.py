"""
Lambda estimation routines.

This module provides the search modes over birth-death rates:

- **Single search**: one rate per rate class shared by all families
- **Mixture search**: K latent rate clusters refined EM-style
- **Per-family search**: independent rates for every family
- **Grid scan**: posterior score over a rate grid

Each search scores rate vectors with the posterior scorer and minimizes
its negation with a Nelder-Mead simplex from scipy.optimize.
"""

from famrate.optimize.convergence import ConvergenceReport, ConvergenceSupervisor, SearchRun
from famrate.optimize.each import FamilyFit, PerFamilySearch
from famrate.optimize.grid import GridResult, GridScanner, RangeSpec
from famrate.optimize.mixture import MixtureSearch
from famrate.optimize.parameters import ParameterLayout, ParameterVector
from famrate.optimize.prior import PriorEstimator
from famrate.optimize.scoring import MixturePosteriorScorer, PosteriorScorer
from famrate.optimize.search import SingleRateSearch, search_rates
from famrate.optimize.simplex import OptimizationRun, SimplexOptimizer

__all__ = [
    "ConvergenceReport",
    "ConvergenceSupervisor",
    "FamilyFit",
    "GridResult",
    "GridScanner",
    "MixturePosteriorScorer",
    "MixtureSearch",
    "OptimizationRun",
    "ParameterLayout",
    "ParameterVector",
    "PerFamilySearch",
    "PosteriorScorer",
    "PriorEstimator",
    "RangeSpec",
    "SearchRun",
    "SimplexOptimizer",
    "SingleRateSearch",
    "search_rates",
]

"""
Search configuration.
"""

from dataclasses import dataclass
from typing import Optional

# Capacity of the root-size prior (number of root sizes it covers)
FAMILYSIZEMAX = 1000


@dataclass
class SearchConfig:
    """
    Settings shared by every lambda search mode.

    Attributes
    ----------
    tol_rates : float
        Simplex tolerance (x and f) when only rates are fitted
    tol_mixture : float
        Simplex tolerance when mixture weights are fitted as well
    max_runs : int
        Maximum number of restarts when checking convergence
    max_em_iterations : int
        Safety cap on the mixture EM refinement loop
    maxiter : int, optional
        Optimizer iteration cap; defaults to 200 * number of parameters
    family_size_max : int
        Number of root sizes covered by the prior
    seed : int, optional
        Seed for the session random number generator
    """

    tol_rates: float = 1e-6
    tol_mixture: float = 1e-5
    max_runs: int = 10
    max_em_iterations: int = 100
    maxiter: Optional[int] = None
    family_size_max: int = FAMILYSIZEMAX
    seed: Optional[int] = None

    def __post_init__(self):
        if self.tol_rates <= 0 or self.tol_mixture <= 0:
            raise ValueError("Tolerances must be positive")
        if self.max_runs < 1:
            raise ValueError(f"max_runs must be at least 1, got {self.max_runs}")
        if self.max_em_iterations < 1:
            raise ValueError(
                f"max_em_iterations must be at least 1, got {self.max_em_iterations}"
            )
        if self.family_size_max < 1:
            raise ValueError("family_size_max must be positive")

"""
Parameter vector layout for lambda searches.

The free parameters are laid out as

    [rates of each free cluster (n_rates each), free mixture weights]

and this module exposes them as named slices instead of offsets.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class ParameterLayout:
    """
    Shape of a parameter vector.

    Attributes
    ----------
    n_rates : int
        Rate classes per cluster (R)
    k : int
        Number of mixture clusters (0 = no mixture)
    fix_cluster0 : bool
        Cluster 0 has its rates pinned to 0 and its weight derived as
        1 - sum(other weights); it owns no free slot
    """

    n_rates: int
    k: int = 0
    fix_cluster0: bool = False

    def __post_init__(self):
        if self.n_rates < 1:
            raise ValueError(f"At least one rate class is required, got {self.n_rates}")
        if self.k < 0:
            raise ValueError(f"Number of clusters must be non-negative, got {self.k}")
        if self.k == 1:
            raise ValueError("A mixture needs at least two clusters")
        if self.fix_cluster0 and self.k == 0:
            raise ValueError("fix_cluster0 requires a mixture (k >= 2)")

    @property
    def is_mixture(self) -> bool:
        return self.k > 0

    @property
    def n_clusters(self) -> int:
        return max(self.k, 1)

    @property
    def rate_clusters(self) -> list[int]:
        """Clusters that own free rates, in vector order."""
        first = 1 if self.fix_cluster0 else 0
        return list(range(first, self.n_clusters))

    @property
    def weight_clusters(self) -> list[int]:
        """Clusters that own a free weight, in vector order."""
        if not self.is_mixture:
            return []
        if self.fix_cluster0:
            return list(range(1, self.k))
        return list(range(self.k - 1))

    @property
    def derived_cluster(self) -> Optional[int]:
        """Cluster whose weight is 1 - sum(free weights)."""
        if not self.is_mixture:
            return None
        return 0 if self.fix_cluster0 else self.k - 1

    @property
    def n_rate_params(self) -> int:
        return self.n_rates * len(self.rate_clusters)

    @property
    def n_weights(self) -> int:
        return len(self.weight_clusters)

    @property
    def size(self) -> int:
        return self.n_rate_params + self.n_weights

    @property
    def rates_slice(self) -> slice:
        return slice(0, self.n_rate_params)

    @property
    def weights_slice(self) -> slice:
        return slice(self.n_rate_params, self.size)


class ParameterVector:
    """
    Parameter values tagged with their layout.

    Parameters
    ----------
    layout : ParameterLayout
        Slot layout
    values : array_like, optional
        Initial values (zeros if omitted)

    Examples
    --------
    >>> layout = ParameterLayout(n_rates=1, k=2)
    >>> params = ParameterVector(layout, [0.01, 0.02, 0.3])
    >>> params.cluster_rates(1)
    array([0.02])
    >>> params.full_weights()
    array([0.3, 0.7])
    """

    def __init__(self, layout: ParameterLayout, values=None):
        self.layout = layout
        if values is None:
            values = np.zeros(layout.size)
        values = np.array(values, dtype=float).ravel()
        if values.size != layout.size:
            raise ValueError(f"Expected {layout.size} parameters, got {values.size}")
        self.values = values

    @classmethod
    def randomize(
        cls,
        layout: ParameterLayout,
        rng: np.random.Generator,
        max_branch_length: float,
    ) -> "ParameterVector":
        """
        Random starting point inside the stable region.

        Rates are drawn as U(0, 1) / max_branch_length so that
        rate * max_branch_length < 1. Mixture weights are K uniform draws,
        normalized; the free slots copy their cluster's normalized value.
        """
        params = cls(layout)
        params.rates[:] = rng.uniform(size=layout.n_rate_params) / max_branch_length
        if layout.is_mixture:
            raw = rng.uniform(size=layout.k)
            raw /= raw.sum()
            params.weights[:] = raw[layout.weight_clusters]
        return params

    @property
    def rates(self) -> np.ndarray:
        """View of all free rates (writes go through)."""
        return self.values[self.layout.rates_slice]

    @property
    def weights(self) -> np.ndarray:
        """View of the free mixture weights (writes go through)."""
        return self.values[self.layout.weights_slice]

    def cluster_rates(self, cluster: int) -> np.ndarray:
        """Rates used by ``cluster`` (zeros for a fixed cluster 0)."""
        if cluster not in range(self.layout.n_clusters):
            raise IndexError(f"Cluster {cluster} out of range")
        if cluster not in self.layout.rate_clusters:
            return np.zeros(self.layout.n_rates)
        position = self.layout.rate_clusters.index(cluster)
        n = self.layout.n_rates
        return self.rates[position * n:(position + 1) * n].copy()

    def full_weights(self) -> np.ndarray:
        """Weights of all K clusters, including the derived one."""
        if not self.layout.is_mixture:
            return np.ones(1)
        weights = np.zeros(self.layout.k)
        weights[self.layout.weight_clusters] = self.weights
        weights[self.layout.derived_cluster] = 1.0 - self.weights.sum()
        return weights

    def is_feasible(self) -> bool:
        """Rates and free weights non-negative, free weights summing to at most 1."""
        if np.any(self.rates < 0) or np.any(np.isnan(self.values)):
            return False
        if self.layout.is_mixture:
            if np.any(self.weights < 0) or self.weights.sum() > 1.0:
                return False
        return True

    def copy(self) -> "ParameterVector":
        return ParameterVector(self.layout, self.values.copy())

    def __len__(self) -> int:
        return self.layout.size

    def __repr__(self) -> str:
        return f"ParameterVector({self.layout}, {self.values.tolist()})"

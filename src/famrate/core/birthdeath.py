"""
Birth-death transition probabilities for gene family sizes.

With equal birth and death rate lambda, the probability that a family of
size s becomes a family of size c along a branch of length t is

    P(s -> c) = sum_{j=0}^{min(s,c)} C(s, j) C(s+c-j-1, s-1)
                alpha^(s+c-2j) (1 - 2 alpha)^j,    alpha = lambda t / (1 + lambda t)

with P(0 -> 0) = 1 (extinction is absorbing).

References:
    Hahn et al. (2005). Genome Res. 15:1153-1160
"""

from typing import Dict, Tuple

import numpy as np
from scipy.special import gammaln


def _log_choose(n: np.ndarray, k: np.ndarray) -> np.ndarray:
    return gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)


def transition_matrix(
    branch_length: float,
    rate: float,
    max_parent: int,
    max_child: int,
) -> np.ndarray:
    """
    Transition probabilities between family sizes along one branch.

    Parameters
    ----------
    branch_length : float
        Branch length t
    rate : float
        Birth (= death) rate lambda
    max_parent : int
        Largest family size at the parent end
    max_child : int
        Largest family size at the child end

    Returns
    -------
    np.ndarray, shape (max_parent + 1, max_child + 1)
        Entry [s, c] is P(s -> c), clipped into [0, 1]

    Notes
    -----
    When lambda * t >= 1 the factor (1 - 2 alpha)^j alternates in sign and
    the sum becomes numerically unstable; callers flag such rates.
    """
    if rate < 0:
        raise ValueError(f"Rate must be non-negative, got {rate}")

    n_parent = max_parent + 1
    n_child = max_child + 1
    lt = rate * branch_length
    if lt == 0:
        return np.eye(n_parent, n_child)

    alpha = lt / (1.0 + lt)
    coeff = 1.0 - 2.0 * alpha

    s = np.arange(n_parent, dtype=float)[:, None, None]
    c = np.arange(n_child, dtype=float)[None, :, None]
    j = np.arange(min(n_parent, n_child), dtype=float)[None, None, :]

    valid = (s >= 1) & (j <= s) & (j <= c)
    # Placeholder arguments keep gammaln finite where the term is masked out
    s_safe = np.where(valid, s, 1.0)
    c_safe = np.where(valid, c, 0.0)
    j_safe = np.where(valid, j, 0.0)

    log_terms = (
        _log_choose(s_safe, j_safe)
        + _log_choose(s_safe + c_safe - j_safe - 1, s_safe - 1)
        + (s_safe + c_safe - 2 * j_safe) * np.log(alpha)
    )
    with np.errstate(over='ignore', invalid='ignore'):
        terms = np.exp(log_terms) * np.power(coeff, j_safe)
    terms = np.where(valid, terms, 0.0)

    probs = terms.sum(axis=2)
    probs[0, :] = 0.0
    probs[0, 0] = 1.0
    probs = np.nan_to_num(probs, nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(probs, 0.0, 1.0)


class BirthDeathCache:
    """
    Cache of transition matrices keyed by (branch length, rate, bounds).

    The cache must be cleared whenever the rate vector changes and fully
    rebuilt before any family is scored with the new rates.

    Examples
    --------
    >>> cache = BirthDeathCache()
    >>> P = cache.get(1.0, 0.01, 30, 80)
    >>> P.shape
    (31, 81)
    """

    def __init__(self):
        self._matrices: Dict[Tuple[float, float, int, int], np.ndarray] = {}
        self.misses = 0

    def get(self, branch_length: float, rate: float, max_parent: int, max_child: int) -> np.ndarray:
        key = (float(branch_length), float(rate), int(max_parent), int(max_child))
        matrix = self._matrices.get(key)
        if matrix is None:
            matrix = transition_matrix(branch_length, rate, max_parent, max_child)
            self._matrices[key] = matrix
            self.misses += 1
        return matrix

    def clear(self) -> None:
        self._matrices.clear()

    def __len__(self) -> int:
        return len(self._matrices)

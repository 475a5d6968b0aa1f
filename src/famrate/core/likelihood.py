"""
Family likelihood over candidate root sizes (Felsenstein pruning).
"""

from typing import Mapping, Optional

import numpy as np

from .birthdeath import BirthDeathCache
from ..io.trees import Tree, TreeNode


class LikelihoodEvaluator:
    """
    Compute the likelihood of one family's leaf counts on a rated tree.

    Uses the rates currently assigned to the tree's branches and the
    tree's active ``family_size`` range. Transition matrices come from a
    shared :class:`BirthDeathCache`.

    Parameters
    ----------
    cache : BirthDeathCache, optional
        Transition matrix cache (a private one is created if omitted)

    Attributes
    ----------
    node_likelihoods : dict[int, np.ndarray]
        Conditional likelihood vector of every node (indexed by family
        size, 0..max; root sizes for the root) from the last evaluation
    """

    def __init__(self, cache: Optional[BirthDeathCache] = None):
        self.cache = cache if cache is not None else BirthDeathCache()
        self.node_likelihoods: dict[int, np.ndarray] = {}
        self.n_evaluations = 0

    def _leaf_vector(self, node: TreeNode, counts: Mapping[str, Optional[int]], n_sizes: int) -> np.ndarray:
        name = node.name if node.name else str(node.id)
        count = counts.get(name)
        if count is None:
            return np.ones(n_sizes)
        if count >= n_sizes:
            raise ValueError(
                f"Count {count} for {name} exceeds the family size range (max {n_sizes - 1})"
            )
        vec = np.zeros(n_sizes)
        vec[count] = 1.0
        return vec

    def evaluate(self, tree: Tree, counts: Mapping[str, Optional[int]]) -> np.ndarray:
        """
        Likelihood of the counts for every candidate root size.

        Parameters
        ----------
        tree : Tree
            Tree with rates and family size range assigned
        counts : mapping
            Gene count per leaf name (None or absent = missing)

        Returns
        -------
        np.ndarray, shape (root_max - root_min + 1,)
            Entry i is the likelihood given root size root_min + i
        """
        size_range = tree.family_size
        if size_range is None:
            raise ValueError("Tree has no family size range assigned")

        n_sizes = size_range.max + 1
        self.node_likelihoods = {}
        self.n_evaluations += 1

        for node in tree.postorder():
            if node.is_leaf:
                vec = self._leaf_vector(node, counts, n_sizes)
                if size_range.min > 0:
                    vec[:size_range.min] = 0.0
                self.node_likelihoods[node.id] = vec
                continue

            max_parent = size_range.root_max if node.parent is None else size_range.max
            vec = np.ones(max_parent + 1)
            for child in node.children:
                P = self.cache.get(child.branch_length, child.rate, max_parent, size_range.max)
                vec *= P @ self.node_likelihoods[child.id]
            if node.parent is None:
                vec = vec[size_range.root_min:size_range.root_max + 1]
            elif size_range.min > 0:
                vec[:size_range.min] = 0.0
            self.node_likelihoods[node.id] = vec

        return self.node_likelihoods[tree.root.id]

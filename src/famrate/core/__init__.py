"""
Core algorithms for gene family likelihood calculation.

This module provides low-level computational routines:

- **Birth-death transitions**: family size transition probabilities
- **Likelihood calculation**: Felsenstein's pruning over root sizes

These are expert-level functions typically not needed by end users.
The high-level API (:mod:`famrate.api`) provides easier access.
"""

from famrate.core.birthdeath import BirthDeathCache, transition_matrix
from famrate.core.likelihood import LikelihoodEvaluator

__all__ = ["BirthDeathCache", "LikelihoodEvaluator", "transition_matrix"]

"""
famrate: birth-death rate estimation for gene family sizes.

Estimates the gene birth-death rate (lambda) on a phylogenetic tree from
per-species gene family counts, scoring rates by the posterior
probability of the observed counts under an empirical root-size prior.

Quick Start
-----------
Search a single lambda shared by all families:

>>> from famrate import search_lambda
>>> result = search_lambda("tree.nwk", "families.tsv")
>>> print(result.summary())

Mixture of two rate clusters, one of them pinned to zero:

>>> result = search_lambda("tree.nwk", "families.tsv", k=2, fix_cluster0=True)
>>> result.weights
array([0.41, 0.59])

Examples
--------
>>> # Independent lambda for every family
>>> from famrate import search_each
>>> each = search_each("tree.nwk", "families.tsv")
>>> [fit.family_id for fit in each.fits if fit.boundary_warning]

>>> # Score surface over a grid of lambda values
>>> from famrate import scan_lambda
>>> grid = scan_lambda("tree.nwk", "families.tsv", ["0.001:0.001:0.01"])
>>> grid.best
"""

__version__ = "0.1.0"

# High-level API (simple interface)
from .api import (
    search_lambda,
    search_each,
    scan_lambda,
    score_lambda,
    LambdaResult,
    EachResult,
)

from .config import SearchConfig
from .exceptions import FamrateError, OutputFileError, ZeroPosteriorError

# I/O classes (for advanced users)
from .io.families import FamilyTable
from .io.trees import Tree

# Search components (expert use)
from .optimize.grid import GridResult, RangeSpec
from .session import LambdaSession

__all__ = [
    # Simple API - Start here!
    "search_lambda",
    "search_each",
    "scan_lambda",
    "score_lambda",

    # Result objects
    "LambdaResult",
    "EachResult",
    "GridResult",

    # Configuration and errors
    "SearchConfig",
    "FamrateError",
    "OutputFileError",
    "ZeroPosteriorError",

    # I/O (advanced)
    "FamilyTable",
    "Tree",

    # Expert
    "LambdaSession",
    "RangeSpec",

    # Version
    "__version__",
]

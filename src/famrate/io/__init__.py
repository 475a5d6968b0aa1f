"""
Input/Output modules for trees, gene family tables and reports.

This module provides classes for reading and working with:

- **Phylogenetic trees**: Newick format with ``#k`` rate-class labels
- **Gene family tables**: tab-separated per-species gene counts
- **Reports**: grid scans and per-family lambda reports
"""

from famrate.io.trees import FamilySizeRange, Tree, TreeNode
from famrate.io.families import FamilyObservation, FamilyTable

__all__ = ["FamilySizeRange", "Tree", "TreeNode", "FamilyObservation", "FamilyTable"]

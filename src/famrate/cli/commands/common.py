"""Helpers shared by the command implementations."""

import logging
import sys
from pathlib import Path
from typing import Optional

from famrate.config import SearchConfig
from famrate.io.families import FamilyTable
from famrate.io.trees import Tree
from famrate.session import LambdaSession


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr: DEBUG with --verbose, WARNING with --quiet."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)


def load_session(tree: Path, families: Path, seed: Optional[int], maxiter: Optional[int] = None) -> LambdaSession:
    """Load inputs and build a session, exiting with status 1 on bad input."""
    try:
        tree_obj = Tree.from_file(tree)
    except (OSError, ValueError) as e:
        print(f"Error: Could not load tree from {tree}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        table = FamilyTable.from_file(families)
    except (OSError, ValueError) as e:
        print(f"Error: Could not load families from {families}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        return LambdaSession(tree_obj, table, SearchConfig(seed=seed, maxiter=maxiter))
    except ValueError as e:
        print("Error: Tree and family table do not fit together", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        sys.exit(1)


def fail(message: str, error: Exception) -> None:
    print(f"Error: {message}", file=sys.stderr)
    print(f"Details: {error}", file=sys.stderr)
    sys.exit(1)

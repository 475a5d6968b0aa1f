"""Scan command implementation."""

import sys
from pathlib import Path
from typing import List, Optional

from famrate.api import scan_lambda
from famrate.exceptions import FamrateError, OutputFileError
from famrate.io.report import write_grid
from famrate.optimize.grid import RangeSpec

from .common import configure_logging, fail, load_session


def run_scan(
    tree: Path,
    families: Path,
    ranges: List[str],
    output: Optional[Path],
    format: str,
    seed: Optional[int],
    verbose: bool,
    quiet: bool,
):
    """Score every point of a lambda grid."""
    configure_logging(verbose, quiet)

    try:
        specs = [RangeSpec.parse(text) for text in ranges]
    except ValueError as e:
        fail("Invalid --range", e)

    session = load_session(tree, families, seed)

    try:
        result = scan_lambda(session.tree, session.families, specs, session=session)
    except ValueError as e:
        fail("Invalid grid", e)
    except FamrateError as e:
        fail("Grid scan failed", e)

    if format == "json":
        print(result.to_json())
    else:
        for row in result.rows():
            print("\t".join(f"{value:f}" for value in row))
        point, score = result.best
        if not quiet:
            rates = ",".join(f"{rate:g}" for rate in point)
            print(f"\nBest: lambda = {rates} & Score: {score:f}", file=sys.stderr)

    if output:
        try:
            write_grid(output, result)
        except OutputFileError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if not quiet:
            print(f"Results written to {output}", file=sys.stderr)

"""Search command implementation."""

import sys
from pathlib import Path
from typing import Optional

from famrate.api import search_lambda
from famrate.exceptions import FamrateError
from famrate.optimize.mixture import format_membership

from .common import configure_logging, fail, load_session


def run_search(
    tree: Path,
    families: Path,
    k: int,
    fix_cluster0: bool,
    check_convergence: bool,
    output: Optional[Path],
    format: str,
    seed: Optional[int],
    maxiter: Optional[int],
    verbose: bool,
    quiet: bool,
):
    """Search the lambda values shared by all families."""
    configure_logging(verbose, quiet)

    if k == 1 or k < 0:
        print(f"Error: -k must be 0 or at least 2, got {k}", file=sys.stderr)
        sys.exit(1)
    if fix_cluster0 and k == 0:
        print("Error: --fix-cluster0 requires a mixture (-k 2 or more)", file=sys.stderr)
        sys.exit(1)

    session = load_session(tree, families, seed, maxiter)

    if not quiet:
        print("Lambda Search", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print(f"Tree:      {tree}", file=sys.stderr)
        print(f"Families:  {families} ({session.families.n_families} families)", file=sys.stderr)
        print(file=sys.stderr)

    try:
        result = search_lambda(
            tree=session.tree,
            families=session.families,
            k=k,
            fix_cluster0=fix_cluster0,
            check_convergence=check_convergence,
            session=session,
        )
    except FamrateError as e:
        fail("Lambda search failed", e)

    if format == "json":
        output_text = result.to_json()
    else:
        output_text = result.summary()
        if result.membership is not None:
            output_text += "\n" + format_membership(session, result.membership)

    if output:
        try:
            with open(output, 'w') as f:
                f.write(output_text + "\n")
        except OSError as e:
            fail(f"Cannot open file: {output}", e)
        if not quiet:
            print(f"\nResults written to {output}", file=sys.stderr)
    else:
        print(output_text)

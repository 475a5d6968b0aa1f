"""Score command implementation."""

import json
import sys
from pathlib import Path
from typing import List, Optional

from famrate.api import score_lambda
from famrate.exceptions import FamrateError

from .common import configure_logging, fail, load_session


def run_score(
    tree: Path,
    families: Path,
    rates: List[float],
    format: str,
    seed: Optional[int],
    verbose: bool,
    quiet: bool,
):
    """Posterior score of fixed lambda values."""
    configure_logging(verbose, quiet)
    session = load_session(tree, families, seed)

    if len(rates) != session.n_rate_classes:
        print(
            f"Error: Expected {session.n_rate_classes} --lambda values "
            f"(one per rate class), got {len(rates)}",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        score = score_lambda(session.tree, session.families, rates, session=session)
    except FamrateError as e:
        fail("Scoring failed", e)

    if format == "json":
        print(json.dumps({'rates': list(rates), 'score': score}, indent=2))
    else:
        print(f"Lambda : {','.join(f'{r:g}' for r in rates)} & Score: {score:f}")

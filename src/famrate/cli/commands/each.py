"""Each command implementation."""

import sys
from pathlib import Path
from typing import Optional

from famrate.api import search_each
from famrate.exceptions import FamrateError, OutputFileError
from famrate.io.report import write_each_html, write_each_report

from .common import configure_logging, fail, load_session


def run_each(
    tree: Path,
    families: Path,
    output: Optional[Path],
    format: str,
    seed: Optional[int],
    maxiter: Optional[int],
    verbose: bool,
    quiet: bool,
):
    """Fit an independent lambda to every family."""
    configure_logging(verbose, quiet)
    session = load_session(tree, families, seed, maxiter)

    try:
        result = search_each(session.tree, session.families, session=session)
    except FamrateError as e:
        fail("Per-family lambda search failed", e)

    if format == "json":
        print(result.to_json())
    else:
        print(result.summary())

    if not output:
        return

    # Each report is written independently; one unwritable path does not stop the other
    failed = False
    html_path = output.with_suffix(".html")
    for path, writer in (
        (output, lambda p: write_each_report(p, session, result.fits)),
        (html_path, lambda p: write_each_html(p, session, result.fits, name=output.stem)),
    ):
        try:
            writer(path)
        except OutputFileError as e:
            print(f"Error: {e}", file=sys.stderr)
            failed = True
            continue
        if not quiet:
            print(f"Report written to {path}", file=sys.stderr)

    if failed:
        sys.exit(1)

"""Main CLI application for famrate."""

import typer
from pathlib import Path
from typing import List, Optional
from enum import Enum

app = typer.Typer(
    name="famrate",
    help="Birth-death rate (lambda) estimation for gene family sizes",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    """Output format."""
    TEXT = "text"
    JSON = "json"


TREE_OPTION = typer.Option(
    ...,
    "--tree", "-t",
    help="Phylogenetic tree file (Newick format, #k labels define rate classes)",
    exists=True,
    file_okay=True,
    dir_okay=False,
)

FAMILIES_OPTION = typer.Option(
    ...,
    "--families", "-f",
    help="Gene family table (tab-separated: Desc, Family ID, one column per species)",
    exists=True,
    file_okay=True,
    dir_okay=False,
)

FORMAT_OPTION = typer.Option(
    OutputFormat.TEXT,
    "--format",
    help="Output format",
)

SEED_OPTION = typer.Option(
    None,
    "--seed",
    help="Random seed for reproducible starting points",
)

VERBOSE_OPTION = typer.Option(
    False,
    "--verbose", "-v",
    help="Log every objective evaluation",
)

QUIET_OPTION = typer.Option(
    False,
    "--quiet", "-q",
    help="Minimal output",
)

MAXITER_OPTION = typer.Option(
    None,
    "--maxiter",
    help="Maximum simplex iterations per fit (default: 200 x parameters)",
    min=1,
)


@app.command()
def search(
    tree: Path = TREE_OPTION,
    families: Path = FAMILIES_OPTION,
    k: int = typer.Option(
        0,
        "-k", "--clusters",
        help="Number of rate clusters (0 = single rate vector)",
        min=0,
    ),
    fix_cluster0: bool = typer.Option(
        False,
        "--fix-cluster0",
        help="Pin cluster 0's lambda to zero",
    ),
    check_conv: bool = typer.Option(
        False,
        "--check-conv",
        help="Restart until two runs reach the same score",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output file (default: stdout)",
    ),
    format: OutputFormat = FORMAT_OPTION,
    seed: Optional[int] = SEED_OPTION,
    maxiter: Optional[int] = MAXITER_OPTION,
    verbose: bool = VERBOSE_OPTION,
    quiet: bool = QUIET_OPTION,
):
    """
    Search the lambda values maximizing the posterior score.

    Example:
        famrate search -t tree.nwk -f families.tsv
        famrate search -t tree.nwk -f families.tsv -k 2 --fix-cluster0 --check-conv
    """
    from .commands.search import run_search

    run_search(
        tree=tree,
        families=families,
        k=k,
        fix_cluster0=fix_cluster0,
        check_convergence=check_conv,
        output=output,
        format=format.value,
        seed=seed,
        maxiter=maxiter,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def each(
    tree: Path = TREE_OPTION,
    families: Path = FAMILIES_OPTION,
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Per-family report file (an HTML table is written beside it)",
    ),
    format: OutputFormat = FORMAT_OPTION,
    seed: Optional[int] = SEED_OPTION,
    maxiter: Optional[int] = MAXITER_OPTION,
    verbose: bool = VERBOSE_OPTION,
    quiet: bool = QUIET_OPTION,
):
    """
    Fit an independent lambda to every family.

    Families whose lambda reaches half the stability limit are marked
    with "@@ " in the report.

    Example:
        famrate each -t tree.nwk -f families.tsv -o each.txt
    """
    from .commands.each import run_each

    run_each(
        tree=tree,
        families=families,
        output=output,
        format=format.value,
        seed=seed,
        maxiter=maxiter,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def scan(
    tree: Path = TREE_OPTION,
    families: Path = FAMILIES_OPTION,
    ranges: List[str] = typer.Option(
        ...,
        "--range", "-r",
        help="Lambda range start:step:end (repeat once per rate class)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Tab-separated grid file",
    ),
    format: OutputFormat = FORMAT_OPTION,
    seed: Optional[int] = SEED_OPTION,
    verbose: bool = VERBOSE_OPTION,
    quiet: bool = QUIET_OPTION,
):
    """
    Score every point of a lambda grid.

    Example:
        famrate scan -t tree.nwk -f families.tsv --range 0.001:0.001:0.01
    """
    from .commands.scan import run_scan

    run_scan(
        tree=tree,
        families=families,
        ranges=ranges,
        output=output,
        format=format.value,
        seed=seed,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def score(
    tree: Path = TREE_OPTION,
    families: Path = FAMILIES_OPTION,
    rates: List[float] = typer.Option(
        ...,
        "--lambda", "-l",
        help="Lambda value (repeat once per rate class)",
    ),
    format: OutputFormat = FORMAT_OPTION,
    seed: Optional[int] = SEED_OPTION,
    verbose: bool = VERBOSE_OPTION,
    quiet: bool = QUIET_OPTION,
):
    """
    Posterior score of fixed lambda values, without searching.

    Example:
        famrate score -t tree.nwk -f families.tsv --lambda 0.01
    """
    from .commands.score import run_score

    run_score(
        tree=tree,
        families=families,
        rates=rates,
        format=format.value,
        seed=seed,
        verbose=verbose,
        quiet=quiet,
    )


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

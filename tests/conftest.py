"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path
from typer.testing import CliRunner

from famrate.config import SearchConfig
from famrate.io.families import FamilyTable
from famrate.io.trees import Tree
from famrate.session import LambdaSession

SMALL_NEWICK = "((A:1,B:1):1,C:2);"
LABELED_NEWICK = "((A:1,B:1)#1:1,C:2);"

FAMILY_COUNTS = {
    "fam1": {"A": 2, "B": 3, "C": 2},
    "fam2": {"A": 1, "B": 1, "C": 2},
    "fam3": {"A": 2, "B": 3, "C": 2},
    "fam4": {"A": 5, "B": 4, "C": 6},
}

FAMILY_TABLE_TEXT = (
    "Desc\tFamily ID\tA\tB\tC\n"
    "kinase\tfam1\t2\t3\t2\n"
    "transporter\tfam2\t1\t1\t2\n"
    "kinase copy\tfam3\t2\t3\t2\n"
    "receptor\tfam4\t5\t4\t6\n"
)


@pytest.fixture
def small_tree():
    """Three-leaf tree with maximum branch length 2."""
    return Tree.from_newick(SMALL_NEWICK)


@pytest.fixture
def labeled_tree():
    """Same topology with the (A,B) stem in its own rate class."""
    return Tree.from_newick(LABELED_NEWICK)


@pytest.fixture
def family_table():
    """Four families over species A, B, C; fam3 duplicates fam1."""
    return FamilyTable.from_counts(FAMILY_COUNTS)


@pytest.fixture
def session(small_tree, family_table):
    """Seeded session on the small tree."""
    return LambdaSession(small_tree, family_table, SearchConfig(seed=42))


@pytest.fixture
def fitted_session(session):
    """Seeded session with the root-size prior already fitted."""
    session.fit_prior()
    return session


@pytest.fixture
def tree_file(tmp_path):
    """Temporary Newick file with the small tree."""
    path = tmp_path / "tree.nwk"
    path.write_text(SMALL_NEWICK + "\n")
    return path


@pytest.fixture
def families_file(tmp_path):
    """Temporary tab-separated family table."""
    path = tmp_path / "families.tsv"
    path.write_text(FAMILY_TABLE_TEXT)
    return path


@pytest.fixture
def cli_runner():
    """CLI test runner for Typer apps."""
    return CliRunner()

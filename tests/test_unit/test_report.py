"""
Unit tests for report writers.
"""

import pytest

from famrate.exceptions import OutputFileError
from famrate.io.report import (
    annotated_newick,
    family_tree_string,
    write_each_html,
    write_each_report,
    write_grid,
)
from famrate.optimize.each import PerFamilySearch
from famrate.optimize.grid import GridScanner, RangeSpec


class TestAnnotatedNewick:
    """Test the annotated tree string."""

    def test_leaf_labels(self, session):
        tree_string = family_tree_string(session, 0, [0.1])
        assert tree_string.endswith(";")
        assert "A_2<" in tree_string
        assert "B_3<" in tree_string
        assert "C_2<" in tree_string
        assert ":2" in tree_string

    def test_missing_count(self, small_tree):
        tree_string = annotated_newick(small_tree, {"A": 1, "B": None, "C": 2}, {})
        assert "B_-" in tree_string
        assert "<" not in tree_string

    def test_session_range_restored(self, session):
        original = session.family_size
        family_tree_string(session, 3, [0.1])
        assert session.family_size is original


class TestWriters:
    """Test file writers."""

    def test_write_grid(self, fitted_session, tmp_path):
        result = GridScanner(fitted_session).scan([RangeSpec(0.05, 0.05, 0.15)])
        path = tmp_path / "grid.txt"
        write_grid(path, result)
        lines = path.read_text().splitlines()
        assert len(lines) == 3
        assert lines[0].split("\t")[0] == "0.050000"

    def test_each_report_and_html(self, session, tmp_path):
        fits = PerFamilySearch(session).search()
        fits[1].boundary_warning = True

        report = tmp_path / "each.txt"
        write_each_report(report, session, fits)
        lines = report.read_text().splitlines()
        assert len(lines) == 4
        assert lines[0].startswith("fam1\t")
        assert lines[1].startswith("@@ fam2\t")

        html = tmp_path / "each.html"
        write_each_html(html, session, fits, name="each")
        text = html.read_text()
        assert text.count("<tr>") == 8
        assert "pdf/each-1.pdf" in text
        assert "NONE" in text

    def test_unopenable_path(self, fitted_session, tmp_path):
        result = GridScanner(fitted_session).scan([RangeSpec(0.1, 0.1, 0.1)])
        path = tmp_path / "missing_dir" / "grid.txt"
        with pytest.raises(OutputFileError, match="Cannot open file"):
            write_grid(path, result)

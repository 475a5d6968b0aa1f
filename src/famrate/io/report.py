"""
Output writers for lambda searches.

Writers open their file themselves; a file that cannot be opened raises
:class:`OutputFileError` for that path only.
"""

from html import escape
from pathlib import Path
from typing import Mapping, Optional, TYPE_CHECKING

import numpy as np

from ..exceptions import OutputFileError
from .trees import Tree, TreeNode

if TYPE_CHECKING:
    from ..optimize.each import FamilyFit
    from ..optimize.grid import GridResult
    from ..session import LambdaSession

# Prefix of report lines whose fitted rate is at or near the stability limit
BOUNDARY_MARKER = "@@ "


def open_output(path: Path | str):
    """Open ``path`` for writing, raising OutputFileError on failure."""
    try:
        return open(path, 'w')
    except OSError as e:
        raise OutputFileError(path, e.strerror or str(e)) from e


def annotated_newick(
    tree: Tree,
    counts: Mapping[str, Optional[int]],
    node_likelihoods: Mapping[int, np.ndarray],
) -> str:
    """
    Newick string with each node's best likelihood in angle brackets.

    Leaves are written as ``name_count``.

    Examples
    --------
    >>> annotated_newick(tree, {"A": 2, "B": 3}, evaluator.node_likelihoods)
    '(A_2<1.000000>:1,B_3<1.000000>:1)<0.012345>'
    """

    def node_string(node: TreeNode) -> str:
        if node.is_leaf:
            name = node.name if node.name else str(node.id)
            count = counts.get(name)
            text = f"{name}_{'-' if count is None else count}"
        else:
            text = "(" + ",".join(node_string(child) for child in node.children) + ")"
            if node.name:
                text += node.name
        values = node_likelihoods.get(node.id)
        if values is not None and len(values):
            text += f"<{float(np.max(values)):f}>"
        if node.parent is not None:
            text += f":{node.branch_length:g}"
        return text

    return node_string(tree.root) + ";"


def family_tree_string(session: "LambdaSession", index: int, rates) -> str:
    """Annotated tree of family ``index`` evaluated at ``rates``."""
    family = session.families[index]
    counts = session.leaf_counts(index)
    with session.family_size_override(family.size_range()):
        session.set_rates(rates)
        session.evaluator.evaluate(session.tree, counts)
    return annotated_newick(session.tree, counts, session.evaluator.node_likelihoods)


def write_grid(path: Path | str, result: "GridResult") -> None:
    """One tab-separated row per grid point: rate values then score."""
    with open_output(path) as f:
        for row in result.rows():
            f.write("\t".join(f"{value:f}" for value in row) + "\n")


def write_each_report(path: Path | str, session: "LambdaSession", fits: list["FamilyFit"]) -> None:
    """
    Per-family report: ``[@@ ]family_id<TAB>annotated tree``.
    """
    with open_output(path) as f:
        for i, fit in enumerate(fits):
            prefix = BOUNDARY_MARKER if fit.boundary_warning else ""
            f.write(f"{prefix}{fit.family_id}\t{family_tree_string(session, i, fit.rates)}\n")


def write_each_html(path: Path | str, session: "LambdaSession", fits: list["FamilyFit"], name: str = "") -> None:
    """HTML table mirroring the per-family report."""
    with open_output(path) as f:
        f.write("<html>\n<body>\n<table border=1>\n")
        for i, fit in enumerate(fits):
            family = session.families[i]
            description = family.description or "NONE"
            f.write(
                f"<tr><td rowspan=2><a href=pdf/{escape(name)}-{i + 1}.pdf>{escape(fit.family_id)}</a></td>"
                f"<td>{escape(description)}</td></tr>\n"
            )
            tree_string = family_tree_string(session, i, fit.rates)
            f.write(f"<tr><td>{escape(tree_string)}</td></tr>\n")
        f.write("</table>\n</body>\n</html>\n")

"""
Phylogenetic tree parsing and rate-class assignment.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import numpy as np


@dataclass
class FamilySizeRange:
    """
    Bounds on gene family sizes considered by the likelihood.

    Attributes
    ----------
    min, max : int
        Smallest and largest family size at any node
    root_min, root_max : int
        Smallest and largest candidate root family size
    """

    min: int
    max: int
    root_min: int
    root_max: int

    @classmethod
    def from_max_count(cls, max_count: int) -> "FamilySizeRange":
        """
        Default range for data whose largest observed count is ``max_count``.

        The root may be up to 25% larger than the largest leaf (at least 30),
        and nodes may grow by max(50, 20%) beyond it.
        """
        max_count = max(int(max_count), 0)
        return cls(
            min=0,
            max=max_count + max(50, max_count // 5),
            root_min=1,
            root_max=max(30, int(np.rint(max_count * 1.25))),
        )

    @property
    def n_root_sizes(self) -> int:
        return self.root_max - self.root_min + 1


@dataclass
class TreeNode:
    """
    Phylogenetic tree node.

    Attributes
    ----------
    id : int
        Node identifier
    name : Optional[str]
        Node name (species name for leaves)
    parent : Optional[TreeNode]
        Parent node
    children : list[TreeNode]
        Child nodes
    branch_length : float
        Branch length to parent
    label : Optional[str]
        Branch label (e.g., '#1') selecting the branch's rate class
    rate_class : int
        Index of the lambda shared by this branch
    rate : float
        Birth-death rate currently assigned to the branch
    """

    id: int
    name: Optional[str] = None
    parent: Optional["TreeNode"] = None
    children: list["TreeNode"] = field(default_factory=list)
    branch_length: float = 0.0
    label: Optional[str] = None
    rate_class: int = 0
    rate: float = 0.0

    @property
    def is_leaf(self) -> bool:
        """Check if node is a leaf."""
        return len(self.children) == 0


@dataclass
class Tree:
    """
    Rooted phylogenetic tree with per-branch rate classes.

    Topology and branch lengths are fixed after parsing; ``rate`` on each
    node and ``family_size`` are the only mutable parts.

    Attributes
    ----------
    root : TreeNode
        Root node of the tree
    n_nodes : int
        Total number of nodes
    n_leaves : int
        Number of leaf nodes
    leaf_names : list[str]
        Names of leaf nodes
    family_size : FamilySizeRange, optional
        Size range used by likelihood evaluation
    """

    root: TreeNode
    n_nodes: int
    n_leaves: int
    leaf_names: list[str]
    family_size: Optional[FamilySizeRange] = None
    n_rate_classes: int = 1

    @classmethod
    def from_newick(cls, newick_string: str) -> "Tree":
        """
        Parse a Newick tree string.

        Branches may carry labels such as ``#1``; branches sharing a label
        share a lambda. Unlabelled branches belong to the background class.

        Parameters
        ----------
        newick_string : str
            Newick format tree

        Returns
        -------
        Tree
            Parsed tree

        Examples
        --------
        >>> tree = Tree.from_newick("((A:1,B:1)#1:2,C:3);")
        >>> tree.n_rate_classes
        2
        """
        newick = re.sub(r'\[.*?\]', '', newick_string).strip()
        if ';' not in newick:
            raise ValueError("Invalid Newick format: missing semicolon")
        tree_line = newick[:newick.index(';')]
        tree_line = tree_line.replace('\n', '').replace('\t', '').replace('\r', '')
        if not tree_line.strip():
            raise ValueError("Invalid Newick format: no tree found")

        node_id_counter = [0]

        def skip_whitespace(s: str, pos: int) -> int:
            while pos < len(s) and s[pos] == ' ':
                pos += 1
            return pos

        def parse_node(s: str, start: int, parent: Optional[TreeNode] = None) -> tuple[TreeNode, int]:
            """Parse a node from position start in string s."""
            node = TreeNode(id=node_id_counter[0], parent=parent)
            node_id_counter[0] += 1
            pos = skip_whitespace(s, start)

            if pos < len(s) and s[pos] == '(':
                pos = skip_whitespace(s, pos + 1)
                while True:
                    child, pos = parse_node(s, pos, node)
                    node.children.append(child)
                    pos = skip_whitespace(s, pos)
                    if pos < len(s) and s[pos] == ',':
                        pos = skip_whitespace(s, pos + 1)
                        continue
                    elif pos < len(s) and s[pos] == ')':
                        pos = skip_whitespace(s, pos + 1)
                        break
                    else:
                        raise ValueError(f"Expected ',' or ')' at position {pos}")

            name_start = pos
            while pos < len(s) and s[pos] not in ',:();# ':
                pos += 1
            if pos > name_start:
                node.name = s[name_start:pos]
            pos = skip_whitespace(s, pos)

            if pos < len(s) and s[pos] == '#':
                pos += 1
                label_start = pos
                while pos < len(s) and s[pos] not in ',:(); ':
                    pos += 1
                node.label = '#' + s[label_start:pos]
            pos = skip_whitespace(s, pos)

            if pos < len(s) and s[pos] == ':':
                pos = skip_whitespace(s, pos + 1)
                length_start = pos
                while pos < len(s) and s[pos] not in ',(); ':
                    pos += 1
                try:
                    node.branch_length = float(s[length_start:pos])
                except ValueError:
                    raise ValueError(f"Invalid branch length: {s[length_start:pos]}")
                if node.branch_length < 0:
                    raise ValueError(f"Negative branch length: {node.branch_length}")

            return node, pos

        root, pos = parse_node(tree_line, 0, None)
        if skip_whitespace(tree_line, pos) != len(tree_line):
            raise ValueError(f"Unexpected characters after tree at position {pos}")

        leaves = []
        n_nodes = 0
        stack = [root]
        while stack:
            node = stack.pop()
            n_nodes += 1
            if node.is_leaf:
                leaves.append(node)
            stack.extend(reversed(node.children))

        leaf_names = [leaf.name if leaf.name else str(leaf.id) for leaf in leaves]
        if len(set(leaf_names)) != len(leaf_names):
            raise ValueError("Leaf names must be unique")

        tree = cls(root=root, n_nodes=n_nodes, n_leaves=len(leaves), leaf_names=leaf_names)
        tree.assign_rate_classes()
        return tree

    @classmethod
    def from_file(cls, filepath: Path | str) -> "Tree":
        """Read a Newick tree from a file."""
        with open(filepath, 'r') as f:
            return cls.from_newick(f.read())

    def postorder(self) -> list[TreeNode]:
        """
        Return nodes in post-order traversal (leaves to root).

        Returns
        -------
        list[TreeNode]
            Nodes in post-order
        """
        result = []

        def traverse(node: TreeNode) -> None:
            for child in node.children:
                traverse(child)
            result.append(node)

        traverse(self.root)
        return result

    def branch_nodes(self) -> list[TreeNode]:
        """Nodes that own a branch (every node except the root)."""
        return [node for node in self.postorder() if node.parent is not None]

    def leaves(self) -> list[TreeNode]:
        return [node for node in self.postorder() if node.is_leaf]

    def get_branch_labels(self) -> list[int]:
        """
        Integer branch labels in post-order; unlabelled branches are 0.

        Raises
        ------
        ValueError
            If a label is not an integer
        """
        labels = []
        for node in self.branch_nodes():
            if node.label is None:
                labels.append(0)
                continue
            try:
                labels.append(int(node.label.lstrip('#')))
            except ValueError:
                raise ValueError(f"Invalid branch label: {node.label}")
        return labels

    def assign_rate_classes(self, labels: Optional[Sequence[int]] = None) -> int:
        """
        Map branch labels onto consecutive rate-class indices.

        Parameters
        ----------
        labels : sequence of int, optional
            One label per branch in post-order. Defaults to the ``#k``
            labels read from the Newick string.

        Returns
        -------
        int
            Number of rate classes
        """
        branches = self.branch_nodes()
        if labels is None:
            labels = self.get_branch_labels()
        if len(labels) != len(branches):
            raise ValueError(
                f"Expected {len(branches)} branch labels, got {len(labels)}"
            )
        unique_labels = sorted(set(labels))
        index = {label: i for i, label in enumerate(unique_labels)}
        for node, label in zip(branches, labels):
            node.rate_class = index[label]
        self.n_rate_classes = max(len(unique_labels), 1)
        return self.n_rate_classes

    def set_rates(self, rates: Sequence[float]) -> None:
        """Assign ``rates[node.rate_class]`` to every branch."""
        rates = np.asarray(rates, dtype=float)
        if rates.size != self.n_rate_classes:
            raise ValueError(
                f"Expected {self.n_rate_classes} rates, got {rates.size}"
            )
        for node in self.branch_nodes():
            node.rate = float(rates[node.rate_class])

    def get_rates(self) -> np.ndarray:
        """Current rate of each class, read back from the branches."""
        rates = np.zeros(self.n_rate_classes)
        for node in self.branch_nodes():
            rates[node.rate_class] = node.rate
        return rates

    def max_branch_length(self) -> float:
        """Longest branch in the tree."""
        lengths = [node.branch_length for node in self.branch_nodes()]
        return max(lengths) if lengths else 0.0

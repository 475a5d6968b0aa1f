"""
Gene family count tables.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Iterator

import numpy as np

from .trees import FamilySizeRange

# Tokens accepted for a missing count
MISSING_TOKENS = {'', '-', 'NA', 'na', 'N/A', '?'}


@dataclass
class FamilyObservation:
    """
    Observed gene counts for one family.

    Attributes
    ----------
    id : str
        Family identifier
    description : str
        Free-text description
    counts : dict[str, Optional[int]]
        Gene count per species; None marks a missing observation
    ref : int, optional
        Index of an earlier family with identical counts
    max_likelihood_root : int, optional
        Cached index of the most likely root size (None when stale)
    fitted_rates : np.ndarray, optional
        Rates fitted for this family alone
    boundary_warning : bool
        Whether a fitted rate lies at or near the stability limit
    """

    id: str
    description: str = ""
    counts: dict[str, Optional[int]] = field(default_factory=dict)
    ref: Optional[int] = None
    max_likelihood_root: Optional[int] = None
    fitted_rates: Optional[np.ndarray] = None
    boundary_warning: bool = False

    def __post_init__(self):
        for species, count in self.counts.items():
            if count is not None and count < 0:
                raise ValueError(
                    f"Family {self.id}: negative count {count} for {species}"
                )

    def max_count(self) -> int:
        observed = [c for c in self.counts.values() if c is not None]
        return max(observed) if observed else 0

    def size_range(self) -> FamilySizeRange:
        """Family size range fitted to this family's own counts."""
        return FamilySizeRange.from_max_count(self.max_count())


@dataclass
class FamilyTable:
    """
    Table of gene family counts across species.

    Attributes
    ----------
    species : list[str]
        Species (column) names in file order
    families : list[FamilyObservation]
        Families in file order
    """

    species: list[str]
    families: list[FamilyObservation]

    def __post_init__(self):
        ids = [family.id for family in self.families]
        if len(set(ids)) != len(ids):
            raise ValueError("Family identifiers must be unique")
        self._index = {family.id: i for i, family in enumerate(self.families)}

    @classmethod
    def from_file(cls, filepath: Path | str) -> "FamilyTable":
        """
        Parse a tab-separated family count file.

        The first line is a header ``Desc<TAB>Family ID<TAB>species...``;
        each following line holds one family.

        Parameters
        ----------
        filepath : Path or str
            Path to the count table

        Returns
        -------
        FamilyTable
            Parsed table with duplicate families marked

        Examples
        --------
        >>> table = FamilyTable.from_file("families.tsv")
        >>> table.n_families
        1000
        """
        filepath = Path(filepath)
        with open(filepath, 'r') as f:
            lines = [line.rstrip('\n').rstrip('\r') for line in f if line.strip()]

        if not lines:
            raise ValueError(f"Empty family file: {filepath}")

        header = lines[0].split('\t')
        if len(header) < 3:
            raise ValueError(
                "Family file header must contain description, family ID and "
                "at least one species column"
            )
        species = [name.strip() for name in header[2:]]

        families = []
        for line_number, line in enumerate(lines[1:], start=2):
            fields = line.split('\t')
            if len(fields) != len(header):
                raise ValueError(
                    f"Line {line_number}: expected {len(header)} columns, got {len(fields)}"
                )
            counts = {}
            for name, value in zip(species, fields[2:]):
                value = value.strip()
                if value in MISSING_TOKENS:
                    counts[name] = None
                    continue
                try:
                    counts[name] = int(value)
                except ValueError:
                    raise ValueError(f"Line {line_number}: invalid count '{value}' for {name}")
            families.append(
                FamilyObservation(id=fields[1].strip(), description=fields[0].strip(), counts=counts)
            )

        table = cls(species=species, families=families)
        table.mark_duplicates()
        return table

    @classmethod
    def from_counts(cls, counts: dict[str, dict[str, Optional[int]]]) -> "FamilyTable":
        """
        Build a table from ``{family_id: {species: count}}``.

        Examples
        --------
        >>> table = FamilyTable.from_counts({"fam1": {"A": 2, "B": 3}})
        """
        species = []
        for family_counts in counts.values():
            for name in family_counts:
                if name not in species:
                    species.append(name)
        families = [
            FamilyObservation(id=family_id, counts={name: family_counts.get(name) for name in species})
            for family_id, family_counts in counts.items()
        ]
        table = cls(species=species, families=families)
        table.mark_duplicates()
        return table

    @property
    def n_families(self) -> int:
        return len(self.families)

    def __len__(self) -> int:
        return len(self.families)

    def __iter__(self) -> Iterator[FamilyObservation]:
        return iter(self.families)

    def __getitem__(self, index: int) -> FamilyObservation:
        return self.families[index]

    def index_of(self, family_id: str) -> int:
        try:
            return self._index[family_id]
        except KeyError:
            raise KeyError(f"Unknown family: {family_id}")

    def leaf_counts(self, family_id: str) -> dict[str, Optional[int]]:
        """Gene count per species for one family."""
        return dict(self.families[self.index_of(family_id)].counts)

    def max_count(self) -> int:
        """Largest observed count over all families and species."""
        return max((family.max_count() for family in self.families), default=0)

    def mark_duplicates(self) -> int:
        """
        Point each family at the first earlier family with identical counts.

        Returns
        -------
        int
            Number of families marked as duplicates
        """
        first_seen = {}
        n_duplicates = 0
        for i, family in enumerate(self.families):
            key = tuple(family.counts.get(name) for name in self.species)
            if key in first_seen:
                family.ref = first_seen[key]
                n_duplicates += 1
            else:
                first_seen[key] = i
                family.ref = None
        return n_duplicates

    def is_duplicate(self, index: int) -> bool:
        ref = self.families[index].ref
        return ref is not None and ref != index

    def invalidate_root_cache(self) -> None:
        """Forget every family's cached most-likely root size."""
        for family in self.families:
            family.max_likelihood_root = None

"""
Posterior score over a cartesian grid of rates.
"""

import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from ..exceptions import ZeroPosteriorError
from ..io.report import open_output
from ..session import LambdaSession
from .scoring import INFEASIBLE_SCORE, PosteriorScorer

logger = logging.getLogger(__name__)

# Scores below -IMPOSSIBLE_SCORE mean the fit is effectively impossible
IMPOSSIBLE_SCORE = 1e300

try:
    import pandas as pd
    PANDAS_AVAILABLE = True
except ImportError:
    PANDAS_AVAILABLE = False


@dataclass(frozen=True)
class RangeSpec:
    """
    Evenly spaced values ``start, start + step, ..., end`` for one rate.

    Examples
    --------
    >>> RangeSpec.parse("0.001:0.001:0.005").n_points
    5
    """

    start: float
    step: float
    end: float

    def __post_init__(self):
        if not self.step > 0:
            raise ValueError(f"Range step must be positive, got {self.step}")
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} exceeds end {self.end}")

    @classmethod
    def parse(cls, text: str) -> "RangeSpec":
        """Parse ``start:step:end``."""
        parts = text.split(':')
        if len(parts) != 3:
            raise ValueError(f"Range must be start:step:end, got '{text}'")
        try:
            start, step, end = (float(part) for part in parts)
        except ValueError:
            raise ValueError(f"Range must contain numbers, got '{text}'")
        return cls(start, step, end)

    @property
    def n_points(self) -> int:
        return 1 + int(np.rint((self.end - self.start) / self.step))

    def values(self) -> np.ndarray:
        return self.start + self.step * np.arange(self.n_points)

    def __str__(self) -> str:
        return f"{self.start:g} : {self.step:g} : {self.end:g}"


@dataclass
class GridResult:
    """
    Scores of every grid point.

    Attributes
    ----------
    ranges : list[RangeSpec]
        One range per rate dimension
    points : np.ndarray, shape (n_points, n_dims)
        Rate vectors in scan order (last dimension varies fastest)
    scores : np.ndarray, shape (n_points,)
        Log-posterior score at each point
    """

    ranges: list[RangeSpec]
    points: np.ndarray
    scores: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @property
    def n_points(self) -> int:
        return len(self.scores)

    @property
    def best(self) -> tuple[np.ndarray, float]:
        """Point with the highest score and that score."""
        i = int(np.argmax(self.scores))
        return self.points[i], float(self.scores[i])

    def rows(self) -> list[list[float]]:
        return [list(point) + [score] for point, score in zip(self.points, self.scores)]

    def to_dict(self) -> dict:
        point, score = self.best
        return {
            'ranges': [[spec.start, spec.step, spec.end] for spec in self.ranges],
            'points': self.points.tolist(),
            'scores': [float(s) for s in self.scores],
            'best': {'rates': [float(r) for r in point], 'score': score},
        }

    def to_json(self, filepath: Optional[str] = None, indent: int = 2) -> str:
        json_str = json.dumps(self.to_dict(), indent=indent)
        if filepath:
            with open_output(filepath) as f:
                f.write(json_str)
        return json_str

    def to_dataframe(self):
        """
        Grid as a pandas DataFrame (columns lambda1..lambdaD, score).

        Raises
        ------
        ImportError
            If pandas is not installed
        """
        if not PANDAS_AVAILABLE:
            raise ImportError("pandas is required for to_dataframe(); install with 'pip install pandas'")
        columns = [f"lambda{i + 1}" for i in range(self.points.shape[1])]
        frame = pd.DataFrame(self.points, columns=columns)
        frame["score"] = self.scores
        return frame


class GridScanner:
    """
    Evaluate the posterior score on every point of a rate grid.

    A point where some family has zero posterior scores log(0) instead
    of aborting the scan. Points whose score is effectively impossible
    invalidate every family's cached most-likely root size.

    Parameters
    ----------
    session : LambdaSession
        Session with tree, families and prior
    scorer : PosteriorScorer, optional
        Scorer to use (built from the session prior if omitted)
    """

    def __init__(self, session: LambdaSession, scorer: Optional[PosteriorScorer] = None):
        self.session = session
        self.scorer = scorer or PosteriorScorer(session, session.require_prior())

    def scan(self, ranges: Sequence[RangeSpec]) -> GridResult:
        """
        Score the cartesian product of ``ranges``.

        Parameters
        ----------
        ranges : sequence of RangeSpec
            One range per rate class

        Returns
        -------
        GridResult
            Points and their scores
        """
        ranges = list(ranges)
        if len(ranges) != self.session.n_rate_classes:
            raise ValueError(
                f"Expected {self.session.n_rate_classes} ranges (one per rate class), got {len(ranges)}"
            )
        for i, spec in enumerate(ranges):
            logger.info("%d. Distribution: %s", i + 1, spec)

        points = np.array(list(itertools.product(*(spec.values() for spec in ranges))), dtype=float)
        scores = np.zeros(len(points))
        for i, point in enumerate(points):
            try:
                scores[i] = self.scorer.score(point)
            except ZeroPosteriorError as e:
                logger.info("%s; scoring %s as log(0)", e, point)
                scores[i] = INFEASIBLE_SCORE
            if -scores[i] > IMPOSSIBLE_SCORE:
                self.session.families.invalidate_root_cache()
        return GridResult(ranges=ranges, points=points, scores=scores)

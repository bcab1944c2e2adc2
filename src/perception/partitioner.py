"""Range-adaptive partitioning of a frame into concentric regions.

Point density of a rotating LiDAR falls off with range, so a single
clustering tolerance either merges nearby pedestrians or fragments
distant ones.  The frame is therefore split into 14 nested shells
around the sensor and each shell is clustered with its own tolerance.

Shell widths are consumed as cumulative thresholds: with widths
``(2, 3, 3, ...)`` the shells are ``(0, 2]``, ``(2, 5]``, ``(5, 8]`` and
so on.  Membership is decided on squared range, so no square roots are
taken.  A point belongs to the first shell whose interval contains it;
points at the origin or beyond the outermost threshold belong to none.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .filters import check_points


REGION_WIDTHS: Tuple[float, ...] = (2, 3, 3, 3, 3, 3, 3, 2, 3, 3, 3, 3, 3, 3)
"""Widths (metres) of the 14 nested regions, innermost first."""

NO_REGION = -1


def squared_range(points: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance of every point from the sensor origin."""
    xyz = points[:, :3]
    return np.einsum('ij,ij->i', xyz, xyz)


@dataclass(frozen=True)
class RegionPartitioner:
    """Assign frame points to nested range regions."""

    widths: Tuple[float, ...] = REGION_WIDTHS
    """Region widths in metres, innermost first."""

    def __post_init__(self):
        if len(self.widths) == 0:
            raise ValueError("at least one region width is required")
        if any(w <= 0 for w in self.widths):
            raise ValueError("region widths must be positive")

    @property
    def n_regions(self) -> int:
        return len(self.widths)

    @property
    def thresholds(self) -> np.ndarray:
        """Outer radius of every region (cumulative widths)."""
        return np.cumsum(np.asarray(self.widths, dtype=np.float64))

    @property
    def max_range(self) -> float:
        return float(self.thresholds[-1])

    def bounds(self, region: int) -> Tuple[float, float]:
        """Return the (inner, outer) radius of a region in metres."""
        outer = self.thresholds[region]
        return float(outer - self.widths[region]), float(outer)

    def assign(self, points: np.ndarray) -> np.ndarray:
        """Return the region index of every point.

        Parameters
        ----------
        points : numpy.ndarray
            Array of shape (N, M) with XYZ in columns 0-2.

        Returns
        -------
        numpy.ndarray
            Integer array of length N.  Points that fall in no region
            (at the origin or beyond `max_range`) are labelled -1.
        """
        pts = check_points(points)
        edges = np.concatenate(([0.0], self.thresholds)) ** 2
        d2 = squared_range(pts)
        # side='left' makes each interval open below and closed above
        labels = np.searchsorted(edges, d2, side='left') - 1
        labels[(labels < 0) | (labels >= self.n_regions)] = NO_REGION
        return labels

    def partition(self, points: np.ndarray) -> List[np.ndarray]:
        """Split point indices into one index array per region.

        Every index appears in at most one array, and every point within
        `max_range` (other than the origin itself) appears in exactly one.
        Indices keep the frame's point order.
        """
        labels = self.assign(points)
        return [np.flatnonzero(labels == region) for region in range(self.n_regions)]

"""Per-region cluster extraction.

For every region with enough points the orchestrator copies the
region's points into a buffer, asks the clustering engine for index
groups using a tolerance that grows with range, checks the groups
against the engine contract and turns them into `Cluster` objects.
An optional size gate drops clusters whose bounding box cannot be a
standing person.

A failing region is logged and skipped; the other regions of the frame
are still processed.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..utils.logging import get_logger
from .cluster_engine import ClusterEngine, EuclideanClusterEngine
from .errors import ClusterEngineError


logger = get_logger(__name__)


HUMAN_SIZE_LIMITS: Tuple[Tuple[float, float], ...] = (
    (0.2, 1.0),
    (0.2, 1.0),
    (0.5, 2.0),
)
"""Accepted (min, max) bounding-box extent along x, y and z in metres."""


@dataclass
class Cluster:
    """A group of frame points returned by the clustering engine."""

    region: int
    """Index of the region the cluster was found in."""

    indices: np.ndarray
    """Indices of the member points in the frame array."""

    points: np.ndarray
    """Member XYZ coordinates, shape (N, 3)."""

    min: np.ndarray
    """Lower corner of the axis-aligned bounding box."""

    max: np.ndarray
    """Upper corner of the axis-aligned bounding box."""

    centroid: np.ndarray
    """Mean of the member points."""

    @classmethod
    def from_points(cls, region: int, indices: np.ndarray, points: np.ndarray) -> "Cluster":
        xyz = np.asarray(points[:, :3], dtype=np.float64)
        return cls(
            region=region,
            indices=indices,
            points=xyz,
            min=xyz.min(axis=0),
            max=xyz.max(axis=0),
            centroid=xyz.mean(axis=0),
        )

    @property
    def size(self) -> int:
        return len(self.points)

    @property
    def extent(self) -> np.ndarray:
        """Bounding-box dimensions along x, y and z."""
        return self.max - self.min


def is_human_sized(extent: Sequence[float]) -> bool:
    """Return True if a bounding box could contain a standing person."""
    return all(lo <= e <= hi for e, (lo, hi) in zip(extent, HUMAN_SIZE_LIMITS))


def validate_groups(groups: Sequence[np.ndarray], n_points: int) -> List[np.ndarray]:
    """Check engine output and return the groups as integer arrays.

    Raises
    ------
    ClusterEngineError
        If the result is not a sequence of index arrays, or a group is
        empty, holds non-integer indices, holds an index outside
        ``[0, n_points)`` or shares an index with another group.
    """
    if groups is None:
        raise ClusterEngineError("engine returned no groups")
    try:
        groups = list(groups)
    except TypeError as exc:
        raise ClusterEngineError(f"engine result is not a sequence of groups: {exc}") from exc

    seen = np.zeros(n_points, dtype=bool)
    checked = []
    for k, group in enumerate(groups):
        try:
            idx = np.asarray(group).ravel()
        except ValueError as exc:
            raise ClusterEngineError(f"group {k} is not an index array: {exc}") from exc
        if idx.size == 0:
            raise ClusterEngineError(f"group {k} is empty")
        if idx.dtype.kind not in 'iu':
            raise ClusterEngineError(f"group {k} has non-integer indices of dtype {idx.dtype}")
        idx = idx.astype(np.int64)
        if idx.min() < 0 or idx.max() >= n_points:
            raise ClusterEngineError(f"group {k} has an index outside [0, {n_points})")
        if np.unique(idx).size != idx.size or seen[idx].any():
            raise ClusterEngineError(f"group {k} overlaps another group")
        seen[idx] = True
        checked.append(idx)
    return checked


class RegionArena:
    """Contiguous float32 copy of one region's points.

    The buffer handed to the clustering engine lives exactly as long as
    the `with` block; it is dropped on exit, after the groups have been
    copied out.
    """

    def __init__(self, points: np.ndarray, indices: np.ndarray):
        self._points = points
        self._indices = indices
        self.buffer: Optional[np.ndarray] = None

    def __enter__(self) -> np.ndarray:
        self.buffer = np.ascontiguousarray(self._points[self._indices, :3], dtype=np.float32)
        return self.buffer

    def __exit__(self, exc_type, exc, tb) -> None:
        self.buffer = None

    @property
    def released(self) -> bool:
        return self.buffer is None


@dataclass
class ClusterOrchestrator:
    """Drive the clustering engine over the regions of one frame."""

    engine: ClusterEngine = field(default_factory=EuclideanClusterEngine)
    """Clustering engine honouring the `ClusterEngine` contract."""

    cluster_size_min: int = 5
    """Minimum points per cluster; also the region skip threshold."""

    cluster_size_max: int = 30000
    """Maximum points per cluster."""

    human_size_limit: bool = False
    """Drop clusters whose bounding box is outside `HUMAN_SIZE_LIMITS`."""

    tolerance_step: float = 0.1
    """Tolerance growth per region in metres."""

    def tolerance_for(self, region: int) -> float:
        """Clustering tolerance for a region: 0.1 m, 0.2 m, ... outward."""
        return self.tolerance_step * (region + 1)

    def cluster_region(self, points: np.ndarray, indices: np.ndarray, region: int) -> List[Cluster]:
        """Cluster the points of one region.

        Parameters
        ----------
        points : numpy.ndarray
            Full frame array with XYZ in columns 0-2.
        indices : numpy.ndarray
            Frame indices belonging to the region.
        region : int
            Region index, used to pick the tolerance.

        Returns
        -------
        list of Cluster
            Clusters in engine order, size gate already applied.

        Raises
        ------
        ClusterEngineError
            If the engine raises or breaks its output contract.
        """
        tolerance = self.tolerance_for(region)
        arena = RegionArena(points, indices)
        with arena as buffer:
            try:
                groups = self.engine.extract(
                    buffer,
                    self.cluster_size_min,
                    self.cluster_size_max,
                    tolerance,
                    tolerance,
                    tolerance,
                )
                groups = validate_groups(groups, len(buffer))
            except ClusterEngineError:
                raise
            except Exception as exc:
                raise ClusterEngineError(f"clustering failed in region {region}: {exc}") from exc

        clusters = []
        for group in groups:
            member_indices = indices[group]
            cluster = Cluster.from_points(region, member_indices, points[member_indices])
            if self.human_size_limit and not is_human_sized(cluster.extent):
                logger.debug(
                    "Region %d: dropped cluster of %d points with extent %s",
                    region, cluster.size, np.round(cluster.extent, 3).tolist(),
                )
                continue
            clusters.append(cluster)

        logger.debug(
            "Region %d: %d points, tolerance %.2f m, %d groups, %d kept",
            region, len(indices), tolerance, len(groups), len(clusters),
        )
        return clusters

    def run(self, points: np.ndarray, regions: Sequence[np.ndarray]) -> List[Cluster]:
        """Cluster every region in ascending order.

        Regions with `cluster_size_min` points or fewer are skipped.  A
        region whose clustering fails is logged and skipped as well.
        """
        clusters: List[Cluster] = []
        for region, indices in enumerate(regions):
            if len(indices) <= self.cluster_size_min:
                continue
            try:
                clusters.extend(self.cluster_region(points, indices, region))
            except ClusterEngineError as exc:
                logger.warning("Skipping region %d: %s", region, exc)
        return clusters

"""Euclidean clustering engines.

The orchestrator drives clustering through a small contract so the
engine can run anywhere (CPU here, a GPU implementation elsewhere):

    extract(points, min_size, max_size, tol_x, tol_y, tol_z) -> groups

Each returned group is an integer index array into `points`.  Groups
are non-empty and pairwise disjoint.  Their order is decided by the
engine and carries no geometric meaning.

`EuclideanClusterEngine` is the reference implementation.  Two points
are neighbours when their per-axis offsets, divided by the per-axis
tolerance, lie within the unit sphere; clusters are the connected
components of that neighbour graph.
"""

from typing import List, Protocol, Sequence

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree


class ClusterEngine(Protocol):
    """Anything that can split a point set into index groups."""

    def extract(
        self,
        points: np.ndarray,
        min_size: int,
        max_size: int,
        tol_x: float,
        tol_y: float,
        tol_z: float,
    ) -> Sequence[np.ndarray]:
        ...


class EuclideanClusterEngine:
    """Connected-component clustering on a KD-tree neighbour graph."""

    def extract(
        self,
        points: np.ndarray,
        min_size: int,
        max_size: int,
        tol_x: float,
        tol_y: float,
        tol_z: float,
    ) -> List[np.ndarray]:
        """Group points whose scaled distance is within tolerance.

        Parameters
        ----------
        points : numpy.ndarray
            Array of shape (N, M) with XYZ in columns 0-2.
        min_size, max_size : int
            Inclusive bounds on the number of points per group.
        tol_x, tol_y, tol_z : float
            Neighbour tolerance along each axis in metres.

        Returns
        -------
        list of numpy.ndarray
            Index groups ordered by their lowest member index.
        """
        tolerance = np.array([tol_x, tol_y, tol_z], dtype=np.float64)
        if np.any(tolerance <= 0):
            raise ValueError("cluster tolerances must be positive")
        n = len(points)
        if n == 0:
            return []

        scaled = np.asarray(points[:, :3], dtype=np.float64) / tolerance
        tree = cKDTree(scaled)
        pairs = tree.query_pairs(r=1.0, output_type='ndarray')
        graph = coo_matrix(
            (np.ones(len(pairs), dtype=np.int8), (pairs[:, 0], pairs[:, 1])),
            shape=(n, n),
        )
        _, labels = connected_components(graph, directed=False)

        groups = []
        # labels are numbered in order of each component's lowest index
        order = np.argsort(labels, kind='stable')
        boundaries = np.flatnonzero(np.diff(labels[order])) + 1
        for members in np.split(order, boundaries):
            if min_size <= len(members) <= max_size:
                groups.append(members)
        groups.sort(key=lambda g: g[0])
        return groups

"""Geometric descriptors of point clusters.

Each accepted cluster is summarised by a 34-dimensional vector that the
human classifier consumes:

===========  ====  ==================================================
block        dims  content
===========  ====  ==================================================
count           1  number of member points
min_distance    1  smallest squared range of a member point
covariance      6  upper triangle of the covariance of the
                   PCA-projected points about the cluster centroid
moment          6  upper triangle of the moment of inertia tensor of
                   the PCA-projected points
slice          20  extents along the first two principal axes of 10
                   equal-height slices of the raw cluster
===========  ====  ==================================================

The distance is kept squared and the inertia tensor is a plain sum over
points (not divided by the count): trained models expect exactly these
values.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .orchestrator import Cluster
from .partitioner import squared_range


FEATURE_SIZE = 34
"""Length of the descriptor vector."""

SLICE_BINS = 10
"""Number of height slices in the slice descriptor."""

UPPER_TRIANGLE = np.triu_indices(3)


@dataclass
class Feature:
    """Descriptor of one cluster plus the fields needed to report it."""

    centroid: np.ndarray
    min: np.ndarray
    max: np.ndarray
    number_points: int
    min_distance: float
    covariance: np.ndarray
    """Covariance entries (0,0), (0,1), (0,2), (1,1), (1,2), (2,2)."""
    moment: np.ndarray
    """Inertia tensor entries in the same order as `covariance`."""
    slice: np.ndarray
    """Width and height of each height slice, bottom slice first."""

    @property
    def vector(self) -> np.ndarray:
        """The descriptor as a flat float array of length `FEATURE_SIZE`."""
        return np.concatenate((
            [float(self.number_points), self.min_distance],
            self.covariance,
            self.moment,
            self.slice,
        )).astype(np.float64)


def pca_project(points: np.ndarray) -> np.ndarray:
    """Express points in the basis of their own principal components.

    Points are centred on their mean and rotated so that the first axis
    follows the largest-variance direction.  The basis is made
    right-handed.

    Parameters
    ----------
    points : numpy.ndarray
        Array of shape (N, 3).

    Returns
    -------
    numpy.ndarray
        Projected coordinates, shape (N, 3).
    """
    xyz = np.asarray(points[:, :3], dtype=np.float64)
    centred = xyz - xyz.mean(axis=0)
    scatter = centred.T @ centred / len(xyz)
    _, eigenvectors = np.linalg.eigh(scatter)
    basis = eigenvectors[:, ::-1].copy()
    basis[:, 2] = np.cross(basis[:, 0], basis[:, 1])
    return centred @ basis


def normalized_covariance(points: np.ndarray, centre: Optional[np.ndarray] = None) -> np.ndarray:
    """3x3 covariance of the points about `centre`, divided by the point count.

    Parameters
    ----------
    points : numpy.ndarray
        Array of shape (N, 3).
    centre : numpy.ndarray, optional
        Reference point; defaults to the mean of `points`.

    Notes
    -----
    The descriptor passes the PCA-projected points together with the
    cluster centroid in sensor coordinates.  The projected points are
    centred on the origin, so the result is their own covariance plus
    the outer product of the centroid with itself.  Trained models
    expect exactly this value.
    """
    if centre is None:
        centre = points.mean(axis=0)
    d = points - np.asarray(centre, dtype=np.float64)
    return d.T @ d / len(points)


def inertia_tensor(points: np.ndarray) -> np.ndarray:
    """Moment of inertia tensor of unit point masses about the origin.

    The sums are not divided by the number of points.
    """
    x, y, z = points[:, 0], points[:, 1], points[:, 2]
    ixy = -np.sum(x * y)
    ixz = -np.sum(x * z)
    iyz = -np.sum(y * z)
    return np.array([
        [np.sum(y * y + z * z), ixy, ixz],
        [ixy, np.sum(x * x + z * z), iyz],
        [ixz, iyz, np.sum(x * x + y * y)],
    ])


def upper_triangle(matrix: np.ndarray) -> np.ndarray:
    """Six independent entries of a symmetric 3x3 matrix, row-major."""
    return np.asarray(matrix)[UPPER_TRIANGLE]


def compute_slice(points: np.ndarray, n: int = SLICE_BINS) -> np.ndarray:
    """Per-slice extents of a cluster along its vertical axis.

    The z-range of the cluster is cut into `n` slices of equal height.
    Each slice with at least three points is projected onto its own
    principal axes and contributes the extents along the first two of
    them; sparser slices contribute zeros.  A cluster with no height
    yields all zeros.

    Parameters
    ----------
    points : numpy.ndarray
        Cluster points, shape (N, 3), in sensor coordinates.
    n : int, optional
        Number of slices.

    Returns
    -------
    numpy.ndarray
        Array of length ``2 * n`` holding (width, height) per slice.
    """
    if n < 1:
        raise ValueError("n must be positive")
    slice_values = np.zeros(2 * n)
    z = points[:, 2]
    z_min = z.min()
    itv = (z.max() - z_min) / n
    if itv <= 0:
        return slice_values

    bins = np.minimum(n - 1, np.floor((z - z_min) / itv).astype(int))
    for i in range(n):
        block = points[bins == i]
        if len(block) > 2:
            projected = pca_project(block)
            extent = projected.max(axis=0) - projected.min(axis=0)
            slice_values[2 * i] = extent[0]
            slice_values[2 * i + 1] = extent[1]
    return slice_values


def extract_feature(cluster: Cluster) -> Feature:
    """Compute the descriptor of a cluster."""
    points = cluster.points
    projected = pca_project(points)
    return Feature(
        centroid=cluster.centroid,
        min=cluster.min,
        max=cluster.max,
        number_points=len(points),
        min_distance=float(squared_range(points).min()),
        covariance=upper_triangle(normalized_covariance(projected, cluster.centroid)),
        moment=upper_triangle(inertia_tensor(projected)),
        slice=compute_slice(points, SLICE_BINS),
    )

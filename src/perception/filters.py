"""Point filters applied before range partitioning.

The detector only looks at points inside a vertical band, which removes
the ground plane and the ceiling (or overhanging structures) in one
pass.  Points are stored in an `(N, M)` array with XYZ in the first
three columns; extra columns are carried through untouched.
"""

import numpy as np


def check_points(points: np.ndarray) -> np.ndarray:
    """Validate a point array and return it as a float array.

    Raises
    ------
    ValueError
        If `points` is not two-dimensional with at least three columns.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] < 3:
        raise ValueError("points must be an (N, 3) array with XYZ in columns 0-2")
    return pts


def z_band_mask(points: np.ndarray, z_min: float, z_max: float) -> np.ndarray:
    """Boolean mask of points with `z_min <= z <= z_max`."""
    z = points[:, 2]
    return (z >= z_min) & (z <= z_max)


def filter_z_band(points: np.ndarray, z_min: float, z_max: float) -> np.ndarray:
    """Keep points whose height lies inside the inclusive band.

    Parameters
    ----------
    points : numpy.ndarray
        Array of shape (N, M) with XYZ in columns 0-2.
    z_min, z_max : float
        Lower and upper height limits in metres.

    Returns
    -------
    numpy.ndarray
        Filtered points, in their original order.
    """
    if z_min > z_max:
        raise ValueError(f"z_min ({z_min}) must not exceed z_max ({z_max})")
    pts = check_points(points)
    return pts[z_band_mask(pts, z_min, z_max)]

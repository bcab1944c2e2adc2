"""Reading point-cloud frames from disk.

Supported formats:

* ``.npy``  - NumPy array with XYZ in the first three columns
* ``.txt``  - whitespace separated rows (KITTI text export)
* ``.bin``  - KITTI velodyne binary, float32 x, y, z, intensity
* ``.las`` / ``.laz`` - read with laspy

Every loader returns an ``(N, 3)`` float64 array of XYZ coordinates.
"""

from pathlib import Path
from typing import List, Union

import laspy
import numpy as np


FRAME_SUFFIXES = (".npy", ".txt", ".bin", ".las", ".laz")


def load_las_points(path: Union[str, Path]) -> np.ndarray:
    path = Path(path)
    with laspy.open(path) as f:
        las = f.read()
    return np.column_stack([las.x, las.y, las.z]).astype(np.float64)


def load_frame(path: Union[str, Path]) -> np.ndarray:
    """Load one frame as an ``(N, 3)`` array.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the suffix is not supported or the data has fewer than three
        columns.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point cloud file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".npy":
        points = np.load(path)
    elif suffix == ".txt":
        points = np.loadtxt(path, dtype=np.float64, ndmin=2)
    elif suffix == ".bin":
        points = np.fromfile(path, dtype=np.float32).reshape(-1, 4)
    elif suffix in (".las", ".laz"):
        points = load_las_points(path)
    else:
        raise ValueError(f"Unsupported frame format: {path.suffix}")

    if points.ndim != 2 or points.shape[1] < 3:
        raise ValueError(f"{path}: expected at least three columns, got shape {points.shape}")
    return np.asarray(points[:, :3], dtype=np.float64)


def discover_frames(directory: Union[str, Path]) -> List[Path]:
    """List frame files in a directory, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in FRAME_SUFFIXES)

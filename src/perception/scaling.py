"""Min-max feature scaling with learned per-dimension ranges.

Classifiers are trained on descriptors rescaled by libsvm's
``svm-scale``; the same transform has to be applied at detection time.
The ranges come from the range file written during training::

    x
    -1 1
    1 5 2931
    2 1.02 1597.3
    ...

The first line is a header, the second holds the target interval and
every following line is ``index min max`` with a 1-based feature index.
Dimensions that are not listed are passed through unchanged.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import numpy as np

from .errors import ScaleRangeError
from .features import FEATURE_SIZE


EPS = np.finfo(np.float64).eps


@dataclass(frozen=True)
class ScaleRange:
    """Per-dimension source ranges and a common target interval."""

    lower: np.ndarray = field(default_factory=lambda: np.zeros(FEATURE_SIZE))
    upper: np.ndarray = field(default_factory=lambda: np.zeros(FEATURE_SIZE))
    target_lower: float = -1.0
    target_upper: float = 1.0

    def __post_init__(self):
        if np.shape(self.lower) != np.shape(self.upper) or np.ndim(self.lower) != 1:
            raise ValueError("lower and upper must be 1-D arrays of equal length")
        for name in ('lower', 'upper'):
            values = np.array(getattr(self, name), dtype=np.float64)
            values.setflags(write=False)
            object.__setattr__(self, name, values)

    @property
    def size(self) -> int:
        return len(self.lower)

    def scale(self, vector: np.ndarray) -> np.ndarray:
        """Rescale a descriptor into the target interval.

        A dimension whose lower and upper bounds coincide is left as is.
        A value equal to a bound maps exactly onto the matching target
        bound; anything else is interpolated linearly (values outside the
        learned range extrapolate).

        Parameters
        ----------
        vector : numpy.ndarray
            Descriptor of length `size`.

        Returns
        -------
        numpy.ndarray
            Scaled copy of the descriptor.
        """
        values = np.asarray(vector, dtype=np.float64)
        if values.shape != (self.size,):
            raise ValueError(f"expected a vector of length {self.size}, got shape {values.shape}")
        scaled = values.copy()
        span = self.upper - self.lower
        active = np.abs(span) >= EPS
        at_lower = active & (np.abs(values - self.lower) < EPS)
        at_upper = active & ~at_lower & (np.abs(values - self.upper) < EPS)
        between = active & ~at_lower & ~at_upper

        t_lo, t_hi = self.target_lower, self.target_upper
        scaled[at_lower] = t_lo
        scaled[at_upper] = t_hi
        scaled[between] = t_lo + (t_hi - t_lo) * (
            (values[between] - self.lower[between]) / span[between]
        )
        return scaled


def load_scale_range(path: Union[str, Path], size: int = FEATURE_SIZE) -> ScaleRange:
    """Parse an svm-scale range file.

    Parameters
    ----------
    path : str or Path
        Range file written by ``svm-scale -s``.
    size : int, optional
        Number of feature dimensions.

    Returns
    -------
    ScaleRange
        Parsed ranges; unlisted dimensions get ``(0, 0)``.

    Raises
    ------
    OSError
        If the file cannot be read.
    ScaleRangeError
        If the file does not follow the expected layout.
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        lines = [line.strip() for line in f if line.strip()]

    if not lines or lines[0] != 'x':
        raise ScaleRangeError(f"{path}: expected 'x' header line")
    if len(lines) < 2:
        raise ScaleRangeError(f"{path}: missing target bounds line")
    try:
        target_lower, target_upper = (float(v) for v in lines[1].split())
    except ValueError as exc:
        raise ScaleRangeError(f"{path}: bad target bounds {lines[1]!r}") from exc

    lower = np.zeros(size)
    upper = np.zeros(size)
    for lineno, line in enumerate(lines[2:], start=3):
        parts = line.split()
        try:
            if len(parts) != 3:
                raise ValueError(line)
            index = int(parts[0])
            fmin, fmax = float(parts[1]), float(parts[2])
        except ValueError as exc:
            raise ScaleRangeError(f"{path}:{lineno}: bad range row {line!r}") from exc
        if not 1 <= index <= size:
            raise ScaleRangeError(f"{path}:{lineno}: feature index {index} outside 1..{size}")
        lower[index - 1] = fmin
        upper[index - 1] = fmax

    return ScaleRange(lower=lower, upper=upper, target_lower=target_lower, target_upper=target_upper)

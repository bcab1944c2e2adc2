"""Detection records and their tabular export.

A detection is the only output of the detector: where the accepted
cluster is and how large its box is, plus the classifier probability
when one was computed.  Publishing or drawing detections is left to
the caller.  For offline runs the records can be flattened into a
pandas DataFrame and written to Parquet.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .classifier import ClassifierDecision
from .features import Feature


Vec3 = Tuple[float, float, float]

COLUMNS = [
    "frame",
    "frame_id",
    "centroid_x", "centroid_y", "centroid_z",
    "bbox_min_x", "bbox_min_y", "bbox_min_z",
    "bbox_max_x", "bbox_max_y", "bbox_max_z",
    "probability",
]


@dataclass(frozen=True)
class Detection:
    """An accepted cluster."""

    centroid: Vec3
    bbox_min: Vec3
    bbox_max: Vec3
    probability: Optional[float] = None
    frame_id: str = ""
    """Coordinate frame the positions are expressed in."""

    def to_dict(self) -> Dict[str, Union[str, float, None]]:
        """Flatten the record into scalar columns."""
        row: Dict[str, Union[str, float, None]] = {"frame_id": self.frame_id}
        for name, vec in (("centroid", self.centroid), ("bbox_min", self.bbox_min), ("bbox_max", self.bbox_max)):
            for axis, value in zip("xyz", vec):
                row[f"{name}_{axis}"] = value
        row["probability"] = self.probability
        return row


def _vec3(values) -> Vec3:
    return (float(values[0]), float(values[1]), float(values[2]))


def assemble_detection(feature: Feature, decision: ClassifierDecision, frame_id: str = "") -> Detection:
    """Build the output record of an accepted cluster."""
    return Detection(
        centroid=_vec3(feature.centroid),
        bbox_min=_vec3(feature.min),
        bbox_max=_vec3(feature.max),
        probability=decision.probability,
        frame_id=frame_id,
    )


def assemble_detections(
    features: Sequence[Feature],
    decisions: Sequence[ClassifierDecision],
    frame_id: str = "",
) -> List[Detection]:
    """Keep the features whose decision accepts them, in input order."""
    if len(features) != len(decisions):
        raise ValueError("features and decisions must have the same length")
    return [
        assemble_detection(feature, decision, frame_id)
        for feature, decision in zip(features, decisions)
        if decision.accept
    ]


def detections_to_dataframe(frames: Iterable[Sequence[Detection]]) -> pd.DataFrame:
    """Tabulate detections of several frames, one row per detection.

    Parameters
    ----------
    frames : iterable of sequences of Detection
        Detections grouped by frame; the position in the iterable
        becomes the ``frame`` column.

    Returns
    -------
    pandas.DataFrame
        Columns as in `COLUMNS`.  Empty frames contribute no rows.
    """
    rows = []
    for frame_idx, detections in enumerate(frames):
        for detection in detections:
            rows.append({"frame": frame_idx, **detection.to_dict()})
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["frame"] = df["frame"].astype("int64")
    df["probability"] = df["probability"].astype("float64")
    return df


def export_detections(frames: Iterable[Sequence[Detection]], path: Union[str, Path]) -> Path:
    """Write detections to a Parquet file and return its path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    detections_to_dataframe(frames).to_parquet(path, index=False)
    return path

"""Frame-level pedestrian detection pipeline.

One frame flows strictly forward through the stages::

    z-band filter -> partition -> cluster (per region) -> describe
                  -> classify -> assemble

The detector itself holds only read-only state (configuration, the
clustering engine and the optional classifier).  Everything produced
while processing a frame lives in a `FrameContext` that is discarded
once the detections have been handed back.  Frames are processed one
at a time.

Usage:
    object3d-detect --input frames/ --config configs/detector.yaml --output detections.parquet
"""

import argparse
import logging
import sys
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from tqdm import tqdm

from ..common.lidar_io import discover_frames, load_frame
from ..utils.config import load_config
from ..utils.logging import get_logger
from .classifier import ClassifierDecision, HumanClassifier, classify, load_classifier
from .cluster_engine import ClusterEngine, EuclideanClusterEngine
from .detections import Detection, assemble_detections, export_detections
from .features import Feature, extract_feature
from .filters import check_points, filter_z_band
from .orchestrator import Cluster, ClusterOrchestrator
from .partitioner import RegionPartitioner
from .runner import FrameRateMeter


logger = get_logger(__name__)


@dataclass(frozen=True)
class DetectorConfig:
    """Detector parameters, loaded once at start-up."""

    z_limit_min: float = -0.8
    """Lower bound of the kept height band (removes the ground)."""

    z_limit_max: float = 1.2
    """Upper bound of the kept height band (removes the ceiling)."""

    cluster_size_min: int = 5
    cluster_size_max: int = 30000

    human_probability: float = 0.7
    """Minimum positive-class probability for probability models."""

    human_size_limit: bool = False
    """Drop clusters whose bounding box cannot be a person."""

    model_file_name: str = ""
    range_file_name: str = ""

    positive_label: int = 1
    """Class code the classifier uses for humans."""

    frame_id: str = "rslidar"
    """Coordinate frame name stamped on every detection."""

    print_fps: bool = False
    """Log the processing rate every 10 frames."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectorConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "DetectorConfig":
        """Read a config file; missing files give the defaults."""
        return cls.from_dict(load_config(path))


@dataclass
class FrameContext:
    """Everything computed for one frame."""

    points: np.ndarray
    regions: List[np.ndarray] = field(default_factory=list)
    clusters: List[Cluster] = field(default_factory=list)
    features: List[Feature] = field(default_factory=list)
    decisions: List[ClassifierDecision] = field(default_factory=list)
    detections: List[Detection] = field(default_factory=list)


class Object3dDetector:
    """Turn point-cloud frames into human detections.

    Parameters
    ----------
    config : DetectorConfig, optional
        Detector parameters.
    engine : ClusterEngine, optional
        Clustering engine; defaults to `EuclideanClusterEngine`.
    classifier : HumanClassifier, optional
        Human classifier.  None selects model-free mode.
    partitioner : RegionPartitioner, optional
        Range partitioner; defaults to the 14 standard regions.
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        engine: Optional[ClusterEngine] = None,
        classifier: Optional[HumanClassifier] = None,
        partitioner: Optional[RegionPartitioner] = None,
    ):
        self.config = config or DetectorConfig()
        self.partitioner = partitioner or RegionPartitioner()
        self.orchestrator = ClusterOrchestrator(
            engine=engine or EuclideanClusterEngine(),
            cluster_size_min=self.config.cluster_size_min,
            cluster_size_max=self.config.cluster_size_max,
            human_size_limit=self.config.human_size_limit,
        )
        self.classifier = classifier
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: DetectorConfig, engine: Optional[ClusterEngine] = None) -> "Object3dDetector":
        """Create a detector, loading the classifier named in `config`."""
        classifier = load_classifier(
            config.model_file_name,
            config.range_file_name,
            human_probability=config.human_probability,
            positive_label=config.positive_label,
        )
        return cls(config=config, engine=engine, classifier=classifier)

    @property
    def model_free(self) -> bool:
        return self.classifier is None

    def partition(self, ctx: FrameContext) -> None:
        ctx.points = filter_z_band(ctx.points, self.config.z_limit_min, self.config.z_limit_max)
        ctx.regions = self.partitioner.partition(ctx.points)

    def extract_clusters(self, ctx: FrameContext) -> None:
        ctx.clusters = self.orchestrator.run(ctx.points, ctx.regions)

    def describe(self, ctx: FrameContext) -> None:
        ctx.features = [extract_feature(cluster) for cluster in ctx.clusters]

    def classify(self, ctx: FrameContext) -> None:
        ctx.decisions = [classify(feature, self.classifier) for feature in ctx.features]

    def assemble(self, ctx: FrameContext) -> None:
        ctx.detections = assemble_detections(ctx.features, ctx.decisions, self.config.frame_id)

    def process_frame(self, points: np.ndarray) -> FrameContext:
        """Run all stages on one frame and return the frame context.

        Parameters
        ----------
        points : numpy.ndarray
            Array of shape (N, M) with XYZ in columns 0-2.  The array is
            not modified.
        """
        ctx = FrameContext(points=check_points(points))
        with self._lock:
            self.partition(ctx)
            self.extract_clusters(ctx)
            self.describe(ctx)
            self.classify(ctx)
            self.assemble(ctx)
        logger.debug(
            "Frame: %d points in band, %d clusters, %d detections",
            len(ctx.points), len(ctx.clusters), len(ctx.detections),
        )
        return ctx

    def process(self, points: np.ndarray) -> List[Detection]:
        """Detections for one frame."""
        return self.process_frame(points).detections


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect pedestrians in LiDAR point-cloud frames"
    )
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Frame file (.npy, .txt, .bin, .las, .laz) or directory of frames"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/detector.yaml",
        help="YAML configuration file (default: configs/detector.yaml)"
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Pickled classifier; overrides model_file_name"
    )
    parser.add_argument(
        "--range",
        type=str,
        default=None,
        help="svm-scale range file; overrides range_file_name"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write all detections to this Parquet file"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-region clustering details"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        for name in list(logging.root.manager.loggerDict):
            if name.startswith(__package__):
                get_logger(name, logging.DEBUG)

    data = load_config(args.config)
    if args.model is not None:
        data["model_file_name"] = args.model
    if args.range is not None:
        data["range_file_name"] = args.range
    config = DetectorConfig.from_dict(data)

    input_path = Path(args.input)
    frame_paths = discover_frames(input_path) if input_path.is_dir() else [input_path]
    if not frame_paths:
        logger.error("No frames found in %s", input_path)
        return 1

    detector = Object3dDetector.from_config(config)
    mode = "model-free" if detector.model_free else "classifier"
    logger.info("Processing %d frame(s) in %s mode", len(frame_paths), mode)

    meter = FrameRateMeter() if config.print_fps else None
    results = []
    for frame_path in tqdm(frame_paths, desc="frames", disable=len(frame_paths) == 1):
        detections = detector.process(load_frame(frame_path))
        logger.info("%s: %d detection(s)", frame_path.name, len(detections))
        results.append(detections)
        if meter is not None:
            fps = meter.tick()
            if fps is not None:
                logger.info("fps = %.2f", fps)

    if args.output:
        out = export_detections(results, args.output)
        logger.info("Detections written to %s", out)
    return 0


if __name__ == "__main__":
    sys.exit(main())

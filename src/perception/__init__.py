"""Pedestrian detection from single LiDAR frames.

This package turns one point-cloud frame into human detections: points
are split into nested range regions, each region is clustered with a
range-dependent tolerance, every cluster is described by a
34-dimensional geometric feature vector and an optional trained
classifier decides which clusters are people.
"""

from .errors import PerceptionError, ClusterEngineError, ScaleRangeError, ClassifierLoadError
from .filters import filter_z_band
from .partitioner import RegionPartitioner, REGION_WIDTHS
from .cluster_engine import ClusterEngine, EuclideanClusterEngine
from .orchestrator import Cluster, ClusterOrchestrator, is_human_sized
from .features import Feature, FEATURE_SIZE, extract_feature
from .scaling import ScaleRange, load_scale_range
from .classifier import ClassifierDecision, HumanClassifier, classify, load_classifier
from .detections import Detection, assemble_detections, detections_to_dataframe, export_detections
from .detector import DetectorConfig, FrameContext, Object3dDetector
from .runner import FrameRateMeter, LatestFrameRunner

__all__ = [
    "PerceptionError",
    "ClusterEngineError",
    "ScaleRangeError",
    "ClassifierLoadError",
    "filter_z_band",
    "RegionPartitioner",
    "REGION_WIDTHS",
    "ClusterEngine",
    "EuclideanClusterEngine",
    "Cluster",
    "ClusterOrchestrator",
    "is_human_sized",
    "Feature",
    "FEATURE_SIZE",
    "extract_feature",
    "ScaleRange",
    "load_scale_range",
    "ClassifierDecision",
    "HumanClassifier",
    "classify",
    "load_classifier",
    "Detection",
    "assemble_detections",
    "detections_to_dataframe",
    "export_detections",
    "DetectorConfig",
    "FrameContext",
    "Object3dDetector",
    "FrameRateMeter",
    "LatestFrameRunner",
]

"""Demo script for the pedestrian detector with synthetic frames.

This script builds synthetic LiDAR frames containing people, walls and
ground, runs the detector without a model, then trains a small SVM on
the extracted descriptors and runs the detector again with it.

Usage:
    python examples/demo_detection.py
"""

import pickle
import sys
from pathlib import Path
import numpy as np
from sklearn.svm import SVC

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.perception import (
    DetectorConfig,
    Object3dDetector,
    export_detections,
)


def make_box(rng, center, size, n):
    """Uniform points inside an axis-aligned box."""
    center = np.asarray(center, dtype=float)
    size = np.asarray(size, dtype=float)
    return center + (rng.random((n, 3)) - 0.5) * size


def create_synthetic_frame(rng, n_people=3, n_walls=2):
    """Create one frame with labelled objects.

    Returns
    -------
    points : np.ndarray
        Frame of shape (N, 3).
    labels : list of int
        1 for each person, 0 for each wall, in placement order.
    """
    parts, labels = [], []

    for _ in range(n_people):
        r = rng.uniform(3.0, 30.0)
        a = rng.uniform(0, 2 * np.pi)
        parts.append(make_box(rng, (r * np.cos(a), r * np.sin(a), 0.1), (0.5, 0.4, 1.7), 300))
        labels.append(1)

    for _ in range(n_walls):
        r = rng.uniform(5.0, 30.0)
        a = rng.uniform(0, 2 * np.pi)
        parts.append(make_box(rng, (r * np.cos(a), r * np.sin(a), 0.2), (3.0, 0.15, 1.6), 600))
        labels.append(0)

    # Ground, removed by the height band
    ground = np.column_stack([
        rng.uniform(-35, 35, 3000),
        rng.uniform(-35, 35, 3000),
        rng.normal(-1.5, 0.02, 3000),
    ])
    parts.append(ground)
    return np.vstack(parts), labels


def write_range_file(path, lower, upper):
    """Write ranges in svm-scale layout."""
    with open(path, "w", encoding="utf-8") as f:
        f.write("x\n-1 1\n")
        for i, (lo, hi) in enumerate(zip(lower, upper), start=1):
            f.write(f"{i} {lo:.17g} {hi:.17g}\n")


def train_demo_model(detector, rng, output_dir, n_frames=20):
    """Fit an SVM on descriptors of model-free detections."""
    vectors, targets = [], []
    for _ in range(n_frames):
        points, _ = create_synthetic_frame(rng)
        ctx = detector.process_frame(points)
        for feature in ctx.features:
            extent = feature.max - feature.min
            vectors.append(feature.vector)
            targets.append(int(max(extent[0], extent[1]) < 1.0))
    X = np.array(vectors)
    y = np.array(targets)
    print(f"  Training samples: {len(y)} ({int(y.sum())} human)")

    lower, upper = X.min(axis=0), X.max(axis=0)
    span = np.where(upper - lower > 0, upper - lower, 1.0)
    X_scaled = -1.0 + 2.0 * (X - lower) / span

    model = SVC(probability=True, random_state=0).fit(X_scaled, y)

    model_path = output_dir / "pedestrian.model"
    range_path = output_dir / "pedestrian.range"
    with open(model_path, "wb") as f:
        pickle.dump({"classifier": model}, f)
    write_range_file(range_path, lower, upper)
    return model_path, range_path


def main():
    """Run demo detection."""
    print("=" * 70)
    print("LiDAR Pedestrian Detection - Demo")
    print("=" * 70)
    print()

    output_dir = Path("output/demo_detection")
    output_dir.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(7)

    points, labels = create_synthetic_frame(rng)
    print(f"Synthetic frame: {len(points):,} points, "
          f"{sum(labels)} people, {len(labels) - sum(labels)} walls")

    # Model-free mode: every cluster is reported
    detector = Object3dDetector(DetectorConfig())
    detections = detector.process(points)
    print(f"Model-free: {len(detections)} detection(s)")

    # Size gate keeps only person-sized clusters
    gated = Object3dDetector(DetectorConfig(human_size_limit=True))
    print(f"Size-gated: {len(gated.process(points))} detection(s)")
    print()

    print("Training demo classifier...")
    model_path, range_path = train_demo_model(detector, rng, output_dir)

    config = DetectorConfig(
        model_file_name=str(model_path),
        range_file_name=str(range_path),
    )
    classified = Object3dDetector.from_config(config)
    results = [classified.process(points)]
    for det in results[0]:
        print(f"  human at ({det.centroid[0]:6.2f}, {det.centroid[1]:6.2f}, {det.centroid[2]:5.2f})"
              f"  p={det.probability:.2f}")
    print(f"Classifier: {len(results[0])} detection(s)")

    out = export_detections(results, output_dir / "detections.parquet")

    print()
    print("=" * 70)
    print("Demo Complete!")
    print("=" * 70)
    print()
    print("Output files:")
    print(f"  • Model: {model_path}")
    print(f"  • Range file: {range_path}")
    print(f"  • Detections: {out}")
    print()
    print("Next steps:")
    print("  Run the detector on saved frames:")
    print("     object3d-detect --input frames/ \\")
    print(f"       --model {model_path} --range {range_path} \\")
    print(f"       --output {output_dir}/frames.parquet")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Human / non-human decision for cluster descriptors.

The classifier is any fitted scikit-learn style estimator (typically an
`sklearn.svm.SVC`) stored with pickle, either directly or inside a
dictionary under the ``classifier`` key.  Descriptors are rescaled with
the training-time `ScaleRange` before prediction.

Models fitted with probability estimates are thresholded on the
probability of the positive class; other models must predict the
positive label.  Without a model the detector runs in model-free mode
and every cluster is accepted.
"""

import pickle
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from ..utils.logging import get_logger
from .errors import ClassifierLoadError, ScaleRangeError
from .features import Feature
from .scaling import ScaleRange, load_scale_range


logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassifierDecision:
    """Outcome of classifying one cluster."""

    accept: bool
    probability: Optional[float] = None


def supports_probability(model: Any) -> bool:
    """Whether the estimator can produce class probabilities."""
    return hasattr(model, 'predict_proba')


class HumanClassifier:
    """Scale descriptors and apply the human acceptance rule.

    Parameters
    ----------
    model : estimator
        Fitted estimator with `predict` and optionally `predict_proba`.
    scale_range : ScaleRange
        Per-dimension ranges used during training.
    human_probability : float, optional
        Minimum positive-class probability for acceptance.
    positive_label : int, optional
        Class code of humans.
    probability_model : bool, optional
        Override probability support detection.
    """

    def __init__(
        self,
        model: Any,
        scale_range: ScaleRange,
        human_probability: float = 0.7,
        positive_label: int = 1,
        probability_model: Optional[bool] = None,
    ):
        self.model = model
        self.scale_range = scale_range
        self.human_probability = human_probability
        self.positive_label = positive_label
        if probability_model is None:
            probability_model = supports_probability(model)
        self.probability_model = probability_model
        self._positive_column = self._find_positive_column() if probability_model else None

    def _find_positive_column(self) -> int:
        classes = getattr(self.model, 'classes_', None)
        if classes is None:
            # libsvm convention: first probability belongs to the first label
            return 0
        classes = list(classes)
        if self.positive_label not in classes:
            raise ValueError(f"positive label {self.positive_label!r} not among model classes {classes}")
        return classes.index(self.positive_label)

    def decide(self, feature: Feature) -> ClassifierDecision:
        """Classify one cluster descriptor."""
        x = self.scale_range.scale(feature.vector).reshape(1, -1)
        if self.probability_model:
            probabilities = np.asarray(self.model.predict_proba(x))[0]
            probability = float(probabilities[self._positive_column])
            return ClassifierDecision(probability >= self.human_probability, probability)
        label = np.asarray(self.model.predict(x))[0]
        return ClassifierDecision(bool(label == self.positive_label))


def classify(feature: Feature, classifier: Optional[HumanClassifier]) -> ClassifierDecision:
    """Decide on a cluster, accepting everything in model-free mode."""
    if classifier is None:
        return ClassifierDecision(True)
    return classifier.decide(feature)


def load_model(path: Union[str, Path]) -> Any:
    """Unpickle a fitted estimator.

    Raises
    ------
    ClassifierLoadError
        If the file cannot be read or does not hold an estimator.
    """
    path = Path(path)
    try:
        with open(path, 'rb') as f:
            obj = pickle.load(f)
    except Exception as exc:
        raise ClassifierLoadError(f"cannot read model {path}: {exc}") from exc
    if isinstance(obj, dict):
        obj = obj.get('classifier')
    if not hasattr(obj, 'predict'):
        raise ClassifierLoadError(f"{path} does not contain a fitted classifier")
    return obj


def load_classifier(
    model_path: Union[str, Path, None],
    range_path: Union[str, Path, None],
    human_probability: float = 0.7,
    positive_label: int = 1,
) -> Optional[HumanClassifier]:
    """Load model and range file, or return None for model-free mode.

    Missing or unreadable files are reported as warnings and never
    raise.
    """
    if not model_path:
        logger.warning("No classifier model configured, using model-free detection.")
        return None
    try:
        model = load_model(model_path)
    except ClassifierLoadError as exc:
        logger.warning("Can not load classifier model (%s), using model-free detection.", exc)
        return None
    logger.info("Loaded classifier model from '%s'.", model_path)

    if not range_path:
        logger.warning("No range file configured, using model-free detection.")
        return None
    try:
        scale_range = load_scale_range(range_path)
    except (OSError, ScaleRangeError) as exc:
        logger.warning("Can not load range file (%s), using model-free detection.", exc)
        return None
    logger.info("Loaded scale range from '%s'.", range_path)

    try:
        return HumanClassifier(
            model,
            scale_range,
            human_probability=human_probability,
            positive_label=positive_label,
        )
    except ValueError as exc:
        logger.warning("Classifier unusable (%s), using model-free detection.", exc)
        return None

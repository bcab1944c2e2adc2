"""Unit tests for the classification adapter."""

import pickle

import numpy as np
import pytest
from sklearn.linear_model import LogisticRegression
from sklearn.svm import SVC

from src.perception.classifier import (
    ClassifierDecision,
    HumanClassifier,
    classify,
    load_classifier,
    load_model,
    supports_probability,
)
from src.perception.errors import ClassifierLoadError
from src.perception.features import Feature
from src.perception.scaling import ScaleRange


def make_feature(number_points=100, min_distance=25.0):
    return Feature(
        centroid=np.array([5.0, 0.0, 0.0]),
        min=np.array([4.8, -0.2, -0.8]),
        max=np.array([5.2, 0.2, 0.8]),
        number_points=number_points,
        min_distance=min_distance,
        covariance=np.zeros(6),
        moment=np.zeros(6),
        slice=np.zeros(20),
    )


class ProbabilityModel:
    """Estimator stub with a fixed positive-class probability."""

    def __init__(self, probability, classes=(0, 1)):
        self.probability = probability
        self.classes_ = np.array(classes)
        self.seen = []

    def predict_proba(self, x):
        self.seen.append(x)
        p = self.probability
        row = [p if c == 1 else 1 - p for c in self.classes_]
        return np.array([row])

    def predict(self, x):
        return np.array([1 if self.probability >= 0.5 else 0])


class LabelModel:
    """Estimator stub without probability output."""

    def __init__(self, label):
        self.label = label

    def predict(self, x):
        return np.array([self.label])


def fit_logistic():
    """A tiny probability model separating on point count."""
    rng = np.random.default_rng(0)
    x = rng.normal(size=(40, 34))
    y = (x[:, 0] > 0).astype(int)
    return LogisticRegression().fit(x, y)


def write_range(path):
    path.write_text("x\n-1 1\n1 0 200\n")
    return path


class TestHumanClassifier:
    """Test suite for HumanClassifier class."""

    def test_probability_threshold(self):
        """Test 0.65 is rejected and 0.75 accepted at threshold 0.7."""
        low = HumanClassifier(ProbabilityModel(0.65), ScaleRange(), human_probability=0.7)
        high = HumanClassifier(ProbabilityModel(0.75), ScaleRange(), human_probability=0.7)

        rejected = low.decide(make_feature())
        accepted = high.decide(make_feature())

        assert rejected.accept is False
        assert rejected.probability == pytest.approx(0.65)
        assert accepted.accept is True
        assert accepted.probability == pytest.approx(0.75)

    def test_threshold_is_inclusive(self):
        """Test a probability equal to the threshold is accepted."""
        classifier = HumanClassifier(ProbabilityModel(0.5), ScaleRange(), human_probability=0.5)

        assert classifier.decide(make_feature()).accept is True

    def test_positive_column_follows_classes(self):
        """Test the positive probability is looked up by class label."""
        model = ProbabilityModel(0.8, classes=(1, 0))
        classifier = HumanClassifier(model, ScaleRange())

        decision = classifier.decide(make_feature())

        assert decision.probability == pytest.approx(0.8)

    def test_missing_positive_label(self):
        """Test a model without the positive class is rejected."""
        with pytest.raises(ValueError):
            HumanClassifier(ProbabilityModel(0.8, classes=(2, 3)), ScaleRange())

    def test_label_model(self):
        """Test non-probabilistic models must predict the positive label."""
        accept = HumanClassifier(LabelModel(1), ScaleRange()).decide(make_feature())
        reject = HumanClassifier(LabelModel(-1), ScaleRange()).decide(make_feature())

        assert accept == ClassifierDecision(True, None)
        assert reject == ClassifierDecision(False, None)

    def test_descriptor_is_scaled_before_prediction(self):
        """Test the model sees the rescaled descriptor."""
        lower = np.zeros(34)
        upper = np.zeros(34)
        upper[0] = 200.0
        model = ProbabilityModel(0.9)
        classifier = HumanClassifier(model, ScaleRange(lower=lower, upper=upper))

        classifier.decide(make_feature(number_points=200, min_distance=25.0))

        x = model.seen[0]
        assert x.shape == (1, 34)
        assert x[0, 0] == 1.0
        assert x[0, 1] == 25.0

    def test_supports_probability(self):
        """Test probability support follows sklearn's predict_proba."""
        x = np.array([[0.0], [1.0], [2.0], [3.0]])
        y = np.array([0, 0, 1, 1])

        assert supports_probability(SVC(probability=False).fit(x, y)) is False
        assert supports_probability(LogisticRegression().fit(x, y)) is True
        assert supports_probability(LabelModel(1)) is False

    def test_model_free(self):
        """Test every feature is accepted without a classifier."""
        assert classify(make_feature(), None) == ClassifierDecision(True, None)


class TestLoadClassifier:
    """Test suite for model and range file loading."""

    def test_load_pickled_estimator(self, tmp_path):
        """Test a pickled estimator and range file give a classifier."""
        model_path = tmp_path / "model.pkl"
        with open(model_path, "wb") as f:
            pickle.dump(fit_logistic(), f)
        range_path = write_range(tmp_path / "range")

        classifier = load_classifier(model_path, range_path, human_probability=0.6)

        assert isinstance(classifier, HumanClassifier)
        assert classifier.probability_model is True
        assert classifier.human_probability == 0.6
        assert classifier.scale_range.upper[0] == 200.0
        decision = classifier.decide(make_feature())
        assert 0.0 <= decision.probability <= 1.0

    def test_load_model_from_dict(self, tmp_path):
        """Test the {'classifier': model} layout is accepted."""
        model_path = tmp_path / "model.sav"
        with open(model_path, "wb") as f:
            pickle.dump({"classifier": fit_logistic(), "classes": [0, 1]}, f)

        assert isinstance(load_model(model_path), LogisticRegression)

    def test_load_model_errors(self, tmp_path):
        """Test unreadable or unsuitable files raise ClassifierLoadError."""
        garbage = tmp_path / "garbage.pkl"
        garbage.write_bytes(b"not a pickle")
        not_model = tmp_path / "list.pkl"
        with open(not_model, "wb") as f:
            pickle.dump([1, 2, 3], f)

        with pytest.raises(ClassifierLoadError):
            load_model(tmp_path / "missing.pkl")
        with pytest.raises(ClassifierLoadError):
            load_model(garbage)
        with pytest.raises(ClassifierLoadError):
            load_model(not_model)

    def test_fallback_to_model_free(self, tmp_path):
        """Test missing model or range file falls back to None."""
        model_path = tmp_path / "model.pkl"
        with open(model_path, "wb") as f:
            pickle.dump(fit_logistic(), f)
        bad_range = tmp_path / "bad_range"
        bad_range.write_text("y\n")

        assert load_classifier("", "") is None
        assert load_classifier(tmp_path / "missing.pkl", write_range(tmp_path / "range")) is None
        assert load_classifier(model_path, tmp_path / "missing_range") is None
        assert load_classifier(model_path, bad_range) is None
        assert load_classifier(model_path, None) is None

    def test_fallback_logs_warning(self, tmp_path, caplog):
        """Test the fallback is reported as a warning."""
        with caplog.at_level("WARNING"):
            load_classifier(tmp_path / "missing.pkl", None)

        assert any("model-free" in r.getMessage() for r in caplog.records)

"""Exceptions raised by the perception package."""


class PerceptionError(RuntimeError):
    """Base class for detector errors."""


class ClusterEngineError(PerceptionError):
    """The clustering engine failed or returned groups that break its contract."""


class ScaleRangeError(PerceptionError):
    """A scale-range file could not be parsed."""


class ClassifierLoadError(PerceptionError):
    """A classifier model file could not be loaded."""

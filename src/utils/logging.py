"""Logging helpers for the detector.

All modules fetch their logger through `get_logger` so that messages
from the partitioner, the clustering stage and the classifier share a
single format.  The level can be raised per call (e.g. DEBUG from the
command line) without touching the handler setup.
"""

import logging
from typing import Optional


LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Return a logger with the detector's preset format.

    Parameters
    ----------
    name : str
        Logger name, usually the calling module's ``__name__``.
    level : int, optional
        Explicit log level.  Defaults to INFO for newly created loggers.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    if level is not None:
        logger.setLevel(level)
    return logger

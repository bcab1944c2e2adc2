"""Configuration loader.

Detector parameters live in YAML files under the `configs/` directory
at the project root (see `configs/detector.yaml`).  A missing file is
not an error: callers receive an empty dictionary and fall back to
their defaults.  Malformed YAML is reported to the caller.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary.

    Parameters
    ----------
    path : str or Path
        Path to the YAML configuration file.

    Returns
    -------
    dict
        Parsed configuration.  Empty if the file does not exist or
        contains no document.

    Raises
    ------
    ValueError
        If the top level of the document is not a mapping.
    yaml.YAMLError
        If the file is not valid YAML.
    """
    cfg_path = Path(path)
    if not cfg_path.is_file():
        return {}
    with open(cfg_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"configuration root must be a mapping: {cfg_path}")
    return data

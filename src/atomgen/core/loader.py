"""Reading feed descriptors from YAML or JSON files."""

import json
from pathlib import Path
from typing import Any

import yaml

from atomgen.core.exceptions import DescriptorLoadError

YAML_SUFFIXES = {".yml", ".yaml"}


def load_descriptor(path: Path) -> dict[str, Any]:
    """Load a feed descriptor mapping from ``path``.

    ``.yml``/``.yaml`` files are read with PyYAML, everything else as JSON.

    Raises:
        DescriptorLoadError: If the file is missing, undecodable, or its
            root is not a mapping.

    """
    if not path.is_file():
        msg = f"Descriptor file not found: {path}"
        raise DescriptorLoadError(msg)

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except yaml.YAMLError as e:
        raise DescriptorLoadError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DescriptorLoadError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        msg = f"Descriptor root must be a mapping (dictionary), got {type(data).__name__}"
        raise DescriptorLoadError(msg)
    return data

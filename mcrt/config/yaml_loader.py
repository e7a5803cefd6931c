"""Loading of the packaged defaults and of user parameter files.

``defaults.yaml`` ships with the package and holds every default value read
by :mod:`mcrt.config.defaults`. User parameter files are YAML or JSON
documents with the same section layout (``photons``, ``convergence``,
``parallel``, ``grid``, ``source``).

This module imports nothing else from the package, so the defaults can be
read while the configuration dataclasses are being defined.

Usage:
    from mcrt.config.yaml_loader import get_default, load_parameter_file
    seed = get_default('parallel.random_seed')
    params = load_parameter_file('params.yaml')
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml

DEFAULTS_ENV_VAR = "MCRT_DEFAULTS_PATH"
PACKAGED_DEFAULTS = Path(__file__).with_name("defaults.yaml")

YAML_SUFFIXES = (".yaml", ".yml")

_defaults: dict[str, Any] | None = None


def defaults_path() -> Path:
    """Location of the defaults file.

    ``MCRT_DEFAULTS_PATH`` replaces the packaged file when it names an
    existing file.

    Raises:
        FileNotFoundError: If the packaged file is missing as well
    """
    override = os.getenv(DEFAULTS_ENV_VAR)
    if override and Path(override).is_file():
        return Path(override)
    if not PACKAGED_DEFAULTS.is_file():
        raise FileNotFoundError(
            f"Defaults file not found: {PACKAGED_DEFAULTS}; "
            f"set {DEFAULTS_ENV_VAR} to point at a relocated copy."
        )
    return PACKAGED_DEFAULTS


def load_parameter_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML (.yaml, .yml) or JSON (.json) parameter file.

    Returns:
        Parsed sections (empty dict for an empty YAML file)

    Raises:
        ValueError: For other file suffixes, or a document that is not a mapping
    """
    path = Path(path)
    if path.suffix in YAML_SUFFIXES:
        parse = yaml.safe_load
    elif path.suffix == ".json":
        parse = json.load
    else:
        raise ValueError(f"Unsupported config format: {path.suffix}")

    with open(path, encoding="utf-8") as f:
        data = parse(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a mapping of configuration sections")
    return data


def reload_defaults() -> None:
    """Re-read the defaults file, e.g. after ``MCRT_DEFAULTS_PATH`` changed.

    The ``DEFAULT_*`` constants of :mod:`mcrt.config.defaults` are bound at
    import time and keep their values.
    """
    global _defaults
    _defaults = load_parameter_file(defaults_path())


def get_defaults() -> dict[str, Any]:
    """Shallow copy of the whole defaults document."""
    if _defaults is None:
        reload_defaults()
    return dict(_defaults)


def get_default(key_path: str, default: Any = None) -> Any:
    """Look up a default by dotted path, e.g. ``'parallel.random_seed'``.

    Missing keys and null values give ``default``.

    Example:
        >>> get_default('parallel.random_seed')
        42
        >>> get_default('nonexistent.key', 'fallback')
        'fallback'
    """
    node: Any = get_defaults()
    for key in key_path.split("."):
        if not isinstance(node, dict) or node.get(key) is None:
            return default
        node = node[key]
    return node

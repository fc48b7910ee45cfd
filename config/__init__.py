# PATH: config/__init__.py
"""
Configuration loading utilities for the engine.

Files (YAML, under the config directory):
- venues.yaml     simulated venues and their pools
- tokens.yaml     supported-asset allowlist
- providers.yaml  capital providers
- bridges.yaml    bridges per network pair
- engine.yaml     guards, gas model, kill switch
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.exceptions import ConfigError


CONFIG_DIR = Path(__file__).parent


def load_yaml(filename: str, config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory
        config_dir: Directory to read from (default: this package)

    Returns:
        Parsed YAML as dict
    """
    filepath = Path(config_dir or CONFIG_DIR) / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {filepath}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {filepath}")
    return data


def load_venues(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load venues configuration."""
    return load_yaml("venues.yaml", config_dir)


def load_tokens(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load supported tokens configuration."""
    return load_yaml("tokens.yaml", config_dir)


def load_providers(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load capital providers configuration."""
    return load_yaml("providers.yaml", config_dir)


def load_bridges(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load bridges configuration."""
    return load_yaml("bridges.yaml", config_dir)


def load_engine(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load engine configuration."""
    return load_yaml("engine.yaml", config_dir)


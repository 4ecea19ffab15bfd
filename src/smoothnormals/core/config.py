# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Smoothing configuration, file loading, and presets.

A configuration is an immutable value handed to the smoothing pass at call
time. It can be built in code, read from a JSON/YAML file, or taken from one
of the built-in presets.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Union

import yaml

from .channels import MAX_UV_CHANNELS, DEFAULT_CHANNEL

logger = logging.getLogger(__name__)


_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


def _parse_bool(name: str, value) -> bool:
    """
    Read a boolean config value.

    Accepts real booleans, 0/1 and the usual true/false words. Anything
    else raises instead of being coerced by truthiness.

    Raises:
        ValueError: If the value is not recognizably boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_STRINGS:
            return True
        if word in _FALSE_STRINGS:
            return False
    raise ValueError(f"Config value '{name}' must be a boolean, got {value!r}")


@dataclass(frozen=True)
class SmoothingConfig:
    """
    Parameters for one smoothing pass.

    Attributes:
        channel: 0-based UV channel that receives the result (UV set 5 by default)
        normalize: Remap components from [-1, 1] to [0, 1] before storing
        use_angle: Only average neighbors within ``angle_threshold``
        angle_threshold: Maximum angle in degrees between two normals that
            are averaged together (inclusive)
    """
    channel: int = DEFAULT_CHANNEL
    normalize: bool = False
    use_angle: bool = False
    angle_threshold: float = 60.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SmoothingConfig":
        """
        Create from dictionary. Unknown keys are ignored.

        Raises:
            ValueError: If a flag is not a boolean
        """
        defaults = cls()
        return cls(
            channel=int(data.get("channel", defaults.channel)),
            normalize=_parse_bool("normalize", data.get("normalize", defaults.normalize)),
            use_angle=_parse_bool("use_angle", data.get("use_angle", defaults.use_angle)),
            angle_threshold=float(data.get("angle_threshold", defaults.angle_threshold)),
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SmoothingConfig":
        """Load from JSON file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SmoothingConfig":
        """Load from YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SmoothingConfig":
        """
        Load from file, auto-detecting format from extension.

        Supports .json and .yaml/.yml files. Anything else is tried as
        JSON first, then YAML.
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = path.suffix.lower()

        if suffix == ".json":
            return cls.from_json(path)
        elif suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        else:
            try:
                return cls.from_json(path)
            except json.JSONDecodeError:
                logger.debug(f"{path.name} is not JSON, trying YAML")
                return cls.from_yaml(path)

    def save(self, path: Union[str, Path]) -> None:
        """Save as JSON, or YAML when the suffix is .yaml/.yml."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> list[str]:
        """
        Validate the configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not 0 <= self.channel < MAX_UV_CHANNELS:
            errors.append(
                f"Channel index {self.channel} is outside 0..{MAX_UV_CHANNELS - 1}"
            )

        if self.use_angle and not 0.0 <= self.angle_threshold <= 180.0:
            errors.append(f"Angle threshold {self.angle_threshold} is outside 0..180 degrees")

        return errors


# =============================================================================
# Built-in Presets
# =============================================================================

PRESETS: dict[str, tuple[SmoothingConfig, str]] = {
    "default": (
        SmoothingConfig(),
        "Average every normal at a shared position, store raw vectors",
    ),
    "hard-edges": (
        SmoothingConfig(use_angle=True, angle_threshold=60.0),
        "Keep creases sharper than 60 degrees",
    ),
    "packed": (
        SmoothingConfig(normalize=True),
        "Average every normal, store remapped to 0-1",
    ),
    "packed-hard-edges": (
        SmoothingConfig(normalize=True, use_angle=True, angle_threshold=60.0),
        "Keep creases sharper than 60 degrees, store remapped to 0-1",
    ),
}


def get_preset(name: str) -> Optional[SmoothingConfig]:
    """Get a built-in preset configuration by name."""
    entry = PRESETS.get(name)
    return entry[0] if entry else None


def list_presets() -> list[str]:
    """List all built-in preset names."""
    return list(PRESETS.keys())

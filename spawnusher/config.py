"""spawnusher/config.py — Search configuration and YAML loading."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from spawnusher.constants import (
    AIR,
    DEFAULT_BUBBLE_HEIGHT,
    DEFAULT_RETRY_INTERVAL,
    IGNORE,
    MAX_Y,
    MIN_Y,
)
from spawnusher.errors import ConfigError


@dataclass
class UsherConfig:
    """Parameters fixed at activation and shared by every search."""

    bubble_height: int = DEFAULT_BUBBLE_HEIGHT
    retry_interval: float = DEFAULT_RETRY_INTERVAL
    min_y: int = MIN_Y
    max_y: int = MAX_Y
    empty_material: str = AIR
    unloaded_material: str = IGNORE

    def __post_init__(self) -> None:
        if self.bubble_height < 1:
            raise ConfigError(f"bubble_height must be >= 1, got {self.bubble_height}")
        if self.retry_interval <= 0:
            raise ConfigError(f"retry_interval must be > 0, got {self.retry_interval}")
        if self.min_y >= self.max_y:
            raise ConfigError(f"min_y ({self.min_y}) must be below max_y ({self.max_y})")
        if self.empty_material == self.unloaded_material:
            raise ConfigError(
                f"empty_material and unloaded_material are both {self.empty_material!r}"
            )

    @property
    def max_steps(self) -> int:
        """Iteration bound for one search: the vertical range in unit steps."""
        return self.max_y - self.min_y + 1


_INT_KEYS = {"bubble_height", "min_y", "max_y"}
_FLOAT_KEYS = {"retry_interval"}


def config_from_dict(data: dict | None) -> UsherConfig:
    """Build an UsherConfig from a plain mapping (e.g. parsed YAML)."""
    if data is None:
        return UsherConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(UsherConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {unknown}. Available: {sorted(known)}")

    kwargs = {}
    for key, value in data.items():
        try:
            if key in _INT_KEYS:
                kwargs[key] = int(value)
            elif key in _FLOAT_KEYS:
                kwargs[key] = float(value)
            else:
                kwargs[key] = str(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {key!r}: {value!r}") from exc
    return UsherConfig(**kwargs)


def load_config(path: Path) -> UsherConfig:
    """Load an UsherConfig from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return config_from_dict(data)

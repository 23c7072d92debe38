"""Configuration for dirpeek. Stored as JSON at ~/.dirpeek/config.json."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"


class ConfigError(ValueError):
    """Raised for configuration values outside their allowed range."""


@dataclass(frozen=True)
class PreviewConfig:
    """Settings for inline image previews."""

    scale: float = 0.5
    delay: float = 0.2
    spacing: int = 1
    auto_remove: bool = True
    max_width: int | None = None
    max_height: int | None = None
    auto_preview_mode: bool = False
    excluded_extensions: frozenset[str] = frozenset({"ico", "cur"})

    def __post_init__(self) -> None:
        self._check_types()
        if self.scale <= 0:
            raise ConfigError(f"scale must be positive, got {self.scale}")
        if self.delay < 0:
            raise ConfigError(f"delay must not be negative, got {self.delay}")
        if self.spacing < 0:
            raise ConfigError(f"spacing must not be negative, got {self.spacing}")
        for name in ("max_width", "max_height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")

    def _check_types(self) -> None:
        # bool is an int subclass, so it is ruled out explicitly for numbers
        for name in ("scale", "delay"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number, got {value!r}")
        for name in ("spacing", "max_width", "max_height"):
            value = getattr(self, name)
            if value is None and name != "spacing":
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be a whole number, got {value!r}")
        for name in ("auto_remove", "auto_preview_mode"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ConfigError(f"{name} must be true or false, got {value!r}")
        if not all(isinstance(ext, str) for ext in self.excluded_extensions):
            raise ConfigError("excluded_extensions must be a list of names")

    def with_overrides(self, **changes: Any) -> PreviewConfig:
        """Return a copy with every non-``None`` entry of *changes* applied."""
        updates = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **updates)


@dataclass
class Config:
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    keybindings: dict[str, str | list[str]] = field(default_factory=dict)


# JSON key -> PreviewConfig attribute
_PREVIEW_KEYS: dict[str, str] = {
    "scale": "scale",
    "delay": "delay",
    "spacing": "spacing",
    "autoRemove": "auto_remove",
    "maxWidth": "max_width",
    "maxHeight": "max_height",
    "autoPreviewMode": "auto_preview_mode",
    "excludedExtensions": "excluded_extensions",
}


def preview_config_from_dict(data: dict) -> PreviewConfig:
    """Deserialize a PreviewConfig, leaving missing keys at their defaults."""
    kwargs: dict[str, Any] = {}
    for key, attr in _PREVIEW_KEYS.items():
        if key in data:
            kwargs[attr] = data[key]
    if "excluded_extensions" in kwargs:
        kwargs["excluded_extensions"] = frozenset(kwargs["excluded_extensions"])
    return PreviewConfig(**kwargs)


def preview_config_to_dict(config: PreviewConfig) -> dict:
    data = {key: getattr(config, attr) for key, attr in _PREVIEW_KEYS.items()}
    data["excludedExtensions"] = sorted(config.excluded_extensions)
    return data


def config_from_dict(data: dict) -> Config:
    """Deserialize a Config from a JSON-compatible dict."""
    return Config(
        preview=preview_config_from_dict(data.get("preview", {})),
        keybindings=dict(data.get("keybindings", {})),
    )


def config_to_dict(config: Config) -> dict:
    return {
        "preview": preview_config_to_dict(config.preview),
        "keybindings": dict(config.keybindings),
    }


def _get_config_dir() -> Path:
    return Path(os.environ.get("DIRPEEK_CONFIG_DIR", Path.home() / ".dirpeek"))


def get_config_path() -> Path:
    return _get_config_dir() / CONFIG_FILE_NAME


def load_config() -> Config:
    config_path = get_config_path()
    if not config_path.exists():
        return Config()
    try:
        data = json.loads(config_path.read_text())
        return config_from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Error reading config %s: %s", config_path, e)
        return Config()


def save_config(config: Config) -> None:
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config_to_dict(config), indent=2))


_global_config: Config | None = None


def get_config() -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: Config) -> None:
    global _global_config
    _global_config = config


def reset_config() -> None:
    global _global_config
    _global_config = None

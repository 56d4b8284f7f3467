"""TOML configuration loading and saving, profile management."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

import tomli_w

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from audiosphere.constants import (
    DEFAULT_FPS_CAP,
    DEFAULT_LEVELS_COUNT,
    DEFAULT_LOG_INTERVAL_S,
    DEFAULT_MAX_DECIBELS,
    DEFAULT_MIN_DECIBELS,
    DEFAULT_NOISE_MAX,
    DEFAULT_PEAK_DECAY_RATE,
    DEFAULT_PEAK_FLOOR,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SMOOTHING_TIME_CONSTANT,
    DEFAULT_TRANSFORM_SIZE,
    DEFAULT_WINDOW_SIZE,
    INPUT_FILE,
)

Vec3 = tuple[float, float, float]


@dataclass
class GeneralConfig:
    """General application settings."""

    profile_name: str = "Default"
    fps_cap: int = DEFAULT_FPS_CAP
    log_interval_s: float = DEFAULT_LOG_INTERVAL_S


@dataclass
class InputConfig:
    """Sample source settings."""

    source: str = INPUT_FILE  # "file" or "mic"
    file: str = ""
    device: str = "default"
    sample_rate: int = DEFAULT_SAMPLE_RATE
    audible: bool = True


@dataclass
class AnalyzerConfig:
    """Loudness analysis settings. Fixed once the analyzer is built."""

    levels_count: int = DEFAULT_LEVELS_COUNT
    transform_size: int = DEFAULT_TRANSFORM_SIZE
    window_size: int = DEFAULT_WINDOW_SIZE
    peak_decay_rate: float = DEFAULT_PEAK_DECAY_RATE
    peak_floor: float = DEFAULT_PEAK_FLOOR
    smoothing_time_constant: float = DEFAULT_SMOOTHING_TIME_CONSTANT
    min_decibels: float = DEFAULT_MIN_DECIBELS
    max_decibels: float = DEFAULT_MAX_DECIBELS


@dataclass
class PaletteConfig:
    """Colour ramps for the blob shader: value = min + mult * band level."""

    brightness_min: Vec3 = (0.5, 0.5, 0.4)
    brightness_mult: Vec3 = (0.3, 0.1, 0.1)
    contrast_min: Vec3 = (0.2, 0.4, 0.2)
    contrast_mult: Vec3 = (0.3, 0.3, 0.3)
    oscillation_min: Vec3 = (1.0, 0.7, 0.0)
    oscillation_mult: Vec3 = (1.0, 0.2, 1.0)
    phase_min: Vec3 = (0.0, 0.10, 0.20)
    phase_mult: Vec3 = (0.4, 0.4, 0.4)
    noise_max: float = DEFAULT_NOISE_MAX


_PALETTE_VECTORS = (
    "brightness_min",
    "brightness_mult",
    "contrast_min",
    "contrast_mult",
    "oscillation_min",
    "oscillation_mult",
    "phase_min",
    "phase_mult",
)


def _vec3(value: Any, default: Vec3) -> Vec3:
    if value is None:
        return default
    if len(value) != 3:
        raise ValueError(f"Expected 3 components, got {value!r}")
    return (float(value[0]), float(value[1]), float(value[2]))


@dataclass
class AppConfig:
    """Top-level application configuration."""

    general: GeneralConfig = field(default_factory=GeneralConfig)
    input: InputConfig = field(default_factory=InputConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    palette: PaletteConfig = field(default_factory=PaletteConfig)
    config_path: Path | None = None

    @classmethod
    def from_toml(cls, path: Path) -> AppConfig:
        """Load configuration from a TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls._from_dict(data, config_path=path)

    @classmethod
    def _from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> AppConfig:
        """Build config from a parsed TOML dict."""
        general_data = data.get("general", {})
        general = GeneralConfig(
            profile_name=general_data.get("profile_name", "Default"),
            fps_cap=general_data.get("fps_cap", DEFAULT_FPS_CAP),
            log_interval_s=general_data.get("log_interval_s", DEFAULT_LOG_INTERVAL_S),
        )

        input_data = data.get("input", {})
        input_ = InputConfig(
            source=input_data.get("source", INPUT_FILE),
            file=input_data.get("file", ""),
            device=input_data.get("device", "default"),
            sample_rate=input_data.get("sample_rate", DEFAULT_SAMPLE_RATE),
            audible=input_data.get("audible", True),
        )

        analyzer_data = data.get("analyzer", {})
        analyzer = AnalyzerConfig(
            levels_count=analyzer_data.get("levels_count", DEFAULT_LEVELS_COUNT),
            transform_size=analyzer_data.get("transform_size", DEFAULT_TRANSFORM_SIZE),
            window_size=analyzer_data.get("window_size", DEFAULT_WINDOW_SIZE),
            peak_decay_rate=analyzer_data.get("peak_decay_rate", DEFAULT_PEAK_DECAY_RATE),
            peak_floor=analyzer_data.get("peak_floor", DEFAULT_PEAK_FLOOR),
            smoothing_time_constant=analyzer_data.get(
                "smoothing_time_constant", DEFAULT_SMOOTHING_TIME_CONSTANT
            ),
            min_decibels=analyzer_data.get("min_decibels", DEFAULT_MIN_DECIBELS),
            max_decibels=analyzer_data.get("max_decibels", DEFAULT_MAX_DECIBELS),
        )

        palette_data = data.get("palette", {})
        defaults = PaletteConfig()
        palette = PaletteConfig(
            **{
                name: _vec3(palette_data.get(name), getattr(defaults, name))
                for name in _PALETTE_VECTORS
            },
            noise_max=palette_data.get("noise_max", DEFAULT_NOISE_MAX),
        )

        return cls(
            general=general,
            input=input_,
            analyzer=analyzer,
            palette=palette,
            config_path=config_path,
        )

    def to_toml(self, path: Path) -> None:
        """Save configuration to a TOML file."""
        data = self._to_dict()
        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def _to_dict(self) -> dict[str, Any]:
        """Convert config to a TOML-compatible dict."""
        palette: dict[str, Any] = {
            name: list(getattr(self.palette, name)) for name in _PALETTE_VECTORS
        }
        palette["noise_max"] = self.palette.noise_max
        return {
            "general": {
                "profile_name": self.general.profile_name,
                "fps_cap": self.general.fps_cap,
                "log_interval_s": self.general.log_interval_s,
            },
            "input": {
                "source": self.input.source,
                "file": self.input.file,
                "device": self.input.device,
                "sample_rate": self.input.sample_rate,
                "audible": self.input.audible,
            },
            "analyzer": {
                "levels_count": self.analyzer.levels_count,
                "transform_size": self.analyzer.transform_size,
                "window_size": self.analyzer.window_size,
                "peak_decay_rate": self.analyzer.peak_decay_rate,
                "peak_floor": self.analyzer.peak_floor,
                "smoothing_time_constant": self.analyzer.smoothing_time_constant,
                "min_decibels": self.analyzer.min_decibels,
                "max_decibels": self.analyzer.max_decibels,
            },
            "palette": palette,
        }


def get_config_dir() -> Path:
    """Return the XDG config directory for AudioSphere.

    Uses $XDG_CONFIG_HOME/audiosphere if set, otherwise ~/.config/audiosphere.
    Creates the directory (and profiles/ subdirectory) if they don't exist.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base = Path(xdg) / "audiosphere"
    else:
        base = Path.home() / ".config" / "audiosphere"
    profiles_dir = base / "profiles"
    profiles_dir.mkdir(parents=True, exist_ok=True)
    return base


def get_profiles_dir() -> Path:
    """Return the default profiles directory."""
    return get_config_dir() / "profiles"


def list_profiles() -> list[Path]:
    """List all .toml profile files in the default profiles directory."""
    profiles_dir = get_profiles_dir()
    if not profiles_dir.exists():
        return []
    return sorted(profiles_dir.glob("*.toml"))


def load_profile(path: Path) -> AppConfig:
    """Load a profile from a TOML file."""
    config = AppConfig.from_toml(path)
    logger.info("Loaded profile '%s' from %s", config.general.profile_name, path)
    return config


def get_default_config() -> AppConfig:
    """Return a default configuration."""
    return AppConfig()

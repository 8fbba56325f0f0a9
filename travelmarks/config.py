"""Configuration loading utilities for the travel marks player."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import json
import logging
import os

from .animation import SPEED_CHOICES

logger = logging.getLogger(__name__)

DEFAULT_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
TOKEN_ENV_VARS = ("MAPBOX_TOKEN", "VITE_MAPBOX_TOKEN")


class ConfigError(ValueError):
    """Raised when a configuration file is malformed."""


def token_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the first non-empty geocoding credential found in the environment."""

    environ = os.environ if environ is None else environ
    for name in TOKEN_ENV_VARS:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return None


@dataclass
class GeocodingConfig:
    """Settings for the forward-geocoding service."""

    access_token: Optional[str] = None
    base_url: str = DEFAULT_GEOCODING_URL
    timeout_seconds: float = 10.0

    @property
    def has_credential(self) -> bool:
        return bool(self.access_token)

    @staticmethod
    def from_mapping(data: Optional[Dict[str, Any]]) -> "GeocodingConfig":
        data = data or {}
        token = data.get("access_token") or data.get("token") or token_from_env()
        return GeocodingConfig(
            access_token=token or None,
            base_url=str(data.get("base_url", DEFAULT_GEOCODING_URL)).rstrip("/"),
            timeout_seconds=float(data.get("timeout_seconds", data.get("timeout", 10.0))),
        )


@dataclass
class AnimationConfig:
    """How the route animation is played and exported."""

    speed: float = 1.0
    muted: bool = False
    frame_rate: int = 30
    width: int = 1280
    height: int = 720
    output_path: Path = Path("travelmarks.mp4")
    summary_display_seconds: float = 2.0
    max_frames: int = 20000

    @staticmethod
    def from_mapping(data: Optional[Dict[str, Any]]) -> "AnimationConfig":
        if not data:
            return AnimationConfig()
        output_path = data.get("output") or data.get("output_path") or "travelmarks.mp4"
        speed = float(data.get("speed", 1.0))
        if speed not in SPEED_CHOICES:
            raise ConfigError(f"Speed must be one of {SPEED_CHOICES}, got {speed}")
        return AnimationConfig(
            speed=speed,
            muted=bool(data.get("muted", data.get("mute", False))),
            frame_rate=int(data.get("frame_rate", data.get("fps", 30))),
            width=int(data.get("width", 1280)),
            height=int(data.get("height", 720)),
            output_path=Path(output_path),
            summary_display_seconds=float(data.get("summary_display_seconds", 2.0)),
            max_frames=int(data.get("max_frames", 20000)),
        )


@dataclass
class AppConfig:
    """Top-level configuration: the itinerary plus service and playback settings."""

    places: List[str] = field(default_factory=list)
    debounce_ms: float = 300.0
    center: Optional[Tuple[float, float]] = None
    geocoding: GeocodingConfig = field(default_factory=GeocodingConfig)
    animation: AnimationConfig = field(default_factory=AnimationConfig)

    @staticmethod
    def from_mapping(data: Dict[str, Any]) -> "AppConfig":
        places_data = data.get("places") or []
        if not isinstance(places_data, Iterable) or isinstance(places_data, (str, bytes)):
            raise ConfigError("Places must be provided as a list of names.")
        places = [str(item).strip() for item in places_data if str(item).strip()]

        center = data.get("center")
        if center is not None:
            try:
                lon, lat = (float(value) for value in center)
            except (TypeError, ValueError) as exc:
                raise ConfigError("Center must be a [longitude, latitude] pair.") from exc
            center = (lon, lat)

        return AppConfig(
            places=places,
            debounce_ms=float(data.get("debounce_ms", 300.0)),
            center=center,
            geocoding=GeocodingConfig.from_mapping(data.get("geocoding")),
            animation=AnimationConfig.from_mapping(data.get("animation")),
        )


def _load_yaml(path: Path) -> Dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf8") as handle:
        try:
            return yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {path}: {exc}") from exc


def load_config(path: Path) -> AppConfig:
    """Load an :class:`AppConfig` from a JSON or YAML file."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    if path.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(path)
    else:
        with path.open("r", encoding="utf8") as handle:
            try:
                raw = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must contain a mapping at the top level.")

    config = AppConfig.from_mapping(raw)
    logger.debug("Loaded %d place(s) from %s", len(config.places), path)
    return config

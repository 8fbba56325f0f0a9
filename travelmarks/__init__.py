"""Travel marks: geocode an itinerary and animate the route between its stops."""

from .animation import AnimationController, AnimationSession, AnimationState, CuePlayer, ManualClock
from .autocomplete import AutocompletePipeline
from .config import AnimationConfig, AppConfig, ConfigError, GeocodingConfig, load_config
from .geocoding import GeocodingResolver, NetworkError, Suggestion
from .geometry import RouteEstimate, estimate_route, haversine_km
from .itinerary import Itinerary, PlaceList
from .map_adapter import CameraView, MapAdapter, MemoryMapAdapter

__all__ = [
    "AnimationConfig",
    "AnimationController",
    "AnimationSession",
    "AnimationState",
    "AppConfig",
    "AutocompletePipeline",
    "CameraView",
    "ConfigError",
    "CuePlayer",
    "GeocodingConfig",
    "GeocodingResolver",
    "Itinerary",
    "ManualClock",
    "MapAdapter",
    "MemoryMapAdapter",
    "NetworkError",
    "PlaceList",
    "RouteEstimate",
    "Suggestion",
    "estimate_route",
    "haversine_km",
    "load_config",
]

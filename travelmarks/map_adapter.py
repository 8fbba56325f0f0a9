"""Interface between the animation controller and a map rendering surface."""
from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .geometry import Bounds, Coordinate

logger = logging.getLogger(__name__)

Dash = Tuple[float, float]
SettledCallback = Callable[[], None]

DEFAULT_CENTER: Coordinate = (120.0, 23.0)
DEFAULT_ZOOM = 4.0
LOCATED_ZOOM = 8.0


@dataclass(frozen=True)
class CameraView:
    center: Coordinate
    zoom: float


def initial_camera(locate: Optional[Callable[[], Optional[Coordinate]]] = None) -> CameraView:
    """Pick the starting view from a one-shot, best-effort position lookup."""

    if locate is not None:
        try:
            position = locate()
        except Exception:
            logger.info("Position lookup failed; using the default map center", exc_info=True)
            position = None
        if position is not None:
            return CameraView(center=position, zoom=LOCATED_ZOOM)
    return CameraView(center=DEFAULT_CENTER, zoom=DEFAULT_ZOOM)


class MapAdapter(ABC):
    """Marker, polyline and camera commands issued by the controller.

    Handles returned by ``add_marker`` and ``add_route`` are opaque to the
    caller and only valid for the adapter that issued them.
    """

    @abstractmethod
    def add_marker(self, position: Coordinate, kind: str = "place") -> Any: ...

    @abstractmethod
    def move_marker(self, marker: Any, position: Coordinate) -> None: ...

    @abstractmethod
    def remove_marker(self, marker: Any) -> None: ...

    @abstractmethod
    def add_route(self, coordinates: Sequence[Coordinate], dash: Dash) -> Any: ...

    @abstractmethod
    def update_route(self, route: Any, coordinates: Sequence[Coordinate]) -> None: ...

    @abstractmethod
    def remove_route(self, route: Any) -> None: ...

    @abstractmethod
    def fly_to(
        self, center: Coordinate, zoom: float, on_settled: Optional[SettledCallback] = None
    ) -> None:
        """Start a camera flight; ``on_settled`` fires once it has finished."""

    @abstractmethod
    def ease_to(self, center: Coordinate, zoom: float) -> None: ...

    @abstractmethod
    def fit_bounds(self, bounds: Bounds, padding: float) -> None: ...


class MemoryMapAdapter(MapAdapter):
    """Adapter that keeps map state in dictionaries instead of drawing it.

    Every command is appended to ``commands`` so hosts and tests can inspect
    the exact choreography. Camera flights stay pending until
    :meth:`settle_camera` is called unless ``auto_settle`` is set.
    """

    def __init__(self, view: Optional[CameraView] = None, auto_settle: bool = False) -> None:
        self.view = view or CameraView(DEFAULT_CENTER, DEFAULT_ZOOM)
        self.auto_settle = auto_settle
        self.markers: Dict[int, Dict[str, Any]] = {}
        self.routes: Dict[int, Dict[str, Any]] = {}
        self.fitted_bounds: Optional[Bounds] = None
        self.commands: List[Tuple[Any, ...]] = []
        self._ids = itertools.count(1)
        self._pending_settle: List[SettledCallback] = []

    def add_marker(self, position: Coordinate, kind: str = "place") -> int:
        handle = next(self._ids)
        self.markers[handle] = {"position": position, "kind": kind}
        self.commands.append(("add_marker", handle, kind, position))
        return handle

    def move_marker(self, marker: int, position: Coordinate) -> None:
        self.markers[marker]["position"] = position
        self.commands.append(("move_marker", marker, position))

    def remove_marker(self, marker: int) -> None:
        self.markers.pop(marker, None)
        self.commands.append(("remove_marker", marker))

    def add_route(self, coordinates: Sequence[Coordinate], dash: Dash) -> int:
        handle = next(self._ids)
        self.routes[handle] = {"coordinates": list(coordinates), "dash": dash}
        self.commands.append(("add_route", handle, dash))
        return handle

    def update_route(self, route: int, coordinates: Sequence[Coordinate]) -> None:
        self.routes[route]["coordinates"] = list(coordinates)
        self.commands.append(("update_route", route, len(coordinates)))

    def remove_route(self, route: int) -> None:
        self.routes.pop(route, None)
        self.commands.append(("remove_route", route))

    def fly_to(
        self, center: Coordinate, zoom: float, on_settled: Optional[SettledCallback] = None
    ) -> None:
        self.view = CameraView(center, zoom)
        self.commands.append(("fly_to", center, zoom))
        if on_settled is None:
            return
        if self.auto_settle:
            on_settled()
        else:
            self._pending_settle.append(on_settled)

    def ease_to(self, center: Coordinate, zoom: float) -> None:
        self.view = CameraView(center, zoom)
        self.commands.append(("ease_to", center, zoom))

    def fit_bounds(self, bounds: Bounds, padding: float) -> None:
        self.fitted_bounds = bounds
        self.commands.append(("fit_bounds", bounds, padding))

    def settle_camera(self) -> None:
        """Report every pending camera flight as finished."""

        callbacks, self._pending_settle = self._pending_settle, []
        for callback in callbacks:
            callback()

    def markers_of_kind(self, kind: str) -> List[Coordinate]:
        return [m["position"] for m in self.markers.values() if m["kind"] == kind]

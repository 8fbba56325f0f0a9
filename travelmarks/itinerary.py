"""Place list store and the glue between resolver, estimator and animation."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from .animation import AnimationController
from .autocomplete import DEFAULT_DEBOUNCE_MS, AutocompletePipeline
from .geocoding import GeocodingResolver, Suggestion
from .geometry import Coordinate, RouteEstimate, estimate_route

logger = logging.getLogger(__name__)

PlacesListener = Callable[[Tuple[str, ...]], None]


class PlaceList:
    """Ordered place names; append at the end and remove by index only."""

    def __init__(self, places: Iterable[str] = ()) -> None:
        self._items: List[str] = list(places)
        self._listeners: List[PlacesListener] = []

    @property
    def items(self) -> Tuple[str, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self.items)

    def subscribe(self, listener: PlacesListener) -> None:
        self._listeners.append(listener)

    def append(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("Place name must not be blank.")
        self._items.append(name)
        self._notify()

    def remove(self, index: int) -> str:
        if not 0 <= index < len(self._items):
            raise IndexError(f"No place at position {index}")
        removed = self._items.pop(index)
        self._notify()
        return removed

    def _notify(self) -> None:
        snapshot = self.items
        for listener in list(self._listeners):
            listener(snapshot)


class Itinerary:
    """Commands and observables exposed to a UI shell.

    Every place-list mutation invalidates the running animation at once and
    re-resolves the whole list from scratch. Resolution passes are numbered;
    a pass that finishes after a newer one was started is discarded.
    """

    def __init__(
        self,
        resolver: GeocodingResolver,
        controller: AnimationController,
        places: Iterable[str] = (),
        autocomplete: Optional[AutocompletePipeline] = None,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self.resolver = resolver
        self.controller = controller
        self.store = PlaceList(places)
        self.autocomplete = autocomplete or AutocompletePipeline.from_resolver(
            resolver, self.store.append, debounce_ms=debounce_ms
        )
        self.estimate = RouteEstimate()
        self._generation = 0
        self._dirty = len(self.store) > 0
        self._resolution: Optional["asyncio.Task[None]"] = None
        self.store.subscribe(self._places_changed)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _places_changed(self, places: Tuple[str, ...]) -> None:
        self.controller.invalidate()
        self._generation += 1
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Resolved on the next explicit refresh().
            return
        self._resolution = loop.create_task(self._resolve(self._generation, places))

    async def _resolve(self, generation: int, places: Tuple[str, ...]) -> None:
        coords = await asyncio.to_thread(self.resolver.resolve_all, list(places))
        if generation != self._generation:
            logger.debug("Discarding stale resolution pass %d", generation)
            return
        self._apply(coords)

    def _apply(self, coords: List[Coordinate]) -> None:
        self.controller.set_coordinates(coords)
        self.estimate = estimate_route(self.controller.coordinates)
        self._dirty = False
        logger.info(
            "Route has %d stop(s), %.1f km, about %.1f h",
            len(coords),
            self.estimate.distance_km,
            self.estimate.eta_hours,
        )

    async def refresh(self) -> None:
        """Resolve the current place list now, superseding any pass in flight."""

        self._generation += 1
        await self._resolve(self._generation, self.store.items)

    async def settle(self) -> None:
        """Wait for pending autocomplete queries and coordinate resolution."""

        await self.autocomplete.settle()
        while self._resolution is not None and not self._resolution.done():
            await self._resolution

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_place(self, name: str) -> None:
        self.store.append(name)

    def remove_place(self, index: int) -> str:
        return self.store.remove(index)

    def request_animation(self) -> bool:
        if self._dirty:
            logger.debug("Coordinates are still being resolved; start request ignored")
            return False
        return self.controller.request_animation()

    def toggle_pause(self, now: Optional[float] = None) -> bool:
        return self.controller.toggle_pause(now)

    def set_speed(self, multiplier: float) -> bool:
        return self.controller.set_speed(multiplier)

    def toggle_sound(self) -> bool:
        """Flip the mute flag and return whether sound is now muted."""

        return self.controller.cues.toggle_mute()

    def type_text(self, text: str) -> None:
        self.autocomplete.on_query_change(text)

    def highlight_next(self) -> None:
        self.autocomplete.move_down()

    def highlight_previous(self) -> None:
        self.autocomplete.move_up()

    def confirm_suggestion(self, index: Optional[int] = None) -> Optional[str]:
        return self.autocomplete.confirm(index)

    def add_typed(self) -> Optional[str]:
        return self.autocomplete.add_typed()

    # ------------------------------------------------------------------
    # Observables
    # ------------------------------------------------------------------

    @property
    def places(self) -> Tuple[str, ...]:
        return self.store.items

    @property
    def coordinates(self) -> Tuple[Coordinate, ...]:
        return self.controller.coordinates

    @property
    def suggestions(self) -> Tuple[Suggestion, ...]:
        return self.autocomplete.suggestions

    @property
    def highlighted(self) -> int:
        return self.autocomplete.highlighted

    @property
    def total_distance_km(self) -> float:
        return self.estimate.distance_km

    @property
    def eta_hours(self) -> float:
        return self.estimate.eta_hours

    @property
    def segment_index(self) -> Optional[int]:
        return self.controller.segment_index

    @property
    def animating(self) -> bool:
        return self.controller.is_active

    @property
    def paused(self) -> bool:
        return self.controller.paused

    @property
    def muted(self) -> bool:
        return self.controller.cues.muted

    @property
    def resolving(self) -> bool:
        return self._dirty

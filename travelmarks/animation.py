"""Frame-driven route animation state machine.

The host calls :meth:`AnimationController.tick` once per display frame. The
controller reads time from an injectable millisecond clock, so tests and the
video exporter can drive it with a :class:`ManualClock` instead of wall time.

States::

    IDLE -> REQUESTED -> RUNNING <-> PAUSED -> COMPLETING -> IDLE

Any coordinate change while a session exists returns the controller to IDLE
and removes every transient marker and route layer.
"""
from __future__ import annotations

import enum
import itertools
import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .geometry import Coordinate, bounding_box, lerp
from .map_adapter import MapAdapter

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
CueSink = Callable[[str], None]

BASE_SEGMENT_MS = 3500.0
SPEED_CHOICES: Tuple[float, ...] = (0.5, 1.0, 1.5, 2.0, 3.0)

ZOOM_WIDE = 8.0
ZOOM_CLOSE = 10.0
ZOOM_IN_UNTIL = 0.18
ZOOM_OUT_FROM = 0.82

PROGRESS_DASH = (2.0, 3.0)
FINAL_DASH = (2.0, 4.0)
FIT_PADDING = 60.0


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - (-2.0 * t + 2.0) ** 3 / 2.0


def zoom_at(t: float) -> float:
    """Zoom in over the first part of a segment, hold, then zoom back out."""

    if t < ZOOM_IN_UNTIL:
        return ZOOM_WIDE + (ZOOM_CLOSE - ZOOM_WIDE) * (t / ZOOM_IN_UNTIL)
    if t > ZOOM_OUT_FROM:
        return ZOOM_CLOSE - (ZOOM_CLOSE - ZOOM_WIDE) * ((t - ZOOM_OUT_FROM) / (1.0 - ZOOM_OUT_FROM))
    return ZOOM_CLOSE


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ManualClock:
    """Virtual millisecond clock that only moves when advanced."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self.now_ms = start_ms

    def advance(self, ms: float) -> float:
        self.now_ms += ms
        return self.now_ms

    def __call__(self) -> float:
        return self.now_ms


class CuePlayer:
    """Fire lifecycle cues unless muted."""

    def __init__(self, muted: bool = False, sink: Optional[CueSink] = None) -> None:
        self.muted = muted
        self._sink = sink or self._log_cue

    @staticmethod
    def _log_cue(name: str) -> None:
        logger.info("cue: %s", name)

    def emit(self, name: str) -> None:
        if not self.muted:
            self._sink(name)

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        return self.muted


class AnimationState(enum.Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETING = "completing"


@dataclass
class AnimationSession:
    """State of a single playthrough."""

    id: int
    coordinates: Tuple[Coordinate, ...]
    speed: float
    confirmed: List[Coordinate] = field(default_factory=list)
    segment_index: int = 0
    progress: float = 0.0
    paused: bool = False
    current_point: Optional[Coordinate] = None
    completed: bool = False
    segment_started_at: float = 0.0
    paused_total: float = 0.0
    paused_at: Optional[float] = None
    marker: Any = None
    route: Any = None

    @property
    def segment_duration_ms(self) -> float:
        return BASE_SEGMENT_MS / self.speed

    @property
    def confirmed_prefix(self) -> List[Coordinate]:
        if self.current_point is None:
            return list(self.confirmed)
        return self.confirmed + [self.current_point]


class AnimationController:
    """Drive a map adapter through the route animation, one frame per tick."""

    def __init__(
        self,
        adapter: MapAdapter,
        clock: Optional[Clock] = None,
        cues: Optional[CuePlayer] = None,
    ) -> None:
        self.adapter = adapter
        self.cues = cues or CuePlayer()
        self.speed = 1.0
        self.state = AnimationState.IDLE
        self.session: Optional[AnimationSession] = None
        self.completed_route: List[Coordinate] = []
        self._clock = clock or monotonic_ms
        self._coordinates: Tuple[Coordinate, ...] = ()
        self._session_ids = itertools.count(1)
        self._place_markers: List[Any] = []
        self._final_route: Any = None

    # ------------------------------------------------------------------
    # Observables
    # ------------------------------------------------------------------

    @property
    def coordinates(self) -> Tuple[Coordinate, ...]:
        return self._coordinates

    @property
    def is_active(self) -> bool:
        return self.session is not None

    @property
    def paused(self) -> bool:
        return self.state is AnimationState.PAUSED

    @property
    def segment_index(self) -> Optional[int]:
        return self.session.segment_index if self.session else None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def set_coordinates(self, coordinates: Sequence[Coordinate]) -> None:
        """Replace the route, tearing down any session, and mark every stop."""

        self.invalidate()
        self._clear_overlays()
        self._coordinates = tuple((float(lon), float(lat)) for lon, lat in coordinates)
        self.completed_route = []
        if not self._coordinates:
            return
        self._place_markers = [self.adapter.add_marker(c, "place") for c in self._coordinates]
        self.adapter.fly_to(self._coordinates[-1], ZOOM_CLOSE)

    def invalidate(self) -> bool:
        """Drop the active session and its transient visuals. Returns whether one existed."""

        session = self.session
        if session is None:
            return False
        if session.marker is not None:
            self.adapter.remove_marker(session.marker)
        if session.route is not None:
            self.adapter.remove_route(session.route)
        self.session = None
        self.state = AnimationState.IDLE
        logger.info("Animation session %d invalidated", session.id)
        return True

    def request_animation(self) -> bool:
        if self.session is not None or self.state is not AnimationState.IDLE:
            logger.debug("Animation already active; start request ignored")
            return False
        if len(self._coordinates) < 2:
            logger.debug("Need at least two coordinates to animate, have %d", len(self._coordinates))
            return False

        self._clear_overlays()
        coords = self._coordinates
        session = AnimationSession(
            id=next(self._session_ids),
            coordinates=coords,
            speed=self.speed,
            confirmed=[coords[0]],
        )
        self.session = session
        self.state = AnimationState.REQUESTED
        self.completed_route = []
        session.marker = self.adapter.add_marker(coords[0], "vehicle")
        session.route = self.adapter.add_route([coords[0]], PROGRESS_DASH)
        logger.info("Animation session %d requested over %d stops", session.id, len(coords))
        # Interpolation starts only once the initial flight has landed.
        self.adapter.fly_to(coords[0], ZOOM_CLOSE, on_settled=partial(self._camera_settled, session.id))
        return True

    def _camera_settled(self, session_id: int) -> None:
        session = self.session
        if session is None or session.id != session_id or self.state is not AnimationState.REQUESTED:
            return
        session.segment_started_at = self._clock()
        self.state = AnimationState.RUNNING
        self.cues.emit("start")

    def toggle_pause(self, now: Optional[float] = None) -> bool:
        session = self.session
        if session is None:
            return False
        now = self._clock() if now is None else now
        if self.state is AnimationState.RUNNING:
            session.paused_at = now
            session.paused = True
            self.state = AnimationState.PAUSED
            return True
        if self.state is AnimationState.PAUSED:
            if session.paused_at is not None:
                session.paused_total += now - session.paused_at
            session.paused_at = None
            session.paused = False
            self.state = AnimationState.RUNNING
            return True
        return False

    def set_speed(self, multiplier: float) -> bool:
        if multiplier not in SPEED_CHOICES:
            raise ValueError(f"Speed must be one of {SPEED_CHOICES}, got {multiplier}")
        if self.is_active:
            logger.debug("Speed is locked while an animation is playing")
            return False
        self.speed = float(multiplier)
        return True

    # ------------------------------------------------------------------
    # Frame handling
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> None:
        """Advance the running session by one frame."""

        if self.state is not AnimationState.RUNNING or self.session is None:
            return
        session = self.session
        now = self._clock() if now is None else now

        start = session.coordinates[session.segment_index]
        end = session.coordinates[session.segment_index + 1]
        elapsed = now - session.segment_started_at - session.paused_total
        t = min(max(elapsed / session.segment_duration_ms, 0.0), 1.0)
        point = lerp(start, end, ease_in_out_cubic(t))
        session.progress = t
        session.current_point = point

        self.adapter.move_marker(session.marker, point)
        self.adapter.update_route(session.route, session.confirmed_prefix)
        self.adapter.ease_to(point, zoom_at(t))
        if t < 1.0:
            return

        session.confirmed.append(end)
        session.current_point = None
        self.adapter.move_marker(session.marker, end)
        self.adapter.update_route(session.route, session.confirmed)
        self.cues.emit("segment")

        session.segment_index += 1
        session.progress = 0.0
        if session.segment_index >= len(session.coordinates) - 1:
            self._complete(session)
            return
        session.segment_started_at = now
        session.paused_total = 0.0

    def _complete(self, session: AnimationSession) -> None:
        self.state = AnimationState.COMPLETING
        self.cues.emit("complete")
        self.adapter.remove_marker(session.marker)
        self.adapter.remove_route(session.route)
        session.marker = session.route = None
        session.completed = True
        self.completed_route = list(session.confirmed)

        coords = session.coordinates
        self._final_route = self.adapter.add_route(coords, FINAL_DASH)
        self._place_markers = [self.adapter.add_marker(c, "place") for c in coords]
        self.adapter.fit_bounds(bounding_box(coords), FIT_PADDING)

        self.session = None
        self.state = AnimationState.IDLE
        logger.info("Animation session %d complete", session.id)

    def _clear_overlays(self) -> None:
        for marker in self._place_markers:
            self.adapter.remove_marker(marker)
        self._place_markers = []
        if self._final_route is not None:
            self.adapter.remove_route(self._final_route)
            self._final_route = None

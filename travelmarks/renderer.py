"""Off-screen matplotlib map surface and the video exporter built on it."""
from __future__ import annotations

import itertools
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import imageio.v2 as imageio
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.offsetbox import AnnotationBbox, OffsetImage
import numpy as np

from .animation import ManualClock, ease_in_out_cubic
from .config import AnimationConfig
from .geometry import Bounds, Coordinate, lerp
from .icons import load_marker_icon
from .itinerary import Itinerary
from .map_adapter import CameraView, Dash, MapAdapter, SettledCallback

logger = logging.getLogger(__name__)

TILE_SIZE = 256.0
MAX_ZOOM = 20.0
ROUTE_COLOUR = "#3b82f6"


class _Flight:
    def __init__(self, start: CameraView, target: CameraView, frames: int) -> None:
        self.start = start
        self.target = target
        self.frames = max(1, frames)
        self.step = 0

    def advance(self) -> CameraView:
        self.step += 1
        f = ease_in_out_cubic(min(self.step / self.frames, 1.0))
        return CameraView(
            center=lerp(self.start.center, self.target.center, f),
            zoom=self.start.zoom + (self.target.zoom - self.start.zoom) * f,
        )

    @property
    def done(self) -> bool:
        return self.step >= self.frames


class MatplotlibMapAdapter(MapAdapter):
    """Draw markers, routes and the camera viewport into an Agg figure.

    Camera flights (``fly_to`` and ``fit_bounds``) are spread over
    ``fly_frames`` calls to :meth:`advance_frame`; settle callbacks fire on
    the frame the flight lands.
    """

    def __init__(
        self,
        width: int = 1280,
        height: int = 720,
        view: Optional[CameraView] = None,
        fly_frames: int = 15,
        dpi: int = 100,
    ) -> None:
        self.width = width
        self.height = height
        self.fly_frames = fly_frames
        self.view = view or CameraView((0.0, 0.0), 2.0)
        self._ids = itertools.count(1)
        self._markers: Dict[int, AnnotationBbox] = {}
        self._routes: Dict[int, Line2D] = {}
        self._icons = {kind: load_marker_icon(kind) for kind in ("place", "vehicle")}
        self._flight: Optional[_Flight] = None
        self._settle_callbacks: List[SettledCallback] = []
        self._setup_canvas(dpi)
        self._apply_view()

    # ------------------------------------------------------------------
    # Canvas
    # ------------------------------------------------------------------

    def _setup_canvas(self, dpi: int) -> None:
        figsize = (self.width / dpi, self.height / dpi)
        self._fig = plt.figure(figsize=figsize, dpi=dpi)
        self._fig.patch.set_facecolor("#06142a")
        self._ax = self._fig.add_axes([0.0, 0.0, 1.0, 1.0])
        self._ax.set_facecolor("#0a1f3f")
        self._ax.set_aspect("auto")

        # Graticule every degree, drawn as an unlabeled grid.
        self._ax.set_xticks(np.arange(-180.0, 181.0, 1.0))
        self._ax.set_yticks(np.arange(-90.0, 91.0, 1.0))
        self._ax.tick_params(length=0, labelbottom=False, labelleft=False)
        self._ax.grid(True, color="#12355b", linewidth=0.5, alpha=0.6)

        self._summary_text = self._ax.text(
            0.02,
            0.02,
            "",
            transform=self._ax.transAxes,
            color="#ffffff",
            fontsize=10,
            ha="left",
            va="bottom",
            bbox=dict(facecolor="#000000", alpha=0.7, boxstyle="round,pad=0.5"),
            visible=False,
        )

    def _spans(self, zoom: float) -> tuple:
        scale = 360.0 / (TILE_SIZE * 2.0**zoom)
        return scale * self.width, scale * self.height

    def _apply_view(self) -> None:
        lon, lat = self.view.center
        lon_span, lat_span = self._spans(self.view.zoom)
        self._ax.set_xlim(lon - lon_span / 2.0, lon + lon_span / 2.0)
        self._ax.set_ylim(lat - lat_span / 2.0, lat + lat_span / 2.0)

    # ------------------------------------------------------------------
    # Markers and routes
    # ------------------------------------------------------------------

    def add_marker(self, position: Coordinate, kind: str = "place") -> int:
        icon = self._icons.get(kind)
        if icon is None:
            icon = load_marker_icon(kind)
        artist = AnnotationBbox(OffsetImage(icon, zoom=0.35), position, frameon=False)
        artist.set_zorder(4 if kind == "vehicle" else 3)
        self._ax.add_artist(artist)
        handle = next(self._ids)
        self._markers[handle] = artist
        return handle

    def move_marker(self, marker: int, position: Coordinate) -> None:
        artist = self._markers[marker]
        artist.xy = position
        artist.xybox = position

    def remove_marker(self, marker: int) -> None:
        artist = self._markers.pop(marker, None)
        if artist is not None:
            artist.remove()

    def add_route(self, coordinates: Sequence[Coordinate], dash: Dash) -> int:
        line, = self._ax.plot(
            [lon for lon, _ in coordinates],
            [lat for _, lat in coordinates],
            color=ROUTE_COLOUR,
            linewidth=4,
            linestyle=(0, dash),
            dash_capstyle="round",
            zorder=2,
        )
        handle = next(self._ids)
        self._routes[handle] = line
        return handle

    def update_route(self, route: int, coordinates: Sequence[Coordinate]) -> None:
        self._routes[route].set_data(
            [lon for lon, _ in coordinates],
            [lat for _, lat in coordinates],
        )

    def remove_route(self, route: int) -> None:
        line = self._routes.pop(route, None)
        if line is not None:
            line.remove()

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def fly_to(
        self, center: Coordinate, zoom: float, on_settled: Optional[SettledCallback] = None
    ) -> None:
        self._flight = _Flight(self.view, CameraView(center, zoom), self.fly_frames)
        if on_settled is not None:
            self._settle_callbacks.append(on_settled)

    def ease_to(self, center: Coordinate, zoom: float) -> None:
        self._flight = None
        self.view = CameraView(center, zoom)
        self._apply_view()

    def fit_bounds(self, bounds: Bounds, padding: float) -> None:
        (west, south), (east, north) = bounds
        usable_w = max(self.width - 2.0 * padding, 1.0)
        usable_h = max(self.height - 2.0 * padding, 1.0)
        zoom_x = math.log2(360.0 * usable_w / (TILE_SIZE * max(east - west, 1e-6)))
        zoom_y = math.log2(360.0 * usable_h / (TILE_SIZE * max(north - south, 1e-6)))
        zoom = min(max(min(zoom_x, zoom_y), 0.0), MAX_ZOOM)
        self.fly_to(((west + east) / 2.0, (south + north) / 2.0), zoom)

    def advance_frame(self) -> None:
        """Move any camera flight forward by one frame."""

        if self._flight is not None:
            self.view = self._flight.advance()
            self._apply_view()
            if not self._flight.done:
                return
            self._flight = None
        callbacks, self._settle_callbacks = self._settle_callbacks, []
        for callback in callbacks:
            callback()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def show_summary(self, text: str) -> None:
        self._summary_text.set_text(text)
        self._summary_text.set_visible(bool(text))

    def capture_frame(self) -> np.ndarray:
        """Return the current frame as an ``(height, width, 3)`` RGB array."""

        self._fig.canvas.draw()
        image = np.asarray(self._fig.canvas.buffer_rgba())
        return image[:, :, :3].copy()

    def close(self) -> None:
        plt.close(self._fig)


class TravelMapAnimator:
    """Play an itinerary's animation on a virtual clock and record it to video."""

    def __init__(
        self,
        itinerary: Itinerary,
        adapter: MatplotlibMapAdapter,
        clock: ManualClock,
        config: Optional[AnimationConfig] = None,
    ) -> None:
        self.itinerary = itinerary
        self.adapter = adapter
        self.clock = clock
        self.config = config or AnimationConfig()

    def _format_summary_text(self) -> str:
        lines = ["Trip Summary"]
        for index, place in enumerate(self.itinerary.places, start=1):
            lines.append(f"{index}. {place}")
        lines.append(f"Total distance: {self.itinerary.total_distance_km:.1f} km")
        lines.append(f"Estimated time: {self.itinerary.eta_hours:.1f} h at 60 km/h")
        return "\n".join(lines)

    def _step(self, frame_ms: float) -> None:
        self.clock.advance(frame_ms)
        self.adapter.advance_frame()
        self.itinerary.controller.tick()

    def render(self, output_path: Optional[Path] = None) -> Path:
        output_path = Path(output_path or self.config.output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.itinerary.request_animation():
            raise RuntimeError("Animation could not start; at least two resolved places are required.")

        fps = self.config.frame_rate
        frame_ms = 1000.0 / fps
        try:
            writer_ctx = imageio.get_writer(
                output_path,
                fps=fps,
                codec="libx264",
                format="FFMPEG",
                macro_block_size=None,
                quality=8,
            )
        except ImportError as exc:
            self.itinerary.controller.invalidate()
            raise ImportError(
                "FFMPEG support is required to export videos. Install the "
                "'imageio-ffmpeg' package (for example via 'pip install "
                "imageio-ffmpeg') and try again."
            ) from exc

        frames = 0
        with writer_ctx as writer:
            while self.itinerary.animating:
                if frames >= self.config.max_frames:
                    logger.warning("Stopping after %d frames without completing the route", frames)
                    self.itinerary.controller.invalidate()
                    break
                self._step(frame_ms)
                writer.append_data(self.adapter.capture_frame())
                frames += 1

            self.adapter.show_summary(self._format_summary_text())
            hold_frames = int(round(max(self.config.summary_display_seconds, 0.0) * fps))
            for _ in range(max(hold_frames, self.adapter.fly_frames)):
                self._step(frame_ms)
                writer.append_data(self.adapter.capture_frame())
                frames += 1

        self.adapter.close()
        logger.info("Wrote %d frame(s) to %s", frames, output_path)
        return output_path

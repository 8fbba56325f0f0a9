"""Command line entry point for the travel marks route animator."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from .animation import SPEED_CHOICES, AnimationController, CuePlayer, ManualClock
from .config import AppConfig, ConfigError, load_config
from .geocoding import GeocodingResolver
from .itinerary import Itinerary
from .map_adapter import initial_camera
from .renderer import MatplotlibMapAdapter, TravelMapAnimator

logger = logging.getLogger(__name__)


def _parse_center(value: str) -> Tuple[float, float]:
    try:
        lon, lat = (float(part) for part in value.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("expected LON,LAT") from exc
    return lon, lat


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve an ordered list of places and record an animated route video."
    )
    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        help="Optional JSON or YAML configuration file listing places and settings.",
    )
    parser.add_argument("--place", action="append", default=[], help="Place to visit (repeatable).")
    parser.add_argument("--speed", type=float, choices=SPEED_CHOICES, help="Playback speed multiplier.")
    parser.add_argument("--mute", action="store_true", help="Silence animation cues.")
    parser.add_argument("--output", type=Path, help="Where to write the video.")
    parser.add_argument("--center", type=_parse_center, help="Known position as LON,LAT for the opening view.")
    parser.add_argument("--suggest", metavar="TEXT", help="Print autocomplete suggestions for TEXT and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config) if args.config else AppConfig.from_mapping({})
    config.places.extend(args.place)
    if args.speed is not None:
        config.animation.speed = args.speed
    if args.mute:
        config.animation.muted = True
    if args.output is not None:
        config.animation.output_path = args.output
    if args.center is not None:
        config.center = args.center
    return config


def _suggest(resolver: GeocodingResolver, text: str) -> int:
    if not resolver.autocomplete_enabled:
        print("Autocomplete is unavailable without a geocoding access token.")
        return 1
    for index, suggestion in enumerate(resolver.resolve_candidates(text), start=1):
        print(f"{index}. {suggestion.name}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    try:
        config = _build_config(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    resolver = GeocodingResolver(config.geocoding)
    if args.suggest:
        return _suggest(resolver, args.suggest)

    view = initial_camera((lambda: config.center) if config.center else None)
    clock = ManualClock()
    adapter = MatplotlibMapAdapter(config.animation.width, config.animation.height, view=view)
    controller = AnimationController(adapter, clock=clock, cues=CuePlayer(muted=config.animation.muted))
    controller.set_speed(config.animation.speed)
    itinerary = Itinerary(resolver, controller, places=config.places, debounce_ms=config.debounce_ms)

    asyncio.run(itinerary.refresh())
    print(f"Stops resolved: {len(itinerary.coordinates)} of {len(itinerary.places)}")
    print(f"Total distance: {itinerary.total_distance_km:.1f} km")
    print(f"Estimated time: {itinerary.eta_hours:.1f} h")

    animator = TravelMapAnimator(itinerary, adapter, clock, config.animation)
    try:
        output_path = animator.render()
    except (RuntimeError, ImportError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        adapter.close()
    print(f"Saved animation to {output_path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())

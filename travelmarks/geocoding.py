"""Forward geocoding against the Mapbox places endpoint.

Two request modes share one code path: single best match (``resolve_one``)
and a ranked autocomplete candidate list (``resolve_candidates``). Failures
never escape the resolver; they are logged and treated as empty results.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests

from .config import GeocodingConfig
from .geometry import Coordinate

logger = logging.getLogger(__name__)


class NetworkError(RuntimeError):
    """The geocoding request failed or returned a non-success status."""


@dataclass(frozen=True)
class Suggestion:
    """One ranked autocomplete candidate."""

    name: str
    id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def center(self) -> Optional[Coordinate]:
        return _feature_center(self.raw)


def _feature_center(feature: Dict[str, Any]) -> Optional[Coordinate]:
    center = feature.get("center")
    try:
        lon, lat = center
        return float(lon), float(lat)
    except (TypeError, ValueError):
        return None


class GeocodingResolver:
    """Resolve free-text place names to coordinates."""

    def __init__(
        self,
        config: Optional[GeocodingConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or GeocodingConfig()
        self._session = session or requests.Session()
        if not self.config.has_credential:
            logger.warning(
                "No geocoding access token configured (set MAPBOX_TOKEN); "
                "autocomplete is disabled."
            )

    @property
    def autocomplete_enabled(self) -> bool:
        return self.config.has_credential

    def _fetch_features(self, text: str, *, autocomplete: bool) -> List[Dict[str, Any]]:
        url = f"{self.config.base_url}/{quote(text, safe='')}.json"
        params: Dict[str, Any] = {"access_token": self.config.access_token or ""}
        if autocomplete:
            params["autocomplete"] = "true"
        try:
            resp = self._session.get(url, params=params, timeout=self.config.timeout_seconds)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise NetworkError(f"Geocoding request for {text!r} failed: {exc}") from exc
        features = data.get("features") if isinstance(data, dict) else None
        return [f for f in features or [] if isinstance(f, dict)]

    def resolve_one(self, name: str) -> Optional[Coordinate]:
        """Return the top-ranked coordinate for ``name``, or ``None`` if not found."""

        try:
            features = self._fetch_features(name, autocomplete=False)
        except NetworkError as exc:
            logger.warning("%s", exc)
            return None
        if not features:
            logger.info("No geocoding match for %r", name)
            return None
        coord = _feature_center(features[0])
        if coord is None:
            logger.warning("Top geocoding match for %r has no usable center", name)
        return coord

    def resolve_candidates(self, text: str) -> List[Suggestion]:
        """Return the ranked autocomplete candidates for ``text``; empty on failure."""

        if not self.autocomplete_enabled:
            return []
        try:
            features = self._fetch_features(text, autocomplete=True)
        except NetworkError as exc:
            logger.warning("%s", exc)
            return []
        suggestions: List[Suggestion] = []
        for feature in features:
            name = feature.get("place_name")
            if not name:
                continue
            feature_id = feature.get("id")
            suggestions.append(
                Suggestion(name=str(name), id=str(feature_id) if feature_id else None, raw=feature)
            )
        return suggestions

    def resolve_each(self, places: Sequence[str]) -> List[Optional[Coordinate]]:
        """Resolve every place sequentially, keeping ``None`` for misses."""

        return [self.resolve_one(place) for place in places]

    def resolve_all(self, places: Sequence[str]) -> List[Coordinate]:
        """Resolve places in order, dropping the ones that could not be found.

        The result can be shorter than ``places``, in which case positions no
        longer line up with the input list.
        """

        resolved = [coord for coord in self.resolve_each(places) if coord is not None]
        if len(resolved) < len(places):
            logger.info("Resolved %d of %d place(s)", len(resolved), len(places))
        return resolved

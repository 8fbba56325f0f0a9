"""Debounced, last-query-wins autocomplete over the geocoding resolver."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from .geocoding import GeocodingResolver, Suggestion

logger = logging.getLogger(__name__)

FetchCandidates = Callable[[str], Awaitable[List[Suggestion]]]

DEFAULT_DEBOUNCE_MS = 300.0


class AutocompletePipeline:
    """Turn keystrokes into a suggestion list and a keyboard selection cursor.

    Every text change bumps a query token. A debounced request fires only if
    no newer change happened during the idle window, and its response is
    applied only if its token is still the latest one issued. Responses that
    arrive out of order are dropped without affecting the visible list.

    Must be driven from a running event loop; the fetch itself may run in a
    worker thread but state is only touched on the loop.
    """

    def __init__(
        self,
        fetch: FetchCandidates,
        on_confirm: Callable[[str], None],
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        enabled: bool = True,
    ) -> None:
        self._fetch = fetch
        self._on_confirm = on_confirm
        self.debounce_ms = debounce_ms
        self.enabled = enabled
        self.text = ""
        self.highlighted = -1
        self._suggestions: Tuple[Suggestion, ...] = ()
        self._token = 0
        self._tasks: Set["asyncio.Task[None]"] = set()

    @classmethod
    def from_resolver(
        cls,
        resolver: GeocodingResolver,
        on_confirm: Callable[[str], None],
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
    ) -> "AutocompletePipeline":
        async def fetch(text: str) -> List[Suggestion]:
            return await asyncio.to_thread(resolver.resolve_candidates, text)

        return cls(fetch, on_confirm, debounce_ms=debounce_ms, enabled=resolver.autocomplete_enabled)

    @property
    def suggestions(self) -> Tuple[Suggestion, ...]:
        return self._suggestions

    @property
    def latest_token(self) -> int:
        return self._token

    # ------------------------------------------------------------------
    # Query handling
    # ------------------------------------------------------------------

    def on_query_change(self, text: str) -> None:
        self.text = text
        self._token += 1
        if not text.strip():
            self._set_suggestions([])
            return
        if not self.enabled:
            return
        task = asyncio.get_running_loop().create_task(self._run_query(self._token, text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_query(self, token: int, text: str) -> None:
        await asyncio.sleep(self.debounce_ms / 1000.0)
        if token != self._token:
            return
        try:
            results = await self._fetch(text)
        except Exception:
            logger.warning("Autocomplete lookup for %r failed", text, exc_info=True)
            results = []
        if token != self._token:
            logger.debug("Dropping superseded suggestions for %r", text)
            return
        self._set_suggestions(results)

    def _set_suggestions(self, results: List[Suggestion]) -> None:
        self._suggestions = tuple(results)
        self.highlighted = -1

    async def settle(self) -> None:
        """Wait until every outstanding debounced query has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Selection cursor
    # ------------------------------------------------------------------

    def move_down(self) -> None:
        if self._suggestions:
            self.highlighted = min(self.highlighted + 1, len(self._suggestions) - 1)

    def move_up(self) -> None:
        if self._suggestions:
            self.highlighted = max(self.highlighted - 1, 0)

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def confirm(self, index: Optional[int] = None) -> Optional[str]:
        """Add the chosen suggestion (highlight, else the first) as a place."""

        if not self._suggestions:
            typed = self.text.strip()
            if self.enabled or not typed:
                return None
            return self._accept(typed)

        if index is None:
            index = self.highlighted if self.highlighted >= 0 else 0
        if not 0 <= index < len(self._suggestions):
            return None
        return self._accept(self._suggestions[index].name)

    def add_typed(self) -> Optional[str]:
        """Add the typed text, but only if it names one of the suggestions."""

        typed = self.text.strip()
        if not typed:
            return None
        if not self.enabled:
            return self._accept(typed)
        for suggestion in self._suggestions:
            if suggestion.name == typed:
                return self._accept(suggestion.name)
        return None

    def _accept(self, name: str) -> str:
        self._on_confirm(name)
        self.text = ""
        self._token += 1
        self._set_suggestions([])
        return name

import pytest

from travelmarks.animation import AnimationController, CuePlayer, ManualClock
from travelmarks.map_adapter import MemoryMapAdapter


PARIS = (2.35, 48.85)
TOKYO = (139.69, 35.68)
BERLIN = (13.40, 52.52)


class FakeResolver:
    """Resolver double that answers from a lookup table without network access."""

    def __init__(self, table=None, candidates=None, autocomplete_enabled=True):
        self.table = dict(table or {})
        self.candidates = dict(candidates or {})
        self.autocomplete_enabled = autocomplete_enabled
        self.calls = []

    def resolve_one(self, name):
        self.calls.append(name)
        return self.table.get(name)

    def resolve_all(self, places):
        return [c for c in (self.resolve_one(p) for p in places) if c is not None]

    def resolve_candidates(self, text):
        return list(self.candidates.get(text, []))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def adapter():
    return MemoryMapAdapter()


@pytest.fixture
def cue_log():
    return []


@pytest.fixture
def controller(adapter, clock, cue_log):
    return AnimationController(adapter, clock=clock, cues=CuePlayer(sink=cue_log.append))

import pytest

from travelmarks.animation import (
    BASE_SEGMENT_MS,
    FINAL_DASH,
    PROGRESS_DASH,
    SPEED_CHOICES,
    AnimationState,
    CuePlayer,
    ease_in_out_cubic,
    zoom_at,
)

from conftest import BERLIN, PARIS, TOKYO


def _start(controller, adapter, coords):
    controller.set_coordinates(coords)
    adapter.settle_camera()
    assert controller.request_animation() is True
    adapter.settle_camera()
    assert controller.state is AnimationState.RUNNING


def _run_to_completion(controller, clock, frame_ms=16.0, limit=10000):
    for _ in range(limit):
        if not controller.is_active:
            return
        clock.advance(frame_ms)
        controller.tick()
    raise AssertionError("animation did not complete")


def test_easing_endpoints_and_monotonic():
    assert ease_in_out_cubic(0.0) == 0.0
    assert ease_in_out_cubic(1.0) == 1.0
    assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
    samples = [ease_in_out_cubic(i / 200.0) for i in range(201)]
    assert all(b >= a for a, b in zip(samples, samples[1:]))


def test_zoom_envelope():
    assert zoom_at(0.0) == pytest.approx(8.0)
    assert zoom_at(0.09) == pytest.approx(9.0)
    assert zoom_at(0.18) == pytest.approx(10.0)
    assert zoom_at(0.5) == 10.0
    assert zoom_at(0.82) == pytest.approx(10.0)
    assert zoom_at(1.0) == pytest.approx(8.0)


def test_request_with_one_coordinate_stays_idle(controller, adapter):
    controller.set_coordinates([PARIS])
    assert controller.request_animation() is False
    assert controller.state is AnimationState.IDLE
    assert controller.session is None
    assert adapter.markers_of_kind("vehicle") == []


def test_set_coordinates_marks_every_stop_and_flies_to_last(controller, adapter):
    controller.set_coordinates([PARIS, BERLIN])
    assert sorted(adapter.markers_of_kind("place")) == sorted([PARIS, BERLIN])
    assert adapter.commands[-1] == ("fly_to", BERLIN, 10.0)

    controller.set_coordinates([TOKYO])
    assert adapter.markers_of_kind("place") == [TOKYO]


def test_waits_for_camera_before_interpolating(controller, adapter, clock, cue_log):
    controller.set_coordinates([PARIS, BERLIN])
    assert controller.request_animation() is True
    assert controller.state is AnimationState.REQUESTED
    assert adapter.view.center == PARIS
    assert adapter.markers_of_kind("place") == []

    clock.advance(1000)
    controller.tick()
    assert adapter.markers_of_kind("vehicle") == [PARIS]
    assert cue_log == []

    adapter.settle_camera()
    assert controller.state is AnimationState.RUNNING
    assert cue_log == ["start"]

    # Time spent flying does not count toward the first segment.
    clock.advance(BASE_SEGMENT_MS / 2)
    controller.tick()
    assert controller.session.progress == pytest.approx(0.5)


def test_frame_moves_marker_route_and_camera(controller, adapter, clock):
    _start(controller, adapter, [PARIS, BERLIN])
    clock.advance(BASE_SEGMENT_MS * 0.5)
    controller.tick()

    session = controller.session
    point = session.current_point
    assert point == pytest.approx((7.875, 50.685))
    assert adapter.markers_of_kind("vehicle") == [point]
    (route,) = adapter.routes.values()
    assert route["dash"] == PROGRESS_DASH
    assert route["coordinates"] == [PARIS, point]
    assert adapter.view.center == point
    assert adapter.view.zoom == 10.0


def test_full_playthrough_confirms_every_coordinate(controller, adapter, clock, cue_log):
    coords = [PARIS, BERLIN, TOKYO]
    _start(controller, adapter, coords)
    _run_to_completion(controller, clock)

    assert controller.state is AnimationState.IDLE
    assert controller.session is None
    assert controller.completed_route == coords
    assert cue_log == ["start", "segment", "segment", "complete"]

    assert adapter.markers_of_kind("vehicle") == []
    assert sorted(adapter.markers_of_kind("place")) == sorted(coords)
    (route,) = adapter.routes.values()
    assert route["dash"] == FINAL_DASH
    assert route["coordinates"] == coords
    assert adapter.commands[-1] == ("fit_bounds", ((2.35, 35.68), (139.69, 52.52)), 60.0)


def test_next_segment_starts_without_gap(controller, adapter, clock):
    _start(controller, adapter, [PARIS, BERLIN, TOKYO])
    clock.advance(BASE_SEGMENT_MS)
    controller.tick()
    session = controller.session
    assert session.segment_index == 1
    assert session.confirmed == [PARIS, BERLIN]
    assert adapter.markers_of_kind("vehicle") == [BERLIN]

    clock.advance(BASE_SEGMENT_MS / 2)
    controller.tick()
    assert session.progress == pytest.approx(0.5)
    assert session.confirmed_prefix[:2] == [PARIS, BERLIN]
    assert len(session.confirmed_prefix) == 3


def test_pause_excludes_paused_time(controller, adapter, clock):
    _start(controller, adapter, [PARIS, BERLIN])
    clock.advance(BASE_SEGMENT_MS * 0.4)
    controller.tick()
    assert controller.session.progress == pytest.approx(0.4)

    assert controller.toggle_pause() is True
    assert controller.paused
    frozen = list(adapter.commands)
    for _ in range(50):
        clock.advance(100)
        controller.tick()
    assert adapter.commands == frozen
    assert controller.session.progress == pytest.approx(0.4)

    assert controller.toggle_pause() is True
    assert controller.state is AnimationState.RUNNING
    clock.advance(BASE_SEGMENT_MS * 0.1)
    controller.tick()
    assert controller.session.progress == pytest.approx(0.5)


def test_pause_with_explicit_timestamps(controller, adapter, clock):
    _start(controller, adapter, [PARIS, BERLIN])
    start = controller.session.segment_started_at
    controller.tick(now=start + BASE_SEGMENT_MS * 0.4)

    assert controller.toggle_pause(now=start + BASE_SEGMENT_MS * 0.4) is True
    assert controller.toggle_pause(now=start + BASE_SEGMENT_MS * 5) is True
    controller.tick(now=start + BASE_SEGMENT_MS * 5.1)
    assert controller.session.progress == pytest.approx(0.5)
    assert clock() == start


def test_pause_is_ignored_outside_running(controller, adapter):
    assert controller.toggle_pause() is False
    controller.set_coordinates([PARIS, BERLIN])
    controller.request_animation()
    assert controller.toggle_pause() is False
    assert controller.state is AnimationState.REQUESTED


def test_speed_scales_segment_duration(controller, adapter, clock):
    assert controller.set_speed(2) is True
    _start(controller, adapter, [PARIS, BERLIN])
    clock.advance(BASE_SEGMENT_MS / 4)
    controller.tick()
    assert controller.session.progress == pytest.approx(0.5)


def test_speed_locked_while_active_and_validated(controller, adapter):
    with pytest.raises(ValueError):
        controller.set_speed(4)
    _start(controller, adapter, [PARIS, BERLIN])
    assert controller.set_speed(3) is False
    assert controller.speed == 1.0
    assert set(SPEED_CHOICES) == {0.5, 1.0, 1.5, 2.0, 3.0}


def test_second_request_while_active_is_ignored(controller, adapter, clock):
    _start(controller, adapter, [PARIS, BERLIN])
    clock.advance(500)
    controller.tick()
    session = controller.session
    markers = dict(adapter.markers)
    routes = {k: dict(v) for k, v in adapter.routes.items()}

    assert controller.request_animation() is False
    assert controller.session is session
    assert adapter.markers == markers
    assert {k: dict(v) for k, v in adapter.routes.items()} == routes


def test_coordinate_change_mid_session_tears_down(controller, adapter, clock):
    _start(controller, adapter, [PARIS, BERLIN, TOKYO])
    clock.advance(BASE_SEGMENT_MS * 1.3)
    controller.tick()
    controller.toggle_pause()

    controller.set_coordinates([PARIS, TOKYO])
    assert controller.state is AnimationState.IDLE
    assert controller.session is None
    assert adapter.markers_of_kind("vehicle") == []
    assert adapter.routes == {}

    # No frames are applied after teardown.
    before = list(adapter.commands)
    clock.advance(BASE_SEGMENT_MS)
    controller.tick()
    assert adapter.commands == before


def test_stale_camera_settle_does_not_start_new_session(controller, adapter, cue_log):
    controller.set_coordinates([PARIS, BERLIN])
    controller.request_animation()
    controller.invalidate()
    assert controller.request_animation() is True
    adapter.settle_camera()
    # Both pending callbacks fired; only the live session reacts.
    assert cue_log == ["start"]
    assert controller.state is AnimationState.RUNNING


def test_replay_after_completion_clears_static_overlays(controller, adapter, clock):
    coords = [PARIS, BERLIN]
    _start(controller, adapter, coords)
    _run_to_completion(controller, clock)
    assert controller.request_animation() is True
    assert adapter.markers_of_kind("place") == []
    assert [r["dash"] for r in adapter.routes.values()] == [PROGRESS_DASH]
    assert controller.completed_route == []


def test_muted_cues_are_silent(adapter, clock):
    from travelmarks.animation import AnimationController

    heard = []
    cues = CuePlayer(muted=True, sink=heard.append)
    controller = AnimationController(adapter, clock=clock, cues=cues)
    _start(controller, adapter, [PARIS, BERLIN])
    _run_to_completion(controller, clock)
    assert heard == []
    assert cues.toggle_mute() is False
    cues.emit("segment")
    assert heard == ["segment"]

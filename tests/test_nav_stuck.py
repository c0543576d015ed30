# tests/test_nav_stuck.py
"""
Tests for nav_core.stuck.StuckDetector.

Covers:
- stationary window triggers once per full window
- movement resets the window and counter
- recovery kind: advance vs repath near the end / without a path
- repeated steering targets (only while the agent stays put) and repeated
  actuation points, which always skip ahead rather than re-path
"""

from __future__ import annotations

from contracts.types import Path, Point2D
from nav_core.state import NavigationState
from nav_core.stuck import StuckDetector
from profiles.schema import StuckSettings


def make_state(waypoints: int = 20) -> NavigationState:
    state = NavigationState()
    if waypoints:
        state.replace_path(Path.from_points([(i, 0) for i in range(waypoints)]), now=0.0)
    return state


def make_detector(**overrides) -> StuckDetector:
    return StuckDetector(StuckSettings(**overrides), movement_precision=10.0)


def test_stationary_window_triggers_once() -> None:
    detector = make_detector(window=5)
    state = make_state()

    actions = [detector.observe_position(state, Point2D(3.0, 3.0)) for _ in range(5)]

    assert [a.triggered for a in actions] == [False] * 4 + [True]
    assert actions[-1].kind == "advance"
    assert actions[-1].advance_by == 3
    assert actions[-1].reason == "no movement"
    assert state.stuck_counter == 0
    assert detector.triggers == 1

    # The window starts over: four more samples are not enough.
    more = [detector.observe_position(state, Point2D(3.0, 3.0)) for _ in range(4)]
    assert not any(a.triggered for a in more)
    assert detector.observe_position(state, Point2D(3.0, 3.0)).triggered


def test_jitter_within_precision_counts_as_stationary() -> None:
    detector = make_detector(window=3)
    state = make_state()

    samples = [Point2D(0, 0), Point2D(2, 1), Point2D(1, 2)]
    actions = [detector.observe_position(state, p) for p in samples]

    assert actions[-1].triggered


def test_movement_resets_counter() -> None:
    detector = make_detector(window=5)
    state = make_state()

    for _ in range(4):
        detector.observe_position(state, Point2D(0, 0))
    assert state.stuck_counter == 4

    action = detector.observe_position(state, Point2D(50, 0))

    assert not action.triggered
    assert state.stuck_counter == 0


def test_repath_when_near_end_of_path() -> None:
    detector = make_detector(window=2)
    state = make_state(waypoints=10)
    state.advance_cursor(8, now=1.0)

    detector.observe_position(state, Point2D(0, 0))
    action = detector.observe_position(state, Point2D(0, 0))

    assert action.kind == "repath"
    assert action.advance_by == 0


def test_repath_without_path() -> None:
    detector = make_detector(window=2)
    state = make_state(waypoints=0)

    detector.observe_position(state, Point2D(0, 0))
    action = detector.observe_position(state, Point2D(0, 0))

    assert action.kind == "repath"


def test_advance_is_bounded_by_remaining_waypoints() -> None:
    detector = make_detector(window=2, advance_steps=10, near_end_waypoints=0)
    state = make_state(waypoints=6)

    detector.observe_position(state, Point2D(0, 0))
    action = detector.observe_position(state, Point2D(0, 0))

    assert action.kind == "advance"
    assert action.advance_by == 5


def test_repeated_steering_target_triggers_advance() -> None:
    detector = make_detector()
    state = make_state(waypoints=40)
    agent = Point2D(0, 0)

    actions = [detector.observe_target(state, Point2D(10.0, 10.2), agent) for _ in range(9)]

    assert [a.triggered for a in actions] == [False] * 8 + [True]
    assert actions[-1].advance_by == 5
    assert actions[-1].reason == "repeated steering target"
    assert state.duplicate_target_counter == 0


def test_changing_target_resets_duplicate_counter() -> None:
    detector = make_detector()
    state = make_state()

    for _ in range(5):
        detector.observe_target(state, Point2D(0, 0), Point2D(0, 0))
    detector.observe_target(state, Point2D(5, 0), Point2D(0, 0))

    assert state.duplicate_target_counter == 0
    assert state.last_target_point == Point2D(5, 0)


def test_fixed_target_while_walking_toward_it_is_not_a_loop() -> None:
    detector = make_detector(duplicate_target_threshold=3)
    state = make_state(waypoints=3)
    destination = Point2D(100, 0)

    actions = [
        detector.observe_target(state, destination, Point2D(4.0 * i, 0)) for i in range(25)
    ]

    assert not any(a.triggered for a in actions)
    assert detector.triggers == 0


def test_repeated_target_near_end_advances_instead_of_repathing() -> None:
    detector = make_detector(duplicate_target_threshold=2)
    state = make_state(waypoints=3)
    state.advance_cursor(1, now=1.0)
    agent = Point2D(50, 0)

    actions = [detector.observe_target(state, Point2D(100, 0), agent) for _ in range(3)]

    assert actions[-1].kind == "advance"
    assert actions[-1].advance_by == 1


def test_repeated_target_on_last_waypoint_leaves_it_to_the_window() -> None:
    detector = make_detector(duplicate_target_threshold=2)
    state = make_state(waypoints=3)
    state.advance_cursor(2, now=1.0)

    actions = [detector.observe_target(state, Point2D(2, 0), Point2D(0, 0)) for _ in range(3)]

    assert not any(a.triggered for a in actions)
    assert detector.triggers == 0


def test_repeated_actuation_triggers_after_threshold() -> None:
    detector = make_detector()
    state = make_state()

    actions = [detector.observe_actuation(state, duplicate=True) for _ in range(4)]

    assert [a.triggered for a in actions] == [False, False, False, True]
    assert actions[-1].reason == "repeated actuation point"
    assert actions[-1].advance_by == 3


def test_repeated_actuation_near_end_advances() -> None:
    detector = make_detector(duplicate_actuation_threshold=1)
    state = make_state(waypoints=10)
    state.advance_cursor(8, now=1.0)

    action = detector.observe_actuation(state, duplicate=True)

    assert action.kind == "advance"
    assert action.advance_by == 1


def test_distinct_actuation_resets_counter() -> None:
    detector = make_detector()
    state = make_state()

    detector.observe_actuation(state, duplicate=True)
    detector.observe_actuation(state, duplicate=True)
    detector.observe_actuation(state, duplicate=False)

    assert state.duplicate_actuation_counter == 0


def test_reset_clears_window_and_counters() -> None:
    detector = make_detector(window=3)
    state = make_state()
    detector.observe_position(state, Point2D(0, 0))
    detector.observe_position(state, Point2D(0, 0))
    detector.observe_actuation(state, duplicate=True)

    detector.reset(state)

    assert state.stuck_counter == 0
    assert state.duplicate_actuation_counter == 0
    assert not detector.observe_position(state, Point2D(0, 0)).triggered

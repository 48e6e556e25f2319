#!/usr/bin/env python3
"""
Tests for the Boundary Editor

Validates:
1. End boundary moves up to (not past) the next item's start
2. Start boundary moves down to (not past) the previous item's end
3. First/last items are clamped to 0° / 360°
4. Proposed angles are rounded half-up to whole degrees
5. Rejected moves leave the boundary at its prior value
6. Gaps opened by a drag resolve to no segment
7. Hit-testing finds the nearest boundary within tolerance
8. Bad drag targets raise InvalidDragTarget
9. Non-finite angles and a rebuilt segment list never break a gesture
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.wheel import (
    BoundaryEditor, BoundaryKind, InvalidDragTarget, UnresolvedAngle,
    allocate, coverage_gaps, resolve, resolve_or_raise,
)


def _editor():
    segs = allocate([{"name": f"s{i}", "weight": 1, "color": "#000"} for i in range(6)])
    return BoundaryEditor(segs), segs


# ============================================================
# Tests
# ============================================================

def test_end_drag_inside_gap_succeeds():
    """Item 0 end → 50 while item 1 starts at 60."""
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    assert editor.update_drag(50)
    assert segs[0].end_angle == 50.0
    assert segs[1].start_angle == 60.0
    assert editor.end_drag() is True
    print("✅ End boundary 60° → 50° accepted")


def test_end_drag_past_neighbour_rejected():
    """Item 0 end → 65 would overlap item 1: dropped, boundary stays put."""
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    assert not editor.update_drag(65)
    assert segs[0].end_angle == 60.0
    assert editor.end_drag() is False

    # Within one gesture the last accepted value survives a rejected move
    editor.begin_drag(0, "end")
    editor.update_drag(50)
    assert not editor.update_drag(65)
    assert segs[0].end_angle == 50.0
    assert editor.end_drag() is True
    print("✅ End boundary → 65° rejected, prior value kept")


def test_end_drag_cannot_cross_own_start():
    editor, segs = _editor()
    editor.begin_drag(1, "end")
    assert not editor.update_drag(60)
    assert not editor.update_drag(30)
    assert editor.update_drag(61)
    assert segs[1].end_angle == 61.0
    print("✅ End boundary must stay strictly after its own start")


def test_start_drag_constraints():
    """Start must stay ≥ previous end and < own end."""
    editor, segs = _editor()
    editor.begin_drag(1, "start")
    assert not editor.update_drag(55)
    assert segs[1].start_angle == 60.0
    assert not editor.update_drag(120)
    assert editor.update_drag(70)
    assert segs[1].start_angle == 70.0
    assert resolve(65, segs) is None
    editor.end_drag()
    print("✅ Start boundary: 55° and 120° rejected, 70° accepted")


def test_first_and_last_clamped():
    editor, segs = _editor()
    editor.begin_drag(0, "start")
    assert not editor.update_drag(-1)
    assert editor.update_drag(10)
    assert segs[0].start_angle == 10.0
    editor.end_drag()

    editor.begin_drag(5, "end")
    assert not editor.update_drag(361)
    assert editor.update_drag(360)
    assert editor.update_drag(350)
    assert segs[5].end_angle == 350.0
    editor.end_drag()

    assert coverage_gaps(segs) == [(0.0, 10.0), (350.0, 360.0)]
    print("✅ First start ≥ 0°, last end ≤ 360°")


def test_rounding_half_up():
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    editor.update_drag(49.5)
    assert segs[0].end_angle == 50.0
    editor.update_drag(49.4)
    assert segs[0].end_angle == 49.0
    editor.update_drag(44.49)
    assert segs[0].end_angle == 44.0
    print("✅ Proposed angles round half-up to whole degrees")


def test_unchanged_value_is_not_a_move():
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    assert editor.update_drag(60.2)
    assert segs[0].end_angle == 60.0
    assert editor.end_drag() is False
    print("✅ Dragging onto the current value reports no movement")


def test_update_without_begin():
    editor, segs = _editor()
    assert editor.update_drag(50) is False
    assert segs[0].end_angle == 60.0
    assert editor.end_drag() is False
    print("✅ update_drag with no active drag is ignored")


def test_drag_state_tracks_item():
    editor, segs = _editor()
    state = editor.begin_drag(3, BoundaryKind.START)
    assert state.active and state.item_index == 3
    assert state.boundary_kind is BoundaryKind.START
    editor.update_drag(185)
    assert editor.drag.item_index == 3
    assert [s.start_angle for s in segs] == sorted(s.start_angle for s in segs)
    editor.end_drag()
    assert not editor.drag.active
    print("✅ DragState follows the dragged item")


def test_gap_resolves_to_nothing():
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    editor.update_drag(50)
    editor.end_drag()
    assert coverage_gaps(segs) == [(50.0, 60.0)]
    assert resolve(55, segs) is None
    assert resolve(50, segs) is None
    assert resolve(60, segs) is segs[1]
    try:
        resolve_or_raise(55, segs)
        raise AssertionError("expected UnresolvedAngle")
    except UnresolvedAngle as e:
        assert e.angle == 55.0
    print("✅ Gap [50°, 60°) resolves to no segment")


def test_boundary_at():
    editor, segs = _editor()
    assert editor.boundary_at(58) == (0, BoundaryKind.END)
    assert editor.boundary_at(62) == (0, BoundaryKind.END)
    assert editor.boundary_at(358) == (0, BoundaryKind.START)
    assert editor.boundary_at(2) == (0, BoundaryKind.START)
    assert editor.boundary_at(-2) == (0, BoundaryKind.START)
    assert editor.boundary_at(30) is None
    assert editor.boundary_at(55, tolerance=3) is None
    assert editor.boundary_at(55, tolerance=5) == (0, BoundaryKind.END)
    assert editor.boundary_at(178) == (2, BoundaryKind.END)
    print("✅ boundary_at: nearest boundary within tolerance, wrap-aware")


def test_invalid_targets():
    editor, segs = _editor()
    for index, kind in ((6, "end"), (-1, "start"), (0, "middle"), ("0", "end"), (True, "end")):
        try:
            editor.begin_drag(index, kind)
            raise AssertionError(f"begin_drag({index!r}, {kind!r}) should raise")
        except InvalidDragTarget:
            pass
    assert not editor.drag.active
    assert issubclass(InvalidDragTarget, IndexError)
    print("✅ Out-of-range index and unknown kind raise InvalidDragTarget")


def test_empty_wheel():
    editor = BoundaryEditor([])
    assert editor.boundary_at(0) is None
    try:
        editor.begin_drag(0, "end")
        raise AssertionError("drag on empty wheel should raise")
    except InvalidDragTarget:
        pass
    print("✅ Empty wheel has no draggable boundaries")


def test_non_finite_angle_ignored():
    """NaN and ±inf are dropped like any other illegal move."""
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    for bad in (float("nan"), float("inf"), float("-inf")):
        assert editor.update_drag(bad) is False
    assert segs[0].end_angle == 60.0
    assert editor.drag.active
    assert editor.update_drag(50)
    assert editor.end_drag() is True
    print("✅ Non-finite angles rejected, gesture stays usable")


def test_segment_list_rebuilt_mid_drag():
    editor, segs = _editor()
    editor.begin_drag(0, "end")
    segs[:] = allocate([{"name": f"t{i}", "weight": 1, "color": "#000"} for i in range(7)])
    assert editor.update_drag(40) is False
    assert not editor.drag.active
    assert editor.end_drag() is False

    # Removing a different segment keeps the dragged one reachable
    editor, segs = _editor()
    editor.begin_drag(5, "start")
    dragged = segs[5]
    del segs[0]
    assert editor.update_drag(310)
    assert dragged.start_angle == 310.0
    assert editor.drag.item_index == 4
    print("✅ Drag cancelled when its segment leaves the list")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    tests = [
        test_end_drag_inside_gap_succeeds,
        test_end_drag_past_neighbour_rejected,
        test_end_drag_cannot_cross_own_start,
        test_start_drag_constraints,
        test_first_and_last_clamped,
        test_rounding_half_up,
        test_unchanged_value_is_not_a_move,
        test_update_without_begin,
        test_drag_state_tracks_item,
        test_gap_resolves_to_nothing,
        test_boundary_at,
        test_invalid_targets,
        test_empty_wheel,
        test_non_finite_angle_ignored,
        test_segment_list_rebuilt_mid_drag,
    ]

    print(f"\n{'='*60}")
    print(f"Boundary Editor Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1
        print()

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)

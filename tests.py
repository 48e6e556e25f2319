#!/usr/bin/env python3
"""
FORTUNEWHEEL — Unit & Integration Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestResolver    # run specific class

Test categories:
  TestSegmentAllocator — Partition, probabilities, weight validation
  TestAngleResolver    — Normalization, half-open ownership, wrap, gaps
  TestOutcomeSelector  — Weighted draw, fallback, chi-square distribution
  TestWheelStore       — JSON round trip, absent/corrupt/invalid blobs
  TestProvablyFairRNG  — Seed commitment, draw verification, engine adapter
  TestWheelController  — Item edits, spin guards, drag policy, persistence
  TestWheelAPI         — Flask JSON endpoints and error mapping
  TestWheelCLI         — Command-line entry point
"""

import json
import random
import sys
import tempfile
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.wheel import (
    EmptySegmentSet, InvalidDragTarget, InvalidItemIndex, InvalidSpinRequest,
    InvalidWeight, Segment, SpinEngine, SpinPhase, UnresolvedAngle,
    allocate, angle_from_point, coverage_gaps, normalize_angle, pointer_angle,
    probability_total, resolve, resolve_or_raise, select,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _items(*weights):
    return [{"name": f"item{i}", "weight": w, "color": "#000000"} for i, w in enumerate(weights)]


# ============================================================
# Segment Allocator Tests
# ============================================================

class TestSegmentAllocator(unittest.TestCase):
    """Weights → contiguous angular segments."""

    def test_six_equal_items(self):
        """Six equal weights give six 60° slices."""
        segs = allocate(_items(1, 1, 1, 1, 1, 1))
        self.assertEqual(len(segs), 6)
        for i, s in enumerate(segs):
            self.assertAlmostEqual(s.start_angle, 60 * i, places=9)
            self.assertAlmostEqual(s.end_angle, 60 * (i + 1), places=9)
            self.assertAlmostEqual(s.probability, 100 / 6, places=9)

    def test_five_to_one(self):
        """Weights [5, 1] give 300° / 60° and 83.33% / 16.67%."""
        a, b = allocate(_items(5, 1))
        self.assertAlmostEqual(a.span, 300.0, places=9)
        self.assertAlmostEqual(b.span, 60.0, places=9)
        self.assertAlmostEqual(a.probability, 83.333333, places=5)
        self.assertAlmostEqual(b.probability, 16.666667, places=5)

    def test_single_item_covers_circle(self):
        (seg,) = allocate(_items(3.5))
        self.assertEqual(seg.start_angle, 0.0)
        self.assertEqual(seg.end_angle, 360.0)
        self.assertAlmostEqual(seg.probability, 100.0)

    def test_empty_list(self):
        """No items → no segments, not an error."""
        self.assertEqual(allocate([]), [])

    def test_invalid_weights_rejected(self):
        """Zero, negative, non-numeric and non-finite weights raise InvalidWeight."""
        for bad in (0, -1, -0.001, "abc", None, float("nan"), float("inf")):
            with self.subTest(weight=bad):
                with self.assertRaises(InvalidWeight):
                    allocate(_items(1, bad))

    def test_invalid_weight_is_value_error(self):
        with self.assertRaises(ValueError):
            allocate(_items(0))

    def test_partition_invariants_random(self):
        """Random weight lists always tile [0, 360) with no gaps or overlaps."""
        rng = random.Random(99)
        for _ in range(200):
            n = rng.randint(1, 20)
            segs = allocate(_items(*[rng.uniform(0.001, 1000) for _ in range(n)]))
            self.assertEqual(segs[0].start_angle, 0.0)
            self.assertEqual(segs[-1].end_angle, 360.0)
            for left, right in zip(segs, segs[1:]):
                self.assertEqual(left.end_angle, right.start_angle)
                self.assertGreater(left.span, 0)
            self.assertAlmostEqual(probability_total(segs), 100.0, places=9)
            self.assertEqual(coverage_gaps(segs), [])

    def test_order_and_fields_preserved(self):
        items = [{"name": "Gold", "weight": 2, "color": "#FFD700"},
                 {"name": "Silver", "weight": 1, "color": "#C0C0C0"}]
        segs = allocate(items)
        self.assertEqual([s.name for s in segs], ["Gold", "Silver"])
        self.assertEqual(segs[0].color, "#FFD700")
        self.assertEqual(segs[0].weight, 2.0)

    def test_accepts_model_objects(self):
        """Items may be objects with name/weight/color attributes."""
        from config.wheel_schema import WheelItem
        segs = allocate([WheelItem(name="A", weight=1), WheelItem(name="B", weight=3)])
        self.assertAlmostEqual(segs[1].probability, 75.0)

    def test_to_dict_is_json_serializable(self):
        d = allocate(_items(1, 2))[0].to_dict()
        json.dumps(d)
        self.assertIn("span", d)
        self.assertAlmostEqual(d["span"], 120.0)


# ============================================================
# Angle Resolver Tests
# ============================================================

class TestAngleResolver(unittest.TestCase):
    """Angle → segment ownership."""

    def test_normalize(self):
        self.assertEqual(normalize_angle(0), 0.0)
        self.assertEqual(normalize_angle(360), 0.0)
        self.assertEqual(normalize_angle(725), 5.0)
        self.assertEqual(normalize_angle(-30), 330.0)
        self.assertEqual(normalize_angle(-1e-18), 0.0)
        self.assertLess(normalize_angle(-1e-12), 360.0)

    def test_midpoint_start_and_end(self):
        """Midpoint and start resolve to the segment; end resolves to the next one."""
        rng = random.Random(5)
        for _ in range(50):
            segs = allocate(_items(*[rng.uniform(0.01, 100) for _ in range(rng.randint(1, 12))]))
            for i, s in enumerate(segs):
                self.assertIs(resolve(s.midpoint, segs), s)
                self.assertIs(resolve(s.start_angle, segs), s)
                self.assertIs(resolve(s.end_angle, segs), segs[(i + 1) % len(segs)])

    def test_out_of_range_angles(self):
        segs = allocate(_items(1, 1, 1, 1))
        self.assertIs(resolve(-45, segs), segs[3])
        self.assertIs(resolve(360 + 45, segs), segs[0])
        self.assertIs(resolve(-360, segs), segs[0])

    def test_wrapping_segment(self):
        """A slice with start > end covers [start, 360) ∪ [0, end)."""
        wrap = Segment("W", 1, "#000", 350.0, 10.0, 50.0)
        rest = Segment("R", 1, "#fff", 10.0, 350.0, 50.0)
        segs = [rest, wrap]
        self.assertTrue(wrap.wraps)
        self.assertAlmostEqual(wrap.span, 20.0)
        self.assertAlmostEqual(wrap.midpoint, 0.0)
        for a in (350, 355, 0, 5, -5):
            self.assertIs(resolve(a, segs), wrap)
        for a in (10, 200, 349.9):
            self.assertIs(resolve(a, segs), rest)
        self.assertEqual(coverage_gaps(segs), [])

    def test_gap_is_unresolved(self):
        segs = allocate(_items(1, 1, 1, 1, 1, 1))
        segs[0].end_angle = 50.0
        self.assertIsNone(resolve(55, segs))
        self.assertEqual(coverage_gaps(segs), [(50.0, 60.0)])
        with self.assertRaises(UnresolvedAngle) as ctx:
            resolve_or_raise(55, segs)
        self.assertEqual(ctx.exception.angle, 55.0)

    def test_empty_segments(self):
        self.assertIsNone(resolve(10, []))
        self.assertEqual(coverage_gaps([]), [(0.0, 360.0)])

    def test_pointer_angle(self):
        """Rotating the wheel clockwise by r puts angle 360 - r under the pointer."""
        self.assertEqual(pointer_angle(0), 0.0)
        self.assertEqual(pointer_angle(90), 270.0)
        self.assertEqual(pointer_angle(-90), 90.0)
        self.assertEqual(pointer_angle(720), 0.0)
        self.assertAlmostEqual(pointer_angle(2130), 30.0)

    def test_angle_from_point(self):
        """Screen coordinates (y down) map to 0° at 12 o'clock, clockwise."""
        cx, cy = 200, 200
        self.assertAlmostEqual(angle_from_point(cx, cy - 10, cx, cy), 0.0)
        self.assertAlmostEqual(angle_from_point(cx + 10, cy, cx, cy), 90.0)
        self.assertAlmostEqual(angle_from_point(cx, cy + 10, cx, cy), 180.0)
        self.assertAlmostEqual(angle_from_point(cx - 10, cy, cx, cy), 270.0)


# ============================================================
# Outcome Selector Tests
# ============================================================

class TestOutcomeSelector(unittest.TestCase):
    """Weighted draw over probabilities."""

    def test_empty_raises(self):
        with self.assertRaises(EmptySegmentSet):
            select([], random.random)

    def test_cumulative_mapping(self):
        a, b = segs = allocate(_items(5, 1))
        self.assertIs(select(segs, lambda: 0.0), a)
        self.assertIs(select(segs, lambda: 0.5), a)
        self.assertIs(select(segs, lambda: 0.9), b)

    def test_fallback_to_last(self):
        """Values past the cumulative total land on the last segment."""
        segs = allocate(_items(1, 1, 1))
        self.assertIs(select(segs, lambda: 1.5), segs[-1])

    def test_distribution_chi_square(self):
        """Observed frequencies match probabilities (seeded, α = 0.001)."""
        from tools.wheel_montecarlo import WheelValidator
        segs = allocate(_items(5, 1, 2.5, 0.5))
        result = WheelValidator(seed=1234).validate_selection(segs, n_draws=60_000)
        self.assertTrue(result.passed, result.summary())
        self.assertEqual(sum(result.observed), 60_000)

    def test_chi_squared_critical(self):
        """Wilson–Hilferty stays close to tabulated χ² critical values."""
        from tools.wheel_montecarlo import chi_squared_critical
        self.assertAlmostEqual(chi_squared_critical(5), 20.515, delta=0.5)
        self.assertAlmostEqual(chi_squared_critical(10), 29.588, delta=0.5)
        self.assertEqual(chi_squared_critical(0), 0.0)

    def test_selection_follows_geometry_probabilities(self):
        """After a rebalance, gap mass is excluded and the rest renormalized."""
        from sim_engine.wheel import rebalance_from_geometry
        segs = allocate(_items(1, 1))
        segs[0].end_angle = 90.0           # gap [90, 180)
        rebalance_from_geometry(segs)
        self.assertAlmostEqual(segs[0].probability, 25.0)
        self.assertAlmostEqual(segs[1].probability, 50.0)
        self.assertIs(select(segs, lambda: 0.3), segs[0])
        self.assertIs(select(segs, lambda: 0.4), segs[1])


# ============================================================
# Store Tests
# ============================================================

class TestWheelStore(unittest.TestCase):
    """JSON persistence of items and settings."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "wheel.json"

    def tearDown(self):
        self.tmp.cleanup()

    def _store(self):
        from tools.wheel_store import WheelStore
        return WheelStore(self.path)

    def test_absent_returns_none(self):
        store = self._store()
        self.assertFalse(store.exists())
        self.assertIsNone(store.load())

    def test_round_trip(self):
        from config.wheel_schema import WheelDocument, WheelItem, WheelSettings
        doc = WheelDocument(items=[WheelItem(name="A", weight=2.5, color="#123456")],
                            settings=WheelSettings(stop_animation_time=750))
        store = self._store()
        store.save(doc)
        loaded = store.load()
        self.assertEqual(loaded.items[0].name, "A")
        self.assertEqual(loaded.items[0].weight, 2.5)
        self.assertEqual(loaded.settings.stop_animation_time, 750)
        # No temp files left behind
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["wheel.json"])

    def test_invalid_weight_raises(self):
        from tools.wheel_store import CorruptStore
        self.path.write_text(json.dumps({"items": [{"name": "A", "weight": 0}]}))
        with self.assertRaises(InvalidWeight) as ctx:
            self._store().load()
        self.assertNotIsInstance(ctx.exception, CorruptStore)

    def test_legacy_item_list(self):
        """A bare JSON list is read as the item list."""
        self.path.write_text(json.dumps([{"name": "A", "weight": 3, "color": "#f00"}]))
        doc = self._store().load()
        self.assertEqual(len(doc.items), 1)
        self.assertEqual(doc.settings.stop_animation_time, 1000)

    def test_corrupt_json(self):
        from tools.wheel_store import CorruptStore
        self.path.write_text("{not json")
        with self.assertRaises(CorruptStore):
            self._store().load()

    def test_schema_mismatch(self):
        from tools.wheel_store import CorruptStore
        self.path.write_text(json.dumps({"items": "nope"}))
        with self.assertRaises(CorruptStore):
            self._store().load()

    def test_clear(self):
        from config.wheel_schema import WheelDocument
        store = self._store()
        store.save(WheelDocument.default())
        self.assertTrue(store.exists())
        store.clear()
        self.assertFalse(store.exists())
        store.clear()


# ============================================================
# Provably Fair RNG Tests
# ============================================================

class TestProvablyFairRNG(unittest.TestCase):
    """HMAC-SHA256 draws and their verification."""

    def _fixed_session(self):
        import hashlib
        from tools.wheel_rng import SpinSession
        return SpinSession(
            session_id="fixed",
            server_seed="server-secret",
            server_seed_hash=hashlib.sha256(b"server-secret").hexdigest(),
            client_seed="player-1",
        )

    def test_new_session_commitment(self):
        from tools.wheel_rng import ProvablyFairRNG
        rng = ProvablyFairRNG()
        session = rng.new_session(client_seed="abc")
        self.assertEqual(session.client_seed, "abc")
        self.assertTrue(ProvablyFairRNG.verify_server_seed(session.server_seed,
                                                           session.server_seed_hash))
        self.assertNotIn("server_seed", session.public_view())

    def test_draws_are_uniform_range_and_verifiable(self):
        from tools.wheel_rng import ProvablyFairRNG
        rng = ProvablyFairRNG()
        session = rng.new_session()
        values = [rng.next_float(session) for _ in range(200)]
        self.assertTrue(all(0 <= v < 1 for v in values))
        self.assertEqual(session.nonce, 200)
        for draw in session.draws:
            self.assertTrue(ProvablyFairRNG.verify_draw(
                session.server_seed, session.client_seed, draw.nonce, draw.combined_hash))
        self.assertFalse(ProvablyFairRNG.verify_draw(
            session.server_seed, "someone-else", 0, session.draws[0].combined_hash))

    def test_deterministic_for_same_seeds(self):
        from tools.wheel_rng import ProvablyFairRNG
        rng = ProvablyFairRNG()
        a, b = self._fixed_session(), self._fixed_session()
        self.assertEqual([rng.next_float(a) for _ in range(10)],
                         [rng.next_float(b) for _ in range(10)])

    def test_audit_log_reveal(self):
        from tools.wheel_rng import ProvablyFairRNG
        rng = ProvablyFairRNG()
        session = self._fixed_session()
        rng.next_float(session)
        hidden = json.loads(rng.to_audit_json(session))
        self.assertNotIn("server_seed", hidden)
        self.assertEqual(hidden["total_draws"], 1)
        revealed = rng.session_audit_log(session, reveal=True)
        self.assertEqual(revealed["server_seed"], "server-secret")

    def test_session_drives_engine(self):
        """A session can stand in for random.random in the spin engine."""
        from tools.wheel_rng import SessionRandom
        session = self._fixed_session()
        clock = FakeClock()
        engine = SpinEngine(random_source=SessionRandom(session), clock=clock)
        segs = allocate(_items(1, 2, 3))
        selected = engine.start_spin(segs)
        clock.now = 10_000
        result = engine.tick()
        self.assertIs(result.segment, selected)
        self.assertEqual(session.nonce, 2)   # outcome + turn count


# ============================================================
# Controller Tests
# ============================================================

class TestWheelController(unittest.TestCase):
    """Explicit wheel state object."""

    def setUp(self):
        from tools.wheel_store import WheelStore
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "wheel.json"
        self.store = WheelStore(self.path)
        self.clock = FakeClock()

    def tearDown(self):
        self.tmp.cleanup()

    def _controller(self, seed: int = 3):
        from flows.wheel_controller import WheelController
        engine = SpinEngine(random_source=random.Random(seed).random, clock=self.clock)
        return WheelController(store=self.store, engine=engine)

    def _settle(self, c):
        self.clock.now += 10_000
        return c.tick()

    def test_defaults_on_first_launch(self):
        c = self._controller()
        names = [it["name"] for it in c.items]
        self.assertEqual(names, ["iPhone 15", "AirPods Pro", "Coffee Gift Card",
                                 "10% Coupon", "20% Coupon", "No Prize"])
        self.assertEqual(len(c.segments), 6)
        self.assertEqual(c.current_outcome().name, "iPhone 15")
        self.assertEqual(c.spin_state.phase, SpinPhase.IDLE)

    def test_corrupt_store_falls_back_to_defaults(self):
        self.path.write_text("garbage")
        c = self._controller()
        self.assertEqual(len(c.items), 6)

    def test_invalid_stored_weight_propagates(self):
        self.path.write_text(json.dumps({"items": [{"name": "A", "weight": -2}]}))
        with self.assertRaises(InvalidWeight):
            self._controller()

    def test_add_update_remove_persist(self):
        c = self._controller()
        c.add_item("Bonus", weight=3, color="#00FF00")
        c.update_item(0, weight=2)
        removed = c.remove_item(1)
        self.assertEqual(removed["name"], "AirPods Pro")

        reloaded = self._controller()
        self.assertEqual([it["name"] for it in reloaded.items][-1], "Bonus")
        self.assertEqual(reloaded.items[0]["weight"], 2.0)
        self.assertEqual(len(reloaded.segments), 6)
        self.assertEqual(reloaded.segments[-1].end_angle, 360.0)

    def test_add_item_picks_palette_color(self):
        c = self._controller()
        item = c.add_item("Extra")
        self.assertTrue(item["color"].startswith("#"))

    def test_invalid_edit_leaves_state_unchanged(self):
        c = self._controller()
        before = c.items
        with self.assertRaises(InvalidWeight):
            c.update_item(0, weight=0)
        with self.assertRaises(InvalidWeight):
            c.add_item("Zero", weight=-1)
        with self.assertRaises(ValueError):
            c.add_item("   ")
        with self.assertRaises(InvalidItemIndex):
            c.remove_item(6)
        self.assertEqual(c.items, before)

    def test_segments_are_copies(self):
        c = self._controller()
        c.segments[0].end_angle = 1.0
        self.assertAlmostEqual(c.segments[0].end_angle, 60.0)

    def test_edits_rejected_while_spinning(self):
        c = self._controller()
        c.spin()
        for edit in (lambda: c.add_item("X"), lambda: c.remove_item(0),
                     lambda: c.update_item(0, name="Y"), c.reset_to_default):
            with self.assertRaises(InvalidSpinRequest):
                edit()
        self.assertEqual(len(c.items), 6)

    def test_spin_records_result(self):
        c = self._controller()
        selected = c.spin()
        result = self._settle(c)
        self.assertIs(result, c.last_result)
        self.assertEqual(result.segment.name, selected.name)
        self.assertEqual(c.current_outcome().name, selected.name)
        self.assertEqual(c.snapshot()["last_result"]["selected"], selected.name)

    def test_spin_with_no_items(self):
        c = self._controller()
        for _ in range(6):
            c.remove_item(0)
        with self.assertRaises(EmptySegmentSet):
            c.spin()
        self.assertEqual(c.spin_state.phase, SpinPhase.IDLE)
        self.assertIsNone(c.current_outcome())

    def test_reset_to_default(self):
        c = self._controller()
        c.add_item("Bonus")
        c.reset_to_default()
        self.assertEqual(len(c.items), 6)
        self.assertTrue(self.path.exists())

    def test_stop_animation_time_setting(self):
        c = self._controller()
        c.set_stop_animation_time(250)
        self.assertEqual(c.engine.stop_duration_ms, 250.0)
        with self.assertRaises(ValueError):
            c.set_stop_animation_time(-1)
        self.assertEqual(self._controller().settings.stop_animation_time, 250)

    def test_drag_makes_geometry_authoritative(self):
        """Ending a drag rewrites probability and weight from the arcs."""
        c = self._controller()
        self.assertTrue(c.begin_drag(0, "end"))
        self.assertTrue(c.drag_to(50))
        self.assertTrue(c.end_drag())

        seg0 = c.segments[0]
        self.assertEqual(seg0.end_angle, 50.0)
        self.assertAlmostEqual(seg0.probability, 50 / 360 * 100)
        self.assertAlmostEqual(c.items[0]["weight"], 50.0)
        self.assertTrue(c.geometry_edited)
        self.assertEqual(c.snapshot()["gaps"], [[50.0, 60.0]])

        # Closing the gap from the other side reproduces the layout on reload
        c.begin_drag(1, "start")
        c.drag_to(50)
        c.end_drag()
        reloaded = self._controller()
        self.assertAlmostEqual(reloaded.segments[0].end_angle, 50.0, places=9)
        self.assertAlmostEqual(reloaded.segments[1].start_angle, 50.0, places=9)
        self.assertAlmostEqual(reloaded.segments[1].end_angle, 120.0, places=9)

    def test_item_edit_discards_manual_layout(self):
        c = self._controller()
        c.begin_drag(0, "end")
        c.drag_to(50)
        c.end_drag()
        c.add_item("Bonus")
        self.assertFalse(c.geometry_edited)
        self.assertEqual(coverage_gaps(c.segments), [])

    def test_rejected_drag_does_not_rebalance(self):
        c = self._controller()
        c.begin_drag(0, "end")
        self.assertFalse(c.drag_to(65))
        self.assertFalse(c.end_drag())
        self.assertFalse(c.geometry_edited)
        self.assertAlmostEqual(c.segments[0].end_angle, 60.0)

    def test_drag_ignored_while_spinning(self):
        c = self._controller()
        c.spin()
        self.assertIsNone(c.hit_test(60))
        self.assertFalse(c.begin_drag(0, "end"))
        self.assertFalse(c.drag_to(50))

    def test_spin_commits_active_drag(self):
        c = self._controller()
        c.begin_drag(0, "end")
        c.drag_to(50)
        c.spin()
        self.assertFalse(c.editor.drag.active)
        self.assertTrue(c.geometry_edited)

    def test_drag_target_validation(self):
        c = self._controller()
        with self.assertRaises(InvalidDragTarget):
            c.begin_drag(9, "end")
        with self.assertRaises(InvalidDragTarget):
            c.begin_drag(0, "middle")
        with self.assertRaises(InvalidDragTarget):
            c.begin_drag(True, "end")
        with self.assertRaises(InvalidItemIndex):
            c.remove_item(True)
        with self.assertRaises(InvalidItemIndex):
            c.update_item(False, name="Nope")
        self.assertEqual(len(c.items), 6)

    def test_item_edit_cancels_drag(self):
        c = self._controller()
        self.assertTrue(c.begin_drag(0, "end"))
        c.add_item("X")
        self.assertFalse(c.editor.drag.active)
        self.assertFalse(c.drag_to(40))
        self.assertFalse(c.end_drag())
        self.assertEqual(len(c.segments), 7)
        self.assertEqual(coverage_gaps(c.segments), [])

        # Last item's start, then the list shrinks under it
        self.assertTrue(c.begin_drag(6, "start"))
        c.remove_item(0)
        self.assertFalse(c.drag_to(310))
        self.assertFalse(c.end_drag())
        self.assertEqual(coverage_gaps(c.segments), [])

    def test_snapshot_is_json(self):
        c = self._controller()
        c.spin()
        self._settle(c)
        json.dumps(c.snapshot())


# ============================================================
# HTTP API Tests
# ============================================================

class TestWheelAPI(unittest.TestCase):
    """Flask endpoints in web_app.py."""

    def setUp(self):
        import web_app
        from flows.wheel_controller import WheelController
        from tools.wheel_store import WheelStore
        self.tmp = tempfile.TemporaryDirectory()
        engine = SpinEngine(random_source=random.Random(11).random, clock=FakeClock())
        self.controller = WheelController(
            store=WheelStore(Path(self.tmp.name) / "wheel.json"), engine=engine)
        web_app.set_controller(self.controller)
        self.client = web_app.app.test_client()

    def tearDown(self):
        import web_app
        web_app.set_store(None)
        self.tmp.cleanup()

    def test_state(self):
        resp = self.client.get("/api/wheel")
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(len(data["segments"]), 6)
        self.assertEqual(data["spin"]["phase"], "idle")
        self.assertEqual(data["current_outcome"], "iPhone 15")

    def test_add_item_validation(self):
        resp = self.client.post("/api/wheel/items", json={"name": "Bonus", "weight": 0})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["kind"], "InvalidWeight")

        resp = self.client.post("/api/wheel/items", json={"name": "Bonus", "weight": "x"})
        self.assertEqual(resp.status_code, 400)

        resp = self.client.post("/api/wheel/items", json={"name": "Bonus", "weight": 2})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.get_json()["wheel"]["segments"]), 7)

    def test_update_and_delete_index_errors(self):
        resp = self.client.put("/api/wheel/items/99", json={"name": "Nope"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["kind"], "InvalidItemIndex")
        resp = self.client.delete("/api/wheel/items/99")
        self.assertEqual(resp.status_code, 400)

        resp = self.client.put("/api/wheel/items/0", json={"weight": 4})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["item"]["weight"], 4.0)
        resp = self.client.delete("/api/wheel/items/0")
        self.assertEqual(resp.get_json()["removed"]["name"], "iPhone 15")

    def test_spin_lifecycle(self):
        resp = self.client.post("/api/wheel/spin", json={"now": 0})
        self.assertEqual(resp.status_code, 200)
        spin = resp.get_json()
        self.assertGreaterEqual(spin["target_rotation"] - spin["start_rotation"], 5 * 360)
        self.assertEqual(spin["easing"], "ease-out-cubic")

        # Second spin and edits are rejected while active
        self.assertEqual(self.client.post("/api/wheel/spin", json={"now": 10}).status_code, 409)
        self.assertEqual(self.client.post("/api/wheel/items",
                                          json={"name": "X"}).status_code, 409)

        resp = self.client.post("/api/wheel/tick", json={"now": 2500})
        self.assertIsNone(resp.get_json()["result"])
        self.assertEqual(resp.get_json()["spin"]["phase"], "spinning")

        resp = self.client.post("/api/wheel/tick", json={"now": spin["duration_ms"]})
        result = resp.get_json()["result"]
        self.assertTrue(result["matches_selection"])
        self.assertEqual(result["outcome"]["name"], spin["selected"]["name"])

        resp = self.client.get("/api/wheel/pointer")
        self.assertEqual(resp.get_json()["segment"]["name"], spin["selected"]["name"])

        # Nothing left to stop
        self.assertEqual(self.client.post("/api/wheel/stop", json={"now": 9000}).status_code, 409)

    def test_early_stop_and_abort(self):
        self.client.post("/api/wheel/spin", json={"now": 0})
        resp = self.client.post("/api/wheel/stop", json={"now": 1000})
        self.assertEqual(resp.get_json()["spin"]["phase"], "settling")
        resp = self.client.post("/api/wheel/tick", json={"now": 2000})
        self.assertTrue(resp.get_json()["result"]["stopped_early"])

        self.client.post("/api/wheel/spin", json={"now": 3000})
        resp = self.client.post("/api/wheel/abort")
        self.assertEqual(resp.get_json()["spin"]["phase"], "idle")

    def test_boundary_drag(self):
        resp = self.client.post("/api/wheel/boundary",
                                json={"index": 0, "kind": "end", "angle": 65})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.get_json()["accepted"])

        resp = self.client.post("/api/wheel/boundary",
                                json={"index": 0, "kind": "end", "angle": 50})
        data = resp.get_json()
        self.assertTrue(data["accepted"])
        self.assertTrue(data["wheel"]["geometry_edited"])

        resp = self.client.post("/api/wheel/boundary",
                                json={"index": 10, "kind": "end", "angle": 50})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["kind"], "InvalidDragTarget")

    def test_boundary_drag_while_spinning(self):
        self.client.post("/api/wheel/spin", json={"now": 0})
        resp = self.client.post("/api/wheel/boundary",
                                json={"index": 0, "kind": "end", "angle": 50})
        self.assertEqual(resp.status_code, 409)

    def test_boundary_drag_non_finite_angle(self):
        for angle in ("NaN", "inf", "-Infinity"):
            resp = self.client.post("/api/wheel/boundary",
                                    json={"index": 0, "kind": "end", "angle": angle})
            self.assertEqual(resp.status_code, 400)
            self.assertFalse(self.controller.editor.drag.active)

        # Bare NaN literal in the JSON body
        resp = self.client.post("/api/wheel/boundary",
                                data='{"index": 0, "kind": "end", "angle": NaN}',
                                content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(self.controller.editor.drag.active)
        self.assertEqual(self.controller.segments[0].end_angle, 60.0)

        # The wheel still accepts a normal drag afterwards
        resp = self.client.post("/api/wheel/boundary",
                                json={"index": 0, "kind": "end", "angle": 50})
        self.assertTrue(resp.get_json()["accepted"])

    def test_non_finite_weight_is_invalid_weight(self):
        resp = self.client.post("/api/wheel/items", json={"name": "Bonus", "weight": "inf"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["kind"], "InvalidWeight")

    def test_reset_recovers_from_invalid_stored_weights(self):
        import web_app
        from tools.wheel_store import WheelStore
        path = Path(self.tmp.name) / "bad.json"
        path.write_text(json.dumps({"items": [{"name": "a", "weight": 0}]}))
        web_app.set_store(WheelStore(path))

        resp = self.client.get("/api/wheel")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["kind"], "InvalidWeight")

        resp = self.client.post("/api/wheel/reset")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.get_json()["items"]), 6)

        resp = self.client.get("/api/wheel")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.get_json()["segments"]), 6)
        self.assertEqual(len(json.loads(path.read_text())["items"]), 6)

    def test_settings_and_reset(self):
        resp = self.client.put("/api/wheel/settings", json={"stop_animation_time": -5})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.put("/api/wheel/settings", json={"stop_animation_time": 250})
        self.assertEqual(resp.get_json()["settings"]["stop_animation_time"], 250)

        self.client.delete("/api/wheel/items/0")
        resp = self.client.post("/api/wheel/reset")
        self.assertEqual(len(resp.get_json()["items"]), 6)

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["status"], "ok")


# ============================================================
# CLI Tests
# ============================================================

class TestWheelCLI(unittest.TestCase):
    """tools/wheel_cli.py main() against a temp store."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = str(Path(self.tmp.name) / "wheel.json")

    def tearDown(self):
        self.tmp.cleanup()

    def _run(self, *argv):
        from tools.wheel_cli import main
        return main(["--store", self.store, *argv])

    def test_show_add_remove(self):
        self.assertEqual(self._run("show"), 0)
        self.assertEqual(self._run("add", "Free Coffee", "--weight", "3"), 0)
        data = json.loads(Path(self.store).read_text())
        self.assertEqual(data["items"][-1]["name"], "Free Coffee")
        self.assertEqual(self._run("remove", "99"), 1)
        self.assertEqual(self._run("add", "Bad", "--weight", "0"), 1)

    def test_spin(self):
        self.assertEqual(self._run("spin", "--seed", "3"), 0)
        self.assertEqual(self._run("spin", "--seed", "4", "--stop-after", "1200"), 0)

    def test_drag_and_validate(self):
        self.assertEqual(self._run("drag", "0", "end", "50"), 0)
        data = json.loads(Path(self.store).read_text())
        self.assertAlmostEqual(data["items"][0]["weight"], 50.0)
        self.assertEqual(self._run("reset"), 0)
        self.assertEqual(self._run("validate", "--draws", "20000", "--trials", "50"), 0)

    def test_drag_reports_gap_not_kept(self):
        import io
        from unittest.mock import patch
        from rich.console import Console
        out = Console(file=io.StringIO(), width=200)
        with patch("tools.wheel_cli.console", out):
            self.assertEqual(self._run("drag", "0", "end", "50"), 0)
        text = out.file.getvalue()
        self.assertIn("not kept", text)
        self.assertIn("[50°, 60°)", text)


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)

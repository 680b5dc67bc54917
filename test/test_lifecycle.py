#!/usr/bin/env python3
"""
Tests for the popup lifecycle state machine.
Timers and the clock are fakes, so no test waits for real time to pass.
"""

import unittest

from clipai.lifecycle import (
    PopupLifecycle,
    PopupPhase,
    TriggerDecision,
    compute_popup_position,
)
from clipai.surface import START_FADE_OUT, Rect

from fakes import FakeClock, FakeScheduler, FakeSurface


class TestPopupPosition(unittest.TestCase):
    def test_centred_below_pointer(self):
        rect = compute_popup_position((1000, 300), Rect(0, 0, 1920, 1080))
        self.assertEqual(rect, Rect(760, 324, 480, 180))

    def test_clamped_to_work_area_with_padding(self):
        area = Rect(0, 0, 1920, 1080)
        self.assertEqual(compute_popup_position((5, 5), area), Rect(24, 29, 480, 180))
        self.assertEqual(compute_popup_position((1915, 1075), area), Rect(1416, 876, 480, 180))

    def test_secondary_display_offset(self):
        rect = compute_popup_position((1930, 10), Rect(1920, 0, 1280, 1024))
        self.assertEqual(rect.x, 1944)


class LifecycleTestCase(unittest.TestCase):
    def setUp(self):
        self.surface = FakeSurface()
        self.scheduler = FakeScheduler()
        self.clock = FakeClock()
        self.auto_hide = 0
        self.lifecycle = PopupLifecycle(
            self.surface,
            auto_hide_ms=lambda: self.auto_hide,
            scheduler=self.scheduler,
            clock=self.clock,
        )


class TestTriggers(LifecycleTestCase):
    def test_initial_state_is_hidden_without_timers(self):
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)
        self.assertEqual(self.scheduler.pending, {})

    def test_first_trigger_shows_near_pointer(self):
        decision = self.lifecycle.on_trigger("fp")

        self.assertIs(decision, TriggerDecision.RUN)
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_IDLE)
        self.assertTrue(self.lifecycle.state.request_in_flight)
        self.assertEqual(self.surface.calls, ["set_bounds", "show_inactive", "focus"])

    def test_repeat_within_debounce_while_in_flight_is_ignored(self):
        self.lifecycle.on_trigger("fp")
        self.clock.advance(0.3)

        decision = self.lifecycle.on_trigger("fp")

        self.assertIs(decision, TriggerDecision.IGNORE)
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_IDLE)
        self.assertEqual(self.surface.calls.count("show_inactive"), 1)
        self.assertEqual(self.surface.messages, [])

    def test_repeat_after_request_finished_toggles_off(self):
        self.lifecycle.on_trigger("fp")
        self.lifecycle.finish_request()
        self.clock.advance(0.9)

        decision = self.lifecycle.on_trigger("fp")

        self.assertIs(decision, TriggerDecision.TOGGLE_OFF)
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_FADING)
        self.assertEqual(self.surface.messages, [(START_FADE_OUT, None)])

    def test_repeat_after_request_finished_toggles_even_inside_debounce(self):
        self.lifecycle.on_trigger("fp")
        self.lifecycle.finish_request()
        self.assertIs(self.lifecycle.on_trigger("fp"), TriggerDecision.TOGGLE_OFF)

    def test_repeat_in_flight_after_debounce_toggles_off(self):
        self.lifecycle.on_trigger("fp")
        self.clock.advance(0.81)
        self.assertIs(self.lifecycle.on_trigger("fp"), TriggerDecision.TOGGLE_OFF)

    def test_key_repeat_then_toggle(self):
        self.lifecycle.on_trigger("fp")
        self.clock.advance(0.1)
        self.assertIs(self.lifecycle.on_trigger("fp"), TriggerDecision.IGNORE)
        self.lifecycle.finish_request()
        self.clock.advance(1.0)

        self.assertIs(self.lifecycle.on_trigger("fp"), TriggerDecision.TOGGLE_OFF)
        self.lifecycle.finalize_hide()
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)
        self.assertEqual(self.surface.calls.count("hide"), 1)

    def test_different_fingerprint_updates_in_place(self):
        self.lifecycle.on_trigger("one")
        self.lifecycle.finish_request()
        self.surface.calls.clear()

        decision = self.lifecycle.on_trigger("two")

        self.assertIs(decision, TriggerDecision.RUN)
        self.assertNotIn("set_bounds", self.surface.calls)
        self.assertEqual(self.lifecycle.state.last_request_fingerprint, "two")

    def test_same_fingerprint_while_fading_is_ignored(self):
        self.lifecycle.on_trigger("fp")
        self.lifecycle.request_hide()
        self.assertIs(self.lifecycle.on_trigger("fp"), TriggerDecision.IGNORE)
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_FADING)

    def test_new_fingerprint_while_fading_cancels_fade(self):
        self.lifecycle.on_trigger("fp")
        self.lifecycle.request_hide()

        self.assertIs(self.lifecycle.on_trigger("other"), TriggerDecision.RUN)
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_IDLE)
        # The fade's own finalize arrives late and must not hide the popup
        self.lifecycle.finalize_hide()
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_IDLE)

    def test_trigger_after_hidden_repositions(self):
        self.lifecycle.on_trigger("fp")
        self.lifecycle.finish_request()
        self.lifecycle.request_hide()
        self.lifecycle.finalize_hide()
        self.surface.calls.clear()

        self.assertIs(self.lifecycle.on_trigger("fp"), TriggerDecision.RUN)
        self.assertIn("set_bounds", self.surface.calls)


class TestHiding(LifecycleTestCase):
    def test_fade_then_finalize(self):
        self.lifecycle.show_near_pointer()
        self.lifecycle.request_hide()
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_FADING)

        self.lifecycle.finalize_hide()
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)
        self.assertFalse(self.surface.visible)

    def test_second_hide_request_does_not_resend(self):
        self.lifecycle.show_near_pointer()
        self.lifecycle.request_hide()
        self.lifecycle.request_hide()
        self.assertEqual(len(self.surface.payloads(START_FADE_OUT)), 1)

    def test_failed_fade_signal_hides_immediately(self):
        self.lifecycle.show_near_pointer()
        self.surface.fail_send = True
        self.lifecycle.request_hide()
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)
        self.assertIn("hide", self.surface.calls)

    def test_stale_finalize_is_noop(self):
        self.lifecycle.show_near_pointer()
        self.lifecycle.finalize_hide()
        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_IDLE)
        self.assertNotIn("hide", self.surface.calls)

    def test_force_finalize_hides_without_fade(self):
        self.lifecycle.show_near_pointer()
        self.lifecycle.finalize_hide(force=True)
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)

    def test_dead_surface_is_left_alone(self):
        self.surface.alive = False
        self.lifecycle.show_near_pointer()
        self.assertEqual(self.surface.calls, [])
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)


class TestAutoHide(LifecycleTestCase):
    def setUp(self):
        super().setUp()
        self.auto_hide = 3000

    def test_disabled_when_zero(self):
        self.auto_hide = 0
        self.lifecycle.show_near_pointer()
        self.assertEqual(self.scheduler.pending, {})

    def test_timer_started_on_show_and_starts_fade(self):
        self.lifecycle.show_near_pointer()
        self.assertEqual([d for d, _ in self.scheduler.pending.values()], [3.0])

        self.scheduler.fire_all()

        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_FADING)
        self.assertEqual(len(self.surface.payloads(START_FADE_OUT)), 1)

    def test_content_update_restarts_single_timer(self):
        self.lifecycle.show_near_pointer()
        first = set(self.scheduler.pending)
        self.lifecycle.content_updated()
        self.lifecycle.finish_request()

        self.assertEqual(len(self.scheduler.pending), 1)
        self.assertFalse(first & set(self.scheduler.pending))

    def test_hover_cancels_and_leave_restarts(self):
        self.lifecycle.show_near_pointer()
        self.lifecycle.hover(True)
        self.assertEqual(self.scheduler.pending, {})

        self.lifecycle.content_updated()
        self.assertEqual(self.scheduler.pending, {})

        self.lifecycle.hover(False)
        self.assertEqual(len(self.scheduler.pending), 1)

    def test_cancelled_timer_that_still_fires_is_ignored(self):
        self.lifecycle.show_near_pointer()
        _, stale_callback = next(iter(self.scheduler.pending.values()))
        self.lifecycle.hover(True)

        stale_callback()

        self.assertEqual(self.lifecycle.phase, PopupPhase.VISIBLE_IDLE)

    def test_finalize_clears_timer(self):
        self.lifecycle.show_near_pointer()
        self.lifecycle.finalize_hide(force=True)
        self.assertEqual(self.scheduler.pending, {})

    def test_teardown_and_reset(self):
        self.lifecycle.on_trigger("fp")
        self.lifecycle.teardown()
        self.assertEqual(self.scheduler.pending, {})

        replacement = FakeSurface()
        self.lifecycle.reset(replacement)
        self.assertIs(self.lifecycle.surface, replacement)
        self.assertIsNone(self.lifecycle.state.last_request_fingerprint)
        self.assertEqual(self.lifecycle.phase, PopupPhase.HIDDEN)


class TestResize(LifecycleTestCase):
    def test_keeps_position(self):
        self.lifecycle.show_near_pointer()
        before = self.surface.bounds
        self.lifecycle.resize(500.4, 260)
        self.assertEqual(self.surface.bounds, Rect(before.x, before.y, 500, 260))


if __name__ == '__main__':
    unittest.main()

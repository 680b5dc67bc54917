#!/usr/bin/env python3
"""
Popup lifecycle state machine

    HIDDEN --trigger--> VISIBLE_IDLE --hide request--> VISIBLE_FADING --finalize--> HIDDEN

A repeat trigger with the same fingerprint toggles the popup off, unless it
arrives while the first request is still running and within the debounce
window, in which case it is treated as key-repeat noise and ignored.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from .surface import START_FADE_OUT, Rect, WindowSurface

DEBOUNCE_SECONDS = 0.8
POPUP_PADDING = 24
POPUP_WIDTH = 480
POPUP_HEIGHT = 180


class PopupPhase(Enum):
    HIDDEN = "hidden"
    VISIBLE_IDLE = "visible-idle"
    VISIBLE_FADING = "visible-fading"


class TriggerDecision(Enum):
    RUN = "run"
    TOGGLE_OFF = "toggle-off"
    IGNORE = "ignore"


@dataclass
class PopupState:
    visible: bool = False
    fading: bool = False
    last_shown_at: float = 0.0
    last_request_fingerprint: Optional[str] = None
    request_in_flight: bool = False
    hovered: bool = False

    @property
    def phase(self) -> PopupPhase:
        if not self.visible:
            return PopupPhase.HIDDEN
        return PopupPhase.VISIBLE_FADING if self.fading else PopupPhase.VISIBLE_IDLE


class Scheduler:
    """One-shot timers. Tests substitute a fake that fires on demand."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: Any):
        handle.cancel()


def compute_popup_position(
    pointer: Tuple[int, int],
    work_area: Rect,
    width: int = POPUP_WIDTH,
    height: int = POPUP_HEIGHT,
    padding: int = POPUP_PADDING
) -> Rect:
    """Centre horizontally on the pointer, just below it, inside the work area."""
    px, py = pointer
    x = px - width // 2
    y = py + padding
    x = min(max(x, work_area.x + padding), work_area.x + work_area.width - width - padding)
    y = min(max(y, work_area.y + padding), work_area.y + work_area.height - height - padding)
    return Rect(int(x), int(y), width, height)


class PopupLifecycle:
    """
    Owns popup visibility, the repeat-trigger debounce, the fade sequence
    and the auto-hide timer. Every public method is safe to call from any
    thread.
    """

    def __init__(
        self,
        surface: WindowSurface,
        auto_hide_ms: Callable[[], int] = lambda: 0,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        debounce: float = DEBOUNCE_SECONDS
    ):
        """
        Args:
            surface: Window the popup is drawn in
            auto_hide_ms: Returns the current auto-hide delay, 0 disables it
            scheduler: Timer factory
            clock: Monotonic time source in seconds
            debounce: Window in which an in-flight repeat trigger is ignored
        """
        self.surface = surface
        self.auto_hide_ms = auto_hide_ms
        self.scheduler = scheduler or Scheduler()
        self.clock = clock
        self.debounce = debounce
        self.state = PopupState()
        self._auto_hide_timer = None
        self._auto_hide_generation = 0
        self._lock = threading.RLock()

    @property
    def phase(self) -> PopupPhase:
        return self.state.phase

    def on_trigger(self, fingerprint: str) -> TriggerDecision:
        """
        Decide what a hotkey press means, and apply it.

        RUN marks the request in flight and makes the popup visible;
        TOGGLE_OFF starts the fade sequence; IGNORE changes nothing.
        """
        with self._lock:
            state = self.state
            same = fingerprint == state.last_request_fingerprint

            if state.visible and state.fading:
                if same:
                    return TriggerDecision.IGNORE
                state.fading = False
            elif state.visible and same:
                elapsed = self.clock() - state.last_shown_at
                if state.request_in_flight and elapsed <= self.debounce:
                    logging.debug(f'Ignoring repeat trigger after {elapsed:.3f}s')
                    return TriggerDecision.IGNORE
                self._request_hide_locked()
                return TriggerDecision.TOGGLE_OFF

            state.last_request_fingerprint = fingerprint
            state.request_in_flight = True
            self._show_locked()
            return TriggerDecision.RUN

    def show_near_pointer(self):
        """Make the popup visible; only a hidden popup is repositioned."""
        with self._lock:
            self._show_locked()

    def finish_request(self):
        with self._lock:
            self.state.request_in_flight = False
            if self.state.visible and not self.state.fading:
                self._restart_auto_hide()

    def content_updated(self):
        with self._lock:
            if self.state.visible and not self.state.fading:
                self._restart_auto_hide()

    def request_hide(self):
        """Start the fade-out; the window calls finalize_hide when it is done."""
        with self._lock:
            self._request_hide_locked()

    def finalize_hide(self, force: bool = False):
        """
        Hide the window after the fade. Without force, a finalize that
        arrives when no fade is running is stale and ignored.
        """
        with self._lock:
            if not force and not self.state.fading:
                return
            self._cancel_auto_hide()
            self.state.visible = False
            self.state.fading = False
            self.state.hovered = False
            if self.surface.is_alive():
                self.surface.hide()

    def hover(self, entered: bool):
        with self._lock:
            self.state.hovered = entered
            if entered:
                self._cancel_auto_hide()
            elif self.state.visible and not self.state.fading:
                self._restart_auto_hide()

    def resize(self, width: int, height: int):
        with self._lock:
            if not self.surface.is_alive():
                return
            bounds = self.surface.get_bounds()
            self.surface.set_bounds(Rect(bounds.x, bounds.y, int(width), int(height)))

    def reset(self, surface: Optional[WindowSurface] = None):
        """Forget all popup state, e.g. when the window has been recreated."""
        with self._lock:
            self._cancel_auto_hide()
            if surface is not None:
                self.surface = surface
            self.state = PopupState()

    def teardown(self):
        with self._lock:
            self._cancel_auto_hide()
            self.state.visible = False
            self.state.fading = False

    def _show_locked(self):
        if not self.surface.is_alive():
            return
        if not self.state.visible:
            pointer = self.surface.pointer_position()
            self.surface.set_bounds(compute_popup_position(pointer, self.surface.work_area_near(pointer)))
            self.state.last_shown_at = self.clock()
        self.surface.show_inactive()
        self.surface.focus()
        self.state.visible = True
        self.state.fading = False
        self._restart_auto_hide()

    def _request_hide_locked(self):
        if not self.state.visible or self.state.fading:
            return
        self._cancel_auto_hide()
        self.state.fading = True
        try:
            self.surface.send(START_FADE_OUT)
        except Exception as e:
            logging.debug(f'Fade-out signal failed, hiding immediately: {e}')
            self.finalize_hide(force=True)

    def _restart_auto_hide(self):
        self._cancel_auto_hide()
        if self.state.hovered:
            return
        delay_ms = self.auto_hide_ms()
        if not delay_ms or delay_ms <= 0:
            return
        self._auto_hide_generation += 1
        generation = self._auto_hide_generation
        self._auto_hide_timer = self.scheduler.call_later(delay_ms / 1000.0, lambda: self._on_auto_hide(generation))

    def _cancel_auto_hide(self):
        if self._auto_hide_timer is not None:
            self.scheduler.cancel(self._auto_hide_timer)
            self._auto_hide_timer = None

    def _on_auto_hide(self, generation: int):
        with self._lock:
            # A timer cancelled while it was already firing
            if generation != self._auto_hide_generation or self._auto_hide_timer is None:
                return
            self._auto_hide_timer = None
            logging.debug('Auto-hide timer fired')
            self._request_hide_locked()

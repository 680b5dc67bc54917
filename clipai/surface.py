#!/usr/bin/env python3
"""
Window Surface contract and broadcast hub

The orchestrator and lifecycle only talk to a WindowSurface. How the window
draws itself is up to the implementation (see clipai.gui.popup).
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Tuple

# Message channels pushed to windows
SUMMARY_RESULT = "summary-result"
THEME_CHANGED = "theme-changed"
START_FADE_OUT = "start-fade-out"
AUTO_HIDE_MS_CHANGED = "auto-hide-ms-changed"
MARKDOWN_MODE_CHANGED = "markdown-mode-changed"
TEXT_APPEARANCE_CHANGED = "text-appearance-changed"


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int


class WindowSurface(ABC):
    """Capabilities the core needs from a window."""

    @abstractmethod
    def is_alive(self) -> bool:
        """False once the window has been torn down."""

    @abstractmethod
    def is_visible(self) -> bool: ...

    @abstractmethod
    def show_inactive(self) -> None:
        """Show without taking focus."""

    @abstractmethod
    def focus(self) -> None: ...

    @abstractmethod
    def hide(self) -> None: ...

    @abstractmethod
    def get_bounds(self) -> Rect: ...

    @abstractmethod
    def set_bounds(self, bounds: Rect) -> None: ...

    @abstractmethod
    def send(self, channel: str, payload: Any = None) -> None:
        """Push a message to the window. Raises if it cannot be delivered."""

    @abstractmethod
    def pointer_position(self) -> Tuple[int, int]: ...

    @abstractmethod
    def work_area_near(self, point: Tuple[int, int]) -> Rect:
        """Usable area of the display containing point."""


class SurfaceHub:
    """
    Registry of open windows for broadcast messages (theme, markdown mode...).
    """

    def __init__(self):
        self._surfaces: List[WindowSurface] = []
        self._lock = threading.Lock()

    def register(self, surface: WindowSurface):
        with self._lock:
            if surface not in self._surfaces:
                self._surfaces.append(surface)

    def unregister(self, surface: WindowSurface):
        with self._lock:
            if surface in self._surfaces:
                self._surfaces.remove(surface)

    def broadcast(self, channel: str, payload: Any = None):
        with self._lock:
            surfaces = [s for s in self._surfaces if s.is_alive()]
        for surface in surfaces:
            try:
                surface.send(channel, payload)
            except Exception as e:
                logging.debug(f'Dropping {channel} for a closed window: {e}')

    def on_config_event(self, event: str, value: Any):
        """ConfigStore observer: forward every change to all windows."""
        self.broadcast(event, value)

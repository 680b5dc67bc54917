#!/usr/bin/env python3
"""
Global hotkey backend using pynput
"""

import logging
import sys
import threading
from typing import Callable, Dict, Optional

from pynput import keyboard as pykeyboard

# Canonical key names that pynput spells differently
_KEY_ALIASES = {
    "escape": "esc",
    "return": "enter",
    "del": "delete",
    "pageup": "page_up",
    "pagedown": "page_down",
    "capslock": "caps_lock",
    "arrowup": "up",
    "arrowdown": "down",
    "arrowleft": "left",
    "arrowright": "right",
}


def to_pynput(accelerator: str, platform: str = sys.platform) -> str:
    """
    Convert a canonical accelerator to pynput format.
    e.g., 'CommandOrControl+Shift+Space' -> '<ctrl>+<shift>+<space>'
    """
    modifiers = {
        "CommandOrControl": "<cmd>" if platform == "darwin" else "<ctrl>",
        "Control": "<ctrl>",
        "Alt": "<alt>",
        "Shift": "<shift>",
    }
    parsed_parts = []
    for part in accelerator.split("+"):
        if part in modifiers:
            parsed_parts.append(modifiers[part])
        elif len(part) == 1:
            # Single character key
            parsed_parts.append(part.lower())
        else:
            name = part.lower()
            parsed_parts.append(f"<{_KEY_ALIASES.get(name, name)}>")
    return "+".join(parsed_parts)


class GlobalHotkeyBackend:
    """
    Keeps one pynput GlobalHotKeys listener for all registered accelerators.
    The listener is rebuilt whenever the binding set changes.
    """

    def __init__(self):
        self.bindings: Dict[str, Callable[[], None]] = {}
        self.listener: Optional[pykeyboard.GlobalHotKeys] = None
        self._lock = threading.Lock()
        logging.debug('GlobalHotkeyBackend initialized')

    def register(self, accelerator: str, callback: Callable[[], None]):
        """
        Bind an accelerator. Raises ValueError when pynput cannot parse it
        or when another accelerator already maps to the same key combination.
        """
        combo = to_pynput(accelerator)
        pykeyboard.HotKey.parse(combo)

        def on_activate():
            logging.debug(f'Hotkey triggered: {accelerator}')
            # Call callback in a separate thread to not block the listener
            threading.Thread(target=callback, daemon=True).start()

        with self._lock:
            if combo in self.bindings:
                raise ValueError(f"{combo} is already bound")
            self.bindings[combo] = on_activate
            self._restart()

    def unregister_all(self):
        with self._lock:
            self.bindings.clear()
            self._stop_listener()

    def stop(self):
        self.unregister_all()
        logging.debug('Hotkey listener stopped')

    def is_running(self) -> bool:
        return self.listener is not None

    def _restart(self):
        self._stop_listener()
        if not self.bindings:
            return
        self.listener = pykeyboard.GlobalHotKeys(dict(self.bindings))
        self.listener.start()
        logging.debug(f'Hotkey listener started: {", ".join(self.bindings)}')

    def _stop_listener(self):
        if self.listener:
            self.listener.stop()
            self.listener = None

#!/usr/bin/env python3
"""
Selected-text capture through the clipboard
"""

import logging
import sys
import threading
import time
from typing import Callable

import pyperclip
from pynput import keyboard as pykeyboard

# Time for the foreground app to put the selection on the clipboard
COPY_DELAY_SECONDS = 0.22
# Pause before the previous clipboard is put back
RESTORE_DELAY_SECONDS = 0.03


class SelectionCapture:
    """
    Best-effort capture of the text selected in the foreground application.

    Simulates the platform copy keystroke, reads the clipboard and puts the
    previous clipboard contents back. capture() never raises: on any failure,
    or when nothing new was copied, it returns what was on the clipboard before.
    """

    def __init__(
        self,
        auto_copy_enabled: Callable[[], bool] = lambda: True,
        copy_delay: float = COPY_DELAY_SECONDS,
        restore_delay: float = RESTORE_DELAY_SECONDS,
        platform: str = sys.platform
    ):
        """
        Args:
            auto_copy_enabled: Returns False when the copy keystroke must not be sent
            copy_delay: Wait between the keystroke and reading the clipboard
            restore_delay: Wait before the previous clipboard is restored
            platform: sys.platform value deciding Cmd+C vs Ctrl+C
        """
        self.keyboard = pykeyboard.Controller()
        self.auto_copy_enabled = auto_copy_enabled
        self.copy_delay = copy_delay
        self.restore_delay = restore_delay
        self.platform = platform
        self._lock = threading.Lock()
        logging.debug('SelectionCapture initialized')

    def capture(self) -> str:
        """
        Get the currently selected text, falling back to the clipboard.

        Captures are serialized: the previous clipboard is restored before
        the next capture reads it.

        Returns:
            The stripped text, or empty string if there is none
        """
        with self._lock:
            before = self._read_clipboard()
            if not self.auto_copy_enabled():
                return before.strip()

            try:
                self._send_copy_keystroke()
                time.sleep(self.copy_delay)
                selection = pyperclip.paste() or ""
            except Exception as e:
                logging.debug(f'Selection capture failed, using clipboard contents: {e}')
                selection = before

            if not selection or selection == before:
                selection = before

            time.sleep(self.restore_delay)
            self._restore(before)
            return selection.strip()

    def _read_clipboard(self) -> str:
        try:
            return pyperclip.paste() or ""
        except Exception as e:
            logging.debug(f'Failed to read clipboard: {e}')
            return ""

    def _send_copy_keystroke(self):
        modifier = pykeyboard.Key.cmd if self.platform == "darwin" else pykeyboard.Key.ctrl
        # Hotkey modifiers may still be held; Ctrl+Shift+C is not "copy" everywhere
        for held in (pykeyboard.Key.shift, pykeyboard.Key.alt):
            self.keyboard.release(held)
        self.keyboard.press(modifier)
        self.keyboard.press('c')
        self.keyboard.release('c')
        self.keyboard.release(modifier)

    @staticmethod
    def _restore(previous: str):
        try:
            pyperclip.copy(previous)
        except Exception as e:
            logging.error(f'Failed to restore clipboard: {e}')

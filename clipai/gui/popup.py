#!/usr/bin/env python3
"""
Tkinter popup window implementing the WindowSurface contract.

All Tk calls happen on the Tk thread: methods called from worker threads
only touch cached state and schedule the real work with root.after(0, ...).
"""

import logging
import tkinter as tk
from typing import Any, Dict, Optional, Tuple

from pynput import mouse as pymouse

from ..config import DEFAULT_TEXT_APPEARANCE
from ..surface import (
    AUTO_HIDE_MS_CHANGED,
    MARKDOWN_MODE_CHANGED,
    START_FADE_OUT,
    SUMMARY_RESULT,
    TEXT_APPEARANCE_CHANGED,
    THEME_CHANGED,
    Rect,
    WindowSurface,
)

FADE_STEPS = 10
FADE_INTERVAL_MS = 20
MAX_POPUP_HEIGHT = 600
PREVIEW_LINE_CHARS = 80


def is_dark_mode(theme: str = "system") -> bool:
    """Only an explicit "dark" setting selects the dark palette."""
    return theme == "dark"


class TkPopupSurface(WindowSurface):
    """
    Frameless, topmost popup showing the summary text.

    Window-side events (fade finished, hover, Escape, content size) are
    forwarded to the settings service set with connect().
    """

    def __init__(self, root: tk.Tk, theme: str = "system", text_appearance: Optional[Dict[str, Any]] = None):
        self.root = root
        self.settings = None
        self.theme = theme
        self.text_appearance = dict(text_appearance or DEFAULT_TEXT_APPEARANCE)
        self.markdown_mode = "full"
        self.auto_hide_ms = 0
        self.full_text = ""
        self.mouse = pymouse.Controller()

        self._alive = True
        self._visible = False
        self._fade_job = None
        self._bounds = Rect(0, 0, 480, 180)
        self._screen = self._work_area()

        self._build()
        self._apply_theme()
        logging.debug('TkPopupSurface initialized')

    def connect(self, settings):
        """Route window events to a SettingsService."""
        self.settings = settings

    # ── WindowSurface ────────────────────────────────────────────────────

    def is_alive(self) -> bool:
        return self._alive

    def is_visible(self) -> bool:
        return self._alive and self._visible

    def show_inactive(self):
        self._visible = True
        self._schedule(self._do_show)

    def focus(self):
        self._schedule(lambda: self.window.focus_force())

    def hide(self):
        self._visible = False
        self._schedule(self._do_hide)

    def get_bounds(self) -> Rect:
        return self._bounds

    def set_bounds(self, bounds: Rect):
        self._bounds = bounds
        self._schedule(lambda: self.window.geometry(f"{bounds.width}x{bounds.height}+{bounds.x}+{bounds.y}"))

    def send(self, channel: str, payload: Any = None):
        if not self._alive:
            raise RuntimeError("popup window has been destroyed")
        self._schedule(lambda: self._handle_message(channel, payload))

    def pointer_position(self) -> Tuple[int, int]:
        x, y = self.mouse.position
        return int(x), int(y)

    def work_area_near(self, point: Tuple[int, int]) -> Rect:
        return self._screen

    def _work_area(self) -> Rect:
        # Primary screen only; wm maxsize leaves out the taskbar where the WM reports one
        width, height = self.root.winfo_screenwidth(), self.root.winfo_screenheight()
        max_width, max_height = self.root.wm_maxsize()
        return Rect(0, 0, min(width, int(max_width)), min(height, int(max_height)))

    def destroy(self):
        if not self._alive:
            return
        self._alive = False
        try:
            self.root.after(0, self.window.destroy)
        except (tk.TclError, RuntimeError) as e:
            logging.debug(f'Tk is gone, popup already destroyed: {e}')

    # ── Tk thread ────────────────────────────────────────────────────────

    def _schedule(self, task):
        if not self._alive:
            return
        try:
            self.root.after(0, task)
        except (tk.TclError, RuntimeError) as e:
            logging.debug(f'Tk is gone, dropping popup call: {e}')

    def _build(self):
        self.window = tk.Toplevel(self.root)
        self.window.withdraw()
        self.window.title("ClipAI")
        self.window.overrideredirect(True)  # Frameless
        self.window.attributes('-topmost', True)

        self.frame = tk.Frame(self.window, highlightthickness=1)
        self.frame.pack(fill=tk.BOTH, expand=True, padx=1, pady=1)

        self.preview = tk.Label(self.frame, anchor="w", justify=tk.LEFT, font=("Arial", 9))
        self.preview.pack(fill=tk.X, padx=10, pady=(8, 0))

        self.text = tk.Text(self.frame, wrap=tk.WORD, relief=tk.FLAT, bd=0, padx=10, pady=8)
        self.text.pack(fill=tk.BOTH, expand=True)
        self.text.configure(state=tk.DISABLED)

        self.window.bind('<Escape>', lambda e: self._dismiss())
        self.window.bind('<Enter>', self._on_enter)
        self.window.bind('<Leave>', self._on_leave)
        self.window.protocol("WM_DELETE_WINDOW", self._dismiss)

    def _apply_theme(self):
        if is_dark_mode(self.theme):
            bg, fg, muted, border = "#2d2d2d", "#ffffff", "#9a9a9a", "#666666"
        else:
            bg, fg, muted, border = "#f5f5f5", "#333333", "#777777", "#cccccc"
        self.window.configure(bg=bg)
        self.frame.configure(bg=bg, highlightbackground=border)
        self.preview.configure(bg=bg, fg=muted)
        self.text.configure(bg=bg, fg=fg, insertbackground=fg, font=self._font())

    def _font(self):
        family = self.text_appearance.get("fontFamily") or "system-ui"
        if family == "system-ui":
            family = "TkDefaultFont"
        size = int(self.text_appearance.get("fontSize") or 16)
        return (family, size)

    def _do_show(self):
        self._cancel_fade()
        self.window.attributes('-alpha', 1.0)
        self.window.deiconify()
        self.window.lift()

    def _do_hide(self):
        self._cancel_fade()
        self.window.withdraw()
        self.window.attributes('-alpha', 1.0)

    def _handle_message(self, channel: str, payload: Any):
        if channel == SUMMARY_RESULT:
            self._show_result(payload or {})
        elif channel == START_FADE_OUT:
            self._start_fade()
        elif channel == THEME_CHANGED:
            self.theme = payload
            self._apply_theme()
        elif channel == TEXT_APPEARANCE_CHANGED:
            self.text_appearance = dict(payload or {})
            self._apply_theme()
        elif channel == MARKDOWN_MODE_CHANGED:
            self.markdown_mode = payload
        elif channel == AUTO_HIDE_MS_CHANGED:
            self.auto_hide_ms = payload
        else:
            logging.debug(f'Unhandled popup message: {channel}')

    def _show_result(self, payload: Dict[str, Any]):
        if "error" in payload:
            body = f"Error: {payload['error']}"
        else:
            body = payload.get("summary", "")
        if "fullText" in payload:
            self.full_text = payload["fullText"]

        preview = (payload.get("inputPreview") or "").replace("\n", " ")
        self.preview.configure(text=preview[:PREVIEW_LINE_CHARS])

        self.text.configure(state=tk.NORMAL)
        self.text.delete("1.0", tk.END)
        self.text.insert("1.0", body)
        self.text.configure(state=tk.DISABLED)
        self.window.after_idle(self._fit_height)

    def _fit_height(self):
        if not self.settings:
            return
        lines = self.text.count("1.0", "end", "displaylines")
        line_count = lines[0] if isinstance(lines, tuple) else (lines or 1)
        line_height = self.text.tk.call("font", "metrics", self.text.cget("font"), "-linespace")
        height = min(MAX_POPUP_HEIGHT, 40 + self.preview.winfo_reqheight() + int(line_count) * int(line_height))
        if height != self._bounds.height:
            self.settings.resize(self._bounds.width, height)

    def _start_fade(self, step: int = FADE_STEPS):
        if step <= 0:
            self._fade_job = None
            if self.settings:
                self.settings.hide_after_fade()
            return
        self.window.attributes('-alpha', step / FADE_STEPS)
        self._fade_job = self.window.after(FADE_INTERVAL_MS, lambda: self._start_fade(step - 1))

    def _cancel_fade(self):
        if self._fade_job is not None:
            self.window.after_cancel(self._fade_job)
            self._fade_job = None

    def _dismiss(self):
        if self.settings:
            self.settings.force_hide_now()

    def _on_enter(self, event):
        if event.widget is self.window and self.settings:
            self.settings.auto_hide_hover("enter")

    def _on_leave(self, event):
        if event.widget is not self.window or not self.settings:
            return
        # Leave also fires when the pointer moves onto a child widget
        x, y = self.window.winfo_pointerxy()
        if self.window.winfo_containing(x, y) is None:
            self.settings.auto_hide_hover("leave")

#!/usr/bin/env python3
"""
ClipAI application: wires the store, hotkeys, popup and control server
"""

import logging
import threading
import tkinter as tk
from typing import Optional

from .accelerators import AcceleratorRegistry, HotkeyBackend
from .config import CONFIG_FILE, ConfigStore
from .hotkey import GlobalHotkeyBackend
from .lifecycle import PopupLifecycle, Scheduler
from .orchestrator import SummaryOrchestrator
from .providers import ProviderGateway
from .selection import SelectionCapture
from .settings import SettingsService
from .surface import SurfaceHub, WindowSurface
from .web_server import DEFAULT_HOST, create_app


class ClipAIApp:
    """
    One running ClipAI instance.

    Collaborators can be injected; create() builds the real Tk popup and
    pynput hotkey backend.
    """

    def __init__(
        self,
        store: ConfigStore,
        surface: WindowSurface,
        hotkey_backend: HotkeyBackend,
        gateway: Optional[ProviderGateway] = None,
        capture: Optional[SelectionCapture] = None,
        scheduler: Optional[Scheduler] = None,
        root: Optional[tk.Tk] = None
    ):
        self.store = store
        self.surface = surface
        self.root = root
        self.gateway = gateway or ProviderGateway()
        self.capture = capture or SelectionCapture(lambda: self.store.load().auto_copy_selection)

        self.hub = SurfaceHub()
        self.hub.register(surface)
        self.store.subscribe(self.hub.on_config_event)

        self.lifecycle = PopupLifecycle(
            surface,
            auto_hide_ms=lambda: self.store.load().auto_hide_ms,
            scheduler=scheduler,
        )
        self.orchestrator = SummaryOrchestrator(self.store, self.gateway, self.capture, self.lifecycle)
        self.registry = AcceleratorRegistry(hotkey_backend)
        self.settings = SettingsService(
            self.store,
            self.gateway,
            self.lifecycle,
            registry=self.registry,
            # The hotkey backend already calls back on its own thread
            invoke_preset=self.orchestrator.run_logged,
        )
        self.server_thread: Optional[threading.Thread] = None

        if hasattr(surface, "connect"):
            surface.connect(self.settings)

    @classmethod
    def create(cls, config_path=CONFIG_FILE) -> "ClipAIApp":
        """Build the desktop application with a Tk popup and global hotkeys."""
        from .gui.popup import TkPopupSurface

        store = ConfigStore(config_path)
        config = store.load()
        root = tk.Tk()
        root.withdraw()  # Hide the root window
        root.title("ClipAI")
        surface = TkPopupSurface(root, theme=config.theme, text_appearance=config.text_appearance)
        return cls(store, surface, GlobalHotkeyBackend(), root=root)

    def start(self, port: Optional[int] = None):
        """Register hotkeys and start the control server when a port is given."""
        conflicts = self.settings.register_hotkeys()
        if conflicts:
            logging.warning(f'{len(conflicts)} hotkey conflict(s) in presets')
        if port:
            self.start_server(port)

    def start_server(self, port: int, host: str = DEFAULT_HOST):
        flask_app = create_app(self)

        def run():
            try:
                flask_app.run(host=host, port=port, use_reloader=False, threaded=True)
            except OSError as e:
                logging.error(f'Control server failed on {host}:{port}: {e}')

        self.server_thread = threading.Thread(target=run, daemon=True, name="clipai-server")
        self.server_thread.start()
        logging.info(f'Control server listening on http://{host}:{port}')

    def run(self):
        """Block in the Tk main loop until stop() is called."""
        if self.root is None:
            raise RuntimeError("ClipAIApp.run() needs a Tk root; use ClipAIApp.create()")
        self.root.mainloop()

    def stop(self):
        logging.info('Shutting down')
        self.registry.clear()
        self.lifecycle.teardown()
        self.store.unsubscribe(self.hub.on_config_event)
        self.hub.unregister(self.surface)
        if hasattr(self.surface, "destroy"):
            self.surface.destroy()
        if self.root is not None:
            try:
                self.root.after(0, self.root.quit)
            except (tk.TclError, RuntimeError) as e:
                logging.debug(f'Tk already stopped: {e}')

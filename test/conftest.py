"""
Test session setup: pynput's dummy backend lets the input modules import
without an X server; the tests patch the controllers and listeners anyway.
"""

import os

os.environ.setdefault("PYNPUT_BACKEND", "dummy")

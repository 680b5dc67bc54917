#!/usr/bin/env python3
"""
ClipAI - hotkey-triggered summaries of selected text
"""

__version__ = "1.0.0"

#!/usr/bin/env python3
"""
Accelerator parsing, conflict detection and global registration

Accelerators are '+'-joined token lists such as "CommandOrControl+Shift+Space".
normalize() turns user input into the canonical form; an empty result means
the binding is unbound.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol

from .config import Preset

MODIFIER_ALIASES = {
    "cmd": "CommandOrControl",
    "command": "CommandOrControl",
    "commandorcontrol": "CommandOrControl",
    "ctrl": "Control",
    "control": "Control",
    "alt": "Alt",
    "option": "Alt",
    "shift": "Shift",
}
MODIFIER_ORDER = ("CommandOrControl", "Control", "Alt", "Shift")

# Pointer pseudo-keys: valid in presets, never registered globally
POINTER_KEYS = ("leftclick", "middleclick", "rightclick", "mousebutton4", "mousebutton5")


def normalize(raw) -> str:
    """
    Canonical form of an accelerator string, or "" when it is unusable.

    Modifiers are case-normalized and ordered CommandOrControl, Control, Alt,
    Shift. Exactly one non-modifier key is required.
    """
    if not raw or not isinstance(raw, str):
        return ""

    modifiers = set()
    keys = []
    for part in raw.split("+"):
        part = part.strip()
        if not part:
            continue
        lowered = part.lower()
        if lowered in MODIFIER_ALIASES:
            modifiers.add(MODIFIER_ALIASES[lowered])
        elif lowered in POINTER_KEYS:
            keys.append(lowered)
        elif len(part) == 1:
            keys.append(part.upper())
        else:
            keys.append(part[0].upper() + part[1:])

    if len(keys) != 1:
        return ""
    ordered = [m for m in MODIFIER_ORDER if m in modifiers]
    return "+".join(ordered + keys)


def binding_identity(accelerator: str) -> str:
    """Key used to compare bindings; "Space" and "SPACE" are the same key."""
    return accelerator.lower()


def is_pointer_binding(accelerator: str) -> bool:
    return any(token.lower() in POINTER_KEYS for token in accelerator.split("+"))


def format_for_display(accelerator: str, for_display: bool = False, platform: str = sys.platform) -> str:
    """Replace canonical tokens with the labels users expect on their OS"""
    if not accelerator:
        return ""
    mac = platform == "darwin"
    labels = {
        "CommandOrControl": "⌘" if mac else "Ctrl",
        "Command": "⌘",
        "Control": "Ctrl",
        "Alt": "⌥" if mac else "Alt",
        "Shift": "⇧",
        "leftclick": "🖱️L",
        "middleclick": "🖱️M",
        "rightclick": "🖱️R",
        "mousebutton4": "🖱️4",
        "mousebutton5": "🖱️5",
    }
    icons = [labels.get(part, part) for part in accelerator.split("+")]
    return " + ".join(icons) if for_display else "+".join(icons)


@dataclass
class AcceleratorConflict:
    """Two presets share an accelerator; the first one keeps it"""
    accelerator: str
    first_preset_id: str
    second_preset_id: str

    def to_dict(self):
        return {"hotkey": self.accelerator, "a": self.first_preset_id, "b": self.second_preset_id}


def find_conflicts(presets: Iterable[Preset]) -> List[AcceleratorConflict]:
    owners = {}
    conflicts = []
    for preset in presets:
        accelerator = normalize(preset.accelerator)
        if not accelerator:
            continue
        identity = binding_identity(accelerator)
        if identity in owners:
            conflicts.append(AcceleratorConflict(accelerator, owners[identity], preset.id))
        else:
            owners[identity] = preset.id
    return conflicts


class HotkeyBackend(Protocol):
    def register(self, accelerator: str, callback: Callable[[], None]) -> None: ...
    def unregister_all(self) -> None: ...


class AcceleratorRegistry:
    """
    Maps preset accelerators onto OS-level global hotkeys.
    """

    def __init__(self, backend: HotkeyBackend):
        self.backend = backend
        self.registered: List[str] = []
        self.conflicts: List[AcceleratorConflict] = []

    def register(self, presets: Iterable[Preset], invoke: Callable[[Preset], None]) -> List[AcceleratorConflict]:
        """
        Replace every global binding with the given presets' accelerators.

        Unbound and pointer-button accelerators are skipped. Duplicates are
        reported as conflicts and the first occurrence keeps the binding.

        Returns:
            The detected conflicts
        """
        presets = list(presets)
        self.backend.unregister_all()
        self.registered = []
        self.conflicts = find_conflicts(presets)
        for conflict in self.conflicts:
            logging.warning(
                f'Hotkey {conflict.accelerator} is used by presets '
                f'"{conflict.first_preset_id}" and "{conflict.second_preset_id}"; keeping the first'
            )

        taken = set()
        for preset in presets:
            accelerator = normalize(preset.accelerator)
            if not accelerator or is_pointer_binding(accelerator) or binding_identity(accelerator) in taken:
                continue
            try:
                self.backend.register(accelerator, lambda p=preset: invoke(p))
            except Exception as e:
                logging.error(f'Failed to register hotkey {accelerator} for preset "{preset.id}": {e}')
                continue
            self.registered.append(accelerator)
            taken.add(binding_identity(accelerator))

        logging.info(f'Registered {len(self.registered)} hotkey(s): {", ".join(self.registered) or "none"}')
        return self.conflicts

    def clear(self):
        self.backend.unregister_all()
        self.registered = []

    def binding_for(self, preset: Preset) -> Optional[str]:
        accelerator = normalize(preset.accelerator)
        return accelerator if accelerator in self.registered else None

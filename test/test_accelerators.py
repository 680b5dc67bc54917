#!/usr/bin/env python3
"""
Tests for accelerator normalization, conflicts and hotkey registration.
"""

import unittest
from unittest.mock import MagicMock, patch

from clipai.accelerators import (
    AcceleratorRegistry,
    find_conflicts,
    format_for_display,
    is_pointer_binding,
    normalize,
)
from clipai.config import Preset
from clipai.hotkey import GlobalHotkeyBackend, to_pynput

from fakes import FakeHotkeyBackend


def preset(preset_id, accelerator):
    return Preset(id=preset_id, name=preset_id, prompt_text="p", accelerator=accelerator)


class TestNormalize(unittest.TestCase):
    def test_aliases_give_same_canonical_form(self):
        self.assertEqual(normalize("ctrl+shift+space"), normalize("Control+Shift+Space"))
        self.assertEqual(normalize("ctrl+shift+space"), "Control+Shift+Space")

    def test_modifier_order_and_case(self):
        self.assertEqual(normalize("shift+CMD+a"), "CommandOrControl+Shift+A")
        self.assertEqual(normalize("option+control+f5"), "Control+Alt+F5")
        self.assertEqual(normalize(" Alt + shift + x "), "Alt+Shift+X")

    def test_missing_key_is_unbound(self):
        for raw in ("ctrl+shift", "Shift", "cmd+", "", "+", None):
            with self.subTest(raw=raw):
                self.assertEqual(normalize(raw), "")

    def test_two_keys_is_unbound(self):
        self.assertEqual(normalize("ctrl+a+b"), "")

    def test_pointer_keys_kept_lowercase(self):
        self.assertEqual(normalize("Alt+LeftClick"), "Alt+leftclick")
        self.assertTrue(is_pointer_binding("Alt+leftclick"))
        self.assertFalse(is_pointer_binding("Alt+L"))


class TestDisplay(unittest.TestCase):
    def test_mac_symbols(self):
        self.assertEqual(
            format_for_display("CommandOrControl+Alt+Shift+S", for_display=True, platform="darwin"),
            "⌘ + ⌥ + ⇧ + S",
        )

    def test_other_platforms(self):
        self.assertEqual(format_for_display("CommandOrControl+Alt+S", platform="win32"), "Ctrl+Alt+S")
        self.assertEqual(format_for_display(""), "")


class TestConflicts(unittest.TestCase):
    def test_duplicates_reported_first_wins(self):
        presets = [preset("a", "ctrl+k"), preset("b", "Control+K"), preset("c", "Alt+K"), preset("d", "")]
        conflicts = find_conflicts(presets)
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].to_dict(), {"hotkey": "Control+K", "a": "a", "b": "b"})

    def test_key_case_does_not_hide_a_conflict(self):
        conflicts = find_conflicts([preset("a", "ctrl+shift+space"), preset("b", "ctrl+shift+SPACE")])
        self.assertEqual([(c.first_preset_id, c.second_preset_id) for c in conflicts], [("a", "b")])


class TestAcceleratorRegistry(unittest.TestCase):
    def setUp(self):
        self.backend = FakeHotkeyBackend()
        self.registry = AcceleratorRegistry(self.backend)

    def test_registers_valid_bindings_and_invokes_preset(self):
        invoke = MagicMock()
        presets = [preset("a", "ctrl+k"), preset("b", "Alt+leftclick"), preset("c", "shift")]

        conflicts = self.registry.register(presets, invoke)

        self.assertEqual(conflicts, [])
        self.assertEqual(list(self.backend.bindings), ["Control+K"])
        self.backend.bindings["Control+K"]()
        invoke.assert_called_once_with(presets[0])

    def test_unregisters_everything_first(self):
        self.registry.register([preset("a", "ctrl+k")], MagicMock())
        self.registry.register([preset("b", "ctrl+j")], MagicMock())
        self.assertEqual(list(self.backend.bindings), ["Control+J"])
        self.assertEqual(self.backend.unregister_calls, 2)

    def test_conflict_keeps_first_binding(self):
        invoke = MagicMock()
        presets = [preset("a", "ctrl+k"), preset("b", "ctrl+k")]
        with self.assertLogs(level="WARNING"):
            conflicts = self.registry.register(presets, invoke)
        self.assertEqual(len(conflicts), 1)
        self.backend.bindings["Control+K"]()
        invoke.assert_called_once_with(presets[0])

    def test_same_key_in_other_case_keeps_first_binding(self):
        invoke = MagicMock()
        presets = [preset("a", "ctrl+shift+space"), preset("b", "ctrl+shift+SPACE")]
        with self.assertLogs(level="WARNING"):
            conflicts = self.registry.register(presets, invoke)

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(self.registry.registered, ["Control+Shift+Space"])
        self.backend.bindings["Control+Shift+Space"]()
        invoke.assert_called_once_with(presets[0])

    def test_backend_failure_is_logged_not_raised(self):
        self.backend.fail_on = {"Control+K"}
        with self.assertLogs(level="ERROR"):
            self.registry.register([preset("a", "ctrl+k"), preset("b", "ctrl+j")], MagicMock())
        self.assertEqual(self.registry.registered, ["Control+J"])
        self.assertIsNone(self.registry.binding_for(preset("a", "ctrl+k")))
        self.assertEqual(self.registry.binding_for(preset("b", "ctrl+j")), "Control+J")


class TestPynputBackend(unittest.TestCase):
    def test_to_pynput(self):
        self.assertEqual(to_pynput("CommandOrControl+Shift+Space", platform="linux"), "<ctrl>+<shift>+<space>")
        self.assertEqual(to_pynput("CommandOrControl+Shift+Space", platform="darwin"), "<cmd>+<shift>+<space>")
        self.assertEqual(to_pynput("Alt+Escape"), "<alt>+<esc>")
        self.assertEqual(to_pynput("Control+K"), "<ctrl>+k")

    @patch('clipai.hotkey.pykeyboard.GlobalHotKeys')
    def test_listener_rebuilt_per_registration(self, mock_hotkeys):
        backend = GlobalHotkeyBackend()
        backend.register("Control+K", MagicMock())
        backend.register("Control+J", MagicMock())

        self.assertEqual(mock_hotkeys.call_count, 2)
        self.assertEqual(set(mock_hotkeys.call_args[0][0]), {"<ctrl>+k", "<ctrl>+j"})
        self.assertTrue(backend.is_running())

        backend.stop()
        self.assertFalse(backend.is_running())
        mock_hotkeys.return_value.stop.assert_called()

    @patch('clipai.hotkey.pykeyboard.GlobalHotKeys')
    def test_second_accelerator_for_same_combo_is_rejected(self, mock_hotkeys):
        backend = GlobalHotkeyBackend()
        first = MagicMock()
        backend.register("Alt+Escape", first)

        with self.assertRaises(ValueError):
            backend.register("Alt+Esc", MagicMock())

        self.assertEqual(list(backend.bindings), ["<alt>+<esc>"])
        backend.stop()

    @patch('clipai.hotkey.threading.Thread')
    @patch('clipai.hotkey.pykeyboard.GlobalHotKeys')
    def test_callback_runs_on_one_worker_thread(self, mock_hotkeys, mock_thread):
        backend = GlobalHotkeyBackend()
        callback = MagicMock()
        backend.register("Control+K", callback)

        backend.bindings["<ctrl>+k"]()

        mock_thread.assert_called_once_with(target=callback, daemon=True)
        mock_thread.return_value.start.assert_called_once()
        backend.stop()


if __name__ == '__main__':
    unittest.main()

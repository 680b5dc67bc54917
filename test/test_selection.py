#!/usr/bin/env python3
"""
Tests for selected-text capture.
Mocks pynput and pyperclip; no real keystrokes or clipboard access.
"""

import threading
import time
import unittest
from unittest.mock import call, patch

from clipai.selection import SelectionCapture

real_sleep = time.sleep


class TestSelectionCapture(unittest.TestCase):

    def setUp(self):
        # Mock pynput Controller
        self.keyboard_patcher = patch('clipai.selection.pykeyboard.Controller')
        self.MockKeyboard = self.keyboard_patcher.start()
        self.mock_keyboard = self.MockKeyboard.return_value

        # Mock pyperclip
        self.clipboard_patcher = patch('clipai.selection.pyperclip')
        self.mock_clipboard = self.clipboard_patcher.start()

        self.sleep_patcher = patch('clipai.selection.time.sleep')
        self.mock_sleep = self.sleep_patcher.start()

        self.auto_copy = True
        self.capture = SelectionCapture(lambda: self.auto_copy, platform="linux")

    def tearDown(self):
        patch.stopall()

    def test_new_selection_returned_and_clipboard_restored(self):
        self.mock_clipboard.paste.side_effect = ["old clipboard", "  selected text \n"]

        result = self.capture.capture()

        self.assertEqual(result, "selected text")
        self.assertEqual(self.mock_sleep.call_args_list, [call(0.22), call(0.03)])
        self.mock_clipboard.copy.assert_called_once_with("old clipboard")

    def test_ctrl_c_on_linux_cmd_c_on_mac(self):
        from clipai.selection import pykeyboard
        self.mock_clipboard.paste.side_effect = ["a", "b"]
        self.capture.capture()
        self.mock_keyboard.press.assert_has_calls([call(pykeyboard.Key.ctrl), call('c')])

        mac = SelectionCapture(platform="darwin")
        self.mock_clipboard.paste.side_effect = ["a", "b"]
        self.mock_keyboard.reset_mock()
        mac.capture()
        self.mock_keyboard.press.assert_has_calls([call(pykeyboard.Key.cmd), call('c')])

    def test_unchanged_clipboard_falls_back_to_previous(self):
        self.mock_clipboard.paste.side_effect = ["same", "same"]
        self.assertEqual(self.capture.capture(), "same")

    def test_empty_copy_falls_back_to_previous(self):
        self.mock_clipboard.paste.side_effect = ["previous", ""]
        self.assertEqual(self.capture.capture(), "previous")

    def test_auto_copy_disabled_sends_no_keystroke(self):
        self.auto_copy = False
        self.mock_clipboard.paste.return_value = " clipboard only "

        self.assertEqual(self.capture.capture(), "clipboard only")
        self.mock_keyboard.press.assert_not_called()
        self.mock_clipboard.copy.assert_not_called()

    def test_keystroke_failure_never_raises(self):
        self.mock_clipboard.paste.return_value = "fallback"
        self.mock_keyboard.press.side_effect = RuntimeError("no display")

        self.assertEqual(self.capture.capture(), "fallback")
        self.mock_clipboard.copy.assert_called_once_with("fallback")

    def test_unreadable_clipboard_gives_empty_string(self):
        self.mock_clipboard.paste.side_effect = Exception("no clipboard mechanism")
        self.assertEqual(self.capture.capture(), "")

    def test_restore_failure_is_logged(self):
        self.mock_clipboard.copy.side_effect = Exception("clipboard locked")
        with self.assertLogs(level="ERROR"):
            SelectionCapture._restore("text")

    def test_overlapping_captures_leave_user_clipboard(self):
        clipboard = {"value": "USER_CLIP"}
        self.mock_clipboard.paste.side_effect = lambda: clipboard["value"]
        self.mock_clipboard.copy.side_effect = lambda text: clipboard.update(value=text)

        def press(key):
            if key == 'c':
                clipboard.update(value="SELECTED")
        self.mock_keyboard.press.side_effect = press

        results = []
        second = threading.Thread(target=lambda: results.append(self.capture.capture()))

        def sleep(seconds):
            # Start the second capture while the first one holds the selection
            if second.ident is None:
                second.start()
                real_sleep(0.05)
        self.mock_sleep.side_effect = sleep

        results.append(self.capture.capture())
        second.join(timeout=5)

        self.assertFalse(second.is_alive())
        self.assertEqual(results, ["SELECTED", "SELECTED"])
        self.assertEqual(clipboard["value"], "USER_CLIP")


if __name__ == '__main__':
    unittest.main()

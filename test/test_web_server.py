#!/usr/bin/env python3
"""
Tests for the local control server, using Flask's test client.
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

from clipai.accelerators import AcceleratorRegistry
from clipai.config import ConfigStore
from clipai.lifecycle import PopupLifecycle, PopupPhase
from clipai.settings import SettingsService
from clipai.web_server import create_app, redact_config

from fakes import FakeClock, FakeHotkeyBackend, FakeScheduler, FakeSurface


class TestRedaction(unittest.TestCase):
    def test_keys_masked(self):
        document = {"providers": {"openai": {"apiKey": "sk-abcdef", "model": "gpt-4o"}, "groq": {"apiKey": ""}}}
        redacted = redact_config(document)
        self.assertEqual(redacted["providers"]["openai"], {"apiKey": "sk-a…", "model": "gpt-4o"})
        self.assertEqual(redacted["providers"]["groq"]["apiKey"], "")
        self.assertEqual(document["providers"]["openai"]["apiKey"], "sk-abcdef")


class TestControlServer(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        store = ConfigStore(Path(self.temp_dir) / "config.json")
        surface = FakeSurface()
        lifecycle = PopupLifecycle(surface, scheduler=FakeScheduler(), clock=FakeClock())
        self.gateway = MagicMock()
        registry = AcceleratorRegistry(FakeHotkeyBackend())
        self.orchestrator = MagicMock()
        settings = SettingsService(store, self.gateway, lifecycle, registry=registry,
                                   invoke_preset=self.orchestrator.trigger_async)
        settings.register_hotkeys()
        self.clip_app = SimpleNamespace(
            store=store,
            lifecycle=lifecycle,
            registry=registry,
            orchestrator=self.orchestrator,
            settings=settings,
        )
        self.client = create_app(self.clip_app).test_client()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_index(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["service"], "ClipAI")
        self.assertEqual(data["active_provider"], "gemini")
        self.assertEqual(data["presets"][0]["id"], "default")

    def test_health(self):
        data = self.client.get('/health').get_json()
        self.assertEqual(data["popup"], "hidden")
        self.assertFalse(data["providers"]["gemini"])
        self.assertEqual(data["hotkeys"], ["CommandOrControl+Shift+Space"])

    def test_summarize_starts_in_background(self):
        response = self.client.post('/summarize')
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.get_json(), {"status": "started", "preset": "default"})
        self.assertEqual(self.orchestrator.trigger_async.call_args[0][0].id, "default")

    def test_summarize_wait(self):
        self.orchestrator.run_summary.return_value = {"summary": "Done", "fullText": "t"}
        response = self.client.post('/summarize?wait=1')
        self.assertEqual(response.get_json()["result"], {"summary": "Done", "fullText": "t"})
        self.orchestrator.trigger_async.assert_not_called()

    def test_summarize_unknown_preset(self):
        response = self.client.post('/summarize?preset=nope')
        self.assertEqual(response.status_code, 404)
        self.assertIn("nope", response.get_json()["error"])

    def test_hide(self):
        self.clip_app.lifecycle.show_near_pointer()
        self.assertEqual(self.client.post('/hide').get_json(), {"ok": True})
        self.assertEqual(self.clip_app.lifecycle.phase, PopupPhase.VISIBLE_FADING)
        self.client.post('/hide?now=1')
        self.assertEqual(self.clip_app.lifecycle.phase, PopupPhase.HIDDEN)

    def test_models(self):
        self.gateway.list_models.return_value = ["gpt-4o"]
        data = self.client.get('/models/openai').get_json()
        self.assertEqual(data, {"provider": "openai", "models": ["gpt-4o"]})

        response = self.client.get('/models/mistral')
        self.assertEqual(response.status_code, 404)
        self.assertIn("mistral", response.get_json()["error"])

    def test_config_is_redacted(self):
        self.clip_app.settings.save_provider_key("openai", "sk-secret-key")
        data = self.client.get('/config').get_json()
        self.assertEqual(data["providers"]["openai"]["apiKey"], "sk-s…")
        self.assertNotIn("sk-secret-key", self.client.get('/config').get_data(as_text=True))

    def test_get_not_allowed_on_summarize(self):
        self.assertEqual(self.client.get('/summarize').status_code, 405)


if __name__ == '__main__':
    unittest.main()

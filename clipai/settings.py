#!/usr/bin/env python3
"""
Settings operations invoked by the popup and the control server

Each setter is one ConfigStore.mutate call and returns a small status dict.
Observers of the store (the surface hub) take care of broadcasting.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .accelerators import AcceleratorRegistry, find_conflicts, normalize
from .config import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_PROVIDER,
    DEFAULT_SUMMARY_PROMPT,
    DEFAULT_TEXT_APPEARANCE,
    DEFAULT_THEME,
    MARKDOWN_MODES,
    MAX_PRESETS,
    MAX_TEXT_LEN,
    Config,
    ConfigStore,
    Preset,
    ProviderCredential,
    clamp_auto_hide_ms,
)
from .lifecycle import PopupLifecycle
from .providers import ProviderGateway
from .providers.catalog import SUPPORTED_PROVIDERS

PRESET_NAME_LIMIT = 48
PRESET_PROMPT_LIMIT = 1200
MIN_INPUT_CHARS, MAX_INPUT_CHARS = 1000, 100000
MIN_OUTPUT_TOKENS, MAX_OUTPUT_TOKENS = 100, 25000


def _coerce_int(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number or default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def normalize_preset(data: Dict[str, Any]) -> Preset:
    """Clip a preset coming from the UI to the stored limits."""
    preset = Preset.from_dict(data)
    preset.name = preset.name[:PRESET_NAME_LIMIT] or "Preset"
    preset.prompt_text = (preset.prompt_text or DEFAULT_SUMMARY_PROMPT)[:PRESET_PROMPT_LIMIT]
    preset.accelerator = normalize(preset.accelerator)
    # Only the built-in preset may be the default one
    preset.is_default = preset.is_default and preset.id == "default"
    return preset


class SettingsService:
    def __init__(
        self,
        store: ConfigStore,
        gateway: ProviderGateway,
        lifecycle: PopupLifecycle,
        registry: Optional[AcceleratorRegistry] = None,
        invoke_preset: Optional[Callable[[Preset], None]] = None
    ):
        self.store = store
        self.gateway = gateway
        self.lifecycle = lifecycle
        self.registry = registry
        self.invoke_preset = invoke_preset

    # ── Hotkeys ──────────────────────────────────────────────────────────

    def register_hotkeys(self) -> List[Dict[str, str]]:
        """(Re)bind every preset accelerator; returns the conflicts found."""
        presets = self.store.load().presets
        if self.registry is None or self.invoke_preset is None:
            conflicts = find_conflicts(presets)
        else:
            conflicts = self.registry.register(presets, self.invoke_preset)
        return [c.to_dict() for c in conflicts]

    # ── Config setters ───────────────────────────────────────────────────

    def get_config(self) -> Dict[str, Any]:
        return self.store.load().to_dict()

    def set_auto_copy_selection(self, enabled) -> Dict[str, Any]:
        config = self.store.mutate(lambda cfg: setattr(cfg, "auto_copy_selection", bool(enabled)))
        return {"ok": True, "enabled": config.auto_copy_selection}

    def save_provider_key(self, provider_id: str, api_key: str, model: Optional[str] = None) -> Dict[str, Any]:
        if provider_id not in SUPPORTED_PROVIDERS:
            return {"ok": False, "error": f"Unsupported provider: {provider_id}"}

        def apply(cfg: Config):
            credential = cfg.providers.setdefault(provider_id, ProviderCredential(provider_id))
            credential.api_key = (api_key or "").strip()
            if model:
                credential.model_override = model

        self.store.mutate(apply)
        logging.info(f'Saved API key for {provider_id}')
        return {"ok": True}

    def set_active_provider(self, provider_id: str) -> Dict[str, Any]:
        if provider_id not in SUPPORTED_PROVIDERS:
            return {"ok": False, "error": f"Unsupported provider: {provider_id}"}
        self.store.mutate(lambda cfg: setattr(cfg, "active_provider_id", provider_id))
        return {"ok": True}

    def set_theme(self, theme: str) -> Dict[str, Any]:
        config = self.store.mutate(lambda cfg: setattr(cfg, "theme", str(theme or DEFAULT_THEME)))
        return {"ok": True, "theme": config.theme}

    def set_markdown_mode(self, mode: str) -> Dict[str, Any]:
        mode = mode if mode in MARKDOWN_MODES else "full"
        config = self.store.mutate(lambda cfg: setattr(cfg, "markdown_mode", mode))
        return {"ok": True, "mode": config.markdown_mode}

    def set_markdown_enabled(self, enabled) -> Dict[str, Any]:
        """Older UIs only know an on/off switch."""
        return self.set_markdown_mode("full" if enabled else "off")

    def set_auto_hide_ms(self, ms) -> Dict[str, Any]:
        value = clamp_auto_hide_ms(_coerce_int(ms, 0))
        config = self.store.mutate(lambda cfg: setattr(cfg, "auto_hide_ms", value))
        return {"ok": True, "ms": config.auto_hide_ms}

    def set_unlimited_input(self, enabled) -> Dict[str, Any]:
        self.store.mutate(lambda cfg: setattr(cfg, "unlimited_input", bool(enabled)))
        return {"ok": True}

    def set_max_input_chars(self, chars) -> Dict[str, Any]:
        value = _clamp(_coerce_int(chars, MAX_TEXT_LEN), MIN_INPUT_CHARS, MAX_INPUT_CHARS)
        self.store.mutate(lambda cfg: setattr(cfg, "max_input_chars", value))
        return {"ok": True, "chars": value}

    def set_max_output_tokens(self, tokens) -> Dict[str, Any]:
        value = _clamp(_coerce_int(tokens, DEFAULT_MAX_OUTPUT_TOKENS), MIN_OUTPUT_TOKENS, MAX_OUTPUT_TOKENS)
        self.store.mutate(lambda cfg: setattr(cfg, "max_output_tokens", value))
        return {"ok": True, "tokens": value}

    def set_summary_presets(self, presets) -> Dict[str, Any]:
        """
        Replace the preset list.

        The default preset is kept (re-added in front when missing) and the
        list is capped at MAX_PRESETS. Accelerator conflicts are reported,
        not rejected; the first preset using an accelerator keeps it.
        """
        normalized = [normalize_preset(p) for p in (presets or [])[:MAX_PRESETS] if isinstance(p, dict)]
        if not any(p.is_default for p in normalized):
            normalized = [self.store.load().default_preset()] + normalized[:MAX_PRESETS - 1]

        self.store.mutate(lambda cfg: setattr(cfg, "presets", normalized))
        conflicts = self.register_hotkeys()
        return {"ok": True, "conflicts": conflicts}

    def get_summary_presets(self) -> Dict[str, Any]:
        return {"presets": [p.to_dict() for p in self.store.load().presets]}

    def mark_onboarded(self) -> Dict[str, Any]:
        self.store.mutate(lambda cfg: setattr(cfg, "onboarded", True))
        return {"ok": True}

    def reset_config(self) -> Dict[str, Any]:
        """Delete the settings file; everything goes back to defaults."""
        config = self.store.reset()
        self.register_hotkeys()
        logging.info('Configuration reset to defaults')
        return {"ok": True, "config": config.to_dict()}

    def reset_preferences(self) -> Dict[str, Any]:
        """Reset preferences but keep API keys, the active provider and presets."""

        def apply(cfg: Config):
            cfg.theme = DEFAULT_THEME
            cfg.auto_hide_ms = 0
            cfg.markdown_mode = "full"
            cfg.auto_copy_selection = True
            cfg.unlimited_input = False
            cfg.max_input_chars = MAX_TEXT_LEN
            cfg.max_output_tokens = DEFAULT_MAX_OUTPUT_TOKENS
            cfg.text_appearance = dict(DEFAULT_TEXT_APPEARANCE)

        config = self.store.mutate(apply)
        self.register_hotkeys()
        return {"ok": True, "config": config.to_dict()}

    # ── Document sessions ────────────────────────────────────────────────

    def get_document_sessions(self) -> Dict[str, Any]:
        config = self.store.load()
        return {"sessions": list(config.document_sessions), "activeSession": config.active_document_session}

    def set_document_sessions(self, sessions) -> Dict[str, Any]:
        if not isinstance(sessions, list):
            return {"ok": False, "error": "sessions must be a list"}
        cleaned = [s for s in sessions if isinstance(s, dict)]
        self.store.mutate(lambda cfg: setattr(cfg, "document_sessions", cleaned))
        return {"ok": True}

    def set_active_document_session(self, session: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Activate a session block, or clear it with None."""
        session = session if isinstance(session, dict) and session else None
        self.store.mutate(lambda cfg: setattr(cfg, "active_document_session", session))
        return {"ok": True}

    def activate_document_session(self, session_id: str) -> Dict[str, Any]:
        for session in self.store.load().document_sessions:
            if session.get("id") == session_id:
                return self.set_active_document_session(dict(session))
        return {"ok": False, "error": f"Unknown document session: {session_id}"}

    def set_text_appearance(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        def apply(cfg: Config):
            appearance = dict(cfg.text_appearance or {})
            appearance.update(settings or {})
            cfg.text_appearance = appearance

        config = self.store.mutate(apply)
        return {"ok": True, "textAppearance": config.text_appearance}

    # ── Window commands ──────────────────────────────────────────────────

    def hide_window(self) -> Dict[str, Any]:
        self.lifecycle.request_hide()
        return {"ok": True}

    def hide_after_fade(self) -> Dict[str, Any]:
        self.lifecycle.finalize_hide()
        return {"ok": True}

    def force_hide_now(self) -> Dict[str, Any]:
        self.lifecycle.finalize_hide(force=True)
        return {"ok": True}

    def auto_hide_hover(self, state: str) -> Dict[str, Any]:
        if state not in ("enter", "leave"):
            return {"ok": False, "error": f"Unknown hover state: {state}"}
        self.lifecycle.hover(state == "enter")
        return {"ok": True}

    def resize(self, width, height) -> Dict[str, Any]:
        self.lifecycle.resize(round(float(width)), round(float(height)))
        return {"ok": True}

    def list_models(self, provider_id: Optional[str] = None) -> List[str]:
        config = self.store.load()
        provider_id = provider_id or config.active_provider_id or DEFAULT_PROVIDER
        return self.gateway.list_models(provider_id, config.credential(provider_id).api_key)

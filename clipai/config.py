#!/usr/bin/env python3
"""
Configuration loading, migration and persistence

The settings live in a single JSON document. It is loaded lazily, cached in
memory and only ever changed through ConfigStore.mutate(), which rewrites the
whole file and reloads it so that migration rules apply to every write too.
"""

import copy
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .providers.catalog import PROVIDER_DEFAULT_MODELS, SUPPORTED_PROVIDERS

# Configuration file paths
CONFIG_DIR = Path.home() / ".clipai"
CONFIG_FILE = CONFIG_DIR / "config.json"

MAX_TEXT_LEN = 25000  # char limit when unlimited input is off
MAX_PRESETS = 10
AUTO_HIDE_MAX_MS = 30000
DEFAULT_MAX_OUTPUT_TOKENS = 800
DEFAULT_THEME = "light"
DEFAULT_PROVIDER = "gemini"
DEFAULT_SUMMARIZE_HOTKEY = "CommandOrControl+Shift+Space"
DEFAULT_SUMMARY_PROMPT = (
    "Summarize in ≤3 concise sentences. "
    "Use Markdown formatting (headers, bold, italic, lists)"
)
MARKDOWN_MODES = ("off", "light", "full")

# Providers that were removed; configs pointing at them are moved over
DEPRECATED_PROVIDERS = {
    "mistral": "openai",
    "cohere": "openai",
}

DEFAULT_TEXT_APPEARANCE = {
    "fontFamily": "system-ui",
    "fontSize": 16,
    "lineHeight": 1.34,
    "letterSpacing": 0,
}

# Observer events emitted by mutate() when the related value changes
EVENT_THEME = "theme-changed"
EVENT_MARKDOWN_MODE = "markdown-mode-changed"
EVENT_AUTO_HIDE_MS = "auto-hide-ms-changed"
EVENT_TEXT_APPEARANCE = "text-appearance-changed"

_OBSERVED_FIELDS = {
    EVENT_THEME: "theme",
    EVENT_MARKDOWN_MODE: "markdown_mode",
    EVENT_AUTO_HIDE_MS: "auto_hide_ms",
    EVENT_TEXT_APPEARANCE: "text_appearance",
}

# Document keys owned by the Config dataclass; everything else goes to extra
_KNOWN_KEYS = (
    "providers", "activeProviderId", "theme", "markdownMode", "autoHideMs",
    "autoCopySelection", "unlimitedInput", "maxInputChars", "maxOutputTokens",
    "hotkeys", "presets", "activeDocumentSession", "onboarded",
    "documentSessions", "textAppearance",
)

ConfigObserver = Callable[[str, Any], None]


def new_preset_id() -> str:
    return f"p_{uuid.uuid4().hex[:10]}"


@dataclass
class ProviderCredential:
    """API key and model chosen for one provider"""
    provider_id: str
    api_key: str = ""
    model_override: str = ""

    @property
    def has_key(self) -> bool:
        return bool(self.api_key)

    def to_dict(self) -> Dict[str, Any]:
        return {"apiKey": self.api_key, "model": self.model_override}


@dataclass
class Preset:
    """A named prompt that can be bound to its own accelerator"""
    id: str
    name: str
    prompt_text: str
    accelerator: str = ""
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Preset":
        # "prompt" and "hotkey" are the key names used by older releases
        prompt = data.get("promptText", data.get("prompt"))
        accelerator = data.get("accelerator", data.get("hotkey"))
        return cls(
            id=str(data.get("id") or new_preset_id()),
            name=str(data.get("name") or "Preset"),
            prompt_text=str(prompt or DEFAULT_SUMMARY_PROMPT),
            accelerator=str(accelerator or ""),
            is_default=data.get("isDefault") is True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "promptText": self.prompt_text,
            "accelerator": self.accelerator,
            "isDefault": self.is_default,
        }


def make_default_preset(accelerator: str = DEFAULT_SUMMARIZE_HOTKEY) -> Preset:
    return Preset(
        id="default",
        name="Summary",
        prompt_text=DEFAULT_SUMMARY_PROMPT,
        accelerator=accelerator,
        is_default=True,
    )


@dataclass
class Config:
    """The whole settings document"""
    providers: Dict[str, ProviderCredential] = field(default_factory=dict)
    active_provider_id: str = DEFAULT_PROVIDER
    theme: str = DEFAULT_THEME
    markdown_mode: str = "full"
    auto_hide_ms: int = 0
    auto_copy_selection: bool = True
    unlimited_input: bool = False
    max_input_chars: int = MAX_TEXT_LEN
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    hotkeys: Dict[str, str] = field(default_factory=lambda: {"summarize": DEFAULT_SUMMARIZE_HOTKEY})
    presets: List[Preset] = field(default_factory=list)
    active_document_session: Optional[Dict[str, Any]] = None
    onboarded: bool = False
    document_sessions: List[Dict[str, Any]] = field(default_factory=list)
    text_appearance: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_TEXT_APPEARANCE))
    # Unknown document fields, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    def credential(self, provider_id: str) -> ProviderCredential:
        return self.providers.get(provider_id) or ProviderCredential(provider_id)

    def active_credential(self) -> ProviderCredential:
        return self.credential(self.active_provider_id)

    def default_preset(self) -> Preset:
        for preset in self.presets:
            if preset.is_default:
                return preset
        return make_default_preset(self.hotkeys.get("summarize", DEFAULT_SUMMARIZE_HOTKEY))

    def find_preset(self, preset_id: str) -> Optional[Preset]:
        for preset in self.presets:
            if preset.id == preset_id:
                return preset
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "providers": {pid: cred.to_dict() for pid, cred in self.providers.items()},
            "activeProviderId": self.active_provider_id,
            "theme": self.theme,
            "markdownMode": self.markdown_mode,
            "autoHideMs": self.auto_hide_ms,
            "autoCopySelection": self.auto_copy_selection,
            "unlimitedInput": self.unlimited_input,
            "maxInputChars": self.max_input_chars,
            "maxOutputTokens": self.max_output_tokens,
            "hotkeys": dict(self.hotkeys),
            "presets": [p.to_dict() for p in self.presets],
            "activeDocumentSession": self.active_document_session,
            "onboarded": self.onboarded,
            "documentSessions": list(self.document_sessions),
            "textAppearance": dict(self.text_appearance),
        })
        return data


# ─── Migration ────────────────────────────────────────────────────────────────

def clamp_auto_hide_ms(value) -> int:
    """Coerce to an int in [0, AUTO_HIDE_MAX_MS]; anything non-numeric is 0"""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        return 0
    if value in (float("inf"), float("-inf")):
        return AUTO_HIDE_MAX_MS if value > 0 else 0
    return min(AUTO_HIDE_MAX_MS, max(0, int(value)))


def _positive_int(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _migrate_providers(raw_providers) -> Dict[str, ProviderCredential]:
    providers = {}
    if isinstance(raw_providers, dict):
        for provider_id, entry in raw_providers.items():
            if not isinstance(entry, dict):
                entry = {}
            # "key" is the legacy name of apiKey
            api_key = entry.get("apiKey", entry.get("key")) or ""
            providers[provider_id] = ProviderCredential(
                provider_id=provider_id,
                api_key=str(api_key),
                model_override=str(entry.get("model") or ""),
            )
    for provider_id in SUPPORTED_PROVIDERS:
        cred = providers.setdefault(provider_id, ProviderCredential(provider_id))
        if not cred.model_override:
            cred.model_override = PROVIDER_DEFAULT_MODELS[provider_id]
    return providers


def _migrate_presets(raw_presets, summarize_hotkey: str) -> List[Preset]:
    presets = []
    if isinstance(raw_presets, list):
        presets = [Preset.from_dict(p) for p in raw_presets[:MAX_PRESETS] if isinstance(p, dict)]

    default = None
    for preset in presets:
        if preset.is_default and default is None:
            default = preset
        elif preset.is_default:
            preset.is_default = False

    if default is None:
        default = make_default_preset(summarize_hotkey)
    else:
        presets.remove(default)
    return [default] + presets[:MAX_PRESETS - 1]


def migrate(raw: Any) -> Config:
    """Build a Config from a raw document, applying defaults and migrations"""
    data = dict(raw) if isinstance(raw, dict) else {}

    # Key names used by older releases
    if "activeProviderId" not in data and "active" in data:
        data["activeProviderId"] = data.pop("active")
    if "presets" not in data and "summaryPresets" in data:
        data["presets"] = data.pop("summaryPresets")
    legacy_markdown = data.pop("markdownEnabled", None)

    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}

    active = data.get("activeProviderId") or DEFAULT_PROVIDER
    active = DEPRECATED_PROVIDERS.get(active, active)
    if active not in SUPPORTED_PROVIDERS:
        logging.warning(f'Unknown active provider "{active}", falling back to {DEFAULT_PROVIDER}')
        active = DEFAULT_PROVIDER

    markdown_mode = data.get("markdownMode")
    if not markdown_mode:
        if isinstance(legacy_markdown, bool):
            markdown_mode = "full" if legacy_markdown else "off"
        else:
            markdown_mode = "full"
    if markdown_mode not in MARKDOWN_MODES:
        markdown_mode = "full"

    hotkeys = data.get("hotkeys")
    hotkeys = dict(hotkeys) if isinstance(hotkeys, dict) else {}
    hotkeys.setdefault("summarize", DEFAULT_SUMMARIZE_HOTKEY)

    session = data.get("activeDocumentSession")
    sessions = data.get("documentSessions")
    appearance = data.get("textAppearance")

    return Config(
        providers=_migrate_providers(data.get("providers")),
        active_provider_id=active,
        theme=str(data.get("theme") or DEFAULT_THEME),
        markdown_mode=markdown_mode,
        auto_hide_ms=clamp_auto_hide_ms(data.get("autoHideMs", 0)),
        auto_copy_selection=data.get("autoCopySelection") is not False,
        unlimited_input=bool(data.get("unlimitedInput", False)),
        max_input_chars=_positive_int(data.get("maxInputChars"), MAX_TEXT_LEN),
        max_output_tokens=_positive_int(data.get("maxOutputTokens"), DEFAULT_MAX_OUTPUT_TOKENS),
        hotkeys=hotkeys,
        presets=_migrate_presets(data.get("presets"), hotkeys["summarize"]),
        active_document_session=session if isinstance(session, dict) and session else None,
        onboarded=data.get("onboarded") is True,
        document_sessions=sessions if isinstance(sessions, list) else [],
        text_appearance=appearance if isinstance(appearance, dict) else dict(DEFAULT_TEXT_APPEARANCE),
        extra=extra,
    )


# ─── Store ────────────────────────────────────────────────────────────────────

class ConfigStore:
    """
    Process-wide settings store.

    load() serves the cached Config; treat it as read-only. All changes go
    through mutate(), which persists the whole document, drops the cache and
    returns a fresh reload.
    """

    def __init__(self, path=CONFIG_FILE):
        self.path = Path(path)
        self._cache: Optional[Config] = None
        self._lock = threading.RLock()
        self._observers: List[ConfigObserver] = []

    def subscribe(self, observer: ConfigObserver):
        """Register a callback receiving (event, value) on visible changes."""
        self._observers.append(observer)

    def unsubscribe(self, observer: ConfigObserver):
        if observer in self._observers:
            self._observers.remove(observer)

    def load(self) -> Config:
        with self._lock:
            if self._cache is None:
                self._cache = migrate(self._read_raw())
            return self._cache

    def invalidate(self):
        with self._lock:
            self._cache = None

    def mutate(self, fn: Callable[[Config], None]) -> Config:
        """Apply fn to a draft copy, persist it and return the reloaded config."""
        with self._lock:
            before = self.load()
            draft = copy.deepcopy(before)
            fn(draft)
            document = draft.to_dict()
            # Keep running on the in-memory document when the write fails
            self._cache = None if self._write(document) else migrate(document)
            fresh = self.load()
        self._notify(before, fresh)
        return fresh

    def reset(self) -> Config:
        """Delete the settings file and reload defaults."""
        with self._lock:
            before = self.load()
            try:
                if self.path.exists():
                    self.path.unlink()
            except OSError as e:
                logging.error(f'Failed to delete config file {self.path}: {e}')
            self._cache = None
            fresh = self.load()
        self._notify(before, fresh, force=True)
        return fresh

    def _read_raw(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f'Config file {self.path} is unreadable, using defaults: {e}')
            return {}
        if not isinstance(raw, dict):
            logging.warning(f'Config file {self.path} is not a JSON object, using defaults')
            return {}
        return raw

    def _write(self, document: Dict[str, Any]) -> bool:
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.path)
            logging.debug(f'Saved config to {self.path}')
            return True
        except OSError as e:
            logging.error(f'Failed to save config file {self.path}: {e}')
            return False

    def _notify(self, before: Config, after: Config, force: bool = False):
        for event, attr in _OBSERVED_FIELDS.items():
            value = getattr(after, attr)
            if not force and getattr(before, attr) == value:
                continue
            for observer in list(self._observers):
                try:
                    observer(event, value)
                except Exception:
                    logging.exception(f'Config observer failed on {event}')

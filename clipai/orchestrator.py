#!/usr/bin/env python3
"""
Summary orchestration: capture → budget → provider → popup
"""

import hashlib
import logging
import math
import threading
from typing import Any, Dict, Optional

from .config import DEFAULT_SUMMARY_PROMPT, MAX_TEXT_LEN, Config, ConfigStore, Preset
from .lifecycle import PopupLifecycle, TriggerDecision
from .providers import ProviderError, ProviderGateway
from .selection import SelectionCapture
from .surface import SUMMARY_RESULT

NO_KEY_MESSAGE = "No API key. Go to Preferences → fill in API key for your provider."
NO_SELECTION = "(No selection)"
WORKING_MESSAGE = "Working…"
PREVIEW_CHARS = 160
NOTES_LIMIT = 200
MIN_UNLIMITED_CHARS = 5000
CHARS_PER_TOKEN = 4
SAFETY_MARGIN = 0.1

DOCUMENT_EMOJI = {
    "book": "📚",
    "paper": "📄",
    "thesis": "🎓",
    "report": "📊",
    "article": "📰",
}


def fingerprint(text: str, preset_id: Optional[str]) -> str:
    """Identity of a request for the repeat-trigger toggle."""
    return hashlib.sha1(f"{text}|{preset_id or 'default'}".encode("utf-8")).hexdigest()


def document_context_block(session: Optional[Dict[str, Any]]) -> str:
    if not session:
        return ""
    emoji = DOCUMENT_EMOJI.get(session.get("type"), DOCUMENT_EMOJI["paper"])
    parts = [f'Document: {emoji} "{session.get("title", "")}"']
    if session.get("author"):
        parts.append(f"Author: {session['author']}")
    if session.get("notes"):
        parts.append(f"Context: {session['notes'][:NOTES_LIMIT]}")
    return (
        f"\n\nDOCUMENT CONTEXT: {' | '.join(parts)}"
        "\n\nPlease consider this document context when summarizing and "
        "explain how this section relates to the broader work."
    )


def build_prompt(preset: Optional[Preset], session: Optional[Dict[str, Any]] = None) -> str:
    prompt = (preset.prompt_text if preset else "") or DEFAULT_SUMMARY_PROMPT
    return prompt + document_context_block(session)


def compute_max_input_length(config: Config, prompt: str, model_limit: Optional[int]) -> int:
    """
    Character ceiling for the captured text.

    With unlimited input, the ceiling is what is left of the model's context
    window after the prompt, the reserved output tokens and a 10% margin,
    at roughly four characters per token.
    """
    if not config.unlimited_input:
        return config.max_input_chars
    if not model_limit:
        return MAX_TEXT_LEN
    prompt_tokens = math.ceil(len(prompt) / CHARS_PER_TOKEN)
    available = model_limit - prompt_tokens - config.max_output_tokens - SAFETY_MARGIN * model_limit
    return max(MIN_UNLIMITED_CHARS, math.floor(CHARS_PER_TOKEN * available))


def truncation_reason(config: Config) -> str:
    if config.unlimited_input:
        return "model context limit"
    if config.active_document_session:
        return "document context"
    return "safety limit"


class SummaryOrchestrator:
    """Runs one summary per trigger against the active provider."""

    def __init__(
        self,
        store: ConfigStore,
        gateway: ProviderGateway,
        capture: SelectionCapture,
        lifecycle: PopupLifecycle
    ):
        self.store = store
        self.gateway = gateway
        self.capture = capture
        self.lifecycle = lifecycle

    def run_summary(self, preset: Optional[Preset] = None) -> Optional[Dict[str, Any]]:
        """
        Summarize the current selection with a preset.

        Returns:
            The last payload pushed to the popup, or None when the trigger
            toggled the popup off or was ignored
        """
        config = self.store.load()
        preset = preset or config.default_preset()
        credential = config.active_credential()

        if not credential.has_key:
            logging.warning(f'No API key for provider "{config.active_provider_id}"')
            self.lifecycle.show_near_pointer()
            return self._push({"summary": NO_KEY_MESSAGE, "inputPreview": ""})

        selection = self.capture.capture() or NO_SELECTION
        decision = self.lifecycle.on_trigger(fingerprint(selection, preset.id))
        if decision is not TriggerDecision.RUN:
            logging.debug(f'Trigger for preset "{preset.id}": {decision.value}')
            return None

        try:
            return self._run(config, preset, credential.api_key, credential.model_override, selection)
        finally:
            self.lifecycle.finish_request()

    def run_preset(self, preset_id: str) -> Optional[Dict[str, Any]]:
        preset = self.store.load().find_preset(preset_id)
        if preset is None:
            logging.warning(f'Unknown preset "{preset_id}", using the default preset')
        return self.run_summary(preset)

    def summarize_selection(self) -> Optional[Dict[str, Any]]:
        """Run the first preset (the default one)."""
        presets = self.store.load().presets
        return self.run_summary(presets[0] if presets else None)

    def trigger_async(self, preset: Optional[Preset] = None) -> threading.Thread:
        """Run a summary on a new worker thread."""
        thread = threading.Thread(target=self.run_logged, args=(preset,), daemon=True, name="clipai-summary")
        thread.start()
        return thread

    def run_logged(self, preset: Optional[Preset] = None):
        """Run a summary on the calling thread; failures are logged, not raised."""
        try:
            self.run_summary(preset)
        except Exception:
            logging.exception('Summary run failed')

    def _run(self, config: Config, preset: Preset, api_key: str, model: str, selection: str) -> Dict[str, Any]:
        provider_id = config.active_provider_id
        self._push({"summary": WORKING_MESSAGE, "inputPreview": selection[:PREVIEW_CHARS]})

        prompt = build_prompt(preset, config.active_document_session)
        ceiling = compute_max_input_length(config, prompt, self.gateway.context_limit(provider_id, model))
        text = selection[:ceiling]
        if len(selection) > ceiling:
            dropped = len(selection) - ceiling
            reason = truncation_reason(config)
            logging.info(f'Input truncated by {dropped} chars ({reason})')
            self._push({
                "summary": f"{WORKING_MESSAGE} (Text truncated by {dropped} chars due to {reason})",
                "inputPreview": text[:PREVIEW_CHARS],
            })

        try:
            summary = self.gateway.complete(
                provider_id, api_key, model, prompt, text, max_output_tokens=config.max_output_tokens
            )
        except ProviderError as e:
            logging.error(f'Summary with {provider_id} failed: {e}')
            return self._push({"error": str(e)})
        except Exception as e:
            logging.exception(f'Unexpected failure in summary with {provider_id}')
            return self._push({"error": str(e) or type(e).__name__})
        return self._push({"summary": summary, "fullText": selection})

    def _push(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        surface = self.lifecycle.surface
        if surface.is_alive():
            try:
                surface.send(SUMMARY_RESULT, payload)
            except Exception as e:
                logging.debug(f'Popup is gone, dropping result: {e}')
            self.lifecycle.content_updated()
        return payload

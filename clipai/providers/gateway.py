"""
Provider Gateway

Single entry point for completions and model listings. Adapters are picked
from a lookup table keyed by provider id.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .anthropic import AnthropicProvider
from .base import BaseProvider, CompletionRequest, MissingCredentialError, ProviderError, UnsupportedProviderError
from .catalog import context_limit, default_model, filter_models
from .gemini import GeminiProvider
from .openai_compatible import grok_provider, groq_provider, openai_provider

MODEL_CACHE_TTL = 10 * 60  # seconds


def build_providers(timeout: Optional[float] = None) -> Dict[str, BaseProvider]:
    """One adapter instance per supported provider id"""
    return {
        "openai": openai_provider(timeout),
        "groq": groq_provider(timeout),
        "grok": grok_provider(timeout),
        "anthropic": AnthropicProvider(timeout),
        "gemini": GeminiProvider(timeout),
    }


@dataclass
class ModelListCacheEntry:
    timestamp: float
    models: List[str]


class ProviderGateway:
    """
    Uniform request/response contract over the provider adapters.

    Every completion is exactly one HTTP request: no retries, no streaming.
    Callers decide what to do with the raised ProviderError.
    """

    def __init__(
        self,
        providers: Optional[Dict[str, BaseProvider]] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.providers = providers if providers is not None else build_providers(timeout)
        self.clock = clock
        self._model_cache: Dict[str, ModelListCacheEntry] = {}
        self._cache_lock = threading.Lock()

    def get_provider(self, provider_id: str) -> BaseProvider:
        provider = self.providers.get(provider_id)
        if provider is None:
            raise UnsupportedProviderError(provider_id)
        return provider

    def complete(
        self,
        provider_id: str,
        api_key: str,
        model: Optional[str],
        system_prompt: str,
        user_text: str,
        max_output_tokens: int = 800
    ) -> str:
        """
        Run one chat completion and return the answer text.

        Raises:
            UnsupportedProviderError, MissingCredentialError,
            ProviderHTTPError, ProviderTransportError
        """
        provider = self.get_provider(provider_id)
        if not api_key:
            raise MissingCredentialError(provider_id)
        request = CompletionRequest(
            model=model or default_model(provider_id),
            system_prompt=system_prompt,
            user_text=user_text,
            max_output_tokens=max_output_tokens,
        )
        return provider.complete(api_key, request)

    def list_models(self, provider_id: str, api_key: Optional[str] = None) -> List[str]:
        """
        Filtered model ids for a provider, cached for MODEL_CACHE_TTL.

        Never raises for provider failures: a missing key or a failed call
        yields the provider's default model.
        """
        provider = self.providers.get(provider_id)
        if provider is None:
            return []

        cache_key = f"{provider_id}|{(api_key or '')[:8]}"
        now = self.clock()
        with self._cache_lock:
            entry = self._model_cache.get(cache_key)
            if entry and now - entry.timestamp < MODEL_CACHE_TTL:
                return list(entry.models)

        fallback = [m for m in [default_model(provider_id)] if m]
        static = provider.static_models()
        if static:
            models = static
        elif not api_key:
            models = fallback
        else:
            try:
                models = filter_models(provider.fetch_models(api_key)) or fallback
            except ProviderError as e:
                logging.warning(f'Listing {provider_id} models failed: {e}')
                models = fallback

        with self._cache_lock:
            self._model_cache[cache_key] = ModelListCacheEntry(timestamp=now, models=list(models))
        return list(models)

    def clear_model_cache(self):
        with self._cache_lock:
            self._model_cache.clear()

    def context_limit(self, provider_id: str, model: Optional[str] = None) -> Optional[int]:
        return context_limit(provider_id, model)

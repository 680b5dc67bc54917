"""
OpenAI-Compatible Provider

Supports:
- OpenAI (api.openai.com)
- Groq (api.groq.com/openai)
- Grok through OpenRouter (openrouter.ai), which takes an OpenRouter key
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from .base import BaseProvider, CompletionRequest

OPENAI_URL = "https://api.openai.com/v1"
GROQ_URL = "https://api.groq.com/openai/v1"
OPENROUTER_URL = "https://openrouter.ai/api/v1"


class OpenAICompatibleProvider(BaseProvider):
    """
    Provider for APIs that speak the OpenAI chat completions format.

    Request: POST {base_url}/chat/completions with bearer auth and a
    system + user message pair.
    Response: choices[0].message.content
    """

    def __init__(
        self,
        provider_id: str,
        name: str,
        base_url: str,
        model_pattern: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Args:
            provider_id: Config id of the provider
            name: Display name used in logs
            base_url: Base URL for the API (will be normalized)
            model_pattern: Optional regex a listed model id must match
            timeout: Request timeout in seconds
        """
        super().__init__(provider_id, name, timeout)
        self.base_url = self._normalize_url(base_url)
        self.model_re = re.compile(model_pattern, re.IGNORECASE) if model_pattern else None

    def _normalize_url(self, url: str) -> str:
        """Normalize the base URL - strip trailing slash and /chat/completions"""
        if not url:
            return ""
        url = url.strip().rstrip("/")
        if url.endswith("/chat/completions"):
            url = url[:-17]
        return url

    def _get_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json"
        }

    def build_request(self, api_key: str, request: CompletionRequest) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        body = {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_text},
            ],
            "temperature": request.temperature,
            "max_tokens": request.max_output_tokens,
        }
        return f"{self.base_url}/chat/completions", self._get_headers(api_key), body

    def extract_text(self, data: Dict[str, Any]) -> str:
        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        return message.get("content") or ""

    def models_request(self, api_key: str) -> Tuple[str, Dict[str, str]]:
        return f"{self.base_url}/models", {"Authorization": f"Bearer {api_key}"}

    def parse_model_ids(self, data: Dict[str, Any]) -> List[str]:
        # OpenAI format: { "data": [...] }
        ids = [m.get("id", "") for m in data.get("data") or []]
        if self.model_re:
            ids = [m for m in ids if self.model_re.search(m)]
        return ids


def openai_provider(timeout: Optional[float] = None) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider("openai", "OpenAI", OPENAI_URL, timeout=timeout)


def groq_provider(timeout: Optional[float] = None) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider("groq", "Groq", GROQ_URL, timeout=timeout)


def grok_provider(timeout: Optional[float] = None) -> OpenAICompatibleProvider:
    # OpenRouter lists every vendor; only Grok models belong to this provider
    return OpenAICompatibleProvider("grok", "Grok/OpenRouter", OPENROUTER_URL, model_pattern="grok", timeout=timeout)

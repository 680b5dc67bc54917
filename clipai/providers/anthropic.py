"""
Anthropic Messages API Provider
"""

from typing import Any, Dict, List, Optional, Tuple

from .base import BaseProvider, CompletionRequest
from .catalog import ANTHROPIC_MODELS

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(BaseProvider):
    """
    Provider for the Anthropic Messages API.

    The system prompt is a top-level field rather than a message, auth uses
    the x-api-key header and every call carries an API version header.
    Response text is content[0].text.
    """

    def __init__(self, timeout: Optional[float] = None):
        super().__init__("anthropic", "Anthropic", timeout)

    def build_request(self, api_key: str, request: CompletionRequest) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        body = {
            "model": request.model,
            "system": request.system_prompt,
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.user_text}],
        }
        return ANTHROPIC_URL, headers, body

    def extract_text(self, data: Dict[str, Any]) -> str:
        content = data.get("content") or []
        if not content:
            return ""
        return content[0].get("text") or ""

    def static_models(self) -> List[str]:
        return list(ANTHROPIC_MODELS)

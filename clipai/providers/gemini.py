"""
Native Gemini API Provider

Uses the generateContent endpoint with the key passed as a query
parameter. The system prompt is folded into the single user turn.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from .base import BaseProvider, CompletionRequest

# Base URL for Gemini API
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(BaseProvider):
    """
    Provider for the native Gemini API (camelCase payloads).

    Response text is the concatenation of candidates[0].content.parts[*].text.
    """

    def __init__(self, timeout: Optional[float] = None):
        super().__init__("gemini", "Gemini", timeout)

    @staticmethod
    def _model_path(model: str) -> str:
        if model.startswith("models/"):
            model = model[len("models/"):]
        if model.endswith(":generateContent"):
            model = model[:-len(":generateContent")]
        return quote(model, safe="")

    def build_request(self, api_key: str, request: CompletionRequest) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        url = f"{GEMINI_BASE_URL}/models/{self._model_path(request.model)}:generateContent?key={api_key}"
        body = {
            "contents": [{
                "role": "user",
                "parts": [{"text": f"{request.system_prompt}\n\nINPUT:\n{request.user_text}"}]
            }],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_output_tokens,
            },
        }
        return url, {"Content-Type": "application/json"}, body

    def extract_text(self, data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "\n".join(part.get("text", "") for part in parts)

    def models_request(self, api_key: str) -> Tuple[str, Dict[str, str]]:
        return f"{GEMINI_BASE_URL}/models?key={api_key}&pageSize=1000", {}

    def parse_model_ids(self, data: Dict[str, Any]) -> List[str]:
        ids = []
        for model in data.get("models") or []:
            name = model.get("name", "")
            # Extract model ID from "models/gemini-2.0-flash" format
            ids.append(name[len("models/"):] if name.startswith("models/") else name)
        return ids

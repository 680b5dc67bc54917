"""
Static provider knowledge: default models, context windows and model filters
"""

import re
from typing import Iterable, List, Optional

SUPPORTED_PROVIDERS = ("openai", "anthropic", "gemini", "groq", "grok")

# Fallbacks when the user leaves the model blank
PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-5-mini",
    "groq": "llama-3.1-70b-versatile",
    "gemini": "gemini-2.5-flash-lite",
    "anthropic": "claude-3",
    "grok": "grok-4",
}

# Context window in tokens
MODEL_CONTEXT_LIMITS = {
    # OpenAI
    "gpt-5": 400000,
    "gpt-5-mini": 400000,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4-turbo": 128000,
    "gpt-4": 8192,
    "gpt-3.5-turbo": 16385,
    # Groq
    "llama-3.1-70b-versatile": 131072,
    "llama-3.1-8b-instant": 131072,
    "mixtral-8x7b-32768": 32768,
    "gemma-7b-it": 8192,
    # Gemini
    "gemini-2.5-pro": 1048576,
    "gemini-2.5-flash": 1048576,
    "gemini-2.5-flash-lite": 1048576,
    "gemini-1.5-pro": 2000000,
    "gemini-1.5-flash": 1000000,
    "gemini-pro": 32768,
    # Anthropic
    "claude-3-5-sonnet-20241022": 200000,
    "claude-3-opus-20240229": 200000,
    "claude-3-sonnet-20240229": 200000,
    "claude-3-haiku-20240307": 200000,
    # Grok
    "grok-4": 256000,
}

# Anthropic has no listing call we use; offer a fixed set
ANTHROPIC_MODELS = ["claude-3", "claude-instant", "claude-classic"]

MODEL_LIST_CAP = 150
MODEL_ALLOW_RE = re.compile(r"(gpt-5|gpt-4|grok|llama|gemini|claude)", re.IGNORECASE)
MODEL_DENY_RE = re.compile(r"(embed|embedding|moderation|audio|image|vision|whisper)", re.IGNORECASE)


def default_model(provider_id: str) -> str:
    return PROVIDER_DEFAULT_MODELS.get(provider_id, "")


def context_limit(provider_id: str, model: Optional[str] = None) -> Optional[int]:
    """Known context window for a model (or the provider default), else None"""
    name = model or default_model(provider_id)
    if name.startswith("models/"):
        name = name[len("models/"):]
    return MODEL_CONTEXT_LIMITS.get(name)


def filter_models(raw_ids: Iterable[str], cap: int = MODEL_LIST_CAP) -> List[str]:
    """
    Keep chat-capable model ids.

    Ids must match the family allow-list and not the deny-list. When nothing
    passes the allow-list the raw list is kept. The result is de-duplicated
    in order and capped.
    """
    raw = [m for m in raw_ids if m]
    filtered = [m for m in raw if MODEL_ALLOW_RE.search(m) and not MODEL_DENY_RE.search(m)]
    if not filtered:
        filtered = raw

    seen = set()
    result = []
    for model_id in filtered:
        if model_id in seen:
            continue
        seen.add(model_id)
        result.append(model_id)
        if len(result) >= cap:
            break
    return result

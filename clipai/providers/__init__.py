"""
API Providers Module

This module provides a unified interface for the supported chat providers:
- OpenAICompatibleProvider: OpenAI, Groq and Grok (through OpenRouter)
- AnthropicProvider: Anthropic Messages API
- GeminiProvider: native Gemini generateContent API
"""

from .base import (
    BaseProvider,
    CompletionRequest,
    MissingCredentialError,
    ProviderError,
    ProviderHTTPError,
    ProviderTransportError,
    UnsupportedProviderError,
)
from .openai_compatible import OpenAICompatibleProvider
from .anthropic import AnthropicProvider
from .gemini import GeminiProvider
from .gateway import ProviderGateway, build_providers

__all__ = [
    'BaseProvider',
    'CompletionRequest',
    'MissingCredentialError',
    'ProviderError',
    'ProviderHTTPError',
    'ProviderTransportError',
    'UnsupportedProviderError',
    'OpenAICompatibleProvider',
    'AnthropicProvider',
    'GeminiProvider',
    'ProviderGateway',
    'build_providers',
]

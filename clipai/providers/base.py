"""
Base Provider Abstract Class

Every provider adapter turns one internal CompletionRequest into its own
HTTP payload and pulls the answer text out of its own response shape. The
request itself (single POST, no retries, no streaming) and the error
mapping are shared here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from rich.markup import escape

from clipai.console import console


class ProviderError(Exception):
    """Base class for everything a provider call can fail with"""


class MissingCredentialError(ProviderError):
    def __init__(self, provider_id: str):
        super().__init__("Missing API key")
        self.provider_id = provider_id


class UnsupportedProviderError(ProviderError):
    def __init__(self, provider_id: str):
        super().__init__(f"Unsupported provider: {provider_id}")
        self.provider_id = provider_id


class ProviderHTTPError(ProviderError):
    """Non-success HTTP status; the message carries status and a body excerpt"""

    BODY_LIMIT = 160

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = (body or "")[:self.BODY_LIMIT]
        super().__init__(f"HTTP {status_code}: {self.body}")


class ProviderTransportError(ProviderError):
    """Network failure or an unparseable response"""


@dataclass
class CompletionRequest:
    """Provider-independent shape of one summary request"""
    model: str
    system_prompt: str
    user_text: str
    max_output_tokens: int = 800
    temperature: float = 0.4


class BaseProvider(ABC):
    """
    Abstract chat-completion adapter.

    Subclasses implement build_request() and extract_text(); model listing
    is optional (models_request() returning None means "no listing call").
    """

    DEFAULT_TIMEOUT = 60  # seconds

    def __init__(self, provider_id: str, name: str, timeout: Optional[float] = None):
        self.provider_id = provider_id
        self.name = name
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @abstractmethod
    def build_request(self, api_key: str, request: CompletionRequest) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """
        Build the HTTP call for a completion.

        Returns:
            Tuple of (url, headers, json_body)
        """
        raise NotImplementedError

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the answer text out of a decoded response body."""
        raise NotImplementedError

    def models_request(self, api_key: str) -> Optional[Tuple[str, Dict[str, str]]]:
        """(url, headers) for the model listing call, or None if there is none."""
        return None

    def parse_model_ids(self, data: Dict[str, Any]) -> List[str]:
        return []

    def static_models(self) -> List[str]:
        """Models offered when the provider has no listing call."""
        return []

    def complete(self, api_key: str, request: CompletionRequest) -> str:
        """
        Run one non-streaming completion.

        Raises:
            MissingCredentialError: no key, checked before any network call
            ProviderHTTPError: non-2xx status
            ProviderTransportError: network failure or malformed response
        """
        if not api_key:
            raise MissingCredentialError(self.provider_id)

        url, headers, body = self.build_request(api_key, request)
        self.log("info", f"Request to {request.model}", chars=len(request.user_text))

        data = self._send("POST", url, headers, body)
        try:
            text = self.extract_text(data) or ""
            if not isinstance(text, str):
                raise TypeError(f"answer is {type(text).__name__}, not text")
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            self.log_error(f"Unexpected response format: {e}")
            raise ProviderTransportError(f"Unexpected response format: {e}") from e

        self.log("info", "Request completed successfully")
        return text.strip()

    def fetch_models(self, api_key: str) -> List[str]:
        """Fetch raw model ids from the provider (unfiltered)."""
        if not api_key:
            raise MissingCredentialError(self.provider_id)
        target = self.models_request(api_key)
        if target is None:
            return self.static_models()
        url, headers = target
        data = self._send("GET", url, headers)
        try:
            return self.parse_model_ids(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise ProviderTransportError(f"Unexpected models response format: {e}") from e

    def _send(self, method: str, url: str, headers: Dict[str, str], body: Optional[Dict] = None) -> Any:
        try:
            response = requests.request(method, url, headers=headers, json=body, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            self.log_error(f"Request timeout after {self.timeout}s")
            raise ProviderTransportError(f"Request timeout after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            self.log_error(f"Network error: {e}")
            raise ProviderTransportError(f"Network error: {e}") from e

        if not 200 <= response.status_code < 300:
            error = ProviderHTTPError(response.status_code, response.text)
            self.log_error(f"API error: {error.body}", response.status_code)
            raise error

        try:
            return response.json()
        except ValueError as e:
            self.log_error(f"Invalid JSON response: {e}")
            raise ProviderTransportError(f"Invalid JSON response: {e}") from e

    def log(self, level: str, message: str, **kwargs):
        """
        Log a message with provider context.

        Args:
            level: Log level (info, warn, error, debug)
            message: Log message
            **kwargs: Additional context
        """
        prefix = f"[bold dim]{escape(f'[{self.name}]')}[/bold dim]"
        details = ""
        if kwargs:
            details = " (" + ", ".join(f"[cyan]{k}[/cyan]=[yellow]{v}[/yellow]" for k, v in kwargs.items()) + ")"

        style = "white"
        if level == "error": style = "red"
        elif level == "warn": style = "yellow"
        elif level == "debug": style = "dim"

        console.print(f"    {prefix} [{style}]{escape(message)}[/{style}]{details}")

    def log_error(self, message: str, status_code: int = 0):
        """Log error"""
        if status_code:
            self.log("error", f"{message} (status: {status_code})")
        else:
            self.log("error", message)


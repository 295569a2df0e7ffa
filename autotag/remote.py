"""
Remote keyword extraction through a text-completion service.

Works with OpenAI's legacy completions endpoint and any service that
accepts the same request body and returns ``choices[0].text``.

The module has two layers:
- ``CompletionClient`` talks HTTP and raises on failure.
- ``extract_remote`` and ``RemoteExtractor`` never raise: every failure is
  logged and reported as an empty tag list.
"""

import os
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

import requests

from .config import ExtractionConfig, ExtractionMethod
from .constants import (
    DEFAULT_COMPLETION_ENDPOINT,
    DEFAULT_COMPLETION_MAX_TOKENS,
    DEFAULT_COMPLETION_MODEL,
    DEFAULT_COMPLETION_TEMPERATURE,
    DEFAULT_REQUEST_TIMEOUT,
    KEYWORD_PROMPT,
)
from .plugins import TagExtractor, PluginMetadata, PluginPriority

logger = logging.getLogger(__name__)


class MalformedResponseError(ValueError):
    """Raised when a completion response lacks the expected text field."""
    pass


@dataclass
class CompletionConfig:
    """Settings for the completion service."""
    endpoint: str = DEFAULT_COMPLETION_ENDPOINT
    model: str = DEFAULT_COMPLETION_MODEL
    max_tokens: int = DEFAULT_COMPLETION_MAX_TOKENS
    temperature: float = DEFAULT_COMPLETION_TEMPERATURE
    timeout: float = float(DEFAULT_REQUEST_TIMEOUT)

    @classmethod
    def from_env(cls) -> 'CompletionConfig':
        """Create config from AUTOTAG_REMOTE_* environment variables."""
        return cls(
            endpoint=os.getenv("AUTOTAG_REMOTE_ENDPOINT", DEFAULT_COMPLETION_ENDPOINT),
            model=os.getenv("AUTOTAG_REMOTE_MODEL", DEFAULT_COMPLETION_MODEL),
            max_tokens=int(os.getenv("AUTOTAG_REMOTE_MAX_TOKENS", DEFAULT_COMPLETION_MAX_TOKENS)),
            temperature=float(os.getenv("AUTOTAG_REMOTE_TEMPERATURE", DEFAULT_COMPLETION_TEMPERATURE)),
            timeout=float(os.getenv("AUTOTAG_REMOTE_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)),
        )


def build_prompt(content: str) -> str:
    """Compose the keyword extraction prompt around the content."""
    return KEYWORD_PROMPT + content


def parse_keywords(text: str) -> List[str]:
    """
    Split a comma-separated completion into keywords.

    Pieces are trimmed and empty ones dropped. Order and duplicates are
    kept as the service returned them.
    """
    return [piece.strip() for piece in text.split(',') if piece.strip()]


class CompletionClient:
    """
    HTTP client for a completions endpoint.
    """

    def __init__(self, config: Optional[CompletionConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or CompletionConfig()
        self.session = session or requests.Session()
        self.session.headers["Content-Type"] = "application/json"

    def build_request(self, prompt: str) -> Dict[str, Any]:
        """Build the JSON request body."""
        return {
            "model": self.config.model,
            "prompt": prompt,
            "max_tokens": self.config.max_tokens,
            "n": 1,
            "stop": None,
            "temperature": self.config.temperature,
        }

    def complete(self, prompt: str, api_key: str) -> str:
        """
        Get the first completion for a prompt.

        Args:
            prompt: The prompt text
            api_key: Bearer credential

        Returns:
            Text of the first completion choice

        Raises:
            requests.RequestException: On transport errors, timeouts and
                non-2xx responses
            MalformedResponseError: If the body is not JSON or has no
                ``choices[0].text`` string
        """
        try:
            response = self.session.post(
                self.config.endpoint,
                json=self.build_request(prompt),
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=self.config.timeout
            )
            response.raise_for_status()
        except requests.exceptions.Timeout:
            logger.error(f"Completion request timed out after {self.config.timeout}s")
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"Completion request failed: {e}")
            raise

        try:
            result = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Completion response is not JSON: {e}") from e

        try:
            text = result["choices"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"Unexpected completion response format: {e!r}") from e

        if not isinstance(text, str):
            raise MalformedResponseError(
                f"Completion text is {type(text).__name__}, expected str"
            )
        return text


def extract_remote(content: str, credential: str,
                   client: Optional[CompletionClient] = None) -> List[str]:
    """
    Extract keywords for content through the completion service.

    Never raises for runtime failures: a missing credential, a transport
    error, a non-2xx status or an unparsable body all yield ``[]``.

    Args:
        content: Text to extract keywords from (sent verbatim)
        credential: API key; when empty no request is made
        client: Completion client to use (a default one is created if None)

    Returns:
        Keywords in the order the service returned them
    """
    if not credential:
        logger.debug("No API key configured, skipping remote extraction")
        return []

    client = client or CompletionClient()
    try:
        text = client.complete(build_prompt(content), credential)
    except requests.exceptions.RequestException:
        # already logged by the client
        return []
    except MalformedResponseError as e:
        logger.error(f"Remote extraction failed: {e}")
        return []

    return parse_keywords(text)


class RemoteExtractor(TagExtractor):
    """
    Tag extractor delegating to a remote completion service.

    Results are not ranked, filtered or de-duplicated.
    """

    def __init__(self, client: Optional[CompletionClient] = None):
        self.client = client or CompletionClient()
        self._metadata = PluginMetadata(
            name=ExtractionMethod.REMOTE.value,
            version="1.0.0",
            author="autotag",
            description=f"Keywords from completion model {self.client.config.model}",
            priority=PluginPriority.NORMAL.value
        )

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    @property
    def method(self) -> ExtractionMethod:
        return ExtractionMethod.REMOTE

    def extract(self, content: str, config: ExtractionConfig) -> List[str]:
        return extract_remote(content, config.api_key, client=self.client)

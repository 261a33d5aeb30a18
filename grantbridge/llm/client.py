"""
Client for the Perplexity Sonar chat completions API.

Sonar speaks the OpenAI chat completions protocol, so the OpenAI SDK is
pointed at the Sonar base URL. SDK retries are disabled: a failed call
surfaces immediately.

Environment:
    SONAR_API_KEY must be set before the first request

Usage:
    from grantbridge.llm.client import SonarClient

    client = SonarClient()
    text = client.complete([
        {"role": "user", "content": "List three STEM scholarships."}
    ])
"""

import logging
import os
from typing import Any, Dict, List, Optional

from openai import APIError, APIStatusError, OpenAI

from grantbridge.config import DEFAULT_SONAR_BASE_URL
from grantbridge.core.errors import ConfigurationError, UpstreamError


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sonar"


class SonarClient:
    """
    Thin wrapper around the chat completions endpoint.

    The underlying SDK client is created on first use so that a missing API
    key only fails the requests that need it.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_SONAR_BASE_URL,
        timeout: float = 60.0,
    ):
        """
        Args:
            api_key: Bearer token (default: SONAR_API_KEY env var)
            base_url: Completions API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key if api_key is not None else os.getenv("SONAR_API_KEY")
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

        logger.info(f"Sonar client configured: {self.base_url}")

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "SONAR_API_KEY environment variable not set. "
                    "Get your key from: https://www.perplexity.ai/settings/api"
                )
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(
        self,
        messages: List[Dict[str, str]],
        model: str = DEFAULT_MODEL,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with "role" and "content"
            model: Sonar model name ("sonar", "sonar-pro")
            max_tokens: Maximum tokens in the reply
            temperature: Sampling temperature
            response_format: Structured output hint passed through verbatim

        Returns:
            Reply content, stripped. Empty string when the reply has no content.

        Raises:
            ConfigurationError: If no API key is configured
            UpstreamError: If the API returns a non-OK status or is unreachable
        """
        params: Dict[str, Any] = {"model": model, "messages": messages}
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if temperature is not None:
            params["temperature"] = temperature
        if response_format is not None:
            params["response_format"] = response_format

        client = self._get_client()

        try:
            response = client.chat.completions.create(**params)
        except APIStatusError as e:
            logger.error(f"✗ Sonar API error ({e.status_code}): {e.message}")
            raise UpstreamError(f"Sonar API error: {e.status_code}") from e
        except APIError as e:
            logger.error(f"✗ Sonar API call failed: {e}")
            raise UpstreamError("Sonar API request failed") from e

        if not response.choices:
            logger.warning("Sonar returned no choices")
            return ""

        content = response.choices[0].message.content
        if content is None:
            logger.warning("Sonar returned None content")
            return ""

        return content.strip()

"""
Single-prompt text generation with Claude, shared by the comparison and
insights services. Both fall back to deterministic output when this raises.
"""
import logging
from typing import Optional, Any

import anthropic

from readymix.core.config import settings
from readymix.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class AITextClient:

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[Any] = None
    ):
        self.api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.timeout = timeout
        self.model = settings.CLAUDE_MODEL
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("AI service not configured")
            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def generate(self, prompt: str, max_tokens: int = 2000, temperature: float = 0.3) -> str:
        """
        Send one user prompt and return the concatenated text blocks

        Raises:
            ConfigurationError: No API key
            anthropic.APIError: Request failed or timed out
        """
        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        text = "".join(block.text for block in response.content if hasattr(block, "text"))
        logger.info(
            f"AI text generated ({response.usage.input_tokens}/{response.usage.output_tokens} tokens)"
        )
        return text


_client_instance: Optional[AITextClient] = None


def get_ai_text_client() -> AITextClient:
    global _client_instance
    if _client_instance is None:
        _client_instance = AITextClient()
    return _client_instance

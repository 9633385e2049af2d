"""OpenRouter provider using openai SDK (OpenAI-compatible API)."""

import logging
from collections.abc import Sequence

import openai
from openai import AsyncOpenAI

from roundtable.errors import ProviderError
from roundtable.models import AgentId, ChatMessage
from roundtable.normalize import normalize
from roundtable.providers.base import ProviderAdapter, sdk_error

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
_APP_HEADERS = {
    "HTTP-Referer": "https://github.com/ai-roundtable/roundtable",
    "X-Title": "Roundtable Debate",
}


class OpenRouterProvider(ProviderAdapter):
    """Any OpenRouter-hosted model via chat completions."""

    agent_id = AgentId.OPENROUTER

    def _make_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self._config.base_url or _DEFAULT_BASE_URL,
            default_headers=_APP_HEADERS,
            max_retries=0,
        )

    async def _attempt(self, conversation: Sequence[ChatMessage], api_key: str) -> str | None:
        client = self._client_for(api_key)
        kwargs: dict = {
            "model": self._config.model,
            "messages": [{"role": m.role, "content": m.content} for m in conversation],
            "max_tokens": self._config.max_tokens,
        }
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature

        try:
            response = await client.chat.completions.create(**kwargs)
        except openai.APIError as exc:
            raise sdk_error(self.name(), exc, openai) from exc

        if not response.choices:
            raise ProviderError(self.name(), "No choices in response")
        return normalize(response.choices[0].message.content)

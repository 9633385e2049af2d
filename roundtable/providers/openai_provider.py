"""OpenAI provider using the openai SDK Responses API with native async."""

import logging
from collections.abc import Sequence

import openai
from openai import AsyncOpenAI

from roundtable.models import AgentId, ChatMessage
from roundtable.normalize import normalize
from roundtable.providers.base import ProviderAdapter, sdk_error

logger = logging.getLogger(__name__)


class OpenAIProvider(ProviderAdapter):
    """OpenAI reasoning models via the Responses API."""

    agent_id = AgentId.OPENAI

    def _make_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, max_retries=0)

    async def _attempt(self, conversation: Sequence[ChatMessage], api_key: str) -> str | None:
        client = self._client_for(api_key)
        kwargs: dict = {
            "model": self._config.model,
            "input": [{"role": m.role, "content": m.content} for m in conversation],
            "max_output_tokens": self._config.max_tokens,
        }
        if self._config.reasoning_effort:
            kwargs["reasoning"] = {"effort": self._config.reasoning_effort}
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature

        try:
            response = await client.responses.create(**kwargs)
        except openai.APIError as exc:
            raise sdk_error(self.name(), exc, openai) from exc

        # Reasoning items carry no text; only message items hold the reply.
        fragments = [
            part
            for item in (response.output or [])
            if getattr(item, "type", None) == "message"
            for part in (getattr(item, "content", None) or [])
        ]
        if response.usage:
            logger.debug("OpenAI usage: %s tokens", response.usage.total_tokens)
        return normalize(fragments)

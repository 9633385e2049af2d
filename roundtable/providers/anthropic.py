"""Anthropic Claude provider using anthropic SDK with native async."""

import logging
from collections.abc import Sequence

import anthropic as anthropic_sdk

from roundtable.models import AgentId, ChatMessage
from roundtable.normalize import normalize
from roundtable.providers.base import ProviderAdapter, sdk_error

logger = logging.getLogger(__name__)


class AnthropicProvider(ProviderAdapter):
    """Anthropic Claude provider via the Messages API."""

    agent_id = AgentId.CLAUDE

    def _make_client(self, api_key: str) -> anthropic_sdk.AsyncAnthropic:
        return anthropic_sdk.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def _attempt(self, conversation: Sequence[ChatMessage], api_key: str) -> str | None:
        client = self._client_for(api_key)

        # The Messages API takes system text as a separate parameter.
        system = "\n\n".join(m.content for m in conversation if m.role == "system")
        kwargs: dict = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in conversation
                if m.role != "system"
            ],
        }
        if system:
            kwargs["system"] = system
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature

        try:
            response = await client.messages.create(**kwargs)
        except anthropic_sdk.APIError as exc:
            raise sdk_error(self.name(), exc, anthropic_sdk) from exc

        text_blocks = [b for b in (response.content or []) if getattr(b, "type", None) == "text"]
        if response.usage:
            logger.debug(
                "Anthropic usage: %d tokens",
                response.usage.input_tokens + response.usage.output_tokens,
            )
        return normalize(text_blocks)

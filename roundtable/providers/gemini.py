"""Gemini provider using google-genai SDK with native async."""

import logging
from collections.abc import Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from roundtable.errors import ProviderHTTPError
from roundtable.models import AgentId, ChatMessage
from roundtable.normalize import normalize
from roundtable.providers.base import ProviderAdapter
from roundtable.resilience import parse_retry_delay

logger = logging.getLogger(__name__)

_RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"


def retry_delay_from_details(details: object) -> float | None:
    """Find ``retryDelay`` in a Google API error body's RetryInfo detail."""
    if not isinstance(details, dict):
        return None
    error = details.get("error", details)
    if not isinstance(error, dict):
        return None
    for item in error.get("details") or []:
        if isinstance(item, dict) and item.get("@type") == _RETRY_INFO_TYPE:
            return parse_retry_delay(item.get("retryDelay"))
    return None


def split_conversation(
    conversation: Sequence[ChatMessage],
) -> tuple[str | None, list[genai_types.Content]]:
    """Separate system text from the role-tagged turns Gemini accepts."""
    system = "\n\n".join(m.content for m in conversation if m.role == "system") or None
    contents = [
        genai_types.Content(
            role="model" if m.role == "assistant" else "user",
            parts=[genai_types.Part(text=m.content)],
        )
        for m in conversation
        if m.role != "system"
    ]
    return system, contents


class GeminiProvider(ProviderAdapter):
    """Google Gemini provider via google-genai SDK.

    System messages travel as ``system_instruction``; the rest become
    role-tagged ``Content`` entries, with ``assistant`` mapped to ``model``.
    """

    agent_id = AgentId.GEMINI

    def _make_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    async def _close_client(self, client: genai.Client) -> None:
        await client.aio.aclose()

    async def _attempt(self, conversation: Sequence[ChatMessage], api_key: str) -> str | None:
        client = self._client_for(api_key)
        system, contents = split_conversation(conversation)
        try:
            response = await client.aio.models.generate_content(
                model=self._config.model,
                contents=contents,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system,
                    max_output_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                ),
            )
        except genai_errors.APIError as exc:
            raise ProviderHTTPError(
                self.name(),
                f"HTTP {exc.code}: {exc.message}",
                status=exc.code,
                retry_after=retry_delay_from_details(exc.details),
            ) from exc
        except httpx.TimeoutException as exc:
            raise TimeoutError(f"[{self.name()}] SDK request timed out") from exc
        except httpx.TransportError as exc:
            raise ProviderHTTPError(self.name(), f"Connection error: {exc}") from exc

        if not response.candidates:
            return None
        content = response.candidates[0].content
        parts = (content.parts if content else None) or []
        # Thinking-mode parts are summaries of reasoning, not the reply.
        fragments = [p for p in parts if not getattr(p, "thought", False)]
        if response.usage_metadata:
            logger.debug("Gemini usage: %s tokens", response.usage_metadata.total_token_count)
        return normalize(fragments)

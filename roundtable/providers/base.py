"""Abstract base for all provider adapters."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

from config.config_loader import ModelConfig
from roundtable.credentials import CredentialSource
from roundtable.errors import ProviderError, ProviderHTTPError
from roundtable.models import AgentId, ChatMessage, Failure, ProviderCallOutcome, Success
from roundtable.resilience import RetryPolicy, call_with_resilience, parse_retry_delay

logger = logging.getLogger(__name__)

__all__ = ["ProviderAdapter", "ProviderError", "ProviderHTTPError"]


def retry_after_from_headers(headers) -> float | None:
    """Read ``retry-after-ms`` or ``retry-after`` from an HTTP response's headers."""
    if headers is None:
        return None
    millis = parse_retry_delay(headers.get("retry-after-ms"))
    if millis is not None:
        return millis / 1000
    return parse_retry_delay(headers.get("retry-after"))


def sdk_error(provider_name: str, exc: Exception, sdk) -> Exception:
    """Translate an openai/anthropic SDK exception into what ``_attempt`` raises.

    Both SDKs expose the same exception hierarchy, so the module is passed in.
    """
    if isinstance(exc, sdk.APITimeoutError):
        return TimeoutError(f"[{provider_name}] SDK request timed out")
    if isinstance(exc, sdk.APIStatusError):
        return ProviderHTTPError(
            provider_name,
            f"HTTP {exc.status_code}: {exc.message}",
            status=exc.status_code,
            retry_after=retry_after_from_headers(exc.response.headers),
        )
    if isinstance(exc, sdk.APIConnectionError):
        return ProviderHTTPError(provider_name, f"Connection error: {exc}")
    return ProviderError(provider_name, f"API call failed: {exc}")


class ProviderAdapter(ABC):
    """One provider's chat/generation endpoint behind a uniform ``invoke``."""

    agent_id: AgentId

    def __init__(self, config: ModelConfig, credentials: CredentialSource) -> None:
        self._config = config
        self._credentials = credentials
        self._client = None
        self._client_key: str | None = None

    def name(self) -> str:
        return self._config.name

    def display_name(self) -> str:
        return self._config.display_name

    def model_string(self) -> str:
        return self._config.model

    def _client_for(self, api_key: str):
        if self._client is None or self._client_key != api_key:
            self._client = self._make_client(api_key)
            self._client_key = api_key
        return self._client

    async def aclose(self) -> None:
        """Close the cached SDK client and its connection pool."""
        client, self._client, self._client_key = self._client, None, None
        if client is not None:
            await self._close_client(client)

    async def _close_client(self, client) -> None:
        await client.close()

    @abstractmethod
    def _make_client(self, api_key: str):
        """Build the SDK client. SDK-level retries must be disabled."""
        ...

    @abstractmethod
    async def _attempt(self, conversation: Sequence[ChatMessage], api_key: str) -> str | None:
        """Make exactly one request and return the normalized reply text.

        Raises:
            ProviderHTTPError: On an HTTP or connection failure.
            TimeoutError: When the SDK gives up waiting.
        """
        ...

    async def invoke(
        self,
        conversation: Sequence[ChatMessage],
        policy: RetryPolicy,
    ) -> ProviderCallOutcome:
        api_key = self._credentials.get_credential(self.agent_id)
        if not api_key:
            logger.warning("%s: no API key (%s), skipping call", self.name(), self._config.api_key_env)
            return Failure(f"Missing API key: {self._config.api_key_env}")

        start = time.monotonic()
        outcome = await call_with_resilience(
            lambda: self._attempt(conversation, api_key),
            policy,
            provider=self.name(),
        )
        latency = time.monotonic() - start
        if isinstance(outcome, Success):
            logger.info("%s replied in %.2fs (%d chars)", self.name(), latency, len(outcome.text))
        return outcome

"""Map agent ids to adapter classes and build the adapters a debate needs."""

import logging

from config.config_loader import AppConfig
from roundtable.credentials import CredentialSource
from roundtable.models import AgentId
from roundtable.providers.anthropic import AnthropicProvider
from roundtable.providers.base import ProviderAdapter
from roundtable.providers.gemini import GeminiProvider
from roundtable.providers.openai_provider import OpenAIProvider
from roundtable.providers.openrouter import OpenRouterProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[AgentId, type[ProviderAdapter]] = {
    AgentId.OPENAI: OpenAIProvider,
    AgentId.GEMINI: GeminiProvider,
    AgentId.CLAUDE: AnthropicProvider,
    AgentId.OPENROUTER: OpenRouterProvider,
}


def build_adapters(config: AppConfig, credentials: CredentialSource) -> dict[AgentId, ProviderAdapter]:
    """Build one adapter per configured model with a known agent id.

    Adapters are built even without an API key; the missing key surfaces as a
    failed turn rather than a missing agent.
    """
    adapters: dict[AgentId, ProviderAdapter] = {}
    for name, model_cfg in config.models.items():
        try:
            agent_id = AgentId(name)
        except ValueError:
            logger.warning("Model '%s' has no matching agent id, skipping", name)
            continue
        adapters[agent_id] = PROVIDER_CLASSES[agent_id](model_cfg, credentials)
    return adapters

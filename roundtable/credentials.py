"""API key lookup for provider adapters."""

import os
from typing import Protocol

from config.config_loader import ModelConfig
from roundtable.models import AgentId


class CredentialSource(Protocol):
    def get_credential(self, agent_id: AgentId) -> str | None:
        ...


class EnvCredentialSource:
    """Read API keys from environment variables named in settings.yaml.

    Each provider's ``api_key_env`` is tried first, then its ``fallback_env``.
    Blank values count as missing.
    """

    def __init__(self, models: dict[str, ModelConfig]) -> None:
        self._models = models

    def get_credential(self, agent_id: AgentId) -> str | None:
        model_cfg = self._models.get(agent_id.value)
        if model_cfg is None:
            return None
        for env in model_cfg.key_envs:
            value = os.environ.get(env, "").strip()
            if value:
                return value
        return None

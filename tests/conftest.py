"""Shared pytest fixtures."""

from collections.abc import Sequence
from pathlib import Path

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from roundtable.models import AgentId, ChatMessage, Turn
from roundtable.prompts import PromptComposer
from roundtable.providers.base import ProviderAdapter
from roundtable.resilience import RetryPolicy


class StaticCredentials:
    """Credential source backed by a plain dict."""

    def __init__(self, keys: dict[AgentId, str] | None = None) -> None:
        self.keys = dict(keys or {})
        self.lookups: list[AgentId] = []

    def get_credential(self, agent_id: AgentId) -> str | None:
        self.lookups.append(agent_id)
        return self.keys.get(agent_id)


def make_model_config(name: str = "openai", **overrides) -> ModelConfig:
    values = dict(
        name=name,
        model=f"{name}-model-1",
        api_key_env=f"TEST_{name.upper()}_KEY",
        max_tokens=256,
        display_name=name.title(),
    )
    values.update(overrides)
    return ModelConfig(**values)


class FakeAdapter(ProviderAdapter):
    """Test double adapter replaying scripted replies through the real invoke path.

    Each script item is returned (str/None) or raised (Exception) by one attempt.
    The last item repeats once the script runs out.
    """

    def __init__(
        self,
        agent_id: AgentId,
        replies: Sequence[object] = ("Answer: ok",),
        api_key: str | None = "test-key",
    ) -> None:
        keys = {agent_id: api_key} if api_key else {}
        super().__init__(make_model_config(agent_id.value), StaticCredentials(keys))
        self.agent_id = agent_id
        self._replies = list(replies)
        self.conversations: list[list[ChatMessage]] = []

    @property
    def prompts(self) -> list[str]:
        return [c[-1].content for c in self.conversations]

    def _make_client(self, api_key: str):
        return None

    async def _attempt(self, conversation: Sequence[ChatMessage], api_key: str) -> str | None:
        self.conversations.append(list(conversation))
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay_sec=0.0, timeout_sec=5.0, max_retry_delay_sec=60.0)


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        seed="Q: {question}\nReply in {language}. End with {marker}",
        debate="Q: {question}\nSpeaker {speaker}.\n{prior_answers}\nAgree or disagree in {language}. End with {marker}",
        personas={"claude": "Be a skeptic."},
    )


@pytest.fixture
def display_names() -> dict[AgentId, str]:
    return {
        AgentId.OPENAI: "GPT",
        AgentId.GEMINI: "Gemini",
        AgentId.CLAUDE: "Claude",
        AgentId.OPENROUTER: "Llama",
    }


@pytest.fixture
def composer(sample_prompts_config: PromptsConfig, display_names) -> PromptComposer:
    return PromptComposer(sample_prompts_config, marker="Answer:", language="English", display_names=display_names)


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        rounds=2,
        max_rounds=5,
        agents=["openai", "claude"],
        language="English",
        marker="Answer:",
        store_path=tmp_path / "store" / "transcript.json",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
    fast_policy: RetryPolicy,
) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        models={
            "openai": make_model_config("openai", api_key_env="TEST_OPENAI_KEY", display_name="GPT"),
            "claude": make_model_config("claude", api_key_env="TEST_CLAUDE_KEY", display_name="Claude"),
        },
        prompts=sample_prompts_config,
        resilience=fast_policy,
        available_providers={"openai"},
    )


@pytest.fixture
def sample_transcript() -> list[Turn]:
    return [
        Turn(round=1, agent=AgentId.OPENAI, thought="", answer="4"),
        Turn(round=1, agent=AgentId.CLAUDE, thought="I agree with GPT.", answer="4"),
        Turn(round=2, agent=AgentId.OPENAI, thought="Still 4.", answer="4"),
    ]

"""Prompt composition: seed prompts and same-round debate prompts."""

from collections.abc import Mapping, Sequence

from config.config_loader import PromptsConfig
from roundtable.models import AgentId, ChatMessage, Turn


class PromptComposer:
    """Build the text each agent receives.

    The first speaker in a round gets the seed prompt. Later speakers get the
    debate prompt, which quotes the answers already given in the same round.
    """

    def __init__(
        self,
        prompts: PromptsConfig,
        marker: str = "Answer:",
        language: str = "English",
        display_names: Mapping[AgentId, str] | None = None,
    ) -> None:
        self._prompts = prompts
        self.marker = marker
        self._language = language
        self._display_names = dict(display_names or {})

    def display_name(self, agent_id: AgentId) -> str:
        return self._display_names.get(agent_id, agent_id.value)

    def seed_prompt(self, question: str) -> str:
        return self._prompts.seed.format(
            question=question,
            language=self._language,
            marker=self.marker,
        )

    def debate_prompt(
        self,
        question: str,
        prior_turns_this_round: Sequence[Turn],
        speaker_index: int,
    ) -> str:
        prior_answers = "\n\n".join(
            f"{self.display_name(t.agent)}: {t.answer}" for t in prior_turns_this_round
        )
        return self._prompts.debate.format(
            question=question,
            language=self._language,
            marker=self.marker,
            speaker=speaker_index + 1,
            prior_answers=prior_answers,
        )

    def conversation(self, agent_id: AgentId, prompt: str) -> list[ChatMessage]:
        """Wrap a prompt as a conversation, led by the agent's persona if it has one."""
        messages: list[ChatMessage] = []
        persona = self._prompts.personas.get(agent_id.value, "").strip()
        if persona:
            messages.append(ChatMessage(role="system", content=persona))
        messages.append(ChatMessage(role="user", content=prompt))
        return messages

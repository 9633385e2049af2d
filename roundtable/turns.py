"""Turn execution: call one agent and map the outcome to a transcript entry."""

import logging
from collections.abc import Mapping

from roundtable.models import AgentId, Failure, ProviderCallOutcome, Success, Timeout, Turn
from roundtable.prompts import PromptComposer
from roundtable.providers.base import ProviderAdapter
from roundtable.resilience import RetryPolicy

logger = logging.getLogger(__name__)

TIMEOUT_ANSWER = "(timed out: the agent did not reply in time)"
FAILURE_ANSWER = "(no reply: check credentials/network)"


def failure_thought(name: str, round_number: int) -> str:
    return f"{name} gave no reply in round {round_number}: check credentials/network."


def split_marker(text: str, marker: str) -> tuple[str, str]:
    """Split a reply into (thought, answer) on the conclusion marker.

    Only a reply with exactly one marker is split. Anything else is returned
    whole as the answer with an empty thought.
    """
    parts = text.split(marker) if marker else [text]
    if len(parts) != 2:
        return "", text.strip()
    return parts[0].strip(), parts[1].strip()


class TurnExecutor:
    """Dispatch a prompt to the right adapter and build the resulting Turn."""

    def __init__(
        self,
        adapters: Mapping[AgentId, ProviderAdapter],
        composer: PromptComposer,
        policy: RetryPolicy,
    ) -> None:
        self._adapters = dict(adapters)
        self._composer = composer
        self._policy = policy

    async def execute(self, agent_id: AgentId, prompt: str, round_number: int) -> Turn:
        """Never raises; every outcome becomes a well-formed Turn."""
        adapter = self._adapters.get(agent_id)
        if adapter is None:
            logger.warning("No adapter for agent %s", agent_id.value)
            outcome: ProviderCallOutcome = Failure(f"No adapter for {agent_id.value}")
        else:
            conversation = self._composer.conversation(agent_id, prompt)
            logger.debug("Round %d prompt for %s:\n%s", round_number, agent_id.value, prompt)
            try:
                outcome = await adapter.invoke(conversation, self._policy)
            except Exception as exc:
                logger.warning("Agent %s raised in round %d: %s", agent_id.value, round_number, exc)
                outcome = Failure(f"Unexpected error: {exc}")
        return self._to_turn(agent_id, outcome, round_number)

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()

    def _to_turn(self, agent_id: AgentId, outcome: ProviderCallOutcome, round_number: int) -> Turn:
        if isinstance(outcome, Success):
            thought, answer = split_marker(outcome.text, self._composer.marker)
            return Turn(round=round_number, agent=agent_id, thought=thought, answer=answer)
        if isinstance(outcome, Timeout):
            return Turn(round=round_number, agent=agent_id, thought="", answer=TIMEOUT_ANSWER)
        logger.warning(
            "Agent %s failed in round %d: %s",
            agent_id.value, round_number, getattr(outcome, "reason", outcome),
        )
        return Turn(
            round=round_number,
            agent=agent_id,
            thought=failure_thought(self._composer.display_name(agent_id), round_number),
            answer=FAILURE_ANSWER,
        )

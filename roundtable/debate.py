"""Debate orchestration: sequential turns, per-turn persistence and progress."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum

from roundtable.models import AgentId, DebateSession, Turn
from roundtable.prompts import PromptComposer
from roundtable.store import TranscriptStore
from roundtable.turns import TurnExecutor

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[int, int], None]

DEFAULT_MAX_ROUNDS = 5


class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class DebateOrchestrator:
    """Run one debate session at a time.

    Every agent speaks once per round, in the configured order. Each turn is
    awaited before the next prompt is built, because later speakers see the
    answers already given in the same round. Failures never stop the loop;
    they arrive as placeholder turns from the executor.
    """

    def __init__(
        self,
        executor: TurnExecutor,
        composer: PromptComposer,
        store: TranscriptStore | None = None,
        on_progress: ProgressObserver | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        self._executor = executor
        self._composer = composer
        self._store = store
        self._on_progress = on_progress
        self._max_rounds = max(1, max_rounds)
        self._state = EngineState.IDLE
        self._generation = 0
        self._completed = 0

        restored: list[Turn] = []
        if store is not None:
            try:
                restored = store.load() or []
            except Exception as exc:
                logger.warning("Could not load saved transcript: %s", exc)
        if restored:
            logger.info("Restored transcript with %d turns", len(restored))
        self._session = DebateSession(question="", agents=(), rounds=0, transcript=restored)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def session(self) -> DebateSession:
        return self._session

    @property
    def transcript(self) -> tuple[Turn, ...]:
        return tuple(self._session.transcript)

    @property
    def completed_turns(self) -> int:
        return self._completed

    @property
    def progress(self) -> float:
        total = self._session.total_turns
        if total <= 0:
            return 0.0
        return min(1.0, max(0.0, self._completed / total))

    async def start(
        self,
        question: str,
        agent_order: Sequence[AgentId],
        round_count: int,
        cancel: asyncio.Event | None = None,
    ) -> list[Turn]:
        """Run a full debate and return its transcript.

        A blank question, an empty agent list, a round count below one or an
        already-set ``cancel`` is rejected without touching the current
        session. Setting ``cancel``, or calling ``start`` again, ends the run
        after the turn in progress.
        """
        if not question or not question.strip():
            logger.warning("Ignoring start: question is empty")
            return list(self._session.transcript)
        agents = tuple(dict.fromkeys(agent_order))
        if not agents:
            logger.warning("Ignoring start: no agents selected")
            return list(self._session.transcript)

        if round_count < 1:
            logger.warning("Ignoring start: round count %d is not positive", round_count)
            return list(self._session.transcript)
        if cancel is not None and cancel.is_set():
            logger.info("Ignoring start: cancelled before the first turn")
            return list(self._session.transcript)

        rounds = min(round_count, self._max_rounds)
        if rounds != round_count:
            logger.warning("Round count %d above limit, using %d", round_count, rounds)

        self._generation += 1
        generation = self._generation
        session = DebateSession(question=question.strip(), agents=agents, rounds=rounds)
        self._session = session
        self._completed = 0
        self._state = EngineState.RUNNING
        total = session.total_turns

        logger.info("Starting debate: %d agents, %d rounds", len(agents), rounds)
        try:
            for round_number in range(1, rounds + 1):
                round_turns: list[Turn] = []
                for index, agent_id in enumerate(agents):
                    if cancel is not None and cancel.is_set():
                        logger.info("Debate cancelled after %d/%d turns", self._completed, total)
                        return list(session.transcript)
                    if index == 0:
                        prompt = self._composer.seed_prompt(session.question)
                    else:
                        prompt = self._composer.debate_prompt(session.question, round_turns, index)

                    turn = await self._executor.execute(agent_id, prompt, round_number)
                    # A newer start owns the store and counters now.
                    if generation != self._generation:
                        logger.info("Debate superseded after %d/%d turns", len(session.transcript), total)
                        return list(session.transcript)

                    round_turns.append(turn)
                    session.transcript.append(turn)
                    self._persist(session.transcript)
                    self._completed += 1
                    self._notify(self._completed, total)

                    await asyncio.sleep(0)
                    if generation != self._generation:
                        logger.info("Debate superseded after %d/%d turns", len(session.transcript), total)
                        return list(session.transcript)

                logger.info("Round %d complete", round_number)
        finally:
            if generation == self._generation:
                self._state = EngineState.IDLE

        return list(session.transcript)

    async def aclose(self) -> None:
        """Release the provider clients held by the executor."""
        await self._executor.aclose()

    def _persist(self, transcript: list[Turn]) -> None:
        if self._store is None:
            return
        try:
            self._store.save(tuple(transcript))
        except Exception as exc:
            logger.warning("Failed to persist transcript: %s", exc)

    def _notify(self, completed: int, total: int) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(completed, total)
        except Exception as exc:
            logger.warning("Progress observer raised: %s", exc)

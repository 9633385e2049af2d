"""Tests for roundtable/debate.py."""

import asyncio
import logging

import pytest

from roundtable.debate import DebateOrchestrator, EngineState
from roundtable.models import AgentId, Turn
from roundtable.store import MemoryStore
from roundtable.turns import FAILURE_ANSWER, TurnExecutor
from tests.conftest import FakeAdapter


def _orchestrator(composer, policy, adapters, **kwargs) -> DebateOrchestrator:
    executor = TurnExecutor({a.agent_id: a for a in adapters}, composer, policy)
    return DebateOrchestrator(executor, composer, **kwargs)


@pytest.fixture
def three_adapters() -> list[FakeAdapter]:
    return [
        FakeAdapter(AgentId.OPENAI, ["Answer: A1", "Answer: A2"]),
        FakeAdapter(AgentId.GEMINI, ["Answer: G1", "Answer: G2"]),
        FakeAdapter(AgentId.CLAUDE, ["Answer: C1", "Answer: C2"]),
    ]


async def test_single_agent_single_round(composer, fast_policy):
    adapter = FakeAdapter(AgentId.OPENAI, ["Answer: 4"])
    orchestrator = _orchestrator(composer, fast_policy, [adapter])

    transcript = await orchestrator.start("What is 2+2?", [AgentId.OPENAI], 1)

    assert transcript == [Turn(round=1, agent=AgentId.OPENAI, thought="", answer="4")]
    assert orchestrator.progress == 1.0
    assert orchestrator.completed_turns == 1
    assert orchestrator.state is EngineState.IDLE


async def test_transcript_has_rounds_times_agents_in_order(composer, fast_policy, three_adapters):
    orchestrator = _orchestrator(composer, fast_policy, three_adapters)
    agents = [a.agent_id for a in three_adapters]

    transcript = await orchestrator.start("Q?", agents, 2)

    assert len(transcript) == 6
    assert [(t.round, t.agent) for t in transcript] == [
        (r, a) for r in (1, 2) for a in agents
    ]
    assert [t.answer for t in transcript] == ["A1", "G1", "C1", "A2", "G2", "C2"]


async def test_first_speaker_gets_seed_later_speakers_see_same_round_only(composer, fast_policy, three_adapters):
    orchestrator = _orchestrator(composer, fast_policy, three_adapters)
    openai_agent, gemini_agent, claude_agent = three_adapters

    await orchestrator.start("Q?", [a.agent_id for a in three_adapters], 2)

    # Round 1
    assert openai_agent.prompts[0] == composer.seed_prompt("Q?")
    assert "GPT: A1" in gemini_agent.prompts[0]
    assert "GPT: A1" in claude_agent.prompts[0] and "Gemini: G1" in claude_agent.prompts[0]
    # Round 2: seed again for the first speaker, no round-1 answers anywhere
    assert openai_agent.prompts[1] == composer.seed_prompt("Q?")
    assert "GPT: A2" in gemini_agent.prompts[1]
    assert "A1" not in gemini_agent.prompts[1]
    assert "G1" not in claude_agent.prompts[1]
    assert "C1" not in claude_agent.prompts[1]
    assert "Gemini: G2" in claude_agent.prompts[1]


async def test_rejects_blank_question(composer, fast_policy):
    adapter = FakeAdapter(AgentId.OPENAI)
    orchestrator = _orchestrator(composer, fast_policy, [adapter])

    assert await orchestrator.start("   ", [AgentId.OPENAI], 1) == []
    assert adapter.conversations == []
    assert orchestrator.progress == 0.0


async def test_rejects_empty_agent_list(composer, fast_policy):
    orchestrator = _orchestrator(composer, fast_policy, [])
    assert await orchestrator.start("Q?", [], 1) == []
    assert orchestrator.state is EngineState.IDLE


async def test_progress_reads_zero_before_start(composer, fast_policy):
    orchestrator = _orchestrator(composer, fast_policy, [])
    assert orchestrator.progress == 0.0
    assert orchestrator.transcript == ()


async def test_persists_after_every_turn(composer, fast_policy, three_adapters):
    store = MemoryStore()
    orchestrator = _orchestrator(composer, fast_policy, three_adapters, store=store)

    transcript = await orchestrator.start("Q?", [a.agent_id for a in three_adapters], 2)

    assert store.saves == 6
    assert store.load() == transcript


async def test_progress_observer_sees_each_turn(composer, fast_policy, three_adapters):
    seen: list[tuple[int, int]] = []
    orchestrator = _orchestrator(
        composer, fast_policy, three_adapters, on_progress=lambda done, total: seen.append((done, total))
    )

    await orchestrator.start("Q?", [a.agent_id for a in three_adapters], 1)

    assert seen == [(1, 3), (2, 3), (3, 3)]


async def test_observer_can_read_intermediate_progress(composer, fast_policy, three_adapters):
    orchestrator = _orchestrator(composer, fast_policy, three_adapters)
    readings: list[float] = []

    async def watch() -> None:
        while orchestrator.state is not EngineState.RUNNING:
            await asyncio.sleep(0)
        while orchestrator.state is EngineState.RUNNING:
            readings.append(orchestrator.progress)
            await asyncio.sleep(0)

    watcher = asyncio.create_task(watch())
    await orchestrator.start("Q?", [a.agent_id for a in three_adapters], 1)
    await watcher

    assert any(0.0 < r < 1.0 for r in readings)
    assert readings == sorted(readings)


async def test_failing_agent_does_not_stop_debate(composer, fast_policy):
    good = FakeAdapter(AgentId.OPENAI, ["Answer: yes"])
    no_key = FakeAdapter(AgentId.CLAUDE, api_key=None)
    orchestrator = _orchestrator(composer, fast_policy, [good, no_key])

    transcript = await orchestrator.start("Q?", [AgentId.CLAUDE, AgentId.OPENAI], 2)

    assert len(transcript) == 4
    assert [t.answer for t in transcript if t.agent is AgentId.CLAUDE] == [FAILURE_ANSWER, FAILURE_ANSWER]
    assert orchestrator.state is EngineState.IDLE
    # The placeholder is quoted to the next speaker like any other answer
    assert FAILURE_ANSWER in good.prompts[0]


async def test_no_credential_single_turn(composer, fast_policy):
    adapter = FakeAdapter(AgentId.OPENAI, api_key=None)
    orchestrator = _orchestrator(composer, fast_policy, [adapter])

    transcript = await orchestrator.start("What is 2+2?", [AgentId.OPENAI], 1)

    assert len(transcript) == 1
    assert transcript[0].answer == FAILURE_ANSWER
    assert orchestrator.state is EngineState.IDLE
    assert orchestrator.progress == 1.0


async def test_duplicate_agents_speak_once(composer, fast_policy):
    adapter = FakeAdapter(AgentId.OPENAI)
    orchestrator = _orchestrator(composer, fast_policy, [adapter])

    transcript = await orchestrator.start("Q?", [AgentId.OPENAI, AgentId.OPENAI], 1)

    assert len(transcript) == 1
    assert orchestrator.session.agents == (AgentId.OPENAI,)


async def test_round_count_above_limit_is_capped(composer, fast_policy, caplog):
    adapter = FakeAdapter(AgentId.OPENAI)
    orchestrator = _orchestrator(composer, fast_policy, [adapter], max_rounds=2)

    with caplog.at_level(logging.WARNING):
        transcript = await orchestrator.start("Q?", [AgentId.OPENAI], 9)

    assert len(transcript) == 2
    assert orchestrator.session.rounds == 2
    assert any("above limit" in m for m in caplog.messages)


@pytest.mark.parametrize("round_count", [0, -3])
async def test_non_positive_round_count_is_ignored(composer, fast_policy, sample_transcript, round_count):
    adapter = FakeAdapter(AgentId.OPENAI)
    store = MemoryStore(sample_transcript)
    orchestrator = _orchestrator(composer, fast_policy, [adapter], store=store)

    transcript = await orchestrator.start("Q?", [AgentId.OPENAI], round_count)

    assert transcript == list(sample_transcript)
    assert adapter.conversations == []
    assert store.saves == 0
    assert orchestrator.progress == 0.0


async def test_new_start_resets_transcript(composer, fast_policy):
    adapter = FakeAdapter(AgentId.OPENAI, ["Answer: first", "Answer: second"])
    orchestrator = _orchestrator(composer, fast_policy, [adapter])

    await orchestrator.start("Q1?", [AgentId.OPENAI], 1)
    transcript = await orchestrator.start("Q2?", [AgentId.OPENAI], 1)

    assert [t.answer for t in transcript] == ["second"]
    assert orchestrator.session.question == "Q2?"


async def test_cancel_stops_after_current_turn(composer, fast_policy, three_adapters):
    cancel = asyncio.Event()
    orchestrator = _orchestrator(
        composer, fast_policy, three_adapters,
        on_progress=lambda done, total: cancel.set() if done == 2 else None,
    )

    transcript = await orchestrator.start("Q?", [a.agent_id for a in three_adapters], 2, cancel=cancel)

    assert len(transcript) == 2
    assert orchestrator.state is EngineState.IDLE
    assert three_adapters[2].conversations == []


async def test_cancel_set_before_start_makes_no_calls(composer, fast_policy, sample_transcript):
    adapter = FakeAdapter(AgentId.OPENAI, ["Answer: ok"])
    store = MemoryStore(sample_transcript)
    orchestrator = _orchestrator(composer, fast_policy, [adapter], store=store)
    cancel = asyncio.Event()
    cancel.set()

    transcript = await orchestrator.start("Q?", [AgentId.OPENAI], 3, cancel=cancel)

    assert transcript == list(sample_transcript)
    assert adapter.conversations == []
    assert list(store.load()) == list(sample_transcript)
    assert store.saves == 0
    assert orchestrator.state is EngineState.IDLE


async def test_second_start_supersedes_running_session(composer, fast_policy):
    release = asyncio.Event()

    class SlowAdapter(FakeAdapter):
        async def _attempt(self, conversation, api_key):
            await release.wait()
            return await super()._attempt(conversation, api_key)

    slow = SlowAdapter(AgentId.OPENAI, ["Answer: old"])
    fast = FakeAdapter(AgentId.GEMINI, ["Answer: new"])
    store = MemoryStore()
    orchestrator = _orchestrator(composer, fast_policy, [slow, fast], store=store)

    first = asyncio.create_task(orchestrator.start("Old?", [AgentId.OPENAI, AgentId.GEMINI], 2))
    await asyncio.sleep(0)
    second = await orchestrator.start("New?", [AgentId.GEMINI], 1)
    release.set()
    old_transcript = await first

    assert [t.answer for t in second] == ["new"]
    assert old_transcript == []
    assert orchestrator.session.question == "New?"
    assert [t.answer for t in store.load()] == ["new"]
    assert orchestrator.state is EngineState.IDLE


async def test_restores_transcript_from_store(composer, fast_policy, sample_transcript):
    store = MemoryStore(sample_transcript)
    orchestrator = _orchestrator(composer, fast_policy, [], store=store)

    assert orchestrator.transcript == tuple(sample_transcript)
    assert orchestrator.progress == 0.0


async def test_store_failure_does_not_abort(composer, fast_policy, caplog):
    class BrokenStore(MemoryStore):
        def save(self, transcript):
            raise OSError("disk full")

    adapter = FakeAdapter(AgentId.OPENAI)
    orchestrator = _orchestrator(composer, fast_policy, [adapter], store=BrokenStore())

    with caplog.at_level(logging.WARNING):
        transcript = await orchestrator.start("Q?", [AgentId.OPENAI], 2)

    assert len(transcript) == 2
    assert any("Failed to persist" in m for m in caplog.messages)


async def test_transcript_accessor_is_read_only_copy(composer, fast_policy):
    adapter = FakeAdapter(AgentId.OPENAI)
    orchestrator = _orchestrator(composer, fast_policy, [adapter])

    returned = await orchestrator.start("Q?", [AgentId.OPENAI], 1)
    returned.clear()

    assert isinstance(orchestrator.transcript, tuple)
    assert len(orchestrator.transcript) == 1

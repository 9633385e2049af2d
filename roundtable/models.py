"""Pure dataclasses for the Roundtable debate engine. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class AgentId(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENROUTER = "openrouter"


Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


@dataclass(frozen=True)
class Turn:
    round: int             # 1-indexed
    agent: AgentId
    thought: str           # empty unless the reply separated reasoning from conclusion
    answer: str


@dataclass
class DebateSession:
    question: str
    agents: tuple[AgentId, ...]
    rounds: int
    transcript: list[Turn] = field(default_factory=list)

    @property
    def total_turns(self) -> int:
        return self.rounds * len(self.agents)


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class Timeout:
    pass


@dataclass(frozen=True)
class Failure:
    reason: str


ProviderCallOutcome = Success | Timeout | Failure

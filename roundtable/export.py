"""Transcript serialization: JSON snapshots and downloadable exports."""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from roundtable.models import AgentId, DebateSession, Turn

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "md")


def turn_to_dict(turn: Turn) -> dict:
    return {
        "round": turn.round,
        "agent": turn.agent.value,
        "thought": turn.thought,
        "answer": turn.answer,
    }


def turn_from_dict(data: Mapping) -> Turn:
    """Raises KeyError/ValueError on a malformed entry."""
    return Turn(
        round=int(data["round"]),
        agent=AgentId(data["agent"]),
        thought=str(data.get("thought", "")),
        answer=str(data["answer"]),
    )


def serialize(transcript: Iterable[Turn]) -> bytes:
    """Encode a transcript as a UTF-8 JSON list of field-labelled turns."""
    payload = [turn_to_dict(t) for t in transcript]
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def deserialize(data: bytes) -> list[Turn]:
    raw = json.loads(data.decode("utf-8"))
    if not isinstance(raw, list):
        raise ValueError("Transcript must be a JSON list")
    return [turn_from_dict(item) for item in raw]


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len] or "debate"


def to_markdown(session: DebateSession, display_names: Mapping[AgentId, str] | None = None) -> str:
    names = display_names or {}
    lines: list[str] = [
        f"# Roundtable Debate: {session.question[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Agents:** {', '.join(names.get(a, a.value) for a in session.agents)}",
        f"**Rounds:** {session.rounds}",
        "",
        "---",
        "",
    ]
    current_round = 0
    for turn in session.transcript:
        if turn.round != current_round:
            current_round = turn.round
            lines.append(f"## Round {current_round}")
            lines.append("")
        lines.append(f"### {names.get(turn.agent, turn.agent.value)}")
        lines.append("")
        if turn.thought:
            lines.append(f"> {turn.thought}".replace("\n", "\n> "))
            lines.append("")
        lines.append(f"**Answer:** {turn.answer}")
        lines.append("")
    return "\n".join(lines)


def save_export(
    session: DebateSession,
    output_dir: Path,
    fmt: str = "json",
    display_names: Mapping[AgentId, str] | None = None,
) -> Path:
    """Write the session transcript to a timestamped file and return its path."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format: {fmt}")
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(session.question)}.{fmt}"
    if fmt == "json":
        filepath.write_bytes(serialize(session.transcript))
    else:
        filepath.write_text(to_markdown(session, display_names), encoding="utf-8")
    logger.info("Transcript exported to: %s", filepath)
    return filepath

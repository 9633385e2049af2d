"""Click CLI: loads config and credentials, runs a debate, prints and exports it."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from roundtable.credentials import EnvCredentialSource
from roundtable.debate import DebateOrchestrator
from roundtable.export import EXPORT_FORMATS, save_export
from roundtable.models import AgentId, Turn
from roundtable.prompts import PromptComposer
from roundtable.providers.registry import build_adapters
from roundtable.question_file import agents_from_meta, parse_question_file, rounds_from_meta
from roundtable.store import JsonFileStore
from roundtable.turns import TurnExecutor

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )
    # SDK request logs drown out turn progress.
    for noisy in ("httpx", "httpcore", "openai", "anthropic", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _resolve_agents(names: list[str]) -> list[AgentId]:
    agents: list[AgentId] = []
    for name in names:
        try:
            agents.append(AgentId(name.strip().lower()))
        except ValueError:
            valid = ", ".join(a.value for a in AgentId)
            raise click.BadParameter(f"Unknown agent '{name}'. Choose from: {valid}", param_hint="--agents") from None
    return agents


def _print_turn(turn: Turn, display_names: dict[AgentId, str]) -> None:
    body = turn.answer if not turn.thought else f"{turn.thought}\n\n**Answer:** {turn.answer}"
    console.print(
        Panel(
            Markdown(body),
            title=f"[bold]{display_names.get(turn.agent, turn.agent.value)}[/bold]",
            subtitle=f"round {turn.round}",
            border_style="dim",
        )
    )


def build_orchestrator(config: AppConfig, store_path: Path | None, on_progress=None) -> DebateOrchestrator:
    display_names = config.display_names()
    composer = PromptComposer(
        config.prompts,
        marker=config.defaults.marker,
        language=config.defaults.language,
        display_names=display_names,
    )
    adapters = build_adapters(config, EnvCredentialSource(config.models))
    executor = TurnExecutor(adapters, composer, config.resilience)
    return DebateOrchestrator(
        executor,
        composer,
        store=JsonFileStore(store_path) if store_path else None,
        on_progress=on_progress,
        max_rounds=config.defaults.max_rounds,
    )


async def _run(
    config: AppConfig,
    question: str,
    agents: list[AgentId],
    rounds: int,
    store_path: Path | None,
) -> DebateOrchestrator:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        pass  # Windows: Ctrl-C falls back to KeyboardInterrupt

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Debating...", total=rounds * len(agents))

        def on_progress(completed: int, total: int) -> None:
            progress.update(task, completed=completed, total=total)

        orchestrator = build_orchestrator(config, store_path, on_progress=on_progress)
        try:
            await orchestrator.start(question, agents, rounds, cancel=cancel)
        finally:
            await orchestrator.aclose()

    if cancel.is_set():
        console.print("[yellow]Debate cancelled.[/yellow]")
    return orchestrator


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True, dir_okay=False),
              help="Read the question from a .md file (frontmatter: agents, rounds)")
@click.option("--agents", default=None, help="Comma-separated agents in speaking order (default: from config)")
@click.option("--rounds", default=None, type=click.IntRange(min=1), help="Number of debate rounds (default: from config)")
@click.option("--export", "export_format", type=click.Choice(EXPORT_FORMATS), default="json",
              show_default=True, help="Export format for the finished transcript")
@click.option("--output", "output_path", default=None, help="Export directory (default: from config)")
@click.option("--store", "store_path", default=None, help="Transcript snapshot file (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    question: str | None,
    question_file: str | None,
    agents: str | None,
    rounds: int | None,
    export_format: str,
    output_path: str | None,
    store_path: str | None,
    verbose: bool,
) -> None:
    """Roundtable -- several AI providers debate one question, turn by turn.

    \b
    Examples:
      roundtable "Is P equal to NP?" --rounds 2
      roundtable "Tabs or spaces?" --agents claude,gemini,openai
      roundtable --file question.md --export md
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    meta: dict = {}
    if question_file:
        question_text, meta = parse_question_file(Path(question_file))
    elif question:
        question_text = question
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument or --file.")
        sys.exit(1)

    if not question_text.strip():
        console.print("[bold red]Error:[/bold red] The question is empty.")
        sys.exit(1)

    # CLI flags win; frontmatter only fills in when a flag is not set
    agent_names = (
        [a for a in agents.split(",") if a.strip()] if agents is not None
        else agents_from_meta(meta.get("agents")) or config.defaults.agents
    )
    agent_ids = _resolve_agents(agent_names)
    if not agent_ids:
        console.print("[bold red]Error:[/bold red] No agents selected.")
        sys.exit(1)

    if rounds is None:
        try:
            rounds = rounds_from_meta(meta.get("rounds"))
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--file") from None
    effective_rounds = rounds if rounds is not None else config.defaults.rounds
    missing = [a.value for a in agent_ids if a.value not in config.available_providers]
    if missing:
        console.print(f"[yellow]No API key for:[/yellow] {', '.join(missing)} (their turns will be placeholders)")

    effective_store = Path(store_path) if store_path else config.defaults.store_path
    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    display_names = config.display_names()

    console.print(
        f"\n[bold cyan]Roundtable[/bold cyan]: {len(agent_ids)} agents, {effective_rounds} rounds"
    )
    console.print(f"Agents: {', '.join(display_names.get(a, a.value) for a in agent_ids)}")
    console.print(f"Question: [italic]{question_text[:80]}{'...' if len(question_text) > 80 else ''}[/italic]\n")

    orchestrator = asyncio.run(
        _run(config, question_text, agent_ids, effective_rounds, effective_store)
    )

    for turn in orchestrator.transcript:
        _print_turn(turn, display_names)

    saved = save_export(orchestrator.session, effective_output, export_format, display_names)
    console.print(f"\n[dim]Saved to: {saved}[/dim]")


if __name__ == "__main__":
    main()

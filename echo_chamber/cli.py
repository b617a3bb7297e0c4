"""Click CLI: config loading, persona selection, debate run, and output."""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from echo_chamber.errors import InvalidRequestError
from echo_chamber.healthcheck import run_health_checks
from echo_chamber.inbox import apply_metadata, archive_file, ensure_dirs, parse_file, scan_inbox
from echo_chamber.metrics import EfficiencyTracker, RandomEstimator, TokenCountEstimator
from echo_chamber.models import DebateConfig, DebateSession, SessionState, SummaryLength, TranscriptItem
from echo_chamber.orchestrator import DebateOrchestrator
from echo_chamber.output import print_transcript, save_to_file
from echo_chamber.personas import filter_personas, select_personas
from echo_chamber.providers.anthropic import AnthropicProvider
from echo_chamber.providers.base import CompletionFailure, CompletionService
from echo_chamber.providers.gemini import GeminiProvider
from echo_chamber.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

SDK_CLASSES: dict[str, type[CompletionService]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "google-genai": GeminiProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_service(config: AppConfig, provider_name: str, timeout_sec: int | None = None) -> CompletionService:
    """Instantiate the configured Completion Service adapter.

    Raises:
        click.UsageError: Unknown or unavailable provider, or unknown sdk.
    """
    if provider_name not in config.models:
        raise click.UsageError(f"Unknown provider '{provider_name}'. Configured: {', '.join(config.models)}")
    if provider_name not in config.available_providers:
        env = config.models[provider_name].api_key_env
        raise click.UsageError(f"Provider '{provider_name}' has no API key. Set {env} in .env.")
    model_cfg = config.models[provider_name]
    if model_cfg.sdk not in SDK_CLASSES:
        raise click.UsageError(f"Provider '{provider_name}' uses unsupported sdk '{model_cfg.sdk}'")
    if timeout_sec is not None:
        model_cfg = replace(model_cfg, timeout_sec=timeout_sec)
    return SDK_CLASSES[model_cfg.sdk](model_cfg)


def _build_tracker(mode: str) -> EfficiencyTracker:
    if mode == "tokens":
        return EfficiencyTracker(TokenCountEstimator())
    return EfficiencyTracker(RandomEstimator())


def _resolve_debate_config(
    base: DebateConfig,
    frequency: int | None,
    length: str | None,
    no_summarization: bool,
    summaries_in_context: bool,
) -> DebateConfig:
    """CLI flags override the settings.yaml defaults."""
    return DebateConfig(
        summarization_enabled=base.summarization_enabled and not no_summarization,
        summary_frequency=frequency if frequency is not None else base.summary_frequency,
        summary_length=SummaryLength(length) if length else base.summary_length,
        summaries_in_context=base.summaries_in_context or summaries_in_context,
    )


def _persona_names(personas_arg: str | list[str] | None, defaults: list[str]) -> list[str]:
    if isinstance(personas_arg, list):
        return [str(n).strip() for n in personas_arg if str(n).strip()]
    if personas_arg:
        return [n.strip() for n in personas_arg.split(",") if n.strip()]
    return list(defaults)


def _print_personas(config: AppConfig, filter_text: str) -> None:
    matches = filter_personas(config.personas, filter_text)
    if not matches:
        console.print(f"No personas match '{filter_text}'.")
        return
    for persona in matches:
        caps = ", ".join(sorted(persona.capabilities)) or "none"
        console.print(f"[bold]{persona.name}[/bold] [dim](capabilities: {caps})[/dim]")


def _check_service(service: CompletionService) -> None:
    """Ping the service; exit if it is unreachable."""
    console.print("\n[bold]Checking provider...[/bold]")
    results = asyncio.run(run_health_checks({service.name(): service}))
    ok, err = results[service.name()]
    if ok:
        console.print(f"  [green]OK  [/green] {service.name()} ({service.model_string()})\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {service.name()}: {short_err}")
    sys.exit(1)


async def _run_single(
    query: str,
    persona_names: list[str],
    debate_config: DebateConfig,
    config: AppConfig,
    service: CompletionService,
    metrics_mode: str,
    output_dir: Path,
    slug_override: str | None = None,
) -> DebateSession:
    """Run one debate, print it, save it, and return the finished session.

    Raises:
        InvalidRequestError: Unknown personas, empty selection, or blank query.
    """
    personas = select_personas(config.personas, persona_names)

    mode = "RECURRENT SUMMARIZATION" if debate_config.summarization_enabled else "LINEAR DEBATE"
    console.print(f"\n[bold cyan]Echo Chamber[/bold cyan]: {len(personas)} personas [{mode}]")
    console.print(f"Personas: {', '.join(p.name for p in personas)}")
    console.print(f"Provider: {service.name()} ({service.model_string()})")
    console.print(f"Query: [italic]{query[:80]}{'...' if len(query) > 80 else ''}[/italic]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Initializing recurrent debate...", total=None)

        def on_event(item: TranscriptItem) -> None:
            if item.label:
                progress.update(task, description=f"{item.label} done")

        orchestrator = DebateOrchestrator(
            service,
            call_params=config.call_params,
            tracker=_build_tracker(metrics_mode),
            on_event=on_event,
        )
        session = await orchestrator.debate(query, personas, debate_config)

    print_transcript(session)
    saved_path = save_to_file(session, output_dir, slug_override=slug_override)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return session


async def _run_inbox(
    config: AppConfig,
    service: CompletionService,
    inbox_dir: Path,
    archive_dir: Path,
    personas_cli: str | None,
    debate_config: DebateConfig,
    metrics_mode: str,
    output_dir: Path,
) -> None:
    """Process all .md files in the inbox folder.

    Personas: CLI flag > frontmatter > config default. Summarization keys in
    frontmatter override the run-wide settings for that file only.
    """
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        query, meta = parse_file(file_path)
        effective_personas = personas_cli if personas_cli is not None else meta.get("personas")

        try:
            session = await _run_single(
                query=query,
                persona_names=_persona_names(effective_personas, config.defaults.personas),
                debate_config=apply_metadata(debate_config, meta),
                config=config,
                service=service,
                metrics_mode=metrics_mode,
                output_dir=output_dir,
                slug_override=file_path.stem,
            )
        except (InvalidRequestError, ValueError) as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)
            continue

        failed = session.state is not SessionState.COMPLETED
        archived = archive_file(file_path, archive_dir, failed=failed)
        click.echo(f"Processed: {file_path.name} -> {session.state.value} (archived: {archived.name})")


@click.command()
@click.argument("query", required=False)
@click.option("--file", "query_file", type=click.Path(exists=True), help="Read the query from a .md file")
@click.option("--personas", default=None, help="Comma-separated persona names, in speaking order")
@click.option("--list-personas", "list_filter", default=None, is_flag=False, flag_value="",
              help="List personas, optionally filtered by name substring, and exit")
@click.option("--frequency", default=None, type=click.IntRange(min=1), help="Summarize every N completed turns")
@click.option("--length", default=None, type=click.Choice([s.value for s in SummaryLength]),
              help="Summary length")
@click.option("--no-summarization", is_flag=True, help="Linear debate: no summaries, query-only context")
@click.option("--summaries-in-context", is_flag=True, help="Feed the latest summary to subsequent agents")
@click.option("--provider", default=None, help="Completion provider name (default: from config)")
@click.option("--metrics", "metrics_mode", default=None, type=click.Choice(["random", "tokens"]),
              help="Efficiency estimation: random (illustrative) or tokens (measured)")
@click.option("--timeout", "timeout_sec", default=None, type=click.IntRange(min=1), help="Per-call timeout in seconds")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--inbox", "use_inbox", is_flag=True, default=False, help="Process all .md files in inbox folder")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    query: str | None,
    query_file: str | None,
    personas: str | None,
    list_filter: str | None,
    frequency: int | None,
    length: str | None,
    no_summarization: bool,
    summaries_in_context: bool,
    provider: str | None,
    metrics_mode: str | None,
    timeout_sec: int | None,
    output_path: str | None,
    verbose: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
    skip_health_check: bool,
) -> None:
    """Echo Chamber -- sequential multi-persona debate with recurrent summarization.

    \b
    Examples:
      python -m echo_chamber.cli "Will remote work outlast the decade?"
      python -m echo_chamber.cli "Is AGI near?" --personas "Tech Futurist,Philosopher"
      python -m echo_chamber.cli "Crypto regulation?" --frequency 2 --length short
      python -m echo_chamber.cli --list-personas
      python -m echo_chamber.cli --inbox
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    if list_filter is not None:
        _print_personas(config, list_filter)
        return

    debate_config = _resolve_debate_config(
        config.defaults.debate, frequency, length, no_summarization, summaries_in_context
    )
    effective_metrics = metrics_mode or config.defaults.metrics
    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    try:
        service = _build_service(config, provider or config.defaults.provider, timeout_sec)
    except CompletionFailure as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    if not skip_health_check:
        _check_service(service)

    if use_inbox:
        inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
        asyncio.run(
            _run_inbox(
                config=config,
                service=service,
                inbox_dir=inbox_dir,
                archive_dir=config.inbox.archive_dir,
                personas_cli=personas,
                debate_config=debate_config,
                metrics_mode=effective_metrics,
                output_dir=effective_output,
            )
        )
        return

    if query_file:
        query_text, _ = parse_file(Path(query_file))
    elif query:
        query_text = query
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUERY argument, --file, or --inbox.")
        sys.exit(1)

    try:
        session = asyncio.run(
            _run_single(
                query=query_text,
                persona_names=_persona_names(personas, config.defaults.personas),
                debate_config=debate_config,
                config=config,
                service=service,
                metrics_mode=effective_metrics,
                output_dir=effective_output,
            )
        )
    except InvalidRequestError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Debate cancelled.[/yellow]")
        sys.exit(130)

    if session.state is not SessionState.COMPLETED:
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Rich console output and markdown file save for debate sessions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from echo_chamber.metrics import efficiency_report
from echo_chamber.models import DebateSession, TranscriptItem, TranscriptKind

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_BORDER_STYLES: dict[TranscriptKind, str] = {
    TranscriptKind.USER: "cyan",
    TranscriptKind.AGENT: "dim",
    TranscriptKind.SUMMARY: "magenta",
    TranscriptKind.SYNTHESIS: "green",
    TranscriptKind.SYSTEM: "red",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _item_title(item: TranscriptItem) -> str:
    if item.kind is TranscriptKind.USER:
        return "USER QUERY"
    return item.label or item.kind.value.upper()


def print_item(item: TranscriptItem) -> None:
    """Print a single transcript item as a panel."""
    # model text may contain square brackets, so never parse it as rich markup
    body = Markdown(item.content) if item.kind in (TranscriptKind.AGENT, TranscriptKind.SYNTHESIS) else Text(item.content)
    console.print(
        Panel(
            body,
            title=f"[bold]{_item_title(item)}[/bold]",
            border_style=_BORDER_STYLES[item.kind],
        )
    )


def print_transcript(session: DebateSession) -> None:
    """Print the full transcript, status line, and efficiency report."""
    console.print(Rule("[bold cyan]Echo Chamber Transcript[/bold cyan]"))
    for item in session.transcript:
        print_item(item)
    print_status(session)


def print_status(session: DebateSession) -> None:
    console.print(
        Text(
            f"State: {session.state.value} | "
            f"Turns: {len(session.debate_chain)}/{len(session.selected_personas)} | "
            f"Summaries: {len(session.summaries)} | "
            f"Duration: {session.duration_sec:.1f}s",
            style="dim",
        )
    )
    if session.config.summarization_enabled:
        console.print(Panel(efficiency_report(session.metrics), title="SYSTEM METRICS", border_style="yellow"))


def render_markdown(session: DebateSession) -> str:
    """Render the session as a markdown document."""
    mode = "recurrent summarization" if session.config.summarization_enabled else "linear debate"
    lines: list[str] = [
        f"# Echo Chamber Debate: {session.user_query[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Personas:** {', '.join(session.persona_names)}",
        f"**Mode:** {mode}",
        f"**Summary frequency:** every {session.config.summary_frequency} turns "
        f"({session.config.summary_length.value})",
        f"**State:** {session.state.value}",
        f"**Duration:** {session.duration_sec:.1f}s",
        "",
        "---",
        "",
    ]

    for item in session.transcript:
        lines.append(f"## {_item_title(item).title()}")
        lines.append("")
        if item.kind is TranscriptKind.SUMMARY:
            lines.extend(f"> {line}" if line else ">" for line in item.content.splitlines())
        else:
            lines.append(item.content)
        lines.append("")

    if session.config.summarization_enabled:
        lines += ["## Context Efficiency", "", "```", efficiency_report(session.metrics), "```", ""]

    return "\n".join(lines)


def save_to_file(session: DebateSession, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full debate transcript as a markdown file.

    Args:
        session: The finished DebateSession.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the query text. Useful for inbox mode.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(session.user_query)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    filepath.write_text(render_markdown(session), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath

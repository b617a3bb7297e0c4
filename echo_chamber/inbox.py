"""Inbox folder scanning, frontmatter parsing, and archive logic."""

import shutil
from datetime import datetime
from pathlib import Path

import frontmatter

from config.config_loader import require_bool
from echo_chamber.models import DebateConfig, SummaryLength


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return all .md files in inbox_dir, sorted by mtime ascending (oldest first)."""
    files = list(inbox_dir.glob("*.md"))
    return sorted(files, key=lambda p: p.stat().st_mtime)


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown query file with optional YAML frontmatter.

    Returns:
        (query, metadata) where metadata may hold: personas (str, comma
        separated), frequency (int), length (str), summarization (bool).
        If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)


def apply_metadata(base: DebateConfig, meta: dict) -> DebateConfig:
    """Overlay frontmatter settings on a DebateConfig.

    Raises:
        ValueError: A setting has the wrong type or an invalid value.
    """
    return DebateConfig(
        summarization_enabled=require_bool(meta.get("summarization", base.summarization_enabled), "summarization"),
        summary_frequency=int(meta.get("frequency", base.summary_frequency)),
        summary_length=SummaryLength(str(meta.get("length", base.summary_length.value))),
        summaries_in_context=require_bool(meta.get("in_context", base.summaries_in_context), "in_context"),
    )


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move file to archive_dir with a timestamp prefix.

    Args:
        file_path: Source file to archive.
        archive_dir: Destination directory.
        failed: If True, prefix filename with "FAILED_".

    Returns:
        Path to the archived file.
    """
    timestamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    prefix = "FAILED_" if failed else ""
    dest = archive_dir / f"{prefix}{timestamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest

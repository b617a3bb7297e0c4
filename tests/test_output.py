"""Tests for echo_chamber/output.py."""

from pathlib import Path

import pytest

from echo_chamber.models import (
    DebateConfig,
    DebateEntry,
    DebateSession,
    EfficiencyMetrics,
    SessionState,
    TranscriptItem,
    TranscriptKind,
)
from echo_chamber.output import _slug, print_transcript, render_markdown, save_to_file
from tests.conftest import make_persona


def test_slug_basic():
    assert _slug("Will remote work outlast the decade?") == "will-remote-work-outlast-the-decade"


def test_slug_max_len():
    assert len(_slug("a" * 100)) <= 40


def test_slug_special_chars():
    result = _slug("AI vs. Jobs (2030)")
    assert "." not in result
    assert "(" not in result
    assert ")" not in result


@pytest.fixture
def finished_session() -> DebateSession:
    session = DebateSession(
        user_query="Will remote work outlast the decade?",
        selected_personas=(make_persona("Financial Analyst"), make_persona("Philosopher")),
        config=DebateConfig(summary_frequency=2),
        state=SessionState.COMPLETED,
        final_synthesis="## Consensus\nHybrid wins.",
        metrics=EfficiencyMetrics(82, 1200, 88, 1),
    )
    session.debate_chain.extend([DebateEntry("Financial Analyst", "Costs."), DebateEntry("Philosopher", "Ethics.")])
    session.transcript.extend(
        [
            TranscriptItem(TranscriptKind.USER, session.user_query),
            TranscriptItem(TranscriptKind.AGENT, "Costs.", label="Financial Analyst"),
            TranscriptItem(TranscriptKind.AGENT, "Ethics.", label="Philosopher"),
            TranscriptItem(TranscriptKind.SUMMARY, "Line one\n\nLine two", label="SUMMARY (after turn 2)"),
            TranscriptItem(TranscriptKind.SYNTHESIS, "## Consensus\nHybrid wins.", label="SYNTHESIS ENGINE (Final Report)"),
        ]
    )
    return session


def test_render_markdown_headers(finished_session):
    content = render_markdown(finished_session)
    assert content.startswith("# Echo Chamber Debate: Will remote work")
    assert "**Personas:** Financial Analyst, Philosopher" in content
    assert "**Mode:** recurrent summarization" in content
    assert "**State:** completed" in content


def test_render_markdown_transcript_order(finished_session):
    content = render_markdown(finished_session)
    assert content.index("Costs.") < content.index("Ethics.") < content.index("Hybrid wins.")


def test_render_markdown_quotes_summaries(finished_session):
    content = render_markdown(finished_session)
    assert "> Line one\n>\n> Line two" in content


def test_render_markdown_efficiency_report(finished_session):
    content = render_markdown(finished_session)
    assert "CONTEXT EFFICIENCY REPORT" in content
    assert "Compression Ratio: 82%" in content


def test_render_markdown_linear_debate_has_no_report(finished_session):
    finished_session.config = DebateConfig(summarization_enabled=False)
    content = render_markdown(finished_session)
    assert "**Mode:** linear debate" in content
    assert "CONTEXT EFFICIENCY REPORT" not in content


def test_render_markdown_shows_errors(finished_session):
    finished_session.state = SessionState.FAILED
    finished_session.transcript.append(TranscriptItem(TranscriptKind.SYSTEM, "Error: [mock] down", label="SYSTEM ERROR"))
    content = render_markdown(finished_session)
    assert "## System Error" in content
    assert "Error: [mock] down" in content


def test_save_to_file_creates_file(tmp_path: Path, finished_session):
    saved = save_to_file(finished_session, tmp_path / "output")
    assert saved.exists()
    assert saved.suffix == ".md"
    assert "Hybrid wins." in saved.read_text(encoding="utf-8")


def test_save_to_file_creates_output_dir(tmp_path: Path, finished_session):
    output_dir = tmp_path / "nested" / "output"
    assert not output_dir.exists()
    save_to_file(finished_session, output_dir)
    assert output_dir.exists()


def test_save_to_file_filename_has_slug(tmp_path: Path, finished_session):
    saved = save_to_file(finished_session, tmp_path)
    assert saved.name.endswith("_will-remote-work-outlast-the-decade.md")


def test_save_to_file_slug_override(tmp_path: Path, finished_session):
    saved = save_to_file(finished_session, tmp_path, slug_override="queued-question")
    assert saved.name.endswith("_queued-question.md")


def test_print_transcript_renders_every_item(finished_session, capsys):
    print_transcript(finished_session)
    out = capsys.readouterr().out
    assert "USER QUERY" in out
    assert "Financial Analyst" in out
    assert "SUMMARY (after turn 2)" in out
    assert "SYSTEM METRICS" in out

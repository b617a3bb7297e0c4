"""Tests for CLI wiring in echo_chamber/cli.py."""

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

import echo_chamber.cli as cli
from echo_chamber.cli import (
    _build_service,
    _build_tracker,
    _persona_names,
    _resolve_debate_config,
    _run_inbox,
    _run_single,
    main,
)
from echo_chamber.metrics import TokenCountEstimator
from echo_chamber.models import DebateConfig, SessionState, SummaryLength
from echo_chamber.providers.openai_provider import OpenAIProvider
from tests.conftest import MockService


def test_resolve_debate_config_keeps_defaults():
    base = DebateConfig(summary_frequency=3, summary_length=SummaryLength.SHORT)
    assert _resolve_debate_config(base, None, None, False, False) == base


def test_resolve_debate_config_flags_override():
    base = DebateConfig(summary_frequency=3)
    config = _resolve_debate_config(base, 1, "detailed", True, True)
    assert config.summary_frequency == 1
    assert config.summary_length is SummaryLength.DETAILED
    assert config.summarization_enabled is False
    assert config.summaries_in_context is True


def test_persona_names_from_arg():
    assert _persona_names("Philosopher, Tech Futurist", ["A"]) == ["Philosopher", "Tech Futurist"]


def test_persona_names_from_list():
    assert _persona_names(["Philosopher", " B "], ["A"]) == ["Philosopher", "B"]


def test_persona_names_default():
    assert _persona_names(None, ["A", "B"]) == ["A", "B"]


def test_build_tracker_tokens_mode():
    tracker = _build_tracker("tokens")
    assert isinstance(tracker._estimator, TokenCountEstimator)


def test_build_service_unknown_provider(sample_app_config):
    with pytest.raises(click.UsageError, match="Unknown provider"):
        _build_service(sample_app_config, "mistral")


def test_build_service_missing_key(sample_app_config):
    sample_app_config.available_providers = set()
    with pytest.raises(click.UsageError, match="OPENAI_API_KEY"):
        _build_service(sample_app_config, "openai")


def test_build_service_applies_timeout(sample_app_config, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    service = _build_service(sample_app_config, "openai", timeout_sec=5)
    assert isinstance(service, OpenAIProvider)
    assert service._config.timeout_sec == 5


def test_build_service_timeout_does_not_leak_into_config(sample_app_config, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    _build_service(sample_app_config, "openai", timeout_sec=5)
    assert sample_app_config.models["openai"].timeout_sec == 60

    service = _build_service(sample_app_config, "openai")
    assert service._config.timeout_sec == 60


async def test_run_single_saves_transcript(sample_app_config, tmp_path: Path):
    service = MockService()
    session = await _run_single(
        query="Is AGI near?",
        persona_names=["A", "B", "C"],
        debate_config=DebateConfig(summary_frequency=2),
        config=sample_app_config,
        service=service,
        metrics_mode="tokens",
        output_dir=tmp_path,
    )
    assert session.state is SessionState.COMPLETED
    assert service.calls == ["agent(A)", "agent(B)", "summary", "agent(C)", "synthesis"]
    saved = list(tmp_path.glob("*_is-agi-near.md"))
    assert len(saved) == 1


async def test_run_inbox_archives_processed_and_failed(sample_app_config, tmp_path: Path):
    inbox = tmp_path / "inbox"
    archive = tmp_path / "archive"
    inbox.mkdir()
    (inbox / "good.md").write_text("---\npersonas: A,B\n---\nGood question?", encoding="utf-8")
    (inbox / "bad.md").write_text("---\npersonas: Nobody\n---\nBad question?", encoding="utf-8")

    await _run_inbox(
        config=sample_app_config,
        service=MockService(),
        inbox_dir=inbox,
        archive_dir=archive,
        personas_cli=None,
        debate_config=DebateConfig(),
        metrics_mode="random",
        output_dir=tmp_path / "out",
    )

    archived = sorted(p.name for p in archive.iterdir())
    assert any(n.endswith("_good.md") and not n.startswith("FAILED_") for n in archived)
    assert any(n.startswith("FAILED_") and n.endswith("_bad.md") for n in archived)
    assert list(inbox.glob("*.md")) == []


def test_main_list_personas():
    result = CliRunner().invoke(main, ["--list-personas", "tech"])
    assert result.exit_code == 0
    assert "Tech Futurist" in result.output
    assert "Philosopher" not in result.output


def test_main_runs_debate(monkeypatch, tmp_path: Path):
    service = MockService()
    monkeypatch.setattr(cli, "_build_service", lambda config, name, timeout_sec=None: service)

    result = CliRunner().invoke(
        main,
        ["Is AGI near?", "--personas", "Philosopher,Tech Futurist", "--skip-health-check", "--output", str(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    assert len(service.calls) == 3
    assert service.calls[-1] == "synthesis"
    assert len(list(tmp_path.glob("*.md"))) == 1


def test_main_unknown_persona_exits(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(cli, "_build_service", lambda config, name, timeout_sec=None: MockService())

    result = CliRunner().invoke(main, ["Q?", "--personas", "Nobody", "--skip-health-check", "--output", str(tmp_path)])

    assert result.exit_code == 1
    assert "Unknown persona" in result.output


def test_main_failed_debate_exits_nonzero(monkeypatch, tmp_path: Path):
    service = MockService(fail_on={"synthesis"})
    monkeypatch.setattr(cli, "_build_service", lambda config, name, timeout_sec=None: service)

    result = CliRunner().invoke(
        main,
        ["Q?", "--personas", "Philosopher,Tech Futurist", "--skip-health-check", "--output", str(tmp_path)],
    )

    assert result.exit_code == 1


def test_main_requires_query(monkeypatch):
    monkeypatch.setattr(cli, "_build_service", lambda config, name, timeout_sec=None: MockService())
    result = CliRunner().invoke(main, ["--skip-health-check"])
    assert result.exit_code == 1
    assert "Provide a QUERY" in result.output

"""Integration tests: real API calls, no mocks. Requires .env with an API key."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

load_dotenv()

pytestmark = pytest.mark.integration

if not os.environ.get("OPENAI_API_KEY", "").strip():
    pytestmark = pytest.mark.skip(reason="Needs OPENAI_API_KEY")


async def test_full_debate_pipeline(tmp_path: Path):
    """Run a real three-persona debate with a summary, verify no crash."""
    from config.config_loader import load_config
    from echo_chamber.cli import _build_service
    from echo_chamber.models import DebateConfig, SessionState, SummaryLength
    from echo_chamber.orchestrator import DebateOrchestrator
    from echo_chamber.output import save_to_file
    from echo_chamber.personas import select_personas

    config = load_config()
    service = _build_service(config, "openai")
    personas = select_personas(config.personas, ["Financial Analyst", "Tech Futurist", "Philosopher"])
    debate_config = DebateConfig(summary_frequency=2, summary_length=SummaryLength.SHORT)

    session = await DebateOrchestrator(service, call_params=config.call_params).debate(
        "Should a mid-size city invest in autonomous buses?", personas, debate_config
    )

    assert session.state is SessionState.COMPLETED, session.error
    assert len(session.debate_chain) == 3
    assert all(e.response_text for e in session.debate_chain)
    assert len(session.summaries) == 1
    assert session.final_synthesis

    saved = save_to_file(session, tmp_path / "output")
    content = saved.read_text(encoding="utf-8")
    assert "Echo Chamber Debate" in content
    assert len(content) > 500

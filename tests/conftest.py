"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, CallParams, DefaultsConfig, ModelConfig
from echo_chamber.context import SUMMARY_SYSTEM_PROMPT, SYNTHESIS_SYSTEM_PROMPT
from echo_chamber.models import (
    CompletionRequest,
    CompletionResponse,
    DebateConfig,
    DebateEntry,
    Persona,
    SummaryLength,
)
from echo_chamber.providers.base import CompletionFailure, CompletionService


def make_persona(name: str) -> Persona:
    return Persona(name=name, system_prompt=f"persona:{name}")


def call_label(request: CompletionRequest) -> str:
    """Classify a request as agent(<name>), summary, or synthesis."""
    if request.system_prompt == SUMMARY_SYSTEM_PROMPT:
        return "summary"
    if request.system_prompt == SYNTHESIS_SYSTEM_PROMPT:
        return "synthesis"
    if request.system_prompt.startswith("persona:"):
        return f"agent({request.system_prompt.removeprefix('persona:')})"
    return "other"


class MockService(CompletionService):
    """Scripted Completion Service double.

    Records every call label and request; raises CompletionFailure for labels
    listed in fail_on; replies with replies[label] or "<label> says hello".
    """

    def __init__(
        self,
        service_name: str = "mock",
        fail_on: set[str] | None = None,
        replies: dict[str, str] | None = None,
    ) -> None:
        self._name = service_name
        self.fail_on = fail_on or set()
        self.replies = replies or {}
        self.calls: list[str] = []
        self.requests: list[CompletionRequest] = []
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because complete is defined in the class body below.
        self.complete = AsyncMock(side_effect=self._respond)  # type: ignore[method-assign]

    async def _respond(self, request: CompletionRequest) -> CompletionResponse:
        label = call_label(request)
        self.calls.append(label)
        self.requests.append(request)
        if label in self.fail_on:
            raise CompletionFailure(self._name, f"{label} unavailable")
        return CompletionResponse(
            text=self.replies.get(label, f"{label} says hello"),
            provider=self._name,
            model="mock-model",
            latency_sec=0.1,
            token_count=10,
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def complete(self, request: CompletionRequest) -> CompletionResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return CompletionResponse(text="OK", provider=self._name, model="mock-model")

    def requests_for(self, label: str) -> list[CompletionRequest]:
        return [r for r, l in zip(self.requests, self.calls) if l == label]


@pytest.fixture
def mock_service() -> MockService:
    return MockService()


@pytest.fixture
def three_personas() -> list[Persona]:
    return [make_persona("A"), make_persona("B"), make_persona("C")]


@pytest.fixture
def sample_query() -> str:
    return "Will remote work outlast the decade?"


@pytest.fixture
def debate_config() -> DebateConfig:
    return DebateConfig(summarization_enabled=True, summary_frequency=2, summary_length=SummaryLength.MEDIUM)


@pytest.fixture
def sample_chain() -> list[DebateEntry]:
    return [
        DebateEntry("Financial Analyst", "Office leases are a sunk cost."),
        DebateEntry("Tech Futurist", "VR offices will make the question moot."),
        DebateEntry("Philosopher", "What do we owe colleagues we never meet?"),
    ]


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        base_url=None,
    )


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    personas = {p.name: p for p in (make_persona("A"), make_persona("B"), make_persona("C"))}
    model_cfg = ModelConfig(
        name="openai",
        sdk="openai",
        model="gpt-4o-mini",
        api_key_env="OPENAI_API_KEY",
        timeout_sec=60,
    )
    return AppConfig(
        defaults=DefaultsConfig(
            provider="openai",
            output_dir=tmp_path / "output",
            debate=DebateConfig(summary_frequency=2),
            personas=["A", "B"],
        ),
        models={"openai": model_cfg},
        personas=personas,
        call_params=CallParams(),
        available_providers={"openai"},
    )

"""Dataclasses for the Echo Chamber debate pipeline. No I/O, no deps."""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    REQUESTER = "requester"
    ASSISTANT = "assistant"


class SummaryLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    DETAILED = "detailed"


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED})


class SessionErrorKind(str, Enum):
    AGENT_CALL = "agent_call"
    SYNTHESIS = "synthesis"


class TranscriptKind(str, Enum):
    USER = "user"
    AGENT = "agent"
    SUMMARY = "summary"
    SYNTHESIS = "synthesis"
    SYSTEM = "system"


@dataclass(frozen=True)
class Persona:
    name: str
    system_prompt: str
    capabilities: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Fragment:
    role: Role
    text: str


@dataclass(frozen=True)
class PromptPair:
    system_prompt: str
    user_prompt: str


@dataclass(frozen=True)
class CompletionRequest:
    system_prompt: str
    messages: tuple[Fragment, ...]
    max_output_tokens: int
    temperature: float


@dataclass(frozen=True)
class CompletionResponse:
    text: str
    provider: str          # service name, e.g. "openai"
    model: str             # actual model string used
    latency_sec: float = 0.0
    token_count: int | None = None


@dataclass(frozen=True)
class DebateEntry:
    persona_name: str
    response_text: str


@dataclass(frozen=True)
class SummaryEntry:
    after_turn_index: int  # 0-based index of the last summarized DebateEntry
    summary_text: str
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class DebateConfig:
    summarization_enabled: bool = True
    summary_frequency: int = 3
    summary_length: SummaryLength = SummaryLength.MEDIUM
    summaries_in_context: bool = False  # feed the latest summary back to agents

    def __post_init__(self) -> None:
        if self.summary_frequency < 1:
            raise ValueError(f"summary_frequency must be >= 1, got {self.summary_frequency}")


@dataclass(frozen=True)
class EfficiencyMetrics:
    compression_percent: int = 0
    tokens_saved_cumulative: int = 0
    quality_percent: int = 0
    summaries_generated: int = 0


@dataclass(frozen=True)
class SessionError:
    kind: SessionErrorKind
    message: str
    persona_name: str | None = None


@dataclass(frozen=True)
class TranscriptItem:
    kind: TranscriptKind
    content: str
    label: str = ""        # persona name, "SYNTHESIS ENGINE", "SYSTEM ERROR", ...


@dataclass
class DebateSession:
    user_query: str
    selected_personas: tuple[Persona, ...]
    config: DebateConfig
    debate_chain: list[DebateEntry] = field(default_factory=list)
    summaries: list[SummaryEntry] = field(default_factory=list)
    transcript: list[TranscriptItem] = field(default_factory=list)
    final_synthesis: str | None = None
    metrics: EfficiencyMetrics = field(default_factory=EfficiencyMetrics)
    state: SessionState = SessionState.IDLE
    error: SessionError | None = None
    started_at: float = field(default_factory=time.monotonic)
    duration_sec: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def persona_names(self) -> list[str]:
        return [p.name for p in self.selected_personas]

"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from echo_chamber.models import DebateConfig, Persona, SummaryLength

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    base_url: str | None = None


@dataclass(frozen=True)
class CallSettings:
    max_output_tokens: int
    temperature: float

    def __post_init__(self) -> None:
        if self.max_output_tokens < 1:
            raise ValueError(f"max_output_tokens must be >= 1, got {self.max_output_tokens}")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be in [0, 1], got {self.temperature}")


@dataclass(frozen=True)
class CallParams:
    agent: CallSettings = CallSettings(max_output_tokens=2000, temperature=0.7)
    summary: CallSettings = CallSettings(max_output_tokens=1000, temperature=0.3)
    synthesis: CallSettings = CallSettings(max_output_tokens=2000, temperature=0.5)


@dataclass
class DefaultsConfig:
    provider: str
    output_dir: Path
    debate: DebateConfig = field(default_factory=DebateConfig)
    personas: list[str] = field(default_factory=list)
    metrics: str = "random"  # "random" or "tokens"


@dataclass
class InboxConfig:
    dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    personas: dict[str, Persona]
    call_params: CallParams = field(default_factory=CallParams)
    inbox: InboxConfig = field(default_factory=InboxConfig)
    available_providers: set[str] = field(default_factory=set)


def _load_call_settings(raw: dict | None, fallback: CallSettings) -> CallSettings:
    if not raw:
        return fallback
    return CallSettings(
        max_output_tokens=int(raw.get("max_output_tokens", fallback.max_output_tokens)),
        temperature=float(raw.get("temperature", fallback.temperature)),
    )


def require_bool(value: object, key: str) -> bool:
    """Return value if it is a YAML boolean; quoted strings like "false" are rejected."""
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def load_debate_config(raw: dict | None) -> DebateConfig:
    """Build a DebateConfig from a summarization mapping; missing keys keep defaults."""
    base = DebateConfig()
    if not raw:
        return base
    return DebateConfig(
        summarization_enabled=require_bool(raw.get("enabled", base.summarization_enabled), "summarization.enabled"),
        summary_frequency=int(raw.get("frequency", base.summary_frequency)),
        summary_length=SummaryLength(str(raw.get("length", base.summary_length.value))),
        summaries_in_context=require_bool(raw.get("in_context", base.summaries_in_context), "summarization.in_context"),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on invalid
    values. Logs missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        output_dir=Path(defaults_raw["output_dir"]),
        debate=load_debate_config(defaults_raw.get("summarization")),
        personas=list(defaults_raw.get("personas", [])),
        metrics=str(defaults_raw.get("metrics", "random")),
    )
    if defaults.metrics not in ("random", "tokens"):
        raise ValueError(f"defaults.metrics must be 'random' or 'tokens', got {defaults.metrics!r}")

    personas: dict[str, Persona] = {}
    for persona_name, persona_raw in raw.get("personas", {}).items():
        personas[persona_name] = Persona(
            name=persona_name,
            system_prompt=str(persona_raw["system"]).strip(),
            capabilities=frozenset(persona_raw.get("capabilities", [])),
        )

    unknown = [n for n in defaults.personas if n not in personas]
    if unknown:
        raise ValueError(f"defaults.personas references unknown personas: {', '.join(unknown)}")

    calls_raw = raw.get("call_params", {})
    base_calls = CallParams()
    call_params = CallParams(
        agent=_load_call_settings(calls_raw.get("agent"), base_calls.agent),
        summary=_load_call_settings(calls_raw.get("summary"), base_calls.summary),
        synthesis=_load_call_settings(calls_raw.get("synthesis"), base_calls.synthesis),
    )

    inbox_raw = raw.get("inbox", {})
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        personas=personas,
        call_params=call_params,
        inbox=inbox,
        available_providers=available_providers,
    )

"""Context efficiency metrics: compression, tokens saved, summary quality.

Figures come from a pluggable estimator. RandomEstimator reproduces the
illustrative numbers shown by the web UI; TokenCountEstimator derives them from
the sizes of the raw history and the context actually sent.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, replace

from echo_chamber.models import DebateConfig, EfficiencyMetrics

logger = logging.getLogger(__name__)

_CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token count (about 4 characters per token)."""
    if not text:
        return 0
    return math.ceil(len(text) / _CHARS_PER_TOKEN)


def count_tokens(texts: Iterable[str]) -> int:
    return sum(estimate_tokens(t) for t in texts)


@dataclass(frozen=True)
class TurnOutcome:
    raw_context_tokens: int = 0     # query plus every prior response
    sent_context_tokens: int = 0    # what the agent actually received
    entries_total: int = 0          # prior responses that existed
    entries_covered: int = 0        # prior responses visible raw or through a summary


@dataclass(frozen=True)
class Estimate:
    compression_percent: int
    tokens_saved: int
    quality_percent: int


def _clamp_percent(value: float) -> int:
    return int(round(min(100.0, max(0.0, value))))


class MetricsEstimator(ABC):
    @abstractmethod
    def estimate(self, outcome: TurnOutcome) -> Estimate:
        ...


class RandomEstimator(MetricsEstimator):
    """Bounded pseudo-random figures. Nondeterministic unless seeded."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def estimate(self, outcome: TurnOutcome) -> Estimate:
        return Estimate(
            compression_percent=_clamp_percent(60 + self._rng.random() * 30),
            tokens_saved=self._rng.randrange(500, 2500),
            quality_percent=_clamp_percent(70 + self._rng.random() * 25),
        )


class TokenCountEstimator(MetricsEstimator):
    """Deterministic figures from context sizes.

    compression: share of the raw history left out of the agent input.
    quality: share of prior responses still visible to the agent, either raw
    or through the summary it received.
    """

    def estimate(self, outcome: TurnOutcome) -> Estimate:
        raw = outcome.raw_context_tokens
        sent = outcome.sent_context_tokens
        compression = 0.0 if raw == 0 else 100.0 * (1 - sent / raw)
        if outcome.entries_total == 0:
            quality = 100.0
        else:
            quality = 100.0 * outcome.entries_covered / outcome.entries_total
        return Estimate(
            compression_percent=_clamp_percent(compression),
            tokens_saved=max(0, raw - sent),
            quality_percent=_clamp_percent(quality),
        )


class EfficiencyTracker:
    """Running EfficiencyMetrics for one session. Observability only."""

    def __init__(self, estimator: MetricsEstimator | None = None) -> None:
        self._estimator = estimator or RandomEstimator()
        self._metrics = EfficiencyMetrics()

    @property
    def metrics(self) -> EfficiencyMetrics:
        return self._metrics

    def reset(self) -> None:
        self._metrics = EfficiencyMetrics()

    def record_turn(self, config: DebateConfig, outcome: TurnOutcome) -> EfficiencyMetrics:
        """Fold one completed turn into the metrics and return the new snapshot.

        Compression and quality are recomputed each call; tokens saved only
        grows. With summarization disabled no compression is
        applied, so the snapshot is returned unchanged.
        """
        if not config.summarization_enabled:
            return self._metrics

        est = self._estimator.estimate(outcome)
        self._metrics = replace(
            self._metrics,
            compression_percent=est.compression_percent,
            tokens_saved_cumulative=self._metrics.tokens_saved_cumulative + max(0, est.tokens_saved),
            quality_percent=est.quality_percent,
        )
        logger.debug("Efficiency metrics: %s", self._metrics)
        return self._metrics

    def record_summary(self) -> EfficiencyMetrics:
        """Count one stored summary and return the new snapshot."""
        self._metrics = replace(self._metrics, summaries_generated=self._metrics.summaries_generated + 1)
        return self._metrics


def efficiency_report(metrics: EfficiencyMetrics) -> str:
    return "\n".join(
        [
            "--- CONTEXT EFFICIENCY REPORT ---",
            f"Compression Ratio: {metrics.compression_percent}%",
            f"Tokens Saved: {metrics.tokens_saved_cumulative}",
            f"Summary Quality: {metrics.quality_percent}%",
            f"Summaries Generated: {metrics.summaries_generated}",
        ]
    )

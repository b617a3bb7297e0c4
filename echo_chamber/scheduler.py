"""Decide when a recurrent summary is due."""

from echo_chamber.models import DebateConfig


def should_summarize(turns_completed: int, chain_length: int, config: DebateConfig) -> bool:
    """Return True when a summary should run before the next agent turn.

    Counts turns already completed, not the upcoming one: with a frequency of
    3 the summary fires once turns 3, 6, 9... have finished.
    """
    if not config.summarization_enabled:
        return False
    if turns_completed < 1 or chain_length < 1:
        return False
    return turns_completed % config.summary_frequency == 0

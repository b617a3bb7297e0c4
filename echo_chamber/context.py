"""Context building: per-turn agent input, summary prompts, synthesis prompts."""

import logging
from collections.abc import Sequence

from echo_chamber.errors import InsufficientHistoryError
from echo_chamber.models import (
    DebateConfig,
    DebateEntry,
    Fragment,
    PromptPair,
    Role,
    SummaryEntry,
    SummaryLength,
)

logger = logging.getLogger(__name__)

# Raw responses handed to the next agent; bounds context growth regardless of chain length
CONTEXT_WINDOW = 2

LENGTH_GUIDANCE: dict[SummaryLength, str] = {
    SummaryLength.SHORT: "100-200 words",
    SummaryLength.MEDIUM: "200-400 words",
    SummaryLength.DETAILED: "400-600 words",
}

SUMMARY_SYSTEM_PROMPT = """\
You are a Debate Summarization Engine. Your task is to create a concise, structured \
summary of the debate progression so far. Focus on:
- Key arguments and counterarguments
- Evolution of the discussion
- Major points of consensus and disagreement
- Critical insights from each perspective
Maintain objectivity and preserve the core reasoning from each agent."""

SUMMARY_USER_TEMPLATE = """\
Please provide a comprehensive summary of the debate progression in {length}.

DEBATE HISTORY:
{history}

Create a structured summary that captures:
1. The main question/topic
2. Key perspectives and their evolution
3. Major arguments and counterarguments
4. Points of agreement and ongoing disagreement
5. Critical insights and novel ideas

Focus on the progression of thought rather than reproducing every detail."""

SYNTHESIS_SYSTEM_PROMPT = """\
You are the Final Synthesis Engine. Analyze the debate and deliver a comprehensive, \
structured synthesis report.

Key considerations:
- Identify the evolution of arguments
- Highlight points of consensus and disagreement
- Note any novel insights or paradigm shifts
- Provide balanced conclusions

Deliver a final integrated report."""

SYNTHESIS_USER_TEMPLATE = """\
ORIGINAL QUERY: {query}

DEBATE HISTORY:
{history}

Deliver a final integrated report."""


def format_debate_history(debate_chain: Sequence[DebateEntry]) -> str:
    """Serialize every entry in chain order as numbered AGENT blocks."""
    return "\n\n".join(
        f"AGENT {n} ({entry.persona_name}):\n{entry.response_text}"
        for n, entry in enumerate(debate_chain, start=1)
    )


def build_agent_input(
    user_query: str,
    debate_chain: Sequence[DebateEntry],
    agent_index: int,
    config: DebateConfig,
    summaries: Sequence[SummaryEntry] = (),
) -> tuple[Fragment, ...]:
    """Build the role-tagged fragments for one agent turn.

    The first fragment is always the raw query. From the second agent on, and
    only with summarization enabled, the last two responses follow it, most
    recent last. With summaries_in_context set, the latest summary sits
    between the query and that window.
    """
    query_fragment = Fragment(role=Role.REQUESTER, text=user_query)
    if not config.summarization_enabled or agent_index == 0:
        return (query_fragment,)

    fragments = [query_fragment]
    if config.summaries_in_context and summaries:
        latest = summaries[-1]
        fragments.append(
            Fragment(
                role=Role.ASSISTANT,
                text=f"DEBATE SUMMARY (after turn {latest.after_turn_index + 1}):\n{latest.summary_text}",
            )
        )
    for entry in debate_chain[-CONTEXT_WINDOW:]:
        fragments.append(
            Fragment(
                role=Role.ASSISTANT,
                text=f"PREVIOUS AGENT ({entry.persona_name}):\n{entry.response_text}",
            )
        )

    logger.debug("Agent %d context: %d fragments", agent_index, len(fragments))
    return tuple(fragments)


def build_summary_input(debate_chain: Sequence[DebateEntry], summary_length: SummaryLength) -> PromptPair:
    """Build the summarizer prompts over the whole chain so far.

    Raises:
        InsufficientHistoryError: If fewer than 2 entries exist.
    """
    if len(debate_chain) < 2:
        raise InsufficientHistoryError("summary", len(debate_chain))
    user_prompt = SUMMARY_USER_TEMPLATE.format(
        length=LENGTH_GUIDANCE[summary_length],
        history=format_debate_history(debate_chain),
    )
    return PromptPair(system_prompt=SUMMARY_SYSTEM_PROMPT, user_prompt=user_prompt)


def build_synthesis_input(user_query: str, debate_chain: Sequence[DebateEntry]) -> PromptPair:
    """Build the synthesizer prompts; synthesis sees the full history.

    Raises:
        InsufficientHistoryError: If fewer than 2 entries exist.
    """
    if len(debate_chain) < 2:
        raise InsufficientHistoryError("synthesis", len(debate_chain))
    user_prompt = SYNTHESIS_USER_TEMPLATE.format(
        query=user_query,
        history=format_debate_history(debate_chain),
    )
    return PromptPair(system_prompt=SYNTHESIS_SYSTEM_PROMPT, user_prompt=user_prompt)

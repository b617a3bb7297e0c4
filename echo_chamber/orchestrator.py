"""Debate orchestration: sequential persona turns, recurrent summaries, synthesis."""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from config.config_loader import CallParams, CallSettings
from echo_chamber.context import (
    CONTEXT_WINDOW,
    build_agent_input,
    build_summary_input,
    build_synthesis_input,
)
from echo_chamber.errors import InsufficientHistoryError, InvalidRequestError
from echo_chamber.metrics import EfficiencyTracker, TurnOutcome, count_tokens, estimate_tokens
from echo_chamber.models import (
    CompletionRequest,
    CompletionResponse,
    DebateConfig,
    DebateEntry,
    DebateSession,
    Fragment,
    Persona,
    Role,
    SessionError,
    SessionErrorKind,
    SessionState,
    SummaryEntry,
    TranscriptItem,
    TranscriptKind,
)
from echo_chamber.providers.base import CompletionFailure, CompletionService
from echo_chamber.scheduler import should_summarize

logger = logging.getLogger(__name__)

SYNTHESIS_LABEL = "SYNTHESIS ENGINE (Final Report)"
ERROR_LABEL = "SYSTEM ERROR"
WARNING_LABEL = "SYSTEM WARNING"


class DebateOrchestrator:
    """Drives one DebateSession from IDLE to a terminal state.

    Use one instance per session; the tracker and cancellation flag are
    per-instance state.
    """

    def __init__(
        self,
        service: CompletionService,
        call_params: CallParams | None = None,
        tracker: EfficiencyTracker | None = None,
        on_event: Callable[[TranscriptItem], None] | None = None,
        keep_partial: bool = False,
    ) -> None:
        self._service = service
        self._call_params = call_params or CallParams()
        self._tracker = tracker or EfficiencyTracker()
        self._on_event = on_event
        self._keep_partial = keep_partial
        self._cancel_event = asyncio.Event()
        self._session: DebateSession | None = None

    def start(self, user_query: str, personas: Sequence[Persona], config: DebateConfig) -> DebateSession:
        """Validate the request and return a RUNNING session.

        Raises:
            InvalidRequestError: Blank query, no personas, duplicate personas,
                or this orchestrator is still driving another session.
        """
        if self._session is not None and not self._session.is_terminal:
            raise InvalidRequestError("Orchestrator is already driving a session")
        if not user_query or not user_query.strip():
            raise InvalidRequestError("A non-empty query is required")
        if not personas:
            raise InvalidRequestError("At least one persona must be selected")
        names = [p.name for p in personas]
        if len(set(names)) != len(names):
            raise InvalidRequestError(f"Personas must be unique, got: {', '.join(names)}")

        self._tracker.reset()
        self._cancel_event.clear()
        session = DebateSession(
            user_query=user_query.strip(),
            selected_personas=tuple(personas),
            config=config,
        )
        session.state = SessionState.RUNNING
        self._session = session
        self._record(session, TranscriptItem(TranscriptKind.USER, session.user_query))
        logger.info(
            "Debate started: %d personas, summarization %s (every %d turns, %s)",
            len(personas),
            "on" if config.summarization_enabled else "off",
            config.summary_frequency,
            config.summary_length.value,
        )
        return session

    async def debate(
        self, user_query: str, personas: Sequence[Persona], config: DebateConfig
    ) -> DebateSession:
        """start() then run() in one call."""
        return await self.run(self.start(user_query, personas, config))

    def cancel(self) -> None:
        """Stop issuing calls once the in-flight one resolves."""
        self._cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    async def run(self, session: DebateSession) -> DebateSession:
        """Run every turn, then synthesis. Failures are recorded on the session, not raised.

        Raises:
            InvalidRequestError: If the session was not produced by start().
        """
        if session.state is not SessionState.RUNNING or session is not self._session:
            raise InvalidRequestError(f"Session is not ready to run (state: {session.state.value})")
        try:
            await self._run_turns(session)
            if session.state is SessionState.RUNNING:
                await self._run_synthesis(session)
        except asyncio.CancelledError:
            self._mark_cancelled(session)
            raise
        finally:
            session.duration_sec = time.monotonic() - session.started_at
        return session

    async def _run_turns(self, session: DebateSession) -> None:
        config = session.config
        total = len(session.selected_personas)

        for index, persona in enumerate(session.selected_personas):
            if self._stop_if_cancelled(session):
                return

            if index > 0 and should_summarize(index, len(session.debate_chain), config):
                await self._summarize(session, turns_completed=index)
                if self._stop_if_cancelled(session):
                    return

            fragments = build_agent_input(
                session.user_query, session.debate_chain, index, config, session.summaries
            )
            outcome = self._turn_outcome(session, fragments)

            logger.info("Turn %d/%d: %s", index + 1, total, persona.name)
            try:
                response = await self._call(self._call_params.agent, persona.system_prompt, fragments)
            except CompletionFailure as exc:
                logger.error("Agent %s failed on turn %d, aborting debate: %s", persona.name, index + 1, exc)
                self._fail(session, SessionErrorKind.AGENT_CALL, str(exc), persona.name)
                return

            session.debate_chain.append(DebateEntry(persona_name=persona.name, response_text=response.text))
            self._record(session, TranscriptItem(TranscriptKind.AGENT, response.text, label=persona.name))
            session.metrics = self._tracker.record_turn(config, outcome)

            if self._stop_if_cancelled(session):
                return

    async def _summarize(self, session: DebateSession, turns_completed: int) -> None:
        """Best-effort summary of the chain so far."""
        try:
            prompts = build_summary_input(session.debate_chain, session.config.summary_length)
        except InsufficientHistoryError as exc:
            logger.info("Skipping summary after turn %d: %s", turns_completed, exc)
            return

        logger.info("Summarizing debate after turn %d", turns_completed)
        try:
            response = await self._call(
                self._call_params.summary,
                prompts.system_prompt,
                (Fragment(Role.REQUESTER, prompts.user_prompt),),
            )
        except CompletionFailure as exc:
            logger.warning("Summary after turn %d failed, continuing without it: %s", turns_completed, exc)
            self._record(
                session,
                TranscriptItem(TranscriptKind.SYSTEM, f"Summary skipped: {exc}", label=WARNING_LABEL),
            )
            return

        entry = SummaryEntry(after_turn_index=turns_completed - 1, summary_text=response.text)
        session.summaries.append(entry)
        session.metrics = self._tracker.record_summary()
        self._record(
            session,
            TranscriptItem(TranscriptKind.SUMMARY, entry.summary_text, label=f"SUMMARY (after turn {turns_completed})"),
        )

    async def _run_synthesis(self, session: DebateSession) -> None:
        if len(session.debate_chain) < 2:
            logger.info("Skipping synthesis: %d debate entry", len(session.debate_chain))
            session.state = SessionState.COMPLETED
            return
        if self._stop_if_cancelled(session):
            return

        session.state = SessionState.SYNTHESIZING
        prompts = build_synthesis_input(session.user_query, session.debate_chain)
        logger.info("Running synthesis via %s", self._service.name())
        try:
            response = await self._call(
                self._call_params.synthesis,
                prompts.system_prompt,
                (Fragment(Role.REQUESTER, prompts.user_prompt),),
            )
        except CompletionFailure as exc:
            logger.error("Synthesis failed: %s", exc)
            self._fail(session, SessionErrorKind.SYNTHESIS, str(exc))
            return

        if self._stop_if_cancelled(session):
            return

        session.final_synthesis = response.text
        self._record(session, TranscriptItem(TranscriptKind.SYNTHESIS, response.text, label=SYNTHESIS_LABEL))
        session.state = SessionState.COMPLETED

    async def _call(
        self,
        settings: CallSettings,
        system_prompt: str,
        messages: Sequence[Fragment],
    ) -> CompletionResponse:
        """Call the service; anything other than CompletionFailure is wrapped in one."""
        request = CompletionRequest(
            system_prompt=system_prompt,
            messages=tuple(messages),
            max_output_tokens=settings.max_output_tokens,
            temperature=settings.temperature,
        )
        try:
            return await self._service.complete(request)
        except CompletionFailure:
            raise
        except Exception as exc:
            raise CompletionFailure(self._service.name(), f"Unexpected error: {exc}") from exc

    def _turn_outcome(self, session: DebateSession, fragments: Sequence[Fragment]) -> TurnOutcome:
        chain = session.debate_chain
        config = session.config
        raw = estimate_tokens(session.user_query) + count_tokens(e.response_text for e in chain)
        sent = count_tokens(f.text for f in fragments)
        covered = min(CONTEXT_WINDOW, len(chain)) if config.summarization_enabled else 0
        if config.summarization_enabled and config.summaries_in_context and session.summaries:
            # summary covers a prefix, the window a suffix; both are contiguous
            covered = min(len(chain), covered + session.summaries[-1].after_turn_index + 1)
        return TurnOutcome(
            raw_context_tokens=raw,
            sent_context_tokens=sent,
            entries_total=len(chain),
            entries_covered=covered,
        )

    def _record(self, session: DebateSession, item: TranscriptItem) -> None:
        session.transcript.append(item)
        if self._on_event:
            self._on_event(item)

    def _fail(
        self,
        session: DebateSession,
        kind: SessionErrorKind,
        message: str,
        persona_name: str | None = None,
    ) -> None:
        session.error = SessionError(kind=kind, message=message, persona_name=persona_name)
        session.state = SessionState.FAILED
        self._record(session, TranscriptItem(TranscriptKind.SYSTEM, f"Error: {message}", label=ERROR_LABEL))

    def _stop_if_cancelled(self, session: DebateSession) -> bool:
        if not self._cancel_event.is_set():
            return False
        self._mark_cancelled(session)
        return True

    def _mark_cancelled(self, session: DebateSession) -> None:
        if session.is_terminal:
            return
        logger.warning("Debate cancelled after %d turns", len(session.debate_chain))
        session.state = SessionState.CANCELLED
        if not self._keep_partial:
            session.debate_chain.clear()
            session.summaries.clear()
            self._tracker.reset()
            session.metrics = self._tracker.metrics
            session.final_synthesis = None
            session.transcript[:] = session.transcript[:1]
        self._record(session, TranscriptItem(TranscriptKind.SYSTEM, "Debate cancelled", label=ERROR_LABEL))

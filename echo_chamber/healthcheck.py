"""Completion Service health checks, run before starting a debate."""

import asyncio
import logging

from echo_chamber.models import CompletionRequest, Fragment, Role
from echo_chamber.providers.base import CompletionService

logger = logging.getLogger(__name__)

_PING_REQUEST = CompletionRequest(
    system_prompt="You are a connectivity check.",
    messages=(Fragment(Role.REQUESTER, "Reply with the word OK only."),),
    max_output_tokens=16,
    temperature=0.0,
)
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, service: CompletionService) -> tuple[str, bool, str]:
    """Ping a single service. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(service.complete(_PING_REQUEST), timeout=_TIMEOUT_SEC)
        return name, True, ""
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return name, False, str(exc) or type(exc).__name__


async def run_health_checks(
    services: dict[str, CompletionService],
) -> dict[str, tuple[bool, str]]:
    """Ping all services in parallel.

    Returns:
        Dict mapping service name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, s) for n, s in services.items()))
    return {name: (ok, err) for name, ok, err in results}

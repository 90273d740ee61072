"""Provider health checks: ping each model once before a discussion starts."""

import asyncio
import logging

from boardroom.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(provider: AIProvider) -> tuple[bool, str]:
    """Ping a single provider. Returns (ok, error_message)."""
    try:
        await asyncio.wait_for(
            provider.generate(_PING_PROMPT, round_number=0),
            timeout=_TIMEOUT_SEC,
        )
        return True, ""
    except Exception as exc:
        return False, str(exc)


async def run_health_checks(
    agent_providers: dict[str, AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping every distinct provider once, in parallel, and report per agent.

    Several agents may share one provider instance; it is pinged only once.

    Returns:
        Dict mapping agent id -> (ok, error_message).
        error_message is "" when ok is True.
    """
    distinct = list({id(p): p for p in agent_providers.values()}.values())
    outcomes = await asyncio.gather(*(_check_one(p) for p in distinct))
    by_provider = {id(p): outcome for p, outcome in zip(distinct, outcomes)}
    for provider, (ok, err) in zip(distinct, outcomes):
        if not ok:
            logger.warning("Provider %s failed health check: %s", provider.name(), err)
    return {agent: by_provider[id(p)] for agent, p in agent_providers.items()}

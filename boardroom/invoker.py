"""Agent invocation: per-call timeout, abstention on failure, bounded fan-out."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from boardroom.errors import AgentAbstention
from boardroom.models import AgentReply, AgentRequest, EventType, Phase, Plan

logger = logging.getLogger(__name__)

_DEBATE_TYPES = frozenset({EventType.QUESTION, EventType.CHALLENGE, EventType.AGREEMENT})


class AgentResponder(ABC):
    """The external agent-response collaborator."""

    @abstractmethod
    async def respond(self, request: AgentRequest) -> AgentReply:
        """Produce one reply for ``request``.

        Raises:
            AgentError / ProviderError: On failure. Replies are either
                well-formed or not returned at all.
        """
        ...


def per_call_timeout(plan: Plan, floor_sec: float) -> float:
    """Seconds allowed for one agent call: the plan's per-round share, or the floor."""
    return max(plan.timeout_minutes * 60 / plan.max_rounds, floor_sec)


def _check_reply(request: AgentRequest, reply: AgentReply) -> str | None:
    """Return a rejection reason, or None when the reply is usable."""
    if not reply.content or not reply.content.strip():
        return "empty content"
    if reply.confidence is not None and not 0.0 <= reply.confidence <= 1.0:
        return f"confidence {reply.confidence} outside [0, 1]"
    if request.phase is Phase.DEBATE and reply.type not in _DEBATE_TYPES:
        return f"type '{reply.type.value}' not allowed in a debate round"
    return None


class AgentInvoker:
    """Calls the responder for each scheduled agent. Never raises.

    ``max_concurrency`` caps parallel calls within a round; None means every
    scheduled agent runs at once.
    """

    def __init__(
        self,
        responder: AgentResponder,
        timeout_sec: float,
        max_concurrency: int | None = None,
    ) -> None:
        self._responder = responder
        self._timeout_sec = timeout_sec
        self._max_concurrency = max_concurrency

    @property
    def timeout_sec(self) -> float:
        return self._timeout_sec

    async def invoke(self, request: AgentRequest) -> AgentReply | AgentAbstention:
        """Call one agent. Timeouts, errors and malformed replies become abstentions."""
        try:
            reply = await asyncio.wait_for(
                self._responder.respond(request),
                timeout=self._timeout_sec,
            )
        except TimeoutError:
            reason = f"timed out after {self._timeout_sec:.1f}s"
            logger.warning(
                "Agent %s abstained in round %d: %s",
                request.agent_id, request.round_number, reason,
            )
            return AgentAbstention(request.agent_id, request.round_number, reason)
        except Exception as exc:
            logger.warning(
                "Agent %s abstained in round %d: %s",
                request.agent_id, request.round_number, exc,
            )
            return AgentAbstention(request.agent_id, request.round_number, str(exc))

        rejection = _check_reply(request, reply)
        if rejection is not None:
            logger.warning(
                "Agent %s reply rejected in round %d: %s",
                request.agent_id, request.round_number, rejection,
            )
            return AgentAbstention(request.agent_id, request.round_number, rejection)
        return reply

    async def invoke_all(
        self,
        requests: Sequence[AgentRequest],
    ) -> list[AgentReply | AgentAbstention]:
        """Invoke every request and wait for all of them to settle.

        Results are returned in request order.
        """
        if not requests:
            return []
        limit = self._max_concurrency or len(requests)
        semaphore = asyncio.Semaphore(limit)

        async def _bounded(request: AgentRequest) -> AgentReply | AgentAbstention:
            async with semaphore:
                return await self.invoke(request)

        return list(await asyncio.gather(*(_bounded(r) for r in requests)))

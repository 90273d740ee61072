"""Agent collaborators: LLM-backed executives and an offline demo script."""

import asyncio
import logging
import re
from collections.abc import Sequence

from boardroom.errors import AgentError
from boardroom.invoker import AgentResponder
from boardroom.models import AgentEvent, AgentReply, AgentRequest, EventType, Phase
from boardroom.providers.base import AIProvider
from boardroom.synthesis import format_debate_points, format_proposals
from config.config_loader import AgentConfig, PromptsConfig

logger = logging.getLogger(__name__)

_TYPE_LINE = re.compile(r"\s*\**TYPE\**\s*:\s*\**\s*([A-Za-z]+)\**\s*$", re.IGNORECASE)
_CONFIDENCE_LINE = re.compile(r"\s*\**CONFIDENCE\**\s*:\s*\**\s*(\d{1,3}(?:\.\d+)?)\s*%\**\s*$", re.IGNORECASE)

_DEBATE_TYPES = {EventType.QUESTION, EventType.CHALLENGE, EventType.AGREEMENT}


def format_history(events: Sequence[AgentEvent], window: int) -> str:
    """Render the last ``window`` events as ``AGENT (type): content`` lines."""
    recent = list(events)[-window:] if window > 0 else []
    if not recent:
        return "This is the start of the discussion."
    return "\n".join(f"{e.from_agent.upper()} ({e.type.value}): {e.content}" for e in recent)


def build_prompt(
    request: AgentRequest,
    agent: AgentConfig,
    prompts: PromptsConfig,
    history_window: int = 10,
) -> str:
    """Fill the phase template for one agent call."""
    if request.phase is Phase.SYNTHESIS:
        return prompts.synthesis.format(
            role=agent.role,
            topic=request.topic,
            proposals=format_proposals(request.history) or "None.",
            debate_points=format_debate_points(request.history) or "None.",
        )

    history = format_history(request.history, history_window)
    context = request.context or request.topic
    if request.phase is Phase.PROPOSAL:
        user_line = f"**User Question**: {request.user_message}\n" if request.user_message else ""
        return prompts.proposal.format(
            role=agent.role,
            persona=agent.persona or "Provide expert analysis from your domain.",
            topic=request.topic,
            user_message=user_line,
            context=context,
            history=history,
        )
    return prompts.debate.format(
        role=agent.role,
        persona=agent.persona or "Provide expert analysis from your domain.",
        topic=request.topic,
        round=request.round_number + 1,
        context=context,
        history=history,
    )


def parse_reply(content: str, phase: Phase, agent_id: str) -> AgentReply:
    """Split the self-declared TYPE/CONFIDENCE trailer from the reply body.

    Raises:
        AgentError: If the trailer the phase requires is missing or invalid.
    """
    declared_type: str | None = None
    declared_confidence: str | None = None
    body_lines: list[str] = []
    for line in content.splitlines():
        type_match = _TYPE_LINE.match(line)
        confidence_match = _CONFIDENCE_LINE.match(line)
        if type_match:
            declared_type = type_match.group(1).lower()
        elif confidence_match:
            declared_confidence = confidence_match.group(1)
        else:
            body_lines.append(line)

    body = "\n".join(body_lines).strip()
    if not body:
        raise AgentError(agent_id, "Empty reply body")

    confidence: float | None = None
    if declared_confidence is not None:
        confidence = float(declared_confidence) / 100
        if confidence > 1.0:
            raise AgentError(agent_id, f"Confidence out of range: {declared_confidence}%")

    if phase is Phase.PROPOSAL:
        if confidence is None:
            raise AgentError(agent_id, "Proposal has no CONFIDENCE line")
        return AgentReply(content=body, type=EventType.PROPOSAL, confidence=confidence)

    if phase is Phase.SYNTHESIS:
        return AgentReply(content=body, type=EventType.SYNTHESIS, confidence=confidence)

    if declared_type is None:
        raise AgentError(agent_id, "Debate reply has no TYPE line")
    try:
        event_type = EventType(declared_type)
    except ValueError:
        raise AgentError(agent_id, f"Unknown event type: {declared_type}") from None
    if event_type not in _DEBATE_TYPES:
        raise AgentError(agent_id, f"Event type not allowed in debate: {declared_type}")
    if event_type is EventType.QUESTION:
        return AgentReply(content=body, type=event_type, confidence=None)
    if confidence is None:
        raise AgentError(agent_id, "Debate reply has no CONFIDENCE line")
    return AgentReply(content=body, type=event_type, confidence=confidence)


class ProviderAgentResponder(AgentResponder):
    """Executive agents backed by LLM providers, one provider per agent id."""

    def __init__(
        self,
        providers: dict[str, AIProvider],
        agents: dict[str, AgentConfig],
        prompts: PromptsConfig,
        history_window: int = 10,
    ) -> None:
        self._providers = providers
        self._agents = agents
        self._prompts = prompts
        self._history_window = history_window

    async def respond(self, request: AgentRequest) -> AgentReply:
        provider = self._providers.get(request.agent_id)
        if provider is None:
            raise AgentError(request.agent_id, "No provider available for agent")
        agent = self._agents.get(request.agent_id) or AgentConfig(
            name=request.agent_id,
            model=provider.name(),
            role=request.agent_id.upper(),
        )
        prompt = build_prompt(request, agent, self._prompts, self._history_window)
        logger.debug("Agent %s (%s) prompt for round %d", request.agent_id, request.phase.value, request.round_number)
        response = await provider.generate(prompt, request.round_number)
        return parse_reply(response.content, request.phase, request.agent_id)


class DemoResponder(AgentResponder):
    """Scripted offline executives for demos without API keys.

    Everyone proposes; in the first debate round the ``challengers`` push back
    while the rest agree; from the second debate round on, everyone agrees.
    """

    def __init__(self, delay_sec: float = 0.0, challengers: Sequence[str] = ("cfo", "hr")) -> None:
        self._delay_sec = delay_sec
        self._challengers = set(challengers)

    async def respond(self, request: AgentRequest) -> AgentReply:
        if self._delay_sec:
            await asyncio.sleep(self._delay_sec)
        role = request.agent_id.upper()

        if request.phase is Phase.PROPOSAL:
            return AgentReply(
                content=f"As {role}, I recommend we pursue '{request.topic}' in a staged rollout "
                        f"with clear checkpoints owned by my function.",
                type=EventType.PROPOSAL,
                confidence=0.8,
            )
        if request.phase is Phase.SYNTHESIS:
            speakers = sorted({e.from_agent.upper() for e in request.history})
            return AgentReply(
                content=(
                    f"**CONSENSUS RECOMMENDATION**: Proceed with '{request.topic}' as a staged rollout.\n\n"
                    f"**KEY AGREEMENTS**: {', '.join(speakers)} support a phased approach.\n\n"
                    "**NEXT STEPS**: Define milestones, assign owners, review after phase one.\n\n"
                    "**SUPPORTING RATIONALE**: A staged rollout limits risk while preserving momentum."
                ),
                type=EventType.SYNTHESIS,
                confidence=0.85,
            )
        if request.round_number == 1 and request.agent_id in self._challengers:
            return AgentReply(
                content=f"As {role}, I have concerns about the timeline and want tighter checkpoints.",
                type=EventType.CHALLENGE,
                confidence=0.6,
            )
        return AgentReply(
            content=f"As {role}, I agree with the staged approach now that checkpoints are defined.",
            type=EventType.AGREEMENT,
            confidence=0.85,
        )

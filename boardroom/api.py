"""JSON action contract for the polling client.

POST actions: start_collaboration, get_discussion, get_session_discussions,
cancel_discussion. GET actions: active_discussions, health.
Every handler returns ``(http_status, body)``.

Wire payloads are pydantic models with camelCase aliases. Responses are
dumped with ``exclude_none`` so optional keys are omitted rather than null.
"""

import logging
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, StrictFloat, StrictInt, StrictStr
from pydantic import ValidationError as WireValidationError
from pydantic.alias_generators import to_camel

from boardroom.errors import DiscussionNotFoundError, ValidationError
from boardroom.event_log import utcnow
from boardroom.models import AgentEvent, ConsensusResult, Discussion, EventType, Plan
from boardroom.service import CollaborationService

logger = logging.getLogger(__name__)

_REQUIRED_START_PARAMS = ("sessionId", "plan", "context")


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


WireTimestamp = Annotated[datetime, PlainSerializer(format_timestamp, return_type=str)]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# --- requests ---

class PlanIn(WireModel):
    """Types only. Ranges and cross-field rules live in service.validate_plan."""

    discussion_topic: StrictStr
    required_agents: list[StrictStr]
    max_rounds: StrictInt
    consensus_threshold: StrictFloat | StrictInt
    timeout_minutes: StrictFloat | StrictInt
    facilitator: StrictStr

    def to_plan(self) -> Plan:
        return Plan(
            discussion_topic=self.discussion_topic,
            required_agents=tuple(self.required_agents),
            max_rounds=self.max_rounds,
            consensus_threshold=self.consensus_threshold,
            timeout_minutes=self.timeout_minutes,
            facilitator=self.facilitator,
        )


class StartCollaborationRequest(WireModel):
    session_id: str = Field(min_length=1)
    plan: PlanIn
    context: str = Field(min_length=1)
    user_message: str | None = None


# --- responses ---

class AgentEventOut(WireModel):
    id: str
    type: EventType
    from_agent: str
    content: str
    timestamp: WireTimestamp
    confidence: float | None = None

    @classmethod
    def from_event(cls, event: AgentEvent) -> "AgentEventOut":
        return cls(
            id=event.id,
            type=event.type,
            from_agent=event.from_agent,
            content=event.content,
            timestamp=event.timestamp,
            confidence=event.confidence,
        )


class ConsensusOut(WireModel):
    decision: str
    confidence: float
    supporting_agents: list[str]
    reasoning: str

    @classmethod
    def from_result(cls, consensus: ConsensusResult | None) -> "ConsensusOut | None":
        if consensus is None:
            return None
        return cls(
            decision=consensus.decision,
            confidence=consensus.confidence,
            supporting_agents=list(consensus.supporting_agents),
            reasoning=consensus.reasoning,
        )


class DiscussionOut(WireModel):
    id: str
    topic: str
    participants: list[str]
    status: str
    events: list[AgentEventOut]
    consensus: ConsensusOut | None = None
    start_time: WireTimestamp
    end_time: WireTimestamp | None = None

    @classmethod
    def from_discussion(cls, discussion: Discussion) -> "DiscussionOut":
        return cls(
            id=discussion.id,
            topic=discussion.topic,
            participants=list(discussion.participants),
            status=discussion.status.value,
            events=[AgentEventOut.from_event(e) for e in discussion.events],
            consensus=ConsensusOut.from_result(discussion.consensus),
            start_time=discussion.start_time,
            end_time=discussion.end_time,
        )


class DiscussionSummaryOut(WireModel):
    """Compact listing shape used by the session and active-discussion actions."""

    id: str
    session_id: str | None = None
    topic: str
    participants: list[str]
    status: str
    event_count: int
    start_time: WireTimestamp
    end_time: WireTimestamp | None = None
    consensus: ConsensusOut | None = None

    @classmethod
    def from_discussion(cls, discussion: Discussion, *, include_session: bool = False) -> "DiscussionSummaryOut":
        return cls(
            id=discussion.id,
            session_id=discussion.session_id if include_session else None,
            topic=discussion.topic,
            participants=list(discussion.participants),
            status=discussion.status.value,
            event_count=len(discussion.events),
            start_time=discussion.start_time,
            end_time=discussion.end_time,
            consensus=ConsensusOut.from_result(discussion.consensus),
        )


def describe_errors(exc: WireValidationError) -> str:
    """First pydantic error as ``loc.path: message``, locations in camelCase."""
    first = exc.errors()[0]
    where = ".".join(str(part) for part in first["loc"])
    return f"{where}: {first['msg']}" if where else first["msg"]


def _missing_start_params(exc: WireValidationError) -> bool:
    return any(
        len(err["loc"]) == 1
        and err["loc"][0] in _REQUIRED_START_PARAMS
        and err["type"] in ("missing", "string_too_short")
        for err in exc.errors()
    )


def _error(status: int, message: str) -> tuple[int, dict[str, Any]]:
    return status, {"success": False, "error": message}


def _discussion_body(discussion: Discussion) -> dict[str, Any]:
    return {"success": True, "discussion": DiscussionOut.from_discussion(discussion).to_wire()}


async def _start_collaboration(service: CollaborationService, params: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    try:
        request = StartCollaborationRequest.model_validate(params)
    except WireValidationError as exc:
        if _missing_start_params(exc):
            return _error(400, "Missing required parameters: sessionId, plan, context")
        logger.info("Rejected start request for session %s: %s", params.get("sessionId"), exc)
        return _error(400, describe_errors(exc))
    try:
        discussion = await service.start_collaboration(
            request.plan.to_plan(),
            session_id=request.session_id,
            context=request.context,
            user_message=request.user_message or None,
        )
    except ValidationError as exc:
        logger.info("Rejected plan for session %s: %s", request.session_id, exc)
        return _error(400, str(exc))
    return 200, _discussion_body(discussion)


def _get_discussion(service: CollaborationService, params: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    discussion_id = params.get("discussionId")
    if not discussion_id:
        return _error(400, "Missing discussionId parameter")
    try:
        discussion = service.get_discussion(str(discussion_id))
    except DiscussionNotFoundError:
        return _error(404, "Discussion not found")
    return 200, _discussion_body(discussion)


def _get_session_discussions(service: CollaborationService, params: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    session_id = params.get("sessionId")
    if not session_id:
        return _error(400, "Missing sessionId parameter")
    discussions = service.get_session_discussions(str(session_id))
    return 200, {
        "success": True,
        "discussions": [DiscussionSummaryOut.from_discussion(d).to_wire() for d in discussions],
    }


def _cancel_discussion(service: CollaborationService, params: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    discussion_id = params.get("discussionId")
    if not discussion_id:
        return _error(400, "Missing discussionId parameter")
    try:
        discussion = service.cancel_discussion(str(discussion_id))
    except DiscussionNotFoundError:
        return _error(404, "Discussion not found")
    return 200, _discussion_body(discussion)


async def handle_post(service: CollaborationService, payload: Any) -> tuple[int, dict[str, Any]]:
    if not isinstance(payload, dict):
        return _error(400, "Request body must be a JSON object")
    action = payload.get("action")
    if action == "start_collaboration":
        return await _start_collaboration(service, payload)
    if action == "get_discussion":
        return _get_discussion(service, payload)
    if action == "get_session_discussions":
        return _get_session_discussions(service, payload)
    if action == "cancel_discussion":
        return _cancel_discussion(service, payload)
    return 400, {"error": "Invalid action"}


def handle_get(service: CollaborationService, action: str | None) -> tuple[int, dict[str, Any]]:
    if action == "active_discussions":
        return 200, {
            "success": True,
            "discussions": [
                DiscussionSummaryOut.from_discussion(d, include_session=True).to_wire()
                for d in service.active_discussions()
            ],
        }
    if action == "health":
        return 200, {
            "success": True,
            "status": "operational",
            "activeDiscussions": len(service.active_discussions()),
            "timestamp": format_timestamp(utcnow()),
        }
    return 400, {"error": "Invalid action parameter"}

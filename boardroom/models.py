"""Pure dataclasses for the boardroom discussion orchestrator. No logic, no deps."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class EventType(str, Enum):
    PROPOSAL = "proposal"
    QUESTION = "question"
    CHALLENGE = "challenge"
    AGREEMENT = "agreement"
    SYNTHESIS = "synthesis"


class DiscussionStatus(str, Enum):
    ACTIVE = "active"
    CONSENSUS_REACHED = "consensus_reached"
    NEEDS_MORE_INPUT = "needs_more_input"


class Phase(str, Enum):
    PROPOSAL = "proposal"
    DEBATE = "debate"
    SYNTHESIS = "synthesis"


@dataclass(frozen=True)
class Plan:
    discussion_topic: str
    required_agents: tuple[str, ...]
    max_rounds: int
    consensus_threshold: float
    timeout_minutes: float
    facilitator: str


@dataclass(frozen=True)
class AgentEvent:
    id: str
    type: EventType
    from_agent: str
    content: str
    round_number: int                    # internal only, not part of the wire shape
    timestamp: datetime | None = None    # assigned by EventLog.append
    confidence: float | None = None      # absent for questions


@dataclass(frozen=True)
class ConsensusResult:
    decision: str
    confidence: float
    supporting_agents: tuple[str, ...]
    reasoning: str


@dataclass(frozen=True)
class Discussion:
    """Point-in-time snapshot of one discussion. Never a live reference."""

    id: str
    session_id: str
    topic: str
    participants: tuple[str, ...]
    status: DiscussionStatus
    events: tuple[AgentEvent, ...]
    start_time: datetime
    consensus: ConsensusResult | None = None
    end_time: datetime | None = None
    rounds_completed: int = 0


@dataclass(frozen=True)
class AgentRequest:
    agent_id: str
    topic: str
    phase: Phase
    round_number: int
    history: tuple[AgentEvent, ...] = ()
    context: str = ""
    user_message: str | None = None


@dataclass(frozen=True)
class AgentReply:
    content: str
    type: EventType
    confidence: float | None


@dataclass
class ModelResponse:
    provider: str          # "gemini", "openai", "claude"
    model: str             # actual model string used
    round_number: int
    content: str
    latency_sec: float
    token_count: int | None

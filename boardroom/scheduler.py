"""Turn scheduling: which agents act in each round, and in which phase."""

from collections.abc import Sequence
from dataclasses import dataclass

from boardroom.models import AgentEvent, EventType, Phase, Plan


@dataclass(frozen=True)
class Turn:
    agent_id: str
    phase: Phase
    round_number: int
    expected_type: EventType | None  # None: the agent declares its own type


class TurnScheduler:
    """Round 0 is the proposal round for every required agent.

    Every later round re-invokes only the agents that produced an event in
    the previous round; they declare their own event type. Synthesis is a
    single facilitator turn requested by the controller once consensus is
    ready, never a scheduled round of its own.
    """

    def __init__(self, plan: Plan) -> None:
        self._plan = plan

    def turns_for_round(self, round_number: int, events: Sequence[AgentEvent]) -> list[Turn]:
        if round_number == 0:
            return [
                Turn(agent, Phase.PROPOSAL, 0, EventType.PROPOSAL)
                for agent in self._plan.required_agents
            ]
        spoke = {e.from_agent for e in events if e.round_number == round_number - 1}
        return [
            Turn(agent, Phase.DEBATE, round_number, None)
            for agent in self._plan.required_agents
            if agent in spoke
        ]

    def synthesis_turn(self, round_number: int) -> Turn:
        return Turn(self._plan.facilitator, Phase.SYNTHESIS, round_number, EventType.SYNTHESIS)

    def is_exhausted(self, rounds_completed: int) -> bool:
        return rounds_completed >= self._plan.max_rounds

"""Consensus evaluation: agreement ratio and aggregate confidence per round."""

from collections.abc import Sequence
from dataclasses import dataclass
from statistics import fmean

from boardroom.models import AgentEvent, EventType, Plan


@dataclass(frozen=True)
class ConsensusAssessment:
    round_number: int
    contributors: tuple[str, ...]
    agreeing: tuple[str, ...]
    agreement_ratio: float
    aggregate_confidence: float
    ready: bool


def latest_events_in_round(
    events: Sequence[AgentEvent],
    round_number: int,
) -> dict[str, AgentEvent]:
    """Map each agent to its most recent non-synthesis event in ``round_number``."""
    latest: dict[str, AgentEvent] = {}
    for event in events:
        if event.round_number == round_number and event.type is not EventType.SYNTHESIS:
            latest[event.from_agent] = event
    return latest


def evaluate_consensus(
    events: Sequence[AgentEvent],
    plan: Plan,
    round_number: int,
) -> ConsensusAssessment:
    """Score the latest events of ``round_number`` against the plan's threshold.

    Questions abstain from the tally. In a single-agent plan the agent's own
    proposal counts as agreement while no challenge exists anywhere in the
    log. With more than one participant a proposal never counts, even when
    every other agent has abstained.
    Aggregate confidence is the arithmetic mean over agreeing events; it is
    reported but never gates the decision.
    """
    latest = latest_events_in_round(events, round_number)
    contributors = tuple(
        agent for agent in plan.required_agents
        if agent in latest and latest[agent].type is not EventType.QUESTION
    )
    lone = len(plan.required_agents) == 1
    challenged = any(e.type is EventType.CHALLENGE for e in events)

    agreeing: list[str] = []
    for agent in contributors:
        event_type = latest[agent].type
        if event_type is EventType.AGREEMENT:
            agreeing.append(agent)
        elif event_type is EventType.PROPOSAL and lone and not challenged:
            agreeing.append(agent)

    ratio = len(agreeing) / len(contributors) if contributors else 0.0
    confidences = [
        latest[agent].confidence for agent in agreeing
        if latest[agent].confidence is not None
    ]
    aggregate = fmean(confidences) if confidences else 0.0

    return ConsensusAssessment(
        round_number=round_number,
        contributors=contributors,
        agreeing=tuple(agreeing),
        agreement_ratio=ratio,
        aggregate_confidence=aggregate,
        ready=bool(contributors) and ratio >= plan.consensus_threshold and aggregate >= 0,
    )

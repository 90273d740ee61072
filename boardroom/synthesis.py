"""Final synthesis: transcript formatting and consensus extraction."""

import logging
import re
from collections.abc import Sequence

from boardroom.consensus import ConsensusAssessment
from boardroom.models import AgentEvent, ConsensusResult, EventType

logger = logging.getLogger(__name__)

_DECISION_RE = re.compile(r"CONSENSUS RECOMMENDATION[^:\n]*:(.*?)(?=\*\*|\Z)", re.IGNORECASE | re.DOTALL)
_REASONING_RE = re.compile(r"SUPPORTING RATIONALE[^:\n]*:(.*?)(?=\*\*|\Z)", re.IGNORECASE | re.DOTALL)

_DEBATE_TYPES = (EventType.QUESTION, EventType.CHALLENGE, EventType.AGREEMENT)


def format_proposals(events: Sequence[AgentEvent]) -> str:
    return "\n\n".join(
        f"{e.from_agent.upper()}: {e.content}" for e in events if e.type is EventType.PROPOSAL
    )


def format_debate_points(events: Sequence[AgentEvent]) -> str:
    return "\n\n".join(
        f"{e.from_agent.upper()} ({e.type.value}): {e.content}"
        for e in events if e.type in _DEBATE_TYPES
    )


def _first_paragraph(text: str) -> str:
    for block in re.split(r"\n\s*\n", text.strip()):
        if block.strip():
            return block.strip()
    return text.strip()


def extract_decision_and_reasoning(synthesis_content: str) -> tuple[str, str]:
    """Pull the recommendation and rationale out of a facilitator synthesis.

    Falls back to the first paragraph for the decision and the full text for
    the reasoning when the headings are missing.
    """
    decision_match = _DECISION_RE.search(synthesis_content)
    decision = decision_match.group(1).strip(" *\n\t") if decision_match else ""
    if not decision:
        logger.debug("No CONSENSUS RECOMMENDATION heading found, using first paragraph")
        decision = _first_paragraph(synthesis_content)

    reasoning_match = _REASONING_RE.search(synthesis_content)
    reasoning = reasoning_match.group(1).strip(" *\n\t") if reasoning_match else ""
    if not reasoning:
        reasoning = synthesis_content.strip()
    return decision, reasoning


def build_consensus(assessment: ConsensusAssessment, synthesis_content: str) -> ConsensusResult:
    """Combine the evaluator's tally with the facilitator's synthesis text."""
    decision, reasoning = extract_decision_and_reasoning(synthesis_content)
    confidence = min(1.0, max(0.0, assessment.aggregate_confidence))
    return ConsensusResult(
        decision=decision,
        confidence=confidence,
        supporting_agents=assessment.agreeing,
        reasoning=reasoning,
    )

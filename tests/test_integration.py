"""Integration tests: real API calls, no mocks. Requires .env with at least one API key."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

load_dotenv()

_AVAILABLE_KEYS = [
    k for k in ["ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"]
    if os.environ.get(k, "").strip()
]
pytestmark = pytest.mark.integration

if not _AVAILABLE_KEYS:
    pytestmark = pytest.mark.skip(reason="Need at least one provider API key")


async def test_two_agent_discussion_terminates(tmp_path: Path):
    """Run a real two-agent, two-round discussion and verify it settles."""
    from boardroom.agents import ProviderAgentResponder
    from boardroom.cli import _build_agent_providers
    from boardroom.models import DiscussionStatus, Plan
    from boardroom.output import TranscriptRecorder
    from boardroom.service import CollaborationService
    from config.config_loader import load_config

    config = load_config()
    agent_providers = _build_agent_providers(config, list(config.agents))
    agents = list(agent_providers)[:2]
    assert agents, "No agent has an available provider"

    plan = Plan(
        discussion_topic="Should a 40-person startup adopt a four-day work week?",
        required_agents=tuple(agents),
        max_rounds=2,
        consensus_threshold=0.5,
        timeout_minutes=5,
        facilitator=agents[0],
    )
    recorder = TranscriptRecorder(tmp_path / "output")
    service = CollaborationService(
        ProviderAgentResponder(agent_providers, config.agents, config.prompts),
        recorders=[recorder],
    )

    started = await service.start_collaboration(plan, session_id="integration", context=plan.discussion_topic)
    final = await service.wait_for_discussion(started.id, timeout=600)

    assert final.status is not DiscussionStatus.ACTIVE
    assert final.end_time is not None
    if final.status is DiscussionStatus.CONSENSUS_REACHED:
        assert final.consensus.decision
        assert set(final.consensus.supporting_agents) <= set(agents)
    assert recorder.saved_paths[final.id].exists()

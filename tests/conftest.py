"""Shared pytest fixtures."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from boardroom.errors import AgentError
from boardroom.invoker import AgentResponder
from boardroom.models import AgentReply, AgentRequest, EventType, ModelResponse, Phase, Plan
from boardroom.providers.base import AIProvider
from config.config_loader import (
    AgentConfig,
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    PollingConfig,
    PromptsConfig,
)


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        proposal="{role} ({persona}) proposes on {topic}.\n{user_message}Context: {context}\nHistory:\n{history}",
        debate="Round {round}. {role} ({persona}) debates {topic}.\nContext: {context}\nHistory:\n{history}",
        synthesis="{role} synthesizes {topic}.\nProposals:\n{proposals}\nDebate:\n{debate_points}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        agents=["ceo", "cfo", "cto", "hr"],
        facilitator="ceo",
        max_rounds=3,
        consensus_threshold=0.7,
        timeout_minutes=10,
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"claude": model_cfg},
        agents={
            name: AgentConfig(name=name, model="claude", role=name.upper())
            for name in sample_defaults_config.agents
        },
        prompts=sample_prompts_config,
        polling=PollingConfig(interval_ms=10, max_attempts=200),
        available_providers={"claude"},
    )


@pytest.fixture
def sample_plan() -> Plan:
    return Plan(
        discussion_topic="Should we expand into the EU market?",
        required_agents=("ceo", "cfo", "cto", "hr"),
        max_rounds=3,
        consensus_threshold=0.7,
        timeout_minutes=10,
        facilitator="ceo",
    )


@pytest.fixture
def sample_response() -> ModelResponse:
    return ModelResponse(
        provider="claude",
        model="claude-sonnet-4-20250514",
        round_number=0,
        content="Expand in two phases, starting with Germany.\nCONFIDENCE: 80%",
        latency_sec=1.5,
        token_count=42,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                round_number=0,
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def _complete(self, prompt: str) -> tuple[str, int | None]:
        return self._response_content, 10


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


ReplyScript = Callable[[AgentRequest], AgentReply]


def agreeing_script(request: AgentRequest) -> AgentReply:
    """Everyone proposes, then everyone agrees; the facilitator synthesizes."""
    if request.phase is Phase.PROPOSAL:
        return AgentReply(f"{request.agent_id} proposal", EventType.PROPOSAL, 0.8)
    if request.phase is Phase.SYNTHESIS:
        return AgentReply(
            "**CONSENSUS RECOMMENDATION**: Go ahead.\n\n**SUPPORTING RATIONALE**: Everyone agreed.",
            EventType.SYNTHESIS,
            0.9,
        )
    return AgentReply(f"{request.agent_id} agrees", EventType.AGREEMENT, 0.9)


def challenging_script(request: AgentRequest) -> AgentReply:
    """Everyone proposes, then everyone keeps challenging."""
    if request.phase is Phase.PROPOSAL:
        return AgentReply(f"{request.agent_id} proposal", EventType.PROPOSAL, 0.7)
    return AgentReply(f"{request.agent_id} objects", EventType.CHALLENGE, 0.4)


class ScriptedResponder(AgentResponder):
    """AgentResponder driven by a plain function, with per-agent failure hooks.

    ``fail`` maps agent id to the phases in which it raises; ``hang`` lists
    agents that never answer. Every request is recorded in ``requests``.
    """

    def __init__(
        self,
        script: ReplyScript = agreeing_script,
        *,
        fail: dict[str, set[Phase]] | None = None,
        hang: set[str] | None = None,
        delay_sec: float = 0.0,
    ) -> None:
        self._script = script
        self._fail = fail or {}
        self._hang = hang or set()
        self._delay_sec = delay_sec
        self.requests: list[AgentRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def respond(self, request: AgentRequest) -> AgentReply:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if request.agent_id in self._hang:
                await asyncio.Event().wait()
            if self._delay_sec:
                await asyncio.sleep(self._delay_sec)
            if request.phase in self._fail.get(request.agent_id, set()):
                raise AgentError(request.agent_id, "scripted failure")
            return self._script(request)
        finally:
            self.in_flight -= 1


@pytest.fixture
def scripted_responder() -> ScriptedResponder:
    return ScriptedResponder()


class SteppingClock:
    """Deterministic clock: each call advances by ``step``. ``rewind`` jumps back."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(milliseconds=5)) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def rewind(self, delta: timedelta) -> None:
        self.now = self.now - delta


@pytest.fixture
def stepping_clock() -> SteppingClock:
    return SteppingClock()

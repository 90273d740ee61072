"""Error types shared across the orchestrator and its collaborators."""

from dataclasses import dataclass


class ValidationError(ValueError):
    """Raised when a Plan or request is malformed. No state is created."""


class DiscussionNotFoundError(KeyError):
    """Raised when a discussion id is unknown."""

    def __init__(self, discussion_id: str) -> None:
        self.discussion_id = discussion_id
        super().__init__(discussion_id)

    def __str__(self) -> str:
        return f"Discussion not found: {self.discussion_id}"


class AgentError(Exception):
    """Raised by an agent collaborator when it cannot produce a reply."""

    def __init__(self, agent_id: str, message: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"[{agent_id}] {message}")


class ProviderError(Exception):
    """Raised when an LLM provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


@dataclass(frozen=True)
class AgentAbstention:
    """Returned in place of a reply when an agent call times out or errors."""

    agent_id: str
    round_number: int
    reason: str

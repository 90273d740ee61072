"""Collaboration service: start discussions and read their snapshots."""

import asyncio
import logging
import math
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

from boardroom.controller import DiscussionController, DiscussionRecorder
from boardroom.errors import DiscussionNotFoundError, ValidationError
from boardroom.event_log import utcnow
from boardroom.invoker import AgentInvoker, AgentResponder, per_call_timeout
from boardroom.models import Discussion, DiscussionStatus, Plan

logger = logging.getLogger(__name__)

DEFAULT_MIN_CALL_TIMEOUT_SEC = 30.0


def validate_plan(plan: Plan) -> None:
    """Reject a malformed plan before any discussion state exists.

    Raises:
        ValidationError: With a human-readable reason.
    """
    if not plan.discussion_topic or not plan.discussion_topic.strip():
        raise ValidationError("discussionTopic must be a non-empty string")
    agents = plan.required_agents
    if not agents:
        raise ValidationError("requiredAgents must contain at least one agent")
    if any(not isinstance(a, str) or not a.strip() for a in agents):
        raise ValidationError("requiredAgents must be non-empty strings")
    if len(set(agents)) != len(agents):
        raise ValidationError("requiredAgents must be unique")
    if isinstance(plan.max_rounds, bool) or not isinstance(plan.max_rounds, int) or plan.max_rounds < 1:
        raise ValidationError("maxRounds must be an integer >= 1")
    threshold = plan.consensus_threshold
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 < threshold <= 1:
        raise ValidationError("consensusThreshold must be in (0, 1]")
    timeout = plan.timeout_minutes
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or not math.isfinite(timeout) or timeout <= 0:
        raise ValidationError("timeoutMinutes must be > 0")
    if plan.facilitator not in agents:
        raise ValidationError(f"facilitator '{plan.facilitator}' must be one of requiredAgents")


class CollaborationService:
    """Registry of discussion controllers, one independent task per discussion.

    Reads never block on in-flight rounds: they return the controller's last
    committed snapshot.
    """

    def __init__(
        self,
        responder: AgentResponder,
        *,
        min_call_timeout_sec: float = DEFAULT_MIN_CALL_TIMEOUT_SEC,
        max_concurrency: int | None = None,
        recorders: Sequence[DiscussionRecorder] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._responder = responder
        self._min_call_timeout_sec = min_call_timeout_sec
        self._max_concurrency = max_concurrency
        self._recorders = tuple(recorders)
        self._clock = clock
        self._controllers: dict[str, DiscussionController] = {}

    async def start_collaboration(
        self,
        plan: Plan,
        *,
        session_id: str = "",
        context: str = "",
        user_message: str | None = None,
    ) -> Discussion:
        """Validate ``plan``, spawn its discussion, and return the initial snapshot.

        Raises:
            ValidationError: If the plan is malformed. Nothing is created.
        """
        validate_plan(plan)
        invoker = AgentInvoker(
            self._responder,
            timeout_sec=per_call_timeout(plan, self._min_call_timeout_sec),
            max_concurrency=self._max_concurrency,
        )
        controller = DiscussionController(
            plan,
            invoker,
            discussion_id=str(uuid.uuid4()),
            session_id=session_id,
            context=context,
            user_message=user_message,
            recorders=self._recorders,
            clock=self._clock,
        )
        self._controllers[controller.id] = controller
        controller.start()
        logger.info(
            "Started discussion %s for session %s (per-call timeout %.1fs)",
            controller.id, session_id or "-", invoker.timeout_sec,
        )
        return controller.snapshot()

    def _controller(self, discussion_id: str) -> DiscussionController:
        try:
            return self._controllers[discussion_id]
        except KeyError:
            raise DiscussionNotFoundError(discussion_id) from None

    def get_discussion(self, discussion_id: str) -> Discussion:
        """Return the latest committed snapshot.

        Raises:
            DiscussionNotFoundError: If the id is unknown.
        """
        return self._controller(discussion_id).snapshot()

    def get_session_discussions(self, session_id: str) -> list[Discussion]:
        return [c.snapshot() for c in self._controllers.values() if c.session_id == session_id]

    def active_discussions(self) -> list[Discussion]:
        snapshots = (c.snapshot() for c in self._controllers.values())
        return [d for d in snapshots if d.status is DiscussionStatus.ACTIVE]

    def cancel_discussion(self, discussion_id: str) -> Discussion:
        controller = self._controller(discussion_id)
        controller.cancel()
        return controller.snapshot()

    async def wait_for_discussion(self, discussion_id: str, timeout: float | None = None) -> Discussion:
        """Block until the discussion is terminal. Raises TimeoutError on ``timeout``."""
        return await self._controller(discussion_id).wait(timeout)

    async def aclose(self) -> None:
        """Cancel every active discussion and wait for each to settle."""
        active = [c for c in self._controllers.values() if not c.is_terminal]
        for controller in active:
            controller.cancel()
        if active:
            await asyncio.gather(*(c.wait() for c in active))
